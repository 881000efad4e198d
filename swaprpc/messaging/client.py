"""Messenger: JSON-RPC between addresses over one authenticated websocket."""

from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable, Mapping, Sequence
from urllib.parse import urlencode

from loguru import logger

from swaprpc.config.schema import MessengerConfig
from swaprpc.messaging.auth import ChallengeAuthenticator, Signer
from swaprpc.messaging.correlator import CallCorrelator, ErrorCallback, PendingCall, ResultCallback
from swaprpc.messaging.dispatcher import InboundDispatcher, RpcHandler
from swaprpc.messaging.lifecycle import Connection, ConnectionLifecycle
from swaprpc.messaging.protocol import RpcRequest, coerce_request, encode_envelope, make_rpc
from swaprpc.messaging.transport import NORMAL_CLOSURE, Transport, WebSocketTransport
from swaprpc.utils.exceptions import (
    TIMEOUT_ERROR_CODE,
    BadArgumentsError,
    MessengerError,
    RpcCallError,
    RpcTimeoutError,
    TransportError,
)


def build_socket_url(server_host: str, address: str, keyspace: bool = False) -> str:
    """``wss://<host>/websocket``, with the keyspace query when enabled."""
    host = server_host.strip().rstrip("/")
    url = f"{host}/websocket" if "://" in host else f"wss://{host.lstrip('/')}/websocket"
    if keyspace:
        url += "?" + urlencode({"use_pgp": "true", "address": address.lower()})
    return url


def decode_signature_v(value: Any) -> int:
    """Decode an order signature's ``v`` from an int, hex string or decimal string."""
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    text = str(value).strip()
    if text.lower().startswith("0x"):
        return int(text, 16)
    return int(text, 10)


def _amount(value: Any) -> str | None:
    return str(value) if value else None


def _check_trade_args(method: str, maker_token: Any, taker_token: Any, maker_amount: Any, taker_amount: Any) -> None:
    if not maker_amount and not taker_amount:
        raise BadArgumentsError(method, "one of makerAmount or takerAmount is required")
    if maker_amount and taker_amount:
        raise BadArgumentsError(method, "makerAmount and takerAmount are mutually exclusive")
    if not maker_token or not taker_token:
        raise BadArgumentsError(method, "makerToken and takerToken are required")


class Messenger:
    """Participant identified by ``address`` on the messaging network.

    * ``signer``: async ``(challenge) -> signature`` used during authentication
    * ``rpc_actions``: user defined methods; called by peers via JSON-RPC
    * ``config``: socket URL parts, timeouts and reconnect policy
    * ``transport_factory``: builds a fresh transport per connection
    """

    make_rpc = staticmethod(make_rpc)

    def __init__(
        self,
        address: str,
        signer: Signer,
        *,
        rpc_actions: Mapping[str, RpcHandler] | None = None,
        config: MessengerConfig | None = None,
        transport_factory: Callable[[], Transport] | None = None,
    ):
        if not address:
            raise BadArgumentsError("Messenger", "address is required")
        self.config = config or MessengerConfig()
        self.address = address
        self.signer = signer
        self.indexer_address = self.config.indexer_address
        self.socket_url = build_socket_url(self.config.server_host, address, keyspace=self.config.keyspace)

        self._transport_factory = transport_factory or WebSocketTransport
        self.correlator = CallCorrelator(timeout=self.config.call_timeout)
        self.dispatcher = InboundDispatcher(self.correlator, rpc_actions)
        self.lifecycle = ConnectionLifecycle(
            heartbeat_interval=self.config.heartbeat_interval,
            reconnect_delay=self.config.reconnect_delay,
        )
        self._connection: Connection | None = None

    @property
    def connection(self) -> Connection | None:
        return self._connection

    @property
    def connected(self) -> bool:
        return self._connection is not None and not self._connection.closed

    @property
    def authenticated(self) -> bool:
        return self.connected and self._connection.authenticated

    async def __aenter__(self) -> "Messenger":
        await self.connect()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.disconnect()

    # WebSocket interaction

    async def connect(self, reconnect: bool | None = None) -> str:
        """Open a new connection and authenticate; returns the server's ``"ok"``.

        Every later close of this connection schedules one reconnect unless
        ``reconnect`` is False. Auto-reconnects are reported through the log only.
        """
        if reconnect is None:
            reconnect = self.config.reconnect
        if self.connected:
            raise MessengerError("Messenger is already connected")
        self.lifecycle.cancel_reconnect()

        connection = Connection(transport=self._transport_factory(), url=self.socket_url, reconnect=reconnect)
        self._connection = connection
        logger.info("Connecting to {}", self.socket_url)
        try:
            await connection.transport.open(self.socket_url)
        except TransportError as e:
            self.lifecycle.report_error(connection, e)
            self._on_close(connection)
            raise
        except asyncio.CancelledError:
            connection.reconnect = False
            await connection.transport.close()
            self._on_close(connection)
            raise
        if connection.closed:
            # disconnect() ran while the socket was opening.
            await connection.transport.close()
            raise MessengerError("Disconnected while the connection was opening")

        authenticator = ChallengeAuthenticator(self.signer, connection.transport.send, address=self.address)
        authenticator.opened()
        self.lifecycle.start_probe(connection)
        connection.reader_task = asyncio.create_task(self._read_loop(connection, authenticator))

        try:
            return await authenticator.outcome
        except Exception:
            if not connection.closed:
                await connection.transport.close()
            raise

    async def _read_loop(self, connection: Connection, authenticator: ChallengeAuthenticator) -> None:
        try:
            async for raw in connection.transport.messages():
                if not connection.authenticated:
                    # We are authenticating
                    await authenticator.handle(raw)
                    connection.authenticated = authenticator.authenticated
                else:
                    self.dispatcher.dispatch(raw)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            self.lifecycle.report_error(connection, e)
        finally:
            authenticator.connection_lost()
            self._on_close(connection)

    def _on_close(self, connection: Connection) -> None:
        self.lifecycle.on_close(connection, self.connect)

    async def disconnect(self) -> None:
        """Close the socket with code 1000; no reconnect follows."""
        self.lifecycle.cancel_reconnect()
        connection = self._connection
        if connection is None or connection.closed:
            return
        connection.reconnect = False
        try:
            await connection.transport.close(NORMAL_CLOSURE)
        except TransportError as e:
            self.lifecycle.report_error(connection, e)
        if connection.reader_task is not None and connection.reader_task is not asyncio.current_task():
            await asyncio.gather(connection.reader_task, return_exceptions=True)
        self._on_close(connection)
        dropped = self.correlator.cancel_all()
        if dropped:
            logger.info("Cancelled {} pending call(s) on disconnect", dropped)

    # RPC

    async def call(
        self,
        receiver: str,
        message: RpcRequest | Mapping[str, Any],
        on_result: ResultCallback | None = None,
        on_error: ErrorCallback | None = None,
        *,
        on_cancel: Callable[[], Any] | None = None,
    ) -> PendingCall:
        """Send a JSON-RPC ``message`` to a ``receiver`` address.

        ``on_result`` receives the response's result, ``on_error`` the response's
        error or the timeout payload ``{"message", "code": -1}``. Without either
        callback the call is fire-and-forget; its record is still cleaned up.
        """
        connection = self._require_authenticated()
        wire = coerce_request(message)
        call_id = str(wire["id"])
        record = self.correlator.register(call_id, on_result, on_error, on_cancel)
        try:
            await connection.transport.send(encode_envelope(self.address, receiver, wire))
        except TransportError:
            self.correlator.cancel(call_id)
            raise
        return record

    async def request(self, receiver: str, message: RpcRequest | Mapping[str, Any]) -> Any:
        """Call ``receiver`` and wait for the result.

        Raises ``RpcTimeoutError`` when nothing arrives within the call timeout and
        ``RpcCallError`` when the peer answers with an error. A call dropped by
        ``cancel()`` or ``disconnect()`` raises ``MessengerError``.
        """
        wire = coerce_request(message)
        call_id = str(wire["id"])
        future: asyncio.Future = asyncio.get_running_loop().create_future()

        def _resolve(value: Any) -> None:
            if not future.done():
                future.set_result(value)

        def _reject(error: Any) -> None:
            if not future.done():
                future.set_exception(self._call_error(error, call_id))

        def _cancelled() -> None:
            if not future.done():
                future.set_exception(MessengerError(f"Call {call_id} was cancelled"))

        await self.call(receiver, wire, _resolve, _reject, on_cancel=_cancelled)
        try:
            return await future
        except asyncio.CancelledError:
            self.correlator.cancel(call_id)
            raise

    def cancel(self, call_id: str) -> bool:
        """Abort a pending call before its timeout fires."""
        return self.correlator.cancel(call_id)

    def _call_error(self, error: Any, call_id: str) -> RpcCallError:
        if (
            isinstance(error, dict)
            and error.get("code") == TIMEOUT_ERROR_CODE
            and call_id in str(error.get("message", ""))
        ):
            return RpcTimeoutError(call_id, self.correlator.timeout)
        return RpcCallError(error, call_id=call_id)

    def _require_authenticated(self) -> Connection:
        if not self.connected:
            raise MessengerError("Not connected, call connect() first")
        if not self._connection.authenticated:
            raise MessengerError("Connection is not authenticated yet")
        return self._connection

    # Interacting with the indexer

    def find_intents(self, maker_tokens: Sequence[str], taker_tokens: Sequence[str], role: str = "maker") -> Awaitable[Any]:
        """Query the indexer for trade intents; resolves to a list of intents."""
        if not maker_tokens or not taker_tokens:
            raise BadArgumentsError("findIntents", "missing arguments makerTokens or takerTokens")
        payload = make_rpc(
            "findIntents",
            {"makerTokens": list(maker_tokens), "takerTokens": list(taker_tokens), "role": role},
        )
        return self.request(self.indexer_address, payload)

    def get_intents(self, address: str) -> Awaitable[Any]:
        """Intents published by ``address``."""
        if not address:
            raise BadArgumentsError("getIntents", "address is required")
        payload = make_rpc("getIntents", {"address": address.lower()})
        return self.request(self.indexer_address, payload)

    def set_intents(self, intents: Sequence[Mapping[str, Any]]) -> Awaitable[Any]:
        """Publish our own intents; the indexer answers ``"OK"`` on success."""
        if intents is None:
            raise BadArgumentsError("setIntents", "intents is required")
        payload = make_rpc("setIntents", {"address": self.address.lower(), "intents": list(intents)})
        return self.request(self.indexer_address, payload)

    # Interacting with makers

    def get_order(
        self,
        maker_address: str,
        *,
        maker_token: str | None = None,
        taker_token: str | None = None,
        maker_amount: Any = None,
        taker_amount: Any = None,
    ) -> Awaitable[dict[str, Any]]:
        """Request a signed order from a maker (or a timeout if they fail to respond).

        Exactly one of ``maker_amount`` / ``taker_amount`` must be given.
        """
        _check_trade_args("getOrder", maker_token, taker_token, maker_amount, taker_amount)
        payload = make_rpc(
            "getOrder",
            {
                "makerToken": maker_token,
                "takerToken": taker_token,
                "takerAddress": self.address.lower(),
                "makerAmount": _amount(maker_amount),
                "takerAmount": _amount(taker_amount),
            },
        )
        return self._request_order(maker_address, payload)

    def get_quote(
        self,
        maker_address: str,
        *,
        maker_token: str | None = None,
        taker_token: str | None = None,
        maker_amount: Any = None,
        taker_amount: Any = None,
    ) -> Awaitable[Any]:
        _check_trade_args("getQuote", maker_token, taker_token, maker_amount, taker_amount)
        payload = make_rpc(
            "getQuote",
            {
                "makerToken": maker_token,
                "takerToken": taker_token,
                "makerAmount": _amount(maker_amount),
                "takerAmount": _amount(taker_amount),
            },
        )
        return self.request(maker_address, payload)

    def get_max_quote(
        self,
        maker_address: str,
        *,
        maker_token: str | None = None,
        taker_token: str | None = None,
    ) -> Awaitable[Any]:
        if not maker_token or not taker_token:
            raise BadArgumentsError("getMaxQuote", "makerToken and takerToken are required")
        payload = make_rpc("getMaxQuote", {"makerToken": maker_token, "takerToken": taker_token})
        return self.request(maker_address, payload)

    def get_orders(
        self,
        intents: list[Mapping[str, Any]],
        *,
        maker_amount: Any = None,
        taker_amount: Any = None,
    ) -> Awaitable[list[Any]]:
        """Call ``getOrder`` on the maker of every intent concurrently.

        The result is aligned with ``intents``; a failed sub-call leaves its
        ``RpcCallError`` (or other exception) in place instead of failing the batch.
        """
        if not isinstance(intents, list) or not (maker_amount or taker_amount):
            raise BadArgumentsError("getOrders", "a list of intents and an amount are required")
        amounts: dict[str, str] = {}
        if maker_amount:
            amounts["makerAmount"] = str(maker_amount)
        if taker_amount:
            amounts["takerAmount"] = str(taker_amount)
        payloads = [
            (
                intent.get("makerAddress"),
                make_rpc(
                    "getOrder",
                    {
                        "makerToken": intent.get("makerToken"),
                        "takerToken": intent.get("takerToken"),
                        "takerAddress": self.address.lower(),
                        **amounts,
                    },
                ),
            )
            for intent in intents
        ]
        return self._gather_orders(payloads)

    async def _gather_orders(self, payloads: list[tuple[str, RpcRequest]]) -> list[Any]:
        return await asyncio.gather(
            *(self._request_order(maker, payload) for maker, payload in payloads),
            return_exceptions=True,
        )

    async def _request_order(self, maker_address: str, payload: RpcRequest) -> Any:
        order = await self.request(maker_address, payload)
        if isinstance(order, dict) and order.get("v"):
            return {**order, "v": decode_signature_v(order["v"])}
        return order
