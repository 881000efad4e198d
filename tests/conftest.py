"""Pytest hooks and fixtures."""

from __future__ import annotations

import asyncio
import json
from typing import Any, AsyncIterator, Callable

import pytest

from swaprpc.config.schema import MessengerConfig
from swaprpc.messaging.client import Messenger
from swaprpc.messaging.transport import NORMAL_CLOSURE, Transport
from swaprpc.utils.exceptions import TransportError

ADDRESS = "0xAbC0000000000000000000000000000000000001"
MAKER = "0xmaker000000000000000000000000000000000002"

_CLOSED = object()


class FakeTransport(Transport):
    """In-memory transport: tests feed inbound frames and read ``sent``."""

    def __init__(self, *, heartbeat: bool = False, auto_pong: bool = True, fail_open: bool = False):
        self.supports_heartbeat = heartbeat
        self.auto_pong = auto_pong
        self.fail_open = fail_open
        self.url: str | None = None
        self.sent: list[str] = []
        self.close_code: int | None = None
        self.pings = 0
        self._inbox: asyncio.Queue = asyncio.Queue()

    async def open(self, url: str) -> None:
        self.url = url
        if self.fail_open:
            raise TransportError("connection refused", url=url)

    async def send(self, data: str) -> None:
        if self.close_code is not None:
            raise TransportError("socket is closed", url=self.url)
        self.sent.append(data)

    async def close(self, code: int = NORMAL_CLOSURE) -> None:
        if self.close_code is None:
            self.close_code = code
            self._inbox.put_nowait(_CLOSED)

    async def messages(self) -> AsyncIterator[str]:
        while True:
            item = await self._inbox.get()
            if item is _CLOSED:
                return
            if isinstance(item, Exception):
                raise item
            yield item

    async def ping(self, on_pong: Callable[[], None]) -> None:
        self.pings += 1
        if self.auto_pong:
            on_pong()

    def feed(self, data: Any) -> None:
        self._inbox.put_nowait(data)

    def remote_close(self) -> None:
        self._inbox.put_nowait(_CLOSED)

    def sent_envelopes(self) -> list[dict[str, Any]]:
        """Envelopes sent after authentication, with ``message`` already parsed."""
        out = []
        for raw in self.sent:
            try:
                envelope = json.loads(raw)
            except ValueError:
                continue
            if isinstance(envelope, dict) and "message" in envelope:
                out.append({**envelope, "message": json.loads(envelope["message"])})
        return out

    def sent_messages(self) -> list[dict[str, Any]]:
        return [envelope["message"] for envelope in self.sent_envelopes()]

    def respond(self, call_id: str, sender: str = MAKER, **fields: Any) -> None:
        """Feed a response envelope for ``call_id`` (pass ``result=`` or ``error=``)."""
        self.feed(
            json.dumps(
                {
                    "sender": sender,
                    "receiver": ADDRESS.lower(),
                    "message": json.dumps({"id": call_id, **fields}),
                    "id": "envelope-1",
                }
            )
        )


async def settle(rounds: int = 20) -> None:
    """Let pending callbacks and tasks run."""
    for _ in range(rounds):
        await asyncio.sleep(0)


async def fake_signer(challenge: str) -> str:
    return f"sig:{challenge}"


@pytest.fixture
def transports() -> list[FakeTransport]:
    return []


@pytest.fixture
def make_messenger(transports):
    def _make(
        *,
        rpc_actions=None,
        heartbeat: bool = False,
        auto_pong: bool = True,
        fail_open: bool = False,
        transport_cls: type[FakeTransport] = FakeTransport,
        signer=fake_signer,
        **config_overrides: Any,
    ) -> Messenger:
        settings = {
            "server_host": "relay.example.test",
            "call_timeout": 0.5,
            "heartbeat_interval": 0.02,
            "reconnect_delay": 0.01,
        }
        settings.update(config_overrides)

        def _factory() -> FakeTransport:
            transport = transport_cls(heartbeat=heartbeat, auto_pong=auto_pong, fail_open=fail_open)
            transports.append(transport)
            return transport

        return Messenger(
            ADDRESS,
            signer,
            rpc_actions=rpc_actions,
            config=MessengerConfig(**settings),
            transport_factory=_factory,
        )

    return _make


async def authenticate(messenger: Messenger, transports: list[FakeTransport], **connect_kwargs: Any) -> FakeTransport:
    """Run the handshake against the newest fake transport."""
    task = asyncio.create_task(messenger.connect(**connect_kwargs))
    await settle()
    transport = transports[-1]
    transport.feed("challenge-xyz")
    await settle()
    transport.feed("ok")
    assert await task == "ok"
    return transport
