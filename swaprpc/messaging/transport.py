"""Bidirectional message-stream transports."""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from typing import Any, AsyncIterator, Callable

import websockets
from loguru import logger
from websockets.exceptions import ConnectionClosed, ConnectionClosedOK, WebSocketException

from swaprpc.utils.exceptions import TransportError

NORMAL_CLOSURE = 1000


class Transport(ABC):
    """What the messenger needs from a socket.

    ``messages()`` yields inbound text frames until the connection closes; a normal
    close ends the iteration, anything else raises ``TransportError``.
    """

    #: Whether ``ping`` is available for liveness probing.
    supports_heartbeat: bool = False

    @abstractmethod
    async def open(self, url: str) -> None:
        raise NotImplementedError

    @abstractmethod
    async def send(self, data: str) -> None:
        raise NotImplementedError

    @abstractmethod
    async def close(self, code: int = NORMAL_CLOSURE) -> None:
        raise NotImplementedError

    @abstractmethod
    def messages(self) -> AsyncIterator[str]:
        raise NotImplementedError

    async def ping(self, on_pong: Callable[[], None]) -> None:
        """Send a heartbeat; ``on_pong`` runs when it is acknowledged."""
        raise NotImplementedError(f"{type(self).__name__} has no heartbeat signaling")


class WebSocketTransport(Transport):
    """Transport over the ``websockets`` client."""

    supports_heartbeat = True

    def __init__(self, open_timeout: float = 10.0, **connect_kwargs: Any):
        self.open_timeout = open_timeout
        # Liveness is probed by the connection lifecycle, not by the library.
        connect_kwargs.setdefault("ping_interval", None)
        self._connect_kwargs = connect_kwargs
        self._ws: Any = None
        self._url: str | None = None

    @property
    def is_open(self) -> bool:
        return self._ws is not None

    async def open(self, url: str) -> None:
        self._url = url
        try:
            self._ws = await websockets.connect(url, open_timeout=self.open_timeout, **self._connect_kwargs)
        except (OSError, asyncio.TimeoutError, WebSocketException) as e:
            raise TransportError(f"Failed to open websocket: {e}", url=url) from e

    async def send(self, data: str) -> None:
        if self._ws is None:
            raise TransportError("Not connected, cannot send message", url=self._url)
        try:
            await self._ws.send(data)
        except ConnectionClosed as e:
            raise TransportError(f"Failed to send message: {e}", url=self._url) from e

    async def close(self, code: int = NORMAL_CLOSURE) -> None:
        if self._ws is None:
            return
        await self._ws.close(code)

    async def messages(self) -> AsyncIterator[str]:
        if self._ws is None:
            raise TransportError("Not connected", url=self._url)
        try:
            async for message in self._ws:
                if isinstance(message, bytes):
                    message = message.decode("utf-8", errors="replace")
                yield message
        except ConnectionClosedOK:
            return
        except ConnectionClosed as e:
            raise TransportError(f"Connection closed abnormally: {e}", url=self._url) from e
        finally:
            code = getattr(self._ws, "close_code", None)
            logger.debug("Websocket {} closed (code {})", self._url, code)
            self._ws = None

    async def ping(self, on_pong: Callable[[], None]) -> None:
        if self._ws is None:
            raise TransportError("Not connected, cannot ping", url=self._url)
        try:
            pong_waiter = await self._ws.ping()
        except ConnectionClosed as e:
            raise TransportError(f"Failed to ping: {e}", url=self._url) from e

        def _acknowledged(fut: asyncio.Future) -> None:
            if not fut.cancelled() and fut.exception() is None:
                on_pong()

        asyncio.ensure_future(pong_waiter).add_done_callback(_acknowledged)
