"""Connection ownership, liveness probing and reconnect policy."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable

from loguru import logger

from swaprpc.messaging.transport import Transport
from swaprpc.utils.exceptions import TransportError, classify_exception, sanitize_error_message

DEFAULT_HEARTBEAT_INTERVAL = 30.0
DEFAULT_RECONNECT_DELAY = 10.0


@dataclass
class Connection:
    """One transport handle and its authentication state."""

    transport: Transport
    url: str
    reconnect: bool = True
    authenticated: bool = False
    alive: bool = True
    closed: bool = False
    probe_task: asyncio.Task | None = field(default=None, repr=False)
    reader_task: asyncio.Task | None = field(default=None, repr=False)

    def mark_alive(self) -> None:
        self.alive = True


class ConnectionLifecycle:
    """Reconnect-on-close and heartbeat probing for a messenger's connections."""

    def __init__(
        self,
        heartbeat_interval: float = DEFAULT_HEARTBEAT_INTERVAL,
        reconnect_delay: float = DEFAULT_RECONNECT_DELAY,
    ):
        self.heartbeat_interval = heartbeat_interval
        self.reconnect_delay = reconnect_delay
        self._reconnect_task: asyncio.Task | None = None

    @property
    def reconnect_pending(self) -> bool:
        return self._reconnect_task is not None and not self._reconnect_task.done()

    def start_probe(self, connection: Connection) -> None:
        """Check socket health every ``heartbeat_interval`` seconds where pings exist."""
        connection.alive = True
        # ping/pong is a transport capability; some transports have none.
        if not connection.transport.supports_heartbeat:
            return
        connection.probe_task = asyncio.create_task(self._probe(connection))

    async def _probe(self, connection: Connection) -> None:
        while not connection.closed:
            await asyncio.sleep(self.heartbeat_interval)
            if connection.closed:
                return
            if not connection.alive:
                logger.warning("no response for {:g}s; closing socket", self.heartbeat_interval)
                # Detach so on_close does not cancel the close handshake below.
                connection.probe_task = None
                await connection.transport.close()
                return
            connection.alive = False
            try:
                await connection.transport.ping(connection.mark_alive)
            except TransportError as e:
                logger.warning("Heartbeat failed: {}", e)
                return

    def report_error(self, connection: Connection, exc: BaseException) -> None:
        """Log a transport failure; the caller then closes through ``on_close``."""
        code, category, retry = classify_exception(exc)
        logger.error(
            "Transport error on {} [{}/{}] retry={}: {}",
            connection.url,
            code,
            category.value,
            retry,
            sanitize_error_message(str(exc)),
        )

    def on_close(self, connection: Connection, connect: Callable[[], Awaitable[Any]]) -> None:
        """Tear down per-connection state and schedule at most one reconnect."""
        if connection.closed:
            return
        connection.closed = True
        connection.authenticated = False
        if connection.probe_task is not None:
            connection.probe_task.cancel()
            connection.probe_task = None

        if connection.reconnect:
            logger.info("socket closed; attempting reconnect in {:g}s", self.reconnect_delay)
            self.cancel_reconnect()
            self._reconnect_task = asyncio.create_task(self._reconnect_after(connect))
        else:
            logger.info("socket closed")

    async def _reconnect_after(self, connect: Callable[[], Awaitable[Any]]) -> None:
        # Stays registered until connect() returns so disconnect() can cancel it mid-open.
        try:
            await asyncio.sleep(self.reconnect_delay)
            await connect()
        except Exception as e:
            logger.warning("Reconnect attempt failed: {}", e)
        finally:
            # A failed attempt may already have scheduled the next one.
            if self._reconnect_task is asyncio.current_task():
                self._reconnect_task = None

    def cancel_reconnect(self) -> None:
        task = self._reconnect_task
        # connect() running inside the reconnect task must not cancel itself.
        if task is None or task is asyncio.current_task():
            return
        if not task.done():
            task.cancel()
        self._reconnect_task = None
