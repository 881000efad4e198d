"""Routing of authenticated inbound traffic."""

from __future__ import annotations

import asyncio
import inspect
from typing import Any, Callable, Mapping

from loguru import logger

from swaprpc.messaging.correlator import CallCorrelator
from swaprpc.messaging.protocol import decode_envelope

RpcHandler = Callable[[dict[str, Any]], Any]


class InboundDispatcher:
    """Split inbound messages into peer calls and responses to our own calls.

    Malformed or unrelated messages are logged and dropped; nothing received here
    may break the read loop.
    """

    def __init__(self, correlator: CallCorrelator, rpc_actions: Mapping[str, RpcHandler] | None = None):
        self._correlator = correlator
        # User defined methods that will be invoked by peers on the JSON-RPC
        self._actions: dict[str, RpcHandler] = dict(rpc_actions or {})
        self._tasks: set[asyncio.Task] = set()

    @property
    def methods(self) -> list[str]:
        return sorted(self._actions)

    def dispatch(self, raw: str | bytes) -> None:
        try:
            envelope, message = decode_envelope(raw)
        except ValueError as e:
            logger.error("Error parsing payload: {} ({!r})", e, raw)
            return

        if message.get("method"):
            self._invoke(message, envelope.sender)
        elif message.get("id"):
            self._correlator.resolve(message)

    def _invoke(self, message: dict[str, Any], sender: str) -> None:
        method = message["method"]
        handler = self._actions.get(method)
        if handler is None:
            logger.debug("No handler for peer call {} from {}", method, sender)
            return
        logger.debug("Peer {} invoked {}", sender, method)
        try:
            result = handler(message)
        except Exception:
            logger.exception("Handler for {} raised", method)
            return
        if inspect.isawaitable(result):
            task = asyncio.ensure_future(result)
            self._tasks.add(task)
            task.add_done_callback(self._handler_done)

    def _handler_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.opt(exception=exc).error("Async RPC handler raised")
