"""Outgoing call bookkeeping: one pending record per call id, each bounded by a timeout."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Any, Callable, Mapping

from loguru import logger
from pydantic import ValidationError as PydanticValidationError

from swaprpc.messaging.protocol import RpcResponse
from swaprpc.utils.exceptions import RpcTimeoutError

DEFAULT_CALL_TIMEOUT = 12.0

ResultCallback = Callable[[Any], None]
ErrorCallback = Callable[[Any], None]


@dataclass
class PendingCall:
    """Resolution state of one outgoing call.

    The record exists from the moment the call is registered until exactly one of
    response, timeout or cancellation removes it from the correlator.
    """

    call_id: str
    on_result: ResultCallback | None = None
    on_error: ErrorCallback | None = None
    on_cancel: Callable[[], Any] | None = None
    timer: asyncio.TimerHandle | None = field(default=None, repr=False)

    @property
    def fire_and_forget(self) -> bool:
        return self.on_result is None and self.on_error is None


class CallCorrelator:
    """Match inbound responses to outgoing calls by RPC id."""

    def __init__(self, timeout: float = DEFAULT_CALL_TIMEOUT):
        self.timeout = timeout
        self._pending: dict[str, PendingCall] = {}

    @property
    def pending(self) -> dict[str, PendingCall]:
        """Snapshot of the pending table."""
        return dict(self._pending)

    def __contains__(self, call_id: object) -> bool:
        return call_id in self._pending

    def __len__(self) -> int:
        return len(self._pending)

    def register(
        self,
        call_id: str,
        on_result: ResultCallback | None = None,
        on_error: ErrorCallback | None = None,
        on_cancel: Callable[[], Any] | None = None,
    ) -> PendingCall:
        """Allocate the pending record for ``call_id`` and arm its timeout.

        Must be called from inside the running event loop.
        """
        if call_id in self._pending:
            raise ValueError(f"call id already pending: {call_id}")
        loop = asyncio.get_running_loop()
        record = PendingCall(call_id=call_id, on_result=on_result, on_error=on_error, on_cancel=on_cancel)
        record.timer = loop.call_later(self.timeout, self._expire, call_id)
        self._pending[call_id] = record
        return record

    def resolve(self, message: Mapping[str, Any]) -> bool:
        """Settle the call a response belongs to.

        Returns True when a pending record was consumed. Responses for unknown ids and
        responses carrying neither ``result`` nor ``error`` are dropped and leave the
        table untouched.
        """
        try:
            response = RpcResponse.model_validate(dict(message))
        except PydanticValidationError:
            logger.debug("Dropping response without a usable id: {}", message)
            return False

        key = str(response.id)
        if key not in self._pending:
            logger.debug("Dropping response for unknown call {}", key)
            return False
        if not response.is_error and not response.has_result:
            logger.debug("Dropping response with neither result nor error for call {}", key)
            return False

        record = self._remove(key)
        if response.is_error:
            _invoke(record.on_error, response.error, key)
        else:
            _invoke(record.on_result, response.result, key)
        return True

    def cancel(self, call_id: str) -> bool:
        """Stop waiting for ``call_id``; only the record's ``on_cancel`` hook runs."""
        if call_id not in self._pending:
            return False
        record = self._remove(call_id)
        logger.debug("Call {} cancelled", call_id)
        if record.on_cancel is not None:
            record.on_cancel()
        return True

    def cancel_all(self) -> int:
        """Cancel every pending call; returns how many were cancelled."""
        return sum(1 for call_id in list(self._pending) if self.cancel(call_id))

    def _expire(self, call_id: str) -> None:
        record = self._pending.pop(call_id, None)
        if record is None:
            return
        logger.warning("Request timed out. [{}]", call_id)
        if record.on_error is not None:
            _invoke(record.on_error, RpcTimeoutError(call_id, self.timeout).error, call_id)

    def _remove(self, call_id: str) -> PendingCall:
        record = self._pending.pop(call_id)
        if record.timer is not None:
            record.timer.cancel()
        return record


def _invoke(callback: Callable[[Any], None] | None, value: Any, call_id: str) -> None:
    if callback is None:
        return
    try:
        callback(value)
    except Exception:
        logger.exception("Callback for call {} raised", call_id)
