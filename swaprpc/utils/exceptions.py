"""
Exception hierarchy and error handling utilities for swaprpc.

Provides:
- Custom exception classes with error codes
- Error categorization (recoverable, retryable, fatal)
- Safe error message formatting (no key material in logs)
"""

from __future__ import annotations

import asyncio
import json
import re
from enum import Enum
from typing import Any

TIMEOUT_ERROR_CODE = -1


class ErrorCategory(Enum):
    """Error categories for classification."""
    RECOVERABLE = "recoverable"
    RETRYABLE = "retryable"
    FATAL = "fatal"
    VALIDATION = "validation"
    PERMISSION = "permission"
    TIMEOUT = "timeout"


class SwapRpcError(Exception):
    """Base exception for all swaprpc errors."""

    def __init__(
        self,
        message: str,
        code: str = "UNKNOWN_ERROR",
        category: ErrorCategory = ErrorCategory.FATAL,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.category = category
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        return {
            "error": self.code,
            "message": self.message,
            "category": self.category.value,
            "details": self.details,
        }

    def __str__(self) -> str:
        return f"[{self.code}] {self.message}"


class ValidationError(SwapRpcError):
    """Input validation error."""

    def __init__(self, message: str, field: str | None = None):
        details = {"field": field} if field else {}
        super().__init__(message, code="VALIDATION_ERROR", category=ErrorCategory.VALIDATION, details=details)


class BadArgumentsError(ValidationError):
    """Arguments passed to an RPC helper are missing or mutually exclusive."""

    def __init__(self, method: str, reason: str | None = None):
        message = f"bad arguments passed to {method}"
        if reason:
            message += f": {reason}"
        super().__init__(message)
        self.details["method"] = method


class AuthorizationError(SwapRpcError):
    """The server refused the signed challenge."""

    def __init__(self, message: str = "Address is not authorized.", address: str | None = None):
        details = {"address": address} if address else {}
        super().__init__(message, code="NOT_AUTHORIZED", category=ErrorCategory.PERMISSION, details=details)


class TransportError(SwapRpcError):
    """The underlying socket failed to open, send or closed abnormally."""

    def __init__(self, message: str, url: str | None = None):
        details = {"url": url} if url else {}
        super().__init__(message, code="TRANSPORT_ERROR", category=ErrorCategory.RETRYABLE, details=details)


class MessengerError(SwapRpcError):
    """The messenger was used in a state that does not allow the operation."""

    def __init__(self, message: str):
        super().__init__(message, code="MESSENGER_STATE", category=ErrorCategory.FATAL)


class RpcCallError(SwapRpcError):
    """A call was rejected; ``error`` holds the payload handed to the rejector."""

    def __init__(self, error: Any, call_id: str | None = None):
        if isinstance(error, dict):
            message = str(error.get("message") or "remote call failed")
            rpc_code = error.get("code")
        else:
            message = str(error or "remote call failed")
            rpc_code = None
        super().__init__(
            message,
            code="RPC_ERROR",
            category=ErrorCategory.RECOVERABLE,
            details={"call_id": call_id, "rpc_code": rpc_code},
        )
        self.error = error
        self.call_id = call_id
        self.rpc_code = rpc_code


class RpcTimeoutError(RpcCallError):
    """No response arrived inside the call timeout window."""

    def __init__(self, call_id: str, timeout_seconds: float | None = None):
        super().__init__(
            {"message": f"Request timed out. [{call_id}]", "code": TIMEOUT_ERROR_CODE},
            call_id=call_id,
        )
        self.code = "TIMEOUT"
        self.category = ErrorCategory.TIMEOUT
        self.details["timeout_seconds"] = timeout_seconds


_SENSITIVE_PATTERNS = [
    re.compile(r"(private[_-]?key|secret|password|token)[=:]\s*['\"]?([^\s'\"]+)['\"]?", re.IGNORECASE),
    re.compile(r"\b(0x)?[a-fA-F0-9]{64}\b"),
]


def sanitize_error_message(message: str, replacement: str = "[REDACTED]") -> str:
    """Remove key material from error messages."""
    sanitized = message
    for pattern in _SENSITIVE_PATTERNS:
        sanitized = pattern.sub(replacement, sanitized)
    return sanitized


def classify_exception(exc: BaseException) -> tuple[str, ErrorCategory, bool]:
    """
    Classify an exception and return (error_code, category, should_retry).

    Used by the connection lifecycle to decide how loudly to report a failure;
    every transport failure still ends in the same close/reconnect path.
    """
    if isinstance(exc, SwapRpcError):
        return exc.code, exc.category, exc.category is ErrorCategory.RETRYABLE

    if isinstance(exc, asyncio.TimeoutError):
        return "TIMEOUT", ErrorCategory.TIMEOUT, True

    if isinstance(exc, (ConnectionError, OSError)):
        return "CONNECTION_ERROR", ErrorCategory.RETRYABLE, True

    if isinstance(exc, json.JSONDecodeError):
        return "JSON_PARSE_ERROR", ErrorCategory.VALIDATION, False

    if isinstance(exc, (ValueError, TypeError, KeyError)):
        return "INVALID_VALUE", ErrorCategory.VALIDATION, False

    exc_str = str(exc).lower()
    if "timeout" in exc_str or "timed out" in exc_str:
        return "TIMEOUT", ErrorCategory.TIMEOUT, True

    if "connection" in exc_str or "network" in exc_str:
        return "CONNECTION_ERROR", ErrorCategory.RETRYABLE, True

    return "INTERNAL_ERROR", ErrorCategory.FATAL, False
