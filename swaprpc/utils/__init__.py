"""Utility functions for swaprpc."""

from swaprpc.utils.helpers import ensure_dir
from swaprpc.utils.exceptions import (
    SwapRpcError,
    ValidationError,
    BadArgumentsError,
    AuthorizationError,
    TransportError,
    MessengerError,
    RpcCallError,
    RpcTimeoutError,
    ErrorCategory,
    TIMEOUT_ERROR_CODE,
    classify_exception,
    sanitize_error_message,
)

__all__ = [
    "ensure_dir",
    "SwapRpcError",
    "ValidationError",
    "BadArgumentsError",
    "AuthorizationError",
    "TransportError",
    "MessengerError",
    "RpcCallError",
    "RpcTimeoutError",
    "ErrorCategory",
    "TIMEOUT_ERROR_CODE",
    "classify_exception",
    "sanitize_error_message",
]
