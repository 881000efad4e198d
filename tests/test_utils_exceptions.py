"""Tests for swaprpc.utils.exceptions module."""

from __future__ import annotations

import asyncio
import json

from swaprpc.utils.exceptions import (
    TIMEOUT_ERROR_CODE,
    AuthorizationError,
    BadArgumentsError,
    ErrorCategory,
    MessengerError,
    RpcCallError,
    RpcTimeoutError,
    SwapRpcError,
    TransportError,
    ValidationError,
    classify_exception,
    sanitize_error_message,
)


class TestExceptionClasses:
    """Test custom exception classes."""

    def test_swaprpc_error_to_dict(self) -> None:
        exc = SwapRpcError("test message", code="TEST_CODE")
        assert exc.to_dict() == {
            "error": "TEST_CODE",
            "message": "test message",
            "category": ErrorCategory.FATAL.value,
            "details": {},
        }
        assert str(exc) == "[TEST_CODE] test message"

    def test_validation_error_with_field(self) -> None:
        exc = ValidationError("Invalid input", field="makerToken")
        assert exc.code == "VALIDATION_ERROR"
        assert exc.category == ErrorCategory.VALIDATION
        assert exc.details == {"field": "makerToken"}

    def test_bad_arguments_names_the_method(self) -> None:
        exc = BadArgumentsError("getMaxQuote", "makerToken and takerToken are required")
        assert isinstance(exc, ValidationError)
        assert exc.message == "bad arguments passed to getMaxQuote: makerToken and takerToken are required"
        assert exc.details["method"] == "getMaxQuote"

    def test_bad_arguments_without_reason(self) -> None:
        assert BadArgumentsError("getOrders").message == "bad arguments passed to getOrders"

    def test_authorization_error(self) -> None:
        exc = AuthorizationError(address="0xabc")
        assert exc.code == "NOT_AUTHORIZED"
        assert exc.category == ErrorCategory.PERMISSION
        assert exc.details == {"address": "0xabc"}

    def test_transport_error_is_retryable(self) -> None:
        exc = TransportError("boom", url="wss://relay.example.test/websocket")
        assert exc.category == ErrorCategory.RETRYABLE
        assert exc.details["url"] == "wss://relay.example.test/websocket"

    def test_messenger_error(self) -> None:
        assert MessengerError("Not connected").code == "MESSENGER_STATE"

    def test_rpc_call_error_keeps_payload(self) -> None:
        payload = {"message": "no liquidity", "code": -32000}
        exc = RpcCallError(payload, call_id="abc")
        assert exc.error is payload
        assert exc.rpc_code == -32000
        assert exc.message == "no liquidity"
        assert exc.call_id == "abc"

    def test_rpc_call_error_non_dict_payload(self) -> None:
        exc = RpcCallError("nope")
        assert exc.message == "nope"
        assert exc.rpc_code is None

    def test_timeout_error_payload(self) -> None:
        exc = RpcTimeoutError("abc", 12.0)
        assert isinstance(exc, RpcCallError)
        assert exc.error == {"message": "Request timed out. [abc]", "code": TIMEOUT_ERROR_CODE}
        assert exc.code == "TIMEOUT"
        assert exc.category == ErrorCategory.TIMEOUT
        assert exc.details["timeout_seconds"] == 12.0


class TestSanitizeErrorMessage:
    def test_redacts_private_key_assignment(self) -> None:
        result = sanitize_error_message("private_key=deadbeef failed")
        assert "deadbeef" not in result
        assert "[REDACTED]" in result

    def test_redacts_raw_hex_key(self) -> None:
        key = "4c0883a69102937d6231471b5dbb6204fe5129617082792ae468d01a3f362318"
        assert key not in sanitize_error_message(f"cannot sign with 0x{key}")

    def test_leaves_addresses_alone(self) -> None:
        message = "address 0x2c7536e3605d9c16a7a3d7b1898e529396a65c23 rejected"
        assert sanitize_error_message(message) == message


class TestClassifyException:
    def test_swaprpc_error(self) -> None:
        assert classify_exception(TransportError("x")) == ("TRANSPORT_ERROR", ErrorCategory.RETRYABLE, True)
        assert classify_exception(MessengerError("x")) == ("MESSENGER_STATE", ErrorCategory.FATAL, False)

    def test_asyncio_timeout(self) -> None:
        assert classify_exception(asyncio.TimeoutError()) == ("TIMEOUT", ErrorCategory.TIMEOUT, True)

    def test_connection_error(self) -> None:
        assert classify_exception(ConnectionResetError()) == ("CONNECTION_ERROR", ErrorCategory.RETRYABLE, True)

    def test_json_error_before_value_error(self) -> None:
        try:
            json.loads("{")
        except json.JSONDecodeError as e:
            assert classify_exception(e)[0] == "JSON_PARSE_ERROR"

    def test_value_error(self) -> None:
        assert classify_exception(ValueError("bad")) == ("INVALID_VALUE", ErrorCategory.VALIDATION, False)

    def test_message_heuristics(self) -> None:
        assert classify_exception(RuntimeError("read timed out"))[1] == ErrorCategory.TIMEOUT
        assert classify_exception(RuntimeError("network unreachable"))[1] == ErrorCategory.RETRYABLE
        assert classify_exception(RuntimeError("weird")) == ("INTERNAL_ERROR", ErrorCategory.FATAL, False)
