import json

import pytest

from conftest import settle
from swaprpc.messaging.correlator import CallCorrelator
from swaprpc.messaging.dispatcher import InboundDispatcher


def _envelope(message, sender="0xpeer"):
    return json.dumps({"sender": sender, "receiver": "0xme", "message": json.dumps(message), "id": "e1"})


@pytest.mark.asyncio
async def test_peer_call_reaches_handler_with_parsed_message():
    seen = []
    dispatcher = InboundDispatcher(CallCorrelator(timeout=5), {"ping": seen.append})
    dispatcher.dispatch(_envelope({"jsonrpc": "2.0", "method": "ping", "params": {"n": 1}, "id": "p1"}))
    assert seen == [{"jsonrpc": "2.0", "method": "ping", "params": {"n": 1}, "id": "p1"}]


@pytest.mark.asyncio
async def test_async_handler_is_scheduled():
    seen = []

    async def _handler(message):
        seen.append(message["id"])

    dispatcher = InboundDispatcher(CallCorrelator(timeout=5), {"getOrder": _handler})
    dispatcher.dispatch(_envelope({"method": "getOrder", "id": "o1"}))
    await settle()
    assert seen == ["o1"]


@pytest.mark.asyncio
async def test_unknown_method_is_ignored():
    correlator = CallCorrelator(timeout=5)
    results = []
    correlator.register("x", results.append)
    dispatcher = InboundDispatcher(correlator, {"ping": results.append})
    # A method call is never treated as a response, even when its id is pending.
    dispatcher.dispatch(_envelope({"method": "unknown", "id": "x"}))
    assert results == []
    assert "x" in correlator
    correlator.cancel_all()


@pytest.mark.asyncio
async def test_response_is_routed_to_correlator():
    correlator = CallCorrelator(timeout=5)
    results = []
    correlator.register("abc", results.append)
    dispatcher = InboundDispatcher(correlator)
    dispatcher.dispatch(_envelope({"id": "abc", "result": [1, 2]}))
    assert results == [[1, 2]]


@pytest.mark.asyncio
async def test_malformed_payloads_are_dropped():
    dispatcher = InboundDispatcher(CallCorrelator(timeout=5), {"ping": lambda m: None})
    dispatcher.dispatch("not json at all")
    dispatcher.dispatch(json.dumps({"sender": "0xa", "receiver": "0xb", "message": "{oops"}))
    dispatcher.dispatch(_envelope({"jsonrpc": "2.0"}))


@pytest.mark.asyncio
async def test_handler_errors_are_contained():
    def _boom(message):
        raise RuntimeError("bug")

    async def _async_boom(message):
        raise RuntimeError("async bug")

    dispatcher = InboundDispatcher(CallCorrelator(timeout=5), {"a": _boom, "b": _async_boom})
    dispatcher.dispatch(_envelope({"method": "a", "id": "1"}))
    dispatcher.dispatch(_envelope({"method": "b", "id": "2"}))
    await settle()
    assert dispatcher.methods == ["a", "b"]
