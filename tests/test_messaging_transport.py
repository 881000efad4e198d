import pytest

from swaprpc.messaging.transport import WebSocketTransport
from swaprpc.utils.exceptions import TransportError


def test_websocket_transport_leaves_pings_to_lifecycle():
    transport = WebSocketTransport()
    assert transport.supports_heartbeat is True
    assert transport._connect_kwargs["ping_interval"] is None
    assert not transport.is_open


@pytest.mark.asyncio
async def test_unopened_transport_raises_transport_error():
    transport = WebSocketTransport()
    with pytest.raises(TransportError):
        await transport.send("hello")
    with pytest.raises(TransportError):
        await transport.ping(lambda: None)
    with pytest.raises(TransportError):
        async for _ in transport.messages():
            pass
    await transport.close()


@pytest.mark.asyncio
async def test_open_failure_maps_to_transport_error():
    transport = WebSocketTransport(open_timeout=2)
    with pytest.raises(TransportError) as exc_info:
        await transport.open("ws://127.0.0.1:9/websocket")
    assert exc_info.value.details["url"] == "ws://127.0.0.1:9/websocket"
