"""Peer-to-peer JSON-RPC messaging over an authenticated websocket."""

from swaprpc.messaging.auth import AUTH_OK, AUTH_REJECTED, AuthState, ChallengeAuthenticator
from swaprpc.messaging.client import Messenger, build_socket_url, decode_signature_v
from swaprpc.messaging.correlator import DEFAULT_CALL_TIMEOUT, CallCorrelator, PendingCall
from swaprpc.messaging.dispatcher import InboundDispatcher
from swaprpc.messaging.lifecycle import Connection, ConnectionLifecycle
from swaprpc.messaging.protocol import (
    Envelope,
    RpcRequest,
    RpcResponse,
    decode_envelope,
    encode_envelope,
    make_rpc,
)
from swaprpc.messaging.transport import Transport, WebSocketTransport

__all__ = [
    "AUTH_OK",
    "AUTH_REJECTED",
    "AuthState",
    "ChallengeAuthenticator",
    "Messenger",
    "build_socket_url",
    "decode_signature_v",
    "DEFAULT_CALL_TIMEOUT",
    "CallCorrelator",
    "PendingCall",
    "InboundDispatcher",
    "Connection",
    "ConnectionLifecycle",
    "Envelope",
    "RpcRequest",
    "RpcResponse",
    "decode_envelope",
    "encode_envelope",
    "make_rpc",
    "Transport",
    "WebSocketTransport",
]
