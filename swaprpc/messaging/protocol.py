"""Wire formats: JSON-RPC 2.0 messages and the addressed envelope that carries them."""

from __future__ import annotations

import json
import uuid
from typing import Any, Mapping

from pydantic import BaseModel, Field

JSONRPC_VERSION = "2.0"


def new_id() -> str:
    """Process-unique id used for RPC calls and envelopes."""
    return str(uuid.uuid4())


class RpcRequest(BaseModel):
    """JSON-RPC request, also used for peer-initiated calls."""
    jsonrpc: str = JSONRPC_VERSION
    method: str
    params: dict[str, Any] = Field(default_factory=dict)
    id: str = Field(default_factory=new_id)


class RpcResponse(BaseModel):
    """JSON-RPC response; ``error`` wins over ``result`` when both are present."""
    id: str | int
    result: Any = None
    error: Any = None

    @property
    def is_error(self) -> bool:
        return "error" in self.model_fields_set

    @property
    def has_result(self) -> bool:
        return "result" in self.model_fields_set


class Envelope(BaseModel):
    """Addressed wrapper; ``message`` is the JSON-encoded RPC message."""
    sender: str
    receiver: str
    message: str
    # Transport-level id. Generated per send, not read back by peers.
    id: str = Field(default_factory=new_id)


def make_rpc(method: str, params: Mapping[str, Any] | None = None, id: str | None = None) -> RpcRequest:
    """Prepare a formatted query to be submitted as a JSON-RPC call."""
    if id is None:
        return RpcRequest(method=method, params=dict(params or {}))
    return RpcRequest(method=method, params=dict(params or {}), id=id)


def coerce_request(message: RpcRequest | Mapping[str, Any]) -> dict[str, Any]:
    """Return the wire dict for ``message``; mappings must carry an ``id``."""
    if isinstance(message, RpcRequest):
        return message.model_dump()
    data = dict(message)
    if not data.get("id"):
        raise ValueError("RPC message has no id")
    return data


def encode_envelope(sender: str, receiver: str, message: RpcRequest | Mapping[str, Any]) -> str:
    """Serialize ``message`` into an envelope string ready for the socket."""
    envelope = Envelope(
        sender=sender.lower(),
        receiver=receiver,
        message=json.dumps(coerce_request(message)),
    )
    return envelope.model_dump_json()


def decode_envelope(raw: str | bytes) -> tuple[Envelope, dict[str, Any]]:
    """Parse the outer envelope and the nested RPC message.

    Raises ``ValueError`` (including ``json.JSONDecodeError`` and pydantic's
    ``ValidationError``) when either layer is malformed.
    """
    payload = json.loads(raw)
    if not isinstance(payload, dict):
        raise ValueError("envelope is not a JSON object")
    envelope = Envelope.model_validate(
        {
            "sender": payload.get("sender") or "",
            "receiver": payload.get("receiver") or "",
            "message": payload.get("message") or "",
            "id": payload.get("id") or new_id(),
        }
    )
    if not envelope.message:
        raise ValueError("envelope has no message")
    message = json.loads(envelope.message)
    if not isinstance(message, dict):
        raise ValueError("RPC message is not a JSON object")
    return envelope, message
