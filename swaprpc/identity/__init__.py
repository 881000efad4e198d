"""Identity helpers."""

from swaprpc.identity.evm import (
    EvmIdentity,
    EvmSigner,
    identity_from_private_key,
    load_private_key,
    sign_challenge,
)

__all__ = [
    "EvmIdentity",
    "EvmSigner",
    "identity_from_private_key",
    "load_private_key",
    "sign_challenge",
]
