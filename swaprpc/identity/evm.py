"""secp256k1 identity and challenge signing for the authentication handshake."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from Crypto.Hash import keccak
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import ec, utils
from cryptography.hazmat.primitives.serialization import Encoding, PublicFormat

SECP256K1_N = int(
    "FFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFEBAAEDCE6AF48A03BBFD25E8CD0364141",
    16,
)


@dataclass(frozen=True)
class EvmIdentity:
    private_key_hex: str
    address: str


def normalize_private_key(value: str) -> str:
    key = value.strip()
    if key.startswith(("0x", "0X")):
        key = key[2:]
    if len(key) != 64:
        raise ValueError("Invalid private key length, expected 32-byte hex")
    key_int = int(key, 16)
    if not (0 < key_int < SECP256K1_N):
        raise ValueError("Invalid private key range for secp256k1")
    return key.lower()


def keccak256(data: bytes) -> bytes:
    h = keccak.new(digest_bits=256)
    h.update(data)
    return h.digest()


def _private_key(private_key_hex: str) -> ec.EllipticCurvePrivateKey:
    return ec.derive_private_key(int(private_key_hex, 16), ec.SECP256K1())


def identity_from_private_key(private_key_hex: str) -> EvmIdentity:
    key = normalize_private_key(private_key_hex)
    uncompressed = _private_key(key).public_key().public_bytes(Encoding.X962, PublicFormat.UncompressedPoint)
    # Address is the last 20 bytes of keccak(pubkey without the 0x04 prefix)
    return EvmIdentity(private_key_hex=key, address=f"0x{keccak256(uncompressed[1:])[-20:].hex()}")


def load_private_key(path: Path) -> str:
    """Read a hex private key file (``~`` is expanded)."""
    path = Path(path).expanduser()
    if not path.exists():
        raise FileNotFoundError(f"Private key file not found: {path}")
    return normalize_private_key(path.read_text(encoding="utf-8"))


def personal_message_hash(message: str) -> bytes:
    msg = message.encode("utf-8")
    return keccak256(f"\x19Ethereum Signed Message:\n{len(msg)}".encode("utf-8") + msg)


def sign_challenge(private_key_hex: str, challenge: str) -> str:
    """
    Sign challenge with secp256k1 key and return compact r||s hex.

    Signs the Ethereum prefixed message hash; the recovery id (v) is not included.
    """
    key = normalize_private_key(private_key_hex)
    signature_der = _private_key(key).sign(
        personal_message_hash(challenge),
        ec.ECDSA(utils.Prehashed(hashes.SHA256())),
    )
    r, s = utils.decode_dss_signature(signature_der)
    return f"0x{r:064x}{s:064x}"


class EvmSigner:
    """Async signer capability handed to a Messenger."""

    def __init__(self, private_key_hex: str):
        self.identity = identity_from_private_key(private_key_hex)

    @classmethod
    def from_file(cls, path: Path | str) -> "EvmSigner":
        return cls(load_private_key(Path(path)))

    @property
    def address(self) -> str:
        return self.identity.address

    async def __call__(self, challenge: str) -> str:
        return sign_challenge(self.identity.private_key_hex, challenge)
