import pytest
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.hazmat.primitives.asymmetric.utils import Prehashed, encode_dss_signature

from swaprpc.identity.evm import (
    EvmSigner,
    identity_from_private_key,
    keccak256,
    load_private_key,
    normalize_private_key,
    personal_message_hash,
    sign_challenge,
)

PRIVATE_KEY = "0x4c0883a69102937d6231471b5dbb6204fe5129617082792ae468d01a3f362318"
ADDRESS = "0x2c7536e3605d9c16a7a3d7b1898e529396a65c23"


def test_keccak256_empty_input():
    assert keccak256(b"").hex() == "c5d2460186f7233c927e7db2dcc703c0e500b653ca82273b7bfad8045d85a470"


def test_identity_address_from_known_key():
    identity = identity_from_private_key(PRIVATE_KEY)
    assert identity.address == ADDRESS
    assert identity.private_key_hex == PRIVATE_KEY[2:]


@pytest.mark.parametrize("value", ["0x1234", "00" * 32, "ff" * 32])
def test_normalize_private_key_rejects_bad_keys(value):
    with pytest.raises(ValueError):
        normalize_private_key(value)


def test_sign_challenge_verifies_against_public_key():
    signature = sign_challenge(PRIVATE_KEY, "challenge-123")
    assert signature.startswith("0x")
    assert len(signature) == 2 + 128
    r = int(signature[2:66], 16)
    s = int(signature[66:], 16)

    public_key = ec.derive_private_key(int(PRIVATE_KEY, 16), ec.SECP256K1()).public_key()
    public_key.verify(
        encode_dss_signature(r, s),
        personal_message_hash("challenge-123"),
        ec.ECDSA(Prehashed(hashes.SHA256())),
    )


def test_load_private_key_from_file(tmp_path):
    key_file = tmp_path / "key"
    key_file.write_text(PRIVATE_KEY + "\n", encoding="utf-8")
    assert load_private_key(key_file) == PRIVATE_KEY[2:]


def test_load_private_key_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_private_key(tmp_path / "missing")


@pytest.mark.asyncio
async def test_evm_signer_is_an_async_signer(tmp_path):
    key_file = tmp_path / "key"
    key_file.write_text(PRIVATE_KEY, encoding="utf-8")
    signer = EvmSigner.from_file(str(key_file))
    assert signer.address == ADDRESS
    signature = await signer("abc")
    assert len(signature) == 130
