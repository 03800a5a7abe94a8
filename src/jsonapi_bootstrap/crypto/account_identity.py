"""Deterministic account identifier derivation.

Account id format:
- base58(version_byte || ed25519_public_key || crc16_xmodem_le)
where the version byte is 0x5b.

Key derivation follows SLIP-0010 for ed25519 (hardened children only):
- mnemonic -> BIP-39 seed -> m/44'/2046'/<index>'  (account node)
- account node -> hardened child 0'                (identity key)
An account key is the base64 serialization of the account node
(32-byte private key followed by its 32-byte chain code).
"""

from __future__ import annotations

import base64
import binascii
import struct
import unicodedata
from dataclasses import dataclass

import base58
from cryptography.hazmat.primitives import hashes, hmac
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC
from cryptography.hazmat.primitives.serialization import Encoding, PublicFormat

from jsonapi_bootstrap.errors import DerivationError

ACCOUNT_VERSION_BYTE = 0x5B
PURPOSE = 44
COIN_TYPE = 2046
HARDENED_OFFSET = 0x80000000
MNEMONIC_WORD_COUNTS = (12, 15, 18, 21, 24)
SEED_ITERATIONS = 2048


@dataclass(frozen=True)
class DerivationNode:
    key: bytes
    chain_code: bytes

    def child(self, index: int) -> "DerivationNode":
        data = b"\x00" + self.key + struct.pack(">I", index + HARDENED_OFFSET)
        digest = _hmac_sha512(self.chain_code, data)
        return DerivationNode(key=digest[:32], chain_code=digest[32:])

    def serialize(self) -> bytes:
        return self.key + self.chain_code

    @property
    def public_key_bytes(self) -> bytes:
        private = Ed25519PrivateKey.from_private_bytes(self.key)
        return private.public_key().public_bytes(Encoding.Raw, PublicFormat.Raw)


def _hmac_sha512(key: bytes, data: bytes) -> bytes:
    mac = hmac.HMAC(key, hashes.SHA512())
    mac.update(data)
    return mac.finalize()


def mnemonic_to_seed(mnemonic: str, passphrase: str = "") -> bytes:
    words = unicodedata.normalize("NFKD", mnemonic).split()
    if len(words) not in MNEMONIC_WORD_COUNTS:
        raise DerivationError(
            f"mnemonic must have 12, 15, 18, 21 or 24 words (got {len(words)})"
        )
    salt = unicodedata.normalize("NFKD", "mnemonic" + passphrase).encode("utf-8")
    kdf = PBKDF2HMAC(
        algorithm=hashes.SHA512(),
        length=64,
        salt=salt,
        iterations=SEED_ITERATIONS,
    )
    return kdf.derive(" ".join(words).encode("utf-8"))


def master_node(seed: bytes) -> DerivationNode:
    digest = _hmac_sha512(b"ed25519 seed", seed)
    return DerivationNode(key=digest[:32], chain_code=digest[32:])


def account_node_from_mnemonic(mnemonic: str, index: int = 0) -> DerivationNode:
    node = master_node(mnemonic_to_seed(mnemonic))
    for step in (PURPOSE, COIN_TYPE, index):
        node = node.child(step)
    return node


def account_node_from_key(account_key_b64: str) -> DerivationNode:
    try:
        raw = base64.b64decode(account_key_b64.strip(), validate=True)
    except (binascii.Error, ValueError) as exc:
        raise DerivationError("account key must be valid base64") from exc
    if len(raw) != 64:
        raise DerivationError("account key must decode to 64 bytes")
    return DerivationNode(key=raw[:32], chain_code=raw[32:])


def encode_account_id(public_key_bytes: bytes) -> str:
    if len(public_key_bytes) != 32:
        raise DerivationError("ed25519 public key must be 32 bytes")
    payload = bytes([ACCOUNT_VERSION_BYTE]) + public_key_bytes
    checksum = struct.pack("<H", binascii.crc_hqx(payload, 0))
    return base58.b58encode(payload + checksum).decode("ascii")


def derive_account_id(account_node: DerivationNode) -> str:
    return encode_account_id(account_node.child(0).public_key_bytes)
