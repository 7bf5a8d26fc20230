# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Skylink Contributors

"""Signature primitive: sign bytes, verify bytes, agnostic of key type.

Key types:
- ``ed25519``: raw 32-byte public key, 64-byte signature (installation keys)
- ``p256``: SEC1-encoded public point, DER ECDSA/SHA-256 signature
  (WebAuthn / passkey derived keys)
- ``secp256k1``: SEC1-encoded public point, DER ECDSA/SHA-256 signature
  (wallet keys)

The association message is always the raw UTF-8 bytes of the DID string,
never a prefixed or wrapped form. See :func:`did_message`.
"""

from __future__ import annotations

import base64
import binascii
import enum
from typing import Union

from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.hazmat.primitives.asymmetric.ed25519 import (
    Ed25519PrivateKey,
    Ed25519PublicKey,
)
from cryptography.hazmat.primitives.serialization import (
    Encoding,
    NoEncryption,
    PrivateFormat,
    PublicFormat,
)

from ..core.exceptions import SigningError

PrivateKey = Union[Ed25519PrivateKey, ec.EllipticCurvePrivateKey]

ED25519_PUBLIC_KEY_LENGTH = 32
ED25519_SIGNATURE_LENGTH = 64


class KeyType(enum.StrEnum):
    """Signature scheme of a public key."""

    ED25519 = "ed25519"
    P256 = "p256"
    SECP256K1 = "secp256k1"


_CURVES: dict[KeyType, type[ec.EllipticCurve]] = {
    KeyType.P256: ec.SECP256R1,
    KeyType.SECP256K1: ec.SECP256K1,
}


# =============================================================================
# MESSAGE + ENCODING HELPERS
# =============================================================================


def did_message(did: str) -> bytes:
    """The exact bytes an installation signs to claim ``did``."""
    return did.encode("utf-8")


def encode_signature(signature: bytes) -> str:
    """Standard base64 with padding (the record wire form)."""
    return base64.b64encode(signature).decode("ascii")


def decode_signature(value: str) -> bytes:
    """Decode a base64 signature strictly.

    Raises:
        ValueError: If ``value`` is not valid base64.
    """
    try:
        return base64.b64decode(value, validate=True)
    except (binascii.Error, ValueError, TypeError) as e:
        raise ValueError(f"Invalid base64 signature: {e}") from e


# =============================================================================
# KEYS
# =============================================================================


def generate_private_key(key_type: KeyType = KeyType.ED25519) -> PrivateKey:
    """Generate a fresh private key of ``key_type``."""
    if key_type == KeyType.ED25519:
        return Ed25519PrivateKey.generate()
    return ec.generate_private_key(_CURVES[key_type]())


def key_type_of(private_key: PrivateKey) -> KeyType:
    """Work out the :class:`KeyType` of a private key object.

    Raises:
        SigningError: For unsupported key objects or curves.
    """
    if isinstance(private_key, Ed25519PrivateKey):
        return KeyType.ED25519
    if isinstance(private_key, ec.EllipticCurvePrivateKey):
        for key_type, curve in _CURVES.items():
            if isinstance(private_key.curve, curve):
                return key_type
        raise SigningError(f"Unsupported curve: {private_key.curve.name}")
    raise SigningError(f"Unsupported private key type: {type(private_key).__name__}")


def public_key_bytes(private_key: PrivateKey) -> bytes:
    """Public key in its wire form (raw for Ed25519, compressed SEC1 for EC)."""
    key_type = key_type_of(private_key)
    if key_type == KeyType.ED25519:
        return private_key.public_key().public_bytes(Encoding.Raw, PublicFormat.Raw)
    return private_key.public_key().public_bytes(Encoding.X962, PublicFormat.CompressedPoint)


def private_key_to_bytes(private_key: PrivateKey) -> bytes:
    """Serialize a private key for a :class:`~skylink.crypto.secret_store.SecretStore`.

    Ed25519 keys are the raw 32-byte seed, EC keys the 32-byte big-endian scalar.
    """
    key_type = key_type_of(private_key)
    if key_type == KeyType.ED25519:
        return private_key.private_bytes(Encoding.Raw, PrivateFormat.Raw, NoEncryption())
    return private_key.private_numbers().private_value.to_bytes(32, "big")


def private_key_from_bytes(data: bytes, key_type: KeyType = KeyType.ED25519) -> PrivateKey:
    """Inverse of :func:`private_key_to_bytes`.

    Raises:
        ValueError: If ``data`` is not a valid key for ``key_type``.
    """
    key_type = KeyType(key_type)
    if key_type == KeyType.ED25519:
        return Ed25519PrivateKey.from_private_bytes(data)
    if len(data) != 32:
        raise ValueError(f"EC private key must be 32 bytes, got {len(data)}")
    return ec.derive_private_key(int.from_bytes(data, "big"), _CURVES[key_type]())


# =============================================================================
# SIGN / VERIFY
# =============================================================================


def sign(private_key: PrivateKey, message: bytes) -> bytes:
    """Sign the exact bytes of ``message``.

    Ed25519 signatures are deterministic; ECDSA signatures are randomized
    and DER encoded.

    Raises:
        SigningError: If the key object is not supported.
    """
    key_type = key_type_of(private_key)
    if key_type == KeyType.ED25519:
        return private_key.sign(message)
    return private_key.sign(message, ec.ECDSA(hashes.SHA256()))


def verify(
    public_key: bytes,
    message: bytes,
    signature: bytes,
    key_type: KeyType | str = KeyType.ED25519,
) -> bool:
    """Verify ``signature`` over ``message`` against ``public_key``.

    Never raises: wrong lengths, invalid points, undecodable signatures,
    unknown key types and non-bytes arguments all return False so callers
    can iterate safely over untrusted candidates.
    """
    if not all(isinstance(v, (bytes, bytearray)) for v in (public_key, message, signature)):
        return False
    try:
        key_type = KeyType(key_type)
        if key_type == KeyType.ED25519:
            if len(public_key) != ED25519_PUBLIC_KEY_LENGTH or len(signature) != ED25519_SIGNATURE_LENGTH:
                return False
            Ed25519PublicKey.from_public_bytes(bytes(public_key)).verify(bytes(signature), bytes(message))
            return True
        ec_key = ec.EllipticCurvePublicKey.from_encoded_point(_CURVES[key_type](), bytes(public_key))
        ec_key.verify(bytes(signature), bytes(message), ec.ECDSA(hashes.SHA256()))
        return True
    except Exception:
        return False
