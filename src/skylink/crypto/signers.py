# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Skylink Contributors

"""Signer capability.

Two variants share one shape (``get_public_identifier()``, ``sign(bytes)``,
``public_key``, ``key_type``) without a common base class:

- :class:`RawKeySigner` holds a private key in process.
- :class:`PasskeySigner` delegates to an external authenticator
  (WebAuthn-style, P-256) and never sees the private key.

Code that accepts "a signer" is typed against :data:`Signer`.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Union

from ..core.exceptions import SigningError
from . import signatures
from .secret_store import SecretStore
from .signatures import KeyType, PrivateKey

logger = logging.getLogger(__name__)

INSTALLATION_KEY_SECRET = "installation_private_key"


@dataclass(frozen=True)
class PublicIdentifier:
    """How a signer is named to the messaging network."""

    identifier: str
    kind: str


# ---------------------------------------------------------------------------
# Raw key variant
# ---------------------------------------------------------------------------


class RawKeySigner:
    """Signer backed by an in-process ``cryptography`` private key."""

    def __init__(self, private_key: PrivateKey) -> None:
        self._private_key = private_key
        self.key_type: KeyType = signatures.key_type_of(private_key)
        self.public_key: bytes = signatures.public_key_bytes(private_key)

    @classmethod
    def generate(cls, key_type: KeyType = KeyType.ED25519) -> RawKeySigner:
        return cls(signatures.generate_private_key(key_type))

    def get_public_identifier(self) -> PublicIdentifier:
        return PublicIdentifier(identifier=self.public_key.hex(), kind=self.key_type.value)

    async def sign(self, message: bytes) -> bytes:
        return signatures.sign(self._private_key, message)

    def export_secret(self) -> str:
        """``<key_type>:<hex>`` form stored in a :class:`SecretStore`."""
        return f"{self.key_type.value}:{signatures.private_key_to_bytes(self._private_key).hex()}"

    @classmethod
    def from_secret(cls, secret: str) -> RawKeySigner:
        """Restore from :meth:`export_secret` output.

        Raises:
            ValueError: If the secret is not in ``<key_type>:<hex>`` form.
        """
        key_type, sep, hex_key = secret.partition(":")
        if not sep:
            raise ValueError("Stored key must be '<key_type>:<hex>'")
        return cls(signatures.private_key_from_bytes(bytes.fromhex(hex_key), KeyType(key_type)))

    def __repr__(self) -> str:
        return f"RawKeySigner(key_type={self.key_type.value!r}, public_key={self.public_key.hex()[:16]}...)"


# ---------------------------------------------------------------------------
# Passkey variant
# ---------------------------------------------------------------------------


Authenticator = Callable[[bytes], Awaitable[bytes]]


class PasskeySigner:
    """Signer whose key lives in an external authenticator.

    Args:
        credential_id: The authenticator's credential identifier.
        public_key: SEC1-encoded P-256 public key registered for the credential.
        authenticator: Coroutine function that signs a challenge and returns a
            DER ECDSA/SHA-256 signature.
    """

    key_type: KeyType = KeyType.P256

    def __init__(self, credential_id: str, public_key: bytes, authenticator: Authenticator) -> None:
        self.credential_id = credential_id
        self.public_key = public_key
        self._authenticator = authenticator

    def get_public_identifier(self) -> PublicIdentifier:
        return PublicIdentifier(identifier=self.credential_id, kind="passkey")

    async def sign(self, message: bytes) -> bytes:
        try:
            signature = await self._authenticator(message)
        except SigningError:
            raise
        except Exception as e:
            raise SigningError(f"Authenticator failed for credential {self.credential_id}: {e}") from e
        if not isinstance(signature, (bytes, bytearray)) or not signature:
            raise SigningError(f"Authenticator returned no signature for credential {self.credential_id}")
        return bytes(signature)

    def __repr__(self) -> str:
        return f"PasskeySigner(credential_id={self.credential_id!r})"


Signer = Union[RawKeySigner, PasskeySigner]


# ---------------------------------------------------------------------------
# Persistence
# ---------------------------------------------------------------------------


def load_or_create_signer(
    store: SecretStore,
    key_type: KeyType = KeyType.ED25519,
) -> tuple[RawKeySigner, bool]:
    """Load the installation key from ``store``, creating one if absent.

    Returns:
        Tuple of (signer, is_new).
    """
    secret = store.get(INSTALLATION_KEY_SECRET)
    if secret is not None:
        return RawKeySigner.from_secret(secret), False

    signer = RawKeySigner.generate(key_type)
    store.put(INSTALLATION_KEY_SECRET, signer.export_secret())
    logger.info(f"Created new {key_type.value} installation key")
    return signer, True
