"""Cryptographic capabilities: signature primitive, signers, secret storage."""

from .secret_store import FileSecretStore, InMemorySecretStore, SecretStore
from .signatures import KeyType, did_message, sign, verify
from .signers import PasskeySigner, PublicIdentifier, RawKeySigner, Signer, load_or_create_signer

__all__ = [
    "KeyType",
    "did_message",
    "sign",
    "verify",
    "Signer",
    "RawKeySigner",
    "PasskeySigner",
    "PublicIdentifier",
    "load_or_create_signer",
    "SecretStore",
    "InMemorySecretStore",
    "FileSecretStore",
]
