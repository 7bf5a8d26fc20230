"""DID and handle validation."""

from __future__ import annotations

import re

DID_PREFIX = "did:"

# did:<method>:<method-specific-id>
_DID_RE = re.compile(r"^did:[a-z0-9]+:[a-zA-Z0-9._:%-]*[a-zA-Z0-9._-]$")
_HANDLE_RE = re.compile(r"^[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$")


def is_did(identifier: str) -> bool:
    """True if ``identifier`` is written as a DID (``did:`` prefix)."""
    return isinstance(identifier, str) and identifier.startswith(DID_PREFIX)


def is_well_formed_did(did: str) -> bool:
    """Stricter syntax check than :func:`is_did`: method and identifier present."""
    return isinstance(did, str) and bool(_DID_RE.match(did))


def normalize_handle(handle: str) -> str:
    """Lowercase and drop a leading ``@`` (``@Alice.bsky.social`` -> ``alice.bsky.social``)."""
    return handle.strip().lstrip("@").lower()


def is_valid_handle(handle: str) -> bool:
    return isinstance(handle, str) and bool(_HANDLE_RE.match(normalize_handle(handle)))


def is_valid_identifier(identifier: str) -> bool:
    """True for a DID or a plausible handle (``user.bsky.social``)."""
    if not isinstance(identifier, str):
        return False
    identifier = identifier.strip()
    if is_did(identifier):
        return True
    return is_valid_handle(identifier)
