# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Skylink Contributors

"""Exception hierarchy for Skylink.

Resolver and publisher errors reach the caller unchanged. The verifier is the
exception: it answers ``False`` for malformed third-party data and only raises
:class:`TransientIOError` when it cannot reach the messaging network.
"""

from __future__ import annotations

from typing import Any


class SkylinkException(Exception):  # noqa: N818
    """Base exception for all Skylink errors."""

    retryable: bool = False

    def __init__(self, message: str, details: dict | None = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "error": self.__class__.__name__,
            "message": self.message,
            "details": self.details,
            "retryable": self.retryable,
        }


class ValidationException(SkylinkException):
    """Caller supplied an invalid DID, handle, inbox ID or signature."""

    def __init__(self, message: str, field: str | None = None, value: Any = None):
        details = {}
        if field:
            details["field"] = field
        if value is not None:
            details["value"] = str(value)
        super().__init__(message, details)
        self.field = field
        self.value = value


class ConfigException(SkylinkException):
    """Exception for configuration errors.

    Raised when:
    - Required environment variables are missing
    - An optional collaborator (e.g. the inbox index) is not configured
    """

    def __init__(self, message: str, missing_vars: list[str] | None = None):
        details = {}
        if missing_vars:
            details["missing_vars"] = missing_vars
        super().__init__(message, details)
        self.missing_vars = missing_vars or []


class NotFoundError(SkylinkException):
    """The repository, handle or record slot does not exist.

    An expected outcome: the DID owner never linked, or unlinked.
    """

    def __init__(self, resource_type: str, resource_id: str):
        message = f"{resource_type} not found: {resource_id}"
        details = {
            "resource_type": resource_type,
            "resource_id": resource_id,
        }
        super().__init__(message, details)
        self.resource_type = resource_type
        self.resource_id = resource_id


class UnauthorizedError(SkylinkException):
    """The credential does not control the target DID's repository."""

    def __init__(self, message: str, did: str | None = None):
        details = {}
        if did:
            details["did"] = did
        super().__init__(message, details)
        self.did = did


class MalformedRecordError(SkylinkException):
    """A record exists but its fields are missing or undecodable."""

    def __init__(self, message: str, field: str | None = None):
        details = {}
        if field:
            details["field"] = field
        super().__init__(message, details)
        self.field = field


class TransientIOError(SkylinkException):
    """Network failure or timeout talking to an external service.

    Never retried internally; callers apply their own backoff.
    """

    retryable = True

    def __init__(self, message: str, service: str | None = None, status: int | None = None):
        details: dict[str, Any] = {}
        if service:
            details["service"] = service
        if status is not None:
            details["status"] = status
        super().__init__(message, details)
        self.service = service
        self.status = status


class VerificationFailedError(SkylinkException):
    """A well-formed record whose signature matches no active installation."""

    def __init__(self, did: str, inbox_id: str):
        super().__init__(
            f"Association {did} -> {inbox_id} failed verification",
            {"did": did, "inbox_id": inbox_id},
        )
        self.did = did
        self.inbox_id = inbox_id


class SigningError(SkylinkException):
    """A signer could not produce a signature."""
