# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Skylink Contributors

"""AssociationRecord: one DID -> inbox ID claim.

The record lives at a single well-known slot in the DID owner's repository
(collection ``org.xmtp.inbox``, record key ``self``). Wire shape::

    {
        "$type": "org.xmtp.inbox",
        "id": "<inbox id>",
        "verificationSignature": "<base64 signature over utf8(did)>",
        "createdAt": "2024-01-01T00:00:00Z"
    }

``createdAt`` is kept at millisecond precision in UTC so that
``AssociationRecord.from_dict(record.to_dict()) == record`` holds exactly.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from ..core.exceptions import MalformedRecordError
from ..crypto.signatures import decode_signature, encode_signature

# Repository slot
ASSOCIATION_COLLECTION = "org.xmtp.inbox"
ASSOCIATION_RECORD_KEY = "self"


def _now() -> datetime:
    return datetime.now(UTC)


def normalize_timestamp(value: datetime) -> datetime:
    """UTC, millisecond precision. Naive datetimes are taken as UTC."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    value = value.astimezone(UTC)
    return value.replace(microsecond=(value.microsecond // 1000) * 1000)


def format_timestamp(value: datetime) -> str:
    """ISO-8601 with a ``Z`` suffix; milliseconds only when non-zero."""
    value = normalize_timestamp(value)
    # isoformat zero-pads the year; strftime("%Y") does not on every libc
    timespec = "milliseconds" if value.microsecond else "seconds"
    return value.replace(tzinfo=None).isoformat(timespec=timespec) + "Z"


def parse_timestamp(value: str) -> datetime:
    """Parse an ISO-8601 timestamp.

    Raises:
        ValueError: If ``value`` is not ISO-8601, or falls outside the
            representable range once moved to UTC.
    """
    try:
        return normalize_timestamp(datetime.fromisoformat(value.replace("Z", "+00:00")))
    except OverflowError as e:
        raise ValueError(f"timestamp out of range: {value}") from e


@dataclass
class AssociationRecord:
    """A DID owner's claim that ``inbox_id`` is theirs.

    Attributes:
        inbox_id: The messaging inbox ID.
        verification_signature: Installation signature over ``utf8(did)``.
        created_at: When the claim was made (UTC, millisecond precision).
    """

    inbox_id: str
    verification_signature: bytes
    created_at: datetime = field(default_factory=_now)

    def __post_init__(self) -> None:
        self.created_at = normalize_timestamp(self.created_at)

    @property
    def signature_b64(self) -> str:
        return encode_signature(self.verification_signature)

    def to_dict(self) -> dict[str, Any]:
        """Convert to the repository wire shape."""
        return {
            "$type": ASSOCIATION_COLLECTION,
            "id": self.inbox_id,
            "verificationSignature": self.signature_b64,
            "createdAt": format_timestamp(self.created_at),
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), separators=(",", ":"))

    @classmethod
    def from_dict(cls, data: Any) -> AssociationRecord:
        """Decode a record fetched from a repository.

        Raises:
            MalformedRecordError: If the value is not an object, or any field
                is missing, of the wrong type, or undecodable.
        """
        if not isinstance(data, dict):
            raise MalformedRecordError(f"Record must be an object, got {type(data).__name__}")

        inbox_id = data.get("id")
        if not isinstance(inbox_id, str) or not inbox_id:
            raise MalformedRecordError("Record is missing 'id'", field="id")

        raw_signature = data.get("verificationSignature")
        if not isinstance(raw_signature, str) or not raw_signature:
            raise MalformedRecordError("Record is missing 'verificationSignature'", field="verificationSignature")
        try:
            signature = decode_signature(raw_signature)
        except ValueError as e:
            raise MalformedRecordError(str(e), field="verificationSignature") from e

        raw_created = data.get("createdAt")
        if not isinstance(raw_created, str) or not raw_created:
            raise MalformedRecordError("Record is missing 'createdAt'", field="createdAt")
        try:
            created_at = parse_timestamp(raw_created)
        except ValueError as e:
            raise MalformedRecordError(f"Invalid 'createdAt': {raw_created}", field="createdAt") from e

        return cls(inbox_id=inbox_id, verification_signature=signature, created_at=created_at)

    @classmethod
    def from_json(cls, text: str) -> AssociationRecord:
        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            raise MalformedRecordError(f"Record is not valid JSON: {e}") from e
        return cls.from_dict(data)


def encode_record(record: AssociationRecord) -> dict[str, Any]:
    return record.to_dict()


def decode_record(data: Any) -> AssociationRecord:
    return AssociationRecord.from_dict(data)
