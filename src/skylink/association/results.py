"""Lookup outcomes.

``Indexed`` is what an index or a bare record fetch claims; ``Verified`` is
what survived the verifier. Consumers branch on the type, never on a flag.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Union

from .record import AssociationRecord


@dataclass(frozen=True)
class Indexed:
    """An unconfirmed DID <-> inbox ID candidate."""

    did: str
    inbox_id: str

    @property
    def verified(self) -> bool:
        return False

    def to_dict(self) -> dict[str, Any]:
        return {"status": "indexed", "did": self.did, "inboxId": self.inbox_id}


@dataclass(frozen=True)
class Verified:
    """A DID <-> inbox ID association whose signature checked out."""

    did: str
    inbox_id: str
    record: AssociationRecord

    @property
    def verified(self) -> bool:
        return True

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": "verified",
            "did": self.did,
            "inboxId": self.inbox_id,
            "record": self.record.to_dict(),
        }


LookupResult = Union[Indexed, Verified]
