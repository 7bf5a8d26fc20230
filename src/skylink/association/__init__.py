"""DID <-> inbox ID association protocol.

Key concepts:
- **AssociationRecord**: the signed claim stored in the DID owner's repository.
- **Publisher**: writes / removes the record slot.
- **Resolver**: fetches records by DID, handle, or (via an index) inbox ID.
- **Verifier**: checks the claim against the inbox's active installations.
- **AssociationService**: link, check-link and lookup flows on top.

Security properties:
- Nothing is trusted until ``Verifier.verify`` returns True.
- The signature covers the raw DID bytes, so it cannot be replayed for
  another DID.
- Revoking installations invalidates the claim without touching the record.
"""

from .identifiers import is_did, is_valid_handle, is_valid_identifier
from .publisher import Publisher, PublishAck
from .record import (
    ASSOCIATION_COLLECTION,
    ASSOCIATION_RECORD_KEY,
    AssociationRecord,
    decode_record,
    encode_record,
)
from .resolver import Resolver
from .results import Indexed, LookupResult, Verified
from .service import AssociationService, LinkResult, create_service, open_session
from .verifier import Verifier

__all__ = [
    "ASSOCIATION_COLLECTION",
    "ASSOCIATION_RECORD_KEY",
    "AssociationRecord",
    "encode_record",
    "decode_record",
    "is_did",
    "is_valid_handle",
    "is_valid_identifier",
    "Publisher",
    "PublishAck",
    "Resolver",
    "Verifier",
    "Indexed",
    "Verified",
    "LookupResult",
    "AssociationService",
    "LinkResult",
    "create_service",
    "open_session",
]
