# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Skylink Contributors

"""Publisher: write the AssociationRecord into the DID owner's repository.

The record slot holds exactly one value. Publishing overwrites whatever was
there (no merge, no append); unpublishing deletes it. Neither operation is
retried here: :class:`TransientIOError` goes back to the caller.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import UTC, datetime

from ..core.exceptions import UnauthorizedError, ValidationException
from ..core.logging import redact
from ..network.repository import RepositoryCredential, RepositoryService
from .identifiers import is_did
from .record import ASSOCIATION_COLLECTION, ASSOCIATION_RECORD_KEY, AssociationRecord

logger = logging.getLogger(__name__)


@dataclass
class PublishAck:
    """Repository acknowledgement of a published record."""

    did: str
    record: AssociationRecord
    uri: str | None = None
    cid: str | None = None


class Publisher:
    """Writes and removes the association slot of a DID repository.

    Typical workflow::

        publisher = Publisher(AtprotoRepositoryClient())
        signature = await signer.sign(did_message(credential.did))
        ack = await publisher.publish(credential, credential.did, inbox_id, signature)
    """

    def __init__(self, repository: RepositoryService) -> None:
        self.repository = repository

    @staticmethod
    def _check_control(credential: RepositoryCredential, did: str) -> None:
        if credential.did != did:
            raise UnauthorizedError(f"Credential for {credential.did} does not control {did}", did=did)

    async def publish(
        self,
        credential: RepositoryCredential,
        did: str,
        inbox_id: str,
        signature: bytes,
        created_at: datetime | None = None,
    ) -> PublishAck:
        """Upsert the AssociationRecord for ``did``.

        The caller must already hold ``signature = sign(installation_key,
        utf8(did))`` from an installation of ``inbox_id``; it is stored as is.

        Args:
            credential: Session proving control of ``did``'s repository.
            did: The DID whose slot is written.
            inbox_id: The inbox being claimed.
            signature: Installation signature over the DID bytes.
            created_at: Claim time; defaults to now (UTC).

        Returns:
            :class:`PublishAck` with the stored record.

        Raises:
            ValidationException: For an empty inbox ID or signature, or a non-DID.
            UnauthorizedError: If the credential does not control ``did``.
            TransientIOError: If the repository host is unreachable.
        """
        if not is_did(did):
            raise ValidationException("Not a DID", field="did", value=did)
        if not isinstance(inbox_id, str) or not inbox_id.strip():
            raise ValidationException("Inbox ID is required", field="inbox_id")
        if not isinstance(signature, (bytes, bytearray)) or not signature:
            raise ValidationException("Signature is required", field="signature")
        self._check_control(credential, did)

        record = AssociationRecord(
            inbox_id=inbox_id,
            verification_signature=bytes(signature),
            created_at=created_at or datetime.now(UTC),
        )
        response = await self.repository.put_record(
            credential,
            did,
            ASSOCIATION_COLLECTION,
            ASSOCIATION_RECORD_KEY,
            record.to_dict(),
        )
        logger.info(f"Published association {did} -> {inbox_id} (signature {redact(record.verification_signature)})")
        return PublishAck(did=did, record=record, uri=response.get("uri"), cid=response.get("cid"))

    async def unpublish(self, credential: RepositoryCredential, did: str) -> None:
        """Delete the association slot of ``did``.

        Afterwards the association is absent, exactly as if it had never been
        published. Deleting an empty slot succeeds.

        Raises:
            ValidationException: If ``did`` is not a DID.
            UnauthorizedError: If the credential does not control ``did``.
            TransientIOError: If the repository host is unreachable.
        """
        if not is_did(did):
            raise ValidationException("Not a DID", field="did", value=did)
        self._check_control(credential, did)

        await self.repository.delete_record(credential, did, ASSOCIATION_COLLECTION, ASSOCIATION_RECORD_KEY)
        logger.info(f"Removed association record of {did}")
