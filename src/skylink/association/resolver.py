# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Skylink Contributors

"""Resolver: fetch association records. Never verifies.

Outcomes are kept distinct:
- :class:`NotFoundError`: no repository, no handle, or an empty slot
  (the owner never linked, or unlinked)
- :class:`MalformedRecordError`: a value is there but cannot be decoded
- :class:`TransientIOError`: the host could not be reached; retryable
"""

from __future__ import annotations

import logging

from ..core.exceptions import ConfigException, NotFoundError, ValidationException
from ..network.index import InboxIndex
from ..network.repository import RepositoryService
from .identifiers import is_did, is_valid_handle, is_valid_identifier, is_well_formed_did, normalize_handle
from .record import ASSOCIATION_COLLECTION, ASSOCIATION_RECORD_KEY, AssociationRecord
from .results import Indexed

logger = logging.getLogger(__name__)


class Resolver:
    """Looks up association records by DID, handle, or (via an index) inbox ID."""

    def __init__(self, repository: RepositoryService, index: InboxIndex | None = None) -> None:
        self.repository = repository
        self.index = index

    async def resolve_by_did(self, did: str) -> AssociationRecord:
        """Fetch the current AssociationRecord stored under ``did``.

        Raises:
            ValidationException: If ``did`` is not a DID.
            NotFoundError: If the repository or slot does not exist.
            MalformedRecordError: If the stored value cannot be decoded.
            TransientIOError: On network failures or timeouts.
        """
        if not is_did(did):
            raise ValidationException("Not a DID", field="did", value=did)

        value = await self.repository.get_record(did, ASSOCIATION_COLLECTION, ASSOCIATION_RECORD_KEY)
        if value is None:
            raise NotFoundError("association record", did)

        record = AssociationRecord.from_dict(value)
        logger.debug(f"Resolved association record of {did} -> {record.inbox_id}")
        return record

    async def resolve_handle(self, handle: str) -> str:
        """Resolve a handle to its DID.

        Raises:
            ValidationException: If ``handle`` is not a valid handle.
            NotFoundError: If no DID is registered for it.
            TransientIOError: On network failures or timeouts.
        """
        if not is_valid_handle(handle):
            raise ValidationException("Not a valid handle", field="handle", value=handle)
        handle = normalize_handle(handle)

        did = await self.repository.resolve_handle(handle)
        if not did:
            raise NotFoundError("handle", handle)
        return did

    async def resolve_by_handle(self, handle: str) -> tuple[str, AssociationRecord]:
        """Resolve ``handle`` to a DID, then fetch that DID's record.

        Returns:
            Tuple of (did, record).
        """
        did = await self.resolve_handle(handle)
        return did, await self.resolve_by_did(did)

    async def resolve(self, identifier: str) -> tuple[str, AssociationRecord]:
        """Resolve a DID or handle.

        Returns:
            Tuple of (did, record).

        Raises:
            ValidationException: If ``identifier`` is neither a DID nor a handle.
        """
        if not is_valid_identifier(identifier):
            raise ValidationException(
                "Enter a valid handle (e.g. user.bsky.social) or DID",
                field="identifier",
                value=identifier,
            )
        identifier = identifier.strip()
        if is_did(identifier):
            return identifier, await self.resolve_by_did(identifier)
        return await self.resolve_by_handle(identifier)

    async def resolve_by_inbox_id(self, inbox_id: str) -> list[Indexed]:
        """Candidate DIDs claiming ``inbox_id``, per the secondary index.

        The candidates are unverified. Run them through the verifier (or
        :meth:`AssociationService.lookup_by_inbox_id`) before trusting any.

        Raises:
            ConfigException: If no index is configured.
            TransientIOError: On network failures or timeouts.
        """
        if self.index is None:
            raise ConfigException("No inbox index configured", missing_vars=["SKYLINK_INDEX_URL"])
        if not inbox_id:
            raise ValidationException("Inbox ID is required", field="inbox_id")

        seen: set[str] = set()
        candidates = []
        for did in await self.index.find_dids(inbox_id):
            if did in seen:
                continue
            if not is_well_formed_did(did):
                logger.info(f"Dropping malformed DID {did!r} returned by the index for {inbox_id}")
                continue
            seen.add(did)
            candidates.append(Indexed(did=did, inbox_id=inbox_id))
        logger.debug(f"Index returned {len(candidates)} candidate(s) for {inbox_id}")
        return candidates
