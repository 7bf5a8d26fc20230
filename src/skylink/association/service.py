# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Skylink Contributors

"""Association service: the end-to-end flows built on publish/resolve/verify.

- ``link``: sign the owner's DID with an installation key, publish, verify
- ``check_link``: is this DID already (validly) linked?
- ``lookup``: handle or DID -> verified inbox ID
- ``lookup_by_inbox_id``: inbox ID -> index candidates, each re-verified
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime

from ..core.config import CoreSettings, get_config
from ..core.exceptions import (
    ConfigException,
    MalformedRecordError,
    NotFoundError,
    VerificationFailedError,
)
from ..core.logging import correlation_context
from ..crypto.signatures import did_message
from ..crypto.signers import Signer
from ..network.index import HttpInboxIndex, InboxIndex
from ..network.messaging import InstallationSource, MessagingNetworkClient
from ..network.repository import AtprotoRepositoryClient, RepositoryCredential, RepositoryService
from .publisher import Publisher
from .record import AssociationRecord
from .resolver import Resolver
from .results import Indexed, LookupResult, Verified
from .verifier import Verifier

logger = logging.getLogger(__name__)


@dataclass
class LinkResult:
    """Outcome of :meth:`AssociationService.link`."""

    did: str
    inbox_id: str
    record: AssociationRecord
    verified: bool
    uri: str | None = None


class AssociationService:
    """High-level service for DID <-> inbox ID associations.

    Typical workflow::

        service = AssociationService(repository, messaging)

        # Owner side
        result = await service.link(credential, signer, inbox_id)

        # Anyone
        verified = await service.lookup("alice.bsky.social")
        print(verified.inbox_id)
    """

    def __init__(
        self,
        repository: RepositoryService,
        installations: InstallationSource,
        index: InboxIndex | None = None,
        concurrent_verification: bool = True,
    ) -> None:
        self.publisher = Publisher(repository)
        self.resolver = Resolver(repository, index)
        self.verifier = Verifier(installations, concurrent=concurrent_verification)

    # -- Owner side ----------------------------------------------------------

    async def link(
        self,
        credential: RepositoryCredential,
        signer: Signer,
        inbox_id: str,
        created_at: datetime | None = None,
    ) -> LinkResult:
        """Claim ``inbox_id`` for the credential's DID.

        Signs the DID with ``signer`` (an installation of ``inbox_id``),
        publishes the record (replacing any previous one), then verifies it
        against the live installation set.

        Raises:
            SigningError: If the signer cannot sign.
            UnauthorizedError: If the credential cannot write the repository.
            TransientIOError: On network failures or timeouts.
        """
        did = credential.did
        with correlation_context("link"):
            logger.info(f"Linking {did} -> {inbox_id}", extra={"did": did, "inbox_id": inbox_id})
            signature = await signer.sign(did_message(did))
            ack = await self.publisher.publish(credential, did, inbox_id, signature, created_at=created_at)
            verified = await self.verifier.verify(did, inbox_id, signature)
            if not verified:
                logger.warning(
                    f"Published association {did} -> {inbox_id} does not verify",
                    extra={"did": did, "inbox_id": inbox_id},
                )
            return LinkResult(did=did, inbox_id=inbox_id, record=ack.record, verified=verified, uri=ack.uri)

    async def unlink(self, credential: RepositoryCredential) -> None:
        """Remove the credential DID's association record."""
        await self.publisher.unpublish(credential, credential.did)

    async def check_link(self, did: str) -> Verified | None:
        """The DID's current association, if it exists and verifies.

        Absent, malformed and non-verifying records all give None.

        Raises:
            TransientIOError: On network failures or timeouts.
        """
        try:
            record = await self.resolver.resolve_by_did(did)
        except NotFoundError:
            return None
        except MalformedRecordError as e:
            logger.warning(f"Ignoring malformed association record of {did}: {e}")
            return None

        if await self.verifier.verify_record(did, record):
            return Verified(did=did, inbox_id=record.inbox_id, record=record)
        logger.warning(
            f"Association record of {did} -> {record.inbox_id} does not verify",
            extra={"did": did, "inbox_id": record.inbox_id},
        )
        return None

    # -- Lookups -------------------------------------------------------------

    async def lookup(self, identifier: str) -> Verified:
        """Resolve a handle or DID to its verified inbox ID.

        Raises:
            ValidationException: If ``identifier`` is neither a handle nor a DID.
            NotFoundError: If the identity never linked (or unlinked).
            VerificationFailedError: If the stored record is malformed or its
                signature matches no active installation.
            TransientIOError: On network failures or timeouts.
        """
        with correlation_context("lookup"):
            try:
                did, record = await self.resolver.resolve(identifier)
            except MalformedRecordError as e:
                logger.warning(f"Malformed association record for {identifier}: {e}")
                raise VerificationFailedError(identifier, "") from e

            if not await self.verifier.verify_record(did, record):
                raise VerificationFailedError(did, record.inbox_id)
            logger.info(f"Verified {did} -> {record.inbox_id}", extra={"did": did, "inbox_id": record.inbox_id})
            return Verified(did=did, inbox_id=record.inbox_id, record=record)

    async def _confirm(self, candidate: Indexed) -> LookupResult:
        try:
            record = await self.resolver.resolve_by_did(candidate.did)
        except (NotFoundError, MalformedRecordError) as e:
            logger.info(
                f"Index candidate {candidate.did} has no usable record: {e}",
                extra={"did": candidate.did, "inbox_id": candidate.inbox_id},
            )
            return candidate

        if record.inbox_id != candidate.inbox_id:
            logger.info(f"Index candidate {candidate.did} now claims {record.inbox_id}, not {candidate.inbox_id}")
            return candidate
        if await self.verifier.verify_record(candidate.did, record):
            return Verified(did=candidate.did, inbox_id=candidate.inbox_id, record=record)
        return candidate

    async def lookup_by_inbox_id(self, inbox_id: str) -> list[LookupResult]:
        """DIDs claiming ``inbox_id``: ``Verified`` if confirmed, else ``Indexed``.

        Raises:
            ConfigException: If no index is configured.
            TransientIOError: On network failures or timeouts.
        """
        with correlation_context("lookup_by_inbox_id"):
            candidates = await self.resolver.resolve_by_inbox_id(inbox_id)
            if not candidates:
                return []
            return list(await asyncio.gather(*(self._confirm(c) for c in candidates)))


# =============================================================================
# FACTORIES
# =============================================================================


def create_service(config: CoreSettings | None = None) -> AssociationService:
    """Build a service wired to the configured network endpoints."""
    config = config or get_config()
    repository = AtprotoRepositoryClient(
        service_url=config.repository_url,
        timeout=config.http_timeout,
        resolve_host=config.resolve_repository_host,
    )
    messaging = MessagingNetworkClient(base_url=config.messaging_url, timeout=config.http_timeout)
    index = HttpInboxIndex(base_url=config.index_url, timeout=config.http_timeout) if config.index_enabled else None
    return AssociationService(repository, messaging, index)


async def open_session(config: CoreSettings | None = None) -> RepositoryCredential:
    """Log in to the configured repository host with the configured app password.

    Raises:
        ConfigException: If the handle or app password is not set.
        UnauthorizedError: If the login is rejected.
    """
    config = config or get_config()
    if not config.has_repository_login:
        missing = [
            name
            for name, value in (("SKYLINK_HANDLE", config.handle), ("SKYLINK_APP_PASSWORD", config.app_password))
            if not value
        ]
        raise ConfigException("Repository login is not configured", missing_vars=missing)
    client = AtprotoRepositoryClient(service_url=config.repository_url, timeout=config.http_timeout, resolve_host=False)
    return await client.create_session(config.handle, config.app_password)
