# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Skylink Contributors

"""Verifier: the only trust boundary of the association protocol.

A record is trusted only once some *currently active* installation of the
claimed inbox is shown to have signed the exact UTF-8 bytes of the DID.
Where the record came from (the owner's repository, an index, a cache)
does not matter.

Malformed third-party input (bad base64, empty fields, junk keys) answers
False. Failing to reach the messaging network is different: that raises
:class:`TransientIOError`, since "could not check" is not "checked and false".
"""

from __future__ import annotations

import asyncio
import logging

from ..crypto import signatures
from ..network.messaging import InboxState, Installation, InstallationSource
from .record import AssociationRecord

logger = logging.getLogger(__name__)


class Verifier:
    """Checks DID <-> inbox ID claims against live installation sets.

    Args:
        installations: Source of current installation sets.
        concurrent: Check installations in parallel worker threads,
            stopping at the first match.
    """

    def __init__(self, installations: InstallationSource, concurrent: bool = True) -> None:
        self.installations = installations
        self.concurrent = concurrent

    async def _inbox_state(self, inbox_id: str) -> InboxState | None:
        states = await self.installations.fetch_inbox_states([inbox_id])
        for state in states:
            if state.inbox_id == inbox_id:
                return state
        return None

    @staticmethod
    def _check(installation: Installation, message: bytes, signature: bytes) -> bool:
        return signatures.verify(installation.public_key, message, signature, installation.key_type)

    async def _any_match(self, candidates: list[Installation], message: bytes, signature: bytes) -> bool:
        if not self.concurrent or len(candidates) == 1:
            return any(self._check(i, message, signature) for i in candidates)

        pending = {asyncio.create_task(asyncio.to_thread(self._check, i, message, signature)) for i in candidates}
        try:
            while pending:
                done, pending = await asyncio.wait(pending, return_when=asyncio.FIRST_COMPLETED)
                if any(task.result() for task in done):
                    return True
            return False
        finally:
            for task in pending:
                task.cancel()

    async def verify(self, did: str, inbox_id: str, signature: bytes | str) -> bool:
        """True iff an active installation of ``inbox_id`` signed ``did``.

        Args:
            did: The DID the signature is claimed to cover.
            inbox_id: The inbox whose installations may have signed it.
            signature: Raw signature bytes, or the base64 form from a record.

        Returns:
            True on the first matching active installation; False if none
            match, the inbox has no active installations, or any input is
            malformed.

        Raises:
            TransientIOError: If the installation set cannot be fetched.
        """
        if not isinstance(did, str) or not did or not isinstance(inbox_id, str) or not inbox_id:
            return False

        if isinstance(signature, str):
            try:
                signature = signatures.decode_signature(signature)
            except ValueError:
                logger.info(f"Signature for {did} -> {inbox_id} is not valid base64")
                return False
        if not isinstance(signature, (bytes, bytearray)) or not signature:
            return False

        try:
            message = signatures.did_message(did)
        except UnicodeEncodeError:
            logger.info(f"DID {did!r} is not encodable as UTF-8")
            return False

        state = await self._inbox_state(inbox_id)
        active = state.active_installations if state else []
        if not active:
            logger.info(f"Inbox {inbox_id} has no active installations")
            return False

        matched = await self._any_match(active, message, bytes(signature))
        if matched:
            logger.debug(f"Verified association {did} -> {inbox_id}")
        else:
            logger.info(f"No active installation of {inbox_id} signed {did} ({len(active)} checked)")
        return matched

    async def verify_record(self, did: str, record: AssociationRecord) -> bool:
        """Verify a resolved record against the DID it was stored under."""
        return await self.verify(did, record.inbox_id, record.verification_signature)
