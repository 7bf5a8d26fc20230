"""Tests for the Verifier.

Tests cover:
- A record verifies only against an active installation of the claimed inbox
- Signatures do not transfer between DIDs
- Revocation invalidates without touching the record
- Malformed input answers False, unreachable network raises
"""

from __future__ import annotations

from datetime import UTC, datetime
from unittest.mock import AsyncMock

import pytest

from skylink.association.record import AssociationRecord
from skylink.association.verifier import Verifier
from skylink.core.exceptions import TransientIOError
from skylink.crypto.signatures import KeyType, did_message, encode_signature
from skylink.crypto.signers import RawKeySigner

DID = "did:plc:abc"
INBOX_ID = "0xInbox1"


@pytest.fixture(params=[True, False], ids=["concurrent", "sequential"])
def verifier(request, messaging) -> Verifier:
    return Verifier(messaging, concurrent=request.param)


@pytest.fixture()
async def signature(signer) -> bytes:
    return await signer.sign(did_message(DID))


class TestVerify:
    @pytest.mark.asyncio
    async def test_valid(self, verifier, inbox, signature):
        assert await verifier.verify(DID, inbox, signature) is True

    @pytest.mark.asyncio
    async def test_base64_signature(self, verifier, inbox, signature):
        assert await verifier.verify(DID, inbox, encode_signature(signature)) is True

    @pytest.mark.asyncio
    async def test_cross_did_replay(self, verifier, inbox, signature):
        assert await verifier.verify("did:plc:mallory", inbox, signature) is False

    @pytest.mark.asyncio
    async def test_other_inbox(self, verifier, messaging, inbox, signature):
        other = messaging.register_inbox("0xInbox2")
        messaging.add_installation(other, RawKeySigner.generate().public_key)
        assert await verifier.verify(DID, other, signature) is False

    @pytest.mark.asyncio
    async def test_revoked_installation(self, verifier, messaging, inbox, signature):
        messaging.revoke_installation(inbox, "inst-1")
        assert await verifier.verify(DID, inbox, signature) is False

    @pytest.mark.asyncio
    async def test_revoke_all(self, verifier, messaging, inbox, signature):
        messaging.revoke_all(inbox)
        assert await verifier.verify(DID, inbox, signature) is False

    @pytest.mark.asyncio
    async def test_unknown_inbox(self, verifier, signature):
        assert await verifier.verify(DID, "0xNobody", signature) is False

    @pytest.mark.asyncio
    async def test_one_of_many_installations(self, verifier, messaging, signer, signature):
        inbox_id = messaging.register_inbox(INBOX_ID)
        for _ in range(5):
            messaging.add_installation(inbox_id, RawKeySigner.generate().public_key)
        messaging.add_installation(inbox_id, signer.public_key)
        for _ in range(5):
            messaging.add_installation(inbox_id, RawKeySigner.generate(KeyType.P256).public_key, KeyType.P256)

        assert await verifier.verify(DID, inbox_id, signature) is True

    @pytest.mark.asyncio
    async def test_p256_installation(self, verifier, messaging):
        signer = RawKeySigner.generate(KeyType.P256)
        messaging.add_installation(INBOX_ID, signer.public_key, KeyType.P256)
        signature = await signer.sign(did_message(DID))
        assert await verifier.verify(DID, INBOX_ID, signature) is True

    @pytest.mark.asyncio
    async def test_junk_installation_key_ignored(self, verifier, messaging, signer, signature):
        messaging.add_installation(INBOX_ID, b"\x00" * 5)
        messaging.add_installation(INBOX_ID, signer.public_key)
        assert await verifier.verify(DID, INBOX_ID, signature) is True


class TestMalformedInput:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("sig", [b"", "", "not base64!!", b"\x00" * 64, 42])
    async def test_false(self, verifier, inbox, sig):
        assert await verifier.verify(DID, inbox, sig) is False

    @pytest.mark.asyncio
    @pytest.mark.parametrize("did,inbox_id", [("", INBOX_ID), (DID, ""), (None, INBOX_ID)])
    async def test_empty_ids(self, verifier, inbox, signature, did, inbox_id):
        assert await verifier.verify(did, inbox_id, signature) is False

    @pytest.mark.asyncio
    async def test_no_network_call_for_bad_signature(self):
        source = AsyncMock()
        assert await Verifier(source).verify(DID, INBOX_ID, "%%%") is False
        source.fetch_inbox_states.assert_not_called()

    @pytest.mark.asyncio
    async def test_unencodable_did(self, signature):
        source = AsyncMock()
        assert await Verifier(source).verify("did:plc:\ud800", INBOX_ID, signature) is False
        source.fetch_inbox_states.assert_not_called()


class TestTransient:
    @pytest.mark.asyncio
    async def test_unreachable_network_raises(self, signature):
        source = AsyncMock()
        source.fetch_inbox_states.side_effect = TransientIOError("timeout", service="messaging")
        with pytest.raises(TransientIOError):
            await Verifier(source).verify(DID, INBOX_ID, signature)


class TestVerifyRecord:
    @pytest.mark.asyncio
    async def test_record(self, verifier, inbox, signature):
        record = AssociationRecord(inbox, signature, datetime(2024, 1, 1, tzinfo=UTC))
        assert await verifier.verify_record(DID, record) is True
        assert await verifier.verify_record("did:plc:other", record) is False

    @pytest.mark.asyncio
    async def test_verification_is_repeatable(self, verifier, inbox, signature):
        record = AssociationRecord(inbox, signature)
        results = [await verifier.verify_record(DID, record) for _ in range(3)]
        assert results == [True, True, True]
