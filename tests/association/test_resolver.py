"""Tests for the Resolver."""

from __future__ import annotations

from unittest.mock import AsyncMock

import pytest

from skylink.association.publisher import Publisher
from skylink.association.record import ASSOCIATION_COLLECTION, ASSOCIATION_RECORD_KEY
from skylink.association.resolver import Resolver
from skylink.association.results import Indexed
from skylink.core.exceptions import (
    ConfigException,
    MalformedRecordError,
    NotFoundError,
    TransientIOError,
    ValidationException,
)

DID = "did:plc:abc"
HANDLE = "alice.bsky.social"


@pytest.fixture()
def resolver(repository, index) -> Resolver:
    return Resolver(repository, index)


@pytest.fixture()
async def published(repository, alice):
    await Publisher(repository).publish(alice, DID, "0xInbox1", b"\x01" * 64)


class TestResolveByDid:
    @pytest.mark.asyncio
    async def test_found(self, resolver, published):
        record = await resolver.resolve_by_did(DID)
        assert record.inbox_id == "0xInbox1"
        assert record.verification_signature == b"\x01" * 64

    @pytest.mark.asyncio
    async def test_never_linked(self, resolver, alice):
        with pytest.raises(NotFoundError):
            await resolver.resolve_by_did(DID)

    @pytest.mark.asyncio
    async def test_no_repository(self, resolver):
        with pytest.raises(NotFoundError):
            await resolver.resolve_by_did("did:plc:nobody")

    @pytest.mark.asyncio
    async def test_malformed(self, resolver, repository, alice):
        repository.raw_put(DID, ASSOCIATION_COLLECTION, ASSOCIATION_RECORD_KEY, {"id": "0xInbox1"})
        with pytest.raises(MalformedRecordError):
            await resolver.resolve_by_did(DID)

    @pytest.mark.asyncio
    async def test_created_at_out_of_range(self, resolver, repository, alice, published):
        value = await repository.get_record(DID, ASSOCIATION_COLLECTION, ASSOCIATION_RECORD_KEY)
        value = value | {"createdAt": "0001-01-01T00:00:00+01:00"}
        repository.raw_put(DID, ASSOCIATION_COLLECTION, ASSOCIATION_RECORD_KEY, value)
        with pytest.raises(MalformedRecordError):
            await resolver.resolve_by_did(DID)

    @pytest.mark.asyncio
    async def test_not_a_did(self, resolver):
        with pytest.raises(ValidationException):
            await resolver.resolve_by_did(HANDLE)

    @pytest.mark.asyncio
    async def test_transient_propagates(self):
        repository = AsyncMock()
        repository.get_record.side_effect = TransientIOError("timeout", service="repository")
        with pytest.raises(TransientIOError):
            await Resolver(repository).resolve_by_did(DID)


class TestResolveByHandle:
    @pytest.mark.asyncio
    async def test_found(self, resolver, published):
        did, record = await resolver.resolve_by_handle("@Alice.bsky.social")
        assert did == DID
        assert record.inbox_id == "0xInbox1"

    @pytest.mark.asyncio
    async def test_unknown_handle(self, resolver):
        with pytest.raises(NotFoundError) as exc_info:
            await resolver.resolve_by_handle("nobody.bsky.social")
        assert exc_info.value.resource_type == "handle"

    @pytest.mark.asyncio
    async def test_handle_without_record(self, resolver, alice):
        with pytest.raises(NotFoundError) as exc_info:
            await resolver.resolve_by_handle(HANDLE)
        assert exc_info.value.resource_type == "association record"


class TestResolve:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("identifier", [DID, HANDLE, f"  {HANDLE} "])
    async def test_dispatch(self, resolver, published, identifier):
        did, record = await resolver.resolve(identifier)
        assert did == DID
        assert record.inbox_id == "0xInbox1"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("identifier", ["", "not a handle", "alice"])
    async def test_invalid_identifier(self, resolver, identifier):
        with pytest.raises(ValidationException, match="valid handle"):
            await resolver.resolve(identifier)


class TestResolveByInboxId:
    @pytest.mark.asyncio
    async def test_candidates_deduplicated(self, repository):
        index = AsyncMock()
        index.find_dids.return_value = [DID, "did:plc:def", DID]

        candidates = await Resolver(repository, index).resolve_by_inbox_id("0xInbox1")

        assert candidates == [Indexed(DID, "0xInbox1"), Indexed("did:plc:def", "0xInbox1")]
        assert all(not c.verified for c in candidates)

    @pytest.mark.asyncio
    async def test_empty(self, resolver):
        assert await resolver.resolve_by_inbox_id("0xInbox1") == []

    @pytest.mark.asyncio
    async def test_no_index(self, repository):
        with pytest.raises(ConfigException):
            await Resolver(repository).resolve_by_inbox_id("0xInbox1")

    @pytest.mark.asyncio
    async def test_malformed_dids_dropped(self, repository):
        index = AsyncMock()
        index.find_dids.return_value = ["did:plc:\ud800", "did:", "did:plc:has space", DID]

        candidates = await Resolver(repository, index).resolve_by_inbox_id("0xInbox1")

        assert candidates == [Indexed(DID, "0xInbox1")]
