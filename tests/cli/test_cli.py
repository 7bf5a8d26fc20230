"""Tests for the skylink CLI.

The service factory and login are patched so commands run against
in-memory collaborators.
"""

from __future__ import annotations

import json
from unittest.mock import AsyncMock, patch

import pytest

from skylink.association.service import AssociationService
from skylink.cli.main import EXIT_ERROR, EXIT_NEGATIVE, EXIT_OK, create_parser, main
from skylink.core.exceptions import TransientIOError
from skylink.crypto.secret_store import FileSecretStore
from skylink.crypto.signers import load_or_create_signer
from skylink.network.index import InMemoryInboxIndex
from skylink.network.messaging import InMemoryMessagingNetwork
from skylink.network.repository import InMemoryRepository

DID = "did:plc:abc"
HANDLE = "alice.bsky.social"
INBOX_ID = "0xInbox1"


@pytest.fixture
def world(monkeypatch, tmp_path):
    """In-memory network with Alice's account; returns (repository, messaging, index, credential)."""
    monkeypatch.setenv("SKYLINK_SECRET_STORE", str(tmp_path / "secrets.json"))
    repository = InMemoryRepository()
    messaging = InMemoryMessagingNetwork()
    index = InMemoryInboxIndex()
    credential = repository.create_account(DID, HANDLE)
    service = AssociationService(repository, messaging, index)

    with (
        patch("skylink.cli.main.create_service", return_value=service),
        patch("skylink.cli.main.open_session", AsyncMock(return_value=credential)),
    ):
        yield repository, messaging, index, credential


def _register_local_key(messaging, tmp_path) -> None:
    signer, _ = load_or_create_signer(FileSecretStore(tmp_path / "secrets.json"))
    messaging.add_installation(INBOX_ID, signer.public_key, signer.key_type)


class TestParser:
    def test_commands(self):
        parser = create_parser()
        args = parser.parse_args(["--json", "link", "--inbox-id", INBOX_ID])
        assert args.command == "link"
        assert args.inbox_id == INBOX_ID
        assert args.json is True

    def test_link_requires_inbox(self):
        with pytest.raises(SystemExit):
            create_parser().parse_args(["link"])

    def test_no_command_prints_help(self, capsys):
        assert main([]) == EXIT_OK
        assert "usage" in capsys.readouterr().out


class TestKey:
    def test_creates_then_reuses(self, world, capsys):
        assert main(["--json", "key"]) == EXIT_OK
        first = json.loads(capsys.readouterr().out)
        assert main(["--json", "key"]) == EXIT_OK
        second = json.loads(capsys.readouterr().out)

        assert first["new"] is True
        assert second["new"] is False
        assert first["publicKey"] == second["publicKey"]

    @pytest.mark.parametrize("content", ["{not json", "[1, 2]", '{"installation_private_key": "ed25519:zz"}'])
    def test_corrupt_secret_store(self, world, tmp_path, capsys, content):
        (tmp_path / "secrets.json").write_text(content)
        assert main(["--json", "key"]) == EXIT_ERROR
        assert '"ConfigException"' in capsys.readouterr().err

    def test_link_with_corrupt_secret_store(self, world, tmp_path, capsys):
        (tmp_path / "secrets.json").write_text("{not json")
        assert main(["link", "--inbox-id", INBOX_ID]) == EXIT_ERROR
        assert "Cannot load installation key" in capsys.readouterr().err


class TestLinkAndLookup:
    def test_full_flow(self, world, tmp_path, capsys):
        _, messaging, _, _ = world
        _register_local_key(messaging, tmp_path)

        assert main(["link", "--inbox-id", INBOX_ID]) == EXIT_OK
        assert f"Linked {DID} -> {INBOX_ID}" in capsys.readouterr().out

        assert main(["--json", "lookup", HANDLE]) == EXIT_OK
        data = json.loads(capsys.readouterr().out)
        assert data["status"] == "verified"
        assert data["inboxId"] == INBOX_ID

        assert main(["resolve", DID]) == EXIT_OK
        assert "unverified" in capsys.readouterr().out

    def test_link_unregistered_key(self, world, capsys):
        assert main(["link", "--inbox-id", INBOX_ID]) == EXIT_NEGATIVE
        assert "no active installation" in capsys.readouterr().out

    def test_lookup_not_linked(self, world, capsys):
        assert main(["lookup", DID]) == EXIT_NEGATIVE
        assert "not found" in capsys.readouterr().err

    def test_lookup_invalid_identifier(self, world, capsys):
        assert main(["lookup", "not a handle"]) == EXIT_ERROR
        assert "valid handle" in capsys.readouterr().err

    def test_lookup_revoked(self, world, tmp_path, capsys):
        _, messaging, _, _ = world
        _register_local_key(messaging, tmp_path)
        main(["link", "--inbox-id", INBOX_ID])
        messaging.revoke_all(INBOX_ID)

        assert main(["--json", "lookup", DID]) == EXIT_NEGATIVE
        assert '"VerificationFailedError"' in capsys.readouterr().err

    def test_unlink(self, world, tmp_path, capsys):
        _, messaging, _, _ = world
        _register_local_key(messaging, tmp_path)
        main(["link", "--inbox-id", INBOX_ID])

        assert main(["unlink"]) == EXIT_OK
        assert main(["lookup", DID]) == EXIT_NEGATIVE


class TestVerifyCommand:
    def test_invalid_signature(self, world, tmp_path, capsys):
        _, messaging, _, _ = world
        _register_local_key(messaging, tmp_path)
        assert main(["verify", DID, INBOX_ID, "AAAA"]) == EXIT_NEGATIVE
        assert "INVALID" in capsys.readouterr().out


class TestCandidates:
    def test_verified_candidate(self, world, tmp_path, capsys):
        _, messaging, index, _ = world
        _register_local_key(messaging, tmp_path)
        main(["link", "--inbox-id", INBOX_ID])
        index.add(INBOX_ID, DID)
        index.add(INBOX_ID, "did:plc:liar")
        capsys.readouterr()

        assert main(["--json", "candidates", INBOX_ID]) == EXIT_OK
        statuses = {r["did"]: r["status"] for r in json.loads(capsys.readouterr().out)["results"]}
        assert statuses == {DID: "verified", "did:plc:liar": "indexed"}

    def test_none(self, world, capsys):
        assert main(["candidates", INBOX_ID]) == EXIT_NEGATIVE
        assert "No DIDs found" in capsys.readouterr().out


class TestTransientErrors:
    def test_exit_code(self, world, capsys):
        repository, _, _, _ = world
        with patch.object(repository, "resolve_handle", AsyncMock(side_effect=TransientIOError("timeout"))):
            assert main(["lookup", HANDLE]) == EXIT_ERROR
        assert "timeout" in capsys.readouterr().err
