"""Global test fixtures for the Skylink test suite."""

from __future__ import annotations

import logging
import os
from typing import Any
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from skylink.association.service import AssociationService
from skylink.core.config import clear_config_cache
from skylink.core.logging import JSONFormatter, StandardFormatter
from skylink.crypto.signers import RawKeySigner
from skylink.network.index import InMemoryInboxIndex
from skylink.network.messaging import InMemoryMessagingNetwork
from skylink.network.repository import InMemoryRepository, RepositoryCredential

ALICE_DID = "did:plc:abc"
ALICE_HANDLE = "alice.bsky.social"
BOB_DID = "did:plc:bob"
BOB_HANDLE = "bob.bsky.social"
INBOX_ID = "0xInbox1"


# ============================================================================
# Environment Fixtures
# ============================================================================


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Remove all SKYLINK_ environment variables and reset the config singleton."""
    for key in list(os.environ.keys()):
        if key.startswith("SKYLINK_"):
            monkeypatch.delenv(key, raising=False)
    # Keep a stray .env in the working directory out of the settings
    monkeypatch.chdir(os.path.dirname(__file__))
    clear_config_cache()
    yield
    clear_config_cache()


@pytest.fixture(autouse=True)
def restore_root_logger():
    """Undo handlers installed by configure_logging."""
    root = logging.getLogger()
    level = root.level
    yield
    for handler in root.handlers[:]:
        if isinstance(handler.formatter, (JSONFormatter, StandardFormatter)):
            root.removeHandler(handler)
            handler.close()
    root.setLevel(level)


# ============================================================================
# aiohttp Mocking
# ============================================================================


def make_response(status: int = 200, data: Any = None, json_error: bool = False) -> MagicMock:
    """A fake aiohttp response with ``status`` and a JSON body."""
    response = MagicMock()
    response.status = status
    if json_error:
        response.json = AsyncMock(side_effect=ValueError("not json"))
    else:
        response.json = AsyncMock(return_value=data)
    return response


class FakeHttp:
    """Queue of canned responses served by a patched ``aiohttp.ClientSession``."""

    def __init__(self) -> None:
        self._queue: list[Any] = []
        self.session = MagicMock()
        self.session.request = MagicMock(side_effect=self._request)

    def respond(self, status: int = 200, data: Any = None, json_error: bool = False) -> FakeHttp:
        self._queue.append(make_response(status, data, json_error))
        return self

    def fail(self, exc: BaseException) -> FakeHttp:
        self._queue.append(exc)
        return self

    def _request(self, method: str, url: str, **kwargs: Any) -> MagicMock:
        item = self._queue.pop(0)
        if isinstance(item, BaseException):
            return MagicMock(__aenter__=AsyncMock(side_effect=item), __aexit__=AsyncMock(return_value=False))
        return MagicMock(__aenter__=AsyncMock(return_value=item), __aexit__=AsyncMock(return_value=False))

    @property
    def calls(self) -> list:
        return self.session.request.call_args_list

    def call(self, index: int = -1) -> tuple[str, str, dict[str, Any]]:
        """``(method, url, kwargs)`` of one recorded request."""
        args, kwargs = self.calls[index]
        return args[0], args[1], kwargs


@pytest.fixture
def fake_http():
    """Patch aiohttp.ClientSession and return the response queue."""
    fake = FakeHttp()
    with patch("aiohttp.ClientSession") as mock_client:
        mock_client.return_value.__aenter__ = AsyncMock(return_value=fake.session)
        mock_client.return_value.__aexit__ = AsyncMock(return_value=False)
        yield fake


# ============================================================================
# In-Memory Network Fixtures
# ============================================================================


@pytest.fixture
def repository() -> InMemoryRepository:
    return InMemoryRepository()


@pytest.fixture
def messaging() -> InMemoryMessagingNetwork:
    return InMemoryMessagingNetwork()


@pytest.fixture
def index() -> InMemoryInboxIndex:
    return InMemoryInboxIndex()


@pytest.fixture
def signer() -> RawKeySigner:
    """Installation key registered under INBOX_ID by the ``inbox`` fixture."""
    return RawKeySigner.generate()


@pytest.fixture
def alice(repository: InMemoryRepository) -> RepositoryCredential:
    return repository.create_account(ALICE_DID, ALICE_HANDLE)


@pytest.fixture
def bob(repository: InMemoryRepository) -> RepositoryCredential:
    return repository.create_account(BOB_DID, BOB_HANDLE)


@pytest.fixture
def inbox(messaging: InMemoryMessagingNetwork, signer: RawKeySigner) -> str:
    """INBOX_ID with one active installation: ``signer``."""
    messaging.register_inbox(INBOX_ID)
    messaging.add_installation(INBOX_ID, signer.public_key, signer.key_type, installation_id="inst-1")
    return INBOX_ID


@pytest.fixture
def service(repository, messaging, index) -> AssociationService:
    return AssociationService(repository, messaging, index)
