# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Skylink Contributors

"""Messaging network collaborator (the inbox side).

The association protocol needs one thing from the messaging network: the
current installation set of an inbox, with each installation's public key
and whether it is still active. Installation sets change over time and are
never cached here.

Wire shape of :class:`MessagingNetworkClient`::

    POST {messaging_url}/inbox-states
    {"inboxIds": ["0xInbox1"]}

    200
    {"inboxStates": [
        {"inboxId": "0xInbox1",
         "installations": [
            {"id": "inst-1", "publicKey": "<base64>", "keyType": "ed25519", "active": true}
         ]}
    ]}
"""

from __future__ import annotations

import base64
import binascii
import logging
import uuid
from dataclasses import dataclass, field
from typing import Any, Protocol, runtime_checkable

from ..core.config import get_config
from ..core.exceptions import TransientIOError
from ..crypto.signatures import KeyType
from .http import client_timeout, request_json

logger = logging.getLogger(__name__)

INBOX_STATES_PATH = "/inbox-states"


# ---------------------------------------------------------------------------
# Models
# ---------------------------------------------------------------------------


@dataclass
class Installation:
    """One device key registered under an inbox.

    Attributes:
        public_key: Public key bytes in the wire form of ``key_type``.
        key_type: Signature scheme of the key.
        active: False once the installation has been revoked.
        installation_id: Network-assigned identifier, if any.
    """

    public_key: bytes
    key_type: KeyType = KeyType.ED25519
    active: bool = True
    installation_id: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.installation_id,
            "publicKey": base64.b64encode(self.public_key).decode("ascii"),
            "keyType": self.key_type.value,
            "active": self.active,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Installation:
        """Decode one installation entry.

        Raises:
            ValueError: If the public key or key type is unusable.
        """
        raw_key = data.get("publicKey")
        if not isinstance(raw_key, str) or not raw_key:
            raise ValueError("installation has no publicKey")
        try:
            public_key = base64.b64decode(raw_key, validate=True)
        except (binascii.Error, ValueError) as e:
            raise ValueError(f"installation publicKey is not base64: {e}") from e
        return cls(
            public_key=public_key,
            key_type=KeyType(data.get("keyType", KeyType.ED25519.value)),
            active=data.get("active", True) is True,
            installation_id=data.get("id"),
        )


@dataclass
class InboxState:
    """An inbox and its installation set."""

    inbox_id: str
    installations: list[Installation] = field(default_factory=list)

    @property
    def active_installations(self) -> list[Installation]:
        return [i for i in self.installations if i.active]

    def to_dict(self) -> dict[str, Any]:
        return {
            "inboxId": self.inbox_id,
            "installations": [i.to_dict() for i in self.installations],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> InboxState:
        """Decode an inbox state, dropping installation entries that cannot be used."""
        inbox_id = str(data.get("inboxId", ""))
        entries = data.get("installations")
        if not isinstance(entries, list):
            if entries is not None:
                logger.warning(f"Inbox {inbox_id} has an unreadable installation list")
            entries = []
        installations = []
        for entry in entries:
            if not isinstance(entry, dict):
                continue
            try:
                installations.append(Installation.from_dict(entry))
            except ValueError as e:
                logger.warning(f"Skipping installation of {inbox_id}: {e}")
        return cls(inbox_id=inbox_id, installations=installations)


@runtime_checkable
class InstallationSource(Protocol):
    """Anything that can report current installation sets."""

    async def fetch_inbox_states(self, inbox_ids: list[str]) -> list[InboxState]: ...


# ---------------------------------------------------------------------------
# HTTP client
# ---------------------------------------------------------------------------


class MessagingNetworkClient:
    """Fetch installation sets from the messaging network identity API."""

    def __init__(self, base_url: str | None = None, timeout: float | None = None) -> None:
        self.base_url = (base_url or get_config().messaging_url).rstrip("/")
        self._timeout = client_timeout(timeout)

    async def fetch_inbox_states(self, inbox_ids: list[str]) -> list[InboxState]:
        """Current state of each requested inbox.

        Inboxes the network does not know come back with no installations.

        Raises:
            TransientIOError: On network failures, timeouts, non-200 responses
                or an unreadable body.
        """
        if not inbox_ids:
            return []

        status, data = await request_json(
            "POST",
            f"{self.base_url}{INBOX_STATES_PATH}",
            service="messaging",
            timeout=self._timeout,
            json_body={"inboxIds": list(inbox_ids)},
        )
        if status != 200 or not isinstance(data, dict) or not isinstance(data.get("inboxStates"), list):
            raise TransientIOError(f"Messaging network returned {status} for inbox states", service="messaging", status=status)

        by_id: dict[str, InboxState] = {}
        for entry in data["inboxStates"]:
            if isinstance(entry, dict):
                state = InboxState.from_dict(entry)
                by_id[state.inbox_id] = state

        return [by_id.get(inbox_id, InboxState(inbox_id=inbox_id)) for inbox_id in inbox_ids]


# ---------------------------------------------------------------------------
# In-memory network (tests / local use)
# ---------------------------------------------------------------------------


class InMemoryMessagingNetwork:
    """Dict-backed :class:`InstallationSource` with installation lifecycle."""

    def __init__(self) -> None:
        self._inboxes: dict[str, list[Installation]] = {}

    def register_inbox(self, inbox_id: str | None = None) -> str:
        inbox_id = inbox_id or f"inbox-{uuid.uuid4().hex}"
        self._inboxes.setdefault(inbox_id, [])
        return inbox_id

    def add_installation(
        self,
        inbox_id: str,
        public_key: bytes,
        key_type: KeyType = KeyType.ED25519,
        installation_id: str | None = None,
    ) -> Installation:
        installation = Installation(
            public_key=public_key,
            key_type=key_type,
            active=True,
            installation_id=installation_id or f"inst-{uuid.uuid4().hex[:12]}",
        )
        self._inboxes.setdefault(inbox_id, []).append(installation)
        return installation

    def revoke_installation(self, inbox_id: str, installation_id: str) -> None:
        for installation in self._inboxes.get(inbox_id, []):
            if installation.installation_id == installation_id:
                installation.active = False

    def revoke_all(self, inbox_id: str) -> None:
        for installation in self._inboxes.get(inbox_id, []):
            installation.active = False

    async def fetch_inbox_states(self, inbox_ids: list[str]) -> list[InboxState]:
        return [
            InboxState(
                inbox_id=inbox_id,
                installations=[
                    Installation(i.public_key, i.key_type, i.active, i.installation_id)
                    for i in self._inboxes.get(inbox_id, [])
                ],
            )
            for inbox_id in inbox_ids
        ]
