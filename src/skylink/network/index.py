"""Optional inbox ID -> DID secondary index.

A convenience for the reverse lookup only. Whatever an index returns is a
candidate, never an answer: every DID it names must be re-resolved and
re-verified before use.
"""

from __future__ import annotations

import logging
from typing import Protocol, runtime_checkable
from urllib.parse import quote

from ..core.config import get_config
from ..core.exceptions import ConfigException, TransientIOError
from .http import client_timeout, request_json

logger = logging.getLogger(__name__)


@runtime_checkable
class InboxIndex(Protocol):
    """Maps an inbox ID to DIDs that claim it."""

    async def find_dids(self, inbox_id: str) -> list[str]: ...


class HttpInboxIndex:
    """Index service client: ``GET {index_url}/inbox/{inboxId}/dids`` -> ``{"dids": [...]}``."""

    def __init__(self, base_url: str | None = None, timeout: float | None = None) -> None:
        base_url = base_url or get_config().index_url
        if not base_url:
            raise ConfigException("Inbox index URL is not configured", missing_vars=["SKYLINK_INDEX_URL"])
        self.base_url = base_url.rstrip("/")
        self._timeout = client_timeout(timeout)

    async def find_dids(self, inbox_id: str) -> list[str]:
        status, data = await request_json(
            "GET",
            f"{self.base_url}/inbox/{quote(inbox_id, safe='')}/dids",
            service="index",
            timeout=self._timeout,
        )
        if status == 404:
            return []
        if status != 200 or not isinstance(data, dict):
            raise TransientIOError(f"Inbox index returned {status}", service="index", status=status)

        dids = data.get("dids")
        if not isinstance(dids, list):
            logger.warning(f"Inbox index returned no 'dids' list for {inbox_id}")
            return []
        return [d for d in dids if isinstance(d, str) and d.startswith("did:")]


class InMemoryInboxIndex:
    """Dict-backed :class:`InboxIndex`. Entries may be stale or false on purpose."""

    def __init__(self) -> None:
        self._entries: dict[str, list[str]] = {}

    def add(self, inbox_id: str, did: str) -> None:
        dids = self._entries.setdefault(inbox_id, [])
        if did not in dids:
            dids.append(did)

    def remove(self, inbox_id: str, did: str) -> None:
        if did in self._entries.get(inbox_id, []):
            self._entries[inbox_id].remove(did)

    async def find_dids(self, inbox_id: str) -> list[str]:
        return list(self._entries.get(inbox_id, []))
