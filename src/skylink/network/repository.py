# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Skylink Contributors

"""Repository service collaborator (the DID side).

``RepositoryService`` is the interface the association protocol consumes:
read a record, write a record, delete a record, resolve a handle.

Implementations:
- :class:`AtprotoRepositoryClient`: XRPC over aiohttp
- :class:`InMemoryRepository`: dict-backed, for tests and local use

Not-found and transport failures are kept apart: ``get_record`` and
``resolve_handle`` return ``None`` when the thing does not exist and raise
:class:`TransientIOError` when the host could not be reached.
"""

from __future__ import annotations

import copy
import logging
from dataclasses import dataclass
from typing import Any, Protocol, runtime_checkable

from ..core.config import get_config
from ..core.exceptions import MalformedRecordError, SkylinkException, UnauthorizedError
from .did_resolver import DidResolver
from .http import client_timeout, request_json, xrpc_error

logger = logging.getLogger(__name__)

# XRPC method IDs
GET_RECORD = "com.atproto.repo.getRecord"
PUT_RECORD = "com.atproto.repo.putRecord"
DELETE_RECORD = "com.atproto.repo.deleteRecord"
RESOLVE_HANDLE = "com.atproto.identity.resolveHandle"
CREATE_SESSION = "com.atproto.server.createSession"

# XRPC error names that mean "no such record / repository"
_RECORD_NOT_FOUND_ERRORS = frozenset({"RecordNotFound", "RepoNotFound", "NotFound", "RepoDeactivated", "RepoTakendown"})
_NOT_FOUND_MESSAGES = ("could not locate record", "could not find repo", "repo not found", "record not found")
_HANDLE_NOT_FOUND_MESSAGES = ("unable to resolve handle", "handle not found")


class RepositoryError(SkylinkException):
    """The repository host answered with an unexpected error."""

    def __init__(self, message: str, status: int | None = None, error: str | None = None):
        details: dict[str, Any] = {}
        if status is not None:
            details["status"] = status
        if error:
            details["error"] = error
        super().__init__(message, details)
        self.status = status
        self.error = error


@dataclass
class RepositoryCredential:
    """Proof of control over one DID's repository (an authenticated session)."""

    did: str
    access_jwt: str
    handle: str | None = None
    refresh_jwt: str | None = None
    service_url: str | None = None

    def auth_headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.access_jwt}"}

    def __repr__(self) -> str:
        return f"RepositoryCredential(did={self.did!r}, handle={self.handle!r})"


@runtime_checkable
class RepositoryService(Protocol):
    """Interface to a signed-repository host."""

    async def get_record(self, did: str, collection: str, rkey: str) -> dict[str, Any] | None: ...

    async def put_record(
        self,
        credential: RepositoryCredential,
        did: str,
        collection: str,
        rkey: str,
        value: dict[str, Any],
    ) -> dict[str, Any]: ...

    async def delete_record(self, credential: RepositoryCredential, did: str, collection: str, rkey: str) -> None: ...

    async def resolve_handle(self, handle: str) -> str | None: ...


def _is_not_found(status: int, data: Any, messages: tuple[str, ...]) -> bool:
    if status == 404:
        return True
    if status != 400:
        return False
    error, message = xrpc_error(data)
    if error in _RECORD_NOT_FOUND_ERRORS or error == "HandleNotFound":
        return True
    return any(m in message.lower() for m in messages)


def _raise_for_write(status: int, data: Any, did: str, action: str) -> None:
    error, message = xrpc_error(data)
    if status in (401, 403) or error in ("AuthRequired", "InvalidToken", "ExpiredToken", "AuthenticationRequired"):
        raise UnauthorizedError(f"Not authorized to {action} in repository of {did}: {message or error or status}", did=did)
    if status >= 400:
        raise RepositoryError(f"Failed to {action} in repository of {did}: {message or error or status}", status=status, error=error)


# =============================================================================
# XRPC CLIENT
# =============================================================================


class AtprotoRepositoryClient:
    """Repository service over XRPC.

    Reads go to the DID's own repository host (found through its DID
    document) when ``resolve_host`` is enabled, falling back to
    ``service_url``. Writes go to the host the credential was issued by.
    """

    def __init__(
        self,
        service_url: str | None = None,
        timeout: float | None = None,
        resolve_host: bool | None = None,
        did_resolver: DidResolver | None = None,
    ) -> None:
        config = get_config()
        self.service_url = (service_url or config.repository_url).rstrip("/")
        self._timeout = client_timeout(timeout)
        self.resolve_host = config.resolve_repository_host if resolve_host is None else resolve_host
        self._did_resolver = did_resolver or (DidResolver(timeout=timeout) if self.resolve_host else None)

    def _url(self, nsid: str, base_url: str | None = None) -> str:
        return f"{(base_url or self.service_url).rstrip('/')}/xrpc/{nsid}"

    async def _read_host(self, did: str) -> str | None:
        """Host to read ``did``'s repository from; None if the DID has no repository."""
        if self._did_resolver is None:
            return self.service_url
        # Unsupported DID methods are still tried against the default host
        if self._did_resolver.document_url(did) is None:
            return self.service_url
        return await self._did_resolver.resolve_pds(did)

    async def get_record(self, did: str, collection: str, rkey: str) -> dict[str, Any] | None:
        """Fetch the value stored at ``(did, collection, rkey)``.

        Returns:
            The record value, or None if the record or repository does not exist.

        Raises:
            TransientIOError: On network failures, timeouts or 5xx responses.
            MalformedRecordError: If the host answers 200 without a value.
            RepositoryError: On other unexpected responses.
        """
        host = await self._read_host(did)
        if host is None:
            logger.info(f"No repository host for {did}")
            return None

        status, data = await request_json(
            "GET",
            self._url(GET_RECORD, host),
            service="repository",
            timeout=self._timeout,
            params={"repo": did, "collection": collection, "rkey": rkey},
        )
        if status == 200:
            if not isinstance(data, dict) or "value" not in data:
                raise MalformedRecordError(f"getRecord for {did} returned no value", field="value")
            return data["value"]
        if _is_not_found(status, data, _NOT_FOUND_MESSAGES):
            logger.debug(f"No record {collection}/{rkey} in repository of {did}")
            return None
        error, message = xrpc_error(data)
        raise RepositoryError(f"getRecord for {did} failed: {message or error or status}", status=status, error=error)

    async def put_record(
        self,
        credential: RepositoryCredential,
        did: str,
        collection: str,
        rkey: str,
        value: dict[str, Any],
    ) -> dict[str, Any]:
        """Create or overwrite the record at ``(did, collection, rkey)``.

        Returns:
            The host's acknowledgement (``uri`` and ``cid``).

        Raises:
            UnauthorizedError: If the credential does not control ``did``.
            TransientIOError: On network failures, timeouts or 5xx responses.
            RepositoryError: On other unexpected responses.
        """
        status, data = await request_json(
            "POST",
            self._url(PUT_RECORD, credential.service_url),
            service="repository",
            timeout=self._timeout,
            json_body={"repo": did, "collection": collection, "rkey": rkey, "record": value},
            headers=credential.auth_headers(),
        )
        _raise_for_write(status, data, did, "write record")
        return data if isinstance(data, dict) else {}

    async def delete_record(self, credential: RepositoryCredential, did: str, collection: str, rkey: str) -> None:
        """Delete the record at ``(did, collection, rkey)``; absent records are fine."""
        status, data = await request_json(
            "POST",
            self._url(DELETE_RECORD, credential.service_url),
            service="repository",
            timeout=self._timeout,
            json_body={"repo": did, "collection": collection, "rkey": rkey},
            headers=credential.auth_headers(),
        )
        if _is_not_found(status, data, _NOT_FOUND_MESSAGES):
            return
        _raise_for_write(status, data, did, "delete record")

    async def resolve_handle(self, handle: str) -> str | None:
        """Resolve a handle to its DID, or None if the handle is unknown."""
        status, data = await request_json(
            "GET",
            self._url(RESOLVE_HANDLE),
            service="repository",
            timeout=self._timeout,
            params={"handle": handle},
        )
        if status == 200 and isinstance(data, dict) and isinstance(data.get("did"), str):
            return data["did"]
        if status == 200 or _is_not_found(status, data, _HANDLE_NOT_FOUND_MESSAGES):
            logger.info(f"Handle {handle} did not resolve")
            return None
        error, message = xrpc_error(data)
        raise RepositoryError(f"resolveHandle for {handle} failed: {message or error or status}", status=status, error=error)

    async def create_session(self, identifier: str, password: str) -> RepositoryCredential:
        """Log in with a handle/DID and app password.

        Raises:
            UnauthorizedError: If the host rejects the credentials.
            TransientIOError: On network failures or timeouts.
        """
        status, data = await request_json(
            "POST",
            self._url(CREATE_SESSION),
            service="repository",
            timeout=self._timeout,
            json_body={"identifier": identifier, "password": password},
        )
        if status in (400, 401, 403):
            error, message = xrpc_error(data)
            raise UnauthorizedError(f"Login failed for {identifier}: {message or error or status}")
        if status != 200 or not isinstance(data, dict) or not data.get("did") or not data.get("accessJwt"):
            raise RepositoryError(f"Unexpected createSession response ({status})", status=status)

        logger.info(f"Opened repository session for {data['did']}")
        return RepositoryCredential(
            did=data["did"],
            handle=data.get("handle"),
            access_jwt=data["accessJwt"],
            refresh_jwt=data.get("refreshJwt"),
            service_url=self.service_url,
        )


# =============================================================================
# IN-MEMORY REPOSITORY
# =============================================================================


class InMemoryRepository:
    """Dict-backed :class:`RepositoryService`.

    A credential controls a repository when its ``access_jwt`` matches the
    token issued by :meth:`create_account`.
    """

    def __init__(self) -> None:
        self._records: dict[str, dict[tuple[str, str], dict[str, Any]]] = {}
        self._handles: dict[str, str] = {}
        self._tokens: dict[str, str] = {}
        self._revision = 0

    def create_account(self, did: str, handle: str | None = None) -> RepositoryCredential:
        self._records.setdefault(did, {})
        token = f"token-{did}"
        self._tokens[did] = token
        if handle:
            self._handles[handle.lower()] = did
        return RepositoryCredential(did=did, handle=handle, access_jwt=token)

    def delete_account(self, did: str) -> None:
        self._records.pop(did, None)
        self._tokens.pop(did, None)
        self._handles = {h: d for h, d in self._handles.items() if d != did}

    def _authorize(self, credential: RepositoryCredential, did: str) -> None:
        if credential.did != did or self._tokens.get(did) != credential.access_jwt:
            raise UnauthorizedError(f"Not authorized to write in repository of {did}", did=did)

    async def get_record(self, did: str, collection: str, rkey: str) -> dict[str, Any] | None:
        repo = self._records.get(did)
        if repo is None:
            return None
        value = repo.get((collection, rkey))
        return copy.deepcopy(value) if value is not None else None

    async def put_record(
        self,
        credential: RepositoryCredential,
        did: str,
        collection: str,
        rkey: str,
        value: dict[str, Any],
    ) -> dict[str, Any]:
        self._authorize(credential, did)
        self._records[did][(collection, rkey)] = copy.deepcopy(value)
        self._revision += 1
        return {"uri": f"at://{did}/{collection}/{rkey}", "cid": f"rev-{self._revision}"}

    async def delete_record(self, credential: RepositoryCredential, did: str, collection: str, rkey: str) -> None:
        self._authorize(credential, did)
        self._records[did].pop((collection, rkey), None)

    async def resolve_handle(self, handle: str) -> str | None:
        return self._handles.get(handle.lower())

    def raw_put(self, did: str, collection: str, rkey: str, value: Any) -> None:
        """Write without authorization (simulates a compromised host)."""
        self._records.setdefault(did, {})[(collection, rkey)] = value
