"""DID document resolution: find which host serves a DID's repository.

Supported methods:
- ``did:plc:<id>``: fetched from the PLC directory
- ``did:web:<domain>``: fetched from ``https://<domain>/.well-known/did.json``
"""

from __future__ import annotations

import logging
from typing import Any
from urllib.parse import unquote

from ..core.config import get_config
from .http import client_timeout, request_json

logger = logging.getLogger(__name__)

PDS_SERVICE_ID = "#atproto_pds"
PDS_SERVICE_TYPE = "AtprotoPersonalDataServer"
WELL_KNOWN_DID_DOCUMENT = "/.well-known/did.json"


def pds_endpoint(document: dict[str, Any]) -> str | None:
    """Repository host URL declared in a DID document, if any."""
    did = document.get("id", "")
    for service in document.get("service") or []:
        if not isinstance(service, dict):
            continue
        service_id = str(service.get("id", ""))
        if service_id not in (PDS_SERVICE_ID, f"{did}{PDS_SERVICE_ID}"):
            continue
        if service.get("type") != PDS_SERVICE_TYPE:
            continue
        endpoint = service.get("serviceEndpoint")
        if isinstance(endpoint, str) and endpoint.startswith(("https://", "http://")):
            return endpoint.rstrip("/")
    return None


class DidResolver:
    """Resolve DIDs to DID documents and repository hosts."""

    def __init__(self, plc_directory_url: str | None = None, timeout: float | None = None) -> None:
        config = get_config()
        self.plc_directory_url = (plc_directory_url or config.plc_directory_url).rstrip("/")
        self._timeout = client_timeout(timeout)

    def document_url(self, did: str) -> str | None:
        if did.startswith("did:plc:"):
            return f"{self.plc_directory_url}/{did}"
        if did.startswith("did:web:"):
            # did:web:<host>[:<path>...]; a port is percent-encoded in <host>
            parts = did[len("did:web:"):].split(":")
            host = unquote(parts[0])
            if not host:
                return None
            if len(parts) == 1:
                return f"https://{host}{WELL_KNOWN_DID_DOCUMENT}"
            path = "/".join(unquote(p) for p in parts[1:])
            return f"https://{host}/{path}/did.json"
        return None

    async def resolve(self, did: str) -> dict[str, Any] | None:
        """Fetch the DID document, or None if the DID is unknown or unsupported.

        Raises:
            TransientIOError: On network failures or timeouts.
        """
        url = self.document_url(did)
        if url is None:
            logger.debug(f"No resolution method for {did}")
            return None

        status, data = await request_json("GET", url, service="did-resolver", timeout=self._timeout)
        if status != 200 or not isinstance(data, dict):
            logger.info(f"DID document for {did} unavailable (status {status})")
            return None
        if data.get("id") != did:
            logger.warning(f"DID document at {url} names {data.get('id')!r}, expected {did}")
            return None
        return data

    async def resolve_pds(self, did: str) -> str | None:
        """Repository host URL for ``did``, or None if it has none."""
        document = await self.resolve(did)
        if document is None:
            return None
        return pds_endpoint(document)
