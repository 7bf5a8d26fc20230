"""Shared aiohttp request helper for the external collaborators.

Every call carries a total timeout. Transport failures and timeouts become
:class:`TransientIOError`; status handling is left to the caller.
"""

from __future__ import annotations

import logging
from typing import Any

import aiohttp

from ..core.config import get_config
from ..core.exceptions import TransientIOError

logger = logging.getLogger(__name__)

# Statuses that mean "try again later" regardless of endpoint; every 5xx also does
TRANSIENT_STATUSES = frozenset({408, 425, 429})


def is_transient_status(status: int) -> bool:
    return status >= 500 or status in TRANSIENT_STATUSES


def client_timeout(seconds: float | None = None) -> aiohttp.ClientTimeout:
    """Total timeout for one request; defaults to ``SKYLINK_HTTP_TIMEOUT``."""
    return aiohttp.ClientTimeout(total=seconds if seconds is not None else get_config().http_timeout)


async def request_json(
    method: str,
    url: str,
    *,
    service: str,
    timeout: aiohttp.ClientTimeout,
    params: dict[str, str] | None = None,
    json_body: Any = None,
    headers: dict[str, str] | None = None,
) -> tuple[int, Any]:
    """Perform one HTTP request and decode a JSON body if there is one.

    Returns:
        Tuple of (status, decoded body or None).

    Raises:
        TransientIOError: On connection errors, timeouts, or a transient status.
    """
    try:
        async with aiohttp.ClientSession() as session:
            async with session.request(
                method,
                url,
                params=params,
                json=json_body,
                headers=headers,
                timeout=timeout,
            ) as response:
                status = response.status
                try:
                    data = await response.json(content_type=None)
                except ValueError:
                    data = None
    except TimeoutError as e:
        logger.warning(f"Timeout calling {service} at {url}")
        raise TransientIOError(f"Timeout calling {service}", service=service) from e
    except aiohttp.ClientError as e:
        logger.warning(f"Network error calling {service} at {url}: {e}")
        raise TransientIOError(f"Network error calling {service}: {e}", service=service) from e

    if is_transient_status(status):
        logger.warning(f"{service} returned {status} for {url}")
        raise TransientIOError(f"{service} returned {status}", service=service, status=status)

    return status, data


def xrpc_error(data: Any) -> tuple[str, str]:
    """Extract ``(error, message)`` from an XRPC error body."""
    if isinstance(data, dict):
        return str(data.get("error") or ""), str(data.get("message") or "")
    return "", ""
