"""Skylink Core - configuration, logging and the error taxonomy."""

from .config import CoreSettings, clear_config_cache, get_config
from .exceptions import (
    ConfigException,
    MalformedRecordError,
    NotFoundError,
    SigningError,
    SkylinkException,
    TransientIOError,
    UnauthorizedError,
    ValidationException,
    VerificationFailedError,
)
from .logging import (
    configure_logging,
    correlation_context,
    redact,
)

__all__ = [
    # Config
    "CoreSettings",
    "get_config",
    "clear_config_cache",
    # Exceptions
    "SkylinkException",
    "ValidationException",
    "ConfigException",
    "NotFoundError",
    "UnauthorizedError",
    "MalformedRecordError",
    "TransientIOError",
    "VerificationFailedError",
    "SigningError",
    # Logging
    "configure_logging",
    "correlation_context",
    "redact",
]
