# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Skylink Contributors

"""SecretStore capability: where installation keys live between runs.

Storage is pluggable: the in-memory backend suits tests; the file backend
keeps a JSON document readable only by the owner.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Protocol, runtime_checkable

logger = logging.getLogger(__name__)


@runtime_checkable
class SecretStore(Protocol):
    """Key/value storage for secret strings."""

    def get(self, name: str) -> str | None: ...
    def put(self, name: str, value: str) -> None: ...
    def delete(self, name: str) -> None: ...


class InMemorySecretStore:
    """Simple in-memory implementation of :class:`SecretStore`."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._secrets: dict[str, str] = dict(initial or {})

    def get(self, name: str) -> str | None:
        return self._secrets.get(name)

    def put(self, name: str, value: str) -> None:
        self._secrets[name] = value

    def delete(self, name: str) -> None:
        self._secrets.pop(name, None)


class FileSecretStore:
    """JSON file backed :class:`SecretStore`.

    Writes go to a temporary file in the same directory and are moved into
    place, so a crash never leaves a half-written store. The file and its
    directory are created owner-only.
    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path).expanduser()

    def _load(self) -> dict[str, str]:
        if not self.path.exists():
            return {}
        with open(self.path, encoding="utf-8") as f:
            data = json.load(f)
        if not isinstance(data, dict):
            raise ValueError(f"Secret store {self.path} is not a JSON object")
        return {str(k): str(v) for k, v in data.items()}

    def _save(self, data: dict[str, str]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True, mode=0o700)
        fd, tmp = tempfile.mkstemp(dir=self.path.parent, prefix=".secrets-", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2, sort_keys=True)
            os.chmod(tmp, 0o600)
            os.replace(tmp, self.path)
        except BaseException:
            Path(tmp).unlink(missing_ok=True)
            raise

    def get(self, name: str) -> str | None:
        return self._load().get(name)

    def put(self, name: str, value: str) -> None:
        data = self._load()
        data[name] = value
        self._save(data)
        logger.debug(f"Stored secret {name!r} in {self.path}")

    def delete(self, name: str) -> None:
        data = self._load()
        if data.pop(name, None) is not None:
            self._save(data)
            logger.debug(f"Deleted secret {name!r} from {self.path}")
