# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Skylink Contributors

"""Output formatting for CLI commands.

JSON output for scripts, short human-readable lines otherwise.
"""

from __future__ import annotations

import json
import sys
from typing import Any


def output_result(data: dict[str, Any], as_json: bool = False, text: str | None = None) -> None:
    """Print a command result.

    If ``as_json`` is set, pretty-print the full dict. Otherwise print
    ``text`` when given, falling back to JSON.
    """
    if as_json or text is None:
        print(json.dumps(data, indent=2, default=str))
    else:
        print(text)


def output_error(message: str, as_json: bool = False, data: dict[str, Any] | None = None) -> None:
    """Print error message to stderr."""
    if as_json and data is not None:
        print(json.dumps(data, indent=2, default=str), file=sys.stderr)
    else:
        print(f"Error: {message}", file=sys.stderr)
