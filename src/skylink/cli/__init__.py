# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Skylink Contributors

"""Skylink CLI - link and look up DID <-> inbox ID associations."""

from .main import app, main

__all__ = ["main", "app"]
