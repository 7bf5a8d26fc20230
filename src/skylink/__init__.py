# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Skylink Contributors

"""Skylink - verifiable links between DIDs and messaging inbox IDs.

A DID owner signs their DID with one of their inbox's installation keys and
publishes the signature in their own repository. Anyone can then resolve the
link in either direction and check it against the inbox's live installation
set, without trusting the repository host or any index in between.

Architecture:
  crypto       signature primitive, signers, secret storage
  network      repository host, messaging network, inbox index clients
  association  record, publisher, resolver, verifier, service flows
  cli          ``skylink`` command

CLI entry point: ``skylink``
"""

__version__ = "0.1.0"

from .association import (
    AssociationRecord,
    AssociationService,
    Indexed,
    Publisher,
    Resolver,
    Verified,
    Verifier,
)

__all__ = [
    "__version__",
    "AssociationRecord",
    "AssociationService",
    "Publisher",
    "Resolver",
    "Verifier",
    "Indexed",
    "Verified",
]
