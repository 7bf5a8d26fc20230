#!/usr/bin/env python3
"""
Skylink CLI - link DIDs to messaging inbox IDs and check those links.

Commands:
  skylink resolve <identifier>              Fetch the (unverified) record of a handle or DID
  skylink lookup <identifier>               Fetch and verify: handle or DID -> inbox ID
  skylink verify <did> <inbox-id> <sig>     Check a base64 signature against live installations
  skylink candidates <inbox-id>             Inbox ID -> DIDs via the index, each re-verified
  skylink key                               Show (creating if needed) the installation public key
  skylink link --inbox-id <id>              Sign and publish the association for your DID
  skylink unlink                            Delete your association record

Examples:
  skylink lookup alice.bsky.social
  SKYLINK_HANDLE=alice.bsky.social SKYLINK_APP_PASSWORD=... skylink link --inbox-id 0xInbox1
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys

from ..association.results import Verified
from ..association.service import AssociationService, create_service, open_session
from ..core.config import get_config
from ..core.exceptions import (
    ConfigException,
    NotFoundError,
    SkylinkException,
    VerificationFailedError,
)
from ..core.logging import configure_logging
from ..crypto.secret_store import FileSecretStore
from ..crypto.signers import RawKeySigner, load_or_create_signer
from .output import output_error, output_result

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_NEGATIVE = 1
EXIT_ERROR = 2


def _local_signer() -> tuple[RawKeySigner, bool]:
    """Installation key from the local secret store, created on first use.

    Raises:
        ConfigException: If the secret store cannot be read or holds an unusable key.
    """
    path = get_config().secret_store_path
    try:
        return load_or_create_signer(FileSecretStore(path))
    except (OSError, ValueError) as e:
        raise ConfigException(f"Cannot load installation key from {path}: {e}") from e


# ============================================================================
# COMMANDS
# ============================================================================


async def cmd_resolve(args: argparse.Namespace, service: AssociationService) -> int:
    """Fetch a record without verifying it."""
    did, record = await service.resolver.resolve(args.identifier)
    data = {"did": did, "verified": False, "record": record.to_dict()}
    output_result(data, args.json, f"{did} claims inbox {record.inbox_id} (unverified)")
    return EXIT_OK


async def cmd_lookup(args: argparse.Namespace, service: AssociationService) -> int:
    """Resolve and verify."""
    verified = await service.lookup(args.identifier)
    output_result(verified.to_dict(), args.json, f"{verified.did} -> {verified.inbox_id} (verified)")
    return EXIT_OK


async def cmd_verify(args: argparse.Namespace, service: AssociationService) -> int:
    """Check a signature directly."""
    ok = await service.verifier.verify(args.did, args.inbox_id, args.signature)
    data = {"did": args.did, "inboxId": args.inbox_id, "verified": ok}
    output_result(data, args.json, "valid" if ok else "INVALID")
    return EXIT_OK if ok else EXIT_NEGATIVE


async def cmd_candidates(args: argparse.Namespace, service: AssociationService) -> int:
    """Reverse lookup through the index."""
    results = await service.lookup_by_inbox_id(args.inbox_id)
    lines = [f"{r.did} ({'verified' if isinstance(r, Verified) else 'unverified'})" for r in results]
    output_result(
        {"inboxId": args.inbox_id, "results": [r.to_dict() for r in results]},
        args.json,
        "\n".join(lines) if lines else f"No DIDs found for {args.inbox_id}",
    )
    return EXIT_OK if any(isinstance(r, Verified) for r in results) else EXIT_NEGATIVE


async def cmd_key(args: argparse.Namespace, service: AssociationService) -> int:
    """Show the installation public key."""
    signer, is_new = _local_signer()
    ident = signer.get_public_identifier()
    data = {"keyType": signer.key_type.value, "publicKey": signer.public_key.hex(), "new": is_new}
    output_result(data, args.json, f"{ident.kind} {ident.identifier}" + (" (new)" if is_new else ""))
    return EXIT_OK


async def cmd_link(args: argparse.Namespace, service: AssociationService) -> int:
    """Sign and publish the association for the logged-in DID."""
    credential = await open_session()
    signer, _ = _local_signer()
    result = await service.link(credential, signer, args.inbox_id)
    data = {
        "did": result.did,
        "inboxId": result.inbox_id,
        "verified": result.verified,
        "uri": result.uri,
        "record": result.record.to_dict(),
    }
    if result.verified:
        output_result(data, args.json, f"Linked {result.did} -> {result.inbox_id}")
        return EXIT_OK
    output_result(
        data,
        args.json,
        f"Published {result.did} -> {result.inbox_id}, but no active installation of the inbox matches this key",
    )
    return EXIT_NEGATIVE


async def cmd_unlink(args: argparse.Namespace, service: AssociationService) -> int:
    """Delete the association record of the logged-in DID."""
    credential = await open_session()
    await service.unlink(credential)
    output_result({"did": credential.did, "unlinked": True}, args.json, f"Unlinked {credential.did}")
    return EXIT_OK


COMMANDS = {
    "resolve": cmd_resolve,
    "lookup": cmd_lookup,
    "verify": cmd_verify,
    "candidates": cmd_candidates,
    "key": cmd_key,
    "link": cmd_link,
    "unlink": cmd_unlink,
}


# ============================================================================
# PARSER
# ============================================================================


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="skylink",
        description="Verifiable links between DIDs and messaging inbox IDs",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--json", action="store_true", help="Output JSON")
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    resolve_parser = subparsers.add_parser("resolve", help="Fetch an association record (no verification)")
    resolve_parser.add_argument("identifier", help="Handle (user.bsky.social) or DID")

    lookup_parser = subparsers.add_parser("lookup", help="Resolve and verify a handle or DID")
    lookup_parser.add_argument("identifier", help="Handle (user.bsky.social) or DID")

    verify_parser = subparsers.add_parser("verify", help="Verify a signature against an inbox")
    verify_parser.add_argument("did", help="DID the signature covers")
    verify_parser.add_argument("inbox_id", help="Inbox ID")
    verify_parser.add_argument("signature", help="Base64 signature")

    candidates_parser = subparsers.add_parser("candidates", help="DIDs claiming an inbox ID (needs an index)")
    candidates_parser.add_argument("inbox_id", help="Inbox ID")

    subparsers.add_parser("key", help="Show the installation public key")

    link_parser = subparsers.add_parser("link", help="Publish the association for your DID")
    link_parser.add_argument("--inbox-id", required=True, help="Inbox the installation key belongs to")

    subparsers.add_parser("unlink", help="Delete your association record")

    return parser


async def async_main(args: argparse.Namespace) -> int:
    """Async main entry point."""
    configure_logging(level="DEBUG" if args.verbose else "WARNING", json_format=False)
    try:
        service = create_service()
        return await COMMANDS[args.command](args, service)
    except NotFoundError as e:
        output_error(e.message, args.json, e.to_dict())
        return EXIT_NEGATIVE
    except VerificationFailedError as e:
        output_error(e.message, args.json, e.to_dict())
        return EXIT_NEGATIVE
    except SkylinkException as e:
        output_error(e.message, args.json, e.to_dict())
        return EXIT_ERROR


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    parser = create_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return EXIT_OK

    return asyncio.run(async_main(args))


# For CLI entry point
app = main


if __name__ == "__main__":
    sys.exit(main())
