"""Command-line tool for managing keys and DID tokens."""

import argparse
import asyncio
import json
import logging
import math
import sys
from pathlib import Path

from pydantic import ValidationError

from blockus_did.api.client import BlockusApiClient, BlockusApiError, build_redirect_url
from blockus_did.core.settings import TOKEN_TTL_DEFAULT, BlockusSettings
from blockus_did.crypto.errors import DIDTokenError
from blockus_did.crypto.keys import (
    ensure_key_pair,
    generate_key_pair,
    load_key_pair,
    save_key_pair,
)
from blockus_did.crypto.token_service import TokenService
from blockus_did.crypto.types import ClaimSet, ExtensionValue

logger = logging.getLogger(__name__)

DEFAULT_KEY_DIR = Path("keys")


def parse_claim(raw: str) -> tuple[str, ExtensionValue]:
    """Parse ``name=value``; JSON scalars keep their type, anything else is text."""
    name, sep, value = raw.partition("=")
    if not sep or not name:
        raise argparse.ArgumentTypeError(f"Expected name=value, got {raw!r}")
    try:
        parsed = json.loads(value)
    except ValueError:
        return name, value
    if isinstance(parsed, float) and not math.isfinite(parsed):
        return name, value
    if isinstance(parsed, (str, int, float, bool)):
        return name, parsed
    return name, value


def _cmd_keygen(args: argparse.Namespace) -> int:
    if args.force:
        save_key_pair(generate_key_pair(), args.key_dir)
    else:
        ensure_key_pair(args.key_dir)
    print(args.key_dir / "public.pem")
    return 0


def _cmd_sign(args: argparse.Namespace) -> int:
    pair = load_key_pair(args.key_dir)
    claims = ClaimSet(
        subject=args.sub,
        issuer=args.iss,
        extensions=dict(args.claim or []),
    )
    print(TokenService().sign(claims, pair.private_key_pem, args.ttl))
    return 0


def _cmd_verify(args: argparse.Namespace) -> int:
    pair = load_key_pair(args.key_dir)
    claims = TokenService().verify(args.token, pair.public_key_pem, args.iss)
    print(claims.model_dump_json(indent=2))
    return 0


async def _login(settings: BlockusSettings, subject: str) -> str:
    pair = ensure_key_pair(settings.key_dir)
    service = TokenService()
    did_token = service.sign(
        ClaimSet(subject=subject, issuer=settings.iss),
        pair.private_key_pem,
        settings.token_ttl,
    )
    service.verify(did_token, pair.public_key_pem, settings.iss)
    logger.info("Signed and verified DID token for subject %s", subject)

    client = BlockusApiClient.from_settings(settings)
    login = await client.login_player(did_token)
    return build_redirect_url(settings.redirect_url, login.access_token)


def _cmd_login(args: argparse.Namespace) -> int:
    try:
        settings = BlockusSettings()
    except ValidationError as exc:
        print(f"Invalid BLOCKUS_* settings:\n{exc}", file=sys.stderr)
        return 1
    print(asyncio.run(_login(settings, args.sub)))
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="blockus-did",
        description="Generate RSA keys and sign or verify Blockus DID tokens.",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    keygen = sub.add_parser("keygen", help="Create the key pair if missing")
    keygen.add_argument("--key-dir", type=Path, default=DEFAULT_KEY_DIR)
    keygen.add_argument(
        "--force", action="store_true", help="Replace an existing key pair"
    )
    keygen.set_defaults(func=_cmd_keygen)

    sign = sub.add_parser("sign", help="Sign a DID token")
    sign.add_argument("--key-dir", type=Path, default=DEFAULT_KEY_DIR)
    sign.add_argument("--sub", required=True, help="Subject (player id)")
    sign.add_argument("--iss", help="Issuer")
    sign.add_argument("--ttl", type=int, default=TOKEN_TTL_DEFAULT)
    sign.add_argument(
        "--claim",
        action="append",
        type=parse_claim,
        metavar="NAME=VALUE",
        help="Extra claim, may be repeated",
    )
    sign.set_defaults(func=_cmd_sign)

    verify = sub.add_parser("verify", help="Verify a DID token")
    verify.add_argument("token")
    verify.add_argument("--key-dir", type=Path, default=DEFAULT_KEY_DIR)
    verify.add_argument("--iss", help="Expected issuer")
    verify.set_defaults(func=_cmd_verify)

    login = sub.add_parser("login", help="Exchange a DID token for a redirect URL")
    login.add_argument("--sub", required=True, help="Subject (player id)")
    login.set_defaults(func=_cmd_login)

    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    try:
        return args.func(args)
    except DIDTokenError as exc:
        print(f"{exc.kind}: {exc}", file=sys.stderr)
        return 1
    except BlockusApiError as exc:
        print(f"Blockus API error: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
