"""CLI commands for fcm-client.

This module provides command-line utilities for:
- Validating configuration
- Dumping configuration (with secrets redacted)
- Classifying an FCM status code
- Sending a single message
"""
from __future__ import annotations

import argparse
import asyncio
import json
import sys

import structlog
from pydantic import ValidationError

from fcm_client._version import __version__
from fcm_client.adapters.fcm.errors import ClientError, classify, render
from fcm_client.adapters.fcm.models import Message, Notification
from fcm_client.config.load import load_settings
from fcm_client.config.redact import redact_settings_dict
from fcm_client.config.settings import Settings
from fcm_client.config.validate import ConfigValidationError
from fcm_client.observability.logger import configure_logging
from fcm_client.runtime import build_client

log = structlog.get_logger(__name__)


def cmd_validate_config(args: argparse.Namespace) -> int:
    """Validate configuration and exit with appropriate code.

    Exit codes:
        0: Configuration is valid
        1: Configuration is invalid
    """
    try:
        settings = load_settings()
    except ConfigValidationError as e:
        print(f"✗ {e}", file=sys.stderr)
        return 1
    print("✓ Configuration is valid")
    print(f"  - FCM endpoint: {settings.fcm.base_url}")
    print(f"  - Project: {settings.fcm.project_id}")
    print(f"  - Auth mode: {settings.auth.mode}")
    return 0


def cmd_dump_config(args: argparse.Namespace) -> int:
    """Dump current configuration as JSON (with secrets redacted)."""
    try:
        settings = load_settings()
    except ConfigValidationError as e:
        print(f"✗ Failed to load configuration: {e}", file=sys.stderr)
        return 1
    data = settings.model_dump(mode="json")
    print(json.dumps(redact_settings_dict(data), indent=2, default=str))
    return 0


def cmd_classify(args: argparse.Namespace) -> int:
    """Print how an FCM HTTP status code is classified."""
    kind = classify(int(args.status), args.detail)
    payload = {
        "code": kind.code.value,
        "retryable": kind.retryable,
        "rendered": render(kind),
    }
    print(json.dumps(payload, indent=2))
    return 0


def _parse_data_pairs(pairs: list[str] | None) -> dict[str, str] | None:
    if not pairs:
        return None
    data: dict[str, str] = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep or not key:
            raise ValueError(f"--data expects KEY=VALUE, got {pair!r}")
        data[key] = value
    return data


def _message_from_args(args: argparse.Namespace) -> Message:
    notification = None
    if args.title or args.body:
        notification = Notification(title=args.title, body=args.body)
    return Message(
        token=args.token,
        topic=args.topic,
        condition=args.condition,
        notification=notification,
        data=_parse_data_pairs(args.data),
    )


async def _send(settings: Settings, message: Message, *, validate_only: bool) -> str:
    async with build_client(settings) as client:
        return await client.send(message, validate_only=validate_only)


def cmd_send(args: argparse.Namespace) -> int:
    """Send one message; prints the message name FCM assigned."""
    try:
        settings = load_settings()
    except ConfigValidationError as e:
        print(f"✗ Failed to load configuration: {e}", file=sys.stderr)
        return 1

    configure_logging(
        log_level=settings.observability.log_level,
        log_format=settings.observability.log_format,
        json_logs=settings.observability.json_logs,
    )

    try:
        message = _message_from_args(args)
    except (ValidationError, ValueError) as e:
        print(f"✗ Invalid message: {e}", file=sys.stderr)
        return 2

    try:
        name = asyncio.run(_send(settings, message, validate_only=bool(args.dry_run)))
    except ClientError as e:
        log.error("fcm.send.failed", error=render(e), error_type=type(e).__name__)
        print(f"✗ {render(e)}", file=sys.stderr)
        return 1

    print(name)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="fcm-client",
        description="Firebase Cloud Messaging client utilities",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    validate_parser = subparsers.add_parser(
        "validate-config",
        help="Validate configuration and exit",
    )
    validate_parser.set_defaults(func=cmd_validate_config)

    dump_parser = subparsers.add_parser(
        "dump-config",
        help="Dump configuration as JSON (secrets redacted)",
    )
    dump_parser.set_defaults(func=cmd_dump_config)

    classify_parser = subparsers.add_parser(
        "classify",
        help="Show how an FCM HTTP status code is classified",
    )
    classify_parser.add_argument("status", type=int, help="HTTP status code")
    classify_parser.add_argument("detail", nargs="?", default="", help="Error detail text")
    classify_parser.set_defaults(func=cmd_classify)

    send_parser = subparsers.add_parser("send", help="Send a single message")
    target = send_parser.add_mutually_exclusive_group(required=True)
    target.add_argument("--token", help="Device registration token")
    target.add_argument("--topic", help="Topic name")
    target.add_argument("--condition", help="Topic condition expression")
    send_parser.add_argument("--title", help="Notification title")
    send_parser.add_argument("--body", help="Notification body")
    send_parser.add_argument(
        "--data",
        action="append",
        metavar="KEY=VALUE",
        help="Data payload entry (repeatable)",
    )
    send_parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Validate the message server-side without delivering it",
    )
    send_parser.set_defaults(func=cmd_send)

    return parser


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 0

    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
