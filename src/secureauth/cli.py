"""Command-line interface for secureauth."""

import argparse
import logging
import sys
import time
from typing import List, Optional, Sequence, Tuple

from secureauth.base32 import decode_base32, is_valid_base32
from secureauth.board import CodeBoard, parse_entry
from secureauth.config import TotpConfig
from secureauth.totp import compute_code


logger = logging.getLogger(__name__)


def _resolve_entries(
    raw_entries: Sequence[str], config: TotpConfig
) -> List[Tuple[str, str]]:
    """Parse entries from the command line, falling back to SECUREAUTH_SECRETS."""
    raw = list(raw_entries) or list(config.secrets)
    return [parse_entry(entry, index) for index, entry in enumerate(raw, start=1)]


def _positive_int(value: str) -> int:
    """argparse type for counts that must be at least 1."""
    try:
        number = int(value)
    except ValueError as e:
        raise argparse.ArgumentTypeError(f"invalid int value: {value!r}") from e
    if number < 1:
        raise argparse.ArgumentTypeError(f"must be at least 1, got {number}")
    return number


def _print_board(board: CodeBoard) -> None:
    width = max(len(label) for label, _ in board.rows())
    for label, display in board.rows():
        print(f"{label:<{width}}  {display}")
    print(f"  ({board.time_left}s remaining)")


def code_command(args: argparse.Namespace, config: TotpConfig) -> int:
    """Handle the code command."""
    entries = _resolve_entries(args.entries, config)
    if not entries:
        print("✗ No secrets given. Pass LABEL:SECRET or set SECUREAUTH_SECRETS.", file=sys.stderr)
        return 1

    window = args.window if args.window is not None else config.window_seconds
    width = max(len(label) for label, _ in entries)
    status = 0
    for label, secret in entries:
        if not is_valid_base32(secret):
            print(
                f"⚠ {label}: secret contains non-Base32 characters; "
                "decoding the valid ones only",
                file=sys.stderr,
            )
        try:
            result = compute_code(secret, window_seconds=window, now=args.at)
        except ValueError as e:
            print(f"✗ {label}: {e}", file=sys.stderr)
            return 1
        print(f"{label:<{width}}  {result.render()}  ({result.time_left}s)")
        if not result.ok:
            status = 1
    return status


def validate_command(args: argparse.Namespace, config: TotpConfig) -> int:
    """Handle the validate command."""
    decoded = decode_base32(args.secret)
    if is_valid_base32(args.secret):
        print(f"✓ Valid Base32 secret ({len(decoded)} bytes)")
        return 0

    print("✗ Not a valid Base32 secret", file=sys.stderr)
    if decoded:
        print(f"  Lenient decoding would recover {len(decoded)} bytes", file=sys.stderr)
    return 1


def watch_command(args: argparse.Namespace, config: TotpConfig) -> int:
    """Handle the watch command."""
    entries = _resolve_entries(args.entries, config)
    if not entries:
        print("✗ No secrets given. Pass LABEL:SECRET or set SECUREAUTH_SECRETS.", file=sys.stderr)
        return 1

    try:
        window = args.window if args.window is not None else config.window_seconds
        board = CodeBoard(entries, window_seconds=window)
    except ValueError as e:
        print(f"✗ {e}", file=sys.stderr)
        return 1

    logger.debug("Watching %d secrets with a %ds window", len(entries), window)
    refreshes = 0
    try:
        while True:
            if board.tick():
                _print_board(board)
                refreshes += 1
                if args.count is not None and refreshes >= args.count:
                    return 0
            time.sleep(1)
    except KeyboardInterrupt:
        return 0


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Time-based one-time password (TOTP) code generator",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable debug logging",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Code command
    code_parser = subparsers.add_parser(
        "code",
        aliases=["generate", "gen"],
        help="Print the current code for each secret",
    )
    code_parser.add_argument(
        "entries",
        nargs="*",
        metavar="LABEL:SECRET",
        help="Base32 secret, optionally prefixed with a label",
    )
    code_parser.add_argument(
        "--window",
        "-w",
        type=int,
        default=None,
        help="Time step in seconds (default: $SECUREAUTH_WINDOW or 30)",
    )
    code_parser.add_argument(
        "--at",
        type=float,
        default=None,
        metavar="UNIX_TIME",
        help="Generate for this Unix timestamp instead of now",
    )

    # Validate command
    validate_parser = subparsers.add_parser(
        "validate",
        aliases=["check"],
        help="Check that a secret is well-formed Base32",
    )
    validate_parser.add_argument("secret", help="Base32 secret to check")

    # Watch command
    watch_parser = subparsers.add_parser(
        "watch",
        aliases=["w"],
        help="Print fresh codes every time a new window starts",
    )
    watch_parser.add_argument(
        "entries",
        nargs="*",
        metavar="LABEL:SECRET",
        help="Base32 secret, optionally prefixed with a label",
    )
    watch_parser.add_argument(
        "--window",
        "-w",
        type=int,
        default=None,
        help="Time step in seconds (default: $SECUREAUTH_WINDOW or 30)",
    )
    watch_parser.add_argument(
        "--count",
        "-c",
        type=_positive_int,
        default=None,
        help="Stop after this many windows (default: run until interrupted)",
    )

    args = parser.parse_args(argv)

    logging.basicConfig(
        stream=sys.stderr,
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    if not args.command:
        parser.print_help()
        return 1

    try:
        config = TotpConfig.from_env()
    except ValueError as e:
        print(f"✗ {e}", file=sys.stderr)
        return 1

    if args.command in ("code", "generate", "gen"):
        return code_command(args, config)
    elif args.command in ("validate", "check"):
        return validate_command(args, config)
    elif args.command in ("watch", "w"):
        return watch_command(args, config)
    else:
        parser.print_help()
        return 1


if __name__ == "__main__":
    sys.exit(main())
