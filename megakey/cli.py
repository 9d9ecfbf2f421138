"""Command line entry point: ``megakey PAYLOAD [-o result.json]``."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from typing import List, Optional, Sequence

from .cascade import extract
from .config import load_config
from .exceptions import ConfigError, PayloadError
from .loader import DEFAULT_TIMEOUT, load_payload
from .report import build_document, to_text, write_json
from .strategies import CASCADE
from .verify import try_decrypt

LOG = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_NOT_FOUND = 1
EXIT_INPUT_ERROR = 2

_COLOUR_CODES = {
    logging.DEBUG: "34",
    logging.INFO: "32",
    logging.WARNING: "33",
    logging.ERROR: "31",
    logging.CRITICAL: "35",
}


class _ColourFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:  # pragma: no cover - trivial wrapper
        message = super().format(record)
        if not sys.stderr.isatty():
            return message
        return f"\033[{_COLOUR_CODES.get(record.levelno, '0')}m{message}\033[0m"


def configure_logging(verbose: bool) -> None:
    """Configure root logging handlers."""

    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)
    root.setLevel(logging.DEBUG if verbose else logging.WARNING)
    stream = logging.StreamHandler()
    stream.setFormatter(_ColourFormatter("%(levelname)s: %(message)s"))
    root.addHandler(stream)


def _split_list(value: Optional[str]) -> List[str]:
    if not value:
        return []
    return [item.strip() for item in value.split(",") if item.strip()]


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="megakey",
        description="Statically extract the decryption key from an obfuscated player script",
    )
    parser.add_argument("source", help="Payload file, HTML page or http(s) URL")
    parser.add_argument("-o", "--output", default=None, help="Write the JSON result document here")
    parser.add_argument("--config", default=None, help="JSON file with extractor settings")
    parser.add_argument(
        "--skip",
        default=None,
        help=f"Comma separated strategies to skip ({', '.join(CASCADE.names())})",
    )
    parser.add_argument("--only", default=None, help="Comma separated strategies to run exclusively")
    parser.add_argument("--min-key-length", type=int, default=None, help="Override the minimum key length")
    parser.add_argument("--max-depth", type=int, default=None, help="Override the call-chain depth limit")
    parser.add_argument("--referer", default=None, help="Referer header used when fetching a URL")
    parser.add_argument("--timeout", type=float, default=DEFAULT_TIMEOUT, help="HTTP timeout in seconds")
    parser.add_argument("--test-ciphertext", default=None, help="Base64 CryptoJS blob to test-decrypt with the key")
    parser.add_argument("--mask", action="store_true", help="Mask the key in printed and written output")
    parser.add_argument("--text", action="store_true", help="Print a human summary instead of JSON")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)
    configure_logging(args.verbose)

    try:
        config = load_config(args.config).with_overrides(
            min_key_length=args.min_key_length,
            max_recursion_depth=args.max_depth,
            debug=True if args.verbose else None,
        )
        headers = {"Referer": args.referer} if args.referer else None
        text = load_payload(args.source, headers=headers, timeout=args.timeout)
        outcome = extract(text, config, skip=_split_list(args.skip), only=_split_list(args.only))
    except (ConfigError, PayloadError) as exc:
        LOG.error("%s", exc)
        return EXIT_INPUT_ERROR

    document = build_document(outcome, source=args.source, mask=args.mask)
    if outcome.success and args.test_ciphertext:
        plaintext = try_decrypt(args.test_ciphertext, outcome.key)
        document["testDecryption"] = {"ok": plaintext is not None, "preview": (plaintext or "")[:120]}
        if plaintext is None:
            LOG.warning("key %s does not decrypt the test ciphertext", outcome.masked_key())

    if args.output:
        write_json(args.output, document)
        LOG.info("result written to %s", args.output)

    if args.text:
        print(to_text(outcome, mask=args.mask))
    else:
        print(json.dumps(document, indent=2, ensure_ascii=False))
    return EXIT_OK if outcome.success else EXIT_NOT_FOUND


__all__ = ["EXIT_INPUT_ERROR", "EXIT_NOT_FOUND", "EXIT_OK", "build_parser", "configure_logging", "main"]
