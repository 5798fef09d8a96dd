#!/usr/bin/env python3
"""Anki card generation from Sõnaveeb lookups.

Subcommands:
1. create-cards: word list (.tsv) → Anki import file (.txt)
   Starts the caching proxy in-process, fetches every word through it, and
   writes the cards only if every word was found.
2. serve: run the caching proxy on its own.

Cache layout:
    cache/
        sonapi_v2/
            ka/
                kass.json
            ko/
                koer.json

Usage:
    python generate.py create-cards --input-file words.tsv --output-file cards.txt --verbose
    python generate.py serve --port 8080 --delay-ms 1000
"""

import argparse
import sys
from pathlib import Path
from typing import List, Optional

from sonacards.common.config import CONFIG_FILENAME, ProxyConfig, load_config
from sonacards.common.logging import setup_thread_prefixed_stdout
from sonacards.output.cards import DEFAULT_LANG
from sonacards.proxy.apis import LANG_CODES


def _add_proxy_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--config",
        type=str,
        help=f"Path to a {CONFIG_FILENAME} file",
    )
    parser.add_argument(
        "--port",
        type=int,
        help="Local proxy port (default: 8080)",
    )
    parser.add_argument(
        "--delay-ms",
        dest="throttle_delay_ms",
        type=int,
        help="Delay before every uncached dictionary request (default: 1000)",
    )
    parser.add_argument(
        "--cache-dir",
        type=str,
        help="Response cache directory (default: cache)",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        default=None,
        help="Enable verbose logging",
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="sonacards",
        description="Create Anki cards from Sõnaveeb dictionary lookups",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    create = subparsers.add_parser("create-cards", help="Create Anki cards")
    create.add_argument(
        "--input-file",
        type=str,
        required=True,
        help="Tab-separated word list, one word per line in the first column",
    )
    create.add_argument(
        "--output-file",
        type=str,
        required=True,
        help="Anki import file to write",
    )
    create.add_argument(
        "--lang",
        choices=LANG_CODES,
        default=DEFAULT_LANG,
        help=f"Translation language for the card back (default: {DEFAULT_LANG})",
    )
    create.add_argument(
        "--retries",
        type=int,
        default=0,
        help="Retry a word this many times after an upstream error (default: 0)",
    )
    _add_proxy_arguments(create)

    serve = subparsers.add_parser("serve", help="Run the caching proxy")
    _add_proxy_arguments(serve)
    return parser


def _load_config(args: argparse.Namespace) -> ProxyConfig:
    config_path = Path(args.config) if args.config else None
    if config_path is not None and not config_path.exists():
        raise ValueError(f"Config file does not exist: {config_path}")
    return load_config(
        config_path,
        port=args.port,
        throttle_delay_ms=args.throttle_delay_ms,
        cache_dir=args.cache_dir,
        verbose=args.verbose,
    )


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    args = _build_parser().parse_args(argv)

    try:
        config = _load_config(args)
    except ValueError as e:
        print(f"[error] {e}", file=sys.stderr)
        return 2

    if args.command == "serve":
        setup_thread_prefixed_stdout()
        from sonacards.proxy.server import serve_forever

        serve_forever(config)
        return 0

    from sonacards.output.processing import process_word_list

    input_path = Path(args.input_file)
    if not input_path.is_file():
        print(f"[error] Input file does not exist: {input_path}", file=sys.stderr)
        return 2

    setup_thread_prefixed_stdout()

    if config.verbose:
        print(f"\n{'=' * 60}")
        print("🚀 Creating Anki cards")
        print(f"{'=' * 60}")
        print(f"📂 Input file: {input_path}")
        print(f"📁 Output file: {args.output_file}")
        print(f"🗄️  Cache: {config.cache_dir}")

    try:
        result = process_word_list(
            config,
            input_path,
            Path(args.output_file),
            lang=args.lang,
            retries=args.retries,
        )
    except RuntimeError as e:
        print(f"[error] {e}", file=sys.stderr)
        return 1

    if not result.written:
        print(f"[error] Not fetched: {', '.join(result.failed_words)}", file=sys.stderr)
        return 1

    if config.verbose:
        print(f"\n{'=' * 60}")
        print("✅ Complete!")
        print(f"   Words: {len(result.words)}")
        print(f"   Cards written: {result.cards_written}")
        print(f"{'=' * 60}\n")

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
