"""Command line interface for hackmud-sync.

Subcommands mirror the library API: ``push``, ``watch``, ``pull``,
``sync-macros`` and ``test``.  Results go to stdout; logging goes to
stderr (and optionally a file).
"""

import argparse
import asyncio
import json
import logging
import os
import sys

from dotenv import load_dotenv

from . import __version__
from .config import Config, load_config
from .config_loader import load_hierarchical_config
from .config_schema import UnifiedConfig, build_config, to_fallbacks
from .core.async_utils import init_semaphore
from .errors import HackmudSyncError
from .logger import setup_logging
from .sync.engine import SyncEngine
from .sync.macros import sync_macros
from .sync.models import SyncInfo
from .sync.reporter import (
    format_info_line,
    format_macro_result,
    format_push_report,
    format_test_report,
    report_to_json,
)
from .sync.watcher import ScriptWatcher
from .transform import ScriptTransformer

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="hackmud-sync",
        description="Push, watch and pull hackmud scripts",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Push every script to every user with a .key file
  hackmud-sync --source-dir src --hackmud-dir ~/.config/hackmud push

  # Push two scripts to one user
  hackmud-sync push --users alice --scripts foo bar

  # Redeploy scripts as they are saved
  hackmud-sync watch

  # Copy alice.foo back into the source tree
  hackmud-sync pull alice.foo

  # Merge macros across all users
  hackmud-sync sync-macros

  # Check that every script builds (CI)
  hackmud-sync test

Paths can also be set with HACKMUD_SRC_DIR and HACKMUD_DIR, in a .env
file, or in .hackmud_sync/config.yml.
        """,
    )
    parser.add_argument(
        "--source-dir",
        help="Script source directory (overrides HACKMUD_SRC_DIR and config files)",
    )
    parser.add_argument(
        "--hackmud-dir",
        help="hackmud data directory (overrides HACKMUD_DIR and config files)",
    )
    parser.add_argument(
        "--debug", action="store_true", help="Enable debug logging"
    )
    parser.add_argument("--log-file", help="Also write logs to this file")
    parser.add_argument(
        "--log-format",
        choices=("text", "json"),
        default="text",
        help="Log line format (default: text)",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"hackmud-sync version {__version__}",
    )

    sub = parser.add_subparsers(dest="command", required=True)

    for name, help_text in (
        ("push", "Push scripts to users"),
        ("watch", "Push scripts whenever they change"),
    ):
        cmd = sub.add_parser(name, help=help_text)
        cmd.add_argument(
            "--users", nargs="+", default=[], help="Only these users"
        )
        cmd.add_argument(
            "--scripts", nargs="+", default=[], help="Only these scripts"
        )
        if name == "push":
            cmd.add_argument(
                "--json", action="store_true", help="Print a JSON report"
            )

    pull = sub.add_parser("pull", help="Copy a deployed script to source")
    pull.add_argument("script", help="Script in user.name form")

    sub.add_parser("sync-macros", help="Merge macros across users")
    sub.add_parser("test", help="Build every script without writing")

    return parser


def _print_info(info: SyncInfo) -> None:
    print(format_info_line(info), flush=True)


async def _run_command(args: argparse.Namespace, config: Config) -> int:
    init_semaphore(config.max_parallel)
    transformer = ScriptTransformer(
        config.typescript_compiler, config.compiler_timeout
    )

    if args.command == "sync-macros":
        result = await sync_macros(config.hackmud_dir)
        print(format_macro_result(result), end="")
        return 0

    engine = SyncEngine(config.source_dir, config.hackmud_dir, transformer)

    if args.command == "push":
        report = await engine.push_report(
            config.users,
            config.scripts,
            on_push=None if args.json else _print_info,
        )
        if args.json:
            print(json.dumps(report_to_json(report), indent=2))
        else:
            print()
            print(format_push_report(report), end="")
        return 1 if report.failed else 0

    if args.command == "watch":
        watcher = ScriptWatcher(
            engine,
            config.users,
            config.scripts,
            on_push=_print_info,
            settle_ms=config.settle_ms,
        )
        await watcher.run()
        return 0

    if args.command == "pull":
        dest = await engine.pull(args.script)
        print(f"Pulled {args.script} to {dest}")
        return 0

    failures = await engine.test()
    print(format_test_report(failures), end="")
    return 1 if failures else 0


def _load_unified() -> UnifiedConfig:
    load_dotenv()
    return build_config(load_hierarchical_config())


def main(argv: list[str] | None = None) -> int:
    """Parse *argv*, run the command and return the exit status."""
    args = build_parser().parse_args(argv)

    try:
        unified = _load_unified()
    except (ValueError, OSError) as e:
        print(f"ERROR: Configuration error: {e}", file=sys.stderr)
        return 1

    if unified.logging.level and "LOG_LEVEL" not in os.environ:
        os.environ["LOG_LEVEL"] = unified.logging.level
    setup_logging(
        mode="cli",
        debug=args.debug,
        log_file=args.log_file or unified.logging.file,
        debug_format=args.log_format,
    )

    try:
        config = load_config(
            source_dir=args.source_dir,
            hackmud_dir=args.hackmud_dir,
            users=getattr(args, "users", None),
            scripts=getattr(args, "scripts", None),
            debug=args.debug,
            yaml_fallbacks=to_fallbacks(unified),
            require_source=args.command != "sync-macros",
        )
    except ValueError as e:
        logger.error("Configuration error: %s", e)
        print(f"ERROR: Configuration error: {e}", file=sys.stderr)
        return 1

    try:
        return asyncio.run(_run_command(args, config))
    except (HackmudSyncError, ValueError) as e:
        logger.error("%s failed: %s", args.command, e)
        print(f"ERROR: {e}", file=sys.stderr)
        return 1


def run() -> None:
    """Console script entry point."""
    try:
        sys.exit(main())
    except KeyboardInterrupt:
        print("\nInterrupted.", file=sys.stderr)
        sys.exit(0)


if __name__ == "__main__":
    run()
