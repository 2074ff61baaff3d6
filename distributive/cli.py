"""
distributive command line.

Usage:
    distributive                          # every checklist in /etc/distributive.d/
    distributive -f checks/base.yaml      # one file
    distributive -d checks/ -u https://example.com/web.json --no-cache
    cat base.yaml | distributive --stdin
    distributive -f base.yaml --validate  # parse only, run nothing

Exit codes:
    0  every check in every checklist passed
    1  a check failed, or a checklist could not be loaded or parsed
    2  internal crash (crash dump written to PANIC_LOG)
"""

from __future__ import annotations

import argparse
import logging
import sys

from pydantic import ValidationError

import distributive.checks  # noqa: F401  (registers the built-in checks)
from config.settings import Settings, load_settings
from distributive import __version__, commands
from distributive.checklist import (
    Checklist,
    checklist_from_file,
    checklist_from_stdin,
    checklist_from_url,
    checklists_from_dir,
)
from distributive.engine import any_failed, run_checklists
from distributive.errors import DistributiveError
from distributive.panic import run_guarded
from distributive.registry import registry

EXIT_OK = 0
EXIT_FAILED = 1

VERBOSITY_LEVELS = {
    "panic": logging.CRITICAL,
    "fatal": logging.CRITICAL,
    "error": logging.ERROR,
    "warn": logging.WARNING,
    "info": logging.INFO,
    "debug": logging.DEBUG,
}

logger = logging.getLogger("distributive")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="distributive",
        description="Run declarative health checklists against this host.",
    )
    parser.add_argument("-f", "--file", action="append", default=[], metavar="PATH", help="Read a checklist from a file")
    parser.add_argument("-u", "--url", action="append", default=[], metavar="URL", help="Fetch a checklist over HTTP(S)")
    parser.add_argument(
        "-d",
        "--directory",
        action="append",
        default=[],
        metavar="PATH",
        help="Read every .yaml/.yml/.json checklist in a directory",
    )
    parser.add_argument("-s", "--stdin", action="store_true", help="Read a checklist from standard input")
    parser.add_argument("--no-cache", action="store_true", help="Always re-fetch remote checklists")
    parser.add_argument(
        "--verbosity",
        choices=list(VERBOSITY_LEVELS),
        default=None,
        help="Log level (default: VERBOSITY setting, warn)",
    )
    parser.add_argument("--env-file", default=".env", metavar="PATH", help="Settings env file (default: .env)")
    parser.add_argument("--validate", action="store_true", help="Parse checklists and exit without probing")
    parser.add_argument("--list-checks", action="store_true", help="List registered check ids and exit")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def configure_logging(verbosity: str) -> None:
    logging.basicConfig(
        level=VERBOSITY_LEVELS[verbosity],
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
        force=True,
    )


def load_checklists(args: argparse.Namespace, cfg: Settings) -> list[Checklist]:
    """Parse every requested source. Any error aborts before a single probe runs."""
    directories = list(args.directory)
    if not (args.file or args.url or directories or args.stdin):
        directories = [cfg.DEFAULT_DIRECTORY]
    use_cache = cfg.USE_CACHE and not args.no_cache

    checklists: list[Checklist] = []
    for path in args.file:
        checklists.append(checklist_from_file(path))
    for path in directories:
        checklists.extend(checklists_from_dir(path))
    for url in args.url:
        checklists.append(
            checklist_from_url(
                url,
                use_cache=use_cache,
                cache_dir=cfg.REMOTE_CHECK_DIR,
                fallback_dir=cfg.REMOTE_CHECK_FALLBACK_DIR,
                timeout=cfg.HTTP_TIMEOUT_SECONDS,
            )
        )
    if args.stdin:
        checklists.append(checklist_from_stdin())
    return checklists


def _one_line(exc: DistributiveError) -> str:
    return " | ".join(line.strip() for line in str(exc).splitlines() if line.strip())


def _print_summary(checklists: list[Checklist]) -> None:
    print("Checklist validation passed.")
    for checklist in checklists:
        print(f"  {checklist.name or '(unnamed)'}  [{checklist.origin}]  {len(checklist)} checks")


def run(args: argparse.Namespace, cfg: Settings) -> int:
    if args.list_checks:
        for name in registry.names():
            print(name)
        return EXIT_OK

    try:
        checklists = load_checklists(args, cfg)
    except DistributiveError as exc:
        print(f"ERROR: {exc.kind}: {_one_line(exc)}", file=sys.stderr)
        return EXIT_FAILED
    if not checklists:
        print("ERROR: no checklists found", file=sys.stderr)
        return EXIT_FAILED

    if args.validate:
        _print_summary(checklists)
        return EXIT_OK

    reports = run_checklists(
        checklists,
        timeout=cfg.CHECK_TIMEOUT_SECONDS or None,
        max_workers=cfg.MAX_WORKERS,
    )
    for report in reports:
        print(f"== {report.name or '(unnamed)'} ({report.origin}) ==")
        print(report.render())
    return EXIT_FAILED if any_failed(reports) else EXIT_OK


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        cfg = load_settings(args.env_file)
    except ValidationError as exc:
        print(f"ERROR: invalid settings in {args.env_file} or environment", file=sys.stderr)
        print(str(exc), file=sys.stderr)
        return EXIT_FAILED

    configure_logging(args.verbosity or cfg.VERBOSITY)
    commands.configure(cfg)
    logger.debug("Settings: %s", cfg.model_dump())
    return run_guarded(lambda: run(args, cfg), cfg.PANIC_LOG)
