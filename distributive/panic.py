"""
Process crash boundary.

Probe crashes are contained by the engine. Anything that escapes the run
itself (a bug in the parser, engine or CLI) lands here: the traceback is
written to the crash dump file and the process exits with EXIT_PANIC.
"""

from __future__ import annotations

import logging
import platform
import sys
import traceback
from collections.abc import Callable
from datetime import UTC, datetime
from pathlib import Path

logger = logging.getLogger(__name__)

EXIT_PANIC = 2
PANIC_LOG = "distributive.panic.log"
BANNER = "######## DISTRIBUTIVE CRASH ########"


def write_crash_dump(path: str | Path, exc: BaseException) -> Path:
    path = Path(path)
    lines = [
        BANNER,
        f"time:    {datetime.now(UTC).isoformat()}",
        f"argv:    {' '.join(sys.argv)}",
        f"python:  {platform.python_version()} ({platform.platform()})",
        "",
        "".join(traceback.format_exception(type(exc), exc, exc.__traceback__)),
    ]
    path.write_text("\n".join(lines), encoding="utf-8")
    return path


def run_guarded(main: Callable[[], int], panic_log: str | Path = PANIC_LOG) -> int:
    """Call ``main`` and turn an escaped exception into a crash dump + EXIT_PANIC."""
    try:
        return main()
    except Exception as exc:  # noqa: BLE001
        try:
            dump = write_crash_dump(panic_log, exc)
        except OSError as write_exc:
            logger.critical("Could not write crash dump to %s: %s", panic_log, write_exc)
            traceback.print_exception(type(exc), exc, exc.__traceback__, file=sys.stderr)
        else:
            print(BANNER, file=sys.stderr)
            print(f"distributive crashed: {exc!r}", file=sys.stderr)
            print(f"Crash dump written to {dump}", file=sys.stderr)
        return EXIT_PANIC
