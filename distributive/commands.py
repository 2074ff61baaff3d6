"""
Subprocess helpers for probes.

  execute(args)  -> CompletedProcess, any exit status
  output(args)   -> stdout, non-zero exit raises ExecError

An executable missing from PATH raises ProbeError: the probe cannot reach a
verdict on this host, which is different from the probed thing being absent.
Timeouts are process-wide and set once from Settings by the CLI.
"""

from __future__ import annotations

import logging
import subprocess
from collections.abc import Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING

from distributive.errors import ExecError, ProbeError

if TYPE_CHECKING:
    from config.settings import Settings

logger = logging.getLogger(__name__)


@dataclass
class Timeouts:
    command: float = 30.0
    docker: float = 10.0
    http: float = 10.0
    dial: float = 10.0
    cpu_sample: float = 3.0


TIMEOUTS = Timeouts()


def configure(cfg: Settings) -> None:
    TIMEOUTS.command = cfg.COMMAND_TIMEOUT_SECONDS
    TIMEOUTS.docker = cfg.DOCKER_TIMEOUT_SECONDS
    TIMEOUTS.http = cfg.HTTP_TIMEOUT_SECONDS
    TIMEOUTS.dial = cfg.DIAL_TIMEOUT_SECONDS
    TIMEOUTS.cpu_sample = cfg.CPU_SAMPLE_SECONDS


def execute(args: Sequence[str], timeout: float | None = None) -> subprocess.CompletedProcess:
    timeout = TIMEOUTS.command if timeout is None else timeout
    logger.debug("exec: %s", " ".join(args))
    try:
        return subprocess.run(
            list(args),
            capture_output=True,
            text=True,
            timeout=timeout,
        )
    except FileNotFoundError as exc:
        raise ProbeError(f"Executable not found in PATH: {args[0]}") from exc
    except PermissionError as exc:
        raise ExecError(args, "permission denied") from exc
    except subprocess.TimeoutExpired as exc:
        raise ExecError(args, f"timed out ({timeout}s)") from exc


def output(args: Sequence[str], timeout: float | None = None) -> str:
    result = execute(args, timeout)
    if result.returncode != 0:
        raise ExecError(
            args,
            f"exit status {result.returncode}",
            output=(result.stdout + "\n" + result.stderr).strip(),
            returncode=result.returncode,
        )
    return result.stdout


def shell(command: str, timeout: float | None = None) -> subprocess.CompletedProcess:
    """Run ``command`` through ``bash -c``."""
    return execute(["bash", "-c", command], timeout)
