"""
Execution engine.

run_checklist() probes every check of a checklist on its own worker thread and
folds the outcomes into a Report. Outcomes are collected as they complete but
stored by checklist position, so report messages come out in document order.

Failure semantics per worker:
  (code, message)          counted as returned
  ProbeError / IOError     logged with the check id, counted as (1, "")
  ExecError                counted as (1, diagnostic message)
  any other exception      contained: logged with traceback, (1, "Check X crashed: ...")
"""

from __future__ import annotations

import concurrent.futures
import logging
from collections.abc import Iterable
from dataclasses import dataclass, field

from distributive.check import Check
from distributive.checklist import Checklist
from distributive.errors import DistributiveError, ExecError

logger = logging.getLogger(__name__)

REPORT_MARKER = "↴"


@dataclass(frozen=True)
class Outcome:
    index: int
    check_id: str
    code: int
    message: str = ""
    error: BaseException | None = None

    @property
    def passed(self) -> bool:
        return self.code == 0


@dataclass
class Report:
    name: str
    origin: str
    outcomes: list[Outcome] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.outcomes)

    @property
    def passed(self) -> int:
        return sum(1 for o in self.outcomes if o.code == 0)

    @property
    def failed(self) -> int:
        return sum(1 for o in self.outcomes if o.code == 1)

    @property
    def other(self) -> int:
        return sum(1 for o in self.outcomes if o.code not in (0, 1))

    @property
    def any_failed(self) -> bool:
        return self.failed > 0

    @property
    def messages(self) -> list[str]:
        return [o.message for o in self.outcomes if o.message]

    def render(self) -> str:
        lines = [
            REPORT_MARKER,
            f"Total: {self.total}",
            f"Passed: {self.passed}",
            f"Failed: {self.failed}",
            f"Other: {self.other}",
        ]
        return "\n".join(lines + self.messages)

    def __str__(self) -> str:
        return self.render()


def probe_check(index: int, check_id: str, check: Check) -> Outcome:
    """Run one probe inside the recovery boundary."""
    try:
        code, message = check.probe()
    except ExecError as exc:
        logger.error("Check %s: %s", check_id, exc)
        return Outcome(index, check_id, 1, f"Check {check_id} failed to execute: {exc}", exc)
    except DistributiveError as exc:
        logger.error("Check %s could not reach a verdict: %s: %s", check_id, exc.kind, exc)
        return Outcome(index, check_id, 1, "", exc)
    except Exception as exc:  # noqa: BLE001
        logger.exception("Check %s crashed", check_id)
        return Outcome(index, check_id, 1, f"Check {check_id} crashed: {exc!r}", exc)
    logger.debug("Check %s -> %d", check_id, code)
    return Outcome(index, check_id, code, message)


def run_checklist(
    checklist: Checklist,
    timeout: float | None = None,
    max_workers: int | None = None,
) -> Report:
    """Probe every check concurrently and aggregate.

    ``timeout`` (seconds, None or 0 disables) bounds the whole checklist; checks
    still running at the deadline are reported as failed.
    """
    total = len(checklist.checks)
    outcomes: list[Outcome | None] = [None] * total
    timed_out = False

    pool = concurrent.futures.ThreadPoolExecutor(
        max_workers=max_workers or max(total, 1),
        thread_name_prefix="probe",
    )
    try:
        futures = {
            pool.submit(probe_check, index, check_id, check): index
            for index, (check_id, check) in enumerate(zip(checklist.ids, checklist.checks))
        }
        try:
            for future in concurrent.futures.as_completed(futures, timeout=timeout or None):
                outcome = future.result()
                outcomes[outcome.index] = outcome
        except concurrent.futures.TimeoutError:
            timed_out = True
            for future, index in futures.items():
                if outcomes[index] is None:
                    future.cancel()
                    check_id = checklist.ids[index]
                    logger.error("Check %s did not finish within %ss", check_id, timeout)
                    outcomes[index] = Outcome(index, check_id, 1, f"Check {check_id} timed out after {timeout}s")
    finally:
        pool.shutdown(wait=not timed_out, cancel_futures=True)

    report = Report(name=checklist.name, origin=checklist.origin, outcomes=list(outcomes))
    logger.info(
        "Checklist %r (%s): %d passed, %d failed, %d other",
        report.name,
        report.origin,
        report.passed,
        report.failed,
        report.other,
    )
    return report


def evaluate(checklist: Checklist, **kwargs) -> tuple[bool, Report]:
    """Return (any_failed, report)."""
    report = run_checklist(checklist, **kwargs)
    return report.any_failed, report


def run_checklists(checklists: Iterable[Checklist], **kwargs) -> list[Report]:
    return [run_checklist(checklist, **kwargs) for checklist in checklists]


def any_failed(reports: Iterable[Report]) -> bool:
    return any(report.any_failed for report in reports)
