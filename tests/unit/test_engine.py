"""
Unit tests for distributive.engine: aggregation, report text, failure
semantics, crash containment and the optional checklist deadline.

Synthetic checks are registered in a private Registry so the built-in one
stays untouched.
"""

from __future__ import annotations

import logging
import threading
import time

import pytest

import distributive.checks  # noqa: F401
from distributive.check import Check, success
from distributive.checklist import parse_checklist
from distributive.engine import Outcome, Report, any_failed, evaluate, run_checklist, run_checklists
from distributive.errors import ExecError, ProbeError
from distributive.panic import PANIC_LOG
from distributive.registry import Registry
from distributive.registry import registry as builtin_registry


class Code(Check):
    """Code(code, message): returns exactly what it is told."""

    arity = 2

    def bind(self, parameters):
        self.code = int(parameters[0])
        self.message = parameters[1]

    def status(self):
        return self.code, self.message


class Panics(Check):
    arity = 0

    def bind(self, parameters):
        pass

    def status(self):
        raise ZeroDivisionError("synthetic crash")


class Unreachable(Check):
    arity = 0

    def bind(self, parameters):
        pass

    def status(self):
        raise ProbeError("could not read /proc/stat")


class ExecFails(Check):
    arity = 0

    def bind(self, parameters):
        pass

    def status(self):
        raise ExecError(["systemctl", "show"], "exit status 3", output="unit unknown")


class Sleeps(Check):
    arity = 1

    def bind(self, parameters):
        self.seconds = float(parameters[0])

    def status(self):
        time.sleep(self.seconds)
        return success()


class SlowFail(Check):
    arity = 2

    def bind(self, parameters):
        self.seconds = float(parameters[0])
        self.message = parameters[1]

    def status(self):
        time.sleep(self.seconds)
        return 1, self.message


@pytest.fixture
def reg():
    r = Registry()
    for cls in (Code, Panics, Unreachable, ExecFails, Sleeps, SlowFail):
        r.register(cls.__name__, cls)
    r.register("File", builtin_registry.lookup("File"))
    r.register("Directory", builtin_registry.lookup("Directory"))
    return r


def _entries(*entries):
    lines = ["name: test", "checklist:"]
    for check_id, params in entries:
        quoted = ", ".join(f'"{p}"' for p in params)
        lines.append(f"  - id: {check_id}\n    parameters: [{quoted}]")
    return "\n".join(lines) + "\n"


# ---------------------------------------------------------------------------
# Report
# ---------------------------------------------------------------------------


class TestReport:
    def test_render_shape(self):
        report = Report(
            "r",
            "stdin",
            [Outcome(0, "File", 0), Outcome(1, "File", 1, "No such file or directory: /x"), Outcome(2, "Code", 7)],
        )
        assert report.render() == (
            "↴\nTotal: 3\nPassed: 1\nFailed: 1\nOther: 1\nNo such file or directory: /x"
        )
        assert str(report) == report.render()
        assert report.any_failed

    def test_empty_messages_are_skipped(self):
        report = Report("r", "stdin", [Outcome(0, "A", 1, ""), Outcome(1, "B", 1, "boom")])
        assert report.messages == ["boom"]

    def test_other_codes_do_not_count_as_failures(self):
        report = Report("r", "stdin", [Outcome(0, "A", 2, "weird")])
        assert report.other == 1
        assert not report.any_failed


# ---------------------------------------------------------------------------
# Scenarios
# ---------------------------------------------------------------------------


class TestScenarios:
    def test_all_pass(self, tmp_path, reg):
        target = tmp_path / "tcp"
        target.write_text("")
        checklist = parse_checklist(
            _entries(("File", [str(target)]), ("Directory", [str(tmp_path)])), registry=reg
        )
        failed, report = evaluate(checklist)
        assert failed is False
        assert (report.total, report.passed, report.failed, report.other) == (2, 2, 0, 0)
        assert report.render().splitlines()[1:] == ["Total: 2", "Passed: 2", "Failed: 0", "Other: 0"]

    def test_mixed(self, tmp_path, reg):
        target = tmp_path / "tcp"
        target.write_text("")
        checklist = parse_checklist(
            _entries(("File", [str(target)]), ("File", ["/definitely/not/a/file"])), registry=reg
        )
        failed, report = evaluate(checklist)
        assert failed is True
        assert (report.total, report.passed, report.failed) == (2, 1, 1)
        assert any("/definitely/not/a/file" in line for line in report.render().splitlines()[5:])

    def test_case_insensitive_ids_give_identical_reports(self, tmp_path):
        text = 'name: "case"\nchecklist:\n  - id: "{}"\n    parameters: ["/definitely/not/a/file"]\n'
        lower = run_checklist(parse_checklist(text.format("file")))
        upper = run_checklist(parse_checklist(text.format("FILE")))
        assert lower.render() == upper.render()

    def test_panic_is_contained(self, tmp_path, reg, monkeypatch):
        monkeypatch.chdir(tmp_path)
        checklist = parse_checklist(
            _entries(("Directory", [str(tmp_path)]), ("Panics", []), ("Directory", [str(tmp_path)])),
            registry=reg,
        )
        failed, report = evaluate(checklist)
        assert failed is True
        assert (report.total, report.passed, report.failed) == (3, 2, 1)
        crashed = report.outcomes[1]
        assert crashed.check_id == "Panics"
        assert isinstance(crashed.error, ZeroDivisionError)
        assert crashed.message.startswith("Check Panics crashed")
        assert not (tmp_path / PANIC_LOG).exists()

    def test_idempotent_parse_gives_identical_reports(self, reg):
        text = _entries(("Code", ["0", ""]), ("Code", ["1", "nope"]), ("Code", ["3", "odd"]))
        assert run_checklist(parse_checklist(text, registry=reg)).render() == run_checklist(
            parse_checklist(text, registry=reg)
        ).render()


# ---------------------------------------------------------------------------
# Failure semantics
# ---------------------------------------------------------------------------


class TestFailureSemantics:
    def test_probe_error_counts_as_failed_with_empty_message(self, reg, caplog):
        checklist = parse_checklist(_entries(("Unreachable", [])), registry=reg)
        with caplog.at_level(logging.ERROR, logger="distributive.engine"):
            report = run_checklist(checklist)
        assert report.failed == 1
        assert report.messages == []
        assert isinstance(report.outcomes[0].error, ProbeError)
        assert "Unreachable" in caplog.text
        assert "could not read /proc/stat" in caplog.text

    def test_exec_error_becomes_diagnostic_message(self, reg):
        report = run_checklist(parse_checklist(_entries(("ExecFails", [])), registry=reg))
        assert report.failed == 1
        assert "ExecFails" in report.messages[0]
        assert "exit status 3" in report.messages[0]

    @pytest.mark.parametrize("size", [1, 2, 7, 40])
    def test_totals_add_up(self, reg, size):
        codes = [i % 3 for i in range(size)]
        checklist = parse_checklist(_entries(*[("Code", [str(c), f"m{i}"]) for i, c in enumerate(codes)]), registry=reg)
        report = run_checklist(checklist)
        assert report.passed + report.failed + report.other == report.total == size
        assert report.any_failed == (report.failed > 0)

    def test_messages_follow_checklist_order(self, reg):
        # The first entry finishes last
        text = _entries(("SlowFail", ["0.3", "first"]), ("Code", ["1", "second"]), ("Code", ["1", "third"]))
        report = run_checklist(parse_checklist(text, registry=reg))
        assert report.messages == ["first", "second", "third"]

    def test_probes_run_concurrently(self, reg):
        text = _entries(*[("Sleeps", ["0.3"])] * 5)
        checklist = parse_checklist(text, registry=reg)
        start = time.monotonic()
        run_checklist(checklist)
        assert time.monotonic() - start < 1.2


class TestDeadline:
    def test_slow_checks_time_out(self, reg):
        checklist = parse_checklist(_entries(("Code", ["0", ""]), ("Sleeps", ["2"])), registry=reg)
        start = time.monotonic()
        report = run_checklist(checklist, timeout=0.2)
        assert time.monotonic() - start < 1.5
        assert (report.passed, report.failed) == (1, 1)
        assert "timed out" in report.messages[0]

    def test_no_deadline_by_default(self, reg):
        report = run_checklist(parse_checklist(_entries(("Sleeps", ["0.3"])), registry=reg))
        assert report.passed == 1


class TestMany:
    def test_run_checklists_and_any_failed(self, reg):
        ok = parse_checklist(_entries(("Code", ["0", ""])), registry=reg)
        bad = parse_checklist(_entries(("Code", ["1", "bad"])), registry=reg)
        reports = run_checklists([ok, bad])
        assert [r.any_failed for r in reports] == [False, True]
        assert any_failed(reports)
        assert not any_failed(reports[:1])

    def test_checks_are_not_mutated(self, reg):
        checklist = parse_checklist(_entries(("Code", ["1", "msg"])), registry=reg)
        before = [dict(vars(c)) for c in checklist.checks]
        run_checklist(checklist)
        assert [vars(c) for c in checklist.checks] == before

    def test_worker_threads_are_named(self, reg):
        names = []

        class Records(Check):
            arity = 0

            def bind(self, parameters):
                pass

            def status(self):
                names.append(threading.current_thread().name)
                return success()

        reg.register("Records", Records)
        run_checklist(parse_checklist(_entries(("Records", [])), registry=reg))
        assert names[0].startswith("probe")
