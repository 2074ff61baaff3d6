"""
Miscellaneous checks: shell commands, processes, kernel and PHP settings,
CPU temperature.
"""

from __future__ import annotations

import os
import re

import psutil

from distributive import commands
from distributive.check import Check, Status, generic_error, success
from distributive.errors import ProbeError
from distributive.params import parse_nonempty, parse_regexp, parse_temperature
from distributive.registry import register

PROC_MODULES = "/proc/modules"
SYSCTL = "/sbin/sysctl"
_CORE_TEMP_RE = re.compile(r"Core\s\d+:\s+[\+\-](\d+)\.*\d*(°|\s)C")


@register("Command")
class Command(Check):
    """Command(cmd): passes when ``bash -c cmd`` exits 0."""

    arity = 1

    def bind(self, parameters: list[str]) -> None:
        self.command = parse_nonempty(parameters[0], "shell command")

    def status(self) -> Status:
        result = commands.shell(self.command)
        if result.returncode == 0:
            return success()
        output = (result.stdout + result.stderr).strip()
        return 1, (
            "Command exited with non-zero exit code:"
            f"\n\tCommand: {self.command}"
            f"\n\tExit code: {result.returncode}"
            f"\n\tOutput: {output}"
        )


@register("CommandOutputMatches")
class CommandOutputMatches(Check):
    arity = 2

    def bind(self, parameters: list[str]) -> None:
        self.command = parse_nonempty(parameters[0], "shell command")
        self.pattern = parse_regexp(parameters[1])

    def status(self) -> Status:
        result = commands.shell(self.command)
        output = result.stdout + result.stderr
        if self.pattern.search(output):
            return success()
        return generic_error("Command output did not match regexp", self.pattern.pattern, output.strip())


@register("Running")
class Running(Check):
    """Running(name): a process with this executable name exists."""

    arity = 1

    def bind(self, parameters: list[str]) -> None:
        self.name = parse_nonempty(parameters[0], "process name")

    def status(self) -> Status:
        names = set()
        for proc in psutil.process_iter(["name", "exe"]):
            name = proc.info.get("name")
            if name:
                names.add(name)
            exe = proc.info.get("exe")
            if exe:
                names.add(os.path.basename(exe))
        if self.name in names:
            return success()
        return generic_error("Process not running", self.name, sorted(names))


@register("Temp")
class Temp(Check):
    """Temp(max): no CPU core reported by ``sensors`` is hotter than max °C."""

    arity = 1

    def bind(self, parameters: list[str]) -> None:
        self.max_temp = parse_temperature(parameters[0])

    def status(self) -> Status:
        temps = [int(match.group(1)) for match in _CORE_TEMP_RE.finditer(commands.output(["sensors"]))]
        if not temps:
            raise ProbeError("Could not find any core temperatures in `sensors` output")
        hottest = max(temps)
        if hottest <= self.max_temp:
            return success()
        return generic_error("Core temp exceeds defined maximum", self.max_temp, hottest)


@register("Module")
class Module(Check):
    """Module(name): the kernel module is loaded."""

    arity = 1

    def bind(self, parameters: list[str]) -> None:
        self.name = parse_nonempty(parameters[0], "kernel module name")

    def status(self) -> Status:
        try:
            with open(PROC_MODULES, encoding="utf-8") as fh:
                modules = [line.split()[0] for line in fh if line.strip()]
        except OSError as exc:
            raise ProbeError(f"Could not read {PROC_MODULES}: {exc}") from exc
        if self.name in modules:
            return success()
        return generic_error("Module is not loaded", self.name, modules)


@register("KernelParameter")
class KernelParameter(Check):
    """KernelParameter(name): ``sysctl -n name`` reports a value."""

    arity = 1

    def bind(self, parameters: list[str]) -> None:
        self.name = parse_nonempty(parameters[0], "kernel parameter")

    def status(self) -> Status:
        result = commands.execute([SYSCTL, "-q", "-n", self.name])
        if result.returncode == 0 and result.stdout.strip():
            return success()
        return 1, f"Kernel parameter not set: {self.name}"


@register("PHPConfig")
class PHPConfig(Check):
    arity = 2

    def bind(self, parameters: list[str]) -> None:
        self.variable = parse_nonempty(parameters[0], "PHP configuration variable")
        self.value = parameters[1]

    def status(self) -> Status:
        # $argv[1] is the variable name
        script = "echo get_cfg_var($argv[1]);"
        actual = commands.output(["php", "-r", script, self.variable]).strip()
        if actual == self.value:
            return success()
        return generic_error("PHP configuration variable not set to the value specified", self.value, actual)
