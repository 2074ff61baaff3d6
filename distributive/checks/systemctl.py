"""systemd checks, via ``systemctl``."""

from __future__ import annotations

from distributive.check import Check, Status, generic_error, success
from distributive.params import parse_choice, parse_nonempty
from distributive.registry import register
from distributive.status import systemd

UNIT_FILE_STATES = ("static", "enabled", "disabled")


class _UnitProperty(Check):
    arity = 1
    prop = ""
    expected = ""

    def bind(self, parameters: list[str]) -> None:
        self.unit = parse_nonempty(parameters[0], "systemd unit")

    def status(self) -> Status:
        actual = systemd.unit_property(self.unit, self.prop)
        if actual == self.expected:
            return success()
        return generic_error(f"Service has unexpected {self.prop}: {self.unit}", self.expected, actual)


@register("SystemctlLoaded")
class SystemctlLoaded(_UnitProperty):
    prop = "LoadState"
    expected = "loaded"


@register("SystemctlActive")
class SystemctlActive(_UnitProperty):
    prop = "ActiveState"
    expected = "active"


@register("SystemctlSockListening", "SystemctlSock")
class SystemctlSockListening(Check):
    """SystemctlSockListening(path): a socket unit listens on path."""

    arity = 1

    def bind(self, parameters: list[str]) -> None:
        self.path = parse_nonempty(parameters[0], "socket path")

    def status(self) -> Status:
        listening = systemd.listening_sockets()
        if self.path in listening:
            return success()
        return generic_error("Socket wasn't listening", self.path, listening)


class _Timer(Check):
    arity = 1
    all_units = False

    def bind(self, parameters: list[str]) -> None:
        unit = parse_nonempty(parameters[0], "timer unit")
        self.unit = unit if unit.endswith(".timer") else f"{unit}.timer"

    def status(self) -> Status:
        timers = systemd.timers(self.all_units)
        if self.unit in timers:
            return success()
        state = "loaded" if self.all_units else "active"
        return generic_error(f"Timer not found among {state} timers", self.unit, timers)


@register("SystemctlTimer")
class SystemctlTimer(_Timer):
    all_units = False


@register("SystemctlTimerLoaded")
class SystemctlTimerLoaded(_Timer):
    all_units = True


@register("SystemctlUnitFileStatus")
class SystemctlUnitFileStatus(Check):
    """SystemctlUnitFileStatus(unit, static | enabled | disabled)."""

    arity = 2

    def bind(self, parameters: list[str]) -> None:
        self.unit = parse_nonempty(parameters[0], "systemd unit")
        self.state = parse_choice(parameters[1], UNIT_FILE_STATES, "unit file state (static | enabled | disabled)")

    def status(self) -> Status:
        states = systemd.unit_file_states()
        if self.unit not in states:
            return generic_error("Unit file not found", self.unit, sorted(states))
        actual = states[self.unit]
        if actual == self.state:
            return success()
        return generic_error(f"Unit file has unexpected state: {self.unit}", self.state, actual)
