"""
Resource usage checks: memory, swap, CPU, disk space and inodes.

Memory, swap, CPU and disk figures come from psutil. CPUUsage samples over
CPU_SAMPLE_SECONDS of wall time inside its worker.
"""

from __future__ import annotations

import abc

import psutil

from distributive import commands, tabular
from distributive.check import Check, Status, generic_error, success
from distributive.errors import ProbeError
from distributive.params import parse_bytes, parse_nonempty, parse_percent
from distributive.registry import register


class _MaxPercent(Check):
    arity = 1
    label = ""

    def bind(self, parameters: list[str]) -> None:
        self.max_percent = parse_percent(parameters[0])

    @abc.abstractmethod
    def measure(self) -> float:
        """Percent in use."""

    def status(self) -> Status:
        actual = self.measure()
        if actual <= self.max_percent:
            return success()
        return generic_error(f"{self.label} usage above defined maximum", f"{self.max_percent}%", f"{actual:.1f}%")


@register("MemoryUsage")
class MemoryUsage(_MaxPercent):
    label = "Memory"

    def measure(self) -> float:
        return psutil.virtual_memory().percent


@register("SwapUsage")
class SwapUsage(_MaxPercent):
    label = "Swap"

    def measure(self) -> float:
        return psutil.swap_memory().percent


@register("CPUUsage")
class CPUUsage(_MaxPercent):
    label = "CPU"

    def measure(self) -> float:
        return psutil.cpu_percent(interval=commands.TIMEOUTS.cpu_sample)


class _MinFree(Check):
    arity = 1
    label = ""

    def bind(self, parameters: list[str]) -> None:
        self.min_bytes = parse_bytes(parameters[0])

    @abc.abstractmethod
    def measure(self) -> int:
        """Free bytes."""

    def status(self) -> Status:
        actual = self.measure()
        if actual >= self.min_bytes:
            return success()
        return generic_error(f"Free {self.label} lower than defined threshold", f"{self.min_bytes}B", f"{actual}B")


@register("FreeMemory")
class FreeMemory(_MinFree):
    label = "memory"

    def measure(self) -> int:
        return psutil.virtual_memory().available


@register("FreeSwap")
class FreeSwap(_MinFree):
    label = "swap"

    def measure(self) -> int:
        return psutil.swap_memory().free


@register("DiskUsage")
class DiskUsage(Check):
    """DiskUsage(path, max percent) for the filesystem holding path."""

    arity = 2

    def bind(self, parameters: list[str]) -> None:
        self.path = parse_nonempty(parameters[0], "path")
        self.max_percent = parse_percent(parameters[1])

    def status(self) -> Status:
        try:
            actual = psutil.disk_usage(self.path).percent
        except OSError as exc:
            raise ProbeError(f"Could not get disk usage for {self.path}: {exc}") from exc
        if actual <= self.max_percent:
            return success()
        return generic_error(f"Disk usage above defined maximum for {self.path}", f"{self.max_percent}%", f"{actual:.1f}%")


@register("InodeUsage")
class InodeUsage(Check):
    """InodeUsage(filesystem, max percent), matched on df's Filesystem or Mounted on column."""

    arity = 2

    def bind(self, parameters: list[str]) -> None:
        self.filesystem = parse_nonempty(parameters[0], "filesystem")
        self.max_percent = parse_percent(parameters[1])

    def status(self) -> Status:
        table = tabular.split(commands.output(["df", "-i"]))
        rows = table[1:]
        for row in rows:
            if len(row) < 6 or self.filesystem not in (row[0], row[-1]):
                continue
            used = row[4].rstrip("%")
            if not used.isdigit():
                # Filesystems without inodes report "-"
                raise ProbeError(f"df reports no inode usage for {self.filesystem}")
            actual = int(used)
            if actual <= self.max_percent:
                return success()
            return generic_error(
                f"Inode usage above defined maximum for {self.filesystem}", f"{self.max_percent}%", f"{actual}%"
            )
        return generic_error("Filesystem not found", self.filesystem, tabular.column(rows, 0))
