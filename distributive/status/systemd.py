"""systemctl queries."""

from __future__ import annotations

from distributive import commands, tabular


def systemctl(*args: str) -> str:
    return commands.output(["systemctl", *args])


def unit_property(unit: str, prop: str) -> str:
    """``systemctl show -p Prop unit`` -> value ("" if the property is absent)."""
    for line in systemctl("show", "-p", prop, unit).splitlines():
        key, sep, value = line.partition("=")
        if sep and key.strip() == prop:
            return value.strip()
    return ""


def listening_sockets() -> list[str]:
    return tabular.column_by_header(tabular.split(systemctl("list-sockets", "--all")), "LISTEN")


def timers(all_units: bool = False) -> list[str]:
    args = ["list-timers", "--all"] if all_units else ["list-timers"]
    # NEXT/LAST columns contain spaces, so pick the .timer cells out directly
    return [cell for row in tabular.split(systemctl(*args)) for cell in row if cell.endswith(".timer")]


def unit_file_states() -> dict[str, str]:
    table = tabular.split(systemctl("list-unit-files", "--no-legend"))
    return {row[0]: row[1] for row in table if len(row) >= 2}
