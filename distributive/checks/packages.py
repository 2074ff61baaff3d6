"""
Package manager checks (dpkg, rpm, pacman).

The manager is the first of MANAGERS found on PATH. Repository listings come
from apt source lists, ``yum repolist`` and /etc/pacman.conf.
"""

from __future__ import annotations

import glob
import re
import shutil
from dataclasses import dataclass

from distributive import commands, tabular
from distributive.check import Check, Status, generic_error, success
from distributive.errors import ProbeError
from distributive.params import parse_choice, parse_nonempty, parse_regexp
from distributive.registry import register

# manager -> query for one installed package
MANAGERS = {
    "dpkg": ["dpkg", "-s"],
    "rpm": ["rpm", "-q"],
    "pacman": ["pacman", "-Q"],
}
APT_SOURCES = "/etc/apt/sources.list"
APT_SOURCES_DIR = "/etc/apt/sources.list.d"
PACMAN_CONF = "/etc/pacman.conf"

_PACMAN_SECTION_RE = re.compile(r"^\s*\[([\w-]+)\]")
_PACMAN_SERVER_RE = re.compile(r"^\s*(Include|Server)\s*=\s*(.+)$")
_PACMAN_IGNORE_RE = re.compile(r"^\s*IgnorePkg\s*=\s*(.+)$")


@dataclass(frozen=True)
class Repo:
    name: str = ""
    url: str = ""
    status: str = ""


def detect_manager() -> str:
    for manager in MANAGERS:
        if shutil.which(manager):
            return manager
    raise ProbeError(f"No supported package manager found (tried: {', '.join(MANAGERS)})")


def _read_lines(path: str) -> list[str]:
    try:
        with open(path, encoding="utf-8") as fh:
            return fh.read().splitlines()
    except FileNotFoundError:
        return []
    except OSError as exc:
        raise ProbeError(f"Could not read {path}: {exc}") from exc


def apt_repos() -> list[Repo]:
    repos = []
    for path in [APT_SOURCES, *sorted(glob.glob(f"{APT_SOURCES_DIR}/*.list"))]:
        for line in _read_lines(path):
            fields = line.split()
            if len(fields) < 2 or fields[0].startswith("#") or fields[0] not in ("deb", "deb-src"):
                continue
            # Skip an options block: deb [arch=amd64 signed-by=...] http://...
            rest = fields[1:]
            while rest and rest[0].startswith("["):
                closing = next((i for i, f in enumerate(rest) if f.endswith("]")), len(rest) - 1)
                rest = rest[closing + 1 :]
            if rest:
                suite = rest[1] if len(rest) > 1 else ""
                repos.append(Repo(name=suite, url=rest[0]))
    return repos


def yum_repos() -> list[Repo]:
    rows = tabular.split(commands.output(["yum", "-q", "repolist", "all"]))
    repos = []
    for row in rows[1:]:
        if len(row) < 2:
            continue
        repos.append(Repo(name=row[0], url="", status=row[-1]))
    return repos


def pacman_repos(path: str = PACMAN_CONF) -> list[Repo]:
    repos = []
    current = None
    for line in _read_lines(path):
        if line.lstrip().startswith("#"):
            continue
        section = _PACMAN_SECTION_RE.match(line)
        if section:
            current = section.group(1)
            if current != "options":
                repos.append(Repo(name=current))
            continue
        server = _PACMAN_SERVER_RE.match(line)
        if server and current and current != "options" and not repos[-1].url:
            repos[-1] = Repo(name=current, url=server.group(2).strip())
    return repos


def repos_for(manager: str) -> list[Repo]:
    if manager == "dpkg":
        return apt_repos()
    if manager == "rpm":
        return yum_repos()
    return pacman_repos()


class _RepoExists(Check):
    """(manager, regexp): some repo's property matches the regexp."""

    arity = 2
    prop = "name"

    def bind(self, parameters: list[str]) -> None:
        self.manager = parse_choice(parameters[0], MANAGERS, "package manager (dpkg | rpm | pacman)")
        self.pattern = parse_regexp(parameters[1])

    def status(self) -> Status:
        values = [getattr(repo, self.prop) for repo in repos_for(self.manager)]
        if any(self.pattern.search(value) for value in values if value):
            return success()
        return generic_error(f"Repo with matching {self.prop} not found", self.pattern.pattern, values)


@register("RepoExists")
class RepoExists(_RepoExists):
    prop = "name"


@register("RepoExistsURI")
class RepoExistsURI(_RepoExists):
    prop = "url"


@register("PacmanIgnore")
class PacmanIgnore(Check):
    """PacmanIgnore(package): package is listed in IgnorePkg of pacman.conf."""

    arity = 1

    def bind(self, parameters: list[str]) -> None:
        self.package = parse_nonempty(parameters[0], "package name")

    def status(self) -> Status:
        ignored: list[str] = []
        for line in _read_lines(PACMAN_CONF):
            match = _PACMAN_IGNORE_RE.match(line)
            if match:
                ignored.extend(match.group(1).split())
        if self.package in ignored:
            return success()
        return generic_error("Couldn't find package in IgnorePkg", self.package, ignored)


@register("Installed")
class Installed(Check):
    arity = 1

    def bind(self, parameters: list[str]) -> None:
        self.package = parse_nonempty(parameters[0], "package name")

    def status(self) -> Status:
        manager = detect_manager()
        result = commands.execute([*MANAGERS[manager], self.package])
        output = (result.stdout + result.stderr).strip()
        if result.returncode == 0 and self.package in output:
            return success()
        return 1, (
            "Package was not found:"
            f"\n\tPackage name: {self.package}"
            f"\n\tPackage manager: {manager}"
            f"\n\tCommand output: {output}"
        )
