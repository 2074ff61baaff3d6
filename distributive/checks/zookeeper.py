"""
ZooKeeper checks using the four-letter-word admin commands (ruok, srvr)
over a plain TCP connection.
"""

from __future__ import annotations

import re
import socket
from dataclasses import dataclass

from distributive.check import Check, Status, success
from distributive.errors import ProbeError
from distributive.params import parse_address, parse_duration, parse_nonempty
from distributive.registry import register

DEFAULT_CLIENT_PORT = 2181
_SERVER_LINE_RE = re.compile(r"^server\.\d+=([^:\s]+)")
_CLIENT_PORT_RE = re.compile(r"^clientPort=(\d+)")
_LATENCY_RE = re.compile(r"^Latency min/avg/max:\s*([\d.]+)/([\d.]+)/([\d.]+)", re.MULTILINE)
_MODE_RE = re.compile(r"^Mode:\s*(\w+)", re.MULTILINE)


def four_letter_word(host: str, port: int, command: str, timeout: float) -> str:
    with socket.create_connection((host, port), timeout=timeout) as sock:
        sock.sendall(command.encode("ascii"))
        chunks = []
        while True:
            data = sock.recv(4096)
            if not data:
                break
            chunks.append(data)
    return b"".join(chunks).decode("utf-8", errors="replace")


@dataclass(frozen=True)
class ServerStats:
    server: str
    mode: str
    avg_latency_ms: float


def server_stats(host: str, port: int, timeout: float) -> ServerStats:
    server = f"{host}:{port}"
    try:
        reply = four_letter_word(host, port, "srvr", timeout)
    except OSError as exc:
        raise ProbeError(f"srvr request to {server} failed: {exc}") from exc
    latency = _LATENCY_RE.search(reply)
    mode = _MODE_RE.search(reply)
    if not latency or not mode:
        raise ProbeError(f"Unexpected srvr reply from {server}: {reply.strip()[:200]!r}")
    return ServerStats(server, mode.group(1), float(latency.group(2)))


class _ServerList(Check):
    """(duration, server...) with at least one server."""

    min_arity = 2

    def bind(self, parameters: list[str]) -> None:
        self.duration = parse_duration(parameters[0])
        self.servers = tuple(parse_address(server) for server in parameters[1:])


@register("ZooKeeperRUOK")
class ZooKeeperRUOK(_ServerList):
    """ZooKeeperRUOK(timeout, servers...): every server answers ruok with imok."""

    def status(self) -> Status:
        failed = []
        for host, port in self.servers:
            try:
                ok = four_letter_word(host, port, "ruok", self.duration) == "imok"
            except OSError:
                ok = False
            if not ok:
                failed.append(f"{host}:{port}")
        if not failed:
            return success()
        return 1, "Failed: " + ",".join(failed)


@register("ZooKeeperLatency")
class ZooKeeperLatency(_ServerList):
    """ZooKeeperLatency(max latency, servers...): average latency of every server is below max."""

    def status(self) -> Status:
        stats = [server_stats(host, port, self.duration) for host, port in self.servers]
        slow = [s.server for s in stats if s.avg_latency_ms / 1000.0 > self.duration]
        if not slow:
            return success()
        return 1, "Latency too high: " + ",".join(slow)


@register("ZooKeeperQuorum")
class ZooKeeperQuorum(Check):
    """ZooKeeperQuorum(timeout, zoo.cfg path): the ensemble listed in the config has one leader.

    A single-server config must report standalone mode.
    """

    arity = 2

    def bind(self, parameters: list[str]) -> None:
        self.timeout = parse_duration(parameters[0])
        self.config = parse_nonempty(parameters[1], "path")

    def load_servers(self) -> list[tuple[str, int]]:
        try:
            with open(self.config, encoding="utf-8") as fh:
                lines = [line.strip() for line in fh]
        except OSError as exc:
            raise ProbeError(f"Could not read ZooKeeper config {self.config}: {exc}") from exc
        port = DEFAULT_CLIENT_PORT
        hosts = []
        for line in lines:
            client_port = _CLIENT_PORT_RE.match(line)
            server = _SERVER_LINE_RE.match(line)
            if client_port:
                port = int(client_port.group(1))
            elif server:
                hosts.append(server.group(1))
        if not hosts:
            hosts = ["localhost"]
        return [(host, port) for host in hosts]

    def status(self) -> Status:
        servers = self.load_servers()
        modes = []
        for host, port in servers:
            try:
                modes.append(server_stats(host, port, self.timeout).mode)
            except ProbeError:
                modes.append("unreachable")

        if len(servers) == 1:
            host, port = servers[0]
            if modes[0] == "standalone":
                return success()
            return 1, f"{host}:{port}: mode is '{modes[0]}', when should be 'standalone' for single server"

        leaders = modes.count("leader")
        followers = modes.count("follower")
        if leaders == 1:
            return success()
        return 1, (
            f"Failed: cluster has {leaders} leaders (expected 1); "
            f"followers: {followers}, other: {len(modes) - leaders - followers}"
        )
