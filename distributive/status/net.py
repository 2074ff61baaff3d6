"""Network state: listening ports, routes and interface addresses."""

from __future__ import annotations

import ipaddress
import os
import socket
import struct
from dataclasses import dataclass

import psutil

from distributive import tabular
from distributive.errors import ProbeError

PROC_NET = "/proc/net"
TCP_LISTEN = "0A"


def _read(path: str) -> str:
    try:
        with open(path, encoding="utf-8") as fh:
            return fh.read()
    except OSError as exc:
        raise ProbeError(f"Could not read {path}: {exc}") from exc


def local_ports(protocol: str, proc_net: str = PROC_NET) -> set[int]:
    """Local ports in the kernel's tcp/udp tables (IPv4 and, if present, IPv6).

    TCP sockets count only in LISTEN state; every bound UDP socket counts.
    """
    ports: set[int] = set()
    for suffix in ("", "6"):
        path = os.path.join(proc_net, protocol + suffix)
        if suffix and not os.path.exists(path):
            continue
        for line in _read(path).splitlines()[1:]:
            fields = line.split()
            if len(fields) < 4:
                continue
            if protocol == "tcp" and fields[3] != TCP_LISTEN:
                continue
            # local_address is HEXIP:HEXPORT
            _, _, port_hex = fields[1].rpartition(":")
            try:
                ports.add(int(port_hex, 16))
            except ValueError:
                continue
    return ports


# -----------------------------------------------------------------------------
# Routing table
# -----------------------------------------------------------------------------


@dataclass(frozen=True)
class Route:
    interface: str
    destination: str
    gateway: str
    mask: str


def _hex_to_ipv4(value: str) -> str:
    # /proc/net/route stores addresses as little-endian hex
    return socket.inet_ntoa(struct.pack("<L", int(value, 16)))


def routes(path: str = os.path.join(PROC_NET, "route")) -> list[Route]:
    table = tabular.split(_read(path))
    columns = [tabular.column_by_header(table, name) for name in ("Iface", "Destination", "Gateway", "Mask")]
    try:
        return [
            Route(iface, _hex_to_ipv4(dest), _hex_to_ipv4(gw), _hex_to_ipv4(mask))
            for iface, dest, gw, mask in zip(*columns)
        ]
    except (ValueError, struct.error) as exc:
        raise ProbeError(f"Could not parse routing table {path}: {exc}") from exc


def default_route(path: str = os.path.join(PROC_NET, "route")) -> Route | None:
    for route in routes(path):
        if route.destination == "0.0.0.0":
            return route
    return None


# -----------------------------------------------------------------------------
# Interfaces
# -----------------------------------------------------------------------------


def interface_names() -> list[str]:
    return sorted(psutil.net_if_addrs())


def interface_is_up(name: str) -> bool | None:
    """None when the interface does not exist."""
    stats = psutil.net_if_stats().get(name)
    return None if stats is None else stats.isup


def interface_addresses(name: str, version: int | None = None) -> list[ipaddress.IPv4Address | ipaddress.IPv6Address]:
    families = {4: {socket.AF_INET}, 6: {socket.AF_INET6}}.get(version, {socket.AF_INET, socket.AF_INET6})
    addresses = []
    for snic in psutil.net_if_addrs().get(name, []):
        if snic.family not in families:
            continue
        # Link-local IPv6 addresses carry a "%iface" zone suffix
        text = snic.address.split("%", 1)[0]
        try:
            addresses.append(ipaddress.ip_address(text))
        except ValueError:
            continue
    return addresses
