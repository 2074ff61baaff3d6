"""
Network checks: listening ports, interfaces and addresses, routing table,
name resolution, TCP/UDP reachability and HTTP responses.
"""

from __future__ import annotations

import socket
import ssl
import urllib.error
import urllib.request

from distributive import commands
from distributive.check import Check, Status, generic_error, success
from distributive.errors import ProbeError
from distributive.params import (
    parse_address,
    parse_choice,
    parse_duration,
    parse_ip,
    parse_nonempty,
    parse_port,
    parse_regexp,
    parse_url,
)
from distributive.registry import register
from distributive.status import net

# -----------------------------------------------------------------------------
# Ports
# -----------------------------------------------------------------------------


class _PortCheck(Check):
    arity = 1
    protocol = "tcp"

    def bind(self, parameters: list[str]) -> None:
        self.port = parse_port(parameters[0])

    def status(self) -> Status:
        ports = net.local_ports(self.protocol)
        if self.port in ports:
            return success()
        return generic_error(f"Port not open ({self.protocol.upper()})", self.port, sorted(ports))


@register("Port")
class Port(_PortCheck):
    """Open on either protocol. A failure lists the TCP and UDP ports together."""

    def status(self) -> Status:
        ports = net.local_ports("tcp") | net.local_ports("udp")
        if self.port in ports:
            return success()
        return generic_error("Port not open", self.port, sorted(ports))


@register("PortTCP")
class PortTCP(_PortCheck):
    protocol = "tcp"


@register("PortUDP")
class PortUDP(_PortCheck):
    protocol = "udp"


# -----------------------------------------------------------------------------
# Interfaces
# -----------------------------------------------------------------------------


@register("InterfaceExists")
class InterfaceExists(Check):
    arity = 1

    def bind(self, parameters: list[str]) -> None:
        self.name = parse_nonempty(parameters[0], "interface name")

    def status(self) -> Status:
        names = net.interface_names()
        if self.name in names:
            return success()
        return generic_error("Interface does not exist", self.name, names)


@register("Up")
class Up(Check):
    arity = 1

    def bind(self, parameters: list[str]) -> None:
        self.name = parse_nonempty(parameters[0], "interface name")

    def status(self) -> Status:
        up = net.interface_is_up(self.name)
        if up is None:
            return generic_error("Interface does not exist", self.name, net.interface_names())
        if up:
            return success()
        return 1, f"Interface is not up: {self.name}"


class _InterfaceAddress(Check):
    arity = 2
    version: int | None = None

    def bind(self, parameters: list[str]) -> None:
        self.name = parse_nonempty(parameters[0], "interface name")
        self.address = parse_ip(parameters[1], self.version)

    def status(self) -> Status:
        addresses = net.interface_addresses(self.name, self.address.version)
        if self.address in addresses:
            return success()
        return generic_error(f"Interface does not have IP: {self.name}", self.address, addresses)


@register("IP4", "IP")
class IP4(_InterfaceAddress):
    version = 4


@register("IP6")
class IP6(_InterfaceAddress):
    version = 6


@register("InterfaceHasIP")
class InterfaceHasIP(_InterfaceAddress):
    """InterfaceHasIP(name, ip, family): family is 4 or 6 and must match the ip."""

    arity = 3

    def bind(self, parameters: list[str]) -> None:
        family = int(parse_choice(parameters[2], ("4", "6"), "IP family (4 | 6)"))
        self.name = parse_nonempty(parameters[0], "interface name")
        self.address = parse_ip(parameters[1], family)


# -----------------------------------------------------------------------------
# Routing table
# -----------------------------------------------------------------------------


@register("Gateway")
class Gateway(Check):
    """Gateway(ip): the default route goes through this gateway."""

    arity = 1

    def bind(self, parameters: list[str]) -> None:
        self.address = parse_ip(parameters[0], 4)

    def status(self) -> Status:
        route = net.default_route()
        actual = route.gateway if route else ""
        if actual == str(self.address):
            return success()
        return generic_error("Gateway does not match", self.address, actual)


@register("GatewayInterface")
class GatewayInterface(Check):
    """GatewayInterface(name): the default route leaves through this interface."""

    arity = 1

    def bind(self, parameters: list[str]) -> None:
        self.name = parse_nonempty(parameters[0], "interface name")

    def status(self) -> Status:
        route = net.default_route()
        actual = route.interface if route else ""
        if actual == self.name:
            return success()
        return generic_error("Default gateway does not operate on interface", self.name, actual)


class _RoutingTableColumn(Check):
    arity = 1
    field_name = ""

    def bind(self, parameters: list[str]) -> None:
        if self.field_name == "interface":
            self.value = parse_nonempty(parameters[0], "interface name")
        else:
            self.value = str(parse_ip(parameters[0], 4))

    def status(self) -> Status:
        values = [getattr(route, self.field_name) for route in net.routes()]
        if self.value in values:
            return success()
        return generic_error(f"Routing table does not have this {self.field_name}", self.value, values)


@register("RoutingTableDestination")
class RoutingTableDestination(_RoutingTableColumn):
    field_name = "destination"


@register("RoutingTableInterface")
class RoutingTableInterface(_RoutingTableColumn):
    field_name = "interface"


@register("RoutingTableGateway")
class RoutingTableGateway(_RoutingTableColumn):
    field_name = "gateway"


# -----------------------------------------------------------------------------
# Name resolution and reachability
# -----------------------------------------------------------------------------


@register("Host")
class Host(Check):
    """Host(hostname): the name resolves."""

    arity = 1

    def bind(self, parameters: list[str]) -> None:
        self.hostname = parse_nonempty(parameters[0], "hostname")

    def status(self) -> Status:
        try:
            socket.getaddrinfo(self.hostname, None)
        except socket.gaierror as exc:
            return 1, f"Host cannot be resolved: {self.hostname} ({exc})"
        return success()


class _Dial(Check):
    arity = 1
    protocol = "tcp"

    def bind(self, parameters: list[str]) -> None:
        self.host, self.port = parse_address(parameters[0])
        self.timeout = parse_duration(parameters[1]) if len(parameters) > 1 else None

    def dial(self, timeout: float) -> None:
        if self.protocol == "tcp":
            with socket.create_connection((self.host, self.port), timeout=timeout):
                return
        # UDP is connectionless: this only proves the address resolves and a route exists
        infos = socket.getaddrinfo(self.host, self.port, type=socket.SOCK_DGRAM)
        family, socktype, proto, _, sockaddr = infos[0]
        with socket.socket(family, socktype, proto) as sock:
            sock.settimeout(timeout)
            sock.connect(sockaddr)

    def status(self) -> Status:
        timeout = commands.TIMEOUTS.dial if self.timeout is None else self.timeout
        try:
            self.dial(timeout)
        except OSError as exc:
            return 1, f"Could not connect over {self.protocol.upper()} to {self.host}:{self.port}: {exc}"
        return success()


@register("TCP")
class TCP(_Dial):
    protocol = "tcp"


@register("UDP")
class UDP(_Dial):
    protocol = "udp"


@register("TCPTimeout")
class TCPTimeout(_Dial):
    arity = 2
    protocol = "tcp"


@register("UDPTimeout")
class UDPTimeout(_Dial):
    arity = 2
    protocol = "udp"


# -----------------------------------------------------------------------------
# HTTP
# -----------------------------------------------------------------------------


@register("ResponseMatches")
class ResponseMatches(Check):
    """ResponseMatches(url, regexp): the response body matches."""

    arity = 2
    verify_tls = True

    def bind(self, parameters: list[str]) -> None:
        self.url = parse_url(parameters[0])
        self.pattern = parse_regexp(parameters[1])

    def fetch(self) -> str:
        context = None
        if not self.verify_tls:
            context = ssl.create_default_context()
            context.check_hostname = False
            context.verify_mode = ssl.CERT_NONE
        try:
            with urllib.request.urlopen(self.url, timeout=commands.TIMEOUTS.http, context=context) as response:
                return response.read().decode("utf-8", errors="replace")
        except urllib.error.HTTPError as exc:
            # HTTPError carries the response body
            return exc.read().decode("utf-8", errors="replace")
        except (urllib.error.URLError, OSError) as exc:
            raise ProbeError(f"Could not fetch {self.url}: {exc}") from exc

    def status(self) -> Status:
        body = self.fetch()
        if self.pattern.search(body):
            return success()
        return generic_error(f"Response from {self.url} didn't match regexp", self.pattern.pattern, body[:200])


@register("ResponseMatchesInsecure")
class ResponseMatchesInsecure(ResponseMatches):
    """Like ResponseMatches, without TLS certificate verification."""

    verify_tls = False
