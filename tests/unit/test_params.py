"""Unit tests for distributive.params (typed parameter parsers)."""

from __future__ import annotations

import ipaddress

import pytest

from distributive.errors import ParameterTypeError
from distributive.params import (
    parse_address,
    parse_bytes,
    parse_choice,
    parse_duration,
    parse_filemode,
    parse_int,
    parse_ip,
    parse_name,
    parse_percent,
    parse_port,
    parse_regexp,
    parse_temperature,
    parse_url,
)


class TestNumbers:
    @pytest.mark.parametrize("value,expected", [("0", 0), ("80", 80), ("65535", 65535), (" 22 ", 22)])
    def test_port(self, value, expected):
        assert parse_port(value) == expected

    @pytest.mark.parametrize("value", ["-1", "65536", "http", "", "8.0"])
    def test_bad_port(self, value):
        with pytest.raises(ParameterTypeError) as info:
            parse_port(value)
        assert info.value.parameter == value
        assert "port" in info.value.expected

    def test_int_range(self):
        assert parse_int("5", 0, 10) == 5
        with pytest.raises(ParameterTypeError):
            parse_int("11", 0, 10)

    @pytest.mark.parametrize("value,expected", [("85", 85), ("85%", 85), ("0", 0), ("100%", 100)])
    def test_percent(self, value, expected):
        assert parse_percent(value) == expected

    def test_percent_out_of_range(self):
        with pytest.raises(ParameterTypeError):
            parse_percent("101%")

    @pytest.mark.parametrize("value", ["80", "80C", "80c", "80°C", "80℃"])
    def test_temperature(self, value):
        assert parse_temperature(value) == 80


class TestDuration:
    @pytest.mark.parametrize(
        "value,seconds",
        [
            ("0", 0.0),
            ("5s", 5.0),
            ("300ms", 0.3),
            ("1.5h", 5400.0),
            ("2h45m", 9900.0),
            ("10us", 1e-5),
            ("10µs", 1e-5),
            ("100ns", 1e-7),
        ],
    )
    def test_go_syntax(self, value, seconds):
        assert parse_duration(value) == pytest.approx(seconds)

    @pytest.mark.parametrize("value", ["", "5", "five seconds", "5 s", "-5s", "5d", "1h 30m"])
    def test_rejected(self, value):
        with pytest.raises(ParameterTypeError, match="duration"):
            parse_duration(value)


class TestNetwork:
    def test_ip(self):
        assert parse_ip("10.0.0.1") == ipaddress.ip_address("10.0.0.1")
        assert parse_ip("::1", 6) == ipaddress.ip_address("::1")

    def test_ip_family_mismatch(self):
        with pytest.raises(ParameterTypeError, match="IPv4"):
            parse_ip("::1", 4)

    def test_bad_ip(self):
        with pytest.raises(ParameterTypeError):
            parse_ip("300.1.1.1")

    @pytest.mark.parametrize(
        "value,expected",
        [
            ("localhost:2181", ("localhost", 2181)),
            ("10.0.0.1:80", ("10.0.0.1", 80)),
            ("[::1]:443", ("::1", 443)),
        ],
    )
    def test_address(self, value, expected):
        assert parse_address(value) == expected

    @pytest.mark.parametrize("value", ["localhost", ":80", "host:http", "host:70000"])
    def test_bad_address(self, value):
        with pytest.raises(ParameterTypeError, match="host:port"):
            parse_address(value)

    def test_url(self):
        assert parse_url("https://example.com/health") == "https://example.com/health"
        with pytest.raises(ParameterTypeError):
            parse_url("ftp://example.com")


class TestBytes:
    @pytest.mark.parametrize(
        "value,expected",
        [
            ("512", 512),
            ("512b", 512),
            ("1kb", 1024),
            ("2KB", 2048),
            ("3 MB", 3 * 1024**2),
            ("2GiB", 2 * 1024**3),
            ("1 gigabyte", 1024**3),
            ("1TB", 1024**4),
            ("4 terabytes", 4 * 1024**4),
        ],
    )
    def test_units(self, value, expected):
        assert parse_bytes(value) == expected

    @pytest.mark.parametrize("value", ["", "GB", "1.5GB", "2 parsecs"])
    def test_rejected(self, value):
        with pytest.raises(ParameterTypeError):
            parse_bytes(value)


class TestText:
    def test_regexp(self):
        assert parse_regexp(r"^ok\d+").match("ok42")

    def test_bad_regexp(self):
        with pytest.raises(ParameterTypeError, match="regexp"):
            parse_regexp("[unclosed")

    def test_choice_returns_canonical_spelling(self):
        assert parse_choice("dPkG", ["dpkg", "rpm", "pacman"]) == "dpkg"

    def test_bad_choice_lists_options(self):
        with pytest.raises(ParameterTypeError, match=r"dpkg \| rpm"):
            parse_choice("apt", ["dpkg", "rpm"])

    @pytest.mark.parametrize("value", ["-rwxr-xr-x", "-rw-r-----", "----------"])
    def test_filemode(self, value):
        assert parse_filemode(value) == value

    @pytest.mark.parametrize("value", ["755", "rwxr-xr-x", "-rwxr-xr-xx", "-rwzr-xr-x", "drwxr-xr-x", "-rwsr-xr-x"])
    def test_bad_filemode(self, value):
        with pytest.raises(ParameterTypeError, match="filemode"):
            parse_filemode(value)

    def test_name(self):
        assert parse_name("deploy", "username", 32) == "deploy"
        with pytest.raises(ParameterTypeError):
            parse_name("bad:name", "username")
        with pytest.raises(ParameterTypeError):
            parse_name("x" * 33, "username", 32)
