"""
Filesystem checks: path types, checksums, content and permissions.

Missing paths are ordinary failures. A path that exists but cannot be
inspected (permission denied, I/O error) raises ProbeError.
"""

from __future__ import annotations

import abc
import hashlib
import os
import re
import stat

from distributive.check import Check, Status, generic_error, success
from distributive.errors import ParameterTypeError, ProbeError
from distributive.params import parse_choice, parse_filemode, parse_nonempty, parse_regexp
from distributive.registry import register

CHECKSUM_ALGORITHMS = {
    "MD5": "md5",
    "SHA1": "sha1",
    "SHA224": "sha224",
    "SHA256": "sha256",
    "SHA384": "sha384",
    "SHA512": "sha512",
    "SHA3224": "sha3_224",
    "SHA3256": "sha3_256",
    "SHA3384": "sha3_384",
    "SHA3512": "sha3_512",
}
_HEX_RE = re.compile(r"^[0-9a-fA-F]+$")
_CHUNK = 1 << 16


def _lstat(path: str) -> os.stat_result | None:
    try:
        return os.lstat(path)
    except (FileNotFoundError, NotADirectoryError):
        return None
    except OSError as exc:
        raise ProbeError(f"Could not stat {path}: {exc}") from exc


class _PathType(Check):
    arity = 1
    type_name = ""

    def bind(self, parameters: list[str]) -> None:
        self.path = parse_nonempty(parameters[0], "path")

    @abc.abstractmethod
    def matches(self, mode: int) -> bool:
        """True when ``mode`` is this path type."""

    def status(self) -> Status:
        st = _lstat(self.path)
        if st is None:
            return 1, f"No such file or directory: {self.path}"
        if self.matches(st.st_mode):
            return success()
        return 1, f"Is not a {self.type_name}: {self.path}"


# A symlink counts as neither a file nor a directory.


@register("File")
class File(_PathType):
    type_name = "file"

    def matches(self, mode: int) -> bool:
        return stat.S_ISREG(mode)


@register("Directory")
class Directory(_PathType):
    type_name = "directory"

    def matches(self, mode: int) -> bool:
        return stat.S_ISDIR(mode)


@register("Symlink")
class Symlink(_PathType):
    type_name = "symlink"

    def matches(self, mode: int) -> bool:
        return stat.S_ISLNK(mode)


@register("Checksum")
class Checksum(Check):
    """Checksum(algorithm, expected hex digest, path). Hex comparison ignores case."""

    arity = 3

    def bind(self, parameters: list[str]) -> None:
        algorithm, expected, path = parameters
        self.algorithm = parse_choice(algorithm.replace("-", ""), CHECKSUM_ALGORITHMS, "checksum algorithm")
        if not _HEX_RE.match(expected):
            raise ParameterTypeError(expected, "hex digest")
        self.expected = expected.lower()
        self.path = parse_nonempty(path, "path")

    def digest(self) -> str:
        hasher = hashlib.new(CHECKSUM_ALGORITHMS[self.algorithm])
        try:
            with open(self.path, "rb") as fh:
                for chunk in iter(lambda: fh.read(_CHUNK), b""):
                    hasher.update(chunk)
        except OSError as exc:
            raise ProbeError(f"Could not read {self.path}: {exc}") from exc
        return hasher.hexdigest()

    def status(self) -> Status:
        if _lstat(self.path) is None:
            return 1, f"No such file or directory: {self.path}"
        actual = self.digest()
        if actual == self.expected:
            return success()
        return generic_error(f"Checksums do not match for file: {self.path}", self.expected, actual)


@register("FileMatches")
class FileMatches(Check):
    arity = 2

    def bind(self, parameters: list[str]) -> None:
        self.path = parse_nonempty(parameters[0], "path")
        self.pattern = parse_regexp(parameters[1])

    def status(self) -> Status:
        try:
            with open(self.path, encoding="utf-8", errors="replace") as fh:
                content = fh.read()
        except (FileNotFoundError, NotADirectoryError):
            return 1, f"No such file or directory: {self.path}"
        except OSError as exc:
            raise ProbeError(f"Could not read {self.path}: {exc}") from exc
        if self.pattern.search(content):
            return success()
        return generic_error("File does not match regexp", self.pattern.pattern, self.path)


@register("Permissions")
class Permissions(Check):
    """
    Permissions(path, "-rwxr-xr-x"). Symlinks are followed and only the nine
    permission bits are compared, so the actual string always starts with "-"
    whatever the file type, and setuid/setgid/sticky bits are ignored.
    """

    arity = 2

    def bind(self, parameters: list[str]) -> None:
        self.path = parse_nonempty(parameters[0], "path")
        self.mode = parse_filemode(parameters[1])

    def status(self) -> Status:
        try:
            st = os.stat(self.path)
        except (FileNotFoundError, NotADirectoryError):
            return 1, f"No such file or directory: {self.path}"
        except OSError as exc:
            raise ProbeError(f"Could not stat {self.path}: {exc}") from exc
        actual = stat.filemode(stat.S_IFREG | (st.st_mode & 0o777))
        if actual == self.mode:
            return success()
        return generic_error(f"Incorrect file permissions for {self.path}", self.mode, actual)
