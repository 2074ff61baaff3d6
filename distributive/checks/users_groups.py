"""
User and group checks, resolved through the system account databases
(pwd / grp, so NSS sources such as LDAP are included).

A "user" parameter is a username, or a UID when it is all digits.
"""

from __future__ import annotations

import abc
import grp
import pwd

from distributive.check import Check, Status, generic_error, success
from distributive.params import parse_int, parse_name, parse_nonempty
from distributive.registry import register

MAX_USERNAME_LENGTH = 32


def _parse_user(value: str) -> str:
    return parse_name(value, "username or UID", MAX_USERNAME_LENGTH)


def _parse_group(value: str) -> str:
    return parse_name(value, "group name")


def _lookup_user(user: str) -> pwd.struct_passwd | None:
    try:
        if user.isdigit():
            return pwd.getpwuid(int(user))
        return pwd.getpwnam(user)
    except KeyError:
        return None


def _lookup_group(name: str) -> grp.struct_group | None:
    try:
        return grp.getgrnam(name)
    except KeyError:
        return None


def _group_names() -> list[str]:
    return sorted(group.gr_name for group in grp.getgrall())


@register("GroupExists")
class GroupExists(Check):
    arity = 1

    def bind(self, parameters: list[str]) -> None:
        self.group = _parse_group(parameters[0])

    def status(self) -> Status:
        if _lookup_group(self.group) is not None:
            return success()
        return generic_error("Group not found", self.group, _group_names())


@register("UserInGroup")
class UserInGroup(Check):
    """UserInGroup(user, group): supplementary member, or the group is the user's primary group."""

    arity = 2

    def bind(self, parameters: list[str]) -> None:
        self.user = _parse_user(parameters[0])
        self.group = _parse_group(parameters[1])

    def status(self) -> Status:
        group = _lookup_group(self.group)
        if group is None:
            return generic_error("Group not found", self.group, _group_names())
        account = _lookup_user(self.user)
        username = account.pw_name if account else self.user
        if username in group.gr_mem or (account is not None and account.pw_gid == group.gr_gid):
            return success()
        return generic_error(f"User not found in group {self.group}", username, group.gr_mem)


@register("GroupID")
class GroupID(Check):
    arity = 2

    def bind(self, parameters: list[str]) -> None:
        self.group = _parse_group(parameters[0])
        self.gid = parse_int(parameters[1], 0, None, "GID")

    def status(self) -> Status:
        group = _lookup_group(self.group)
        if group is None:
            return generic_error("Group not found", self.group, _group_names())
        if group.gr_gid == self.gid:
            return success()
        return generic_error(f"Group does not have expected ID: {self.group}", self.gid, group.gr_gid)


@register("UserExists")
class UserExists(Check):
    arity = 1

    def bind(self, parameters: list[str]) -> None:
        self.user = _parse_user(parameters[0])

    def status(self) -> Status:
        if _lookup_user(self.user) is not None:
            return success()
        return 1, f"User does not exist: {self.user}"


class _UserAttribute(Check):
    """Compare one passwd field of ``user`` with the expected value."""

    arity = 2
    label = ""

    def parse_expected(self, value: str) -> object:
        return parse_nonempty(value, self.label)

    @abc.abstractmethod
    def actual(self, account: pwd.struct_passwd) -> object:
        """The passwd field being compared."""

    def bind(self, parameters: list[str]) -> None:
        self.user = _parse_user(parameters[0])
        self.expected = self.parse_expected(parameters[1])

    def status(self) -> Status:
        account = _lookup_user(self.user)
        if account is None:
            return 1, f"User does not exist: {self.user}"
        actual = self.actual(account)
        if actual == self.expected:
            return success()
        return generic_error(f"User does not have expected {self.label}", self.expected, actual)


@register("UserHasUID")
class UserHasUID(_UserAttribute):
    label = "UID"

    def parse_expected(self, value: str) -> int:
        return parse_int(value, 0, None, "UID")

    def actual(self, account: pwd.struct_passwd) -> int:
        return account.pw_uid


@register("UserHasGID")
class UserHasGID(_UserAttribute):
    label = "GID"

    def parse_expected(self, value: str) -> int:
        return parse_int(value, 0, None, "GID")

    def actual(self, account: pwd.struct_passwd) -> int:
        return account.pw_gid


@register("UserHasUsername")
class UserHasUsername(_UserAttribute):
    label = "username"

    def parse_expected(self, value: str) -> str:
        return parse_name(value, "username", MAX_USERNAME_LENGTH)

    def actual(self, account: pwd.struct_passwd) -> str:
        return account.pw_name


@register("UserHasHomeDir")
class UserHasHomeDir(_UserAttribute):
    label = "home directory"

    def actual(self, account: pwd.struct_passwd) -> str:
        return account.pw_dir
