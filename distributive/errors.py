"""
Error taxonomy.

Every error carries a stable printable ``kind``. Parse-time kinds
(ParameterLengthError, ParameterTypeError, UnknownCheckError, DecodeError,
EmptyChecklistError, IOError at load) abort a run before any probe executes.
Probe-time kinds (ProbeError, ExecError) become failed outcomes.
"""

from __future__ import annotations

from collections.abc import Sequence


class DistributiveError(Exception):
    """Base class. ``annotate`` attaches the checklist entry that raised it."""

    kind = "DistributiveError"

    def __init__(self, message: str = "") -> None:
        super().__init__(message)
        self.message = message
        self.index: int | None = None
        self.entry_id: str | None = None

    def annotate(self, index: int, entry_id: str) -> DistributiveError:
        self.index = index
        self.entry_id = entry_id
        return self

    def __str__(self) -> str:
        if self.index is None:
            return self.message
        return f"checklist entry {self.index} ({self.entry_id}): {self.message}"


class ParameterLengthError(DistributiveError):
    kind = "ParameterLengthError"

    def __init__(self, expected: int | str, parameters: Sequence[str]) -> None:
        self.expected = expected
        self.parameters = list(parameters)
        super().__init__(
            f"Invalid number of parameters (expected: {expected}, got: {len(self.parameters)}). "
            f"They were: {self.parameters}"
        )


class ParameterTypeError(DistributiveError):
    kind = "ParameterTypeError"

    def __init__(self, parameter: str, expected: str) -> None:
        self.parameter = parameter
        self.expected = expected
        super().__init__(f"Invalid parameter {parameter!r}, expected type: {expected}")


class UnknownCheckError(DistributiveError):
    kind = "UnknownCheckError"

    def __init__(self, check_id: str) -> None:
        self.check_id = check_id
        super().__init__(f"Unknown check id: {check_id}")


class DecodeError(DistributiveError):
    kind = "DecodeError"


class EmptyChecklistError(DistributiveError):
    kind = "EmptyChecklistError"

    def __init__(self, origin: str) -> None:
        self.origin = origin
        super().__init__(f"Checklist from {origin} lists no checks")


class ChecklistIOError(DistributiveError):
    """A path or URL could not be read or written. Printed as ``IOError``."""

    kind = "IOError"

    def __init__(self, target: str, cause: BaseException | str) -> None:
        self.target = target
        self.cause = cause
        super().__init__(f"{target}: {cause}")


class ExecError(DistributiveError):
    kind = "ExecError"

    def __init__(
        self,
        command: Sequence[str] | str,
        reason: str,
        output: str = "",
        returncode: int | None = None,
    ) -> None:
        self.command = command if isinstance(command, str) else " ".join(command)
        self.reason = reason
        self.output = output
        self.returncode = returncode
        message = f"Command {self.command!r} failed: {reason}"
        if output.strip():
            message += f"\n\tOutput: {output.strip()[:500]}"
        super().__init__(message)


class ProbeError(DistributiveError):
    """The probe could not reach a verdict (unreadable /proc, missing binary, ...)."""

    kind = "ProbeError"
