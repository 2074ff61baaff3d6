"""
Check contract.

Every probe is a ``Check`` subclass with two phases:

  validate(parameters) -> Check
      Arity check, then ``bind`` parses every positional parameter into its
      typed form. Pure: no I/O, no blocking. Raises ParameterLengthError or
      ParameterTypeError. The instance is sealed afterwards.

  status() -> (code, message)
      Probes the live system. (0, "") passes, (1, message) fails; raises
      ProbeError when no verdict could be reached.

The engine calls ``probe()``, which refuses to run an unvalidated check.
"""

from __future__ import annotations

import abc
from collections.abc import Iterable, Sequence
from typing import Any, ClassVar

from distributive.errors import ParameterLengthError

Status = tuple[int, str]

# GenericError truncates long "Actual" lists
MAX_ACTUAL_ITEMS = 50


class Check(abc.ABC):
    check_id: ClassVar[str] = ""
    # Exact parameter count. Variadic checks set min_arity instead.
    arity: ClassVar[int | None] = None
    min_arity: ClassVar[int | None] = None

    _validated = False

    def __setattr__(self, name: str, value: Any) -> None:
        if self._validated:
            raise AttributeError(f"{type(self).__name__} is immutable once validated")
        super().__setattr__(name, value)

    @property
    def validated(self) -> bool:
        return self._validated

    def validate(self, parameters: Sequence[str]) -> Check:
        if self._validated:
            return type(self)().validate(parameters)
        parameters = list(parameters)
        self._check_arity(parameters)
        self.bind(parameters)
        object.__setattr__(self, "_validated", True)
        return self

    def _check_arity(self, parameters: list[str]) -> None:
        if self.min_arity is not None:
            if len(parameters) < self.min_arity:
                raise ParameterLengthError(f"at least {self.min_arity}", parameters)
        elif self.arity is not None and len(parameters) != self.arity:
            raise ParameterLengthError(self.arity, parameters)

    @abc.abstractmethod
    def bind(self, parameters: list[str]) -> None:
        """Parse ``parameters`` onto ``self``. Arity is already checked."""

    @abc.abstractmethod
    def status(self) -> Status:
        """Probe the system."""

    def probe(self) -> Status:
        if not self._validated:
            raise RuntimeError(f"{type(self).__name__}.probe() called before validate()")
        return self.status()

    def __repr__(self) -> str:
        fields = {k: v for k, v in vars(self).items() if not k.startswith("_")}
        return f"{type(self).__name__}({fields})"


def success() -> Status:
    return 0, ""


def generic_error(message: str, specified: object, actual: Iterable[object] | object) -> Status:
    """Failure that shows what was asked for next to what was found."""
    if isinstance(actual, (list, tuple, set, frozenset)):
        items = [str(a) for a in actual]
        if len(items) > MAX_ACTUAL_ITEMS:
            items = items[:MAX_ACTUAL_ITEMS] + ["..."]
        actual_str = ", ".join(items)
    else:
        actual_str = str(actual)
    return 1, f"{message}:\n\tSpecified: {specified}\n\tActual: {actual_str}"
