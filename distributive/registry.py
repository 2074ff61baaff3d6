"""
Check registry: process-wide map from check id to factory.

Ids are case-insensitive and stored lower-cased. Registration happens at
import time of ``distributive.checks`` and is guarded by a lock; lookups are
plain dict reads.

Usage:
    from distributive.registry import register

    @register("File")
    class File(Check):
        ...
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from distributive.check import Check

logger = logging.getLogger(__name__)

CheckFactory = Callable[[], "Check"]


class Registry:
    def __init__(self) -> None:
        self._factories: dict[str, CheckFactory] = {}
        self._names: dict[str, str] = {}
        self._lock = threading.Lock()

    def register(self, check_id: str, factory: CheckFactory) -> None:
        key = check_id.strip().lower()
        if not key:
            raise ValueError("check id must be a non-empty string")
        with self._lock:
            if key in self._factories:
                logger.warning(
                    "Check id %r registered twice; %r replaces %r",
                    check_id,
                    factory,
                    self._factories[key],
                )
            self._factories[key] = factory
            self._names[key] = check_id

    def lookup(self, check_id: str) -> CheckFactory | None:
        return self._factories.get(check_id.strip().lower())

    def ids(self) -> list[str]:
        """Canonical (lower-case) ids, sorted."""
        return sorted(self._factories)

    def names(self) -> list[str]:
        """Display ids as registered, sorted case-insensitively."""
        return [self._names[key] for key in self.ids()]

    def __contains__(self, check_id: object) -> bool:
        return isinstance(check_id, str) and self.lookup(check_id) is not None

    def __len__(self) -> int:
        return len(self._factories)


registry = Registry()


def register(*check_ids: str, target: Registry | None = None):
    """Class decorator: register a Check subclass under one or more ids.

    The first id becomes the class's display ``check_id``.
    """
    if not check_ids:
        raise ValueError("register() needs at least one check id")

    def decorator(cls):
        cls.check_id = check_ids[0]
        for check_id in check_ids:
            (registry if target is None else target).register(check_id, cls)
        return cls

    return decorator
