"""Abstract store interface.

tagwatch keeps its whole state in one JSON blob. A backend only has to get
and put that blob by key; parsing and validation happen in tagwatch_core.
The CLI depends on BaseStore, not on a concrete backend, so backends are
swappable without touching CLI code.
"""

from __future__ import annotations

from abc import ABC, abstractmethod


class BaseStore(ABC):
    """Key-value persistence for the state blob.

    Implementations must be usable from scheduled CI jobs where no
    interactive credentials are available: all auth happens via constructor
    arguments resolved at init time. Write errors propagate to the caller.
    """

    @abstractmethod
    def get(self, key: str) -> str | None:
        """Return the value stored under ``key``, or None if there is none."""

    @abstractmethod
    def put(self, key: str, value: str) -> None:
        """Store ``value`` under ``key``, replacing any previous value."""

    def close(self) -> None:
        """Release any resources held by the store (connections, file handles).

        Optional: the default is a no-op so callers can always call close().
        """
