from __future__ import annotations

from enum import IntEnum


class Completeness(IntEnum):
    """How sure we are that a language list covers every changed language.

    Ordered, so the completeness of an accumulated list is the ``min`` of its parts.
    """

    INCOMPLETE = 0
    LIKELY_COMPLETE = 1
    COMPLETE = 2

    @property
    def warning_text(self) -> str:
        if self is Completeness.INCOMPLETE:
            return ":warning: For technical reasons, not all languages may be listed below."
        if self is Completeness.LIKELY_COMPLETE:
            return (
                "For technical reasons, not all languages may be listed below. However, everything from "
                '"Updated language translations" and similar commits is listed, so the list is likely complete.'
            )
        return ""

    @property
    def key(self) -> str:
        """Name used in the persisted state blob."""
        return self.name.lower()

    @classmethod
    def from_key(cls, key: str) -> Completeness:
        try:
            return cls[str(key).upper()]
        except KeyError:
            raise ValueError(f"Unknown completeness: {key!r}") from None
