"""Lenient semantic version parsing for release tags.

Upstream tags don't always follow semver strictly: they carry a ``v`` prefix
and Android/iOS builds may have a fourth numeric segment (``1.2.3.4``). The
fourth segment is stored as build metadata, the way the tags are read
everywhere else in tagwatch.
"""

from __future__ import annotations

import functools
import re
from dataclasses import dataclass

_VERSION_RE = re.compile(
    r"""
    ^\s*v?
    (?P<major>\d+)
    (?:\.(?P<minor>\d+))?
    (?:\.(?P<patch>\d+))?
    (?:\.(?P<fourth>\d+))?
    (?:-(?P<pre>[0-9A-Za-z.-]+))?
    (?:\+(?P<build>[0-9A-Za-z.-]+))?
    \s*$
    """,
    re.VERBOSE | re.IGNORECASE,
)


def _identifiers(text: str | None) -> tuple[str, ...]:
    if not text:
        return ()
    return tuple(part for part in text.split(".") if part)


def _compare_identifiers(lhs: tuple[str, ...], rhs: tuple[str, ...]) -> int:
    """Compare dot-separated identifiers with semver precedence rules."""
    for a, b in zip(lhs, rhs):
        if a == b:
            continue
        a_numeric, b_numeric = a.isdigit(), b.isdigit()
        if a_numeric and b_numeric:
            return -1 if int(a) < int(b) else 1
        if a_numeric != b_numeric:
            # Numeric identifiers always have lower precedence than alphanumeric ones.
            return -1 if a_numeric else 1
        return -1 if a < b else 1
    return (len(lhs) > len(rhs)) - (len(lhs) < len(rhs))


@functools.total_ordering
@dataclass(frozen=True, eq=False)
class Version:
    major: int
    minor: int = 0
    patch: int = 0
    pre: tuple[str, ...] = ()
    build: tuple[str, ...] = ()

    def _cmp(self, other: Version) -> int:
        core = (self.major, self.minor, self.patch)
        other_core = (other.major, other.minor, other.patch)
        if core != other_core:
            return -1 if core < other_core else 1

        if self.pre != other.pre:
            # A version without prerelease identifiers has higher precedence.
            if not self.pre:
                return 1
            if not other.pre:
                return -1
            result = _compare_identifiers(self.pre, other.pre)
            if result:
                return result

        return _compare_identifiers(self.build, other.build)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Version):
            return NotImplemented
        return self._cmp(other) == 0

    def __lt__(self, other: Version) -> bool:
        if not isinstance(other, Version):
            return NotImplemented
        return self._cmp(other) < 0

    def __hash__(self) -> int:
        return hash((self.major, self.minor, self.patch))

    def same_release(self, other: Version) -> bool:
        """True if both versions share major.minor, i.e. belong to the same release."""
        return (self.major, self.minor) == (other.major, other.minor)

    def __str__(self) -> str:
        text = f"{self.major}.{self.minor}.{self.patch}"
        if self.pre:
            text += "-" + ".".join(self.pre)
        if self.build:
            text += "+" + ".".join(self.build)
        return text


def parse_version(text: str) -> Version:
    """Parse a tag name like ``v1.2.3``, ``1.2.3.4-beta`` or ``v1.2.3-beta.1``.

    Raises ValueError if the text is not a recognizable version.
    """
    match = _VERSION_RE.match(text)
    if not match:
        raise ValueError(f"could not parse version from {text!r}")

    build = _identifiers(match.group("fourth")) + _identifiers(match.group("build"))
    return Version(
        major=int(match.group("major")),
        minor=int(match.group("minor") or 0),
        patch=int(match.group("patch") or 0),
        pre=_identifiers(match.group("pre")),
        build=build,
    )
