"""Commit list rendering and revert correlation."""

from __future__ import annotations

import html
import re
from dataclasses import dataclass
from typing import Union

from tagwatch_core.platform import Platform

_REVERTS_COMMIT_RE = re.compile(r"This reverts commit ([a-zA-Z0-9]+)\.")
_MENTION_RE = re.compile(r"@([a-zA-Z0-9_-]+)")
_LOCALIZATION_KEYWORDS = (
    "language",
    "translation",
    "string",
    "release note",
    "i18n",
    "l10n",
    "update messages",
    "updated messages",
    "updates messages",
)


@dataclass(frozen=True)
class Normal:
    pass


@dataclass(frozen=True)
class Reverts:
    number: int


@dataclass(frozen=True)
class RevertedBy:
    number: int


@dataclass(frozen=True)
class Both:
    reverts: int
    reverted_by: int


CommitStatus = Union[Normal, Reverts, RevertedBy, Both]


@dataclass(frozen=True)
class Commit:
    platform: Platform
    message: str
    sha: str

    @property
    def reverted_sha(self) -> str | None:
        match = _REVERTS_COMMIT_RE.search(self.message)
        return match.group(1) if match else None

    @property
    def is_likely_localization_change(self) -> bool:
        """Whether the commit looks like a translations import, judging by its message."""
        lowercase = self.message.lower()
        return any(keyword in lowercase for keyword in _LOCALIZATION_KEYWORDS)

    def _message_lines(self) -> list[str]:
        lines = []
        for line in self.message.split("\n"):
            lowercase = line.lower()
            if "co-authored-by" in lowercase or "this reverts commit" in lowercase:
                continue
            lines.append(html.escape(_MENTION_RE.sub(r"`@\1`", line)))
        return lines

    def markdown(self, number: int, status: CommitStatus = Normal()) -> str:
        lines = self._message_lines()
        message = lines[0] if lines else "*Empty commit message*"
        commit_url = self.platform.commit_url(self.sha)

        if isinstance(status, Both):
            prefix, suffix = "<del>", f"</del> (reverts [{status.reverts}], reverted by [{status.reverted_by}])"
        elif isinstance(status, RevertedBy):
            prefix, suffix = "<del>", f"</del> (reverted by [{status.number}])"
        elif isinstance(status, Reverts):
            prefix, suffix = "<ins>", f"</ins> (reverts [{status.number}])"
        else:
            prefix, suffix = "", ""

        has_description = len(lines) >= 2
        show_description = has_description and self.platform.shows_commit_details
        omitted_notice = "[…] " if has_description and not show_description else ""

        text = f"- {prefix}{message} {omitted_notice}[[{number}]]({commit_url}){suffix}\n"
        if show_description:
            text += "\n    " + "\n    ".join(lines[1:])
        return text


def correlate_reverts(commits: list[Commit]) -> list[CommitStatus]:
    """Work out which commits revert, or are reverted by, other commits in the list.

    Commits are numbered from 1 by position. A revert whose target isn't in the
    list is ignored.
    """
    numbers = {commit.sha: number for number, commit in enumerate(commits, 1)}

    reverted_by: dict[str, str] = {}
    for commit in commits:
        target = commit.reverted_sha
        if target is not None:
            reverted_by[target] = commit.sha

    statuses: list[CommitStatus] = []
    for commit in commits:
        target = commit.reverted_sha
        reverts_number = numbers.get(target) if target is not None else None
        reverter = reverted_by.get(commit.sha)
        reverted_by_number = numbers.get(reverter) if reverter is not None else None

        if reverts_number is not None and reverted_by_number is not None:
            statuses.append(Both(reverts=reverts_number, reverted_by=reverted_by_number))
        elif reverted_by_number is not None:
            statuses.append(RevertedBy(reverted_by_number))
        elif reverts_number is not None:
            statuses.append(Reverts(reverts_number))
        else:
            statuses.append(Normal())
    return statuses


def commits_markdown(commits: list[Commit]) -> str:
    statuses = correlate_reverts(commits)
    return "\n".join(
        commit.markdown(number, status) for number, (commit, status) in enumerate(zip(commits, statuses), 1)
    )

