"""Forum post rendering with size fallback."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from tagwatch_core.commits import Commit, commits_markdown
from tagwatch_core.errors import PostTooLongError
from tagwatch_core.gh.repository import Tag
from tagwatch_core.localization.collection import LocalizationChangeCollection, RenderMode
from tagwatch_core.platform import BuildConfiguration, Platform

logger = logging.getLogger(__name__)

# Discourse rejects posts longer than this.
MAX_POST_LENGTH = 32_000

COMMITS_DETAILS_THRESHOLD = 10

MISSING_BUILD_NUMBER_NOTICE = "\n*Couldn't find the build number for this version.*"


def _plural(count: int) -> str:
    return "" if count == 1 else "s"


@dataclass
class Post:
    platform: Platform
    old_tag: Tag
    new_tag: Tag
    commits: list[Commit]
    unfiltered_commits_count: int
    localization: LocalizationChangeCollection | None
    build_configuration: BuildConfiguration | None = None

    def __post_init__(self):
        if len(self.commits) > self.unfiltered_commits_count:
            raise ValueError("more commits than the unfiltered count")

    def _build_line(self) -> str:
        if not self.platform.expects_build_number:
            return ""
        if self.build_configuration is None:
            return MISSING_BUILD_NUMBER_NOTICE
        return f" (build {self.build_configuration.build_number})"

    def _localization_section(self, mode: RenderMode) -> str:
        if self.localization is None:
            return ""
        return "\n" + self.localization.render(mode)

    def markdown(self, commits_text: str, mode: RenderMode) -> str:
        platform = self.platform
        old_version = self.old_tag.exact_version_string()
        new_version = self.new_tag.exact_version_string()
        comparison_url = platform.comparison_url(self.old_tag.name, self.new_tag.name)

        count = len(self.commits)
        if count > COMMITS_DETAILS_THRESHOLD:
            prefix, suffix = '[details="Show commits"]\n', "\n[/details]"
        else:
            prefix, suffix = "", ""

        omitted = self.unfiltered_commits_count - count
        omitted_notice = f" (+ {omitted} commit{_plural(omitted)} omitted)" if omitted else ""

        return (
            f"## New Version: {new_version}{self._build_line()}{platform.availability_notice}\n"
            "[quote]\n"
            f"{count} new commit{_plural(count)} since {old_version}{omitted_notice}:\n"
            f"{prefix}{commits_text}{suffix}\n"
            "---\n"
            f"Gathered from [{platform.repo_slug}]({comparison_url})\n"
            "[/quote]"
            f"{self._localization_section(mode)}"
        )

    def render(self) -> tuple[RenderMode, str]:
        """Return the most detailed rendering that fits in a forum post."""
        commits_text = commits_markdown(self.commits)
        for mode in RenderMode:
            text = self.markdown(commits_text, mode)
            logger.debug("Render mode %s: %d characters", mode.value, len(text))
            if len(text) <= MAX_POST_LENGTH:
                return mode, text
            logger.warning("%s post is too long in %s mode (%d characters)", self.platform, mode.value, len(text))
        raise PostTooLongError(
            f"{self.platform} {self.new_tag.name}: no rendering fits in {MAX_POST_LENGTH} characters"
        )
