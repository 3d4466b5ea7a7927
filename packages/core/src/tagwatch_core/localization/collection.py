from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from tagwatch_core.localization.changes import LocalizationChanges

USAGE_INSTRUCTIONS = (
    "Note: after clicking a link, it may take a few seconds before GitHub jumps to the file "
    "(try scrolling a bit if it doesn't).\n\n"
)
NONE_FIT_NOTICE = "Sorry, no localization changes fit in the post character limit."
SAME_NOTICE = "Localization changes for the release are the same, as this is the first build of the release."


class RenderMode(Enum):
    """Localization section variants, from most to least detailed."""

    FULL = "full"
    WITHOUT_RELEASE = "without_release"
    NOTHING = "nothing"


@dataclass(frozen=True)
class LocalizationChangeCollection:
    build_changes: LocalizationChanges
    # None on the first build of a release.
    release_changes: LocalizationChanges | None = None

    def _release_diff_notice(self) -> str:
        release = self.release_changes
        url = release.platform.comparison_url(release.old_tag.name, release.new_tag.name)
        old_version = release.old_tag.exact_version_string()
        return f"You can view the full comparison to {old_version} so far [on GitHub]({url})."

    def _build_diff_notice(self) -> str:
        old_version = self.build_changes.old_tag.exact_version_string()
        return f'You can view the full comparison to {old_version} by following the "Gathered from" link above.'

    def _body(self, mode: RenderMode) -> str:
        build = self.build_changes.render()

        if mode is RenderMode.NOTHING:
            tail = self._release_diff_notice() if self.release_changes is not None else SAME_NOTICE
            return f"{NONE_FIT_NOTICE} {self._build_diff_notice()} {tail}"

        if self.release_changes is None:
            return f"{USAGE_INSTRUCTIONS}{build}\n\n{SAME_NOTICE}"

        if mode is RenderMode.FULL:
            return f"{USAGE_INSTRUCTIONS}{build}\n\n{self.release_changes.render()}"

        return (
            f"{USAGE_INSTRUCTIONS}{build}\n\n"
            "Sorry, localization changes for the whole release did not fit in the post character limit. "
            + self._release_diff_notice()
        )

    def render(self, mode: RenderMode) -> str:
        return f'[details="Localization changes"]\n[quote]\n{self._body(mode)}\n[/quote]\n[/details]'
