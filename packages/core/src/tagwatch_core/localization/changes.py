"""Mapping changed file paths to the languages they localize."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field, replace
from typing import Iterable

from tagwatch_core.gh.repository import COMPARISON_MAX_FILES, Tag
from tagwatch_core.localization.completeness import Completeness
from tagwatch_core.localization.kinds import ANDROID_DEFAULT_STRINGS_FILENAME, StringsFileKind
from tagwatch_core.localization.language import ENGLISH, Language
from tagwatch_core.platform import Platform

logger = logging.getLogger(__name__)

_ANDROID_CODE = r"([a-zA-Z]{2,3}(?:-r[A-Z]{2})?)"
_UNDERSCORE_CODE = r"([a-zA-Z]{2,3}(?:_[A-Z]{2})?)"
_APP_STORE_CODE = r"([a-zA-Z]{2,3}(?:-[a-zA-Z]{2,4})?)"

# Languages with more changes than this are collapsed behind a disclosure.
_DETAILS_THRESHOLD = 20


def _code_pattern(platform: Platform, kind: StringsFileKind) -> str:
    if platform is Platform.ANDROID:
        return _ANDROID_CODE
    if kind.is_app_store_metadata:
        return _APP_STORE_CODE
    return _UNDERSCORE_CODE


def _path_pattern(platform: Platform, kind: StringsFileKind) -> re.Pattern:
    prefix, suffix = kind.path_template(platform).split("{}")
    return re.compile(re.escape(prefix) + _code_pattern(platform, kind) + re.escape(suffix))


_PATH_PATTERNS = {
    platform: [(kind, _path_pattern(platform, kind)) for kind in StringsFileKind.for_platform(platform)]
    for platform in Platform
}


def strings_filename(platform: Platform, language: Language) -> str:
    """Path of the main strings file for ``language`` on ``platform``."""
    if not platform.has_localization:
        raise ValueError(f"{platform} has no localization files")
    return StringsFileKind.MAIN.path(platform, language.full_code)


@dataclass(frozen=True, order=True)
class LocalizationChange:
    """A changed language and the kinds of strings files changed for it.

    Ordered by language, then by kinds.
    """

    sort_key: tuple[str, str] = field(init=False, repr=False)
    language: Language = field(compare=False)
    kinds: tuple[StringsFileKind, ...] = (StringsFileKind.MAIN,)

    def __post_init__(self):
        object.__setattr__(self, "sort_key", self.language.sort_key)

    @classmethod
    def from_path(cls, platform: Platform, path: str) -> LocalizationChange | None:
        if platform is Platform.ANDROID and path == ANDROID_DEFAULT_STRINGS_FILENAME:
            return cls(language=ENGLISH)

        for kind, pattern in _PATH_PATTERNS[platform]:
            match = pattern.fullmatch(path)
            if not match:
                continue
            try:
                language = Language.from_code(match.group(1))
            except ValueError:
                # values-land, values-night and friends aren't languages.
                logger.debug("Ignoring %s: %s is not a language", path, match.group(1))
                continue
            return cls(language=language, kinds=(kind,))
        return None

    @classmethod
    def from_code(cls, platform: Platform, code: str) -> LocalizationChange:
        """Rebuild a change from a persisted full code such as ``pt-BR``. Only the main file is known."""
        return cls(language=Language.from_code(code))

    def with_kinds(self, kinds: Iterable[StringsFileKind]) -> LocalizationChange:
        return replace(self, kinds=tuple(sorted({*self.kinds, *kinds})))

    def file_paths(self, platform: Platform) -> list[str]:
        return [kind.path(platform, self.language.full_code) for kind in self.kinds]

    def link(self, platform: Platform, old_tag: Tag, new_tag: Tag) -> str:
        paths = self.file_paths(platform)
        if platform in (Platform.ANDROID, Platform.DESKTOP) and self.kinds == (StringsFileKind.MAIN,):
            url = platform.comparison_url(old_tag.name, new_tag.name, paths[0])
            return f"[{self.language}]({url})"

        links = " • ".join(
            f"[{kind.label}]({platform.comparison_url(old_tag.name, new_tag.name, path)})"
            for kind, path in zip(self.kinds, paths)
        )
        return f"{self.language}: {links}"


def sorted_changes(changes: Iterable[LocalizationChange]) -> tuple[LocalizationChange, ...]:
    """Sort changes by language, merging the kinds of changes to the same language."""
    merged: dict[tuple[str, str], LocalizationChange] = {}
    for change in changes:
        existing = merged.get(change.sort_key)
        merged[change.sort_key] = existing.with_kinds(change.kinds) if existing else change.with_kinds(())
    return tuple(sorted(merged.values()))


def changes_from_paths(platform: Platform, paths: Iterable[str]) -> tuple[LocalizationChange, ...]:
    changes = (LocalizationChange.from_path(platform, path) for path in paths)
    return sorted_changes(change for change in changes if change is not None)


def changes_from_codes(platform: Platform, codes: Iterable[str]) -> tuple[LocalizationChange, ...]:
    return sorted_changes(LocalizationChange.from_code(platform, code) for code in codes)


@dataclass(frozen=True)
class LocalizationChanges:
    platform: Platform
    old_tag: Tag
    new_tag: Tag
    completeness: Completeness
    changes: tuple[LocalizationChange, ...] = ()

    @classmethod
    def from_files(
        cls,
        platform: Platform,
        old_tag: Tag,
        new_tag: Tag,
        files: list[str],
        prior: Iterable[LocalizationChange] | None = None,
    ) -> LocalizationChanges:
        """Build the change set for a comparison's file list.

        GitHub truncates comparisons at 300 files, so a list of exactly that
        length may be missing languages. In that case a ``prior`` set is kept
        and extended rather than replaced. ``prior`` is for callers that
        re-fetch a truncated comparison and fold the result into what an
        earlier fetch of the same range found. A complete list stands alone.
        """
        if len(files) == COMPARISON_MAX_FILES:
            completeness = Completeness.INCOMPLETE
        else:
            completeness = Completeness.COMPLETE
        changes = changes_from_paths(platform, files)
        logger.debug(
            "%d language(s) changed in %s..%s (%s)", len(changes), old_tag.name, new_tag.name, completeness.key
        )

        if completeness is Completeness.INCOMPLETE and prior is not None:
            prior = sorted_changes(prior)
            changes = prior if not changes else sorted_changes((*prior, *changes))

        return cls(platform=platform, old_tag=old_tag, new_tag=new_tag, completeness=completeness, changes=changes)

    def merge(
        self, other: Iterable[LocalizationChange], completeness: Completeness | None = None
    ) -> LocalizationChanges:
        return replace(
            self,
            completeness=self.completeness if completeness is None else completeness,
            changes=sorted_changes((*self.changes, *other)),
        )

    @property
    def codes(self) -> list[str]:
        return [change.language.full_code for change in self.changes]

    def full_comparison_notice(self) -> str:
        url = self.platform.comparison_url(self.old_tag.name, self.new_tag.name)
        return f"You can view the full comparison to {self.old_tag.exact_version_string()} so far [here]({url})."

    def render(self) -> str:
        if self.completeness is Completeness.COMPLETE:
            at_least, warning = "", ""
        else:
            at_least = "At least "
            warning = f"\n{self.completeness.warning_text} {self.full_comparison_notice()}"

        count = len(self.changes)
        if count > _DETAILS_THRESHOLD:
            prefix, suffix = '\n[details="Show changes"]', "\n[/details]"
        else:
            prefix, suffix = "", ""

        if count:
            links = "\n- ".join(change.link(self.platform, self.old_tag, self.new_tag) for change in self.changes)
            body = f"\n- {links}"
        else:
            body = "\n*No localization changes found*"

        plural = "" if count == 1 else "s"
        old_version = self.old_tag.exact_version_string()
        return f"#### {at_least}{count} language{plural} changed since {old_version}:{warning}{prefix}{body}{suffix}"
