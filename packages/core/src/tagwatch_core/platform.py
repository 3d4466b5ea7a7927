"""Per-platform rules: which tags count as releases, which commits are shown, and URLs."""

from __future__ import annotations

import hashlib
import re
from dataclasses import dataclass
from enum import Enum

from tagwatch_core.version import Version

GITHUB_ORG = "signalapp"
ANDROID_BUILD_CONFIGURATION_PATH = "app/build.gradle.kts"


class Platform(Enum):
    ANDROID = "Android"
    IOS = "iOS"
    DESKTOP = "Desktop"
    SERVER = "Server"

    def __str__(self) -> str:
        return self.value

    @property
    def key(self) -> str:
        """Key of this platform in the persisted state blob and in config."""
        return self.value.lower()

    @property
    def repo_slug(self) -> str:
        return f"{GITHUB_ORG}/Signal-{self.value}"

    @property
    def color(self) -> int:
        return _COLORS[self]

    @classmethod
    def from_name(cls, name: str) -> Platform:
        for platform in cls:
            if platform.key == name.strip().lower():
                return platform
        raise ValueError(f"Unknown platform: {name!r}. Choose one of {', '.join(p.key for p in cls)}.")

    def should_post_version(self, version: Version) -> bool:
        if self is Platform.ANDROID:
            # 1.2.3.4 is an internal build; the fourth segment is parsed into build metadata.
            return not version.build
        if self in (Platform.IOS, Platform.DESKTOP):
            return any("beta" in identifier for identifier in version.pre)
        return True

    def should_show_commit(self, message: str) -> bool:
        if self is Platform.IOS:
            return "Bump build to" not in message and "Feature flags for" not in message
        return True

    @property
    def shows_commit_details(self) -> bool:
        return self is not Platform.IOS

    @property
    def expects_build_number(self) -> bool:
        return self is Platform.ANDROID

    @property
    def needs_archiving_message(self) -> bool:
        return self is not Platform.SERVER

    @property
    def has_localization(self) -> bool:
        return self is not Platform.SERVER

    @property
    def availability_notice(self) -> str:
        if self is Platform.ANDROID:
            return "\nBuilds [will no longer be published to Firebase App Distribution](/t/17538/114)"
        return ""

    def commit_url(self, sha: str) -> str:
        return f"https://github.com/{self.repo_slug}/commit/{sha}"

    def comparison_url(self, old: str, new: str, file_path: str | None = None) -> str:
        if file_path is None:
            return f"https://github.com/{self.repo_slug}/compare/{old}...{new}"
        # Two dots: GitHub only jumps to a file anchor on the two-dot diff view.
        digest = hashlib.sha256(file_path.encode()).hexdigest()
        return f"https://github.com/{self.repo_slug}/compare/{old}..{new}#diff-{digest}"

    def topic_slug_path(self, version: Version, server_topic_id: int | None = None) -> str:
        """Path of the forum topic that collects feedback for ``version``'s release."""
        if self is Platform.SERVER:
            if server_topic_id is None:
                raise ValueError("server_topic_id is required to look up the Server topic.")
            return f"/t/{server_topic_id}.json"
        return f"/t/beta-feedback-for-the-upcoming-{self.key}-{version.major}-{version.minor}-release.json"


_COLORS = {
    Platform.ANDROID: 0x1D8663,
    Platform.IOS: 0x336BA3,
    Platform.DESKTOP: 0xAA377A,
    Platform.SERVER: 0x6058CA,
}


def parse_enabled_platforms(value) -> list[Platform]:
    """Accept a list of platform names or a string of initials such as ``"aid"``."""
    if isinstance(value, str):
        initials = value.lower()
        return [p for p in Platform if p.key[0] in initials]
    return [Platform.from_name(name) for name in value]


@dataclass(frozen=True)
class BuildConfiguration:
    """Android version code settings, read from ``app/build.gradle.kts``."""

    canonical_version_code: int
    current_hotfix_version: int
    max_hotfix_versions: int

    @property
    def build_number(self) -> int:
        return self.canonical_version_code * self.max_hotfix_versions + self.current_hotfix_version

    @classmethod
    def from_gradle(cls, text: str) -> BuildConfiguration:
        return cls(
            canonical_version_code=_gradle_int(text, "canonicalVersionCode"),
            current_hotfix_version=_gradle_int(text, "currentHotfixVersion"),
            max_hotfix_versions=_gradle_int(text, "maxHotfixVersions"),
        )


def _gradle_int(text: str, name: str) -> int:
    match = re.search(rf"val\s+{name}\s*=\s*(\d+)", text)
    if not match:
        raise ValueError(f"couldn't find {name} in build configuration")
    return int(match.group(1))
