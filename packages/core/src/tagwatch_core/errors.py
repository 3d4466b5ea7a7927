"""tagwatch exception classes."""

from __future__ import annotations


class TagwatchError(Exception):
    """Base exception for all tagwatch errors."""


class ConfigError(TagwatchError):
    """Raised when a required configuration value is missing or invalid."""


class TagGapError(TagwatchError):
    """Raised when the last posted tag is not among the tags returned by GitHub."""

    def __init__(self, platform: str, tag_name: str) -> None:
        self.platform = platform
        self.tag_name = tag_name
        super().__init__(f"last posted tag {tag_name!r} not found in {platform} tags")


class ComparisonError(TagwatchError):
    """Raised when a GitHub comparison can't be fetched or is inconsistent."""


class ForumError(TagwatchError):
    """Raised on unexpected Discourse responses."""


class PostTooLongError(TagwatchError):
    """Raised when no render mode produces a post within the length limit."""
