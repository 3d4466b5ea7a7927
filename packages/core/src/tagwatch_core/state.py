"""Persisted per-platform state and the controller that guards writes to it.

The whole state is one JSON object keyed by platform, stored as a single blob
in a key-value store (see ``tagwatch_store``). It is loaded once per run and
written back only when a platform's state actually changes.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field, replace

from tagwatch_core.errors import TagwatchError
from tagwatch_core.gh.repository import Tag
from tagwatch_core.localization.completeness import Completeness
from tagwatch_core.platform import Platform

logger = logging.getLogger(__name__)


class StateError(TagwatchError):
    """The persisted state is missing, malformed, or violates an invariant."""


@dataclass(frozen=True)
class LastPost:
    id: int
    number: int


@dataclass(frozen=True)
class PlatformState:
    last_posted_tag: Tag
    last_posted_tag_previous_release: Tag
    last_post: LastPost | None = None
    localization_change_codes: frozenset[str] = field(default_factory=frozenset)
    localization_changes_completeness: Completeness = Completeness.COMPLETE
    posted_archiving_message: bool = False
    pending_state: PlatformState | None = None

    def validate(self) -> None:
        try:
            previous = self.last_posted_tag_previous_release.version()
            last = self.last_posted_tag.version()
        except ValueError as e:
            raise StateError(f"unparseable tag in state: {e}") from e
        if not previous < last:
            raise StateError(
                f"last_posted_tag_previous_release ({self.last_posted_tag_previous_release.name}) "
                f"must be older than last_posted_tag ({self.last_posted_tag.name})"
            )
        if self.pending_state is not None:
            self.pending_state.validate()

    def with_pending(self, pending: PlatformState | None) -> PlatformState:
        return replace(self, pending_state=pending)

    def to_dict(self) -> dict:
        return {
            "last_posted_tag": {"name": self.last_posted_tag.name},
            "last_posted_tag_previous_release": {"name": self.last_posted_tag_previous_release.name},
            "last_post": {"id": self.last_post.id, "number": self.last_post.number} if self.last_post else None,
            "localization_change_codes": sorted(self.localization_change_codes),
            "localization_changes_completeness": self.localization_changes_completeness.key,
            "posted_archiving_message": self.posted_archiving_message,
            "pending_state": self.pending_state.to_dict() if self.pending_state else None,
        }

    @classmethod
    def from_dict(cls, d: dict) -> PlatformState:
        try:
            last_post = d.get("last_post")
            pending = d.get("pending_state")
            return cls(
                last_posted_tag=Tag(d["last_posted_tag"]["name"]),
                last_posted_tag_previous_release=Tag(d["last_posted_tag_previous_release"]["name"]),
                last_post=LastPost(id=last_post["id"], number=last_post["number"]) if last_post else None,
                localization_change_codes=frozenset(d.get("localization_change_codes") or []),
                localization_changes_completeness=Completeness.from_key(
                    d.get("localization_changes_completeness", Completeness.COMPLETE.key)
                ),
                posted_archiving_message=d.get("posted_archiving_message", False),
                pending_state=cls.from_dict(pending) if pending else None,
            )
        except (KeyError, TypeError, ValueError) as e:
            raise StateError(f"malformed platform state: {e!r}") from e


def parse_state(text: str) -> dict[Platform, PlatformState]:
    try:
        raw = json.loads(text)
    except ValueError as e:
        raise StateError(f"state is not valid JSON: {e}") from e
    if not isinstance(raw, dict):
        raise StateError("state must be a JSON object keyed by platform")

    states = {}
    for key, value in raw.items():
        try:
            platform = Platform.from_name(key)
        except ValueError as e:
            raise StateError(str(e)) from e
        state = PlatformState.from_dict(value)
        state.validate()
        states[platform] = state
    return states


def dump_state(states: dict[Platform, PlatformState]) -> str:
    return json.dumps({platform.key: state.to_dict() for platform, state in states.items()}, indent=2)


class StateController:
    """Holds the loaded state and writes it back through ``store`` when it changes."""

    def __init__(self, store, key: str, states: dict[Platform, PlatformState], dry_run: bool = False):
        self.store = store
        self.key = key
        self.states = states
        self.dry_run = dry_run

    @classmethod
    def load(cls, store, key: str = "state", dry_run: bool = False) -> StateController:
        text = store.get(key)
        if text is None:
            raise StateError(f"no state stored under {key!r}; seed it with `tagwatch state seed`")
        states = parse_state(text)
        logger.debug("Loaded state for %s", ", ".join(str(p) for p in states) or "no platforms")
        return cls(store, key, states, dry_run=dry_run)

    def platform_state(self, platform: Platform) -> PlatformState:
        try:
            return self.states[platform]
        except KeyError:
            raise StateError(f"no state for {platform}; seed it with `tagwatch state seed`") from None

    def set_platform_state(self, platform: Platform, new_state: PlatformState) -> bool:
        """Replace a platform's state and persist the whole blob. Returns False when nothing changed."""
        new_state.validate()
        if self.states.get(platform) == new_state:
            logger.info("%s state unchanged, not writing", platform)
            return False

        self.states[platform] = new_state
        text = dump_state(self.states)
        if self.dry_run:
            logger.warning("Dry run: not writing state for %s:\n%s", platform, text)
            return True

        self.store.put(self.key, text)
        logger.info("Wrote state for %s", platform)
        return True
