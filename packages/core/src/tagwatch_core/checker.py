"""Per-platform release check: find the next unposted tag, post it, record it.

One invocation posts at most one new version. Platforms are checked in an
order rotated by the current hour so a busy platform can't starve the others.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from enum import Enum

import requests
from github import GithubException

from tagwatch_core.commits import Commit
from tagwatch_core.discord import DiscordWebhook
from tagwatch_core.discourse import DiscourseClient, Posted, archiving_post_markdown
from tagwatch_core.errors import ConfigError, ForumError
from tagwatch_core.gh.repository import (
    COMMIT_MAX_FILES,
    get_build_configuration,
    get_commit_files,
    get_comparison,
    get_github,
    get_repo,
    get_sorted_tags,
    tags_to_post,
)
from tagwatch_core.localization.changes import LocalizationChanges, changes_from_codes, changes_from_paths
from tagwatch_core.localization.collection import LocalizationChangeCollection, RenderMode
from tagwatch_core.localization.completeness import Completeness
from tagwatch_core.logsink import LogSink
from tagwatch_core.platform import Platform
from tagwatch_core.post import Post
from tagwatch_core.state import LastPost, PlatformState, StateController
from tagwatch_core.version import Version

logger = logging.getLogger(__name__)


class Outcome(Enum):
    WAITING_FOR_APPROVAL = "waiting for post approval"
    ALREADY_POSTED = "latest version is already posted"
    TOPIC_NOT_FOUND = "no topic found, it may not be created yet"
    POSTED = "posted"
    APPROVAL_CONFIRMED = "confirmed approval of post"


def platforms_order(platforms: list[Platform], hour: int) -> list[Platform]:
    if not platforms:
        return []
    shift = hour % len(platforms)
    return platforms[shift:] + platforms[:shift]


@dataclass
class Checker:
    config: dict
    gh: object
    discourse: DiscourseClient
    discord: DiscordWebhook
    state: StateController
    sink: LogSink | None = None

    @property
    def dry_run(self) -> bool:
        return bool(self.config.get("dry_run"))

    def _sleep(self) -> None:
        delay = self.config.get("posting_delay_seconds") or 0
        if delay > 0:
            time.sleep(delay)

    def _collected_log(self) -> str:
        return self.sink.collect() if self.sink else ""

    def _topic_id(self, platform: Platform, version: Version) -> int | None:
        return self.discourse.get_topic_id_or_override(
            platform,
            version,
            self.config.get("topic_id_override"),
            self.config.get("topic_id_override_platform"),
        )

    def check_all_platforms(self, now: datetime | None = None) -> list[tuple[Platform, Outcome]]:
        now = now or datetime.now(timezone.utc)
        platforms = platforms_order(list(self.config["enabled_platforms"]), now.hour)
        logger.debug("Checking platforms in order: %s", ", ".join(str(p) for p in platforms))

        results = []
        for platform in platforms:
            outcome = self.check_platform(platform)
            results.append((platform, outcome))
            logger.info("%s: %s", platform, outcome.value)

            if outcome is Outcome.POSTED:
                logger.info("Posted for %s; one post per invocation, done", platform)
                break
            if outcome is Outcome.APPROVAL_CONFIRMED:
                self._notify(f"{platform}: {outcome.value}")
        return results

    def _notify(self, message: str) -> None:
        try:
            self.discord.send_misc_message(message, self._collected_log())
        except requests.RequestException as e:
            logger.warning("Could not send misc message to Discord: %s", e)

    def _confirm_pending(self, platform: Platform, current: PlatformState) -> Outcome:
        pending = current.pending_state
        if current.last_post is None:
            logger.warning(
                "%s: no last post to look for replies under; assuming the pending post was approved", platform
            )
            self.state.set_platform_state(platform, pending)
            return Outcome.APPROVAL_CONFIRMED

        user_id = self.config.get("user_id")
        if user_id is None:
            raise ConfigError("TAGWATCH_USER_ID is required to confirm approval of a moderated post")

        replies = self.discourse.get_replies_to_post(current.last_post.id)
        reply = next((post for post in replies if post.user_id == user_id), None)
        if reply is None:
            return Outcome.WAITING_FOR_APPROVAL

        logger.info("%s: post %d (#%d) was approved", platform, reply.id, reply.number)
        self.state.set_platform_state(platform, replace(pending, last_post=LastPost(id=reply.id, number=reply.number)))
        return Outcome.APPROVAL_CONFIRMED

    def _post_archiving_message(self, platform: Platform, old_version: Version, new_topic_id: int) -> None:
        current = self.state.platform_state(platform)
        if current.posted_archiving_message:
            logger.debug("%s: archiving message already posted", platform)
            return

        old_topic_id = self._topic_id(platform, old_version)
        if old_topic_id is None or old_topic_id == new_topic_id:
            logger.warning("%s: no separate topic for %s, not posting an archiving message", platform, old_version)
            return

        text = archiving_post_markdown(self.discourse.forum_url, new_topic_id)
        if self.dry_run:
            logger.warning("Dry run: not posting archiving message to topic %d:\n%s", old_topic_id, text)
        else:
            reply_to = current.last_post.number if current.last_post else None
            try:
                self.discourse.post(text, old_topic_id, reply_to)
            except ForumError as e:
                logger.warning("Could not post archiving message to topic %d, it is likely closed: %s", old_topic_id, e)
                return

        self.state.set_platform_state(platform, replace(current, posted_archiving_message=True))
        self._sleep()

    def _recover_localization_changes(
        self, repo, commits: list[Commit], changes: LocalizationChanges
    ) -> LocalizationChanges:
        """Fill in a truncated comparison from the commits that look like translation updates.

        A single commit lists up to ten times as many files as a comparison, so
        when none of those lists is truncated either the result is likely complete.
        """
        candidates = [commit for commit in commits if commit.is_likely_localization_change]
        logger.info(
            "%s: comparison files are truncated, fetching %d likely localization commit(s)",
            changes.platform,
            len(candidates),
        )

        recovered = []
        all_complete = True
        for commit in candidates:
            files = get_commit_files(repo, commit.sha)
            if len(files) == COMMIT_MAX_FILES:
                logger.warning("%s: files of commit %s are truncated too", changes.platform, commit.sha)
                all_complete = False
            recovered.extend(changes_from_paths(changes.platform, files))

        completeness = Completeness.LIKELY_COMPLETE if all_complete else Completeness.INCOMPLETE
        return changes.merge(recovered, completeness)

    def check_platform(self, platform: Platform) -> Outcome:
        logger.debug("Checking %s", platform)
        current = self.state.platform_state(platform)
        if current.pending_state is not None:
            logger.debug("%s: a post is waiting for approval", platform)
            return self._confirm_pending(platform, current)

        repo = get_repo(self.gh, platform)
        sorted_tags = get_sorted_tags(repo, platform, current.last_posted_tag)
        remaining = tags_to_post(sorted_tags, current.last_posted_tag, platform)
        if len(remaining) < 2:
            return Outcome.ALREADY_POSTED

        (old_tag, old_version), (new_tag, new_version) = remaining[:2]
        logger.info("%s: %s -> %s", platform, old_tag.name, new_tag.name)

        topic_id = self._topic_id(platform, new_version)
        if topic_id is None:
            return Outcome.TOPIC_NOT_FOUND

        same_release = old_version.same_release(new_version)
        if not same_release and platform.needs_archiving_message:
            self._post_archiving_message(platform, old_version, topic_id)
            current = self.state.platform_state(platform)

        comparison = get_comparison(repo, old_tag.name, new_tag.name)
        unfiltered = [Commit(platform, info.message, info.sha) for info in comparison.commits]
        commits = [commit for commit in unfiltered if platform.should_show_commit(commit.message)]

        build_changes = LocalizationChanges.from_files(platform, old_tag, new_tag, comparison.files)
        if build_changes.completeness is Completeness.INCOMPLETE and platform.has_localization:
            build_changes = self._recover_localization_changes(repo, commits, build_changes)

        if same_release:
            previous_release_tag = current.last_posted_tag_previous_release
            release_completeness = min(build_changes.completeness, current.localization_changes_completeness)
            prior = changes_from_codes(platform, current.localization_change_codes)
            release_changes = LocalizationChanges(
                platform, previous_release_tag, new_tag, release_completeness, prior
            ).merge(build_changes.changes)
        else:
            previous_release_tag = old_tag
            release_completeness = build_changes.completeness
            release_changes = None
        accumulated = release_changes or build_changes

        build_configuration = None
        if platform.expects_build_number:
            try:
                build_configuration = get_build_configuration(repo, new_tag)
            except (GithubException, ValueError) as e:
                logger.error("Couldn't get the build configuration for %s: %s", new_tag.name, e)

        collection = LocalizationChangeCollection(build_changes, release_changes) if platform.has_localization else None
        post = Post(
            platform=platform,
            old_tag=old_tag,
            new_tag=new_tag,
            commits=commits,
            unfiltered_commits_count=len(unfiltered),
            localization=collection,
            build_configuration=build_configuration,
        )
        mode, text = post.render()

        reply_to = current.last_post.number if same_release and current.last_post else None
        if self.dry_run:
            logger.warning("Dry run: not posting to topic %d (reply to %s):\n%s", topic_id, reply_to, text)
            outcome = Posted(id=0, number=reply_to or 0)
        else:
            outcome = self.discourse.post(text, topic_id, reply_to)
            if isinstance(outcome, Posted):
                self._announce(platform, post, mode, topic_id, outcome, len(accumulated.changes))

        new_state = PlatformState(
            last_posted_tag=new_tag,
            last_posted_tag_previous_release=previous_release_tag,
            localization_change_codes=frozenset(accumulated.codes),
            localization_changes_completeness=release_completeness,
        )
        if isinstance(outcome, Posted):
            new_state = replace(new_state, last_post=LastPost(id=outcome.id, number=outcome.number))
        elif not same_release:
            logger.warning("%s: post in a new topic is awaiting approval; assuming it will be approved", platform)
        else:
            new_state = current.with_pending(new_state)

        self.state.set_platform_state(platform, new_state)
        return Outcome.POSTED

    def _announce(
        self, platform: Platform, post: Post, mode: RenderMode, topic_id: int, posted: Posted, languages: int
    ) -> None:
        notice = None
        if mode is not RenderMode.FULL:
            notice = "Some localization changes were left out to fit the post character limit."
        try:
            self.discord.send_update_message(
                platform,
                post.old_tag,
                post.new_tag,
                f"{self.discourse.forum_url}/t/{topic_id}/{posted.number}",
                commits_count=len(post.commits),
                languages_count=languages,
                notice=notice,
            )
        except requests.RequestException as e:
            logger.warning("Could not announce %s %s on Discord: %s", platform, post.new_tag.name, e)


def build_checker(config: dict, store, sink: LogSink | None = None) -> Checker:
    discourse = DiscourseClient(
        config.get("discourse_api_key"),
        forum_url=config["forum_url"],
        server_topic_id=config.get("server_topic_id"),
    )
    discord = DiscordWebhook(
        config.get("discord_webhook_url"),
        updates_url=config.get("discord_webhook_url_updates"),
        errors_mention_role=config.get("discord_errors_mention_role"),
        updates_mention_role=config.get("discord_updates_mention_role"),
    )
    state = StateController.load(store, config["state_key"], dry_run=bool(config.get("dry_run")))
    return Checker(
        config=config,
        gh=get_github(config.get("github_token")),
        discourse=discourse,
        discord=discord,
        state=state,
        sink=sink,
    )


def run(config: dict, store, sink: LogSink | None = None, checker: Checker | None = None, now: datetime | None = None):
    """Run one check over every enabled platform.

    Never raises: any failure is logged and reported to the errors webhook
    together with the log collected so far. Returns the per-platform outcomes,
    or None on failure.
    """
    sink = sink or LogSink()
    with sink:
        try:
            checker = checker or build_checker(config, store, sink)
            results = checker.check_all_platforms(now)
        except Exception as e:
            logger.exception("Run failed")
            report_error(config, checker, e, sink.collect())
            return None
        logger.info("Finished successfully")
        return results


def report_error(config: dict, checker: Checker | None, error: Exception, log: str) -> None:
    if checker is not None:
        discord = checker.discord
    else:
        discord = DiscordWebhook(
            config.get("discord_webhook_url"), errors_mention_role=config.get("discord_errors_mention_role")
        )
    try:
        if discord.send_error_message(f"{type(error).__name__}: {error}", log):
            logger.info("Sent error report to Discord")
    except requests.RequestException as e:
        logger.warning("Could not send error report to Discord: %s", e)
