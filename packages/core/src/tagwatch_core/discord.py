"""Discord webhook notifications: release announcements and error reports."""

from __future__ import annotations

import json
import logging

import requests

from tagwatch_core.gh.repository import Tag
from tagwatch_core.platform import Platform

logger = logging.getLogger(__name__)

_TIMEOUT = 30

# Discord rejects message content longer than this.
MAX_CONTENT_LENGTH = 2000


def _mention(role: str | None) -> str:
    return f"<@&{role}>" if role else ""


def _allowed_mentions(role: str | None) -> dict:
    return {"roles": [role] if role else []}


class DiscordWebhook:
    def __init__(
        self,
        errors_url: str | None,
        updates_url: str | None = None,
        errors_mention_role: str | None = None,
        updates_mention_role: str | None = None,
        session: requests.Session | None = None,
    ):
        self.errors_url = errors_url
        self.updates_url = updates_url
        self.errors_mention_role = errors_mention_role
        self.updates_mention_role = updates_mention_role
        self.session = session or requests.Session()

    def send_update_message(
        self,
        platform: Platform,
        old_tag: Tag,
        new_tag: Tag,
        post_url: str,
        commits_count: int,
        languages_count: int,
        notice: str | None = None,
    ) -> bool:
        """Announce a new forum post. Returns False when no updates webhook is configured."""
        if not self.updates_url:
            logger.warning("No updates webhook configured, not announcing %s %s", platform, new_tag.name)
            return False

        embed = {
            "color": platform.color,
            "title": f"New {platform} version: {new_tag.exact_version_string()}",
            "url": post_url,
            "author": {
                "name": platform.repo_slug,
                "url": platform.comparison_url(old_tag.name, new_tag.name),
            },
            "fields": [
                {"name": "Commits", "value": str(commits_count), "inline": True},
                {"name": "Languages changed", "value": str(languages_count), "inline": True},
            ],
        }
        if notice:
            embed["description"] = notice

        payload = {
            "content": _mention(self.updates_mention_role),
            "embeds": [embed],
            "allowed_mentions": _allowed_mentions(self.updates_mention_role),
        }
        resp = self.session.post(self.updates_url, json=payload, timeout=_TIMEOUT)
        resp.raise_for_status()
        logger.info("Announced %s %s on Discord", platform, new_tag.name)
        return True

    def _send_with_log(self, message: str, log: str) -> bool:
        if not self.errors_url:
            logger.warning("No errors webhook configured, dropping message: %s", message)
            return False

        content = f"{_mention(self.errors_mention_role)} {message}".strip()
        payload = {
            "content": content[:MAX_CONTENT_LENGTH],
            "allowed_mentions": _allowed_mentions(self.errors_mention_role),
        }
        resp = self.session.post(
            self.errors_url,
            data={"payload_json": json.dumps(payload)},
            files={"files[0]": ("log.txt", log.encode("utf-8"), "text/plain")},
            timeout=_TIMEOUT,
        )
        resp.raise_for_status()
        return True

    def send_error_message(self, message: str, log: str) -> bool:
        return self._send_with_log(f"Error: {message}", log)

    def send_misc_message(self, message: str, log: str) -> bool:
        return self._send_with_log(message, log)
