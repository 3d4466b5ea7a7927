"""Minimal Discourse API client for the beta feedback topics."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Union

import requests

from tagwatch_core.errors import ForumError
from tagwatch_core.platform import Platform
from tagwatch_core.version import Version

logger = logging.getLogger(__name__)

DEFAULT_FORUM_URL = "https://community.signalusers.org"

_TIMEOUT = 30


@dataclass(frozen=True)
class Posted:
    id: int
    number: int


@dataclass(frozen=True)
class Enqueued:
    """The post is held for moderation; ``id`` identifies the pending post."""

    id: int


PostingOutcome = Union[Posted, Enqueued]


@dataclass(frozen=True)
class ForumPost:
    id: int
    topic_id: int
    number: int
    user_id: int | None = None


def archiving_post_markdown(forum_url: str, new_topic_id: int) -> str:
    return (
        "Beta testing for this release has concluded. If you find any further bugs related to this release "
        f"or earlier releases, please report them on GitHub (read {forum_url}/t/27 for more information on "
        "how to do that).\n\n"
        "If you have feedback specifically related to the new beta version, please post it in the following "
        f"topic: {forum_url}/t/{new_topic_id}."
    )


class DiscourseClient:
    def __init__(
        self,
        api_key: str | None,
        forum_url: str = DEFAULT_FORUM_URL,
        server_topic_id: int | None = None,
        session: requests.Session | None = None,
    ):
        self.api_key = api_key
        self.forum_url = forum_url.rstrip("/")
        self.server_topic_id = server_topic_id
        self.session = session or requests.Session()
        self.session.headers["Accept"] = "application/json"

    def _request(self, method: str, path: str, **kwargs):
        """Send a request and decode the JSON body.

        Returns None for Discourse's ``not_found`` error; any other failure
        raises ForumError.
        """
        headers = {}
        if self.api_key:
            headers["User-Api-Key"] = self.api_key

        url = f"{self.forum_url}{path}"
        try:
            resp = self.session.request(method, url, headers=headers, timeout=_TIMEOUT, **kwargs)
            data = resp.json()
        except (requests.RequestException, ValueError) as e:
            raise ForumError(f"{method} {path} failed: {e}") from e

        if isinstance(data, dict) and data.get("error_type") == "not_found":
            logger.warning("%s %s: not found", method, path)
            return None
        if not resp.ok or (isinstance(data, dict) and ("error_type" in data or "errors" in data)):
            raise ForumError(f"{method} {path}: unexpected response (HTTP {resp.status_code}): {data!r}")
        return data

    def get_topic_id(self, platform: Platform, version: Version) -> int | None:
        path = platform.topic_slug_path(version, self.server_topic_id)
        logger.debug("Looking up %s topic for %s at %s", platform, version, path)
        data = self._request("GET", path)
        if data is None:
            return None

        posts = data.get("post_stream", {}).get("posts") or []
        if not posts:
            raise ForumError(f"topic {path} has no posts")
        return posts[0]["topic_id"]

    def get_topic_id_or_override(
        self,
        platform: Platform,
        version: Version,
        topic_id_override: int | None = None,
        override_platform: Platform | None = None,
    ) -> int | None:
        if topic_id_override is not None and override_platform in (None, platform):
            logger.warning("Using topic id override %d for %s", topic_id_override, platform)
            return topic_id_override
        return self.get_topic_id(platform, version)

    def post(self, text: str, topic_id: int, reply_to_post_number: int | None = None) -> PostingOutcome:
        body = {"topic_id": topic_id, "reply_to_post_number": reply_to_post_number, "raw": text}
        data = self._request("POST", "/posts.json", json=body)
        if data is None:
            raise ForumError(f"topic {topic_id} not found while posting")

        if data.get("action") == "enqueued":
            pending_id = data["pending_post"]["id"]
            logger.warning("Post to topic %d was enqueued for approval (pending id %d)", topic_id, pending_id)
            return Enqueued(id=pending_id)
        if "post_number" in data:
            logger.info("Posted #%d to topic %d", data["post_number"], topic_id)
            return Posted(id=data["id"], number=data["post_number"])
        raise ForumError(f"unexpected response when posting to topic {topic_id}: {data!r}")

    def get_replies_to_post(self, post_id: int) -> list[ForumPost]:
        data = self._request("GET", f"/posts/{post_id}/replies.json")
        if data is None:
            return []
        return [
            ForumPost(id=post["id"], topic_id=post["topic_id"], number=post["post_number"], user_id=post.get("user_id"))
            for post in data
        ]
