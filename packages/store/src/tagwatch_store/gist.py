"""GistStore: zero-infrastructure state storage in a GitHub Gist.

Each key is one file, ``<key>.json``, inside the Gist. A scheduled GitHub
Actions job can read and write it with a PAT that has the ``gist`` scope,
and anyone with access can inspect the bot's state in the browser.
"""

from __future__ import annotations

import logging

from github import Github, GithubException
from github.InputFileContent import InputFileContent

from tagwatch_store.base import BaseStore

logger = logging.getLogger(__name__)


def _filename(key: str) -> str:
    return f"{key}.json"


class GistStore(BaseStore):
    """Stores each key as a JSON file in an existing Gist.

    The Gist ID is configured in .tagwatch.yml under ``gist_id``.
    """

    def __init__(self, gist_id: str, token: str, gh: Github | None = None):
        self._gist_id = gist_id
        self._gh = gh or Github(token)

    def _get_gist(self):
        return self._gh.get_gist(self._gist_id)

    def get(self, key: str) -> str | None:
        gist = self._get_gist()
        file_obj = gist.files.get(_filename(key))
        if file_obj is None:
            logger.debug("Gist %s has no %s", self._gist_id, _filename(key))
            return None
        return file_obj.content

    def put(self, key: str, value: str) -> None:
        gist = self._get_gist()
        try:
            gist.edit(files={_filename(key): InputFileContent(value)})
        except GithubException as e:
            logger.error("Could not write %s to gist %s: %s", _filename(key), self._gist_id, e)
            raise
        logger.debug("Wrote %d bytes to gist %s/%s", len(value), self._gist_id, _filename(key))
