"""Tests for tagwatch-store implementations."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest
from github import GithubException

from tagwatch_store.gist import GistStore
from tagwatch_store.sqlite import SQLiteStore

STATE = '{"android": {"last_posted_tag": {"name": "v1.2.4"}}}'


# ---------------------------------------------------------------------------
# SQLiteStore
# ---------------------------------------------------------------------------


class TestSQLiteStore:
    def test_missing_key_returns_none(self, tmp_path):
        store = SQLiteStore(db_path=str(tmp_path / "test.db"))
        assert store.get("state") is None
        store.close()

    def test_put_and_get(self, tmp_path):
        store = SQLiteStore(db_path=str(tmp_path / "test.db"))
        store.put("state", STATE)
        assert store.get("state") == STATE
        store.close()

    def test_put_replaces_value(self, tmp_path):
        store = SQLiteStore(db_path=str(tmp_path / "test.db"))
        store.put("state", "{}")
        store.put("state", STATE)
        assert store.get("state") == STATE
        store.close()

    def test_keys_are_isolated(self, tmp_path):
        store = SQLiteStore(db_path=str(tmp_path / "test.db"))
        store.put("state", STATE)
        store.put("state-staging", "{}")
        assert store.get("state") == STATE
        assert store.get("state-staging") == "{}"
        store.close()

    def test_persists_across_connections(self, tmp_path):
        """Data written by one SQLiteStore instance must be readable by another."""
        db_path = str(tmp_path / "test.db")
        store_a = SQLiteStore(db_path=db_path)
        store_a.put("state", STATE)
        store_a.close()

        store_b = SQLiteStore(db_path=db_path)
        assert store_b.get("state") == STATE
        store_b.close()


# ---------------------------------------------------------------------------
# GistStore
# ---------------------------------------------------------------------------


def _make_gist_mock(content: str | None = None):
    """Return a mock Gist object with state.json pre-populated."""
    gist = MagicMock()
    if content is None:
        gist.files = {}
    else:
        file_mock = MagicMock()
        file_mock.content = content
        gist.files = {"state.json": file_mock}
    return gist


def _make_gist_store(gist):
    gh = MagicMock()
    gh.get_gist.return_value = gist
    return GistStore("abc123", token="ghp_test", gh=gh), gh


class TestGistStore:
    def test_get_reads_key_file(self):
        store, gh = _make_gist_store(_make_gist_mock(STATE))
        assert store.get("state") == STATE
        gh.get_gist.assert_called_once_with("abc123")

    def test_get_missing_file_returns_none(self):
        store, _ = _make_gist_store(_make_gist_mock())
        assert store.get("state") is None

    def test_put_edits_key_file(self):
        gist = _make_gist_mock("{}")
        store, _ = _make_gist_store(gist)

        store.put("state", STATE)

        gist.edit.assert_called_once()
        files = gist.edit.call_args[1]["files"]
        assert list(files) == ["state.json"]
        assert files["state.json"]._identity["content"] == STATE

    def test_put_error_propagates(self):
        gist = _make_gist_mock("{}")
        gist.edit.side_effect = GithubException(403, {"message": "Forbidden"}, None)
        store, _ = _make_gist_store(gist)

        with pytest.raises(GithubException):
            store.put("state", STATE)
