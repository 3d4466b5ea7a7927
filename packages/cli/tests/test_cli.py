"""Tests for the CLI entry point."""

import importlib.metadata
import io
import logging
import subprocess
from unittest.mock import MagicMock, patch

import click
import pytest
from click.testing import CliRunner
from rich.console import Console

from tagwatch_cli.cli import _build_store, _setup_logging, main
from tagwatch_core.checker import Outcome
from tagwatch_core.errors import ConfigError
from tagwatch_core.gh.repository import Tag, filter_tags
from tagwatch_core.localization.completeness import Completeness
from tagwatch_core.logsink import LogSink
from tagwatch_core.platform import Platform
from tagwatch_core.state import LastPost, PlatformState, dump_state, parse_state
from tagwatch_store.gist import GistStore
from tagwatch_store.sqlite import SQLiteStore


def _make_config(**overrides):
    config = {
        "github_token": "tok",
        "enabled_platforms": [Platform.ANDROID, Platform.IOS, Platform.DESKTOP],
        "forum_url": "https://community.signalusers.org",
        "dry_run": False,
        "store": "sqlite",
        "state_key": "state",
        "posting_delay_seconds": 0,
    }
    config.update(overrides)
    return config


def _patch_common(mocker, config=None, token="tok", stored=None):
    """Patch load_config, resolve_github_token, and _build_store for most tests."""
    cfg = config or _make_config()
    mocker.patch("tagwatch_core.config.load_config", return_value=cfg)
    mocker.patch("tagwatch_cli.auth.resolve_github_token", return_value=token)
    mock_store = MagicMock(spec=SQLiteStore)
    mock_store.get.return_value = stored
    mocker.patch("tagwatch_cli.cli._build_store", return_value=mock_store)
    return cfg, mock_store


def _state(last="v1.2.4", previous="v1.1.5", **kwargs):
    return PlatformState(last_posted_tag=Tag(last), last_posted_tag_previous_release=Tag(previous), **kwargs)


class TestMain:
    def test_invalid_config_is_a_usage_error(self, mocker):
        mocker.patch("tagwatch_core.config.load_config", side_effect=ConfigError("bad platform"))
        mocker.patch("tagwatch_cli.auth.resolve_github_token", return_value=None)

        result = CliRunner().invoke(main, ["state", "show"])

        assert result.exit_code == 2
        assert "bad platform" in result.output

    def test_resolved_token_overrides_config(self, mocker):
        cfg, _ = _patch_common(mocker, config=_make_config(github_token=None), token="gh-token")
        mocker.patch("tagwatch_cli.commands.run.run", return_value=[])

        CliRunner().invoke(main, ["run"])

        assert cfg["github_token"] == "gh-token"

    def test_store_is_closed(self, mocker):
        _, mock_store = _patch_common(mocker, stored=dump_state({}))

        CliRunner().invoke(main, ["state", "show"])

        mock_store.close.assert_called_once()


class TestRunCommand:
    def test_prints_outcomes(self, mocker):
        _, mock_store = _patch_common(mocker)
        mock_run = mocker.patch(
            "tagwatch_cli.commands.run.run",
            return_value=[(Platform.IOS, Outcome.ALREADY_POSTED), (Platform.ANDROID, Outcome.POSTED)],
        )

        result = CliRunner().invoke(main, ["run"])

        assert result.exit_code == 0
        assert "iOS: latest version is already posted" in result.output
        assert "Android: posted" in result.output
        config, store = mock_run.call_args[0]
        assert store is mock_store
        assert config["dry_run"] is False
        assert mock_run.call_args[1]["sink"] is not None

    def test_dry_run_flag(self, mocker):
        cfg, _ = _patch_common(mocker)
        mock_run = mocker.patch("tagwatch_cli.commands.run.run", return_value=[])

        result = CliRunner().invoke(main, ["run", "--dry-run"])

        assert result.exit_code == 0
        assert "Dry run" in result.output
        assert mock_run.call_args[0][0]["dry_run"] is True
        assert cfg["dry_run"] is False

    def test_platform_option_overrides_enabled_platforms(self, mocker):
        _patch_common(mocker)
        mock_run = mocker.patch("tagwatch_cli.commands.run.run", return_value=[])

        CliRunner().invoke(main, ["run", "--platform", "desktop", "--platform", "Server"])

        assert mock_run.call_args[0][0]["enabled_platforms"] == [Platform.DESKTOP, Platform.SERVER]

    def test_unknown_platform_rejected(self, mocker):
        _patch_common(mocker)
        mock_run = mocker.patch("tagwatch_cli.commands.run.run", return_value=[])

        result = CliRunner().invoke(main, ["run", "--platform", "windows"])

        assert result.exit_code == 2
        mock_run.assert_not_called()

    def test_failure_exits_non_zero(self, mocker):
        _patch_common(mocker)
        mocker.patch("tagwatch_cli.commands.run.run", return_value=None)

        result = CliRunner().invoke(main, ["run"])

        assert result.exit_code == 1
        assert "Run failed" in result.output


class TestStateShow:
    def test_shows_table(self, mocker):
        stored = dump_state(
            {
                Platform.ANDROID: _state(
                    last_post=LastPost(101, 6),
                    localization_change_codes=frozenset({"de", "fr"}),
                    pending_state=_state("v1.2.5"),
                )
            }
        )
        _patch_common(mocker, stored=stored)

        result = CliRunner().invoke(main, ["state", "show"])

        assert result.exit_code == 0
        assert "Android" in result.output
        assert "v1.2.4" in result.output
        assert "v1.2.5" in result.output

    def test_shows_localization_completeness(self, mocker):
        stored = dump_state(
            {Platform.ANDROID: _state(localization_changes_completeness=Completeness.LIKELY_COMPLETE)}
        )
        _patch_common(mocker, stored=stored)

        result = CliRunner().invoke(main, ["state", "show"])

        assert result.exit_code == 0
        assert "likely" in result.output

    def test_empty_state(self, mocker):
        _patch_common(mocker, stored="{}")

        result = CliRunner().invoke(main, ["state", "show"])

        assert result.exit_code == 0
        assert "State is empty." in result.output

    def test_missing_state_errors(self, mocker):
        _patch_common(mocker, stored=None)

        result = CliRunner().invoke(main, ["state", "show"])

        assert result.exit_code != 0
        assert "tagwatch state seed" in result.output


class TestStateSeed:
    def test_seeds_with_explicit_previous_tag(self, mocker):
        _, mock_store = _patch_common(mocker, stored=None)

        result = CliRunner().invoke(
            main, ["state", "seed", "--platform", "android", "--tag", "v1.2.4", "--previous-release-tag", "v1.1.5"]
        )

        assert result.exit_code == 0, result.output
        key, text = mock_store.put.call_args[0]
        assert key == "state"
        assert parse_state(text) == {Platform.ANDROID: _state()}

    def test_keeps_other_platforms(self, mocker):
        stored = dump_state({Platform.IOS: _state("v7.30.0.1-beta", "v7.29.0.5-beta")})
        _, mock_store = _patch_common(mocker, stored=stored)

        CliRunner().invoke(
            main, ["state", "seed", "--platform", "android", "--tag", "v1.2.4", "--previous-release-tag", "v1.1.5"]
        )

        assert set(parse_state(mock_store.put.call_args[0][1])) == {Platform.IOS, Platform.ANDROID}

    def test_looks_up_previous_release_on_github(self, mocker):
        _, mock_store = _patch_common(mocker, stored=None)
        mocker.patch("tagwatch_cli.commands.state.get_github")
        mocker.patch("tagwatch_cli.commands.state.get_repo")
        mocker.patch(
            "tagwatch_cli.commands.state.get_sorted_tags",
            return_value=filter_tags(["v1.1.4", "v1.1.5", "v1.2.3", "v1.2.4"], Platform.ANDROID),
        )

        result = CliRunner().invoke(main, ["state", "seed", "--platform", "android", "--tag", "v1.2.4"])

        assert result.exit_code == 0, result.output
        assert parse_state(mock_store.put.call_args[0][1])[Platform.ANDROID] == _state()

    def test_previous_release_not_found(self, mocker):
        _, mock_store = _patch_common(mocker, stored=None)
        mocker.patch("tagwatch_cli.commands.state.get_github")
        mocker.patch("tagwatch_cli.commands.state.get_repo")
        mocker.patch(
            "tagwatch_cli.commands.state.get_sorted_tags",
            return_value=filter_tags(["v1.2.3", "v1.2.4"], Platform.ANDROID),
        )

        result = CliRunner().invoke(main, ["state", "seed", "--platform", "android", "--tag", "v1.2.4"])

        assert result.exit_code != 0
        assert "--previous-release-tag" in result.output
        mock_store.put.assert_not_called()

    def test_existing_platform_requires_force(self, mocker):
        _, mock_store = _patch_common(mocker, stored=dump_state({Platform.ANDROID: _state()}))
        args = ["state", "seed", "--platform", "android", "--tag", "v1.2.5", "--previous-release-tag", "v1.1.5"]

        result = CliRunner().invoke(main, args)
        assert result.exit_code != 0
        assert "--force" in result.output
        mock_store.put.assert_not_called()

        result = CliRunner().invoke(main, args + ["--force"])
        assert result.exit_code == 0, result.output
        assert parse_state(mock_store.put.call_args[0][1])[Platform.ANDROID] == _state("v1.2.5")

    def test_invalid_tag(self, mocker):
        _patch_common(mocker, stored=None)

        result = CliRunner().invoke(main, ["state", "seed", "--platform", "android", "--tag", "latest"])

        assert result.exit_code == 2
        assert "latest" in result.output

    def test_previous_tag_must_be_older(self, mocker):
        _, mock_store = _patch_common(mocker, stored=None)

        result = CliRunner().invoke(
            main, ["state", "seed", "--platform", "android", "--tag", "v1.2.4", "--previous-release-tag", "v1.3.0"]
        )

        assert result.exit_code != 0
        mock_store.put.assert_not_called()


class TestResolveGithubToken:
    def test_returns_env_var_when_set(self, monkeypatch):
        from tagwatch_cli.auth import resolve_github_token

        monkeypatch.setenv("GITHUB_TOKEN", "env-token")
        assert resolve_github_token() == "env-token"

    def test_falls_back_to_gh_cli(self, monkeypatch):
        from tagwatch_cli.auth import resolve_github_token

        monkeypatch.delenv("GITHUB_TOKEN", raising=False)
        with patch("subprocess.run") as mock_run:
            mock_run.return_value = MagicMock(returncode=0, stdout="gh-token\n")
            result = resolve_github_token()
        assert result == "gh-token"

    def test_returns_none_when_gh_not_installed(self, monkeypatch):
        from tagwatch_cli.auth import resolve_github_token

        monkeypatch.delenv("GITHUB_TOKEN", raising=False)
        with patch("subprocess.run", side_effect=FileNotFoundError):
            result = resolve_github_token()
        assert result is None

    def test_returns_none_when_gh_times_out(self, monkeypatch):
        from tagwatch_cli.auth import resolve_github_token

        monkeypatch.delenv("GITHUB_TOKEN", raising=False)
        with patch("subprocess.run", side_effect=subprocess.TimeoutExpired(cmd="gh", timeout=5)):
            result = resolve_github_token()
        assert result is None

    def test_returns_none_when_gh_returns_error(self, monkeypatch):
        from tagwatch_cli.auth import resolve_github_token

        monkeypatch.delenv("GITHUB_TOKEN", raising=False)
        with patch("subprocess.run") as mock_run:
            mock_run.return_value = MagicMock(returncode=1, stdout="")
            result = resolve_github_token()
        assert result is None


class TestBuildStore:
    def test_returns_sqlite_store(self, tmp_path):
        store = _build_store({"store": "sqlite", "store_path": str(tmp_path / "test.db")})
        assert isinstance(store, SQLiteStore)
        store.close()

    def test_sqlite_uses_default_path_when_not_specified(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        store = _build_store({"store": "sqlite"})
        assert isinstance(store, SQLiteStore)
        assert (tmp_path / ".tagwatch.db").exists()
        store.close()

    def test_returns_gist_store_when_configured(self):
        with patch("tagwatch_store.gist.Github"):
            store = _build_store({"store": "gist", "gist_id": "abc123", "github_token": "tok"})
        assert isinstance(store, GistStore)

    def test_gist_requires_gist_id(self):
        with pytest.raises(click.UsageError, match="gist_id"):
            _build_store({"store": "gist", "github_token": "tok"})

    def test_gist_requires_token(self):
        with pytest.raises(click.UsageError):
            _build_store({"store": "gist", "gist_id": "abc123"})

    def test_unknown_store(self):
        with pytest.raises(click.UsageError, match="Unknown store"):
            _build_store({"store": "noop"})


class TestSetupLogging:
    def _console_handler(self, mocker, verbose):
        basic_config = mocker.patch("tagwatch_cli.cli.logging.basicConfig")
        _setup_logging(verbose)
        (handler,) = basic_config.call_args.kwargs["handlers"]
        handler.console = Console(file=io.StringIO(), width=200)
        return handler

    @pytest.mark.parametrize("verbose, level", [(0, logging.WARNING), (1, logging.INFO), (2, logging.DEBUG)])
    def test_console_handler_level_follows_verbosity(self, mocker, verbose, level):
        assert self._console_handler(mocker, verbose).level == level

    def test_debug_collected_for_discord_stays_off_the_console(self, mocker):
        handler = self._console_handler(mocker, 0)
        root = logging.getLogger()
        root.addHandler(handler)
        try:
            with LogSink() as sink:
                logger = logging.getLogger("tagwatch_core.checker")
                logger.debug("Fetching Android tags page 0")
                logger.warning("No separate topic for 1.2.4")
        finally:
            root.removeHandler(handler)

        output = handler.console.file.getvalue()
        assert "Fetching Android tags page 0" in sink.collect()
        assert "Fetching Android tags page 0" not in output
        assert "No separate topic for 1.2.4" in output


class TestPackageMetadata:
    def test_pygithub_floor_has_paginated_comparison_commits(self):
        requirements = importlib.metadata.requires("tagwatch")
        assert "PyGithub>=2.2" in requirements

    def test_long_description_is_the_readme(self):
        metadata = importlib.metadata.metadata("tagwatch")
        description = metadata["Description"] or metadata.get_payload()
        assert "tagwatch state seed --platform android --tag v7.30.0" in description
