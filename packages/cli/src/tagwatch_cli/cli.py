"""CLI entry point for tagwatch.

Commands:
  run         check enabled platforms and post the next unposted version
  state show  display the persisted per-platform state
  state seed  create or overwrite a platform's state
"""

from __future__ import annotations

import importlib.metadata
import logging

import click
from rich.console import Console
from rich.logging import RichHandler

from tagwatch_cli.commands.run import run_cmd
from tagwatch_cli.commands.state import state_cmd

console = Console()


def _build_store(config: dict):
    """Instantiate the configured store from .tagwatch.yml settings.

    Store selection:
      store: gist   → GistStore   (requires gist_id and github_token)
      store: sqlite → SQLiteStore (uses store_path, default .tagwatch.db)

    This factory lives in cli.py so neither tagwatch_core nor tagwatch_store
    know about the CLI config format.
    """
    store_type = config.get("store", "gist")

    if store_type == "gist":
        from tagwatch_store.gist import GistStore

        gist_id = config.get("gist_id")
        token = config.get("github_token")
        if not gist_id or not token:
            raise click.UsageError("GistStore requires gist_id in .tagwatch.yml and a GitHub token.")
        return GistStore(gist_id=gist_id, token=token)

    if store_type == "sqlite":
        from tagwatch_store.sqlite import SQLiteStore

        return SQLiteStore(db_path=config.get("store_path") or ".tagwatch.db")

    raise click.UsageError(f"Unknown store {store_type!r}. Use 'gist' or 'sqlite'.")


def _setup_logging(verbose: int) -> None:
    level = logging.WARNING
    if verbose == 1:
        level = logging.INFO
    elif verbose >= 2:
        level = logging.DEBUG
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False, level=level)],
    )


@click.group()
@click.version_option(
    version=importlib.metadata.version("tagwatch"),
    prog_name="tagwatch",
)
@click.option(
    "--config",
    "config_path",
    default=".tagwatch.yml",
    show_default=True,
    help="Path to the configuration file.",
    envvar="TAGWATCH_CONFIG",
)
@click.option("-v", "--verbose", count=True, help="Log more (-v info, -vv debug).")
@click.pass_context
def main(ctx: click.Context, config_path: str, verbose: int):
    """Post new Signal beta versions to the community forum."""
    from tagwatch_cli.auth import resolve_github_token
    from tagwatch_core.config import load_config
    from tagwatch_core.errors import ConfigError

    _setup_logging(verbose)
    ctx.ensure_object(dict)

    try:
        config = load_config(config_path)
    except ConfigError as e:
        raise click.UsageError(str(e)) from e

    # Resolve token early so all subcommands share the same resolution.
    token = resolve_github_token()
    if token:
        config["github_token"] = token

    store = _build_store(config)
    ctx.obj["store"] = store
    ctx.obj["config"] = config
    ctx.call_on_close(store.close)


main.add_command(run_cmd)
main.add_command(state_cmd)
