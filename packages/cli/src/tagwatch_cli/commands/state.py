"""state commands: inspect and seed the persisted per-platform state."""

from __future__ import annotations

import click
from rich.console import Console
from rich.table import Table

from tagwatch_core.gh.repository import Tag, find_previous_release_tag, get_github, get_repo, get_sorted_tags
from tagwatch_core.localization.completeness import Completeness
from tagwatch_core.platform import Platform
from tagwatch_core.state import PlatformState, StateController, StateError, parse_state

console = Console()

_COMPLETENESS_STYLES = {
    Completeness.COMPLETE: "green",
    Completeness.LIKELY_COMPLETE: "yellow",
    Completeness.INCOMPLETE: "red",
}


@click.group("state")
def state_cmd():
    """Inspect or seed the persisted state."""


@state_cmd.command("show")
@click.pass_context
def show_cmd(ctx):
    """Show the last posted version and bookkeeping for each platform."""
    config = ctx.obj["config"]
    try:
        controller = StateController.load(ctx.obj["store"], config["state_key"])
    except StateError as e:
        raise click.ClickException(str(e)) from e

    if not controller.states:
        console.print("[yellow]State is empty.[/yellow]")
        return

    table = Table(title="tagwatch state", show_header=True, header_style="bold cyan")
    table.add_column("Platform", style="bold")
    table.add_column("Last posted")
    table.add_column("Previous release")
    table.add_column("Last post", justify="right")
    table.add_column("Languages", justify="right")
    table.add_column("Complete")
    table.add_column("Pending")

    for platform, state in controller.states.items():
        last_post = f"{state.last_post.id} (#{state.last_post.number})" if state.last_post else "-"
        completeness = state.localization_changes_completeness
        complete = f"[{_COMPLETENESS_STYLES[completeness]}]{completeness.key.replace('_', ' ')}[/]"
        pending = f"[yellow]{state.pending_state.last_posted_tag.name}[/yellow]" if state.pending_state else "-"
        table.add_row(
            str(platform),
            state.last_posted_tag.name,
            state.last_posted_tag_previous_release.name,
            last_post,
            str(len(state.localization_change_codes)),
            complete,
            pending,
        )

    console.print(table)


@state_cmd.command("seed")
@click.option(
    "--platform",
    "platform_name",
    required=True,
    type=click.Choice([p.key for p in Platform], case_sensitive=False),
    help="Platform to seed.",
)
@click.option("--tag", "tag_name", required=True, help="Tag to treat as the last posted one, e.g. v7.30.0.")
@click.option(
    "--previous-release-tag",
    default=None,
    help="Last tag of the previous release. Looked up on GitHub when omitted.",
)
@click.option("--force", is_flag=True, default=False, help="Overwrite an existing platform state.")
@click.pass_context
def seed_cmd(ctx, platform_name: str, tag_name: str, previous_release_tag: str | None, force: bool):
    """Create the state for a platform so `tagwatch run` can start from --tag."""
    config = ctx.obj["config"]
    store = ctx.obj["store"]
    platform = Platform.from_name(platform_name)
    tag = Tag(tag_name)

    try:
        version = tag.version()
    except ValueError as e:
        raise click.BadParameter(str(e), param_hint="--tag") from e

    text = store.get(config["state_key"])
    try:
        states = parse_state(text) if text else {}
    except StateError as e:
        raise click.ClickException(f"Existing state is invalid: {e}") from e

    if platform in states and not force:
        raise click.ClickException(f"{platform} already has state. Use --force to overwrite it.")

    if previous_release_tag is None:
        repo = get_repo(get_github(config.get("github_token")), platform)
        previous = find_previous_release_tag(get_sorted_tags(repo, platform, tag), version)
        if previous is None:
            raise click.ClickException(
                f"Couldn't find a tag from a release before {tag_name}; pass --previous-release-tag."
            )
    else:
        previous = Tag(previous_release_tag)

    controller = StateController(store, config["state_key"], states)
    try:
        controller.set_platform_state(
            platform, PlatformState(last_posted_tag=tag, last_posted_tag_previous_release=previous)
        )
    except StateError as e:
        raise click.ClickException(str(e)) from e

    console.print(f"[green]Seeded {platform}: last posted {tag.name}, previous release {previous.name}.[/green]")
