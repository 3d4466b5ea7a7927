"""run command: check platforms once and post at most one new version."""

from __future__ import annotations

import click
from rich.console import Console

from tagwatch_core.checker import run
from tagwatch_core.logsink import LogSink
from tagwatch_core.platform import Platform

console = Console()


@click.command("run")
@click.option("--dry-run", is_flag=True, default=False, help="Log what would be posted; post and persist nothing.")
@click.option(
    "--platform",
    "platforms",
    multiple=True,
    type=click.Choice([p.key for p in Platform], case_sensitive=False),
    help="Only check this platform. Repeatable. Overrides enabled_platforms.",
)
@click.pass_context
def run_cmd(ctx, dry_run: bool, platforms: tuple[str, ...]):
    """Check every enabled platform and post the next unposted version.

    Meant to be invoked on a schedule (cron, GitHub Actions). Failures are
    reported to the Discord errors webhook together with the run's log.
    """
    config = dict(ctx.obj["config"])
    if dry_run:
        config["dry_run"] = True
    if platforms:
        config["enabled_platforms"] = [Platform.from_name(name) for name in platforms]

    if config.get("dry_run"):
        console.print("[yellow]Dry run: nothing will be posted or persisted.[/yellow]")

    results = run(config, ctx.obj["store"], sink=LogSink())
    if results is None:
        console.print("[red]Run failed; see the log above.[/red]")
        ctx.exit(1)

    for platform, outcome in results:
        console.print(f"[bold]{platform}[/bold]: {outcome.value}")
