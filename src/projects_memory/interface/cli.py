"""projects-memory CLI: review loop, statistics, migrations and server."""

import asyncio
import json
import logging
import sys
import time
from dataclasses import asdict
from pathlib import Path
from typing import Annotated

import typer

from projects_memory.application.config import AppConfig, resolve_config
from projects_memory.domain.errors import NoCandidatesError, ProjectsMemoryError, StorageError
from projects_memory.domain.stats.models import ReviewAction

# ---------------------------------------------------------------------------
# Root app
# ---------------------------------------------------------------------------

app = typer.Typer(
    help="projects-memory: adaptive review scheduler for long-lived projects.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

config_app = typer.Typer(help="Manage projects-memory configuration.")
app.add_typer(config_app, name="config")

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.WARNING,
    format="%(levelname)s:%(name)s:%(message)s",
    stream=sys.stderr,
)
logger = logging.getLogger(__name__)

# Keys accepted by the interactive session, in button order.
ACTION_KEYS = {
    "1": ReviewAction.LESS_OFTEN,
    "2": ReviewAction.OK,
    "3": ReviewAction.MORE_OFTEN,
    "4": ReviewAction.PRIORITY_MAX,
    "5": ReviewAction.FINISHED,
}


def _resolve_with_overrides(**overrides) -> AppConfig:
    try:
        return resolve_config(overrides)
    except ValueError as e:
        typer.secho(f"Invalid configuration: {e}", fg="red")
        raise typer.Exit(1) from e


def _fail(message: str) -> typer.Exit:
    typer.secho(message, fg="red")
    return typer.Exit(1)


# ---------------------------------------------------------------------------
# Global callback
# ---------------------------------------------------------------------------


@app.callback()
def main_callback(
    ctx: typer.Context,
    verbose: Annotated[
        int,
        typer.Option(
            "--verbose", "-v", count=True, help="Increase verbosity. Repeat for more detail."
        ),
    ] = 0,
    data_file: Annotated[
        Path | None, typer.Option("--data-file", help="Path to the stats document (JSON).")
    ] = None,
):
    """Global settings for projects-memory."""
    ctx.ensure_object(dict)
    ctx.obj["data_file"] = data_file
    if verbose >= 2:
        logging.getLogger().setLevel(logging.DEBUG)
    elif verbose == 1:
        logging.getLogger().setLevel(logging.INFO)


def _config(ctx: typer.Context, **overrides) -> AppConfig:
    obj = ctx.obj or {}
    return _resolve_with_overrides(data_file=obj.get("data_file"), **overrides)


# ---------------------------------------------------------------------------
# Review commands
# ---------------------------------------------------------------------------


@app.command("next")
def next_cmd(
    ctx: typer.Context,
    vault: Annotated[
        Path | None, typer.Argument(help="Path to the vault. Defaults to 'vault_root' in config.")
    ] = None,
    json_output: Annotated[bool, typer.Option("--json", help="Output as JSON.")] = False,
):
    """Show which project is due for review."""
    from projects_memory.application.factory import get_candidate_source, get_scheduler

    config = _config(ctx, vault_root=vault)
    try:
        source = get_candidate_source(config)
        selection = get_scheduler(config).select_next(source.list_eligible_items())
    except NoCandidatesError as e:
        raise _fail(str(e)) from e
    except ValueError as e:
        raise _fail(str(e)) from e

    if json_output:
        typer.echo(
            json.dumps(
                {
                    "key": selection.key,
                    "display_name": selection.display_name,
                    "is_new": selection.is_new,
                    "effective_score": selection.effective_score,
                    "stats": selection.stats.to_dict(),
                },
                indent=2,
            )
        )
        return

    label = "new" if selection.is_new else f"score {selection.effective_score:.2f}"
    typer.secho(f"{selection.display_name}", bold=True)
    typer.echo(f"  {selection.key}  ({label})")


@app.command()
def review(
    ctx: typer.Context,
    key: Annotated[str, typer.Argument(help="Project key (vault-relative path).")],
    action: Annotated[ReviewAction, typer.Argument(help="Review action.")],
    minutes: Annotated[float, typer.Option(help="Minutes spent on the review.")] = 0.0,
):
    """Record a review action for a project."""
    from projects_memory.application.factory import get_scheduler

    config = _config(ctx)
    try:
        outcome = get_scheduler(config).record_action(key, action, minutes=minutes)
    except StorageError as e:
        raise _fail(f"Review not saved, try again: {e}") from e

    note = "" if outcome.counted else " (first review, not counted)"
    typer.secho(f"Updated score: {outcome.stats.current_score:.2f}{note}", fg="green")


def _run_timed_activity(config: AppConfig, scheduler) -> None:
    """Run the timed activity with a progress line until it completes or Ctrl-C."""
    from projects_memory.application.timed_activity import TimedActivityRunner

    def show(progress):
        remaining = progress.remaining_ms // 1000
        typer.echo(
            f"\r  {progress.percent_complete:5.1f}%  {remaining // 60:02d}:{remaining % 60:02d} left",
            nl=False,
        )

    runner = TimedActivityRunner(
        scheduler.session,
        tick_interval=config.tick_interval,
        on_tick=show,
        on_complete=lambda: typer.secho("\n  Time is up!", fg="green"),
    )

    async def run():
        runner.start(config.timed_activity_ms)
        await runner.wait()

    try:
        asyncio.run(run())
    except KeyboardInterrupt:
        runner.cancel()
        typer.secho("\n  Timer cancelled.", fg="yellow")


@app.command()
def session(
    ctx: typer.Context,
    vault: Annotated[
        Path | None, typer.Argument(help="Path to the vault. Defaults to 'vault_root' in config.")
    ] = None,
):
    """[bold green]Review[/bold green] projects one after another until you quit."""
    from projects_memory.application.factory import get_candidate_source, get_scheduler

    config = _config(ctx, vault_root=vault)
    try:
        source = get_candidate_source(config)
    except ValueError as e:
        raise _fail(str(e)) from e
    scheduler = get_scheduler(config)

    typer.echo(
        "Keys: 1 less often, 2 ok, 3 more often, 4 priority max, 5 finished, "
        "t timer, s skip, q quit"
    )

    while True:
        try:
            selection = scheduler.select_next(source.list_eligible_items())
        except NoCandidatesError:
            typer.secho("No more projects to review.", fg="yellow")
            return

        typer.echo("")
        typer.secho(selection.display_name, bold=True)
        typer.echo(f"  {selection.key}  score {selection.stats.current_score:.2f}")
        presented_at = time.monotonic()

        while True:
            choice = typer.prompt(">", default="", show_default=False).strip().lower()
            if choice == "q":
                return
            if choice == "s":
                scheduler.ignore(selection.key)
                break
            if choice == "t":
                _run_timed_activity(config, scheduler)
                continue
            action = ACTION_KEYS.get(choice)
            if action is None:
                continue

            minutes = (time.monotonic() - presented_at) / 60.0
            try:
                outcome = scheduler.record_action(selection.key, action, minutes=minutes)
            except StorageError as e:
                typer.secho(f"Review not saved, try again: {e}", fg="red")
                continue

            if action is ReviewAction.FINISHED:
                try:
                    source.archive(selection.key)
                except (OSError, ValueError) as e:
                    typer.secho(f"Could not archive: {e}", fg="yellow")
                scheduler.ignore(selection.key)
                typer.secho("Project archived", fg="green")
            else:
                typer.secho(f"Updated score: {outcome.stats.current_score:.2f}", fg="green")
            break


# ---------------------------------------------------------------------------
# Statistics
# ---------------------------------------------------------------------------


@app.command()
def stats(
    ctx: typer.Context,
    key: Annotated[str | None, typer.Argument(help="Show a single project.")] = None,
    json_output: Annotated[bool, typer.Option("--json", help="Output as JSON.")] = False,
):
    """Show per-project statistics."""
    from projects_memory.application.factory import get_scheduler
    from projects_memory.application.stats.report import summarize

    scheduler = get_scheduler(_config(ctx))

    if key is not None:
        try:
            record = scheduler.get_stats(key)
        except StorageError as e:
            raise _fail(str(e)) from e
        typer.echo(json.dumps(record.to_dict(), indent=2))
        return

    payload = scheduler.load_all_stats()
    if json_output:
        typer.echo(json.dumps(payload.to_dict(), indent=2))
        return

    gs = payload.global_stats
    typer.echo(f"Reviews: {gs.total_reviews}  Minutes: {gs.total_review_minutes:.1f}")
    for row in summarize(payload):
        typer.echo(
            f"  {row.current_score:6.2f}  +{row.rotation_bonus:<5g} "
            f"{row.total_reviews:4d}  {row.key}"
        )


@app.command()
def report(
    ctx: typer.Context,
    days: Annotated[int, typer.Option(min=1, help="Number of days to chart.")] = 30,
):
    """Print chart series (real score, effective score, daily actions) as JSON."""
    import datetime

    from projects_memory.application.factory import get_scheduler
    from projects_memory.application.stats.report import build_chart_data

    payload = get_scheduler(_config(ctx)).load_all_stats()
    if not payload.projects:
        typer.secho("No statistics yet. Review some projects first.", fg="yellow")
        return

    chart = build_chart_data(payload, datetime.date.today(), days=days)
    typer.echo(json.dumps(asdict(chart), indent=2))


@app.command("migrate")
def migrate_cmd(
    ctx: typer.Context,
    vault: Annotated[
        Path | None,
        typer.Argument(help="Vault whose legacy frontmatter scores should seed new records."),
    ] = None,
):
    """Migrate legacy statistics into the current document layout."""
    from projects_memory.application.factory import get_candidate_source, get_scheduler

    config = _config(ctx, vault_root=vault)
    candidates = []
    if config.vault_root is not None:
        candidates = get_candidate_source(config).list_eligible_items()

    try:
        result = get_scheduler(config).migrate(candidates)
    except ProjectsMemoryError as e:
        raise _fail(f"Migration failed: {e}") from e

    for step in result.steps_run:
        typer.secho(f"Migrated: {step}", fg="green")
    if result.steps_skipped:
        typer.echo(f"Already done: {', '.join(result.steps_skipped)}")
    typer.echo(
        f"Imported {result.imported}, seeded {result.seeded}, normalized {result.normalized}"
    )
    for err in result.errors:
        typer.secho(f"  skipped: {err}", fg="yellow")


# ---------------------------------------------------------------------------
# Config subgroup
# ---------------------------------------------------------------------------


@config_app.command("show")
def config_show(ctx: typer.Context):
    """Display final resolved configuration."""
    config = _config(ctx)
    d = {k: str(v) if isinstance(v, Path) else v for k, v in config.model_dump().items()}
    typer.echo(json.dumps(d, indent=2))


# ---------------------------------------------------------------------------
# Server
# ---------------------------------------------------------------------------


@app.command()
def serve(
    port: Annotated[int, typer.Option(help="Port to bind the server to.")] = 8777,
    host: Annotated[str, typer.Option(help="Host to bind the server to.")] = "127.0.0.1",
    reload: Annotated[bool, typer.Option(help="Enable auto-reload.")] = False,
):
    """Run the HTTP API for host applications."""
    import uvicorn

    uvicorn.run("projects_memory.server:app", host=host, port=port, reload=reload)
