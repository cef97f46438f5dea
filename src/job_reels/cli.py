"""Command-line interface using Typer."""

import json
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from job_reels import __version__
from job_reels.logging import setup_logging

# Setup logging
setup_logging()

app = typer.Typer(
    name="job-reels",
    help="Job Reels - job posting to short-video pipeline",
    add_completion=False,
)

videos_app = typer.Typer(help="Video library commands")
app.add_typer(videos_app, name="videos")

console = Console()

STATUS_STYLES = {
    "planned": "dim",
    "generating": "yellow",
    "extending": "yellow",
    "ready": "cyan",
    "approved": "green",
    "published": "bold green",
    "archived": "dim",
}


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"Job Reels v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        None,
        "--version",
        "-v",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
) -> None:
    """Job Reels - turn job postings into channel-ready short videos."""
    pass


def _service():
    from job_reels.services.library import VideoLibraryService

    return VideoLibraryService()


def _run(coro):
    """Run a service call, turning pipeline errors into a clean exit."""
    from job_reels.errors import VideoPipelineError
    from job_reels.utils.async_utils import run_async

    try:
        return run_async(coro)
    except VideoPipelineError as e:
        console.print(f"[bold red]{e.code}: {e.message}[/bold red]")
        raise typer.Exit(code=1)


def _require(item, item_id: str):
    if item is None:
        console.print(f"[bold red]Video item not found: {item_id}[/bold red]")
        raise typer.Exit(code=1)
    return item


def _status(value: str) -> str:
    style = STATUS_STYLES.get(value, "white")
    return f"[{style}]{value}[/{style}]"


def _print_item(item) -> None:
    manifest = item.active_manifest
    task = item.render_task
    lines = [
        f"[bold]ID:[/bold] {item.id}",
        f"[bold]Job:[/bold] {item.job_snapshot.title} ({item.job_id})",
        f"[bold]Channel:[/bold] {item.channel_name} / {item.placement_name}",
        f"[bold]Status:[/bold] {_status(item.status.value)}",
        f"[bold]Manifest:[/bold] v{item.manifest_version} ({manifest.generator.mode.value})",
        f"[bold]Caption:[/bold] {manifest.caption.text}",
    ]
    if manifest.generator.warnings:
        lines.append(f"[bold]Warnings:[/bold] {'; '.join(manifest.generator.warnings)}")
    if task is not None:
        lines.append(
            f"[bold]Render:[/bold] {task.renderer} {task.status.value} ({task.mode.value})"
        )
        if task.result and task.result.video_url:
            lines.append(f"[bold]Video:[/bold] {task.result.video_url}")
        if task.error:
            lines.append(f"[bold]Render error:[/bold] {task.error.reason}")
    if item.veo.operation_name:
        lines.append(
            f"[bold]Veo:[/bold] {item.veo.status.value} {item.veo.operation_name} "
            f"(attempts {item.veo.attempts})"
        )
    if item.publish_task is not None:
        lines.append(
            f"[bold]Publish:[/bold] {item.publish_task.adapter} {item.publish_task.status.value}"
        )
    console.print(Panel("\n".join(lines), title="Video Item"))


@app.command()
def worker() -> None:
    """Start a Celery worker with the beat scheduler (for development)."""
    console.print("[bold blue]Starting Celery worker...[/bold blue]")

    import subprocess
    import sys

    subprocess.run(
        [
            sys.executable,
            "-m",
            "celery",
            "-A",
            "job_reels.worker",
            "worker",
            "--beat",
            "--loglevel=info",
        ],
        check=True,
    )


@app.command()
def health() -> None:
    """Check the store, the broker and every renderer."""
    from job_reels.adapters.renderer.registry import default_registry
    from job_reels.config import settings
    from job_reels.logging import get_logger
    from job_reels.utils.async_utils import run_async

    logger = get_logger(__name__)
    checks: dict[str, bool] = {}

    if settings.video_store == "sql":
        from job_reels.db.session import init_db

        try:
            init_db()
            checks["database"] = True
        except Exception as e:
            logger.error("database_health_check_failed", error=str(e))
            checks["database"] = False

    if settings.celery_broker_url.startswith("redis"):
        import redis

        try:
            redis.from_url(settings.celery_broker_url).ping()
            checks["redis"] = True
        except Exception as e:
            logger.error("redis_health_check_failed", error=str(e))
            checks["redis"] = False

    registry = default_registry()
    for name in registry.names:
        checks[f"renderer:{name}"] = run_async(registry.get(name).health_check())

    table = Table(title="Service Health")
    table.add_column("Component", style="cyan")
    table.add_column("Status")
    for component, healthy in checks.items():
        table.add_row(component, "✓" if healthy else "✗")
    console.print(table)

    if all(checks.values()):
        console.print("[bold green]All services healthy![/bold green]")
    else:
        console.print("[bold yellow]Some services unhealthy[/bold yellow]")
        raise typer.Exit(code=1)


@app.command()
def capabilities(
    provider: str = typer.Argument(..., help="Render provider (sora, veo, ...)"),
    model: Optional[str] = typer.Option(None, "--model", "-m", help="Model id override"),
) -> None:
    """Show what a render provider can do."""
    from job_reels.video.capabilities import capabilities as lookup

    caps = lookup(provider, model)

    table = Table(title=f"Capabilities: {caps.provider}")
    table.add_column("Property", style="cyan")
    table.add_column("Value")
    table.add_row("Model", caps.model_id)
    table.add_row("Durations", ", ".join(f"{d}s" for d in caps.supported_durations))
    table.add_row("Max single shot", f"{caps.max_single_shot_seconds}s")
    table.add_row("Extend", f"{caps.extend_step_seconds}s steps" if caps.can_extend else "no")
    table.add_row("Max total", f"{caps.max_total_seconds}s")
    table.add_row("Aspect ratios", ", ".join(caps.supported_aspect_ratios))
    table.add_row("Resolutions", ", ".join(caps.supported_resolutions))
    console.print(table)

    if caps.is_fallback:
        console.print("[yellow]Unknown provider: values are a conservative guess[/yellow]")


@app.command()
def channels() -> None:
    """List video channels and their placement rules."""
    from job_reels.domain.channels import VIDEO_CHANNEL_SPECS
    from job_reels.services.publisher import adapter_key_for

    table = Table(title="Video Channels")
    table.add_column("Channel", style="cyan")
    table.add_column("Placement")
    table.add_column("Aspect")
    table.add_column("Duration")
    table.add_column("Tier")
    table.add_column("Adapter", style="dim")

    for channel_id, spec in VIDEO_CHANNEL_SPECS.items():
        table.add_row(
            channel_id,
            spec.placement_name,
            spec.aspect_ratio,
            f"{spec.duration.min_seconds:g}-{spec.duration.max_seconds:g}s",
            spec.preferred_tier.value,
            adapter_key_for(channel_id),
        )
    console.print(table)


# =============================================================================
# VIDEO COMMANDS
# =============================================================================


@videos_app.command("create")
def videos_create(
    owner: str = typer.Option(..., "--owner", "-o", help="Owner user id"),
    channel: str = typer.Option(..., "--channel", "-c", help="Channel id (e.g. TIKTOK_LEAD)"),
    job_file: Optional[Path] = typer.Option(
        None, "--job-file", "-f", help="JSON file with the job posting"
    ),
    job_id: Optional[str] = typer.Option(None, "--job-id", help="Job id"),
    title: Optional[str] = typer.Option(None, "--title", "-t", help="Role title"),
    company: Optional[str] = typer.Option(None, "--company", help="Company name"),
    location: Optional[str] = typer.Option(None, "--location", "-l", help="Location"),
    salary: Optional[str] = typer.Option(None, "--salary", help="Salary or pay range"),
) -> None:
    """Create a video item (manifest v1) for a job on a channel.

    Example:
        job-reels videos create -o user-1 -c TIKTOK_LEAD --title "Line Cook" --location Austin
    """
    from pydantic import ValidationError

    from job_reels.domain.models import JobPosting, new_id

    try:
        if job_file:
            job = JobPosting.model_validate(json.loads(job_file.read_text()))
        else:
            job = JobPosting(
                id=job_id or new_id(),
                owner_user_id=owner,
                role_title=title,
                company_name=company,
                location=location,
                salary=salary,
            )
    except (OSError, json.JSONDecodeError, ValidationError) as e:
        console.print(f"[bold red]Invalid job input: {e}[/bold red]")
        raise typer.Exit(code=1)

    item = _run(_service().create_item(job, channel, owner))
    console.print(f"[bold green]✓ Video item created: {item.id}[/bold green]")
    _print_item(item)


@videos_app.command("list")
def videos_list(
    owner: str = typer.Option(..., "--owner", "-o", help="Owner user id"),
    status: Optional[str] = typer.Option(None, "--status", "-s", help="Filter by status"),
    channel: Optional[str] = typer.Option(None, "--channel", "-c", help="Filter by channel"),
    geo: Optional[str] = typer.Option(None, "--geo", "-g", help="Location substring"),
    role_family: Optional[str] = typer.Option(None, "--role-family", help="Role family"),
) -> None:
    """List video items."""
    from pydantic import ValidationError

    from job_reels.domain.models import ListFilters

    try:
        filters = ListFilters(
            status=status, channel_id=channel, geo=geo, role_family=role_family
        )
    except ValidationError:
        console.print(f"[bold red]Invalid status: {status}[/bold red]")
        raise typer.Exit(code=1)

    items = _run(_service().list_items(owner, filters))
    if not items:
        console.print("[dim]No video items found[/dim]")
        return

    table = Table(title="Video Library")
    table.add_column("ID", style="dim", no_wrap=True)
    table.add_column("Job", style="cyan")
    table.add_column("Channel")
    table.add_column("Status")
    table.add_column("Manifest")
    table.add_column("Updated")

    for item in items:
        table.add_row(
            item.id[:8] + "...",
            item.job_snapshot.title[:30],
            item.channel_id,
            _status(item.status.value),
            f"v{item.manifest_version}",
            item.updated_at.strftime("%Y-%m-%d %H:%M"),
        )
    console.print(table)


@videos_app.command("show")
def videos_show(
    item_id: str = typer.Argument(..., help="Video item id"),
    owner: str = typer.Option(..., "--owner", "-o", help="Owner user id"),
    audit: bool = typer.Option(False, "--audit", "-a", help="Show the audit log"),
) -> None:
    """Show a video item."""
    item = _require(_run(_service().get_item(owner, item_id)), item_id)
    _print_item(item)

    if audit:
        table = Table(title="Audit Log")
        table.add_column("When", style="dim")
        table.add_column("Type", style="cyan")
        table.add_column("Message")
        for entry in item.audit_log:
            table.add_row(
                entry.occurred_at.strftime("%Y-%m-%d %H:%M:%S"), entry.type, entry.message
            )
        console.print(table)


@videos_app.command("render")
def videos_render(
    item_id: str = typer.Argument(..., help="Video item id"),
    owner: str = typer.Option(..., "--owner", "-o", help="Owner user id"),
) -> None:
    """Render the active manifest (or advance a render in flight)."""
    item = _require(_run(_service().trigger_render(owner, item_id)), item_id)
    _print_item(item)
    if item.next_poll_at:
        console.print(
            f"[dim]Render pending, next check at {item.next_poll_at:%H:%M:%S} UTC "
            "(run 'job-reels videos poll' or a worker with beat)[/dim]"
        )


@videos_app.command("poll")
def videos_poll(
    item_id: str = typer.Argument(..., help="Video item id"),
    owner: str = typer.Option(..., "--owner", "-o", help="Owner user id"),
) -> None:
    """Run one completion check for an async render."""
    item = _require(_run(_service().poll_render(owner, item_id)), item_id)
    _print_item(item)


@videos_app.command("approve")
def videos_approve(
    item_id: str = typer.Argument(..., help="Video item id"),
    owner: str = typer.Option(..., "--owner", "-o", help="Owner user id"),
) -> None:
    """Approve a ready video."""
    item = _require(_run(_service().approve_item(owner, item_id)), item_id)
    console.print(f"[bold green]✓ {item.id} is {item.status.value}[/bold green]")


@videos_app.command("archive")
def videos_archive(
    item_id: str = typer.Argument(..., help="Video item id"),
    owner: str = typer.Option(..., "--owner", "-o", help="Owner user id"),
) -> None:
    """Archive a video."""
    item = _require(_run(_service().archive_item(owner, item_id)), item_id)
    console.print(f"[bold green]✓ {item.id} is {item.status.value}[/bold green]")


@videos_app.command("publish")
def videos_publish(
    item_id: str = typer.Argument(..., help="Video item id"),
    owner: str = typer.Option(..., "--owner", "-o", help="Owner user id"),
) -> None:
    """Publish an approved video to its channel."""
    item = _require(_run(_service().publish_item(owner, item_id)), item_id)
    task = item.publish_task
    if task is None:
        console.print("[bold red]Publish did not run[/bold red]")
        raise typer.Exit(code=1)

    if task.status.value == "published":
        console.print(f"[bold green]✓ Published via {task.adapter}[/bold green]")
    elif task.status.value == "ready":
        console.print(f"[bold yellow]{(task.response or {}).get('message')}[/bold yellow]")
    else:
        reason = task.error.reason if task.error else "unknown"
        console.print(f"[bold red]Publish failed: {reason}[/bold red]")
        raise typer.Exit(code=1)


@videos_app.command("bulk")
def videos_bulk(
    action: str = typer.Argument(..., help="approve or archive"),
    item_ids: list[str] = typer.Argument(..., help="Video item ids"),
    owner: str = typer.Option(..., "--owner", "-o", help="Owner user id"),
) -> None:
    """Approve or archive several videos. Items that cannot change are skipped."""
    from job_reels.domain.enums import BulkAction

    try:
        bulk_action = BulkAction(action.lower())
    except ValueError:
        console.print(f"[bold red]Unknown bulk action: {action}[/bold red]")
        raise typer.Exit(code=1)

    updated = _run(_service().bulk_update(owner, item_ids, bulk_action))
    console.print(f"[bold green]✓ {len(updated)}/{len(item_ids)} items updated[/bold green]")
    for item in updated:
        console.print(f"  {item.id} {_status(item.status.value)}")


@videos_app.command("caption")
def videos_caption(
    item_id: str = typer.Argument(..., help="Video item id"),
    text: str = typer.Option(..., "--text", "-t", help="Caption text (max 400 characters)"),
    hashtag: list[str] = typer.Option([], "--hashtag", "-h", help="Hashtag (repeatable)"),
    owner: str = typer.Option(..., "--owner", "-o", help="Owner user id"),
) -> None:
    """Replace the caption of the active manifest."""
    item = _require(_run(_service().update_caption(owner, item_id, text, hashtag)), item_id)
    console.print(f"[bold green]✓ Caption updated on v{item.manifest_version}[/bold green]")


@videos_app.command("regenerate")
def videos_regenerate(
    item_id: str = typer.Argument(..., help="Video item id"),
    owner: str = typer.Option(..., "--owner", "-o", help="Owner user id"),
) -> None:
    """Generate a new manifest version and reset render state."""
    item = _require(_run(_service().regenerate_manifest(owner, item_id)), item_id)
    console.print(f"[bold green]✓ Manifest v{item.manifest_version} created[/bold green]")
    _print_item(item)


if __name__ == "__main__":
    app()
