"""
Landmark Sync — CLI Entry Point

Usage:
    landmark-sync sources
    landmark-sync use NAME
    landmark-sync sync [--json]
    landmark-sync status [--json]
    landmark-sync validate [--file PATH]
"""

from __future__ import annotations

# Load .env FIRST, before anything reads LANDMARK_SYNC_* variables
from pathlib import Path
from dotenv import load_dotenv

_env_file = Path.cwd() / ".env"
if _env_file.exists():
    load_dotenv(_env_file)

import json
from typing import Optional

import click

from .config.settings import SyncSettings
from .logging_config import setup_logging
from .models.probe import SourceProgress
from .registry.store import SourceRegistry
from .service import LandmarkSyncService
from .sync.engine import SyncOutcome

setup_logging()


def _service(ctx: click.Context) -> LandmarkSyncService:
    return LandmarkSyncService.from_settings(ctx.obj["settings"])


@click.group()
@click.option("--home", type=click.Path(path_type=Path), default=None,
              help="Directory holding config.yml and cached documents")
@click.pass_context
def cli(ctx: click.Context, home: Optional[Path]) -> None:
    """Landmark Sync — Keep landmark data in sync with its mirrors."""
    ctx.ensure_object(dict)
    ctx.obj["settings"] = SyncSettings.from_env(home=home)


@cli.command()
@click.pass_context
def sources(ctx: click.Context) -> None:
    """List configured sources."""
    with _service(ctx) as service:
        current = service.registry.current_source_name
        for name, source in service.get_all_sources().items():
            marker = "→" if name == current else " "
            state = "" if source.enabled else " (disabled)"
            click.echo(f" {marker} {name:<12} {source.mode_label:<5} {source.label}{state}")
            for url in source.get_all_urls():
                click.echo(f"      {url}")
            if source.is_api_mode:
                click.echo(f"      {source.api_base_url}")


@cli.command()
@click.argument("name")
@click.pass_context
def use(ctx: click.Context, name: str) -> None:
    """Switch the current source."""
    with _service(ctx) as service:
        if not service.switch_source(name):
            source = service.registry.get_source(name)
            reason = "is disabled" if source is not None else "does not exist"
            click.secho(f"✗ Source '{name}' {reason}", fg="red")
            raise SystemExit(1)
    click.secho(f"✓ Current source: {name}", fg="green")


@cli.command()
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def sync(ctx: click.Context, as_json: bool) -> None:
    """Bring every JSON source's local copy up to date."""
    with _service(ctx) as service:
        results = service.sync(blocking=True)

    if as_json:
        click.echo(json.dumps({n: r.to_dict() for n, r in results.items()}, indent=2))
    else:
        icons = {
            SyncOutcome.CREATED: ("✓", "green"),
            SyncOutcome.UPDATED: ("✓", "green"),
            SyncOutcome.UNCHANGED: ("=", "white"),
            SyncOutcome.FAILED: ("✗", "red"),
            SyncOutcome.SKIPPED: ("-", "cyan"),
        }
        for name, result in results.items():
            icon, color = icons[result.outcome]
            line = f"  {icon} {name}: {result.outcome.value}"
            if result.version:
                line += f" (version {result.version})"
            if result.error and result.outcome == SyncOutcome.FAILED:
                line += f" — {result.error[:80]}"
            click.secho(line, fg=color)

    if any(r.outcome == SyncOutcome.FAILED for r in results.values()):
        raise SystemExit(1)


@cli.command()
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def status(ctx: click.Context, as_json: bool) -> None:
    """Probe every source and its mirrors."""

    def progress(p: SourceProgress) -> None:
        if not as_json:
            mark = "✓" if p.report.available else "✗"
            click.echo(f"  [{p.completed}/{p.total}] {mark} {p.name}")

    with _service(ctx) as service:
        summary = service.check_status(on_progress=progress)

    if as_json:
        click.echo(json.dumps(summary.to_dict(), indent=2))
        return

    click.echo()
    color = "green" if summary.available_count == summary.total else "yellow"
    click.secho(f"Sources available: {summary.available_count}/{summary.total}", fg=color, bold=True)
    for name, report in summary.reports.items():
        best = report.best
        click.echo()
        click.secho(f"  {report.display_name} ({name}, {report.mode})", bold=True)
        if best.available:
            line = f"    ✅ {best.host_label} {best.latency_ms}ms"
            if best.version:
                line += f" · version {best.version}"
        else:
            line = f"    ❌ {best.error}"
        click.echo(line)
        for mirror in report.mirrors or []:
            mark = "✓" if mirror.available else "✗"
            detail = f"{mirror.latency_ms}ms" if mirror.available else mirror.error
            tag = " ★" if report.recommended and mirror.url == report.recommended.url else ""
            click.echo(f"      {mark} {mirror.host_label}: {detail}{tag}")


@cli.command()
@click.option("--file", "file_path", type=click.Path(path_type=Path), default=None,
              help="Registry file to check (default: the configured one)")
@click.pass_context
def validate(ctx: click.Context, file_path: Optional[Path]) -> None:
    """Check that a registry file is valid."""
    path = file_path or ctx.obj["settings"].config_path
    if SourceRegistry.validate_file(path):
        click.secho(f"✓ {path} is valid", fg="green")
    else:
        click.secho(f"✗ {path} is missing or invalid", fg="red")
        raise SystemExit(1)


if __name__ == "__main__":
    cli()
