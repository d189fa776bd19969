"""
wureset — CLI entrypoint.

Usage:
    python -m wureset.main               # full remediation
    python -m wureset.main run --dry-run
    python -m wureset.main status
    python -m wureset.main restore
"""

from __future__ import annotations

import json
import os
import sys
from pathlib import Path

import click

from wureset import __version__
from wureset.core.observability.logging_config import setup_logging

_STATUS_COLORS = {"ok": "green", "partial": "yellow", "failed": "red"}


@click.group(invoke_without_command=True)
@click.version_option(version=__version__, prog_name="wureset")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output.")
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output.")
@click.option("--debug", is_flag=True, help="Enable debug logging (very verbose).")
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=False),
    default=None,
    help="Path to wureset.yml (default: auto-detect).",
)
@click.pass_context
def cli(
    ctx: click.Context,
    verbose: bool,
    quiet: bool,
    debug: bool,
    config_path: str | None,
) -> None:
    """wureset — reset a stuck Windows Update subsystem.

    Without a command, performs the full remediation: snapshot and
    suspend the update services, archive their cache directories,
    delete stale marker files, then restore the services.
    """
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["quiet"] = quiet
    ctx.obj["debug"] = debug
    ctx.obj["config_path"] = Path(config_path) if config_path else None

    # ── Logging setup (once, at process start) ──────────────────
    if debug:
        level = "DEBUG"
    elif verbose:
        level = "INFO"
    elif quiet:
        level = "ERROR"
    else:
        level = os.environ.get("WURESET_LOG_LEVEL", "INFO")

    setup_logging(
        level=level,
        log_file=os.environ.get("WURESET_LOG_FILE"),
        log_file_level=os.environ.get("WURESET_LOG_FILE_LEVEL"),
        quiet_third_party=not debug,
    )

    if ctx.invoked_subcommand is None:
        ctx.invoke(run)


@cli.command()
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.option("--dry-run", is_flag=True, help="Query and plan, but change nothing.")
@click.option("--mock", is_flag=True, help="Use an in-memory service controller.")
@click.pass_context
def run(ctx: click.Context, as_json: bool = False, dry_run: bool = False, mock: bool = False) -> None:
    """Run the full remediation sequence."""
    from wureset.core.use_cases.run import run_remediation_once

    result = run_remediation_once(
        config_path=ctx.obj.get("config_path"),
        dry_run=dry_run,
        mock_mode=mock,
    )

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        if result.error:
            sys.exit(1)
        return

    if result.error:
        click.secho(f"❌ {result.error}", fg="red")
        sys.exit(1)

    report = result.report
    assert report is not None

    mode_label = "[dry-run] " if dry_run else "[mock] " if mock else ""
    click.echo()
    click.secho(f"⚡ {mode_label}remediation {report.run_id}", fg="cyan", bold=True)

    for phase in report.phases:
        marker, color = {
            "ok": ("✓", "green"),
            "partial": ("◐", "yellow"),
            "failed": ("✗", "red"),
        }[phase.status]
        click.secho(f"   {marker} {phase.label}", fg=color, nl=False)
        click.echo(f"  ({len(phase.receipts)} actions, {phase.failed} failed)")
        if phase.failed:
            for receipt in phase.receipts:
                if receipt.failed:
                    click.echo(f"     │ {receipt.error}")

    click.echo()
    click.secho(
        f"   Result: {report.status} — {report.succeeded} ok, "
        f"{report.failed} failed, {report.skipped} skipped",
        fg=_STATUS_COLORS.get(report.status, "white"),
        bold=True,
    )
    if result.log_path:
        click.echo(f"   Log: {result.log_path}")
    click.echo()

    if report.failed > 0:
        sys.exit(1)


@cli.command()
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.option("--mock", is_flag=True, help="Use an in-memory service controller.")
@click.pass_context
def status(ctx: click.Context, as_json: bool, mock: bool) -> None:
    """Show service startup modes, rotation chains and the last run."""
    from wureset.core.use_cases.status import get_status

    result = get_status(config_path=ctx.obj.get("config_path"), mock_mode=mock)

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        if result.error:
            sys.exit(1)
        return

    if result.error:
        click.secho(f"❌ {result.error}", fg="red")
        sys.exit(1)

    click.echo()
    click.secho("🔧 Services", fg="cyan", bold=True)
    for svc in result.services:
        if svc.error:
            click.secho(f"   ✗ {svc.name}", fg="red", nl=False)
            click.echo(f"  {svc.error}")
        else:
            click.echo(f"   • {svc.name}  {svc.mode}  {svc.state}")

    click.echo()
    click.secho("📦 Rotation chains", fg="cyan", bold=True)
    for chain in result.chains:
        live = "live" if chain.live_present else "no live dir"
        slots = ", ".join(f"{g:02d}" for g in chain.occupied) or "none"
        click.echo(f"   • {chain.base_path}  ({live}; slots: {slots})")
        if chain.gaps:
            click.secho(
                f"     ⚠️  gaps at {', '.join(f'{g:02d}' for g in chain.gaps)}",
                fg="yellow",
            )
        if chain.overflow:
            click.secho(
                f"     ⚠️  slots beyond limit: {', '.join(f'{g:02d}' for g in chain.overflow)}",
                fg="yellow",
            )

    if result.last_run and result.last_run.run_id:
        click.echo()
        click.secho("   Last run:", fg="white", bold=True)
        click.echo(f"     {result.last_run.run_id} — phase {result.last_run.phase}")
        if result.interrupted:
            click.secho(
                "     ⚠️  did not finish; run 'wureset restore' to re-apply service modes",
                fg="yellow",
            )

    click.echo()


@cli.command()
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.option("--mock", is_flag=True, help="Use an in-memory service controller.")
@click.pass_context
def restore(ctx: click.Context, as_json: bool, mock: bool) -> None:
    """Re-apply the service modes recorded by the last run."""
    from wureset.core.use_cases.restore import restore_from_state

    result = restore_from_state(config_path=ctx.obj.get("config_path"), mock_mode=mock)

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        if result.error:
            sys.exit(1)
        return

    if result.error:
        click.secho(f"❌ {result.error}", fg="red")
        sys.exit(1)

    report = result.report
    assert report is not None

    click.echo()
    click.secho(f"♻️  Restored from {result.source_run_id}", fg="cyan", bold=True)
    for receipt in report.receipts:
        if receipt.ok:
            click.secho(f"   ✓ {receipt.action_id.split(':', 1)[-1]}", fg="green")
        elif receipt.failed:
            click.secho(f"   ✗ {receipt.action_id.split(':', 1)[-1]}", fg="red", nl=False)
            click.echo(f"  {receipt.error}")
        else:
            click.secho(f"   ⊘ {receipt.action_id.split(':', 1)[-1]}", fg="yellow", nl=False)
            click.echo(f"  {receipt.output}")
    click.echo()

    if report.failed > 0:
        sys.exit(1)


@cli.command()
@click.option("-n", "count", default=10, type=int, help="Number of entries to show.")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def history(ctx: click.Context, count: int, as_json: bool) -> None:
    """Show recent runs from the audit ledger."""
    from wureset.core.config.loader import ConfigError, config_base_dir
    from wureset.core.persistence.audit import AuditWriter
    from wureset.core.use_cases.run import resolve_config

    try:
        config, config_path = resolve_config(ctx.obj.get("config_path"))
    except ConfigError as e:
        click.secho(f"❌ {e}", fg="red")
        sys.exit(1)

    writer = AuditWriter(state_dir=config.resolved_state_dir(config_base_dir(config_path)))
    entries = writer.read_recent(count)

    if as_json:
        click.echo(json.dumps([e.model_dump(mode="json") for e in entries], indent=2))
        return

    if not entries:
        click.secho(f"No runs recorded in {writer.path}", fg="yellow")
        return

    click.secho(f"📜 Last {len(entries)} run(s):", fg="cyan", bold=True)
    for entry in entries:
        dry = " [dry-run]" if entry.dry_run else ""
        click.echo(f"   {entry.timestamp}  {entry.operation_type}{dry}  ", nl=False)
        click.secho(entry.status, fg=_STATUS_COLORS.get(entry.status, "white"), nl=False)
        click.echo(f"  ({entry.actions_succeeded}/{entry.actions_total} ok)  {entry.run_id}")


@cli.group()
def config() -> None:
    """Configuration commands."""


@config.command("check")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def config_check(ctx: click.Context, as_json: bool) -> None:
    """Validate wureset.yml configuration."""
    from wureset.core.use_cases.config_check import check_config

    result = check_config(config_path=ctx.obj.get("config_path"))

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        sys.exit(0 if result.valid else 1)
        return

    if result.valid:
        assert result.config is not None  # guaranteed when valid
        click.secho("✅ Configuration is valid", fg="green", bold=True)
        click.echo(f"   Services: {', '.join(result.config.services) or '(none)'}")
        click.echo(f"   Archive paths: {len(result.config.archive_paths)}")
        click.echo(f"   Generations kept: {result.config.max_generations}")
    else:
        click.secho("❌ Configuration errors:", fg="red", bold=True)
        for err in result.errors:
            click.echo(f"   • {err}")

    if result.warnings:
        click.echo()
        click.secho("⚠️  Warnings:", fg="yellow")
        for warn in result.warnings:
            click.echo(f"   • {warn}")

    if not result.valid:
        click.echo()
        sys.exit(1)

    click.echo()


if __name__ == "__main__":
    cli()
