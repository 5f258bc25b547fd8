"""
CLI interface for cc-guard.

Real-time cost guard for Claude Code usage logs.
"""

import sys
from datetime import datetime, timezone
from typing import Any, Dict, Optional

import typer
import yaml
from rich.console import Console
from rich.live import Live
from watchdog.observers import Observer
from watchdog.observers.polling import PollingObserver

from cc_guard.cli.render import (
    render_blocks_table,
    render_dashboard,
    render_models_table,
    render_sessions_table,
)
from cc_guard.config.loader import Config, load_config
from cc_guard.core.aggregation import get_model_breakdown, get_session_summaries
from cc_guard.core.alerts import AlertLevel
from cc_guard.core.parser import parse_timestamp
from cc_guard.core.snapshot import take_snapshot
from cc_guard.logging_config import configure_logging
from cc_guard.storage.watcher import LogWatcher

app = typer.Typer(help="Real-time cost guard for Claude Code.")
console = Console()

EXIT_CODE_PASS = 0
EXIT_CODE_WARN = 0  # Non-failing warning
EXIT_CODE_FAIL = 1

LOG_DIR_OPTION = typer.Option(None, "--log-dir", "-d", help="Custom Claude Code logs directory")
CONFIG_OPTION = typer.Option(None, "--config", "-c", help="Path to YAML config file")
NOW_OPTION = typer.Option(None, "--now", help="Evaluate at this ISO-8601 time instead of the current time")
ALL_OPTION = typer.Option(False, "--all", "-a", help="Include every entry, not just the active block")


def _alert_to_exit_code(level: AlertLevel, enforced: bool) -> int:
    """Convert alert level to CLI exit code."""
    if enforced and level == AlertLevel.CRITICAL:
        return EXIT_CODE_FAIL
    return {
        AlertLevel.NONE: EXIT_CODE_PASS,
        AlertLevel.WARNING: EXIT_CODE_WARN,
        AlertLevel.CRITICAL: EXIT_CODE_WARN,
    }[level]


def _load(config_path: Optional[str], **options: Any) -> Config:
    """Load config with CLI overrides and set up logging; exits on invalid config."""
    overrides: Dict[str, Any] = {key: value for key, value in options.items() if value is not None}
    try:
        config = load_config(config_path, overrides)
    except (FileNotFoundError, ValueError, yaml.YAMLError) as e:
        console.print(f"[red]Invalid configuration:[/] {str(e)}")
        sys.exit(EXIT_CODE_FAIL)
    configure_logging(log_format=config.log_format, log_level=config.log_level)
    return config


def _resolve_now(now: Optional[str]) -> datetime:
    if now is None:
        return datetime.now(timezone.utc)
    parsed = parse_timestamp(now)
    if parsed is None:
        console.print(f"[red]Invalid --now timestamp:[/] {now}")
        sys.exit(EXIT_CODE_FAIL)
    return parsed


def _start_watcher(config: Config) -> LogWatcher:
    """Read all existing logs once; exits when the logs directory is missing."""
    watcher = LogWatcher(config.log_dir, config.custom_pricing)
    if not watcher.start():
        console.print(f"[red]Error:[/] {watcher.error}")
        sys.exit(EXIT_CODE_FAIL)
    return watcher


@app.callback(invoke_without_command=True)
def main(ctx: typer.Context):
    """cc-guard CLI."""
    if ctx.invoked_subcommand is None:
        console.print("cc-guard - Use --help to see available commands")


@app.command()
def status(
    log_dir: Optional[str] = LOG_DIR_OPTION,
    config_path: Optional[str] = CONFIG_OPTION,
    budget: Optional[float] = typer.Option(None, "--budget", "-b", help="Budget per 5-hour block in USD"),
    warning: Optional[float] = typer.Option(None, "--warning", help="Warning threshold percentage"),
    critical: Optional[float] = typer.Option(None, "--critical", help="Critical threshold percentage"),
    no_alert: bool = typer.Option(False, "--no-alert", help="Disable budget alerts"),
    mode: Optional[str] = typer.Option(None, "--mode", "-m", help="Billing mode: api or sub"),
    now: Optional[str] = NOW_OPTION,
    enforced: bool = typer.Option(False, "--enforced", "-e", help="Exit with error code if the budget alert is critical"),
):
    """
    Show the active billing block, burn rate and budget alert once.

    Reads every session log under the logs directory and evaluates the
    5-hour block that is active at the given time.
    """
    config = _load(
        config_path,
        log_dir=log_dir,
        budget_per_block=budget,
        warning_threshold=warning,
        critical_threshold=critical,
        alerts_enabled=False if no_alert else None,
        mode=mode,
    )
    moment = _resolve_now(now)
    watcher = _start_watcher(config)

    snapshot = take_snapshot(watcher.entries, moment, config)
    console.print(render_dashboard(
        snapshot,
        config,
        file_count=watcher.file_count,
        error=watcher.error,
        last_update=watcher.last_update,
    ))
    sys.exit(_alert_to_exit_code(snapshot.alert.level, enforced))


@app.command()
def watch(
    log_dir: Optional[str] = LOG_DIR_OPTION,
    config_path: Optional[str] = CONFIG_OPTION,
    budget: Optional[float] = typer.Option(None, "--budget", "-b", help="Budget per 5-hour block in USD"),
    warning: Optional[float] = typer.Option(None, "--warning", help="Warning threshold percentage"),
    critical: Optional[float] = typer.Option(None, "--critical", help="Critical threshold percentage"),
    no_alert: bool = typer.Option(False, "--no-alert", help="Disable budget alerts"),
    mode: Optional[str] = typer.Option(None, "--mode", "-m", help="Billing mode: api or sub"),
    poll: bool = typer.Option(False, "--poll", help="Poll the file system instead of using native notifications"),
):
    """Live dashboard that updates as Claude Code writes new log lines. Ctrl+C to exit."""
    config = _load(
        config_path,
        log_dir=log_dir,
        budget_per_block=budget,
        warning_threshold=warning,
        critical_threshold=critical,
        alerts_enabled=False if no_alert else None,
        mode=mode,
    )

    if poll:
        observer_factory = lambda: PollingObserver(timeout=config.poll_interval)  # noqa: E731
    else:
        observer_factory = Observer

    with LogWatcher(config.log_dir, config.custom_pricing, observer_factory=observer_factory) as watcher:
        if not watcher.is_watching:
            console.print(f"[red]Error:[/] {watcher.error}")
            sys.exit(EXIT_CODE_FAIL)

        def _render():
            snapshot = take_snapshot(watcher.entries, datetime.now(timezone.utc), config)
            return render_dashboard(
                snapshot,
                config,
                file_count=watcher.file_count,
                error=watcher.error,
                last_update=watcher.last_update,
            )

        try:
            with Live(_render(), console=console, auto_refresh=False) as live:
                while True:
                    watcher.process_pending(timeout=config.refresh_interval)
                    live.update(_render(), refresh=True)
        except KeyboardInterrupt:
            pass

    sys.exit(EXIT_CODE_PASS)


@app.command()
def blocks(
    log_dir: Optional[str] = LOG_DIR_OPTION,
    config_path: Optional[str] = CONFIG_OPTION,
    now: Optional[str] = NOW_OPTION,
):
    """List every 5-hour billing block found in the logs."""
    config = _load(config_path, log_dir=log_dir)
    moment = _resolve_now(now)
    watcher = _start_watcher(config)

    snapshot = take_snapshot(watcher.entries, moment, config)
    if not snapshot.blocks:
        console.print("\n[bold yellow]No usage data found[/]\n")
        sys.exit(EXIT_CODE_PASS)

    console.print(render_blocks_table(snapshot.blocks, moment))
    sys.exit(EXIT_CODE_PASS)


@app.command()
def models(
    log_dir: Optional[str] = LOG_DIR_OPTION,
    config_path: Optional[str] = CONFIG_OPTION,
    now: Optional[str] = NOW_OPTION,
    all_entries: bool = ALL_OPTION,
):
    """Token and cost breakdown per model."""
    config = _load(config_path, log_dir=log_dir)
    moment = _resolve_now(now)
    watcher = _start_watcher(config)

    if all_entries:
        breakdown = get_model_breakdown(watcher.entries, config.custom_pricing)
    else:
        breakdown = take_snapshot(watcher.entries, moment, config).models

    if not breakdown:
        console.print("\n[bold yellow]No usage data found[/]\n")
        sys.exit(EXIT_CODE_PASS)

    console.print(render_models_table(breakdown))
    unpriced = [m.model for m in breakdown if not m.has_pricing]
    if unpriced:
        console.print(f"[yellow]No pricing available for:[/] {', '.join(unpriced)}")
    sys.exit(EXIT_CODE_PASS)


@app.command()
def sessions(
    log_dir: Optional[str] = LOG_DIR_OPTION,
    config_path: Optional[str] = CONFIG_OPTION,
    now: Optional[str] = NOW_OPTION,
    all_entries: bool = ALL_OPTION,
):
    """Per-session totals, most recently active first."""
    config = _load(config_path, log_dir=log_dir)
    moment = _resolve_now(now)
    watcher = _start_watcher(config)

    if all_entries:
        summaries = get_session_summaries(watcher.entries)
    else:
        summaries = take_snapshot(watcher.entries, moment, config).sessions

    if not summaries:
        console.print("\n[bold yellow]No usage data found[/]\n")
        sys.exit(EXIT_CODE_PASS)

    console.print(render_sessions_table(summaries, moment))
    sys.exit(EXIT_CODE_PASS)


if __name__ == "__main__":
    app()
