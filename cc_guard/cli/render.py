"""
Rich renderables for the terminal dashboard and tables.
"""

from datetime import datetime
from typing import List, Optional, Sequence

from rich.console import Group
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from cc_guard.config.loader import BillingMode, Config
from cc_guard.core.aggregation import ModelBreakdown, SessionSummary
from cc_guard.core.alerts import AlertLevel
from cc_guard.core.billing_block import BillingBlock
from cc_guard.core.burn_rate import Trend
from cc_guard.core.snapshot import UsageSnapshot
from .format import (
    abbreviate_model,
    format_cost,
    format_duration,
    format_percent,
    format_rate,
    format_time_ago,
    format_token_rate,
    format_tokens,
    truncate,
)


SPARK_CHARS = "▁▂▃▄▅▆▇█"

TREND_ARROWS = {
    Trend.RISING: "[red]▲ rising[/]",
    Trend.FALLING: "[green]▼ falling[/]",
    Trend.STABLE: "[dim]► stable[/]",
}

ALERT_STYLES = {
    AlertLevel.WARNING: "bold yellow",
    AlertLevel.CRITICAL: "bold white on red",
}


def render_sparkline(data: Sequence[float]) -> str:
    if not data:
        return "No data"
    peak = max(max(data), 0.001)
    chars = []
    for value in data:
        index = min(int(value / peak * (len(SPARK_CHARS) - 1)), len(SPARK_CHARS) - 1)
        chars.append(SPARK_CHARS[max(index, 0)])
    return "".join(chars)


def render_progress_bar(progress: float, width: int = 30) -> str:
    filled = round(progress * width)
    return "█" * filled + "░" * (width - filled) + f" {format_percent(progress * 100)}"


def _local_time(moment: datetime) -> str:
    return moment.astimezone().strftime("%H:%M")


def render_dashboard(
    snapshot: UsageSnapshot,
    config: Config,
    file_count: int = 0,
    error: Optional[str] = None,
    last_update: Optional[datetime] = None,
) -> Group:
    """Build the full dashboard for one snapshot."""
    parts: List = []

    header = Text.assemble(
        ("cc-guard ", "bold"),
        (f" {config.mode.value.upper()} ", "reverse"),
    )
    parts.append(header)

    if error:
        parts.append(Text(error, style="bold red"))

    alert = snapshot.alert
    if config.mode == BillingMode.API and alert.level != AlertLevel.NONE:
        parts.append(Text(alert.message, style=ALERT_STYLES[alert.level]))

    parts.append(_block_panel(snapshot))
    parts.append(_cost_panel(snapshot, config))

    if snapshot.current_block is not None:
        parts.append(_burn_rate_panel(snapshot))
        if snapshot.models:
            parts.append(render_models_table(snapshot.models))
        if snapshot.sessions:
            parts.append(render_sessions_table(snapshot.sessions, snapshot.now))

    status = f"{file_count} files"
    if last_update is not None:
        status += f" · updated {format_time_ago(last_update, snapshot.now)}"
    unpriced = snapshot.unpriced_models
    if unpriced:
        status += f" · no pricing for {len(unpriced)} model(s)"
    parts.append(Text(status, style="dim"))

    return Group(*parts)


def _block_panel(snapshot: UsageSnapshot) -> Panel:
    block = snapshot.current_block
    if block is None:
        message = "No active billing block" if snapshot.has_data else "No usage data found"
        return Panel(Text(message, style="dim"), title="Block Timeline")

    body = Text.assemble(
        render_progress_bar(snapshot.progress), "\n",
        ("Window    ", "dim"), f"{_local_time(block.start_time)} → {_local_time(block.end_time)}", "\n",
        ("Remaining ", "dim"), (format_duration(snapshot.remaining), "bold"),
    )
    return Panel(body, title="Block Timeline")


def _cost_panel(snapshot: UsageSnapshot, config: Config) -> Panel:
    block = snapshot.current_block
    table = Table.grid(padding=(0, 2))
    table.add_column(style="dim")
    table.add_column(justify="right")

    if config.mode == BillingMode.SUB:
        table.add_row("Block tokens", format_tokens(block.total_tokens if block else 0))
        if config.token_budget_per_block is not None:
            table.add_row("Token budget", f"{format_tokens(config.token_budget_per_block)} ({format_percent(snapshot.alert.percentage)})")
        table.add_row("All-time tokens", format_tokens(snapshot.total_tokens_all_time))
        table.add_row("Equivalent API cost", format_cost(block.total_cost if block else 0.0))
        return Panel(table, title="Usage")

    table.add_row("Block cost", format_cost(block.total_cost if block else 0.0))
    table.add_row("Budget", f"{format_cost(config.budget_per_block)} ({format_percent(snapshot.alert.percentage)})")
    table.add_row("All-time cost", format_cost(snapshot.total_cost_all_time))
    table.add_row("All-time tokens", format_tokens(snapshot.total_tokens_all_time))
    return Panel(table, title="Cost")


def _burn_rate_panel(snapshot: UsageSnapshot) -> Panel:
    cost_rate = snapshot.cost_rate
    token_rate = snapshot.token_rate
    table = Table.grid(padding=(0, 2))
    table.add_column(style="dim")
    table.add_column(justify="right")
    table.add_row("Cost rate", f"{format_rate(cost_rate.cost_per_hour)} (15m: {format_rate(cost_rate.recent_cost_per_hour)})")
    table.add_row("Projected block", format_cost(cost_rate.projected_block_total))
    table.add_row("Token rate", f"{format_token_rate(token_rate.tokens_per_hour)} (15m: {format_token_rate(token_rate.recent_tokens_per_hour)})")
    table.add_row("Projected tokens", format_tokens(token_rate.projected_block_tokens))
    table.add_row("Trend", TREND_ARROWS[cost_rate.trend])
    table.add_row("Last 60m", render_sparkline(cost_rate.sparkline_data))
    return Panel(table, title="Burn Rate")


def render_blocks_table(blocks: Sequence[BillingBlock], now: datetime) -> Table:
    table = Table(title="Billing Blocks")
    table.add_column("Start")
    table.add_column("End")
    table.add_column("Entries", justify="right")
    table.add_column("Tokens", justify="right")
    table.add_column("Cost", justify="right")
    table.add_column("Status")

    for block in blocks:
        table.add_row(
            block.start_time.astimezone().strftime("%Y-%m-%d %H:%M"),
            block.end_time.astimezone().strftime("%Y-%m-%d %H:%M"),
            str(len(block.entries)),
            format_tokens(block.total_tokens),
            format_cost(block.total_cost),
            "[green]active[/]" if block.is_active else "[dim]closed[/]",
        )
    return table


def render_models_table(models: Sequence[ModelBreakdown]) -> Table:
    table = Table(title="Models")
    table.add_column("Model")
    table.add_column("Input", justify="right")
    table.add_column("Output", justify="right")
    table.add_column("Cache W 5m", justify="right")
    table.add_column("Cache W 1h", justify="right")
    table.add_column("Cache R", justify="right")
    table.add_column("Cost", justify="right")

    for model in models:
        name = abbreviate_model(model.model)
        if not model.has_pricing:
            name += " [yellow](no pricing)[/]"
        table.add_row(
            name,
            format_tokens(model.input_tokens),
            format_tokens(model.output_tokens),
            format_tokens(model.cache_write_5m_tokens),
            format_tokens(model.cache_write_1h_tokens),
            format_tokens(model.cache_read_tokens),
            format_cost(model.total_cost),
        )
    return table


def render_sessions_table(sessions: Sequence[SessionSummary], now: datetime) -> Table:
    table = Table(title="Sessions")
    table.add_column("Project")
    table.add_column("Session")
    table.add_column("Model")
    table.add_column("Entries", justify="right")
    table.add_column("Tokens", justify="right")
    table.add_column("Cost", justify="right")
    table.add_column("Last active")

    for session in sessions:
        table.add_row(
            truncate(session.project_path, 30),
            truncate(session.session_id, 12),
            abbreviate_model(session.model),
            str(session.entry_count),
            format_tokens(session.total_tokens),
            format_cost(session.total_cost),
            format_time_ago(session.last_activity, now),
        )
    return table
