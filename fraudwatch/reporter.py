"""
Rich table rendering for CLI output.

Renders a PageResponse (one table per collection, with a pagination caption)
and the AdminStats overview.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

from rich import box
from rich.console import Console
from rich.table import Table

from fraudwatch.domain.models import PageResponse
from fraudwatch.domain.records import AdminStats
from fraudwatch.domain.timestamps import to_epoch_millis
from fraudwatch.query.collections import (
    BEHAVIOR_PROFILES,
    BEHAVIORAL_SESSIONS,
    RISK_SCORES,
    TRANSACTIONS,
    USERS,
)

# collection -> (attribute, header, style)
COLUMNS: Dict[str, List[Tuple[str, str, str]]] = {
    USERS: [
        ("id", "ID", "cyan"),
        ("full_name", "Name", "white"),
        ("email_id", "Email", "white"),
        ("mobile", "Mobile", "magenta"),
        ("status", "Status", "yellow"),
        ("biometric_enabled", "Verified", "green"),
        ("created_at", "Created", "dim"),
    ],
    TRANSACTIONS: [
        ("id", "ID", "cyan"),
        ("reference", "Reference", "white"),
        ("amount", "Amount", "bold green"),
        ("status", "Status", "yellow"),
        ("type", "Type", "white"),
        ("category", "Category", "white"),
        ("from_user_id", "From", "magenta"),
        ("created_at", "Created", "dim"),
    ],
    BEHAVIORAL_SESSIONS: [
        ("session_id", "Session", "cyan"),
        ("user_id", "User", "magenta"),
        ("touch_patterns", "Touch", "green"),
        ("typing_patterns", "Typing", "green"),
        ("motion_pattern", "Motion", "green"),
        ("timestamp", "Timestamp", "dim"),
    ],
    RISK_SCORES: [
        ("session_id", "Session", "cyan"),
        ("risk_level", "Level", "red"),
        ("total_score", "Score", "bold"),
        ("recommendation", "Recommendation", "white"),
        ("timestamp", "Timestamp", "dim"),
    ],
    BEHAVIOR_PROFILES: [
        ("user_id", "User", "cyan"),
        ("sim_operator", "SIM operator", "white"),
        ("location_patterns", "Locations", "green"),
    ],
}

TIMESTAMP_ATTRS = {"created_at", "updated_at", "last_login_at", "timestamp"}


def _format_timestamp(value: Any) -> str:
    millis = to_epoch_millis(value)
    if millis is None:
        return "-" if value is None else str(value)
    return datetime.fromtimestamp(millis / 1000, tz=timezone.utc).strftime("%Y-%m-%d %H:%M")


def _cell(attr: str, value: Any) -> str:
    if attr in TIMESTAMP_ATTRS:
        return _format_timestamp(value)
    if isinstance(value, bool):
        return "yes" if value else "no"
    if isinstance(value, (list, tuple)):
        return str(len(value))
    if isinstance(value, float):
        return f"{value:,.2f}"
    if value is None or value == "":
        return "-"
    return str(value)


def page_table(collection: str, response: PageResponse) -> Table:
    p = response.pagination
    caption = (
        f"Page {p.current_page}/{max(p.total_pages, 1)} | {p.total_items} items"
        f" | next={'yes' if p.has_next_page else 'no'} prev={'yes' if p.has_previous_page else 'no'}"
    )
    if response.filters:
        caption += " | filters: " + ", ".join(f"{k}={v}" for k, v in response.filters.items())
    table = Table(title=collection, box=box.ROUNDED, caption=caption)
    columns = COLUMNS[collection]
    for _, header, style in columns:
        table.add_column(header, style=style, no_wrap=True)
    for record in response.data:
        table.add_row(*[_cell(attr, getattr(record, attr, None)) for attr, _, _ in columns])
    return table


def print_page(collection: str, response: PageResponse, console: Optional[Console] = None) -> None:
    """
    Render one page as a rich table.

    Degraded responses print their error above the (empty) table.
    """
    console = console or Console()
    if response.error:
        console.print(f"[red]Read degraded:[/red] {response.error}")
    if not response.data:
        console.print("[yellow]No records on this page.[/yellow]")
    console.print(page_table(collection, response))


def print_stats(stats: AdminStats, console: Optional[Console] = None) -> None:
    console = console or Console()
    if stats.error:
        console.print(f"[red]Stats degraded:[/red] {stats.error}")
        return

    totals = Table(title="Overview", box=box.ROUNDED)
    totals.add_column("Metric", style="cyan")
    totals.add_column("Value", justify="right", style="bold green")
    totals.add_row("Total users", f"{stats.total_users:,}")
    totals.add_row("Active users (30d)", f"{stats.active_users:,}")
    totals.add_row("Total transactions", f"{stats.total_transactions:,}")
    totals.add_row("Transaction volume", f"{stats.total_transaction_amount:,.2f}")
    totals.add_row("Behavioral sessions", f"{stats.total_behavioral_sessions:,}")
    console.print(totals)

    versions = Table(title="App versions", box=box.ROUNDED)
    versions.add_column("Version", style="cyan")
    versions.add_column("Users", justify="right")
    versions.add_column("Share", justify="right", style="yellow")
    for share in sorted(stats.app_versions, key=lambda s: s.count, reverse=True):
        versions.add_row(share.version, str(share.count), f"{share.percentage:.1f}%")
    console.print(versions)

    trends = Table(title="Last 7 days", box=box.ROUNDED)
    trends.add_column("Day", style="cyan")
    trends.add_column("New users", justify="right", style="magenta")
    trends.add_column("Transactions", justify="right")
    trends.add_column("Amount", justify="right", style="bold green")
    for growth, trend in zip(stats.user_growth, stats.transaction_trends):
        trends.add_row(growth.day, str(growth.users), str(trend.count), f"{trend.amount:,.2f}")
    console.print(trends)


__all__ = ["COLUMNS", "page_table", "print_page", "print_stats"]
