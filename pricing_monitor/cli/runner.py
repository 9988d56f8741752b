# pricing_monitor/cli/runner.py

"""Headless CLI commands over the monitor store and check orchestrator."""

import json
import logging
import sys
from pathlib import Path
from typing import Any

from rich.console import Console
from rich.table import Table

from pricing_monitor.config.settings import Settings
from pricing_monitor.extraction.extractor import PricingExtractor
from pricing_monitor.models.monitor import ChangeRecord, Monitor
from pricing_monitor.models.pricing import NormalizedPricing
from pricing_monitor.services.check_orchestrator import (
    CheckOrchestrator,
    CheckResult,
)
from pricing_monitor.storage.file_manager import FileManager
from pricing_monitor.storage.snapshot_db import SnapshotDB

logger = logging.getLogger("pricing_monitor.cli")

# Stderr console for status messages so stdout stays clean for JSON
_err = Console(stderr=True)


def _dump_json(payload: Any) -> None:
    json.dump(payload, sys.stdout, ensure_ascii=False, indent=2, default=str)
    sys.stdout.write("\n")


def _monitor_to_dict(m: Monitor) -> dict[str, object]:
    return {
        "id": m.id,
        "url": m.url,
        "name": m.name,
        "css_hint": m.css_hint,
        "node_index": m.node_index,
        "email": m.email,
        "chat_webhook": m.chat_webhook,
        "is_active": m.is_active,
        "last_checked_at": (
            m.last_checked_at.isoformat() if m.last_checked_at else None
        ),
    }


def _format_amount(amount: float | None, currency: str | None) -> str:
    if amount is None:
        return "—"
    symbol = "" if currency in (None, "unknown") else f"{currency} "
    return f"{symbol}{amount:,.2f}"


def _print_pricing_table(pricing: NormalizedPricing, title: str) -> None:
    """Render the tiers of one pricing document to stdout."""
    table = Table(
        title=f"{title} (unit: {pricing.unit})",
        show_lines=True,
        title_style="bold cyan",
    )
    table.add_column("#", style="dim", width=4)
    table.add_column("Plan", max_width=40)
    table.add_column("Price", justify="right", style="green")
    table.add_column("Period", justify="center")
    table.add_column("Features", justify="right", style="magenta")

    for idx, tier in enumerate(pricing.tiers, 1):
        table.add_row(
            str(idx),
            (tier.name or "—")[:40],
            _format_amount(tier.amount, tier.currency),
            tier.period or "unknown",
            str(len(tier.features)),
        )

    Console().print(table)


def _print_monitors_table(
    monitors: list[Monitor], snapshot_counts: dict[int, int],
) -> None:
    table = Table(
        title="Monitors",
        show_lines=True,
        title_style="bold cyan",
    )
    table.add_column("ID", style="dim", width=5)
    table.add_column("Name", max_width=30)
    table.add_column("Selector", style="magenta")
    table.add_column("Index", justify="right")
    table.add_column("Active", justify="center")
    table.add_column("Snapshots", justify="right")
    table.add_column("Last checked", style="dim")
    table.add_column("URL", overflow="fold", style="dim")

    for m in monitors:
        table.add_row(
            str(m.id),
            m.label[:30],
            m.css_hint or "—",
            str(m.node_index) if m.node_index else "—",
            "yes" if m.is_active else "no",
            str(snapshot_counts.get(m.id or 0, 0)),
            (
                m.last_checked_at.strftime("%Y-%m-%d %H:%M")
                if m.last_checked_at
                else "never"
            ),
            m.url,
        )

    Console().print(table)


def _print_changes_table(changes: list[ChangeRecord]) -> None:
    table = Table(
        title="Recorded changes",
        show_lines=True,
        title_style="bold cyan",
    )
    table.add_column("ID", style="dim", width=5)
    table.add_column("When", style="dim")
    table.add_column("Summary")

    for c in changes:
        table.add_row(
            str(c.id),
            c.created_at.strftime("%Y-%m-%d %H:%M"),
            c.summary,
        )

    Console().print(table)


# ── Monitor management ───────────────────────────────────


def run_add(
    url: str,
    selector: str | None,
    index: int | None,
    name: str | None,
    email: str | None,
    webhook: str | None,
    db: SnapshotDB | None = None,
) -> int:
    """Register a new monitor; prints its id."""
    store = db or SnapshotDB()
    monitor = store.add_monitor(Monitor(
        url=url,
        name=name,
        css_hint=selector,
        node_index=index,
        email=email,
        chat_webhook=webhook,
    ))
    _err.print(
        f"[green]✓ Monitor {monitor.id} added for {url}[/green]"
    )
    _dump_json(_monitor_to_dict(monitor))
    return 0


def run_list(output_format: str, db: SnapshotDB | None = None) -> int:
    """Print every stored monitor."""
    store = db or SnapshotDB()
    monitors = store.list_monitors()
    if not monitors:
        _err.print("[yellow]No monitors configured.[/yellow]")
        return 0
    counts = {
        m.id: store.count_snapshots(m.id)
        for m in monitors
        if m.id is not None
    }
    if output_format == "table":
        _print_monitors_table(monitors, counts)
    else:
        _dump_json([
            {**_monitor_to_dict(m), "snapshots": counts.get(m.id or 0, 0)}
            for m in monitors
        ])
    return 0


def run_history(
    monitor_id: int,
    output_format: str,
    db: SnapshotDB | None = None,
) -> int:
    """Print the recorded changes of one monitor, newest first."""
    store = db or SnapshotDB()
    if store.get_monitor(monitor_id) is None:
        _err.print(f"[red]Unknown monitor: {monitor_id}[/red]")
        return 1
    changes = store.list_changes(monitor_id)
    if not changes:
        _err.print("[yellow]No changes recorded yet.[/yellow]")
        return 0
    if output_format == "table":
        _print_changes_table(changes)
    else:
        _dump_json([
            {
                "id": c.id,
                "created_at": c.created_at.isoformat(),
                "prev_snapshot_id": c.prev_snapshot_id,
                "new_snapshot_id": c.new_snapshot_id,
                "summary": c.summary,
                "diff": c.diff,
            }
            for c in changes
        ])
    return 0


# ── Extraction and checks ────────────────────────────────


def run_extract(
    html_file: str,
    selector: str | None,
    index: int | None,
    output_format: str,
) -> int:
    """Extract pricing from a saved HTML file without any network I/O."""
    path = Path(html_file)
    try:
        html = path.read_text(encoding="utf-8", errors="replace")
    except OSError as exc:
        _err.print(f"[red]Cannot read {path}: {exc}[/red]")
        return 1

    extraction = PricingExtractor.extract(html, selector, index)
    _err.print(
        f"[bold]Scope:[/bold] {extraction.scope.tag}  "
        f"[dim]mode={extraction.mode} reason={extraction.reason}[/dim]"
    )

    if output_format == "table":
        _print_pricing_table(extraction.pricing, path.name)
    else:
        _dump_json({
            "pricing": extraction.pricing.to_dict(),
            "debug": extraction.debug_info(),
        })
    return 0 if extraction.ok else 1


def _report_results(results: list[CheckResult]) -> None:
    """Status lines per check to stderr."""
    for r in results:
        if not r.ok:
            _err.print(f"[red]✗ {r.url}: capture failed[/red]")
        elif r.changed and r.diff is not None:
            _err.print(f"[yellow]Δ {r.url}: {r.diff.summary()}[/yellow]")
        else:
            tiers = len(r.pricing.tiers) if r.pricing else 0
            _err.print(
                f"[green]✓ {r.url}: no change ({tiers} tiers)[/green]"
            )
        for error_msg in r.errors:
            _err.print(f"[red]  Error: {error_msg}[/red]")


async def cli_check(
    monitor_id: int | None,
    output_format: str,
    output_dir: str | None,
    orchestrator: CheckOrchestrator | None = None,
) -> int:
    """Check one or all active monitors; exit code 1 on any failure."""
    # Optional custom output directory
    if output_dir is not None:
        Settings.RESULTS_DIR = Path(output_dir)

    orch = orchestrator or CheckOrchestrator()
    if monitor_id is not None:
        monitor = orch.db.get_monitor(monitor_id)
        if monitor is None:
            _err.print(f"[red]Unknown monitor: {monitor_id}[/red]")
            return 1
        monitors = [monitor]
    else:
        monitors = orch.db.list_monitors(active_only=True)

    if not monitors:
        _err.print("[yellow]No active monitors to check.[/yellow]")
        return 0

    _err.print(f"[bold]Checking {len(monitors)} monitor(s)...[/bold]")
    results = await orch.check_all(monitors)
    _report_results(results)

    payload = [r.to_dict() for r in results]
    try:
        path = FileManager(results_dir=Settings.RESULTS_DIR).save_report(
            "check", payload,
        )
        _err.print(f"[dim]Saved report → {path}[/dim]")
    except OSError as exc:
        logger.error("Save failed: %s", exc, exc_info=True)
        _err.print(f"[red]Save failed: {exc}[/red]")

    if output_format == "table":
        for r in results:
            if r.pricing is not None:
                _print_pricing_table(r.pricing, r.url)
    else:
        _dump_json(payload)

    return 0 if all(r.ok and not r.errors for r in results) else 1


async def cli_check_url(
    url: str,
    selector: str | None,
    index: int | None,
    output_format: str,
    output_dir: str | None,
    orchestrator: CheckOrchestrator | None = None,
) -> int:
    """Check a URL once without registering a monitor.

    The page is captured, extracted and stored as an unattached
    snapshot; with no previous snapshot to compare against it is never
    diffed or alerted.
    """
    if output_dir is not None:
        Settings.RESULTS_DIR = Path(output_dir)

    orch = orchestrator or CheckOrchestrator()
    monitor = Monitor(url=url, css_hint=selector, node_index=index)
    _err.print(f"[bold]Checking {url}...[/bold]")
    results = await orch.check_all([monitor])
    _report_results(results)

    payload = [r.to_dict() for r in results]
    try:
        path = FileManager(results_dir=Settings.RESULTS_DIR).save_report(
            "check_url", payload,
        )
        _err.print(f"[dim]Saved report → {path}[/dim]")
    except OSError as exc:
        logger.error("Save failed: %s", exc, exc_info=True)
        _err.print(f"[red]Save failed: {exc}[/red]")

    result = results[0]
    if output_format == "table":
        if result.pricing is not None:
            _print_pricing_table(result.pricing, result.url)
    else:
        _dump_json(result.to_dict())

    return 0 if result.ok and not result.errors else 1
