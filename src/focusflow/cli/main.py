"""FocusFlow CLI: primary user interface.

Usage:
    focusflow status          # Show configuration and stored data
    focusflow estimate TITLE  # Estimate one task (optionally save it)
    focusflow batch           # Estimate every open task without intelligence
    focusflow import FILE     # Import tasks and sessions from JSON
    focusflow analytics       # Build and save an analytics snapshot
    focusflow insights        # Insights, trends and achievements
    focusflow next            # What to work on next
    focusflow export          # Export tasks, sessions and analytics
"""

from __future__ import annotations

import asyncio
import json
import uuid
from datetime import datetime, timedelta, timezone
from pathlib import Path

import click
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

console = Console()

user_option = click.option(
    "--user", "user_id", default="local", envvar="FOCUSFLOW_USER", show_default=True,
    help="User whose records to use",
)


@click.group()
@click.version_option(package_name="focusflow")
def cli() -> None:
    """FocusFlow: estimate tasks. Track focus. Learn from both."""
    pass


# ── STATUS ────────────────────────────────────────────────────


@cli.command()
@user_option
def status(user_id: str) -> None:
    """Show current FocusFlow configuration and stored data."""
    from focusflow.config import load_config
    from focusflow.storage import LocalStore

    config = load_config()

    console.print("\n[bold]FocusFlow Status[/bold]\n")

    console.print(f"  LLM Provider:    {config.llm_provider}")
    console.print(f"  LLM Model:       {config.llm_model}")
    if config.has_llm_credentials():
        console.print("  Credentials:     [green]Configured[/green]")
    else:
        console.print("  Credentials:     [yellow]Not set[/yellow] (external estimator disabled)")
    console.print(f"  Timeout:         {config.provider_timeout_seconds:.0f}s per provider")
    console.print(f"  Focus split:     {config.focus_split}")

    store = LocalStore(config.data_dir)
    tasks = store.load_tasks(user_id)
    open_tasks = [t for t in tasks if not t.is_completed]
    console.print(f"  Data Dir:        {config.data_dir}")
    console.print(f"  User:            {user_id}")
    console.print(f"  Tasks:           {len(tasks)} ({len(open_tasks)} open)")
    console.print(f"  Sessions:        {len(store.load_sessions(user_id))}")

    snapshot = store.load_current_snapshot(user_id)
    if snapshot:
        console.print(f"  Last Snapshot:   {snapshot.last_updated.strftime('%Y-%m-%d %H:%M')}")

    console.print(f"  Version:         {_get_version()}")
    console.print()


# ── ESTIMATE ──────────────────────────────────────────────────


@cli.command()
@click.argument("title")
@click.option("--description", "-d", default="", help="Task description")
@click.option("--category", "-c", default="general", help="Task category (coding, planning, ...)")
@click.option(
    "--priority", "-p",
    type=click.Choice(["low", "medium", "high", "critical"]), default="medium",
)
@click.option("--save/--no-save", default=False, help="Save as a new task")
@user_option
def estimate(title: str, description: str, category: str, priority: str, save: bool, user_id: str) -> None:
    """Estimate duration, complexity and urgency for a task."""
    from focusflow.config import load_config
    from focusflow.models import Priority, TaskContext, TaskRecord
    from focusflow.storage import LocalStore

    config = load_config()
    store = LocalStore(config.data_dir)
    engine = _build_engine(config, store)

    context = TaskContext(
        title=title,
        description=description,
        category=category,
        priority=Priority(priority),
        user_id=user_id,
    )
    result = asyncio.run(engine.estimate(context))
    _show_result(title, result)

    if save:
        task = TaskRecord(
            id=uuid.uuid4().hex[:12],
            user_id=user_id,
            title=title,
            description=description,
            category=category,
            priority=Priority(priority),
            created_at=datetime.now(timezone.utc),
            estimated_duration_minutes=result.estimated_duration,
            intelligence=result,
        )
        store.save_tasks(user_id, [task])
        console.print(f"[green]Saved task {task.id}.[/green]")


# ── BATCH ─────────────────────────────────────────────────────


@cli.command()
@click.option("--all", "reestimate", is_flag=True, help="Re-estimate tasks that already have intelligence")
@user_option
def batch(reestimate: bool, user_id: str) -> None:
    """Estimate every open task in small rate-limited batches."""
    from focusflow.config import load_config
    from focusflow.models import TaskContext
    from focusflow.storage import LocalStore

    config = load_config()
    store = LocalStore(config.data_dir)
    tasks = [
        t for t in store.load_tasks(user_id)
        if not t.is_completed and (reestimate or t.intelligence is None)
    ]

    if not tasks:
        console.print("[yellow]No open tasks need estimating.[/yellow]")
        return

    engine = _build_engine(config, store)
    console.print(
        f"Estimating {len(tasks)} tasks "
        f"(batches of {engine.batch_size}, {engine.batch_pause:.0f}s pause)..."
    )

    contexts = [
        TaskContext(
            title=t.title,
            description=t.description,
            category=t.category,
            priority=t.priority,
            user_id=user_id,
        )
        for t in tasks
    ]
    results = asyncio.run(engine.estimate_many(contexts))

    updated = []
    for index, result in results.items():
        task = tasks[index].model_copy(update={
            "intelligence": result,
            "estimated_duration_minutes": tasks[index].estimated_duration_minutes or result.estimated_duration,
        })
        updated.append(task)
    store.save_tasks(user_id, updated)

    fallbacks = sum(1 for t in updated if t.intelligence.is_fallback)
    console.print(f"\n[green]Estimated {len(updated)} tasks.[/green]", end="")
    console.print(f" [yellow]{fallbacks} used fallback defaults.[/yellow]" if fallbacks else "")
    _show_tasks_table(updated)


# ── IMPORT ────────────────────────────────────────────────────


@cli.command(name="import")
@click.argument("path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@user_option
def import_records(path: Path, user_id: str) -> None:
    """Import tasks and sessions from a JSON file.

    Expects {"tasks": [...], "sessions": [...]}; records are upserted by id.
    """
    from pydantic import ValidationError

    from focusflow.config import load_config
    from focusflow.models import SessionRecord, TaskRecord
    from focusflow.storage import LocalStore

    config = load_config()
    store = LocalStore(config.data_dir)

    try:
        raw = json.loads(path.read_text())
        tasks = [TaskRecord.model_validate({"user_id": user_id, **t}) for t in raw.get("tasks", [])]
        sessions = [SessionRecord.model_validate({"user_id": user_id, **s}) for s in raw.get("sessions", [])]
    except (json.JSONDecodeError, AttributeError, TypeError, ValidationError) as e:
        console.print(f"[red]Could not import {path}:[/red] {e}")
        raise SystemExit(1)

    if tasks:
        store.save_tasks(user_id, tasks)
    if sessions:
        store.save_sessions(user_id, sessions)
    console.print(f"[green]Imported {len(tasks)} tasks and {len(sessions)} sessions.[/green]")


# ── ANALYTICS ─────────────────────────────────────────────────


@cli.command()
@click.option("--period", type=click.Choice(["daily", "weekly"]), default="weekly")
@click.option("--days", type=int, default=None, help="Window length (defaults to the period)")
@click.option("--save/--no-save", default=True, help="Save the snapshot")
@user_option
def analytics(period: str, days: int | None, save: bool, user_id: str) -> None:
    """Aggregate tasks and sessions into an analytics snapshot."""
    from focusflow.analytics.aggregator import analyze_user
    from focusflow.config import load_config
    from focusflow.storage import LocalStore

    config = load_config()
    store = LocalStore(config.data_dir)
    start, end = _window(period, days)

    snapshot = asyncio.run(analyze_user(store, user_id, start, end, focus_split=config.focus_split))
    if save:
        store.save_snapshot(snapshot, kind=period)

    m = snapshot.metrics
    table = Table(title=f"Analytics: {start.strftime('%b %d')} to {end.strftime('%b %d')}")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", justify="right")
    table.add_row("Tasks", f"{m.completed_tasks}/{m.total_tasks} completed")
    table.add_row("Productivity", f"{m.productivity_score:.0%}")
    table.add_row("Time tracked", f"{m.total_time_spent:.0f} min")
    table.add_row("Focus / break", f"{m.focus_time:.0f} / {m.break_time:.0f} min")
    table.add_row("Estimation accuracy", f"{m.estimation_accuracy:.0%}")
    table.add_row("Active days", str(m.active_days))
    table.add_row("Longest streak", f"{m.streak_days} days")
    table.add_row("Consistency", f"{snapshot.efficiency.consistency:.0%}")
    console.print(table)

    for p in snapshot.patterns:
        console.print(f"  [green]•[/green] {p.description} [dim](strength {p.strength:.0%})[/dim]")
    for r in snapshot.recommendations:
        console.print(Panel(r.description, title=f"{r.title} [{r.impact.value} impact]", border_style="yellow"))


# ── INSIGHTS ──────────────────────────────────────────────────


@cli.command()
@click.option("--days", default=7, help="Window length in days")
@user_option
def insights(days: int, user_id: str) -> None:
    """Show insights, trends versus the last weekly snapshot, and achievements."""
    from focusflow.analytics.aggregator import analyze_user
    from focusflow.analytics.reporter import (
        build_insights,
        format_insights_report,
        summarize_intelligence,
    )
    from focusflow.config import load_config
    from focusflow.storage import LocalStore

    config = load_config()
    store = LocalStore(config.data_dir)
    start, end = _window("weekly", days)

    snapshot = asyncio.run(analyze_user(store, user_id, start, end, focus_split=config.focus_split))
    previous = store.previous_snapshot(user_id, before=start)
    report = build_insights(snapshot, previous)

    console.print(format_insights_report(report, snapshot))

    summary = summarize_intelligence(store.load_tasks(user_id))
    if summary.total_tasks_processed:
        console.print(
            f"\n  Estimates checked against {summary.total_tasks_processed} tasks: "
            f"{summary.average_accuracy:.0%} average accuracy"
        )
        for tip in summary.improvement_suggestions:
            console.print(f"  [dim]- {tip}[/dim]")


# ── NEXT ──────────────────────────────────────────────────────


@cli.command(name="next")
@click.option("--limit", default=5, help="How many tasks to show")
@click.option("--prefer", multiple=True, help="Preferred categories (repeatable)")
@user_option
def next_task(limit: int, prefer: tuple[str, ...], user_id: str) -> None:
    """Rank open tasks and suggest what to work on next."""
    from focusflow.config import load_config
    from focusflow.intelligence.ranking import rank_tasks
    from focusflow.storage import LocalStore

    config = load_config()
    store = LocalStore(config.data_dir)
    ranked = rank_tasks(store.load_tasks(user_id), preferred_categories=prefer, limit=limit)

    if not ranked:
        console.print("[yellow]No open tasks. Add one with 'focusflow estimate --save'.[/yellow]")
        return

    table = Table(title="Up Next")
    table.add_column("#", justify="right", style="dim")
    table.add_column("Task", style="white", max_width=40)
    table.add_column("Category", style="cyan")
    table.add_column("Priority", style="yellow")
    table.add_column("Estimate", justify="right")
    table.add_column("Score", justify="right", style="green")

    for i, r in enumerate(ranked, 1):
        t = r.task
        est = t.intelligence.estimated_duration if t.intelligence else t.estimated_duration_minutes
        table.add_row(
            str(i),
            t.title,
            t.category,
            t.priority.value,
            f"{est:.0f} min" if est else "[dim]--[/dim]",
            f"{r.score:.2f}",
        )

    console.print(table)


# ── EXPORT ────────────────────────────────────────────────────


@cli.command()
@click.option("--format", "fmt", type=click.Choice(["json", "csv"]), default="json")
@click.option("--days", default=90, help="Window length in days")
@click.option("--output", "-o", type=click.Path(path_type=Path), default=None, help="Output file")
@user_option
def export(fmt: str, days: int, output: Path | None, user_id: str) -> None:
    """Export tasks, sessions and analytics snapshots."""
    from focusflow.config import load_config
    from focusflow.export import export_data, export_filename, export_to_file
    from focusflow.storage import LocalStore

    config = load_config()
    store = LocalStore(config.data_dir)
    end = datetime.now(timezone.utc)
    start = end - timedelta(days=days)

    content = export_data(
        user_id,
        store.tasks_in_range(user_id, start, end),
        store.sessions_in_range(user_id, start, end),
        store.load_snapshots(user_id, "daily") + store.load_snapshots(user_id, "weekly"),
        start,
        end,
        fmt=fmt,
    )

    path = output or Path(config.data_dir) / "exports" / export_filename(user_id, fmt, end)
    export_to_file(content, path)
    console.print(f"[green]Exported to {path}[/green]")


# ── HELPERS ───────────────────────────────────────────────────


def _build_engine(config, store):
    """Engine wired from config; the external estimator only when reachable."""
    from focusflow.intelligence.engine import TaskIntelligenceEngine

    llm_client = None
    if config.has_llm_credentials():
        try:
            llm_client = config.get_llm_client()
        except RuntimeError as e:
            console.print(f"[dim]External estimator disabled: {e}[/dim]")

    return TaskIntelligenceEngine.from_config(config, store=store, llm_client=llm_client)


def _window(period: str, days: int | None) -> tuple[datetime, datetime]:
    end = datetime.now(timezone.utc)
    length = days if days is not None else (1 if period == "daily" else 7)
    return end - timedelta(days=length), end


def _show_result(title: str, result) -> None:
    """Display one intelligence result as a Rich panel."""
    urgency_colors = {
        "low": "green",
        "medium": "yellow",
        "high": "red",
        "critical": "bold red",
    }
    color = urgency_colors.get(result.urgency.value, "white")

    lines = [
        f"Estimated: [bold]{result.estimated_duration} min[/bold]",
        f"Complexity: {result.complexity_score:.0%}   Cognitive load: {result.cognitive_load:.0%}",
        f"Urgency: [{color}]{result.urgency.value}[/{color}]",
        f"Best time: {', '.join(s.value for s in result.suggested_time_slots)}",
        f"Tags: {', '.join(result.tags)}",
        "",
        *[f"• {tip}" for tip in result.optimization_tips],
    ]
    if result.prerequisites:
        lines.append("")
        lines.append("Before you start: " + "; ".join(result.prerequisites))
    lines.append("")
    lines.append(
        f"[dim]confidence {result.confidence:.0%} · estimator agreement "
        f"{result.estimate_confidence:.0%} · {', '.join(result.processing_metadata.methods)}[/dim]"
    )

    border = "yellow" if result.is_fallback else "blue"
    console.print(Panel("\n".join(lines), title=title, border_style=border))


def _show_tasks_table(tasks: list) -> None:
    """Display tasks as a Rich table."""
    if not tasks:
        return

    table = Table(title="Tasks")
    table.add_column("Task", style="white", max_width=40)
    table.add_column("Category", style="cyan")
    table.add_column("Estimate", justify="right")
    table.add_column("Urgency", style="yellow")
    table.add_column("Confidence", justify="right")

    for t in tasks:
        intel = t.intelligence
        table.add_row(
            t.title,
            t.category,
            f"{intel.estimated_duration} min" if intel else "[dim]--[/dim]",
            intel.urgency.value if intel else "[dim]--[/dim]",
            f"{intel.confidence:.0%}" if intel else "[dim]--[/dim]",
        )

    console.print(table)


def _get_version() -> str:
    from importlib.metadata import PackageNotFoundError, version

    try:
        return version("focusflow")
    except PackageNotFoundError:
        return "unknown"


if __name__ == "__main__":
    cli()
