"""
Typer CLI for the HypeOS adaptive learning engine.

Commands:
    hypeos queue      - Show today's review queue
    hypeos tasks      - List tasks with their adaptive points and mastery
    hypeos complete   - Record a task attempt and save it
    hypeos stats      - Show performance summary and retention metrics
    hypeos db init    - Initialize database tables

Usage:
    hypeos --help
    hypeos queue --user alice --catalog tasks.json --streak 8 --longest 12
    hypeos complete --user alice --catalog tasks.json --task-id 3 --quality 4
"""

from __future__ import annotations

from pathlib import Path

import typer
from loguru import logger
from rich import print as rprint
from rich.console import Console
from rich.table import Table

from config import get_settings
from hypeos.core.exceptions import CatalogError, StateStoreError
from hypeos.core.logging import configure_logging
from hypeos.core.models import StreakData
from hypeos.delivery.state_store import SQLStateStore
from hypeos.delivery.task_catalog import TaskCatalog
from hypeos.study.learning_service import AdaptiveLearningService
from hypeos.study.review_queue import get_review_queue_motivation, get_review_queue_summary

app = typer.Typer(
    help="HypeOS adaptive learning engine: adaptive points, spaced repetition, review queue",
    no_args_is_help=True,
)
db_app = typer.Typer(help="Database commands")
app.add_typer(db_app, name="db")

console = Console()

UserOption = typer.Option("default", "--user", "-u", help="User id")
CatalogOption = typer.Option(..., "--catalog", "-c", help="Task catalog JSON file")
DatabaseOption = typer.Option(None, "--db", help="Database URL (default: from config)")
StreakOption = typer.Option(0, "--streak", min=0, help="Current streak in days")
LongestOption = typer.Option(0, "--longest", min=0, help="Longest streak in days")


@app.callback()
def main_callback(
    log_level: str | None = typer.Option(None, "--log-level", help="Override HYPEOS_LOG_LEVEL"),
) -> None:
    configure_logging(log_level or get_settings().log_level)


def _load_catalog(path: Path) -> TaskCatalog:
    try:
        return TaskCatalog.load(path)
    except CatalogError as e:
        rprint(f"[red]✗[/red] {e}")
        raise typer.Exit(code=1)


def _open_service(user: str, database_url: str | None) -> AdaptiveLearningService:
    try:
        store = SQLStateStore(database_url)
    except StateStoreError as e:
        rprint(f"[red]✗[/red] Cannot open state store: {e}")
        raise typer.Exit(code=1)
    return AdaptiveLearningService(user, store).load()


def _streak(current: int, longest: int) -> StreakData:
    return StreakData(current_streak=current, longest_streak=max(longest, current))


# =============================================================================
# Commands
# =============================================================================


@app.command("queue")
def queue_command(
    user: str = UserOption,
    catalog: Path = CatalogOption,
    streak: int = StreakOption,
    longest: int = LongestOption,
    max_items: int | None = typer.Option(None, "--max-items", "-n", min=1, help="Queue length"),
    category_time: bool = typer.Option(
        False, "--category-time", help="Estimate time from category averages"
    ),
    database_url: str | None = DatabaseOption,
) -> None:
    """Show today's prioritized review queue."""
    tasks = _load_catalog(catalog)
    service = _open_service(user, database_url)
    queue = service.generate_review_queue(
        tasks.tasks, _streak(streak, longest), max_items=max_items, use_category_time=category_time
    )

    summary = get_review_queue_summary(queue)
    if not queue.items:
        rprint(f"[green]{summary.message}[/green]")
        rprint(get_review_queue_motivation(queue))
        return

    table = Table(title=f"Review Queue ({summary.message})", show_header=True)
    table.add_column("#", justify="right", style="dim")
    table.add_column("Task", style="cyan")
    table.add_column("Type")
    table.add_column("Priority", justify="right")
    table.add_column("Points", justify="right", style="green")
    table.add_column("Reason")

    for position, item in enumerate(queue.items, start=1):
        table.add_row(
            str(position),
            item.task.title,
            item.review_type.value,
            str(item.priority),
            str(item.difficulty.final_points),
            item.reason,
        )

    console.print(table)
    rprint(f"Estimated time: {queue.estimated_minutes} min")
    rprint(get_review_queue_motivation(queue))


@app.command("tasks")
def tasks_command(
    user: str = UserOption,
    catalog: Path = CatalogOption,
    streak: int = StreakOption,
    longest: int = LongestOption,
    database_url: str | None = DatabaseOption,
) -> None:
    """List every task with its unified difficulty."""
    tasks = _load_catalog(catalog)
    service = _open_service(user, database_url)
    streak_data = _streak(streak, longest)

    table = Table(title="Tasks", show_header=True)
    table.add_column("ID", justify="right", style="dim")
    table.add_column("Task", style="cyan")
    table.add_column("Category")
    table.add_column("Difficulty")
    table.add_column("Points", justify="right", style="green")
    table.add_column("Mastery")
    table.add_column("Review", justify="center")

    for entry in service.task_difficulties(tasks.tasks, streak_data):
        d = entry.difficulty
        table.add_row(
            str(entry.task.id),
            entry.task.title,
            entry.task.category,
            f"[{d.difficulty_level.color}]{d.difficulty_level.value}[/{d.difficulty_level.color}]",
            str(d.final_points),
            f"[{d.mastery_level.color}]{d.mastery_level.emoji} {d.mastery_level.value}[/{d.mastery_level.color}]",
            "✓" if d.needs_review else "",
        )

    console.print(table)

    recommended = service.recommended_next_task(tasks.tasks, streak_data)
    if recommended is not None:
        rprint(f"Next up: [bold]{recommended.task.title}[/bold] (+{recommended.difficulty.final_points} pts)")


@app.command("complete")
def complete_command(
    task_id: int = typer.Option(..., "--task-id", "-t", help="Task to record"),
    user: str = UserOption,
    catalog: Path = CatalogOption,
    streak: int = StreakOption,
    longest: int = LongestOption,
    quality: float | None = typer.Option(
        None, "--quality", "-q", min=0, max=5, help="Self-assessed recall quality 0-5"
    ),
    minutes: float = typer.Option(15.0, "--minutes", "-m", min=0, help="Time spent"),
    failed: bool = typer.Option(False, "--failed", help="Record an unsuccessful attempt"),
    database_url: str | None = DatabaseOption,
) -> None:
    """Record a task attempt and save the updated state."""
    tasks = _load_catalog(catalog)
    task = tasks.get(task_id)
    if task is None:
        rprint(f"[red]✗[/red] Task {task_id} not in {catalog}")
        raise typer.Exit(code=1)

    service = _open_service(user, database_url)
    completion = service.complete_task(
        task,
        _streak(streak, longest),
        completed=not failed,
        time_spent_minutes=minutes,
        quality=quality,
    )

    marker = "[red]✗[/red]" if failed else "[green]✓[/green]"
    rprint(f"{marker} {completion.message}")
    item = completion.updated_review_item
    if item is not None:
        rprint(
            f"Next review in {item.interval} day{'s' if item.interval != 1 else ''} "
            f"(EF {item.ease_factor:.2f}, {item.repetitions} reps)"
        )


@app.command("stats")
def stats_command(
    user: str = UserOption,
    database_url: str | None = DatabaseOption,
) -> None:
    """Show performance summary and retention metrics."""
    service = _open_service(user, database_url)
    summary = service.performance_summary()
    retention = service.retention_metrics()
    profile = service.profile

    table = Table(title=f"Stats for {user}", show_header=True)
    table.add_column("Metric", style="cyan")
    table.add_column("Value", justify="right", style="green")
    table.add_row("Grade", summary.overall_grade)
    table.add_row("Tasks attempted", str(profile.total_tasks_attempted))
    table.add_row("Tasks completed", str(profile.total_tasks_completed))
    table.add_row("Success rate", f"{profile.overall_success_rate:.0%}")
    table.add_row("Weekly trend", f"{profile.weekly_trend:+.2f}")
    table.add_row("Skills tracked", str(retention.total_items))
    table.add_row("Skills mastered", str(retention.mastered_items))
    table.add_row("Reviews due", str(retention.active_items))
    table.add_row("Average ease", f"{retention.average_ease_factor:.2f}")
    table.add_row("Retention", f"{retention.retention_rate:.0%}")
    console.print(table)

    for recommendation in summary.recommendations:
        rprint(f"• {recommendation}")


@db_app.command("init")
def db_init(database_url: str | None = DatabaseOption) -> None:
    """
    Initialize database tables.

    Safe to run multiple times (idempotent).
    """
    logger.info("Initializing database tables...")
    try:
        SQLStateStore(database_url)
    except StateStoreError as e:
        rprint(f"[red]✗[/red] {e}")
        raise typer.Exit(code=1)
    rprint("[green]✓[/green] Database initialized!")


def run() -> None:
    app()


if __name__ == "__main__":
    run()
