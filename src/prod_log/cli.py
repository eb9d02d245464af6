"""Command-line interface for the activity logger."""

from __future__ import annotations

import logging
import threading
import uuid
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Iterator, List, Optional

import typer

from .app import TrackerContext
from .config import AVAILABLE_INTERVALS
from .events import SLOT_AVAILABLE
from .models import Category, Color, IntervalSetting
from .paths import get_db_path
from .reporting import SummaryPrinter
from .timemath import format_countdown

app = typer.Typer(help="Log how each block of your day was spent and earn points for it.")
categories_app = typer.Typer(help="Manage activity categories.", no_args_is_help=True)
app.add_typer(categories_app, name="categories")

MOMENT_FORMATS = ("%Y-%m-%d %H:%M", "%Y-%m-%dT%H:%M", "%Y-%m-%d %H:%M:%S")


@app.callback(no_args_is_help=True)
def main(verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose logs.")) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )


@contextmanager
def _open_context(db_path: Optional[Path]) -> Iterator[TrackerContext]:
    context = TrackerContext.open(db_path or get_db_path())
    try:
        yield context
    finally:
        context.close()


def _parse_moment(value: Optional[str]) -> datetime:
    if not value:
        return datetime.now()
    for fmt in MOMENT_FORMATS:
        try:
            return datetime.strptime(value, fmt)
        except ValueError:
            continue
    raise typer.BadParameter(f"Expected YYYY-MM-DD HH:MM, got {value!r}")


def _parse_color(value: str) -> Color:
    try:
        return Color.from_hex(value)
    except ValueError as exc:
        raise typer.BadParameter(str(exc)) from exc


def _resolve_category(context: TrackerContext, key: str) -> Category:
    category = context.categories.find_by_name(key)
    if category is not None:
        return category
    lowered = key.strip().lower()
    for category in context.categories.all():
        if lowered and str(category.id).startswith(lowered):
            return category
    raise typer.BadParameter(f"No category matches {key!r}")


@app.command()
def slots(
    db_path: Optional[Path] = typer.Option(
        None, "--db", path_type=Path, help="Location of the tracker SQLite database."
    ),
    now: Optional[str] = typer.Option(
        None, "--now", help="Treat this moment (YYYY-MM-DD HH:MM) as the current time."
    ),
) -> None:
    """List slots that still need categories."""
    moment = _parse_moment(now)
    with _open_context(db_path) as context:
        SummaryPrinter(context).print_candidates(context.candidate_slots(moment), moment)


@app.command()
def log(
    start: str = typer.Argument(..., help="Start of the slot to log (YYYY-MM-DD HH:MM)."),
    allocations: List[str] = typer.Option(
        ...,
        "--alloc",
        "-a",
        help="Category share as NAME=PERCENT; repeat until the shares add up to 100.",
    ),
    db_path: Optional[Path] = typer.Option(
        None, "--db", path_type=Path, help="Location of the tracker SQLite database."
    ),
    now: Optional[str] = typer.Option(
        None, "--now", help="Treat this moment (YYYY-MM-DD HH:MM) as the current time."
    ),
) -> None:
    """Categorize a pending slot."""
    moment = _parse_moment(now)
    slot_start = _parse_moment(start)
    with _open_context(db_path) as context:
        candidate = context.find_candidate(slot_start, moment)
        if candidate is None:
            typer.echo(f"No pending slot starts at {slot_start:%Y-%m-%d %H:%M}.", err=True)
            raise typer.Exit(code=1)

        allocation: dict[uuid.UUID, float] = {}
        for item in allocations:
            name, sep, raw_percent = item.rpartition("=")
            if not sep or not name.strip():
                raise typer.BadParameter(f"Expected NAME=PERCENT, got {item!r}")
            category = context.categories.find_by_name(name, as_of=moment)
            if category is None:
                raise typer.BadParameter(f"No active category named {name.strip()!r}")
            try:
                percent = float(raw_percent.rstrip("%"))
            except ValueError as exc:
                raise typer.BadParameter(f"Invalid percentage in {item!r}") from exc
            allocation[category.id] = allocation.get(category.id, 0.0) + percent

        slot = context.commit_slot(candidate, allocation, now=moment)
        if slot is None:
            total = sum(allocation.values())
            typer.echo(f"Shares must add up to 100% (got {total:g}%).", err=True)
            raise typer.Exit(code=1)
        typer.echo(f"Logged {SummaryPrinter(context).describe_slot(slot)}")


@app.command()
def summary(
    date: Optional[str] = typer.Option(
        None,
        "--date",
        help="Date (YYYY-MM-DD) to summarize. Defaults to today.",
    ),
    db_path: Optional[Path] = typer.Option(
        None, "--db", path_type=Path, help="Location of the tracker SQLite database."
    ),
) -> None:
    """Print points and logged slots for a specific day."""
    target = datetime.strptime(date, "%Y-%m-%d") if date else datetime.now()
    with _open_context(db_path) as context:
        SummaryPrinter(context).print_daily_summary(target)


@app.command()
def week(
    db_path: Optional[Path] = typer.Option(
        None, "--db", path_type=Path, help="Location of the tracker SQLite database."
    ),
) -> None:
    """Print points for the last seven days."""
    with _open_context(db_path) as context:
        SummaryPrinter(context).print_weekly_summary(datetime.now())


@app.command()
def history(
    db_path: Optional[Path] = typer.Option(
        None, "--db", path_type=Path, help="Location of the tracker SQLite database."
    ),
) -> None:
    """Print every completed slot, newest first."""
    with _open_context(db_path) as context:
        SummaryPrinter(context).print_history(context.all_completed_slots(), datetime.now())


@app.command()
def interval(
    value: Optional[str] = typer.Argument(
        None, help=f"'auto' or one of {', '.join(map(str, AVAILABLE_INTERVALS))} hours."
    ),
    db_path: Optional[Path] = typer.Option(
        None, "--db", path_type=Path, help="Location of the tracker SQLite database."
    ),
) -> None:
    """Show or change the slot length."""
    with _open_context(db_path) as context:
        if value is None:
            typer.echo(f"Time interval: {_describe_interval(context.interval)}")
            return
        try:
            setting = IntervalSetting.parse(value)
        except ValueError as exc:
            raise typer.BadParameter(str(exc)) from exc
        if not setting.is_auto and setting.hours not in AVAILABLE_INTERVALS:
            raise typer.BadParameter(
                f"Choose 'auto' or one of {', '.join(map(str, AVAILABLE_INTERVALS))}."
            )
        context.set_interval(setting)
        typer.echo(f"Time interval set to {_describe_interval(setting)}.")


@app.command()
def clock(
    use_24_hour: Optional[bool] = typer.Option(
        None, "--24h/--12h", help="Display times on a 24-hour or 12-hour clock."
    ),
    db_path: Optional[Path] = typer.Option(
        None, "--db", path_type=Path, help="Location of the tracker SQLite database."
    ),
) -> None:
    """Show or choose how times are displayed."""
    with _open_context(db_path) as context:
        if use_24_hour is None:
            use_24_hour = context.use_24_hour_clock
        else:
            context.set_24_hour_clock(use_24_hour)
    typer.echo(f"Using the {'24' if use_24_hour else '12'}-hour clock.")


@app.command("reset-recent")
def reset_recent(
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip the confirmation prompt."),
    db_path: Optional[Path] = typer.Option(
        None, "--db", path_type=Path, help="Location of the tracker SQLite database."
    ),
) -> None:
    """Return recently logged slots to the uncategorized list."""
    with _open_context(db_path) as context:
        hours = context.settings.recent_log_window.total_seconds() / 3600
        if not yes:
            typer.confirm(f"Forget every slot logged in the last {hours:g} hours?", abort=True)
        candidates = context.reset_recent_logs()
    typer.echo(f"Recent logs cleared; {len(candidates)} slot(s) awaiting categories.")


@app.command("reset-today")
def reset_today(
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip the confirmation prompt."),
    db_path: Optional[Path] = typer.Option(
        None, "--db", path_type=Path, help="Location of the tracker SQLite database."
    ),
) -> None:
    """Forget today's logged slots and points."""
    if not yes:
        typer.confirm("Forget today's logged slots and points?", abort=True)
    with _open_context(db_path) as context:
        context.reset_today()
    typer.echo("Today's logs cleared.")


@app.command("reset-points")
def reset_points(
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip the confirmation prompt."),
    db_path: Optional[Path] = typer.Option(
        None, "--db", path_type=Path, help="Location of the tracker SQLite database."
    ),
) -> None:
    """Erase all point totals (logged slots are kept)."""
    if not yes:
        typer.confirm("Erase all point totals?", abort=True)
    with _open_context(db_path) as context:
        context.reset_points()
    typer.echo("Points reset.")


@app.command()
def watch(
    db_path: Optional[Path] = typer.Option(
        None, "--db", path_type=Path, help="Location of the tracker SQLite database."
    ),
    countdown: bool = typer.Option(
        True, "--countdown/--no-countdown", help="Show a live countdown to the next slot."
    ),
) -> None:
    """Stay running and announce each new slot as it becomes available."""
    from .timers import SlotTimers

    def _announce(candidates) -> None:
        typer.echo(f"\nA new slot is ready to log ({len(candidates)} pending).")

    def _tick(remaining) -> None:
        typer.echo(f"\rNext log card in: {format_countdown(remaining)}", nl=False)

    with _open_context(db_path) as context:
        unsubscribe = context.events.subscribe(SLOT_AVAILABLE, _announce)
        timers = SlotTimers(context, on_tick=_tick if countdown else None)
        timers.start()
        try:
            threading.Event().wait()
        except KeyboardInterrupt:
            typer.echo("")
        finally:
            timers.stop()
            unsubscribe()


@categories_app.command("list")
def categories_list(
    show_all: bool = typer.Option(
        False, "--all", help="Include categories whose grace period has expired."
    ),
    db_path: Optional[Path] = typer.Option(
        None, "--db", path_type=Path, help="Location of the tracker SQLite database."
    ),
) -> None:
    """List categories."""
    now = datetime.now()
    with _open_context(db_path) as context:
        pool = context.categories.all() if show_all else context.active_categories(now)
        SummaryPrinter(context).print_categories(pool, now)


@categories_app.command("add")
def categories_add(
    name: str = typer.Argument(..., help="Category name."),
    color: str = typer.Option("#007aff", "--color", help="Color as #RRGGBB."),
    points_per_minute: float = typer.Option(
        5.0, "--ppm", min=0.0, help="Points earned per minute."
    ),
    db_path: Optional[Path] = typer.Option(
        None, "--db", path_type=Path, help="Location of the tracker SQLite database."
    ),
) -> None:
    """Add a category."""
    if not name.strip():
        raise typer.BadParameter("Category name is required.")
    with _open_context(db_path) as context:
        category = context.add_category(name, _parse_color(color), points_per_minute)
    typer.echo(f"Added {category.name} ({category.id}).")


@categories_app.command("update")
def categories_update(
    key: str = typer.Argument(..., help="Category id (or prefix) or name."),
    name: Optional[str] = typer.Option(None, "--name", help="New name."),
    color: Optional[str] = typer.Option(None, "--color", help="New color as #RRGGBB."),
    points_per_minute: Optional[float] = typer.Option(
        None, "--ppm", min=0.0, help="New points per minute."
    ),
    db_path: Optional[Path] = typer.Option(
        None, "--db", path_type=Path, help="Location of the tracker SQLite database."
    ),
) -> None:
    """Edit a category's name, color or weight."""
    with _open_context(db_path) as context:
        category = _resolve_category(context, key)
        updated = context.update_category(
            category.id,
            name if name is not None else category.name,
            _parse_color(color) if color is not None else category.color,
            points_per_minute if points_per_minute is not None else category.points_per_minute,
        )
    typer.echo(f"Updated {updated.name}.")


@categories_app.command("remove")
def categories_remove(
    key: str = typer.Argument(..., help="Category id (or prefix) or name."),
    db_path: Optional[Path] = typer.Option(
        None, "--db", path_type=Path, help="Location of the tracker SQLite database."
    ),
) -> None:
    """Remove a category (it stays in reports for a week)."""
    with _open_context(db_path) as context:
        category = _resolve_category(context, key)
        context.remove_category(category.id)
    typer.echo(f"Removed {category.name}.")


@categories_app.command("reset")
def categories_reset(
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip the confirmation prompt."),
    db_path: Optional[Path] = typer.Option(
        None, "--db", path_type=Path, help="Location of the tracker SQLite database."
    ),
) -> None:
    """Replace all categories with the built-in defaults."""
    if not yes:
        typer.confirm("Replace all categories with the defaults?", abort=True)
    with _open_context(db_path) as context:
        categories = context.reset_to_defaults()
    typer.echo(f"Restored {len(categories)} default categories.")


def _describe_interval(setting: IntervalSetting) -> str:
    if setting.is_auto:
        return "auto"
    return f"{setting.hours} hour{'' if setting.hours == 1 else 's'}"
