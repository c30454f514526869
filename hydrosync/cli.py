"""
HydroSync: Command line.

Drives both processes from a terminal: the app commands work on the event
log, the widget-* commands only touch the shared store, exactly as the two
processes would on a device.
"""

import logging
import time
from typing import TYPE_CHECKING, Annotated, Optional

import typer
from rich.console import Console
from rich.table import Table

from hydrosync.config import settings
from hydrosync.core import grid as grid_mod
from hydrosync.core.aggregator import Timeframe
from hydrosync.core.units import format_volume, parse_volume
from hydrosync.data.db import PersistenceError
from hydrosync.data.models import BeverageKind
from hydrosync.ports.shared_store_port import SharedStoreError

if TYPE_CHECKING:
    from hydrosync.core.tracker import HydrationTracker

logger = logging.getLogger(__name__)

app = typer.Typer(help="HydroSync - hydration tracking with a home-screen widget", no_args_is_help=True)
console = Console()


def _parse_kind(kind: str) -> BeverageKind:
    try:
        return BeverageKind(kind.lower())
    except ValueError:
        valid = ", ".join(k.value for k in BeverageKind)
        typer.echo(f"Invalid drink kind: {kind}. Valid options: {valid}")
        raise typer.Exit(1)


def _parse_amount(amount: str) -> int:
    volume = parse_volume(amount)
    if volume is None or volume <= 0:
        typer.echo(f"Could not read a volume from {amount!r}")
        raise typer.Exit(1)
    return volume


def _use_ounces(tracker: "HydrationTracker") -> bool:
    return tracker.preferences.get_use_ounces()


@app.callback()
def main_callback(
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Log debug output"),
    ] = False,
) -> None:
    """HydroSync - hydration tracking with a home-screen widget."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )


# ─────────────────────────────────────────────────────────────
# App process
# ─────────────────────────────────────────────────────────────


@app.command("add")
def add(
    amount: Annotated[str, typer.Argument(help='e.g. "250", "330 ml", "1.5 l", "12 oz"')],
    kind: Annotated[str, typer.Option("--kind", "-k", help="water, coffee, tea, soda")] = "water",
) -> None:
    """Log a drink in the app."""
    from hydrosync.adapters.factory import create_app_tracker

    tracker = create_app_tracker()
    try:
        result = tracker.add_drink(_parse_amount(amount), _parse_kind(kind))
    except PersistenceError as exc:
        typer.echo(f"Could not save drink: {exc}")
        raise typer.Exit(1)
    use_oz = _use_ounces(tracker)
    console.print(
        f"Logged {format_volume(result.event.volume_ml, use_oz)} of "
        f"{result.event.beverage_kind.value}; today {format_volume(result.today_total, use_oz)}"
    )


@app.command("quick-add")
def quick_add(
    label: Annotated[str, typer.Argument(help="Quick selection label, e.g. Glass")],
    kind: Annotated[str, typer.Option("--kind", "-k")] = "water",
) -> None:
    """Log one of the saved quick selections."""
    from hydrosync.adapters.factory import create_app_tracker

    tracker = create_app_tracker()
    selections = tracker.preferences.get_quick_selections()
    match = next(
        (s for s in selections if s.is_selected and s.label.lower() == label.lower()), None,
    )
    if match is None:
        names = ", ".join(s.label for s in selections if s.is_selected)
        typer.echo(f"No quick selection named {label!r}. Available: {names}")
        raise typer.Exit(1)
    try:
        result = tracker.quick_add(match, _parse_kind(kind))
    except PersistenceError as exc:
        typer.echo(f"Could not save drink: {exc}")
        raise typer.Exit(1)
    console.print(f"Logged {match.label} ({match.volume_ml} ml); today {result.today_total:.0f} ml")


@app.command("status")
def status(
    show_grid: Annotated[bool, typer.Option("--grid", "-g", help="Draw the progress grid")] = False,
) -> None:
    """Today's progress as the app sees it."""
    from hydrosync.adapters.factory import create_app_tracker

    tracker = create_app_tracker()
    snap = tracker.snapshot()
    use_oz = _use_ounces(tracker)

    table = Table(title="Today")
    table.add_column("Consumed")
    table.add_column("Goal")
    table.add_column("Progress")
    table.add_column("Left")
    table.add_column("Streak")
    table.add_row(
        format_volume(snap.today_total, use_oz),
        format_volume(snap.goal_ml, use_oz),
        f"{snap.percentage:.0f}%",
        format_volume(snap.left_ml, use_oz),
        f"{snap.streak} d",
    )
    console.print(table)

    if show_grid:
        columns = tracker.grid_columns
        symbols = {None: "·", BeverageKind.WATER: "[blue]●[/]", BeverageKind.COFFEE: "[yellow]●[/]",
                   BeverageKind.TEA: "[green]●[/]", BeverageKind.SODA: "[magenta]●[/]"}
        for start in range(0, len(snap.grid), columns):
            row = snap.grid[start:start + columns]
            console.print(" ".join(symbols[c.fill_kind] for c in row))
        console.print(f"{grid_mod.grid_percentage(snap.grid):.0f}% of grid filled")


@app.command("stats")
def stats(
    timeframe: Annotated[str, typer.Option("--timeframe", "-t", help="week, month, year")] = "week",
) -> None:
    """History statistics for a timeframe."""
    from hydrosync.adapters.factory import create_app_tracker

    try:
        frame = Timeframe[timeframe.upper()]
    except KeyError:
        typer.echo(f"Invalid timeframe: {timeframe}. Valid options: week, month, year")
        raise typer.Exit(1)

    tracker = create_app_tracker()
    result = tracker.statistics(frame)
    use_oz = _use_ounces(tracker)

    table = Table(title=f"Last {result.window_days} days")
    table.add_column("Metric")
    table.add_column("Value", justify="right")
    table.add_row("Average per day", format_volume(result.average_ml, use_oz))
    table.add_row("Best day", format_volume(result.best_day_ml, use_oz))
    table.add_row("Goal rate", f"{result.goal_rate}%")
    table.add_row("Streak", f"{result.streak} d")
    table.add_row("Drinks", str(result.drink_count))
    table.add_row("Average drink", format_volume(result.average_drink_ml, use_oz))
    table.add_row(
        "Most frequent",
        result.most_frequent_kind.value if result.most_frequent_kind else "None",
    )
    for kind, total in sorted(result.totals_by_kind.items(), key=lambda kv: kv[0].value):
        table.add_row(f"  {kind.value}", format_volume(total, use_oz))
    console.print(table)


@app.command("sync")
def sync() -> None:
    """Run one app sync tick against the shared store."""
    from hydrosync.adapters.factory import create_app_tracker

    result = create_app_tracker().sync_tick()
    console.print(f"Sync: {result.outcome.value} (difference {result.difference:.0f} ml)")


@app.command("goal")
def goal(
    amount: Annotated[Optional[str], typer.Argument(help="New daily goal")] = None,
) -> None:
    """Show or change the daily goal."""
    from hydrosync.adapters.factory import create_app_tracker

    tracker = create_app_tracker()
    if amount is None:
        console.print(f"Current goal: {tracker.preferences.get_goal()} ml")
        return
    tracker.set_goal(_parse_amount(amount))
    console.print(f"Goal set to {tracker.preferences.get_goal()} ml")


@app.command("units")
def units(
    ounces: Annotated[bool, typer.Option("--oz/--ml", help="Display ounces or millilitres")],
) -> None:
    """Choose the display unit."""
    from hydrosync.adapters.factory import create_app_tracker

    create_app_tracker().preferences.set_use_ounces(ounces)
    console.print(f"Showing volumes in {'oz' if ounces else 'ml'}")


@app.command("reset")
def reset(
    yes: Annotated[bool, typer.Option("--yes", "-y", help="Skip confirmation")] = False,
) -> None:
    """Delete every drink and restore default settings."""
    from hydrosync.adapters.factory import create_app_tracker

    if not yes and not typer.confirm("Delete all drinks and reset settings?"):
        raise typer.Exit(0)
    create_app_tracker().reset()
    console.print("All data reset")


@app.command("watch")
def watch(
    interval: Annotated[
        Optional[float], typer.Option("--interval", "-i", help="Seconds between ticks"),
    ] = None,
) -> None:
    """Keep the app process running: one sync tick per interval.

    A refresh signal from the widget triggers an extra tick right away.
    """
    from hydrosync.adapters.factory import create_app_tracker
    from hydrosync.adapters.signal_file_refresher import SignalWatcher

    tracker = create_app_tracker()
    signal = SignalWatcher(settings.APP_SIGNAL_PATH)
    period = interval or settings.POLL_INTERVAL_SECONDS
    poll_step = min(period, 0.5)
    logger.info("Watching shared store every %.1fs", period)

    next_tick = 0.0
    try:
        while True:
            now = time.monotonic()
            if signal.poll() or now >= next_tick:
                try:
                    result = tracker.sync_tick()
                except PersistenceError as exc:
                    logger.warning("Sync tick failed, retrying next interval: %s", exc)
                else:
                    if result.correction is not None:
                        console.print(f"Absorbed {result.correction.volume_ml:.0f} ml from the widget")
                next_tick = now + period
            time.sleep(poll_step)
    except KeyboardInterrupt:
        console.print("Stopped")


# ─────────────────────────────────────────────────────────────
# Widget process
# ─────────────────────────────────────────────────────────────


@app.command("widget-add")
def widget_add(
    amount: Annotated[Optional[str], typer.Argument(help="Defaults to the widget button size")] = None,
    kind: Annotated[str, typer.Option("--kind", "-k")] = "water",
) -> None:
    """Press the widget's quick-add button."""
    from hydrosync.adapters.factory import create_widget_service

    volume = _parse_amount(amount) if amount is not None else None
    try:
        entry = create_widget_service().quick_add(_parse_kind(kind), volume)
    except SharedStoreError as exc:
        typer.echo(f"Widget could not record the drink: {exc}")
        raise typer.Exit(1)
    console.print(f"Widget: {entry.amount_ml} / {entry.goal_ml} ml ({entry.percentage:.0f}%)")


@app.command("widget-status")
def widget_status() -> None:
    """What the widget currently displays."""
    from hydrosync.adapters.factory import create_widget_service

    entry = create_widget_service().snapshot()
    console.print(f"Widget: {entry.amount_ml} / {entry.goal_ml} ml ({entry.percentage:.0f}%)")


def run() -> None:
    app()

