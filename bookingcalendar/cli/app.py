"""
Main CLI application using Typer.
"""

import asyncio
import json
import logging
from pathlib import Path
from typing import Annotated, Dict, List, Optional

import pendulum
import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table

from ..adapters.availability_client import AvailabilityClient
from ..adapters.mock_availability_client import MockAvailabilityClient
from ..config import AppConfig, get_default_config_path
from ..domain.civil_time import (
    format_instant,
    from_civil,
    parse_civil,
    parse_civil_date,
    parse_instant,
    to_civil,
)
from ..domain.day_status import summarize_day, summarize_month
from ..domain.exceptions import BookingCalendarError, ConfigurationError
from ..domain.models import AvailabilityWindow, DayStatus
from ..domain.timeline import layout_day, timeline_grid
from ..domain.windows import detect_overlaps, merge_windows, validate_window
from ..domain.working_days import resolve_working_window, weekday_from_value
from ..services.availability import RescheduleAvailabilityService

app = typer.Typer(
    name="bookingcalendar",
    help="Scheduling and availability tools for the booking calendar",
    add_completion=False
)

console = Console()

STATUS_STYLES = {
    DayStatus.OPEN: "green",
    DayStatus.PARTIAL: "yellow",
    DayStatus.CLOSED: "red",
}

ConfigOption = Annotated[Optional[Path], typer.Option("--config", "-c", help="Path to config file. Defaults to ./config.yaml")]
DataOption = Annotated[Optional[Path], typer.Option("--data", help="Schedule data JSON file (overrides config)")]
NowOption = Annotated[Optional[str], typer.Option("--now", help="Reference instant (ISO-8601). Defaults to the current time.")]


@app.callback()
def main(
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Show debug logging.")] = False,
):
    """
    Booking calendar command line.
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


def _load_config(config_file: Optional[Path]) -> AppConfig:
    """Load the given config file, or the default one if it exists."""
    if config_file is not None:
        return AppConfig.load_from_yaml(config_file)

    default_path = get_default_config_path()
    if default_path.exists():
        return AppConfig.load_from_yaml(default_path)
    return AppConfig()


def _mock_client(config: AppConfig, data_file: Optional[Path]) -> MockAvailabilityClient:
    return MockAvailabilityClient(data_file or config.data_file)


def _resolve_now(now_option: Optional[str]):
    if now_option is None:
        return pendulum.now("UTC")
    now = parse_instant(now_option)
    if now is None:
        raise ConfigurationError(f"Cannot read --now value: {now_option}")
    return now


def _parse_day(value: str):
    day = parse_civil_date(value)
    if day is None:
        raise ConfigurationError(f"Invalid date (expected YYYY-MM-DD): {value}")
    return day


def _fail(error: Exception) -> None:
    console.print(f"[bold red]Error:[/bold red] {error}")
    raise typer.Exit(1)


@app.command()
def convert(
    value: Annotated[str, typer.Argument(help="ISO-8601 instant, or wall-clock time 'YYYY-MM-DD HH:MM[:SS]'")],
):
    """
    Convert between an instant and the business's wall-clock time.

    Examples:

        bookingcalendar convert 2025-03-09T07:00:00Z

        bookingcalendar convert "2025-03-09 01:59:59"
    """
    civil = parse_civil(value)
    if civil is not None:
        instant = from_civil(civil)
        if instant is None:
            console.print(f"[yellow]⚠ {civil} falls in the spring-forward gap.[/yellow]")
            raise typer.Exit(1)
        civil = to_civil(instant)
    else:
        instant = parse_instant(value)
        civil = to_civil(instant)

    if instant is None or civil is None:
        console.print(f"[yellow]⚠ Cannot read '{value}' as a date/time.[/yellow]")
        raise typer.Exit(1)

    dst = "yes" if civil.utc_offset.is_daylight else "no"
    console.print(Panel.fit(
        f"[bold]UTC:[/bold] {format_instant(instant)}\n"
        f"[bold]Civil:[/bold] {civil.isoformat()}\n"
        f"[bold]Offset:[/bold] {civil.utc_offset}\n"
        f"[bold]Daylight saving:[/bold] {dst}",
        title="Civil time"
    ))


@app.command()
def status(
    day: Annotated[str, typer.Argument(help="Day to classify (YYYY-MM-DD)")],
    config_file: ConfigOption = None,
    data_file: DataOption = None,
    now: NowOption = None,
):
    """
    Show the open/partial/closed status of one day.
    """
    try:
        config = _load_config(config_file)
        client = _mock_client(config, data_file)
        summary = summarize_day(
            client.load_windows(),
            client.load_bookings(),
            _parse_day(day),
            _resolve_now(now),
        )
    except (FileNotFoundError, ValueError, BookingCalendarError) as e:
        _fail(e)

    style = STATUS_STYLES[summary.status]
    console.print(f"\n[bold]{summary.date.format('dddd, MMMM D, YYYY')}[/bold]")
    console.print(f"   Status: [{style}]{summary.status}[/{style}]" + (" (past)" if summary.is_past else ""))
    console.print(f"   Available: {summary.available_minutes:g} min")
    console.print(f"   Booked: {summary.booked_minutes:g} min in {len(summary.bookings)} booking(s)\n")


@app.command()
def calendar(
    month: Annotated[str, typer.Argument(help="Month to show (YYYY-MM)")],
    config_file: ConfigOption = None,
    data_file: DataOption = None,
    now: NowOption = None,
):
    """
    Show the status of every day of a month.
    """
    try:
        year_text, month_text = month.split("-")
        year, month_number = int(year_text), int(month_text)
        if not 1 <= month_number <= 12:
            raise ValueError(f"Invalid month: {month}")
        config = _load_config(config_file)
        client = _mock_client(config, data_file)
        summaries = summarize_month(
            year,
            month_number,
            client.load_windows(),
            client.load_bookings(),
            _resolve_now(now),
        )
    except (FileNotFoundError, ValueError, BookingCalendarError) as e:
        _fail(e)

    table = Table(
        title=pendulum.date(year, month_number, 1).format("MMMM YYYY"),
        show_header=True,
        header_style="bold cyan"
    )
    table.add_column("Day", style="bold")
    table.add_column("Status")
    table.add_column("Booked / available (min)", justify="right")
    table.add_column("Bookings", justify="right")

    for summary in summaries:
        style = STATUS_STYLES[summary.status]
        if summary.is_past:
            style = "dim"
        table.add_row(
            summary.date.format("ddd DD"),
            f"[{style}]{summary.status}[/{style}]",
            f"{summary.booked_minutes:g} / {summary.available_minutes:g}",
            str(len(summary.bookings)),
        )

    console.print()
    console.print(table)
    console.print()


@app.command()
def timeline(
    day: Annotated[str, typer.Argument(help="Day to lay out (YYYY-MM-DD)")],
    config_file: ConfigOption = None,
    data_file: DataOption = None,
):
    """
    Show where bookings and breaks sit on the day's timeline.
    """
    try:
        config = _load_config(config_file)
        client = _mock_client(config, data_file)
        civil_day = _parse_day(day)
        windows = client.load_windows()
        items = [*client.load_schedule_blocks(), *client.load_bookings()]
    except (FileNotFoundError, ValueError, BookingCalendarError) as e:
        _fail(e)

    grid = timeline_grid(windows, civil_day)
    if grid is None:
        console.print(f"[yellow]⚠ No availability on {civil_day.to_date_string()}.[/yellow]")
        return

    entries = layout_day(windows, items, civil_day)

    table = Table(
        title=f"Timeline {civil_day.to_date_string()} ({grid.height_px:g}px)",
        show_header=True,
        header_style="bold cyan"
    )
    table.add_column("Item", style="bold yellow")
    table.add_column("Kind")
    table.add_column("Civil time")
    table.add_column("Top %", justify="right")
    table.add_column("Height %", justify="right")

    for entry in entries:
        start = to_civil(entry.item.start)
        end = to_civil(entry.item.end)
        table.add_row(
            entry.item.id,
            entry.item.kind,
            f"{start.hour:02d}:{start.minute:02d} - {end.hour:02d}:{end.minute:02d}",
            f"{entry.top_percent:.2f}",
            f"{entry.height_percent:.2f}",
        )

    console.print()
    console.print(table)
    console.print("   Hours: " + ", ".join(
        f"{marker.label} @ {marker.position_percent:.1f}%" for marker in grid.markers
    ))
    console.print()


@app.command()
def window(
    target: Annotated[str, typer.Argument(help="Target day, wall-clock time or instant")],
    exclude: Annotated[Optional[List[str]], typer.Option("--exclude", "-x", help="Excluded weekday (repeatable). Defaults to config.")] = None,
    as_json: Annotated[bool, typer.Option("--json", help="Print the window as JSON.")] = False,
    config_file: ConfigOption = None,
):
    """
    Resolve the working-day window around a target day.
    """
    try:
        config = _load_config(config_file)
        if exclude:
            excluded = [weekday_from_value(int(v) if v.isdigit() else v) for v in exclude]
        else:
            excluded = config.schedule.excluded_weekdays
    except (FileNotFoundError, ValueError, BookingCalendarError) as e:
        _fail(e)

    resolved = resolve_working_window(target, excluded)
    if resolved is None:
        console.print(f"[yellow]⚠ Cannot read '{target}' as a date.[/yellow]")
        raise typer.Exit(1)

    if as_json:
        console.print_json(json.dumps(resolved.to_dict()))
        return

    console.print("\n[bold cyan]Working-day window[/bold cyan]")
    for day in resolved.days:
        console.print(f"   {day.format('ddd, YYYY-MM-DD')}")
    console.print(f"   From: {format_instant(resolved.range_start)}")
    console.print(f"   To:   {format_instant(resolved.range_end)}")
    if resolved.warning:
        console.print(f"[yellow]⚠ {resolved.warning}[/yellow]")
    console.print()


@app.command()
def suggest(
    date: Annotated[str, typer.Argument(help="Requested day (YYYY-MM-DD)")],
    time: Annotated[str, typer.Argument(help="Requested time (HH:MM)")],
    config_file: ConfigOption = None,
    data_file: DataOption = None,
    live: Annotated[bool, typer.Option("--live", help="Query the availability endpoint instead of the data file.")] = False,
):
    """
    Suggest reschedule slots close to a requested date and time.

    Examples:

        bookingcalendar suggest 2025-03-10 10:00

        bookingcalendar suggest 2025-03-10 10:00 --live -c config.yaml
    """
    try:
        config = _load_config(config_file)
        if live:
            source = AvailabilityClient(config.availability_url)
        else:
            source = _mock_client(config, data_file)

        service = RescheduleAvailabilityService(
            source,
            excluded_weekdays=config.schedule.excluded_weekdays,
            timezone=config.schedule.timezone,
            service_slug=config.service_slug,
            suggestions_per_day=config.suggestions.per_day,
            suggestions_limit=config.suggestions.limit,
        )
        result = asyncio.run(service.check_availability(date, time))
    except (FileNotFoundError, ValueError, BookingCalendarError) as e:
        _fail(e)

    if result is None:
        console.print(f"[yellow]⚠ Cannot read '{date}' as a date.[/yellow]")
        raise typer.Exit(1)

    if result.window.warning:
        console.print(f"[yellow]⚠ {result.window.warning}[/yellow]")

    if not result.suggestions:
        console.print(
            "[yellow]⚠ No available slots found.[/yellow]\n"
            "Try another date or time."
        )
        return

    console.print(f"[dim]Source: {' '.join(source.describe().values())}[/dim]")
    console.print(f"[bold green]✓ {len(result.suggestions)} suggested slot(s) "
                  f"from {result.slot_count} available:[/bold green]\n")
    for slot in result.suggestions:
        civil = to_civil(slot.start)
        console.print(f"  {civil.date().format('ddd, MMM D')} | {civil.hour:02d}:{civil.minute:02d} ({civil.utc_offset})")
    console.print()


@app.command()
def check(
    config_file: ConfigOption = None,
    data_file: DataOption = None,
):
    """
    Check the availability windows of the data file for invalid or overlapping entries.
    """
    try:
        config = _load_config(config_file)
        client = _mock_client(config, data_file)
        windows = client.load_windows()
    except (FileNotFoundError, ValueError, BookingCalendarError) as e:
        _fail(e)

    by_day: Dict[str, List[AvailabilityWindow]] = {}
    for item in windows:
        by_day.setdefault(item.day_key, []).append(item)

    problems = 0
    for day_key in sorted(by_day):
        seen: List[AvailabilityWindow] = []
        for item in by_day[day_key]:
            valid, error = validate_window(item)
            if not valid:
                console.print(f"[red]✗ {item}: {error}[/red]")
                problems += 1
            for other in detect_overlaps(item, seen):
                console.print(f"[red]✗ {item} overlaps {other.start} - {other.end}[/red]")
                problems += 1
            seen.append(item)

        merged = merge_windows(by_day[day_key])
        if len(merged) < len(by_day[day_key]):
            console.print(f"   {day_key} merges to: " + ", ".join(f"{w.start} - {w.end}" for w in merged))

    if problems:
        console.print(f"\n[yellow]⚠ {problems} problem(s) in {len(windows)} window(s).[/yellow]")
        raise typer.Exit(1)

    console.print(f"[bold green]✓ {len(windows)} window(s) on {len(by_day)} day(s), no overlaps.[/bold green]")


@app.command()
def version():
    """
    Show version information.
    """
    from .. import __version__
    console.print(f"\n[bold cyan]bookingcalendar[/bold cyan] version [bold]{__version__}[/bold]\n")


if __name__ == "__main__":
    app()
