"""CLI entrypoint for quake-monitor."""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime
from pathlib import Path
from typing import Optional

import click
from rich.console import Console

from quake_monitor.clients import FetchError, KandilliClient
from quake_monitor.dashboard import build_detail, build_stats, build_table
from quake_monitor.export import export_filename, to_csv
from quake_monitor.filters import FilterCriteria, FilterState, build_query, search_events
from quake_monitor.models import ResponseEnvelope
from quake_monitor.sources import get_source
from quake_monitor.stats import compute_stats

console = Console()

DATE_FORMATS = ["%Y-%m-%d", "%Y-%m-%d %H:%M:%S"]


def _filter_options(f):
    f = click.option("--end", type=click.DateTime(DATE_FORMATS), default=None,
                     help="End of date window (needs --start).")(f)
    f = click.option("--start", type=click.DateTime(DATE_FORMATS), default=None,
                     help="Start of date window (needs --end).")(f)
    f = click.option("--min-mag", default=0.0, help="Minimum magnitude filter (0 = off).")(f)
    return f


async def _fetch_once(filters: FilterState) -> ResponseEnvelope:
    client = KandilliClient(get_source())
    try:
        return await client.fetch(build_query(filters))
    finally:
        await client.close()


async def _fetch_with(method: str, *args) -> ResponseEnvelope:
    """Call a named KandilliClient feed operation."""
    client = KandilliClient(get_source())
    try:
        return await getattr(client, method)(*args)
    finally:
        await client.close()


def _run_fetch(coro) -> ResponseEnvelope:
    try:
        return asyncio.run(coro)
    except FetchError as exc:
        raise click.ClickException(f"Failed to load earthquake data: {exc}") from exc


def _load(min_mag: float, start: Optional[datetime], end: Optional[datetime]) -> ResponseEnvelope:
    filters = FilterState(magnitude_threshold=min_mag, date_range=(start, end))
    return _run_fetch(_fetch_once(filters))


def _print_events(events, truncated: int, limit: int) -> None:
    console.print(build_table(events, limit))
    if truncated:
        console.print(f"[dim]{truncated} more in full dataset[/]")


@click.group()
@click.option("--log-level", default="WARNING",
              type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False))
def cli(log_level: str):
    """Quake Monitor — Kandilli earthquake feed dashboard."""
    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
    )


@cli.command()
@_filter_options
@click.option("--search", default="", help="Case-insensitive title search.")
@click.option("--city", default="", help="Case-insensitive closest-city search.")
@click.option("--limit", default=20, help="Max results to display.")
def recent(min_mag: float, start, end, search: str, city: str, limit: int):
    """Show recent earthquakes."""
    envelope = _load(min_mag, start, end)
    events = search_events(envelope.events, search, "title")
    events = search_events(events, city, "closest_city")
    _print_events(events, envelope.truncated_count, limit)


@cli.command()
@_filter_options
def stats(min_mag: float, start, end):
    """Summary statistics for the current feed."""
    envelope = _load(min_mag, start, end)
    console.print(build_stats(compute_stats(envelope.events), envelope.truncated_count))


@cli.command()
@click.argument("event_id")
def show(event_id: str):
    """Show details for one event from the live feed."""
    envelope = _load(0.0, None, None)
    for event in envelope.events:
        if event_id in (event.id, event.earthquake_id):
            console.print(build_detail(event))
            return
    raise click.ClickException(f"Event {event_id} not found in the live feed")


@cli.command()
@click.argument("city_code", type=int)
@click.option("--min-mag", default=0.0, help="Minimum magnitude filter (0 = off).")
@click.option("--limit", default=20, help="Max results to display.")
def city(city_code: int, min_mag: float, limit: int):
    """Earthquakes near one province, by plate code (e.g. 34 for Istanbul)."""
    criteria = FilterCriteria(min_mag=min_mag) if min_mag > 0 else None
    envelope = _run_fetch(_fetch_with("fetch_by_city", city_code, criteria))
    _print_events(envelope.events, envelope.truncated_count, limit)


@cli.command()
@click.option("--limit", default=10, help="Number of events to request.")
def latest(limit: int):
    """The N most recent earthquakes."""
    envelope = _run_fetch(_fetch_with("fetch_latest", limit))
    _print_events(envelope.events, envelope.truncated_count, limit)


@cli.command()
@click.argument("year", type=click.IntRange(1900, 2100))
@click.argument("month", type=click.IntRange(1, 12))
@click.option("--limit", default=50, help="Max results to display.")
def history(year: int, month: int, limit: int):
    """Archived earthquakes for one month."""
    envelope = _run_fetch(_fetch_with("fetch_historical", year, month))
    console.print(build_stats(compute_stats(envelope.events), envelope.truncated_count))
    _print_events(envelope.events, envelope.truncated_count, limit)


@cli.command()
@_filter_options
@click.option("--output-dir", default=".", type=click.Path(file_okay=False, path_type=Path))
def export(min_mag: float, start, end, output_dir: Path):
    """Export the current events to a dated CSV file."""
    envelope = _load(min_mag, start, end)
    csv_text = to_csv(envelope.events)
    if not csv_text:
        click.echo("No data to export")
        return
    output_dir.mkdir(parents=True, exist_ok=True)
    path = output_dir / export_filename()
    path.write_text(csv_text, encoding="utf-8")
    click.echo(f"Exported {len(envelope.events)} event(s) to {path}")


@cli.command()
@_filter_options
@click.option("--limit", default=25, help="Max results to display.")
def dashboard(min_mag: float, start, end, limit: int):
    """Live auto-refreshing dashboard, aligned to 5-minute boundaries."""
    from quake_monitor.dashboard import run_dashboard
    run_dashboard(min_magnitude=min_mag, start=start, end=end, limit=limit, config=get_source())


@cli.command("web")
@click.option("--port", default=8501, help="Streamlit port.")
def web(port: int):
    """Launch the Streamlit web dashboard."""
    import subprocess
    import sys
    subprocess.run([
        sys.executable, "-m", "streamlit", "run",
        str(Path(__file__).with_name("dashboard_web.py")),
        "--server.port", str(port),
        "--theme.base", "dark",
        "--server.headless", "true",
    ])
