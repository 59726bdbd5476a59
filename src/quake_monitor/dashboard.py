"""Live terminal dashboard for earthquake monitoring."""

from __future__ import annotations

import asyncio
from datetime import datetime
from typing import Optional, Sequence

from rich.console import Console, Group
from rich.layout import Layout
from rich.live import Live
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from quake_monitor.clients import KandilliClient
from quake_monitor.encoding import format_distance, magnitude_color
from quake_monitor.filters import FilterState
from quake_monitor.models import Event
from quake_monitor.notifications import NotificationCenter
from quake_monitor.scheduler import SyncScheduler
from quake_monitor.sources import SourceConfig
from quake_monitor.stats import BAND_LABELS, MAGNITUDE_BANDS, EventStats, compute_stats

console = Console()


def _mag_markup(mag: float) -> str:
    return f"[bold {magnitude_color(mag).replace(' ', '')}]M{mag:.1f}[/]"


def build_table(events: Sequence[Event], limit: int) -> Table:
    table = Table(title="Earthquakes", expand=True)
    table.add_column("Date & Time", width=17)
    table.add_column("Location")
    table.add_column("Mag", width=6, justify="center")
    table.add_column("Depth", justify="right", width=9)
    table.add_column("Closest City", width=16)
    table.add_column("Distance", justify="right", width=10)

    newest_first = sorted(events, key=lambda e: e.time, reverse=True)
    for e in newest_first[:limit]:
        table.add_row(
            f"{e.time:%m/%d %H:%M}",
            e.title,
            _mag_markup(e.magnitude),
            f"{e.depth_km:.1f} km",
            e.closest_city_name,
            f"{e.closest_city_km:.1f} km",
        )
    return table


def build_stats(stats: Optional[EventStats], truncated: int = 0) -> Panel:
    if stats is None:
        return Panel("Waiting for data…", title="Statistics", border_style="blue")

    lines = [
        f"Total events: [bold]{stats.total}[/]"
        + (f"  [dim]({truncated} more in full dataset)[/]" if truncated else ""),
        f"Average: {_mag_markup(stats.average_magnitude)}  depth [bold]{stats.average_depth:.1f} km[/]",
        "  ".join(
            f"{BAND_LABELS[name]}: {stats.magnitude_distribution[name]} ({stats.band_share(name):.0f}%)"
            for name, _, _ in MAGNITUDE_BANDS
        ),
        f"Strongest: {_mag_markup(stats.strongest.magnitude)} — {stats.strongest.title}",
        f"Most recent: {_mag_markup(stats.most_recent.magnitude)} — {stats.most_recent.title} "
        f"({stats.most_recent.time:%H:%M:%S})",
    ]
    return Panel("\n".join(lines), title="Statistics", border_style="blue")


def build_detail(event: Event) -> Panel:
    """Epicenter, nearby cities and airports for one event."""
    loc = event.location
    lines = [
        f"{_mag_markup(event.magnitude)} {event.title}",
        f"Time: {event.time:%Y-%m-%d %H:%M:%S} ({event.location_tz})",
        f"Coordinates: {event.latitude:.4f}, {event.longitude:.4f}   Depth: {event.depth_km} km",
        f"Epicenter: {loc.epicenter.name}"
        + (f" (population {loc.epicenter.population:,})" if loc.epicenter.population else ""),
    ]
    if loc.closest_cities:
        lines.append("\n[bold]Closest cities[/]")
        for city in loc.closest_cities[:3]:
            pop = f", population {city.population:,}" if city.population else ""
            lines.append(f"  {city.name}: {format_distance(city.distance)}{pop}")
    if loc.airports:
        lines.append("\n[bold]Nearby airports[/]")
        for airport in loc.airports[:3]:
            lines.append(f"  {airport.name} ({airport.code}): {format_distance(airport.distance)}")
    return Panel("\n".join(lines), title=event.earthquake_id, border_style="cyan")


def _build_header(scheduler: SyncScheduler, notices: NotificationCenter) -> Panel:
    parts = [Text("Kandilli Earthquake Monitor", style="bold")]
    snapshot = scheduler.snapshot
    status = []
    if snapshot is not None:
        status.append(f"Last updated: {snapshot.interval:%H:%M:%S}")
    if scheduler.next_refresh_at is not None:
        remaining = int(scheduler.seconds_until_refresh())
        status.append(
            f"Next refresh: {scheduler.next_refresh_at:%H:%M:%S} (in {remaining // 60}:{remaining % 60:02d})"
        )
    if scheduler.loading:
        status.append("loading…")
    parts.append(Text("  |  ".join(status), style="dim"))

    notice = notices.current
    if notice is not None:
        parts.append(Text(notice.message, style="green" if notice.kind == "success" else "bold red"))
    return Panel(Group(*parts), border_style="blue")


def _render(layout: Layout, scheduler: SyncScheduler, notices: NotificationCenter, limit: int) -> None:
    snapshot = scheduler.snapshot
    events = scheduler.events
    truncated = snapshot.truncated_count if snapshot else 0

    layout["header"].update(_build_header(scheduler, notices))
    layout["stats"].update(build_stats(compute_stats(events), truncated))
    layout["table"].update(build_table(events, limit))


async def _run(config: Optional[SourceConfig], filters: FilterState, limit: int) -> None:
    layout = Layout()
    layout.split_column(
        Layout(name="header", size=5),
        Layout(name="stats", size=7),
        Layout(name="table"),
    )

    client = KandilliClient(config)
    notices = NotificationCenter()
    scheduler = SyncScheduler(
        client, filters, interval=client.config.refresh_interval, on_notify=notices.push,
    )

    with Live(layout, console=console, refresh_per_second=1, screen=True):
        scheduler.start()
        try:
            while True:
                _render(layout, scheduler, notices, limit)
                await asyncio.sleep(1)
        finally:
            scheduler.dispose()
            await client.close()


def run_dashboard(
    min_magnitude: float = 0.0,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    limit: int = 25,
    config: Optional[SourceConfig] = None,
) -> None:
    """Run a live-updating earthquake dashboard in the terminal."""
    filters = FilterState(magnitude_threshold=min_magnitude, date_range=(start, end))
    try:
        asyncio.run(_run(config, filters, limit))
    except KeyboardInterrupt:
        pass
