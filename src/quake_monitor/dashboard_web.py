"""Streamlit dashboard for earthquake monitoring."""

from __future__ import annotations

import asyncio
import time
from datetime import datetime, time as dtime

import pandas as pd
import plotly.express as px
import streamlit as st

from quake_monitor.clients import KandilliClient
from quake_monitor.encoding import encode, format_distance, gradient_stops
from quake_monitor.export import export_filename, to_csv
from quake_monitor.filters import FeedQuery, FilterState, build_query, search_events
from quake_monitor.map_layers import build_deck
from quake_monitor.models import ResponseEnvelope
from quake_monitor.notifications import NotificationCenter
from quake_monitor.scheduler import RefreshWindow, SyncScheduler
from quake_monitor.sources import SourceConfig, get_source
from quake_monitor.stats import BAND_LABELS, MAGNITUDE_BANDS, compute_stats

# --- Page config ---
st.set_page_config(
    page_title="Kandilli Earthquake Monitor",
    page_icon="🌍",
    layout="wide",
    initial_sidebar_state="expanded",
)

st.markdown("""
<style>
    .stApp { background-color: #0a0a0a; }
    .stMetric { background: #141414; border-radius: 8px; padding: 10px; }
</style>
""", unsafe_allow_html=True)


class _PerRunGateway:
    """Opens a fresh client per fetch; every Streamlit rerun has its own event loop."""

    def __init__(self, config: SourceConfig):
        self.config = config

    async def fetch(self, query: FeedQuery) -> ResponseEnvelope:
        client = KandilliClient(self.config)
        try:
            return await client.fetch(query)
        finally:
            await client.close()


def _session_scheduler() -> tuple[SyncScheduler, NotificationCenter]:
    if "scheduler" not in st.session_state:
        notices = NotificationCenter()
        st.session_state.notices = notices
        config = get_source()
        st.session_state.scheduler = SyncScheduler(
            _PerRunGateway(config), interval=config.refresh_interval, on_notify=notices.push,
        )
    return st.session_state.scheduler, st.session_state.notices


# --- Sidebar ---
with st.sidebar:
    st.title("🌍 Quake Monitor")
    st.markdown("---")

    min_mag = st.slider("Minimum Magnitude", 0.0, 8.0, 0.0, 0.5)
    use_dates = st.checkbox("Filter by date range", value=False)
    date_range = None
    if use_dates:
        picked = st.date_input("Date range", value=())
        if isinstance(picked, tuple) and len(picked) == 2:
            date_range = (
                datetime.combine(picked[0], dtime.min),
                datetime.combine(picked[1], dtime.max.replace(microsecond=0)),
            )

    search = st.text_input("Search location")

    st.markdown("---")
    auto_refresh = st.checkbox("Auto-refresh on the refresh interval", value=True)
    st.markdown("---")
    st.markdown("**Links**")
    st.markdown("- [Kandilli Observatory](http://www.koeri.boun.edu.tr/)")
    st.markdown("- [API docs](https://api.orhanaydogdu.com.tr/deprem/api-docs/)")

# --- Load data ---
scheduler, notices = _session_scheduler()
filters = FilterState(magnitude_threshold=min_mag, date_range=date_range)
scheduler.set_filters(filters)
previous = scheduler.snapshot
query_changed = previous is not None and previous.query != build_query(filters)
asyncio.run(scheduler.refresh(force=query_changed))

snapshot = scheduler.snapshot
events = list(scheduler.events)
if search:
    events = search_events(events, search, "title")

# --- Header ---
st.title("Kandilli Earthquake Monitor")
window = RefreshWindow.at(datetime.now().astimezone(), scheduler.interval)
next_refresh = window.next
if snapshot is not None:
    st.caption(
        f"Last updated: {snapshot.interval:%H:%M:%S} | Next refresh: {next_refresh:%H:%M:%S}"
    )

notice = notices.current
if notice is not None:
    (st.success if notice.kind == "success" else st.error)(notice.message)

# --- Row 1: Stats cards ---
stats = compute_stats(events)
if stats is not None:
    col1, col2, col3, col4, col5 = st.columns(5)
    col1.metric("Total Earthquakes", f"{stats.total:,}")
    col2.metric("Average Magnitude", f"M{stats.average_magnitude:.1f}")
    col3.metric("Average Depth", f"{stats.average_depth:.1f} km")
    col4.metric("Strongest", f"M{stats.strongest.magnitude:.1f}")
    col5.metric("Most Recent", f"{stats.most_recent.time:%H:%M}")
    if snapshot is not None and snapshot.truncated_count:
        st.caption(f"{snapshot.truncated_count} more in full dataset")
else:
    st.warning("No earthquake data available.")

st.markdown("---")

# --- Row 2: Map + detail ---
col_map, col_detail = st.columns([2, 1])

selected = None
with col_detail:
    st.subheader("Earthquake Details")
    if events:
        options = sorted(events, key=lambda e: e.time, reverse=True)
        selected = st.selectbox(
            "Select an earthquake",
            options=options,
            format_func=lambda e: f"M{e.magnitude:.1f} — {e.title} ({e.time:%m/%d %H:%M})",
        )
    if selected is not None:
        loc = selected.location
        st.markdown(f"**{selected.title}**")
        style = encode(selected)
        stops = ", ".join(f"{color} {offset:.0%}" for offset, color in gradient_stops(style))
        st.markdown(
            f"<div style='display:flex;align-items:center;gap:10px'>"
            f"<div style='width:{style.radius}px;height:{style.radius}px;border-radius:50%;"
            f"background:radial-gradient(circle, {stops})'></div>"
            f"<span style='color:{style.color};font-size:1.4em'>M{selected.magnitude:.1f}</span></div>",
            unsafe_allow_html=True,
        )
        st.write(f"Date & Time: {selected.time:%Y-%m-%d %H:%M:%S} ({selected.location_tz})")
        st.write(f"Coordinates: {selected.latitude:.4f}, {selected.longitude:.4f}")
        st.write(f"Depth: {selected.depth_km} km")
        st.write(f"Epicenter: {loc.epicenter.name}")
        if loc.closest_cities:
            st.markdown("**Closest Cities**")
            for city in loc.closest_cities[:3]:
                st.write(f"{city.name}: {format_distance(city.distance)}")
        if loc.airports:
            st.markdown("**Airports**")
            for airport in loc.airports[:3]:
                st.write(f"{airport.name} ({airport.code}): {format_distance(airport.distance)}")
    else:
        st.info("Select an earthquake to view details")

with col_map:
    st.subheader("Earthquake Map")
    if events:
        st.pydeck_chart(build_deck(events, selected.id if selected else None), height=550)
    else:
        st.info("No earthquake data available")

st.markdown("---")

# --- Row 3: Distribution ---
if stats is not None:
    st.subheader("Magnitude Distribution")
    band_df = pd.DataFrame({
        "Band": [BAND_LABELS[name] for name, _, _ in MAGNITUDE_BANDS],
        "Count": [stats.magnitude_distribution[name] for name, _, _ in MAGNITUDE_BANDS],
        "Share": [f"{stats.band_share(name):.1f}%" for name, _, _ in MAGNITUDE_BANDS],
    })
    fig_bands = px.bar(
        band_df, x="Band", y="Count",
        color="Band", text="Share",
        color_discrete_sequence=["#52c41a", "#faad14", "#fa8c16", "#f5222d", "#a8071a"],
        template="plotly_dark",
    )
    fig_bands.update_layout(showlegend=False, height=320, margin=dict(t=20, b=30))
    st.plotly_chart(fig_bands, use_container_width=True)
    st.markdown("---")

# --- Row 4: Data table + export ---
st.subheader("Earthquake Data")

if events:
    csv = to_csv(events)
    st.download_button("Download CSV", csv, export_filename(), "text/csv")

    display_df = pd.DataFrame([
        {
            "Date & Time": e.time.strftime("%Y-%m-%d %H:%M:%S"),
            "Location": e.title,
            "Magnitude": e.magnitude,
            "Depth (km)": e.depth_km,
            "Closest City": e.closest_city_name,
            "Distance (km)": e.closest_city_km,
        }
        for e in sorted(events, key=lambda e: e.time, reverse=True)
    ])
    st.dataframe(
        display_df,
        use_container_width=True,
        height=400,
        column_config={
            "Magnitude": st.column_config.NumberColumn(format="%.1f"),
            "Depth (km)": st.column_config.NumberColumn(format="%.1f"),
            "Distance (km)": st.column_config.NumberColumn(format="%.1f"),
        },
    )
else:
    st.info("No data to export.")

# --- Auto refresh trigger, aligned to the next interval boundary ---
if auto_refresh:
    time.sleep(max(1.0, (next_refresh - datetime.now().astimezone()).total_seconds()))
    st.rerun()
