"""pydeck map layers built from encoder output."""

from __future__ import annotations

from typing import Optional, Sequence

import pandas as pd
import pydeck as pdk

from quake_monitor.encoding import encode
from quake_monitor.models import Event

TURKEY_CENTER = (39.0, 35.0)   # (lat, lon)
TURKEY_ZOOM = 5.2

# Radius multiplier for the selected event
SELECTED_SCALE = 1.2

MAP_STYLES = {
    "dark": "https://basemaps.cartocdn.com/gl/dark-matter-gl-style/style.json",
    "light": "https://basemaps.cartocdn.com/gl/positron-gl-style/style.json",
}

MARKER_COLUMNS = [
    "id", "title", "magnitude", "depth", "time", "latitude", "longitude",
    "radius", "glow", "border", "r", "g", "b", "alpha", "glow_alpha", "selected",
]


def selected_radius(radius: float, selected: bool) -> float:
    return radius * SELECTED_SCALE if selected else radius


def build_marker_frame(events: Sequence[Event], selected_id: Optional[str] = None) -> pd.DataFrame:
    """One row per event with pixel radii and RGBA channels."""
    rows = []
    for e in events:
        style = encode(e)
        r, g, b = style.rgb
        selected = e.id == selected_id
        radius = selected_radius(style.radius, selected)
        rows.append({
            "id": e.id,
            "title": e.title,
            "magnitude": round(e.magnitude, 1),
            "depth": round(e.depth_km, 1),
            "time": e.time.strftime("%Y-%m-%d %H:%M"),
            "latitude": e.latitude,
            "longitude": e.longitude,
            "radius": radius,
            "glow": radius + style.glow_radius,
            "border": style.border_width,
            "r": r,
            "g": g,
            "b": b,
            "alpha": int(style.opacity * 255),
            "glow_alpha": int(style.opacity * 0.3 * 255),
            "selected": selected,
        })
    return pd.DataFrame(rows, columns=MARKER_COLUMNS)


def build_deck(
    events: Sequence[Event],
    selected_id: Optional[str] = None,
    map_style: str = "dark",
) -> pdk.Deck:
    df = build_marker_frame(events, selected_id)

    glow = pdk.Layer(
        "ScatterplotLayer",
        data=df,
        get_position=["longitude", "latitude"],
        get_radius="glow",
        radius_units="pixels",
        get_fill_color=["r", "g", "b", "glow_alpha"],
        pickable=False,
    )
    markers = pdk.Layer(
        "ScatterplotLayer",
        data=df,
        get_position=["longitude", "latitude"],
        get_radius="radius",
        radius_units="pixels",
        get_fill_color=["r", "g", "b", "alpha"],
        get_line_color=[255, 255, 255, 160],
        get_line_width="border",
        line_width_units="pixels",
        stroked=True,
        pickable=True,
        auto_highlight=True,
    )

    if selected_id is not None and df["selected"].any():
        row = df[df["selected"]].iloc[0]
        view_state = pdk.ViewState(latitude=row["latitude"], longitude=row["longitude"], zoom=7)
    else:
        view_state = pdk.ViewState(latitude=TURKEY_CENTER[0], longitude=TURKEY_CENTER[1], zoom=TURKEY_ZOOM)

    return pdk.Deck(
        layers=[glow, markers],
        initial_view_state=view_state,
        tooltip={"text": "M{magnitude} — {title}\nDepth: {depth} km\n{time}"},
        map_style=MAP_STYLES.get(map_style, MAP_STYLES["dark"]),
    )
