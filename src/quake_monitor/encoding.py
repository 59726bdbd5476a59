"""Magnitude/depth → rendering parameters, shared by every view.

All functions are pure so that map markers, table tags and legend entries
stay consistent for the same event.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass

from quake_monitor.models import Event

MIN_RADIUS = 15.0
MIN_GLOW = 5.0
MIN_OPACITY = 0.3
MAX_OPACITY = 0.8
FADE_DEPTH_KM = 400.0

# (magnitude floor, border width), highest first
BORDER_STEPS = ((6.0, 1.5), (5.0, 1.0), (4.0, 0.5))
BASE_BORDER = 0.25

_RGB_RE = re.compile(r"rgb\((\d+),\s*(\d+),\s*(\d+)\)")


@dataclass(frozen=True)
class MarkerStyle:
    color: str
    radius: float
    opacity: float
    border_width: float
    glow_radius: float

    @property
    def rgb(self) -> tuple[int, int, int]:
        return parse_rgb(self.color)


def magnitude_color(magnitude: float) -> str:
    """Blue-dominant color that brightens towards cyan/white with magnitude."""
    r = min(255, math.floor(magnitude * 30)) if magnitude > 4 else 0
    g = min(255, math.floor(150 + magnitude * 15)) if magnitude > 3 else 150
    b = 255
    return f"rgb({r}, {g}, {b})"


def parse_rgb(color: str) -> tuple[int, int, int]:
    match = _RGB_RE.search(color)
    if match is None:
        raise ValueError(f"not an rgb() color: {color!r}")
    r, g, b = (int(c) for c in match.groups())
    return r, g, b


def marker_size(magnitude: float) -> float:
    """Quadratic radius with a floor so small events stay visible."""
    return max(MIN_RADIUS, magnitude ** 2.0 * 2)


def marker_opacity(magnitude: float, depth_km: float) -> float:
    depth_factor = max(MIN_OPACITY, 1 - depth_km / FADE_DEPTH_KM)
    magnitude_factor = min(0.9, 0.4 + magnitude / 10)
    return min(MAX_OPACITY, max(MIN_OPACITY, depth_factor * magnitude_factor))


def border_width(magnitude: float) -> float:
    for floor, width in BORDER_STEPS:
        if magnitude >= floor:
            return width
    return BASE_BORDER


def glow_radius(magnitude: float) -> float:
    return max(MIN_GLOW, magnitude * 3)


def encode(event: Event) -> MarkerStyle:
    """Bundle every rendering parameter for one event."""
    return MarkerStyle(
        color=magnitude_color(event.magnitude),
        radius=marker_size(event.magnitude),
        opacity=marker_opacity(event.magnitude, event.depth_km),
        border_width=border_width(event.magnitude),
        glow_radius=glow_radius(event.magnitude),
    )


def gradient_stops(style: MarkerStyle) -> list[tuple[float, str]]:
    """Radial gradient stops: solid core, soft shoulder, transparent edge."""
    r, g, b = style.rgb
    return [
        (0.0, f"rgba({r}, {g}, {b}, {style.opacity:.2f})"),
        (0.7, f"rgba({r}, {g}, {b}, {style.opacity * 0.7:.2f})"),
        (1.0, f"rgba({r}, {g}, {b}, 0)"),
    ]


def format_distance(metres: float) -> str:
    if metres < 1000:
        return f"{metres:.0f} m"
    return f"{metres / 1000:.1f} km"
