"""
Theme and color definitions for f3-geomap.

Provides:
- Per-organization fill colors, generated lazily and remembered
- Shape style hints (normal vs. emphasized on hover)
- Dark and light palettes for the PNG renderer
"""

from __future__ import annotations

import random
from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class ShapeStyle:
    """Style hint handed to a renderer with each boundary."""
    color: str
    weight: int = 2
    fill_opacity: float = 0.18

    def emphasized(self) -> "ShapeStyle":
        return ShapeStyle(color=self.color, weight=3, fill_opacity=0.28)

    def to_dict(self) -> dict:
        return {"color": self.color, "weight": self.weight, "fillOpacity": self.fill_opacity}


class ColorRegistry:
    """Random ``#RRGGBB`` color per organization id, fixed after first use."""

    def __init__(self, seed: Optional[int] = None):
        self._rng = random.Random(seed)
        self._colors: dict[int, str] = {}

    def color_for(self, org_id: int) -> str:
        color = self._colors.get(org_id)
        if color is None:
            color = f"#{self._rng.randrange(0x1000000):06X}"
            self._colors[org_id] = color
        return color

    def style_for(self, org_id: int) -> ShapeStyle:
        return ShapeStyle(color=self.color_for(org_id))

    def reset(self) -> None:
        self._colors.clear()

    def __len__(self) -> int:
        return len(self._colors)


@dataclass
class ThemePalette:
    """Color palette for rendered maps."""

    # Canvas
    background: str
    graticule: str

    # Text
    title_color: str
    label_color: str
    muted_text_color: str

    # Outline drawn around decorative (umbrella) shapes
    decorative_outline: str


DARK_THEME = ThemePalette(
    background="#11111b",
    graticule="#313244",
    title_color="#cdd6f4",
    label_color="#cdd6f4",
    muted_text_color="#6c7086",
    decorative_outline="#f9e2af",
)


LIGHT_THEME = ThemePalette(
    background="#ffffff",
    graticule="#dce0e8",
    title_color="#1e1e2e",
    label_color="#1e1e2e",
    muted_text_color="#6c6f85",
    decorative_outline="#df8e1d",
)


THEMES: dict[str, ThemePalette] = {
    "dark": DARK_THEME,
    "light": LIGHT_THEME,
}


def get_theme(name: str) -> ThemePalette:
    """Get a theme palette by name.

    Raises:
        ValueError: If theme name is not recognized
    """
    if name not in THEMES:
        valid = ", ".join(THEMES.keys())
        raise ValueError(f"Unknown theme '{name}'. Valid themes: {valid}")
    return THEMES[name]
