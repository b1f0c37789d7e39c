"""Map renderer using Pillow — draws a level view's boundaries to PNG."""

from __future__ import annotations

import math
from io import BytesIO
from pathlib import Path
from typing import Optional

from PIL import Image, ImageDraw, ImageFont

from .geometry import centroid, merge_bounds
from .models import Bounds, Point, ShapeKind
from .session import LevelView, OrgView
from .themes import ThemePalette, get_theme


# --- Font handling ---

REGULAR_FONTS = (
    "/usr/share/fonts/truetype/dejavu/DejaVuSans.ttf",
    "/usr/share/fonts/truetype/liberation/LiberationSans-Regular.ttf",
    "/usr/share/fonts/TTF/DejaVuSans.ttf",
)
BOLD_FONTS = (
    "/usr/share/fonts/truetype/dejavu/DejaVuSans-Bold.ttf",
    "/usr/share/fonts/truetype/liberation/LiberationSans-Bold.ttf",
    "/usr/share/fonts/TTF/DejaVuSans-Bold.ttf",
)


def _load_font(size: int, bold: bool = False) -> ImageFont.FreeTypeFont | ImageFont.ImageFont:
    """First installed TrueType font (bold falls back to regular), else Pillow's default."""
    candidates = BOLD_FONTS + REGULAR_FONTS if bold else REGULAR_FONTS
    for fp in candidates:
        if Path(fp).exists():
            return ImageFont.truetype(fp, size)
    return ImageFont.load_default()


def _hex_to_rgba(hex_color: str, alpha: int = 255) -> tuple[int, int, int, int]:
    """``#RRGGBB`` to an RGBA tuple."""
    value = hex_color.lstrip("#")
    return (int(value[0:2], 16), int(value[2:4], 16), int(value[4:6], 16), alpha)


# --- Projection ---

class _Projection:
    """Plate carrée: longitude -> x, latitude -> y (flipped)."""

    def __init__(self, box: Bounds, width: int, height: int, margin: float, top: float):
        self.box = box
        self.margin = margin
        self.top = top
        span_lng = max(box.east - box.west, 1e-6)
        span_lat = max(box.north - box.south, 1e-6)
        self.scale = min((width - 2 * margin) / span_lng, (height - top - 2 * margin) / span_lat)

    def __call__(self, p: Point) -> tuple[float, float]:
        x = self.margin + (p.lng - self.box.west) * self.scale
        y = self.top + self.margin + (self.box.north - p.lat) * self.scale
        return (x, y)


# --- Main renderer ---

class MapRenderer:
    """Renders a LevelView to a PNG image."""

    WIDTH = 1200
    PADDING = 40
    TITLE_HEIGHT = 60
    MIN_HEIGHT = 400
    MAX_HEIGHT = 1600
    BOUNDS_PAD = 0.1        # fraction of the span added around the data
    MIN_SPAN = 0.5          # degrees; keeps single-circle views from zooming in absurdly

    def __init__(self, scale: float = 1.0, theme: str = "dark"):
        self.scale = scale
        self.font_label = _load_font(int(14 * scale), bold=True)
        self.font_title = _load_font(int(24 * scale), bold=True)
        self.theme: ThemePalette = get_theme(theme)

    def render(
        self,
        view: LevelView,
        title: Optional[str] = None,
        output_path: Optional[str] = None,
        highlight_id: Optional[int] = None,
    ) -> bytes:
        """Render the view to PNG bytes. Optionally save to file.

        Args:
            view: The level view to draw.
            title: Heading text; defaults to the breadcrumb trail.
            output_path: Optional path to save the PNG.
            highlight_id: Organization drawn with the emphasized style.
        """
        drawn = view.drawn
        box = self._padded_bounds(view)

        width = int(self.WIDTH * self.scale)
        margin = self.PADDING * self.scale
        top = self.TITLE_HEIGHT * self.scale
        if box is None:
            height = int(self.MIN_HEIGHT * self.scale)
        else:
            aspect = (box.north - box.south) / max(box.east - box.west, 1e-6)
            height = int((width - 2 * margin) * aspect + top + 2 * margin)
            height = max(int(self.MIN_HEIGHT * self.scale), min(height, int(self.MAX_HEIGHT * self.scale)))

        img = Image.new("RGBA", (width, height), _hex_to_rgba(self.theme.background))
        draw = ImageDraw.Draw(img)
        self._draw_title(draw, title or self._default_title(view), width)

        if box is None:
            message = view.placeholder or "Nothing to draw at this level."
            draw.text((margin, top + margin), message, fill=self.theme.muted_text_color, font=self.font_label)
        else:
            project = _Projection(box, width, height, margin, top)
            self._draw_graticule(draw, box, project)

            # Fills go on a separate layer so overlapping shapes blend
            overlay = Image.new("RGBA", img.size, (0, 0, 0, 0))
            overlay_draw = ImageDraw.Draw(overlay)
            for item in drawn:
                self._draw_shape(overlay_draw, item, project, item.org.id == highlight_id)
            img = Image.alpha_composite(img, overlay)

            draw = ImageDraw.Draw(img)
            for item in drawn:
                self._draw_label(draw, item, project)

        buf = BytesIO()
        img.save(buf, format="PNG", optimize=True)
        png_bytes = buf.getvalue()

        if output_path:
            Path(output_path).write_bytes(png_bytes)

        return png_bytes

    def _default_title(self, view: LevelView) -> str:
        trail = " / ".join(c.label for c in view.breadcrumbs) if view.breadcrumbs else "Nation"
        return f"{trail}: {view.state.level.value.upper()}"

    def _padded_bounds(self, view: LevelView) -> Optional[Bounds]:
        box = view.fit_bounds or merge_bounds([item.shape.bounds() for item in view.drawn])
        if box is None:
            return None
        span_lat = max(box.north - box.south, self.MIN_SPAN)
        span_lng = max(box.east - box.west, self.MIN_SPAN)
        mid_lat = (box.north + box.south) / 2
        mid_lng = (box.east + box.west) / 2
        half_lat = span_lat * (1 + self.BOUNDS_PAD) / 2
        half_lng = span_lng * (1 + self.BOUNDS_PAD) / 2
        return Bounds(
            south=mid_lat - half_lat,
            west=mid_lng - half_lng,
            north=mid_lat + half_lat,
            east=mid_lng + half_lng,
        )

    def _draw_title(self, draw: ImageDraw.ImageDraw, title: str, img_width: int):
        """Draw the title centered at the top."""
        bbox = self.font_title.getbbox(title)
        tw = bbox[2] - bbox[0]
        x = (img_width - tw) / 2
        draw.text((x, 15 * self.scale), title, fill=self.theme.title_color, font=self.font_title)

    def _draw_graticule(self, draw: ImageDraw.ImageDraw, box: Bounds, project: _Projection):
        """Light lat/lng grid at a round step."""
        span = max(box.east - box.west, box.north - box.south)
        step = 10 ** math.floor(math.log10(span)) if span > 0 else 1.0
        if span / step < 3:
            step /= 2

        lng = math.ceil(box.west / step) * step
        while lng <= box.east:
            draw.line([project(Point(box.south, lng)), project(Point(box.north, lng))], fill=self.theme.graticule, width=1)
            lng += step
        lat = math.ceil(box.south / step) * step
        while lat <= box.north:
            draw.line([project(Point(lat, box.west)), project(Point(lat, box.east))], fill=self.theme.graticule, width=1)
            lat += step

    def _draw_shape(self, draw: ImageDraw.ImageDraw, item: OrgView, project: _Projection, emphasized: bool):
        style = item.style.emphasized() if emphasized else item.style
        xy = [project(p) for p in item.shape.vertices]
        fill = _hex_to_rgba(style.color, int(255 * style.fill_opacity))
        outline = self.theme.decorative_outline if item.shape.kind == ShapeKind.DECORATIVE else style.color
        draw.polygon(xy, fill=fill)
        # Close the ring explicitly; polygon outlines ignore width on older Pillow
        draw.line(xy + [xy[0]], fill=_hex_to_rgba(outline), width=max(1, int(style.weight * self.scale)))

    def _draw_label(self, draw: ImageDraw.ImageDraw, item: OrgView, project: _Projection):
        center = centroid(item.shape.vertices)
        x, y = project(center)
        bbox = self.font_label.getbbox(item.org.name)
        tw = bbox[2] - bbox[0]
        th = bbox[3] - bbox[1]
        draw.text((x - tw / 2, y - th / 2), item.org.name, fill=self.theme.label_color, font=self.font_label)
