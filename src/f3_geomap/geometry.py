"""
Planar geometry kernel for f3-geomap.

Every function here treats latitude/longitude as flat (x = longitude,
y = latitude).  That distorts shapes away from the equator and is accepted:
boundaries are a visual aid, not a survey.

Functions:

  - ``convex_hull``   — monotone-chain hull of a point set
  - ``circle_buffer`` — ring of points around one or two locations
  - ``star_polygon``  — fixed decorative star for umbrella organizations
  - ``bounds``        — south-west / north-east box of a point set
  - ``polygon_area``  — shoelace area in square degrees

All functions are pure.  None of them fail on small inputs; they return
degenerate (sub-3-vertex) results instead, and callers check
``is_displayable`` before drawing.
"""

from __future__ import annotations

import math
from typing import Optional, Sequence

from .models import Bounds, Point


# Rough "about 16 km at the equator" ring for one or two locations.
DEFAULT_BUFFER_RADIUS = 0.15
DEFAULT_BUFFER_SEGMENTS = 8

DEFAULT_STAR_POINTS = 5
STAR_INNER_RATIO = 0.4

MIN_POLYGON_VERTICES = 3


def cross(o: Point, a: Point, b: Point) -> float:
    """Z component of (a - o) x (b - o).  Positive for a counter-clockwise turn."""
    return (a.lng - o.lng) * (b.lat - o.lat) - (a.lat - o.lat) * (b.lng - o.lng)


def is_displayable(vertices: Sequence[Point]) -> bool:
    return len(vertices) >= MIN_POLYGON_VERTICES


def _half_hull(points: Sequence[Point]) -> list[Point]:
    chain: list[Point] = []
    for point in points:
        # Pop clockwise and collinear turns
        while len(chain) >= 2 and cross(chain[-2], chain[-1], point) <= 0:
            chain.pop()
        chain.append(point)
    return chain


def convex_hull(points: Sequence[Point]) -> list[Point]:
    """Monotone-chain convex hull.

    Points are sorted by longitude, then latitude.  The lower and upper
    chains are built independently and concatenated, each dropping the
    endpoint it shares with the other.  Collinear boundary points are
    removed, so three or more collinear inputs collapse to two vertices.

    Inputs with fewer than three points are returned unchanged.
    """
    if len(points) < MIN_POLYGON_VERTICES:
        return list(points)

    ordered = sorted(points, key=lambda p: (p.lng, p.lat))
    lower = _half_hull(ordered)
    upper = _half_hull(list(reversed(ordered)))

    lower.pop()
    upper.pop()
    return lower + upper


def centroid(points: Sequence[Point]) -> Optional[Point]:
    """Arithmetic mean of the points; the midpoint for two."""
    if not points:
        return None
    lat = sum(p.lat for p in points) / len(points)
    lng = sum(p.lng for p in points) / len(points)
    return Point(lat, lng)


def circle_buffer(
    points: Sequence[Point],
    radius: float = DEFAULT_BUFFER_RADIUS,
    segments: int = DEFAULT_BUFFER_SEGMENTS,
) -> list[Point]:
    """Ring of ``segments`` points around the centre of ``points``.

    One point is its own centre, two points use their midpoint.  Vertices
    are evenly spaced in increasing angle order starting at angle 0 (due
    east).  No geodesic correction is applied to ``radius``.
    """
    center = centroid(points)
    if center is None or segments <= 0:
        return []

    ring: list[Point] = []
    for i in range(segments):
        angle = 2 * math.pi * i / segments
        ring.append(Point(
            lat=center.lat + radius * math.sin(angle),
            lng=center.lng + radius * math.cos(angle),
        ))
    return ring


def star_polygon(
    center: Point,
    outer_radius: float,
    points: int = DEFAULT_STAR_POINTS,
) -> list[Point]:
    """Star with ``points`` tips, i.e. ``2 * points`` vertices.

    Vertices alternate between the outer radius and ``0.4 *`` the outer
    radius at equal angular steps.  The first vertex is a tip pointing north.
    """
    if points <= 0:
        return []

    inner_radius = outer_radius * STAR_INNER_RATIO
    step = math.pi / points
    vertices: list[Point] = []
    for i in range(points * 2):
        angle = -math.pi / 2 + i * step
        r = outer_radius if i % 2 == 0 else inner_radius
        # Screen-style angle: -90 degrees is "up", which is north
        vertices.append(Point(
            lat=center.lat - r * math.sin(angle),
            lng=center.lng + r * math.cos(angle),
        ))
    return vertices


def bounds(points: Sequence[Point]) -> Optional[Bounds]:
    if not points:
        return None
    return Bounds(
        south=min(p.lat for p in points),
        west=min(p.lng for p in points),
        north=max(p.lat for p in points),
        east=max(p.lng for p in points),
    )


def merge_bounds(boxes: Sequence[Optional[Bounds]]) -> Optional[Bounds]:
    """Smallest box covering every non-empty box."""
    present = [b for b in boxes if b is not None]
    if not present:
        return None
    return Bounds(
        south=min(b.south for b in present),
        west=min(b.west for b in present),
        north=max(b.north for b in present),
        east=max(b.east for b in present),
    )


def polygon_area(vertices: Sequence[Point]) -> float:
    """Shoelace area in square degrees.  Zero for degenerate rings."""
    if len(vertices) < MIN_POLYGON_VERTICES:
        return 0.0
    total = 0.0
    for i, a in enumerate(vertices):
        b = vertices[(i + 1) % len(vertices)]
        total += a.lng * b.lat - b.lng * a.lat
    return abs(total) / 2.0
