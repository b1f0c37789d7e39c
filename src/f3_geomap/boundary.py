"""Boundary resolution: which shape, if any, represents an organization."""

from __future__ import annotations

from typing import Optional, Sequence

from . import geometry
from .models import Organization, Point, Shape, ShapeKind
from .overrides import OverrideRules
from .points import PointAggregator


class BoundaryResolver:
    """Picks the display boundary for an organization.

    Decision order:

    1. Umbrella organizations get their rule's decorative star at the
       rule's anchor.  Point data is not consulted.
    2. No points: None (not drawn).
    3. One or two points: a circle buffer around them.
    4. Three or more: the convex hull, or None when the hull collapses
       below three vertices (collinear input).
    """

    def __init__(
        self,
        aggregator: PointAggregator,
        rules: Optional[OverrideRules] = None,
        buffer_radius: float = geometry.DEFAULT_BUFFER_RADIUS,
        buffer_segments: int = geometry.DEFAULT_BUFFER_SEGMENTS,
    ):
        self.aggregator = aggregator
        self.rules = rules if rules is not None else OverrideRules()
        self.buffer_radius = buffer_radius
        self.buffer_segments = buffer_segments

    def resolve(self, org: Organization, points: Optional[Sequence[Point]] = None) -> Optional[Shape]:
        """Shape for ``org``.  Pass ``points`` when the caller already collected them."""
        rule = self.rules.match(org)
        if rule is not None and rule.decorative:
            star = geometry.star_polygon(rule.anchor, rule.radius, rule.star_points)
            return Shape(ShapeKind.DECORATIVE, star)

        if points is None:
            points = self.aggregator.points_for(org)
        if not points:
            return None

        if len(points) < geometry.MIN_POLYGON_VERTICES:
            ring = geometry.circle_buffer(points, self.buffer_radius, self.buffer_segments)
            if not geometry.is_displayable(ring):
                return None
            return Shape(ShapeKind.CIRCLE, ring)

        hull = geometry.convex_hull(points)
        if not geometry.is_displayable(hull):
            return None
        return Shape(ShapeKind.HULL, hull)
