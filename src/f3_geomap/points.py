"""Point aggregation: organization -> deduplicated workout locations."""

from __future__ import annotations

import logging
from typing import Iterable

from .hierarchy import HierarchyIndex
from .models import Event, Location, Organization, Point

logger = logging.getLogger(__name__)


class PointAggregator:
    """Collects the geolocated points of every event under an organization.

    Events are indexed by each organization they count toward (both the
    ``parents`` and ``regions`` associations).  Points are deduplicated by
    location id, first occurrence wins, in descendant order.
    """

    def __init__(
        self,
        hierarchy: HierarchyIndex,
        locations: Iterable[Location],
        events: Iterable[Event],
    ):
        self.hierarchy = hierarchy
        self._locations: dict[int, Location] = {loc.id: loc for loc in locations}
        self._events_by_org: dict[int, list[Event]] = {}
        for event in events:
            for org_id in event.contributing_org_ids():
                self._events_by_org.setdefault(org_id, []).append(event)
        logger.debug(f"Events mapped to {len(self._events_by_org)} orgs")

    @property
    def mapped_org_count(self) -> int:
        return len(self._events_by_org)

    def events_for(self, org_id: int) -> list[Event]:
        """Events that name ``org_id`` directly."""
        return list(self._events_by_org.get(org_id, []))

    def locations_for(self, org: Organization) -> dict[int, Point]:
        """Location id -> point for every usable location under ``org``, first seen first."""
        found: dict[int, Point] = {}
        for descendant_id in self.hierarchy.descendants(org.id):
            for event in self._events_by_org.get(descendant_id, []):
                location_id = event.location_id
                # Zero counts as no location, like a missing id
                if not location_id or location_id in found:
                    continue
                location = self._locations.get(location_id)
                if location is None:
                    continue
                point = location.point
                if point is None:
                    continue
                found[location_id] = point
        return found

    def points_for(self, org: Organization) -> list[Point]:
        """Ordered, location-deduplicated points under ``org``."""
        return list(self.locations_for(org).values())

    def location_ids_for(self, org: Organization) -> list[int]:
        """Location ids behind ``points_for(org)``, in the same order."""
        return list(self.locations_for(org).keys())
