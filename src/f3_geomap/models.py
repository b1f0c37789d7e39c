"""
Data models for f3-geomap — the organization hierarchy and its point data.

The F3 directory is a four-level hierarchy of organizations, with a virtual
root above it:

    Nation          — implicit root, never displayed as a level
    └── Sector
        └── Area
            └── Region
                └── AO      — the smallest unit (a single workout group)

Organizations carry no geometry of their own.  Their footprint on the map is
derived from the *locations* of the *events* (workouts) that count toward
them or any of their descendants.

API records arrive with camelCase keys (``parentId``, ``orgType``,
``locationId``).  The models accept those through aliases and expose
snake_case attributes; fields the models don't know about are ignored.

Geometry types (``Point`` and ``Shape``) are plain frozen dataclasses: they
are created in tight loops by the geometry kernel and never validated.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


# ---------------------------------------------------------------------------
# Level enumeration
# ---------------------------------------------------------------------------

class OrgType(str, Enum):
    """Organization type tag."""
    NATION = "nation"
    SECTOR = "sector"
    AREA = "area"
    REGION = "region"
    AO = "ao"


# Ordered display levels.  ``NATION`` is the implicit root and not a level.
LEVELS: tuple[OrgType, ...] = (OrgType.SECTOR, OrgType.AREA, OrgType.REGION, OrgType.AO)


def level_index(org_type: OrgType) -> Optional[int]:
    """Position of ``org_type`` in ``LEVELS``, or None for the virtual root."""
    try:
        return LEVELS.index(org_type)
    except ValueError:
        return None


class _ApiModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------

class Organization(_ApiModel):
    """A unit of the hierarchy.

    ``parent_id`` is None only for the root.  The parent's type is expected
    to be the level immediately above this one; traversal relies on that but
    nothing enforces it.
    """
    id: int
    parent_id: Optional[int] = Field(default=None, alias="parentId")
    name: str
    org_type: OrgType = Field(alias="orgType")
    email: Optional[str] = None
    website: Optional[str] = None
    twitter: Optional[str] = None
    facebook: Optional[str] = None
    instagram: Optional[str] = None
    meta: Optional[dict] = None
    is_active: bool = Field(default=True, alias="isActive")

    def normalized_name(self) -> str:
        """Name trimmed and lower-cased, for identity rules."""
        return self.name.strip().lower()


class Location(_ApiModel):
    """A named place.  Only usable for geometry when both coordinates are set."""
    id: int
    name: str = ""
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    is_active: bool = Field(default=True, alias="isActive")

    @property
    def point(self) -> Optional[Point]:
        if self.latitude is None or self.longitude is None:
            return None
        return Point(self.latitude, self.longitude)


class EventParent(_ApiModel):
    parent_id: int = Field(alias="parentId")
    parent_name: str = Field(default="", alias="parentName")


class EventRegion(_ApiModel):
    region_id: int = Field(alias="regionId")
    region_name: str = Field(default="", alias="regionName")


class Event(_ApiModel):
    """A recurring workout.

    An event counts toward every organization named in ``parents`` and in
    ``regions``.  An event without a ``location_id`` contributes no point.
    """
    id: int
    location_id: Optional[int] = Field(default=None, alias="locationId")
    is_active: bool = Field(default=True, alias="isActive")
    parents: list[EventParent] = Field(default_factory=list)
    regions: list[EventRegion] = Field(default_factory=list)

    def contributing_org_ids(self) -> list[int]:
        """Organization ids this event counts toward, parents first."""
        ids: list[int] = []
        for org_id in [p.parent_id for p in self.parents] + [r.region_id for r in self.regions]:
            if org_id not in ids:
                ids.append(org_id)
        return ids


@dataclass
class Collections:
    """The three entity collections of a session, in load order."""
    orgs: list[Organization] = field(default_factory=list)
    locations: list[Location] = field(default_factory=list)
    events: list[Event] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Geometry
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Point:
    """A planar (latitude, longitude) pair in degrees."""
    lat: float
    lng: float


@dataclass(frozen=True)
class Bounds:
    """Axis-aligned box: south-west and north-east corners."""
    south: float
    west: float
    north: float
    east: float

    def as_list(self) -> list[list[float]]:
        """``[[south, west], [north, east]]``, the usual map fit-bounds shape."""
        return [[self.south, self.west], [self.north, self.east]]


class ShapeKind(str, Enum):
    HULL = "hull"
    CIRCLE = "circle"
    DECORATIVE = "decorative"


@dataclass(frozen=True)
class Shape:
    """A displayable boundary: an ordered vertex ring plus what produced it."""
    kind: ShapeKind
    vertices: list[Point] = field(default_factory=list)

    def bounds(self) -> Optional[Bounds]:
        from .geometry import bounds
        return bounds(self.vertices)

    def area(self) -> float:
        from .geometry import polygon_area
        return polygon_area(self.vertices)

    def to_latlngs(self) -> list[list[float]]:
        return [[p.lat, p.lng] for p in self.vertices]
