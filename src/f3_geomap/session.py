"""
Session context — everything derived from one load of the collections.

A ``Session`` owns the hierarchy index, point aggregator, boundary
resolver, navigation machine and the color memo.  All memoized state lives
here, and ``reset()`` clears it together.  Loading new collections means
building a new ``Session``.

``level_view`` assembles what a renderer needs for a navigation state:
the visible organizations with their boundary, style hint and summary,
the breadcrumbs, and a fit-to-bounds hint.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Optional

from . import geometry
from .boundary import BoundaryResolver
from .client import F3ApiClient
from .config import Settings
from .hierarchy import HierarchyIndex
from .models import Bounds, Collections, Organization, OrgType, Point, Shape
from .navigation import Crumb, GoBack, Message, NavigationMachine, NavigationState, SelectOrg
from .overrides import OverrideRules, load_rules
from .parser import parse_file
from .points import PointAggregator
from .themes import ColorRegistry, ShapeStyle

logger = logging.getLogger(__name__)

NATION_ORG_ID = 1

SOCIAL_URLS = {
    "twitter": "https://twitter.com/{}",
    "facebook": "https://facebook.com/{}",
    "instagram": "https://instagram.com/{}",
}


def org_summary(org: Organization, location_count: int) -> dict:
    """Info-panel data for an organization (formatting is the caller's)."""
    links: dict[str, str] = {}
    if org.website:
        links["website"] = org.website
    for key, template in SOCIAL_URLS.items():
        handle = getattr(org, key)
        if handle:
            links[key] = template.format(handle)

    return {
        "id": org.id,
        "name": org.name,
        "type": org.org_type.value,
        "email": org.email,
        "links": links,
        "activeLocations": location_count,
    }


@dataclass
class OrgView:
    org: Organization
    shape: Optional[Shape]
    style: ShapeStyle
    drillable: bool
    summary: dict

    def to_dict(self) -> dict:
        return {
            "id": self.org.id,
            "name": self.org.name,
            "type": self.org.org_type.value,
            "shape": None if self.shape is None else {
                "kind": self.shape.kind.value,
                "latlngs": self.shape.to_latlngs(),
            },
            "style": self.style.to_dict(),
            "drillable": self.drillable,
            "summary": self.summary,
        }


@dataclass
class LevelView:
    state: NavigationState
    query: str
    items: list[OrgView] = field(default_factory=list)
    breadcrumbs: list[Crumb] = field(default_factory=list)
    fit_bounds: Optional[Bounds] = None
    placeholder: Optional[str] = None

    @property
    def drawn(self) -> list[OrgView]:
        return [item for item in self.items if item.shape is not None]

    def to_dict(self) -> dict:
        return {
            "query": self.query,
            "level": self.state.level.value,
            "levelIndex": self.state.level_index,
            "path": [org.id for org in self.state.selected_path],
            "breadcrumbs": [
                {"label": c.label, "depth": c.depth, "current": c.current, "orgId": c.org_id}
                for c in self.breadcrumbs
            ],
            "fitBounds": self.fit_bounds.as_list() if self.fit_bounds else None,
            "placeholder": self.placeholder,
            "orgs": [item.to_dict() for item in self.items],
        }


class Session:
    """Indexes and memos for one loaded set of collections."""

    def __init__(
        self,
        collections: Collections,
        rules: Optional[OverrideRules] = None,
        view_only_types: frozenset[OrgType] = frozenset(),
        color_seed: Optional[int] = None,
    ):
        self.collections = collections
        self.rules = rules if rules is not None else OverrideRules()
        self.hierarchy = HierarchyIndex(collections.orgs)
        self.points = PointAggregator(self.hierarchy, collections.locations, collections.events)
        self.resolver = BoundaryResolver(self.points, self.rules)
        self.navigation = NavigationMachine(self.hierarchy, self.rules, view_only_types)
        self.colors = ColorRegistry(color_seed)
        self._shapes: dict[int, Optional[Shape]] = {}
        self._located: dict[int, dict[int, Point]] = {}

    @classmethod
    def from_collections(cls, collections: Collections, **kwargs) -> "Session":
        session = cls(collections, **kwargs)
        session.log_summary()
        return session

    def reset(self) -> None:
        """Drop every memo (descendants, locations, shapes, colors)."""
        self.hierarchy.reset()
        self.colors.reset()
        self._shapes.clear()
        self._located.clear()

    def log_summary(self) -> None:
        sectors = self.hierarchy.orgs_of_type(OrgType.SECTOR)
        logger.info(f"Found {len(sectors)} sectors; events mapped to {self.points.mapped_org_count} orgs")
        for sector in sectors:
            logger.info(f"Sector \"{sector.name}\" ({sector.id}): {len(self._locations(sector))} points")

    # --- Boundaries ---

    def _locations(self, org: Organization) -> dict[int, Point]:
        # One walk per org serves both its shape and its location count
        located = self._located.get(org.id)
        if located is None:
            located = self._located[org.id] = self.points.locations_for(org)
        return located

    def shape_for(self, org: Organization) -> Optional[Shape]:
        if org.id not in self._shapes:
            self._shapes[org.id] = self.resolver.resolve(org, list(self._locations(org).values()))
        return self._shapes[org.id]

    def summary_for(self, org: Organization) -> dict:
        return org_summary(org, len(self._locations(org)))

    def nation_summary(self) -> Optional[dict]:
        """Summary of the virtual root, when the data includes it."""
        nation = self.hierarchy.get(NATION_ORG_ID)
        if nation is None:
            roots = self.hierarchy.orgs_of_type(OrgType.NATION)
            nation = roots[0] if roots else None
        if nation is None:
            return None
        return self.summary_for(nation)

    # --- Views ---

    def level_view(self, state: Optional[NavigationState] = None, focus: Optional[Organization] = None) -> LevelView:
        """Everything needed to draw ``state`` (default: the current state).

        The fit hint is ``focus``'s boundary when given and drawable,
        otherwise the union of all drawn boundaries.
        """
        state = state or self.navigation.state
        nav = self.navigation
        items: list[OrgView] = []
        for org in nav.visible_orgs(state):
            items.append(OrgView(
                org=org,
                shape=self.shape_for(org),
                style=self.colors.style_for(org.id),
                drillable=nav.can_drill(org),
                summary=self.summary_for(org),
            ))

        fit: Optional[Bounds] = None
        if focus is not None:
            focus_shape = self.shape_for(focus)
            if focus_shape is not None:
                fit = focus_shape.bounds()
        if fit is None:
            fit = geometry.merge_bounds([item.shape.bounds() for item in items if item.shape is not None])

        crumbs = nav.breadcrumbs(state)
        placeholder = None if items else f"No {state.level.value}s available."

        return LevelView(
            state=state,
            query=nav.to_query(state),
            items=items,
            breadcrumbs=crumbs,
            fit_bounds=fit,
            placeholder=placeholder,
        )

    def navigate(self, query: Optional[str], message: Message) -> LevelView:
        """Apply ``message`` to the state encoded in ``query``.

        Stateless: the session's own machine is left untouched, so one
        session can serve many clients that each carry their state in a
        query string.
        """
        machine = NavigationMachine(
            self.hierarchy,
            self.rules,
            self.navigation.view_only_types,
            state=self.navigation.from_query(query),
        )
        before = machine.state
        after = machine.dispatch(message)

        focus = None
        if after != before:
            if isinstance(message, SelectOrg):
                focus = message.org
            elif isinstance(message, GoBack):
                focus = after.ancestor
        return self.level_view(after, focus=focus)


async def load_collections(settings: Settings) -> Collections:
    """Collections from the configured snapshot file, else from the API."""
    if settings.snapshot_path:
        logger.info(f"Loading snapshot {settings.snapshot_path}")
        return parse_file(settings.snapshot_path)
    async with F3ApiClient.from_settings(settings) as client:
        return await client.load_collections()


async def load_session(settings: Settings, color_seed: Optional[int] = None) -> Session:
    collections = await load_collections(settings)
    return Session.from_collections(
        collections,
        rules=load_rules(settings.overrides_path),
        view_only_types=settings.view_only_types,
        color_seed=color_seed,
    )
