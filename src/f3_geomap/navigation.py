"""
Navigation state machine for drilling through the hierarchy.

State is a level index into ``LEVELS`` plus the *selected path*: the
organizations the user drilled into, root-most first, excluding the
virtual nation root.  Inputs are plain message objects:

  - ``SelectOrg``    — a displayed shape was clicked
  - ``GoBack``       — the back button
  - ``JumpToCrumb``  — a breadcrumb was clicked (depth -1 is the root crumb)
  - ``SelectLevel``  — a level picker jumped straight to a level

``NavigationMachine.dispatch`` applies one message and returns the new
state.  States are immutable; the machine only swaps its reference.

Detached views
--------------
``SelectLevel`` enters a level with no ancestor, so the path is shorter
than the level index.  Such a view lists every organization of the level
and shows only the root breadcrumb.  Clicking a shape there rebuilds a
short ``[parent, clicked]`` path.

Persisted form
--------------
State round-trips through a query string with one meaningful key:
``org=<id>`` (the deepest selected organization) or ``level=<n>`` (a
detached level).  Restoring ``org`` rebuilds the full ancestor path from
parent links.  Anything unusable restores the default state.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import Optional, Union
from urllib.parse import parse_qs, urlencode

from .hierarchy import HierarchyIndex
from .models import LEVELS, Organization, OrgType, level_index
from .overrides import OverrideRules

logger = logging.getLogger(__name__)

ORG_KEY = "org"
LEVEL_KEY = "level"
ROOT_LABEL = "Nation"
DEEPEST_LEVEL = len(LEVELS) - 1


@dataclass(frozen=True)
class NavigationState:
    level_index: int = 0
    selected_path: tuple[Organization, ...] = field(default_factory=tuple)

    @property
    def level(self) -> OrgType:
        return LEVELS[self.level_index]

    @property
    def ancestor(self) -> Optional[Organization]:
        """The organization whose children are displayed, if any."""
        return self.selected_path[-1] if self.selected_path else None

    @property
    def is_detached(self) -> bool:
        return self.level_index > 0 and not self.selected_path


# ---------------------------------------------------------------------------
# Messages
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class SelectOrg:
    org: Organization


@dataclass(frozen=True)
class GoBack:
    pass


@dataclass(frozen=True)
class JumpToCrumb:
    depth: int


@dataclass(frozen=True)
class SelectLevel:
    level_index: int


Message = Union[SelectOrg, GoBack, JumpToCrumb, SelectLevel]


@dataclass(frozen=True)
class Crumb:
    label: str
    depth: int
    current: bool = False
    org_id: Optional[int] = None


# ---------------------------------------------------------------------------
# Machine
# ---------------------------------------------------------------------------

class NavigationMachine:
    """Owns the current ``NavigationState`` and its transitions."""

    def __init__(
        self,
        hierarchy: HierarchyIndex,
        rules: Optional[OverrideRules] = None,
        view_only_types: frozenset[OrgType] = frozenset(),
        state: Optional[NavigationState] = None,
    ):
        self.hierarchy = hierarchy
        self.rules = rules if rules is not None else OverrideRules()
        self.view_only_types = frozenset(view_only_types)
        self.state = state if state is not None else NavigationState()

    # --- Transitions ---

    def dispatch(self, message: Message) -> NavigationState:
        if isinstance(message, SelectOrg):
            new_state = self._select(message.org)
        elif isinstance(message, GoBack):
            new_state = self._back()
        elif isinstance(message, JumpToCrumb):
            new_state = self._jump_to_crumb(message.depth)
        elif isinstance(message, SelectLevel):
            new_state = self._select_level(message.level_index)
        else:
            raise TypeError(f"Unknown navigation message: {message!r}")

        if new_state != self.state:
            logger.debug(f"Navigation {type(message).__name__}: level {self.state.level_index} -> {new_state.level_index}")
        self.state = new_state
        return new_state

    def can_drill(self, org: Organization) -> bool:
        """Whether selecting ``org`` leads anywhere."""
        org_level = level_index(org.org_type)
        if org_level is None or org_level >= DEEPEST_LEVEL:
            return False
        return org.org_type not in self.view_only_types

    def level_below(self, org: Organization) -> int:
        """Level displayed after drilling into ``org``, honoring skip rules."""
        org_level = level_index(org.org_type)
        if org_level is None:
            return 0
        return min(org_level + self.rules.skip_levels(org), DEEPEST_LEVEL)

    def is_selectable(self, org: Organization) -> bool:
        """Whether ``org`` is on screen in the current state.

        A detached view lists the whole level, so any organization of that
        type qualifies.
        """
        if self.state.is_detached:
            return org.org_type == self.state.level
        return any(visible.id == org.id for visible in self.visible_orgs())

    def _select(self, org: Organization) -> NavigationState:
        if not self.can_drill(org) or not self.is_selectable(org):
            return self.state

        path = self.state.selected_path
        if path:
            new_path = path + (org,)
        else:
            parent = self.hierarchy.get(org.parent_id)
            if parent is not None and parent.org_type != OrgType.NATION:
                new_path = (parent, org)
            else:
                new_path = (org,)
        return NavigationState(self.level_below(org), new_path)

    def _back(self) -> NavigationState:
        path = self.state.selected_path
        if path:
            trimmed = path[:-1]
            if trimmed:
                return NavigationState(self.level_below(trimmed[-1]), trimmed)
            return NavigationState(0, ())
        return replace(self.state, level_index=max(0, self.state.level_index - 1))

    def _jump_to_crumb(self, depth: int) -> NavigationState:
        if depth < 0:
            return NavigationState()
        path = self.state.selected_path
        if depth >= len(path):
            return self.state
        truncated = path[:depth + 1]
        return NavigationState(self.level_below(truncated[-1]), truncated)

    def _select_level(self, index: int) -> NavigationState:
        if not 0 <= index <= DEEPEST_LEVEL:
            return self.state
        return NavigationState(index, ())

    # --- Queries ---

    def visible_orgs(self, state: Optional[NavigationState] = None) -> list[Organization]:
        """Organizations displayed for ``state`` (default: current), in load order."""
        state = state or self.state
        level = state.level
        candidates = self.hierarchy.orgs_of_type(level)

        if state.level_index == 0:
            return [org for org in candidates if not self.rules.is_hidden_at_root(org)]

        ancestor = state.ancestor
        if ancestor is None:
            return candidates

        if self.rules.aggregates_descendants(ancestor):
            below = set(self.hierarchy.descendants(ancestor.id))
            return [org for org in candidates if org.id in below]

        return [org for org in candidates if org.parent_id == ancestor.id]

    def breadcrumbs(self, state: Optional[NavigationState] = None) -> list[Crumb]:
        """Root crumb plus one per selected organization; the last is current."""
        path = (state or self.state).selected_path
        crumbs = [Crumb(ROOT_LABEL, -1)]
        for depth, org in enumerate(path):
            crumbs.append(Crumb(org.name, depth, current=depth == len(path) - 1, org_id=org.id))
        return crumbs

    # --- Persistence ---

    def to_query(self, state: Optional[NavigationState] = None) -> str:
        state = state or self.state
        if state.selected_path:
            return urlencode({ORG_KEY: state.selected_path[-1].id})
        if state.level_index > 0:
            return urlencode({LEVEL_KEY: state.level_index})
        return ""

    def from_query(self, query: Optional[str]) -> NavigationState:
        """Rebuild a state from ``to_query`` output.  Never raises."""
        if not isinstance(query, str):
            if query is not None:
                logger.debug(f"Ignoring non-string query: {query!r}")
            return NavigationState()
        params = parse_qs(query.lstrip("?"))

        if ORG_KEY in params:
            return self._restore_org(params[ORG_KEY][0])

        if LEVEL_KEY in params:
            index = _parse_int(params[LEVEL_KEY][0])
            if index is not None and 0 <= index <= DEEPEST_LEVEL:
                return NavigationState(index, ())
            logger.debug(f"Ignoring unusable level parameter: {params[LEVEL_KEY][0]!r}")

        return NavigationState()

    def _restore_org(self, raw: str) -> NavigationState:
        org_id = _parse_int(raw)
        org = self.hierarchy.get(org_id)
        if org is None or not self.can_drill(org):
            logger.debug(f"Ignoring unusable org parameter: {raw!r}")
            return NavigationState()

        chain = tuple(
            ancestor for ancestor in self.hierarchy.ancestors(org.id)
            if ancestor.org_type != OrgType.NATION
        )
        return NavigationState(self.level_below(org), chain)

    def restore(self, query: Optional[str]) -> NavigationState:
        """Replace the current state with the one encoded in ``query``."""
        self.state = self.from_query(query)
        return self.state


def _parse_int(raw: str) -> Optional[int]:
    try:
        return int(raw.strip())
    except (AttributeError, ValueError):
        return None


def message_from_dict(hierarchy: HierarchyIndex, data: dict) -> Message:
    """Build a message from a JSON-style action.

    Actions: ``select`` (``orgId``), ``back``, ``crumb`` (``depth``),
    ``level`` (``levelIndex``).  Raises ValueError for anything else.
    """
    action = data.get("action")
    if action == "back":
        return GoBack()

    fields = {"select": "orgId", "crumb": "depth", "level": "levelIndex"}
    if action not in fields:
        raise ValueError(f"Unknown action: {action!r}")
    try:
        value = int(data[fields[action]])
    except (KeyError, TypeError, ValueError) as e:
        raise ValueError(f"Malformed '{action}' action: {e}") from e

    if action == "crumb":
        return JumpToCrumb(value)
    elif action == "level":
        return SelectLevel(value)

    org = hierarchy.get(value)
    if org is None:
        raise ValueError(f"Unknown organization: {value}")
    return SelectOrg(org)
