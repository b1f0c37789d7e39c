"""
Umbrella organization rules.

Some organizations are groupings rather than places: the "International"
sector collects regions from all over the world, so a hull around its
workouts would cover most of the globe.  These *umbrella* units are matched
by ``(org_type, normalized name)`` against a closed list of rules and get a
fixed decorative shape instead of data-derived geometry.

A rule can also change navigation:

  - ``hidden_at_root``         — left out of the sector level listing
  - ``aggregate_descendants``  — as an ancestor, shows every organization of
                                 the next level found anywhere below it
  - ``skip_levels``            — how many levels a drill-down advances

Rules can be loaded from YAML::

    rules:
      - org_type: sector
        name: international
        hidden_at_root: true
        aggregate_descendants: true
        skip_levels: 2
      - org_type: area
        name: general international area
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Optional

import yaml

from .models import Organization, OrgType, Point


# Off-continent holding area in the mid Atlantic
DEFAULT_ANCHOR = Point(lat=30.0, lng=-45.0)
DEFAULT_STAR_RADIUS = 3.0


@dataclass(frozen=True)
class UmbrellaRule:
    org_type: OrgType
    name: str
    decorative: bool = True
    hidden_at_root: bool = False
    aggregate_descendants: bool = False
    skip_levels: int = 1
    anchor: Point = DEFAULT_ANCHOR
    radius: float = DEFAULT_STAR_RADIUS
    star_points: int = 5

    def matches(self, org: Organization) -> bool:
        return org.org_type == self.org_type and org.normalized_name() == self.name


DEFAULT_RULES: tuple[UmbrellaRule, ...] = (
    UmbrellaRule(
        org_type=OrgType.SECTOR,
        name="international",
        aggregate_descendants=True,
        skip_levels=2,
    ),
    UmbrellaRule(org_type=OrgType.AREA, name="general international area"),
)


class OverrideRules:
    """Ordered rule list; the first matching rule wins."""

    def __init__(self, rules: Iterable[UmbrellaRule] = DEFAULT_RULES):
        self.rules: tuple[UmbrellaRule, ...] = tuple(rules)

    def match(self, org: Organization) -> Optional[UmbrellaRule]:
        for rule in self.rules:
            if rule.matches(org):
                return rule
        return None

    def is_decorative(self, org: Organization) -> bool:
        rule = self.match(org)
        return rule is not None and rule.decorative

    def is_hidden_at_root(self, org: Organization) -> bool:
        rule = self.match(org)
        return rule is not None and rule.hidden_at_root

    def aggregates_descendants(self, org: Organization) -> bool:
        rule = self.match(org)
        return rule is not None and rule.aggregate_descendants

    def skip_levels(self, org: Organization) -> int:
        rule = self.match(org)
        return rule.skip_levels if rule is not None else 1


def _parse_rule(data: dict) -> UmbrellaRule:
    anchor = DEFAULT_ANCHOR
    if "anchor" in data:
        anchor = Point(lat=float(data["anchor"]["lat"]), lng=float(data["anchor"]["lng"]))

    skip = int(data.get("skip_levels", 1))
    if skip < 1:
        raise ValueError(f"skip_levels must be at least 1, got {skip}")

    return UmbrellaRule(
        org_type=OrgType(data["org_type"]),
        name=str(data["name"]).strip().lower(),
        decorative=bool(data.get("decorative", True)),
        hidden_at_root=bool(data.get("hidden_at_root", False)),
        aggregate_descendants=bool(data.get("aggregate_descendants", False)),
        skip_levels=skip,
        anchor=anchor,
        radius=float(data.get("radius", DEFAULT_STAR_RADIUS)),
        star_points=int(data.get("star_points", 5)),
    )


def parse_rules_yaml(yaml_str: str) -> OverrideRules:
    """Parse a YAML rule list.  Raises ValueError on empty input."""
    data = yaml.safe_load(yaml_str)
    if not data:
        raise ValueError("Empty override rules")
    entries = data.get("rules", []) if isinstance(data, dict) else data
    return OverrideRules(_parse_rule(entry) for entry in entries)


def load_rules(path: Optional[str]) -> OverrideRules:
    """Rules from ``path``, or the built-in defaults when no path is given."""
    if not path:
        return OverrideRules()
    return parse_rules_yaml(Path(path).read_text())
