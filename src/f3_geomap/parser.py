"""Record parsing and offline snapshots for f3-geomap.

API payloads and snapshot files share one shape: three lists of records
(``orgs``, ``locations``, ``events``) using the API's camelCase keys.
Snapshots are YAML (JSON is valid YAML, so exported API responses load
as-is):

    orgs:
      - id: 1
        name: F3 Nation
        orgType: nation
      - id: 10
        parentId: 1
        name: Southeast
        orgType: sector
    locations:
      - id: 100
        name: Park
        latitude: 35.2
        longitude: -80.8
    events:
      - id: 1000
        locationId: 100
        parents: [{parentId: 10, parentName: Southeast}]
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable, TypeVar

import yaml
from pydantic import BaseModel, ValidationError

from .models import Collections, Event, Location, Organization

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)


def parse_records(model: type[M], items: Iterable[dict]) -> list[M]:
    """Validate each record; records that don't fit the model are dropped."""
    records: list[M] = []
    dropped = 0
    for item in items:
        try:
            records.append(model.model_validate(item))
        except ValidationError as e:
            dropped += 1
            logger.debug(f"Dropping {model.__name__} record: {e}")
    if dropped:
        logger.warning(f"Dropped {dropped} invalid {model.__name__} record(s)")
    return records


def collections_from_data(data: dict) -> Collections:
    return Collections(
        orgs=parse_records(Organization, data.get("orgs", [])),
        locations=parse_records(Location, data.get("locations", [])),
        events=parse_records(Event, data.get("events", [])),
    )


def parse_yaml(yaml_str: str) -> Collections:
    """Parse a YAML (or JSON) snapshot string."""
    data = yaml.safe_load(yaml_str)
    if not data:
        raise ValueError("Empty snapshot input")
    if not isinstance(data, dict):
        raise ValueError("Snapshot must be a mapping of orgs/locations/events")
    return collections_from_data(data)


def parse_file(path: str) -> Collections:
    """Parse a snapshot file."""
    content = Path(path).read_text()
    return parse_yaml(content)


def collections_to_yaml(collections: Collections) -> str:
    """Serialize collections back to a snapshot using API field names."""
    def dump(records: Iterable[BaseModel]) -> list[dict]:
        return [
            r.model_dump(mode="json", by_alias=True, exclude_none=True)
            for r in records
        ]

    data = {
        "orgs": dump(collections.orgs),
        "locations": dump(collections.locations),
        "events": dump(collections.events),
    }
    return yaml.dump(data, default_flow_style=False, sort_keys=False)
