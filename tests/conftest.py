"""
Pytest configuration and fixtures for f3-geomap tests.

The sample directory:

    F3 Nation (1, nation)
    ├── Southeast (10, sector)
    │   ├── Metro (20, area)
    │   │   ├── Charlotte (30, region)   square of four locations + one inside
    │   │   │   ├── Uptown (40, ao)
    │   │   │   └── South End (41, ao)
    │   │   └── Raleigh (31, region)     two locations, (10, 10) and (10, 20)
    │   │       └── Oak City (42, ao)
    │   └── Coast (21, area)
    │       └── Wilmington (32, region)  no events
    └── International (11, sector)
        └── General International Area (22, area)
            └── London (33, region)      one location
                └── Thames (43, ao)
"""

import pytest

from f3_geomap.hierarchy import HierarchyIndex
from f3_geomap.models import Collections, Event, Location, Organization
from f3_geomap.points import PointAggregator
from f3_geomap.session import Session


def _org(id, parent_id, name, org_type, **extra):
    data = {"id": id, "parentId": parent_id, "name": name, "orgType": org_type}
    data.update(extra)
    return data


def _event(id, location_id, parents=(), regions=()):
    return {
        "id": id,
        "locationId": location_id,
        "parents": [{"parentId": p, "parentName": ""} for p in parents],
        "regions": [{"regionId": r, "regionName": ""} for r in regions],
    }


SAMPLE_ORGS = [
    _org(1, None, "F3 Nation", "nation", email="nation@f3nation.com"),
    _org(10, 1, "Southeast", "sector"),
    _org(11, 1, "International", "sector"),
    _org(20, 10, "Metro", "area", twitter="f3metro", website="https://metro.example.com"),
    _org(21, 10, "Coast", "area"),
    _org(22, 11, "General International Area", "area"),
    _org(30, 20, "Charlotte", "region", email="clt@example.com"),
    _org(31, 20, "Raleigh", "region"),
    _org(32, 21, "Wilmington", "region"),
    _org(33, 22, "London", "region"),
    _org(40, 30, "Uptown", "ao"),
    _org(41, 30, "South End", "ao"),
    _org(42, 31, "Oak City", "ao"),
    _org(43, 33, "Thames", "ao"),
]

SAMPLE_LOCATIONS = [
    {"id": 100, "name": "SW corner", "latitude": 35.0, "longitude": -81.0},
    {"id": 101, "name": "SE corner", "latitude": 35.0, "longitude": -80.0},
    {"id": 102, "name": "NE corner", "latitude": 36.0, "longitude": -80.0},
    {"id": 103, "name": "NW corner", "latitude": 36.0, "longitude": -81.0},
    {"id": 104, "name": "Middle", "latitude": 35.5, "longitude": -80.5},
    {"id": 105, "name": "Nowhere", "latitude": None, "longitude": None},
    {"id": 106, "name": "Raleigh west", "latitude": 10.0, "longitude": 10.0},
    {"id": 107, "name": "Raleigh east", "latitude": 10.0, "longitude": 20.0},
    {"id": 108, "name": "Hyde Park", "latitude": 51.5, "longitude": -0.1},
]

SAMPLE_EVENTS = [
    _event(1000, 100, parents=[40], regions=[30]),
    _event(1001, 101, parents=[40]),
    _event(1002, 102, parents=[41], regions=[30]),
    _event(1003, 103, parents=[41]),
    _event(1004, 104, parents=[40]),
    _event(1005, 100, parents=[41]),       # shares a location with 1000
    _event(1006, 105, parents=[40]),       # location without coordinates
    _event(1007, None, parents=[40]),      # no location
    _event(1008, 999, parents=[40]),       # dangling location id
    _event(1009, 106, parents=[42]),
    _event(1010, 107, regions=[31]),
    _event(1011, 108, parents=[43]),
]


@pytest.fixture
def sample_data():
    """Raw API-shaped records."""
    return {
        "orgs": [dict(o) for o in SAMPLE_ORGS],
        "locations": [dict(l) for l in SAMPLE_LOCATIONS],
        "events": [dict(e) for e in SAMPLE_EVENTS],
    }


@pytest.fixture
def collections(sample_data):
    return Collections(
        orgs=[Organization.model_validate(o) for o in sample_data["orgs"]],
        locations=[Location.model_validate(l) for l in sample_data["locations"]],
        events=[Event.model_validate(e) for e in sample_data["events"]],
    )


@pytest.fixture
def hierarchy(collections):
    return HierarchyIndex(collections.orgs)


@pytest.fixture
def aggregator(hierarchy, collections):
    return PointAggregator(hierarchy, collections.locations, collections.events)


@pytest.fixture
def session(collections):
    return Session(collections, color_seed=7)


@pytest.fixture
def org(hierarchy):
    """Look up a sample organization by id."""
    return hierarchy.get
