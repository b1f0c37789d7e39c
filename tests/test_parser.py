"""
Tests for record parsing and snapshots
"""
import json

import pytest
import yaml

from f3_geomap.models import Event, Organization
from f3_geomap.parser import (
    collections_to_yaml,
    parse_file,
    parse_records,
    parse_yaml,
)


class TestParseRecords:

    def test_invalid_records_dropped(self):
        orgs = parse_records(Organization, [
            {"id": 1, "name": "Ok", "orgType": "sector"},
            {"id": 2, "orgType": "sector"},                 # no name
            {"id": 3, "name": "Bad", "orgType": "planet"},  # unknown type
        ])
        assert [o.id for o in orgs] == [1]

    def test_unknown_fields_ignored(self):
        [org] = parse_records(Organization, [
            {"id": 1, "name": "Ok", "orgType": "region", "parentId": 5, "created": "2020-01-01"},
        ])
        assert org.parent_id == 5

    def test_event_associations(self):
        [event] = parse_records(Event, [{
            "id": 7,
            "locationId": None,
            "parents": [{"parentId": 40, "parentName": "Uptown"}],
            "regions": [{"regionId": 30, "regionName": "Charlotte"}, {"regionId": 40}],
        }])
        assert event.location_id is None
        assert event.contributing_org_ids() == [40, 30]


class TestSnapshots:

    def test_parse_yaml(self, sample_data):
        collections = parse_yaml(yaml.safe_dump(sample_data))
        assert len(collections.orgs) == 14
        assert len(collections.locations) == 9
        assert len(collections.events) == 12
        assert collections.locations[5].point is None

    def test_json_is_accepted(self, sample_data):
        collections = parse_yaml(json.dumps(sample_data))
        assert collections.orgs[3].twitter == "f3metro"

    def test_missing_sections_are_empty(self):
        collections = parse_yaml("orgs:\n  - {id: 1, name: Nation, orgType: nation}\n")
        assert len(collections.orgs) == 1
        assert collections.locations == []
        assert collections.events == []

    def test_empty_input(self):
        with pytest.raises(ValueError):
            parse_yaml("")

    def test_non_mapping_input(self):
        with pytest.raises(ValueError):
            parse_yaml("- 1\n- 2\n")

    def test_round_trip(self, collections, tmp_path):
        path = tmp_path / "snapshot.yaml"
        path.write_text(collections_to_yaml(collections))

        loaded = parse_file(str(path))

        assert [o.model_dump() for o in loaded.orgs] == [o.model_dump() for o in collections.orgs]
        assert [e.model_dump() for e in loaded.events] == [e.model_dump() for e in collections.events]

    def test_snapshot_uses_api_keys(self, collections):
        data = yaml.safe_load(collections_to_yaml(collections))
        assert data["orgs"][1]["parentId"] == 1
        assert data["orgs"][1]["orgType"] == "sector"
        assert "latitude" not in data["locations"][5]
