"""
Tests for the navigation state machine and its query-string form
"""
import pytest

from f3_geomap.models import OrgType
from f3_geomap.overrides import parse_rules_yaml
from f3_geomap.navigation import (
    GoBack,
    JumpToCrumb,
    NavigationMachine,
    NavigationState,
    SelectLevel,
    SelectOrg,
    message_from_dict,
)


def _ids(orgs):
    return [o.id for o in orgs]


@pytest.fixture
def machine(hierarchy):
    return NavigationMachine(hierarchy)


def _at(machine, query):
    machine.restore(query)
    return machine


class TestTransitions:
    """Drill down, back, breadcrumbs and level jumps"""

    def test_initial_state(self, machine):
        assert machine.state == NavigationState()
        assert machine.state.level == OrgType.SECTOR
        assert _ids(machine.visible_orgs()) == [10, 11]

    def test_drill_down(self, machine, org):
        state = machine.dispatch(SelectOrg(org(10)))
        assert state.level_index == 1
        assert _ids(state.selected_path) == [10]
        assert _ids(machine.visible_orgs()) == [20, 21]

        state = machine.dispatch(SelectOrg(org(20)))
        assert state.level_index == 2
        assert _ids(state.selected_path) == [10, 20]
        assert _ids(machine.visible_orgs()) == [30, 31]

        state = machine.dispatch(SelectOrg(org(30)))
        assert state.level == OrgType.AO
        assert _ids(machine.visible_orgs()) == [40, 41]

    def test_ao_cannot_drill(self, machine, org):
        _at(machine, "org=30")
        before = machine.state
        assert machine.dispatch(SelectOrg(org(40))) == before

    def test_nation_cannot_drill(self, machine, org):
        assert machine.dispatch(SelectOrg(org(1))) == NavigationState()

    def test_back(self, machine):
        _at(machine, "org=20")
        state = machine.dispatch(GoBack())
        assert state.level_index == 1
        assert _ids(state.selected_path) == [10]

        state = machine.dispatch(GoBack())
        assert state == NavigationState()

        assert machine.dispatch(GoBack()) == NavigationState()

    def test_umbrella_skips_a_level(self, machine, org):
        state = machine.dispatch(SelectOrg(org(11)))
        assert state.level_index == 2
        assert _ids(state.selected_path) == [11]
        # Regions anywhere below the umbrella, not just direct children
        assert _ids(machine.visible_orgs()) == [33]

        assert machine.dispatch(GoBack()) == NavigationState()

    def test_select_level_is_detached(self, machine):
        state = machine.dispatch(SelectLevel(2))
        assert state.is_detached
        assert state.selected_path == ()
        assert _ids(machine.visible_orgs()) == [30, 31, 32, 33]
        assert [c.label for c in machine.breadcrumbs()] == ["Nation"]

    def test_select_from_detached_view(self, machine, org):
        machine.dispatch(SelectLevel(2))
        state = machine.dispatch(SelectOrg(org(30)))
        assert state.level_index == 3
        assert _ids(state.selected_path) == [20, 30]

    def test_select_from_detached_sector_level(self, machine, org):
        machine.dispatch(SelectLevel(1))
        state = machine.dispatch(SelectOrg(org(21)))
        # The sector parent is prepended; a nation parent never is
        assert _ids(state.selected_path) == [10, 21]

        machine.dispatch(SelectLevel(0))
        assert _ids(machine.dispatch(SelectOrg(org(10))).selected_path) == [10]

    def test_back_from_detached(self, machine):
        machine.dispatch(SelectLevel(2))
        state = machine.dispatch(GoBack())
        assert state.level_index == 1
        assert state.selected_path == ()

    def test_select_level_out_of_range(self, machine):
        machine.dispatch(SelectLevel(2))
        assert machine.dispatch(SelectLevel(4)).level_index == 2
        assert machine.dispatch(SelectLevel(-1)).level_index == 2

    def test_jump_to_crumb(self, machine):
        _at(machine, "org=30")
        state = machine.dispatch(JumpToCrumb(0))
        assert _ids(state.selected_path) == [10]
        assert state.level_index == 1

        assert machine.dispatch(JumpToCrumb(5)) == state
        assert machine.dispatch(JumpToCrumb(-1)) == NavigationState()

    def test_breadcrumbs(self, machine):
        _at(machine, "org=20")
        crumbs = machine.breadcrumbs()
        assert [(c.label, c.depth, c.current) for c in crumbs] == [
            ("Nation", -1, False),
            ("Southeast", 0, False),
            ("Metro", 1, True),
        ]
        assert crumbs[2].org_id == 20

    def test_view_only_types(self, hierarchy, org):
        machine = NavigationMachine(hierarchy, view_only_types={OrgType.AREA})
        machine.dispatch(SelectOrg(org(10)))
        before = machine.state
        assert not machine.can_drill(org(20))
        assert machine.dispatch(SelectOrg(org(20))) == before

    def test_select_ignores_orgs_not_on_screen(self, machine, org):
        """Only a displayed organization can be selected"""
        assert machine.dispatch(SelectOrg(org(20))) == NavigationState()

        machine.dispatch(SelectOrg(org(10)))
        state = machine.dispatch(SelectOrg(org(20)))
        assert machine.dispatch(SelectOrg(org(10))) == state
        assert machine.dispatch(SelectOrg(org(21))) == state
        assert machine.dispatch(SelectOrg(org(32))) == state
        assert _ids(state.selected_path) == [10, 20]
        assert machine.from_query(machine.to_query()) == state

    def test_detached_select_requires_level_type(self, machine, org):
        state = machine.dispatch(SelectLevel(2))
        assert machine.dispatch(SelectOrg(org(20))) == state
        assert machine.dispatch(SelectOrg(org(10))) == state

    def test_hidden_umbrella_cannot_be_selected_at_root(self, hierarchy, org):
        rules = parse_rules_yaml(
            "- {org_type: sector, name: international, hidden_at_root: true, "
            "aggregate_descendants: true, skip_levels: 2}"
        )
        machine = NavigationMachine(hierarchy, rules)
        assert _ids(machine.visible_orgs()) == [10]
        assert machine.dispatch(SelectOrg(org(11))) == NavigationState()
        # Still reachable through a restored query string
        assert _ids(machine.from_query("org=11").selected_path) == [11]

    def test_unknown_message(self, machine):
        with pytest.raises(TypeError):
            machine.dispatch("back")


class TestQueryString:
    """Persisted form"""

    def test_default_state_is_empty(self, machine):
        assert machine.to_query() == ""
        assert machine.from_query("") == NavigationState()
        assert machine.from_query(None) == NavigationState()

    def test_org_round_trip(self, machine, org):
        machine.dispatch(SelectOrg(org(10)))
        machine.dispatch(SelectOrg(org(20)))
        machine.dispatch(SelectOrg(org(30)))
        query = machine.to_query()
        assert query == "org=30"

        restored = machine.from_query(query)
        assert restored == machine.state
        assert _ids(restored.selected_path) == [10, 20, 30]

    def test_level_round_trip(self, machine):
        machine.dispatch(SelectLevel(3))
        assert machine.to_query() == "level=3"
        assert machine.from_query("?level=3") == machine.state

    def test_restore_umbrella(self, machine):
        state = machine.from_query("org=11")
        assert state.level_index == 2
        assert _ids(state.selected_path) == [11]

    def test_org_takes_priority(self, machine):
        state = machine.from_query("level=1&org=20")
        assert _ids(state.selected_path) == [10, 20]

    @pytest.mark.parametrize("query", [
        "org=abc",
        "org=999",
        "org=40",       # AOs have nothing below them
        "org=1",        # the nation is not a level
        "level=9",
        "level=-1",
        "level=",
        "junk",
        "&&=",
        5,
        ["org=10"],
        {"org": 10},
    ])
    def test_unusable_queries_restore_default(self, machine, query):
        assert machine.from_query(query) == NavigationState()

    def test_restore_replaces_state(self, machine):
        machine.restore("org=10")
        assert machine.state.level_index == 1
        machine.restore("bogus")
        assert machine.state == NavigationState()


class TestMessageFromDict:

    def test_actions(self, hierarchy):
        assert message_from_dict(hierarchy, {"action": "back"}) == GoBack()
        assert message_from_dict(hierarchy, {"action": "crumb", "depth": -1}) == JumpToCrumb(-1)
        assert message_from_dict(hierarchy, {"action": "level", "levelIndex": "2"}) == SelectLevel(2)
        assert message_from_dict(hierarchy, {"action": "select", "orgId": 30}).org.name == "Charlotte"

    @pytest.mark.parametrize("data", [
        {},
        {"action": "fly"},
        {"action": "select"},
        {"action": "select", "orgId": "x"},
        {"action": "select", "orgId": 999},
        {"action": "crumb", "depth": None},
    ])
    def test_invalid(self, hierarchy, data):
        with pytest.raises(ValueError):
            message_from_dict(hierarchy, data)
