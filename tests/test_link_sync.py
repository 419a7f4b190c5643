"""
Unit tests for linked-group synchronization.

Tests the membership index, field propagation across groups, idempotence,
independence of non-synchronized fields and of deletion.
"""

import pytest

from cockpit.core.config.models import CockpitConfig
from cockpit.core.links.index import LinkIndex
from cockpit.core.links.sync import ELEMENT_SYNC_FIELDS, SYNC_FIELDS
from cockpit.core.tree.errors import InvalidStateError
from cockpit.core.tree.models import EntityKind, TileStatus
from cockpit.core.tree.store import TreeStore

ELEMENT = EntityKind.ELEMENT
SUB_ELEMENT = EntityKind.SUB_ELEMENT


@pytest.fixture
def linked_record(sample_record):
    """
    Sample record with linked groups.

    grp-pump: el-p1 (Domain A/Pumps), el-p1b (Domain B/Spare), el-p1c (Domain A/Valves)
    grp-sensor: se-s1 (under Pump 2), se-s1b (under el-p1b)
    """
    domain_a, domain_b = sample_record["domains"]
    domain_a["categories"][0]["elements"][0]["linkedGroupId"] = "grp-pump"
    domain_a["categories"][0]["elements"][1]["subCategories"][0]["subElements"][0][
        "linkedGroupId"
    ] = "grp-sensor"
    domain_a["categories"][1]["elements"] = [
        {"id": "el-p1c", "name": "Pump 1", "status": "ok", "linkedGroupId": "grp-pump"}
    ]
    spare_pump = domain_b["categories"][0]["elements"][0]
    spare_pump["status"] = "ok"
    spare_pump["linkedGroupId"] = "grp-pump"
    spare_pump["subCategories"] = [
        {
            "id": "sc-temp-b",
            "name": "Temp",
            "subElements": [
                {
                    "id": "se-s1b",
                    "name": "Sensor1",
                    "status": "mineur",
                    "linkedGroupId": "grp-sensor",
                }
            ],
        }
    ]
    return sample_record


@pytest.fixture
def linked_store(linked_record, id_factory) -> TreeStore:
    return TreeStore.from_record(linked_record, id_factory=id_factory)


# ==============================================================================
# LinkIndex
# ==============================================================================


class TestLinkIndex:
    """Test the membership index."""

    def test_built_from_tree(self, linked_store):
        """Test loading indexes every linked entity."""
        assert linked_store.links.members(ELEMENT, "grp-pump") == {"el-p1", "el-p1b", "el-p1c"}
        assert linked_store.links.members(SUB_ELEMENT, "grp-sensor") == {"se-s1", "se-s1b"}

    def test_peers_exclude_self(self, linked_store):
        """Test peers of a member."""
        assert linked_store.links.peers(ELEMENT, "grp-pump", "el-p1") == {"el-p1b", "el-p1c"}

    def test_no_group_has_no_members(self):
        """Test None and unknown groups are empty."""
        index = LinkIndex()
        assert index.members(ELEMENT, None) == frozenset()
        assert index.members(ELEMENT, "grp-missing") == frozenset()
        assert index.group_size(ELEMENT, "grp-missing") == 0

    def test_kinds_are_separate(self):
        """Test elements and sub-elements never share a group."""
        index = LinkIndex()
        index.add(ELEMENT, "grp-1", "a")
        index.add(SUB_ELEMENT, "grp-1", "b")

        assert index.members(ELEMENT, "grp-1") == {"a"}
        assert index.members(SUB_ELEMENT, "grp-1") == {"b"}

    def test_discard_drops_empty_group(self):
        """Test the last member leaving removes the group."""
        index = LinkIndex()
        index.add(ELEMENT, "grp-1", "a")

        index.discard(ELEMENT, "grp-1", "a")

        assert "grp-1" not in index
        assert list(index.groups(ELEMENT)) == []

    def test_groups_sorted(self):
        """Test groups are listed by id."""
        index = LinkIndex()
        index.add(ELEMENT, "grp-b", "x")
        index.add(ELEMENT, "grp-a", "y")
        assert [gid for gid, _ in index.groups(ELEMENT)] == ["grp-a", "grp-b"]

    def test_copy_is_independent(self):
        """Test snapshots do not share member sets."""
        index = LinkIndex()
        index.add(ELEMENT, "grp-1", "a")

        clone = index.copy()
        clone.add(ELEMENT, "grp-1", "b")

        assert index.members(ELEMENT, "grp-1") == {"a"}


# ==============================================================================
# Propagation
# ==============================================================================


class TestPropagation:
    """Test synchronized field propagation."""

    def test_status_reaches_every_member(self, linked_store):
        """Test an update on one member shows on the others."""
        linked_store.update_element("el-p1", {"status": "critique"})

        for element_id in ("el-p1", "el-p1b", "el-p1c"):
            assert linked_store.get_element(element_id).status == TileStatus.CRITIQUE

    @pytest.mark.parametrize(
        "field,value", [("icon", "pump.svg"), ("value", "12"), ("unit", "bar")]
    )
    def test_synchronized_fields(self, linked_store, field, value):
        """Test each synchronized field propagates."""
        linked_store.update_element("el-p1c", {field: value})

        assert getattr(linked_store.get_element("el-p1"), field) == value
        assert getattr(linked_store.get_element("el-p1b"), field) == value

    def test_reapplying_update_is_noop(self, linked_store):
        """Test propagation skips peers that already hold the value."""
        linked_store.update_element("el-p1", {"status": "fatal"})
        source = linked_store.get_element("el-p1")

        written = linked_store.synchronizer.propagate(ELEMENT, source, {"status": TileStatus.FATAL})

        assert written == []
        assert linked_store.links.group_size(ELEMENT, "grp-pump") == 3

    def test_propagate_reports_written_peers(self, linked_store):
        """Test the ids of updated peers are returned."""
        source = linked_store.get_element("el-p1")
        source.value = "7"

        written = linked_store.synchronizer.propagate(ELEMENT, source, {"value": "7"})

        assert written == ["el-p1b", "el-p1c"]

    def test_unlinked_element_propagates_nothing(self, sample_store):
        """Test elements outside any group only change themselves."""
        sample_store.update_element("el-p1", {"status": "fatal"})
        assert sample_store.get_element("el-p1b").status == TileStatus.CRITIQUE

    def test_position_not_synchronized(self, linked_store):
        """Test layout fields stay per member."""
        linked_store.update_element("el-p1", {"positionX": 10.0, "width": 25.0, "zone": None})

        peer = linked_store.get_element("el-p1b")
        assert peer.position_x is None
        assert peer.width is None
        assert linked_store.get_element("el-p1").zone is None

    def test_name_not_synchronized_by_default(self, linked_store):
        """Test renames stay local unless configured."""
        linked_store.update_element("el-p1", {"name": "Main pump"})

        assert linked_store.get_element("el-p1").name == "Main pump"
        assert linked_store.get_element("el-p1b").name == "Pump 1"

    def test_name_synchronized_when_configured(self, linked_record):
        """Test sync_name adds renames to the synchronized set."""
        config = CockpitConfig.model_validate({"links": {"sync_name": True}})
        store = TreeStore.from_record(linked_record, config=config)

        store.update_element("el-p1", {"name": "Main pump"})

        assert store.get_element("el-p1b").name == "Main pump"
        assert store.get_element("el-p1c").name == "Main pump"

    def test_sync_fields(self, linked_store):
        """Test the synchronized field sets per kind."""
        synchronizer = linked_store.synchronizer
        assert synchronizer.sync_fields(ELEMENT) == ELEMENT_SYNC_FIELDS
        assert synchronizer.sync_fields(SUB_ELEMENT) == SYNC_FIELDS
        assert "inherit_from_domain_id" in ELEMENT_SYNC_FIELDS

    def test_domain_inheritance_propagates_with_domain(self, linked_store):
        """Test herite_domaine reaches peers together with its domain."""
        linked_store.update_element(
            "el-p1", {"status": "herite_domaine", "inheritFromDomainId": "dom-b"}
        )

        peer = linked_store.get_element("el-p1c")
        assert peer.status == TileStatus.HERITE_DOMAINE
        assert peer.inherit_from_domain_id == "dom-b"

    def test_herite_allowed_through_peer_sub_categories(self, linked_store):
        """Test a member may inherit when a peer has sub-categories."""
        linked_store.update_element("el-p1c", {"status": "herite"})

        assert linked_store.get_element("el-p1").status == TileStatus.HERITE
        assert linked_store.get_element("el-p1b").status == TileStatus.HERITE

    def test_herite_rejected_when_no_member_has_sub_categories(self, linked_store):
        """Test inheriting still needs sub-categories somewhere in the group."""
        linked_store.delete_sub_category("sc-temp-b")

        with pytest.raises(InvalidStateError):
            linked_store.update_element("el-p1", {"status": "herite"})

    def test_sub_element_propagation(self, linked_store):
        """Test sub-element groups synchronize too."""
        linked_store.update_sub_element("se-s1b", {"status": "fatal", "value": "95"})

        sensor = linked_store.get_sub_element("se-s1")
        assert sensor.status == TileStatus.FATAL
        assert sensor.value == "95"

    def test_sub_element_name_stays_local(self, linked_store):
        """Test sub-element renames stay local by default."""
        linked_store.update_sub_element("se-s1b", {"name": "Probe"})
        assert linked_store.get_sub_element("se-s1").name == "Sensor1"


# ==============================================================================
# Deletion
# ==============================================================================


class TestDeletionIndependence:
    """Test that deleting a member leaves the others alone."""

    def test_delete_member_keeps_peer_intact(self, linked_store):
        """Test a survivor keeps its group, name and fields."""
        linked_store.update_element("el-p1", {"value": "3"})
        before = linked_store.get_element("el-p1b").model_dump()

        linked_store.delete_element("el-p1")

        assert linked_store.get_element("el-p1b").model_dump() == before
        assert linked_store.links.members(ELEMENT, "grp-pump") == {"el-p1b", "el-p1c"}

    def test_delete_down_to_one_member(self, linked_store):
        """Test a lone survivor keeps its group id."""
        linked_store.delete_element("el-p1")
        linked_store.delete_element("el-p1c")

        survivor = linked_store.get_element("el-p1b")
        assert survivor.linked_group_id == "grp-pump"
        assert linked_store.links.members(ELEMENT, "grp-pump") == {"el-p1b"}

    def test_updates_after_delete_skip_deleted(self, linked_store):
        """Test propagation only reaches remaining members."""
        linked_store.delete_element("el-p1c")

        linked_store.update_element("el-p1", {"status": "mineur"})

        assert linked_store.get_element("el-p1b").status == TileStatus.MINEUR

    def test_delete_domain_forgets_members(self, linked_store):
        """Test deleting a container drops its members from the index."""
        linked_store.delete_domain("dom-b")

        assert linked_store.links.members(ELEMENT, "grp-pump") == {"el-p1", "el-p1c"}
        assert linked_store.links.members(SUB_ELEMENT, "grp-sensor") == {"se-s1"}

    def test_delete_sub_element_keeps_peer(self, linked_store):
        """Test sub-element deletion is independent too."""
        linked_store.delete_sub_element("se-s1")

        assert linked_store.get_sub_element("se-s1b").linked_group_id == "grp-sensor"
        assert linked_store.links.members(SUB_ELEMENT, "grp-sensor") == {"se-s1b"}
