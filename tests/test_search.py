"""
Unit tests for name search and match grouping.
"""

from cockpit.core.tree.models import TileStatus
from cockpit.core.tree.search import (
    ElementMatch,
    all_elements,
    all_sub_elements,
    find_elements_by_name,
    find_sub_elements_by_name,
    group_matches,
)


class TestFindByName:
    """Test exact-name lookup."""

    def test_find_elements(self, sample_store):
        """Test every same-named element is found in tree order."""
        matches = find_elements_by_name(sample_store, "Pump 1")

        assert [m.id for m in matches] == ["el-p1", "el-p1b"]
        assert [m.path for m in matches] == ["Domain A > Pumps", "Domain B > Spare"]
        assert matches[1].status == TileStatus.CRITIQUE

    def test_match_is_case_sensitive(self, sample_store):
        """Test names must match exactly."""
        assert find_elements_by_name(sample_store, "pump 1") == []
        assert find_elements_by_name(sample_store, "Pump") == []

    def test_find_sub_elements(self, sample_store):
        """Test sub-element matches carry their full path."""
        matches = find_sub_elements_by_name(sample_store, "Sensor1")

        assert len(matches) == 1
        assert matches[0].element_id == "el-p2"
        assert matches[0].sub_category_id == "sc-temp"
        assert matches[0].path == "Domain A > Pumps > Pump 2 > Temp"

    def test_all_elements(self, sample_store):
        """Test listing every element with its location."""
        matches = all_elements(sample_store)
        assert [m.id for m in matches] == ["el-p1", "el-p2", "el-p1b", "el-mirror"]
        assert matches[3].domain_name == "Domain B"

    def test_all_sub_elements(self, sample_store):
        """Test listing every sub-element."""
        assert [m.id for m in all_sub_elements(sample_store)] == ["se-s1", "se-s2"]


class TestGroupMatches:
    """Test grouping candidates by linked group."""

    def _match(self, match_id, group_id=None) -> ElementMatch:
        return ElementMatch(
            id=match_id,
            name="Pump 1",
            status=TileStatus.OK,
            linked_group_id=group_id,
            domain_id="dom",
            domain_name="Domain",
            category_id="cat",
            category_name="Category",
        )

    def test_ungrouped_are_separate(self):
        """Test unlinked matches each form their own group."""
        groups = group_matches([self._match("a"), self._match("b")])

        assert [g.key for g in groups] == ["single-a", "single-b"]
        assert all(g.linked_group_id is None for g in groups)

    def test_grouped_collapse(self):
        """Test matches sharing a group are shown once, in first-seen order."""
        groups = group_matches(
            [
                self._match("a", "grp-1"),
                self._match("b"),
                self._match("c", "grp-1"),
            ]
        )

        assert [g.key for g in groups] == ["grp-1", "single-b"]
        assert groups[0].size == 2
        assert groups[0].representative.id == "a"

    def test_empty(self):
        """Test no matches gives no groups."""
        assert group_matches([]) == []
