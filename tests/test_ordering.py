"""
Unit tests for list ordering primitives and the drop tie-break.
"""

import pytest

from cockpit.core.tree.ordering import (
    clamp_index,
    drop_target_index,
    index_of,
    move_item,
    reorder_item,
)


class TestListPrimitives:
    """Test index_of, move_item and reorder_item."""

    def test_index_of(self):
        assert index_of(["a", "b", "c"], lambda x: x == "b") == 1
        assert index_of(["a"], lambda x: x == "z") == -1

    @pytest.mark.parametrize("index,expected", [(-3, 0), (0, 0), (2, 2), (9, 3)])
    def test_clamp_index(self, index, expected):
        assert clamp_index(index, 3) == expected

    def test_move_item_appends(self):
        """Test moved items land at the end of the target."""
        source, target = ["a", "b", "c"], ["x"]

        item = move_item(source, target, 1)

        assert item == "b"
        assert source == ["a", "c"]
        assert target == ["x", "b"]

    def test_reorder_forward(self):
        """Test moving an item later ends exactly at the target index."""
        items = ["a", "b", "c", "d"]
        assert reorder_item(items, 0, 2) == 2
        assert items == ["b", "c", "a", "d"]

    def test_reorder_backward(self):
        items = ["a", "b", "c", "d"]
        assert reorder_item(items, 3, 1) == 1
        assert items == ["a", "d", "b", "c"]

    def test_reorder_clamps(self):
        """Test indexes past the end clamp to the last position."""
        items = ["a", "b", "c"]
        assert reorder_item(items, 0, 10) == 2
        assert items == ["b", "c", "a"]


class TestDropTargetIndex:
    """Test translating a drop position into an index."""

    def test_before_midpoint_inserts_before(self):
        assert drop_target_index(2, pointer=10.0, midpoint=20.0) == 2

    def test_on_or_after_midpoint_inserts_after(self):
        assert drop_target_index(2, pointer=20.0, midpoint=20.0) == 3
        assert drop_target_index(2, pointer=30.0, midpoint=20.0) == 3

    def test_dragged_from_earlier_shifts_down(self):
        """Test removing an earlier item shifts the insert position."""
        assert drop_target_index(2, pointer=30.0, midpoint=20.0, dragged_index=0) == 2
        assert drop_target_index(2, pointer=10.0, midpoint=20.0, dragged_index=0) == 1

    def test_dragged_from_later_unchanged(self):
        assert drop_target_index(1, pointer=10.0, midpoint=20.0, dragged_index=3) == 1

    def test_never_negative(self):
        assert drop_target_index(0, pointer=0.0, midpoint=5.0, dragged_index=0) == 0

    def test_drop_then_reorder(self, sample_store):
        """Test a drop after the last tile moves the first one to the end."""
        index = drop_target_index(1, pointer=50.0, midpoint=40.0, dragged_index=0)

        sample_store.reorder_element("el-p1", "cat-pumps", index)

        assert [e.id for e in sample_store.get_category("cat-pumps").elements] == [
            "el-p2",
            "el-p1",
        ]
