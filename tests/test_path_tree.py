"""Tests for path_tree module."""
import pytest

from joint_slicer.errors import PathIndexError
from joint_slicer.path_tree import PathTree, as_path


class TestAppendAndAccess:
    """Test appending items and reading them back."""

    def test_append_preserves_order(self):
        tree = PathTree()
        tree.append((0, 1), "a")
        tree.append((0, 1), "b")
        assert tree.branch((0, 1)) == ["a", "b"]
        assert tree.item_at((0, 1), 1) == "b"

    def test_append_range_extends(self):
        tree = PathTree()
        tree.append_range([2, 0], [1, 2, 3])
        tree.append_range((2, 0), [4])
        assert tree.branch((2, 0)) == [1, 2, 3, 4]

    def test_empty_range_does_not_create_path(self):
        tree = PathTree()
        tree.append_range((0, 0), [])
        assert (0, 0) not in tree
        assert len(tree) == 0

    def test_missing_branch_is_empty(self):
        tree = PathTree()
        assert tree.branch((5,)) == []

    def test_branch_returns_copy(self):
        tree = PathTree()
        tree.append((0,), 1)
        tree.branch((0,)).append(99)
        assert tree.branch((0,)) == [1]

    def test_item_at_out_of_range(self):
        tree = PathTree()
        tree.append((0, 0), "x")
        with pytest.raises(PathIndexError):
            tree.item_at((0, 0), 1)
        with pytest.raises(PathIndexError):
            tree.item_at((0, 0), -1)
        with pytest.raises(IndexError):
            tree.item_at((3, 3), 0)

    def test_negative_path_index_rejected(self):
        with pytest.raises(ValueError):
            as_path((0, -1))


class TestDerivedCounts:
    """Counts are derived from the stored keys."""

    def test_values_at_depth_sorted_and_distinct(self):
        tree = PathTree()
        tree.append((3, 0), "a")
        tree.append((1, 2), "b")
        tree.append((1, 0), "c")
        tree.append((3, 1), "d")
        assert tree.values_at_depth((), 0) == [1, 3]
        assert tree.values_at_depth((1,), 1) == [0, 2]
        assert tree.count_at_depth((3,), 1) == 2

    def test_sparse_indices_are_not_filled(self):
        tree = PathTree()
        tree.append((0, 0), "a")
        tree.append((0, 7), "b")
        assert tree.count_at_depth((0,), 1) == 2

    def test_paths_sorted(self):
        tree = PathTree()
        tree.append((1, 0), 0)
        tree.append((0, 5), 0)
        tree.append((0, 1), 0)
        assert tree.paths() == [(0, 1), (0, 5), (1, 0)]

    def test_item_count(self):
        tree = PathTree()
        tree.append_range((0,), [1, 2])
        tree.append_range((1,), [3])
        assert tree.item_count() == 3


class TestMerge:
    """Test merging trees."""

    def test_merge_appends_branches(self):
        a = PathTree()
        a.append((0, 0), "a0")
        b = PathTree()
        b.append((0, 0), "b0")
        b.append((1, 0), "b1")
        a.merge(b)
        assert a.branch((0, 0)) == ["a0", "b0"]
        assert a.branch((1, 0)) == ["b1"]

    def test_contains_handles_bad_keys(self):
        tree = PathTree()
        tree.append((0,), 1)
        assert (0,) in tree
        assert "nope" not in tree
        assert (-1,) not in tree
