"""
Test Pre-filter Helpers
=======================

Ranking, capping, name mapping and reduction arithmetic.
"""

import pytest

from astkg.models import EntityKind
from astkg.retrieval.prefilter import (
    build_name_index,
    calculate_reduction_percentage,
    map_candidates,
    partition_by_kind,
    rank_and_cap,
)


class TestRankAndCap:
    """Test rank_and_cap."""

    def test_sorted_descending_and_truncated(self, similar):
        candidates = [
            similar("a", 0.70, EntityKind.CLASS),
            similar("b", 0.95, EntityKind.METHOD),
            similar("c", 0.80, EntityKind.CLASS),
        ]
        ranked = rank_and_cap(candidates, 2)
        assert [c.name for c in ranked] == ["b", "c"]

    def test_ties_keep_input_order(self, similar):
        candidates = [
            similar("first", 0.8, EntityKind.CLASS),
            similar("second", 0.8, EntityKind.METHOD),
            similar("third", 0.8, EntityKind.CLASS),
        ]
        assert [c.name for c in rank_and_cap(candidates, 3)] == ["first", "second", "third"]

    def test_cap_larger_than_input(self, similar):
        candidates = [similar("a", 0.7, EntityKind.CLASS)]
        assert rank_and_cap(candidates, 10) == candidates

    def test_does_not_mutate_input(self, similar):
        candidates = [similar("a", 0.7, EntityKind.CLASS), similar("b", 0.9, EntityKind.CLASS)]
        rank_and_cap(candidates, 1)
        assert [c.name for c in candidates] == ["a", "b"]


class TestPartitionByKind:
    """Test partition_by_kind."""

    def test_split_preserves_order(self, similar):
        candidates = [
            similar("B", 0.9, EntityKind.CLASS),
            similar("m1", 0.8, EntityKind.METHOD),
            similar("A", 0.7, EntityKind.CLASS),
        ]
        classes, methods = partition_by_kind(candidates)
        assert [c.name for c in classes] == ["B", "A"]
        assert [m.name for m in methods] == ["m1"]


class TestMapCandidates:
    """Test map_candidates."""

    def test_unmatched_names_are_counted(self, make_class, similar):
        population = [make_class("OrderService"), make_class("RefundPolicy")]
        candidates = [
            similar("RefundPolicy", 0.9, EntityKind.CLASS),
            similar("GhostService", 0.85, EntityKind.CLASS),
        ]
        entities, unmatched = map_candidates(candidates, population)
        assert [e.name for e in entities] == ["RefundPolicy"]
        assert unmatched == 1

    def test_duplicate_candidates_map_once(self, make_method, similar):
        population = [make_method("processOrder")]
        candidates = [
            similar("processOrder", 0.9, EntityKind.METHOD),
            similar("processOrder", 0.8, EntityKind.METHOD),
        ]
        entities, unmatched = map_candidates(candidates, population)
        assert len(entities) == 1
        assert unmatched == 0

    def test_first_entity_with_name_wins(self, make_method):
        first = make_method("save", class_name="OrderRepository")
        second = make_method("save", class_name="CustomerRepository")
        index = build_name_index([first, second])
        assert index["save"] is first

    def test_first_class_with_name_wins(self, make_class, similar):
        first = make_class("OrderService", package="com.shop.orders")
        second = make_class("OrderService", package="com.shop.legacy")

        assert build_name_index([first, second])["OrderService"] is first

        entities, unmatched = map_candidates(
            [similar("OrderService", 0.9, EntityKind.CLASS)], [first, second]
        )
        assert entities == [first]
        assert entities[0].package_name == "com.shop.orders"
        assert unmatched == 0

    def test_empty_candidates(self, make_class):
        assert map_candidates([], [make_class("A")]) == ([], 0)


class TestReductionPercentage:
    """Test calculate_reduction_percentage."""

    @pytest.mark.parametrize("original,filtered,expected", [
        (100, 10, 90.0),
        (100, 100, 0.0),
        (100, 0, 100.0),
        (8, 3, 63.0),     # 62.5 rounds half up
        (3, 1, 67.0),
        (0, 0, 0.0),
    ])
    def test_values(self, original, filtered, expected):
        assert calculate_reduction_percentage(original, filtered) == expected

    def test_returns_float(self):
        assert isinstance(calculate_reduction_percentage(10, 5), float)
