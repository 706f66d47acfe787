"""
Tests for local document evaluation: patches, merge, filters and ordering.
"""

import pytest

from anykv.documents import apply_patches, encode_variable, merge, select, sort_entities
from anykv.errors import OperationFailedError
from anykv.types import Patch

PEOPLE = [
    {"id": "1", "name": "Ada", "age": 36},
    {"id": "2", "name": "Leo", "age": 21},
    {"id": "3", "name": "Zoe"},
    {"id": "4", "name": "Bob", "age": 50},
]


class TestApplyPatches:
    """Tests for patch batches."""

    def test_set_and_del(self):
        out = apply_patches({"id": "1", "a": 1, "b": 2}, [Patch("set", "a", 10), Patch("del", "b")])
        assert out == {"id": "1", "a": 10}

    def test_incr_decr(self):
        out = apply_patches({"id": "1", "n": 5}, [Patch("incr", "n"), Patch("incr", "n", 3), Patch("decr", "n", 2)])
        assert out["n"] == 7

    def test_incr_missing_field_starts_at_zero(self):
        assert apply_patches({"id": "1"}, [Patch("incr", "n")])["n"] == 1

    def test_does_not_mutate_input(self):
        entity = {"id": "1", "tags": ["a"]}
        apply_patches(entity, [Patch("set", "tags", ["b"])])
        assert entity == {"id": "1", "tags": ["a"]}

    def test_id_is_immutable(self):
        with pytest.raises(OperationFailedError, match="id"):
            apply_patches({"id": "1"}, [Patch("set", "id", "2")])

    def test_non_numeric_incr(self):
        with pytest.raises(OperationFailedError, match="non-numeric"):
            apply_patches({"id": "1", "n": "x"}, [Patch("incr", "n")])

    def test_unknown_op(self):
        with pytest.raises(OperationFailedError, match="Unsupported patch op"):
            apply_patches({"id": "1"}, [Patch("move", "a")])


class TestMerge:
    def test_partial_merge_keeps_other_fields(self):
        assert merge({"id": "1", "a": 1, "b": 2}, {"b": 3}) == {"id": "1", "a": 1, "b": 3}

    def test_id_survives(self):
        assert merge({"id": "1"}, {"id": "9", "a": 1})["id"] == "1"


class TestSortEntities:
    """Tests for ordering."""

    def test_order_ascending(self):
        ids = [e["id"] for e in sort_entities(PEOPLE, "name")]
        assert ids == ["1", "4", "2", "3"]

    def test_order_descending(self):
        ids = [e["id"] for e in sort_entities(PEOPLE, "name", desc=True)]
        assert ids == ["3", "2", "4", "1"]

    def test_missing_field_sorts_first(self):
        ids = [e["id"] for e in sort_entities(PEOPLE, "age")]
        assert ids == ["3", "2", "1", "4"]

    def test_desc_without_order_reverses(self):
        ids = [e["id"] for e in sort_entities(PEOPLE, None, desc=True)]
        assert ids == ["4", "3", "2", "1"]

    def test_mixed_types_do_not_raise(self):
        rows = [{"id": "1", "v": "x"}, {"id": "2", "v": 3}, {"id": "3", "v": True}]
        assert len(sort_entities(rows, "v")) == 3


class TestSelect:
    """Tests for filtering and paging."""

    def test_equality_filter(self):
        assert select(PEOPLE, {"name": "Leo"}) == [PEOPLE[1]]

    def test_non_string_fields_compare_as_json(self):
        assert select(PEOPLE, {"age": "36"}) == [PEOPLE[0]]

    def test_missing_field_never_matches(self):
        assert select(PEOPLE, {"nickname": "x"}) == []

    def test_repeated_name_matches_any_value(self):
        rows = select(PEOPLE, [("name", "Bob"), ("name", "Ada")], order="id")
        assert [e["id"] for e in rows] == ["1", "4"]

    def test_query_string(self):
        assert select(PEOPLE, "name=Leo&age=21") == [PEOPLE[1]]
        assert select(PEOPLE, "age=21&age=50&limit=1") == [PEOPLE[1]]

    def test_last_paging_value_wins(self):
        rows = select(PEOPLE, [("limit", "1"), ("limit", "3")])
        assert len(rows) == 3

    def test_limit_and_start(self):
        rows = select(PEOPLE, {"limit": "2", "start": "1"}, order="id")
        assert [e["id"] for e in rows] == ["2", "3"]

    def test_invalid_limit(self):
        with pytest.raises(OperationFailedError, match="limit"):
            select(PEOPLE, {"limit": "many"})
        with pytest.raises(OperationFailedError, match="negative"):
            select(PEOPLE, {"start": "-1"})

    def test_query_is_not_mutated(self):
        query = {"limit": "1"}
        select(PEOPLE, query)
        assert query == {"limit": "1"}


class TestEncodeVariable:
    def test_strings_pass_through(self):
        assert encode_variable("plain") == "plain"

    def test_other_values_are_json(self):
        assert encode_variable(5) == "5"
        assert encode_variable({"a": [1, None]}) == '{"a": [1, null]}'
        assert encode_variable(True) == "true"
