"""
Path codec tests: flatten, unflatten and nested lookup.
"""

import pytest

from dataforge.core.paths import flatten_object, get_nested_value, unflatten_object


class TestFlatten:
    """Test flatten_object"""

    def test_nested_objects_and_lists(self):
        """Nested dicts join with dots, lists keep their first element"""
        record = {
            "a": {"b": 1, "c": {"d": None}},
            "e": [{"f": 2}, {"f": 3, "g": 4}],
            "tags": ["x", "y"],
            "empty": [],
        }
        assert flatten_object(record) == {
            "a.b": 1,
            "a.c.d": None,
            "e.0.f": 2,
            "tags.0": "x",
        }

    def test_key_order_follows_record(self):
        """Flattened keys keep the record's key order"""
        record = {"z": 1, "a": {"y": 2, "b": 3}, "m": 4}
        assert list(flatten_object(record)) == ["z", "a.y", "a.b", "m"]

    def test_prefix(self):
        assert flatten_object({"x": 1}, "root") == {"root.x": 1}

    def test_non_dict_input(self):
        """Scalars and lists at the root produce no entries"""
        assert flatten_object(5) == {}
        assert flatten_object([{"a": 1}]) == {}


class TestUnflatten:
    """Test unflatten_object"""

    def test_rebuilds_lists_and_dicts(self):
        flat = {"a.b": 1, "e.0.f": 2, "tags.0": "x"}
        assert unflatten_object(flat) == {
            "a": {"b": 1},
            "e": [{"f": 2}],
            "tags": ["x"],
        }

    def test_gaps_in_list_are_padded(self):
        assert unflatten_object({"xs.1": "b"}) == {"xs": [None, "b"]}

    def test_conflicting_paths_raise(self):
        """A path cannot descend through a scalar already assigned"""
        with pytest.raises(ValueError):
            unflatten_object({"a": 1, "a.b": 2})


class TestRoundTrip:
    """Unflatten(Flatten(x)) == x for single-element lists"""

    @pytest.mark.parametrize("record", [
        {"id": 1, "name": "a"},
        {"user": {"name": "x", "tags": ["admin"]}, "flag": None},
        {"items": [{"sku": "s-1", "qty": 2, "meta": {"color": "red"}}], "total": 9.5},
        {"matrix": [[1, 2]]},
    ])
    def test_round_trip(self, record):
        assert unflatten_object(flatten_object(record)) == record

    def test_multi_element_lists_keep_first_only(self):
        """Known approximation: only the first list element survives"""
        record = {"xs": [1, 2, 3], "objs": [{"a": 1}, {"b": 2}]}
        assert unflatten_object(flatten_object(record)) == {"xs": [1], "objs": [{"a": 1}]}


class TestGetNestedValue:
    """Test get_nested_value"""

    def test_lookup_through_lists(self):
        record = {"award": [{"count": 3}], "user": {"name": "Ann"}}
        assert get_nested_value(record, "award.0.count") == 3
        assert get_nested_value(record, "user.name") == "Ann"

    def test_missing_paths(self):
        record = {"award": [], "user": {"name": "Ann"}}
        assert get_nested_value(record, "award.0.count") is None
        assert get_nested_value(record, "user.age") is None
        assert get_nested_value(record, "user.name.first") is None
