"""Tests for core/cursor.py: navigation, leaf deltas, element markers."""

from __future__ import annotations

import pytest

from localfirst.core.cursor import (
    LeafKind,
    PositionKind,
    check_primitive,
    coerce_key,
)
from localfirst.core.errors import InvalidValue, NotAValueType, UnsupportedTraversal
from localfirst.core.schema import PrimitiveKind


class TestKinds:
    def test_root_is_record(self, kitchen_doc):
        cursor = kitchen_doc.create_cursor()
        assert cursor.kind is PositionKind.RECORD
        assert cursor.leaf_kind is None

    @pytest.mark.parametrize(
        "field, kind, leaf",
        [
            ("name", PositionKind.LEAF, LeafKind.STR_REG),
            ("count", PositionKind.LEAF, LeafKind.U64_REG),
            ("delta", PositionKind.LEAF, LeafKind.I64_REG),
            ("ready", PositionKind.LEAF, LeafKind.BOOL_REG),
            ("done", PositionKind.LEAF, LeafKind.FLAG),
            ("nothing", PositionKind.LEAF, LeafKind.NULL),
            ("meta", PositionKind.RECORD, None),
            ("tags", PositionKind.SEQUENCE, None),
            ("labels", PositionKind.MAP, None),
        ],
    )
    def test_field_kinds(self, kitchen_doc, field, kind, leaf):
        cursor = kitchen_doc.create_cursor().step(field)
        assert cursor.kind is kind
        assert cursor.leaf_kind is leaf


class TestStep:
    def test_step_mutates_in_place_and_clone_is_independent(self, kitchen_doc):
        root = kitchen_doc.create_cursor()
        copy = root.clone()
        root.step("meta")
        assert root.kind is PositionKind.RECORD
        assert copy.path == ()
        assert root.path == (("field", "meta"),)

    def test_indexing_a_record_fails(self, kitchen_doc):
        with pytest.raises(UnsupportedTraversal):
            kitchen_doc.create_cursor().step(0)

    def test_unknown_field_fails(self, kitchen_doc):
        with pytest.raises(UnsupportedTraversal, match="no field"):
            kitchen_doc.create_cursor().step("missing")

    def test_stepping_into_a_leaf_fails(self, kitchen_doc):
        with pytest.raises(UnsupportedTraversal):
            kitchen_doc.create_cursor().step("name").step("x")

    def test_named_selector_on_sequence_fails(self, kitchen_doc):
        with pytest.raises(UnsupportedTraversal):
            kitchen_doc.create_cursor().step("tags").step("first")

    def test_index_out_of_range_fails(self, kitchen_doc):
        with pytest.raises(UnsupportedTraversal, match="out of range"):
            kitchen_doc.create_cursor().step("tags").step(0)

    def test_negative_index_fails(self, kitchen_doc):
        with pytest.raises(UnsupportedTraversal):
            kitchen_doc.create_cursor().step("tags").index(-1)

    def test_digit_string_indexes_a_sequence(self, kitchen_doc):
        tags = kitchen_doc.create_cursor().step("tags")
        slot = tags.clone()
        kitchen_doc.apply_causal(slot.array_insert(0).join(slot.assign("x")))
        assert tags.clone().step("0").values() == ["x"]

    def test_non_ascii_digit_string_fails(self, kitchen_doc):
        tags = kitchen_doc.create_cursor().step("tags")
        slot = tags.clone()
        kitchen_doc.apply_causal(slot.array_insert(0).join(slot.assign("x")))
        with pytest.raises(UnsupportedTraversal):
            tags.clone().step("\u00b2")

    def test_map_key_coerced_to_declared_type(self, kitchen_doc):
        cursor = kitchen_doc.create_cursor().step("todos").step("7")
        assert cursor.path[-1] == ("key", 7)

    def test_bad_map_key(self, kitchen_doc):
        with pytest.raises(UnsupportedTraversal):
            kitchen_doc.create_cursor().step("todos").step("seven")


class TestLeaves:
    def test_flag_enable_disable(self, kitchen_doc):
        done = kitchen_doc.create_cursor().step("done")
        assert done.enabled() is False
        kitchen_doc.apply_causal(done.enable())
        assert done.enabled() is True
        kitchen_doc.apply_causal(done.disable())
        assert done.enabled() is False

    def test_register_assign_replaces_previous_value(self, kitchen_doc):
        name = kitchen_doc.create_cursor().step("name")
        kitchen_doc.apply_causal(name.assign("a"))
        kitchen_doc.apply_causal(name.assign("b"))
        assert name.values() == ["b"]

    def test_unapplied_delta_changes_nothing(self, kitchen_doc):
        name = kitchen_doc.create_cursor().step("name")
        name.assign("a")
        assert name.values() == []

    def test_register_rejects_wrong_type(self, kitchen_doc):
        with pytest.raises(InvalidValue):
            kitchen_doc.create_cursor().step("count").assign("3")

    def test_flag_ops_on_register_fail(self, kitchen_doc):
        with pytest.raises(NotAValueType):
            kitchen_doc.create_cursor().step("name").enable()

    def test_register_ops_on_record_fail(self, kitchen_doc):
        with pytest.raises(NotAValueType):
            kitchen_doc.create_cursor().assign("x")


class TestSequences:
    def _append(self, doc, values):
        for value in values:
            tags = doc.create_cursor().step("tags")
            index = tags.array_length()
            doc.apply_causal(tags.array_insert(index).join(tags.assign(value)))

    def _read(self, doc):
        tags = doc.create_cursor().step("tags")
        return [tags.clone().index(i).values()[0] for i in range(tags.array_length())]

    def test_append_keeps_order(self, kitchen_doc):
        self._append(kitchen_doc, ["a", "b", "c"])
        assert self._read(kitchen_doc) == ["a", "b", "c"]

    def test_insert_in_front_and_between(self, kitchen_doc):
        self._append(kitchen_doc, ["a", "c"])
        tags = kitchen_doc.create_cursor().step("tags")
        kitchen_doc.apply_causal(tags.array_insert(1).join(tags.assign("b")))
        tags = kitchen_doc.create_cursor().step("tags")
        kitchen_doc.apply_causal(tags.array_insert(0).join(tags.assign("_")))
        assert self._read(kitchen_doc) == ["_", "a", "b", "c"]

    def test_inserts_past_the_end_stay_ordered(self, kitchen_doc):
        tags = kitchen_doc.create_cursor().step("tags")
        deltas = []
        for i, value in enumerate(["x", "y", "z"]):
            slot = tags.clone()
            deltas.append(slot.array_insert(i).join(slot.assign(value)))
        for delta in reversed(deltas):
            kitchen_doc.apply_causal(delta)
        assert self._read(kitchen_doc) == ["x", "y", "z"]

    def test_remove_element(self, kitchen_doc):
        self._append(kitchen_doc, ["a", "b", "c"])
        kitchen_doc.apply_causal(kitchen_doc.create_cursor().step("tags").index(1).array_remove())
        assert self._read(kitchen_doc) == ["a", "c"]

    def test_element_with_disabled_flag_exists(self, kitchen_doc):
        flags = kitchen_doc.create_cursor().step("flags")
        kitchen_doc.apply_causal(flags.array_insert(0).join(flags.disable()))
        assert kitchen_doc.create_cursor().step("flags").array_length() == 1

    def test_array_remove_requires_element(self, kitchen_doc):
        with pytest.raises(UnsupportedTraversal):
            kitchen_doc.create_cursor().step("tags").array_remove()

    def test_keys_are_index_strings(self, kitchen_doc):
        self._append(kitchen_doc, ["a", "b"])
        assert kitchen_doc.create_cursor().step("tags").keys() == ["0", "1"]


class TestMaps:
    def test_insert_lists_and_removes_keys(self, kitchen_doc):
        labels = kitchen_doc.create_cursor().step("labels")
        for key in ("b", "a"):
            slot = labels.clone()
            kitchen_doc.apply_causal(slot.map_insert(key).join(slot.assign(key.upper())))
        assert labels.keys() == ["a", "b"]
        kitchen_doc.apply_causal(labels.clone().key("a").map_remove())
        assert labels.keys() == ["b"]

    def test_key_exists_through_contents_alone(self, kitchen_doc):
        title = kitchen_doc.create_cursor().step("todos").step(3).step("title")
        kitchen_doc.apply_causal(title.assign("t"))
        assert kitchen_doc.create_cursor().step("todos").map_keys() == [3]

    def test_reinsert_replaces_marker(self, kitchen_doc):
        labels = kitchen_doc.create_cursor().step("labels")
        kitchen_doc.apply_causal(labels.clone().map_insert("a"))
        kitchen_doc.apply_causal(labels.clone().map_insert("a"))
        markers = [e for e in kitchen_doc.state.store if e.path == labels.path]
        assert len(markers) == 1

    def test_key_markers_for_keys_without_one(self, kitchen_doc):
        title = kitchen_doc.create_cursor().step("todos").step(3).step("title")
        markers = title.key_markers()
        assert len(markers) == 1
        (marker,) = markers[0].store
        assert marker.path == (("field", "todos"),)
        assert marker.value == ("key", 3)
        kitchen_doc.apply_causal(markers[0])
        assert title.key_markers() == []

    def test_map_remove_requires_entry(self, kitchen_doc):
        with pytest.raises(UnsupportedTraversal):
            kitchen_doc.create_cursor().step("labels").map_remove()


class TestPrimitives:
    def test_u64_range(self):
        assert check_primitive(PrimitiveKind.U64, 2**64 - 1) == 2**64 - 1
        with pytest.raises(InvalidValue):
            check_primitive(PrimitiveKind.U64, -1)
        with pytest.raises(InvalidValue):
            check_primitive(PrimitiveKind.U64, 2**64)

    def test_i64_range(self):
        assert check_primitive(PrimitiveKind.I64, -(2**63)) == -(2**63)
        with pytest.raises(InvalidValue):
            check_primitive(PrimitiveKind.I64, 2**63)

    def test_bool_is_not_an_int(self):
        with pytest.raises(InvalidValue):
            check_primitive(PrimitiveKind.U64, True)

    def test_coerce_bool_key(self):
        assert coerce_key(PrimitiveKind.BOOL, "True") is True
        with pytest.raises(UnsupportedTraversal):
            coerce_key(PrimitiveKind.BOOL, "yes")
