"""Tests for core/schema.py: schema text, descriptors, and errors."""

from __future__ import annotations

import pytest

from localfirst.core.errors import SchemaError
from localfirst.core.schema import (
    ArraySchema,
    FlagSchema,
    NullSchema,
    PrimitiveKind,
    RegSchema,
    StructSchema,
    TableSchema,
    decode_descriptor,
    encode_descriptor,
    load_schema,
    parse_schema_text,
    schema_to_text,
)
from tests.conftest import KITCHEN_SCHEMA, TODO_SCHEMA


class TestParseSchemaText:
    def test_todo_app(self):
        schema = parse_schema_text(TODO_SCHEMA)
        assert isinstance(schema, StructSchema)
        assert list(schema.fields) == ["title", "tasks"]
        assert schema.fields["title"] == RegSchema(PrimitiveKind.STR)
        tasks = schema.fields["tasks"]
        assert isinstance(tasks, ArraySchema)
        assert isinstance(tasks.item, StructSchema)
        assert tasks.item.fields["complete"] == FlagSchema()

    def test_table_and_null(self):
        schema = parse_schema_text(KITCHEN_SCHEMA)
        todos = schema.fields["todos"]
        assert isinstance(todos, TableSchema)
        assert todos.key is PrimitiveKind.U64
        assert schema.fields["nothing"] == NullSchema()

    def test_aliases(self):
        schema = parse_schema_text(".: Struct\n.a: Reg<str>\n.b: Flag\n.c: MVReg<string>\n")
        assert schema.fields["a"] == RegSchema(PrimitiveKind.STR)
        assert schema.fields["b"] == FlagSchema()
        assert schema.fields["c"] == RegSchema(PrimitiveKind.STR)

    def test_comments_and_blank_lines(self):
        text = "# todo app\n\n.: Struct   # root\n.n: MVReg<i64>\n"
        assert parse_schema_text(text).fields["n"] == RegSchema(PrimitiveKind.I64)

    def test_leaf_root(self):
        assert parse_schema_text(".: EWFlag") == FlagSchema()

    @pytest.mark.parametrize(
        "text, message",
        [
            ("", "no root"),
            (".title: MVReg<String>\n", "parent"),
            (".: Struct\n.a.b: EWFlag\n", "parent"),
            (".: Struct\n.a: EWFlag\n.a: EWFlag\n", "duplicate"),
            (".: Array\n", "Array needs"),
            (".: Table<u64>\n", "Table needs"),
            (".: Struct\n.a: MVReg<float>\n", "primitive"),
            (".: Struct\n.a: Widget\n", "unknown type"),
            (".: Struct\n.a: EWFlag\n.a.b: EWFlag\n", "leaf"),
            (".: Struct\n.[]: EWFlag\n", "Struct cannot"),
            ("title: Struct\n", "must start"),
            (".: Struct\n.a-b: EWFlag\n", "invalid path segment"),
            (".: Struct\n.a EWFlag\n", "expected"),
            (".: Struct<u64>\n", "no type argument"),
        ],
    )
    def test_errors(self, text, message):
        with pytest.raises(SchemaError, match=message):
            parse_schema_text(text)

    def test_error_names_line_number(self):
        with pytest.raises(SchemaError, match="line 3"):
            parse_schema_text(".: Struct\n.a: EWFlag\n.b: Nope\n")


class TestSchemaToText:
    def test_round_trip(self):
        schema = parse_schema_text(KITCHEN_SCHEMA)
        assert parse_schema_text(schema_to_text(schema)) == schema

    def test_renders_canonical_names(self):
        text = schema_to_text(parse_schema_text(TODO_SCHEMA))
        assert text == TODO_SCHEMA


class TestDescriptor:
    def test_round_trip(self):
        schema = parse_schema_text(KITCHEN_SCHEMA)
        assert decode_descriptor(encode_descriptor(schema)) == schema

    def test_field_order_survives(self):
        schema = parse_schema_text(".: Struct\n.z: EWFlag\n.a: EWFlag\n")
        assert list(decode_descriptor(encode_descriptor(schema)).fields) == ["z", "a"]

    def test_magic_and_version(self):
        descriptor = encode_descriptor(FlagSchema())
        assert descriptor.startswith(b"LFSD\x01")

    def test_bad_magic(self):
        with pytest.raises(SchemaError, match="magic"):
            decode_descriptor(b"nope")

    def test_bad_version(self):
        with pytest.raises(SchemaError, match="version"):
            decode_descriptor(b"LFSD\x09{}")

    def test_corrupt_body(self):
        with pytest.raises(SchemaError, match="Corrupt"):
            decode_descriptor(b"LFSD\x01{not json")

    def test_unknown_kind(self):
        with pytest.raises(SchemaError, match="Unknown schema kind"):
            decode_descriptor(b'LFSD\x01{"kind":"blob"}')

    def test_malformed_node(self):
        with pytest.raises(SchemaError, match="Malformed"):
            decode_descriptor(b'LFSD\x01{"kind":"reg","type":"float"}')


class TestLoadSchema:
    def test_accepts_descriptor_bytes(self):
        schema = parse_schema_text(TODO_SCHEMA)
        assert load_schema(encode_descriptor(schema)) == schema

    def test_accepts_text_and_text_bytes(self):
        schema = parse_schema_text(TODO_SCHEMA)
        assert load_schema(TODO_SCHEMA) == schema
        assert load_schema(TODO_SCHEMA.encode()) == schema
