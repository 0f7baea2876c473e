"""Document shapes, their binary descriptor, and the line-oriented text form.

The text form declares one path per line::

    .: Struct
    .title: MVReg<String>
    .tasks: Array
    .tasks.[]: Struct
    .tasks.[].title: MVReg<String>
    .tasks.[].complete: EWFlag

``[]`` names the item of an Array and ``{}`` the value of a Table.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from enum import Enum

from localfirst.core.errors import SchemaError

DESCRIPTOR_MAGIC = b"LFSD"
DESCRIPTOR_VERSION = 1


class PrimitiveKind(str, Enum):
    BOOL = "bool"
    U64 = "u64"
    I64 = "i64"
    STR = "str"


@dataclass(frozen=True)
class NullSchema:
    pass


@dataclass(frozen=True)
class FlagSchema:
    pass


@dataclass(frozen=True)
class RegSchema:
    primitive: PrimitiveKind


@dataclass(frozen=True)
class StructSchema:
    fields: dict[str, Schema] = field(default_factory=dict, hash=False)


@dataclass(frozen=True)
class ArraySchema:
    item: Schema


@dataclass(frozen=True)
class TableSchema:
    key: PrimitiveKind
    value: Schema


Schema = NullSchema | FlagSchema | RegSchema | StructSchema | ArraySchema | TableSchema

LEAF_SCHEMAS = (NullSchema, FlagSchema, RegSchema)


# ---------------------------------------------------------------------------
# Binary descriptor
# ---------------------------------------------------------------------------


def schema_to_dict(schema: Schema) -> dict:
    """Return the JSON-compatible tree for *schema*."""
    if isinstance(schema, NullSchema):
        return {"kind": "null"}
    if isinstance(schema, FlagSchema):
        return {"kind": "flag"}
    if isinstance(schema, RegSchema):
        return {"kind": "reg", "type": schema.primitive.value}
    if isinstance(schema, StructSchema):
        return {
            "kind": "struct",
            "fields": [[name, schema_to_dict(sub)] for name, sub in schema.fields.items()],
        }
    if isinstance(schema, ArraySchema):
        return {"kind": "array", "item": schema_to_dict(schema.item)}
    if isinstance(schema, TableSchema):
        return {"kind": "table", "key": schema.key.value, "value": schema_to_dict(schema.value)}
    raise SchemaError(f"Not a schema: {schema!r}")


def schema_from_dict(data: object) -> Schema:
    """Rebuild a schema from the tree produced by :func:`schema_to_dict`."""
    if not isinstance(data, dict):
        raise SchemaError(f"Schema node must be an object, got {type(data).__name__}")

    kind = data.get("kind")
    try:
        if kind == "null":
            return NullSchema()
        if kind == "flag":
            return FlagSchema()
        if kind == "reg":
            return RegSchema(PrimitiveKind(data["type"]))
        if kind == "struct":
            fields: dict[str, Schema] = {}
            for name, sub in data["fields"]:
                if name in fields:
                    raise SchemaError(f"Duplicate struct field: {name!r}")
                fields[name] = schema_from_dict(sub)
            return StructSchema(fields)
        if kind == "array":
            return ArraySchema(schema_from_dict(data["item"]))
        if kind == "table":
            return TableSchema(PrimitiveKind(data["key"]), schema_from_dict(data["value"]))
    except (KeyError, TypeError, ValueError) as exc:
        if isinstance(exc, SchemaError):
            raise
        raise SchemaError(f"Malformed {kind} node: {exc}") from exc
    raise SchemaError(f"Unknown schema kind: {kind!r}")


def encode_descriptor(schema: Schema) -> bytes:
    """Encode *schema* as a binary descriptor."""
    body = json.dumps(schema_to_dict(schema), sort_keys=True, separators=(",", ":"))
    return DESCRIPTOR_MAGIC + bytes([DESCRIPTOR_VERSION]) + body.encode("utf-8")


def decode_descriptor(descriptor: bytes) -> Schema:
    """Decode a binary descriptor produced by :func:`encode_descriptor`."""
    header = len(DESCRIPTOR_MAGIC) + 1
    if len(descriptor) < header or not descriptor.startswith(DESCRIPTOR_MAGIC):
        raise SchemaError("Not a schema descriptor (bad magic)")
    version = descriptor[len(DESCRIPTOR_MAGIC)]
    if version != DESCRIPTOR_VERSION:
        raise SchemaError(f"Unsupported descriptor version: {version}")
    try:
        data = json.loads(descriptor[header:].decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise SchemaError(f"Corrupt descriptor body: {exc}") from exc
    return schema_from_dict(data)


# ---------------------------------------------------------------------------
# Text form
# ---------------------------------------------------------------------------

_FIELD_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")
_TYPE_RE = re.compile(r"^(?P<name>[A-Za-z]+)(?:<(?P<arg>[A-Za-z0-9]+)>)?$")

_PRIMITIVE_NAMES: dict[str, PrimitiveKind] = {
    "bool": PrimitiveKind.BOOL,
    "u64": PrimitiveKind.U64,
    "i64": PrimitiveKind.I64,
    "str": PrimitiveKind.STR,
    "string": PrimitiveKind.STR,
    "String": PrimitiveKind.STR,
}

_PRIMITIVE_TEXT: dict[PrimitiveKind, str] = {
    PrimitiveKind.BOOL: "bool",
    PrimitiveKind.U64: "u64",
    PrimitiveKind.I64: "i64",
    PrimitiveKind.STR: "String",
}

ITEM_SEGMENT = "[]"
VALUE_SEGMENT = "{}"


def _parse_path(raw: str, lineno: int) -> tuple[str, ...]:
    if not raw.startswith("."):
        raise SchemaError(f"line {lineno}: path must start with '.': {raw!r}")
    if raw == ".":
        return ()
    segments = tuple(raw[1:].split("."))
    for segment in segments:
        if segment in (ITEM_SEGMENT, VALUE_SEGMENT):
            continue
        if not _FIELD_RE.match(segment):
            raise SchemaError(f"line {lineno}: invalid path segment {segment!r}")
    return segments


def _parse_type(raw: str, lineno: int) -> tuple[str, PrimitiveKind | None]:
    match = _TYPE_RE.match(raw)
    if match is None:
        raise SchemaError(f"line {lineno}: invalid type {raw!r}")
    name, arg = match.group("name"), match.group("arg")

    if name in ("Struct", "Array", "Null", "Flag", "EWFlag"):
        if arg is not None:
            raise SchemaError(f"line {lineno}: {name} takes no type argument")
        return ("Flag" if name == "EWFlag" else name), None

    if name in ("Reg", "MVReg", "Table"):
        if arg is None or arg not in _PRIMITIVE_NAMES:
            raise SchemaError(f"line {lineno}: {name} needs a primitive argument, got {arg!r}")
        return ("Reg" if name == "MVReg" else name), _PRIMITIVE_NAMES[arg]

    raise SchemaError(f"line {lineno}: unknown type {name!r}")


def parse_schema_text(text: str) -> Schema:
    """Parse the line-oriented schema text into a schema tree."""
    decls: dict[tuple[str, ...], tuple[str, PrimitiveKind | None, int]] = {}
    children: dict[tuple[str, ...], list[str]] = {}

    for lineno, line in enumerate(text.splitlines(), start=1):
        line = line.split("#", 1)[0].strip()
        if not line:
            continue
        raw_path, sep, raw_type = line.partition(":")
        if not sep:
            raise SchemaError(f"line {lineno}: expected '<path>: <type>'")
        path = _parse_path(raw_path.strip(), lineno)
        if path in decls:
            raise SchemaError(f"line {lineno}: duplicate declaration of {raw_path.strip()!r}")
        if path and path[:-1] not in decls:
            raise SchemaError(f"line {lineno}: parent of {raw_path.strip()!r} is not declared")
        decls[path] = (*_parse_type(raw_type.strip(), lineno), lineno)
        children.setdefault(path, [])
        if path:
            children[path[:-1]].append(path[-1])

    if () not in decls:
        raise SchemaError("schema has no root declaration ('.: <type>')")

    def build(path: tuple[str, ...]) -> Schema:
        name, primitive, lineno = decls[path]
        kids = children[path]

        if name == "Struct":
            for kid in kids:
                if kid in (ITEM_SEGMENT, VALUE_SEGMENT):
                    raise SchemaError(f"line {lineno}: Struct cannot have a {kid!r} child")
            return StructSchema({kid: build(path + (kid,)) for kid in kids})

        if name == "Array":
            if kids != [ITEM_SEGMENT]:
                raise SchemaError(f"line {lineno}: Array needs exactly one '[]' item declaration")
            return ArraySchema(build(path + (ITEM_SEGMENT,)))

        if name == "Table":
            if kids != [VALUE_SEGMENT]:
                raise SchemaError(f"line {lineno}: Table needs exactly one '{{}}' value declaration")
            assert primitive is not None
            return TableSchema(primitive, build(path + (VALUE_SEGMENT,)))

        if kids:
            raise SchemaError(f"line {lineno}: {name} is a leaf and cannot have children")
        if name == "Flag":
            return FlagSchema()
        if name == "Reg":
            assert primitive is not None
            return RegSchema(primitive)
        return NullSchema()

    return build(())


def schema_to_text(schema: Schema) -> str:
    """Render *schema* back into the text form."""
    lines: list[str] = []

    def render(node: Schema, path: str) -> None:
        label = path or "."
        if isinstance(node, StructSchema):
            lines.append(f"{label}: Struct")
            for name, sub in node.fields.items():
                render(sub, f"{path}.{name}")
        elif isinstance(node, ArraySchema):
            lines.append(f"{label}: Array")
            render(node.item, f"{path}.{ITEM_SEGMENT}")
        elif isinstance(node, TableSchema):
            lines.append(f"{label}: Table<{_PRIMITIVE_TEXT[node.key]}>")
            render(node.value, f"{path}.{VALUE_SEGMENT}")
        elif isinstance(node, RegSchema):
            lines.append(f"{label}: MVReg<{_PRIMITIVE_TEXT[node.primitive]}>")
        elif isinstance(node, FlagSchema):
            lines.append(f"{label}: EWFlag")
        else:
            lines.append(f"{label}: Null")

    render(schema, "")
    return "\n".join(lines) + "\n"


def load_schema(data: bytes | str) -> Schema:
    """Accept either a binary descriptor or schema text."""
    if isinstance(data, bytes):
        if data.startswith(DESCRIPTOR_MAGIC):
            return decode_descriptor(data)
        try:
            data = data.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise SchemaError("Schema is neither a descriptor nor UTF-8 text") from exc
    return parse_schema_text(data)
