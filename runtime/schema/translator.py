"""Schema translator: internal structural schema to provider JSON schema.

The provider's tool-calling protocol fixes the vocabulary (``type``,
``properties``, ``required``, ``enum``, ``items``).  Translation is a pure,
one-way function: optional and defaulted fields are unwrapped to their
inner type and left out of ``required``; property order follows
declaration order so repeated advertisement is byte-identical.
"""

from __future__ import annotations

import json
from typing import Any

from contracts.errors import UnsupportedSchemaError
from contracts.schema import (
    ArraySchema,
    BooleanSchema,
    EnumSchema,
    FieldSchema,
    NumberSchema,
    ObjectSchema,
    StringSchema,
    UnionSchema,
)
from contracts.tool import ToolContract


def to_external_schema(contract: ToolContract) -> dict[str, Any]:
    """Translate a contract into the provider's tool definition document.

    Raises ``UnsupportedSchemaError`` for constructs the protocol cannot
    express (unions).
    """
    input_schema = translate_field(contract.input_schema)
    return {
        "name": contract.name,
        "description": contract.description,
        "input_schema": input_schema,
    }


def to_openai_definition(contract: ToolContract) -> dict[str, Any]:
    """Same document wrapped in the OpenAI function-calling envelope."""
    doc = to_external_schema(contract)
    return {
        "type": "function",
        "function": {
            "name": doc["name"],
            "description": doc["description"],
            "parameters": doc["input_schema"],
        },
    }


def to_validation_schema(schema: FieldSchema) -> dict[str, Any]:
    """Draft 7 document used to check incoming arguments.

    The advertised shape plus the length, bound, pattern and format
    keywords the provider document leaves out.
    """
    return translate_field(schema, constraints=True)


def canonical_json(document: Any) -> str:
    """Serialize a document compactly, preserving key order."""
    return json.dumps(document, ensure_ascii=False, separators=(",", ":"))


def translate_field(
    schema: FieldSchema, path: str = "", *, constraints: bool = False
) -> dict[str, Any]:
    out: dict[str, Any]
    if isinstance(schema, StringSchema):
        out = {"type": "string"}
        if constraints:
            _put(out, "minLength", schema.min_length)
            _put(out, "maxLength", schema.max_length)
            _put(out, "pattern", schema.pattern)
            _put(out, "format", schema.format)
        return _with_description(out, schema)
    if isinstance(schema, NumberSchema):
        out = {"type": "integer" if schema.integer else "number"}
        if constraints:
            _put(out, "minimum", schema.minimum)
            _put(out, "maximum", schema.maximum)
        return _with_description(out, schema)
    if isinstance(schema, BooleanSchema):
        return _with_description({"type": "boolean"}, schema)
    if isinstance(schema, EnumSchema):
        return _with_description({"type": "string", "enum": list(schema.values)}, schema)
    if isinstance(schema, ArraySchema):
        items = translate_field(schema.items, f"{path}[]", constraints=constraints)
        out = {"type": "array", "items": items}
        if constraints:
            _put(out, "minItems", schema.min_items)
            _put(out, "maxItems", schema.max_items)
        return _with_description(out, schema)
    if isinstance(schema, ObjectSchema):
        properties = {
            name: translate_field(
                field, f"{path}.{name}" if path else name, constraints=constraints
            )
            for name, field in schema.properties.items()
        }
        out = {"type": "object"}
        if schema.description:
            out["description"] = schema.description
        out["properties"] = properties
        out["required"] = schema.required_names()
        return out
    if isinstance(schema, UnionSchema):
        raise UnsupportedSchemaError(path, "union")
    raise UnsupportedSchemaError(path, type(schema).__name__)


def _put(out: dict[str, Any], key: str, value: Any) -> None:
    if value is not None:
        out[key] = value


def _with_description(out: dict[str, Any], schema: FieldSchema) -> dict[str, Any]:
    if schema.description:
        out["description"] = schema.description
    return out
