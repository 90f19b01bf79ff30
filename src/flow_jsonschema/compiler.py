"""Translate flow type ASTs into JSON Schema fragments.

``compile_node`` never raises for unsupported constructs; it returns an
``Unsupported`` result that short-circuits the whole enclosing type.
``compile_schema`` is the raising convenience wrapper used at the per-type
boundary.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any

from .errors import UnsupportedTypeError
from .typenodes import (
    Generic,
    Literal,
    Nullable,
    ObjectShape,
    Primitive,
    Tuple,
    TypeNode,
    Union,
)

SchemaFragment = dict[str, Any]


@dataclass(frozen=True)
class Compiled:
    schema: SchemaFragment


@dataclass(frozen=True)
class Unsupported:
    reason: str

    def to_error(self) -> UnsupportedTypeError:
        return UnsupportedTypeError(self.reason)


CompileResult = Compiled | Unsupported


def compile_node(node: TypeNode) -> CompileResult:
    """Compile one node (and its children) into a schema or an Unsupported result."""
    if isinstance(node, Literal):
        return Compiled({"type": node.kind, "enum": [node.value]})

    if isinstance(node, Primitive):
        if node.kind == "void":
            return Unsupported("undefined types not supported")
        if node.kind == "any":
            return Compiled({})
        return Compiled({"type": node.kind})

    if isinstance(node, Nullable):
        inner = compile_node(node.inner)
        if isinstance(inner, Unsupported):
            return inner
        return Compiled({"anyOf": [{"type": "null"}, inner.schema]})

    if isinstance(node, ObjectShape):
        return _compile_object(node)

    if isinstance(node, Tuple):
        items = _compile_all(node.elements)
        if isinstance(items, Unsupported):
            return items
        return Compiled({"type": "array", "items": items})

    if isinstance(node, Union):
        alternatives = _compile_all(node.alternatives)
        if isinstance(alternatives, Unsupported):
            return alternatives
        return Compiled({"anyOf": alternatives})

    if isinstance(node, Generic):
        return _compile_generic(node)

    raise TypeError(f"unknown type {type(node).__name__}")


def compile_schema(node: TypeNode) -> SchemaFragment:
    """Compile ``node`` or raise ``UnsupportedTypeError``."""
    result = compile_node(node)
    if isinstance(result, Unsupported):
        raise result.to_error()
    return result.schema


def _compile_all(nodes: Iterable[TypeNode]) -> list[SchemaFragment] | Unsupported:
    schemas: list[SchemaFragment] = []
    for child in nodes:
        result = compile_node(child)
        if isinstance(result, Unsupported):
            return result
        schemas.append(result.schema)
    return schemas


def _compile_object(node: ObjectShape) -> CompileResult:
    if node.has_call_signature:
        return Unsupported("call properties not supported")

    if node.indexer is not None:
        if node.properties:
            return Unsupported(
                "objects with both static properties and indexed properties are not supported"
            )
        # Key types are not validated; every key maps to the value schema.
        value = compile_node(node.indexer.value_type)
        if isinstance(value, Unsupported):
            return value
        return Compiled(
            {
                "type": "object",
                "patternProperties": {".*": value.schema},
                "additionalProperties": False,
            }
        )

    properties: dict[str, SchemaFragment] = {}
    required: list[str] = []
    for prop in node.properties:
        result = compile_node(prop.type)
        if isinstance(result, Unsupported):
            return result
        properties[prop.name] = result.schema
        if not prop.optional:
            required.append(prop.name)

    schema: SchemaFragment = {
        "type": "object",
        "properties": properties,
        "required": sorted(required),
    }
    if node.exact:
        schema["additionalProperties"] = False
    return Compiled(schema)


def _single_argument(node: Generic) -> TypeNode:
    if len(node.type_arguments) != 1:
        raise TypeError(
            f"{node.name} expects exactly one type argument, got {len(node.type_arguments)}"
        )
    return node.type_arguments[0]


def _compile_generic(node: Generic) -> CompileResult:
    if node.name == "Array":
        items = compile_node(_single_argument(node))
        if isinstance(items, Unsupported):
            return items
        return Compiled({"type": "array", "items": items.schema})

    if node.name == "$Exact":
        inner = compile_node(_single_argument(node))
        if isinstance(inner, Unsupported):
            return inner
        if inner.schema.get("type") == "object":
            return Compiled({**inner.schema, "additionalProperties": False})
        return inner

    return Unsupported(f"unsupported type: {node.name}")


__all__ = [
    "CompileResult",
    "Compiled",
    "SchemaFragment",
    "Unsupported",
    "compile_node",
    "compile_schema",
]
