"""Immutable AST for flow type expressions."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal as TypingLiteral
from typing import Union as TypingUnion

LiteralKind = TypingLiteral["string", "number", "boolean"]
PrimitiveKind = TypingLiteral["string", "number", "boolean", "null", "any", "void"]

PRIMITIVE_NAMES: frozenset[str] = frozenset({"string", "number", "boolean", "any", "void"})


@dataclass(frozen=True)
class Literal:
    """A singleton type such as ``'a'``, ``3`` or ``true``."""

    kind: LiteralKind
    value: str | float | int | bool


@dataclass(frozen=True)
class Primitive:
    kind: PrimitiveKind


@dataclass(frozen=True)
class Nullable:
    """``?T``: ``T`` or null."""

    inner: TypeNode


@dataclass(frozen=True)
class Property:
    name: str
    type: TypeNode
    optional: bool = False


@dataclass(frozen=True)
class Indexer:
    """``[key: K]: V``. Only the value type is validated."""

    value_type: TypeNode
    key_type: TypeNode | None = None


@dataclass(frozen=True)
class ObjectShape:
    properties: tuple[Property, ...] = ()
    exact: bool = False
    indexer: Indexer | None = None
    has_call_signature: bool = False


@dataclass(frozen=True)
class Tuple:
    elements: tuple[TypeNode, ...]


@dataclass(frozen=True)
class Union:
    alternatives: tuple[TypeNode, ...]


@dataclass(frozen=True)
class Generic:
    """A named type application, e.g. ``Array<T>`` or ``$Exact<T>``."""

    name: str
    type_arguments: tuple[TypeNode, ...] = ()


TypeNode = TypingUnion[Literal, Primitive, Nullable, ObjectShape, Tuple, Union, Generic]


__all__ = [
    "Generic",
    "Indexer",
    "Literal",
    "Nullable",
    "ObjectShape",
    "PRIMITIVE_NAMES",
    "Primitive",
    "Property",
    "Tuple",
    "TypeNode",
    "Union",
]
