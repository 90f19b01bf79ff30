"""Parse flow type syntax into ``TypeNode`` trees.

The grammar only covers what ``flow type-at-pos --expand-type-aliases`` and
``flow gen-flow-files`` print for data types: literals, primitives, nullable,
arrays, unions, tuples, generics and object types (exact or not, with
indexers and call properties). Anything else is a ``TypeSyntaxError``.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from lark import Lark, Token, Transformer, v_args
from lark.exceptions import UnexpectedInput, VisitError

from .errors import TypeSyntaxError
from .typenodes import (
    PRIMITIVE_NAMES,
    Generic,
    Indexer,
    Literal,
    Nullable,
    ObjectShape,
    Primitive,
    Property,
    Tuple,
    TypeNode,
    Union,
)

TYPE_GRAMMAR = r"""
?start: type_expr ";"?

?type_expr: "|"? nonunion
          | "|"? nonunion ("|" nonunion)+  -> union

?nonunion: "?" nonunion                    -> nullable
         | postfix

?postfix: primary
        | postfix "[" "]"                  -> array_of

?primary: named
        | STRING                           -> string_lit
        | NUMBER                           -> number_lit
        | "{" _members? "}"                -> inexact_object
        | "{|" _members? "|}"              -> exact_object
        | "[" (type_expr ("," type_expr)* ","?)? "]" -> tuple
        | "(" type_expr ")"

named: qualified_name type_args?
qualified_name: NAME ("." NAME)*
type_args: "<" type_expr ("," type_expr)* ","? ">"

_members: member (_sep member)* _sep?
_sep: "," | ";"

member: VARIANCE? prop_key optional? ":" type_expr                    -> property
      | VARIANCE? "[" (NAME ":")? type_expr "]" ":" type_expr         -> indexer
      | "(" (param ("," param)* ","?)? ")" ":" type_expr               -> call_property

prop_key: NAME | STRING
optional: "?"
param: NAME optional? ":" type_expr
     | "..." NAME ":" type_expr

NAME: /[A-Za-z_$][A-Za-z0-9_$]*/
STRING: /"(?:[^"\\\n]|\\.)*"|'(?:[^'\\\n]|\\.)*'/
NUMBER: /-?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?/
VARIANCE: /[+-]/

%import common.WS
%ignore WS
"""

_ESCAPES = {"n": "\n", "t": "\t", "r": "\r", "b": "\b", "f": "\f", "v": "\v", "0": "\0"}
_ESCAPE_RE = re.compile(r"\\(u\{[0-9a-fA-F]+\}|u[0-9a-fA-F]{4}|x[0-9a-fA-F]{2}|.)", re.S)
_ALIAS_HEAD_RE = re.compile(r"\s*(?:declare\s+)?(?:export\s+)?type\s+([A-Za-z_$][\w$]*)")


def unquote(literal: str) -> str:
    """Decode a single- or double-quoted JS string literal."""

    def _replace(match: re.Match[str]) -> str:
        esc = match.group(1)
        if esc.startswith("u{"):
            return chr(int(esc[2:-1], 16))
        if esc.startswith("u") and len(esc) == 5:
            return chr(int(esc[1:], 16))
        if esc.startswith("x") and len(esc) == 3:
            return chr(int(esc[1:], 16))
        return _ESCAPES.get(esc, esc)

    return _ESCAPE_RE.sub(_replace, literal[1:-1])


def _number(text: str) -> int | float:
    if re.fullmatch(r"-?\d+", text):
        return int(text)
    return float(text)


@v_args(inline=True)
class _ToTypeNode(Transformer):
    def union(self, *alternatives: TypeNode) -> TypeNode:
        return Union(tuple(alternatives))

    def nullable(self, inner: TypeNode) -> TypeNode:
        return Nullable(inner)

    def array_of(self, element: TypeNode) -> TypeNode:
        return Generic("Array", (element,))

    def string_lit(self, token: Token) -> TypeNode:
        return Literal("string", unquote(str(token)))

    def number_lit(self, token: Token) -> TypeNode:
        return Literal("number", _number(str(token)))

    def tuple(self, *elements: TypeNode) -> TypeNode:
        return Tuple(tuple(elements))

    def qualified_name(self, *parts: Token) -> str:
        return ".".join(str(part) for part in parts)

    def type_args(self, *args: TypeNode) -> tuple[TypeNode, ...]:
        return tuple(args)

    def named(self, name: str, args: tuple[TypeNode, ...] | None = None) -> TypeNode:
        if args is None:
            if name in PRIMITIVE_NAMES:
                return Primitive(name)  # type: ignore[arg-type]
            if name == "null":
                return Primitive("null")
            if name in {"true", "false"}:
                return Literal("boolean", name == "true")
        return Generic(name, args or ())

    def prop_key(self, token: Token) -> str:
        text = str(token)
        return unquote(text) if token.type == "STRING" else text

    def optional(self) -> bool:
        return True

    def param(self, *children: object) -> None:
        return None

    def property(self, *children: object) -> tuple[str, object]:
        parts = [child for child in children if not isinstance(child, Token)]
        name = parts[0]
        optional = len(parts) == 3
        assert isinstance(name, str)
        return ("property", Property(name, parts[-1], optional))  # type: ignore[arg-type]

    def indexer(self, *children: object) -> tuple[str, object]:
        key_type, value_type = [child for child in children if not isinstance(child, Token)]
        return ("indexer", Indexer(value_type=value_type, key_type=key_type))  # type: ignore[arg-type]

    def call_property(self, *children: object) -> tuple[str, object]:
        return ("call", None)

    def inexact_object(self, *members: tuple[str, object]) -> TypeNode:
        return _build_object(members, exact=False)

    def exact_object(self, *members: tuple[str, object]) -> TypeNode:
        return _build_object(members, exact=True)


def _build_object(members: tuple[tuple[str, object], ...], exact: bool) -> ObjectShape:
    properties: list[Property] = []
    indexer: Indexer | None = None
    has_call = False
    for kind, value in members:
        if kind == "property":
            assert isinstance(value, Property)
            properties.append(value)
        elif kind == "indexer":
            # Only the first indexer is meaningful for validation.
            if indexer is None:
                assert isinstance(value, Indexer)
                indexer = value
        else:
            has_call = True
    return ObjectShape(
        properties=tuple(properties),
        exact=exact,
        indexer=indexer,
        has_call_signature=has_call,
    )


_PARSER = Lark(TYPE_GRAMMAR, parser="lalr", maybe_placeholders=False)
_TRANSFORMER = _ToTypeNode()


def position_at(text: str, offset: int) -> tuple[int, int]:
    """1-based (line, column) of ``offset`` within ``text``."""
    line = text.count("\n", 0, offset) + 1
    column = offset - (text.rfind("\n", 0, offset) + 1) + 1
    return line, column


def parse_type(text: str, path: str | None = None, line: int = 1, column: int = 1) -> TypeNode:
    """Parse a type expression.

    ``line``/``column`` locate the start of ``text`` inside ``path`` so parse
    errors point at the right place in the original file.
    """
    try:
        tree = _PARSER.parse(text)
        return _TRANSFORMER.transform(tree)
    except UnexpectedInput as exc:
        pos = exc.pos_in_stream
        if pos is None or pos < 0:
            pos = len(text)
        err_line, err_col = position_at(text, pos)
        if err_line == 1:
            err_line, err_col = line, column + err_col - 1
        else:
            err_line = line + err_line - 1
        raise TypeSyntaxError(_describe(exc), path, err_line, err_col) from exc
    except VisitError as exc:
        raise TypeSyntaxError(str(exc.orig_exc), path, line, column) from exc


def _describe(exc: UnexpectedInput) -> str:
    token = getattr(exc, "token", None)
    if token is not None:
        if token.type == "$END":
            return "unexpected end of input"
        return f"unexpected token {str(token)!r}"
    char = getattr(exc, "char", None)
    if char is not None:
        return f"unexpected character {char!r}"
    return exc.__class__.__name__


@dataclass(frozen=True)
class ParsedAlias:
    """``type Name = <rhs>`` split into its parts."""

    name: str
    node: TypeNode
    source: str
    start: int
    end: int


def find_alias_rhs(text: str, name_end: int) -> int:
    """Offset just past the ``=`` that follows an alias name (and type params)."""
    depth = 0
    for idx in range(name_end, len(text)):
        char = text[idx]
        if char == "<":
            depth += 1
        elif char == ">" and text[idx - 1] != "=":
            depth -= 1
        elif char == "=" and depth == 0 and text[idx + 1 : idx + 2] != ">":
            return idx + 1
    return -1


def parse_type_alias(
    text: str,
    path: str | None = None,
    line: int = 1,
    column: int = 1,
) -> ParsedAlias:
    """Parse the single ``type Name = ...`` statement flow prints for a position."""
    head = _ALIAS_HEAD_RE.match(text)
    rhs_start = find_alias_rhs(text, head.end()) if head else -1
    if head is None or rhs_start < 0:
        raise TypeSyntaxError("expected a type alias", path, line, column)
    end = len(text.rstrip())
    if text[:end].endswith(";"):
        end = len(text[: end - 1].rstrip())
    start = rhs_start + (len(text[rhs_start:]) - len(text[rhs_start:].lstrip()))
    source = text[start:end]
    rhs_line, rhs_col = position_at(text, start)
    node = parse_type(source, path, line + rhs_line - 1, rhs_col if rhs_line > 1 else column + rhs_col - 1)
    return ParsedAlias(name=head.group(1), node=node, source=source, start=start, end=end)


__all__ = [
    "ParsedAlias",
    "TYPE_GRAMMAR",
    "find_alias_rhs",
    "parse_type",
    "parse_type_alias",
    "position_at",
    "unquote",
]
