import pytest

from flow_jsonschema.compiler import Compiled, Unsupported, compile_node, compile_schema
from flow_jsonschema.errors import UnsupportedTypeError
from flow_jsonschema.typenodes import (
    Generic,
    Indexer,
    Literal,
    Nullable,
    ObjectShape,
    Primitive,
    Property,
    Tuple,
    Union,
)

STRING = Primitive("string")
NUMBER = Primitive("number")


@pytest.mark.parametrize(
    ("node", "expected"),
    [
        (Literal("string", "a"), {"type": "string", "enum": ["a"]}),
        (Literal("number", 3), {"type": "number", "enum": [3]}),
        (Literal("boolean", True), {"type": "boolean", "enum": [True]}),
        (Primitive("null"), {"type": "null"}),
        (Primitive("boolean"), {"type": "boolean"}),
        (Primitive("any"), {}),
        (Nullable(STRING), {"anyOf": [{"type": "null"}, {"type": "string"}]}),
        (Union((STRING, NUMBER)), {"anyOf": [{"type": "string"}, {"type": "number"}]}),
        (Generic("Array", (NUMBER,)), {"type": "array", "items": {"type": "number"}}),
    ],
)
def test_leaf_and_wrapper_translations(node, expected) -> None:
    assert compile_schema(node) == expected


def test_required_is_sorted_and_properties_keep_declaration_order() -> None:
    shape = ObjectShape(
        properties=(
            Property("c", STRING, optional=True),
            Property("a", NUMBER),
            Property("b", STRING),
        )
    )
    schema = compile_schema(shape)
    assert list(schema["properties"]) == ["c", "a", "b"]
    assert schema["required"] == ["a", "b"]
    assert "additionalProperties" not in schema


def test_exact_object_forbids_additional_properties() -> None:
    schema = compile_schema(ObjectShape(properties=(Property("x", NUMBER),), exact=True))
    assert schema["additionalProperties"] is False


def test_exact_generic_forces_additional_properties() -> None:
    inner = ObjectShape(properties=(Property("x", NUMBER),), exact=False)
    schema = compile_schema(Generic("$Exact", (inner,)))
    assert schema == {
        "type": "object",
        "properties": {"x": {"type": "number"}},
        "required": ["x"],
        "additionalProperties": False,
    }
    # The wrapped shape is untouched.
    assert inner.exact is False
    assert "additionalProperties" not in compile_schema(inner)


def test_exact_generic_passes_non_objects_through() -> None:
    assert compile_schema(Generic("$Exact", (STRING,))) == {"type": "string"}


def test_indexer_only_object_uses_pattern_properties() -> None:
    shape = ObjectShape(indexer=Indexer(value_type=Union((NUMBER, STRING)), key_type=STRING))
    assert compile_schema(shape) == {
        "type": "object",
        "patternProperties": {".*": {"anyOf": [{"type": "number"}, {"type": "string"}]}},
        "additionalProperties": False,
    }


def test_indexer_with_properties_is_rejected() -> None:
    shape = ObjectShape(
        properties=(Property("x", NUMBER),),
        indexer=Indexer(value_type=STRING),
    )
    result = compile_node(shape)
    assert isinstance(result, Unsupported)
    assert "indexed properties" in result.reason
    with pytest.raises(UnsupportedTypeError):
        compile_schema(shape)


@pytest.mark.parametrize(
    ("node", "reason"),
    [
        (Primitive("void"), "undefined types not supported"),
        (ObjectShape(has_call_signature=True), "call properties not supported"),
        (Generic("Map", (STRING, NUMBER)), "unsupported type: Map"),
    ],
)
def test_unsupported_constructs(node, reason) -> None:
    result = compile_node(node)
    assert result == Unsupported(reason)


def test_nested_unsupported_aborts_whole_type() -> None:
    shape = ObjectShape(
        properties=(
            Property("ok", STRING),
            Property("bad", Tuple((NUMBER, Primitive("void")))),
        )
    )
    assert compile_node(shape) == Unsupported("undefined types not supported")
    assert isinstance(compile_node(Nullable(Generic("Promise", (STRING,)))), Unsupported)


def test_tuple_compiles_positionally() -> None:
    node = Tuple((STRING, NUMBER, Union((Literal("number", 1), Literal("number", 2)))))
    assert compile_schema(node) == {
        "type": "array",
        "items": [
            {"type": "string"},
            {"type": "number"},
            {"anyOf": [{"type": "number", "enum": [1]}, {"type": "number", "enum": [2]}]},
        ],
    }


def test_compilation_is_deterministic() -> None:
    def build() -> ObjectShape:
        return ObjectShape(
            properties=(
                Property("z", Nullable(Generic("Array", (STRING,)))),
                Property("y", Union((Literal("string", "a"), Primitive("null"))), optional=True),
            ),
            exact=True,
        )

    first = compile_node(build())
    second = compile_node(build())
    assert isinstance(first, Compiled)
    assert first == second
    assert first.schema is not second.schema


def test_unknown_node_is_a_programming_error() -> None:
    with pytest.raises(TypeError, match="unknown type"):
        compile_node("string")  # type: ignore[arg-type]


def test_array_requires_single_argument() -> None:
    with pytest.raises(TypeError):
        compile_node(Generic("Array", (STRING, NUMBER)))
