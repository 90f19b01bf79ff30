from conftest import TYPES_JS
from flow_jsonschema.scanner import (
    AliasDecl,
    ExportSpecifier,
    ImportBinding,
    mask_source,
    scan_module,
)


def _text_at(source: str, line: int, column: int) -> str:
    return source.splitlines()[line - 1][column - 1 :]


def test_scan_collects_aliases_imports_and_exports():
    decls = scan_module(TYPES_JS, "types.js")

    assert set(decls.aliases) == {"Local", "A", "Tup", "Callable"}
    assert not decls.aliases["Local"].exported
    assert decls.aliases["A"].exported

    kinds = [
        (type(export).__name__, getattr(export, "name", None) or export.exported)
        for export in decls.exports
    ]
    assert kinds == [
        ("AliasDecl", "A"),
        ("AliasDecl", "Tup"),
        ("AliasDecl", "Callable"),
        ("ExportSpecifier", "Local"),
        ("ExportSpecifier", "Renamed"),
        ("ExportSpecifier", "Deep"),
    ]
    renamed = decls.exports[4]
    assert renamed == ExportSpecifier("Imported", "Renamed", None, renamed.position)
    deep = decls.exports[5]
    assert isinstance(deep, ExportSpecifier)
    assert deep.module == "./other"


def test_positions_point_at_identifiers():
    decls = scan_module(TYPES_JS, "types.js")
    for name in ("Local", "A", "Tup"):
        position = decls.aliases[name].position
        assert _text_at(TYPES_JS, position.line, position.column).startswith(name)

    binding = decls.imports["Imported"]
    assert binding == ImportBinding("Remote", "Imported", "./other", binding.position)
    assert _text_at(TYPES_JS, binding.position.line, binding.position.column).startswith("Remote")
    assert decls.local_position("Imported") == binding.position
    assert decls.local_position("Local") == decls.aliases["Local"].position
    assert decls.local_position("Missing") is None


def test_alias_source_and_rhs():
    decls = scan_module(TYPES_JS, "types.js")
    local = decls.aliases["Local"]
    assert decls.alias_source(local) == "type Local = {x: number};"
    assert decls.alias_rhs(local) == "{x: number}"

    a = decls.aliases["A"]
    assert decls.alias_source(a).startswith("export type A = {|")
    assert decls.alias_rhs(a).endswith("|}")
    assert decls.alias_rhs(decls.aliases["Tup"]) == "[string, number, 1 | 2]"


def test_comments_and_strings_are_ignored():
    source = (
        "// export type Nope = string;\n"
        'const s = "export type Str = 1";\n'
        "/* export type Blk = 2; */\n"
        "export type Yes = number;\n"
    )
    decls = scan_module(source, "x.js")
    assert [export.name for export in decls.exports if isinstance(export, AliasDecl)] == ["Yes"]
    assert len(decls.exports) == 1


def test_mask_preserves_offsets_and_flow_comments():
    source = "a // type X\n'type Y' /* type Z */\n/*:: type Q = 'q'; */\n/*flow-include type R = 1; */"
    masked = mask_source(source)
    assert len(masked) == len(source)
    assert masked.count("\n") == source.count("\n")
    assert "type X" not in masked
    assert "type Y" not in masked
    assert "type Z" not in masked
    assert "type Q = ' ';" in masked
    assert "type R = 1;" in masked


def test_aliases_without_semicolons():
    source = (
        "export type U =\n"
        "  | 'a'\n"
        "  | 'b'\n"
        "export type N = number\n"
        "export type Fn = (x: number) => string\n"
        "const x = 1\n"
    )
    decls = scan_module(source, "x.js")
    assert decls.alias_rhs(decls.aliases["U"]) == "| 'a'\n  | 'b'"
    assert decls.alias_rhs(decls.aliases["N"]) == "number"
    assert decls.alias_rhs(decls.aliases["Fn"]) == "(x: number) => string"
    assert set(decls.aliases) == {"U", "N", "Fn"}


def test_generic_alias_and_double_quoted_module():
    source = 'export type Box<T> = Array<T>;\nexport type {A as B} from "./mod";\n'
    decls = scan_module(source, "x.js")
    assert decls.alias_rhs(decls.aliases["Box"]) == "Array<T>"
    specifier = decls.exports[1]
    assert isinstance(specifier, ExportSpecifier)
    assert (specifier.local, specifier.exported, specifier.module) == ("A", "B", "./mod")


def test_import_without_module_is_ignored():
    decls = scan_module("import type {X};\n", "x.js")
    assert decls.imports == {}
    assert decls.exports == []
