"""Locate type declarations, imports and re-exports in a flow source file.

Only the declarations the assembler needs are recognised:

- ``[export] type Name = ...``
- ``import type {A, B as C} from './mod'``
- ``export type {A, B as C} [from './mod']``

Flow comment syntax (``/*:: ... */`` and ``/*flow-include ... */``) is
treated as code. Other comments and string contents are masked before
matching so they cannot produce false hits; offsets are preserved.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field

from .parser import find_alias_rhs, position_at

_FLOW_COMMENT_OPENERS = ("/*::", "/*flow-include")
_IDENT = r"[A-Za-z_$][\w$]*"
_ALIAS_RE = re.compile(rf"(?<![\w$.])(export\s+)?type\s+({_IDENT})")
_SPECIFIER_BLOCK_RE = re.compile(
    r"(?<![\w$.])(export|import)\s+type\s*\{([^}]*)\}(?:\s*from\s*(['\"])[^'\"\n]*\3)?"
)
_SPECIFIER_RE = re.compile(rf"({_IDENT})(?:\s+as\s+({_IDENT}))?")
_CONTINUES_AFTER = ("|", "&", "?", ":", ",", "=")
_CONTINUES_BEFORE = ("|", "&")


@dataclass(frozen=True)
class Position:
    """1-based line and column of an identifier."""

    line: int
    column: int


@dataclass(frozen=True)
class AliasDecl:
    name: str
    exported: bool
    position: Position
    start: int
    end: int
    rhs_start: int
    rhs_end: int


@dataclass(frozen=True)
class ImportBinding:
    imported: str
    local: str
    module: str
    position: Position


@dataclass(frozen=True)
class ExportSpecifier:
    local: str
    exported: str
    module: str | None
    position: Position


@dataclass
class ModuleDecls:
    """Everything the assembler needs to know about one source file."""

    path: str
    source: str
    aliases: dict[str, AliasDecl] = field(default_factory=dict)
    imports: dict[str, ImportBinding] = field(default_factory=dict)
    exports: list[AliasDecl | ExportSpecifier] = field(default_factory=list)

    def local_position(self, name: str) -> Position | None:
        """Where a locally visible type ``name`` is bound (alias or type import)."""
        if name in self.aliases:
            return self.aliases[name].position
        if name in self.imports:
            return self.imports[name].position
        return None

    def alias_source(self, alias: AliasDecl) -> str:
        return self.source[alias.start : alias.end]

    def alias_rhs(self, alias: AliasDecl) -> str:
        return self.source[alias.rhs_start : alias.rhs_end]


def mask_source(source: str) -> str:
    """Blank out comments and string contents, keeping flow comment bodies."""
    out = list(source)
    idx = 0
    length = len(source)
    in_flow_comment = False

    def blank(start: int, stop: int) -> None:
        for pos in range(start, stop):
            if out[pos] != "\n":
                out[pos] = " "

    while idx < length:
        if in_flow_comment and source.startswith("*/", idx):
            blank(idx, idx + 2)
            in_flow_comment = False
            idx += 2
            continue
        opener = next((o for o in _FLOW_COMMENT_OPENERS if source.startswith(o, idx)), None)
        if opener is not None and not in_flow_comment:
            blank(idx, idx + len(opener))
            in_flow_comment = True
            idx += len(opener)
            continue
        if source.startswith("/*", idx):
            stop = source.find("*/", idx + 2)
            stop = length if stop < 0 else stop + 2
            blank(idx, stop)
            idx = stop
            continue
        if source.startswith("//", idx):
            stop = source.find("\n", idx)
            stop = length if stop < 0 else stop
            blank(idx, stop)
            idx = stop
            continue
        char = source[idx]
        if char in "'\"`":
            stop = idx + 1
            while stop < length and source[stop] != char:
                if source[stop] == "\\":
                    stop += 1
                elif char != "`" and source[stop] == "\n":
                    break
                stop += 1
            blank(idx + 1, min(stop, length))
            idx = stop + 1
            continue
        idx += 1
    return "".join(out)


def _at_statement_start(masked: str, offset: int) -> bool:
    before = masked[:offset].rstrip()
    return not before or before[-1] in ";{}\n" or masked[len(before) : offset].count("\n") > 0


def _alias_end(masked: str, start: int) -> tuple[int, int]:
    """Return (rhs_end, statement_end) for an alias whose right side starts at ``start``."""
    depth = 0
    idx = start
    seen_content = False
    length = len(masked)
    while idx < length:
        char = masked[idx]
        if char in "([{<":
            depth += 1
        elif char == ">" and masked[idx - 1] == "=":
            pass
        elif char in ")]}>":
            depth -= 1
            if depth < 0:
                return idx, idx
        elif char == ";" and depth == 0:
            return idx, idx + 1
        elif char == "\n" and depth == 0 and seen_content:
            # No semicolon: the line ends the alias unless it obviously continues.
            trailing = masked[start:idx].rstrip()[-1:]
            leading = masked[idx:].lstrip()[:1]
            if trailing not in _CONTINUES_AFTER and leading not in _CONTINUES_BEFORE:
                return idx, idx
        if not char.isspace():
            seen_content = True
        idx += 1
    return length, length


def scan_module(source: str, path: str) -> ModuleDecls:
    masked = mask_source(source)
    decls = ModuleDecls(path=path, source=source)
    found: list[tuple[int, AliasDecl | ExportSpecifier]] = []

    for match in _ALIAS_RE.finditer(masked):
        if not _at_statement_start(masked, match.start()):
            continue
        rhs = find_alias_rhs(masked, match.end())
        if rhs < 0 or masked[match.end() : rhs - 1].strip()[:1] not in ("", "<"):
            continue
        rhs_end, stmt_end = _alias_end(masked, rhs)
        rhs_start = rhs + (len(masked[rhs:rhs_end]) - len(masked[rhs:rhs_end].lstrip()))
        rhs_end = rhs_start + len(masked[rhs_start:rhs_end].rstrip())
        line, column = position_at(source, match.start(2))
        alias = AliasDecl(
            name=match.group(2),
            exported=match.group(1) is not None,
            position=Position(line, column),
            start=match.start(),
            end=stmt_end,
            rhs_start=rhs_start,
            rhs_end=rhs_end,
        )
        decls.aliases[alias.name] = alias
        if alias.exported:
            found.append((alias.start, alias))

    for match in _SPECIFIER_BLOCK_RE.finditer(masked):
        if not _at_statement_start(masked, match.start()):
            continue
        module: str | None = None
        if match.group(3) is not None:
            quote_end = match.end() - 1
            quote_start = masked.rfind(match.group(3), 0, quote_end)
            module = source[quote_start + 1 : quote_end]
        body_offset = match.start(2)
        for specifier in _SPECIFIER_RE.finditer(match.group(2)):
            original = specifier.group(1)
            renamed = specifier.group(2) or original
            line, column = position_at(source, body_offset + specifier.start(1))
            position = Position(line, column)
            if match.group(1) == "import":
                if module is None:
                    continue
                decls.imports[renamed] = ImportBinding(original, renamed, module, position)
            else:
                found.append((match.start(), ExportSpecifier(original, renamed, module, position)))

    found.sort(key=lambda item: item[0])
    decls.exports = [entry for _, entry in found]
    return decls


__all__ = [
    "AliasDecl",
    "ExportSpecifier",
    "ImportBinding",
    "ModuleDecls",
    "Position",
    "mask_source",
    "scan_module",
]
