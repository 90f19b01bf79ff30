"""Resolve every exported type of a module into a JSON Schema."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Iterator, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from packaging.version import Version
from rich.console import Console

from .compiler import SchemaFragment, Unsupported, compile_node
from .config import GeneratorConfig
from .delay import ABANDON, ELAPSED, schedule
from .errors import NoTypesError, RecursionLimitError, TypeNotFoundError
from .oracle import FlowOracle
from .parser import parse_type, parse_type_alias, position_at
from .scanner import AliasDecl, ExportSpecifier, ModuleDecls, Position, scan_module
from .typenodes import TypeNode

console = Console(stderr=True)


@dataclass(frozen=True)
class TypeEntry:
    """One resolved, compiled export."""

    name: str
    source_path: str
    source_snippet: str
    schema: SchemaFragment


@dataclass(frozen=True)
class ResolvedType:
    """Expanded type text for a declaration and its parsed AST."""

    path: str
    source: str
    node: TypeNode


class TypeRegistry:
    """Name-keyed results of one generation run."""

    def __init__(self) -> None:
        self._entries: dict[str, TypeEntry] = {}

    def add(self, entry: TypeEntry) -> None:
        if entry.name in self._entries:
            raise ValueError(f"type {entry.name} exported more than once")
        self._entries[entry.name] = entry

    def __contains__(self, name: object) -> bool:
        return name in self._entries

    def __getitem__(self, name: str) -> TypeEntry:
        return self._entries[name]

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[TypeEntry]:
        return (self._entries[name] for name in self.names())

    def names(self) -> list[str]:
        return sorted(self._entries)

    def schemas(self) -> dict[str, SchemaFragment]:
        return {entry.name: entry.schema for entry in self}

    def sources(self) -> dict[str, str]:
        return {entry.name: entry.source_snippet for entry in self}


class SchemaAssembler:
    """Drive flow over one entry module and compile each exported type."""

    def __init__(self, oracle: FlowOracle, config: GeneratorConfig | None = None) -> None:
        self.oracle = oracle
        self.config = config or GeneratorConfig()

    async def make_schema(self, path: str | Path) -> TypeRegistry:
        path = Path(path)
        console.print(f"[cyan]Processing[/] {path}...")
        await self._wait_for_server(path)
        if await self.supports_position_queries():
            registry = await self._schema_from_positions(path)
        else:
            registry = await self._schema_from_flow_files(path)
        if not registry:
            raise NoTypesError(f"no types to process in {path}")
        return registry

    async def supports_position_queries(self) -> bool:
        """``type-at-pos --expand-type-aliases`` needs flow 0.89 or newer."""
        current = await self.oracle.version()
        return Version(current) >= Version(self.config.min_position_query_version)

    async def _wait_for_server(self, path: Path) -> None:
        notice = schedule(self.config.status_notice_delay)

        def _announce(fut: asyncio.Future[Any]) -> None:
            if not fut.cancelled() and fut.result() is ELAPSED:
                console.print(f"[cyan]{path}:[/] Waiting for flow to be ready...")

        notice.future.add_done_callback(_announce)
        try:
            await self.oracle.status()
        finally:
            notice.cancel(ABANDON)

    async def _schema_from_positions(self, path: Path) -> TypeRegistry:
        decls = scan_module(path.read_text(encoding="utf-8"), str(path))
        registry = TypeRegistry()
        semaphore = asyncio.Semaphore(self.config.concurrency)

        async def bounded(job: Awaitable[None]) -> None:
            async with semaphore:
                await job

        tasks = [
            asyncio.ensure_future(bounded(self._resolve_export(decls, export, registry)))
            for export in decls.exports
        ]
        try:
            await asyncio.gather(*tasks)
        except BaseException:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise
        return registry

    async def _schema_from_flow_files(self, path: Path) -> TypeRegistry:
        """Older flow: compile the aliases printed by ``gen-flow-files`` as-is."""
        text = await self.oracle.gen_flow_files(path)
        decls = scan_module(text, str(path))
        registry = TypeRegistry()
        for export in decls.exports:
            if not isinstance(export, AliasDecl):
                continue
            rhs = decls.alias_rhs(export)
            line, column = position_at(text, export.rhs_start)
            node = parse_type(rhs, str(path), line, column)
            resolved = ResolvedType(path=str(path), source=rhs, node=node)
            self._record(registry, export.name, resolved, snippet=decls.alias_source(export))
        return registry

    async def _resolve_export(
        self,
        decls: ModuleDecls,
        export: AliasDecl | ExportSpecifier,
        registry: TypeRegistry,
    ) -> None:
        resolved: ResolvedType | None
        if isinstance(export, AliasDecl):
            # export type Name = ...;
            name = export.name
            resolved = await self.type_at(decls.path, export.position)
        elif export.module is not None:
            # export type {Name} from './module';
            name = export.exported
            target = await self.oracle.find_module(export.module, decls.path)
            resolved = await self.type_by_name(target, export.local)
        else:
            # export type {Name};
            name = export.exported
            resolved = await self._local_type(decls, export.local, name)
        if resolved is not None:
            self._record(registry, name, resolved)

    async def type_by_name(
        self,
        path: str | Path,
        search_name: str,
        depth: int = 0,
        chain: Sequence[tuple[str, str]] = (),
    ) -> ResolvedType | None:
        """Find ``search_name`` among the exports of ``path``, following re-exports."""
        chain = [*chain, (str(path), search_name)]
        if depth > self.config.max_reexport_depth:
            raise RecursionLimitError(chain, self.config.max_reexport_depth)

        decls = scan_module(Path(path).read_text(encoding="utf-8"), str(path))
        for export in decls.exports:
            if isinstance(export, AliasDecl):
                if export.name == search_name:
                    return await self.type_at(decls.path, export.position)
                continue
            if export.exported != search_name:
                continue
            if export.module is not None:
                target = await self.oracle.find_module(export.module, decls.path)
                return await self.type_by_name(target, export.local, depth + 1, chain)
            return await self._local_type(decls, export.local, search_name)

        raise TypeNotFoundError(f"type {search_name} cannot be found in {path}")

    async def type_at(self, path: str | Path, position: Position) -> ResolvedType:
        """Ask flow for the expanded type at ``position`` and parse it."""
        text = await self.oracle.type_at_pos(path, position.line, position.column)
        alias = parse_type_alias(text, str(path), position.line, position.column)
        return ResolvedType(path=str(path), source=alias.source, node=alias.node)

    async def _local_type(
        self, decls: ModuleDecls, local: str, exported: str
    ) -> ResolvedType | None:
        position = decls.local_position(local)
        if position is None:
            console.print(f"[yellow]Skipping type[/] {exported}: not a type export")
            return None
        return await self.type_at(decls.path, position)

    @staticmethod
    def _record(
        registry: TypeRegistry,
        name: str,
        resolved: ResolvedType,
        snippet: str | None = None,
    ) -> None:
        result = compile_node(resolved.node)
        if isinstance(result, Unsupported):
            console.print(f"[yellow]Skipping type[/] {name}: {result.reason}")
            return
        # The declaration is re-emitted under its exported name.
        registry.add(
            TypeEntry(
                name=name,
                source_path=resolved.path,
                source_snippet=snippet or f"export type {name} = {resolved.source};",
                schema=result.schema,
            )
        )


__all__ = ["ResolvedType", "SchemaAssembler", "TypeEntry", "TypeRegistry"]
