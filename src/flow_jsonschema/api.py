"""Public API for generating schemas and validator modules."""

from __future__ import annotations

import asyncio
from pathlib import Path

import ujson as json

from .assembler import SchemaAssembler, TypeRegistry
from .codegen import render_validator_module
from .config import GeneratorConfig, load_config
from .oracle import FlowOracle

__all__ = [
    "GeneratorConfig",
    "build_oracle",
    "default_output_path",
    "dump_schemas",
    "load_config",
    "make_schema",
    "make_validator_source",
    "write_validator",
]


def build_oracle(config: GeneratorConfig) -> FlowOracle:
    """Create the flow command wrapper used by the assembler."""
    return FlowOracle.from_config(config)


def make_schema(
    path: str | Path,
    config: GeneratorConfig | None = None,
    oracle: FlowOracle | None = None,
) -> TypeRegistry:
    """Resolve and compile every exported type of ``path``."""
    config = config or GeneratorConfig()
    assembler = SchemaAssembler(oracle or build_oracle(config), config)
    return asyncio.run(assembler.make_schema(path))


def make_validator_source(
    path: str | Path,
    config: GeneratorConfig | None = None,
    oracle: FlowOracle | None = None,
) -> str:
    """Return the text of a validator module for ``path``."""
    registry = make_schema(path, config=config, oracle=oracle)
    return render_validator_module(registry, path)


def default_output_path(path: str | Path) -> Path:
    """``types.js`` -> ``types_validator.py`` next to the input."""
    path = Path(path)
    if path.suffix != ".js":
        msg = f"Input must be a .js file when no output path is given: {path}"
        raise ValueError(msg)
    return path.with_name(f"{path.stem}_validator.py")


def write_validator(
    src_path: str | Path,
    dst_path: str | Path | None = None,
    config: GeneratorConfig | None = None,
    oracle: FlowOracle | None = None,
) -> Path:
    """Generate and write a validator module.

    The destination is only touched after generation succeeds, so a failed
    run leaves any previous output intact.
    """
    dst = Path(dst_path) if dst_path is not None else default_output_path(src_path)
    source = make_validator_source(src_path, config=config, oracle=oracle)
    dst.write_text(source, encoding="utf-8")
    return dst


def dump_schemas(registry: TypeRegistry, path: str | Path | None = None) -> str:
    """Serialize the name -> schema map, optionally writing it to ``path``."""
    text = json.dumps(registry.schemas(), indent=2)
    if path is not None:
        Path(path).write_text(text)
    return text
