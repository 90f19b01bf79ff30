"""Render a Python validator module from a resolved type registry."""

from __future__ import annotations

import pprint
import re
from pathlib import Path

from .assembler import TypeRegistry

_NON_IDENT = re.compile(r"\W")

HEADER = '''"""Validators generated by flow-jsonschema from {source}.

DO NOT EDIT.
"""

from flow_jsonschema.runtime import ValidationError, ValidatorCache

'''

FUNCTIONS = '''

def check{ident}(value, all_errors=False):
    """Check whether ``value`` is a valid {name}."""
    return VALIDATORS.check({name!r}, value, all_errors=all_errors)


def assert{ident}(value, all_errors=False):
    """Return ``value`` if it is a valid {name}; raise ValidationError otherwise."""
    return VALIDATORS.assert_valid({name!r}, value, all_errors=all_errors)
'''


def python_identifier(name: str) -> str:
    """Flow allows ``$`` in identifiers; Python does not."""
    return _NON_IDENT.sub("_", name)


def _string_block(text: str) -> str:
    lines = text.splitlines(keepends=True) or [""]
    body = "\n".join(f"    {line!r}" for line in lines)
    return f"(\n{body}\n)"


def render_validator_module(registry: TypeRegistry, source_path: str | Path) -> str:
    names = registry.names()
    flow_source = "\n".join(registry.sources().values())
    schemas = pprint.pformat(registry.schemas(), indent=4, width=100, sort_dicts=False)

    parts = [HEADER.format(source=Path(source_path).as_posix())]
    parts.append(f"FLOW_SOURCE = {_string_block(flow_source)}\n\n")
    parts.append(f"SCHEMAS = {schemas}\n\n")
    parts.append("VALIDATORS = ValidatorCache(SCHEMAS)\n")
    for name in names:
        parts.append(FUNCTIONS.format(ident=python_identifier(name), name=name))

    exported = ["ValidationError", "VALIDATORS"]
    for name in names:
        ident = python_identifier(name)
        exported.extend([f"check{ident}", f"assert{ident}"])
    listing = "\n".join(f"    {item!r}," for item in exported)
    parts.append(f"\n\n__all__ = [\n{listing}\n]\n")
    return "".join(parts)


__all__ = ["python_identifier", "render_validator_module"]
