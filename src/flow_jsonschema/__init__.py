"""
flow_jsonschema
===============

Generate JSON Schema validators from the exported types of flow-typed
JavaScript modules, using the flow server to expand type aliases.
"""

from importlib.metadata import PackageNotFoundError, version


def get_version() -> str:
    """Return the installed package version or '0.0.0' when unavailable."""
    try:
        return version("flow-jsonschema")
    except PackageNotFoundError:
        return "0.0.0"


__all__ = ["get_version"]
