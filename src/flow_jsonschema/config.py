"""Typed generator settings."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import ujson as json
import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator


class GeneratorConfig(BaseModel):
    """Knobs for talking to flow and fanning out type resolution."""

    flow_path: str = "flow"
    # Retry strategy for commands that tend to hang.
    max_retries: int = Field(default=20, ge=1)
    retry_interval: float = Field(default=0.1, gt=0.0)
    call_timeout: float | None = Field(default=1.0, gt=0.0)
    # Resolution fan-out and re-export following.
    concurrency: int = Field(default=3, ge=1)
    max_reexport_depth: int = Field(default=5, ge=0)
    status_notice_delay: float = Field(default=1.0, ge=0.0)
    min_position_query_version: str = "0.89.0"

    model_config = {"extra": "forbid"}

    @field_validator("flow_path")
    @classmethod
    def non_empty_flow_path(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("flow_path must not be empty")
        return value


def load_config(path: str | Path) -> GeneratorConfig:
    """Load settings from YAML or JSON."""
    path = Path(path)
    data: Any
    text = path.read_text()
    if path.suffix in {".yaml", ".yml"}:
        data = yaml.safe_load(text)
    else:
        data = json.loads(text)
    try:
        return GeneratorConfig(**(data or {}))
    except ValidationError as exc:
        raise ValueError(f"Invalid config {path}") from exc


def save_config(config: GeneratorConfig, path: str | Path) -> None:
    """Persist settings as YAML or JSON based on file suffix."""
    path = Path(path)
    if path.suffix in {".yaml", ".yml"}:
        path.write_text(yaml.safe_dump(config.model_dump(mode="python"), sort_keys=False))
    else:
        path.write_text(json.dumps(config.model_dump(mode="python"), indent=2))


__all__ = ["GeneratorConfig", "load_config", "save_config"]
