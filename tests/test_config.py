from pathlib import Path

import pytest
import ujson as json

from flow_jsonschema.config import GeneratorConfig, load_config, save_config


def test_defaults_match_flow_retry_strategy():
    config = GeneratorConfig()
    assert config.flow_path == "flow"
    assert config.max_retries == 20
    assert config.retry_interval == pytest.approx(0.1)
    assert config.call_timeout == pytest.approx(1.0)
    assert config.concurrency == 3
    assert config.max_reexport_depth == 5


@pytest.mark.parametrize("suffix", [".yaml", ".json"])
def test_config_roundtrip(tmp_path: Path, suffix: str):
    path = tmp_path / f"config{suffix}"
    config = GeneratorConfig(flow_path="/usr/local/bin/flow", concurrency=8, call_timeout=None)
    save_config(config, path)
    assert load_config(path) == config


def test_empty_yaml_gives_defaults(tmp_path: Path):
    path = tmp_path / "config.yml"
    path.write_text("")
    assert load_config(path) == GeneratorConfig()


@pytest.mark.parametrize(
    "payload",
    [
        {"max_retries": 0},
        {"retry_interval": 0},
        {"flow_path": "  "},
        {"unknown_knob": 1},
    ],
)
def test_invalid_config_is_rejected(tmp_path: Path, payload):
    path = tmp_path / "config.json"
    path.write_text(json.dumps(payload))
    with pytest.raises(ValueError, match="Invalid config"):
        load_config(path)
