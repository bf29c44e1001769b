"""Unit tests for echo_reservoir/config.py."""

from __future__ import annotations

import pytest

from echo_reservoir.config import (
    EngineConfig,
    PersonaTrait,
    ReservoirParams,
    default_persona,
    load_config,
)
from echo_reservoir.errors import InvalidParameter


def test_reservoir_params_defaults():
    params = ReservoirParams()
    assert params.reservoir_size == 100
    assert params.spectral_radius == 0.95
    assert params.input_scaling == 1.0
    assert params.leak_rate == 0.3
    assert params.sparsity == 0.1
    assert params.ridge_param == 1e-8
    assert params.tree_depth == 3


def test_reservoir_params_immutable():
    params = ReservoirParams()
    with pytest.raises(AttributeError):
        params.reservoir_size = 5


def test_default_persona_in_range():
    persona = default_persona()
    assert -1 <= persona.valence <= 1
    for name in ("arousal", "dominance", "attention", "memory", "creativity"):
        assert 0 <= getattr(persona, name) <= 1


@pytest.mark.parametrize("overrides", [
    {"valence": -1.5},
    {"valence": 1.1},
    {"arousal": -0.1},
    {"attention": 2.0},
    {"memory": 1.01},
])
def test_persona_out_of_range(overrides):
    with pytest.raises(InvalidParameter):
        PersonaTrait(**overrides)


def test_engine_config_roundtrip():
    config = EngineConfig(
        params=ReservoirParams(reservoir_size=40, leak_rate=0.5),
        persona=PersonaTrait(valence=-0.3, arousal=0.9),
        seed=123,
        clamp_leak=False,
    )
    restored = EngineConfig.from_json(config.to_json())
    assert restored == config


def test_engine_config_missing_keys_take_defaults():
    config = EngineConfig.from_dict({"params": {"reservoir_size": 12}, "unknown": 1})
    assert config.params.reservoir_size == 12
    assert config.params.spectral_radius == 0.95
    assert config.persona == default_persona()
    assert config.seed is None
    assert config.clamp_leak is True


def test_load_config(tmp_path):
    path = tmp_path / "engine.json"
    path.write_text(EngineConfig(seed=9).to_json())
    assert load_config(path).seed == 9


def test_load_config_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_config(tmp_path / "absent.json")
