"""
Reservoir Configuration

Implements:
- ReservoirParams: hyper-parameters of the echo state network
- PersonaTrait: affective/cognitive modifiers shared by both subsystems
- EngineConfig: everything needed to build a reproducible engine
- JSON round-trip and file loading

Parameters are immutable once built. Range checks that decide whether an
engine may exist at all live in the engine constructor; persona ranges are
checked here because a persona is meaningless outside them.
"""

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional, Union

from .errors import InvalidParameter

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReservoirParams:
    """Hyper-parameters for the echo state network"""
    # Number of neurons in the reservoir layer
    reservoir_size: int = 100

    # Dominant eigenvalue magnitude after scaling (< 1 for echo state property)
    spectral_radius: float = 0.95

    # Input weights are uniform in [-input_scaling, +input_scaling]
    input_scaling: float = 1.0

    # Fraction of new activation mixed into the state each step
    leak_rate: float = 0.3

    # Probability that a recurrent connection exists
    sparsity: float = 0.1

    # L2 penalty on readout weights
    ridge_param: float = 1e-8

    # Depth of the companion membrane hierarchy
    tree_depth: int = 3

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to dictionary."""
        return {
            'reservoir_size': self.reservoir_size,
            'spectral_radius': self.spectral_radius,
            'input_scaling': self.input_scaling,
            'leak_rate': self.leak_rate,
            'sparsity': self.sparsity,
            'ridge_param': self.ridge_param,
            'tree_depth': self.tree_depth,
        }

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> 'ReservoirParams':
        """Deserialize from dictionary. Missing keys take defaults."""
        defaults = cls()
        return cls(
            reservoir_size=int(d.get('reservoir_size', defaults.reservoir_size)),
            spectral_radius=float(d.get('spectral_radius', defaults.spectral_radius)),
            input_scaling=float(d.get('input_scaling', defaults.input_scaling)),
            leak_rate=float(d.get('leak_rate', defaults.leak_rate)),
            sparsity=float(d.get('sparsity', defaults.sparsity)),
            ridge_param=float(d.get('ridge_param', defaults.ridge_param)),
            tree_depth=int(d.get('tree_depth', defaults.tree_depth)),
        )


_PERSONA_RANGES = {
    'valence': (-1.0, 1.0),
    'arousal': (0.0, 1.0),
    'dominance': (0.0, 1.0),
    'attention': (0.0, 1.0),
    'memory': (0.0, 1.0),
    'creativity': (0.0, 1.0),
}


@dataclass(frozen=True)
class PersonaTrait:
    """
    Personality traits mapped onto numeric coefficients.

    valence scales activations, arousal sets companion membrane
    permeability, attention scales the leak rate and memory the
    neighbour smoothing rate. dominance and creativity are carried
    for callers but not read by the engine.
    """
    # Affective dimensions
    valence: float = 0.0     # Positive/negative tone (-1 to 1)
    arousal: float = 0.0     # Activation/energy (0 to 1)
    dominance: float = 0.0   # Control/power (0 to 1)

    # Cognitive dimensions
    attention: float = 0.0   # Focus (0 to 1)
    memory: float = 0.0      # Retention (0 to 1)
    creativity: float = 0.0  # Novelty (0 to 1)

    def __post_init__(self):
        for name, (lo, hi) in _PERSONA_RANGES.items():
            value = getattr(self, name)
            if not lo <= value <= hi:
                raise InvalidParameter(
                    f"persona {name} must be in [{lo}, {hi}], got {value}"
                )

    def to_dict(self) -> Dict[str, float]:
        """Serialize to dictionary."""
        return {name: getattr(self, name) for name in _PERSONA_RANGES}

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> 'PersonaTrait':
        """Deserialize from dictionary. Missing traits are 0."""
        return cls(**{name: float(d.get(name, 0.0)) for name in _PERSONA_RANGES})


def default_persona() -> PersonaTrait:
    """Balanced persona: slightly positive, alert, attentive."""
    return PersonaTrait(
        valence=0.2,
        arousal=0.6,
        dominance=0.5,
        attention=0.8,
        memory=0.7,
        creativity=0.5,
    )


@dataclass
class EngineConfig:
    """
    Complete engine configuration.

    A fixed seed makes weight initialization and the stochastic
    membrane decay reproducible run to run.
    """
    params: ReservoirParams = field(default_factory=ReservoirParams)
    persona: PersonaTrait = field(default_factory=default_persona)
    seed: Optional[int] = None

    # Clamp persona-scaled leak to [0, 1]
    clamp_leak: bool = True

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to dictionary."""
        return {
            'params': self.params.to_dict(),
            'persona': self.persona.to_dict(),
            'seed': self.seed,
            'clamp_leak': self.clamp_leak,
        }

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> 'EngineConfig':
        """Deserialize from dictionary. Unknown keys are ignored."""
        persona = d.get('persona')
        seed = d.get('seed')
        return cls(
            params=ReservoirParams.from_dict(d.get('params', {})),
            persona=PersonaTrait.from_dict(persona) if persona is not None else default_persona(),
            seed=int(seed) if seed is not None else None,
            clamp_leak=bool(d.get('clamp_leak', True)),
        )

    def to_json(self) -> str:
        """Serialize to JSON string."""
        return json.dumps(self.to_dict(), indent=2)

    @classmethod
    def from_json(cls, s: str) -> 'EngineConfig':
        """Deserialize from JSON string."""
        return cls.from_dict(json.loads(s))


def load_config(path: Union[str, Path]) -> EngineConfig:
    """Load an EngineConfig from a JSON file."""
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    with open(path, 'r') as f:
        config = EngineConfig.from_json(f.read())

    logger.debug("loaded engine config from %s", path)
    return config
