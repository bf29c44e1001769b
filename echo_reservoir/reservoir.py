"""
Reservoir Computing Layer

Implements:
- Echo State Network with a fixed sparse random recurrent reservoir
- Spectral radius control via power iteration
- Persona-modulated leaky-integrator update
- Membrane-driven stochastic decay of the state
- Neighbour smoothing over the recurrent graph
- Trainable linear readout (ridge-penalised gradient descent)

Key insight: A random recurrent network with fixed weights gives a
nonlinear, fading-memory summary of its input history. Only the
readout is trained, so the reservoir costs nothing to learn.

State and weights are guarded by a reader-writer lock: update, reset
and training are exclusive, state reads and predictions are shared.
"""

import logging
from typing import Dict, List, Optional, Sequence

import numpy as np

from .config import EngineConfig, PersonaTrait, ReservoirParams, default_persona
from .errors import (
    DimensionMismatch,
    EmptyInput,
    InvalidParameter,
    NotTrained,
    SizeMismatch,
    UninitializedOutput,
)
from .locking import ReadWriteLock
from .membrane import MembraneHierarchy

logger = logging.getLogger(__name__)


# Power iteration steps for spectral radius estimation
POWER_ITERATIONS = 50

# Readout training schedule
LEARNING_RATE = 0.01
TRAINING_EPOCHS = 100

# Persona coupling coefficients
VALENCE_GAIN = 0.1
ATTENTION_LEAK_GAIN = 0.2
MEMBRANE_DECAY_PER_LEVEL = 0.05
SMOOTHING_RATE = 0.01


def estimate_spectral_radius(
    weights: np.ndarray,
    rng: Optional[np.random.Generator] = None,
    iterations: int = POWER_ITERATIONS,
    start: Optional[np.ndarray] = None
) -> float:
    """
    Estimate the dominant eigenvalue magnitude by power iteration.

    Starts from a random (or given) normalized vector, repeats
    multiply-and-renormalize, then returns |v^T W v|. Returns 0.0 for a
    degenerate matrix whose iterate collapses to zero.
    """
    n = weights.shape[0]
    if n == 0:
        return 0.0

    if start is not None:
        v = np.array(start, dtype=np.float64)
    else:
        rng = rng if rng is not None else np.random.default_rng()
        v = rng.standard_normal(n)

    norm = np.linalg.norm(v)
    if norm == 0:
        return 0.0
    v = v / norm

    for _ in range(iterations):
        v_next = weights @ v
        norm = np.linalg.norm(v_next)
        if norm == 0:
            return 0.0
        v = v_next / norm

    # Rayleigh quotient on the converged vector
    return float(abs(v @ (weights @ v)))


class ReservoirEngine:
    """
    Echo State Network reservoir

    A sparse random recurrent network with:
    - Input weights sized lazily from the first input
    - Fixed recurrent weights scaled to the configured spectral radius
    - Output weights that exist only once trained

    After the leaky update, a companion membrane hierarchy damps the
    state stochastically and each neuron is nudged toward the mean of
    its recurrent neighbours.
    """

    def __init__(
        self,
        params: Optional[ReservoirParams] = None,
        persona: Optional[PersonaTrait] = None,
        seed: Optional[int] = None,
        rng: Optional[np.random.Generator] = None,
        hierarchy: Optional[MembraneHierarchy] = None,
        clamp_leak: bool = True
    ):
        """
        Args:
            params: network hyper-parameters (defaults if None)
            persona: trait modifiers (balanced default if None)
            seed: seed for the engine's generator when rng is not given
            rng: explicit generator, takes precedence over seed
            hierarchy: shared hierarchy for the decay pass; by default the
                engine builds its own, independent of any caller hierarchy
            clamp_leak: clamp the persona-scaled leak rate to [0, 1]
        """
        self.params = params or ReservoirParams()
        self.persona = persona or default_persona()
        self.clamp_leak = clamp_leak
        _validate_params(self.params)

        self.n_reservoir = self.params.reservoir_size
        self.rng = rng if rng is not None else np.random.default_rng(seed)

        self._lock = ReadWriteLock()

        self.W_in: Optional[np.ndarray] = None
        self.W_out: Optional[np.ndarray] = None
        self._trained = False

        # Reservoir state
        self.state = np.zeros(self.n_reservoir)

        self._init_weights()

        if hierarchy is None:
            # Arousal opens every non-root membrane equally
            hierarchy = MembraneHierarchy(
                self.params.tree_depth,
                permeability=0.5 + 0.5 * self.persona.arousal,
                with_rules=False,
            )
        self.hierarchy = hierarchy

    def _init_weights(self) -> None:
        """Initialize fixed recurrent weights with target spectral radius"""
        n = self.n_reservoir

        mask = self.rng.random((n, n)) < self.params.sparsity
        W = np.where(mask, self.rng.standard_normal((n, n)), 0.0)

        estimate = estimate_spectral_radius(W, self.rng)
        if estimate > 0:
            W *= self.params.spectral_radius / estimate
        self.W_res = W
        self.spectral_estimate = estimate

        # Recurrent neighbours of each neuron, for smoothing
        self._neighbors: List[np.ndarray] = [np.flatnonzero(row) for row in W]

        logger.debug("reservoir initialized: n=%d connections=%d estimate=%.4f",
                     n, int(mask.sum()), estimate)

    @property
    def effective_leak(self) -> float:
        leak = self.params.leak_rate * (1.0 + ATTENTION_LEAK_GAIN * self.persona.attention)
        if self.clamp_leak:
            leak = min(max(leak, 0.0), 1.0)
        return leak

    @property
    def trained(self) -> bool:
        return self._trained

    @property
    def input_dim(self) -> Optional[int]:
        return None if self.W_in is None else self.W_in.shape[1]

    # =========================================================================
    # INPUT WEIGHTS
    # =========================================================================

    def _set_input_weights(self, input_dim: int) -> None:
        scale = self.params.input_scaling
        self.W_in = self.rng.uniform(-scale, scale, size=(self.n_reservoir, input_dim))
        logger.debug("input weights sized: %d x %d", self.n_reservoir, input_dim)

    def set_input_weights(self, input_dim: int) -> None:
        """Draw fresh input weights, discarding any previous ones"""
        if input_dim <= 0:
            raise InvalidParameter(f"input dimension must be positive, got {input_dim}")
        with self._lock.write():
            self._set_input_weights(input_dim)

    # =========================================================================
    # DYNAMICS
    # =========================================================================

    def update(self, input_vec: Sequence[float]) -> None:
        """
        Run one step of reservoir dynamics

        x(t+1) = (1-a)x(t) + a·g·tanh(W_in·u(t) + W_res·x(t))

        with g = 1 + 0.1·valence and a the attention-scaled leak,
        followed by membrane decay and neighbour smoothing.
        """
        u = np.asarray(input_vec, dtype=np.float64)
        if u.ndim != 1:
            raise DimensionMismatch(f"input must be a vector, got shape {u.shape}")
        if len(u) == 0:
            raise DimensionMismatch("input vector is empty")

        with self._lock.write():
            if self.W_in is None:
                self._set_input_weights(len(u))

            if len(u) != self.W_in.shape[1]:
                raise DimensionMismatch(
                    f"input dimension mismatch: expected {self.W_in.shape[1]}, got {len(u)}"
                )

            pre_activation = self.W_in @ u + self.W_res @ self.state
            activation = np.tanh(pre_activation) * (1.0 + VALENCE_GAIN * self.persona.valence)

            leak = self.effective_leak
            self.state = (1 - leak) * self.state + leak * activation

            self._apply_membrane_decay()
            self._apply_smoothing()

    def _apply_membrane_decay(self) -> None:
        """Each membrane that fires scales the whole state by its level factor"""
        for membrane in self.hierarchy.membranes:
            if self.rng.random() < membrane.permeability:
                self.state *= 1.0 - MEMBRANE_DECAY_PER_LEVEL * membrane.level

    def _apply_smoothing(self) -> None:
        """Nudge each neuron toward the mean of its recurrent neighbours"""
        rate = SMOOTHING_RATE * self.persona.memory
        state = self.state
        # In place and in index order: later neurons see earlier corrections
        for i, neighbors in enumerate(self._neighbors):
            if len(neighbors) == 0:
                continue
            state[i] -= rate * (state[i] - state[neighbors].mean())

    def get_state(self) -> np.ndarray:
        """Copy of the current state"""
        with self._lock.read():
            return self.state.copy()

    def reset(self) -> None:
        """Reset reservoir state; weights are untouched"""
        with self._lock.write():
            self.state = np.zeros(self.n_reservoir)

    # =========================================================================
    # READOUT
    # =========================================================================

    def train_output(self, states, targets) -> None:
        """
        Train output weights by ridge-penalised gradient descent

        100 passes over all samples, learning rate 0.01. If the readout
        already exists, training continues from it.
        """
        self._train(states, targets, from_scratch=False)

    def continue_training(self, states, targets) -> None:
        """Continue optimizing the existing readout"""
        self._train(states, targets, from_scratch=False)

    def train_from_scratch(self, states, targets) -> None:
        """Discard any existing readout and train a fresh one"""
        self._train(states, targets, from_scratch=True)

    def _train(self, states, targets, from_scratch: bool) -> None:
        if len(states) != len(targets):
            raise SizeMismatch(
                f"number of states ({len(states)}) must match number of targets ({len(targets)})"
            )
        if len(states) == 0:
            raise EmptyInput("no training data provided")

        try:
            X = np.asarray(states, dtype=np.float64)
            Y = np.asarray(targets, dtype=np.float64)
        except ValueError as e:
            raise DimensionMismatch(f"ragged training rows: {e}") from e
        if X.ndim != 2 or Y.ndim != 2:
            raise DimensionMismatch("states and targets must be 2-D (samples x features)")

        n_features = X.shape[1]
        n_outputs = Y.shape[1]

        with self._lock.write():
            if from_scratch or self.W_out is None:
                W = np.zeros((n_outputs, n_features))
            elif self.W_out.shape != (n_outputs, n_features):
                # Different readout shape: start over
                logger.debug("readout reallocated: %s -> %s",
                             self.W_out.shape, (n_outputs, n_features))
                W = np.zeros((n_outputs, n_features))
            else:
                W = self.W_out.copy()

            ridge = self.params.ridge_param
            for _ in range(TRAINING_EPOCHS):
                for x, y in zip(X, Y):
                    error = W @ x - y
                    gradient = np.outer(error, x) + ridge * W
                    W -= LEARNING_RATE * gradient

            self.W_out = W
            self._trained = True

        logger.debug("esn trained: states=%d epochs=%d", len(X), TRAINING_EPOCHS)

    def predict(self) -> np.ndarray:
        """
        Readout of the current state, one unbounded value per output row.

        Squashing (e.g. a logistic) is up to the caller.
        """
        with self._lock.read():
            if not self._trained:
                raise NotTrained("network not trained")
            if self.W_out is None:
                raise UninitializedOutput("output weights not initialized")
            if self.W_out.shape[1] != self.n_reservoir:
                raise DimensionMismatch(
                    f"readout expects {self.W_out.shape[1]} features, state has {self.n_reservoir}"
                )
            return self.W_out @ self.state

    def get_stats(self) -> Dict:
        """Get reservoir statistics"""
        with self._lock.read():
            return {
                'n_reservoir': self.n_reservoir,
                'spectral_radius': self.params.spectral_radius,
                'spectral_estimate': self.spectral_estimate,
                'leak_rate': self.params.leak_rate,
                'effective_leak': self.effective_leak,
                'state_mean': float(np.mean(self.state)),
                'state_std': float(np.std(self.state)),
                'input_dim': self.input_dim,
                'trained': self._trained,
                'n_membranes': len(self.hierarchy),
            }


def _validate_params(params: ReservoirParams) -> None:
    if params.reservoir_size <= 0:
        raise InvalidParameter("reservoir size must be positive")
    if not 0.0 < params.spectral_radius < 1.0:
        raise InvalidParameter("spectral radius must be in (0, 1)")
    if not 0.0 < params.leak_rate <= 1.0:
        raise InvalidParameter("leak rate must be in (0, 1]")
    if not 0.0 <= params.sparsity <= 1.0:
        raise InvalidParameter("sparsity must be in [0, 1]")
    if params.ridge_param < 0:
        raise InvalidParameter("ridge parameter must be non-negative")
    if params.tree_depth < 0:
        raise InvalidParameter("tree depth must be non-negative")


def create_engine(config: Optional[EngineConfig] = None) -> ReservoirEngine:
    """
    Factory function to create an engine from a configuration.

    Args:
        config: full engine configuration (defaults if None)

    Returns:
        Configured ReservoirEngine instance
    """
    config = config or EngineConfig()
    return ReservoirEngine(
        config.params,
        config.persona,
        seed=config.seed,
        clamp_leak=config.clamp_leak,
    )
