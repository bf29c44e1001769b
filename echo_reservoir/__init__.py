# Echo Reservoir - Reservoir Computing Signal for Spam Classification
#
# A fixed random recurrent network (Echo State Network) whose state is
# damped by a membrane hierarchy, plus a standalone P-system membrane
# simulator for rule-evolved symbolic signals.
#
# MODULES:
# ├── reservoir.py   - Echo State Network, spectral scaling, readout
# ├── membrane.py    - Membranes, evolution rules, hierarchy
# ├── config.py      - Parameters, persona traits, JSON config
# ├── locking.py     - Reader-writer lock for engine state
# └── errors.py      - Error taxonomy

# =============================================================================
# RESERVOIR ENGINE
# =============================================================================

from .reservoir import (
    ReservoirEngine,
    create_engine,
    estimate_spectral_radius,
)

# =============================================================================
# MEMBRANE COMPUTING
# =============================================================================

from .membrane import (
    Membrane,
    MembraneHierarchy,
    MembraneObject,
    EvolutionRule,
    create_default_rules,
)

# =============================================================================
# CONFIGURATION
# =============================================================================

from .config import (
    ReservoirParams,
    PersonaTrait,
    EngineConfig,
    default_persona,
    load_config,
)

# =============================================================================
# ERRORS
# =============================================================================

from .errors import (
    ReservoirError,
    InvalidParameter,
    DimensionMismatch,
    SizeMismatch,
    EmptyInput,
    NotTrained,
    UninitializedOutput,
    MembraneNotFound,
    NotFound,
    NilTarget,
)

from .locking import ReadWriteLock

__version__ = "0.1.0"

__all__ = [
    'ReservoirEngine',
    'create_engine',
    'estimate_spectral_radius',
    'Membrane',
    'MembraneHierarchy',
    'MembraneObject',
    'EvolutionRule',
    'create_default_rules',
    'ReservoirParams',
    'PersonaTrait',
    'EngineConfig',
    'default_persona',
    'load_config',
    'ReservoirError',
    'InvalidParameter',
    'DimensionMismatch',
    'SizeMismatch',
    'EmptyInput',
    'NotTrained',
    'UninitializedOutput',
    'MembraneNotFound',
    'NotFound',
    'NilTarget',
    'ReadWriteLock',
]
