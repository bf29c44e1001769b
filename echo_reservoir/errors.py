"""
Error taxonomy for the reservoir engine and membrane hierarchy.

Every failure is raised to the caller and scoped to the failing call.
Nothing here is retried internally.
"""


class ReservoirError(Exception):
    """Base class for all engine and membrane errors"""


class InvalidParameter(ReservoirError, ValueError):
    """Construction-time parameter outside its valid range"""


class DimensionMismatch(ReservoirError, ValueError):
    """Vector or matrix width disagrees with an established dimension"""


class SizeMismatch(ReservoirError, ValueError):
    """Training states and targets have different sample counts"""


class EmptyInput(ReservoirError, ValueError):
    """Training called with zero samples"""


class NotTrained(ReservoirError, RuntimeError):
    """Prediction requested before the readout was trained"""


class UninitializedOutput(ReservoirError, RuntimeError):
    """Readout weights are missing"""


class MembraneNotFound(ReservoirError, LookupError):
    """No membrane with the requested id is registered"""


# Short name used by callers that mirror the hierarchy API
NotFound = MembraneNotFound


class NilTarget(ReservoirError, ValueError):
    """Object transport attempted without a target membrane"""
