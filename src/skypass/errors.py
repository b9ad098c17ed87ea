"""
skypass.errors — Exception Hierarchy
======================================

Every error raised by the engine derives from :class:`SkypassError`.
Errors tied to one satellite at one instant (propagation, transform) are
isolated by the batch entry points and reported per satellite instead of
aborting the batch.  Configuration errors are raised once, at setup.
"""


class SkypassError(Exception):
    """Base class for all skypass errors."""


# ── Propagation ──

class PropagationError(SkypassError):
    """The propagation model could not produce a state for this instant."""

    def __init__(self, message: str, satellite: str = "", code: int | None = None):
        super().__init__(message)
        self.satellite = satellite
        self.code = code


class DegenerateOrbitError(PropagationError):
    """Non-physical orbit (decayed, negative/near-zero perigee, e ≥ 1)."""


class NumericalDivergenceError(PropagationError):
    """Model output contained NaN or infinite values."""


class StaleElementsError(PropagationError):
    """Element set is too far from its epoch to be trusted."""


# ── Transforms ──

class TransformError(SkypassError, ValueError):
    """Coordinate transform outside its documented domain."""


# ── Prediction / configuration ──

class PredictionError(SkypassError, ValueError):
    """Invalid search window or a non-convergent boundary refinement."""


class ConfigurationError(SkypassError, ValueError):
    """Invalid threshold, frequency or other setting."""
