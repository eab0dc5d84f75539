"""
Exception types raised by the token match engine.
"""

__all__ = [
    "SimulationError",
    "ConfigurationError",
    "InvariantViolation",
    "EmptyBagError",
]


class SimulationError(RuntimeError):
    """Base class for every error raised by the engine."""


class ConfigurationError(SimulationError):
    """Raised when tuning tables or zone templates are malformed or incomplete."""


class InvariantViolation(SimulationError):
    """Raised when match state leaves its allowed domain (ball off grid, foreign team id)."""


class EmptyBagError(InvariantViolation):
    """Raised when a draw is attempted on a bag with no positive weight."""
