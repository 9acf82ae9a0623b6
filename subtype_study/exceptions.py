"""
Error taxonomy for the subtype classification study.

Every error derives from ``SubtypingError``, which is itself a ``ValueError``
so callers that already guard input validation with ``ValueError`` keep
working.
"""


class SubtypingError(ValueError):
    """Base class for all errors raised by the study pipeline."""


class InvalidFractionError(SubtypingError):
    """Train fraction outside the open interval (0, 1)."""


class InsufficientSamplesError(SubtypingError):
    """A class has too few samples to stratify a split."""


class EmptyFeatureSetError(SubtypingError):
    """A filtering stage was asked to produce, or was given, no features."""


class NonConvergenceError(SubtypingError):
    """A numerical fit failed (perfect separation, singular Hessian, ...)."""


class DegenerateSelectionError(SubtypingError):
    """A feature selector ended with zero usable features."""


class EmptyGridError(SubtypingError):
    """A hyperparameter grid expands to zero configurations."""
