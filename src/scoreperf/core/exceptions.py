"""
Error taxonomy for scoreperf.

All errors derive from ValueError so callers that already guard metric
computations with ``except ValueError`` keep working.
"""


class ScorePerfError(ValueError):
    """Base class for all scoreperf errors."""


class InvalidInputError(ScorePerfError):
    """
    Caller-supplied data has the wrong shape or type: unequal lengths,
    mismatched column sets across populations, non-scalar values,
    non-positive bin width or group count.
    """


class DegenerateInputError(ScorePerfError):
    """
    The statistic is undefined for the given data, e.g. only one class
    is present or nothing is left after dropping missing labels.
    """


class ArithmeticDomainError(ScorePerfError, ArithmeticError):
    """A value fell outside the domain of a guarded computation."""
