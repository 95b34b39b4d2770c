"""
Error taxonomy for the SCORPION pipeline.

All errors are raised eagerly during validation, before any super-cell or
PANDA work starts. They derive from ``ValueError``.
"""

from __future__ import annotations


class ScorpionError(ValueError):
    """Base class for all recoverable SCORPION errors."""


class InvalidConfiguration(ScorpionError):
    """Unsupported method name or out-of-range parameter."""


class InsufficientSamples(ScorpionError):
    """Too few cells for the requested compression or embedding."""


class EmptyIntersection(ScorpionError):
    """No genes or TFs are shared between the priors and the expression data."""


class DimensionMismatch(ScorpionError):
    """Matrix shape and labels disagree, or a prior table is malformed."""
