"""
Core infrastructure for scorpion-pipeline.

Provides:
- Configuration management
- Error taxonomy
- Progress reporting
- Compute backend (BLAS threads, optional GPU)
"""

from scorpion_pipeline.core.config import (
    AssocMethod,
    AssociationConfig,
    MAX_ITERATIONS,
    OutputConfig,
    PandaConfig,
    RandomizationMethod,
    ScorpionConfig,
    SuperCellConfig,
)
from scorpion_pipeline.core.errors import (
    DimensionMismatch,
    EmptyIntersection,
    InsufficientSamples,
    InvalidConfiguration,
    ScorpionError,
)
from scorpion_pipeline.core.progress import (
    LoggingProgress,
    NullProgress,
    ProgressReporter,
    RecordingProgress,
    as_reporter,
)
from scorpion_pipeline.core.compute import ComputeBackend, get_compute_backend

__all__ = [
    # Config
    "ScorpionConfig",
    "SuperCellConfig",
    "AssociationConfig",
    "PandaConfig",
    "OutputConfig",
    "AssocMethod",
    "RandomizationMethod",
    "MAX_ITERATIONS",
    # Errors
    "ScorpionError",
    "InvalidConfiguration",
    "InsufficientSamples",
    "EmptyIntersection",
    "DimensionMismatch",
    # Progress
    "ProgressReporter",
    "LoggingProgress",
    "NullProgress",
    "RecordingProgress",
    "as_reporter",
    # Compute
    "ComputeBackend",
    "get_compute_backend",
]
