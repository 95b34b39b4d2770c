"""
SCORPION Pipeline - Single-cell gene regulatory network inference.

This package provides:
- Super-cell aggregation (PCA kNN graph, graph-constrained partitioning)
- Gene association networks (Pearson, Spearman, pcNet)
- PANDA message passing over motif, PPI and co-expression priors
- Null-model randomization of the expression matrix
- CSV/JSON export and a command-line interface

Example:
    >>> from scorpion_pipeline import scorpion
    >>>
    >>> result = scorpion(
    ...     tf_motifs=motif,
    ...     gex_matrix=counts,
    ...     ppi_net=ppi,
    ...     gamma_value=10,
    ...     alpha_value=0.8,
    ... )
    >>> result.regNet.shape
"""

__version__ = "0.1.0"

# Core infrastructure
from scorpion_pipeline.core.config import ScorpionConfig
from scorpion_pipeline.core.errors import (
    DimensionMismatch,
    EmptyIntersection,
    InsufficientSamples,
    InvalidConfiguration,
    ScorpionError,
)
from scorpion_pipeline.core.progress import ProgressReporter, RecordingProgress

# Subpackages are imported as needed:
#   from scorpion_pipeline.aggregation import SuperCellAggregator
#   from scorpion_pipeline.correlation import gene_association
#   from scorpion_pipeline.panda import PandaSolver
#   from scorpion_pipeline.export import CSVWriter

# Main Pipeline class
from scorpion_pipeline.export.formatter import ScorpionResult
from scorpion_pipeline.pipeline import Pipeline, scorpion

__all__ = [
    # Version
    "__version__",
    # Pipeline
    "Pipeline",
    "ScorpionResult",
    "scorpion",
    # Core
    "ScorpionConfig",
    "ProgressReporter",
    "RecordingProgress",
    # Errors
    "ScorpionError",
    "InvalidConfiguration",
    "InsufficientSamples",
    "EmptyIntersection",
    "DimensionMismatch",
]
