"""
Gene association networks.

Correlation-based (Pearson, Spearman) and regression-based (pcNet)
estimators over super-cell expression.
"""

from scorpion_pipeline.correlation.pearson import (
    pearson_correlation,
    PearsonCorrelator,
)
from scorpion_pipeline.correlation.spearman import (
    spearman_correlation,
    SpearmanCorrelator,
)
from scorpion_pipeline.correlation.pcnet import (
    pcnet,
    PCNetEstimator,
)
from scorpion_pipeline.correlation.association import (
    AssociationBuilder,
    co_presence_fraction,
    gene_association,
)

__all__ = [
    # Pearson
    "pearson_correlation",
    "PearsonCorrelator",
    # Spearman
    "spearman_correlation",
    "SpearmanCorrelator",
    # pcNet
    "pcnet",
    "PCNetEstimator",
    # Builder
    "AssociationBuilder",
    "co_presence_fraction",
    "gene_association",
]
