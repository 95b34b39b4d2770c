"""
Super-cell aggregation for single-cell data.

Provides:
- Cell similarity graph (PCA embedding + kNN)
- Graph partitioning into super-cells and expression aggregation
- Null-model randomization of the expression matrix
"""

from scorpion_pipeline.aggregation.base import SuperCellData, SuperCellPartition
from scorpion_pipeline.aggregation.graph import (
    CellGraph,
    SimilarityGraphBuilder,
    check_sufficient_cells,
)
from scorpion_pipeline.aggregation.supercell import (
    SuperCellAggregator,
    make_supercells,
    n_supercells,
    partition_graph,
)
from scorpion_pipeline.aggregation.randomization import (
    permute_gene_labels,
    permute_within_genes,
    randomize_expression,
)

__all__ = [
    # Base
    "SuperCellData",
    "SuperCellPartition",
    # Graph
    "CellGraph",
    "SimilarityGraphBuilder",
    "check_sufficient_cells",
    # Super-cells
    "SuperCellAggregator",
    "make_supercells",
    "n_supercells",
    "partition_graph",
    # Randomization
    "randomize_expression",
    "permute_within_genes",
    "permute_gene_labels",
]
