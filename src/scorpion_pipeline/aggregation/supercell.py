"""
Super-cell aggregation.

Partitions the single-cell kNN graph into ``round(n_cells / gamma)`` groups
by ward agglomeration restricted to graph edges, then averages (or sums)
expression within each group. Compressing noisy single cells this way gives
the smoothed expression the association network is computed from.
"""

from __future__ import annotations

import logging
import warnings
from typing import Optional

import numpy as np
import pandas as pd
from scipy import sparse as sp
from sklearn.cluster import AgglomerativeClustering

from scorpion_pipeline.aggregation.base import SuperCellData, SuperCellPartition
from scorpion_pipeline.aggregation.graph import CellGraph, SimilarityGraphBuilder
from scorpion_pipeline.core.config import SuperCellConfig
from scorpion_pipeline.core.progress import NullProgress, ProgressReporter
from scorpion_pipeline.ingest.base import ExpressionMatrix

logger = logging.getLogger(__name__)


def n_supercells(n_cells: int, gamma: float) -> int:
    """Number of super-cells for ``n_cells`` at graining level ``gamma``."""
    return int(min(n_cells, max(1, round(n_cells / gamma))))


def _relabel_by_appearance(labels: np.ndarray) -> np.ndarray:
    """Renumber labels 0..n-1 in order of first occurrence."""
    uniq, first = np.unique(labels, return_index=True)
    order = uniq[np.argsort(first)]
    mapping = {old: new for new, old in enumerate(order)}
    return np.array([mapping[x] for x in labels], dtype=np.int64)


def partition_graph(graph: CellGraph, n_groups: int) -> SuperCellPartition:
    """
    Cut the cell graph into ``n_groups`` connected groups.

    Args:
        graph: kNN graph with the embedding it was built on.
        n_groups: Number of super-cells.

    Returns:
        Deterministic partition; group ids follow first cell occurrence.
    """
    n_cells = graph.n_cells
    cell_names = [str(i) for i in range(n_cells)]

    if n_groups <= 1:
        return SuperCellPartition(np.zeros(n_cells, dtype=np.int64), cell_names)
    if n_groups >= n_cells:
        return SuperCellPartition(np.arange(n_cells, dtype=np.int64), cell_names)

    clustering = AgglomerativeClustering(
        n_clusters=n_groups,
        connectivity=graph.adjacency,
        linkage="ward",
    )
    with warnings.catch_warnings():
        # disconnected kNN graphs are completed by sklearn, which is expected here
        warnings.filterwarnings("ignore", message=".*connected components.*")
        labels = clustering.fit_predict(graph.embedding)

    return SuperCellPartition(_relabel_by_appearance(labels), cell_names)


def aggregate_partition(
    expr: ExpressionMatrix,
    partition: SuperCellPartition,
    method: str = "mean",
) -> pd.DataFrame:
    """
    Combine member-cell expression per super-cell.

    Args:
        expr: Expression matrix (genes x cells).
        partition: Cell assignment.
        method: "mean" or "sum".

    Returns:
        Expression DataFrame (genes x super-cells), columns ``SC_1..SC_n``.
    """
    n_groups = partition.n_groups
    membership = sp.csr_matrix(
        (
            np.ones(expr.n_cells),
            (np.arange(expr.n_cells), partition.membership),
        ),
        shape=(expr.n_cells, n_groups),
    )

    aggregated = expr.X @ membership
    if sp.issparse(aggregated):
        aggregated = aggregated.toarray()
    aggregated = np.asarray(aggregated, dtype=np.float64)

    if method == "mean":
        aggregated = aggregated / partition.sizes[np.newaxis, :]
    elif method != "sum":
        raise ValueError(f"Unknown aggregation method: {method}")

    columns = [f"SC_{i + 1}" for i in range(n_groups)]
    return pd.DataFrame(aggregated, index=expr.gene_names, columns=columns)


class SuperCellAggregator:
    """
    Compresses single cells into super-cells.

    Example:
        >>> aggregator = SuperCellAggregator(SuperCellConfig(gamma=10))
        >>> result = aggregator.aggregate(expr)
        >>> print(f"Created {result.n_units} super-cells")
    """

    def __init__(
        self,
        config: Optional[SuperCellConfig] = None,
        n_jobs: int = 1,
        seed: int = 12345,
        progress: Optional[ProgressReporter] = None,
    ):
        """
        Initialize super-cell aggregator.

        Args:
            config: Super-cell configuration.
            n_jobs: Threads for the neighbour search.
            seed: Random state for PCA.
            progress: Receives a notification once aggregation finishes.
        """
        self.config = config or SuperCellConfig()
        self.graph_builder = SimilarityGraphBuilder(self.config, n_jobs=n_jobs, seed=seed)
        self.progress = progress or NullProgress()

    def aggregate(
        self,
        expr: ExpressionMatrix,
        graph: Optional[CellGraph] = None,
    ) -> SuperCellData:
        """
        Build super-cells from an expression matrix.

        Args:
            expr: Expression matrix (genes x cells).
            graph: Precomputed cell graph; built from ``expr`` when omitted.

        Returns:
            Super-cell data with the aggregated matrix and partition.
        """
        n_groups = n_supercells(expr.n_cells, self.config.gamma)

        if n_groups == 1:
            # gamma >= n_cells collapses everything into one super-cell
            logger.warning(
                f"gamma={self.config.gamma} >= {expr.n_cells} cells; "
                "aggregating all cells into a single super-cell"
            )
            partition = SuperCellPartition(
                np.zeros(expr.n_cells, dtype=np.int64), list(expr.cell_names)
            )
        else:
            if graph is None:
                graph = self.graph_builder.build(expr)
            partition = partition_graph(graph, n_groups)
            partition.cell_names = list(expr.cell_names)

        expression = aggregate_partition(expr, partition, self.config.aggregation)
        sizes = partition.sizes

        self.progress.phase(
            f"Super-cells: {expr.n_cells} cells -> {partition.n_groups} super-cells"
        )

        return SuperCellData(
            expression=expression,
            partition=partition,
            gamma=self.config.gamma,
            aggregation_type=self.config.aggregation,
            stats={
                "n_cells": expr.n_cells,
                "min_size": int(sizes.min()),
                "max_size": int(sizes.max()),
                "mean_size": float(sizes.mean()),
            },
        )


def make_supercells(
    expr: ExpressionMatrix,
    gamma: float = 10.0,
    n_pc: int = 25,
    k_knn: int = 5,
    aggregation: str = "mean",
    seed: int = 12345,
) -> SuperCellData:
    """
    Aggregate single cells into super-cells.

    Convenience function for SuperCellAggregator.

    Args:
        expr: Expression matrix (genes x cells).
        gamma: Cells per super-cell.
        n_pc: Principal components for the kNN graph.
        k_knn: Neighbours per cell.
        aggregation: "mean" or "sum".
        seed: Random state for PCA.

    Returns:
        Super-cell data.
    """
    config = SuperCellConfig(gamma=gamma, n_pc=n_pc, k_knn=k_knn, aggregation=aggregation)
    config.validate()
    return SuperCellAggregator(config, seed=seed).aggregate(expr)
