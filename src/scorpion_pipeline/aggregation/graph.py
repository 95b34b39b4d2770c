"""
Single-cell similarity graph.

Cells are embedded on the top principal components of their most variable
genes and linked to their k nearest neighbours in that embedding.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

import numpy as np
from scipy import sparse as sp
from sklearn.decomposition import PCA
from sklearn.neighbors import NearestNeighbors
from sklearn.preprocessing import StandardScaler

from scorpion_pipeline.core.config import SuperCellConfig
from scorpion_pipeline.core.errors import InsufficientSamples
from scorpion_pipeline.ingest.base import ExpressionMatrix

logger = logging.getLogger(__name__)

MIN_CELLS = 3
"""Smallest number of cells that still gives a usable embedding and graph."""


@dataclass
class CellGraph:
    """Undirected kNN graph over cells."""

    adjacency: sp.csr_matrix
    """Symmetric 0/1 adjacency (cells x cells), empty diagonal."""

    embedding: np.ndarray
    """PCA coordinates (cells x n_pc) the graph was built from."""

    k: int
    """Neighbours per cell actually used."""

    genes_used: list[str]
    """Variable genes used for the embedding."""

    @property
    def n_cells(self) -> int:
        return self.adjacency.shape[0]

    @property
    def n_pc(self) -> int:
        return self.embedding.shape[1]


def check_sufficient_cells(n_cells: int) -> None:
    """Raise ``InsufficientSamples`` when a graph cannot be built."""
    if n_cells < MIN_CELLS:
        raise InsufficientSamples(
            f"At least {MIN_CELLS} cells are needed to build a cell graph, got {n_cells}"
        )


def variable_gene_index(expr: ExpressionMatrix, n_genes: int) -> np.ndarray:
    """
    Indices of the ``n_genes`` rows with largest variance, in original order.

    Args:
        expr: Expression matrix (genes x cells).
        n_genes: Number of genes to keep (capped at the number of rows).

    Returns:
        Sorted row indices.
    """
    X = expr.X
    if expr.is_sparse:
        mean = np.asarray(X.mean(axis=1)).ravel()
        mean_sq = np.asarray(X.multiply(X).mean(axis=1)).ravel()
        var = mean_sq - mean**2
    else:
        var = X.var(axis=1)

    n_keep = min(n_genes, expr.n_genes)
    top = np.argsort(-var, kind="stable")[:n_keep]
    return np.sort(top)


class SimilarityGraphBuilder:
    """
    Builds the kNN graph that super-cells are carved from.

    Example:
        >>> builder = SimilarityGraphBuilder(SuperCellConfig(n_pc=10, k_knn=5))
        >>> graph = builder.build(expr)
        >>> print(graph.adjacency.nnz)
    """

    def __init__(
        self,
        config: Optional[SuperCellConfig] = None,
        n_jobs: int = 1,
        seed: int = 12345,
    ):
        """
        Initialize graph builder.

        Args:
            config: Super-cell configuration (n_pc, k_knn, n_var_genes, do_scale).
            n_jobs: Threads for the neighbour search.
            seed: Random state for the PCA solver.
        """
        self.config = config or SuperCellConfig()
        self.n_jobs = n_jobs
        self.seed = seed

    def embed(self, expr: ExpressionMatrix) -> tuple[np.ndarray, list[str]]:
        """
        Project cells onto the top principal components.

        Returns:
            Tuple of (embedding cells x n_pc, genes used).
        """
        check_sufficient_cells(expr.n_cells)

        gene_idx = variable_gene_index(expr, self.config.n_var_genes)
        X = expr.X[gene_idx]
        X = X.toarray() if sp.issparse(X) else np.asarray(X)
        X = X.T  # cells x genes

        if self.config.do_scale:
            X = StandardScaler().fit_transform(X)

        n_pc = min(self.config.n_pc, expr.n_cells - 1, X.shape[1])
        if n_pc < self.config.n_pc:
            logger.debug(f"Reducing n_pc from {self.config.n_pc} to {n_pc}")

        pca = PCA(n_components=n_pc, random_state=self.seed)
        embedding = pca.fit_transform(X)

        genes_used = [expr.gene_names[i] for i in gene_idx]
        return embedding, genes_used

    def knn_graph(self, embedding: np.ndarray) -> tuple[sp.csr_matrix, int]:
        """
        Symmetric kNN adjacency over the rows of ``embedding``.

        Returns:
            Tuple of (adjacency, k used).
        """
        n_cells = embedding.shape[0]
        check_sufficient_cells(n_cells)
        k = min(self.config.k_knn, n_cells - 1)

        nn = NearestNeighbors(n_neighbors=k, metric="euclidean", n_jobs=self.n_jobs)
        nn.fit(embedding)
        # X=None excludes each cell from its own neighbour list
        directed = nn.kneighbors_graph(n_neighbors=k, mode="connectivity")
        adjacency = directed.maximum(directed.T).tocsr()
        return adjacency, k

    def build(self, expr: ExpressionMatrix) -> CellGraph:
        """Embed cells and build their kNN graph."""
        embedding, genes_used = self.embed(expr)
        adjacency, k = self.knn_graph(embedding)
        logger.debug(
            f"Cell graph: {adjacency.shape[0]} cells, k={k}, "
            f"{adjacency.nnz // 2} edges, {embedding.shape[1]} PCs"
        )
        return CellGraph(
            adjacency=adjacency,
            embedding=embedding,
            k=k,
            genes_used=genes_used,
        )
