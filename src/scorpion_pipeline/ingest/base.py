"""
Expression matrix abstraction.

Input may arrive as a dense array, a DataFrame, a scipy sparse matrix or an
AnnData object. It is normalized here, at the ingestion boundary, into one
``ExpressionMatrix`` (genes x cells) with a CSR or dense backing.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Optional, Sequence, Union

import numpy as np
import pandas as pd
from scipy import sparse as sp

from scorpion_pipeline.core.errors import DimensionMismatch

if TYPE_CHECKING:
    import anndata as ad


@dataclass
class ExpressionMatrix:
    """
    Genes x cells expression matrix with labels.

    Example:
        >>> expr = ExpressionMatrix.from_any(counts_df)
        >>> print(f"{expr.n_genes} genes x {expr.n_cells} cells")
    """

    X: Union[np.ndarray, sp.csr_matrix]
    """Expression values (genes x cells)."""

    gene_names: list[str]
    """Gene labels (rows)."""

    cell_names: list[str]
    """Cell labels (columns)."""

    def __post_init__(self):
        if sp.issparse(self.X):
            self.X = sp.csr_matrix(self.X, dtype=np.float64)
        else:
            self.X = np.asarray(self.X, dtype=np.float64)
            if self.X.ndim != 2:
                raise DimensionMismatch(
                    f"Expression matrix must be 2D, got {self.X.ndim}D"
                )

        self.gene_names = [str(g) for g in self.gene_names]
        self.cell_names = [str(c) for c in self.cell_names]

        n_genes, n_cells = self.X.shape
        if len(self.gene_names) != n_genes:
            raise DimensionMismatch(
                f"{len(self.gene_names)} gene labels for {n_genes} matrix rows"
            )
        if len(self.cell_names) != n_cells:
            raise DimensionMismatch(
                f"{len(self.cell_names)} cell labels for {n_cells} matrix columns"
            )
        duplicated = pd.Index(self.gene_names).duplicated()
        if duplicated.any():
            dups = sorted(set(np.asarray(self.gene_names)[duplicated]))[:5]
            raise DimensionMismatch(f"Duplicated gene labels: {dups}")

    @property
    def n_genes(self) -> int:
        return self.X.shape[0]

    @property
    def n_cells(self) -> int:
        return self.X.shape[1]

    @property
    def is_sparse(self) -> bool:
        """Check if expression matrix is sparse."""
        return sp.issparse(self.X)

    def to_dense(self) -> np.ndarray:
        """Dense copy of the values."""
        if self.is_sparse:
            return self.X.toarray()
        return np.array(self.X, copy=True)

    def row_sums(self) -> np.ndarray:
        """Total expression per gene."""
        return np.asarray(self.X.sum(axis=1)).ravel()

    def subset_genes(self, mask: np.ndarray) -> "ExpressionMatrix":
        """Keep rows where ``mask`` is True."""
        mask = np.asarray(mask, dtype=bool)
        return ExpressionMatrix(
            X=self.X[mask],
            gene_names=[g for g, keep in zip(self.gene_names, mask) if keep],
            cell_names=list(self.cell_names),
        )

    def filter_expressed(self) -> "ExpressionMatrix":
        """Drop genes with zero expression across all cells."""
        return self.subset_genes(self.row_sums() > 0)

    def with_values(self, X: Union[np.ndarray, sp.spmatrix]) -> "ExpressionMatrix":
        """Same labels, new values of identical shape."""
        if X.shape != self.X.shape:
            raise DimensionMismatch(f"Shape {X.shape} does not match {self.X.shape}")
        return ExpressionMatrix(
            X=X, gene_names=list(self.gene_names), cell_names=list(self.cell_names)
        )

    def with_gene_names(self, gene_names: Sequence[str]) -> "ExpressionMatrix":
        """Same values, new row labels."""
        return ExpressionMatrix(
            X=self.X.copy(), gene_names=list(gene_names), cell_names=list(self.cell_names)
        )

    def to_dataframe(self) -> pd.DataFrame:
        """Dense DataFrame (genes x cells)."""
        return pd.DataFrame(self.to_dense(), index=self.gene_names, columns=self.cell_names)

    @classmethod
    def from_dataframe(cls, df: pd.DataFrame) -> "ExpressionMatrix":
        """Genes as index, cells as columns."""
        if not all(pd.api.types.is_numeric_dtype(t) for t in df.dtypes):
            raise DimensionMismatch("Expression DataFrame must contain only numeric columns")
        return cls(
            X=df.to_numpy(dtype=np.float64),
            gene_names=list(df.index),
            cell_names=list(df.columns),
        )

    @classmethod
    def from_anndata(cls, adata: "ad.AnnData", layer: Optional[str] = None) -> "ExpressionMatrix":
        """AnnData stores cells x genes; the matrix is transposed on load."""
        X = adata.layers[layer] if layer is not None else adata.X
        if sp.issparse(X):
            X = sp.csr_matrix(X.T)
        else:
            X = np.asarray(X).T
        return cls(X=X, gene_names=list(adata.var_names), cell_names=list(adata.obs_names))

    @classmethod
    def from_any(
        cls,
        data: Any,
        gene_names: Optional[Sequence[str]] = None,
        cell_names: Optional[Sequence[str]] = None,
    ) -> "ExpressionMatrix":
        """
        Build an expression matrix from any supported input.

        Args:
            data: ExpressionMatrix, DataFrame, AnnData, ndarray or sparse matrix.
            gene_names: Row labels for unlabelled inputs.
            cell_names: Column labels for unlabelled inputs.

        Returns:
            ExpressionMatrix (genes x cells).
        """
        if isinstance(data, ExpressionMatrix):
            return data
        if isinstance(data, pd.DataFrame):
            return cls.from_dataframe(data)
        if hasattr(data, "var_names") and hasattr(data, "obs_names"):
            return cls.from_anndata(data)
        if sp.issparse(data) or isinstance(data, np.ndarray):
            n_genes, n_cells = data.shape
            if gene_names is None:
                gene_names = [f"gene_{i}" for i in range(n_genes)]
            if cell_names is None:
                cell_names = [f"cell_{i}" for i in range(n_cells)]
            return cls(X=data, gene_names=list(gene_names), cell_names=list(cell_names))
        raise TypeError(f"Unsupported expression input: {type(data).__name__}")
