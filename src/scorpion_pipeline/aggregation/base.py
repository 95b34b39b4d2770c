"""
Base data types for super-cell aggregation.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

import numpy as np
import pandas as pd

from scorpion_pipeline.ingest.base import ExpressionMatrix


@dataclass
class SuperCellPartition:
    """
    Assignment of every cell to exactly one super-cell.

    Group ids run from 0 to ``n_groups - 1`` and every group is non-empty.
    """

    membership: np.ndarray
    """Group id per cell."""

    cell_names: list[str]
    """Cell labels, aligned with ``membership``."""

    @property
    def n_groups(self) -> int:
        return int(self.membership.max()) + 1 if self.membership.size else 0

    @property
    def sizes(self) -> np.ndarray:
        """Number of cells per group."""
        return np.bincount(self.membership, minlength=self.n_groups)

    def to_series(self) -> pd.Series:
        return pd.Series(self.membership, index=self.cell_names, name="supercell")


@dataclass
class SuperCellData:
    """
    Result of super-cell aggregation.

    Contains the aggregated expression matrix and the cell partition.
    """

    expression: pd.DataFrame
    """Expression matrix (genes x super-cells)."""

    partition: SuperCellPartition
    """Cell to super-cell assignment."""

    gamma: float
    """Requested graining level."""

    aggregation_type: str
    """How member cells were combined ("mean" or "sum")."""

    stats: dict[str, Any] = field(default_factory=dict)
    """Additional statistics (e.g., cells per super-cell)."""

    @property
    def n_units(self) -> int:
        """Number of super-cells (columns)."""
        return self.expression.shape[1]

    @property
    def n_genes(self) -> int:
        """Number of genes (rows)."""
        return self.expression.shape[0]

    @property
    def gene_names(self) -> list[str]:
        return list(self.expression.index)

    def to_expression_matrix(self) -> ExpressionMatrix:
        """Super-cell matrix as an ``ExpressionMatrix``."""
        return ExpressionMatrix.from_dataframe(self.expression)
