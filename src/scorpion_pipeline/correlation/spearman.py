"""
Gene-gene Spearman rank correlation.
"""

from __future__ import annotations

from typing import Optional, Union

import numpy as np
import pandas as pd
from scipy import stats

from scorpion_pipeline.core.compute import ComputeBackend
from scorpion_pipeline.correlation.pearson import PearsonCorrelator


class SpearmanCorrelator:
    """
    Spearman rank correlation between all pairs of rows.

    Converts each gene's row to ranks and computes Pearson correlation on ranks.

    Example:
        >>> correlator = SpearmanCorrelator()
        >>> rho = correlator.correlate(supercell_expression)
    """

    def __init__(self, backend: Optional[ComputeBackend] = None):
        """
        Initialize Spearman correlator.

        Args:
            backend: Compute backend for the cross product.
        """
        self._pearson = PearsonCorrelator(backend=backend)

    @staticmethod
    def rank_rows(X: np.ndarray) -> np.ndarray:
        """Convert each row to ranks (average for ties)."""
        return stats.rankdata(X, method="average", axis=1).astype(np.float64)

    def correlate(self, X: Union[np.ndarray, pd.DataFrame]) -> np.ndarray:
        """
        Compute the gene x gene Spearman correlation.

        Args:
            X: Expression matrix (genes x samples).

        Returns:
            Symmetric correlation matrix with unit diagonal.
        """
        if isinstance(X, pd.DataFrame):
            X = X.values
        ranks = self.rank_rows(np.asarray(X, dtype=np.float64))
        return self._pearson.correlate(ranks)


def spearman_correlation(
    X: Union[np.ndarray, pd.DataFrame],
    backend: Optional[ComputeBackend] = None,
) -> np.ndarray:
    """
    Compute the gene x gene Spearman correlation.

    Args:
        X: Expression matrix (genes x samples).
        backend: Compute backend.

    Returns:
        Symmetric correlation matrix.
    """
    return SpearmanCorrelator(backend=backend).correlate(X)
