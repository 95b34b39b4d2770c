"""
Principal-component regression network (pcNet).

Each gene is regressed on the leading principal components of all other
genes; the back-projected coefficients form one row of the network. The
result is symmetrized and scaled by its largest absolute value.
"""

from __future__ import annotations

import logging
from typing import Union

import numpy as np
import pandas as pd
from scipy import linalg
from sklearn.utils.extmath import randomized_svd

logger = logging.getLogger(__name__)

EXACT_SVD_LIMIT = 200
"""Matrices whose smaller side is at most this use an exact SVD."""


def _standardize_columns(X: np.ndarray) -> np.ndarray:
    """Center and scale columns (ddof=1); constant columns become 0."""
    centered = X - X.mean(axis=0, keepdims=True)
    sd = X.std(axis=0, ddof=1, keepdims=True) if X.shape[0] > 1 else np.ones((1, X.shape[1]))
    sd = np.where(sd == 0, 1, sd)
    return centered / sd


class PCNetEstimator:
    """
    Regression-based partial correlation network.

    Example:
        >>> estimator = PCNetEstimator(n_comp=3)
        >>> network = estimator.estimate(supercell_expression)
    """

    def __init__(self, n_comp: int = 3, seed: int = 0):
        """
        Initialize pcNet estimator.

        Args:
            n_comp: Principal components per regression.
            seed: Random state for the truncated SVD.
        """
        self.n_comp = n_comp
        self.seed = seed

    def _leading_components(self, Xi: np.ndarray, n_comp: int) -> np.ndarray:
        """Right singular vectors (features x n_comp) of the leading components."""
        if min(Xi.shape) <= EXACT_SVD_LIMIT:
            _, _, Vt = linalg.svd(Xi, full_matrices=False)
        else:
            _, _, Vt = randomized_svd(Xi, n_components=n_comp, random_state=self.seed)
        return Vt[:n_comp].T

    def estimate(self, X: Union[np.ndarray, pd.DataFrame]) -> np.ndarray:
        """
        Build the network.

        Args:
            X: Expression matrix (genes x samples).

        Returns:
            Symmetric gene x gene network scaled to [-1, 1], unit diagonal.
        """
        if isinstance(X, pd.DataFrame):
            X = X.values
        X = _standardize_columns(np.asarray(X, dtype=np.float64).T)  # samples x genes
        n_samples, n_genes = X.shape

        B = np.zeros((n_genes, n_genes))
        if n_genes < 2:
            np.fill_diagonal(B, 1.0)
            return B

        n_comp = max(1, min(self.n_comp, n_samples, n_genes - 1))
        if n_comp < self.n_comp:
            logger.debug(f"pcNet: reducing components from {self.n_comp} to {n_comp}")

        for k in range(n_genes):
            y = X[:, k]
            others = np.delete(np.arange(n_genes), k)
            Xi = X[:, others]

            coeff = self._leading_components(Xi, n_comp)
            score = Xi @ coeff
            score_norm = (score**2).sum(axis=0)
            score_norm = np.where(score_norm == 0, 1, score_norm)
            score = score / score_norm

            beta = y @ score
            B[k, others] = coeff @ beta

        B = (B + B.T) / 2
        max_abs = np.abs(B).max()
        if max_abs > 0:
            B = B / max_abs
        np.fill_diagonal(B, 1.0)
        return B


def pcnet(
    X: Union[np.ndarray, pd.DataFrame],
    n_comp: int = 3,
    seed: int = 0,
) -> np.ndarray:
    """
    Compute a pcNet gene network.

    Args:
        X: Expression matrix (genes x samples).
        n_comp: Principal components per regression.
        seed: Random state for the truncated SVD.

    Returns:
        Symmetric gene x gene network.
    """
    return PCNetEstimator(n_comp=n_comp, seed=seed).estimate(X)
