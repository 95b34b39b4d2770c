"""
Gene-gene Pearson correlation.
"""

from __future__ import annotations

from typing import Optional, Union

import numpy as np
import pandas as pd

from scorpion_pipeline.core.compute import ComputeBackend, get_compute_backend


def finalize_association(rho: np.ndarray) -> np.ndarray:
    """
    Clean a gene-gene association matrix in place.

    Undefined entries (genes without variance) become 0, the diagonal is 1,
    and rounding noise is clipped to [-1, 1].
    """
    rho = np.nan_to_num(rho, nan=0.0, posinf=0.0, neginf=0.0)
    np.clip(rho, -1.0, 1.0, out=rho)
    np.fill_diagonal(rho, 1.0)
    return rho


class PearsonCorrelator:
    """
    Pearson correlation between all pairs of rows.

    Each row is centered and scaled to unit L2 norm, so the correlation
    matrix is a single cross product.

    Example:
        >>> correlator = PearsonCorrelator()
        >>> rho = correlator.correlate(supercell_expression)
    """

    def __init__(self, backend: Optional[ComputeBackend] = None):
        """
        Initialize Pearson correlator.

        Args:
            backend: Compute backend for the cross product.
        """
        self.backend = backend or get_compute_backend()

    def correlate(self, X: Union[np.ndarray, pd.DataFrame]) -> np.ndarray:
        """
        Compute the gene x gene Pearson correlation.

        Args:
            X: Expression matrix (genes x samples).

        Returns:
            Symmetric correlation matrix with unit diagonal.
        """
        if isinstance(X, pd.DataFrame):
            X = X.values
        X = np.asarray(X, dtype=np.float64)

        # Center data
        centered = X - X.mean(axis=1, keepdims=True)
        norms = np.sqrt((centered**2).sum(axis=1, keepdims=True))

        with np.errstate(divide="ignore", invalid="ignore"):
            Z = centered / norms

        with self.backend.limits():
            Z_dev = self.backend.to_device(np.nan_to_num(Z))
            rho = self.backend.to_cpu(Z_dev @ Z_dev.T)

        return finalize_association(rho)


def pearson_correlation(
    X: Union[np.ndarray, pd.DataFrame],
    backend: Optional[ComputeBackend] = None,
) -> np.ndarray:
    """
    Compute the gene x gene Pearson correlation.

    Convenience function for PearsonCorrelator.

    Args:
        X: Expression matrix (genes x samples).
        backend: Compute backend.

    Returns:
        Symmetric correlation matrix.
    """
    return PearsonCorrelator(backend=backend).correlate(X)
