"""
PANDA network normalization.

Each seed matrix is replaced by the average of its row-wise and column-wise
z-scores, ``(Z_row + Z_col) / sqrt(2)``. Entries whose row (or column) has
no spread fall back to the whole-matrix z-score for that term.
"""

from __future__ import annotations

import numpy as np


def _zscore(X: np.ndarray, axis: int | None) -> np.ndarray:
    """Population z-score along ``axis``; NaN where the spread is zero."""
    mean = X.mean(axis=axis, keepdims=axis is not None)
    std = X.std(axis=axis, keepdims=axis is not None)
    with np.errstate(divide="ignore", invalid="ignore"):
        Z = (X - mean) / std
    return np.where(np.isfinite(Z), Z, np.nan)


def normalize_network(X: np.ndarray) -> np.ndarray:
    """
    Normalize a network matrix the way PANDA seeds are prepared.

    Args:
        X: Any 2D matrix (TF x gene, gene x gene or TF x TF).

    Returns:
        Normalized matrix of the same shape; a constant input maps to zeros.
    """
    X = np.asarray(X, dtype=np.float64)

    Z_row = _zscore(X, axis=1)
    Z_col = _zscore(X, axis=0)
    Z_all = _zscore(X, axis=None)

    row_missing = np.isnan(Z_row)
    col_missing = np.isnan(Z_col)

    normalized = (Z_row + Z_col) / np.sqrt(2)
    only_row = row_missing & ~col_missing
    only_col = ~row_missing & col_missing
    both = row_missing & col_missing

    normalized[only_row] = (Z_col[only_row] + Z_all[only_row]) / np.sqrt(2)
    normalized[only_col] = (Z_row[only_col] + Z_all[only_col]) / np.sqrt(2)
    normalized[both] = 2 * Z_all[both] / np.sqrt(2)

    return np.nan_to_num(normalized, nan=0.0)
