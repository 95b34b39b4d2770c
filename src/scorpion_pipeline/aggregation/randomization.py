"""
Null-model randomization of the expression matrix.

Applied once, before aggregation, to produce outputs for significance
assessment.
"""

from __future__ import annotations

from typing import Callable, Optional, Union

import numpy as np

from scorpion_pipeline.core.config import RandomizationMethod
from scorpion_pipeline.ingest.base import ExpressionMatrix


def permute_within_genes(
    expr: ExpressionMatrix,
    rng: np.random.Generator,
) -> ExpressionMatrix:
    """
    Shuffle each gene's values across cells independently.

    Every row keeps its multiset of values; the gene-cell association is lost.
    """
    if expr.is_sparse:
        # a row permutation maps to shuffling the column indices of that row
        X = expr.X.copy()
        for i in range(X.shape[0]):
            start, end = X.indptr[i], X.indptr[i + 1]
            if end == start:
                continue
            new_cols = rng.choice(X.shape[1], size=end - start, replace=False)
            X.indices[start:end] = new_cols
        X.has_sorted_indices = False
        X.sort_indices()
        return expr.with_values(X)

    X = expr.to_dense()
    for i in range(X.shape[0]):
        X[i] = rng.permutation(X[i])
    return expr.with_values(X)


def permute_gene_labels(
    expr: ExpressionMatrix,
    rng: np.random.Generator,
) -> ExpressionMatrix:
    """Shuffle gene labels; the value matrix is left untouched."""
    order = rng.permutation(expr.n_genes)
    return expr.with_gene_names([expr.gene_names[i] for i in order])


def _identity(expr: ExpressionMatrix, rng: np.random.Generator) -> ExpressionMatrix:
    return expr


_HANDLERS: dict[
    RandomizationMethod,
    Callable[[ExpressionMatrix, np.random.Generator], ExpressionMatrix],
] = {
    RandomizationMethod.NONE: _identity,
    RandomizationMethod.WITHIN_GENE: permute_within_genes,
    RandomizationMethod.BY_GENES: permute_gene_labels,
}


def get_randomizer(
    method: Union[str, None, RandomizationMethod],
) -> Callable[[ExpressionMatrix, np.random.Generator], ExpressionMatrix]:
    """Resolve a randomization method into its handler."""
    return _HANDLERS[RandomizationMethod.parse(method)]


def randomize_expression(
    expr: ExpressionMatrix,
    method: Union[str, None, RandomizationMethod] = RandomizationMethod.NONE,
    seed: Optional[int] = None,
) -> ExpressionMatrix:
    """
    Apply a null-model randomization.

    Args:
        expr: Expression matrix (genes x cells).
        method: "None", "within.gene" or "by.genes".
        seed: Seed for reproducible permutations.

    Returns:
        Randomized expression matrix (the input is not modified).
    """
    handler = get_randomizer(method)
    return handler(expr, np.random.default_rng(seed))
