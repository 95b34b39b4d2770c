"""
Gene association network builder.

Dispatches to the configured estimator (pearson, spearman or pcNet) and
optionally down-weights pairs of genes that are rarely detected together.
"""

from __future__ import annotations

import logging
from typing import Callable, Optional, Union

import numpy as np
import pandas as pd

from scorpion_pipeline.core.compute import ComputeBackend
from scorpion_pipeline.core.config import AssociationConfig, AssocMethod
from scorpion_pipeline.core.errors import InsufficientSamples
from scorpion_pipeline.correlation.pcnet import PCNetEstimator
from scorpion_pipeline.correlation.pearson import PearsonCorrelator
from scorpion_pipeline.correlation.spearman import SpearmanCorrelator

logger = logging.getLogger(__name__)

MIN_SAMPLES = 2
"""Association needs at least two super-cells to be defined."""


def co_presence_fraction(X: np.ndarray) -> np.ndarray:
    """
    Fraction of samples in which both genes are nonzero.

    Args:
        X: Expression matrix (genes x samples).

    Returns:
        Symmetric gene x gene matrix in [0, 1].
    """
    present = (np.asarray(X) != 0).astype(np.float64)
    return (present @ present.T) / present.shape[1]


class AssociationBuilder:
    """
    Builds the gene x gene association network from super-cell expression.

    The estimator is resolved once from ``config.method``.

    Example:
        >>> builder = AssociationBuilder(AssociationConfig(method="spearman"))
        >>> network = builder.build(supercells.expression)
    """

    def __init__(
        self,
        config: Optional[AssociationConfig] = None,
        backend: Optional[ComputeBackend] = None,
        seed: int = 0,
    ):
        """
        Initialize association builder.

        Args:
            config: Association configuration.
            backend: Compute backend for the correlation cross products.
            seed: Random state for pcNet's truncated SVD.
        """
        self.config = config or AssociationConfig()
        self.config.validate()
        self._estimator = self._resolve(self.config.method, backend, seed)

    def _resolve(
        self,
        method: AssocMethod,
        backend: Optional[ComputeBackend],
        seed: int,
    ) -> Callable[[np.ndarray], np.ndarray]:
        if method is AssocMethod.PEARSON:
            return PearsonCorrelator(backend=backend).correlate
        if method is AssocMethod.SPEARMAN:
            return SpearmanCorrelator(backend=backend).correlate
        return PCNetEstimator(n_comp=self.config.n_comp, seed=seed).estimate

    @property
    def method(self) -> AssocMethod:
        return self.config.method

    def build(self, expression: Union[pd.DataFrame, np.ndarray]) -> pd.DataFrame:
        """
        Compute the association network.

        Args:
            expression: Expression (genes x samples); DataFrame labels are kept.

        Returns:
            Symmetric gene x gene DataFrame.
        """
        if isinstance(expression, pd.DataFrame):
            genes = list(expression.index)
            X = expression.to_numpy(dtype=np.float64)
        else:
            X = np.asarray(expression, dtype=np.float64)
            genes = [f"gene_{i}" for i in range(X.shape[0])]

        if X.shape[1] < MIN_SAMPLES:
            raise InsufficientSamples(
                f"Association needs at least {MIN_SAMPLES} super-cells, got {X.shape[1]}"
            )

        network = self._estimator(X)

        if self.config.scale_by_present:
            network = network * co_presence_fraction(X)

        logger.debug(
            f"Association network ({self.method.value}): {len(genes)} genes, "
            f"scale_by_present={self.config.scale_by_present}"
        )
        return pd.DataFrame(network, index=genes, columns=genes)


def gene_association(
    expression: Union[pd.DataFrame, np.ndarray],
    method: Union[str, AssocMethod] = AssocMethod.PEARSON,
    scale_by_present: bool = False,
) -> pd.DataFrame:
    """
    Compute a gene association network.

    Convenience function for AssociationBuilder.

    Args:
        expression: Expression matrix (genes x samples).
        method: "pearson", "spearman" or "pcNet".
        scale_by_present: Scale by joint presence fraction.

    Returns:
        Symmetric gene x gene DataFrame.
    """
    config = AssociationConfig(method=method, scale_by_present=scale_by_present)
    return AssociationBuilder(config).build(expression)
