"""
Result packaging and output rescaling.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Optional

import numpy as np
import pandas as pd

from scorpion_pipeline.core.config import OutputConfig
from scorpion_pipeline.panda.solver import PandaResult

logger = logging.getLogger(__name__)

# network name -> result attribute
RESULT_FIELDS = {
    "regulatory": "regNet",
    "coregulatory": "coregNet",
    "cooperative": "coopNet",
}


def zscore_matrix(matrix: pd.DataFrame) -> pd.DataFrame:
    """
    Standardize all entries of a matrix together.

    Uses the population standard deviation; a constant matrix maps to zeros.
    """
    values = matrix.to_numpy(dtype=np.float64)
    std = values.std()
    if not np.isfinite(std) or std == 0:
        scaled = np.zeros_like(values)
    else:
        scaled = (values - values.mean()) / std
    return pd.DataFrame(scaled, index=matrix.index, columns=matrix.columns)


def minmax_matrix(matrix: pd.DataFrame) -> pd.DataFrame:
    """Rescale all entries to [0, 1]; a constant matrix maps to zeros."""
    values = matrix.to_numpy(dtype=np.float64)
    low, high = values.min(), values.max()
    if high == low:
        scaled = np.zeros_like(values)
    else:
        scaled = (values - low) / (high - low)
    return pd.DataFrame(scaled, index=matrix.index, columns=matrix.columns)


@dataclass
class ScorpionResult:
    """
    Container for SCORPION outputs.

    ``regNet`` is TF x gene, ``coregNet`` gene x gene and ``coopNet``
    TF x TF; networks that were not requested are None. In the
    association-only mode (no priors) only ``coexpression`` is set.
    """

    regNet: Optional[pd.DataFrame] = None
    coregNet: Optional[pd.DataFrame] = None
    coopNet: Optional[pd.DataFrame] = None
    coexpression: Optional[pd.DataFrame] = None

    numGenes: int = 0
    numTFs: int = 0
    numEdges: int = 0

    # Diagnostics
    n_iterations: int = 0
    hamming: Optional[float] = None
    status: Optional[str] = None
    n_supercells: int = 0
    config: dict[str, Any] = field(default_factory=dict)

    @property
    def is_association_only(self) -> bool:
        panda_networks = (self.regNet, self.coregNet, self.coopNet)
        return self.coexpression is not None and all(n is None for n in panda_networks)

    @property
    def networks(self) -> dict[str, pd.DataFrame]:
        """Present networks keyed by their result name."""
        names = ("regNet", "coregNet", "coopNet", "coexpression")
        return {name: getattr(self, name) for name in names if getattr(self, name) is not None}

    def summary(self) -> dict[str, Any]:
        """Summary statistics as a JSON-ready dict."""
        return {
            "numGenes": self.numGenes,
            "numTFs": self.numTFs,
            "numEdges": self.numEdges,
            "n_iterations": self.n_iterations,
            "hamming": self.hamming,
            "status": self.status,
            "n_supercells": self.n_supercells,
            "networks": list(self.networks),
            "config": self.config,
        }


def format_output(
    panda_result: PandaResult,
    config: Optional[OutputConfig] = None,
    n_supercells: int = 0,
) -> ScorpionResult:
    """
    Rescale the retained PANDA networks and package them.

    Args:
        panda_result: Solver output.
        config: Output selection and rescaling.
        n_supercells: Number of super-cells the association was built on.

    Returns:
        ScorpionResult with rescaled networks.
    """
    config = config or OutputConfig()
    config.validate()
    rescale = zscore_matrix if config.z_scaling else minmax_matrix

    networks = {}
    for name, matrix in panda_result.networks.items():
        if name in config.networks:
            networks[RESULT_FIELDS[name]] = rescale(matrix)

    logger.debug(
        f"Formatted {sorted(networks)} "
        f"({'z-score' if config.z_scaling else 'min-max'} scaling)"
    )

    return ScorpionResult(
        **networks,
        numGenes=len(panda_result.genes),
        numTFs=len(panda_result.tfs),
        numEdges=panda_result.n_edges,
        n_iterations=panda_result.n_iterations,
        hamming=panda_result.hamming,
        status=panda_result.status.value,
        n_supercells=n_supercells,
    )


def format_association(
    network: pd.DataFrame,
    n_supercells: int = 0,
) -> ScorpionResult:
    """Package an association network returned without PANDA."""
    return ScorpionResult(
        coexpression=network,
        numGenes=network.shape[0],
        n_supercells=n_supercells,
    )
