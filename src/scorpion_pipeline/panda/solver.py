"""
PANDA message-passing solver.

Starting from the normalized motif (R), co-expression (C) and PPI (P)
priors, every iteration

1. sends a TF-side message ``T(P, R)`` and a gene-side message ``T(R, C)``
   and averages them into ``W``,
2. blends ``R <- alpha * R + (1 - alpha) * W``,
3. measures the mean absolute change of R (the Hamming statistic),
4. if not yet converged, re-estimates P from ``T(R, R')`` and C from
   ``T(R', R)`` (with PANDA's inflating diagonal) and blends them the
   same way.

``T`` is the Tanimoto transfer
``T(X, Y) = XY / sqrt(||x_i||^2 + ||y_j||^2 - |XY|)``.

The solver stops as "converged" once the statistic drops below the
threshold, or "exhausted" at the iteration cap.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional, Sequence

import numpy as np
import pandas as pd

from scorpion_pipeline.core.compute import ComputeBackend, get_compute_backend
from scorpion_pipeline.core.config import NETWORK_NAMES, PandaConfig
from scorpion_pipeline.core.progress import NullProgress, ProgressReporter
from scorpion_pipeline.panda.normalize import normalize_network
from scorpion_pipeline.panda.priors import PandaPriors

logger = logging.getLogger(__name__)


class PandaStatus(str, Enum):
    """Solver states."""

    ITERATING = "iterating"
    CONVERGED = "converged"
    EXHAUSTED = "exhausted"


def tanimoto(X: Any, Y: Any, xp: Any = np) -> Any:
    """
    Tanimoto similarity between the rows of X and the columns of Y.

    Args:
        X: Matrix (n x k).
        Y: Matrix (k x m).
        xp: Array module (numpy or cupy).

    Returns:
        Matrix (n x m).
    """
    A = X @ Y
    row_sq = (X**2).sum(axis=1)[:, None]
    col_sq = (Y**2).sum(axis=0)[None, :]
    denom = xp.sqrt(row_sq + col_sq - xp.abs(A))
    # denom is 0 only when both vectors are 0, where A is 0 as well
    denom = xp.where(denom == 0, 1.0, denom)
    return A / denom


def update_diagonal(M: Any, n: int, rate: float, step: int, xp: Any = np) -> Any:
    """
    Replace the diagonal with the row spread of the off-diagonal entries,
    inflated by ``n * exp(2 * rate * step)``.
    """
    size = M.shape[0]
    if size > 1:
        off_diagonal = M[~xp.eye(size, dtype=bool)].reshape(size, size - 1)
        spread = off_diagonal.std(axis=1)
    else:
        spread = xp.zeros(size)
    M[xp.arange(size), xp.arange(size)] = spread * n * math.exp(2 * rate * step)
    return M


def count_edges(M: np.ndarray) -> int:
    """Number of finite, nonzero entries of a TF x gene matrix."""
    M = np.asarray(M)
    return int(np.count_nonzero(np.isfinite(M) & (M != 0)))


@dataclass
class PandaState:
    """Matrices and counters evolved by the solver."""

    regulatory: Any
    """R: TF x gene."""

    coregulatory: Any
    """C: gene x gene."""

    cooperative: Any
    """P: TF x TF."""

    step: int = 0
    hamming: float = math.inf
    status: PandaStatus = PandaStatus.ITERATING
    trace: list[float] = field(default_factory=list)


@dataclass
class PandaResult:
    """Final networks and convergence diagnostics."""

    networks: dict[str, pd.DataFrame]
    """Retained networks keyed by 'regulatory', 'coregulatory', 'cooperative'."""

    tfs: list[str]
    genes: list[str]
    status: PandaStatus
    n_iterations: int
    hamming: float
    n_edges: int = 0
    """Nonzero motif prior edges over the shared TFs and genes."""

    trace: list[float] = field(default_factory=list)

    @property
    def converged(self) -> bool:
        return self.status is PandaStatus.CONVERGED

    @property
    def regulatory(self) -> Optional[pd.DataFrame]:
        return self.networks.get("regulatory")

    @property
    def coregulatory(self) -> Optional[pd.DataFrame]:
        return self.networks.get("coregulatory")

    @property
    def cooperative(self) -> Optional[pd.DataFrame]:
        return self.networks.get("cooperative")


class PandaSolver:
    """
    Fuses motif, PPI and co-expression priors into consistent networks.

    Example:
        >>> solver = PandaSolver(PandaConfig(alpha=0.8, hamming=0.001))
        >>> result = solver.run(priors)
        >>> print(result.status, result.n_iterations)
    """

    def __init__(
        self,
        config: Optional[PandaConfig] = None,
        backend: Optional[ComputeBackend] = None,
        progress: Optional[ProgressReporter] = None,
    ):
        """
        Initialize PANDA solver.

        Args:
            config: Solver configuration (alpha, hamming, n_iter).
            backend: Compute backend for the matrix products.
            progress: Receives phase markers and per-iteration status.
        """
        self.config = config or PandaConfig()
        self.config.validate()
        self.backend = backend or get_compute_backend()
        self.progress = progress or NullProgress()

    def initialize(self, priors: PandaPriors) -> PandaState:
        """Normalize the priors into the starting state."""
        self.progress.phase("Normalizing networks")
        to_device = self.backend.to_device

        coexpression = np.nan_to_num(priors.coexpression.to_numpy(dtype=np.float64))
        np.fill_diagonal(coexpression, 1.0)

        return PandaState(
            regulatory=to_device(normalize_network(priors.motif.to_numpy(dtype=np.float64))),
            coregulatory=to_device(normalize_network(coexpression)),
            cooperative=to_device(normalize_network(priors.ppi.to_numpy(dtype=np.float64))),
        )

    def step(self, state: PandaState) -> PandaState:
        """Advance the state by one iteration."""
        xp = self.backend.xp
        alpha = self.config.alpha
        rate = 1.0 - alpha

        R, C, P = state.regulatory, state.coregulatory, state.cooperative
        n_tfs, n_genes = R.shape

        W = 0.5 * (tanimoto(P, R, xp) + tanimoto(R, C, xp))
        R_new = alpha * R + rate * W
        hamming = float(xp.abs(R_new - R).mean())

        if hamming >= self.config.hamming:
            P_msg = update_diagonal(tanimoto(R_new, R_new.T, xp), n_tfs, rate, state.step, xp)
            state.cooperative = alpha * P + rate * P_msg

            C_msg = update_diagonal(tanimoto(R_new.T, R_new, xp), n_genes, rate, state.step, xp)
            state.coregulatory = alpha * C + rate * C_msg

        state.regulatory = R_new
        state.hamming = hamming
        state.trace.append(hamming)
        state.step += 1

        if hamming < self.config.hamming:
            state.status = PandaStatus.CONVERGED
        elif state.step >= self.config.max_iterations:
            state.status = PandaStatus.EXHAUSTED

        self.progress.status(f"Iteration {state.step}: hamming distance = {hamming:.5f}")
        return state

    def run(
        self,
        priors: PandaPriors,
        networks: Sequence[str] = NETWORK_NAMES,
    ) -> PandaResult:
        """
        Iterate until convergence or the iteration cap.

        Args:
            priors: Aligned seed matrices.
            networks: Networks to retain in the result.

        Returns:
            Retained networks and convergence diagnostics.
        """
        with self.backend.limits():
            state = self.initialize(priors)
            self.progress.phase("Learning Network")
            self.progress.phase("Using tanimoto similarity")

            while state.status is PandaStatus.ITERATING:
                self.step(state)

        if state.status is PandaStatus.EXHAUSTED:
            if self.config.is_unbounded:
                logger.warning(
                    f"PANDA did not converge within the {self.config.max_iterations} "
                    f"iteration safeguard (hamming={state.hamming:.5g})"
                )
            else:
                logger.info(
                    f"PANDA stopped after {state.step} iterations "
                    f"(hamming={state.hamming:.5g}, threshold={self.config.hamming})"
                )

        tfs, genes = priors.tfs, priors.genes
        to_cpu = self.backend.to_cpu
        matrices = {
            "regulatory": lambda: pd.DataFrame(to_cpu(state.regulatory), index=tfs, columns=genes),
            "coregulatory": lambda: pd.DataFrame(to_cpu(state.coregulatory), index=genes, columns=genes),
            "cooperative": lambda: pd.DataFrame(to_cpu(state.cooperative), index=tfs, columns=tfs),
        }
        n_edges = count_edges(priors.motif.to_numpy())
        kept = {name: matrices[name]() for name in NETWORK_NAMES if name in networks}
        self.backend.free_memory()

        return PandaResult(
            networks=kept,
            tfs=tfs,
            genes=genes,
            status=state.status,
            n_iterations=state.step,
            hamming=state.hamming,
            n_edges=n_edges,
            trace=state.trace,
        )
