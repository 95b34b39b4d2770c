"""
Main Pipeline class that orchestrates all processing modules.

Single cells -> super-cells -> gene association network -> PANDA -> output.
"""

from __future__ import annotations

import logging
from typing import Any, Optional, Union

import pandas as pd

from scorpion_pipeline.aggregation.base import SuperCellData
from scorpion_pipeline.aggregation.graph import check_sufficient_cells
from scorpion_pipeline.aggregation.randomization import randomize_expression
from scorpion_pipeline.aggregation.supercell import SuperCellAggregator, n_supercells
from scorpion_pipeline.core.compute import ComputeBackend
from scorpion_pipeline.core.config import RandomizationMethod, ScorpionConfig
from scorpion_pipeline.core.errors import InsufficientSamples, InvalidConfiguration
from scorpion_pipeline.core.progress import ProgressLike, as_reporter
from scorpion_pipeline.correlation.association import MIN_SAMPLES, AssociationBuilder
from scorpion_pipeline.export.formatter import (
    ScorpionResult,
    format_association,
    format_output,
)
from scorpion_pipeline.ingest.base import ExpressionMatrix
from scorpion_pipeline.panda.priors import EdgeInput, build_priors, edge_table, shared_motif
from scorpion_pipeline.panda.solver import PandaSolver

logger = logging.getLogger(__name__)


class Pipeline:
    """Main pipeline orchestrating SCORPION processing.

    Example:
        >>> from scorpion_pipeline import Pipeline, ScorpionConfig
        >>>
        >>> config = ScorpionConfig(gamma_value=10, alpha_value=0.8)
        >>> pipeline = Pipeline(config)
        >>> result = pipeline.run(counts, tf_motifs=motif, ppi_net=ppi)
        >>> result.regNet.shape
        (n_tfs, n_genes)
    """

    def __init__(
        self,
        config: Optional[ScorpionConfig] = None,
        progress: ProgressLike = None,
        backend: Optional[ComputeBackend] = None,
    ):
        """Initialize pipeline.

        Parameters
        ----------
        config : ScorpionConfig, optional
            Pipeline configuration
        progress : ProgressReporter or callable, optional
            Receives phase markers and iteration status; defaults to logging
        backend : ComputeBackend, optional
            Numeric backend; built from ``n_cores`` and ``use_gpu`` by default
        """
        self.config = config or ScorpionConfig()
        self.progress = as_reporter(progress, enabled=self.config.show_progress)

        if backend is None:
            backend = ComputeBackend(n_cores=self.config.n_cores, use_gpu=self.config.use_gpu)
            if self.config.use_gpu and backend.gpu_error:
                logger.warning(f"GPU requested but unavailable, using NumPy: {backend.gpu_error}")
        self.backend = backend

    def run(
        self,
        gex_matrix: Any,
        tf_motifs: EdgeInput = None,
        ppi_net: EdgeInput = None,
    ) -> ScorpionResult:
        """Run the full pipeline.

        Parameters
        ----------
        gex_matrix : ExpressionMatrix, DataFrame, AnnData, ndarray or sparse
            Single-cell expression (genes x cells; AnnData is cells x genes)
        tf_motifs : DataFrame, array, list or path, optional
            Motif prior edge list (TF, gene, score)
        ppi_net : DataFrame, array, list or path, optional
            PPI prior edge list (TF, TF, score)

        Returns
        -------
        ScorpionResult
            Requested networks, or only ``coexpression`` when no motif is given
        """
        self.progress.phase("Initializing and validating")
        expr = ExpressionMatrix.from_any(gex_matrix)
        motif_edges = edge_table(tf_motifs, "motif")
        ppi_edges = edge_table(ppi_net, "PPI")

        association_only = motif_edges is None
        if association_only and ppi_edges is not None:
            logger.warning("No motif prior given; the PPI network is ignored")

        if self.config.filter_expr:
            n_before = expr.n_genes
            expr = expr.filter_expressed()
            logger.info(f"Removed {n_before - expr.n_genes} unexpressed genes")

        self._check_samples(expr)
        if motif_edges is not None:
            self._check_overlap(expr, motif_edges, ppi_edges)
        self.progress.phase("Verified sufficient samples")

        supercells = self.build_supercells(expr)
        coexpression = self.build_association(supercells)

        if association_only:
            logger.info(
                f"Returning the {coexpression.shape[0]}-gene association network "
                "(no prior networks given)"
            )
            result = format_association(coexpression, n_supercells=supercells.n_units)
            result.config = self.config.to_dict()
            return result

        priors = build_priors(motif_edges, ppi_edges, coexpression)
        solver = PandaSolver(self.config.panda, backend=self.backend, progress=self.progress)
        panda_result = solver.run(priors, networks=self.config.output.networks)

        result = format_output(panda_result, self.config.output, n_supercells=supercells.n_units)
        result.config = self.config.to_dict()

        self.progress.phase(
            f"Successfully ran SCORPION on {result.numGenes} Genes and {result.numTFs} TFs"
        )
        return result

    def build_supercells(self, expr: ExpressionMatrix) -> SuperCellData:
        """Randomize (when configured) and aggregate cells into super-cells."""
        method = self.config.randomization_method
        if method is not RandomizationMethod.NONE:
            logger.info(f"Randomizing expression ({method.value})")
            expr = randomize_expression(expr, method, seed=self.config.seed)

        aggregator = SuperCellAggregator(
            self.config.supercell,
            n_jobs=self.config.n_cores,
            seed=self.config.seed,
            progress=self.progress,
        )
        with self.backend.limits():
            return aggregator.aggregate(expr)

    def build_association(self, supercells: SuperCellData) -> pd.DataFrame:
        """Gene x gene association network over super-cells."""
        builder = AssociationBuilder(
            self.config.association,
            backend=self.backend,
            seed=self.config.seed,
        )
        return builder.build(supercells.expression)

    def _check_samples(self, expr: ExpressionMatrix) -> None:
        if expr.n_genes == 0:
            raise InsufficientSamples("The expression matrix has no genes")
        check_sufficient_cells(expr.n_cells)
        n_groups = n_supercells(expr.n_cells, self.config.supercell.gamma)
        if n_groups < MIN_SAMPLES:
            raise InsufficientSamples(
                f"gamma={self.config.supercell.gamma} leaves {n_groups} super-cell(s) "
                f"for {expr.n_cells} cells; at least {MIN_SAMPLES} are needed"
            )

    def _check_overlap(
        self,
        expr: ExpressionMatrix,
        motif_edges: pd.DataFrame,
        ppi_edges: Optional[pd.DataFrame],
    ) -> None:
        motif = shared_motif(motif_edges, ppi_edges, expr.gene_names)
        logger.debug(f"Priors share {motif.shape[1]} genes and {motif.shape[0]} TFs")


def scorpion(
    tf_motifs: EdgeInput = None,
    gex_matrix: Any = None,
    ppi_net: EdgeInput = None,
    progress: ProgressLike = None,
    **options,
) -> Union[ScorpionResult, pd.DataFrame]:
    """
    Run SCORPION on single-cell expression data.

    Args:
        tf_motifs: Motif prior (TF, gene, score), or None.
        gex_matrix: Expression matrix (genes x cells).
        ppi_net: PPI prior (TF, TF, score), or None.
        progress: Reporter or callable for progress messages.
        **options: ``ScorpionConfig`` options (snake_case or camelCase),
            e.g. ``gamma_value=10``, ``alphaValue=0.8``.

    Returns:
        ScorpionResult, or the gene x gene association DataFrame when no
        motif prior is given.

    Example:
        >>> result = scorpion(tf_motifs=motif, gex_matrix=counts, ppi_net=ppi)
        >>> result.regNet.shape
    """
    if gex_matrix is None:
        raise InvalidConfiguration("An expression matrix is required")

    config = ScorpionConfig.from_dict(options)
    result = Pipeline(config, progress=progress).run(gex_matrix, tf_motifs, ppi_net)
    if result.is_association_only:
        return result.coexpression
    return result
