"""
Prior networks for PANDA.

Motif (TF -> gene) and PPI (TF - TF) edge lists are turned into dense
labelled matrices over the genes and TFs shared by all inputs.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional, Sequence, Union

import numpy as np
import pandas as pd

from scorpion_pipeline.core.errors import DimensionMismatch, EmptyIntersection
from scorpion_pipeline.ingest.readers import read_edge_list

logger = logging.getLogger(__name__)

EDGE_COLUMNS = ["source", "target", "score"]

EdgeInput = Union[pd.DataFrame, np.ndarray, list, str, Path, None]


def edge_table(data: EdgeInput, name: str = "prior") -> Optional[pd.DataFrame]:
    """
    Normalize a prior network into a (source, target, score) DataFrame.

    Args:
        data: DataFrame or array with three columns, list of triples,
            path to a CSV/TSV file, or None.
        name: Used in error messages.

    Returns:
        Edge table, or None when ``data`` is None.
    """
    if data is None:
        return None
    if isinstance(data, (str, Path)):
        data = read_edge_list(data)
    if isinstance(data, (np.ndarray, list)):
        data = pd.DataFrame(list(data) if isinstance(data, list) else data)
    if not isinstance(data, pd.DataFrame):
        raise TypeError(f"Unsupported {name} input: {type(data).__name__}")

    if data.shape[1] != 3:
        raise DimensionMismatch(
            f"The {name} network must have 3 columns (source, target, score), "
            f"got {data.shape[1]}"
        )

    edges = data.copy()
    edges.columns = EDGE_COLUMNS
    edges["source"] = edges["source"].astype(str)
    edges["target"] = edges["target"].astype(str)
    try:
        edges["score"] = pd.to_numeric(edges["score"]).astype(np.float64)
    except (TypeError, ValueError) as e:
        raise DimensionMismatch(f"Non-numeric scores in the {name} network: {e}") from None
    return edges.reset_index(drop=True)


def motif_matrix(edges: pd.DataFrame, tfs: list[str], genes: list[str]) -> pd.DataFrame:
    """Dense TF x gene matrix; missing pairs are 0, repeated pairs keep the last score."""
    edges = edges[edges["source"].isin(tfs) & edges["target"].isin(genes)]
    edges = edges.drop_duplicates(subset=["source", "target"], keep="last")
    matrix = edges.pivot(index="source", columns="target", values="score")
    return matrix.reindex(index=tfs, columns=genes).fillna(0.0).astype(np.float64)


def ppi_matrix(edges: Optional[pd.DataFrame], tfs: list[str]) -> pd.DataFrame:
    """
    Symmetric TF x TF matrix with unit diagonal.

    Without PPI edges this is the identity.
    """
    P = np.eye(len(tfs))
    if edges is not None:
        position = {tf: i for i, tf in enumerate(tfs)}
        keep = edges["source"].isin(position) & edges["target"].isin(position)
        for src, tgt, score in edges.loc[keep, EDGE_COLUMNS].itertuples(index=False):
            i, j = position[src], position[tgt]
            P[i, j] = score
            P[j, i] = score
        np.fill_diagonal(P, 1.0)
    return pd.DataFrame(P, index=tfs, columns=tfs)


@dataclass
class PandaPriors:
    """Seed matrices restricted to the shared gene and TF sets."""

    motif: pd.DataFrame
    """TF x gene motif prior."""

    ppi: pd.DataFrame
    """TF x TF cooperativity prior."""

    coexpression: pd.DataFrame
    """Gene x gene association network."""

    @property
    def tfs(self) -> list[str]:
        return list(self.motif.index)

    @property
    def genes(self) -> list[str]:
        return list(self.motif.columns)

    @property
    def n_tfs(self) -> int:
        return self.motif.shape[0]

    @property
    def n_genes(self) -> int:
        return self.motif.shape[1]


def build_priors(
    motif: EdgeInput,
    ppi: EdgeInput,
    coexpression: pd.DataFrame,
) -> PandaPriors:
    """
    Align the motif prior, PPI prior and association network.

    Genes are the motif targets present in the association network; TFs are
    the motif TFs present in the PPI (all motif TFs when no PPI is given).
    Both sets are sorted.

    Args:
        motif: Motif edge list (TF, gene, score).
        ppi: PPI edge list (TF1, TF2, score), or None.
        coexpression: Gene x gene association network.

    Returns:
        Aligned priors.
    """
    motif_edges = edge_table(motif, "motif")
    if motif_edges is None:
        raise DimensionMismatch("A motif prior is required to build PANDA priors")
    ppi_edges = edge_table(ppi, "PPI")

    if coexpression.shape[0] != coexpression.shape[1] or not coexpression.index.equals(
        coexpression.columns
    ):
        raise DimensionMismatch("The association network must be square with matching labels")

    coexpression = coexpression.copy()
    coexpression.index = coexpression.index.astype(str)
    coexpression.columns = coexpression.columns.astype(str)

    motif_df = shared_motif(motif_edges, ppi_edges, coexpression.index)
    genes = list(motif_df.columns)

    return PandaPriors(
        motif=motif_df,
        ppi=ppi_matrix(ppi_edges, list(motif_df.index)),
        coexpression=coexpression.loc[genes, genes].astype(np.float64),
    )


def shared_motif(
    motif_edges: pd.DataFrame,
    ppi_edges: Optional[pd.DataFrame],
    gene_names: Sequence[str],
) -> pd.DataFrame:
    """
    Motif matrix over the sorted shared TF and gene sets.

    Genes are the motif targets in ``gene_names``; TFs are the motif TFs
    present in the PPI (all motif TFs when ``ppi_edges`` is None).

    Raises:
        EmptyIntersection: No shared genes, no shared TFs, or no nonzero
            motif edge between them.
    """
    genes = sorted(set(motif_edges["target"]) & set(map(str, gene_names)))
    motif_tfs = set(motif_edges["source"])
    if ppi_edges is not None:
        ppi_tfs = set(ppi_edges["source"]) | set(ppi_edges["target"])
        tfs = sorted(motif_tfs & ppi_tfs)
    else:
        tfs = sorted(motif_tfs)

    if not genes:
        raise EmptyIntersection("No genes are shared between the motif prior and the expression data")
    if not tfs:
        raise EmptyIntersection("No TFs are shared between the motif prior and the PPI network")

    motif_df = motif_matrix(motif_edges, tfs, genes)
    if not motif_df.to_numpy().any():
        raise EmptyIntersection("No motif edges connect the shared TFs and genes")

    logger.debug(f"Shared sets: {len(genes)} genes, {len(tfs)} TFs")
    return motif_df
