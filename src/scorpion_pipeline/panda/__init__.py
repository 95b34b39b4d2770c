"""
PANDA network inference.

Aligns motif, PPI and co-expression priors and iterates the PANDA message
passing until the regulatory network stabilizes.
"""

from scorpion_pipeline.panda.normalize import normalize_network
from scorpion_pipeline.panda.priors import (
    EDGE_COLUMNS,
    PandaPriors,
    build_priors,
    edge_table,
    motif_matrix,
    ppi_matrix,
    shared_motif,
)
from scorpion_pipeline.panda.solver import (
    PandaResult,
    PandaSolver,
    PandaState,
    PandaStatus,
    count_edges,
    tanimoto,
    update_diagonal,
)

__all__ = [
    # Normalization
    "normalize_network",
    # Priors
    "EDGE_COLUMNS",
    "PandaPriors",
    "build_priors",
    "edge_table",
    "motif_matrix",
    "ppi_matrix",
    "shared_motif",
    # Solver
    "PandaResult",
    "PandaSolver",
    "PandaState",
    "PandaStatus",
    "count_edges",
    "tanimoto",
    "update_diagonal",
]
