"""Pytest configuration and fixtures."""

import pytest
import numpy as np
import pandas as pd
from pathlib import Path
import tempfile


N_GENES = 40
N_CELLS = 100
N_TFS = 5


@pytest.fixture
def sc_expression():
    """Single-cell counts (genes x cells) with four cell populations."""
    rng = np.random.default_rng(42)
    groups = np.repeat(np.arange(4), N_CELLS // 4)
    programs = rng.gamma(2.0, 2.0, size=(N_GENES, 4))
    lam = programs[:, groups] * rng.uniform(0.5, 1.5, size=(1, N_CELLS))
    return pd.DataFrame(
        rng.poisson(lam).astype(float),
        index=[f"gene_{i}" for i in range(N_GENES)],
        columns=[f"cell_{i}" for i in range(N_CELLS)],
    )


@pytest.fixture
def motif_edges():
    """Motif prior: every TF targets a random subset of the first 30 genes."""
    rng = np.random.default_rng(7)
    rows = []
    for t in range(N_TFS):
        for g in rng.choice(30, size=10, replace=False):
            rows.append((f"TF_{t}", f"gene_{g}", 1.0))
    # targets absent from the expression data are dropped by the intersection
    rows.append(("TF_0", "gene_missing", 1.0))
    return pd.DataFrame(rows, columns=["tf", "gene", "score"])


@pytest.fixture
def ppi_edges():
    """PPI prior over the motif TFs plus one TF without motif edges."""
    return pd.DataFrame(
        [
            ("TF_0", "TF_1", 1.0),
            ("TF_1", "TF_2", 0.5),
            ("TF_2", "TF_3", 1.0),
            ("TF_3", "TF_4", 0.8),
            ("TF_4", "TF_extra", 1.0),
        ],
        columns=["tf1", "tf2", "score"],
    )


@pytest.fixture
def small_priors():
    """Aligned 5 TF x 8 gene priors for the PANDA solver."""
    from scorpion_pipeline.panda.priors import build_priors

    rng = np.random.default_rng(3)
    tfs = [f"TF_{i}" for i in range(5)]
    genes = [f"gene_{i}" for i in range(8)]

    motif = pd.DataFrame(
        [(tf, g, 1.0) for tf in tfs for g in genes if rng.random() < 0.4]
        + [(tfs[i % 5], genes[i], 1.0) for i in range(8)],
    )
    ppi = pd.DataFrame([(tfs[i], tfs[i + 1], 1.0) for i in range(4)])

    data = rng.normal(size=(8, 12))
    coexpression = pd.DataFrame(np.corrcoef(data), index=genes, columns=genes)
    return build_priors(motif, ppi, coexpression)


@pytest.fixture
def temp_dir():
    """Create temporary directory for tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def mock_h5ad(temp_dir, sc_expression):
    """H5AD file holding ``sc_expression`` as cells x genes."""
    try:
        import anndata as ad

        adata = ad.AnnData(
            X=sc_expression.T.to_numpy(dtype=np.float32),
            obs=pd.DataFrame(index=sc_expression.columns),
            var=pd.DataFrame(index=sc_expression.index),
        )
        path = temp_dir / "test.h5ad"
        adata.write_h5ad(path)
        return path
    except ImportError:
        pytest.skip("anndata not installed")
