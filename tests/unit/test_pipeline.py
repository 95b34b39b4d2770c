"""Tests for the end-to-end pipeline."""

import pytest
import numpy as np
import pandas as pd


class TestPipeline:
    """Test the SCORPION pipeline."""

    def test_full_run(self, sc_expression, motif_edges, ppi_edges):
        from scorpion_pipeline.core.config import ScorpionConfig
        from scorpion_pipeline.core.progress import RecordingProgress
        from scorpion_pipeline.pipeline import Pipeline

        progress = RecordingProgress()
        config = ScorpionConfig(gamma_value=10, alpha_value=0.8)
        result = Pipeline(config, progress=progress).run(sc_expression, motif_edges, ppi_edges)

        n_genes = len(set(motif_edges["gene"]) - {"gene_missing"})
        assert result.numTFs == 5
        assert result.numGenes == n_genes
        assert result.regNet.shape == (5, n_genes)
        assert result.coregNet.shape == (n_genes, n_genes)
        assert result.coopNet.shape == (5, 5)
        assert result.n_supercells == 10
        assert result.status == "converged"
        assert result.numEdges == 50
        assert result.numEdges < result.numTFs * result.numGenes
        assert result.config["alpha_value"] == 0.8

        assert progress.phases[0] == "Initializing and validating"
        assert progress.phases[1] == "Verified sufficient samples"
        assert "Learning Network" in progress.phases
        assert progress.phases[-1] == (
            f"Successfully ran SCORPION on {n_genes} Genes and 5 TFs"
        )
        assert len(progress.statuses) == result.n_iterations

    def test_deterministic(self, sc_expression, motif_edges, ppi_edges):
        from scorpion_pipeline.core.config import ScorpionConfig
        from scorpion_pipeline.pipeline import Pipeline

        config = ScorpionConfig(show_progress=False)
        a = Pipeline(config).run(sc_expression, motif_edges, ppi_edges)
        b = Pipeline(config).run(sc_expression, motif_edges, ppi_edges)
        pd.testing.assert_frame_equal(a.regNet, b.regNet)
        pd.testing.assert_frame_equal(a.coregNet, b.coregNet)

    def test_no_priors_returns_association(self, sc_expression):
        from scorpion_pipeline.core.config import ScorpionConfig
        from scorpion_pipeline.pipeline import Pipeline

        result = Pipeline(ScorpionConfig(show_progress=False)).run(sc_expression)

        assert result.is_association_only
        network = result.coexpression
        assert network.shape == (40, 40)
        np.testing.assert_allclose(network.values, network.values.T, atol=1e-12)
        np.testing.assert_allclose(np.diag(network.values), 1.0)
        assert network.values.min() >= -1.0
        assert network.values.max() <= 1.0

    def test_ppi_without_motif_is_ignored(self, sc_expression, ppi_edges, caplog):
        from scorpion_pipeline.core.config import ScorpionConfig
        from scorpion_pipeline.pipeline import Pipeline

        result = Pipeline(ScorpionConfig(show_progress=False)).run(sc_expression, None, ppi_edges)
        assert result.is_association_only
        assert "PPI network is ignored" in caplog.text

    def test_selected_networks_minmax(self, sc_expression, motif_edges, ppi_edges):
        from scorpion_pipeline.core.config import ScorpionConfig
        from scorpion_pipeline.pipeline import Pipeline

        config = ScorpionConfig(out_net=("regulatory",), z_scaling=False, show_progress=False)
        result = Pipeline(config).run(sc_expression, motif_edges, ppi_edges)
        assert result.coregNet is None
        assert result.coopNet is None
        assert result.regNet.values.min() >= 0.0
        assert result.regNet.values.max() <= 1.0

    @pytest.mark.parametrize("method", ["within.gene", "by.genes"])
    def test_randomized_run(self, sc_expression, motif_edges, method):
        from scorpion_pipeline.core.config import ScorpionConfig
        from scorpion_pipeline.pipeline import Pipeline

        config = ScorpionConfig(randomization_method=method, n_iter=20, show_progress=False)
        result = Pipeline(config).run(sc_expression, motif_edges)
        assert result.regNet.shape[0] == 5
        assert result.n_iterations <= 20

    def test_filter_expr(self, sc_expression):
        from scorpion_pipeline.core.config import ScorpionConfig
        from scorpion_pipeline.pipeline import Pipeline

        expression = sc_expression.copy()
        expression.loc["gene_0"] = 0.0
        config = ScorpionConfig(filter_expr=True, show_progress=False)
        result = Pipeline(config).run(expression)
        assert "gene_0" not in result.coexpression.index
        assert result.coexpression.shape == (39, 39)

    def test_too_few_cells(self, sc_expression):
        from scorpion_pipeline.core.errors import InsufficientSamples
        from scorpion_pipeline.pipeline import Pipeline

        with pytest.raises(InsufficientSamples):
            Pipeline().run(sc_expression.iloc[:, :2])

    def test_gamma_too_large(self, sc_expression):
        from scorpion_pipeline.core.config import ScorpionConfig
        from scorpion_pipeline.core.errors import InsufficientSamples
        from scorpion_pipeline.pipeline import Pipeline

        with pytest.raises(InsufficientSamples, match="super-cell"):
            Pipeline(ScorpionConfig(gamma_value=100)).run(sc_expression)

    def test_disjoint_motif_fails_before_work(self, sc_expression):
        from scorpion_pipeline.core.errors import EmptyIntersection
        from scorpion_pipeline.core.progress import RecordingProgress
        from scorpion_pipeline.pipeline import Pipeline

        progress = RecordingProgress()
        motif = [("TF_0", "unknown_gene", 1.0)]
        with pytest.raises(EmptyIntersection):
            Pipeline(progress=progress).run(sc_expression, motif)
        assert progress.phases == ["Initializing and validating"]

    def test_ppi_without_shared_tfs_fails_before_work(self, sc_expression, motif_edges):
        from scorpion_pipeline.core.errors import EmptyIntersection
        from scorpion_pipeline.core.progress import RecordingProgress
        from scorpion_pipeline.pipeline import Pipeline

        progress = RecordingProgress()
        with pytest.raises(EmptyIntersection, match="TFs"):
            Pipeline(progress=progress).run(sc_expression, motif_edges, [("X", "Y", 1.0)])
        assert progress.phases == ["Initializing and validating"]

    def test_all_zero_motif_fails_before_work(self, sc_expression):
        from scorpion_pipeline.core.errors import EmptyIntersection
        from scorpion_pipeline.core.progress import RecordingProgress
        from scorpion_pipeline.pipeline import Pipeline

        progress = RecordingProgress()
        motif = [("TF_0", "gene_0", 0.0), ("TF_0", "gene_1", 0.0)]
        with pytest.raises(EmptyIntersection, match="motif edges"):
            Pipeline(progress=progress).run(sc_expression, motif)
        assert progress.phases == ["Initializing and validating"]

    def test_malformed_prior(self, sc_expression):
        from scorpion_pipeline.core.errors import DimensionMismatch
        from scorpion_pipeline.pipeline import Pipeline

        with pytest.raises(DimensionMismatch):
            Pipeline().run(sc_expression, pd.DataFrame({"tf": ["TF_0"], "gene": ["gene_0"]}))


class TestScorpionFunction:
    """Test the functional entry point."""

    def test_camel_case_options(self, sc_expression, motif_edges, ppi_edges):
        from scorpion_pipeline.export.formatter import ScorpionResult
        from scorpion_pipeline.pipeline import scorpion

        result = scorpion(
            tf_motifs=motif_edges,
            gex_matrix=sc_expression,
            ppi_net=ppi_edges,
            gammaValue=10,
            alphaValue=0.8,
            showProgress=False,
        )
        assert isinstance(result, ScorpionResult)
        assert result.numTFs == 5

    def test_no_priors_returns_dataframe(self, sc_expression):
        from scorpion_pipeline.pipeline import scorpion

        network = scorpion(gex_matrix=sc_expression, show_progress=False)
        assert isinstance(network, pd.DataFrame)
        assert network.shape == (40, 40)

    def test_invalid_option(self, sc_expression):
        from scorpion_pipeline.core.errors import InvalidConfiguration
        from scorpion_pipeline.pipeline import scorpion

        with pytest.raises(InvalidConfiguration):
            scorpion(gex_matrix=sc_expression, assocMethod="kendall")

    def test_missing_expression(self):
        from scorpion_pipeline.core.errors import InvalidConfiguration
        from scorpion_pipeline.pipeline import scorpion

        with pytest.raises(InvalidConfiguration):
            scorpion()

    def test_callable_progress(self, sc_expression):
        from scorpion_pipeline.pipeline import scorpion

        messages = []
        scorpion(gex_matrix=sc_expression, progress=messages.append)
        assert messages[0] == "Initializing and validating"
        assert "Super-cells: 100 cells -> 10 super-cells" in messages
