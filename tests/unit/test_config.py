"""Tests for configuration, errors and progress reporting."""

import math

import pytest


class TestScorpionConfig:
    """Test the main configuration."""

    def test_defaults(self):
        from scorpion_pipeline.core.config import (
            AssocMethod,
            NETWORK_NAMES,
            RandomizationMethod,
            ScorpionConfig,
        )

        config = ScorpionConfig()
        assert config.n_cores == 1
        assert config.gamma_value == 10
        assert config.n_pc == 25
        assert config.assoc_method is AssocMethod.PEARSON
        assert config.alpha_value == 0.9
        assert config.hamming_value == 0.001
        assert config.n_iter is None
        assert config.out_net == NETWORK_NAMES
        assert config.z_scaling is True
        assert config.show_progress is True
        assert config.randomization_method is RandomizationMethod.NONE
        assert config.scale_by_present is False
        assert config.filter_expr is False

    def test_shortcuts_sync_sub_configs(self):
        from scorpion_pipeline.core.config import AssocMethod, ScorpionConfig

        config = ScorpionConfig(
            gamma_value=5,
            n_pc=10,
            k_knn=8,
            assoc_method="Spearman",
            alpha_value=0.5,
            hamming_value=0.01,
            n_iter=20,
            out_net=["regulatory"],
            z_scaling=False,
        )
        assert config.supercell.gamma == 5
        assert config.supercell.n_pc == 10
        assert config.supercell.k_knn == 8
        assert config.association.method is AssocMethod.SPEARMAN
        assert config.panda.alpha == 0.5
        assert config.panda.hamming == 0.01
        assert config.panda.max_iterations == 20
        assert config.output.networks == ("regulatory",)
        assert config.output.z_scaling is False

    @pytest.mark.parametrize(
        "options",
        [
            {"alpha_value": 0.0},
            {"alpha_value": 1.5},
            {"gamma_value": 0},
            {"gamma_value": -2},
            {"n_pc": 0},
            {"hamming_value": 0},
            {"n_iter": 0},
            {"n_iter": 2.5},
            {"n_cores": 0},
            {"assoc_method": "kendall"},
            {"randomization_method": "shuffle"},
            {"out_net": ("regulatory", "bogus")},
            {"out_net": ()},
            {"aggregation": "median"},
        ],
    )
    def test_invalid_options_rejected(self, options):
        from scorpion_pipeline.core.config import ScorpionConfig
        from scorpion_pipeline.core.errors import InvalidConfiguration

        with pytest.raises(InvalidConfiguration):
            ScorpionConfig(**options)

    def test_alpha_one_is_allowed(self):
        from scorpion_pipeline.core.config import ScorpionConfig

        assert ScorpionConfig(alpha_value=1.0).panda.alpha == 1.0

    def test_from_dict_camel_case(self):
        from scorpion_pipeline.core.config import AssocMethod, RandomizationMethod, ScorpionConfig

        config = ScorpionConfig.from_dict({
            "gammaValue": 4,
            "alphaValue": 0.7,
            "assocMethod": "pcNet",
            "randomizationMethod": "within.gene",
            "outNet": "regulatory",
            "zScaling": False,
        })
        assert config.gamma_value == 4
        assert config.panda.alpha == 0.7
        assert config.assoc_method is AssocMethod.PCNET
        assert config.randomization_method is RandomizationMethod.WITHIN_GENE
        assert config.out_net == ("regulatory",)
        assert config.z_scaling is False

    def test_from_dict_nested_sections(self):
        from scorpion_pipeline.core.config import ScorpionConfig

        config = ScorpionConfig.from_dict({
            "panda": {"alpha": 0.5, "hamming": 0.01},
            "supercell": {"gamma": 20, "aggregation": "sum"},
        })
        assert config.alpha_value == 0.5
        assert config.panda.alpha == 0.5
        assert config.panda.hamming == 0.01
        assert config.supercell.gamma == 20
        assert config.supercell.aggregation == "sum"

    def test_from_dict_unknown_option(self):
        from scorpion_pipeline.core.config import ScorpionConfig
        from scorpion_pipeline.core.errors import InvalidConfiguration

        with pytest.raises(InvalidConfiguration, match="unknown_option"):
            ScorpionConfig.from_dict({"unknown_option": 1})

    def test_dict_round_trip(self):
        from scorpion_pipeline.core.config import ScorpionConfig

        config = ScorpionConfig(gamma_value=3, assoc_method="spearman", out_net=("cooperative",))
        restored = ScorpionConfig.from_dict(config.to_dict())
        assert restored.to_dict() == config.to_dict()

    def test_unbounded_n_iter_serializes_as_none(self):
        from scorpion_pipeline.core.config import ScorpionConfig

        d = ScorpionConfig(n_iter=float("inf")).to_dict()
        assert d["n_iter"] is None
        assert d["panda"]["n_iter"] is None

    def test_json_round_trip(self, temp_dir):
        from scorpion_pipeline.core.config import ScorpionConfig

        config = ScorpionConfig(alpha_value=0.8, seed=7)
        path = temp_dir / "config.json"
        config.to_json(path)
        restored = ScorpionConfig.from_json(path)
        assert restored.alpha_value == 0.8
        assert restored.seed == 7

    def test_from_yaml(self, temp_dir):
        from scorpion_pipeline.core.config import AssocMethod, ScorpionConfig

        path = temp_dir / "scorpion.yaml"
        path.write_text("config:\n  gammaValue: 5\n  assoc_method: spearman\n  n_iter: 50\n")
        config = ScorpionConfig.from_yaml(path)
        assert config.gamma_value == 5
        assert config.assoc_method is AssocMethod.SPEARMAN
        assert config.panda.max_iterations == 50

    def test_from_env(self, monkeypatch):
        from scorpion_pipeline.core.config import ScorpionConfig

        monkeypatch.setenv("SCORPION_GAMMA", "4")
        monkeypatch.setenv("SCORPION_ALPHA", "0.3")
        monkeypatch.setenv("SCORPION_QUIET", "1")
        config = ScorpionConfig.from_env()
        assert config.gamma_value == 4
        assert config.alpha_value == 0.3
        assert config.show_progress is False


class TestPandaConfig:
    """Test iteration bounds."""

    @pytest.mark.parametrize("n_iter", [None, math.inf])
    def test_unbounded_is_capped(self, n_iter):
        from scorpion_pipeline.core.config import MAX_ITERATIONS, PandaConfig

        config = PandaConfig(n_iter=n_iter)
        config.validate()
        assert config.is_unbounded
        assert config.max_iterations == MAX_ITERATIONS

    def test_bounded(self):
        from scorpion_pipeline.core.config import PandaConfig

        config = PandaConfig(n_iter=50)
        assert not config.is_unbounded
        assert config.max_iterations == 50


class TestMethodParsing:
    """Test enum resolution of method names."""

    def test_assoc_method_case_insensitive(self):
        from scorpion_pipeline.core.config import AssocMethod

        assert AssocMethod.parse("pcNet") is AssocMethod.PCNET
        assert AssocMethod.parse(" PEARSON ") is AssocMethod.PEARSON

    def test_randomization_aliases(self):
        from scorpion_pipeline.core.config import RandomizationMethod

        assert RandomizationMethod.parse(None) is RandomizationMethod.NONE
        assert RandomizationMethod.parse("None") is RandomizationMethod.NONE
        assert RandomizationMethod.parse("within_gene") is RandomizationMethod.WITHIN_GENE
        assert RandomizationMethod.parse("by.genes") is RandomizationMethod.BY_GENES


class TestErrors:
    """Test error taxonomy."""

    def test_hierarchy(self):
        from scorpion_pipeline.core.errors import (
            DimensionMismatch,
            EmptyIntersection,
            InsufficientSamples,
            InvalidConfiguration,
            ScorpionError,
        )

        for error in (InvalidConfiguration, InsufficientSamples, EmptyIntersection, DimensionMismatch):
            assert issubclass(error, ScorpionError)
        assert issubclass(ScorpionError, ValueError)


class TestProgress:
    """Test progress reporters."""

    def test_disabled_reporter_discards(self):
        from scorpion_pipeline.core.progress import NullProgress, as_reporter

        assert isinstance(as_reporter(print, enabled=False), NullProgress)

    def test_default_reporter_logs(self, caplog):
        import logging

        from scorpion_pipeline.core.progress import LoggingProgress, as_reporter

        reporter = as_reporter(None)
        assert isinstance(reporter, LoggingProgress)
        with caplog.at_level(logging.INFO, logger="scorpion_pipeline"):
            reporter.phase("Learning Network")
        assert "Learning Network" in caplog.text

    def test_callable_reporter(self):
        from scorpion_pipeline.core.progress import as_reporter

        messages = []
        reporter = as_reporter(messages.append)
        reporter.phase("phase")
        reporter.status("status")
        assert messages == ["phase", "status"]

    def test_recording_reporter_passes_through(self):
        from scorpion_pipeline.core.progress import RecordingProgress, as_reporter

        recorder = RecordingProgress()
        assert as_reporter(recorder) is recorder

    def test_rejects_non_callable(self):
        from scorpion_pipeline.core.progress import as_reporter

        with pytest.raises(TypeError):
            as_reporter(42)


class TestComputeBackend:
    """Test the default numeric backend."""

    def test_default_backend_is_shared(self):
        from scorpion_pipeline.core.compute import get_compute_backend

        backend = get_compute_backend()
        assert backend is get_compute_backend()
        assert backend.backend == "numpy"
        assert backend.n_cores == 1

    def test_gpu_request_falls_back(self, monkeypatch):
        import numpy as np

        import scorpion_pipeline.core.compute as compute

        monkeypatch.setattr(compute, "check_cupy_available", lambda: (False, "no GPU"))
        backend = compute.ComputeBackend(use_gpu=True)
        assert backend.xp is np
        assert backend.gpu_error == "no GPU"
