"""Unit tests for the pipeline CLI.

Tests parser construction, argument handling, option merging and small
end-to-end runs on CSV inputs.
"""

from __future__ import annotations

import json

import pytest
import pandas as pd
from unittest.mock import patch

from scorpion_pipeline.cli import _config_options, build_parser, main


# ===========================================================================
# Parser construction
# ===========================================================================

class TestBuildParser:
    """Tests for argument parser construction."""

    def test_parser_has_all_subcommands(self):
        parser = build_parser()
        subparsers_action = None
        for action in parser._subparsers._actions:
            if hasattr(action, "_parser_class"):
                subparsers_action = action
                break
        assert subparsers_action is not None
        assert set(subparsers_action.choices.keys()) == {"run", "supercells", "coexpression"}

    def test_no_command_returns_zero(self):
        """No subcommand should print help and return 0."""
        assert main([]) == 0

    def test_verbose_flag(self):
        parser = build_parser()
        args = parser.parse_args(["--verbose", "coexpression", "-e", "x.csv"])
        assert args.verbose is True

    def test_log_file_flag(self):
        parser = build_parser()
        args = parser.parse_args(["--log-file", "/tmp/test.log", "coexpression", "-e", "x.csv"])
        assert args.log_file == "/tmp/test.log"


# ===========================================================================
# Subcommand argument parsing
# ===========================================================================

class TestSubcommandArgs:
    """Tests for individual subcommand argument parsing."""

    def test_run_args(self):
        parser = build_parser()
        args = parser.parse_args([
            "run", "-e", "counts.h5ad",
            "--motif", "motif.tsv",
            "--ppi", "ppi.tsv",
            "--gamma", "20",
            "--alpha", "0.5",
            "--assoc-method", "pcNet",
            "--networks", "regulatory", "cooperative",
            "--no-z-scaling",
            "-o", "/tmp/out",
        ])
        assert args.command == "run"
        assert args.motif == "motif.tsv"
        assert args.gamma == 20.0
        assert args.alpha == 0.5
        assert args.assoc_method == "pcNet"
        assert args.networks == ["regulatory", "cooperative"]
        assert args.no_z_scaling is True
        assert args.output == "/tmp/out"

    def test_run_defaults_leave_config_alone(self):
        parser = build_parser()
        args = parser.parse_args(["run", "-e", "counts.h5ad"])
        assert args.gamma is None
        assert args.alpha is None
        assert _config_options(args) == {}

    def test_supercells_defaults(self):
        parser = build_parser()
        args = parser.parse_args(["supercells", "-e", "counts.h5ad"])
        assert args.gamma == 10.0
        assert args.n_pc == 25
        assert args.k_knn == 5
        assert args.aggregation == "mean"

    def test_assoc_method_choices(self):
        parser = build_parser()
        with pytest.raises(SystemExit):
            parser.parse_args(["coexpression", "-e", "x.csv", "--assoc-method", "kendall"])

    def test_randomization_choices(self):
        parser = build_parser()
        args = parser.parse_args(["coexpression", "-e", "x.csv", "--randomization", "by.genes"])
        assert args.randomization == "by.genes"


# ===========================================================================
# Option merging
# ===========================================================================

class TestConfigOptions:
    """Tests for YAML + flag merging."""

    def test_flags_override_yaml(self, temp_dir):
        path = temp_dir / "scorpion.yaml"
        path.write_text("config:\n  gammaValue: 5\n  alphaValue: 0.3\n")
        args = build_parser().parse_args([
            "run", "-e", "x.csv", "--config", str(path), "--alpha", "0.7", "--filter-expr",
        ])
        options = _config_options(args)
        assert options["gammaValue"] == 5
        assert options["alpha_value"] == 0.7
        assert options["filter_expr"] is True

    def test_missing_config_file(self, temp_dir):
        args = build_parser().parse_args(
            ["run", "-e", "x.csv", "--config", str(temp_dir / "missing.yaml")]
        )
        with pytest.raises(FileNotFoundError):
            _config_options(args)


# ===========================================================================
# Command execution
# ===========================================================================

class TestCommands:
    """Tests that run the commands on small inputs."""

    @pytest.fixture
    def inputs(self, temp_dir, sc_expression, motif_edges, ppi_edges):
        expression = temp_dir / "counts.csv"
        motif = temp_dir / "motif.tsv"
        ppi = temp_dir / "ppi.tsv"
        sc_expression.to_csv(expression)
        motif_edges.to_csv(motif, sep="\t", index=False)
        ppi_edges.to_csv(ppi, sep="\t", index=False)
        return {"expression": expression, "motif": motif, "ppi": ppi}

    def test_run_writes_networks(self, inputs, temp_dir):
        out = temp_dir / "out"
        code = main([
            "run",
            "-e", str(inputs["expression"]),
            "--motif", str(inputs["motif"]),
            "--ppi", str(inputs["ppi"]),
            "--alpha", "0.8",
            "--edge-list",
            "-o", str(out),
        ])
        assert code == 0
        for name in ("regNet.csv", "coregNet.csv", "coopNet.csv", "regNet_edges.csv"):
            assert (out / name).exists()
        summary = json.loads((out / "summary.json").read_text())
        assert summary["numTFs"] == 5
        assert summary["config"]["alpha_value"] == 0.8
        assert pd.read_csv(out / "regNet.csv", index_col=0).shape[0] == 5

    def test_coexpression_command(self, inputs, temp_dir):
        out = temp_dir / "coexpression"
        code = main(["coexpression", "-e", str(inputs["expression"]), "-o", str(out)])
        assert code == 0
        network = pd.read_csv(out / "coexpression.csv", index_col=0)
        assert network.shape == (40, 40)

    def test_supercells_command(self, inputs, temp_dir):
        out = temp_dir / "supercells"
        code = main(["supercells", "-e", str(inputs["expression"]), "--gamma", "20", "-o", str(out)])
        assert code == 0
        expression = pd.read_csv(out / "supercell_expression.csv", index_col=0)
        assert expression.shape == (40, 5)

    def test_invalid_option_returns_one(self, inputs, temp_dir):
        code = main([
            "run", "-e", str(inputs["expression"]), "--alpha", "1.5", "-o", str(temp_dir),
        ])
        assert code == 1

    def test_missing_input_returns_one(self, temp_dir):
        assert main(["coexpression", "-e", str(temp_dir / "missing.csv")]) == 1

    def test_run_dispatches_to_pipeline(self, inputs, temp_dir):
        from scorpion_pipeline.export.formatter import ScorpionResult

        with patch("scorpion_pipeline.pipeline.Pipeline.run") as mock_run:
            mock_run.return_value = ScorpionResult(
                coexpression=pd.DataFrame([[1.0]], index=["g"], columns=["g"]),
                numGenes=1,
            )
            code = main(["run", "-e", str(inputs["expression"]), "-o", str(temp_dir / "o")])

        assert code == 0
        mock_run.assert_called_once()
        assert mock_run.call_args.kwargs["tf_motifs"] is None
