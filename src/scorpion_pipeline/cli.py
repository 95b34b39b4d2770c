"""
Command-line interface for the SCORPION pipeline.

Usage:
    scorpion-pipeline run --expression counts.h5ad --motif motif.tsv --ppi ppi.tsv -o out/
    scorpion-pipeline run --expression counts.csv --motif motif.tsv --config scorpion.yaml
    scorpion-pipeline supercells --expression counts.h5ad --gamma 10 -o out/
    scorpion-pipeline coexpression --expression counts.h5ad --assoc-method spearman -o out/
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Any, Optional

from scorpion_pipeline.core.errors import ScorpionError

logger = logging.getLogger("scorpion_pipeline")


def _setup_logging(verbose: bool = False, log_file: Optional[str] = None) -> None:
    """Configure logging for CLI."""
    level = logging.DEBUG if verbose else logging.INFO
    fmt = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    if log_file:
        handlers.append(logging.FileHandler(log_file))
    logging.basicConfig(level=level, format=fmt, handlers=handlers)


def _config_options(args: argparse.Namespace) -> dict[str, Any]:
    """Options from an optional YAML file, overridden by explicit flags."""
    options: dict[str, Any] = {}
    if getattr(args, "config", None):
        import yaml

        config_path = Path(args.config)
        if not config_path.exists():
            raise FileNotFoundError(f"Config file not found: {config_path}")
        with open(config_path) as f:
            options = yaml.safe_load(f) or {}
        if isinstance(options.get("config"), dict):
            options = options["config"]

    flags = {
        "gamma_value": "gamma",
        "n_pc": "n_pc",
        "k_knn": "k_knn",
        "assoc_method": "assoc_method",
        "alpha_value": "alpha",
        "hamming_value": "hamming",
        "n_iter": "n_iter",
        "out_net": "networks",
        "randomization_method": "randomization",
        "n_cores": "n_cores",
        "seed": "seed",
    }
    for option, flag in flags.items():
        value = getattr(args, flag, None)
        if value is not None:
            options[option] = value

    for option, flag in (("scale_by_present", "scale_by_present"), ("filter_expr", "filter_expr")):
        if getattr(args, flag, False):
            options[option] = True
    if getattr(args, "no_z_scaling", False):
        options["z_scaling"] = False
    if getattr(args, "gpu", False):
        options["use_gpu"] = True
    return options


def cmd_run(args: argparse.Namespace) -> int:
    """Run the full pipeline and write the networks."""
    from scorpion_pipeline.core.config import ScorpionConfig
    from scorpion_pipeline.export.csv_writer import CSVWriter
    from scorpion_pipeline.ingest.readers import read_expression
    from scorpion_pipeline.pipeline import Pipeline

    config = ScorpionConfig.from_dict(_config_options(args))
    expr = read_expression(args.expression, layer=args.layer)
    logger.info("Loaded %d genes x %d cells from %s", expr.n_genes, expr.n_cells, args.expression)

    result = Pipeline(config).run(expr, tf_motifs=args.motif, ppi_net=args.ppi)

    writer = CSVWriter(Path(args.output or "."))
    paths = writer.write_result(result)
    if args.edge_list and result.regNet is not None:
        paths["regNet_edges"] = writer.write_long_format(result.regNet, "regNet_edges.csv")

    if result.is_association_only:
        logger.info("No motif prior; wrote the association network only")
    else:
        logger.info(
            "PANDA %s after %d iterations (hamming=%.5g): %d genes, %d TFs, %d edges",
            result.status, result.n_iterations, result.hamming,
            result.numGenes, result.numTFs, result.numEdges,
        )
    for name, path in paths.items():
        logger.info("Wrote %s -> %s", name, path)
    return 0


def cmd_supercells(args: argparse.Namespace) -> int:
    """Aggregate single cells into super-cells."""
    from scorpion_pipeline.aggregation import SuperCellAggregator
    from scorpion_pipeline.core.config import SuperCellConfig
    from scorpion_pipeline.export.csv_writer import CSVWriter
    from scorpion_pipeline.ingest.readers import read_expression

    config = SuperCellConfig(
        gamma=args.gamma,
        n_pc=args.n_pc,
        k_knn=args.k_knn,
        aggregation=args.aggregation,
    )
    config.validate()

    expr = read_expression(args.expression, layer=args.layer)
    supercells = SuperCellAggregator(config, n_jobs=args.n_cores, seed=args.seed).aggregate(expr)

    paths = CSVWriter(Path(args.output or ".")).write_supercells(supercells)
    logger.info(
        "Aggregated %d cells into %d super-cells (%s)",
        expr.n_cells, supercells.n_units, paths["expression"],
    )
    return 0


def cmd_coexpression(args: argparse.Namespace) -> int:
    """Compute the super-cell gene association network only."""
    from scorpion_pipeline.core.config import ScorpionConfig
    from scorpion_pipeline.export.csv_writer import CSVWriter
    from scorpion_pipeline.ingest.readers import read_expression
    from scorpion_pipeline.pipeline import Pipeline

    config = ScorpionConfig.from_dict(_config_options(args))
    expr = read_expression(args.expression, layer=args.layer)

    result = Pipeline(config).run(expr)
    paths = CSVWriter(Path(args.output or ".")).write_result(result)
    logger.info(
        "Association network over %d genes saved to %s",
        result.numGenes, paths["coexpression"],
    )
    return 0


def _add_expression_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--expression", "-e", required=True,
                        help="Expression file (.h5ad, or genes x cells CSV/TSV)")
    parser.add_argument("--layer", help="AnnData layer to read instead of .X")
    parser.add_argument("--output", "-o", help="Output directory")


def _add_association_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--config", help="YAML file with configuration options")
    parser.add_argument("--gamma", type=float, help="Cells per super-cell")
    parser.add_argument("--n-pc", type=int, help="Principal components for the cell graph")
    parser.add_argument("--k-knn", type=int, help="Neighbours per cell")
    parser.add_argument("--assoc-method", choices=["pearson", "spearman", "pcNet"])
    parser.add_argument("--scale-by-present", action="store_true",
                        help="Scale associations by joint presence")
    parser.add_argument("--filter-expr", action="store_true",
                        help="Drop genes that are never expressed")
    parser.add_argument("--randomization", choices=["None", "within.gene", "by.genes"])
    parser.add_argument("--n-cores", type=int, help="BLAS threads")
    parser.add_argument("--seed", type=int, help="Random seed")


def build_parser() -> argparse.ArgumentParser:
    """Build the CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog="scorpion-pipeline",
        description="Single-cell gene regulatory network inference with SCORPION",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable verbose logging")
    parser.add_argument("--log-file", type=str, help="Log file path")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # --- run ---
    p_run = subparsers.add_parser("run", help="Infer regulatory networks")
    _add_expression_args(p_run)
    _add_association_args(p_run)
    p_run.add_argument("--motif", "-m", help="Motif prior (TF, gene, score)")
    p_run.add_argument("--ppi", "-p", help="PPI prior (TF, TF, score)")
    p_run.add_argument("--alpha", type=float, help="PANDA retention weight in (0, 1]")
    p_run.add_argument("--hamming", type=float, help="Convergence threshold")
    p_run.add_argument("--n-iter", type=int, help="Maximum PANDA iterations")
    p_run.add_argument("--networks", nargs="+",
                       choices=["regulatory", "coregulatory", "cooperative"],
                       help="Networks to write")
    p_run.add_argument("--no-z-scaling", action="store_true",
                       help="Rescale outputs to [0, 1] instead of z-scores")
    p_run.add_argument("--edge-list", action="store_true",
                       help="Also write the regulatory network as an edge list")
    p_run.add_argument("--gpu", action="store_true", help="Use CuPy when available")
    p_run.set_defaults(func=cmd_run)

    # --- supercells ---
    p_sc = subparsers.add_parser("supercells", help="Aggregate cells into super-cells")
    _add_expression_args(p_sc)
    p_sc.add_argument("--gamma", type=float, default=10.0, help="Cells per super-cell")
    p_sc.add_argument("--n-pc", type=int, default=25)
    p_sc.add_argument("--k-knn", type=int, default=5)
    p_sc.add_argument("--aggregation", default="mean", choices=["mean", "sum"])
    p_sc.add_argument("--n-cores", type=int, default=1)
    p_sc.add_argument("--seed", type=int, default=12345)
    p_sc.set_defaults(func=cmd_supercells)

    # --- coexpression ---
    p_co = subparsers.add_parser("coexpression", help="Super-cell gene association network")
    _add_expression_args(p_co)
    _add_association_args(p_co)
    p_co.set_defaults(func=cmd_coexpression)

    return parser


def main(argv: list[str] | None = None) -> int:
    """CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 0

    _setup_logging(verbose=args.verbose, log_file=args.log_file)

    try:
        return args.func(args)
    except (ScorpionError, FileNotFoundError) as e:
        logger.error("%s: %s", type(e).__name__, e)
        return 1


if __name__ == "__main__":
    sys.exit(main())
