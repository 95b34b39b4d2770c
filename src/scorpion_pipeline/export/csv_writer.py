"""
CSV output writer for network exports.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Optional

import numpy as np
import pandas as pd

from scorpion_pipeline.aggregation.base import SuperCellData
from scorpion_pipeline.export.formatter import ScorpionResult


class NumpyEncoder(json.JSONEncoder):
    """JSON encoder that handles numpy types."""

    def default(self, obj):
        if isinstance(obj, np.integer):
            return int(obj)
        if isinstance(obj, np.floating):
            return float(obj)
        if isinstance(obj, np.ndarray):
            return obj.tolist()
        return super().default(obj)


class CSVWriter:
    """Writes networks and summaries to CSV/JSON files."""

    def __init__(
        self,
        output_dir: Path,
        include_index: bool = True,
        float_format: str = "%.6g",
    ):
        self.output_dir = Path(output_dir)
        self.output_dir.mkdir(parents=True, exist_ok=True)
        self.include_index = include_index
        self.float_format = float_format

    def write_matrix(
        self,
        matrix: pd.DataFrame,
        filename: str,
        index_label: Optional[str] = None,
    ) -> Path:
        """Write matrix to CSV.

        Parameters
        ----------
        matrix : pd.DataFrame
            Matrix to write
        filename : str
            Output filename
        index_label : str, optional
            Label for index column

        Returns
        -------
        Path
            Path to written file
        """
        path = self.output_dir / filename
        matrix.to_csv(
            path,
            index=self.include_index,
            index_label=index_label,
            float_format=self.float_format,
        )
        return path

    def write_summary(self, summary: dict, filename: str = "summary.json") -> Path:
        """Write run summary as JSON."""
        path = self.output_dir / filename
        with open(path, "w") as f:
            json.dump(summary, f, indent=2, cls=NumpyEncoder)
        return path

    def write_result(self, result: ScorpionResult) -> dict[str, Path]:
        """Write every present network plus ``summary.json``.

        Parameters
        ----------
        result : ScorpionResult
            Pipeline output

        Returns
        -------
        dict
            Written paths keyed by network name (and "summary")
        """
        index_labels = {
            "regNet": "tf",
            "coregNet": "gene",
            "coopNet": "tf",
            "coexpression": "gene",
        }
        paths = {}
        for name, matrix in result.networks.items():
            paths[name] = self.write_matrix(matrix, f"{name}.csv", index_label=index_labels[name])
        paths["summary"] = self.write_summary(result.summary())
        return paths

    def write_supercells(self, supercells: SuperCellData) -> dict[str, Path]:
        """Write super-cell expression and the cell membership table."""
        membership = supercells.partition.to_series().to_frame()
        return {
            "expression": self.write_matrix(
                supercells.expression, "supercell_expression.csv", index_label="gene"
            ),
            "membership": self.write_matrix(membership, "membership.csv", index_label="cell"),
        }

    def write_long_format(
        self,
        df: pd.DataFrame,
        filename: str,
        value_name: str = "score",
        var_name: str = "target",
        id_name: str = "source",
    ) -> Path:
        """Write a network as an edge list (melted).

        Parameters
        ----------
        df : pd.DataFrame
            Wide format network
        filename : str
            Output filename
        value_name : str
            Name for value column
        var_name : str
            Name for column-label column
        id_name : str
            Name for row-label column
        """
        df_long = df.rename_axis(index=id_name).reset_index().melt(
            id_vars=[id_name],
            var_name=var_name,
            value_name=value_name,
        )

        path = self.output_dir / filename
        df_long.to_csv(path, index=False, float_format=self.float_format)
        return path


def write_result_csv(result: ScorpionResult, output_dir: Path) -> dict[str, Path]:
    """Convenience function to write a SCORPION result."""
    writer = CSVWriter(output_dir)
    return writer.write_result(result)
