"""
File readers for expression matrices and prior networks.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional, Union

import pandas as pd

from scorpion_pipeline.ingest.base import ExpressionMatrix


_DELIMITED = {".csv": ",", ".tsv": "\t", ".txt": "\t"}


def _separator(path: Path) -> str:
    suffixes = [s for s in path.suffixes if s != ".gz"]
    suffix = suffixes[-1].lower() if suffixes else ""
    if suffix not in _DELIMITED:
        raise ValueError(f"Unsupported format: {path.name}")
    return _DELIMITED[suffix]


def read_expression(
    path: Union[str, Path],
    layer: Optional[str] = None,
) -> ExpressionMatrix:
    """
    Read an expression matrix from disk.

    ``.h5ad`` files are read with anndata (cells x genes, transposed on load).
    Delimited text files are read with pandas and must hold genes in rows and
    cells in columns, with gene labels in the first column.

    Args:
        path: Input file.
        layer: AnnData layer to use instead of ``.X``.

    Returns:
        ExpressionMatrix (genes x cells).
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Expression file not found: {path}")

    if path.suffix == ".h5ad":
        import anndata as ad

        adata = ad.read_h5ad(path)
        return ExpressionMatrix.from_anndata(adata, layer=layer)

    df = pd.read_csv(path, sep=_separator(path), index_col=0)
    return ExpressionMatrix.from_dataframe(df)


def read_edge_list(path: Union[str, Path]) -> pd.DataFrame:
    """
    Read a three-column prior network (source, target, score).

    Files with a header keep their column names; files whose first row is
    already data (numeric third field) are read without one.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Network file not found: {path}")

    sep = _separator(path)
    df = pd.read_csv(path, sep=sep)
    if len(df.columns) >= 3:
        try:
            float(df.columns[2])
        except ValueError:
            return df
        return pd.read_csv(path, sep=sep, header=None)
    return df
