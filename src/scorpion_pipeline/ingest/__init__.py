"""
Data ingestion.

Normalizes expression input (dense, sparse, DataFrame, AnnData, files) into
an ``ExpressionMatrix`` and reads prior network edge lists.
"""

from scorpion_pipeline.ingest.base import ExpressionMatrix
from scorpion_pipeline.ingest.readers import read_edge_list, read_expression

__all__ = [
    "ExpressionMatrix",
    "read_expression",
    "read_edge_list",
]
