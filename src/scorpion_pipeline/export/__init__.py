"""
Output generation.

Rescaling and packaging of the inferred networks, and CSV/JSON writers.
"""

from scorpion_pipeline.export.formatter import (
    ScorpionResult,
    format_association,
    format_output,
    minmax_matrix,
    zscore_matrix,
)
from scorpion_pipeline.export.csv_writer import (
    CSVWriter,
    write_result_csv,
)

__all__ = [
    "ScorpionResult",
    "format_association",
    "format_output",
    "minmax_matrix",
    "zscore_matrix",
    "CSVWriter",
    "write_result_csv",
]
