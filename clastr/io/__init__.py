"""
I/O modules for CLASTR.
"""

from .catalog_loader import (
    REQUIRED_COLUMNS,
    load_catalog,
)
from .output import (
    format_from_path,
    load_results_json,
    results_to_rows,
    write_batch_summary,
    write_results,
    write_results_json,
    write_results_tsv,
)
from .queries import (
    load_queries,
)

__all__ = [
    'REQUIRED_COLUMNS',
    'load_catalog',
    'load_queries',
    'results_to_rows',
    'write_results_tsv',
    'write_results_json',
    'write_batch_summary',
    'write_results',
    'load_results_json',
    'format_from_path',
]
