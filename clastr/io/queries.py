"""
Batch query loading.

Queries come either as a JSON array of objects (one object of parameter
keys and values per query) or as a TSV with one query per row and one
parameter per column.
"""

from pathlib import Path
from typing import Dict, List
import json
import logging

import pandas as pd

logger = logging.getLogger(__name__)


def load_queries(path: Path) -> List[Dict[str, str]]:
    """
    Load batch queries from a JSON or TSV file.

    Empty TSV cells are left out of the query.

    Raises:
        ValueError: If a JSON file is not an array of objects
    """
    path = Path(path)

    if path.suffix.lower() == '.json':
        with open(path) as f:
            data = json.load(f)
        if not isinstance(data, list) or not all(isinstance(item, dict) for item in data):
            raise ValueError(f"{path} must contain a JSON array of objects")
        queries = [
            {str(k): '' if v is None else str(v) for k, v in item.items()}
            for item in data
        ]
    else:
        df = pd.read_csv(path, sep='\t', dtype=str, keep_default_na=False, na_values=[''])
        queries = [
            {k: v for k, v in row.items() if pd.notna(v)}
            for row in df.to_dict(orient='records')
        ]

    logger.info(f"Loaded {len(queries)} queries from {path}")
    return queries
