"""
Output generation for CLASTR search results.
"""

from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence
import json
import logging

import pandas as pd

from ..config import OUTPUT_FORMATS
from ..search import SearchResult

logger = logging.getLogger(__name__)


def results_to_rows(result: SearchResult) -> List[Dict[str, Any]]:
    """
    Flatten the hits of a search into table rows.

    One row per hit, with one column per query marker holding the alleles of
    the winning candidate profile.
    """
    marker_names = [m.name for m in result.parameters.markers]

    rows = []
    for cell_line in result.results:
        profile = cell_line.best_profile
        row: Dict[str, Any] = {
            'accession': cell_line.accession,
            'name': cell_line.name,
            'species': cell_line.species,
            'score': f"{cell_line.best_score:.2f}",
            'markers': cell_line.marker_number,
            'problem': cell_line.problem or '',
        }
        for name in marker_names:
            marker = profile.get(name) if profile is not None else None
            row[name] = ','.join(marker.values) if marker is not None else ''
        rows.append(row)

    return rows


def write_results_tsv(result: SearchResult, output_path: Path, sep: str = '\t') -> Path:
    """
    Write the hits of one search to TSV (or CSV with sep=',').

    The first line is the search metadata header, followed by the query
    row and one row per hit.

    Args:
        result: SearchResult to write
        output_path: Path for output table
        sep: Column separator

    Returns:
        Path to written file
    """
    query_row: Dict[str, Any] = {
        'accession': 'Query',
        'name': result.description,
        'species': result.parameters.species,
        'score': '',
        'markers': sum(1 for m in result.parameters.markers if m.is_called),
        'problem': '',
    }
    for marker in result.parameters.markers:
        query_row[marker.name] = ','.join(marker.values)

    df = pd.DataFrame([query_row] + results_to_rows(result), columns=list(query_row))

    with open(output_path, 'w') as f:
        f.write(result.metadata_line() + '\n')
        df.to_csv(f, sep=sep, index=False)

    logger.info(f"Wrote {len(result.results)} hits to {output_path}")

    return output_path


def write_results_json(results: Sequence[SearchResult], output_path: Path) -> Path:
    """Write one or more search results to a JSON array."""
    with open(output_path, 'w') as f:
        json.dump([r.to_dict() for r in results], f, indent=2)

    logger.info(f"Wrote {len(results)} searches to {output_path}")

    return output_path


def load_results_json(path: Path) -> List[SearchResult]:
    """
    Read search results written by write_results_json.

    Raises:
        ValueError: If the file is not an array of serialized searches
    """
    with open(path) as f:
        data = json.load(f)

    if isinstance(data, dict):
        data = [data]
    if not isinstance(data, list):
        raise ValueError(f"{path} must contain a JSON array of search results")

    try:
        results = [SearchResult.from_dict(d) for d in data]
    except (KeyError, TypeError) as e:
        raise ValueError(f"{path} is not a serialized search result: {e}") from e

    logger.info(f"Loaded {len(results)} searches from {path}")

    return results


def format_from_path(path: Path) -> Optional[str]:
    """Output format implied by a file extension, if it names one."""
    suffix = Path(path).suffix.lower().lstrip('.')
    return suffix if suffix in OUTPUT_FORMATS else None


def write_results(result: SearchResult, output_path: Path, output_format: str = 'tsv') -> Path:
    """Write one search in the given format (tsv, csv or json)."""
    if output_format == 'json':
        return write_results_json([result], output_path)
    if output_format == 'csv':
        return write_results_tsv(result, output_path, sep=',')
    if output_format == 'tsv':
        return write_results_tsv(result, output_path)
    raise ValueError(f"Unsupported output format: {output_format}")


def write_batch_summary(results: Sequence[SearchResult], output_path: Path) -> Path:
    """
    Write a one-row-per-query summary of a batch.

    Columns: description, number of hits, best hit accession and score.
    """
    rows = []
    for r in results:
        best = r.results[0] if r.results else None
        rows.append({
            'description': r.description,
            'hits': len(r.results),
            'best_accession': best.accession if best else '',
            'best_name': best.name if best else '',
            'best_score': f"{best.best_score:.2f}" if best else '',
        })

    df = pd.DataFrame(rows, columns=['description', 'hits', 'best_accession', 'best_name', 'best_score'])
    df.to_csv(output_path, sep='\t', index=False)

    logger.info(f"Wrote batch summary to {output_path}")

    return output_path
