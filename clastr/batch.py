"""
Batch STR similarity searches.

Runs the single-query search for each parameter set in order. Items are
independent: each gets its own copy of its parameters and its own copies of
the reference cell lines.
"""

from typing import Any, List, Mapping, Optional, Sequence
import logging

from .catalog import Catalog
from .config import DESCRIPTION_KEY, EngineConfig
from .core.markers import normalize_key
from .exceptions import InvalidParameterError
from .search import SearchEngine, SearchResult

logger = logging.getLogger(__name__)


def default_description(index: int) -> str:
    """Description given to the item at a 0-based batch index."""
    return f"Sample {index + 1}"


def with_default_description(mapping: Mapping[str, Any], index: int) -> dict:
    """Copy of the parameters with a description, added if absent."""
    parameters = dict(mapping)
    if not any(normalize_key(str(k)) == DESCRIPTION_KEY for k in parameters):
        parameters['description'] = default_description(index)
    return parameters


def run_batch(
    parameter_sets: Sequence[Mapping[str, Any]],
    catalog: Catalog,
    config: Optional[EngineConfig] = None,
) -> List[SearchResult]:
    """
    Run one search per parameter set.

    Args:
        parameter_sets: Raw request mappings, one per query
        catalog: Loaded reference catalog
        config: Engine configuration

    Returns:
        One SearchResult per parameter set, in input order

    Raises:
        InvalidParameterError: If any item is invalid; the item index is named
    """
    engine = SearchEngine(catalog, config)
    results = []

    for i, mapping in enumerate(parameter_sets):
        parameters = with_default_description(mapping, i)
        logger.info(f"Processing query {i + 1}/{len(parameter_sets)}: {parameters.get('description', '')}")
        try:
            results.append(engine.search(parameters))
        except InvalidParameterError as e:
            suggestion = f"Invalid parameter in query {i + 1}"
            if e.suggestion:
                suggestion = f"{suggestion}. {e.suggestion}"
            raise InvalidParameterError(e.name, e.value, suggestion=suggestion) from e

    return results
