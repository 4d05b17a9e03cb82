"""
STR similarity search orchestration.

Workflow for one request:
1. Normalize and validate the request parameters
2. Build the query profile
3. Score a private copy of every reference cell line of the species
4. Keep the hits passing the score and marker filters
5. Rank, truncate and echo the query without its scoring annotations
"""

from concurrent.futures import ProcessPoolExecutor, as_completed
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple
import logging

from . import __version__
from .catalog import Catalog
from .config import EngineConfig, SearchParameters
from .core.models import CellLine, Marker, Profile
from .core.scoring import Algorithm, ScoringMode, score_profiles

logger = logging.getLogger(__name__)


@dataclass
class Parameters:
    """Search parameters echoed with the results."""
    species: str
    algorithm: Algorithm
    scoring_mode: ScoringMode
    score_filter: int
    min_markers: int
    max_results: int
    include_amelogenin: bool
    markers: List[Marker] = field(default_factory=list)

    @classmethod
    def from_search(cls, params: SearchParameters, markers: List[Marker]) -> 'Parameters':
        return cls(
            species=params.species.name,
            algorithm=params.algorithm,
            scoring_mode=params.scoring_mode,
            score_filter=params.score_filter,
            min_markers=params.min_markers,
            max_results=params.max_results,
            include_amelogenin=params.include_amelogenin,
            markers=markers,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'species': self.species,
            'algorithm': self.algorithm.value,
            'scoringMode': self.scoring_mode.value,
            'scoreFilter': self.score_filter,
            'minMarkers': self.min_markers,
            'maxResults': self.max_results,
            'includeAmelogenin': self.include_amelogenin,
            'markers': [m.to_dict() for m in self.markers],
        }

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> 'Parameters':
        return cls(
            species=d['species'],
            algorithm=Algorithm(d['algorithm']),
            scoring_mode=ScoringMode(d['scoringMode']),
            score_filter=int(d['scoreFilter']),
            min_markers=int(d['minMarkers']),
            max_results=int(d['maxResults']),
            include_amelogenin=bool(d['includeAmelogenin']),
            markers=[Marker.from_dict(m) for m in d.get('markers', [])],
        )


@dataclass
class SearchResult:
    """Ranked hits of one search and the metadata describing the run."""
    results: List[CellLine]
    parameters: Parameters
    description: str = ''
    dataset_version: str = 'unknown'
    run_on: str = field(default_factory=lambda: datetime.now().strftime('%Y-%m-%d %H:%M:%S'))
    tool_version: str = __version__
    output_format: Optional[str] = None

    @property
    def best_scores(self) -> List[float]:
        return [c.best_score for c in self.results]

    def metadata_line(self) -> str:
        """One-line header describing the search, for tabular output."""
        p = self.parameters
        return (
            f"#Description: '{self.description}'"
            f";Data set: 'Cellosaurus release {self.dataset_version}'"
            f";Run on: '{self.run_on}'"
            f";Tool version: '{self.tool_version}'"
            f";Algorithm: '{p.algorithm.value}'"
            f";Scoring mode: '{p.scoring_mode.value}'"
            f";Score filter: '{p.score_filter}'"
            f";Max results: '{p.max_results}'"
            f";Include Amelogenin: '{str(p.include_amelogenin).lower()}'"
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'description': self.description,
            'cellosaurusRelease': self.dataset_version,
            'runOn': self.run_on,
            'toolVersion': self.tool_version,
            'parameters': self.parameters.to_dict(),
            'results': [c.to_dict() for c in self.results],
        }

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> 'SearchResult':
        """Rebuild a search result from to_dict output, e.g. to convert stored JSON."""
        return cls(
            results=[CellLine.from_dict(c) for c in d.get('results', [])],
            parameters=Parameters.from_dict(d['parameters']),
            description=d.get('description', ''),
            dataset_version=d.get('cellosaurusRelease', 'unknown'),
            run_on=d.get('runOn', ''),
            tool_version=d.get('toolVersion', __version__),
        )


def build_query_profile(marker_values: Iterable[Tuple[str, str]]) -> Profile:
    """
    Build the query profile from (marker name, allele string) pairs.

    Allele strings are comma separated; tokens are trimmed and uppercased.
    A marker already in the query is not added again.
    """
    query = Profile()
    for name, value in marker_values:
        marker = Marker(name)
        for token in value.split(','):
            token = token.strip().upper()
            if token:
                marker.add_allele(token)
        if not query.add_marker(marker):
            logger.debug(f"Ignoring duplicate query marker: {name}")
    return query


def redact_query(query: Profile):
    """Clear the annotations that only have meaning on candidate profiles."""
    for marker in query:
        marker.clear_annotations()


def score_cell_line(
    cell_line: CellLine,
    query: Profile,
    algorithm: Algorithm,
    mode: ScoringMode,
    include_amelogenin: bool = False,
) -> CellLine:
    """Score a private copy of a cell line and reduce it to its best candidate."""
    copy = cell_line.copy()
    score_profiles(algorithm, mode, query, copy.profiles, include_amelogenin)
    return copy.reduce_profiles()


def is_hit(cell_line: CellLine, score_filter: int, min_markers: int,
           include_amelogenin: bool = False) -> bool:
    """True when a reduced cell line passes the score and marker filters."""
    marker_number = cell_line.marker_number
    if include_amelogenin:
        marker_number -= 1
    return cell_line.best_score >= score_filter and marker_number >= min_markers


def _score_batch_worker(batch_data) -> List[Tuple[int, CellLine]]:
    """
    Worker function for parallel catalog scans.

    Module-level so it can be pickled by ProcessPoolExecutor.

    Args:
        batch_data: Tuple of (offset, cell_lines, query, params)

    Returns:
        List of (catalog_index, scored_cell_line) for the hits of the batch
    """
    offset, cell_lines, query, params = batch_data
    hits = []
    for i, cell_line in enumerate(cell_lines):
        scored = score_cell_line(
            cell_line, query, params.algorithm, params.scoring_mode, params.include_amelogenin
        )
        if is_hit(scored, params.score_filter, params.min_markers, params.include_amelogenin):
            hits.append((offset + i, scored))
    return hits


class SearchEngine:
    """Runs STR similarity searches against a loaded catalog."""

    def __init__(self, catalog: Catalog, config: Optional[EngineConfig] = None):
        self.catalog = catalog
        self.config = config or EngineConfig()

    def search(self, mapping: Mapping[str, Any]) -> SearchResult:
        """
        Run one search.

        Args:
            mapping: Raw request parameters (case and whitespace insensitive keys)

        Returns:
            SearchResult with hits sorted by descending best score

        Raises:
            InvalidParameterError: If a parameter is invalid; nothing is scanned
        """
        params = SearchParameters.from_mapping(self.config.apply_defaults(mapping))
        query = build_query_profile(params.marker_values)

        cell_lines = self.catalog.cell_lines(params.species)
        logger.info(
            f"Searching {len(cell_lines)} {params.species.name} cell lines with "
            f"{query.marker_number} query markers "
            f"(algorithm={params.algorithm.value}, mode={params.scoring_mode.value})"
        )

        if self.config.workers > 1 and len(cell_lines) > 1:
            hits = self._scan_parallel(cell_lines, query, params)
        else:
            hits = _score_batch_worker((0, cell_lines, query, params))

        hits.sort(key=lambda item: (-item[1].best_score, item[0]))
        matches = [cell_line for _, cell_line in hits[:params.max_results]]

        logger.info(f"Found {len(hits)} hits, returning {len(matches)}")

        redact_query(query)
        parameters = Parameters.from_search(params, query.sorted_markers())

        return SearchResult(
            results=matches,
            parameters=parameters,
            description=params.description,
            dataset_version=self.catalog.version,
            output_format=params.output_format,
        )

    def _scan_parallel(
        self,
        cell_lines: Sequence[CellLine],
        query: Profile,
        params: SearchParameters,
    ) -> List[Tuple[int, CellLine]]:
        """
        Score cell lines in parallel using ProcessPoolExecutor.

        Batches are merged in completion order; the caller sorts the hits.
        """
        n_workers = self.config.workers
        batch_size = max(1, len(cell_lines) // (n_workers * 4))  # ~4 batches per worker
        batches = [
            (i, list(cell_lines[i:i + batch_size]), query, params)
            for i in range(0, len(cell_lines), batch_size)
        ]

        logger.debug(f"Split scan into {len(batches)} batches of ~{batch_size} cell lines")

        hits = []
        with ProcessPoolExecutor(max_workers=n_workers) as executor:
            future_to_offset = {
                executor.submit(_score_batch_worker, batch): batch[0]
                for batch in batches
            }
            for future in as_completed(future_to_offset):
                offset = future_to_offset[future]
                try:
                    hits.extend(future.result())
                except Exception as e:
                    logger.error(f"Scan batch at offset {offset} failed: {e}")
                    raise

        return hits


def search(
    mapping: Mapping[str, Any],
    catalog: Catalog,
    config: Optional[EngineConfig] = None,
) -> SearchResult:
    """Run one search with a throwaway engine."""
    return SearchEngine(catalog, config).search(mapping)
