"""
Configuration classes and request parameter normalization for CLASTR.

CLASTR: Cell Line Authentication using STR
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, FrozenSet, List, Mapping, Optional, Tuple
import logging
import yaml

from .core.markers import normalize_key
from .core.models import AMELOGENIN
from .core.scoring import Algorithm, ScoringMode
from .exceptions import InvalidParameterError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Species:
    """A species with its catalog of STR markers."""
    code: str
    name: str
    default_markers: Tuple[str, ...]
    optional_markers: Tuple[str, ...] = ()

    @property
    def markers(self) -> FrozenSet[str]:
        """Default and optional marker names."""
        return frozenset(self.default_markers) | frozenset(self.optional_markers)

    def accepts(self, marker_name: str) -> bool:
        return marker_name in self.markers


HUMAN = Species(
    code='human',
    name='Homo sapiens',
    default_markers=(
        AMELOGENIN, 'CSF1PO', 'D13S317', 'D16S539', 'D18S51', 'D21S11',
        'D3S1358', 'D5S818', 'D7S820', 'D8S1179', 'FGA', 'Penta_D',
        'Penta_E', 'TH01', 'TPOX', 'vWA',
    ),
    optional_markers=(
        'D10S1248', 'D12S391', 'D19S433', 'D1S1656', 'D22S1045', 'D2S1338',
        'D2S441', 'D6S1043', 'DYS391', 'F13A01', 'F13B', 'FESFPS', 'LPL',
        'Penta_C', 'SE33',
    ),
)

MOUSE = Species(
    code='mouse',
    name='Mus musculus',
    default_markers=(
        '1-1', '1-2', '2-1', '3-2', '4-2', '5-5', '6-4', '6-7', '7-1',
        '8-1', '11-1', '11-2', '12-1', '13-1', '15-3', '17-2', '18-3',
        '19-2', 'X-1',
    ),
)

DOG = Species(
    code='dog',
    name='Canis lupus familiaris',
    default_markers=(
        'FHC2010', 'FHC2054', 'FHC2079', 'PEZ1', 'PEZ3', 'PEZ5', 'PEZ6',
        'PEZ8', 'PEZ12', 'PEZ20',
    ),
    optional_markers=(AMELOGENIN,),
)

SPECIES = (HUMAN, MOUSE, DOG)
DEFAULT_SPECIES = HUMAN


def get_species(value: str) -> Optional[Species]:
    """Look up a species by code or scientific name, ignoring case."""
    wanted = value.strip().lower()
    for species in SPECIES:
        if wanted in (species.code, species.name.lower()):
            return species
    return None


# Normalized parameter keys
SPECIES_KEY = 'SPECIES'
ALGORITHM_KEY = 'ALGORITHM'
SCORING_MODE_KEY = 'SCORINGMODE'
SCORE_FILTER_KEY = 'SCOREFILTER'
MIN_MARKERS_KEY = 'MINMARKERS'
MAX_RESULTS_KEY = 'MAXRESULTS'
INCLUDE_AMELOGENIN_KEY = 'INCLUDEAMELOGENIN'
DESCRIPTION_KEY = 'DESCRIPTION'
OUTPUT_FORMAT_KEY = 'OUTPUTFORMAT'

# Result formats the writers support
OUTPUT_FORMATS = ('tsv', 'csv', 'json')


def _as_text(value: Any) -> str:
    if value is None:
        return ''
    if isinstance(value, bool):
        return 'true' if value else 'false'
    return str(value)


def _parse_int(name: str, value: str, minimum: int = 0) -> int:
    try:
        number = int(value.strip())
    except ValueError:
        raise InvalidParameterError(name, value, suggestion=f"{name} must be an integer")
    if number < minimum:
        raise InvalidParameterError(name, value, suggestion=f"{name} must be >= {minimum}")
    return number


def _parse_index(name: str, value: str, enum_cls):
    index = _parse_int(name, value)
    try:
        return enum_cls.from_index(index)
    except ValueError:
        choices = ', '.join(f"{m.index} ({m.value})" for m in enum_cls)
        raise InvalidParameterError(name, value, suggestion=f"Use one of: {choices}")


def _parse_format(name: str, value: str) -> Optional[str]:
    fmt = value.strip().lower()
    if not fmt:
        return None
    if fmt not in OUTPUT_FORMATS:
        raise InvalidParameterError(
            name, value, suggestion=f"Use one of: {', '.join(OUTPUT_FORMATS)}"
        )
    return fmt


@dataclass
class SearchParameters:
    """
    Normalized parameters of one STR similarity search.

    Attributes:
        species: Species whose cell lines are searched
        algorithm: Per-marker comparison algorithm
        scoring_mode: Marker counting policy
        score_filter: Minimum best score for a hit (percent)
        min_markers: Minimum number of called markers in the winning profile
        max_results: Maximum number of hits returned
        include_amelogenin: Score Amelogenin as an extra marker
        description: Free-text description echoed with the results
        output_format: Requested result format (tsv, csv or json), if any
        marker_values: (canonical marker name, raw allele string) in request order
    """
    species: Species = DEFAULT_SPECIES
    algorithm: Algorithm = Algorithm.EXACT
    scoring_mode: ScoringMode = ScoringMode.STRICT
    score_filter: int = 60
    min_markers: int = 8
    max_results: int = 200
    include_amelogenin: bool = False
    description: str = ''
    output_format: Optional[str] = None
    marker_values: List[Tuple[str, str]] = field(default_factory=list)

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, Any]) -> 'SearchParameters':
        """
        Normalize a raw request mapping.

        Keys are case and whitespace insensitive. Marker keys go through the
        alias table; markers outside the species catalog are dropped.

        Raises:
            InvalidParameterError: On unknown species, unsupported algorithm
                or scoring mode, unsupported output format or malformed numbers
        """
        entries = [(normalize_key(str(k)), str(k), _as_text(v)) for k, v in mapping.items()]

        params = cls()

        for name, _, value in entries:
            if name == SPECIES_KEY:
                species = get_species(value)
                if species is None:
                    codes = ', '.join(s.code for s in SPECIES)
                    raise InvalidParameterError(name, value, suggestion=f"Use one of: {codes}")
                params.species = species
                break

        for name, key, value in entries:
            if name == ALGORITHM_KEY:
                params.algorithm = _parse_index(name, value, Algorithm)
            elif name == SCORING_MODE_KEY:
                params.scoring_mode = _parse_index(name, value, ScoringMode)
            elif name == SCORE_FILTER_KEY:
                params.score_filter = _parse_int(name, value)
            elif name == MIN_MARKERS_KEY:
                params.min_markers = _parse_int(name, value)
            elif name == MAX_RESULTS_KEY:
                params.max_results = _parse_int(name, value)
            elif name == INCLUDE_AMELOGENIN_KEY:
                params.include_amelogenin = value.strip().lower() == 'true'
            elif name == DESCRIPTION_KEY:
                params.description = value
            elif name == OUTPUT_FORMAT_KEY:
                params.output_format = _parse_format(name, value)
            elif name == SPECIES_KEY:
                continue
            elif params.species.accepts(name):
                params.marker_values.append((name, value))
            else:
                logger.debug(f"Ignoring unknown {params.species.code} marker: {key}")

        return params


@dataclass
class EngineConfig:
    """
    Search engine configuration.

    Attributes:
        catalog: Path to the reference catalog TSV
        dataset_version: Release tag of the reference data set
        workers: Worker processes for the catalog scan (1 = sequential)
        log_level: Logging level name
        defaults: Search parameters applied when a request omits them
    """
    catalog: Optional[Path] = None
    dataset_version: str = 'unknown'
    workers: int = 1
    log_level: str = 'INFO'
    defaults: Dict[str, str] = field(default_factory=dict)

    def __post_init__(self):
        if self.workers < 1:
            raise ValueError(f"workers must be >= 1, got {self.workers}")

    def apply_defaults(self, mapping: Mapping[str, Any]) -> Dict[str, Any]:
        """Merge request parameters over the configured defaults."""
        requested = {normalize_key(str(k)) for k in mapping}
        merged: Dict[str, Any] = {
            k: v for k, v in self.defaults.items()
            if normalize_key(str(k)) not in requested
        }
        merged.update(mapping)
        return merged

    @classmethod
    def from_yaml(cls, path: Path) -> 'EngineConfig':
        """Load configuration from YAML file."""
        with open(path) as f:
            data = yaml.safe_load(f) or {}

        catalog = data.get('catalog')
        if catalog:
            catalog = Path(catalog)
            if not catalog.is_absolute():
                catalog = Path(path).parent / catalog

        defaults = {str(k): _as_text(v) for k, v in (data.get('defaults') or {}).items()}

        return cls(
            catalog=catalog,
            dataset_version=str(data.get('dataset_version', 'unknown')),
            workers=int(data.get('workers', 1)),
            log_level=str(data.get('log_level', 'INFO')).upper(),
            defaults=defaults,
        )
