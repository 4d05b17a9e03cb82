"""
CLASTR - Cell Line Authentication using STR.

STR similarity search of cell-line samples against a reference catalog.
"""

__version__ = "1.0.0"

from .catalog import Catalog
from .config import (
    EngineConfig,
    SearchParameters,
    Species,
)
from .core.models import Allele, CellLine, Marker, Profile
from .core.scoring import Algorithm, ScoringMode
from .exceptions import ClastrError, InvalidParameterError
from .search import SearchEngine, SearchResult, search

__all__ = [
    "Allele",
    "Marker",
    "Profile",
    "CellLine",
    "Catalog",
    "Algorithm",
    "ScoringMode",
    "Species",
    "SearchParameters",
    "EngineConfig",
    "SearchEngine",
    "SearchResult",
    "search",
    "ClastrError",
    "InvalidParameterError",
    "__version__",
]
