"""
In-memory catalog of reference cell lines.

The catalog is filled once at startup and only read afterwards. Searches
never write to catalog objects: every request scores its own deep copy of
each cell line, so concurrent searches need no locking.
"""

from collections import OrderedDict
from typing import Dict, Iterable, Iterator, List, Optional
import logging

from .config import SPECIES, Species
from .core.models import CellLine
from .core.resolver import count_candidates

logger = logging.getLogger(__name__)


class Catalog:
    """Reference cell lines grouped by species, in load order."""

    def __init__(self, version: str = 'unknown', species: Iterable[Species] = SPECIES):
        self.version = version
        self._species: Dict[str, Species] = {s.name: s for s in species}
        self._cell_lines: Dict[str, List[CellLine]] = {name: [] for name in self._species}
        self._by_accession: Dict[str, CellLine] = OrderedDict()

    def add(self, cell_line: CellLine) -> CellLine:
        """
        Add a cell line and resolve its candidate profiles.

        Raises:
            ValueError: If the species is unknown or the accession is already loaded
        """
        if cell_line.species not in self._species:
            raise ValueError(f"Unknown species for {cell_line.accession}: {cell_line.species}")
        if cell_line.accession in self._by_accession:
            raise ValueError(f"Duplicate accession: {cell_line.accession}")

        if not cell_line.is_resolved:
            cell_line.resolve()
        self._cell_lines[cell_line.species].append(cell_line)
        self._by_accession[cell_line.accession] = cell_line

        logger.debug(
            f"Loaded {cell_line.accession} with {len(cell_line.profiles)} candidate profiles"
        )
        return cell_line

    def extend(self, cell_lines: Iterable[CellLine]) -> 'Catalog':
        for cell_line in cell_lines:
            self.add(cell_line)
        return self

    def cell_lines(self, species: Species) -> List[CellLine]:
        """Cell lines of a species, in catalog order."""
        return self._cell_lines.get(species.name, [])

    def species_markers(self, species: Species) -> frozenset:
        """Default and optional marker names for a species."""
        return self._species[species.name].markers

    def get(self, accession: str) -> Optional[CellLine]:
        return self._by_accession.get(accession)

    def __contains__(self, accession: str) -> bool:
        return accession in self._by_accession

    def __len__(self) -> int:
        return len(self._by_accession)

    def __iter__(self) -> Iterator[CellLine]:
        return iter(self._by_accession.values())

    def summary(self) -> Dict[str, Dict[str, int]]:
        """Per-species counts of cell lines, ambiguous records and candidates."""
        stats = {}
        for name, cell_lines in self._cell_lines.items():
            candidates = [count_candidates(c.marker_alternatives) for c in cell_lines]
            stats[name] = {
                'cell_lines': len(cell_lines),
                'ambiguous': sum(1 for c in cell_lines if c.is_ambiguous),
                'candidate_profiles': sum(candidates),
                'max_candidates': max(candidates) if candidates else 0,
            }
        return stats
