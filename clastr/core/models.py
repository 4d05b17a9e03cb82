"""
Genotype data model for STR similarity searches.

Allele, Marker and Profile are value types: alleles compare by value and
markers by name, so the transient display annotations written during
scoring (matched, searched, conflicted) never change equality or hashing.
"""

from copy import deepcopy
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Set, Union
import re

AMELOGENIN = "Amelogenin"

# Repeat-count calls: full repeats with an optional microvariant suffix (9.3)
REPEAT_PATTERN = re.compile(r'^(\d+)(?:\.(\d+))?$')


@dataclass(unsafe_hash=True)
class Allele:
    """
    A single allele call at a marker.

    Attributes:
        value: Repeat count ("12", "9.3") or a sentinel such as "X" or "ND"
        matched: Display-only flag set by the scoring engine
    """
    value: str
    matched: Optional[bool] = field(default=None, compare=False)

    @property
    def repeat_count(self) -> Optional[float]:
        """Numeric repeat count, or None for sentinel values."""
        if REPEAT_PATTERN.match(self.value) is None:
            return None
        return float(self.value)

    @property
    def repeat_units(self) -> Optional[int]:
        """Number of complete repeat units, ignoring any microvariant suffix."""
        match = REPEAT_PATTERN.match(self.value)
        if match is None:
            return None
        return int(match.group(1))

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> 'Allele':
        return cls(value=d['value'], matched=d.get('matched'))

    def to_dict(self) -> Dict[str, Any]:
        d = {'value': self.value}
        if self.matched is not None:
            d['matched'] = self.matched
        return d


@dataclass(order=True, unsafe_hash=True)
class Marker:
    """
    A named STR locus with its ordered, value-unique allele calls.

    Attributes:
        name: Canonical marker name (e.g. "D5S818", "vWA", "Amelogenin")
        alleles: Allele calls in reported order, unique by value
        conflicted: True when the reference record reports several allele sets
        searched: True when the marker took part in the last score computation
        sources: Provenance tags of the allele set
    """
    name: str
    alleles: List[Allele] = field(default_factory=list, compare=False)
    conflicted: Optional[bool] = field(default=None, compare=False)
    searched: Optional[bool] = field(default=None, compare=False)
    sources: Optional[Set[str]] = field(default_factory=set, compare=False)

    def __post_init__(self):
        alleles = list(self.alleles)
        self.alleles = []
        for allele in alleles:
            self.add_allele(allele)

    def add_allele(self, allele: Union[Allele, str]) -> bool:
        """Add an allele unless its value is already present."""
        if isinstance(allele, str):
            allele = Allele(allele)
        if allele in self.alleles:
            return False
        self.alleles.append(allele)
        return True

    @property
    def values(self) -> List[str]:
        return [a.value for a in self.alleles]

    @property
    def is_called(self) -> bool:
        """True when at least one allele was reported."""
        return len(self.alleles) > 0

    @property
    def is_amelogenin(self) -> bool:
        return self.name == AMELOGENIN

    @property
    def is_heterozygous(self) -> bool:
        return len(self.alleles) >= 2

    def clear_annotations(self):
        """Reset every scoring and provenance annotation on the marker."""
        self.conflicted = None
        self.searched = None
        self.sources = None
        for allele in self.alleles:
            allele.matched = None

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {
            'name': self.name,
            'alleles': [a.to_dict() for a in self.alleles],
        }
        if self.conflicted is not None:
            d['conflicted'] = self.conflicted
        if self.searched is not None:
            d['searched'] = self.searched
        if self.sources:
            d['sources'] = sorted(self.sources)
        return d

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> 'Marker':
        """Rebuild a marker, annotations included, from to_dict output."""
        return cls(
            name=d['name'],
            alleles=[Allele.from_dict(a) for a in d.get('alleles', [])],
            conflicted=d.get('conflicted'),
            searched=d.get('searched'),
            sources=set(d.get('sources', [])),
        )

    def __repr__(self) -> str:
        return f"Marker({self.name}={','.join(self.values)})"


@dataclass
class Profile:
    """
    A concrete STR profile: one allele set per marker.

    Attributes:
        markers: Marker name -> Marker
        score: Similarity score against the current query, in [0, 100]
    """
    markers: Dict[str, Marker] = field(default_factory=dict)
    score: float = 0.0

    @classmethod
    def from_markers(cls, markers: Iterable[Marker]) -> 'Profile':
        """Build a profile, keeping the first marker seen for each name."""
        profile = cls()
        for marker in markers:
            profile.add_marker(marker)
        return profile

    def add_marker(self, marker: Marker) -> bool:
        """Add a marker unless one with the same name is already present."""
        if marker.name in self.markers:
            return False
        self.markers[marker.name] = marker
        return True

    def get(self, name: str) -> Optional[Marker]:
        return self.markers.get(name)

    def __contains__(self, name: str) -> bool:
        return name in self.markers

    def __iter__(self):
        return iter(self.markers.values())

    def __len__(self) -> int:
        return len(self.markers)

    @property
    def marker_number(self) -> int:
        """Number of markers with at least one called allele."""
        return sum(1 for m in self.markers.values() if m.is_called)

    @property
    def size(self) -> int:
        return len(self.markers)

    def sorted_markers(self) -> List[Marker]:
        return sorted(self.markers.values())

    def to_dict(self) -> Dict[str, Any]:
        return {
            'score': self.score,
            'markerNumber': self.marker_number,
            'size': self.size,
            'markers': [m.to_dict() for m in self.sorted_markers()],
        }

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> 'Profile':
        profile = cls.from_markers(Marker.from_dict(m) for m in d.get('markers', []))
        profile.score = d.get('score', 0.0)
        return profile


@dataclass
class CellLine:
    """
    A reference cell line and its candidate STR profiles.

    The raw record keeps, per marker, every allele set reported for the cell
    line. Candidate profiles are the concrete interpretations of that record
    and are resolved on first access unless set at load time.

    Attributes:
        accession: Catalog accession (e.g. "CVCL_0030")
        name: Cell line name
        species: Species name (e.g. "Homo sapiens")
        marker_alternatives: Marker name -> alternative allele sets, in record order
        problematic: True when the cell line is flagged as problematic
        problem: Free-text description of the problem
        best_score: Score of the winning candidate after reduction
    """
    accession: str
    name: str
    species: str
    marker_alternatives: Dict[str, List[Marker]] = field(default_factory=dict)
    problematic: bool = False
    problem: Optional[str] = None
    best_score: float = 0.0
    _profiles: Optional[List[Profile]] = field(
        default=None, init=False, repr=False, compare=False
    )

    def __post_init__(self):
        if self.problem:
            self.problematic = True

    def add_alternative(self, marker: Marker):
        """Record one reported allele set for a marker."""
        self.marker_alternatives.setdefault(marker.name, []).append(marker)
        self._profiles = None

    @property
    def profiles(self) -> List[Profile]:
        if self._profiles is None:
            self.resolve()
        return self._profiles

    @profiles.setter
    def profiles(self, profiles: List[Profile]):
        self._profiles = list(profiles)

    @property
    def is_resolved(self) -> bool:
        return self._profiles is not None

    def resolve(self) -> 'CellLine':
        """Expand the raw record into its candidate profiles."""
        from .resolver import resolve_profiles

        self._profiles = resolve_profiles(self.marker_alternatives)
        return self

    @property
    def is_ambiguous(self) -> bool:
        """True when some marker has several called allele sets."""
        return any(
            sum(1 for m in alts if m.is_called) > 1
            for alts in self.marker_alternatives.values()
        )

    def reduce_profiles(self) -> 'CellLine':
        """Keep only the best-scoring candidate and record its score."""
        from .reduction import select_best_profile

        profiles = self.profiles
        if not profiles:
            self.best_score = 0.0
            return self

        _, best = select_best_profile(profiles)
        self._profiles = [best]
        self.best_score = best.score
        return self

    @property
    def best_profile(self) -> Optional[Profile]:
        profiles = self.profiles
        return profiles[0] if profiles else None

    @property
    def marker_number(self) -> int:
        best = self.best_profile
        return best.marker_number if best is not None else 0

    def copy(self) -> 'CellLine':
        """Private deep copy for scoring: annotations never reach the original."""
        return deepcopy(self)

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {
            'accession': self.accession,
            'name': self.name,
            'species': self.species,
            'bestScore': self.best_score,
            'problematic': self.problematic,
            'profiles': [p.to_dict() for p in self.profiles],
        }
        if self.problem:
            d['problem'] = self.problem
        return d

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> 'CellLine':
        """
        Rebuild a scored cell line from to_dict output.

        Only the serialized candidate profiles are restored; the raw
        per-marker alternatives are not part of the serialized form.
        """
        cell_line = cls(
            accession=d['accession'],
            name=d['name'],
            species=d['species'],
            problematic=d.get('problematic', False),
            problem=d.get('problem'),
            best_score=d.get('bestScore', 0.0),
        )
        cell_line.profiles = [Profile.from_dict(p) for p in d.get('profiles', [])]
        return cell_line

    def __repr__(self) -> str:
        return f"CellLine(accession={self.accession}, name={self.name})"
