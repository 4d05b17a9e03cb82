"""
STR similarity scoring.

A score compares a query profile with one candidate profile marker by
marker. The algorithm decides how much credit one marker earns; the scoring
mode decides which markers are counted and how half matches are treated:

    score = 100 * sum(per-marker credit) / number of counted markers

Scores are rounded half-up to two decimals.
"""

from decimal import Decimal, ROUND_HALF_UP
from enum import Enum
from typing import Iterable, List

from .models import Marker, Profile

SCORE_PRECISION = Decimal('0.01')


class Algorithm(Enum):
    """Per-marker comparison algorithms."""
    EXACT = 'exact'
    OVERLAP = 'overlap'
    TOLERANT = 'tolerant'

    @property
    def index(self) -> int:
        """1-based index used by request parameters."""
        return list(Algorithm).index(self) + 1

    @classmethod
    def from_index(cls, index: int) -> 'Algorithm':
        members = list(cls)
        if not 1 <= index <= len(members):
            raise ValueError(f"Unsupported algorithm index: {index}")
        return members[index - 1]

    def compute_score(
        self,
        mode: 'ScoringMode',
        query: Profile,
        candidate: Profile,
        include_amelogenin: bool = False,
    ) -> float:
        return compute_score(self, mode, query, candidate, include_amelogenin)


class ScoringMode(Enum):
    """Policies for counting markers missing on one side and half matches."""
    STRICT = 'strict'
    LENIENT = 'lenient'
    PARTIAL_CREDIT = 'partial_credit'

    @property
    def index(self) -> int:
        """1-based index used by request parameters."""
        return list(ScoringMode).index(self) + 1

    @classmethod
    def from_index(cls, index: int) -> 'ScoringMode':
        members = list(cls)
        if not 1 <= index <= len(members):
            raise ValueError(f"Unsupported scoring mode index: {index}")
        return members[index - 1]


def shared_allele_count(query: Marker, reference: Marker) -> int:
    """Number of allele values reported at both markers."""
    return len(set(query.values) & set(reference.values))


def is_adjacent(a, b) -> bool:
    """
    True for adjacent or microvariant repeat-count calls.

    Calls are adjacent when their complete repeat units differ by at most
    one (10 vs 11, 9 vs 9.3). Sentinel values are never adjacent.
    """
    units_a = a.repeat_units
    units_b = b.repeat_units
    if units_a is None or units_b is None:
        return False
    return abs(units_a - units_b) <= 1


def exact_credit(query: Marker, reference: Marker) -> float:
    """Full credit only for identical allele sets."""
    return 1.0 if set(query.values) == set(reference.values) else 0.0


def overlap_credit(query: Marker, reference: Marker) -> float:
    """
    Fraction of shared allele values.

    At a diploid marker 0, 1 or 2 shared alleles give 0, 0.5 or 1.
    """
    denominator = max(len(query.alleles), len(reference.alleles))
    if denominator == 0:
        return 0.0
    return shared_allele_count(query, reference) / denominator


def tolerant_credit(query: Marker, reference: Marker) -> float:
    """
    Allele overlap with half credit for adjacent or microvariant calls.

    Unshared query alleles are paired greedily, in reported order, with the
    first unused adjacent reference allele.
    """
    denominator = max(len(query.alleles), len(reference.alleles))
    if denominator == 0:
        return 0.0

    shared = set(query.values) & set(reference.values)
    query_rest = [a for a in query.alleles if a.value not in shared]
    reference_rest = [a for a in reference.alleles if a.value not in shared]

    used = set()
    near = 0
    for allele in query_rest:
        for j, other in enumerate(reference_rest):
            if j not in used and is_adjacent(allele, other):
                used.add(j)
                near += 1
                break

    return min(1.0, (len(shared) + 0.5 * near) / denominator)


CREDIT_FUNCTIONS = {
    Algorithm.EXACT: exact_credit,
    Algorithm.OVERLAP: overlap_credit,
    Algorithm.TOLERANT: tolerant_credit,
}


def marker_credit(
    algorithm: Algorithm,
    mode: ScoringMode,
    query: Marker,
    reference: Marker,
) -> float:
    """
    Credit earned by one marker called in both profiles.

    Amelogenin is a binary sex-typing marker and always uses exact matching.
    In partial-credit mode a heterozygous marker with exactly one shared
    allele earns at least half credit.
    """
    if query.is_amelogenin:
        return exact_credit(query, reference)

    credit = CREDIT_FUNCTIONS[algorithm](query, reference)

    if (
        mode is ScoringMode.PARTIAL_CREDIT
        and credit < 0.5
        and (query.is_heterozygous or reference.is_heterozygous)
        and shared_allele_count(query, reference) == 1
    ):
        credit = 0.5

    return credit


def round_score(value: float) -> float:
    """Round half-up to two decimals and clamp to [0, 100]."""
    rounded = float(Decimal(repr(value)).quantize(SCORE_PRECISION, rounding=ROUND_HALF_UP))
    return min(100.0, max(0.0, rounded))


def _annotate_matches(query: Marker, reference: Marker):
    query_values = set(query.values)
    reference_values = set(reference.values)
    for allele in query.alleles:
        allele.matched = allele.value in reference_values
    for allele in reference.alleles:
        allele.matched = allele.value in query_values


def compute_score(
    algorithm: Algorithm,
    mode: ScoringMode,
    query: Profile,
    candidate: Profile,
    include_amelogenin: bool = False,
) -> float:
    """
    Score a candidate profile against a query profile.

    Counted markers:
    - STRICT and PARTIAL_CREDIT: markers called in both profiles
    - LENIENT: markers called in the query; a marker the candidate lacks
      earns no credit, a marker the query lacks is ignored

    Amelogenin is counted only when include_amelogenin is set.

    The only side effects are display annotations on the markers and
    alleles that were compared (searched, matched).

    Args:
        algorithm: Per-marker comparison algorithm
        mode: Marker counting policy
        query: Query profile
        candidate: Candidate reference profile
        include_amelogenin: Whether to score Amelogenin

    Returns:
        Score in [0, 100]; 0 when no marker is counted
    """
    credit = 0.0
    counted = 0

    for name, query_marker in query.markers.items():
        if query_marker.is_amelogenin and not include_amelogenin:
            continue
        if not query_marker.is_called:
            continue

        reference_marker = candidate.get(name)
        reference_called = reference_marker is not None and reference_marker.is_called
        if not reference_called and mode is not ScoringMode.LENIENT:
            continue

        counted += 1
        query_marker.searched = True
        if reference_called:
            reference_marker.searched = True
            credit += marker_credit(algorithm, mode, query_marker, reference_marker)
            _annotate_matches(query_marker, reference_marker)

    if counted == 0:
        return 0.0

    return round_score(100.0 * credit / counted)


def score_profiles(
    algorithm: Algorithm,
    mode: ScoringMode,
    query: Profile,
    profiles: Iterable[Profile],
    include_amelogenin: bool = False,
) -> List[float]:
    """Score every candidate profile in place and return the scores."""
    scores = []
    for profile in profiles:
        profile.score = compute_score(algorithm, mode, query, profile, include_amelogenin)
        scores.append(profile.score)
    return scores
