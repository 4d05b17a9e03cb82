"""
Resolution of ambiguous reference records into candidate profiles.

A reference cell line can report several allele sets for the same marker
(conflicting historical reports, sub-clones, method disagreement). Every
combination of one allele set per marker is a candidate interpretation of
the record; the search later keeps the one that best matches the query.
"""

from copy import deepcopy
from itertools import product
from typing import Dict, List, Mapping, Sequence
import logging

from .models import Marker, Profile

logger = logging.getLogger(__name__)


def called_alternatives(
    marker_alternatives: Mapping[str, Sequence[Marker]]
) -> Dict[str, List[Marker]]:
    """Alternatives with at least one allele, dropping markers left without any."""
    reported = {}
    for name, alternatives in marker_alternatives.items():
        called = [m for m in alternatives if m.is_called]
        if called:
            reported[name] = called
    return reported


def count_candidates(marker_alternatives: Mapping[str, Sequence[Marker]]) -> int:
    """
    Number of candidate profiles a record resolves to.

    Each marker contributes a factor of k for k called allele sets; markers
    without any called allele set contribute nothing.
    """
    total = 1
    for alternatives in called_alternatives(marker_alternatives).values():
        total *= len(alternatives)
    return total


def resolve_profiles(marker_alternatives: Mapping[str, Sequence[Marker]]) -> List[Profile]:
    """
    Expand per-marker alternative allele sets into concrete profiles.

    The result is the Cartesian product of the alternatives, enumerated
    deterministically: markers in record order, the first marker varying
    slowest. Allele sets without any allele are not interpretations, so a
    marker reported only that way is left out of every candidate. Each
    candidate owns its Marker objects; markers taken from a set of several
    alternatives are flagged as conflicted.

    Args:
        marker_alternatives: Marker name -> reported allele sets, in record order

    Returns:
        List of candidate Profile objects (at least one)
    """
    reported = called_alternatives(marker_alternatives)
    names = list(reported)

    profiles = []
    for combination in product(*(reported[name] for name in names)):
        profile = Profile()
        for name, chosen in zip(names, combination):
            marker = deepcopy(chosen)
            marker.name = name
            if len(reported[name]) > 1:
                marker.conflicted = True
            profile.add_marker(marker)
        profiles.append(profile)

    logger.debug(f"Resolved {len(names)} markers into {len(profiles)} candidate profiles")

    return profiles
