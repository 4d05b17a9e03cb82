"""
Best candidate selection for reference cell lines.

Selection criteria:
1. Higher score
2. Ties go to the candidate with more called markers
3. Remaining ties go to the earliest candidate in enumeration order
"""

from typing import Sequence, Tuple

from .models import Profile


def profile_rank_key(index: int, profile: Profile) -> Tuple[float, int, int]:
    """Sort key for candidates: lower is better."""
    return (-profile.score, -profile.marker_number, index)


def select_best_profile(profiles: Sequence[Profile]) -> Tuple[int, Profile]:
    """
    Select the best-scoring candidate profile.

    Args:
        profiles: Scored candidate profiles in enumeration order

    Returns:
        Tuple of (index_in_input, best_profile)

    Raises:
        ValueError: If no candidates are given
    """
    if not profiles:
        raise ValueError("Cannot select a best profile from an empty candidate list")

    best_index = min(range(len(profiles)), key=lambda i: profile_rank_key(i, profiles[i]))
    return best_index, profiles[best_index]
