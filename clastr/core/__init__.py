"""
Core STR matching modules: data model, resolution, scoring and reduction.
"""

from .markers import (
    MARKER_ALIASES,
    normalize_key,
)
from .models import (
    AMELOGENIN,
    Allele,
    CellLine,
    Marker,
    Profile,
)
from .reduction import (
    profile_rank_key,
    select_best_profile,
)
from .resolver import (
    count_candidates,
    resolve_profiles,
)
from .scoring import (
    Algorithm,
    ScoringMode,
    compute_score,
    marker_credit,
    round_score,
    score_profiles,
)

__all__ = [
    # Models
    'AMELOGENIN',
    'Allele',
    'Marker',
    'Profile',
    'CellLine',
    # Marker names
    'MARKER_ALIASES',
    'normalize_key',
    # Resolution
    'count_candidates',
    'resolve_profiles',
    # Scoring
    'Algorithm',
    'ScoringMode',
    'compute_score',
    'marker_credit',
    'round_score',
    'score_profiles',
    # Reduction
    'profile_rank_key',
    'select_best_profile',
]
