"""
Marker-name normalization.

Parameter keys are case and whitespace insensitive, and historical
misspellings or synonyms of marker names are mapped to their canonical form.
"""

import re

from .models import AMELOGENIN

WHITESPACE_PATTERN = re.compile(r'\s+')

# Known misspellings and synonyms, keyed by the normalized (uppercase) form
MARKER_ALIASES = {
    'AM': AMELOGENIN,
    'AMEL': AMELOGENIN,
    'AMELOGENIN': AMELOGENIN,
    'CSF1P0': 'CSF1PO',
    'F13A1': 'F13A01',
    'FES/FPS': 'FESFPS',
    'PENTA_C': 'Penta_C',
    'PENTA_D': 'Penta_D',
    'PENTA_E': 'Penta_E',
    'THO1': 'TH01',
    'VWA': 'vWA',
}

# Species-context prefixes, longest first
SPECIES_PREFIXES = ('MOUSE_STR_', 'MOUSE_', 'DOG_', 'STR_')


def normalize_key(key: str) -> str:
    """
    Normalize a parameter key or marker name.

    Trims, uppercases and collapses whitespace runs to a single underscore,
    then strips a species-context prefix and maps known aliases to their
    canonical marker name.

    Examples:
        >>> normalize_key(' penta   d ')
        'Penta_D'
        >>> normalize_key('Mouse STR 1-1')
        '1-1'
        >>> normalize_key('scoreFilter')
        'SCOREFILTER'
    """
    name = WHITESPACE_PATTERN.sub('_', key.strip().upper())

    for prefix in SPECIES_PREFIXES:
        if name.startswith(prefix):
            name = name[len(prefix):]
            break

    return MARKER_ALIASES.get(name, name)
