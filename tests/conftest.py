"""Shared fixtures for CLASTR tests."""

import pytest

from clastr.catalog import Catalog
from clastr.core.models import CellLine, Marker


# Query profile used across the search tests: Amelogenin plus 9 STR markers
QUERY_MARKERS = {
    "Amelogenin": "X",
    "CSF1PO": "9,10",
    "D13S317": "12,13.3",
    "D16S539": "9,10",
    "D21S11": "27,28",
    "D5S818": "11,12",
    "D7S820": "8,12",
    "TH01": "7",
    "TPOX": "8,12",
    "vWA": "16,18",
}


def build_cell_line(accession, markers, name=None, species="Homo sapiens", problem=None):
    """
    Build a reference cell line.

    markers maps a marker name to an allele string ("11,12") or to a list of
    allele strings, one per reported alternative.
    """
    cell_line = CellLine(
        accession=accession,
        name=name or accession,
        species=species,
        problem=problem,
    )
    for marker_name, value in markers.items():
        alternatives = value if isinstance(value, list) else [value]
        for alleles in alternatives:
            cell_line.add_alternative(Marker(marker_name, alleles.split(",")))
    return cell_line


@pytest.fixture
def make_cell_line():
    return build_cell_line


@pytest.fixture
def query_markers():
    return dict(QUERY_MARKERS)


@pytest.fixture
def catalog():
    """Small human catalog around QUERY_MARKERS."""
    identical = dict(QUERY_MARKERS)

    # Two markers differ completely: 7/9 under exact strict scoring
    two_off = dict(QUERY_MARKERS, D5S818="13", D7S820="10,11")

    unrelated = {
        "Amelogenin": "X,Y",
        "CSF1PO": "13",
        "D13S317": "8",
        "D16S539": "13,14",
        "D21S11": "30",
        "D5S818": "9",
        "D7S820": "14",
        "TH01": "9.3",
        "TPOX": "11",
        "vWA": "20",
    }

    # One reference matches the query only through its second vWA report
    conflicting = dict(QUERY_MARKERS, vWA=["17,19", "16,18"])

    # Identical but too few markers to pass the marker filter
    short = {k: QUERY_MARKERS[k] for k in ("CSF1PO", "D13S317", "D16S539", "D21S11", "D5S818")}

    cat = Catalog(version="48.0")
    cat.extend([
        build_cell_line("CVCL_0001", two_off, name="TwoOff"),
        build_cell_line("CVCL_0002", identical, name="Identical"),
        build_cell_line("CVCL_0003", unrelated, name="Unrelated"),
        build_cell_line("CVCL_0004", conflicting, name="Conflicting", problem="Contaminated"),
        build_cell_line("CVCL_0005", short, name="Short"),
        build_cell_line(
            "CVCL_M001", {"1-1": "10", "2-1": "15"}, name="MouseLine", species="Mus musculus"
        ),
    ])
    return cat
