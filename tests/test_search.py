"""Tests for clastr.search."""

import pytest

from clastr.catalog import Catalog
from clastr.config import EngineConfig
from clastr.core.models import Marker, Profile
from clastr.exceptions import InvalidParameterError
from clastr.search import (
    SearchEngine,
    build_query_profile,
    is_hit,
    redact_query,
    search,
)


class TestBuildQueryProfile:
    """Test query profile construction."""

    def test_tokens_trimmed_and_uppercased(self):
        """Test allele tokens are normalized and empty tokens skipped."""
        query = build_query_profile([("Amelogenin", " x , y "), ("TH01", "7,,9.3")])
        assert query.get("Amelogenin").values == ["X", "Y"]
        assert query.get("TH01").values == ["7", "9.3"]

    def test_duplicate_marker_ignored(self):
        """Test a repeated marker keeps its first value."""
        query = build_query_profile([("TH01", "7"), ("TH01", "8")])
        assert len(query) == 1
        assert query.get("TH01").values == ["7"]

    def test_redact_query(self):
        """Test redaction clears scoring annotations."""
        query = Profile.from_markers([Marker("TH01", ["7"], searched=True, conflicted=True)])
        query.get("TH01").alleles[0].matched = True

        redact_query(query)

        marker = query.get("TH01")
        assert marker.searched is None
        assert marker.conflicted is None
        assert marker.alleles[0].matched is None


class TestSearchEngine:
    """Test end-to-end searches against the fixture catalog."""

    def test_default_search(self, catalog, query_markers):
        """Test hits, order and scores with default parameters."""
        result = search(query_markers, catalog)

        assert [c.accession for c in result.results] == ["CVCL_0002", "CVCL_0004", "CVCL_0001"]
        assert result.best_scores == [100.0, 100.0, 77.78]

    def test_results_sorted_and_filtered(self, catalog, query_markers):
        """Test every hit passes the filters and hits are sorted."""
        result = search(dict(query_markers, scoreFilter="50", minMarkers="6"), catalog)

        scores = result.best_scores
        assert scores == sorted(scores, reverse=True)
        for cell_line in result.results:
            assert cell_line.best_score >= 50
            assert cell_line.marker_number >= 6

    def test_ties_keep_catalog_order(self, make_cell_line, query_markers):
        """Test tied hits keep load order, not accession order."""
        catalog = Catalog(version="48.0")
        catalog.extend([
            make_cell_line("CVCL_0009", query_markers, name="LoadedFirst"),
            make_cell_line("CVCL_0005", dict(query_markers, TH01="9"), name="Lower"),
            make_cell_line("CVCL_0001", query_markers, name="LoadedLast"),
        ])

        sequential = SearchEngine(catalog).search(query_markers)
        parallel = SearchEngine(catalog, EngineConfig(workers=2)).search(query_markers)

        expected = ["CVCL_0009", "CVCL_0001", "CVCL_0005"]
        assert [c.accession for c in sequential.results] == expected
        assert [c.accession for c in parallel.results] == expected
        assert sequential.best_scores == [100.0, 100.0, 88.89]

    def test_output_format(self, catalog, query_markers):
        """Test the requested output format is validated and kept on the result."""
        assert search(query_markers, catalog).output_format is None
        assert search(dict(query_markers, outputFormat="CSV"), catalog).output_format == "csv"

    def test_invalid_output_format(self, catalog, query_markers, monkeypatch):
        """Test an unsupported output format fails before any scan."""
        def fail(*args, **kwargs):
            raise AssertionError("catalog was scanned")

        monkeypatch.setattr(catalog, "cell_lines", fail)

        with pytest.raises(InvalidParameterError) as exc_info:
            search(dict(query_markers, outputFormat="pdf"), catalog)
        assert exc_info.value.name == "OUTPUTFORMAT"

    def test_score_filter(self, catalog, query_markers):
        """Test hits below the score filter are dropped."""
        result = search(dict(query_markers, scoreFilter="80"), catalog)
        assert [c.accession for c in result.results] == ["CVCL_0002", "CVCL_0004"]

    def test_min_markers(self, catalog, query_markers):
        """Test a lower marker threshold admits short profiles."""
        result = search(dict(query_markers, minMarkers="5"), catalog)
        assert "CVCL_0005" in [c.accession for c in result.results]

    def test_min_markers_with_amelogenin(self, catalog, query_markers):
        """Test Amelogenin does not count towards the marker threshold."""
        # The identical profile has 10 called markers including Amelogenin
        passing = search(dict(query_markers, minMarkers="9", includeAmelogenin="true"), catalog)
        failing = search(dict(query_markers, minMarkers="10", includeAmelogenin="true"), catalog)

        assert "CVCL_0002" in [c.accession for c in passing.results]
        assert "CVCL_0002" not in [c.accession for c in failing.results]

    def test_max_results(self, catalog, query_markers):
        """Test truncation keeps the best hits."""
        result = search(dict(query_markers, maxResults="1"), catalog)
        assert [c.accession for c in result.results] == ["CVCL_0002"]

    def test_max_results_zero(self, catalog, query_markers):
        """Test a zero limit returns no hits."""
        assert search(dict(query_markers, maxResults="0"), catalog).results == []

    def test_conflicting_record_best_candidate(self, catalog, query_markers):
        """Test an ambiguous record is reduced to its best candidate."""
        result = search(query_markers, catalog)
        hit = next(c for c in result.results if c.accession == "CVCL_0004")

        assert len(hit.profiles) == 1
        vwa = hit.best_profile.get("vWA")
        assert vwa.values == ["16", "18"]
        assert vwa.conflicted is True
        assert vwa.searched is True
        assert all(a.matched for a in vwa.alleles)
        assert hit.problematic

    def test_species_filter(self, catalog):
        """Test only cell lines of the requested species are scanned."""
        result = search({"species": "mouse", "1-1": "10", "2-1": "15", "minMarkers": "2"}, catalog)
        assert [c.accession for c in result.results] == ["CVCL_M001"]
        assert result.parameters.species == "Mus musculus"

    def test_query_echo(self, catalog, query_markers):
        """Test the echoed query is sorted and carries no annotations."""
        shuffled = dict(reversed(list(query_markers.items())))
        result = search(shuffled, catalog)

        names = [m.name for m in result.parameters.markers]
        assert names == sorted(names)
        for marker in result.parameters.markers:
            assert marker.searched is None
            assert marker.conflicted is None
            assert all(a.matched is None for a in marker.alleles)

    def test_unknown_markers_dropped(self, catalog, query_markers):
        """Test markers outside the species catalog never reach the query."""
        result = search(dict(query_markers, FOO="1", **{"1-1": "10"}), catalog)
        names = [m.name for m in result.parameters.markers]
        assert "FOO" not in names
        assert "1-1" not in names

    def test_catalog_not_mutated(self, catalog, query_markers):
        """Test searches leave the catalog untouched."""
        search(query_markers, catalog)

        conflicting = catalog.get("CVCL_0004")
        assert len(conflicting.profiles) == 2
        assert conflicting.best_score == 0.0
        for profile in conflicting.profiles:
            assert profile.score == 0.0
            assert all(m.searched is None for m in profile)

    def test_repeatable(self, catalog, query_markers):
        """Test the same request gives the same result."""
        first = search(query_markers, catalog)
        second = search(query_markers, catalog)
        assert [c.accession for c in first.results] == [c.accession for c in second.results]
        assert first.best_scores == second.best_scores

    def test_invalid_parameter_raises(self, catalog, query_markers, monkeypatch):
        """Test an invalid request fails before any scan."""
        def fail(*args, **kwargs):
            raise AssertionError("catalog was scanned")

        monkeypatch.setattr(catalog, "cell_lines", fail)

        with pytest.raises(InvalidParameterError):
            search(dict(query_markers, algorithm="5"), catalog)

    def test_metadata(self, catalog, query_markers):
        """Test result metadata."""
        result = search(dict(query_markers, description="HeLa check"), catalog)

        assert result.description == "HeLa check"
        assert result.dataset_version == "48.0"
        line = result.metadata_line()
        assert line.startswith("#Description: 'HeLa check'")
        assert "Data set: 'Cellosaurus release 48.0'" in line
        assert "Include Amelogenin: 'false'" in line

    def test_to_dict(self, catalog, query_markers):
        """Test JSON-ready serialization."""
        d = search(query_markers, catalog).to_dict()

        assert d["cellosaurusRelease"] == "48.0"
        assert d["parameters"]["algorithm"] == "exact"
        assert d["parameters"]["scoreFilter"] == 60
        assert d["results"][0]["accession"] == "CVCL_0002"
        assert d["results"][0]["bestScore"] == 100.0

    def test_config_defaults(self, catalog, query_markers):
        """Test configured defaults apply when the request omits them."""
        config = EngineConfig(defaults={"scoreFilter": "80"})
        result = SearchEngine(catalog, config).search(query_markers)
        assert "CVCL_0001" not in [c.accession for c in result.results]

    def test_parallel_matches_sequential(self, catalog, query_markers):
        """Test a parallel scan gives the same hits as a sequential one."""
        sequential = SearchEngine(catalog).search(query_markers)
        parallel = SearchEngine(catalog, EngineConfig(workers=2)).search(query_markers)

        assert [c.accession for c in parallel.results] == [c.accession for c in sequential.results]
        assert parallel.best_scores == sequential.best_scores


def test_is_hit(make_cell_line):
    """Test the score and marker filters."""
    cell_line = make_cell_line("CVCL_0001", {"TH01": "7", "vWA": "16", "Amelogenin": "X"})
    cell_line.profiles[0].score = 75.0
    cell_line.reduce_profiles()

    assert is_hit(cell_line, 75, 3)
    assert not is_hit(cell_line, 76, 3)
    assert not is_hit(cell_line, 75, 3, include_amelogenin=True)
    assert is_hit(cell_line, 75, 2, include_amelogenin=True)
