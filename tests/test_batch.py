"""Tests for clastr.batch."""

import pytest

from clastr.batch import default_description, run_batch, with_default_description
from clastr.exceptions import InvalidParameterError


class TestDescriptions:
    """Test default batch descriptions."""

    def test_default_description(self):
        """Test descriptions are numbered from 1."""
        assert default_description(0) == "Sample 1"
        assert default_description(9) == "Sample 10"

    def test_existing_description_kept(self):
        """Test a description under any key spelling is kept."""
        parameters = with_default_description({" Description ": "HeLa"}, 0)
        assert parameters == {" Description ": "HeLa"}

    def test_input_not_modified(self):
        """Test the caller's mapping is left unchanged."""
        mapping = {"TH01": "7"}
        parameters = with_default_description(mapping, 2)
        assert parameters["description"] == "Sample 3"
        assert mapping == {"TH01": "7"}


class TestRunBatch:
    """Test batch searches."""

    def test_results_in_input_order(self, catalog, query_markers):
        """Test one result per item, in order, with default descriptions."""
        items = [
            dict(query_markers),
            dict(query_markers, description="Named", scoreFilter="80"),
            {"species": "mouse", "1-1": "10", "2-1": "15", "minMarkers": "2"},
        ]

        results = run_batch(items, catalog)

        assert [r.description for r in results] == ["Sample 1", "Named", "Sample 3"]
        assert len(results[0].results) == 3
        assert len(results[1].results) == 2
        assert [c.accession for c in results[2].results] == ["CVCL_M001"]

    def test_items_independent(self, catalog, query_markers):
        """Test an item does not see the scores of the previous one."""
        results = run_batch([dict(query_markers), dict(query_markers)], catalog)
        assert results[0].best_scores == results[1].best_scores
        assert results[0].results[0] is not results[1].results[0]

    def test_invalid_item_named(self, catalog, query_markers):
        """Test an invalid item is reported with its position."""
        with pytest.raises(InvalidParameterError) as exc_info:
            run_batch([dict(query_markers), dict(query_markers, scoringMode="4")], catalog)

        assert "query 2" in exc_info.value.full_message

    def test_empty_batch(self, catalog):
        """Test an empty batch gives no results."""
        assert run_batch([], catalog) == []
