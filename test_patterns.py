"""
Pattern Extractor Tests

Covers identifier and weight extraction from source pages, including the
ranking between strategies and the weight plausibility range.
"""

import pytest

from extraction import (
    extract_identifiers,
    extract_item_details,
    extract_weight,
    has_materialized_content,
    warehouse_from_location,
)
from extraction.markup import parse_markup


RODEO_PAGE = """
<html><body>
<table class="result-table">
  <tr><th>Scannable ID</th><th>Container</th><th>FN SKU</th><th>Qty</th></tr>
  <tr><td>LPN0000000001</td><td>TOTE0000000001</td><td><a href="/i/1">X001ABCDEF2</a></td><td>1</td></tr>
  <tr><td>LPN0000000002</td><td>TOTE0000000001</td><td><a href="/i/2">X001ABCDEF2</a></td><td>1</td></tr>
  <tr><td>LPN0000000003</td><td>TOTE0000000002</td><td><a href="/i/3">B00TESTID99</a></td><td>1</td></tr>
</table>
</body></html>
"""

WEIGHT_PAGE = """
<html><body>
<h2>Item details</h2>
<table>
  <tr><td>ASIN</td><td>B00TESTID99</td></tr>
  <tr><td>FNSKU</td><td>X001ABCDEF2</td></tr>
  <tr><td>Title</td><td>Ceramic Mug, 12 oz</td></tr>
  <tr><td>Weight</td><td>0.79 pounds</td></tr>
  <tr><td>Dimensions</td><td>4.5 x 3.5 x 4 inches</td></tr>
  <tr><td>List Price</td><td>$12.99</td></tr>
</table>
</body></html>
"""


class TestIdentifierExtraction:
    """Identifier strategies, most specific first."""

    def test_header_label_column_wins(self):
        """The FN SKU column is used even though column 1 also holds valid ids."""
        ids = extract_identifiers(RODEO_PAGE)
        assert ids == ["X001ABCDEF2", "X001ABCDEF2", "B00TESTID99"]

    def test_column_beats_different_free_text_ids(self):
        """Structured column values win over other ids mentioned in the page text."""
        markup = (
            "<p>Replenishment for B00OTHERID1 is pending</p>"
            "<table>"
            "<tr><th>Scannable ID</th><th>Container</th><th>FN SKU</th></tr>"
            "<tr><td>LPN0000000001</td><td>TOTE0000000001</td><td>X001ABCDEF2</td></tr>"
            "<tr><td>LPN0000000002</td><td>TOTE0000000001</td><td>X001ABCDEF3</td></tr>"
            "</table>"
            "<p>See also B00OTHERID2</p>"
        )
        assert extract_identifiers(markup) == ["X001ABCDEF2", "X001ABCDEF3"]

    def test_repeats_are_kept(self):
        ids = extract_identifiers(RODEO_PAGE)
        assert ids.count("X001ABCDEF2") == 2

    def test_column_position_without_header(self):
        """Header-less tables fall back to the second column."""
        markup = (
            "<table>"
            "<tr><td>1</td><td>X00AAAAAAA1</td><td>bin A</td></tr>"
            "<tr><td>2</td><td>X00AAAAAAA2</td><td>bin B</td></tr>"
            "</table>"
        )
        assert extract_identifiers(markup) == ["X00AAAAAAA1", "X00AAAAAAA2"]

    def test_invalid_cells_are_skipped(self):
        markup = (
            "<table>"
            "<tr><td>1</td><td>x00lowercase</td></tr>"
            "<tr><td>2</td><td>SHORT1</td></tr>"
            "<tr><td>3</td><td>X00AAAAAAA3</td></tr>"
            "</table>"
        )
        assert extract_identifiers(markup) == ["X00AAAAAAA3"]

    def test_text_search_fallback(self):
        """Prefixed ids in free text are found when no table yields any."""
        markup = "<div><p>Picked X001ABCDEF2 and B00TESTID99 from P-1-A</p></div>"
        assert extract_identifiers(markup) == ["X001ABCDEF2", "B00TESTID99"]

    def test_text_search_ignores_script(self):
        markup = "<script>var id = 'X001ABCDEF2';</script><p>Nothing here</p>"
        assert extract_identifiers(markup) == []

    def test_empty_page(self):
        assert extract_identifiers("") == []


class TestWeightExtraction:
    """Weight strategies and the (0, 1000) pound range."""

    def test_labelled_row(self):
        assert extract_weight(WEIGHT_PAGE) == 0.79

    def test_structured_row_beats_free_text(self):
        markup = (
            "<p>Shipping Weight: 5.00 pounds</p>"
            "<table><tr><td>Weight</td><td>0.79 pounds</td></tr></table>"
        )
        assert extract_weight(markup) == 0.79

    def test_header_cell_label(self):
        markup = "<table><tr><th>Weight</th><td>1.25 lbs</td></tr></table>"
        assert extract_weight(markup) == 1.25

    def test_text_proximity_fallback(self):
        markup = "<div>Item Weight: 2.40 pounds</div>"
        assert extract_weight(markup) == 2.4

    def test_out_of_range_is_rejected(self):
        markup = "<table><tr><td>Weight</td><td>1500 pounds</td></tr></table>"
        assert extract_weight(markup) is None

    def test_zero_is_rejected(self):
        markup = "<table><tr><td>Weight</td><td>0 pounds</td></tr></table>"
        assert extract_weight(markup) is None

    def test_negative_weight_is_rejected(self):
        markup = "<table><tr><td>Weight</td><td>-5 pounds</td></tr></table>"
        assert extract_weight(markup) is None

    def test_negative_weight_in_text_is_rejected(self):
        assert extract_weight("<div>Item Weight: -5 pounds</div>") is None

    def test_no_weight(self):
        assert extract_weight("<table><tr><td>Title</td><td>Mug</td></tr></table>") is None


class TestItemDetails:

    def test_reads_labelled_fields(self):
        details = extract_item_details(WEIGHT_PAGE)
        assert details.asin == "B00TESTID99"
        assert details.item_id == "X001ABCDEF2"
        assert details.title == "Ceramic Mug, 12 oz"
        assert details.weight == 0.79
        assert details.dimensions == "4.5 x 3.5 x 4 inches"
        assert details.list_price == 12.99
        assert details.binding is None


class TestPageHelpers:

    def test_content_not_materialized(self):
        assert has_materialized_content("<div>Loading...</div>") is False

    def test_content_materialized_with_rows(self):
        assert has_materialized_content(WEIGHT_PAGE) is True

    @pytest.mark.parametrize("location,expected", [
        ("https://rodeo-iad.amazon.com/IND8/Search?searchKey=1", "IND8"),
        ("https://fcresearch-na.aka.amazon.com/SDF4/results?s=X1", "SDF4"),
        ("https://example.com/lowercase/path", "IND8"),
        (None, "IND8"),
    ])
    def test_warehouse_from_location(self, location, expected):
        assert warehouse_from_location(location, "IND8") == expected


class TestMarkupReader:

    def test_nested_table_does_not_close_outer_row(self):
        markup = (
            "<table><tr><td>outer</td><td>"
            "<table><tr><td>inner</td></tr></table>"
            "</td><td>after</td></tr></table>"
        )
        parsed = parse_markup(markup)
        outer, inner = parsed.tables
        assert [c.text for c in inner.rows[0]] == ["inner"]
        assert [c.text for c in outer.rows[0]] == ["outer", "inner", "after"]

    def test_unclosed_cells(self):
        parsed = parse_markup("<table><tr><td>a<td>b<tr><td>c</table>")
        assert [[c.text for c in row] for row in parsed.tables[0].rows] == [["a", "b"], ["c"]]
