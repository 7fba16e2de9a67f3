"""Table locator and column manager, run against both representations."""
import pytest

from feedlabel.adf import AdfTree
from feedlabel.html_tree import HtmlTree
from feedlabel.table import TableNotFound, column_map, ensure_columns, header_matches, locate_table

from _helpers import (
    FEEDBACK_ROWS,
    KINDS,
    adf_doc,
    adf_paragraph,
    adf_table,
    build_tree,
    grid,
    html_table,
    widths,
)


class TestHeaderMatching:
    """Header cells match a column name loosely."""

    def test_equals_or_contains_ignoring_case(self):
        """Case and surrounding whitespace are ignored."""
        assert header_matches("Subject", "subject")
        assert header_matches("  SUBJECTS ", "subject")
        assert header_matches("Feedback description:", "description")
        assert not header_matches("Summary", "subject")

    def test_loose_match_accepts_longer_headers(self):
        """Extra words around the column name still match."""
        assert header_matches("Subject Line Reviewed", "subject")


class TestLocateTable:
    """The feedback table is the first one with Subject and Description."""

    def test_skips_tables_without_required_headers(self):
        """Earlier unrelated tables and later candidates are ignored."""
        doc = AdfTree(
            adf_doc(
                adf_table(["Name", "Owner"], [["x", "y"]]),
                adf_paragraph("between"),
                adf_table(["Subject", "Description"], [["s", "d"]]),
                adf_table(["Subject", "Description"], [["other", "table"]]),
            )
        )
        located = locate_table(doc)
        assert located.path == [2]
        assert grid(doc, located.node)[1] == ["s", "d"]

    def test_column_offsets(self):
        """Offsets follow header order, and missing label columns are None."""
        doc = AdfTree(adf_doc(adf_table(["#", "Description", "Subject", "Impact"], [])))
        cols = locate_table(doc).columns
        assert (cols.subject_col, cols.description_col) == (2, 1)
        assert cols.theme_col is None
        assert cols.impact_col == 3
        assert not cols.is_complete

    def test_no_table_at_all(self):
        """A page without tables raises TableNotFound."""
        with pytest.raises(TableNotFound):
            locate_table(AdfTree(adf_doc(adf_paragraph("nothing here"))))

    def test_no_qualifying_table(self):
        """A table lacking Description does not qualify."""
        doc = HtmlTree.from_markup(html_table(["Subject", "Notes"], [["a", "b"]]))
        with pytest.raises(TableNotFound):
            locate_table(doc)

    def test_does_not_mutate_tables(self):
        """Locating is read-only."""
        doc = AdfTree(adf_doc(adf_table(["Subject", "Description"], [["a", "b"]])))
        located = locate_table(doc)
        assert widths(doc, located.node) == [2, 2]

    def test_label_column_never_reuses_text_column(self):
        """'Impact description' is the Description column, not Impact."""
        doc = AdfTree(adf_doc(adf_table(["Subject", "Impact description"], [])))
        cols = column_map(doc, locate_table(doc).node)
        assert cols.description_col == 1
        assert cols.impact_col is None


@pytest.mark.parametrize("kind", KINDS)
class TestEnsureColumns:
    """Theme and Impact are appended once and rows padded to match."""

    def test_appends_theme_and_impact(self, kind):
        """Both label headers are added at the end."""
        doc = build_tree(kind, ["Subject", "Description"], FEEDBACK_ROWS)
        located = locate_table(doc)
        cols = ensure_columns(doc, located.node)
        assert grid(doc, located.node)[0] == ["Subject", "Description", "Theme", "Impact"]
        assert (cols.theme_col, cols.impact_col) == (2, 3)
        assert widths(doc, located.node) == [4, 4, 4, 4]

    def test_idempotent(self, kind):
        """A second call adds nothing."""
        doc = build_tree(kind, ["Subject", "Description"], FEEDBACK_ROWS)
        table = locate_table(doc).node
        first = ensure_columns(doc, table)
        second = ensure_columns(doc, table)
        assert first == second
        assert grid(doc, table)[0] == ["Subject", "Description", "Theme", "Impact"]
        assert set(widths(doc, table)) == {4}

    def test_only_missing_column_is_added(self, kind):
        """An existing Theme column keeps its position."""
        doc = build_tree(kind, ["Subject", "Theme", "Description"], [["a", "Bug", "b"]])
        table = locate_table(doc).node
        cols = ensure_columns(doc, table)
        assert grid(doc, table)[0] == ["Subject", "Theme", "Description", "Impact"]
        assert (cols.theme_col, cols.impact_col) == (1, 3)
        assert grid(doc, table)[1] == ["a", "Bug", "b", ""]

    def test_existing_content_preserved(self, kind):
        """Cell text and content outside the table are untouched."""
        doc = build_tree(kind, ["Subject", "Description"], FEEDBACK_ROWS, intro="Keep me")
        table = locate_table(doc).node
        ensure_columns(doc, table)
        assert [r[:2] for r in grid(doc, table)[1:]] == FEEDBACK_ROWS
        assert "Keep me" in doc.serialize()

    def test_short_rows_are_padded(self, kind):
        """Ragged data rows are filled up to the header width."""
        doc = build_tree(kind, ["Subject", "Description", "Theme", "Impact"], [["a"], ["b", "c", "d"]])
        table = locate_table(doc).node
        ensure_columns(doc, table)
        assert widths(doc, table) == [4, 4, 4]


def test_header_only_table_gets_columns():
    """A table with no data rows still gets both label headers."""
    doc = AdfTree(adf_doc(adf_table(["Subject", "Description"], [])))
    table = locate_table(doc).node
    cols = ensure_columns(doc, table)
    assert cols.is_complete
    assert widths(doc, table) == [4]
