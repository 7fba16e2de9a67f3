"""Tree primitives: text extraction, search order, path addressing."""
import pytest

from feedlabel.adf import AdfTree
from feedlabel.html_tree import HtmlTree
from feedlabel.tree import InvalidPath

from _helpers import adf_doc, adf_paragraph, adf_table


def _nested_doc():
    inner = adf_table(["Inner"], [["x"]])
    outer = adf_table(["Subject", "Description"], [["a", "b"]])
    # nested table inside the outer table's first data cell
    outer["content"][1]["content"][0]["content"].append(inner)
    later = adf_table(["Later"], [["y"]])
    return adf_doc(adf_paragraph("Intro"), outer, later)


class TestTextOf:
    """text_of concatenates leaf text in document order."""

    def test_concatenates_leaves_in_document_order(self):
        """Marks and nesting do not change the reading order."""
        node = {
            "type": "paragraph",
            "content": [
                {"type": "text", "text": "Hello "},
                {"type": "strong", "content": [{"type": "text", "text": "big "}]},
                {"type": "text", "text": "world"},
            ],
        }
        assert AdfTree(adf_doc(node)).text_of(node) == "Hello big world"

    def test_none_and_childless_are_empty(self):
        """A missing node or a node without children has no text."""
        doc = AdfTree(adf_doc())
        assert doc.text_of(None) == ""
        assert doc.text_of({"type": "paragraph"}) == ""

    def test_adf_inline_nodes_read_their_attrs(self):
        """Status lozenges, mentions and emoji carry their text in attrs."""
        node = {
            "type": "paragraph",
            "content": [
                {"type": "status", "attrs": {"text": "BUG", "color": "red"}},
                {"type": "text", "text": " by "},
                {"type": "mention", "attrs": {"id": "u1", "text": "@Sam"}},
                {"type": "emoji", "attrs": {"shortName": ":fire:"}},
                {"type": "hardBreak"},
            ],
        }
        assert AdfTree(adf_doc(node)).text_of(node) == "BUG by @Sam:fire:"

    def test_html_ignores_comments(self):
        """Comments are markup, not page text."""
        doc = HtmlTree.from_markup("<p>Sub<!-- hidden -->ject</p>")
        assert doc.text_of(doc.root.p) == "Subject"


class TestFind:
    """find returns matches with their paths, in document order."""

    def test_tables_come_out_in_document_order(self):
        """A nested table comes after its parent and before later siblings."""
        doc = AdfTree(_nested_doc())
        tables = doc.find(doc.is_table)
        headers = [doc.header_names(node)[0] for node, _ in tables]
        assert headers == ["subject", "inner", "later"]

    def test_paths_resolve_to_the_found_nodes(self):
        """Every returned path addresses the returned node."""
        doc = AdfTree(_nested_doc())
        for node, path in doc.find(doc.is_table):
            assert doc.get_at_path(path) is node

    def test_root_has_empty_path(self):
        """The root itself is addressed by the empty path."""
        doc = AdfTree(adf_doc())
        found = doc.find(lambda n: n.get("type") == "doc")
        assert found == [(doc.root, [])]

    def test_html_paths_resolve(self):
        """HTML paths index into tag contents and resolve the same way."""
        doc = HtmlTree.from_markup("<p>x</p><table><tr><td>1</td></tr></table><table><tr><td>2</td></tr></table>")
        tables = doc.find(doc.is_table)
        assert len(tables) == 2
        for node, path in tables:
            assert doc.get_at_path(path) is node
        assert doc.text_of(tables[1][0]) == "2"


class TestPathAddressing:
    """get_at_path / set_at_path reject paths that do not exist."""

    def test_get_past_end_is_invalid(self):
        """Indexes past the end, or into a leaf, raise InvalidPath."""
        doc = AdfTree(adf_doc(adf_paragraph("a")))
        with pytest.raises(InvalidPath):
            doc.get_at_path([5])
        with pytest.raises(InvalidPath):
            doc.get_at_path([0, 0, 0])  # text node has no children

    def test_set_on_root_is_refused(self):
        """The root can never be replaced."""
        doc = AdfTree(adf_doc(adf_paragraph("a")))
        with pytest.raises(InvalidPath):
            doc.set_at_path([], adf_doc())

    def test_set_past_end_is_invalid(self):
        """set_at_path does not append; the slot must exist."""
        doc = AdfTree(adf_doc(adf_paragraph("a")))
        with pytest.raises(InvalidPath):
            doc.set_at_path([1], adf_paragraph("b"))

    def test_set_replaces_node(self):
        """The addressed node is swapped in place."""
        doc = AdfTree(adf_doc(adf_paragraph("a"), adf_paragraph("b")))
        doc.set_at_path([1], adf_paragraph("c"))
        assert doc.text_of(doc.root) == "ac"

    def test_html_set_replaces_node(self):
        """An HTML table can be swapped for another tag."""
        doc = HtmlTree.from_markup("<table><tr><td>old</td></tr></table>")
        (table, path), = doc.find(doc.is_table)
        replacement = HtmlTree.from_markup("<table><tr><td>new</td></tr></table>").root.table
        doc.set_at_path(path, replacement)
        assert "new" in doc.serialize()
        assert "old" not in doc.serialize()


class TestHtmlTables:
    """Storage-format parsing and serialization."""

    def test_rows_of_nested_tables_are_excluded(self):
        """A table owns only its own rows."""
        doc = HtmlTree.from_markup(
            "<table><tr><th>Subject</th><th>Description</th></tr>"
            "<tr><td><table><tr><td>inner</td></tr></table></td><td>d</td></tr></table>"
        )
        outer = doc.find(doc.is_table)[0][0]
        assert len(doc.rows(outer)) == 2

    def test_fragment_round_trip_has_no_wrapper(self):
        """A body fragment serializes back without <html><body>."""
        markup = "<p>Intro</p><table><tbody><tr><th><p>Subject</p></th></tr></tbody></table>"
        out = HtmlTree.from_markup(markup).serialize()
        assert out == markup

    def test_storage_macros_round_trip(self):
        """CDATA bodies and self-closing ac:/ri: elements come back unchanged."""
        markup = (
            '<ac:structured-macro ac:name="code"><ac:parameter ac:name="language">html</ac:parameter>'
            '<ac:plain-text-body><![CDATA[<html><body>if a < b { x(); }</body></html>]]></ac:plain-text-body>'
            "</ac:structured-macro>"
            '<p>See <ac:link><ri:page ri:content-title="Roadmap"/></ac:link>.</p>'
        )
        out = HtmlTree.from_markup(markup).serialize()
        assert out == markup

    def test_cdata_is_not_page_text(self):
        """Macro bodies do not leak into text_of."""
        doc = HtmlTree.from_markup("<div>a<![CDATA[hidden]]>b</div>")
        assert doc.text_of(doc.root) == "ab"
