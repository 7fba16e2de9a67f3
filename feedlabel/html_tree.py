"""
HTML adapter (Confluence "storage" representation) backed by BeautifulSoup.

Storage format is XHTML with ``ac:``/``ri:`` namespaced elements and CDATA
macro bodies. It is parsed with the stdlib-backed ``html.parser`` builder,
which keeps ``<![CDATA[...]]>`` sections as ``CData`` and adds no
``<html><body>`` wrapper, so untouched markup serializes back as it came in.

Dependencies:
  pip install beautifulsoup4
"""

from __future__ import annotations

from typing import Any, List, Optional

from bs4 import BeautifulSoup, NavigableString, Tag
from bs4.element import PreformattedString

from feedlabel.tree import DocumentTree


def _restore_empty_elements(soup: BeautifulSoup) -> None:
    # html.parser only knows HTML void elements; childless namespaced
    # elements (<ri:page .../>, <ac:parameter/>) stay self-closing.
    for tag in soup.find_all(lambda t: ":" in t.name):
        if not tag.contents:
            tag.can_be_empty_element = True


class HtmlTree(DocumentTree):
    representation = "storage"

    @classmethod
    def from_markup(cls, markup: str) -> "HtmlTree":
        soup = BeautifulSoup(markup or "", "html.parser")
        _restore_empty_elements(soup)
        return cls(soup)

    def children(self, node: Any) -> Optional[List[Any]]:
        if isinstance(node, Tag):
            return node.contents
        return None

    def leaf_text(self, node: Any) -> Optional[str]:
        if isinstance(node, PreformattedString):
            # comments, CDATA, doctype: not page text
            return ""
        if isinstance(node, NavigableString):
            return str(node)
        return None

    def replace_child(self, parent: Any, index: int, node: Any) -> None:
        old = parent.contents[index]
        if old is node:
            return
        old.replace_with(node)

    def is_table(self, node: Any) -> bool:
        return isinstance(node, Tag) and node.name == "table"

    def rows(self, table: Any) -> List[Any]:
        # rows of nested tables belong to those tables
        return [tr for tr in table.find_all("tr") if tr.find_parent("table") is table]

    def cells(self, row: Any) -> List[Any]:
        return row.find_all(["th", "td"], recursive=False)

    def _new_cell(self, text: str, header: bool) -> Tag:
        cell = self.root.new_tag("th" if header else "td")
        para = self.root.new_tag("p")
        if text:
            para.string = text
        cell.append(para)
        return cell

    def append_cell(self, row: Any, text: str = "", *, header: bool = False) -> Any:
        cell = self._new_cell(text, header)
        row.append(cell)
        return cell

    def set_cell_text(self, row: Any, col: int, text: str) -> None:
        cells = self.cells(row)
        while len(cells) <= col:
            self.append_cell(row)
            cells = self.cells(row)
        cell = cells[col]
        cell.clear()
        para = self.root.new_tag("p")
        if text:
            para.string = text
        cell.append(para)

    def serialize(self) -> str:
        return self.root.decode()
