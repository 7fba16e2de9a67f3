"""Builders for small feedback pages in both representations."""

from __future__ import annotations

import json
from typing import List, Sequence

from feedlabel.adf import AdfTree
from feedlabel.html_tree import HtmlTree
from feedlabel.tree import DocumentTree

KINDS = ["adf", "storage"]


def adf_cell(text: str = "", header: bool = False) -> dict:
    para: dict = {"type": "paragraph"}
    if text:
        para["content"] = [{"type": "text", "text": text}]
    return {"type": "tableHeader" if header else "tableCell", "content": [para]}


def adf_row(cells: Sequence[str], header: bool = False) -> dict:
    return {"type": "tableRow", "content": [adf_cell(c, header) for c in cells]}


def adf_table(header: Sequence[str], rows: Sequence[Sequence[str]]) -> dict:
    return {
        "type": "table",
        "attrs": {"layout": "default"},
        "content": [adf_row(header, header=True)] + [adf_row(r) for r in rows],
    }


def adf_paragraph(text: str) -> dict:
    return {"type": "paragraph", "content": [{"type": "text", "text": text}]}


def adf_doc(*blocks: dict) -> dict:
    return {"type": "doc", "version": 1, "content": list(blocks)}


def html_table(header: Sequence[str], rows: Sequence[Sequence[str]]) -> str:
    head = "".join(f"<th><p>{h}</p></th>" for h in header)
    body = "".join(
        "<tr>" + "".join(f"<td><p>{c}</p></td>" for c in r) + "</tr>" for r in rows
    )
    return f"<table><tbody><tr>{head}</tr>{body}</tbody></table>"


def page_body(kind: str, header: Sequence[str], rows: Sequence[Sequence[str]], intro: str = "Intro") -> str:
    """Serialized page body: an intro paragraph followed by one table."""
    if kind == "adf":
        return json.dumps(adf_doc(adf_paragraph(intro), adf_table(header, rows)))
    return f"<p>{intro}</p>" + html_table(header, rows)


def build_tree(kind: str, header: Sequence[str], rows: Sequence[Sequence[str]], intro: str = "Intro") -> DocumentTree:
    body = page_body(kind, header, rows, intro)
    if kind == "adf":
        return AdfTree.from_json(body)
    return HtmlTree.from_markup(body)


def grid(doc: DocumentTree, table) -> List[List[str]]:
    """Cell texts of every row, header first."""
    return [[doc.text_of(c).strip() for c in doc.cells(r)] for r in doc.rows(table)]


def widths(doc: DocumentTree, table) -> List[int]:
    return [len(doc.cells(r)) for r in doc.rows(table)]


FEEDBACK_ROWS: List[List[str]] = [
    ["Export fails", "CSV export times out on large projects"],
    ["Dark mode", "Please add a dark theme to the dashboard"],
    ["", ""],
]


def numbered_rows(n: int, offset: int = 0) -> List[List[str]]:
    return [[f"Subject {i}", f"Description {i}"] for i in range(offset, offset + n)]


def first_table(doc: DocumentTree):
    found = doc.find(doc.is_table)
    return found[0][0] if found else None