"""Atlassian Document Format (ADF) adapter: a JSON tree of typed nodes."""

from __future__ import annotations

import copy
import json
from typing import Any, Dict, List, Optional, Union

from feedlabel.tree import DocumentTree

CELL_TYPES = {"tableCell", "tableHeader"}
# inline nodes whose visible text lives in attrs, not in a text child
ATTR_TEXT_TYPES = {"status", "mention", "emoji"}


def _paragraph(text: str = "") -> Dict[str, Any]:
    para: Dict[str, Any] = {"type": "paragraph"}
    if text:
        para["content"] = [{"type": "text", "text": text}]
    return para


def header_cell(text: str) -> Dict[str, Any]:
    return {"type": "tableHeader", "content": [_paragraph(text)]}


def empty_cell() -> Dict[str, Any]:
    return {"type": "tableCell", "content": [_paragraph()]}


class AdfTree(DocumentTree):
    representation = "atlas_doc_format"

    @classmethod
    def from_json(cls, raw: Union[str, Dict[str, Any]]) -> "AdfTree":
        """Build a tree from a JSON string or an already-decoded dict.

        The decoded dict is deep-copied so callers never share nodes with us.
        """
        doc = json.loads(raw) if isinstance(raw, str) else copy.deepcopy(raw)
        if not isinstance(doc, dict) or doc.get("type") != "doc":
            raise ValueError("Unexpected ADF structure: root must be a 'doc' node")
        return cls(doc)

    def children(self, node: Any) -> Optional[List[Any]]:
        if not isinstance(node, dict):
            return None
        kids = node.get("content")
        return kids if isinstance(kids, list) else None

    def leaf_text(self, node: Any) -> Optional[str]:
        if not isinstance(node, dict):
            return None
        if isinstance(node.get("text"), str):
            return node["text"]
        if node.get("type") in ATTR_TEXT_TYPES:
            attrs = node.get("attrs") or {}
            for key in ("text", "shortName"):
                if isinstance(attrs.get(key), str):
                    return attrs[key]
            return ""
        return None

    def replace_child(self, parent: Any, index: int, node: Any) -> None:
        parent["content"][index] = node

    def is_table(self, node: Any) -> bool:
        return isinstance(node, dict) and node.get("type") == "table"

    def rows(self, table: Any) -> List[Any]:
        return [r for r in (self.children(table) or []) if isinstance(r, dict)]

    def cells(self, row: Any) -> List[Any]:
        return self.children(row) or []

    def append_cell(self, row: Any, text: str = "", *, header: bool = False) -> Any:
        cell = header_cell(text) if header else empty_cell()
        if not isinstance(row.get("content"), list):
            row["content"] = []
        row["content"].append(cell)
        return cell

    def set_cell_text(self, row: Any, col: int, text: str) -> None:
        if not isinstance(row.get("content"), list):
            row["content"] = []
        while len(row["content"]) <= col:
            row["content"].append(empty_cell())
        existing = row["content"][col]
        cell_type = existing.get("type") if isinstance(existing, dict) else None
        if cell_type not in CELL_TYPES:
            cell_type = "tableCell"
        cell: Dict[str, Any] = {"type": cell_type, "content": [_paragraph(text)]}
        if isinstance(existing, dict) and "attrs" in existing:
            cell["attrs"] = existing["attrs"]
        row["content"][col] = cell

    def serialize(self) -> str:
        return json.dumps(self.root, ensure_ascii=False)
