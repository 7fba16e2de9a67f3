"""
Document tree capability shared by every backing representation.

A document is a tree of nodes. Container nodes carry an ordered list of
children; leaf nodes carry text. A *path* is a list of child indices that
descends from the root, so ``[]`` is the root itself.

The generic primitives (text extraction, search, path get/set) are written
once here against a handful of hooks; adapters (``AdfTree``, ``HtmlTree``)
only describe how their nodes look.
"""

from __future__ import annotations

from typing import Any, Callable, List, Optional, Sequence, Tuple

Path = List[int]


class InvalidPath(RuntimeError):
    pass


class DocumentTree:
    """Base class for a mutable document tree with table helpers."""

    #: value sent to the document store as ``body.representation``
    representation: str = ""

    def __init__(self, root: Any) -> None:
        self.root = root

    # ----------------------------
    # Hooks implemented by adapters
    # ----------------------------

    def children(self, node: Any) -> Optional[List[Any]]:
        """Return the node's child list, or None for leaves."""
        raise NotImplementedError

    def leaf_text(self, node: Any) -> Optional[str]:
        """Return the text payload of a leaf node, or None."""
        raise NotImplementedError

    def replace_child(self, parent: Any, index: int, node: Any) -> None:
        raise NotImplementedError

    def is_table(self, node: Any) -> bool:
        raise NotImplementedError

    def rows(self, table: Any) -> List[Any]:
        """Rows of a table, header row first."""
        raise NotImplementedError

    def cells(self, row: Any) -> List[Any]:
        raise NotImplementedError

    def append_cell(self, row: Any, text: str = "", *, header: bool = False) -> Any:
        raise NotImplementedError

    def set_cell_text(self, row: Any, col: int, text: str) -> None:
        raise NotImplementedError

    def serialize(self) -> str:
        raise NotImplementedError

    # ----------------------------
    # Generic primitives
    # ----------------------------

    def text_of(self, node: Any) -> str:
        """Concatenate every leaf text under ``node`` in document order."""
        if node is None:
            return ""
        parts: List[str] = []
        stack = [node]
        while stack:
            cur = stack.pop()
            txt = self.leaf_text(cur)
            if txt is not None:
                parts.append(txt)
                continue
            kids = self.children(cur) or []
            stack.extend(reversed(kids))
        return "".join(parts)

    def find(self, predicate: Callable[[Any], bool]) -> List[Tuple[Any, Path]]:
        """Depth-first search returning ``(node, path)`` pairs in document order."""
        found: List[Tuple[Any, Path]] = []
        stack: List[Tuple[Any, Path]] = [(self.root, [])]
        while stack:
            node, path = stack.pop()
            if predicate(node):
                found.append((node, path))
            kids = self.children(node)
            if kids:
                for i in range(len(kids) - 1, -1, -1):
                    stack.append((kids[i], path + [i]))
        return found

    def get_at_path(self, path: Sequence[int]) -> Any:
        cur = self.root
        for depth, idx in enumerate(path):
            kids = self.children(cur)
            if kids is None or not isinstance(idx, int) or idx < 0 or idx >= len(kids):
                raise InvalidPath(f"Path {list(path)} breaks at depth {depth} (index {idx})")
            cur = kids[idx]
        return cur

    def set_at_path(self, path: Sequence[int], node: Any) -> None:
        """Replace the node at ``path``. The root itself can never be replaced."""
        if not path:
            raise InvalidPath("Refusing to replace the document root")
        parent = self.get_at_path(path[:-1])
        kids = self.children(parent)
        idx = path[-1]
        if kids is None or idx < 0 or idx >= len(kids):
            raise InvalidPath(f"Path {list(path)} does not address an existing node")
        self.replace_child(parent, idx, node)

    # ----------------------------
    # Table helpers
    # ----------------------------

    def cell_text(self, row: Any, col: Optional[int]) -> str:
        if col is None:
            return ""
        cells = self.cells(row)
        if col < 0 or col >= len(cells):
            return ""
        return self.text_of(cells[col]).strip()

    def header_names(self, table: Any) -> List[str]:
        rows = self.rows(table)
        if not rows:
            return []
        return [self.text_of(c).strip().lower() for c in self.cells(rows[0])]
