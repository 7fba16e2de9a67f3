"""
Locate the feedback table in a document and make sure it has label columns.

The feedback table is the first table (document order) whose header row
names a Subject and a Description column. Header matching is loose: a header
cell matches a column name when its text equals or contains it, ignoring case
and surrounding whitespace ("Subjects", "Description:" both match).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, List, Optional, Tuple

from feedlabel.tree import DocumentTree, Path

SUBJECT = "subject"
DESCRIPTION = "description"
THEME = "theme"
IMPACT = "impact"

THEME_LABEL = "Theme"
IMPACT_LABEL = "Impact"


class TableNotFound(RuntimeError):
    pass


@dataclass(frozen=True)
class ColumnIndexMap:
    subject_col: int
    description_col: int
    theme_col: Optional[int] = None
    impact_col: Optional[int] = None

    @property
    def is_complete(self) -> bool:
        return self.theme_col is not None and self.impact_col is not None

    def to_dict(self) -> dict:
        return {
            "subjectCol": self.subject_col,
            "descriptionCol": self.description_col,
            "themeCol": self.theme_col,
            "impactCol": self.impact_col,
        }


@dataclass(frozen=True)
class LocatedTable:
    node: Any
    path: Path
    columns: ColumnIndexMap


def header_matches(text: str, name: str) -> bool:
    t = (text or "").strip().lower()
    return t == name or name in t


def find_column(names: List[str], name: str, skip: Tuple[int, ...] = ()) -> Optional[int]:
    for i, n in enumerate(names):
        if i not in skip and header_matches(n, name):
            return i
    return None


def column_map(doc: DocumentTree, table: Any) -> Optional[ColumnIndexMap]:
    """Column offsets for ``table``, or None when Subject/Description are missing."""
    names = doc.header_names(table)
    subject_col = find_column(names, SUBJECT)
    description_col = find_column(names, DESCRIPTION)
    if subject_col is None or description_col is None:
        return None
    # a label column never doubles as a text column
    taken = (subject_col, description_col)
    return ColumnIndexMap(
        subject_col=subject_col,
        description_col=description_col,
        theme_col=find_column(names, THEME, taken),
        impact_col=find_column(names, IMPACT, taken),
    )


def locate_table(doc: DocumentTree) -> LocatedTable:
    """Return the first table whose header names Subject and Description."""
    tables = doc.find(doc.is_table)
    if not tables:
        raise TableNotFound("No table found in document")
    for node, path in tables:
        cols = column_map(doc, node)
        if cols is not None:
            return LocatedTable(node=node, path=path, columns=cols)
    raise TableNotFound("No feedback table with 'Subject' and 'Description' headers found")


def ensure_columns(doc: DocumentTree, table: Any) -> ColumnIndexMap:
    """Append Theme/Impact header cells when absent and pad data rows to the header width.

    Safe to call repeatedly: presence is detected from header text, so a
    second call never adds another column.
    """
    rows = doc.rows(table)
    if not rows:
        raise TableNotFound("Table has no rows")
    cols = column_map(doc, table)
    if cols is None:
        raise TableNotFound("Required columns 'Subject' and 'Description' not found in table header")

    header = rows[0]
    theme_col = cols.theme_col
    impact_col = cols.impact_col
    if theme_col is None:
        doc.append_cell(header, THEME_LABEL, header=True)
        theme_col = len(doc.cells(header)) - 1
    if impact_col is None:
        doc.append_cell(header, IMPACT_LABEL, header=True)
        impact_col = len(doc.cells(header)) - 1

    width = len(doc.cells(header))
    for row in rows[1:]:
        while len(doc.cells(row)) < width:
            doc.append_cell(row)

    return ColumnIndexMap(
        subject_col=cols.subject_col,
        description_col=cols.description_col,
        theme_col=theme_col,
        impact_col=impact_col,
    )
