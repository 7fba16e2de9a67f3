"""
Row selection and label write-back for a located feedback table.

Both directions are bounded to MAX_BATCH_SIZE rows per call. Write-back is
at-most-once per cell: a label is only written into a cell that is currently
empty, so repeated or concurrent batches never clobber an existing label.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional

from feedlabel.table import ColumnIndexMap
from feedlabel.taxonomy import DEFAULT_TAXONOMY, LabelTaxonomy
from feedlabel.tree import DocumentTree

MAX_BATCH_SIZE = 20


class InvalidUpdatePayload(RuntimeError):
    pass


@dataclass(frozen=True)
class FeedbackRow:
    row_index: int
    subject: str
    description: str

    def to_dict(self) -> Dict[str, Any]:
        return {"rowIndex": self.row_index, "subject": self.subject, "description": self.description}


@dataclass(frozen=True)
class UpdateItem:
    row_index: int
    theme: Any = None
    impact: Any = None

    def to_dict(self) -> Dict[str, Any]:
        return {"rowIndex": self.row_index, "theme": self.theme, "impact": self.impact}


def clamp_batch_size(value: Any) -> int:
    """Map any caller-supplied limit onto 1..MAX_BATCH_SIZE (bad input means the max)."""
    try:
        n = int(value)
    except (TypeError, ValueError):
        return MAX_BATCH_SIZE
    if isinstance(value, bool) or n <= 0:
        return MAX_BATCH_SIZE
    return min(n, MAX_BATCH_SIZE)


def data_rows(doc: DocumentTree, table: Any) -> List[Any]:
    return doc.rows(table)[1:]


def select_unlabeled(
    doc: DocumentTree,
    table: Any,
    columns: ColumnIndexMap,
    limit: Any = MAX_BATCH_SIZE,
) -> List[FeedbackRow]:
    """Earliest rows (table order) with feedback text and both label cells empty."""
    limit = clamp_batch_size(limit)
    out: List[FeedbackRow] = []
    for i, row in enumerate(data_rows(doc, table)):
        subject = doc.cell_text(row, columns.subject_col)
        description = doc.cell_text(row, columns.description_col)
        if not subject and not description:
            continue
        if doc.cell_text(row, columns.theme_col) or doc.cell_text(row, columns.impact_col):
            continue
        out.append(FeedbackRow(row_index=i, subject=subject, description=description))
        if len(out) >= limit:
            break
    return out


def _first(item: Mapping[str, Any], *keys: str) -> Any:
    for k in keys:
        if k in item:
            return item[k]
    return None


def parse_update_items(payload: Any) -> List[UpdateItem]:
    """Decode a label batch (JSON string or list) into UpdateItems.

    A payload that is not a list is an error; individual malformed entries
    are dropped.
    """
    items = payload
    if isinstance(payload, (str, bytes)):
        try:
            items = json.loads(payload)
        except ValueError as e:
            raise InvalidUpdatePayload(f"Invalid labels payload; expected JSON array string ({e})") from e
    if isinstance(items, tuple):
        items = list(items)
    if not isinstance(items, list):
        raise InvalidUpdatePayload("labels must be a JSON array")

    out: List[UpdateItem] = []
    for raw in items:
        if isinstance(raw, UpdateItem):
            out.append(raw)
            continue
        if not isinstance(raw, Mapping):
            continue
        idx = _first(raw, "rowIndex", "row_index")
        if isinstance(idx, bool) or not isinstance(idx, int):
            continue
        out.append(
            UpdateItem(
                row_index=idx,
                theme=_first(raw, "theme", "Theme"),
                impact=_first(raw, "impact", "Impact"),
            )
        )
    return out


def apply_updates(
    doc: DocumentTree,
    table: Any,
    columns: ColumnIndexMap,
    updates: List[UpdateItem],
    taxonomy: Optional[LabelTaxonomy] = None,
) -> int:
    """Write labels into empty label cells; return the number of cells written.

    Out-of-range rows are skipped and invalid labels fall back to the
    taxonomy defaults. Nothing here raises for a bad item.
    """
    if columns.theme_col is None or columns.impact_col is None:
        raise ValueError("Label columns must exist before applying updates (call ensure_columns)")
    taxonomy = taxonomy or DEFAULT_TAXONOMY
    rows = data_rows(doc, table)
    written = 0
    for item in list(updates)[:MAX_BATCH_SIZE]:
        idx = item.row_index
        if isinstance(idx, bool) or not isinstance(idx, int) or idx < 0 or idx >= len(rows):
            continue
        row = rows[idx]
        if not doc.cell_text(row, columns.theme_col):
            doc.set_cell_text(row, columns.theme_col, taxonomy.coerce_theme(item.theme))
            written += 1
        if not doc.cell_text(row, columns.impact_col):
            doc.set_cell_text(row, columns.impact_col, taxonomy.coerce_impact(item.impact))
            written += 1
    return written
