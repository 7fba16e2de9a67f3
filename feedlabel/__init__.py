"""Feedback table labelling for rich-text pages."""

from feedlabel.adf import AdfTree
from feedlabel.html_tree import HtmlTree
from feedlabel.rows import (
    MAX_BATCH_SIZE,
    FeedbackRow,
    InvalidUpdatePayload,
    UpdateItem,
    apply_updates,
    select_unlabeled,
)
from feedlabel.table import (
    ColumnIndexMap,
    LocatedTable,
    TableNotFound,
    ensure_columns,
    locate_table,
)
from feedlabel.tree import DocumentTree, InvalidPath

__all__ = [
    "AdfTree",
    "HtmlTree",
    "DocumentTree",
    "InvalidPath",
    "ColumnIndexMap",
    "LocatedTable",
    "TableNotFound",
    "locate_table",
    "ensure_columns",
    "MAX_BATCH_SIZE",
    "FeedbackRow",
    "UpdateItem",
    "InvalidUpdatePayload",
    "select_unlabeled",
    "apply_updates",
]
