"""
Page-level operations: hand out the next unlabeled rows, write labels back.

Every call is one self-contained round trip against the document store:
fetch -> locate table -> ensure label columns -> select rows or apply labels
-> persist. Nothing is cached between calls; the table and its column
offsets are re-derived from a freshly fetched page each time.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from feedlabel.classify import Classifier, classify_rows
from feedlabel.config import LabellerConfig
from feedlabel.confluence import DocumentStore, FetchError, PersistError
from feedlabel.events import EventLog, JsonLineLog
from feedlabel.rows import (
    MAX_BATCH_SIZE,
    FeedbackRow,
    InvalidUpdatePayload,
    apply_updates,
    clamp_batch_size,
    data_rows,
    parse_update_items,
    select_unlabeled,
)
from feedlabel.table import ColumnIndexMap, TableNotFound, ensure_columns, locate_table
from feedlabel.taxonomy import DEFAULT_TAXONOMY, LabelTaxonomy
from feedlabel.tree import InvalidPath, Path

DEFAULT_BYLINE = {
    "title": f"Label next {MAX_BATCH_SIZE} rows",
    "tooltip": "Run the feedback labeller on this page",
}


@dataclass
class NextRowsResult:
    page_id: str
    table_path: Path
    columns: ColumnIndexMap
    rows: List[FeedbackRow]
    total_rows: int
    batch_size: int
    columns_persisted: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "pageId": self.page_id,
            "tablePath": list(self.table_path),
            "header": self.columns.to_dict(),
            "rows": [r.to_dict() for r in self.rows],
            "totalRows": self.total_rows,
            "batchSize": self.batch_size,
        }


@dataclass
class ApplyResult:
    page_id: str
    updated: int
    requested: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {"pageId": self.page_id, "updated": self.updated}


@dataclass
class LabelPassResult:
    next_rows: NextRowsResult
    classified: int = 0
    applied: Optional[ApplyResult] = None
    skipped_rows: List[int] = field(default_factory=list)


def _require_page_id(page_id: Optional[str], log: EventLog) -> str:
    if not page_id:
        log.error("Invocation missing page id")
        raise ValueError("No page id given")
    return str(page_id)


def get_next_rows(
    store: DocumentStore,
    page_id: str,
    batch_size: Any = MAX_BATCH_SIZE,
    log: Optional[EventLog] = None,
) -> NextRowsResult:
    """Return up to ``batch_size`` unlabeled rows, earliest first.

    When the table lacked Theme/Impact columns they are added and the page is
    saved; a failed save is logged and does not fail the call.
    """
    log = log or JsonLineLog()
    page_id = _require_page_id(page_id, log)
    batch_size = clamp_batch_size(batch_size)
    log.info("getNextRows invoked", {"pageId": page_id, "batchSize": batch_size})

    fetched = store.fetch_document(page_id)
    doc = fetched.tree
    located = locate_table(doc)
    columns = ensure_columns(doc, located.node)
    rows = select_unlabeled(doc, located.node, columns, batch_size)

    persisted = False
    if not located.columns.is_complete:
        try:
            doc.set_at_path(located.path, located.node)
            store.persist_document(fetched.page_id, fetched.title, fetched.version, doc)
            persisted = True
        except (PersistError, InvalidPath) as e:
            log.warn("Header ensure/update failed (non-fatal)", {"error": str(e)})

    result = NextRowsResult(
        page_id=page_id,
        table_path=located.path,
        columns=columns,
        rows=rows,
        total_rows=len(data_rows(doc, located.node)),
        batch_size=batch_size,
        columns_persisted=persisted,
    )
    log.info("getNextRows complete", {"pageId": page_id, "count": len(rows)})
    return result


def apply_labels(
    store: DocumentStore,
    page_id: str,
    labels: Any,
    taxonomy: LabelTaxonomy = DEFAULT_TAXONOMY,
    log: Optional[EventLog] = None,
) -> ApplyResult:
    """Write a batch of ``{rowIndex, theme, impact}`` labels into empty cells and save."""
    log = log or JsonLineLog()
    page_id = _require_page_id(page_id, log)
    try:
        items = parse_update_items(labels)
    except InvalidUpdatePayload as e:
        sample = labels[:200] if isinstance(labels, str) else repr(labels)[:200]
        log.error("labels parse fail", {"error": str(e), "sample": sample})
        raise

    log.info("applyLabels invoked", {"pageId": page_id, "count": len(items)})
    fetched = store.fetch_document(page_id)
    doc = fetched.tree
    located = locate_table(doc)
    columns = ensure_columns(doc, located.node)
    updated = apply_updates(doc, located.node, columns, items, taxonomy)

    doc.set_at_path(located.path, located.node)
    store.persist_document(fetched.page_id, fetched.title, fetched.version, doc)
    log.info("applyLabels complete", {"pageId": page_id, "updated": updated})
    return ApplyResult(page_id=page_id, updated=updated, requested=len(items))


def byline_status(
    store: DocumentStore,
    page_id: Optional[str],
    log: Optional[EventLog] = None,
) -> Dict[str, str]:
    """Short status hint for a page: how many rows are left to label."""
    log = log or JsonLineLog()
    if not page_id:
        return dict(DEFAULT_BYLINE)
    try:
        result = get_next_rows(store, page_id, batch_size=1, log=log)
    except (FetchError, PersistError, TableNotFound, InvalidPath) as e:
        log.warn("bylineDynamic failed", {"error": str(e)})
        return dict(DEFAULT_BYLINE)
    if not result.rows:
        return {"title": "All rows labeled", "tooltip": "No unlabeled rows detected"}
    return {
        "title": f"Label next {min(MAX_BATCH_SIZE, result.total_rows)} rows",
        "tooltip": f"Run the feedback labeller to label the next {MAX_BATCH_SIZE} feedback rows on this page",
    }


def label_page(
    store: DocumentStore,
    classifier: Classifier,
    page_id: str,
    config: Optional[LabellerConfig] = None,
    log: Optional[EventLog] = None,
) -> LabelPassResult:
    """One full pass: next rows -> classify -> apply."""
    config = config or LabellerConfig()
    log = log or JsonLineLog()
    nxt = get_next_rows(store, page_id, config.batch_size, log=log)
    result = LabelPassResult(next_rows=nxt)
    if not nxt.rows:
        return result

    items = classify_rows(nxt.rows, classifier, config.taxonomy, log=log)
    labeled = {i.row_index for i in items}
    result.classified = len(items)
    result.skipped_rows = [r.row_index for r in nxt.rows if r.row_index not in labeled]
    if items:
        result.applied = apply_labels(store, page_id, [i.to_dict() for i in items], config.taxonomy, log=log)
    return result


# CLI entry point
if __name__ == "__main__":
    import argparse
    import json

    from feedlabel.classify import LLMClassifier
    from feedlabel.confluence import ConfluenceStore
    from feedlabel.llm_client import OpenAIChatClient

    parser = argparse.ArgumentParser(description="Feedback table labeller")
    sub = parser.add_subparsers(dest="command", required=True)

    p_next = sub.add_parser("next-rows", help="Print the next unlabeled rows as JSON")
    p_next.add_argument("page_id")
    p_next.add_argument("--batch-size", type=int, default=MAX_BATCH_SIZE)

    p_apply = sub.add_parser("apply", help="Apply a JSON array of labels")
    p_apply.add_argument("page_id")
    p_apply.add_argument("labels", help="JSON array, or @path to a file holding one")

    p_label = sub.add_parser("label", help="Classify and label the next batch")
    p_label.add_argument("page_id")

    args = parser.parse_args()
    cfg = LabellerConfig.from_env()
    if not cfg.base_url:
        parser.error("CONFLUENCE_BASE_URL is not set")
    event_log = JsonLineLog()
    confluence = ConfluenceStore(base_url=cfg.base_url, representation=cfg.representation, log=event_log)

    if args.command == "next-rows":
        out = get_next_rows(confluence, args.page_id, args.batch_size, log=event_log)
        print(json.dumps(out.to_dict(), indent=2), flush=True)
    elif args.command == "apply":
        raw = args.labels
        if raw.startswith("@"):
            with open(raw[1:], "r", encoding="utf-8") as f:
                raw = f.read()
        out = apply_labels(confluence, args.page_id, raw, cfg.taxonomy, log=event_log)
        print(json.dumps(out.to_dict(), indent=2), flush=True)
    else:
        clf = LLMClassifier(OpenAIChatClient(model=cfg.model), cfg.taxonomy)
        res = label_page(confluence, clf, args.page_id, cfg, log=event_log)
        updated = res.applied.updated if res.applied else 0
        print(
            f"Rows: {len(res.next_rows.rows)}  classified: {res.classified}  "
            f"cells written: {updated}  skipped: {res.skipped_rows}",
            flush=True,
        )
