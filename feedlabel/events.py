"""Structured event records, one JSON object per line."""

from __future__ import annotations

import json
from typing import Any, Optional


class EventLog:
    """Sink for ``{"level", "msg", "data"}`` records. Subclasses decide where they go."""

    def emit(self, record: dict) -> None:
        raise NotImplementedError

    def __call__(self, level: str, msg: str, data: Optional[Any] = None) -> None:
        record: dict = {"level": level, "msg": msg}
        if data is not None:
            record["data" if isinstance(data, dict) else "extra"] = data
        self.emit(record)

    def info(self, msg: str, data: Optional[Any] = None) -> None:
        self("INFO", msg, data)

    def warn(self, msg: str, data: Optional[Any] = None) -> None:
        self("WARN", msg, data)

    def error(self, msg: str, data: Optional[Any] = None) -> None:
        self("ERROR", msg, data)


class JsonLineLog(EventLog):
    def emit(self, record: dict) -> None:
        try:
            line = json.dumps(record, ensure_ascii=False, default=str)
        except (TypeError, ValueError):
            line = f"{record.get('level')} {record.get('msg')}"
        print(line, flush=True)


class NullLog(EventLog):
    def emit(self, record: dict) -> None:
        pass


class ListLog(EventLog):
    """Keeps records in memory (tests, dry runs)."""

    def __init__(self) -> None:
        self.records: list = []

    def emit(self, record: dict) -> None:
        self.records.append(record)

    def messages(self, level: Optional[str] = None) -> list:
        return [r["msg"] for r in self.records if level is None or r["level"] == level]
