"""
Formatters turn a LogRecord into one line of text.

  compact   14:32:05 [ WARNING] Low correlation between GitHub and NEAR activity
  detailed  adds the date, check id, tags and "| key=value" evidence
  json      one object per line, for shipping to a log store
"""

import json
from abc import ABC, abstractmethod
from typing import Any

from crossval.logger.records import LogRecord


class LogFormatter(ABC):

    @abstractmethod
    def format(self, record: LogRecord) -> str: ...


class CompactFormatter(LogFormatter):

    def format(self, record: LogRecord) -> str:
        return f"{record.timestamp:%H:%M:%S} [{record.level_name:>8}] {record.message}"


class DetailedFormatter(LogFormatter):
    """
    2026-10-18 14:32:05 [   ERROR] (3f9c21ab) [cross_source,data_quality] Significant time drift between metrics | code=TIMESTAMP_DRIFT drift=25200000
    """

    def format(self, record: LogRecord) -> str:
        line = f"{record.timestamp:%Y-%m-%d %H:%M:%S} [{record.level_name:>8}]"
        if record.check_id:
            line += f" ({record.check_id})"
        line += f" [{','.join(sorted(record.tags)) or '-'}] {record.message}"
        evidence = " ".join(
            f"{key}={_display(value)}" for key, value in record.context.items() if value is not None
        )
        return f"{line} | {evidence}" if evidence else line


class JsonFormatter(LogFormatter):

    def format(self, record: LogRecord) -> str:
        obj: dict[str, Any] = {
            "timestamp": record.timestamp.isoformat(),
            "level": record.level_name,
            "message": record.message,
            "tags": sorted(record.tags),
        }
        if record.check_id:
            obj["check_id"] = record.check_id
        if record.context:
            obj["context"] = dict(record.context)
        return json.dumps(obj, default=_jsonable)


FORMATTERS: dict[str, type[LogFormatter]] = {
    "compact": CompactFormatter,
    "detailed": DetailedFormatter,
    "json": JsonFormatter,
}


def _display(value: Any) -> str:
    # ratios read better rounded; counts and timestamps stay exact
    return f"{value:.4f}" if isinstance(value, float) else str(value)


def _jsonable(value: Any) -> Any:
    if isinstance(value, (set, frozenset)):
        return sorted(value, key=str)
    return str(value)
