"""
Log levels and the record every log call produces.

Levels keep the stdlib numbers (20 = INFO, 30 = WARNING) so a config
written for `logging` reads the same here.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import IntEnum
from typing import Any, Mapping


class LogLevel(IntEnum):
    DEBUG = 10
    INFO = 20
    WARNING = 30
    ERROR = 40


def resolve_level(value: int | str) -> int:
    """Level from a config value: an int, or a name in any case."""
    if isinstance(value, bool) or not isinstance(value, (int, str)):
        raise TypeError(f"Expected int or str for level, got {type(value).__name__}")
    if isinstance(value, int):
        return value
    try:
        return LogLevel[value.upper()]
    except KeyError:
        raise ValueError(
            f"Unknown log level '{value}'. Valid levels: {', '.join(m.name for m in LogLevel)}"
        ) from None


@dataclass(frozen=True)
class LogRecord:
    """
    One emitted statement.

    `context` holds the evidence passed as keyword arguments (code=...,
    drift=...). `check_id` ties together every record written while one
    pair of snapshots was being checked.
    """
    timestamp: datetime
    level: int
    message: str
    tags: frozenset[str] = frozenset()
    context: Mapping[str, Any] = field(default_factory=dict)
    check_id: str | None = None

    @property
    def level_name(self) -> str:
        try:
            return LogLevel(self.level).name
        except ValueError:
            return str(self.level)

    @property
    def code(self) -> str | None:
        """Finding code, when the record reports a validation finding."""
        return self.context.get("code")

    @classmethod
    def create(cls, level: int, message: str, tags=None, check_id=None, **context: Any) -> "LogRecord":
        return cls(
            timestamp=datetime.now(timezone.utc),
            level=level,
            message=message,
            tags=frozenset(tags or ()),
            context=context,
            check_id=check_id,
        )
