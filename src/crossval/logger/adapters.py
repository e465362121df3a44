"""
Where log records end up.

  terminal  coloured lines; ERROR to stderr, the rest to stdout
  file      .log file, one per day unless rotation is "none"
  agent     bounded in-memory buffer, read back by operators and tests
"""

import sys
import threading
from abc import ABC, abstractmethod
from collections import deque
from datetime import datetime
from pathlib import Path
from typing import IO

from crossval.logger.formatters import CompactFormatter, DetailedFormatter, LogFormatter
from crossval.logger.records import LogLevel, LogRecord


class LogAdapter(ABC):

    default_formatter: type[LogFormatter] = CompactFormatter

    def __init__(self, name: str, min_level: int = LogLevel.INFO, formatter: LogFormatter | None = None):
        self.name = name
        self.min_level = min_level
        self.formatter = formatter or self.default_formatter()

    @abstractmethod
    def emit(self, record: LogRecord) -> None: ...

    def close(self) -> None:
        pass


class TerminalAdapter(LogAdapter):

    COLORS = {
        LogLevel.DEBUG: "\033[36m",
        LogLevel.INFO: "\033[37m",
        LogLevel.WARNING: "\033[33m",
        LogLevel.ERROR: "\033[31m",
    }
    RESET = "\033[0m"

    def __init__(
        self,
        name: str = "terminal",
        min_level: int = LogLevel.INFO,
        formatter: LogFormatter | None = None,
        color: bool = True,
        stream: IO[str] | None = None,
        error_stream: IO[str] | None = None,
    ):
        super().__init__(name, min_level, formatter)
        self.color = color
        self.stream = stream
        self.error_stream = error_stream

    def emit(self, record: LogRecord) -> None:
        line = self.formatter.format(record)
        if self.color:
            line = f"{self._color(record.level)}{line}{self.RESET}"
        # sys streams looked up per call
        if record.level >= LogLevel.ERROR:
            out = self.error_stream or sys.stderr
        else:
            out = self.stream or sys.stdout
        print(line, file=out, flush=True)

    def _color(self, level: int) -> str:
        shades = [code for lvl, code in self.COLORS.items() if lvl <= level]
        return shades[-1] if shades else ""


class FileAdapter(LogAdapter):
    """
    With rotation="daily" the record date goes into the file name
    (crossval_2026-10-18.log) and a new file is opened when it changes.
    """

    default_formatter = DetailedFormatter

    def __init__(
        self,
        name: str = "logfile",
        min_level: int = LogLevel.DEBUG,
        formatter: LogFormatter | None = None,
        path: str | Path = "logs/crossval.log",
        rotation: str = "daily",
    ):
        if rotation not in ("daily", "none"):
            raise ValueError(f"Unknown rotation '{rotation}' (expected 'daily' or 'none')")
        super().__init__(name, min_level, formatter)
        self.base_path = Path(path)
        self.rotation = rotation
        self._open_path: Path | None = None
        self._file: IO[str] | None = None
        self._lock = threading.Lock()

    def path_for(self, when: datetime) -> Path:
        if self.rotation == "none":
            return self.base_path
        return self.base_path.with_name(
            f"{self.base_path.stem}_{when:%Y-%m-%d}{self.base_path.suffix or '.log'}"
        )

    def emit(self, record: LogRecord) -> None:
        line = self.formatter.format(record)
        target = self.path_for(record.timestamp)
        with self._lock:
            if target != self._open_path:
                self._close_file()
                target.parent.mkdir(parents=True, exist_ok=True)
                self._file = open(target, "a", encoding="utf-8")
                self._open_path = target
            self._file.write(line + "\n")
            self._file.flush()

    def close(self) -> None:
        with self._lock:
            self._close_file()

    def _close_file(self) -> None:
        if self._file is not None:
            self._file.close()
        self._file = None
        self._open_path = None


class AgentAdapter(LogAdapter):
    """Keeps the last `ring_buffer_size` records."""

    default_formatter = DetailedFormatter

    def __init__(
        self,
        name: str = "agent",
        min_level: int = LogLevel.DEBUG,
        formatter: LogFormatter | None = None,
        ring_buffer_size: int = 10000,
    ):
        super().__init__(name, min_level, formatter)
        self._buffer: deque[LogRecord] = deque(maxlen=ring_buffer_size)
        self._lock = threading.Lock()

    def emit(self, record: LogRecord) -> None:
        with self._lock:
            self._buffer.append(record)

    def get_recent(self, n: int = 100, tags: set[str] | None = None) -> list[LogRecord]:
        with self._lock:
            records = list(self._buffer)
        if tags:
            records = [r for r in records if r.tags & tags]
        return records[-n:]

    def for_check(self, check_id: str) -> list[LogRecord]:
        """Everything logged while one snapshot pair was checked, oldest first."""
        with self._lock:
            return [r for r in self._buffer if r.check_id == check_id]

    @property
    def count(self) -> int:
        return len(self._buffer)
