"""
CrossValLogger: the process-wide diagnostic logger.

One instance feeds a set of named adapters. A statement is emitted when
its level reaches `current_level` or when one of its tags has a
`tag_levels` threshold at or below `current_level`, so `cross_source`
debug output can be switched on without flooding everything else.
Tag routes then send tagged records to specific adapters regardless of
the adapter's own minimum level.
"""

import threading
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Any, Iterator, Optional, TextIO

from crossval.logger.adapters import AgentAdapter, FileAdapter, LogAdapter, TerminalAdapter
from crossval.logger.formatters import FORMATTERS
from crossval.logger.records import LogLevel, LogRecord, resolve_level


_check_id: ContextVar[Optional[str]] = ContextVar("crossval_check_id", default=None)


class CrossValLogger:
    """
    Usage:
        log = CrossValLogger.instance()
        with log.check("3f9c21ab"):
            log.warning("Low correlation", tags={"cross_source"}, correlation=0.12)
    """

    _instance: Optional["CrossValLogger"] = None
    _lock = threading.Lock()

    def __init__(self) -> None:
        self._adapters: dict[str, LogAdapter] = {}
        self._tag_levels: dict[str, int] = {}
        self._tag_routes: dict[str, frozenset[str]] = {}
        self._current_level: int = LogLevel.INFO
        self._emit_lock = threading.Lock()
        self._dropped = 0

    @classmethod
    def instance(cls) -> "CrossValLogger":
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    cls._instance = cls()
        return cls._instance

    @classmethod
    def reset(cls) -> None:
        """Close all adapters and forget the instance. For tests."""
        with cls._lock:
            if cls._instance is not None:
                cls._instance.close()
                cls._instance = None

    # ── Configuration ─────────────────────────────────────────────

    def configure(self, config: dict) -> None:
        """
        Apply a LoggerConfig dump:

            current_level: INFO
            adapters:
                terminal: {type: terminal, color: true}
                logfile:  {type: file, path: logs/crossval.log, min_level: DEBUG}
            tag_levels:
                cross_source: DEBUG
            routing:
                tag_routes:
                    data_quality: [logfile]
        """
        if config.get("current_level") is not None:
            self._current_level = resolve_level(config["current_level"])
        for name, adapter_cfg in (config.get("adapters") or {}).items():
            self.add_adapter(_build_adapter(name, adapter_cfg))
        for tag, threshold in (config.get("tag_levels") or {}).items():
            self._tag_levels[tag] = resolve_level(threshold)
        routes = (config.get("routing") or {}).get("tag_routes") or {}
        for tag, adapter_names in routes.items():
            self._tag_routes[tag] = frozenset(adapter_names)

    def configure_defaults(self) -> None:
        """Coloured terminal at INFO."""
        self._current_level = LogLevel.INFO
        self.add_adapter(TerminalAdapter())

    def add_adapter(self, adapter: LogAdapter) -> None:
        """Add an adapter, closing any previous one with the same name."""
        previous = self._adapters.get(adapter.name)
        if previous is not None and previous is not adapter:
            previous.close()
        self._adapters[adapter.name] = adapter

    def get_adapter(self, name: str) -> LogAdapter | None:
        return self._adapters.get(name)

    @property
    def has_adapters(self) -> bool:
        return bool(self._adapters)

    def redirect_terminal(self, stream: TextIO) -> None:
        """Send all terminal output, errors included, to one stream."""
        for adapter in self._adapters.values():
            if isinstance(adapter, TerminalAdapter):
                adapter.stream = adapter.error_stream = stream

    @property
    def current_level(self) -> int:
        return self._current_level

    @current_level.setter
    def current_level(self, value: int | str) -> None:
        self._current_level = resolve_level(value)

    def set_tag_level(self, tag: str, threshold: int | str) -> None:
        self._tag_levels[tag] = resolve_level(threshold)

    @property
    def dropped(self) -> int:
        """Records an adapter failed to write."""
        return self._dropped

    # ── Check scope ───────────────────────────────────────────────

    @contextmanager
    def check(self, check_id: str) -> Iterator[str]:
        """Stamp every record logged inside the block with `check_id`."""
        token = _check_id.set(check_id)
        try:
            yield check_id
        finally:
            _check_id.reset(token)

    @property
    def check_id(self) -> str | None:
        return _check_id.get()

    # ── Logging ───────────────────────────────────────────────────

    def log(self, level: int, message: str, tags: set[str] | None = None, **context: Any) -> None:
        tags = tags or set()
        if not self._should_emit(level, tags):
            return

        record = LogRecord.create(level, message, tags=tags, check_id=_check_id.get(), **context)
        with self._emit_lock:
            for name, adapter in self._adapters.items():
                if not self._routes_to(record, name, adapter):
                    continue
                try:
                    adapter.emit(record)
                except Exception:
                    self._dropped += 1

    def _should_emit(self, level: int, tags: set[str]) -> bool:
        if not self._adapters:
            return False
        if level >= self._current_level:
            return True
        for tag in tags:
            threshold = self._tag_levels.get(tag)
            if threshold is not None and threshold <= self._current_level:
                return True
        return False

    def _routes_to(self, record: LogRecord, name: str, adapter: LogAdapter) -> bool:
        if any(name in self._tag_routes.get(tag, ()) for tag in record.tags):
            return True
        return record.level >= adapter.min_level

    def debug(self, message: str, tags: set[str] | None = None, **ctx: Any) -> None:
        self.log(LogLevel.DEBUG, message, tags, **ctx)

    def info(self, message: str, tags: set[str] | None = None, **ctx: Any) -> None:
        self.log(LogLevel.INFO, message, tags, **ctx)

    def warning(self, message: str, tags: set[str] | None = None, **ctx: Any) -> None:
        self.log(LogLevel.WARNING, message, tags, **ctx)

    def error(self, message: str, tags: set[str] | None = None, **ctx: Any) -> None:
        self.log(LogLevel.ERROR, message, tags, **ctx)

    def close(self) -> None:
        for adapter in self._adapters.values():
            adapter.close()


def _build_adapter(name: str, cfg: dict) -> LogAdapter:
    adapter_type = cfg.get("type", name)
    kwargs: dict[str, Any] = {"name": name}
    if cfg.get("min_level") is not None:
        kwargs["min_level"] = resolve_level(cfg["min_level"])

    fmt_name = cfg.get("formatter")
    if fmt_name is not None:
        if fmt_name not in FORMATTERS:
            raise ValueError(f"Unknown formatter '{fmt_name}' for adapter '{name}'")
        kwargs["formatter"] = FORMATTERS[fmt_name]()

    if adapter_type == "terminal":
        if cfg.get("color") is not None:
            kwargs["color"] = cfg["color"]
        return TerminalAdapter(**kwargs)
    if adapter_type == "file":
        for key in ("path", "rotation"):
            if cfg.get(key):
                kwargs[key] = cfg[key]
        return FileAdapter(**kwargs)
    if adapter_type == "agent":
        if cfg.get("ring_buffer_size"):
            kwargs["ring_buffer_size"] = cfg["ring_buffer_size"]
        return AgentAdapter(**kwargs)
    raise ValueError(f"Unknown adapter type '{adapter_type}' for adapter '{name}'")
