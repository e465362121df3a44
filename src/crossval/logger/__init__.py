"""
crossval diagnostic logger.

Singleton with named adapters; tags double as trace switches and
routing keys, and a check id groups the records of one validation.
"""

from crossval.logger.core import CrossValLogger
from crossval.logger.records import LogRecord, LogLevel, resolve_level
from crossval.logger.adapters import (
    LogAdapter,
    TerminalAdapter,
    FileAdapter,
    AgentAdapter,
)
from crossval.logger.formatters import LogFormatter, CompactFormatter, DetailedFormatter, JsonFormatter

__all__ = [
    "CrossValLogger",
    "LogRecord",
    "LogLevel",
    "resolve_level",
    "LogAdapter",
    "TerminalAdapter",
    "FileAdapter",
    "AgentAdapter",
    "LogFormatter",
    "CompactFormatter",
    "DetailedFormatter",
    "JsonFormatter",
]
