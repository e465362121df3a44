"""
Tests for the diagnostic logger.

Covers:
- Level resolution from config values
- Formatters (compact, detailed with check id and evidence, JSON)
- Adapters (terminal streams, file rotation, agent buffer)
- CrossValLogger: level and tag gate, tag routes, check scope,
  adapter failures, configuration from dict
"""

import io
import json
from datetime import datetime, timezone

import pytest

from crossval.logger import (
    AgentAdapter,
    CompactFormatter,
    CrossValLogger,
    DetailedFormatter,
    FileAdapter,
    JsonFormatter,
    LogAdapter,
    LogLevel,
    LogRecord,
    TerminalAdapter,
    resolve_level,
)


@pytest.fixture(autouse=True)
def reset():
    CrossValLogger.reset()
    yield
    CrossValLogger.reset()


@pytest.fixture
def log():
    return CrossValLogger.instance()


def _record(level=LogLevel.INFO, message="msg", tags=None, check_id=None, **ctx):
    return LogRecord.create(level, message, tags=tags, check_id=check_id, **ctx)


# ═══════════════════════════════════════════════════════════════════
#  Levels & records
# ═══════════════════════════════════════════════════════════════════

class TestLevels:
    def test_names_resolve_case_insensitive(self):
        assert resolve_level("warning") == 30
        assert resolve_level("Debug") == 10

    def test_ints_pass_through(self):
        assert resolve_level(25) == 25

    def test_unknown_name(self):
        with pytest.raises(ValueError, match="Unknown log level"):
            resolve_level("loud")

    def test_bool_rejected(self):
        with pytest.raises(TypeError):
            resolve_level(True)

    def test_record_code_and_level_name(self):
        record = _record(LogLevel.ERROR, "drift", code="TIMESTAMP_DRIFT", drift=5)
        assert record.level_name == "ERROR"
        assert record.code == "TIMESTAMP_DRIFT"
        assert _record(25).level_name == "25"


# ═══════════════════════════════════════════════════════════════════
#  Formatters
# ═══════════════════════════════════════════════════════════════════

class TestFormatters:
    def test_compact(self):
        out = CompactFormatter().format(_record(LogLevel.WARNING, "Low correlation"))
        assert out.endswith("[ WARNING] Low correlation")

    def test_detailed_evidence(self):
        out = DetailedFormatter().format(_record(
            LogLevel.WARNING, "Low correlation", tags={"data_quality", "cross_source"},
            check_id="abc123", code="LOW_ACTIVITY_CORRELATION", correlation=0.12346, threshold=0.3,
        ))
        assert "(abc123) [cross_source,data_quality] Low correlation |" in out
        assert "code=LOW_ACTIVITY_CORRELATION correlation=0.1235 threshold=0.3000" in out

    def test_detailed_without_evidence(self):
        out = DetailedFormatter().format(_record(message="summary"))
        assert out.endswith("[-] summary")

    def test_json(self):
        obj = json.loads(JsonFormatter().format(_record(
            LogLevel.ERROR, "Rejected github payload", tags={"cross_source"},
            check_id="abc123", problems=["metadata: Field required"], users={"b", "a"},
        )))
        assert obj["level"] == "ERROR"
        assert obj["check_id"] == "abc123"
        assert obj["context"]["problems"] == ["metadata: Field required"]
        assert obj["context"]["users"] == ["a", "b"]


# ═══════════════════════════════════════════════════════════════════
#  Adapters
# ═══════════════════════════════════════════════════════════════════

class TestTerminalAdapter:
    def test_errors_to_error_stream(self):
        out, err = io.StringIO(), io.StringIO()
        adapter = TerminalAdapter(color=False, stream=out, error_stream=err)
        adapter.emit(_record(LogLevel.INFO, "summary"))
        adapter.emit(_record(LogLevel.ERROR, "stale"))
        assert "summary" in out.getvalue()
        assert "stale" in err.getvalue()
        assert "stale" not in out.getvalue()

    def test_color(self):
        out = io.StringIO()
        TerminalAdapter(stream=out).emit(_record(LogLevel.WARNING, "w"))
        assert out.getvalue().startswith("\033[33m")
        assert out.getvalue().rstrip("\n").endswith(TerminalAdapter.RESET)


class TestFileAdapter:
    def test_daily_file_name(self, tmp_path):
        adapter = FileAdapter(path=tmp_path / "crossval.log")
        when = datetime(2026, 10, 18, tzinfo=timezone.utc)
        assert adapter.path_for(when).name == "crossval_2026-10-18.log"

    def test_writes_records(self, tmp_path):
        adapter = FileAdapter(path=tmp_path / "logs" / "run.log", rotation="none")
        adapter.emit(_record(LogLevel.WARNING, "Low correlation", correlation=0.1))
        adapter.close()
        content = (tmp_path / "logs" / "run.log").read_text(encoding="utf-8")
        assert "Low correlation | correlation=0.1000" in content

    def test_unknown_rotation(self, tmp_path):
        with pytest.raises(ValueError, match="Unknown rotation"):
            FileAdapter(path=tmp_path / "x.log", rotation="hourly")


class TestAgentAdapter:
    def test_ring_buffer_bounded(self):
        adapter = AgentAdapter(ring_buffer_size=3)
        for i in range(5):
            adapter.emit(_record(message=f"m{i}"))
        assert adapter.count == 3
        assert [r.message for r in adapter.get_recent()] == ["m2", "m3", "m4"]

    def test_filter_by_tags(self):
        adapter = AgentAdapter()
        adapter.emit(_record(message="a", tags={"cross_source"}))
        adapter.emit(_record(message="b", tags={"other"}))
        assert [r.message for r in adapter.get_recent(tags={"cross_source"})] == ["a"]

    def test_for_check(self):
        adapter = AgentAdapter()
        adapter.emit(_record(message="first", check_id="one"))
        adapter.emit(_record(message="second", check_id="two"))
        adapter.emit(_record(message="summary", check_id="one"))
        assert [r.message for r in adapter.for_check("one")] == ["first", "summary"]


# ═══════════════════════════════════════════════════════════════════
#  CrossValLogger
# ═══════════════════════════════════════════════════════════════════

class _Broken(LogAdapter):
    def emit(self, record):
        raise OSError("disk full")


class TestCrossValLogger:
    def test_singleton_and_reset(self):
        first = CrossValLogger.instance()
        assert CrossValLogger.instance() is first
        CrossValLogger.reset()
        assert CrossValLogger.instance() is not first

    def test_level_gate(self, log):
        agent = AgentAdapter()
        log.add_adapter(agent)
        log.debug("hidden")
        log.info("shown")
        assert [r.message for r in agent.get_recent()] == ["shown"]

    def test_tag_level_opens_gate(self, log):
        agent = AgentAdapter()
        log.add_adapter(agent)
        log.set_tag_level("cross_source", "DEBUG")
        log.debug("traced", tags={"cross_source"})
        log.debug("not traced", tags={"other"})
        assert [r.message for r in agent.get_recent()] == ["traced"]

    def test_tag_route_bypasses_adapter_level(self, log):
        quiet = AgentAdapter(name="quiet", min_level=LogLevel.ERROR)
        other = AgentAdapter(name="other", min_level=LogLevel.ERROR)
        log.add_adapter(quiet)
        log.add_adapter(other)
        log.configure({"routing": {"tag_routes": {"data_quality": ["quiet"]}}})
        log.warning("Low correlation", tags={"data_quality"})
        assert quiet.count == 1
        assert other.count == 0

    def test_check_scope(self, log):
        agent = AgentAdapter()
        log.add_adapter(agent)
        with log.check("abc123"):
            assert log.check_id == "abc123"
            log.warning("Low correlation", correlation=0.1)
        log.info("after")
        first, second = agent.get_recent()
        assert first.check_id == "abc123"
        assert first.context == {"correlation": 0.1}
        assert second.check_id is None
        assert log.check_id is None

    def test_adapter_failure_does_not_raise(self, log):
        log.add_adapter(_Broken("broken"))
        agent = AgentAdapter()
        log.add_adapter(agent)
        log.info("still delivered")
        assert log.dropped == 1
        assert agent.count == 1

    def test_redirect_terminal(self, log):
        out, err, target = io.StringIO(), io.StringIO(), io.StringIO()
        log.add_adapter(TerminalAdapter(color=False, stream=out, error_stream=err))
        log.redirect_terminal(target)
        log.info("summary")
        log.error("stale")
        assert out.getvalue() == "" and err.getvalue() == ""
        assert "summary" in target.getvalue() and "stale" in target.getvalue()

    def test_configure_from_dict(self, log, tmp_path):
        log.configure({
            "current_level": "WARNING",
            "adapters": {
                "agent": {"type": "agent", "min_level": 10, "ring_buffer_size": 50},
                "logfile": {"type": "file", "path": str(tmp_path / "x.log"), "formatter": "json"},
            },
            "tag_levels": {"cross_source": "DEBUG"},
        })
        assert log.current_level == LogLevel.WARNING
        assert isinstance(log.get_adapter("agent"), AgentAdapter)
        assert isinstance(log.get_adapter("logfile").formatter, JsonFormatter)
        log.debug("traced", tags={"cross_source"})
        assert log.get_adapter("agent").count == 1

    def test_configure_unknown_adapter_type(self, log):
        with pytest.raises(ValueError, match="Unknown adapter type"):
            log.configure({"adapters": {"x": {"type": "database"}}})

    def test_configure_defaults(self, log):
        log.configure_defaults()
        assert isinstance(log.get_adapter("terminal"), TerminalAdapter)
