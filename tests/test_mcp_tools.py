"""
Tests for the 4 MCP tools in simplemem.mcp.tools and the server wiring.

Tests use direct function calls (not MCP protocol) via a mock FastMCP.
"""

import io
import json

import pytest

from simplemem.activity import ActivityLog
from simplemem.mcp.formatting import format_record_line, format_records
from simplemem.mcp.tools import TOOL_NAMES, register_memory_tools
from simplemem.service import MemoryService
from simplemem.store import RecordStore
from simplemem.types import MemoryRecord


# ---------------------------------------------------------------------------
# Mock FastMCP
# ---------------------------------------------------------------------------


class MockMCP:
    """Minimal FastMCP mock that captures tool registrations."""

    def __init__(self):
        self.tools = {}

    def tool(self):
        def decorator(fn):
            self.tools[fn.__name__] = fn
            return fn
        return decorator


@pytest.fixture
def mcp_env(tmp_path):
    """Create store, service, mock MCP, and register all tools."""
    db_path = str(tmp_path / "memory.db")
    store = RecordStore(db_path=db_path)
    activity_buf = io.StringIO()
    service = MemoryService(store, ActivityLog.to_stream(activity_buf))
    mcp = MockMCP()
    register_memory_tools(mcp, service)

    yield {
        "mcp": mcp,
        "store": store,
        "service": service,
        "db_path": db_path,
        "activity_buf": activity_buf,
    }
    store.close()


def call(env, tool_name, **kwargs):
    """Call a registered MCP tool by name."""
    return env["mcp"].tools[tool_name](**kwargs)


# ---------------------------------------------------------------------------
# Registration
# ---------------------------------------------------------------------------


class TestToolRegistration:
    def test_4_tools_registered(self, mcp_env):
        assert set(mcp_env["mcp"].tools) == set(TOOL_NAMES)
        assert len(TOOL_NAMES) == 4

    def test_tools_have_docstrings(self, mcp_env):
        for fn in mcp_env["mcp"].tools.values():
            assert fn.__doc__


# ---------------------------------------------------------------------------
# simple_memory_add
# ---------------------------------------------------------------------------


class TestAddTool:
    def test_add(self, mcp_env):
        result = call(mcp_env, "simple_memory_add", content="Project uses SQLite")
        assert result["status"] == "ok"
        assert result["id"] == 1
        assert result["created_at"]
        assert result["message"] == "Memory added."

    def test_add_with_metadata(self, mcp_env):
        call(mcp_env, "simple_memory_add", content="note",
             title="X", tags="go,db", status="open")
        (rec,) = mcp_env["store"].scan_all()
        assert (rec.title, rec.tags, rec.status) == ("X", "go,db", "open")

    def test_add_empty(self, mcp_env):
        result = call(mcp_env, "simple_memory_add", content="   ")
        assert result["status"] == "error"
        assert result["error"] == "invalid_input"
        assert result["message"] == "content cannot be empty"
        assert mcp_env["store"].count() == 0

    def test_add_response_is_json(self, mcp_env):
        result = call(mcp_env, "simple_memory_add", content="x")
        json.dumps(result)


# ---------------------------------------------------------------------------
# simple_memory_list
# ---------------------------------------------------------------------------


class TestListTool:
    def test_list_empty(self, mcp_env):
        result = call(mcp_env, "simple_memory_list")
        assert result["status"] == "ok"
        assert result["count"] == 0
        assert result["items"] == []

    def test_list_items_and_text(self, mcp_env):
        call(mcp_env, "simple_memory_add", content="first")
        call(mcp_env, "simple_memory_add", content="second", title="T")
        result = call(mcp_env, "simple_memory_list")
        assert [it["content"] for it in result["items"]] == ["first", "second"]
        assert [it["id"] for it in result["items"]] == [1, 2]
        lines = result["text"].splitlines()
        assert len(lines) == 2
        assert lines[0].startswith("[#1]")
        assert lines[1].endswith("T: second")


# ---------------------------------------------------------------------------
# simple_memory_search
# ---------------------------------------------------------------------------


class TestSearchTool:
    def test_search_match(self, mcp_env):
        call(mcp_env, "simple_memory_add", content="note", tags="go,db")
        result = call(mcp_env, "simple_memory_search", query="go")
        assert result["status"] == "ok"
        assert result["count"] == 1
        assert result["no_match"] is False

    def test_search_no_match(self, mcp_env):
        result = call(mcp_env, "simple_memory_search", query="absent")
        assert result["status"] == "ok"
        assert result["no_match"] is True
        assert result["items"] == []
        assert result["text"] == "No matching memories found."

    def test_search_empty_query(self, mcp_env):
        result = call(mcp_env, "simple_memory_search", query=" ")
        assert result["status"] == "error"
        assert result["error"] == "invalid_input"


# ---------------------------------------------------------------------------
# simple_memory_delete
# ---------------------------------------------------------------------------


class TestDeleteTool:
    def test_delete(self, mcp_env):
        for c in ("temp A", "temp B", "keep C"):
            call(mcp_env, "simple_memory_add", content=c)
        result = call(mcp_env, "simple_memory_delete", query="temp")
        assert result["status"] == "ok"
        assert result["count"] == 2
        assert result["message"] == "Deleted 2 memories."

    def test_delete_no_match(self, mcp_env):
        result = call(mcp_env, "simple_memory_delete", query="nothing")
        assert result["status"] == "ok"
        assert result["count"] == 0

    def test_delete_empty_query(self, mcp_env):
        result = call(mcp_env, "simple_memory_delete", query="")
        assert result["error"] == "invalid_input"

    def test_delete_emits_notice(self, mcp_env):
        call(mcp_env, "simple_memory_add", content="temp")
        call(mcp_env, "simple_memory_delete", query="temp")
        lines = mcp_env["activity_buf"].getvalue().splitlines()
        assert [json.loads(ln)["op"] for ln in lines] == ["add", "delete"]


# ---------------------------------------------------------------------------
# Recoverable errors
# ---------------------------------------------------------------------------


class TestErrorsAreRecoverable:
    def test_store_failure_reported(self, mcp_env):
        mcp_env["store"]._conn.execute("DROP TABLE simple_memories")
        mcp_env["store"]._conn.commit()
        result = call(mcp_env, "simple_memory_list")
        assert result["status"] == "error"
        assert result["error"] == "read_failed"

    def test_unexpected_exception_reported(self):
        class Broken:
            def list(self):
                raise RuntimeError("kaboom")

        mcp = MockMCP()
        register_memory_tools(mcp, Broken())
        result = mcp.tools["simple_memory_list"]()
        assert result["status"] == "error"
        assert result["error"] == "internal"
        assert "kaboom" in result["message"]


# ---------------------------------------------------------------------------
# Formatting
# ---------------------------------------------------------------------------


class TestFormatting:
    def test_full_line(self):
        rec = MemoryRecord(
            id=12, title="Deploy notes", tags="ops,db", status="open",
            content="run\nmigrations  first", created_at="2026-01-05T09:14:03.120Z",
        )
        assert format_record_line(rec) == (
            "[#12] 2026-01-05T09:14:03.120Z Deploy notes (ops,db) {open}: "
            "run migrations first"
        )

    def test_bare_line(self):
        assert format_record_line(MemoryRecord(id=1, content="x")) == "[#1]: x"

    def test_empty(self):
        assert format_records([]) == ""


# ---------------------------------------------------------------------------
# Server wiring
# ---------------------------------------------------------------------------


class TestServer:
    def test_resolve_config_flags_override_env(self, monkeypatch, tmp_path):
        from simplemem.mcp.server import build_parser, resolve_config

        monkeypatch.setenv("SIMPLE_MEMORY_DB_PATH", str(tmp_path / "env.db"))
        monkeypatch.setenv("MCP_USE_HTTP", "true")
        monkeypatch.setenv("PORT", "4100")
        args = build_parser().parse_args(["--db", str(tmp_path / "flag.db")])
        cfg = resolve_config(args)
        assert cfg.store.db_path == str(tmp_path / "flag.db")
        assert cfg.transport.mode == "streamable-http"
        assert cfg.transport.port == 4100

    def test_resolve_config_transport_flag(self, monkeypatch):
        from simplemem.mcp.server import build_parser, resolve_config

        monkeypatch.setenv("MCP_USE_SSE", "true")
        args = build_parser().parse_args(["--transport", "stdio", "--no-activity-log"])
        cfg = resolve_config(args)
        assert cfg.transport.mode == "stdio"
        assert cfg.activity.enabled is False

    def test_create_server(self, tmp_path):
        pytest.importorskip("mcp.server.fastmcp")
        from simplemem.config import ServerConfig
        from simplemem.mcp.server import create_server

        cfg = ServerConfig()
        cfg.store.db_path = str(tmp_path / "m.db")
        cfg.activity.enabled = False
        mcp, service = create_server(config=cfg)
        try:
            assert service.store.db_path == cfg.store.db_path
            assert not service.activity.enabled
            assert service.add("via server").ok
        finally:
            service.store.close()

    def test_create_server_store_unavailable(self, tmp_path):
        pytest.importorskip("mcp.server.fastmcp")
        from simplemem.config import ServerConfig
        from simplemem.errors import StoreUnavailable
        from simplemem.mcp.server import create_server

        junk = tmp_path / "junk.db"
        junk.write_bytes(b"not sqlite at all\n" * 200)
        cfg = ServerConfig()
        cfg.store.db_path = str(junk)
        cfg.activity.enabled = False
        with pytest.raises(StoreUnavailable):
            create_server(config=cfg)
