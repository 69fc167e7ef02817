"""
Tests for simplemem.query — the shared substring predicate.

Invariants tested:
- Q1: a query matches if it is a substring of ANY of title/tags/status/content
- Q2: matching is case-sensitive
- Q3: SQL wildcards in the query are literal characters
- Q4: the SQL clause and the Python predicate agree
"""

import pytest

from simplemem.query import SEARCH_FIELDS, VISIBLE_CLAUSE, is_visible, match_clause, matches
from simplemem.store import RecordStore
from simplemem.types import MemoryRecord


@pytest.fixture
def store():
    s = RecordStore(":memory:")
    yield s
    s.close()


class TestMatchClause:
    def test_one_param_per_field(self):
        sql, params = match_clause("go", ["id", "content", "title", "tags", "status"])
        assert params == ["go"] * 4
        assert sql.startswith(VISIBLE_CLAUSE)
        for f in SEARCH_FIELDS:
            assert f"coalesce({f}, '')" in sql

    def test_missing_columns_skipped(self):
        sql, params = match_clause("go", ["id", "content", "title"])
        assert params == ["go", "go"]
        assert "tags" not in sql
        assert "status" not in sql


class TestMatchesPredicate:
    def test_title_only_match(self):
        rec = MemoryRecord(id=1, title="Go", content="unrelated")
        assert matches(rec, "Go")

    def test_each_field(self):
        for f in SEARCH_FIELDS:
            kwargs = {"content": "base", f: "a needle here"}
            rec = MemoryRecord(id=1, **kwargs)
            assert matches(rec, "needle"), f

    def test_case_sensitive(self):
        rec = MemoryRecord(id=1, content="Project uses SQLite")
        assert matches(rec, "SQLite")
        assert not matches(rec, "sqlite")

    def test_invisible_record_never_matches(self):
        rec = MemoryRecord(id=1, title="ghost", content="   ")
        assert not is_visible(rec.content)
        assert not matches(rec, "ghost")


class TestSqlAgreesWithPython:
    RECORDS = [
        dict(content="Project uses SQLite"),
        dict(title="Go", content="unrelated"),
        dict(title="X", tags="go,db", status="open", content="note"),
        dict(content="100% done_now"),
        dict(content="lowercase sqlite"),
    ]

    @pytest.mark.parametrize("query", ["SQLite", "sqlite", "go", "Go", "%", "_", "open", "zzz"])
    def test_same_ids(self, store, query):
        for r in self.RECORDS:
            store.insert(**r)
        all_records = store.scan_all().to_list()
        expected = [r.id for r in all_records if matches(r, query)]
        got = [r.id for r in store.scan_matching(query)]
        assert got == expected

    def test_wildcards_are_literal(self, store):
        store.insert("100% done")
        store.insert("nothing special")
        assert [r.content for r in store.scan_matching("%")] == ["100% done"]
        assert store.scan_matching("_").to_list() == []
