import sqlite3
from datetime import timedelta

import pytest

from sqlmeta.reader import Filter, LoggingReader, NotSupportedError, PluginReader


@pytest.fixture
def db():
    conn = sqlite3.connect(":memory:")
    conn.execute("CREATE TABLE t (a INTEGER, b TEXT)")
    conn.executemany("INSERT INTO t VALUES (?, ?)", [(1, "x"), (2, "y"), (3, "z")])
    yield conn
    conn.close()


class SchemaSource:
    def __init__(self, tag):
        self.tag = tag

    def schemas(self, f):
        return (self.tag, f.name)


class TableSource:
    def tables(self, f):
        return ["tables", f.schema]


def test_filter_defaults():
    f = Filter()
    assert (f.catalog, f.schema, f.parent, f.reference, f.name) == ("", "", "", "", "")
    assert f.types == []
    assert f.with_system is False and f.only_visible is False


def test_filter_types_are_independent():
    a, b = Filter(), Filter()
    a.types.append("TABLE")
    assert b.types == []


def test_plugin_reader_delegates():
    reader = PluginReader(SchemaSource("one"), TableSource())
    assert reader.schemas(Filter(name="s%")) == ("one", "s%")
    assert reader.tables(Filter(schema="main")) == ["tables", "main"]


def test_plugin_reader_later_reader_wins():
    reader = PluginReader(SchemaSource("first"), SchemaSource("second"))
    assert reader.schemas(Filter())[0] == "second"


@pytest.mark.parametrize(
    "method",
    [
        "catalogs",
        "columns",
        "column_stats",
        "indexes",
        "index_columns",
        "triggers",
        "constraints",
        "constraint_columns",
        "functions",
        "function_columns",
        "sequences",
        "privilege_summaries",
    ],
)
def test_plugin_reader_missing_kind_not_supported(method):
    reader = PluginReader(SchemaSource("one"), TableSource())
    with pytest.raises(NotSupportedError):
        getattr(reader, method)(Filter())


def test_plugin_reader_empty():
    with pytest.raises(NotSupportedError):
        PluginReader().schemas(Filter())


def test_plugin_reader_nested():
    inner = PluginReader(TableSource())
    outer = PluginReader(inner, SchemaSource("s"))
    assert outer.tables(Filter(schema="x")) == ["tables", "x"]
    with pytest.raises(NotSupportedError):
        outer.sequences(Filter())


def test_query_returns_rows(db):
    reader = LoggingReader(db)
    rows = reader.query("SELECT a, b FROM t WHERE a >= ? ORDER BY a", 2)
    assert rows == [(2, "y"), (3, "z")]


def test_query_without_args(db):
    reader = LoggingReader(db)
    assert reader.query("SELECT count(*) FROM t") == [(3,)]


def test_query_logs_sql_and_args(db):
    logged = []
    reader = LoggingReader(db, logger=logged.append)
    sql = "SELECT a FROM t WHERE b = ?"
    assert reader.query(sql, "x") == [(1,)]
    assert logged[0] == sql
    assert "x" in logged[1]
    assert len(logged) == 2


def test_dry_run_executes_nothing(db):
    logged = []
    reader = LoggingReader(db, logger=logged.append, dry_run=True)
    assert reader.query("SELECT * FROM no_such_table") == []
    assert logged[0] == "SELECT * FROM no_such_table"


def test_query_error_propagates(db):
    reader = LoggingReader(db)
    with pytest.raises(sqlite3.OperationalError):
        reader.query("SELECT * FROM no_such_table")


def test_query_with_timeout_completes(db):
    reader = LoggingReader(db, timeout=timedelta(seconds=5))
    assert reader.query("SELECT a FROM t ORDER BY a") == [(1,), (2,), (3,)]


def test_query_timeout_interrupts(db):
    reader = LoggingReader(db, timeout=0.05)
    endless = (
        "WITH RECURSIVE c(x) AS (SELECT 1 UNION ALL SELECT x + 1 FROM c) "
        "SELECT count(*) FROM c"
    )
    with pytest.raises(TimeoutError):
        reader.query(endless)
    assert reader.query("SELECT count(*) FROM t") == [(3,)]


def test_zero_timeout_means_none(db):
    reader = LoggingReader(db, timeout=0)
    assert reader.timeout is None
    assert reader.query("SELECT max(a) FROM t") == [(3,)]


def test_limit_is_kept(db):
    assert LoggingReader(db, limit=1000).limit == 1000
    assert LoggingReader(db).limit == 0