import pytest

from sqlmeta.postgres import (
    CATALOG_COLUMNS,
    PostgresCatalog,
    PostgresReader,
    data_type_formatter,
    new_reader,
)
from sqlmeta.reader import Filter
from sqlmeta.results import Catalog, Column


class FakeCursor:
    def __init__(self, conn):
        self.conn = conn

    def execute(self, sql, args):
        self.conn.executed.append((sql, list(args)))

    def fetchall(self):
        return self.conn.responses.pop(0) if self.conn.responses else []

    def close(self):
        pass


class FakeConnection:
    def __init__(self, *responses):
        self.responses = list(responses)
        self.executed = []

    def cursor(self):
        return FakeCursor(self)


def collect(result_set):
    items = []
    while result_set.next():
        items.append(result_set.get())
    return items


@pytest.mark.parametrize(
    "data_type, size, digits, want",
    [
        ("bit", 1, 0, "bit(1)"),
        ("bit varying", 0, 0, "bit varying"),
        ("bit varying", 2, 0, "bit varying(2)"),
        ("character", 1, 0, "character(1)"),
        ("character", 3, 0, "character(3)"),
        ("character varying", 0, 0, "character varying"),
        ("character varying", 4, 0, "character varying(4)"),
        ("numeric", 0, 0, "numeric"),
        ("numeric", 1, 0, "numeric(1,0)"),
        ("time without time zone", 6, 0, "time(6) without time zone"),
        ("time without time zone", 4, 0, "time(4) without time zone"),
        ("time with time zone", 3, 0, "time(3) with time zone"),
        ("timestamp without time zone", 2, 0, "timestamp(2) without time zone"),
        ("timestamp with time zone", 6, 0, "timestamp(6) with time zone"),
        ("timestamp with time zone", 1, 0, "timestamp(1) with time zone"),
        ("bigint", 64, 0, "bigint"),
        ("integer", 32, 0, "integer"),
        ("text", 0, 0, "text"),
        ("uuid", 0, 0, "uuid"),
        ("xml", 0, 0, "xml"),
    ],
)
def test_data_type_formatter(data_type, size, digits, want):
    col = Column(data_type=data_type, column_size=size, decimal_digits=digits)
    assert data_type_formatter(col) == want


def test_triggers_names_and_query():
    conn = FakeConnection(
        [
            ("public", "film", "film_fulltext_trigger", "CREATE TRIGGER a"),
            ("public", "film", "last_updated", "CREATE TRIGGER b"),
        ]
    )
    reader = PostgresReader(conn)
    result = reader.triggers(Filter(schema="public", parent="film"))
    names = [t.name for t in collect(result)]
    assert ", ".join(names) == "film_fulltext_trigger, last_updated"
    sql, args = conn.executed[0]
    assert args == ["public", "film"]
    assert "n.nspname LIKE $1" in sql
    assert "c.relname LIKE $2" in sql
    assert sql.endswith("ORDER BY t.tgname")


def test_indexes_access_method():
    conn = FakeConnection(
        [
            ("postgres", "public", "tmp_table", "btree_index", "NO", "NO", "btree"),
            ("postgres", "public", "tmp_table", "hash_index", "NO", "NO", "hash"),
        ]
    )
    reader = PostgresReader(conn)
    result = reader.indexes(Filter(schema="public", parent="tmp_table"))
    assert [i.type for i in collect(result)] == ["btree", "hash"]
    sql, args = conn.executed[0]
    assert args == ["public", "tmp_table"]
    assert "c2.relname LIKE $2" in sql
    assert "n.nspname NOT IN ('pg_catalog', 'information_schema')" in sql


def test_tables_types_expand_to_relkinds():
    conn = FakeConnection([("public", "film", "table", 1000, "8192 bytes", "films")])
    reader = PostgresReader(conn)
    tables = collect(reader.tables(Filter(types=["TABLE"])))
    assert tables[0].name == "film"
    assert tables[0].rows == 1000
    assert tables[0].size == "8192 bytes"
    assert tables[0].comment == "films"
    sql, args = conn.executed[0]
    assert args == ["r", "p", "s", "f"]
    assert "c.relkind IN ('', $1, $2, $3, $4)" in sql
    assert sql.endswith("ORDER BY 1, 3, 2")


def test_limit_appended():
    conn = FakeConnection()
    reader = PostgresReader(conn, limit=5)
    result = reader.triggers(Filter())
    assert collect(result) == []
    assert conn.executed[0][0].endswith("\nLIMIT 5")


def test_catalogs_columns_and_get():
    conn = FakeConnection(
        [("postgres", "postgres", "UTF8", "en_US.utf8", "en_US.utf8", "")]
    )
    reader = PostgresReader(conn)
    result = reader.catalogs(Filter())
    assert result.next()
    assert result.get() == Catalog(catalog="postgres")
    assert list(result.columns) == CATALOG_COLUMNS


def test_postgres_catalog_values():
    cat = PostgresCatalog("db", "owner", "UTF8", "C", "C", "")
    assert cat.values() == ["db", "owner", "UTF8", "C", "C", ""]
    assert cat.get_catalog() == Catalog(catalog="db")


def test_column_stats_uses_table_row_count():
    conn = FakeConnection(
        [("public", "film", "table", 250, "16 kB", "")],
        [("public", "film", "title", 12, 0.0, 10, "a", "z", ["x", "y"], ["0.5", "0.25"])],
        )
    reader = PostgresReader(conn)
    stats = collect(reader.column_stats(Filter(schema="public", parent="film")))
    assert conn.executed[1][1] == [250, "public", "film"]
    assert stats[0].name == "title"
    assert stats[0].num_distinct == 10
    assert stats[0].top_n == ["x", "y"]
    assert stats[0].top_n_freqs == [0.5, 0.25]


def test_column_stats_parses_array_literal():
    conn = FakeConnection(
        [],
        [("public", "film", "title", 1, 0.1, 2, "", "", '{a,"b c"}', "{0.75}")],
    )
    reader = PostgresReader(conn)
    stats = collect(reader.column_stats(Filter(parent="film")))
    assert conn.executed[1][1] == [0, "film"]
    assert stats[0].top_n == ["a", "b c"]
    assert stats[0].top_n_freqs == [0.75]


def test_new_reader_routes_queries():
    logged = []
    reader = new_reader(FakeConnection(), logger=logged.append, dry_run=True)
    assert collect(reader.indexes(Filter())) == []
    assert "pg_am" in logged[0]
    assert collect(reader.columns(Filter())) == []
    assert "information_schema.columns" in logged[2]
    assert "interval_precision" in logged[2]