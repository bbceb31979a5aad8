import pytest

from sqlmeta.mysql import new_reader
from sqlmeta.reader import Filter, NotSupportedError

SYSTEM = ("mysql", "information_schema", "performance_schema", "sys")


class Connection:
    """Stands in for a DB-API connection; it is its own cursor."""

    def __init__(self, rows=()):
        self.rows = list(rows)
        self.statements = []
        self.closed = False

    def cursor(self):
        return self

    def execute(self, statement, params=()):
        self.statements.append((statement, tuple(params)))

    def fetchall(self):
        return self.rows[:]

    def close(self):
        self.closed = True


def run(method, flt=None, rows=(), **kwargs):
    conn = Connection(rows)
    result = getattr(new_reader(conn, **kwargs), method)(flt or Filter())
    return conn, result


def test_schemas_use_question_marks_and_exclude_system_schemas():
    conn, result = run("schemas", rows=[("shop", "def")])
    statement, params = conn.statements[0]
    assert "schema_name NOT IN (?, ?, ?, ?)" in statement
    assert params == SYSTEM
    assert [(s.schema, s.catalog) for s in result] == [("shop", "def")]


def test_with_system_has_no_exclusion():
    conn, _ = run("schemas", Filter(with_system=True))
    statement, params = conn.statements[0]
    assert "NOT IN" not in statement
    assert params == ()


def test_schema_filter_is_not_excluded_from_itself():
    conn, _ = run("tables", Filter(schema="mysql"))
    _, params = conn.statements[0]
    assert params[0] == "mysql"
    assert params.count("mysql") == 1


def test_columns_use_column_type_and_fixed_radix():
    row = ("def", "shop", "items", "id", 1, "int(11)", "", "NO", 10, 0, 10, 0)
    conn, result = run("columns", Filter(parent="items"), rows=[row])
    statement, params = conn.statements[0]
    assert "column_type" in statement
    assert "table_name LIKE ?" in statement
    assert "items" in params
    col = next(iter(result))
    assert (col.data_type, col.is_nullable, col.column_size) == ("int(11)", "NO", 10)


@pytest.mark.parametrize(
    "method, flt, present, absent",
    [
        ("tables", Filter(only_visible=True),
         "table_schema LIKE COALESCE(DATABASE(), '%')", None),
        ("tables", Filter(types=["SEQUENCE"]), None, "information_schema.sequences"),
        ("constraint_columns", Filter(),
         "AND r.referenced_table_name = f.table_name", "constraint_column_usage"),
        ("privilege_summaries", Filter(),
         "COALESCE('', '') AS grantor", "usage_privileges"),
    ],
)
def test_generated_statement(method, flt, present, absent):
    conn, _ = run(method, flt)
    statement, _ = conn.statements[0]
    if present is not None:
        assert present in statement
    if absent is not None:
        assert absent not in statement


def test_sequences_not_supported():
    with pytest.raises(NotSupportedError):
        run("sequences")


def test_limit_is_appended():
    conn, _ = run("schemas", limit=1000)
    statement, _ = conn.statements[0]
    assert statement.endswith("LIMIT 1000")


def test_dry_run_runs_nothing_and_logs():
    logged = []
    conn, result = run("schemas", rows=[("x", "y")], dry_run=True, logger=logged.append)
    assert len(result) == 0
    assert conn.statements == []
    assert "information_schema.schemata" in logged[0]