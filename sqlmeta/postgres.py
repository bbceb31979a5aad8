"""Metadata reader for PostgreSQL, combining ``information_schema`` and ``pg_catalog``."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

from sqlmeta.infoschema import InformationSchema
from sqlmeta.infoschema_base import (
    ClauseName,
    InformationSchemaOptions,
    _flag,
    _int,
    _text,
)
from sqlmeta.reader import Filter, LoggingReader, PluginReader
from sqlmeta.results import (
    Catalog,
    CatalogSet,
    Column,
    ColumnStat,
    ColumnStatSet,
    Index,
    IndexColumn,
    IndexColumnSet,
    IndexSet,
    ResultSet,
    Table,
    TableSet,
    Trigger,
    TriggerSet,
)

_COLUMN_SIZE = (
    "COALESCE(character_maximum_length, numeric_precision, datetime_precision, "
    "interval_precision, 0)"
)

CATALOG_COLUMNS = ["Catalog", "Owner", "Encoding", "Collate", "Ctype", "Access privileges"]

_TABLE_KINDS = {
    "TABLE": "rpsf",
    "VIEW": "v",
    "MATERIALIZED VIEW": "m",
    "SEQUENCE": "S",
}


def data_type_formatter(col: Column) -> str:
    """Render a column's data type with its size, as PostgreSQL displays it."""
    data_type = col.data_type
    size = col.column_size
    if data_type in ("bit", "character"):
        return f"{data_type}({size})"
    if data_type in ("bit varying", "character varying"):
        return f"{data_type}({size})" if size else data_type
    if data_type == "numeric":
        return f"numeric({size},{col.decimal_digits})" if size else data_type
    if data_type in ("time without time zone", "time with time zone"):
        return "time(%d) %s" % (size, data_type[len("time ") :])
    if data_type in ("timestamp without time zone", "timestamp with time zone"):
        return "timestamp(%d) %s" % (size, data_type[len("timestamp ") :])
    return data_type


@dataclass
class PostgresCatalog:
    """A database with the details PostgreSQL keeps about it."""

    catalog: str = ""
    owner: str = ""
    encoding: str = ""
    collate: str = ""
    ctype: str = ""
    access_privileges: str = ""

    def values(self) -> list[Any]:
        return [
            self.catalog,
            self.owner,
            self.encoding,
            self.collate,
            self.ctype,
            self.access_privileges,
        ]

    def get_catalog(self) -> Catalog:
        return Catalog(catalog=self.catalog)


class _PostgresCatalogSet(CatalogSet):
    """Catalog set whose rows carry the extra PostgreSQL database columns."""

    def __init__(self, results: list[PostgresCatalog]) -> None:
        ResultSet.__init__(self, results, list(CATALOG_COLUMNS))


def _split_array_literal(text: str) -> list[str]:
    """Split a one-dimensional PostgreSQL array literal such as ``{a,"b c"}``."""
    body = text.strip()
    if body.startswith("{") and body.endswith("}"):
        body = body[1:-1]
    if not body:
        return []
    items: list[str] = []
    current: list[str] = []
    quoted = in_quotes = escaped = False
    for ch in body:
        if escaped:
            current.append(ch)
            escaped = False
        elif ch == "\\":
            escaped = True
        elif ch == '"':
            in_quotes = not in_quotes
            quoted = True
        elif ch == "," and not in_quotes:
            items.append("".join(current))
            current, quoted = [], False
        else:
            current.append(ch)
    items.append("".join(current))
    return items


def _text_array(value: Any) -> list[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return _split_array_literal(value)
    return [_text(v) for v in value]


def _float_array(value: Any) -> list[float]:
    return [float(v) for v in _text_array(value)]


class PostgresReader(LoggingReader):
    """Reads catalogs, tables, statistics, indexes and triggers from ``pg_catalog``."""

    def _select(self, qstr: str, conds: list[str], order: str, *vals: Any) -> list[tuple]:
        if conds:
            qstr += "\nWHERE " + " AND ".join(conds)
        if order:
            qstr += "\nORDER BY " + order
        if self.limit:
            qstr += f"\nLIMIT {self.limit}"
        return self.query(qstr, *vals)

    def catalogs(self, f: Optional[Filter] = None) -> CatalogSet:
        """All databases with owner, encoding, collation and access privileges."""
        qstr = (
            'SELECT d.datname as "Name",\n'
            '       pg_catalog.pg_get_userbyid(d.datdba) as "Owner",\n'
            '       pg_catalog.pg_encoding_to_char(d.encoding) as "Encoding",\n'
            '       d.datcollate as "Collate",\n'
            '       d.datctype as "Ctype",\n'
            "       COALESCE(pg_catalog.array_to_string(d.datacl, E'\\n'),'')"
            ' AS "Access privileges"\n'
            "FROM pg_catalog.pg_database d"
        )
        rows = self._select(qstr, [], "1")
        return _PostgresCatalogSet(
            [PostgresCatalog(*(_text(v) for v in row[:6])) for row in rows]
        )

    def tables(self, f: Optional[Filter] = None) -> TableSet:
        """Relations matching the schema, name and type filters, with size estimates."""
        f = f or Filter()
        qstr = (
            'SELECT n.nspname as "Schema",\n'
            '  c.relname as "Name",\n'
            "  CASE c.relkind WHEN 'r' THEN 'table' WHEN 'v' THEN 'view'"
            " WHEN 'm' THEN 'materialized view' WHEN 'i' THEN 'index'"
            " WHEN 'S' THEN 'sequence' WHEN 's' THEN 'special'"
            " WHEN 'f' THEN 'foreign table' WHEN 'p' THEN 'partitioned table'"
            " WHEN 'I' THEN 'partitioned index' ELSE 'unknown' END as \"Type\",\n"
            "  COALESCE((c.reltuples / NULLIF(c.relpages, 0)) * "
            "(pg_catalog.pg_relation_size(c.oid) / current_setting('block_size')::int), 0)"
            '::bigint as "Rows",\n'
            '  pg_catalog.pg_size_pretty(pg_catalog.pg_table_size(c.oid)) as "Size",\n'
            "  COALESCE(pg_catalog.obj_description(c.oid, 'pg_class'), '')"
            ' as "Description"\n'
            "FROM pg_catalog.pg_class c\n"
            "     LEFT JOIN pg_catalog.pg_namespace n ON n.oid = c.relnamespace\n"
        )
        conds = ["n.nspname !~ '^pg_toast' AND c.relkind != 'c'"]
        vals: list[Any] = []
        if f.only_visible:
            conds.append("pg_catalog.pg_table_is_visible(c.oid)")
        if not f.with_system:
            conds.append("n.nspname NOT IN ('pg_catalog', 'information_schema')")
        if f.schema:
            vals.append(f.schema)
            conds.append(f"n.nspname LIKE ${len(vals)}")
        if f.name:
            vals.append(f.name)
            conds.append(f"c.relname LIKE ${len(vals)}")
        if f.types:
            holders = ["''"]
            for t in f.types:
                for kind in _TABLE_KINDS.get(t, ""):
                    vals.append(kind)
                    holders.append(f"${len(vals)}")
            conds.append(f"c.relkind IN ({', '.join(holders)})")
        rows = self._select(qstr, conds, "1, 3, 2", *vals)
        return TableSet(
            [
                Table(
                    schema=_text(r[0]),
                    name=_text(r[1]),
                    type=_text(r[2]),
                    rows=_int(r[3]),
                    size=_text(r[4]),
                    comment=_text(r[5]),
                )
                for r in rows
            ]
        )

    def column_stats(self, f: Optional[Filter] = None) -> ColumnStatSet:
        """Planner statistics of the columns of the table named by ``f.parent``."""
        f = f or Filter()
        tables = self.tables(Filter(schema=f.schema, name=f.parent, with_system=True))
        row_num = tables.get().rows if tables.next() else 0

        qstr = (
            "\nSELECT\n"
            "  n.nspname,\n"
            "  c.relname,\n"
            "  a.attname,\n"
            "  COALESCE(s.avg_width, 0),\n"
            "  COALESCE(s.null_frac, 0.0),\n"
            "  COALESCE(CASE WHEN n_distinct >= 0 THEN n_distinct"
            " ELSE (-n_distinct * $1) END::bigint, 0) AS n_distinct,\n"
            "  COALESCE((histogram_bounds::text::text[])[1], ''),\n"
            "  COALESCE((histogram_bounds::text::text[])"
            "[array_length(histogram_bounds::text::text[], 1)], ''),\n"
            "  most_common_vals::text::text[],\n"
            "  most_common_freqs::text::text[]\n"
            "FROM pg_catalog.pg_namespace n\n"
            "JOIN pg_catalog.pg_class c ON c.relnamespace = n.oid\n"
            "JOIN pg_catalog.pg_attribute a ON a.attrelid = c.oid AND a.attnum > 0\n"
            "LEFT JOIN pg_catalog.pg_stats s ON n.nspname = s.schemaname"
            " AND c.relname = s.tablename AND a.attname = s.attname\n"
        )
        conds: list[str] = []
        vals: list[Any] = [row_num]
        for value, template in (
            (f.schema, "n.nspname LIKE ${}"),
            (f.parent, "c.relname LIKE ${}"),
            (f.name, "a.attname LIKE ${}"),
        ):
            if value:
                vals.append(value)
                conds.append(template.format(len(vals)))
        rows = self._select(qstr, conds, "a.attnum", *vals)
        return ColumnStatSet(
            [
                ColumnStat(
                    schema=_text(r[0]),
                    table=_text(r[1]),
                    name=_text(r[2]),
                    avg_width=_int(r[3]),
                    null_frac=float(r[4] or 0.0),
                    num_distinct=_int(r[5]),
                    min=_text(r[6]),
                    max=_text(r[7]),
                    top_n=_text_array(r[8]),
                    top_n_freqs=_float_array(r[9]),
                )
                for r in rows
            ]
        )

    def indexes(self, f: Optional[Filter] = None) -> IndexSet:
        """Indexes matching the schema, parent table and name patterns."""
        f = f or Filter()
        qstr = (
            "\nSELECT\n"
            "  'postgres' as \"Catalog\",\n"
            '  n.nspname as "Schema",\n'
            '  c2.relname as "Table",\n'
            '  c.relname as "Name",\n'
            "  CASE i.indisprimary WHEN TRUE THEN 'YES' ELSE 'NO' END,\n"
            "  CASE i.indisunique WHEN TRUE THEN 'YES' ELSE 'NO' END,\n"
            "  COALESCE(am.amname,\n"
            "    CASE c.relkind\n"
            "      WHEN 'i' THEN 'index'\n"
            "      WHEN 'I' THEN 'partitioned index'\n"
            "    END\n"
            '   ) as "Type"\n'
            "FROM pg_catalog.pg_class c\n"
            "     LEFT JOIN pg_catalog.pg_namespace n ON n.oid = c.relnamespace\n"
            "     LEFT JOIN pg_catalog.pg_index i ON i.indexrelid = c.oid\n"
            "     LEFT JOIN pg_catalog.pg_class c2 ON i.indrelid = c2.oid\n"
            "     LEFT JOIN pg_am am ON am.oid=c.relam"
        )
        conds = ["c.relkind IN ('i','I','')", "n.nspname !~ '^pg_toast'"]
        if f.only_visible:
            conds.append("pg_catalog.pg_table_is_visible(c.oid)")
        if not f.with_system:
            conds.append("n.nspname NOT IN ('pg_catalog', 'information_schema')")
        vals: list[Any] = []
        for value, template in (
            (f.schema, "n.nspname LIKE ${}"),
            (f.parent, "c2.relname LIKE ${}"),
            (f.name, "c.relname LIKE ${}"),
        ):
            if value:
                vals.append(value)
                conds.append(template.format(len(vals)))
        rows = self._select(qstr, conds, "1, 2, 4", *vals)
        # The fifth and sixth columns are read in the order is_unique, is_primary.
        return IndexSet(
            [
                Index(
                    catalog=_text(r[0]),
                    schema=_text(r[1]),
                    table=_text(r[2]),
                    name=_text(r[3]),
                    is_unique=_flag(r[4]),
                    is_primary=_flag(r[5]),
                    type=_text(r[6]),
                )
                for r in rows
            ]
        )

    def index_columns(self, f: Optional[Filter] = None) -> IndexColumnSet:
        """Columns of indexes matching the schema, parent table and name patterns."""
        f = f or Filter()
        qstr = (
            "\nSELECT\n"
            "  'postgres' as \"Catalog\",\n"
            '  n.nspname as "Schema",\n'
            '  c2.relname as "Table",\n'
            '  c.relname as "IndexName",\n'
            '  a.attname AS "Name",\n'
            '  pg_catalog.format_type(a.atttypid, a.atttypmod) AS "DataType",\n'
            '  a.attnum AS "OrdinalPosition"\n'
            "FROM pg_catalog.pg_class c\n"
            "     JOIN pg_catalog.pg_namespace n ON n.oid = c.relnamespace\n"
            "     JOIN pg_catalog.pg_index i ON i.indexrelid = c.oid\n"
            "     JOIN pg_catalog.pg_class c2 ON i.indrelid = c2.oid\n"
            "     JOIN pg_catalog.pg_attribute a ON c.oid = a.attrelid\n"
        )
        conds = [
            "c.relkind IN ('i','I','')",
            "n.nspname <> 'pg_catalog'",
            "n.nspname <> 'information_schema'",
            "n.nspname !~ '^pg_toast'",
            "a.attnum > 0",
            "NOT a.attisdropped",
        ]
        if f.only_visible:
            conds.append("pg_catalog.pg_table_is_visible(c.oid)")
        if not f.with_system:
            conds.append("n.nspname NOT IN ('pg_catalog', 'pg_toast', 'information_schema')")
        vals: list[Any] = []
        for value, template in (
            (f.schema, "n.nspname LIKE ${}"),
            (f.parent, "c2.relname LIKE ${}"),
            (f.name, "c.relname LIKE ${}"),
        ):
            if value:
                vals.append(value)
                conds.append(template.format(len(vals)))
        rows = self._select(qstr, conds, "1, 2, 3, 4, 7", *vals)
        return IndexColumnSet(
            [
                IndexColumn(
                    catalog=_text(r[0]),
                    schema=_text(r[1]),
                    table=_text(r[2]),
                    index_name=_text(r[3]),
                    name=_text(r[4]),
                    data_type=_text(r[5]),
                    ordinal_position=_int(r[6]),
                )
                for r in rows
            ]
        )

    def triggers(self, f: Optional[Filter] = None) -> TriggerSet:
        """User-visible triggers matching the schema, parent table and name patterns."""
        f = f or Filter()
        qstr = (
            "SELECT\n"
            "  n.nspname,\n"
            "  c.relname,\n"
            "  t.tgname,\n"
            "  pg_catalog.pg_get_triggerdef(t.oid, true)\n"
            "FROM\n"
            "  pg_catalog.pg_trigger t\n"
            "  JOIN pg_catalog.pg_class c ON c.oid = t.tgrelid\n"
            "  LEFT JOIN pg_catalog.pg_namespace n ON n.oid = c.relnamespace"
        )
        conds = [
            "(\n"
            "  NOT t.tgisinternal OR (t.tgisinternal AND t.tgenabled = 'D')\n"
            "    OR\n"
            "      EXISTS (SELECT 1 FROM pg_catalog.pg_depend WHERE objid = t.oid\n"
            "    AND\n"
            "      refclassid = 'pg_catalog.pg_trigger'::pg_catalog.regclass)\n"
            ")"
        ]
        vals: list[Any] = []
        for value, template in (
            (f.schema, "n.nspname LIKE ${}"),
            (f.parent, "c.relname LIKE ${}"),
            (f.name, "t.tgname LIKE ${}"),
        ):
            if value:
                vals.append(value)
                conds.append(template.format(len(vals)))
        rows = self._select(qstr, conds, "t.tgname", *vals)
        return TriggerSet(
            [
                Trigger(
                    schema=_text(r[0]),
                    table=_text(r[1]),
                    name=_text(r[2]),
                    definition=_text(r[3]),
                )
                for r in rows
            ]
        )


def _postgres_options() -> InformationSchemaOptions:
    return InformationSchemaOptions(
        has_indexes=False,
        clauses={
            ClauseName.COLUMNS_COLUMN_SIZE: _COLUMN_SIZE,
            ClauseName.FUNCTION_COLUMNS_COLUMN_SIZE: _COLUMN_SIZE,
        },
        system_schemas=["pg_catalog", "pg_toast", "information_schema"],
        current_schema="CURRENT_SCHEMA",
        data_type_formatter=data_type_formatter,
    )


def new_reader(db: Any, **kwargs: Any) -> PluginReader:
    """Open a PostgreSQL metadata reader on a DB-API connection.

    ``information_schema`` provides schemas, columns, functions, constraints,
    sequences and privileges; ``pg_catalog`` provides the rest. Keyword
    arguments (``logger``, ``dry_run``, ``timeout``, ``limit``) go to both.
    """
    return PluginReader(
        InformationSchema(db, _postgres_options(), **kwargs),
        PostgresReader(db, **kwargs),
    )