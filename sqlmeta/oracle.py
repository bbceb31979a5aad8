"""Metadata reader for Oracle databases, built on the data dictionary views."""

from __future__ import annotations

from datetime import timedelta
from typing import Any, Callable, Mapping, Optional

from sqlmeta.infoschema_base import _flag, _int, _text
from sqlmeta.reader import Filter, LoggingReader
from sqlmeta.results import (
    Catalog,
    CatalogSet,
    Column,
    ColumnSet,
    Function,
    FunctionColumn,
    FunctionColumnSet,
    FunctionSet,
    Index,
    IndexColumn,
    IndexColumnSet,
    IndexSet,
    Schema,
    SchemaSet,
    Table,
    TableSet,
)

_SYSTEM_SCHEMAS = "'CTXSYS', 'FLOWS_FILES', 'MDSYS', 'OUTLN', 'SYS', 'SYSTEM', 'XDB', 'XS$NULL'"


def _where(conds: list[str]) -> str:
    return " WHERE " + " AND ".join(conds) if conds else ""


class OracleReader(LoggingReader):
    """Reads catalogs, schemas, tables, columns, functions and indexes from Oracle."""

    def __init__(
        self,
        db: Any,
        *,
        logger: Optional[Callable[[str], Any]] = None,
        dry_run: bool = False,
        timeout: float | timedelta | None = None,
        limit: int = 0,
    ) -> None:
        super().__init__(db, logger=logger, dry_run=dry_run, timeout=timeout, limit=limit)
        self.system_schemas = _SYSTEM_SCHEMAS

    def conditions(self, f: Filter, formats: Mapping[str, str]) -> tuple[list[str], list[Any]]:
        """Build WHERE conditions and upper-cased arguments from a filter.

        ``formats`` maps ``schema``, ``not_schemas``, ``parent``, ``name`` and
        ``types`` to templates. The ``schema`` template takes a placeholder
        string, ``parent`` and ``name`` take the placeholder number.
        """
        param = 1
        conds: list[str] = []
        vals: list[Any] = []
        schema_fmt = formats.get("schema", "")
        if f.schema and schema_fmt:
            vals.append(f.schema.upper())
            conds.append(schema_fmt % f":{param}")
            param += 1
        not_schemas = formats.get("not_schemas", "")
        if not f.with_system and not_schemas:
            conds.append(not_schemas % self.system_schemas)
        if f.only_visible and schema_fmt:
            conds.append(schema_fmt % "user")
        for key, value in (("parent", f.parent), ("name", f.name)):
            template = formats.get(key, "")
            if value and template:
                vals.append(value.upper())
                conds.append(template % param)
                param += 1
        types_fmt = formats.get("types", "")
        if f.types and types_fmt:
            holders = []
            for t in f.types:
                vals.append(t.upper())
                holders.append(f":{param}")
                param += 1
            conds.append(types_fmt % ", ".join(holders))
        return conds, vals

    def catalogs(self, f: Optional[Filter] = None) -> CatalogSet:
        """The database name and the names of its database links."""
        qstr = (
            "SELECT\n"
            "  UPPER(Value) AS catalog\n"
            "FROM v$parameter o\n"
            "WHERE name = 'db_name'\n"
            "UNION ALL\n"
            "SELECT\n"
            "  db_link AS catalog\n"
            "FROM dba_db_links\n"
            "ORDER BY catalog\n"
        )
        rows = self.query(qstr)
        return CatalogSet([Catalog(catalog=_text(r[0])) for r in rows])

    def schemas(self, f: Optional[Filter] = None) -> SchemaSet:
        """Users (schemas) matching the name pattern."""
        f = f or Filter()
        qstr = "SELECT\n  username\nFROM all_users\n"
        conds, vals = self.conditions(
            f, {"name": "username LIKE :%d", "not_schemas": "username NOT IN (%s)"}
        )
        qstr += _where(conds) + "\nORDER BY username"
        rows = self.query(qstr, *vals)
        return SchemaSet([Schema(schema=_text(r[0])) for r in rows])

    def tables(self, f: Optional[Filter] = None) -> TableSet:
        """Objects matching the schema, name and type filters, with synonyms on request."""
        f = f or Filter()
        qstr = (
            "SELECT\n"
            "o.owner AS table_schem,\n"
            "o.object_name AS table_name,\n"
            "o.object_type AS table_type\n"
            "FROM all_objects o\n"
        )
        conds, vals = self.conditions(
            f,
            {
                "schema": "o.owner LIKE %s",
                "not_schemas": "o.owner NOT IN (%s)",
                "name": "o.object_name LIKE :%d",
                "types": "o.object_type IN (%s)",
            },
        )
        qstr += _where(conds)
        if "SYNONYM" in f.types:
            qstr += (
                "\nUNION ALL\n"
                "SELECT\n"
                "  s.owner AS table_schem,\n"
                "  s.synonym_name AS table_name,\n"
                "  'SYNONYM' AS table_type\n"
                "FROM all_synonyms s\n"
            )
            syn_conds, syn_vals = self.conditions(
                f,
                {
                    "schema": "s.owner LIKE %s",
                    "not_schemas": "s.owner NOT IN (%s)",
                    "name": "s.synonym_name LIKE :%d",
                },
            )
            vals.extend(syn_vals)
            qstr += _where(syn_conds)
        qstr += "\nORDER BY table_schem, table_name, table_type"
        rows = self.query(qstr, *vals)
        return TableSet(
            [Table(schema=_text(r[0]), name=_text(r[1]), type=_text(r[2])) for r in rows]
        )

    def columns(self, f: Optional[Filter] = None) -> ColumnSet:
        """Columns of tables matching the schema and parent patterns."""
        f = f or Filter()
        qstr = (
            "SELECT\n"
            "  c.owner,\n"
            "  c.table_name,\n"
            "  c.column_name,\n"
            "  c.column_id AS ordinal_position,\n"
            "  c.data_type,\n"
            "  CASE c.nullable\n"
            "    WHEN 'Y' THEN 'YES'\n"
            "    ELSE  'NO'  END AS nullable,\n"
            "  COALESCE(c.data_length, c.data_precision, 0),\n"
            "  COALESCE(c.data_scale, 0),\n"
            "  CASE c.data_type\n"
            "           WHEN 'FLOAT'  THEN  2\n"
            "           WHEN 'NUMBER' THEN 10\n"
            "  ELSE  0  END AS num_prec_radix,\n"
            "  COALESCE(c.char_col_decl_length, 0) as char_octet_length\n"
            "FROM all_tab_columns c\n"
        )
        conds, vals = self.conditions(
            f,
            {
                "schema": "c.owner LIKE %s",
                "not_schemas": "c.owner NOT IN (%s)",
                "parent": "c.table_name LIKE :%d",
            },
        )
        qstr += _where(conds) + "\nORDER BY c.owner, c.table_name, c.column_id"
        rows = self.query(qstr, *vals)
        return ColumnSet(
            [
                Column(
                    schema=_text(r[0]),
                    table=_text(r[1]),
                    name=_text(r[2]),
                    ordinal_position=_int(r[3]),
                    data_type=_text(r[4]),
                    is_nullable=_flag(r[5]),
                    column_size=_int(r[6]),
                    decimal_digits=_int(r[7]),
                    num_prec_radix=_int(r[8]),
                    char_octet_length=_int(r[9]),
                )
                for r in rows
            ]
        )

    def functions(self, f: Optional[Filter] = None) -> FunctionSet:
        """Procedures, functions and package members matching the filter."""
        f = f or Filter()
        qstr = (
            "SELECT\n"
            "  decode (b.object_type,'PACKAGE',CONCAT(CONCAT(b.object_name,'.'), a.object_name)\n"
            "         ,b.object_name) as specific_name,\n"
            "  b.owner   as procedure_schem,\n"
            "  decode (b.object_type,'PACKAGE',CONCAT(CONCAT(b.object_name,'.'), a.object_name)\n"
            "         ,b.object_name) as procedure_name,\n"
            "  decode (b.object_type,'PACKAGE',decode(a.position,0,2,1,1,0),\n"
            "          decode(b.object_type,'PROCEDURE',1,'FUNCTION',2,0)) as procedure_type\n"
            "FROM all_arguments a\n"
            "JOIN all_objects b ON b.object_id = a.object_id AND a.sequence  = 1\n"
        )
        conds, vals = self.conditions(
            f,
            {
                "schema": "b.owner LIKE %s",
                "not_schemas": "b.owner NOT IN (%s)",
                "name": "b.object_name LIKE :%d",
                "types": "b.object_type IN (%s)",
            },
        )
        conds.append(
            "(b.object_type = 'PROCEDURE' OR b.object_type = 'FUNCTION'"
            " OR b.object_type = 'PACKAGE')"
        )
        qstr += _where(conds) + "\nORDER BY procedure_schem, procedure_name, procedure_type"
        rows = self.query(qstr, *vals)
        return FunctionSet(
            [
                Function(
                    specific_name=_text(r[0]),
                    schema=_text(r[1]),
                    name=_text(r[2]),
                    type=_text(r[3]),
                )
                for r in rows
            ]
        )

    def function_columns(self, f: Optional[Filter] = None) -> FunctionColumnSet:
        """Arguments of procedures and functions matching the schema and parent."""
        f = f or Filter()
        qstr = (
            "SELECT\n"
            "     a.owner   as procedure_schem,\n"
            "     decode (b.object_type,'PACKAGE',"
            "CONCAT(CONCAT(b.object_name,'.'),a.object_name),\n"
            "             b.object_name) as procedure_name,\n"
            "     decode(a.position,0,'RETURN_VALUE',a.argument_name) as column_name,\n"
            "     a.position       as ordinal_position,\n"
            "     decode(a.position,0,5,decode(a.in_out,'IN',1,'IN/OUT',2,'OUT',4))"
            " as column_type,\n"
            "     a.data_type      as type_name,\n"
            "     COALESCE(a.data_length, a.data_precision, 0) as column_size,\n"
            "     COALESCE(a.data_scale, 0) as decimal_digits,\n"
            "     COALESCE(a.radix, 0) as num_prec_radix\n"
            "FROM all_objects b\n"
            "JOIN all_arguments a ON b.object_id = a.object_id AND a.data_level = 0\n"
        )
        conds, vals = self.conditions(
            f,
            {
                "schema": "a.owner LIKE %s",
                "not_schemas": "a.owner NOT IN (%s)",
                "parent": "b.object_name LIKE :%d",
            },
        )
        conds.append("b.object_type = 'PROCEDURE' OR b.object_type = 'FUNCTION'")
        qstr += _where(conds) + "\nORDER BY procedure_schem, procedure_name, ordinal_position"
        rows = self.query(qstr, *vals)
        return FunctionColumnSet(
            [
                FunctionColumn(
                    schema=_text(r[0]),
                    function_name=_text(r[1]),
                    name=_text(r[2]),
                    ordinal_position=_int(r[3]),
                    type=_text(r[4]),
                    data_type=_text(r[5]),
                    column_size=_int(r[6]),
                    decimal_digits=_int(r[7]),
                    num_prec_radix=_int(r[8]),
                )
                for r in rows
            ]
        )

    def indexes(self, f: Optional[Filter] = None) -> IndexSet:
        """Indexes matching the schema, parent and name patterns."""
        f = f or Filter()
        qstr = (
            "SELECT\n"
            "  o.owner,\n"
            "  o.table_name,\n"
            "  o.index_name,\n"
            "  decode(o.uniqueness,'UNIQUE','NO','YES')\n"
            "FROM all_indexes o\n"
        )
        conds, vals = self.conditions(
            f,
            {
                "schema": "o.owner LIKE %s",
                "not_schemas": "o.owner NOT IN (%s)",
                "parent": "o.table_name LIKE :%d",
                "name": "o.index_name LIKE :%d",
            },
        )
        qstr += _where(conds) + "\nORDER BY o.owner, o.table_name, o.index_name"
        rows = self.query(qstr, *vals)
        return IndexSet(
            [
                Index(
                    schema=_text(r[0]),
                    table=_text(r[1]),
                    name=_text(r[2]),
                    is_unique=_flag(r[3]),
                )
                for r in rows
            ]
        )

    def index_columns(self, f: Optional[Filter] = None) -> IndexColumnSet:
        """Columns of indexes matching the schema, parent and name patterns."""
        f = f or Filter()
        qstr = (
            "SELECT\n"
            "  o.owner,\n"
            "  o.table_name,\n"
            "  o.index_name,\n"
            "  b.column_name,\n"
            "  b.column_position\n"
            "FROM all_indexes o\n"
            "JOIN all_ind_columns b ON o.owner = b.index_owner AND o.index_name = b.index_name\n"
        )
        conds, vals = self.conditions(
            f,
            {
                "schema": "o.owner LIKE %s",
                "not_schemas": "o.owner NOT IN (%s)",
                "parent": "o.table_name LIKE :%d",
                "name": "o.index_name LIKE :%d",
            },
        )
        qstr += (
            _where(conds) + "\nORDER BY o.owner, o.table_name, o.index_name, b.column_position"
        )
        rows = self.query(qstr, *vals)
        return IndexColumnSet(
            [
                IndexColumn(
                    schema=_text(r[0]),
                    table=_text(r[1]),
                    index_name=_text(r[2]),
                    name=_text(r[3]),
                    ordinal_position=_int(r[4]),
                )
                for r in rows
            ]
        )


def new_reader(db: Any, **kwargs: Any) -> OracleReader:
    """Open an Oracle metadata reader on a DB-API connection."""
    return OracleReader(db, **kwargs)