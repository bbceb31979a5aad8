"""Metadata reader for the standard ``information_schema`` tables.

The reader tries to be database agnostic; :class:`InformationSchemaOptions`
describes which tables exist and which expressions to use for columns that
differ between databases.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import timedelta
from enum import Enum
from typing import Any, Callable, Mapping, Optional

from sqlmeta.reader import Filter, LoggingReader, NotSupportedError
from sqlmeta.results import (
    Column,
    ColumnSet,
    Function,
    FunctionColumn,
    FunctionColumnSet,
    FunctionSet,
    Schema,
    SchemaSet,
    Table,
    TableSet,
    YesNo,
)


class ClauseName(str, Enum):
    """Names of the column expressions that may be customised per database."""

    COLUMNS_DATA_TYPE = "columns.data_type"
    COLUMNS_COLUMN_SIZE = "columns.column_size"
    COLUMNS_NUMERIC_SCALE = "columns.numeric_scale"
    COLUMNS_NUMERIC_PREC_RADIX = "columns.numeric_precision_radix"
    COLUMNS_CHAR_OCTET_LENGTH = "columns.character_octet_length"

    FUNCTION_COLUMNS_COLUMN_SIZE = "function_columns.column_size"
    FUNCTION_COLUMNS_NUMERIC_SCALE = "function_columns.numeric_scale"
    FUNCTION_COLUMNS_NUMERIC_PREC_RADIX = "function_columns.numeric_precision_radix"
    FUNCTION_COLUMNS_CHAR_OCTET_LENGTH = "function_columns.character_octet_length"

    FUNCTIONS_SECURITY_TYPE = "functions.security_type"

    CONSTRAINT_IS_DEFERRABLE = "constraint_columns.is_deferrable"
    CONSTRAINT_INITIALLY_DEFERRED = "constraint_columns.initially_deferred"
    CONSTRAINT_JOIN_COND = "constraint_join.fk"

    SEQUENCE_COLUMNS_INCREMENT = "sequence_columns.increment"

    PRIVILEGES_GRANTOR = "privileges.grantor"


_DEFAULT_CLAUSES: dict[ClauseName, str] = {
    ClauseName.COLUMNS_DATA_TYPE: "data_type",
    ClauseName.COLUMNS_COLUMN_SIZE: (
        "COALESCE(character_maximum_length, numeric_precision, datetime_precision, 0)"
    ),
    ClauseName.COLUMNS_NUMERIC_SCALE: "COALESCE(numeric_scale, 0)",
    ClauseName.COLUMNS_NUMERIC_PREC_RADIX: "COALESCE(numeric_precision_radix, 10)",
    ClauseName.COLUMNS_CHAR_OCTET_LENGTH: "COALESCE(character_octet_length, 0)",
    ClauseName.FUNCTION_COLUMNS_COLUMN_SIZE: (
        "COALESCE(character_maximum_length, numeric_precision, datetime_precision, 0)"
    ),
    ClauseName.FUNCTION_COLUMNS_NUMERIC_SCALE: "COALESCE(numeric_scale, 0)",
    ClauseName.FUNCTION_COLUMNS_NUMERIC_PREC_RADIX: "COALESCE(numeric_precision_radix, 10)",
    ClauseName.FUNCTION_COLUMNS_CHAR_OCTET_LENGTH: "COALESCE(character_octet_length, 0)",
    ClauseName.FUNCTIONS_SECURITY_TYPE: "security_type",
    ClauseName.CONSTRAINT_IS_DEFERRABLE: "t.is_deferrable",
    ClauseName.CONSTRAINT_INITIALLY_DEFERRED: "t.initially_deferred",
    ClauseName.SEQUENCE_COLUMNS_INCREMENT: "increment",
    ClauseName.PRIVILEGES_GRANTOR: "grantor",
}


def _dollar_placeholder(n: int) -> str:
    return f"${n}"


def _plain_data_type(col: Column) -> str:
    return col.data_type


@dataclass
class InformationSchemaOptions:
    """What an information schema provides and how to query it.

    ``clauses`` only needs the expressions that differ from the defaults;
    they are merged over the defaults. ``placeholder`` turns a 1-based
    argument number into a bind placeholder such as ``$1`` or ``?``.
    """

    placeholder: Callable[[int], str] = _dollar_placeholder
    has_functions: bool = True
    has_sequences: bool = True
    has_indexes: bool = True
    has_constraints: bool = True
    has_check_constraints: bool = True
    has_table_privileges: bool = True
    has_column_privileges: bool = True
    has_usage_privileges: bool = True
    clauses: dict[ClauseName, str] = field(default_factory=dict)
    system_schemas: list[str] = field(default_factory=lambda: ["information_schema"])
    current_schema: str = ""
    data_type_formatter: Callable[[Column], str] = _plain_data_type

    def __post_init__(self) -> None:
        self.clauses = {**_DEFAULT_CLAUSES, **{ClauseName(k): v for k, v in self.clauses.items()}}

    def clause(self, name: ClauseName) -> str:
        """The expression for ``name``, or an empty string if there is none."""
        return self.clauses.get(name, "")


def _text(value: Any) -> str:
    return "" if value is None else str(value)


def _int(value: Any) -> int:
    return 0 if value is None or value == "" else int(value)


def _flag(value: Any) -> YesNo | str:
    text = _text(value)
    try:
        return YesNo(text)
    except ValueError:
        return text


class InformationSchemaBase(LoggingReader):
    """Reads schemas, tables, columns and functions from ``information_schema``."""

    def __init__(
        self,
        db: Any,
        options: Optional[InformationSchemaOptions] = None,
        *,
        logger: Optional[Callable[[str], Any]] = None,
        dry_run: bool = False,
        timeout: float | timedelta | None = None,
        limit: int = 0,
    ) -> None:
        super().__init__(db, logger=logger, dry_run=dry_run, timeout=timeout, limit=limit)
        self.options = options if options is not None else InformationSchemaOptions()

    def conditions(
        self, base_param: int, f: Filter, formats: Mapping[str, str]
    ) -> tuple[list[str], list[Any]]:
        """Build WHERE conditions and their arguments from a filter.

        ``formats`` maps ``catalog``, ``schema``, ``not_schemas``, ``parent``,
        ``reference``, ``name`` and ``types`` to %-style templates; missing
        keys are skipped. Placeholders are numbered from ``base_param``.
        """
        opts = self.options
        pf = opts.placeholder
        conds: list[str] = []
        vals: list[Any] = []
        param = base_param

        def single(key: str, value: str) -> None:
            nonlocal param
            template = formats.get(key, "")
            if value and template:
                vals.append(value)
                conds.append(template % pf(param))
                param += 1

        single("catalog", f.catalog)
        single("schema", f.schema)

        not_schemas = formats.get("not_schemas", "")
        if not f.with_system and not_schemas and opts.system_schemas:
            holders = []
            for schema in opts.system_schemas:
                if schema == f.schema:
                    continue
                vals.append(schema)
                holders.append(pf(param))
                param += 1
            if holders:
                conds.append(not_schemas % ", ".join(holders))

        schema_fmt = formats.get("schema", "")
        if f.only_visible and schema_fmt and opts.current_schema:
            conds.append(schema_fmt % opts.current_schema)

        single("parent", f.parent)
        single("reference", f.reference)
        single("name", f.name)

        types_fmt = formats.get("types", "")
        if f.types and types_fmt:
            holders = []
            for t in f.types:
                vals.append(t)
                holders.append(pf(param))
                param += 1
            conds.append(types_fmt % ", ".join(holders))

        return conds, vals

    def _select(self, qstr: str, conds: list[str], order: str, *vals: Any) -> list[tuple]:
        if conds:
            qstr += "\nWHERE " + " AND ".join(conds)
        if order:
            qstr += "\nORDER BY " + order
        if self.limit:
            qstr += f"\nLIMIT {self.limit}"
        return self.query(qstr, *vals)

    def columns(self, f: Optional[Filter] = None) -> ColumnSet:
        """Columns of tables matching the catalog, schema and parent patterns."""
        f = f or Filter()
        clause = self.options.clause
        columns = [
            "table_catalog",
            "table_schema",
            "table_name",
            "column_name",
            "ordinal_position",
            clause(ClauseName.COLUMNS_DATA_TYPE),
            "COALESCE(column_default, '')",
            "COALESCE(is_nullable, '') AS is_nullable",
            clause(ClauseName.COLUMNS_COLUMN_SIZE),
            clause(ClauseName.COLUMNS_NUMERIC_SCALE),
            clause(ClauseName.COLUMNS_NUMERIC_PREC_RADIX),
            clause(ClauseName.COLUMNS_CHAR_OCTET_LENGTH),
        ]
        qstr = "SELECT\n  " + ",\n  ".join(columns) + " FROM information_schema.columns\n"
        conds, vals = self.conditions(
            1,
            f,
            {
                "catalog": "table_catalog LIKE %s",
                "schema": "table_schema LIKE %s",
                "not_schemas": "table_schema NOT IN (%s)",
                "parent": "table_name LIKE %s",
            },
        )
        rows = self._select(
            qstr, conds, "table_catalog, table_schema, table_name, ordinal_position", *vals
        )
        results = []
        for row in rows:
            rec = Column(
                catalog=_text(row[0]),
                schema=_text(row[1]),
                table=_text(row[2]),
                name=_text(row[3]),
                ordinal_position=_int(row[4]),
                data_type=_text(row[5]),
                default=_text(row[6]),
                is_nullable=_flag(row[7]),
                column_size=_int(row[8]),
                decimal_digits=_int(row[9]),
                num_prec_radix=_int(row[10]),
                char_octet_length=_int(row[11]),
            )
            rec.data_type = self.options.data_type_formatter(rec)
            results.append(rec)
        return ColumnSet(results)

    def tables(self, f: Optional[Filter] = None) -> TableSet:
        """Tables matching the catalog, schema, name and type filters."""
        f = f or Filter()
        qstr = (
            "SELECT\n"
            "  table_catalog,\n"
            "  table_schema,\n"
            "  table_name,\n"
            "  table_type\n"
            "FROM information_schema.tables\n"
        )
        conds, vals = self.conditions(
            1,
            f,
            {
                "catalog": "table_catalog LIKE %s",
                "schema": "table_schema LIKE %s",
                "not_schemas": "table_schema NOT IN (%s)",
                "name": "table_name LIKE %s",
                "types": "table_type IN (%s)",
            },
        )
        if conds:
            qstr += " WHERE " + " AND ".join(conds)
        if self.options.has_sequences and "SEQUENCE" in f.types:
            qstr += (
                "\nUNION ALL\n"
                "SELECT\n"
                "  sequence_catalog AS table_catalog,\n"
                "  sequence_schema AS table_schema,\n"
                "  sequence_name AS table_name,\n"
                "  'SEQUENCE' AS table_type\n"
                "FROM information_schema.sequences\n"
            )
            seq_conds, seq_vals = self.conditions(
                len(vals) + 1,
                f,
                {
                    "catalog": "sequence_catalog LIKE %s",
                    "schema": "sequence_schema LIKE %s",
                    "not_schemas": "sequence_schema NOT IN (%s)",
                    "name": "sequence_name LIKE %s",
                },
            )
            vals.extend(seq_vals)
            if seq_conds:
                qstr += " WHERE " + " AND ".join(seq_conds)
        rows = self._select(
            qstr, [], "table_catalog, table_schema, table_type, table_name", *vals
        )
        return TableSet(
            [
                Table(
                    catalog=_text(r[0]),
                    schema=_text(r[1]),
                    name=_text(r[2]),
                    type=_text(r[3]),
                )
                for r in rows
            ]
        )

    def schemas(self, f: Optional[Filter] = None) -> SchemaSet:
        """Schemas matching the catalog and name patterns."""
        f = f or Filter()
        qstr = (
            "SELECT\n"
            "  schema_name,\n"
            "  catalog_name\n"
            "FROM information_schema.schemata\n"
        )
        conds, vals = self.conditions(
            1,
            f,
            {
                "catalog": "catalog_name LIKE %s",
                "name": "schema_name LIKE %s",
                "not_schemas": "schema_name NOT IN (%s)",
            },
        )
        rows = self._select(qstr, conds, "catalog_name, schema_name", *vals)
        return SchemaSet([Schema(schema=_text(r[0]), catalog=_text(r[1])) for r in rows])

    def functions(self, f: Optional[Filter] = None) -> FunctionSet:
        """Routines matching the catalog, schema, name and type filters."""
        if not self.options.has_functions:
            raise NotSupportedError("functions")
        f = f or Filter()
        columns = [
            "specific_name",
            "routine_catalog",
            "routine_schema",
            "routine_name",
            "COALESCE(routine_type, '')",
            "COALESCE(data_type, '')",
            "routine_definition",
            "COALESCE(external_language, routine_body) AS language",
            "is_deterministic",
            self.options.clause(ClauseName.FUNCTIONS_SECURITY_TYPE),
        ]
        qstr = "SELECT\n  " + ",\n  ".join(columns) + " FROM information_schema.routines\n"
        conds, vals = self.conditions(
            1,
            f,
            {
                "catalog": "routine_catalog LIKE %s",
                "schema": "routine_schema LIKE %s",
                "not_schemas": "routine_schema NOT IN (%s)",
                "name": "routine_name LIKE %s",
                "types": "routine_type IN (%s)",
            },
        )
        rows = self._select(
            qstr,
            conds,
            "routine_catalog, routine_schema, routine_name, COALESCE(routine_type, '')",
            *vals,
        )
        return FunctionSet(
            [
                Function(
                    specific_name=_text(r[0]),
                    catalog=_text(r[1]),
                    schema=_text(r[2]),
                    name=_text(r[3]),
                    type=_text(r[4]),
                    result_type=_text(r[5]),
                    source=_text(r[6]),
                    language=_text(r[7]),
                    volatility=_text(r[8]),
                    security=_text(r[9]),
                )
                for r in rows
            ]
        )

    def function_columns(self, f: Optional[Filter] = None) -> FunctionColumnSet:
        """Parameters of routines matching the catalog, schema and parent patterns."""
        if not self.options.has_functions:
            raise NotSupportedError("function columns")
        f = f or Filter()
        clause = self.options.clause
        columns = [
            "specific_catalog",
            "specific_schema",
            "specific_name",
            "COALESCE(parameter_name, '')",
            "ordinal_position",
            "COALESCE(parameter_mode, '')",
            "COALESCE(data_type, '')",
            clause(ClauseName.FUNCTION_COLUMNS_COLUMN_SIZE),
            clause(ClauseName.FUNCTION_COLUMNS_NUMERIC_SCALE),
            clause(ClauseName.FUNCTION_COLUMNS_NUMERIC_PREC_RADIX),
            clause(ClauseName.FUNCTION_COLUMNS_CHAR_OCTET_LENGTH),
        ]
        qstr = "SELECT\n  " + ",\n  ".join(columns) + " FROM information_schema.parameters\n"
        conds, vals = self.conditions(
            1,
            f,
            {
                "catalog": "specific_catalog LIKE %s",
                "schema": "specific_schema LIKE %s",
                "not_schemas": "specific_schema NOT IN (%s)",
                "parent": "specific_name LIKE %s",
            },
        )
        rows = self._select(
            qstr,
            conds,
            "specific_catalog, specific_schema, specific_name, ordinal_position, "
            "COALESCE(parameter_name, '')",
            *vals,
        )
        return FunctionColumnSet(
            [
                FunctionColumn(
                    catalog=_text(r[0]),
                    schema=_text(r[1]),
                    function_name=_text(r[2]),
                    name=_text(r[3]),
                    ordinal_position=_int(r[4]),
                    type=_text(r[5]),
                    data_type=_text(r[6]),
                    column_size=_int(r[7]),
                    decimal_digits=_int(r[8]),
                    num_prec_radix=_int(r[9]),
                    char_octet_length=_int(r[10]),
                )
                for r in rows
            ]
        )