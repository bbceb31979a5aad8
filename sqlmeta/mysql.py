"""Metadata reader for MySQL, built on its ``information_schema``."""

from __future__ import annotations

from typing import Any

from sqlmeta.infoschema import InformationSchema, information_schema_reader
from sqlmeta.infoschema_base import ClauseName, InformationSchemaOptions


def _mysql_options() -> InformationSchemaOptions:
    return InformationSchemaOptions(
        placeholder=lambda _position: "?",
        has_sequences=False,
        has_check_constraints=False,
        has_usage_privileges=False,
        clauses={
            ClauseName.COLUMNS_DATA_TYPE: "column_type",
            ClauseName.COLUMNS_NUMERIC_PREC_RADIX: "10",
            ClauseName.FUNCTION_COLUMNS_NUMERIC_PREC_RADIX: "10",
            ClauseName.CONSTRAINT_IS_DEFERRABLE: "''",
            ClauseName.CONSTRAINT_INITIALLY_DEFERRED: "''",
            ClauseName.PRIVILEGES_GRANTOR: "''",
            ClauseName.CONSTRAINT_JOIN_COND: "AND r.referenced_table_name = f.table_name",
        },
        system_schemas=["mysql", "information_schema", "performance_schema", "sys"],
        current_schema="COALESCE(DATABASE(), '%')",
    )


_open_reader = information_schema_reader(_mysql_options())


def new_reader(db: Any, **kwargs: Any) -> InformationSchema:
    """Open a MySQL metadata reader on a DB-API connection.

    Keyword arguments (``logger``, ``dry_run``, ``timeout``, ``limit``) are
    passed on to :class:`~sqlmeta.infoschema.InformationSchema`.
    """
    return _open_reader(db, **kwargs)