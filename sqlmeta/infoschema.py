"""Full ``information_schema`` reader: indexes, constraints, sequences and privileges."""

from __future__ import annotations

from datetime import timedelta
from typing import Any, Callable, Optional

from sqlmeta.infoschema_base import (
    ClauseName,
    InformationSchemaBase,
    InformationSchemaOptions,
    _flag,
    _int,
    _text,
)
from sqlmeta.privileges import (
    ColumnPrivilege,
    ColumnPrivileges,
    ObjectPrivilege,
    ObjectPrivileges,
)
from sqlmeta.reader import Filter, NotSupportedError
from sqlmeta.results import (
    Constraint,
    ConstraintColumn,
    ConstraintColumnSet,
    ConstraintSet,
    Index,
    IndexColumn,
    IndexColumnSet,
    IndexSet,
    PrivilegeSummary,
    PrivilegeSummarySet,
    Sequence,
    SequenceSet,
)


class InformationSchema(InformationSchemaBase):
    """Reads every kind of metadata that ``information_schema`` can describe."""

    def indexes(self, f: Optional[Filter] = None) -> IndexSet:
        """Indexes matching the catalog, schema, parent and name patterns."""
        if not self.options.has_indexes:
            raise NotSupportedError("indexes")
        f = f or Filter()
        qstr = (
            "SELECT\n"
            "  table_catalog,\n"
            "  index_schema,\n"
            "  table_name,\n"
            "  index_name,\n"
            "  CASE WHEN non_unique = 0 THEN 'YES' ELSE 'NO' END AS is_unique,\n"
            "  CASE WHEN index_name = 'PRIMARY' THEN 'YES' ELSE 'NO' END AS is_primary,\n"
            "  index_type\n"
            "FROM information_schema.statistics\n"
        )
        conds, vals = self.conditions(
            1,
            f,
            {
                "catalog": "table_catalog LIKE %s",
                "schema": "index_schema LIKE %s",
                "not_schemas": "index_schema NOT IN (%s)",
                "parent": "table_name LIKE %s",
                "name": "index_name LIKE %s",
            },
        )
        if conds:
            qstr += " WHERE " + " AND ".join(conds)
        qstr += (
            "\nGROUP BY table_catalog, index_schema, table_name, index_name,\n"
            "  CASE WHEN non_unique = 0 THEN 'YES' ELSE 'NO' END,\n"
            "  CASE WHEN index_name = 'PRIMARY' THEN 'YES' ELSE 'NO' END,\n"
            "  index_type"
        )
        rows = self._select(
            qstr, [], "table_catalog, index_schema, table_name, index_name", *vals
        )
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
        """Columns of indexes matching the catalog, schema, parent and name patterns."""
        if not self.options.has_indexes:
            raise NotSupportedError("index columns")
        f = f or Filter()
        qstr = (
            "SELECT\n"
            "  i.table_catalog,\n"
            "  i.table_schema,\n"
            "  i.table_name,\n"
            "  i.index_name,\n"
            "  i.column_name,\n"
            "  c.data_type,\n"
            "  i.seq_in_index\n"
            "\n"
            "FROM information_schema.statistics i\n"
            "JOIN information_schema.columns c ON\n"
            "  i.table_catalog = c.table_catalog AND\n"
            "  i.table_schema = c.table_schema AND\n"
            "  i.table_name = c.table_name AND\n"
            "  i.column_name = c.column_name\n"
        )
        conds, vals = self.conditions(
            1,
            f,
            {
                "catalog": "i.table_catalog LIKE %s",
                "schema": "index_schema LIKE %s",
                "not_schemas": "index_schema NOT IN (%s)",
                "parent": "i.table_name LIKE %s",
                "name": "index_name LIKE %s",
            },
        )
        rows = self._select(
            qstr,
            conds,
            "i.table_catalog, index_schema, table_name, index_name, seq_in_index",
            *vals,
        )
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

    def constraints(self, f: Optional[Filter] = None) -> ConstraintSet:
        """Table constraints matching the filter, with foreign key and check details."""
        if not self.options.has_constraints:
            raise NotSupportedError("constraints")
        f = f or Filter()
        clause = self.options.clause
        columns = [
            "t.constraint_catalog",
            "t.table_schema",
            "t.table_name",
            "t.constraint_name",
            "t.constraint_type",
            clause(ClauseName.CONSTRAINT_IS_DEFERRABLE),
            clause(ClauseName.CONSTRAINT_INITIALLY_DEFERRED),
            "COALESCE(r.unique_constraint_catalog, '') AS foreign_catalog",
            "COALESCE(r.unique_constraint_schema, '') AS foreign_schema",
            "COALESCE(f.table_name, '') AS foreign_table",
            "COALESCE(r.unique_constraint_name, '') AS foreign_constraint",
            "COALESCE(r.match_option, '') AS match_options",
            "COALESCE(r.update_rule, '') AS update_rule",
            "COALESCE(r.delete_rule, '') AS delete_rule",
            "COALESCE(c.check_clause, '') AS check_clause",
        ]
        qstr = (
            "SELECT\n  "
            + ",\n  ".join(columns)
            + "\nFROM information_schema.table_constraints t\n"
            "LEFT JOIN information_schema.referential_constraints r"
            " ON t.constraint_catalog = r.constraint_catalog\n"
            "  AND t.constraint_schema = r.constraint_schema\n"
            "  AND t.constraint_name = r.constraint_name\n"
            "  AND t.constraint_type = 'FOREIGN KEY'\n"
            "LEFT JOIN information_schema.table_constraints f"
            " ON r.unique_constraint_catalog = f.constraint_catalog\n"
            "  AND r.unique_constraint_schema = f.constraint_schema\n"
            "  AND r.unique_constraint_name = f.constraint_name\n"
            "  " + clause(ClauseName.CONSTRAINT_JOIN_COND) + "\n"
            "LEFT JOIN information_schema.check_constraints c"
            " ON t.constraint_catalog = c.constraint_catalog\n"
            "  AND t.constraint_schema = c.constraint_schema\n"
            "  AND t.constraint_name = c.constraint_name\n"
        )
        conds, vals = self.conditions(
            1,
            f,
            {
                "catalog": "t.constraint_catalog LIKE %s",
                "schema": "t.table_schema LIKE %s",
                "not_schemas": "t.table_schema NOT IN (%s)",
                "parent": "t.table_name LIKE %s",
                "reference": "f.table_name LIKE %s",
                "name": "t.constraint_name LIKE %s",
            },
        )
        if conds:
            qstr += " WHERE " + " AND ".join(conds)
        rows = self._select(
            qstr,
            [],
            "t.constraint_catalog, t.table_schema, t.table_name, t.constraint_name",
            *vals,
        )
        return ConstraintSet(
            [
                Constraint(
                    catalog=_text(r[0]),
                    schema=_text(r[1]),
                    table=_text(r[2]),
                    name=_text(r[3]),
                    type=_text(r[4]),
                    is_deferrable=_flag(r[5]),
                    is_initially_deferred=_flag(r[6]),
                    foreign_catalog=_text(r[7]),
                    foreign_schema=_text(r[8]),
                    foreign_table=_text(r[9]),
                    foreign_name=_text(r[10]),
                    match_type=_text(r[11]),
                    update_rule=_text(r[12]),
                    delete_rule=_text(r[13]),
                    check_clause=_text(r[14]),
                )
                for r in rows
            ]
        )

    def constraint_columns(self, f: Optional[Filter] = None) -> ConstraintColumnSet:
        """Columns used by constraints, with the columns foreign keys refer to."""
        if not self.options.has_constraints:
            raise NotSupportedError("constraint columns")
        f = f or Filter()
        vals: list[Any] = []
        qstr = ""
        if self.options.has_check_constraints:
            qstr = (
                "SELECT\n"
                "  c.constraint_catalog,\n"
                "  c.table_schema,\n"
                "  c.table_name,\n"
                "  c.constraint_name,\n"
                "  c.column_name,\n"
                "  1 AS ordinal_position,\n"
                "  '' AS foreign_catalog,\n"
                "  '' AS foreign_schema,\n"
                "  '' AS foreign_table,\n"
                "  '' AS foreign_name\n"
                "FROM information_schema.constraint_column_usage c\n"
            )
            conds, check_vals = self.conditions(
                len(vals) + 1,
                f,
                {
                    "catalog": "c.constraint_catalog LIKE %s",
                    "schema": "c.table_schema LIKE %s",
                    "not_schemas": "c.table_schema NOT IN (%s)",
                    "parent": "c.table_name LIKE %s",
                    "name": "c.constraint_name LIKE %s",
                },
            )
            if conds:
                qstr += " WHERE " + " AND ".join(conds)
                vals.extend(check_vals)
            qstr += "\nUNION ALL\n"
        qstr += (
            "SELECT\n"
            "  c.constraint_catalog,\n"
            "  c.table_schema,\n"
            "  c.table_name,\n"
            "  c.constraint_name,\n"
            "  c.column_name,\n"
            "  c.ordinal_position,\n"
            "  COALESCE(f.constraint_catalog, '') AS foreign_catalog,\n"
            "  COALESCE(f.table_schema, '') AS foreign_schema,\n"
            "  COALESCE(f.table_name, '') AS foreign_table,\n"
            "  COALESCE(f.column_name, '') AS foreign_name\n"
            "FROM information_schema.key_column_usage c\n"
            "LEFT JOIN information_schema.referential_constraints r"
            " ON c.constraint_catalog = r.constraint_catalog\n"
            "  AND c.constraint_schema = r.constraint_schema\n"
            "  AND c.constraint_name = r.constraint_name\n"
            "LEFT JOIN information_schema.key_column_usage f"
            " ON r.unique_constraint_catalog = f.constraint_catalog\n"
            "  AND r.unique_constraint_schema = f.constraint_schema\n"
            "  AND r.unique_constraint_name = f.constraint_name\n"
            "  " + self.options.clause(ClauseName.CONSTRAINT_JOIN_COND) + "\n"
            "  AND c.position_in_unique_constraint = f.ordinal_position\n"
        )
        conds, key_vals = self.conditions(
            len(vals) + 1,
            f,
            {
                "catalog": "c.constraint_catalog LIKE %s",
                "schema": "c.table_schema LIKE %s",
                "not_schemas": "c.table_schema NOT IN (%s)",
                "parent": "c.table_name LIKE %s",
                "reference": "f.table_name LIKE %s",
                "name": "c.constraint_name LIKE %s",
            },
        )
        if conds:
            qstr += " WHERE " + " AND ".join(conds)
            vals.extend(key_vals)
        rows = self._select(
            qstr,
            [],
            "constraint_catalog, table_schema, table_name, constraint_name, "
            "ordinal_position, column_name",
            *vals,
        )
        return ConstraintColumnSet(
            [
                ConstraintColumn(
                    catalog=_text(r[0]),
                    schema=_text(r[1]),
                    table=_text(r[2]),
                    constraint=_text(r[3]),
                    name=_text(r[4]),
                    ordinal_position=_int(r[5]),
                    foreign_catalog=_text(r[6]),
                    foreign_schema=_text(r[7]),
                    foreign_table=_text(r[8]),
                    foreign_name=_text(r[9]),
                )
                for r in rows
            ]
        )

    def sequences(self, f: Optional[Filter] = None) -> SequenceSet:
        """Sequences matching the catalog, schema and name patterns."""
        if not self.options.has_sequences:
            raise NotSupportedError("sequences")
        f = f or Filter()
        columns = [
            "sequence_catalog",
            "sequence_schema",
            "sequence_name",
            "data_type",
            "start_value",
            "minimum_value",
            "maximum_value",
            self.options.clause(ClauseName.SEQUENCE_COLUMNS_INCREMENT),
            "cycle_option",
        ]
        qstr = "SELECT\n  " + ",\n  ".join(columns) + " FROM information_schema.sequences\n"
        conds, vals = self.conditions(
            1,
            f,
            {
                "catalog": "sequence_catalog LIKE %s",
                "schema": "sequence_schema LIKE %s",
                "not_schemas": "sequence_schema NOT IN (%s)",
                "name": "sequence_name LIKE %s",
            },
        )
        rows = self._select(
            qstr, conds, "sequence_catalog, sequence_schema, sequence_name", *vals
        )
        return SequenceSet(
            [
                Sequence(
                    catalog=_text(r[0]),
                    schema=_text(r[1]),
                    name=_text(r[2]),
                    data_type=_text(r[3]),
                    start=_text(r[4]),
                    min=_text(r[5]),
                    max=_text(r[6]),
                    increment=_text(r[7]),
                    cycles=_flag(r[8]),
                )
                for r in rows
            ]
        )

    def privilege_summaries(self, f: Optional[Filter] = None) -> PrivilegeSummarySet:
        """Privileges on tables, views and sequences, one summary per object."""
        opts = self.options
        if not (
            opts.has_table_privileges or opts.has_column_privileges or opts.has_usage_privileges
        ):
            raise NotSupportedError("privilege summaries")
        f = f or Filter()
        grantor = opts.clause(ClauseName.PRIVILEGES_GRANTOR)
        conds, vals = self.conditions(
            1,
            f,
            {
                "catalog": "object_catalog LIKE %s",
                "schema": "object_schema LIKE %s",
                "not_schemas": "object_schema NOT IN (%s)",
                "name": "object_name LIKE %s",
                "types": "object_type IN (%s)",
            },
        )
        grantable = "CASE WHEN is_grantable='YES' THEN 1 ELSE 0 END AS is_grantable"
        parts: list[str] = []
        if opts.has_table_privileges:
            columns = [
                "t.table_catalog AS object_catalog",
                "t.table_schema AS object_schema",
                "t.table_name AS object_name",
                "t.table_type AS object_type",
                "'' AS column_name",
                "COALESCE(grantee, '') AS grantee",
                "COALESCE(" + grantor + ", '') AS grantor",
                "COALESCE(privilege_type, '') AS privilege_type",
                grantable,
            ]
            # tables on the left so that objects without privileges are listed too
            parts.append(
                "SELECT\n  " + ", ".join(columns) + "\n"
                "FROM information_schema.tables t\n"
                "LEFT JOIN information_schema.table_privileges tp\n"
                "  ON t.table_catalog = tp.table_catalog AND t.table_schema = tp.table_schema"
                " AND t.table_name = tp.table_name"
            )
        if opts.has_column_privileges:
            columns = [
                "t.table_catalog AS object_catalog",
                "t.table_schema AS object_schema",
                "t.table_name AS object_name",
                "t.table_type AS object_type",
                "column_name",
                "grantee",
                grantor + " AS grantor",
                "privilege_type",
                grantable,
            ]
            parts.append(
                "SELECT\n  " + ", ".join(columns) + "\n"
                "FROM information_schema.column_privileges cp\n"
                "LEFT JOIN information_schema.tables t\n"
                "  ON t.table_catalog = cp.table_catalog AND t.table_schema = cp.table_schema"
                " AND t.table_name = cp.table_name"
            )
        if opts.has_usage_privileges:
            columns = [
                "object_catalog",
                "object_schema",
                "object_name",
                "object_type",
                "'' AS column_name",
                "grantee",
                grantor + " AS grantor",
                "privilege_type",
                grantable,
            ]
            parts.append(
                "SELECT\n  " + ", ".join(columns) + "\n"
                "FROM information_schema.usage_privileges"
            )
        qstr = "SELECT * FROM (\n" + "\nUNION ALL\n".join(parts) + "\n) AS subquery"
        rows = self._select(
            qstr,
            conds,
            "object_catalog, object_schema, object_type, object_name, column_name, "
            "grantee, grantor, privilege_type",
            *vals,
        )

        # Rows come ordered by object, so consecutive rows of one object are merged.
        results: list[PrivilegeSummary] = []
        current = PrivilegeSummary()
        for row in rows:
            catalog, schema, name, object_type, column = (_text(v) for v in row[:5])
            grantee, grantor_name, privilege_type = (_text(v) for v in row[5:8])
            is_grantable = bool(_int(row[8]))
            if (current.catalog, current.schema, current.name) != (catalog, schema, name):
                current = PrivilegeSummary(
                    catalog=catalog,
                    schema=schema,
                    name=name,
                    object_type=object_type,
                    object_privileges=ObjectPrivileges(),
                    column_privileges=ColumnPrivileges(),
                )
                results.append(current)
            if not privilege_type:
                continue
            if not column:
                current.object_privileges.append(
                    ObjectPrivilege(grantee, grantor_name, privilege_type, is_grantable)
                )
            else:
                current.column_privileges.append(
                    ColumnPrivilege(column, grantee, grantor_name, privilege_type, is_grantable)
                )
        return PrivilegeSummarySet(results)


def information_schema_reader(
    options: Optional[InformationSchemaOptions] = None,
) -> Callable[..., InformationSchema]:
    """A factory that opens an :class:`InformationSchema` reader on a connection.

    The returned callable takes the connection and the keyword arguments of
    :class:`InformationSchema` (``logger``, ``dry_run``, ``timeout``, ``limit``).
    """
    opts = options if options is not None else InformationSchemaOptions()

    def open_reader(
        db: Any,
        *,
        logger: Optional[Callable[[str], Any]] = None,
        dry_run: bool = False,
        timeout: float | timedelta | None = None,
        limit: int = 0,
    ) -> InformationSchema:
        return InformationSchema(
            db, opts, logger=logger, dry_run=dry_run, timeout=timeout, limit=limit
        )

    return open_reader