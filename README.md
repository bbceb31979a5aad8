# sqlmeta

Read database metadata (catalogs, schemas, tables, columns, indexes,
constraints, functions, sequences, triggers and privileges) as structured
Python objects, through any DB-API 2.0 connection.

Readers build the SQL, run it on the connection you pass in and return result
sets of dataclass records. The package has no third-party dependencies.

## Installation

```
pip install .
```

For the test suite:

```
pip install .[test]
pytest
```

## Readers

- `sqlmeta.infoschema.information_schema_reader(options)` returns a factory.
  Call the factory with a connection to get an `InformationSchema` reader
  built on the standard `information_schema` views. Pass an
  `sqlmeta.infoschema_base.InformationSchemaOptions` to set the placeholder
  style (`$1` by default), which views exist (`has_functions`,
  `has_sequences`, `has_indexes`, `has_constraints`,
  `has_check_constraints`, `has_table_privileges`, `has_column_privileges`,
  `has_usage_privileges`), the `system_schemas` to hide, the
  `current_schema` expression, a `data_type_formatter`, and custom column
  expressions keyed by `ClauseName`. Custom expressions are merged over the
  defaults.
- `sqlmeta.mysql.new_reader(db, **kwargs)` returns an `InformationSchema`
  reader set up for MySQL. It uses `?` placeholders, has no sequences, check
  constraints or usage privileges, and hides `mysql`, `information_schema`,
  `performance_schema` and `sys`.
- `sqlmeta.oracle.new_reader(db, **kwargs)` returns an `OracleReader`. It
  queries Oracle's `all_*` dictionary views for catalogs, schemas, tables
  (including synonyms when `"SYNONYM"` is in `types`), columns, functions,
  function arguments, indexes and index columns. Filter values are
  upper-cased.
- `sqlmeta.postgres.new_reader(db, **kwargs)` returns a
  `sqlmeta.reader.PluginReader` that combines two readers:
  - The `information_schema` reader provides schemas, columns, functions,
    function columns, constraints, constraint columns, sequences and
    privilege summaries. Column types are rendered by
    `sqlmeta.postgres.data_type_formatter`, for example
    `character varying(4)` or `timestamp(6) with time zone`.
  - `PostgresReader`, which reads `pg_catalog`, provides catalogs (as
    `PostgresCatalog` records with owner, encoding, collation, ctype and
    access privileges), tables with row estimates and sizes, column
    statistics, indexes, index columns and triggers.

`PluginReader(*readers)` can be used to compose your own reader as well. For
each kind of metadata, the last reader that provides it is used.

### Reader options

Every reader accepts these keyword options:

- `logger`: a callable. It is called with each query's text, then with the
  query's argument list as a string.
- `dry_run`: log without executing; every method then returns an empty set.
- `timeout`: seconds or a `datetime.timedelta`. When a query runs longer,
  the connection's `interrupt()` or the cursor's `cancel()` is called if
  available, and `TimeoutError` is raised.
- `limit`: appended as `LIMIT n` by the `information_schema` and
  `PostgresReader` queries. 0 means no limit. `OracleReader` stores it but
  does not add it to its queries.

## Filtering

Each method takes a `sqlmeta.reader.Filter`:

```python
from sqlmeta.reader import Filter
from sqlmeta import postgres

reader = postgres.new_reader(connection)
for table in reader.tables(Filter(schema="public", types=["TABLE", "VIEW"])):
    print(table.schema, table.name, table.type)
```

The fields work as follows:

- `catalog`, `schema`, `parent`, `reference` and `name` are `LIKE` patterns.
- `types` narrows the object kind.
- `with_system` includes system schemas.
- `only_visible` limits results to the current schema, or to visible
  relations on PostgreSQL.

A reader that cannot provide a kind of metadata raises
`sqlmeta.reader.NotSupportedError`.

## Result sets

Result sets are found in `sqlmeta.results`: `TableSet`, `ColumnSet`,
`IndexSet`, `ConstraintSet`, `FunctionSet`, `SequenceSet`,
`PrivilegeSummarySet`, `TriggerSet` and others.

- Iterate a set directly, or walk it cursor-style with `next()`, `get()` and
  `reset()`. `len()` counts the records that pass the filter.
- `set_filter(predicate)` hides records the predicate rejects.
- `columns` holds the column headings.
- `scan(count)` returns the current record's display values. It raises
  `WrongNumberOfArgumentsError` when `count` does not match their number.
- `set_scan_values(func)` replaces the records' own `values()` for `scan()`.

Flags such as `is_nullable` or `is_unique` are `YesNo` members when the
database reports `YES`, `NO` or an empty string.

## Privileges

`sqlmeta.privileges.ObjectPrivileges` and `ColumnPrivileges` are lists of
`ObjectPrivilege` and `ColumnPrivilege` records. `str()` renders them in ACL
style:

```
user1=INSERT*,SELECT/user1
user2=INSERT,SELECT*/user1
```

A trailing `*` marks a grantable privilege. `/grantor` follows when the
grantor is known. Column privileges are grouped under a `column:` heading
with indented lines.

Rendering groups consecutive entries, so sort the lists first, for example
with `sorted()`. The records order by column, grantee, grantor and privilege
type.

## What it does not do

This is a library only:

- There is no command-line tool or interactive shell.
- It does not open connections or choose database drivers; you pass in a
  DB-API connection.
- It does not format metadata into human-readable listings beyond the
  privilege strings above.
- It offers no tab completion.