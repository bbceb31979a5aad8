"""Metadata records and the cursor-like result sets that hold them."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Iterator, Optional, Sequence, Union

from sqlmeta.privileges import ColumnPrivileges, ObjectPrivileges


class YesNo(str, Enum):
    """Three-valued flag as reported by information schemas."""

    UNKNOWN = ""
    YES = "YES"
    NO = "NO"


Flag = Union[YesNo, str]


class WrongNumberOfArgumentsError(ValueError):
    """Raised when a scan asks for a different number of values than a row has."""

    def __init__(self, expected: int, got: int) -> None:
        super().__init__(f"wrong number of arguments: row has {got}, asked for {expected}")
        self.expected = expected
        self.got = got


class ResultSet:
    """A sequence of metadata records read one at a time through a cursor.

    ``next()`` advances the cursor, skipping records rejected by the filter,
    and ``get()`` returns the record under it. Iterating the set yields the
    records that pass the filter without moving the cursor.
    """

    DEFAULT_COLUMNS: tuple[str, ...] = ()

    def __init__(self, results: Sequence[Any], columns: Optional[Sequence[str]] = None) -> None:
        self.results = list(results)
        self.columns = list(self.DEFAULT_COLUMNS if columns is None else columns)
        self._current = 0
        self._filter: Optional[Callable[[Any], bool]] = None
        self._scan_values: Optional[Callable[[Any], Sequence[Any]]] = None

    def _accepts(self, record: Any) -> bool:
        return self._filter is None or bool(self._filter(record))

    def __iter__(self) -> Iterator[Any]:
        return (r for r in self.results if self._accepts(r))

    def __len__(self) -> int:
        return sum(1 for _ in self)

    def set_filter(self, predicate: Optional[Callable[[Any], bool]]) -> None:
        """Only show records for which ``predicate`` returns true."""
        self._filter = predicate

    def set_scan_values(self, func: Optional[Callable[[Any], Sequence[Any]]]) -> None:
        """Use ``func`` instead of each record's ``values()`` when scanning."""
        self._scan_values = func

    def next(self) -> bool:
        """Advance to the next accepted record; return False when exhausted."""
        self._current += 1
        while self._current <= len(self.results) and not self._accepts(
            self.results[self._current - 1]
        ):
            self._current += 1
        return self._current <= len(self.results)

    def _record(self) -> Any:
        if not 1 <= self._current <= len(self.results):
            raise IndexError("no current record; call next() first")
        return self.results[self._current - 1]

    def get(self) -> Any:
        """The record under the cursor."""
        return self._record()

    def reset(self) -> None:
        """Move the cursor back before the first record."""
        self._current = 0

    def scan(self, count: Optional[int] = None) -> tuple:
        """Values of the current record; ``count`` must match their number if given."""
        record = self._record()
        values = tuple(
            record.values() if self._scan_values is None else self._scan_values(record)
        )
        if count is not None and len(values) != count:
            raise WrongNumberOfArgumentsError(count, len(values))
        return values


class _Record:
    """Base for records: picks attribute values in display order."""

    def _pick(self, *names: str) -> list:
        return [getattr(self, name) for name in names]


@dataclass
class Catalog(_Record):
    catalog: str = ""

    def values(self) -> list:
        return self._pick("catalog")

    def get_catalog(self) -> "Catalog":
        return self


@dataclass
class Schema(_Record):
    schema: str = ""
    catalog: str = ""

    def values(self) -> list:
        return self._pick("schema", "catalog")


@dataclass
class Table(_Record):
    catalog: str = ""
    schema: str = ""
    name: str = ""
    type: str = ""
    rows: int = 0
    size: str = ""
    comment: str = ""

    def values(self) -> list:
        return self._pick("catalog", "schema", "name", "type", "rows", "size", "comment")


@dataclass
class Column(_Record):
    catalog: str = ""
    schema: str = ""
    table: str = ""
    name: str = ""
    ordinal_position: int = 0
    data_type: str = ""
    default: str = ""
    column_size: int = 0
    decimal_digits: int = 0
    num_prec_radix: int = 0
    char_octet_length: int = 0
    is_nullable: Flag = YesNo.UNKNOWN

    def values(self) -> list:
        return self._pick(
            "catalog", "schema", "table", "name", "data_type", "is_nullable", "default",
            "column_size", "decimal_digits", "num_prec_radix", "char_octet_length",
        )


@dataclass
class ColumnStat(_Record):
    catalog: str = ""
    schema: str = ""
    table: str = ""
    name: str = ""
    avg_width: int = 0
    null_frac: float = 0.0
    num_distinct: int = 0
    min: str = ""
    max: str = ""
    mean: str = ""
    top_n: list[str] = field(default_factory=list)
    top_n_freqs: list[float] = field(default_factory=list)

    def values(self) -> list:
        return self._pick(
            "catalog", "schema", "table", "name", "avg_width", "null_frac",
            "num_distinct", "min", "max", "mean", "top_n", "top_n_freqs",
        )


@dataclass
class Index(_Record):
    catalog: str = ""
    schema: str = ""
    table: str = ""
    name: str = ""
    is_primary: Flag = YesNo.UNKNOWN
    is_unique: Flag = YesNo.UNKNOWN
    type: str = ""
    columns: str = ""

    def values(self) -> list:
        return self._pick(
            "catalog", "schema", "name", "table", "is_primary", "is_unique", "type"
        )


@dataclass
class IndexColumn(_Record):
    catalog: str = ""
    schema: str = ""
    table: str = ""
    index_name: str = ""
    name: str = ""
    data_type: str = ""
    ordinal_position: int = 0

    def values(self) -> list:
        return self._pick("catalog", "schema", "table", "index_name", "name", "data_type")


@dataclass
class Constraint(_Record):
    catalog: str = ""
    schema: str = ""
    table: str = ""
    name: str = ""
    type: str = ""
    is_deferrable: Flag = YesNo.UNKNOWN
    is_initially_deferred: Flag = YesNo.UNKNOWN
    foreign_catalog: str = ""
    foreign_schema: str = ""
    foreign_table: str = ""
    foreign_name: str = ""
    match_type: str = ""
    update_rule: str = ""
    delete_rule: str = ""
    check_clause: str = ""

    def values(self) -> list:
        return self._pick(
            "catalog", "schema", "table", "name", "type", "is_deferrable",
            "is_initially_deferred", "foreign_catalog", "foreign_schema",
            "foreign_table", "foreign_name", "match_type", "update_rule", "delete_rule",
        )


@dataclass
class ConstraintColumn(_Record):
    catalog: str = ""
    schema: str = ""
    table: str = ""
    constraint: str = ""
    name: str = ""
    ordinal_position: int = 0
    foreign_catalog: str = ""
    foreign_schema: str = ""
    foreign_table: str = ""
    foreign_constraint: str = ""
    foreign_name: str = ""

    def values(self) -> list:
        return self._pick(
            "catalog", "schema", "table", "constraint", "name", "foreign_catalog",
            "foreign_schema", "foreign_table", "foreign_constraint", "foreign_name",
        )


@dataclass
class Function(_Record):
    catalog: str = ""
    schema: str = ""
    name: str = ""
    result_type: str = ""
    arg_types: str = ""
    type: str = ""
    volatility: str = ""
    security: str = ""
    language: str = ""
    source: str = ""
    specific_name: str = ""

    def values(self) -> list:
        return self._pick(
            "catalog", "schema", "name", "result_type", "arg_types", "type",
            "volatility", "security", "language", "source",
        )


@dataclass
class FunctionColumn(_Record):
    catalog: str = ""
    schema: str = ""
    table: str = ""
    name: str = ""
    function_name: str = ""
    ordinal_position: int = 0
    type: str = ""
    data_type: str = ""
    column_size: int = 0
    decimal_digits: int = 0
    num_prec_radix: int = 0
    char_octet_length: int = 0

    def values(self) -> list:
        return self._pick(
            "catalog", "schema", "function_name", "name", "type", "data_type",
            "column_size", "decimal_digits", "num_prec_radix", "char_octet_length",
        )


@dataclass
class Sequence(_Record):
    catalog: str = ""
    schema: str = ""
    name: str = ""
    data_type: str = ""
    start: str = ""
    min: str = ""
    max: str = ""
    increment: str = ""
    cycles: Flag = YesNo.UNKNOWN

    def values(self) -> list:
        return self._pick("data_type", "start", "min", "max", "increment", "cycles")


@dataclass
class PrivilegeSummary(_Record):
    """Privileges granted on one object, at object and column level."""

    catalog: str = ""
    schema: str = ""
    name: str = ""
    object_type: str = ""
    object_privileges: ObjectPrivileges = field(default_factory=ObjectPrivileges)
    column_privileges: ColumnPrivileges = field(default_factory=ColumnPrivileges)

    def values(self) -> list:
        return self._pick(
            "catalog", "schema", "name", "object_type",
            "object_privileges", "column_privileges",
        )


@dataclass
class Trigger(_Record):
    catalog: str = ""
    schema: str = ""
    table: str = ""
    name: str = ""
    definition: str = ""

    def values(self) -> list:
        return self._pick("catalog", "schema", "table", "name", "definition")


class CatalogSet(ResultSet):
    """Catalogs; records may be richer objects that provide ``get_catalog()``."""

    DEFAULT_COLUMNS = ("Catalog",)

    def get(self) -> Catalog:
        return self._record().get_catalog()


class SchemaSet(ResultSet):
    DEFAULT_COLUMNS = ("Schema", "Catalog")


class TableSet(ResultSet):
    DEFAULT_COLUMNS = ("Catalog", "Schema", "Name", "Type", "Rows", "Size", "Comment")


class ColumnSet(ResultSet):
    DEFAULT_COLUMNS = (
        "Catalog", "Schema", "Table", "Name", "Type", "Nullable", "Default",
        "Size", "Decimal Digits", "Precision Radix", "Octet Length",
    )


class ColumnStatSet(ResultSet):
    DEFAULT_COLUMNS = (
        "Catalog", "Schema", "Table", "Name", "Average width", "Nulls fraction",
        "Distinct values", "Minimum value", "Maximum value", "Mean value",
        "Top N common values", "Top N values freqs",
    )


class IndexSet(ResultSet):
    DEFAULT_COLUMNS = ("Catalog", "Schema", "Name", "Table", "Is primary", "Is unique", "Type")


class IndexColumnSet(ResultSet):
    DEFAULT_COLUMNS = ("Catalog", "Schema", "Table", "Index name", "Name", "Data type")


class ConstraintSet(ResultSet):
    DEFAULT_COLUMNS = (
        "Catalog", "Schema", "Table", "Name", "Type", "Is deferrable",
        "Initially deferred", "Foreign catalog", "Foreign schema", "Foreign table",
        "Foreign name", "Match type", "Update rule", "Delete rule", "Check Clause",
    )


class ConstraintColumnSet(ResultSet):
    DEFAULT_COLUMNS = (
        "Catalog", "Schema", "Table", "Constraint", "Name", "Foreign Catalog",
        "Foreign Schema", "Foreign Table", "Foreign Constraint", "Foreign Name",
    )


class FunctionSet(ResultSet):
    DEFAULT_COLUMNS = (
        "Catalog", "Schema", "Name", "Result data type", "Argument data types",
        "Type", "Volatility", "Security", "Language", "Source code",
    )


class FunctionColumnSet(ResultSet):
    DEFAULT_COLUMNS = (
        "Catalog", "Schema", "Function name", "Name", "Type", "Data type",
        "Size", "Decimal Digits", "Precision Radix", "Octet Length",
    )


class SequenceSet(ResultSet):
    DEFAULT_COLUMNS = ("Type", "Start", "Min", "Max", "Increment", "Cycles?")


class PrivilegeSummarySet(ResultSet):
    DEFAULT_COLUMNS = ("Schema", "Name", "Type", "Access privileges", "Column privileges")


class TriggerSet(ResultSet):
    DEFAULT_COLUMNS = ("Catalog", "Schema", "Table", "Name", "Definition")