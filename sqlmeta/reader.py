"""Filters and the basic readers that other metadata readers build on."""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Any, Callable, Optional

_READER_METHODS = (
    "catalogs",
    "schemas",
    "tables",
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
)


class NotSupportedError(Exception):
    """Raised when a reader cannot provide the requested kind of metadata."""

    def __init__(self, what: str = "") -> None:
        super().__init__(f"not supported: {what}" if what else "not supported")


@dataclass
class Filter:
    """Patterns and flags restricting which objects a reader returns.

    ``catalog`` and ``schema`` are patterns the containing catalog and schema
    must match; ``parent`` matches the owning object (a table for columns),
    ``reference`` matches objects referencing this one and ``name`` matches
    the object's own name.
    """

    catalog: str = ""
    schema: str = ""
    parent: str = ""
    reference: str = ""
    name: str = ""
    types: list[str] = field(default_factory=list)
    with_system: bool = False
    only_visible: bool = False


class PluginReader:
    """A reader composed of the methods of other readers.

    For every kind of metadata the last given reader that provides it wins.
    Kinds no reader provides raise :class:`NotSupportedError`.
    """

    def __init__(self, *args: Any) -> None:
        self._sources: dict[str, Callable[[Filter], Any]] = {}
        for reader in args:
            for name in _READER_METHODS:
                method = getattr(reader, name, None)
                if callable(method):
                    self._sources[name] = method

    def _call(self, name: str, f: Filter) -> Any:
        try:
            method = self._sources[name]
        except KeyError:
            raise NotSupportedError(name) from None
        return method(f)

    def catalogs(self, f):
        return self._call("catalogs", f)

    def schemas(self, f):
        return self._call("schemas", f)

    def tables(self, f):
        return self._call("tables", f)

    def columns(self, f):
        return self._call("columns", f)

    def column_stats(self, f):
        return self._call("column_stats", f)

    def indexes(self, f):
        return self._call("indexes", f)

    def index_columns(self, f):
        return self._call("index_columns", f)

    def triggers(self, f):
        return self._call("triggers", f)

    def constraints(self, f):
        return self._call("constraints", f)

    def constraint_columns(self, f):
        return self._call("constraint_columns", f)

    def functions(self, f):
        return self._call("functions", f)

    def function_columns(self, f):
        return self._call("function_columns", f)

    def sequences(self, f):
        return self._call("sequences", f)

    def privilege_summaries(self, f):
        return self._call("privilege_summaries", f)


class LoggingReader:
    """Runs queries on a DB-API connection, optionally logging them.

    ``logger`` is a callable receiving the query text and then its arguments.
    In dry-run mode nothing is executed and every query yields no rows.
    ``timeout`` (seconds or a timedelta) bounds a single query; ``limit`` is
    the maximum number of rows readers built on this one should ask for,
    0 meaning no limit.
    """

    def __init__(
        self,
        db: Any,
        *,
        logger: Optional[Callable[[str], Any]] = None,
        dry_run: bool = False,
        timeout: float | timedelta | None = None,
        limit: int = 0,
    ) -> None:
        self.db = db
        self.logger = logger
        self.dry_run = dry_run
        if isinstance(timeout, timedelta):
            timeout = timeout.total_seconds()
        self.timeout = timeout or None
        self.limit = limit

    def query(self, sql: str, *args: Any) -> list[tuple]:
        """Execute ``sql`` with positional ``args`` and return all rows."""
        if self.logger is not None:
            self.logger(sql)
            self.logger(str(list(args)))
        if self.dry_run:
            return []
        cursor = self.db.cursor()
        try:
            if self.timeout is None:
                cursor.execute(sql, args)
                return cursor.fetchall()
            return self._execute_with_timeout(cursor, sql, args)
        finally:
            cursor.close()

    def _execute_with_timeout(self, cursor: Any, sql: str, args: tuple) -> list[tuple]:
        cancel = getattr(self.db, "interrupt", None) or getattr(cursor, "cancel", None)
        expired = threading.Event()

        def expire() -> None:
            expired.set()
            if cancel is not None:
                cancel()

        timer = threading.Timer(self.timeout, expire)
        timer.daemon = True
        timer.start()
        try:
            cursor.execute(sql, args)
            rows = cursor.fetchall()
        except Exception as exc:
            if expired.is_set():
                raise TimeoutError(f"query exceeded {self.timeout}s") from exc
            raise
        finally:
            timer.cancel()
        if expired.is_set():
            raise TimeoutError(f"query exceeded {self.timeout}s")
        return rows