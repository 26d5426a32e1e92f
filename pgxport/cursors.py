# pgxport/cursors.py
"""
Forward-only cursors consumed by the exporters.

Both cursor classes expose the same small contract:

* ``fields()`` - list of ``FieldDescriptor`` (name, wire type), fixed for the call
* iteration - yields one value sequence per row, aligned with ``fields()``
* ``check()`` - raises ``CursorError`` if iteration stopped because of a fault

Driver errors raised while fetching do not escape the iteration; they end it
and are reported by ``check()``, which exporters call once after their row
loop.
"""

import logging
from typing import Any, Iterable, Iterator, List, Optional, Sequence

from .defaults import settings
from .exceptions import CursorError
from .wire import FieldDescriptor, WireType

logger = logging.getLogger(__name__)


class BaseCursor:
    """Shared iteration state for export cursors."""

    def __init__(self):
        self.error: Optional[BaseException] = None
        self.error_row: Optional[int] = None
        self.rows_fetched = 0
        self._fields: Optional[List[FieldDescriptor]] = None

    def fields(self) -> List[FieldDescriptor]:
        if self._fields is None:
            self._fields = self._load_fields()
        return self._fields

    def columns(self) -> List[str]:
        return [field.name for field in self.fields()]

    def _load_fields(self) -> List[FieldDescriptor]:
        raise NotImplementedError

    def check(self) -> None:
        """Raise CursorError if iteration ended because of a fault."""
        if self.error is not None:
            raise CursorError(f"error fetching row {self.error_row}: {self.error}") from self.error

    def close(self) -> None:
        pass

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()


class ExportCursor(BaseCursor):
    """
    Wraps a DB-API cursor (psycopg) that has already executed a query.

    Rows are pulled with ``fetchmany`` in batches of ``batch_size``. Column
    metadata comes from ``description``; psycopg reports the type OID as
    ``type_code``.

    Parameters
    ----------
    cursor
        Executed DB-API cursor
    batch_size : int, optional
        Rows per fetch (defaults to settings['fetch_batch_size'])

    Example
    -------
    ::

        cur = conn.cursor()
        cur.execute("SELECT id, created FROM users")
        export_cursor = ExportCursor(cur)
        export_cursor.fields()   # [FieldDescriptor('id', INT4), FieldDescriptor('created', TIMESTAMPTZ)]
    """

    def __init__(self, cursor, batch_size: Optional[int] = None):
        super().__init__()
        self._cursor = cursor
        self.batch_size = batch_size or settings.get('fetch_batch_size', 1000)

    def __getattr__(self, key: str) -> Any:
        """Delegate attribute access to underlying cursor."""
        return getattr(self._cursor, key)

    def _load_fields(self) -> List[FieldDescriptor]:
        description = self._cursor.description or []
        fields = []
        for col in description:
            name = getattr(col, 'name', None)
            if name is None:
                name = col[0]
            type_code = getattr(col, 'type_code', None)
            if type_code is None and len(col) > 1:
                type_code = col[1]
            fields.append(FieldDescriptor.create(name, type_code))
        return fields

    def __iter__(self) -> Iterator[Sequence[Any]]:
        self.fields()
        while True:
            try:
                batch = self._cursor.fetchmany(self.batch_size)
            except Exception as e:
                logger.error(f"Error fetching row {self.rows_fetched + 1}: {e}")
                self.error = e
                self.error_row = self.rows_fetched + 1
                return
            if not batch:
                return
            for row in batch:
                self.rows_fetched += 1
                yield row

    def close(self) -> None:
        try:
            self._cursor.close()
        except Exception as e:
            logger.debug(f"Error closing cursor: {e}")


class ListCursor(BaseCursor):
    """
    In-memory cursor over already materialized rows.

    Parameters
    ----------
    fields : list
        FieldDescriptor objects, (name, oid) pairs or plain names
    rows : iterable
        Value sequences aligned with fields
    error : Exception, optional
        Fault reported by ``check()`` once the rows are exhausted

    Example
    -------
    ::

        cursor = ListCursor([('id', WireType.INT4), ('name', WireType.TEXT)],
                            [(1, 'Aang'), (2, 'Katara')])
    """

    def __init__(self, fields: Iterable[Any], rows: Iterable[Sequence[Any]],
                 error: Optional[BaseException] = None):
        super().__init__()
        self._fields = [self._to_field(f) for f in fields]
        self._rows = rows
        self._pending_error = error
        self._consumed = False

    @staticmethod
    def _to_field(field) -> FieldDescriptor:
        if isinstance(field, FieldDescriptor):
            return field
        if isinstance(field, str):
            return FieldDescriptor(field, WireType.UNKNOWN)
        name, oid = field
        return FieldDescriptor.create(name, oid)

    def _load_fields(self) -> List[FieldDescriptor]:
        return self._fields

    def __iter__(self) -> Iterator[Sequence[Any]]:
        if self._consumed:
            raise CursorError("cursor is forward-only and has already been consumed")
        self._consumed = True
        for row in self._rows:
            self.rows_fetched += 1
            yield row
        if self._pending_error is not None:
            self.error = self._pending_error
            self.error_row = self.rows_fetched + 1
