# pgxport/exporters/sql.py
"""
SQL exporter: rows rendered as (multi-row) INSERT statements.
"""

import logging
from typing import Any, List, Sequence

from ..utils import quote_ident
from .base import BaseExporter

logger = logging.getLogger(__name__)


def build_insert(table: str, columns: Sequence[str], rows: Sequence[Sequence[str]]) -> str:
    """
    Build one INSERT statement for already rendered value lists.

    Example
    -------
    ::

        build_insert('public.users', ['"id"', '"name"'], [['1', "'Aang'"], ['2', 'NULL']])

        INSERT INTO "public"."users" ("id", "name") VALUES
        \t(1, 'Aang'),
        \t(2, NULL);
    """
    if not rows:
        return ''
    parts = [f"INSERT INTO {quote_ident(table)} ({', '.join(columns)}) VALUES\n"]
    last = len(rows) - 1
    for i, values in enumerate(rows):
        terminator = ';' if i == last else ','
        parts.append(f"\t({', '.join(values)}){terminator}\n")
    return ''.join(parts)


class SQLExporter(BaseExporter):
    """
    Groups rows into batches of ``rows_per_statement`` and writes one INSERT
    per batch. The table name may be schema-qualified; every identifier is
    quoted. A final partial batch is written once the cursor is exhausted.
    """

    format_name = 'sql'

    def __init__(self):
        super().__init__()
        self.statement_count = 0
        self._quoted_columns: List[str] = []
        self._batch: List[List[str]] = []

    def _write_header(self) -> None:
        options = self.options
        logger.debug(f"SQL options: table={options.table_name}, "
                     f"rows_per_statement={options.rows_per_statement}")
        self._quoted_columns = [quote_ident(name, qualified=False) for name in self.columns]
        self._batch = []
        self.statement_count = 0

    def _write_row(self, index: int, values: Sequence[Any]) -> None:
        to_sql = self.formatter.to_sql
        self._batch.append([to_sql(value, field.type_id) for value, field in zip(values, self.fields)])
        if len(self._batch) >= self.options.rows_per_statement:
            self._flush_batch()

    def _flush_batch(self) -> None:
        if not self._batch:
            return
        self.sink.write(build_insert(self.options.table_name, self._quoted_columns, self._batch))
        self.statement_count += 1
        self._batch = []
        if self.statement_count % 1000 == 0:
            logger.debug(f"{self.statement_count} INSERT statements written")

    def _write_footer(self) -> None:
        self._flush_batch()
        logger.debug(f"{self.row_count} rows written in {self.statement_count} INSERT statements")
