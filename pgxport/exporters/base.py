# pgxport/exporters/base.py
"""
Base class for exporters with the common sink handling and row loop.
"""

import logging
import time
from abc import ABC, abstractmethod
from typing import Any, List, Optional, Sequence

from ..cursors import BaseCursor
from ..defaults import settings
from ..exceptions import ExportError, RowError, SinkError
from ..formatters import ValueFormatter
from ..options import ExportOptions
from ..record import Fields, Record
from ..sinks import OutputSink, create_sink
from ..wire import FieldDescriptor

logger = logging.getLogger(__name__)


class BaseExporter(ABC):
    """
    Abstract base class for all exporters.

    An exporter turns the rows of one cursor into one output artifact. Every
    format shares the same life cycle, implemented once by ``export()``:

    1. validate the options and run format-specific preparation (template
       loading, ...) so configuration errors surface before any file is created
    2. open exactly one sink for the output path / compression
    3. ``_write_header()``
    4. ``_write_row(index, values)`` for every row, in cursor order
    5. ask the cursor whether iteration ended because of a fault
    6. ``_write_footer()``
    7. close the sink exactly once, whether or not anything failed

    Any error raised while handling a row that is not already an
    ``ExportError`` is wrapped in ``RowError`` with the 1-based row index.

    Attributes
    ----------
    format_name : str
        Registry name of the format; also names the zip entry extension.
    row_count : int
        Rows written so far.
    output_path : str
        Real location of the artifact after the sink rewrote the extension.
    fields : List[FieldDescriptor]
        Column descriptors of the cursor being exported.

    Notes
    -----
    Exporters that can hand the whole job to the server implement
    ``export_copy(connection, query, options)``; ``supports_copy()`` detects
    the capability.

    If a row fails, output already flushed stays in the file. The file is
    closed but must be considered unreliable.
    """

    format_name = ''

    def __init__(self):
        self.row_count = 0
        self.output_path: Optional[str] = None
        self.options: Optional[ExportOptions] = None
        self.formatter: Optional[ValueFormatter] = None
        self.fields: List[FieldDescriptor] = []
        self.sink: Optional[OutputSink] = None
        self.fetch_time = 0.0
        self._names: Optional[Fields] = None
        self._started_at = 0.0

    @property
    def columns(self) -> List[str]:
        return [field.name for field in self.fields]

    def supports_copy(self) -> bool:
        return callable(getattr(self, 'export_copy', None))

    def _prepare(self) -> None:
        """Format-specific checks run before the sink is created."""

    def _write_header(self) -> None:
        pass

    @abstractmethod
    def _write_row(self, index: int, values: Sequence[Any]) -> None:
        """
        Format and write one row.

        Args:
            index: 1-based row number
            values: raw values aligned with ``self.fields``
        """

    def _write_footer(self) -> None:
        pass

    def _on_progress(self) -> None:
        """Called every progress interval; CSV flushes its buffers here."""

    def _record(self, values: Sequence[Any]) -> Record:
        return Record(self._names, values)

    def _open_sink(self) -> OutputSink:
        options = self.options
        return create_sink(options.output_path, options.compression, self.format_name)

    def export(self, cursor: BaseCursor, options: ExportOptions) -> int:
        """
        Export every row of the cursor.

        Args:
            cursor: Export cursor (fields(), iteration, check())
            options: Validated export options

        Returns:
            Number of rows written

        Raises:
            ConfigurationError: invalid options, raised before the sink is created
            SinkError: the output could not be created, written or closed
            RowError: a row could not be formatted or encoded
            CursorError: the cursor reported a fault
        """
        options.validate()
        self.options = options
        self.formatter = ValueFormatter(options.time_format, options.time_zone)
        self.fields = list(cursor.fields())
        self._names = Fields(self.columns)
        self.row_count = 0
        self.fetch_time = 0.0
        self._prepare()

        logger.debug(f"Preparing {self.format_name} export to {options.output_path} "
                     f"(compression={options.compression}, columns={len(self.fields)})")
        self._started_at = time.monotonic()
        self.sink = self._open_sink()
        self.output_path = self.sink.path
        failed = False
        try:
            self._write_header()
            self._write_rows(cursor)
            self._write_footer()
        except Exception as e:
            failed = True
            logger.error(f"Error exporting {self.format_name} to {self.output_path}: {e}")
            raise
        finally:
            self._close_sink(failed)

        elapsed = time.monotonic() - self._started_at
        logger.info(f"Wrote {self.row_count} rows to {self.output_path}")
        logger.debug(f"{self.format_name} export completed in {elapsed:.3f}s")
        self._report_fetch_stats(elapsed)
        return self.row_count

    def _write_rows(self, cursor: BaseCursor) -> None:
        progress_rows = settings.get('progress_rows', 10000)
        progress_seconds = settings.get('progress_seconds', 2.0)
        width = len(self.fields)
        last_report = time.monotonic()
        rows = iter(cursor)

        while True:
            fetch_start = time.perf_counter()
            try:
                values = next(rows)
            except StopIteration:
                break
            self.fetch_time += time.perf_counter() - fetch_start

            index = self.row_count + 1
            try:
                if len(values) != width:
                    raise ValueError(f"expected {width} values, got {len(values)}")
                self._write_row(index, values)
            except ExportError:
                raise
            except Exception as e:
                raise RowError(index, f"{type(e).__name__}: {e}") from e
            self.row_count = index

            now = time.monotonic()
            if index % progress_rows == 0 or now - last_report >= progress_seconds:
                self._log_progress(now)
                self._on_progress()
                last_report = now

        cursor.check()

    def _log_progress(self, now: float) -> None:
        elapsed = max(now - self._started_at, 1e-9)
        avg_fetch_ms = self.fetch_time * 1000 / max(self.row_count, 1)
        logger.debug(f"{self.row_count} rows written ({self.row_count / elapsed:.0f} rows/s, "
                     f"elapsed {elapsed:.1f}s, avg fetch={avg_fetch_ms:.2f}ms/row)")

    def _report_fetch_stats(self, elapsed: float) -> None:
        """Suggest COPY mode when most of the time went into fetching rows."""
        if not self.supports_copy() or self.row_count <= 1000 or not logger.isEnabledFor(logging.DEBUG):
            return
        avg_fetch_ms = self.fetch_time * 1000 / self.row_count
        fetch_percent = self.fetch_time / max(elapsed, 1e-9) * 100
        if avg_fetch_ms > 5.0 or fetch_percent > 70:
            logger.warning(f"Slow row streaming detected ({avg_fetch_ms:.1f}ms/row, "
                           f"{fetch_percent:.0f}% fetch time)")
            logger.info("For better performance, use --with-copy (PostgreSQL COPY is 10-100x faster)")

    def _close_sink(self, failed: bool) -> None:
        sink = self.sink
        if sink is None:
            return
        try:
            sink.close()
        except SinkError as e:
            if not failed:
                raise
            logger.warning(f"Error closing output after failed export: {e}")
