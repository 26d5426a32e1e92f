# pgxport/exporters/xlsx.py
"""
Excel exporter using openpyxl's write-only workbook.
"""
import logging
from datetime import date, datetime
from typing import Any, List, Sequence

from openpyxl import Workbook
from openpyxl.cell import WriteOnlyCell
from openpyxl.cell.cell import ILLEGAL_CHARACTERS_RE
from openpyxl.styles import Font
from openpyxl.utils import get_column_letter

from .base import BaseExporter

logger = logging.getLogger(__name__)

MAX_SHEET_ROWS = 1_048_576
DATE_FORMAT = 'YYYY-MM-DD'
DATETIME_FORMAT = 'YYYY-MM-DD HH:MM:SS'


class XLSXExporter(BaseExporter):
    """
    Writes rows into an XLSX workbook, rolling over to a new sheet when full.

    Sheets are named ``Sheet1``, ``Sheet2``, ... Each holds at most
    ``max_rows_per_sheet`` rows including its optional bold header row; when
    the next row would not fit, the current sheet is closed and a new one is
    started (with its own header).

    Dates and timestamps are written as native spreadsheet values with
    ``YYYY-MM-DD`` / ``YYYY-MM-DD HH:MM:SS`` number formats. Zone-aware
    timestamps are converted to the requested time zone first. json columns
    and arrays become JSON text; NULL leaves the cell empty.

    The workbook is assembled in openpyxl's temporary files and saved into
    the sink once all rows are written.
    """

    format_name = 'xlsx'
    max_rows_per_sheet = MAX_SHEET_ROWS

    def __init__(self):
        super().__init__()
        self.workbook = None
        self.sheet_count = 0
        self._sheet = None
        self._current_row = 1
        self._header_font = Font(bold=True)

    def _write_header(self) -> None:
        self.workbook = Workbook(write_only=True)
        self.sheet_count = 0
        self._sheet = None
        self._new_sheet()

    def _new_sheet(self) -> None:
        if self._sheet is not None:
            self._sheet.close()
        self.sheet_count += 1
        name = f"Sheet{self.sheet_count}"
        self._sheet = self.workbook.create_sheet(name)
        self._current_row = 1

        for col_idx, column in enumerate(self.columns, 1):
            width = min(max(len(column) + 2, 10), 60)
            self._sheet.column_dimensions[get_column_letter(col_idx)].width = width

        if not self.options.no_header:
            header = []
            for column in self.columns:
                cell = WriteOnlyCell(self._sheet, value=column)
                cell.font = self._header_font
                header.append(cell)
            self._sheet.append(header)
            self._current_row += 1
        if self.sheet_count > 1:
            logger.debug(f"Created new sheet {name} (row limit reached)")

    def _cell(self, value):
        if isinstance(value, str):
            return ILLEGAL_CHARACTERS_RE.sub('', value)
        if isinstance(value, datetime):
            cell = WriteOnlyCell(self._sheet, value=value)
            cell.number_format = DATETIME_FORMAT
            return cell
        if isinstance(value, date):
            cell = WriteOnlyCell(self._sheet, value=value)
            cell.number_format = DATE_FORMAT
            return cell
        return value

    def _write_row(self, index: int, values: Sequence[Any]) -> None:
        if self._current_row > self.max_rows_per_sheet:
            self._new_sheet()
        to_cell = self.formatter.to_cell
        row: List[Any] = [self._cell(to_cell(value, field.type_id))
                          for value, field in zip(values, self.fields)]
        self._sheet.append(row)
        self._current_row += 1

    def _write_footer(self) -> None:
        logger.debug(f"Saving workbook with {self.sheet_count} sheet(s)")
        self.workbook.save(self.sink)
        logger.debug(f"Wrote {self.row_count} rows to {self.sheet_count} sheet(s)")
