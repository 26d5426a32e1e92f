# pgxport/exporters/json.py
"""
JSON exporter: a top-level array of row objects, written one row at a time.
"""
import logging
from typing import Any, Sequence

from ..encoders import JSONRowEncoder
from .base import BaseExporter

logger = logging.getLogger(__name__)


class JSONExporter(BaseExporter):
    """
    Streams rows as a JSON array without holding the result in memory.

    Columns keep their query order inside every object; NULL is ``null``
    and json/jsonb columns are embedded as nested JSON.
    """

    format_name = 'json'

    def __init__(self):
        super().__init__()
        self._encoder = JSONRowEncoder()

    def _write_header(self) -> None:
        self.sink.write('[\n')

    def _write_row(self, index: int, values: Sequence[Any]) -> None:
        to_node = self.formatter.to_node
        encoded = self._encoder.encode(
            (field.name, to_node(value, field.type_id)) for value, field in zip(values, self.fields))
        separator = ',\n' if index > 1 else ''
        self.sink.write(f"{separator}  {encoded}")

    def _write_footer(self) -> None:
        if self.row_count:
            self.sink.write('\n')
        self.sink.write(']\n')
