# pgxport/exporters/yaml.py
"""
YAML exporter.

All rows are collected into a single sequence node and serialized once at
the end, so unlike CSV, JSON and XML the whole result is held in memory.
"""

import logging
from typing import Any, Sequence

from ..encoders import YAMLRowEncoder
from .base import BaseExporter

logger = logging.getLogger(__name__)


class YAMLExporter(BaseExporter):
    """Writes rows as a YAML sequence of mappings, columns in query order."""

    format_name = 'yaml'

    def __init__(self):
        super().__init__()
        self._encoder = None

    def _write_header(self) -> None:
        self._encoder = YAMLRowEncoder(indent=2)

    def _write_row(self, index: int, values: Sequence[Any]) -> None:
        to_node = self.formatter.to_node
        self._encoder.append(
            (field.name, to_node(value, field.type_id)) for value, field in zip(values, self.fields))

    def _write_footer(self) -> None:
        logger.debug(f"Serializing {self.row_count} YAML rows")
        self.sink.write(self._encoder.serialize())
