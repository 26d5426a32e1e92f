# pgxport/exporters/__init__.py
"""
Exporters for every supported output format.

All exporters share the life cycle implemented by ``BaseExporter.export``
and are looked up by name through an ``ExporterRegistry``:

- csv: delimited text, optional PostgreSQL COPY fast path
- json: array of objects, columns in query order
- xml: root element with one element per row
- yaml: sequence of mappings
- sql: INSERT statements, optionally multi-row
- xlsx: Excel workbook, new sheet when a sheet is full
- template: Jinja2 templates, full or streaming mode

Example
-------
::

    from pgxport.exporters import default_registry

    exporter = default_registry().get('xlsx')
    exporter.export(cursor, options)
"""

from .base import BaseExporter
from .csv import CSVExporter
from .json import JSONExporter
from .registry import ExporterRegistry, default_registry, register_builtin_exporters
from .sql import SQLExporter
from .template import TemplateExporter
from .xlsx import XLSXExporter
from .xml import XMLExporter
from .yaml import YAMLExporter

__all__ = ['BaseExporter', 'ExporterRegistry', 'default_registry', 'register_builtin_exporters',
           'CSVExporter', 'JSONExporter', 'XMLExporter', 'YAMLExporter', 'SQLExporter',
           'XLSXExporter', 'TemplateExporter']
