# pgxport/exporters/registry.py
"""
Name -> factory table for exporters.

The table is filled once by ``register_builtin_exporters`` from the program's
entry point and only read afterwards.
"""

import logging
from typing import Callable, Dict, List

from ..exceptions import ConfigurationError
from .base import BaseExporter

logger = logging.getLogger(__name__)

ExporterFactory = Callable[[], BaseExporter]

FORMAT_CSV = 'csv'
FORMAT_JSON = 'json'
FORMAT_XML = 'xml'
FORMAT_YAML = 'yaml'
FORMAT_SQL = 'sql'
FORMAT_XLSX = 'xlsx'
FORMAT_TEMPLATE = 'template'


def _normalize(name: str) -> str:
    return (name or '').strip().lower()


class ExporterRegistry:
    """
    Registry of exporter factories keyed by format name.

    Example
    -------
    ::

        registry = ExporterRegistry()
        register_builtin_exporters(registry)
        exporter = registry.get('csv')
        registry.list_formats()   # ['csv', 'json', 'sql', 'template', 'xlsx', 'xml', 'yaml']
    """

    def __init__(self):
        self._factories: Dict[str, ExporterFactory] = {}

    def register(self, name: str, factory: ExporterFactory) -> None:
        """Register a factory; raises ValueError if the name is taken."""
        key = _normalize(name)
        if not key:
            raise ValueError("exporter name must not be empty")
        if key in self._factories:
            raise ValueError(f"exporter: format '{key}' already registered")
        self._factories[key] = factory
        logger.debug(f"Registered exporter: {key}")

    def must_register(self, name: str, factory: ExporterFactory) -> None:
        """Register at start-up; a clash is a programming error."""
        try:
            self.register(name, factory)
        except ValueError as e:
            raise RuntimeError(str(e)) from e

    def get(self, name: str) -> BaseExporter:
        """Return a new exporter instance for the format."""
        factory = self._factories.get(_normalize(name))
        if factory is None:
            raise ConfigurationError(f"unsupported format: '{name}' "
                                     f"(available: {', '.join(self.list_formats())})")
        return factory()

    def list_formats(self) -> List[str]:
        return sorted(self._factories)

    def __contains__(self, name: str) -> bool:
        return _normalize(name) in self._factories

    def __len__(self) -> int:
        return len(self._factories)


def register_builtin_exporters(registry: ExporterRegistry) -> ExporterRegistry:
    """Register every format shipped with pgxport."""
    from .csv import CSVExporter
    from .json import JSONExporter
    from .sql import SQLExporter
    from .template import TemplateExporter
    from .xlsx import XLSXExporter
    from .xml import XMLExporter
    from .yaml import YAMLExporter

    registry.must_register(FORMAT_CSV, CSVExporter)
    registry.must_register(FORMAT_JSON, JSONExporter)
    registry.must_register(FORMAT_XML, XMLExporter)
    registry.must_register(FORMAT_YAML, YAMLExporter)
    registry.must_register(FORMAT_SQL, SQLExporter)
    registry.must_register(FORMAT_XLSX, XLSXExporter)
    registry.must_register(FORMAT_TEMPLATE, TemplateExporter)
    return registry


def default_registry() -> ExporterRegistry:
    """A fresh registry holding the built-in exporters."""
    return register_builtin_exporters(ExporterRegistry())
