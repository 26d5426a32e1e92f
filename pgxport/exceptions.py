# pgxport/exceptions.py
"""
Exception classes raised by the export pipeline.

Every error derives from ``ExportError`` so callers can catch the whole family
in one place. Configuration problems also derive from ``ValueError`` and sink
problems from ``OSError`` so they still read naturally to code that only knows
the builtin types.
"""

from typing import Optional


class ExportError(Exception):
    """Base class for export failures."""


class ConfigurationError(ExportError, ValueError):
    """Invalid options detected before any row is processed."""


class SinkError(ExportError, OSError):
    """Creating, writing or closing the output destination failed."""

    def __init__(self, message: str, path: Optional[str] = None):
        super().__init__(message)
        self.path = path


class RowError(ExportError):
    """A single row could not be fetched or encoded."""

    def __init__(self, row_index: int, message: str):
        super().__init__(f"row {row_index}: {message}")
        self.row_index = row_index


class CursorError(ExportError):
    """The cursor reported a fault while iterating rows."""


class TemplateRenderError(ExportError):
    """A template could not be loaded, parsed or rendered."""
