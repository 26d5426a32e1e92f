# tests/conftest.py
"""
Shared test fixtures and configuration for pytest.
"""

import copy
import datetime as dt
import logging
from decimal import Decimal

import pytest

from pgxport.cursors import ListCursor
from pgxport.defaults import settings
from pgxport.options import ExportOptions
from pgxport.wire import FieldDescriptor, WireType


@pytest.fixture(autouse=True)
def isolate_environment(monkeypatch, tmp_path):
    """Keep tests away from the user's config files and restore global settings."""
    home = tmp_path / 'home'
    home.mkdir()
    monkeypatch.setenv('HOME', str(home))
    for var in ('DB_HOST', 'DB_PORT', 'DB_USER', 'DB_PASS', 'DB_NAME', 'DB_SSLMODE', 'DB_DRIVER'):
        monkeypatch.delenv(var, raising=False)

    saved = copy.deepcopy(settings)
    root = logging.getLogger()
    saved_handlers = list(root.handlers)
    saved_level = root.level
    import pgxport.config as config_module
    monkeypatch.setattr(config_module, '_config_manager', None)
    yield
    settings.clear()
    settings.update(saved)
    for handler in list(root.handlers):
        if handler not in saved_handlers:
            root.removeHandler(handler)
            handler.close()
    for handler in saved_handlers:
        if handler not in root.handlers:
            root.addHandler(handler)
    root.setLevel(saved_level)


@pytest.fixture
def sample_fields():
    """Column descriptors covering the common wire types."""
    return [
        FieldDescriptor('id', WireType.INT4),
        FieldDescriptor('name', WireType.TEXT),
        FieldDescriptor('nation', WireType.VARCHAR),
        FieldDescriptor('born', WireType.DATE),
        FieldDescriptor('trained_at', WireType.TIMESTAMP),
        FieldDescriptor('balance', WireType.NUMERIC),
        FieldDescriptor('active', WireType.BOOL),
        FieldDescriptor('meta', WireType.JSONB),
    ]


@pytest.fixture
def sample_rows():
    """Three benders, the last one with mostly NULL values."""
    return [
        (1, 'Aang', 'Air Nomads', dt.date(1994, 2, 1), dt.datetime(2024, 1, 15, 9, 30, 5, 123000),
         Decimal('112.50'), True, {'element': 'air', 'skills': ['glide', 'airbend']}),
        (2, 'Katara', 'Water Tribe', dt.date(1996, 5, 12), dt.datetime(2024, 1, 16, 14, 0, 0),
         Decimal('0.3'), False, {'element': 'water'}),
        (3, 'Toph', None, None, None, None, None, None),
    ]


@pytest.fixture
def make_cursor(sample_fields, sample_rows):
    """Factory for fresh forward-only cursors (defaults to the sample data)."""
    def _make(fields=None, rows=None, error=None):
        return ListCursor(sample_fields if fields is None else fields,
                          list(sample_rows if rows is None else rows), error=error)
    return _make


@pytest.fixture
def make_options(tmp_path):
    """Factory for export options writing into tmp_path."""
    def _make(fmt, filename=None, **changes):
        path = tmp_path / (filename or f"out.{fmt}")
        changes.setdefault('time_zone', 'UTC')
        return ExportOptions(format=fmt, output_path=str(path), **changes)
    return _make
