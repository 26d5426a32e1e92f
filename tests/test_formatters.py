# tests/test_formatters.py
import datetime as dt
import logging
import math
import uuid
from decimal import Decimal

import pytest
from dateutil import tz

from pgxport.formatters import (
    ValueFormatter, compile_layout, extract_date_layout, format_float, format_interval,
    render_layout, resolve_timezone, round_float, to_cell, to_node, to_sql, to_template, to_text
)
from pgxport.wire import FieldDescriptor, WireType


@pytest.fixture
def formatter():
    return ValueFormatter('yyyy-MM-dd HH:mm:ss', 'UTC')


class TestTimeLayouts:
    """Token based date/time layouts."""

    def test_compile_layout_prefers_longest_token(self):
        """Test that yyyy is one token, not two yy tokens."""
        assert compile_layout('yyyy') == ((True, 'yyyy'),)
        assert compile_layout('yy-MM') == ((True, 'yy'), (False, '-'), (True, 'MM'))

    def test_render_layout_with_fraction(self):
        """Test rendering milliseconds and literal text."""
        value = dt.datetime(2024, 1, 5, 7, 8, 9, 123456)
        assert render_layout(value, 'yyyy-MM-ddTHH:mm:ss.SSS') == '2024-01-05T07:08:09.123'
        assert render_layout(value, 'dd/MM/yy') == '05/01/24'
        assert render_layout(value, 'ss.SS ss.S') == '09.12 09.1'

    def test_render_layout_on_date(self):
        """Test that time tokens render as zero for plain dates."""
        assert render_layout(dt.date(2024, 3, 9), 'yyyy-MM-dd HH:mm') == '2024-03-09 00:00'

    @pytest.mark.parametrize('layout, expected', [
        ('yyyy-MM-dd HH:mm:ss', 'yyyy-MM-dd'),
        ('dd/MM/yyyy HH:mm', 'dd/MM/yyyy'),
        ('yyyy-MM-ddTHH:mm:ss.SSS', 'yyyy-MM-dd'),
        ('HH:mm', 'HH:mm'),
    ])
    def test_extract_date_layout(self, layout, expected):
        """Test that the date part is cut after the last date token."""
        assert extract_date_layout(layout) == expected


class TestTimeZones:
    """Time zone resolution."""

    def test_empty_name_is_local(self):
        """Test that an empty zone means local time."""
        assert isinstance(resolve_timezone(''), tz.tzlocal)

    def test_known_zone(self):
        """Test resolving an IANA zone."""
        zone = resolve_timezone('Europe/Paris')
        assert dt.datetime(2024, 1, 1, tzinfo=zone).utcoffset() == dt.timedelta(hours=1)

    def test_invalid_zone_falls_back_with_warning(self, caplog):
        """Test that an unknown zone logs a warning and uses local time."""
        with caplog.at_level(logging.WARNING, logger='pgxport.formatters'):
            zone = resolve_timezone('Fire/Nation_Capital')
        assert isinstance(zone, tz.tzlocal)
        assert 'Invalid time zone' in caplog.text


class TestNumbers:
    """Float and interval rendering."""

    def test_fifteen_significant_digits(self):
        """Test that 0.1 + 0.2 renders as 0.3."""
        assert format_float(0.1 + 0.2) == '0.3'
        assert round_float(0.1 + 0.2) == 0.3

    def test_round_float_keeps_non_finite(self):
        """Test that NaN and infinity survive rounding."""
        assert math.isnan(round_float(float('nan')))
        assert round_float(float('inf')) == float('inf')

    @pytest.mark.parametrize('value, expected', [
        (dt.timedelta(0), '00:00:00'),
        (dt.timedelta(days=3), '3 days'),
        (dt.timedelta(days=1, hours=2), '1 day 02:00:00'),
        (dt.timedelta(minutes=5, microseconds=250), '00:05:00.000250'),
        (dt.timedelta(hours=-1), '-1 days +23:00:00'),
    ])
    def test_format_interval(self, value, expected):
        """Test PostgreSQL style interval text."""
        assert format_interval(value) == expected


class TestValueFormatter:
    """Per wire type normalization."""

    def test_date_uses_date_part_of_layout(self, formatter):
        """Test that DATE columns drop the time part of the layout."""
        assert formatter.to_text(dt.date(2024, 1, 15), WireType.DATE) == '2024-01-15'

    def test_timestamp_uses_full_layout(self, formatter):
        """Test that TIMESTAMP columns use the full layout."""
        value = dt.datetime(2024, 1, 15, 9, 30, 5)
        assert formatter.to_text(value, WireType.TIMESTAMP) == '2024-01-15 09:30:05'

    def test_timestamptz_converted_to_zone(self):
        """Test that zone-aware values are shown in the requested zone."""
        formatter = ValueFormatter('yyyy-MM-dd HH:mm', 'America/New_York')
        value = dt.datetime(2024, 1, 15, 12, 0, tzinfo=tz.UTC)
        assert formatter.to_text(value, WireType.TIMESTAMPTZ) == '2024-01-15 07:00'

    def test_numeric_becomes_float(self, formatter):
        """Test that NUMERIC values are rendered as floats."""
        assert formatter.to_text(Decimal('112.50'), WireType.NUMERIC) == '112.5'
        assert formatter.to_node(Decimal('0.3'), WireType.NUMERIC) == 0.3

    def test_uuid_and_bytea(self, formatter):
        """Test UUID and byte string text."""
        value = uuid.UUID('12345678-1234-5678-1234-567812345678')
        assert formatter.to_text(value, WireType.UUID) == '12345678-1234-5678-1234-567812345678'
        assert formatter.to_text(b'appa', WireType.BYTEA) == 'appa'

    def test_null_is_none_before_target_rendering(self, formatter):
        """Test that NULL is never converted."""
        for type_id in WireType:
            assert formatter.convert(None, type_id) is None

    def test_native_keeps_temporal_values(self):
        """Test that spreadsheet values stay dates and lose their zone."""
        formatter = ValueFormatter('yyyy', 'Asia/Tokyo')
        value = dt.datetime(2024, 1, 15, 0, 0, tzinfo=tz.UTC)
        assert formatter.to_cell(value, WireType.TIMESTAMPTZ) == dt.datetime(2024, 1, 15, 9, 0)
        assert formatter.to_cell(dt.date(2024, 1, 1), WireType.DATE) == dt.date(2024, 1, 1)


class TestTargets:
    """Format specific representations."""

    def test_to_text(self):
        """Test text rendering of scalar and composite values."""
        assert to_text(None) == ''
        assert to_text(True) == 'true'
        assert to_text(42) == '42'
        assert to_text([1, None, 'a']) == '{1,NULL,a}'
        assert to_text({'a': 1}) == '{"a":1}'
        assert to_text({'element': 'earth'}, WireType.JSONB) == '{"element":"earth"}'
        assert to_text(['glide'], WireType.JSON) == '["glide"]'

    def test_to_node(self):
        """Test values for JSON and YAML."""
        assert to_node(None) is None
        assert to_node(Decimal('1.5')) == 1.5
        assert to_node({'a': [1, 2]}, WireType.JSONB) == {'a': [1, 2]}
        assert to_node([Decimal('0.5'), None]) == [0.5, None]
        assert to_node(dt.timedelta(days=2)) == '2 days'

    def test_to_cell(self):
        """Test spreadsheet cell values."""
        assert to_cell(Decimal('2.25')) == 2.25
        assert to_cell(['a', 'b']) == '["a","b"]'
        assert to_cell({'a': 1}, WireType.JSONB) == '{"a":1}'

    def test_to_template(self):
        """Test template values keep numbers and stringify JSON."""
        assert to_template(3) == 3
        assert to_template(None) is None
        assert to_template({'a': 1}, WireType.JSON) == '{"a":1}'


class TestSQLLiterals:
    """PostgreSQL literal rendering."""

    @pytest.mark.parametrize('value, type_id, expected', [
        (None, WireType.TEXT, 'NULL'),
        (True, WireType.BOOL, 'true'),
        (7, WireType.INT4, '7'),
        ("O'Brien", WireType.TEXT, "'O''Brien'"),
        (dt.date(2024, 1, 15), WireType.DATE, "'2024-01-15'::date"),
        (dt.datetime(2024, 1, 15, 9, 30, 5, 123000), WireType.TIMESTAMP, "'2024-01-15 09:30:05.123'::timestamp"),
        (Decimal('0.3'), WireType.NUMERIC, '0.3'),
        (Decimal('NaN'), WireType.NUMERIC, "'NaN'::float8"),
        (b'\x01\xff', WireType.BYTEA, "'\\x01ff'::bytea"),
        ({'a': 1}, WireType.JSONB, "'{\"a\":1}'::jsonb"),
        ('{"a":1}', WireType.JSON, "'{\"a\":1}'::json"),
        (['a', 'b c', None], WireType.UNKNOWN, "'{a,\"b c\",NULL}'"),
        (dt.timedelta(days=1), WireType.INTERVAL, "'1 day'::interval"),
    ])
    def test_literals(self, value, type_id, expected):
        """Test SQL literal for each kind of value."""
        assert to_sql(value, type_id) == expected

    def test_timestamptz_offset(self):
        """Test that zone offsets are written as +HH or +HH:MM."""
        value = dt.datetime(2024, 1, 15, 12, 0, tzinfo=tz.UTC)
        assert to_sql(value, WireType.TIMESTAMPTZ, tz.UTC) == "'2024-01-15 12:00:00.000+00'::timestamptz"
        kolkata = tz.gettz('Asia/Kolkata')
        assert to_sql(value, WireType.TIMESTAMPTZ, kolkata) == "'2024-01-15 17:30:00.000+05:30'::timestamptz"

    def test_uuid_literal(self):
        """Test UUID cast."""
        value = uuid.UUID('12345678-1234-5678-1234-567812345678')
        assert to_sql(value, WireType.UUID) == "'12345678-1234-5678-1234-567812345678'::uuid"


class TestWireTypes:
    """OID mapping."""

    def test_from_oid(self):
        """Test known, unknown and missing OIDs."""
        assert WireType.from_oid(23) is WireType.INT4
        assert WireType.from_oid(99999) is WireType.UNKNOWN
        assert WireType.from_oid(None) is WireType.UNKNOWN

    def test_field_descriptor_create(self):
        """Test building a descriptor from a raw OID."""
        assert FieldDescriptor.create('born', 1082) == FieldDescriptor('born', WireType.DATE)
