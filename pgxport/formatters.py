# pgxport/formatters.py
"""
Type-driven value formatting.

Raw values coming off the cursor are first normalized by ``ValueFormatter``
according to the column's wire type (dates rendered with the user's time
layout, numerics turned into floats, UUIDs and byte strings into text, ...).
The ``to_*`` functions then turn a normalized value into the representation a
particular output format needs.

Time layouts use Java-style tokens::

    yyyy  4-digit year          HH   hour (00-23)
    yy    2-digit year          mm   minute
    MM    month (01-12)         ss   second
    dd    day of month          SSS  milliseconds
                                SS   centiseconds
                                S    deciseconds

Everything else in a layout is copied literally.
"""

import datetime as dt
import logging
import math
import re
import uuid
from decimal import Decimal, InvalidOperation
from functools import lru_cache
from typing import Any, Callable, Dict, Optional, Tuple

from dateutil import tz

from .defaults import settings
from .utils import json_text, quote_literal
from .wire import WireType

logger = logging.getLogger(__name__)

TOKEN_PATTERN = re.compile(r'yyyy|yy|MM|dd|HH|mm|ss|SSS|SS|S')
DATE_TOKENS = ('yyyy', 'yy', 'MM', 'dd')

_TOKEN_RENDERERS: Dict[str, Callable[[Any], str]] = {
    'yyyy': lambda v: f"{v.year:04d}",
    'yy': lambda v: f"{v.year % 100:02d}",
    'MM': lambda v: f"{v.month:02d}",
    'dd': lambda v: f"{v.day:02d}",
    'HH': lambda v: f"{getattr(v, 'hour', 0):02d}",
    'mm': lambda v: f"{getattr(v, 'minute', 0):02d}",
    'ss': lambda v: f"{getattr(v, 'second', 0):02d}",
    'SSS': lambda v: f"{getattr(v, 'microsecond', 0) // 1000:03d}",
    'SS': lambda v: f"{getattr(v, 'microsecond', 0) // 10000:02d}",
    'S': lambda v: f"{getattr(v, 'microsecond', 0) // 100000:d}",
}


@lru_cache(maxsize=64)
def compile_layout(layout: str) -> Tuple[Tuple[bool, str], ...]:
    """
    Split a time layout into (is_token, text) parts.

    Tokens are matched longest first, so ``yyyy`` is never read as two ``yy``.
    """
    parts = []
    pos = 0
    for match in TOKEN_PATTERN.finditer(layout):
        if match.start() > pos:
            parts.append((False, layout[pos:match.start()]))
        parts.append((True, match.group()))
        pos = match.end()
    if pos < len(layout):
        parts.append((False, layout[pos:]))
    return tuple(parts)


def render_layout(value, layout: str) -> str:
    """Render a date or datetime with a token layout."""
    return ''.join(_TOKEN_RENDERERS[text](value) if is_token else text
                   for is_token, text in compile_layout(layout))


def extract_date_layout(layout: str) -> str:
    """
    Return the date-only portion of a time layout.

    Finds the rightmost occurrence of each date token and cuts the layout right
    after the one that ends last, so ``yyyy-MM-dd HH:mm:ss`` becomes
    ``yyyy-MM-dd``. Layouts without any date token are returned unchanged.
    """
    last_end = -1
    for token in DATE_TOKENS:
        idx = layout.rfind(token)
        if idx != -1:
            last_end = max(last_end, idx + len(token))
    if last_end == -1:
        return layout
    return layout[:last_end].strip()


@lru_cache(maxsize=32)
def resolve_timezone(name: Optional[str]) -> dt.tzinfo:
    """
    Resolve an IANA zone name, falling back to local time.

    An empty name means local time. Unknown names log a warning once and also
    fall back to local time.
    """
    if not name or not name.strip():
        return tz.tzlocal()
    zone = tz.gettz(name.strip())
    if zone is None:
        logger.warning(f"Invalid time zone '{name}', using local time")
        return tz.tzlocal()
    return zone


def format_float(value: float) -> str:
    """Render a float with 15 significant digits."""
    return format(value, '.15g')


def round_float(value: float) -> float:
    """Round a float to 15 significant digits, keeping it a float."""
    if not math.isfinite(value):
        return value
    return float(format(value, '.15g'))


def format_interval(value: dt.timedelta) -> str:
    """Render a timedelta the way PostgreSQL prints an interval."""
    days = value.days
    seconds = value.seconds
    micros = value.microseconds
    parts = []
    if days:
        parts.append(f"{days} day" if days == 1 else f"{days} days")
    if seconds or micros or not days:
        hours, rest = divmod(seconds, 3600)
        minutes, secs = divmod(rest, 60)
        clock = f"{hours:02d}:{minutes:02d}:{secs:02d}"
        if micros:
            clock += f".{micros:06d}"
        if days < 0:
            clock = '+' + clock
        parts.append(clock)
    return ' '.join(parts)


def _decode_bytes(value) -> str:
    return bytes(value).decode('utf-8', errors='replace')


# ---------------------------------------------------------------------- #
# Per wire type conversions
# ---------------------------------------------------------------------- #

def _convert_date(value, fmt: 'ValueFormatter'):
    if isinstance(value, dt.date):
        return render_layout(value, fmt.date_layout)
    return value


def _convert_timestamp(value, fmt: 'ValueFormatter'):
    if isinstance(value, dt.date):
        return render_layout(value, fmt.time_format)
    return value


def _convert_timestamptz(value, fmt: 'ValueFormatter'):
    if isinstance(value, dt.datetime):
        return render_layout(value.astimezone(fmt.tz), fmt.time_format)
    return value


def _convert_numeric(value, fmt: 'ValueFormatter'):
    try:
        return float(value)
    except (TypeError, ValueError, InvalidOperation, OverflowError):
        return None


def _convert_uuid(value, fmt: 'ValueFormatter'):
    if isinstance(value, uuid.UUID):
        return str(value)
    if isinstance(value, (bytes, bytearray, memoryview)) and len(value) == 16:
        return str(uuid.UUID(bytes=bytes(value)))
    if isinstance(value, str):
        return value.lower()
    return value


def _convert_bytea(value, fmt: 'ValueFormatter'):
    if isinstance(value, (bytes, bytearray, memoryview)):
        return _decode_bytes(value)
    return value


def _convert_interval(value, fmt: 'ValueFormatter'):
    if isinstance(value, dt.timedelta):
        return format_interval(value)
    return str(value)


def _passthrough(value, fmt: 'ValueFormatter'):
    return value


CONVERTERS: Dict[WireType, Callable[[Any, 'ValueFormatter'], Any]] = {
    WireType.DATE: _convert_date,
    WireType.TIMESTAMP: _convert_timestamp,
    WireType.TIMESTAMPTZ: _convert_timestamptz,
    WireType.NUMERIC: _convert_numeric,
    WireType.UUID: _convert_uuid,
    WireType.BYTEA: _convert_bytea,
    WireType.INTERVAL: _convert_interval,
    WireType.JSON: _passthrough,
    WireType.JSONB: _passthrough,
}


class ValueFormatter:
    """
    Normalizes raw cursor values by wire type for one export call.

    Parameters
    ----------
    time_format : str, optional
        Token layout for dates and timestamps (default from settings).
    time_zone : str, optional
        IANA zone applied to ``timestamptz`` values. Empty means local time.
        The zone is only resolved the first time it is needed.
    """

    def __init__(self, time_format: Optional[str] = None, time_zone: Optional[str] = None):
        self.time_format = time_format or settings.get('time_format', 'yyyy-MM-dd HH:mm:ss')
        self.time_zone = time_zone or ''
        self.date_layout = extract_date_layout(self.time_format)
        self._tz = None

    @property
    def tz(self) -> dt.tzinfo:
        if self._tz is None:
            self._tz = resolve_timezone(self.time_zone)
        return self._tz

    def convert(self, value, type_id: WireType):
        """Normalize one value; unknown wire types pass through unchanged."""
        if value is None:
            return None
        return CONVERTERS.get(type_id, _passthrough)(value, self)

    def native(self, value, type_id: WireType):
        """
        Normalize a value for spreadsheet cells.

        Temporal values stay native; zone-aware timestamps are converted to the
        requested zone and made naive since spreadsheets have no zone concept.
        """
        if value is None:
            return None
        if type_id.is_temporal or isinstance(value, (dt.date, dt.time)):
            if isinstance(value, dt.datetime) and value.tzinfo is not None:
                return value.astimezone(self.tz).replace(tzinfo=None)
            if isinstance(value, dt.time) and value.tzinfo is not None:
                return value.replace(tzinfo=None)
            return value
        return self.convert(value, type_id)

    def to_text(self, value, type_id: WireType) -> str:
        return to_text(self.convert(value, type_id), type_id)

    def to_node(self, value, type_id: WireType):
        return to_node(self.convert(value, type_id), type_id)

    def to_sql(self, value, type_id: WireType) -> str:
        return to_sql(value, type_id, self.tz)

    def to_cell(self, value, type_id: WireType):
        return to_cell(self.native(value, type_id), type_id)

    def to_template(self, value, type_id: WireType):
        return to_template(self.convert(value, type_id), type_id)


# ---------------------------------------------------------------------- #
# Target representations (take already normalized values)
# ---------------------------------------------------------------------- #

def _array_element(value) -> str:
    if value is None:
        return 'NULL'
    if isinstance(value, (list, tuple)):
        return _array_text(value)
    return to_text(value, WireType.UNKNOWN)


def _array_text(values) -> str:
    return '{' + ','.join(_array_element(v) for v in values) + '}'


def to_text(value, type_id: WireType = WireType.UNKNOWN) -> str:
    """
    Text for delimited and markup formats (CSV, XML).

    NULL is the empty string, arrays are ``{a,b,c}`` and JSON columns are
    compact JSON text.
    """
    if value is None:
        return ''
    if type_id.is_json and not isinstance(value, str):
        return json_text(value, '[]' if isinstance(value, list) else '{}')
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return 'true' if value else 'false'
    if isinstance(value, float):
        return format_float(value)
    if isinstance(value, (list, tuple)):
        return _array_text(value)
    if isinstance(value, dict):
        return json_text(value)
    if isinstance(value, (bytes, bytearray, memoryview)):
        return _decode_bytes(value)
    if isinstance(value, dt.timedelta):
        return format_interval(value)
    return str(value)


def to_node(value, type_id: WireType = WireType.UNKNOWN):
    """
    Value for node based formats (JSON, YAML).

    JSON columns pass through structurally; anything that is not a native
    JSON type becomes text.
    """
    if value is None or isinstance(value, (bool, int, str)):
        return value
    if isinstance(value, float):
        return round_float(value)
    if type_id.is_json:
        return value
    if isinstance(value, Decimal):
        return _convert_numeric(value, None)
    if isinstance(value, (list, tuple)):
        return [to_node(v) for v in value]
    if isinstance(value, dict):
        return {str(k): to_node(v) for k, v in value.items()}
    return to_text(value, type_id)


def to_cell(value, type_id: WireType = WireType.UNKNOWN):
    """
    Value for spreadsheet cells.

    Temporal and numeric values stay native; JSON and arrays become JSON text.
    """
    if value is None or isinstance(value, (bool, int, str, dt.date, dt.time)):
        return value
    if isinstance(value, float):
        return round_float(value)
    if isinstance(value, Decimal):
        return _convert_numeric(value, None)
    if type_id.is_json or isinstance(value, (list, tuple, dict)):
        return json_text(value, '[]' if isinstance(value, (list, tuple)) else '{}')
    return to_text(value, type_id)


def to_template(value, type_id: WireType = WireType.UNKNOWN):
    """Value exposed to templates: JSON and arrays become JSON text, numbers stay numbers."""
    if value is None or isinstance(value, (bool, int, str)):
        return value
    if isinstance(value, float):
        return round_float(value)
    if type_id.is_json or isinstance(value, (list, tuple, dict)):
        return json_text(value, '[]' if isinstance(value, (list, tuple)) else '{}')
    return to_text(value, type_id)


# ---------------------------------------------------------------------- #
# SQL literals
# ---------------------------------------------------------------------- #

def _sql_float(value: float) -> str:
    if math.isnan(value):
        return "'NaN'::float8"
    if math.isinf(value):
        return "'Infinity'::float8" if value > 0 else "'-Infinity'::float8"
    return format_float(value)


def _sql_offset(value: dt.datetime) -> str:
    offset = value.utcoffset() or dt.timedelta(0)
    total = int(offset.total_seconds()) // 60
    sign = '+' if total >= 0 else '-'
    hours, minutes = divmod(abs(total), 60)
    if minutes:
        return f"{sign}{hours:02d}:{minutes:02d}"
    return f"{sign}{hours:02d}"


def _sql_array_element(value) -> str:
    if value is None:
        return 'NULL'
    if isinstance(value, (list, tuple)):
        return '{' + ','.join(_sql_array_element(v) for v in value) + '}'
    text = to_text(value)
    if text == '' or any(c in text for c in ',{}"\\ ') or text.upper() == 'NULL':
        return '"' + text.replace('\\', '\\\\').replace('"', '\\"') + '"'
    return text


def to_sql(value, type_id: WireType = WireType.UNKNOWN, zone: Optional[dt.tzinfo] = None) -> str:
    """
    Render a raw value as a PostgreSQL literal.

    Temporal values use fixed ISO layouts with explicit casts, independent of
    the user's time layout, so the generated statements load back unchanged.
    """
    if value is None:
        return 'NULL'

    if type_id == WireType.DATE and isinstance(value, dt.date):
        return f"'{value:%Y-%m-%d}'::date"
    if type_id == WireType.TIMESTAMP and isinstance(value, dt.datetime):
        return f"'{value:%Y-%m-%d %H:%M:%S}.{value.microsecond // 1000:03d}'::timestamp"
    if type_id == WireType.TIMESTAMPTZ and isinstance(value, dt.datetime):
        local = value.astimezone(zone) if zone is not None else value
        return (f"'{local:%Y-%m-%d %H:%M:%S}.{local.microsecond // 1000:03d}"
                f"{_sql_offset(local)}'::timestamptz")
    if type_id == WireType.UUID:
        return f"{quote_literal(str(_convert_uuid(value, None)))}::uuid"
    if type_id == WireType.BYTEA and isinstance(value, (bytes, bytearray, memoryview)):
        return f"'\\x{bytes(value).hex()}'::bytea"
    if type_id == WireType.NUMERIC:
        number = _convert_numeric(value, None)
        return 'NULL' if number is None else _sql_float(number)
    if type_id == WireType.INTERVAL:
        return f"{quote_literal(_convert_interval(value, None))}::interval"
    if type_id.is_json:
        cast = 'jsonb' if type_id == WireType.JSONB else 'json'
        text = value if isinstance(value, str) else json_text(value)
        return f"{quote_literal(text)}::{cast}"

    if isinstance(value, bool):
        return 'true' if value else 'false'
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        return _sql_float(value)
    if isinstance(value, Decimal):
        number = _convert_numeric(value, None)
        return 'NULL' if number is None else _sql_float(number)
    if isinstance(value, (list, tuple)):
        return quote_literal('{' + ','.join(_sql_array_element(v) for v in value) + '}')
    if isinstance(value, dict):
        return f"{quote_literal(json_text(value))}::jsonb"
    if isinstance(value, (bytes, bytearray, memoryview)):
        return f"'\\x{bytes(value).hex()}'::bytea"
    if isinstance(value, dt.datetime):
        return quote_literal(value.isoformat(sep=' '))
    if isinstance(value, (dt.date, dt.time)):
        return quote_literal(value.isoformat())
    if isinstance(value, dt.timedelta):
        return f"{quote_literal(format_interval(value))}::interval"
    return quote_literal(str(value))
