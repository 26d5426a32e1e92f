# pgxport/utils.py
"""Small helpers shared by the formatters, exporters and database layer."""

import json
import logging
import re
from typing import Any
from urllib.parse import urlsplit, urlunsplit

logger = logging.getLogger(__name__)

_KEYWORD_PASSWORD = re.compile(r"(password\s*=\s*)('[^']*'|\S+)", re.IGNORECASE)


def quote_ident(identifier: str, qualified: bool = True) -> str:
    """
    Quote a possibly schema-qualified identifier for PostgreSQL.

    Each dot-separated segment is wrapped in double quotes, with embedded
    double quotes doubled. Column names are quoted whole (qualified=False).

    Example:
        quote_ident('public.users')  ->  "public"."users"
        quote_ident('we"ird')        ->  "we""ird"
    """
    parts = identifier.split('.') if qualified else [identifier]
    return '.'.join('"' + part.replace('"', '""') + '"' for part in parts)


def quote_literal(text: str) -> str:
    """Single-quote a SQL string literal, doubling embedded quotes."""
    return "'" + text.replace("'", "''") + "'"


def json_text(value: Any, fallback: str = '{}') -> str:
    """
    Serialize a value to compact JSON text.

    Serialization problems are not fatal: the fallback container is returned
    and the failure is logged at debug level.
    """
    try:
        return json.dumps(value, ensure_ascii=False, separators=(',', ':'), allow_nan=False)
    except (TypeError, ValueError) as e:
        logger.debug(f"JSON serialization failed, using {fallback}: {e}")
        return fallback


def sanitize_dsn(dsn: str) -> str:
    """Mask the password of a URL or keyword/value connection string for logging."""
    if '://' in dsn:
        parts = urlsplit(dsn)
        if parts.password:
            netloc = parts.netloc.replace(f":{parts.password}@", ":***@", 1)
            return urlunsplit(parts._replace(netloc=netloc))
        return dsn
    return _KEYWORD_PASSWORD.sub(r"\1***", dsn)
