# pgxport/validation.py
"""
Checks applied to user input before a connection is opened.

``validate_query`` keeps pgxport read-only: exactly one statement, starting
with SELECT or WITH, and none of the data or schema modifying keywords
outside string literals, quoted identifiers and comments.
"""

import logging
import re

from dateutil import tz

from .exceptions import ConfigurationError
from .formatters import TOKEN_PATTERN

logger = logging.getLogger(__name__)

ALLOWED_COMMANDS = ('SELECT', 'WITH')
FORBIDDEN_COMMANDS = (
    'DELETE', 'DROP', 'TRUNCATE', 'INSERT', 'UPDATE', 'ALTER', 'CREATE',
    'GRANT', 'REVOKE', 'EXECUTE', 'EXEC', 'CALL', 'MERGE', 'COPY',
)

# quoted text first so comment markers inside literals are left alone
_LEXER = re.compile(
    r"(?P<string>'(?:[^']|'')*(?:'|\Z))"
    r'|(?P<ident>"(?:[^"]|"")*(?:"|\Z))'
    r"|(?P<line>--[^\n]*)"
    r"|(?P<block>/\*.*?(?:\*/|\Z))",
    re.DOTALL,
)
_FORBIDDEN_RE = re.compile(r'\b(' + '|'.join(FORBIDDEN_COMMANDS) + r')\b')
_WHITESPACE = re.compile(r'\s+')


def _strip_comments(query: str) -> str:
    def replace(match):
        if match.lastgroup in ('line', 'block'):
            return ' '
        return match.group()
    return _LEXER.sub(replace, query)


def _mask_quoted(query: str) -> str:
    """Blank out string literals and quoted identifiers, keeping offsets."""
    def replace(match):
        return ' ' * len(match.group())
    return _LEXER.sub(replace, query)


def _split_statements(query: str):
    masked = _mask_quoted(query)
    statements = []
    start = 0
    for pos, char in enumerate(masked):
        if char == ';':
            statements.append((query[start:pos], masked[start:pos]))
            start = pos + 1
    statements.append((query[start:], masked[start:]))
    return [(text.strip(), bare) for text, bare in statements if text.strip()]


def validate_query(query: str) -> str:
    """
    Make sure a query is a single read-only statement.

    Returns the query unchanged.

    Raises:
        ConfigurationError: empty query, several statements, a first keyword
            other than SELECT/WITH, or a forbidden keyword anywhere outside
            quotes and comments

    Example:
        validate_query("SELECT 'DROP TABLE x' AS cmd")   # ok, keyword inside a literal
        validate_query("SELECT 1; DROP TABLE users")      # ConfigurationError
    """
    if not query or not query.strip():
        raise ConfigurationError("query cannot be empty")

    statements = _split_statements(_strip_comments(query))
    if not statements:
        raise ConfigurationError("unable to identify SQL command (query contains only comments)")
    if len(statements) > 1:
        raise ConfigurationError("only a single SQL statement is allowed")

    _, bare = statements[0]
    normalized = _WHITESPACE.sub(' ', bare.upper()).strip()
    first = normalized.split(' ', 1)[0].strip(';,()') if normalized else ''
    if not first:
        raise ConfigurationError("unable to identify SQL command in statement 1")
    if first not in ALLOWED_COMMANDS:
        if first in FORBIDDEN_COMMANDS:
            raise ConfigurationError(f"forbidden SQL command detected: {first} (read-only mode)")
        raise ConfigurationError(f"unsupported SQL command: {first} (only SELECT and WITH are allowed)")

    match = _FORBIDDEN_RE.search(normalized)
    if match:
        raise ConfigurationError(f"forbidden SQL command detected: {match.group(1)} "
                                 f"(security: command found in query)")
    logger.debug("Query passed read-only validation")
    return query


def validate_time_format(layout: str) -> str:
    """A time layout must be non-empty and contain at least one token."""
    if not layout or not layout.strip():
        raise ConfigurationError("time format cannot be empty")
    if not TOKEN_PATTERN.search(layout):
        raise ConfigurationError(f"Invalid time format '{layout}'. Use format like 'yyyy-MM-dd HH:mm:ss'")
    return layout


def validate_time_zone(name: str) -> str:
    """Empty means local time; anything else must be a known zone name."""
    if not name:
        return name
    if tz.gettz(name.strip()) is None:
        raise ConfigurationError(f"Invalid timezone '{name}'. Use format like 'UTC' or 'Europe/Paris'")
    return name


def parse_delimiter(delimiter: str) -> str:
    """Single delimiter character; the two characters ``\\t`` mean tab."""
    delim = (delimiter or '').strip()
    if delimiter and not delim:
        # a lone whitespace delimiter such as a literal tab
        delim = delimiter
    if not delim:
        raise ConfigurationError("delimiter cannot be empty")
    if delim == '\\t':
        return '\t'
    if len(delim) != 1:
        raise ConfigurationError("delimiter must be a single character (use \\t for tab)")
    return delim
