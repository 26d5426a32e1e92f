# pgxport/exporters/template.py
"""
Template exporter: user-supplied Jinja2 templates drive the output.

Two modes are supported.

**Full mode** renders one template once, after every row has been read::

    {{ Count }} rows generated at {{ GeneratedAt }}
    {% for row in Rows %}{{ get(row, 'name') | upper }}
    {% endfor %}

    Context: Rows, Columns, Count, GeneratedAt

**Streaming mode** renders an optional header template once, the row
template once per row and an optional footer template at the end::

    header:  Columns, GeneratedAt
    row:     row, Columns, Index and every column by name
    footer:  Columns, Count, GeneratedAt

Helpers available everywhere: get, upper, lower, title, trim, replace, join,
split, contains, hasPrefix, hasSuffix, printf, json, jsonPretty, now,
formatTime, eq, ne, add, sub, mul, div.
"""

import datetime as dt
import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import jinja2
from dateutil import parser as date_parser

from ..exceptions import TemplateRenderError
from ..formatters import render_layout
from ..record import Record
from .base import BaseExporter

logger = logging.getLogger(__name__)


def _plain(value: Any) -> Any:
    """Make rows JSON serializable as objects rather than lists."""
    if isinstance(value, Record):
        return {key: _plain(val) for key, val in value.items()}
    if isinstance(value, (list, tuple)):
        return [_plain(v) for v in value]
    return value


def _json(value: Any) -> str:
    try:
        return json.dumps(_plain(value), ensure_ascii=False, separators=(',', ':'))
    except (TypeError, ValueError) as e:
        return f"ERROR: {e}"


def _json_pretty(value: Any) -> str:
    try:
        return json.dumps(_plain(value), ensure_ascii=False, indent=2)
    except (TypeError, ValueError) as e:
        return f"ERROR: {e}"


def _finalize(value: Any) -> Any:
    # NULL prints as nothing
    return '' if value is None else value


def _get(row: Any, key: str) -> Any:
    if hasattr(row, 'get'):
        return row.get(key)
    return getattr(row, key, None)


def _join(items, sep: str = '') -> str:
    return sep.join('' if item is None else str(item) for item in items)


def _printf(fmt: str, *args) -> str:
    return fmt.replace('%v', '%s') % args


def _now() -> dt.datetime:
    return dt.datetime.now().astimezone()


def _format_time(value: Any, layout: str) -> str:
    if isinstance(value, str):
        value = date_parser.parse(value)
    return render_layout(value, layout)


def _div(a, b):
    if b == 0:
        return 0
    if isinstance(a, int) and isinstance(b, int):
        quotient = abs(a) // abs(b)
        return quotient if (a >= 0) == (b > 0) else -quotient
    return a / b


TEMPLATE_HELPERS: Dict[str, Any] = {
    'get': _get,
    'upper': lambda s: str(s).upper(),
    'lower': lambda s: str(s).lower(),
    'title': lambda s: str(s).title(),
    'trim': lambda s: str(s).strip(),
    'replace': lambda s, old, new: str(s).replace(old, new),
    'join': _join,
    'split': lambda s, sep: str(s).split(sep),
    'contains': lambda s, sub: sub in str(s),
    'hasPrefix': lambda s, prefix: str(s).startswith(prefix),
    'hasSuffix': lambda s, suffix: str(s).endswith(suffix),
    'printf': _printf,
    'json': _json,
    'jsonPretty': _json_pretty,
    'now': _now,
    'formatTime': _format_time,
    'eq': lambda a, b: a == b,
    'ne': lambda a, b: a != b,
    'add': lambda a, b: a + b,
    'sub': lambda a, b: a - b,
    'mul': lambda a, b: a * b,
    'div': _div,
}


def create_environment(search_paths: Sequence[str] = ()) -> jinja2.Environment:
    """Jinja2 environment for plain-text output with the helper functions installed."""
    env = jinja2.Environment(
        loader=jinja2.FileSystemLoader(list(search_paths) or ['.']),
        autoescape=False,
        keep_trailing_newline=True,
        finalize=_finalize,
    )
    env.globals.update(TEMPLATE_HELPERS)
    for name, helper in TEMPLATE_HELPERS.items():
        # builtin filters with the same name (upper, join, ...) are kept
        env.filters.setdefault(name, helper)
    return env


def load_template(env: jinja2.Environment, path: str, required: bool = False) -> Optional[jinja2.Template]:
    """
    Read and compile a template file.

    Returns None for an empty optional path.

    Raises:
        TemplateRenderError: missing required path, unreadable file or syntax error
    """
    if not path or not path.strip():
        if required:
            raise TemplateRenderError("template file path is empty")
        return None
    try:
        source = Path(path).read_text(encoding='utf-8')
    except OSError as e:
        raise TemplateRenderError(f"failed to read template file '{path}': {e}") from e
    try:
        return env.from_string(source)
    except jinja2.TemplateError as e:
        raise TemplateRenderError(f"failed to parse template '{path}': {e}") from e


class TemplateExporter(BaseExporter):
    """
    Renders rows through user templates in full or streaming mode.

    Values reach the templates already formatted: dates and timestamps use
    the time layout, numbers stay numbers, json columns and arrays are JSON
    text and NULL is ``None``.

    Notes
    -----
    Full mode keeps every row in memory until the template is rendered.
    Streaming mode writes each rendered row immediately.
    """

    format_name = 'template'

    def __init__(self):
        super().__init__()
        self.env: Optional[jinja2.Environment] = None
        self._full = None
        self._header = None
        self._row = None
        self._footer = None
        self._rows: List[Record] = []
        self._generated_at = ''

    @property
    def streaming(self) -> bool:
        return bool(self.options and self.options.template_streaming)

    def _prepare(self) -> None:
        options = self.options
        paths = [options.template_file, options.template_header, options.template_row, options.template_footer]
        search_paths = []
        for path in paths:
            if path and path.strip():
                parent = str(Path(path).parent)
                if parent not in search_paths:
                    search_paths.append(parent)
        self.env = create_environment(search_paths)

        if self.streaming:
            self._header = load_template(self.env, options.template_header)
            self._row = load_template(self.env, options.template_row, required=True)
            self._footer = load_template(self.env, options.template_footer)
        else:
            self._full = load_template(self.env, options.template_file, required=True)
        self._rows = []
        logger.debug(f"Loaded templates ({'streaming' if self.streaming else 'full'} mode)")

    def _render(self, template: jinja2.Template, what: str, context: Dict[str, Any]) -> None:
        try:
            for chunk in template.generate(context):
                self.sink.write(chunk)
        except jinja2.TemplateError as e:
            raise TemplateRenderError(f"error executing {what} template: {e}") from e

    def _write_header(self) -> None:
        self._generated_at = _now().isoformat(timespec='seconds')
        if self.streaming and self._header is not None:
            self._render(self._header, 'header', {'Columns': self.columns, 'GeneratedAt': self._generated_at})

    def _template_record(self, values: Sequence[Any]) -> Record:
        to_template = self.formatter.to_template
        return self._record([to_template(value, field.type_id) for value, field in zip(values, self.fields)])

    def _write_row(self, index: int, values: Sequence[Any]) -> None:
        record = self._template_record(values)
        if not self.streaming:
            self._rows.append(record)
            return
        context = dict(record.items())
        context.update(row=record, Columns=self.columns, Index=index)
        for chunk in self._row.generate(context):
            self.sink.write(chunk)

    def _write_footer(self) -> None:
        if self.streaming:
            if self._footer is not None:
                self._render(self._footer, 'footer', {'Columns': self.columns, 'Count': self.row_count,
                                                      'GeneratedAt': self._generated_at})
            return
        self._render(self._full, 'full', {'Rows': self._rows, 'Columns': self.columns,
                                          'Count': self.row_count, 'GeneratedAt': self._generated_at})
        self._rows = []
