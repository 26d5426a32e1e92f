# pgxport/exporters/xml.py
"""
XML exporter using lxml's incremental writer.
"""

import logging
import re
from typing import Any, List, Sequence

from lxml import etree

from ..exceptions import ConfigurationError
from .base import BaseExporter

logger = logging.getLogger(__name__)

XML_HEADER = '<?xml version="1.0" encoding="UTF-8"?>\n'
ROW_INDENT = '\n  '
FIELD_INDENT = '\n    '


def _sanitize_element_name(name: str) -> str:
    """
    Sanitize column name to be valid XML element name.

    XML element names must start with a letter or underscore, and can only
    contain letters, digits, hyphens, underscores, and periods.

    Parameters
    ----------
    name : str
        Original column name.

    Returns
    -------
    str
        Valid XML element name
    """
    sanitized = re.sub(r'[^a-zA-Z0-9_.-]', '_', str(name))

    # Ensure it doesn't start with a number, hyphen or period
    if sanitized and (sanitized[0].isdigit() or sanitized[0] in '.-'):
        sanitized = 'col_' + sanitized

    return sanitized or 'unnamed'


class XMLExporter(BaseExporter):
    """
    Streams rows as XML elements.

    Output layout (root and row element names are configurable)::

        <?xml version="1.0" encoding="UTF-8"?>
        <results>
          <row>
            <id>1</id>
            <email></email>
            <tags>["a","b"]</tags>
          </row>
        </results>

    NULL and empty values become an empty element. Values starting with
    ``{`` or ``[`` (json columns, arrays) are written unescaped so the
    embedded JSON stays readable; everything else is escaped normally.
    Column names that are not valid element names are sanitized.
    """

    format_name = 'xml'

    def __init__(self):
        super().__init__()
        self._xmlfile_ctx = None
        self._xf = None
        self._root_ctx = None
        self._tags: List[str] = []

    def _prepare(self) -> None:
        for tag in (self.options.xml_root_element, self.options.xml_row_element):
            if _sanitize_element_name(tag) != tag:
                raise ConfigurationError(f"invalid XML element name '{tag}'")
        self._tags = [_sanitize_element_name(name) for name in self.columns]
        renamed = [f"{old}->{new}" for old, new in zip(self.columns, self._tags) if old != new]
        if renamed:
            logger.debug(f"Sanitized XML element names: {', '.join(renamed)}")

    def _write_header(self) -> None:
        self.sink.write(XML_HEADER)
        self._xmlfile_ctx = etree.xmlfile(self.sink, encoding='utf-8')
        self._xf = self._xmlfile_ctx.__enter__()
        self._root_ctx = self._xf.element(self.options.xml_root_element)
        self._root_ctx.__enter__()
        logger.debug("XML header written")

    def _write_row(self, index: int, values: Sequence[Any]) -> None:
        xf = self._xf
        to_text = self.formatter.to_text
        xf.write(ROW_INDENT)
        with xf.element(self.options.xml_row_element):
            for value, field, tag in zip(values, self.fields, self._tags):
                text = to_text(value, field.type_id)
                xf.write(FIELD_INDENT)
                with xf.element(tag):
                    if not text:
                        continue
                    if text[0] in '{[':
                        # raw content goes straight to the sink after the start tag
                        xf.flush()
                        self.sink.write(text)
                    else:
                        xf.write(text)
            xf.write(ROW_INDENT)

    def _write_footer(self) -> None:
        self._xf.write('\n')
        self._root_ctx.__exit__(None, None, None)
        self._xmlfile_ctx.__exit__(None, None, None)
        self._root_ctx = None
        self._xmlfile_ctx = None
        self.sink.write('\n')
