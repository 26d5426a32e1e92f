# pgxport/options.py
"""Immutable per-call export configuration."""

from dataclasses import dataclass, fields, replace
from typing import Optional

from .defaults import settings
from .exceptions import ConfigurationError
from .sinks import COMPRESSION_TYPES, normalize_compression


@dataclass(frozen=True)
class ExportOptions:
    """
    Snapshot of everything an exporter needs to know for one export.

    Built once (normally by the command line layer) and never modified
    afterwards; use ``with_changes`` to derive a variant.

    Attributes
    ----------
    format : str
        Registered exporter name (csv, json, xml, yaml, sql, xlsx, template)
    output_path : str
        Requested output path. Compression may rewrite its extension.
    delimiter : str
        CSV field delimiter, exactly one character
    compression : str
        none, gzip, zip, zstd or lz4
    time_format : str
        Token layout for dates and timestamps (yyyy, MM, dd, HH, mm, ss, SSS, ...)
    time_zone : str
        IANA zone for timestamptz values; empty means local time
    no_header : bool
        Omit the header row (CSV, XLSX)
    xml_root_element, xml_row_element : str
        Element names wrapping the document and each row
    table_name : str
        Target table for SQL output, optionally schema-qualified
    rows_per_statement : int
        Rows per generated INSERT statement
    template_file : str
        Full-mode template
    template_header, template_row, template_footer : str
        Streaming-mode templates; the row template is required in that mode
    template_streaming : bool
        Render the row template once per row instead of one full template
    """
    format: str = 'csv'
    output_path: str = ''
    delimiter: str = ','
    compression: str = 'none'
    time_format: str = settings.get('time_format', 'yyyy-MM-dd HH:mm:ss')
    time_zone: str = ''
    no_header: bool = False
    xml_root_element: str = settings.get('xml_root_element', 'results')
    xml_row_element: str = settings.get('xml_row_element', 'row')
    table_name: str = ''
    rows_per_statement: int = 1
    template_file: str = ''
    template_header: str = ''
    template_row: str = ''
    template_footer: str = ''
    template_streaming: bool = False

    def __post_init__(self):
        object.__setattr__(self, 'format', (self.format or '').strip().lower())
        object.__setattr__(self, 'compression', normalize_compression(self.compression))

    def with_changes(self, **changes) -> 'ExportOptions':
        return replace(self, **changes)

    def validate(self) -> 'ExportOptions':
        """
        Check option combinations that would make the export fail.

        Returns self so calls can be chained.

        Raises:
            ConfigurationError: describing the first problem found
        """
        if not self.output_path:
            raise ConfigurationError("output path is required")
        if self.compression not in COMPRESSION_TYPES:
            raise ConfigurationError(f"unsupported compression type '{self.compression}' "
                                     f"(available: {', '.join(COMPRESSION_TYPES)})")
        if len(self.delimiter) != 1:
            raise ConfigurationError(f"delimiter must be a single character, got '{self.delimiter}'")
        if self.rows_per_statement < 1:
            raise ConfigurationError(f"rows per statement must be at least 1, got {self.rows_per_statement}")
        if self.format == 'sql' and not self.table_name.strip():
            raise ConfigurationError("table name is required for SQL export")
        if self.format == 'xml':
            if not self.xml_root_element.strip() or not self.xml_row_element.strip():
                raise ConfigurationError("XML root and row element names must not be empty")
        if self.format == 'template':
            self._validate_template()
        return self

    def _validate_template(self) -> None:
        if self.template_streaming:
            if self.template_file:
                raise ConfigurationError("use either a full template file or streaming templates, not both")
            if not self.template_row:
                raise ConfigurationError("template file path is empty (row template is required in streaming mode)")
        else:
            if self.template_row or self.template_header or self.template_footer:
                raise ConfigurationError("streaming templates given without streaming mode")
            if not self.template_file:
                raise ConfigurationError("template file path is empty")

    def describe(self) -> dict:
        """Options as a plain dict, for debug logging."""
        return {f.name: getattr(self, f.name) for f in fields(self)}


def options_from_settings(format: str, output_path: str, overrides: Optional[dict] = None) -> ExportOptions:
    """Build options seeded from the current settings, then apply overrides."""
    seed = {
        'delimiter': settings.get('delimiter', ','),
        'compression': settings.get('compression', 'none'),
        'time_format': settings.get('time_format', 'yyyy-MM-dd HH:mm:ss'),
        'time_zone': settings.get('time_zone', ''),
        'xml_root_element': settings.get('xml_root_element', 'results'),
        'xml_row_element': settings.get('xml_row_element', 'row'),
        'rows_per_statement': settings.get('rows_per_statement', 1),
    }
    seed.update({key: val for key, val in (overrides or {}).items() if val is not None})
    return ExportOptions(format=format, output_path=output_path, **seed)
