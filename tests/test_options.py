# tests/test_options.py
import dataclasses

import pytest

from pgxport.defaults import settings
from pgxport.exceptions import ConfigurationError
from pgxport.options import ExportOptions, options_from_settings


class TestExportOptions:
    """Option snapshot and validation."""

    def test_normalized_on_creation(self):
        """Test that format and compression are normalized."""
        options = ExportOptions(format=' JSON ', output_path='out.json', compression='GZIP')
        assert options.format == 'json'
        assert options.compression == 'gzip'

    def test_frozen(self):
        """Test that options cannot be modified in place."""
        options = ExportOptions(output_path='out.csv')
        with pytest.raises(dataclasses.FrozenInstanceError):
            options.delimiter = ';'
        changed = options.with_changes(delimiter=';')
        assert changed.delimiter == ';'
        assert options.delimiter == ','

    @pytest.mark.parametrize('changes, message', [
        ({'output_path': ''}, 'output path is required'),
        ({'compression': 'rar'}, 'unsupported compression'),
        ({'delimiter': ';;'}, 'single character'),
        ({'rows_per_statement': 0}, 'at least 1'),
        ({'format': 'sql'}, 'table name is required'),
        ({'format': 'xml', 'xml_row_element': ' '}, 'must not be empty'),
        ({'format': 'template'}, 'template file path is empty'),
        ({'format': 'template', 'template_row': 'row.j2'}, 'without streaming mode'),
        ({'format': 'template', 'template_streaming': True}, 'row template is required'),
        ({'format': 'template', 'template_streaming': True, 'template_row': 'r.j2',
          'template_file': 'full.j2'}, 'not both'),
    ])
    def test_validate_errors(self, changes, message):
        """Test each invalid combination."""
        options = ExportOptions(output_path='out.dat').with_changes(**changes)
        with pytest.raises(ConfigurationError, match=message):
            options.validate()

    def test_validate_returns_self(self):
        """Test chaining validate()."""
        options = ExportOptions(format='sql', output_path='out.sql', table_name='benders')
        assert options.validate() is options

    def test_describe(self):
        """Test the plain dict view."""
        described = ExportOptions(output_path='out.csv').describe()
        assert described['output_path'] == 'out.csv'
        assert described['template_streaming'] is False


class TestOptionsFromSettings:
    """Options seeded from configuration."""

    def test_settings_seed_values(self):
        """Test that settings supply defaults for missing flags."""
        settings['time_zone'] = 'Asia/Tokyo'
        settings['rows_per_statement'] = 50
        options = options_from_settings('sql', 'out.sql', {'table_name': 'benders'})
        assert options.time_zone == 'Asia/Tokyo'
        assert options.rows_per_statement == 50

    def test_overrides_win_unless_none(self):
        """Test that explicit values override settings and None does not."""
        settings['delimiter'] = ';'
        options = options_from_settings('csv', 'out.csv', {'delimiter': None, 'no_header': True})
        assert options.delimiter == ';'
        assert options.no_header is True
        options = options_from_settings('csv', 'out.csv', {'delimiter': '|'})
        assert options.delimiter == '|'
