# tests/test_sinks.py
import gzip
import zipfile
from unittest.mock import Mock

import lz4.frame
import pytest
import zstandard

from pgxport.exceptions import ConfigurationError, SinkError
from pgxport.sinks import (
    OutputSink, create_sink, ensure_suffix, fix_extension, normalize_compression, zip_entry_name
)

PAYLOAD = 'id,name\n1,Aang\n2,Katara\n3,Sokka\n'


class TestNaming:
    """Path and entry name helpers."""

    @pytest.mark.parametrize('path, fmt, expected', [
        ('/path/to/DATA.ZIP', 'json', 'data.json'),
        ('output.csv.zip', 'csv', 'output.csv'),
        ('/path/to/.zip', 'csv', 'export.csv'),
        ('report', 'xlsx', 'report.xlsx'),
        ('notes.zip', 'template', 'notes'),
    ])
    def test_zip_entry_name(self, path, fmt, expected):
        """Test the single entry name inside zip archives."""
        assert zip_entry_name(path, fmt) == expected

    @pytest.mark.parametrize('path, expected', [
        ('data', 'data.zip'),
        ('data.csv', 'data.zip'),
        ('data.csv.zip', 'data.csv.zip'),
        ('out/DATA.ZIP', 'out/DATA.ZIP'),
    ])
    def test_fix_extension(self, path, expected):
        """Test replacing the last extension with .zip."""
        assert fix_extension(path, '.zip') == expected

    def test_ensure_suffix(self):
        """Test that stream compressors append their suffix once."""
        assert ensure_suffix('users.csv', '.gz') == 'users.csv.gz'
        assert ensure_suffix('users.csv.GZ', '.gz') == 'users.csv.GZ'

    def test_normalize_compression(self):
        """Test case and whitespace handling of compression names."""
        assert normalize_compression(' GZIP ') == 'gzip'
        assert normalize_compression('') == 'none'
        assert normalize_compression(None) == 'none'


class TestCreateSink:
    """Sink creation for every compression mode."""

    def test_plain_file(self, tmp_path):
        """Test writing text and bytes without compression."""
        path = tmp_path / 'users.csv'
        with create_sink(str(path), 'none', 'csv') as sink:
            assert sink.write('id,name\n') == 8
            sink.write(b'1,Aang\n')
        assert sink.path == str(path)
        assert sink.bytes_written == 15
        assert path.read_text() == 'id,name\n1,Aang\n'

    def test_gzip_round_trip(self, tmp_path):
        """Test gzip output readable by the standard decoder."""
        with create_sink(str(tmp_path / 'users.csv'), 'gzip', 'csv') as sink:
            sink.write(PAYLOAD)
        assert sink.path.endswith('users.csv.gz')
        with gzip.open(sink.path, 'rt') as fh:
            assert fh.read() == PAYLOAD

    def test_zstd_round_trip(self, tmp_path):
        """Test zstd output readable by zstandard."""
        with create_sink(str(tmp_path / 'users.csv'), 'zstd', 'csv') as sink:
            sink.write(PAYLOAD)
        assert sink.path.endswith('users.csv.zst')
        with open(sink.path, 'rb') as fh:
            data = zstandard.ZstdDecompressor().stream_reader(fh).read()
        assert data.decode('utf-8') == PAYLOAD

    def test_lz4_round_trip(self, tmp_path):
        """Test lz4 frame output."""
        with create_sink(str(tmp_path / 'users.csv'), 'lz4', 'csv') as sink:
            sink.write(PAYLOAD)
        assert sink.path.endswith('users.csv.lz4')
        with lz4.frame.open(sink.path, mode='rb') as fh:
            assert fh.read().decode('utf-8') == PAYLOAD

    def test_zip_round_trip(self, tmp_path):
        """Test zip archive with exactly one named entry."""
        with create_sink(str(tmp_path / 'users.csv'), 'zip', 'csv') as sink:
            sink.write(PAYLOAD)
        assert sink.path == str(tmp_path / 'users.zip')
        with zipfile.ZipFile(sink.path) as archive:
            assert archive.namelist() == ['users.csv']
            assert archive.read('users.csv').decode('utf-8') == PAYLOAD

    def test_unsupported_compression(self, tmp_path):
        """Test that an unknown compression is a configuration error."""
        with pytest.raises(ConfigurationError, match='unsupported compression'):
            create_sink(str(tmp_path / 'x.csv'), 'bzip2', 'csv')
        assert not (tmp_path / 'x.csv').exists()

    def test_missing_directory(self, tmp_path):
        """Test that creation failures become SinkError with the path."""
        path = str(tmp_path / 'missing' / 'x.csv')
        with pytest.raises(SinkError) as exc_info:
            create_sink(path, 'none', 'csv')
        assert exc_info.value.path == path
        assert isinstance(exc_info.value, OSError)


class TestOutputSink:
    """Close-once and error semantics."""

    def test_close_is_idempotent(self, tmp_path):
        """Test that a second close is a no-op."""
        sink = create_sink(str(tmp_path / 'a.txt'))
        sink.close()
        sink.close()
        assert sink.closed

    def test_write_after_close(self, tmp_path):
        """Test that writing to a closed sink fails."""
        sink = create_sink(str(tmp_path / 'a.txt'))
        sink.close()
        with pytest.raises(SinkError, match='closed'):
            sink.write('late')

    def test_close_continues_after_layer_failure(self):
        """Test that every layer is closed and the first failure reported."""
        broken = Mock()
        broken.close.side_effect = IOError('disk full')
        inner = Mock()
        sink = OutputSink('/tmp/x', [broken, inner])
        with pytest.raises(SinkError, match='disk full'):
            sink.close()
        inner.close.assert_called_once()
        sink.close()
        broken.close.assert_called_once()

    def test_write_failure_wrapped(self):
        """Test that layer write errors become SinkError."""
        layer = Mock()
        layer.write.side_effect = OSError('broken pipe')
        sink = OutputSink('/tmp/x', [layer])
        with pytest.raises(SinkError, match='broken pipe'):
            sink.write('data')

    def test_flush_reaches_every_layer(self):
        """Test that flush walks all layers."""
        first, second = Mock(), Mock()
        sink = OutputSink('/tmp/x', [first, second])
        sink.flush()
        first.flush.assert_called_once()
        second.flush.assert_called_once()
