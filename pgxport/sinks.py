# pgxport/sinks.py
"""
Output sinks: buffered and optionally compressed write destinations.

A sink is an explicit, ordered chain of layers. Writes go to the first
(innermost) layer; closing walks the chain in the same order, so a compressor
flushes its trailer into the buffer before the buffer is flushed to the file::

    none   ->  [BufferedWriter, FileIO]
    gzip   ->  [GzipFile, BufferedWriter, FileIO]
    zstd   ->  [ZstdCompressionWriter, BufferedWriter, FileIO]
    lz4    ->  [LZ4FrameFile, BufferedWriter, FileIO]
    zip    ->  [ZipExtFile (entry), ZipFile, BufferedWriter, FileIO]

Example
-------
::

    from pgxport.sinks import create_sink

    with create_sink('out/users.csv', 'gzip', 'csv') as sink:
        sink.write('id,name\\n')
    print(sink.path)   # out/users.csv.gz
"""

import gzip
import io
import logging
import os
import time
import zipfile
from typing import Any, List, Optional, Tuple, Union

import lz4.frame
import zstandard

from .defaults import settings
from .exceptions import ConfigurationError, SinkError

logger = logging.getLogger(__name__)

NONE = 'none'
GZIP = 'gzip'
ZIP = 'zip'
ZSTD = 'zstd'
LZ4 = 'lz4'

COMPRESSION_TYPES = (NONE, GZIP, ZIP, ZSTD, LZ4)

COMPRESSION_EXTENSIONS = {
    GZIP: '.gz',
    ZSTD: '.zst',
    LZ4: '.lz4',
    ZIP: '.zip',
}


def normalize_compression(compression: Optional[str]) -> str:
    """Lower-case and trim a compression name; empty means 'none'."""
    name = (compression or NONE).strip().lower()
    return name or NONE


def zip_entry_name(output_path: str, fmt: str) -> str:
    """
    Name of the single entry inside a zip archive.

    The base name is lower-cased and stripped of a ``.zip`` suffix, falls back
    to ``export`` when nothing is left, and gets the format's extension unless
    it already has it. Template output has no canonical extension.

    Example:
        zip_entry_name('/path/to/DATA.ZIP', 'json')    ->  'data.json'
        zip_entry_name('output.csv.zip', 'csv')        ->  'output.csv'
        zip_entry_name('/path/to/.zip', 'csv')         ->  'export.csv'
    """
    name = os.path.basename(output_path).lower()
    if name.endswith('.zip'):
        name = name[:-len('.zip')]
    if not name:
        name = 'export'
    fmt = (fmt or '').lower()
    if fmt and fmt != 'template' and not name.endswith('.' + fmt):
        name = f"{name}.{fmt}"
    return name


def fix_extension(path: str, extension: str) -> str:
    """
    Replace the path's last extension with ``extension`` unless it already matches.

    Example:
        fix_extension('data', '.zip')          ->  'data.zip'
        fix_extension('data.csv', '.zip')      ->  'data.zip'
        fix_extension('data.csv.zip', '.zip')  ->  'data.csv.zip'
    """
    base = os.path.basename(path)
    dot = base.rfind('.')
    current = base[dot:] if dot != -1 else ''
    if current.lower() == extension.lower():
        return path
    return path[:len(path) - len(current)] + extension


def ensure_suffix(path: str, suffix: str) -> str:
    """Append suffix unless the path already ends with it (case-insensitive)."""
    if path.lower().endswith(suffix.lower()):
        return path
    return path + suffix


class OutputSink:
    """
    Exclusive write destination for one export.

    Parameters
    ----------
    path : str
        Final location of the artifact (after any extension rewrite).
    layers : list
        File-like layers, innermost first. ``write`` targets ``layers[0]``.
    compression : str
        Compression name, for logging.

    Notes
    -----
    ``close`` is effective exactly once. Every layer is closed even when an
    earlier one fails; the first failure is raised afterwards as a
    ``SinkError``.
    """

    def __init__(self, path: str, layers: List[Any], compression: str = NONE):
        self.path = path
        self.compression = compression
        self._layers = layers
        self._closed = False
        self._opened_at = time.monotonic()
        self.bytes_written = 0

    @property
    def closed(self) -> bool:
        return self._closed

    def writable(self) -> bool:
        return not self._closed

    def write(self, data: Union[str, bytes]) -> int:
        """Write text (UTF-8 encoded) or bytes; returns the number of bytes written."""
        if self._closed:
            raise SinkError(f"write to closed output {self.path}", self.path)
        if isinstance(data, str):
            data = data.encode('utf-8')
        try:
            self._layers[0].write(data)
        except Exception as e:
            raise SinkError(f"error writing to {self.path}: {e}", self.path) from e
        size = len(data)
        self.bytes_written += size
        return size

    def flush(self) -> None:
        """Flush every layer that can be flushed, innermost first."""
        if self._closed:
            return
        for layer in self._layers:
            flush = getattr(layer, 'flush', None)
            if flush is None:
                continue
            try:
                flush()
            except Exception as e:
                raise SinkError(f"error flushing {self.path}: {e}", self.path) from e

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        first_error: Optional[BaseException] = None
        for layer in self._layers:
            try:
                layer.close()
            except Exception as e:
                logger.debug(f"Error closing {type(layer).__name__} for {self.path}: {e}")
                if first_error is None:
                    first_error = e
        if first_error is not None:
            raise SinkError(f"error closing {self.path}: {first_error}", self.path) from first_error
        logger.debug(f"Closed {self.path} ({self.compression}) in "
                     f"{time.monotonic() - self._opened_at:.3f}s")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def __repr__(self) -> str:
        return f"OutputSink({self.path!r}, compression={self.compression!r})"


def _open_file(path: str, buffer_size: int) -> List[Any]:
    raw = io.FileIO(path, 'w')
    return [io.BufferedWriter(raw, buffer_size), raw]


def _close_all(layers: List[Any]) -> None:
    for layer in layers:
        try:
            layer.close()
        except Exception as e:
            logger.debug(f"Ignoring close error during cleanup: {e}")


def _build_layers(path: str, compression: str, fmt: str, buffer_size: int) -> Tuple[str, List[Any]]:
    if compression == ZIP:
        final_path = fix_extension(path, COMPRESSION_EXTENSIONS[ZIP])
    elif compression in (GZIP, ZSTD, LZ4):
        final_path = ensure_suffix(path, COMPRESSION_EXTENSIONS[compression])
    else:
        final_path = path

    logger.debug(f"Creating {compression} output file: {final_path}")
    layers = _open_file(final_path, buffer_size)
    buffered = layers[0]
    try:
        if compression == GZIP:
            layers.insert(0, gzip.GzipFile(fileobj=buffered, mode='wb'))
        elif compression == ZSTD:
            compressor = zstandard.ZstdCompressor()
            layers.insert(0, compressor.stream_writer(buffered, closefd=False))
        elif compression == LZ4:
            layers.insert(0, lz4.frame.LZ4FrameFile(buffered, mode='wb'))
        elif compression == ZIP:
            archive = zipfile.ZipFile(buffered, mode='w', compression=zipfile.ZIP_DEFLATED)
            layers.insert(0, archive)
            entry_name = zip_entry_name(path, fmt)
            logger.debug(f"Creating zip entry: {entry_name}")
            layers.insert(0, archive.open(entry_name, mode='w', force_zip64=True))
    except Exception:
        _close_all(layers)
        raise
    return final_path, layers


def create_sink(path: str, compression: Optional[str] = NONE, fmt: str = '',
                buffer_size: Optional[int] = None) -> OutputSink:
    """
    Create the output sink for one export.

    Args:
        path: Requested output path
        compression: One of none, gzip, zip, zstd, lz4 (case-insensitive)
        fmt: Logical format name, used to name the zip entry
        buffer_size: Write buffer size in bytes (defaults to 256 KB)

    Returns:
        OutputSink whose ``path`` is the artifact's real location

    Raises:
        ConfigurationError: unsupported compression type
        SinkError: the file or a compression layer could not be created
    """
    name = normalize_compression(compression)
    if name not in COMPRESSION_TYPES:
        raise ConfigurationError(f"unsupported compression type '{compression}' "
                                 f"(available: {', '.join(COMPRESSION_TYPES)})")
    if buffer_size is None:
        buffer_size = settings.get('output_buffer_size', 256 * 1024)
    path = os.fspath(path)
    try:
        final_path, layers = _build_layers(path, name, fmt, buffer_size)
    except Exception as e:
        raise SinkError(f"error creating output file {path}: {e}", path) from e
    return OutputSink(final_path, layers, name)
