# pgxport/defaults.py
"""Default settings - no imports to avoid circular dependencies."""

settings = {
    'output_buffer_size': 256 * 1024,  # write buffer between encoders and the output file
    'fetch_batch_size': 1000,          # rows pulled from the cursor per fetchmany()
    'time_format': 'yyyy-MM-dd HH:mm:ss',
    'time_zone': '',                   # empty means local time
    'delimiter': ',',
    'compression': 'none',
    'xml_root_element': 'results',
    'xml_row_element': 'row',
    'rows_per_statement': 1,
    'progress_rows': 10000,            # CSV flush/progress cadence
    'progress_seconds': 2.0,
    'connect_timeout': 10,
    'logging': {
        'directory': None,             # None disables the log file
        'level': 'INFO',
        'format': '%(asctime)s [%(levelname)s] %(name)s: %(message)s',
        'timestamp_format': '%Y-%m-%d %H:%M:%S',
        'filename_format': '%Y%m%d_%H%M%S',  # Set to '' for single log file (no timestamp)
        'console': True,
    }
}
