"""
Persistence layer for run output.

This package decides where run artifacts live on disk and wraps the file
operations the runner needs.
"""

from .output_store import (
    CAPTURE_SUFFIX,
    OUTPUT_ROOT,
    SCREENSHOTS_DIR,
    TEMP_VIDEO_DIR,
    OutputStore,
    copy_file,
    delete_file,
    ensure_directory,
    generate_timestamp,
    list_directories,
    list_files,
    read_text,
    write_text,
)

__all__ = [
    'CAPTURE_SUFFIX',
    'OUTPUT_ROOT',
    'SCREENSHOTS_DIR',
    'TEMP_VIDEO_DIR',
    'OutputStore',
    'copy_file',
    'delete_file',
    'ensure_directory',
    'generate_timestamp',
    'list_directories',
    'list_files',
    'read_text',
    'write_text',
]
