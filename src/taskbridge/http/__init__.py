"""
Helpers HTTP de taskbridge.
"""

from .download import DownloadResult, http_download, format_size, format_time, resolve_filename

__all__ = [
    "DownloadResult",
    "http_download",
    "format_size",
    "format_time",
    "resolve_filename",
]
