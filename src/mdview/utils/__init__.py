"""Utility modules for mdview.

Provides:
- text: escaping, unescaping, URL encoding and slugify
- logger: get_logger for logging
"""

from mdview.utils.logger import get_logger
from mdview.utils.text import (
    escape_html,
    normalize_label,
    percent_encode_url,
    slugify,
    unescape_string,
)

__all__ = [
    "escape_html",
    "get_logger",
    "normalize_label",
    "percent_encode_url",
    "slugify",
    "unescape_string",
]
