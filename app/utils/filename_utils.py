"""
Filename utility functions for download attachments.

This module provides utilities for:
- Turning video titles into filesystem/header-safe filenames
- Encoding filenames for Content-Disposition headers
"""

import re
import unicodedata
from urllib.parse import quote


def sanitize_filename(filename: str, max_length: int = 150) -> str:
    """
    Strip everything but word characters and whitespace from a title, preserving Unicode letters.

    "AC/DC - Thunderstruck (Live)" -> "ACDC  Thunderstruck Live" -> "ACDC Thunderstruck Live"
    """
    filename = unicodedata.normalize('NFC', filename or '')
    filename = re.sub(r'[^\w\s]', '', filename)
    filename = re.sub(r'\s+', ' ', filename).strip()
    if len(filename) > max_length:
        filename = filename[:max_length].rstrip()
    return filename or 'video'


def encode_content_disposition_filename(filename: str) -> str:
    """Encode filename for Content-Disposition header following RFC 5987."""
    # For ASCII filenames, use simple format
    try:
        filename.encode('ascii')
        safe_filename = filename.replace('"', '\\"')
        return f'attachment; filename="{safe_filename}"'
    except UnicodeEncodeError:
        # For Unicode filenames, use RFC 5987 encoding
        encoded_filename = quote(filename, safe='')
        # Also provide ASCII fallback
        ascii_filename = unicodedata.normalize('NFD', filename)
        ascii_filename = ascii_filename.encode('ascii', 'ignore').decode('ascii').strip()
        ascii_filename = ascii_filename.replace('"', '\\"') or 'video'
        return f'attachment; filename="{ascii_filename}"; filename*=UTF-8\'\'{encoded_filename}'
