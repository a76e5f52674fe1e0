"""
Platform utility functions for detecting and parsing video URLs.

This module provides utilities for:
- Telling URLs apart from free-text queries
- Extracting 11-character video IDs from URLs
- Building canonical watch URLs
"""

import re
from typing import Optional


VIDEO_ID_PATTERN = re.compile(r'^[A-Za-z0-9_-]{11}$')

_YOUTUBE_URL_PATTERN = re.compile(
    r'(?:https?://)?(?:www\.|m\.|music\.)?'
    r'(?:youtube(?:-nocookie)?\.com/(?:[^/]+/.+/|(?:v|e(?:mbed)?|shorts|live)/|.*[?&]v=)|youtu\.be/)'
    r'([^"&?/\s]{11})',
    re.IGNORECASE,
)


def is_url(value: str) -> bool:
    return value.startswith("http://") or value.startswith("https://")


def extract_video_id(url: str) -> Optional[str]:
    """
    Extract the 11-character video ID from a watch, short, embed or youtu.be URL.
    Returns None when the URL carries no recognizable ID.
    """
    match = _YOUTUBE_URL_PATTERN.search(url)
    return match.group(1) if match else None


def is_valid_video_id(video_id: str) -> bool:
    return bool(VIDEO_ID_PATTERN.match(video_id or ""))


def build_watch_url(video_id: str) -> str:
    return f"https://www.youtube.com/watch?v={video_id}"
