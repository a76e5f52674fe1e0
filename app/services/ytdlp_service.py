"""
YT-DLP service module.

Wraps the yt-dlp Python API as the search provider and media resolver:
- search: "ytsearchN:" flat extraction, or single-video extraction for URL queries
- video info: metadata plus audio-only / video-only format descriptors
- stream resolution: direct media URL for a format selector
- MP3 conversion: download best audio and convert with the FFmpegExtractAudio post-processor
"""

import os
import tokenize
import uuid
import logging
from typing import Any, Dict, List, Optional

import yt_dlp
from yt_dlp.utils import DownloadError

from app.config import TEMP_DIR, YTDLP_COOKIES_FILE
from app.models import AudioFormat, VideoFormat, VideoInfo, VideoSearchResult
from app.utils.platform_utils import build_watch_url, extract_video_id, is_url
from app.utils.timestamp_utils import format_duration

logger = logging.getLogger(__name__)

# yt-dlp parses the format selector in the YoutubeDL constructor and raises
# SyntaxError or tokenize.TokenError for a malformed one
EXTRACTION_ERRORS = (DownloadError, SyntaxError, tokenize.TokenError)


class InvalidVideoUrl(ValueError):
    """Search query looked like a URL but carried no video ID."""


class VideoUnavailable(Exception):
    """yt-dlp could not extract the requested video."""


def _ydl_opts(**extra) -> Dict[str, Any]:
    """Base yt-dlp options shared by every call."""
    opts = {'quiet': True, 'no_warnings': True, 'skip_download': True}
    if YTDLP_COOKIES_FILE and os.path.exists(YTDLP_COOKIES_FILE):
        opts['cookiefile'] = YTDLP_COOKIES_FILE
    opts.update(extra)
    return opts


def _extract(target: str, **extra) -> Dict[str, Any]:
    try:
        with yt_dlp.YoutubeDL(_ydl_opts(**extra)) as ydl:
            info = ydl.extract_info(target, download=False)
    except EXTRACTION_ERRORS as e:
        raise VideoUnavailable(str(e)) from e
    if not info:
        raise VideoUnavailable(f"No information returned for {target}")
    return info


def _pick_thumbnail(entry: Dict[str, Any]) -> Optional[str]:
    if entry.get("thumbnail"):
        return entry["thumbnail"]
    thumbnails = entry.get("thumbnails") or []
    return thumbnails[-1].get("url") if thumbnails else None


def _to_search_result(entry: Dict[str, Any]) -> VideoSearchResult:
    video_id = entry["id"]
    duration = entry.get("duration")
    return VideoSearchResult(
        id=video_id,
        name=entry.get("title"),
        description=entry.get("description"),
        url=build_watch_url(video_id),
        views=entry.get("view_count"),
        published=entry.get("upload_date"),
        author=entry.get("channel") or entry.get("uploader"),
        duration=format_duration(duration),
        duration_seconds=int(duration) if duration is not None else None,
        thumbnail=_pick_thumbnail(entry),
        is_live=entry.get("live_status") == "is_live" or bool(entry.get("is_live")),
    )


def search_videos(query: str, limit: int) -> List[VideoSearchResult]:
    """
    Search for videos.

    URL queries are reduced to their video ID and resolved directly.

    Raises:
        InvalidVideoUrl: URL query without a recognizable video ID
        VideoUnavailable: provider failure
    """
    if is_url(query):
        video_id = extract_video_id(query)
        if not video_id:
            raise InvalidVideoUrl("Invalid YouTube URL")
        info = _extract(build_watch_url(video_id))
        return [_to_search_result(info)]

    info = _extract(f"ytsearch{limit}:{query}", extract_flat="in_playlist")
    results = []
    for entry in info.get("entries") or []:
        # Flat search results also contain channels and playlists
        if not entry or not entry.get("id") or entry.get("ie_key", "Youtube") != "Youtube":
            continue
        results.append(_to_search_result(entry))
    logger.info(f"Search '{query}' returned {len(results)} videos")
    return results


def _audio_only(fmt: Dict[str, Any]) -> bool:
    return fmt.get("vcodec") == "none" and fmt.get("acodec") not in (None, "none")


def _video_only(fmt: Dict[str, Any]) -> bool:
    return fmt.get("acodec") == "none" and fmt.get("vcodec") not in (None, "none")


def _audio_and_video(fmt: Dict[str, Any]) -> bool:
    return fmt.get("acodec") not in (None, "none") and fmt.get("vcodec") not in (None, "none")


def get_video_info(video_id: str) -> VideoInfo:
    """Metadata and format descriptors for one video."""
    info = _extract(build_watch_url(video_id))
    formats = info.get("formats") or []

    audio = [
        AudioFormat(
            format_id=str(f.get("format_id")),
            quality=f.get("format_note") or "unknown",
            codec=f.get("acodec"),
            bitrate=f.get("abr"),
            container=f.get("ext"),
            url=f.get("url"),
        )
        for f in formats if _audio_only(f)
    ]
    video = [
        VideoFormat(
            format_id=str(f.get("format_id")),
            quality=f.get("format_note") or (f"{f['height']}p" if f.get("height") else None),
            codec=f.get("vcodec"),
            container=f.get("ext"),
            url=f.get("url"),
        )
        for f in formats if _video_only(f)
    ]

    duration = info.get("duration")
    return VideoInfo(
        id=info.get("id", video_id),
        title=info.get("title"),
        author=info.get("channel") or info.get("uploader"),
        duration=int(duration) if duration is not None else None,
        thumbnail=_pick_thumbnail(info),
        formats={"audio": audio, "video": video},
    )


def resolve_stream(video_id: str, format_selector: str) -> Dict[str, Any]:
    """
    Resolve a single streamable format for `format_selector`.

    Returns:
        Dict with title, url, ext, format_id, filesize and http_headers

    Raises:
        VideoUnavailable: extraction failed or the selector needs merging
    """
    info = _extract(build_watch_url(video_id), format=format_selector)
    if info.get("requested_formats") or not info.get("url"):
        raise VideoUnavailable(f"Format '{format_selector}' has no single streamable URL")
    return {
        "title": info.get("title") or video_id,
        "url": info["url"],
        "ext": info.get("ext"),
        "format_id": info.get("format_id"),
        "filesize": info.get("filesize") or info.get("filesize_approx"),
        "http_headers": info.get("http_headers") or {},
    }


def list_stream_candidates(video_id: str, audio_only: bool) -> Dict[str, Any]:
    """
    All single-file formats usable for streaming, best first.

    Returns:
        Dict with title and a "formats" list of yt-dlp format dicts
    """
    info = _extract(build_watch_url(video_id))
    wanted = _audio_only if audio_only else _audio_and_video
    candidates = [f for f in info.get("formats") or [] if wanted(f) and f.get("url")]
    # yt-dlp lists formats worst to best
    candidates.reverse()
    return {"title": info.get("title") or video_id, "formats": candidates}


def convert_to_mp3(video_id: str, bitrate: str) -> Dict[str, str]:
    """
    Download the best audio stream and convert it to MP3 in TEMP_DIR.

    Returns:
        Dict with title and path of the converted file

    Raises:
        VideoUnavailable: download or conversion failed
    """
    uid = uuid.uuid4().hex[:8]
    output_template = os.path.join(TEMP_DIR, f"{video_id}_{uid}.%(ext)s")
    ydl_opts = _ydl_opts(
        skip_download=False,
        format='bestaudio/best',
        outtmpl=output_template,
        postprocessors=[{
            'key': 'FFmpegExtractAudio',
            'preferredcodec': 'mp3',
            'preferredquality': str(bitrate),
        }],
    )

    try:
        with yt_dlp.YoutubeDL(ydl_opts) as ydl:
            info = ydl.extract_info(build_watch_url(video_id), download=True)
    except EXTRACTION_ERRORS as e:
        raise VideoUnavailable(str(e)) from e

    # Find actual converted file
    for f in os.listdir(TEMP_DIR):
        if f.startswith(f"{video_id}_{uid}") and f.endswith(".mp3"):
            return {"title": (info or {}).get("title") or video_id, "path": os.path.join(TEMP_DIR, f)}
    raise VideoUnavailable("Conversion finished but MP3 file not found")
