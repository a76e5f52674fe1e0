"""
Media delivery service.

Media is handed to the client by an ordered chain of delivery strategies, tried
in sequence until one succeeds:

  MP4:          direct stream -> alternate stream formats -> external converter redirect
  MP3:          yt-dlp + FFmpeg conversion -> external converter redirect
  audio stream: direct stream -> alternate stream formats

Each strategy either returns a ready Response or raises DeliveryFailed. When
every strategy fails the chain raises DeliveryExhausted with the collected reasons.
"""

import os
import re
import logging
from dataclasses import dataclass
from typing import Callable, Dict, Iterator, List, Optional, Tuple

import requests
from fastapi.responses import RedirectResponse, StreamingResponse
from starlette.responses import Response

from app.config import (
    CONVERTER_FALLBACK_SERVICE,
    EXTERNAL_SERVICES,
    STREAM_CHUNK_SIZE,
    STREAM_TIMEOUT,
)
from app.services import ytdlp_service
from app.services.ytdlp_service import VideoUnavailable
from app.utils.filename_utils import encode_content_disposition_filename, sanitize_filename

logger = logging.getLogger(__name__)


CONTENT_TYPES = {
    "mp4": "video/mp4",
    "webm": "video/webm",
    "mp3": "audio/mpeg",
    "m4a": "audio/mp4",
    "opus": "audio/ogg",
}


class DeliveryFailed(Exception):
    """One strategy could not deliver the media."""


class DeliveryExhausted(Exception):
    """Every strategy in a chain failed."""

    def __init__(self, failures: List[Tuple[str, str]]):
        self.failures = failures
        summary = "; ".join(f"{name}: {reason}" for name, reason in failures)
        super().__init__(f"All delivery strategies failed ({summary})")


@dataclass
class DeliveryRequest:
    video_id: str
    kind: str  # "mp4", "mp3" or "audio"
    quality: str = "highest"
    bitrate: str = "128"
    attachment: bool = True


# Keywords, heights ("720p") and yt-dlp format ids; no selector syntax
QUALITY_PATTERN = re.compile(r'^[A-Za-z0-9_-]{1,32}$')


def is_valid_quality(quality: str) -> bool:
    return bool(QUALITY_PATTERN.match(quality or ""))


def mp4_format_selector(quality: str) -> str:
    """
    Map the `quality` query value onto a yt-dlp selector for a muxed (audio+video) file.

    "highest" / "lowest", a height such as "720p", or a raw format id such as "18".
    """
    muxed = "[acodec!=none][vcodec!=none]"
    quality = (quality or "highest").lower()
    if quality == "highest":
        return f"best[ext=mp4]{muxed}/best{muxed}"
    if quality == "lowest":
        return f"worst[ext=mp4]{muxed}/worst{muxed}"
    if quality.endswith("p") and quality[:-1].isdigit():
        return f"best[height<={quality[:-1]}][ext=mp4]{muxed}/best[height<={quality[:-1]}]{muxed}"
    return quality


def _content_type(ext: Optional[str], default: str) -> str:
    return CONTENT_TYPES.get((ext or "").lower(), default)


def _open_upstream(url: str, headers: Optional[Dict[str, str]] = None) -> requests.Response:
    try:
        upstream = requests.get(url, headers=headers or {}, stream=True, timeout=STREAM_TIMEOUT)
        upstream.raise_for_status()
    except requests.RequestException as e:
        raise DeliveryFailed(f"upstream request failed: {e}") from e
    return upstream


def _proxy_response(
    upstream: requests.Response,
    request: DeliveryRequest,
    title: str,
    ext: str,
    default_type: str,
) -> StreamingResponse:
    def iterstream() -> Iterator[bytes]:
        try:
            yield from upstream.iter_content(chunk_size=STREAM_CHUNK_SIZE)
        finally:
            upstream.close()

    headers = {"Accept-Ranges": "bytes"}
    if request.attachment:
        filename = f"{sanitize_filename(title)}.{ext}"
        headers["Content-Disposition"] = encode_content_disposition_filename(filename)
    if upstream.headers.get("Content-Length"):
        headers["Content-Length"] = upstream.headers["Content-Length"]

    return StreamingResponse(iterstream(), media_type=_content_type(ext, default_type), headers=headers)


class DirectStreamStrategy:
    """Resolve one format with a yt-dlp selector and proxy its bytes."""

    name = "direct_stream"

    def __init__(self, selector: Callable[[DeliveryRequest], str], default_type: str):
        self.selector = selector
        self.default_type = default_type

    def deliver(self, request: DeliveryRequest) -> Response:
        stream = ytdlp_service.resolve_stream(request.video_id, self.selector(request))
        upstream = _open_upstream(stream["url"], stream["http_headers"])
        ext = stream["ext"] or ("mp4" if request.kind == "mp4" else "m4a")
        return _proxy_response(upstream, request, stream["title"], ext, self.default_type)


class AlternateFormatStrategy:
    """Walk the remaining single-file formats, best first, until one opens."""

    name = "alternate_formats"

    def __init__(self, audio_only: bool, default_type: str, max_attempts: int = 3):
        self.audio_only = audio_only
        self.default_type = default_type
        self.max_attempts = max_attempts

    def deliver(self, request: DeliveryRequest) -> Response:
        listing = ytdlp_service.list_stream_candidates(request.video_id, self.audio_only)
        candidates = listing["formats"][:self.max_attempts]
        if not candidates:
            raise DeliveryFailed("no alternate formats available")

        last_error = None
        for fmt in candidates:
            try:
                upstream = _open_upstream(fmt["url"], fmt.get("http_headers"))
            except DeliveryFailed as e:
                logger.info(f"Alternate format {fmt.get('format_id')} failed: {e}")
                last_error = e
                continue
            return _proxy_response(upstream, request, listing["title"], fmt.get("ext") or "mp4", self.default_type)
        raise DeliveryFailed(f"all {len(candidates)} alternate formats failed: {last_error}")


class Mp3ConversionStrategy:
    """Convert with yt-dlp + FFmpeg into TEMP_DIR and stream the file, deleting it afterwards."""

    name = "mp3_conversion"

    def deliver(self, request: DeliveryRequest) -> Response:
        converted = ytdlp_service.convert_to_mp3(request.video_id, request.bitrate)
        path = converted["path"]

        def iterfile() -> Iterator[bytes]:
            try:
                with open(path, "rb") as f:
                    yield from f
            finally:
                if os.path.exists(path):
                    os.unlink(path)

        filename = f"{sanitize_filename(converted['title'])}.mp3"
        return StreamingResponse(
            iterfile(),
            media_type="audio/mpeg",
            headers={
                "Content-Disposition": encode_content_disposition_filename(filename),
                "Content-Length": str(os.path.getsize(path)),
            },
        )


class ConverterRedirectStrategy:
    """Send the client to an external converter site."""

    name = "converter_redirect"

    def __init__(self, service: str = CONVERTER_FALLBACK_SERVICE):
        self.service = service

    def deliver(self, request: DeliveryRequest) -> Response:
        url = build_external_url(self.service, request.video_id)
        if url is None:
            raise DeliveryFailed(f"external service '{self.service}' is not configured")
        return RedirectResponse(url=url, status_code=307)


def build_external_url(service: str, video_id: str) -> Optional[str]:
    """Fill the configured URL template of `service`; None when the service is unknown."""
    template = EXTERNAL_SERVICES.get(service)
    if template is None:
        return None
    return template.format(video_id=video_id)


class DeliveryChain:
    """Ordered list of strategies; the first success wins."""

    def __init__(self, strategies: List):
        self.strategies = strategies

    def deliver(self, request: DeliveryRequest, log: Optional[logging.LoggerAdapter] = None) -> Response:
        log = log or logger
        failures: List[Tuple[str, str]] = []

        for strategy in self.strategies:
            try:
                response = strategy.deliver(request)
                log.info(f"Delivered {request.kind} for {request.video_id} via {strategy.name}")
                return response
            except (DeliveryFailed, VideoUnavailable) as e:
                log.warning(f"Strategy {strategy.name} failed for {request.video_id}: {e}")
                failures.append((strategy.name, str(e)))

        raise DeliveryExhausted(failures)


def build_mp4_chain() -> DeliveryChain:
    return DeliveryChain([
        DirectStreamStrategy(lambda r: mp4_format_selector(r.quality), "video/mp4"),
        AlternateFormatStrategy(audio_only=False, default_type="video/mp4"),
        ConverterRedirectStrategy(),
    ])


def build_mp3_chain() -> DeliveryChain:
    return DeliveryChain([
        Mp3ConversionStrategy(),
        ConverterRedirectStrategy(),
    ])


def build_audio_stream_chain() -> DeliveryChain:
    return DeliveryChain([
        DirectStreamStrategy(lambda r: "bestaudio[acodec!=none]", "audio/mpeg"),
        AlternateFormatStrategy(audio_only=True, default_type="audio/mpeg"),
    ])
