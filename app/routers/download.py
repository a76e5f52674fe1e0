"""
Download router module.

Provides endpoints for delivering media through the fallback chains in
app.services.delivery_service:
- GET /download/mp4: muxed MP4 file (direct stream -> alternate formats -> converter redirect)
- GET /download/mp3: MP3 conversion (yt-dlp + FFmpeg -> converter redirect)
- GET /stream/audio/{video_id}: in-browser audio playback (direct stream -> alternate formats)
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Query

from app.dependencies import require_quota
from app.models import AuthorizationResult
from app.routers.common import check_video_id, request_logger, video_id_path, video_id_query
from app.services.delivery_service import (
    DeliveryExhausted,
    DeliveryRequest,
    build_audio_stream_chain,
    build_mp3_chain,
    build_mp4_chain,
    is_valid_quality,
)


router = APIRouter(tags=["Download"])

MP3_BITRATES = ("128", "192", "320")


def mp3_params(
    id: str = Query(None, description="11-character video ID"),
    bitrate: str = Query("128", description="MP3 bitrate: 128, 192 or 320"),
) -> DeliveryRequest:
    """Validate the MP3 request before the quota gate runs."""
    video_id = check_video_id(id)
    if bitrate not in MP3_BITRATES:
        raise HTTPException(
            status_code=400,
            detail=f"Unsupported bitrate {bitrate}. Use one of: {', '.join(MP3_BITRATES)}"
        )
    return DeliveryRequest(video_id=video_id, kind="mp3", bitrate=bitrate)


def mp4_quality(
    quality: str = Query("highest", description="highest, lowest, a height such as 720p, or a format id"),
) -> str:
    """Reject yt-dlp selector syntax before the quota gate runs."""
    if not is_valid_quality(quality):
        raise HTTPException(
            status_code=400,
            detail=f"Invalid quality '{quality}'. Use highest, lowest, a height such as 720p, or a format id"
        )
    return quality


def _deliver(chain, request: DeliveryRequest, log: logging.LoggerAdapter):
    try:
        return chain.deliver(request, log)
    except DeliveryExhausted as e:
        log.error(str(e))
        raise HTTPException(status_code=502, detail=f"Failed to deliver {request.kind}: {e}")


@router.get("/download/mp4")
def download_mp4(
    video_id: str = Depends(video_id_query),
    quality: str = Depends(mp4_quality),
    _: AuthorizationResult = Depends(require_quota),
    log: logging.LoggerAdapter = Depends(request_logger),
):
    """
    Download video in MP4 format.

    Returns:
        StreamingResponse with the video, or a 307 redirect to an external converter
        when no stream could be opened

    Raises:
        HTTPException 502 when every delivery strategy failed
    """
    request = DeliveryRequest(video_id=video_id, kind="mp4", quality=quality)
    return _deliver(build_mp4_chain(), request, log)


@router.get("/download/mp3")
def download_mp3(
    request: DeliveryRequest = Depends(mp3_params),
    _: AuthorizationResult = Depends(require_quota),
    log: logging.LoggerAdapter = Depends(request_logger),
):
    """
    Download audio as MP3.

    The converted file is streamed from TEMP_DIR and deleted once sent.
    """
    return _deliver(build_mp3_chain(), request, log)


@router.get("/stream/audio/{video_id}")
def stream_audio(
    video_id: str = Depends(video_id_path),
    _: AuthorizationResult = Depends(require_quota),
    log: logging.LoggerAdapter = Depends(request_logger),
):
    """Stream audio for playback in the browser (no attachment header)."""
    request = DeliveryRequest(video_id=video_id, kind="audio", attachment=False)
    return _deliver(build_audio_stream_chain(), request, log)
