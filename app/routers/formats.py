"""
Formats router module.

Provides:
- GET /formats/{video_id}: video metadata with audio-only and video-only format lists
"""

import logging

from fastapi import APIRouter, Depends, HTTPException

from app.dependencies import require_quota
from app.models import AuthorizationResult, VideoInfoResponse
from app.routers.common import request_logger, video_id_path
from app.services import ytdlp_service
from app.services.ytdlp_service import VideoUnavailable


router = APIRouter(tags=["Formats"])


@router.get("/formats/{video_id}", response_model=VideoInfoResponse)
def get_formats(
    video_id: str = Depends(video_id_path),
    _: AuthorizationResult = Depends(require_quota),
    log: logging.LoggerAdapter = Depends(request_logger),
):
    """
    Get available formats for a video.

    Returns:
        {"success": true, "data": {id, title, author, duration, thumbnail, formats: {audio, video}}}
    """
    try:
        info = ytdlp_service.get_video_info(video_id)
    except VideoUnavailable as e:
        log.error(f"Formats lookup failed for {video_id}: {e}")
        raise HTTPException(status_code=404, detail="Failed to get video formats")
    return VideoInfoResponse(data=info)
