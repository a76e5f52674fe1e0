"""
Dependencies shared by several routers: per-request logger and video ID parameters.
"""

import logging

from fastapi import HTTPException, Query, Request

from app.utils.logging_utils import get_request_logger
from app.utils.platform_utils import is_valid_video_id


def request_logger(request: Request) -> logging.LoggerAdapter:
    """Logger tagged with the request ID assigned by the request-ID middleware."""
    return get_request_logger(getattr(request.state, "request_id", None))


def check_video_id(video_id: str) -> str:
    """Raise 400 unless `video_id` is an 11-character video ID."""
    if not video_id:
        raise HTTPException(status_code=400, detail="Video ID is required")
    if not is_valid_video_id(video_id):
        raise HTTPException(status_code=400, detail=f"Invalid video ID: {video_id}")
    return video_id


def video_id_query(id: str = Query(None, description="11-character video ID")) -> str:
    """`?id=` parameter, checked before the quota gate runs."""
    return check_video_id(id)


def video_id_path(video_id: str) -> str:
    """`/{video_id}` path parameter, checked before the quota gate runs."""
    return check_video_id(video_id)
