"""
Search router module.

Provides:
- GET /search: video search by text query, watch URL or short URL
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Query

from app.config import SEARCH_RESULT_LIMIT
from app.dependencies import require_quota
from app.models import AuthorizationResult, SearchResponse
from app.routers.common import request_logger
from app.services import ytdlp_service
from app.services.ytdlp_service import InvalidVideoUrl, VideoUnavailable


router = APIRouter(tags=["Search"])


def search_query(
    q: str = Query(None, description="Search text or video URL"),
    query: str = Query(None, description="Alias of q"),
) -> str:
    """Resolve the search text before the quota gate runs, so a missing query costs nothing."""
    value = (q or query or "").strip()
    if not value:
        raise HTTPException(status_code=400, detail="Missing query parameter")
    return value


@router.get("/search", response_model=SearchResponse)
def search(
    text: str = Depends(search_query),
    quota: AuthorizationResult = Depends(require_quota),
    log: logging.LoggerAdapter = Depends(request_logger),
):
    """
    Search videos.

    URL queries are reduced to the video ID they carry and return that single video.

    Returns:
        {"videos": [...]} with id, name, url, views, author, duration, thumbnail

    Raises:
        HTTPException 400 for URLs without a video ID, 500 on provider failure
    """
    log.info(f"Search ({quota.tier.value}, {quota.remaining} left): {text}")
    try:
        videos = ytdlp_service.search_videos(text, SEARCH_RESULT_LIMIT)
    except InvalidVideoUrl as e:
        raise HTTPException(status_code=400, detail=str(e))
    except VideoUnavailable as e:
        log.error(f"Search failed: {e}")
        raise HTTPException(status_code=500, detail="Internal Server Error")
    return SearchResponse(videos=videos)
