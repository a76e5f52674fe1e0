"""
Redirect router module.

Provides:
- GET /redirect/services: configured external converter sites
- GET /redirect/{service}: 307 redirect to an external converter site for a video
"""

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import RedirectResponse

from app.config import EXTERNAL_SERVICES
from app.dependencies import require_quota
from app.models import AuthorizationResult
from app.routers.common import video_id_query
from app.services.delivery_service import build_external_url


router = APIRouter(prefix="/redirect", tags=["Redirect"])


def external_service(service: str) -> str:
    if service not in EXTERNAL_SERVICES:
        raise HTTPException(status_code=404, detail=f"Unknown service '{service}'")
    return service


@router.get("/services")
async def list_services():
    """Names of the external converter sites usable with /redirect/{service}."""
    return {"services": sorted(EXTERNAL_SERVICES.keys())}


@router.get("/{service}")
def redirect_to_service(
    service: str = Depends(external_service),
    video_id: str = Depends(video_id_query),
    _: AuthorizationResult = Depends(require_quota),
):
    """Send the client to the configured converter page for `?id=`."""
    return RedirectResponse(url=build_external_url(service, video_id), status_code=307)
