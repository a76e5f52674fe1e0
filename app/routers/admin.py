"""
Admin router for administrative endpoints.

This module provides endpoints for:
- API key issuance
- Listing keys with their usage counters
- Temp file cleanup triggering and scheduler status monitoring

All endpoints require the X-Admin-Key header.
"""

from fastapi import APIRouter, Body, Depends, HTTPException
from fastapi.responses import JSONResponse

from app.dependencies import get_quota_gate, verify_admin_key
from app.models import ApiKeyCreateRequest, ApiKeyListResponse, UsageResponse
from app.routers.usage import build_usage_response
from app.services.quota_service import DuplicateCredential, QuotaGate
from scripts.temp_cleanup_scheduler import get_scheduler_status, trigger_manual_cleanup

router = APIRouter(prefix="/admin", tags=["Admin"])


@router.post("/keys", response_model=UsageResponse, status_code=201)
def create_api_key(
    payload: ApiKeyCreateRequest = Body(ApiKeyCreateRequest()),
    gate: QuotaGate = Depends(get_quota_gate),
    _: bool = Depends(verify_admin_key),
):
    """
    Issue a new API key.

    The key starts with zeroed counters; its first monthly reset is the first
    instant of next month (UTC). Tier and expiry cannot be changed afterwards.

    Returns:
        The key record joined with its usage counter

    Raises:
        HTTPException 409 if an explicit key value is already issued
    """
    try:
        record = gate.issue_key(tier=payload.tier, valid_days=payload.valid_days, key=payload.key)
    except DuplicateCredential as e:
        raise HTTPException(status_code=409, detail=str(e))
    return build_usage_response(gate, record, gate.store.get_usage(record.key))


@router.get("/keys", response_model=ApiKeyListResponse)
def list_api_keys(
    gate: QuotaGate = Depends(get_quota_gate),
    _: bool = Depends(verify_admin_key),
):
    """List every issued key (expired ones included) with its usage counters."""
    keys = []
    for key in gate.store.list_keys():
        keys.append(build_usage_response(gate, gate.store.get(key), gate.store.get_usage(key)))
    return ApiKeyListResponse(keys=keys, count=len(keys))


@router.get("/keys/{key}", response_model=UsageResponse)
def get_api_key(
    key: str,
    gate: QuotaGate = Depends(get_quota_gate),
    _: bool = Depends(verify_admin_key),
):
    """Usage counters of one key."""
    record = gate.store.get(key)
    if record is None:
        raise HTTPException(status_code=404, detail="API key not found")
    return build_usage_response(gate, record, gate.store.get_usage(key))


@router.post("/temp-cleanup")
async def admin_temp_cleanup(_: bool = Depends(verify_admin_key)):
    """
    Delete temp files older than TEMP_FILE_MAX_AGE_MINUTES immediately.

    Normally runs on a schedule (every TEMP_CLEANUP_INTERVAL_MINUTES minutes).
    """
    result = trigger_manual_cleanup()
    return JSONResponse(content=result, status_code=200)


@router.get("/temp-cleanup/status")
async def get_temp_cleanup_status(_: bool = Depends(verify_admin_key)):
    """
    Get current status of the temp cleanup scheduler.

    Returns running state, interval, next run time and the last cleanup result.
    """
    return JSONResponse(content=get_scheduler_status(), status_code=200)
