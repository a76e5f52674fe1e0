"""
Usage router module.

Provides:
- GET /usage: counters of the presented API key; does not consume quota
"""

from fastapi import APIRouter, Depends

from app.dependencies import get_quota_gate, require_valid_key
from app.models import ApiKeyRecord, UsageCounter, UsageResponse
from app.services.quota_service import QuotaGate
from app.utils.timestamp_utils import advance_reset_boundary


router = APIRouter(tags=["Usage"])


def build_usage_response(gate: QuotaGate, record: ApiKeyRecord, counter: UsageCounter) -> UsageResponse:
    """
    Join a key record with its counter. Shared with the admin listing.

    A reset boundary that has passed without a gated request since is applied
    to the reported values only; the stored counter rolls over on the next gated request.
    """
    now = gate.clock()
    monthly_requests = counter.monthly_requests
    reset_date = counter.reset_date
    if now >= reset_date:
        monthly_requests = 0
        reset_date = advance_reset_boundary(reset_date, now)

    limit = gate.limit_for(record.tier)
    return UsageResponse(
        key=record.key,
        tier=record.tier,
        created_at=record.created_at,
        expires_at=record.expires_at,
        limit=limit,
        monthly_requests=monthly_requests,
        remaining=max(0, limit - monthly_requests),
        total_requests=counter.total_requests,
        reset_date=reset_date,
        last_request_at=counter.last_request_at,
    )


@router.get("/usage", response_model=UsageResponse)
def get_usage(
    key_state=Depends(require_valid_key),
    gate: QuotaGate = Depends(get_quota_gate),
):
    """Current monthly usage of the caller's key."""
    record, counter = key_state
    return build_usage_response(gate, record, counter)
