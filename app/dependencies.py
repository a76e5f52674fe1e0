"""
FastAPI dependency injection functions.

This module provides reusable dependencies for:
- The process-wide quota gate and its usage store
- Per-request quota authorization (X-API-Key header or apikey query parameter)
- Read-only key validation for usage lookups
- Admin key verification for key issuance and maintenance endpoints
"""

from datetime import timedelta
from functools import lru_cache
from typing import Optional

from fastapi import Depends, Header, HTTPException, Query, Request

from app.config import (
    DEFAULT_KEY_VALIDITY_DAYS,
    FREE_MONTHLY_LIMIT,
    PREMIUM_MONTHLY_LIMIT,
    get_settings,
    parse_seed_keys,
)
from app.models import AuthorizationResult, Tier
from app.services.quota_service import (
    DuplicateCredential,
    QuotaExceeded,
    QuotaGate,
    QuotaGateError,
)
from app.services.usage_store import InMemoryUsageStore
from app.utils.timestamp_utils import isoformat_utc


@lru_cache
def get_quota_gate() -> QuotaGate:
    """
    Process-wide quota gate backed by an in-memory usage store.
    All keys and counters are lost on restart.
    """
    return QuotaGate(
        store=InMemoryUsageStore(),
        limits={
            Tier.FREE: FREE_MONTHLY_LIMIT,
            Tier.PREMIUM: PREMIUM_MONTHLY_LIMIT,
        },
        default_validity=timedelta(days=DEFAULT_KEY_VALIDITY_DAYS),
    )


def seed_api_keys(gate: QuotaGate, raw: str) -> int:
    """
    Issue the SEED_API_KEYS entries. Already-issued keys are skipped. Returns the number issued.

    The list is parsed and checked in full first; on ValueError no key is issued.
    """
    issued = 0
    entries = parse_seed_keys(raw)
    for key, tier in entries:
        try:
            gate.issue_key(tier=Tier(tier), key=key)
            issued += 1
        except DuplicateCredential:
            continue
    return issued


def _gate_http_error(error: QuotaGateError) -> HTTPException:
    headers = None
    if isinstance(error, QuotaExceeded):
        headers = {
            "X-RateLimit-Tier": error.tier.value,
            "X-RateLimit-Limit": str(error.limit),
            "X-RateLimit-Remaining": "0",
            "X-RateLimit-Reset": isoformat_utc(error.reset_date),
        }
    return HTTPException(status_code=error.status_code, detail=error.message, headers=headers)


def _presented_key(x_api_key: Optional[str], apikey: Optional[str]) -> Optional[str]:
    return x_api_key or apikey


def require_quota(
    request: Request,
    x_api_key: str = Header(None),
    apikey: str = Query(None, description="API key (alternative to the X-API-Key header)"),
    gate: QuotaGate = Depends(get_quota_gate),
) -> AuthorizationResult:
    """
    Dependency that admits the request against the caller's monthly quota.

    Runs before the handler body, so a rejected request never reaches the
    search/download providers. The result is stored on request.state so the
    rate-limit middleware can emit it as response headers.

    Raises:
        HTTPException 401 for missing/invalid/expired keys, 403 when the quota is exhausted
    """
    try:
        result = gate.authorize(_presented_key(x_api_key, apikey))
    except QuotaGateError as e:
        raise _gate_http_error(e)

    request.state.rate_limit = result
    return result


def require_valid_key(
    x_api_key: str = Header(None),
    apikey: str = Query(None, description="API key (alternative to the X-API-Key header)"),
    gate: QuotaGate = Depends(get_quota_gate),
):
    """Dependency that validates the key without consuming quota. Returns (record, counter)."""
    try:
        return gate.usage(_presented_key(x_api_key, apikey))
    except QuotaGateError as e:
        raise _gate_http_error(e)


def verify_admin_key(x_admin_key: str = Header(None)) -> bool:
    """
    Dependency to verify the admin key from the X-Admin-Key header.
    Raises HTTPException 401 if invalid, 500 if not configured.
    """
    settings = get_settings()
    if not settings.admin_api_key:
        raise HTTPException(status_code=500, detail="Admin API key not configured")
    if x_admin_key != settings.admin_api_key:
        raise HTTPException(status_code=401, detail="Invalid Admin Key")
    return True
