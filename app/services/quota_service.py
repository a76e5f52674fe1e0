"""
Quota gate service.

Decides whether a request presenting an API key may proceed and records the
accepted request before any search/resolve/download work starts.

Evaluation order for authorize():
  1. missing key              -> MissingCredential
  2. unknown key              -> InvalidCredential
  3. now > expires_at         -> CredentialExpired
  4. now >= reset_date        -> counter rolls over (sticks even if step 6 rejects)
  5. limit from tier
  6. monthly_requests >= limit -> QuotaExceeded (nothing incremented)
  7. increment, return remaining quota and reset date

Steps 4-7 are executed atomically per key by the usage store.
"""

import logging
import secrets
from datetime import datetime, timedelta
from typing import Callable, Dict, Optional, Tuple

from app.models import ApiKeyRecord, AuthorizationResult, Tier, UsageCounter
from app.services.usage_store import UsageStore
from app.utils.timestamp_utils import first_instant_of_next_month, isoformat_utc, utcnow

logger = logging.getLogger(__name__)


class QuotaGateError(Exception):
    """Base class for terminal gate failures. Never retried."""

    status_code = 401

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class MissingCredential(QuotaGateError):
    """No API key supplied."""

    def __init__(self):
        super().__init__("API key required. Pass it as the X-API-Key header or the apikey query parameter.")


class InvalidCredential(QuotaGateError):
    """Key not found in the record set."""

    def __init__(self):
        super().__init__("Invalid API key.")


class CredentialExpired(QuotaGateError):
    """Key found but past expires_at."""

    def __init__(self, expires_at: datetime):
        super().__init__(
            f"API key expired on {isoformat_utc(expires_at)}. Contact an administrator for a new key."
        )
        self.expires_at = expires_at


class QuotaExceeded(QuotaGateError):
    """Monthly limit reached for the current cycle."""

    status_code = 403

    def __init__(self, tier: Tier, limit: int, reset_date: datetime):
        super().__init__(
            f"Monthly quota of {limit} requests exhausted for the {tier.value} tier. "
            f"Wait for the reset on {isoformat_utc(reset_date)} or contact an administrator "
            f"for an upgraded tier."
        )
        self.tier = tier
        self.limit = limit
        self.reset_date = reset_date


class DuplicateCredential(Exception):
    """Raised by issue_key when the requested key value is already taken."""


def mask_key(key: str) -> str:
    """Keep API keys out of the logs: 'abcdef123' -> 'abcd…'."""
    if not key:
        return "<none>"
    return f"{key[:4]}…" if len(key) > 4 else "****"


class QuotaGate:
    """
    API-key authorization with per-key monthly quotas.

    Args:
        store: UsageStore holding key records and counters
        limits: monthly request limit per tier
        default_validity: lifetime of keys issued without an explicit validity
        clock: returns the current timezone-aware UTC time (injectable for tests)
    """

    def __init__(
        self,
        store: UsageStore,
        limits: Dict[Tier, int],
        default_validity: timedelta = timedelta(days=365),
        clock: Callable[[], datetime] = utcnow,
    ):
        self.store = store
        self.limits = limits
        self.default_validity = default_validity
        self.clock = clock

    def limit_for(self, tier: Tier) -> int:
        return self.limits[tier]

    def _lookup(self, key: Optional[str]) -> Tuple[ApiKeyRecord, datetime]:
        """Steps 1-3: presence, existence, expiry. Never mutates state."""
        if not key:
            raise MissingCredential()

        record = self.store.get(key)
        if record is None:
            raise InvalidCredential()

        now = self.clock()
        if now > record.expires_at:
            raise CredentialExpired(record.expires_at)
        return record, now

    def authorize(self, key: Optional[str]) -> AuthorizationResult:
        """
        Admit or reject one request for `key`.

        Raises:
            MissingCredential, InvalidCredential, CredentialExpired, QuotaExceeded
        """
        record, now = self._lookup(key)
        limit = self.limit_for(record.tier)

        admitted, counter = self.store.compare_and_increment(record.key, limit, now)
        if not admitted:
            logger.info(f"Quota exceeded for key {mask_key(record.key)} ({record.tier.value}, limit {limit})")
            raise QuotaExceeded(record.tier, limit, counter.reset_date)

        return AuthorizationResult(
            key=record.key,
            tier=record.tier,
            limit=limit,
            remaining=limit - counter.monthly_requests,
            reset_date=counter.reset_date,
        )

    def usage(self, key: Optional[str]) -> Tuple[ApiKeyRecord, UsageCounter]:
        """Validate `key` like authorize() steps 1-3 and return its counters without consuming quota."""
        record, _ = self._lookup(key)
        return record, self.store.get_usage(record.key)

    def issue_key(
        self,
        tier: Tier = Tier.FREE,
        valid_days: Optional[int] = None,
        key: Optional[str] = None,
    ) -> ApiKeyRecord:
        """
        Create an API key record and its zeroed usage counter.

        The first reset boundary is the first instant of the month after issuance.

        Raises:
            DuplicateCredential: if `key` is already issued
        """
        now = self.clock()
        validity = timedelta(days=valid_days) if valid_days else self.default_validity
        record = ApiKeyRecord(
            key=key or secrets.token_urlsafe(24),
            tier=tier,
            created_at=now,
            expires_at=now + validity,
        )
        counter = UsageCounter(reset_date=first_instant_of_next_month(now))

        if not self.store.put(record, counter):
            raise DuplicateCredential(f"API key {mask_key(record.key)} already exists")

        logger.info(f"Issued {tier.value} key {mask_key(record.key)} valid until {isoformat_utc(record.expires_at)}")
        return record
