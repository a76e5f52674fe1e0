"""
Pydantic models for quota state and request/response validation.

This module contains the API key / usage records held by the usage store and
the BaseModel schemas used for API request and response validation.
"""

from datetime import datetime
from enum import Enum
from pydantic import BaseModel, Field
from typing import List, Optional, Dict, Any

from app.utils.timestamp_utils import isoformat_utc


class Tier(str, Enum):
    """Quota class of an API key."""
    FREE = "free"
    PREMIUM = "premium"


class ApiKeyRecord(BaseModel):
    """Issued credential. Fixed at issuance: never mutated, never deleted."""
    key: str
    tier: Tier
    created_at: datetime
    expires_at: datetime


class UsageCounter(BaseModel):
    """Per-key consumption against the monthly limit."""
    monthly_requests: int = 0
    total_requests: int = 0
    reset_date: datetime
    last_request_at: Optional[datetime] = None


class AuthorizationResult(BaseModel):
    """Successful gate decision, exposed to clients as rate-limit headers."""
    key: str
    tier: Tier
    limit: int
    remaining: int
    reset_date: datetime

    def rate_limit_headers(self) -> Dict[str, str]:
        return {
            "X-RateLimit-Tier": self.tier.value,
            "X-RateLimit-Limit": str(self.limit),
            "X-RateLimit-Remaining": str(self.remaining),
            "X-RateLimit-Reset": isoformat_utc(self.reset_date),
        }


class ApiKeyCreateRequest(BaseModel):
    """Request model for administrative key issuance."""
    tier: Tier = Field(Tier.FREE, description="Quota tier: free or premium")
    valid_days: Optional[int] = Field(None, description="Days until the key expires", gt=0, le=3650)
    key: Optional[str] = Field(None, description="Explicit key value (random when omitted)", min_length=1, max_length=128)


class UsageResponse(BaseModel):
    """Key record joined with its usage counter."""
    key: str
    tier: Tier
    created_at: datetime
    expires_at: datetime
    limit: int
    monthly_requests: int
    remaining: int
    total_requests: int
    reset_date: datetime
    last_request_at: Optional[datetime] = None


class ApiKeyListResponse(BaseModel):
    keys: List[UsageResponse]
    count: int


class VideoSearchResult(BaseModel):
    """One search hit: title, author, duration, thumbnail, views, canonical URL."""
    type: str = "video"
    id: str
    name: Optional[str] = None
    description: Optional[str] = None
    url: str
    views: Optional[int] = None
    published: Optional[str] = None
    author: Optional[str] = None
    duration: Optional[str] = None
    duration_seconds: Optional[int] = None
    thumbnail: Optional[str] = None
    is_live: bool = False
    formats: Dict[str, bool] = Field(default_factory=lambda: {"video": True, "audio": True})


class SearchResponse(BaseModel):
    videos: List[VideoSearchResult]


class AudioFormat(BaseModel):
    format_id: str
    quality: str = "unknown"
    codec: Optional[str] = None
    bitrate: Optional[float] = None
    container: Optional[str] = None
    url: Optional[str] = None


class VideoFormat(BaseModel):
    format_id: str
    quality: Optional[str] = None
    codec: Optional[str] = None
    container: Optional[str] = None
    url: Optional[str] = None


class VideoInfo(BaseModel):
    """Metadata plus the audio-only / video-only format lists of one video."""
    id: str
    title: Optional[str] = None
    author: Optional[str] = None
    duration: Optional[int] = None
    thumbnail: Optional[str] = None
    formats: Dict[str, List[Any]]


class VideoInfoResponse(BaseModel):
    success: bool = True
    data: VideoInfo
