"""
Models package for quota state and API request/response validation.

This package contains Pydantic models used throughout the application
for the usage store and for validating API requests and responses.
"""

from .schemas import (
    Tier,
    ApiKeyRecord,
    UsageCounter,
    AuthorizationResult,
    ApiKeyCreateRequest,
    UsageResponse,
    ApiKeyListResponse,
    VideoSearchResult,
    SearchResponse,
    AudioFormat,
    VideoFormat,
    VideoInfo,
    VideoInfoResponse,
)

__all__ = [
    "Tier",
    "ApiKeyRecord",
    "UsageCounter",
    "AuthorizationResult",
    "ApiKeyCreateRequest",
    "UsageResponse",
    "ApiKeyListResponse",
    "VideoSearchResult",
    "SearchResponse",
    "AudioFormat",
    "VideoFormat",
    "VideoInfo",
    "VideoInfoResponse",
]
