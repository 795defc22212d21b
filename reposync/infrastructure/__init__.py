"""
Infrastructure layer: logging, error taxonomy, retries and rate limiting.
"""

from .logger import logger
from .error_handler import (
    ErrorKind,
    SyncError,
    RateLimitError,
    PayloadTooLargeError,
    TreeTooLargeError,
    PermissionDeniedError,
    AuthenticationError,
    NotFoundError,
    RemoteAPIError,
    ComparisonError,
    TransferAborted,
    NotConfiguredError,
    classify_error,
    raise_for_response,
    handle_api_error,
)
from .retry_manager import RetryManager
from .rate_limiter import RateLimiter, RateLimitInfo

__all__ = [
    "logger",
    "ErrorKind",
    "SyncError",
    "RateLimitError",
    "PayloadTooLargeError",
    "TreeTooLargeError",
    "PermissionDeniedError",
    "AuthenticationError",
    "NotFoundError",
    "RemoteAPIError",
    "ComparisonError",
    "TransferAborted",
    "NotConfiguredError",
    "classify_error",
    "raise_for_response",
    "handle_api_error",
    "RetryManager",
    "RateLimiter",
    "RateLimitInfo",
]
