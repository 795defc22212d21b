"""
Error taxonomy for RepoSync and helpers that map remote failures onto it.
"""

from __future__ import annotations

import functools
from enum import Enum
from typing import TYPE_CHECKING, Any, Awaitable, Callable, List, Optional

import httpx

from .logger import logger

if TYPE_CHECKING:
    from ..models import TransferResult


####
##      EXCEPTIONS
#####
class SyncError(Exception):
    """Base error for every failure raised by RepoSync."""

    def __init__(self, message: str, original_error: Optional[BaseException] = None):
        self.message = message
        self.original_error = original_error
        super().__init__(message)

    def __str__(self) -> str:
        if self.original_error is not None:
            return f"{self.message} (Original: {self.original_error})"
        return self.message


class RateLimitError(SyncError):
    """The remote signalled a primary or secondary (abuse) rate limit."""

    def __init__(
        self,
        message: str,
        original_error: Optional[BaseException] = None,
        reset_at: Optional[int] = None,
    ):
        super().__init__(message, original_error)
        self.reset_at = reset_at


class PayloadTooLargeError(SyncError):
    """The remote rejected a write because its payload is too large."""


class TreeTooLargeError(PayloadTooLargeError):
    """A tree object exceeded the remote's size limit; not retryable."""


class PermissionDeniedError(SyncError):
    """The token lacks the permissions required for the operation."""


class AuthenticationError(PermissionDeniedError):
    """The token was rejected outright."""


class NotFoundError(SyncError):
    """A repository, branch, object or file does not exist."""


class RemoteAPIError(SyncError):
    """Any other HTTP error returned by the remote."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        original_error: Optional[BaseException] = None,
    ):
        super().__init__(message, original_error)
        self.status_code = status_code


class ComparisonError(SyncError):
    """Comparison could not complete; callers should run a full transfer."""

    fallback_to_full = True


class TransferAborted(SyncError):
    """A bulk transfer stopped part-way; landed commits are kept."""

    def __init__(
        self,
        message: str,
        result: TransferResult,
        original_error: Optional[BaseException] = None,
    ):
        super().__init__(message, original_error)
        self.result = result

    @property
    def commits(self) -> List[str]:
        return list(self.result.commits)


class NotConfiguredError(SyncError):
    """No repository has been configured yet."""


####
##      CLASSIFICATION
#####
class ErrorKind(Enum):
    """How the retry executor treats a failure."""

    RATE_LIMIT = "rate_limit"
    TOO_LARGE = "too_large"
    PERMISSION = "permission"
    NOT_FOUND = "not_found"
    OTHER = "other"


_RATE_LIMIT_HINTS = ("rate limit", "abuse", "too many requests")
_TOO_LARGE_HINTS = ("too large", "too big", "payload too large")
_PERMISSION_HINTS = ("403", "permission", "forbidden")


def _response_message(response: httpx.Response) -> str:
    try:
        data = response.json()
    except ValueError:
        return response.text or response.reason_phrase
    if isinstance(data, dict) and data.get("message"):
        return str(data["message"])
    return response.reason_phrase


def _request_path(response: httpx.Response) -> str:
    try:
        return response.request.url.path
    except RuntimeError:
        return "requested resource"


def error_from_response(
    response: httpx.Response,
    original_error: Optional[BaseException] = None,
) -> SyncError:
    """Translate an error response into the RepoSync taxonomy."""

    status = response.status_code
    message = _response_message(response)
    lowered = message.lower()

    remaining = response.headers.get("x-ratelimit-remaining")
    if status == 429 or (
        status == 403
        and (remaining == "0" or any(hint in lowered for hint in _RATE_LIMIT_HINTS))
    ):
        reset = response.headers.get("x-ratelimit-reset")
        return RateLimitError(
            f"GitHub API rate limit exceeded: {message}",
            original_error,
            reset_at=int(reset) if reset and reset.isdigit() else None,
        )
    if status == 401:
        return AuthenticationError(
            "Authentication failed. Check your GitHub token.", original_error
        )
    if status == 403:
        return PermissionDeniedError(
            f"Access denied: {message}. The token may lack permissions.",
            original_error,
        )
    if status == 404:
        return NotFoundError(f"Not found: {_request_path(response)}", original_error)
    if status == 409 and "empty" in lowered:
        return NotFoundError(f"Repository is empty: {message}", original_error)
    if status == 413 or (
        status == 422 and any(hint in lowered for hint in _TOO_LARGE_HINTS)
    ):
        return PayloadTooLargeError(f"Payload too large: {message}", original_error)
    return RemoteAPIError(
        f"GitHub API error {status}: {message}", status, original_error
    )


def raise_for_response(response: httpx.Response) -> None:
    """Raise the matching SyncError when ``response`` carries an error status."""

    if response.is_success:
        return
    raise error_from_response(response)


def classify_error(error: BaseException) -> ErrorKind:
    """Map any exception to the retry behaviour it deserves."""

    if isinstance(error, RateLimitError):
        return ErrorKind.RATE_LIMIT
    if isinstance(error, PayloadTooLargeError):
        return ErrorKind.TOO_LARGE
    if isinstance(error, PermissionDeniedError):
        return ErrorKind.PERMISSION
    if isinstance(error, NotFoundError):
        return ErrorKind.NOT_FOUND
    if isinstance(error, httpx.HTTPStatusError):
        return classify_error(error_from_response(error.response, error))
    if isinstance(error, SyncError):
        return ErrorKind.OTHER

    text = str(error).lower()
    if any(hint in text for hint in _RATE_LIMIT_HINTS):
        return ErrorKind.RATE_LIMIT
    if any(hint in text for hint in _TOO_LARGE_HINTS):
        return ErrorKind.TOO_LARGE
    if any(hint in text for hint in _PERMISSION_HINTS):
        return ErrorKind.PERMISSION
    return ErrorKind.OTHER


####
##      DECORATORS
#####
def _translate(error: Exception) -> Exception:
    if isinstance(error, SyncError):
        return error
    if isinstance(error, httpx.HTTPStatusError):
        return error_from_response(error.response, error)
    if isinstance(error, httpx.RequestError):
        text = str(error).lower()
        if "429" in text or "rate limit" in text:
            return RateLimitError("Rate limit exceeded", error)
        return SyncError("Network error while calling GitHub", error)
    return error


def handle_api_error(func: Callable[..., Awaitable[Any]]) -> Callable[..., Awaitable[Any]]:
    """Convert httpx failures raised by the coroutine ``func`` into RepoSync errors."""

    @functools.wraps(func)
    async def wrapper(*args: Any, **kwargs: Any) -> Any:
        try:
            return await func(*args, **kwargs)
        except Exception as e:
            translated = _translate(e)
            if translated is e:
                raise
            logger.debug(f"{func.__name__} failed: {translated}")
            raise translated from e

    return wrapper


__all__ = [
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
    "ErrorKind",
    "classify_error",
    "error_from_response",
    "raise_for_response",
    "handle_api_error",
]
