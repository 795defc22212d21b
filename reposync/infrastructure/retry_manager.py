"""
Bounded retry with classified backoff for remote write operations.
"""

from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable, Optional

from .error_handler import ErrorKind, PermissionDeniedError, classify_error
from .logger import logger

Operation = Callable[[], Awaitable[Any]]


class RetryManager:
    """
    Runs an async operation with bounded retries.

    The classifier decides how each failure is handled: rate limits back off
    exponentially, payloads that are too large escalate to a fallback
    operation, permission and not-found failures are terminal, and anything
    else is retried with a shorter exponential backoff.
    """

    def __init__(
        self,
        max_retries: int = 3,
        rate_limit_delay: float = 1.0,
        base_delay: float = 0.5,
        max_delay: float = 60.0,
        classifier: Callable[[BaseException], ErrorKind] = classify_error,
    ):
        if max_retries < 1:
            raise ValueError("max_retries must be at least 1")
        self.max_retries = max_retries
        self.rate_limit_delay = rate_limit_delay
        self.base_delay = base_delay
        self.max_delay = max_delay
        self.classifier = classifier

    def _calculate_delay(self, kind: ErrorKind, attempt: int) -> float:
        """
        Backoff before the attempt following ``attempt`` (1-based).

        Rate limits wait ``rate_limit_delay * 2**attempt``; other errors
        wait ``base_delay * 2**attempt``. Both are capped at ``max_delay``.
        """
        base = self.rate_limit_delay if kind is ErrorKind.RATE_LIMIT else self.base_delay
        return min(base * (2 ** attempt), self.max_delay)

    async def execute(
        self,
        operation: Operation,
        max_retries: Optional[int] = None,
        fallback: Optional[Operation] = None,
    ) -> Any:
        """
        Execute ``operation`` with classified retries.

        Args:
            operation: Zero-argument callable returning an awaitable
            max_retries: Attempt budget overriding the manager's default
            fallback: Operation to switch to once when the payload is too large

        Returns:
            The operation's result

        Raises:
            PermissionDeniedError: On a permission failure, without retrying
            Exception: The last observed error once the budget is exhausted
        """
        attempts = max_retries if max_retries is not None else self.max_retries
        if attempts < 1:
            raise ValueError("max_retries must be at least 1")

        current = operation
        escalated = False
        attempt = 0

        while True:
            attempt += 1
            try:
                return await current()
            except Exception as e:
                kind = self.classifier(e)

                if kind is ErrorKind.PERMISSION:
                    logger.error(f"Permission error, not retrying: {e}")
                    if isinstance(e, PermissionDeniedError):
                        raise
                    raise PermissionDeniedError(
                        "Insufficient token permissions for this repository", e
                    ) from e

                if kind is ErrorKind.NOT_FOUND:
                    raise

                if kind is ErrorKind.TOO_LARGE:
                    if fallback is None or escalated:
                        raise
                    logger.info("Payload too large, escalating to fallback strategy")
                    current = fallback
                    escalated = True
                    # escalation does not spend an attempt
                    attempt -= 1
                    continue

                logger.warning(f"Attempt {attempt} failed: {e}")
                if attempt >= attempts:
                    logger.error(f"All {attempts} attempts failed, giving up")
                    raise

                delay = self._calculate_delay(kind, attempt)
                logger.warning(f"Retrying in {delay:.1f}s")
                await asyncio.sleep(delay)


__all__ = ["RetryManager"]
