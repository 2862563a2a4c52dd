"""Retry classification and exponential backoff for failed articles."""

import random
from datetime import datetime, timedelta
from typing import Optional

from pydantic import BaseModel

from unfurl.core.config import RetryPolicyConfig
from unfurl.core.enums import FailureKind, RejectionReason
from unfurl.pipeline.resolvers.feed_url_resolver import RETRYABLE_CLIENT_STATUS, ResolutionFailure

# Transient by nature
RETRYABLE_KINDS = frozenset(
    {
        FailureKind.TIMEOUT,
        FailureKind.CONNECTION_FAILED,
        FailureKind.TOO_MANY_REDIRECTS,
    }
)


class RetryDecision(BaseModel):
    """Bookkeeping to persist after a failed attempt."""

    retry_count: int
    next_retry_at: Optional[datetime] = None
    terminal: bool


class RetryPolicy:
    """Decide whether and when a failed article is attempted again.

    Backoff is ``base * 2^retry_count`` (capped at ``max_delay_sec``) plus
    uniform jitter in ``[0, max_jitter_sec]``, where ``retry_count`` is the
    count before the failure being handled:

    - 1st retryable failure: 60s (+ jitter)
    - 2nd: 120s
    - 3rd: 240s

    Once the incremented count exceeds ``max_retries`` the article fails
    permanently.
    """

    def __init__(self, config: Optional[RetryPolicyConfig] = None, rng: Optional[random.Random] = None):
        self.config = config or RetryPolicyConfig()
        self._rng = rng or random.Random()

    def is_retryable(self, failure: ResolutionFailure) -> bool:
        """Classify a resolution failure as retryable or terminal."""
        if failure.kind == FailureKind.INVALID_URL:
            # A failed DNS lookup may be transient; every other rejection is not
            return failure.rejection == RejectionReason.UNRESOLVABLE_HOST

        if failure.kind == FailureKind.HTTP_ERROR:
            if failure.status_code is None:
                return False
            return failure.status_code >= 500 or failure.status_code in RETRYABLE_CLIENT_STATUS

        return failure.kind in RETRYABLE_KINDS

    def backoff_seconds(self, retry_count: int) -> float:
        """Delay before the next attempt for an article that has failed ``retry_count`` times."""
        delay = min(self.config.base_delay_sec * (2 ** retry_count), self.config.max_delay_sec)
        jitter = self._rng.uniform(0, self.config.max_jitter_sec) if self.config.max_jitter_sec else 0.0
        return delay + jitter

    def decide(self, retry_count: int, retryable: bool, now: datetime) -> RetryDecision:
        """
        Compute the bookkeeping for a failed attempt.

        Args:
            retry_count: Retry count before this failure
            retryable: Whether the failure was classified retryable
            now: Failure time

        Returns:
            RetryDecision with the new count, next attempt time and whether
            the article is now permanently failed
        """
        if not retryable:
            return RetryDecision(retry_count=retry_count, next_retry_at=None, terminal=True)

        new_count = retry_count + 1
        if new_count > self.config.max_retries:
            return RetryDecision(retry_count=new_count, next_retry_at=None, terminal=True)

        next_retry_at = now + timedelta(seconds=self.backoff_seconds(retry_count))
        return RetryDecision(retry_count=new_count, next_retry_at=next_retry_at, terminal=False)
