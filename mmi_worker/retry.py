"""
Bounded retry policy for failed jobs.
"""

from dataclasses import dataclass
from typing import Optional, Tuple

from .models import JobStatus


@dataclass(frozen=True)
class RetryPolicy:
    """Decides the next job status after a recoverable failure"""

    default_max_retries: int = 3

    def budget(self, max_retries: Optional[int]) -> int:
        """Effective retry budget for a job row"""
        if max_retries is None:
            return self.default_max_retries
        return max_retries

    def exhausted(self, retry_count: int, max_retries: Optional[int]) -> bool:
        return (retry_count or 0) >= self.budget(max_retries)

    def next_status(self, retry_count: int, max_retries: Optional[int]) -> Tuple[str, int]:
        """
        Increment the retry counter and pick the follow-up status.

        Returns:
            Tuple of (status, new_retry_count); the status is pending while the
            incremented count stays below the budget, failed otherwise
        """
        new_count = (retry_count or 0) + 1
        if new_count < self.budget(max_retries):
            return JobStatus.PENDING, new_count
        return JobStatus.FAILED, new_count
