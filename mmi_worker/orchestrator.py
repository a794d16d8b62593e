"""
Job state machine and execution management.

Moves a job from pending to a terminal state: claims it, runs the
AttemptProcessor, and decides between completion, requeue and failure.
"""

import time
import logging
import threading
from typing import Optional, Dict, Any
from datetime import datetime, timezone

from .adapters.base import JobStoreAdapter
from .errors import JobNotFoundError, WorkerError
from .models import Job, JobStatus, ProcessingResult
from .processor import AttemptProcessor
from .retry import RetryPolicy
from .logging_setup import log_exception

logger = logging.getLogger("mmi_worker")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class JobStateMachine:
    """Manages one job run end-to-end and keeps run statistics"""

    def __init__(self, store: JobStoreAdapter, processor: AttemptProcessor,
                 retry_policy: Optional[RetryPolicy] = None):
        self.store = store
        self.processor = processor
        self.retry_policy = retry_policy or RetryPolicy()
        self._stats_lock = threading.Lock()
        self.stats = self._empty_stats()

    def run(self, job_id: str) -> ProcessingResult:
        """
        Execute the pipeline for one job.

        Args:
            job_id: ID of a job in the queue table

        Returns:
            ProcessingResult with the status the job was left in

        Raises:
            JobNotFoundError: the job record is missing or could not be read
        """
        start_time = time.time()
        job = self._load_job(job_id)

        if self.retry_policy.exhausted(job.retry_count, job.max_retries):
            budget = self.retry_policy.budget(job.max_retries)
            error = f"Maximum retries exceeded ({job.retry_count}/{budget})"
            logger.error(f"FAILED: Job {job_id}: {error}")
            self.store.fail_job(job_id, error, utcnow())
            self._record("jobs_failed", start_time)
            return ProcessingResult(job_id=job_id, status=JobStatus.FAILED, error=error)

        if not self.store.claim_job(job_id, utcnow()):
            logger.warning(f"Job {job_id} is already being processed, skipping")
            return ProcessingResult(
                job_id=job_id, status=JobStatus.PROCESSING, error="Job is already being processed"
            )

        logger.info(f"CLAIMED: Processing job {job_id} (retry {job.retry_count})")

        try:
            usable = self.processor.process(job)
            self.store.complete_job(job_id, utcnow())

            processing_time = time.time() - start_time
            self._record("jobs_completed", start_time)
            logger.info(f"COMPLETED: Job {job_id} completed in {processing_time:.1f}s")
            return ProcessingResult(
                job_id=job_id, status=JobStatus.COMPLETED, usable=usable,
                processing_time_sec=processing_time
            )

        except WorkerError as e:
            if e.retryable:
                logger.error(f"Pipeline failed for job {job_id}: {e.message}")
                return self._retry(job, e.message or e.__class__.__name__, start_time)

            logger.error(f"FAILED: Job {job_id} cannot succeed: {e.message}")
            self._fail_permanently(job_id, e.message)
            self._record("jobs_failed", start_time)
            return ProcessingResult(
                job_id=job_id, status=JobStatus.FAILED, error=e.message,
                processing_time_sec=time.time() - start_time
            )

        except Exception as e:
            error = str(e) or e.__class__.__name__
            log_exception(logger, f"Pipeline failed for job {job_id}: {error}")
            return self._retry(job, error, start_time)

    def _retry(self, job: Job, error: str, start_time: float) -> ProcessingResult:
        status = self._handle_failure(job, error)
        self._record("jobs_requeued" if status == JobStatus.PENDING else "jobs_failed", start_time)
        return ProcessingResult(
            job_id=job.id, status=status or JobStatus.PROCESSING, error=error,
            processing_time_sec=time.time() - start_time
        )

    def _load_job(self, job_id: str) -> Job:
        try:
            job = self.store.get_job(job_id)
        except Exception as e:
            raise JobNotFoundError(f"Job lookup failed for {job_id}: {e}") from e

        if job is None:
            raise JobNotFoundError(f"Job not found: {job_id}")
        return job

    def _fail_permanently(self, job_id: str, error: str) -> None:
        """Terminal failure that leaves retry_count untouched"""
        try:
            self.store.fail_job(job_id, error, utcnow())
        except Exception as e:
            log_exception(logger, f"Error marking job {job_id} as failed: {e}")

    def _handle_failure(self, job: Job, error: str) -> Optional[str]:
        """
        Requeue or fail a job after a recoverable error.

        Reads the current retry counters back from the store so the decision
        uses the stored values, not the ones loaded at the start of the run.

        Returns:
            The status written, None if the bookkeeping itself failed
        """
        try:
            current = self.store.get_job(job.id) or job
            status, retry_count = self.retry_policy.next_status(current.retry_count, current.max_retries)
            completed_at = utcnow() if status == JobStatus.FAILED else None
            self.store.record_retry(job.id, status, retry_count, error, completed_at)

            budget = self.retry_policy.budget(current.max_retries)
            if status == JobStatus.PENDING:
                logger.warning(f"RETRY: Job {job.id} requeued (retry {retry_count}/{budget}): {error}")
            else:
                logger.error(f"FAILED: Job {job.id} failed permanently after {retry_count} retries: {error}")
            return status

        except Exception as e:
            log_exception(logger, f"Error handling job failure for {job.id}: {e}")
            return None

    @staticmethod
    def _empty_stats() -> Dict[str, Any]:
        return {
            'jobs_completed': 0,
            'jobs_requeued': 0,
            'jobs_failed': 0,
            'total_processing_time': 0.0,
            'start_time': datetime.now()
        }

    def _record(self, counter: str, start_time: float) -> None:
        with self._stats_lock:
            self.stats[counter] += 1
            self.stats['total_processing_time'] += time.time() - start_time

    def get_stats(self) -> Dict[str, Any]:
        """Get state machine statistics"""
        with self._stats_lock:
            stats = dict(self.stats)

        runs = stats['jobs_completed'] + stats['jobs_requeued'] + stats['jobs_failed']
        uptime = (datetime.now() - stats['start_time']).total_seconds()

        return {
            'jobs_completed': stats['jobs_completed'],
            'jobs_requeued': stats['jobs_requeued'],
            'jobs_failed': stats['jobs_failed'],
            'total_processing_time': stats['total_processing_time'],
            'average_processing_time': stats['total_processing_time'] / runs if runs > 0 else 0,
            'uptime_seconds': uptime,
            'success_rate': stats['jobs_completed'] / runs if runs > 0 else 0
        }

    def reset_stats(self) -> None:
        """Reset state machine statistics"""
        with self._stats_lock:
            self.stats = self._empty_stats()
        logger.info("State machine statistics reset")
