"""
Bounded dispatch of job ids onto a worker pool.

submit() returns as soon as the job is admitted; the run itself happens on a
pool thread. Admission is bounded by the number of worker threads plus a
waiting queue, and a job id already in flight is refused.
"""

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any, Dict, Optional

from .errors import DispatcherBusyError, JobAlreadyDispatchedError, JobNotFoundError
from .logging_setup import log_exception
from .models import ProcessingResult
from .orchestrator import JobStateMachine

logger = logging.getLogger("mmi_worker")


class JobDispatcher:
    """Hands job ids to the state machine without waiting for the outcome"""

    def __init__(self, state_machine: JobStateMachine, max_workers: int = 4, queue_size: int = 16):
        self.state_machine = state_machine
        self.max_workers = max_workers
        self.capacity = max_workers + queue_size
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="mmi-job")
        self._slots = threading.BoundedSemaphore(self.capacity)
        self._lock = threading.Lock()
        self._in_flight = set()
        self._rejected = 0

    def submit(self, job_id: str) -> Future:
        """
        Admit a job for processing.

        Raises:
            JobAlreadyDispatchedError: the job id is already queued or running
            DispatcherBusyError: worker threads and queue are full
        """
        with self._lock:
            if job_id in self._in_flight:
                self._rejected += 1
                raise JobAlreadyDispatchedError(f"Job {job_id} is already being processed")
            if not self._slots.acquire(blocking=False):
                self._rejected += 1
                raise DispatcherBusyError(f"Worker is at capacity ({self.capacity} jobs)")
            self._in_flight.add(job_id)

        try:
            future = self._executor.submit(self._run, job_id)
        except RuntimeError:
            self._release(job_id)
            raise

        logger.info(f"Dispatched job {job_id}")
        return future

    def _run(self, job_id: str) -> Optional[ProcessingResult]:
        try:
            return self.state_machine.run(job_id)
        except JobNotFoundError as e:
            logger.error(f"Aborted job {job_id}: {e}")
        except Exception as e:
            log_exception(logger, f"Unexpected error processing job {job_id}: {e}")
        finally:
            self._release(job_id)
        return None

    def _release(self, job_id: str) -> None:
        with self._lock:
            self._in_flight.discard(job_id)
        self._slots.release()

    def in_flight(self) -> int:
        with self._lock:
            return len(self._in_flight)

    def shutdown(self, wait: bool = True) -> None:
        """Stop accepting jobs and optionally wait for running ones"""
        self._executor.shutdown(wait=wait)
        logger.info("Job dispatcher stopped")

    def get_stats(self) -> Dict[str, Any]:
        with self._lock:
            return {
                'in_flight': len(self._in_flight),
                'max_workers': self.max_workers,
                'capacity': self.capacity,
                'rejected': self._rejected
            }
