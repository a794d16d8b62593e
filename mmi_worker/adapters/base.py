"""
Abstract base classes for the record store, blob store and catalog.

Defines the interface that all adapters must implement, enabling
easy swapping between backends (Postgres, S3, in-memory fakes in tests).
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional, Dict, Any, List

from ..models import Job, Attempt, Station, Article, BlobObject


class JobStoreAdapter(ABC):
    """Keyed-record access to jobs and attempts"""

    def connect(self) -> None:
        """Open connections; no-op by default"""

    def close(self) -> None:
        """Release connections; no-op by default"""

    @abstractmethod
    def get_job(self, job_id: str) -> Optional[Job]:
        """
        Get a job by id.

        Returns:
            Job object if found, None otherwise
        """
        pass

    @abstractmethod
    def claim_job(self, job_id: str, started_at: datetime) -> bool:
        """
        Conditionally move a job to processing.

        The update only applies if the job is not already processing, or if
        the processing claim is older than the store's lease, so a run that
        died mid-job does not block the job forever.

        Returns:
            True if the claim was taken, False if another run holds it
        """
        pass

    @abstractmethod
    def complete_job(self, job_id: str, completed_at: datetime) -> None:
        """Mark a job as completed"""
        pass

    @abstractmethod
    def fail_job(self, job_id: str, error: str, completed_at: datetime) -> None:
        """
        Mark a job as failed without touching its retry counter.

        Args:
            job_id: ID of the failed job
            error: Error message to record verbatim
            completed_at: Completion timestamp
        """
        pass

    @abstractmethod
    def record_retry(self, job_id: str, status: str, retry_count: int, error: str,
                     completed_at: Optional[datetime] = None) -> None:
        """
        Store the outcome of retry bookkeeping.

        Args:
            job_id: ID of the job
            status: pending (requeue) or failed (budget spent)
            retry_count: Incremented retry counter
            error: Error message to record verbatim
            completed_at: Set only when the job becomes terminal
        """
        pass

    @abstractmethod
    def get_attempt(self, attempt_id: str) -> Optional[Attempt]:
        """Get an attempt by id, None if missing"""
        pass

    @abstractmethod
    def update_attempt(self, attempt_id: str, fields: Dict[str, Any]) -> None:
        """Overwrite the given attempt fields"""
        pass

    @abstractmethod
    def ping(self) -> None:
        """Raise if the store is unreachable"""
        pass


class BlobStoreAdapter(ABC):
    """Object storage holding the uploaded recordings"""

    def connect(self) -> None:
        """Create clients; no-op by default"""

    def close(self) -> None:
        """Release clients; no-op by default"""

    @abstractmethod
    def list(self, prefix: str) -> List[str]:
        """
        List object names under a prefix.

        Args:
            prefix: Folder inside the bucket, "" for the root

        Returns:
            Object names relative to the prefix
        """
        pass

    @abstractmethod
    def download(self, path: str, max_bytes: Optional[int] = None) -> BlobObject:
        """
        Download an object and report its size.

        When max_bytes is given, an object larger than that is not read; the
        returned BlobObject carries its real size and no data.
        """
        pass


class CatalogAdapter(ABC):
    """Read-only station and article catalog"""

    def connect(self) -> None:
        """Open connections; no-op by default"""

    def close(self) -> None:
        """Release connections; no-op by default"""

    @abstractmethod
    def get_station(self, station_id: str) -> Optional[Station]:
        """Get a station by id, None if missing"""
        pass

    @abstractmethod
    def list_articles(self) -> List[Article]:
        """Full catalog scan in stable order"""
        pass
