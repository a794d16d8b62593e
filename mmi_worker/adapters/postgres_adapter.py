"""
Postgres adapter implementations for the record store and catalog.

Jobs live in the queue table, attempts in the attempts table; stations and
articles are read-only catalog tables.
"""

import logging
from datetime import datetime, timedelta
from typing import Optional, Dict, Any, List

from psycopg import sql
from psycopg.rows import dict_row
from psycopg.types.json import Jsonb
from psycopg_pool import ConnectionPool

from .base import JobStoreAdapter, CatalogAdapter
from ..models import Job, Attempt, Station, Article, JobStatus
from ..logging_setup import log_exception

logger = logging.getLogger("mmi_worker")

ATTEMPT_WRITABLE_COLUMNS = (
    "transcript",
    "scores",
    "metrics",
    "feedback",
    "recommended_articles",
    "updated_at",
)


class PostgresAdapter:
    """Shared connection pool handling"""

    application_name = "mmi_worker"

    def __init__(self, database_url: str, pool_size: int = 5, timeout: int = 10,
                 tables: Optional[Dict[str, str]] = None):
        self.database_url = database_url
        self.pool_size = pool_size
        self.timeout = timeout
        self.tables = tables or {}
        self.pool = None

    def connect(self):
        """Initialize connection pool"""
        try:
            self.pool = ConnectionPool(
                self.database_url,
                min_size=1,
                max_size=self.pool_size,
                timeout=self.timeout,
                kwargs={
                    "connect_timeout": self.timeout,
                    "application_name": self.application_name
                }
            )
            logger.info(f"Postgres connection pool initialized for {self.application_name}")
        except Exception as e:
            log_exception(logger, f"Failed to connect to Postgres: {e}")
            raise

    def _table(self, name: str, default: str) -> sql.Identifier:
        return sql.Identifier(self.tables.get(name, default))

    def ping(self) -> None:
        with self.pool.connection() as conn:
            with conn.cursor() as cur:
                cur.execute("SELECT 1")
                cur.fetchone()

    def close(self):
        """Close connection pool"""
        if self.pool:
            self.pool.close()
            logger.info(f"Postgres connection pool closed for {self.application_name}")


class PostgresJobStoreAdapter(PostgresAdapter, JobStoreAdapter):
    """Postgres implementation of the job/attempt store"""

    application_name = "mmi_worker_jobs"

    def __init__(self, database_url: str, pool_size: int = 5, timeout: int = 10,
                 tables: Optional[Dict[str, str]] = None, lease_seconds: int = 900):
        super().__init__(database_url, pool_size, timeout, tables)
        self.lease_seconds = lease_seconds

    @property
    def jobs_table(self) -> sql.Identifier:
        return self._table("jobs", "analysis_queue")

    @property
    def attempts_table(self) -> sql.Identifier:
        return self._table("attempts", "attempts")

    def get_job(self, job_id: str) -> Optional[Job]:
        """Get information about a specific job"""
        with self.pool.connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(sql.SQL("""
                    SELECT id, attempt_id, video_url, status, retry_count, max_retries,
                           started_at, completed_at, error_message
                    FROM {} WHERE id = %s
                """).format(self.jobs_table), (job_id,))
                result = cur.fetchone()
                if result:
                    return Job(
                        id=result['id'],
                        attempt_id=result['attempt_id'],
                        video_url=result['video_url'],
                        status=result['status'],
                        retry_count=result['retry_count'] or 0,
                        max_retries=result['max_retries'],
                        started_at=result['started_at'],
                        completed_at=result['completed_at'],
                        error_message=result['error_message']
                    )
                return None

    def claim_job(self, job_id: str, started_at: datetime) -> bool:
        """Move job to processing unless another run holds an unexpired claim"""
        stale_before = started_at - timedelta(seconds=self.lease_seconds)
        with self.pool.connection() as conn:
            with conn.cursor() as cur:
                cur.execute(sql.SQL("""
                    UPDATE {}
                    SET status = %s, started_at = %s
                    WHERE id = %s
                      AND (status <> %s OR started_at IS NULL OR started_at < %s)
                    RETURNING id
                """).format(self.jobs_table),
                    (JobStatus.PROCESSING, started_at, job_id, JobStatus.PROCESSING, stale_before))
                result = cur.fetchone()
                conn.commit()
                return result is not None

    def complete_job(self, job_id: str, completed_at: datetime) -> None:
        """Mark job as completed"""
        with self.pool.connection() as conn:
            with conn.cursor() as cur:
                cur.execute(sql.SQL("""
                    UPDATE {} SET status = %s, completed_at = %s WHERE id = %s
                """).format(self.jobs_table), (JobStatus.COMPLETED, completed_at, job_id))
                conn.commit()
                logger.info(f"Job {job_id} completed")

    def fail_job(self, job_id: str, error: str, completed_at: datetime) -> None:
        """Mark job as failed"""
        with self.pool.connection() as conn:
            with conn.cursor() as cur:
                cur.execute(sql.SQL("""
                    UPDATE {}
                    SET status = %s, error_message = %s, completed_at = %s
                    WHERE id = %s
                """).format(self.jobs_table), (JobStatus.FAILED, error, completed_at, job_id))
                conn.commit()
                logger.error(f"Job {job_id} failed: {error}")

    def record_retry(self, job_id: str, status: str, retry_count: int, error: str,
                     completed_at: Optional[datetime] = None) -> None:
        """Store incremented retry counter with the follow-up status"""
        with self.pool.connection() as conn:
            with conn.cursor() as cur:
                cur.execute(sql.SQL("""
                    UPDATE {}
                    SET status = %s, retry_count = %s, error_message = %s, completed_at = %s
                    WHERE id = %s
                """).format(self.jobs_table), (status, retry_count, error, completed_at, job_id))
                conn.commit()

    def get_attempt(self, attempt_id: str) -> Optional[Attempt]:
        with self.pool.connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(sql.SQL("""
                    SELECT id, station_ids, transcript, scores, metrics, feedback,
                           recommended_articles, updated_at
                    FROM {} WHERE id = %s
                """).format(self.attempts_table), (attempt_id,))
                result = cur.fetchone()
                if not result:
                    return None
                return Attempt(
                    id=result['id'],
                    station_ids=list(result['station_ids'] or []),
                    transcript=result['transcript'],
                    scores=result['scores'],
                    metrics=result['metrics'],
                    feedback=result['feedback'] or [],
                    recommended_articles=list(result['recommended_articles'] or []),
                    updated_at=result['updated_at']
                )

    def update_attempt(self, attempt_id: str, fields: Dict[str, Any]) -> None:
        """Overwrite analysis columns on an attempt"""
        unknown = set(fields) - set(ATTEMPT_WRITABLE_COLUMNS)
        if unknown:
            raise ValueError(f"Unsupported attempt columns: {', '.join(sorted(unknown))}")

        columns = [column for column in ATTEMPT_WRITABLE_COLUMNS if column in fields]
        values = [
            Jsonb(fields[column]) if isinstance(fields[column], (dict, list)) else fields[column]
            for column in columns
        ]
        assignments = sql.SQL(", ").join(
            sql.SQL("{} = %s").format(sql.Identifier(column)) for column in columns
        )

        with self.pool.connection() as conn:
            with conn.cursor() as cur:
                cur.execute(sql.SQL("UPDATE {} SET {} WHERE id = %s").format(
                    self.attempts_table, assignments
                ), (*values, attempt_id))
                conn.commit()
                logger.info(f"Attempt {attempt_id} updated ({', '.join(columns)})")


class PostgresCatalogAdapter(PostgresAdapter, CatalogAdapter):
    """Postgres implementation of the read-only station/article catalog"""

    application_name = "mmi_worker_catalog"

    def get_station(self, station_id: str) -> Optional[Station]:
        with self.pool.connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(sql.SQL("""
                    SELECT id, title, prompt, themes, role_play, graph_data, difficulty
                    FROM {} WHERE id = %s
                """).format(self._table("stations", "stations")), (station_id,))
                result = cur.fetchone()
                if not result:
                    logger.warning(f"Station {station_id} not found in catalog")
                    return None
                return Station(
                    id=result['id'],
                    title=result['title'] or "",
                    prompt=result['prompt'] or "",
                    themes=list(result['themes'] or []),
                    role_play=bool(result['role_play']),
                    graph_data=bool(result['graph_data']),
                    difficulty=result['difficulty']
                )

    def list_articles(self) -> List[Article]:
        with self.pool.connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(sql.SQL("""
                    SELECT id, title, category, tags, difficulty
                    FROM {} ORDER BY id
                """).format(self._table("articles", "articles")))
                return [
                    Article(
                        id=row['id'],
                        title=row['title'] or "",
                        category=row['category'] or "",
                        tags=list(row['tags'] or []),
                        difficulty=row['difficulty']
                    )
                    for row in cur.fetchall()
                ]
