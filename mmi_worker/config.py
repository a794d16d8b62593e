"""
Configuration management for the assessment worker.

Centralizes all configuration loading from environment variables
and provides type-safe access to configuration values.
"""

import os
from typing import Dict, Any, Optional
from dataclasses import dataclass


@dataclass
class WorkerConfig:
    """Configuration for the assessment worker"""

    # Record store settings
    DATABASE_URL: Optional[str] = None
    POSTGRES_POOL_SIZE: int = 5
    POSTGRES_TIMEOUT: int = 10
    TABLES: Dict[str, str] = None

    # Blob storage settings
    STORAGE_BUCKET: str = "recordings"
    AWS_REGION: str = "us-east-1"
    S3_ENDPOINT_URL: Optional[str] = None
    S3_TIMEOUT: int = 30

    # External model services
    OPENAI_API_KEY: Optional[str] = None
    TRANSCRIPTION_MODEL: str = "whisper-1"
    ASSESSMENT_MODEL: str = "gpt-4o-mini"
    ASSESSMENT_MAX_TOKENS: int = 1200
    ASSESSMENT_TEMPERATURE: float = 0.3
    OPENAI_TIMEOUT: float = 120.0

    # Processing settings
    MAX_RETRIES: int = 3
    CLAIM_LEASE_SECONDS: int = 900
    MAX_CONCURRENT_JOBS: int = 4
    QUEUE_SIZE: int = 16

    # HTTP server
    HTTP_HOST: str = "0.0.0.0"
    HTTP_PORT: int = 4000

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_DIR: str = "/app/data/worker"

    def __post_init__(self):
        if self.TABLES is None:
            self.TABLES = self._default_tables()

    @classmethod
    def from_env(cls) -> 'WorkerConfig':
        """Load configuration from environment variables"""
        config = cls()

        # Record store configuration
        config.DATABASE_URL = os.getenv("DATABASE_URL")
        config.POSTGRES_POOL_SIZE = int(os.getenv("POSTGRES_POOL_SIZE", "5"))
        config.POSTGRES_TIMEOUT = int(os.getenv("POSTGRES_TIMEOUT", "10"))
        config.TABLES = cls._parse_tables()

        # Blob storage configuration
        config.STORAGE_BUCKET = os.getenv("STORAGE_BUCKET", "recordings")
        config.AWS_REGION = os.getenv("AWS_REGION", "us-east-1")
        config.S3_ENDPOINT_URL = os.getenv("S3_ENDPOINT_URL") or None
        config.S3_TIMEOUT = int(os.getenv("S3_TIMEOUT", "30"))

        # External model services
        config.OPENAI_API_KEY = os.getenv("OPENAI_API_KEY")
        config.TRANSCRIPTION_MODEL = os.getenv("TRANSCRIPTION_MODEL", "whisper-1")
        config.ASSESSMENT_MODEL = os.getenv("ASSESSMENT_MODEL", "gpt-4o-mini")
        config.ASSESSMENT_MAX_TOKENS = int(os.getenv("ASSESSMENT_MAX_TOKENS", "1200"))
        config.ASSESSMENT_TEMPERATURE = float(os.getenv("ASSESSMENT_TEMPERATURE", "0.3"))
        config.OPENAI_TIMEOUT = float(os.getenv("OPENAI_TIMEOUT", "120"))

        # Processing settings
        config.MAX_RETRIES = int(os.getenv("MAX_RETRIES", "3"))
        config.CLAIM_LEASE_SECONDS = int(os.getenv("CLAIM_LEASE_SECONDS", "900"))
        config.MAX_CONCURRENT_JOBS = int(os.getenv("WORKER_MAX_CONCURRENT", "4"))
        config.QUEUE_SIZE = int(os.getenv("WORKER_QUEUE_SIZE", "16"))

        # HTTP server
        config.HTTP_HOST = os.getenv("HTTP_HOST", "0.0.0.0")
        config.HTTP_PORT = int(os.getenv("PORT", "4000"))

        # Logging
        config.LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
        config.LOG_DIR = os.getenv("LOG_DIR", "/app/data/worker")

        return config

    @staticmethod
    def _default_tables() -> Dict[str, str]:
        return {
            "jobs": "analysis_queue",
            "attempts": "attempts",
            "stations": "stations",
            "articles": "articles"
        }

    @classmethod
    def _parse_tables(cls) -> Dict[str, str]:
        """Parse table name overrides"""
        defaults = cls._default_tables()
        return {
            "jobs": os.getenv("JOBS_TABLE", defaults["jobs"]),
            "attempts": os.getenv("ATTEMPTS_TABLE", defaults["attempts"]),
            "stations": os.getenv("STATIONS_TABLE", defaults["stations"]),
            "articles": os.getenv("ARTICLES_TABLE", defaults["articles"])
        }

    def min_claim_lease(self) -> float:
        """Upper bound of one run: listing and download, then transcription and assessment"""
        return 2 * self.S3_TIMEOUT + 2 * self.OPENAI_TIMEOUT

    def validate(self) -> None:
        """Validate configuration and raise errors for missing required values"""
        required_vars = []

        if not self.DATABASE_URL:
            required_vars.append("DATABASE_URL")

        if not self.OPENAI_API_KEY:
            required_vars.append("OPENAI_API_KEY")

        if required_vars:
            raise ValueError(f"Missing required environment variables: {', '.join(required_vars)}")

        if self.MAX_RETRIES < 1:
            raise ValueError("MAX_RETRIES must be at least 1")

        if self.CLAIM_LEASE_SECONDS <= self.min_claim_lease():
            raise ValueError(
                f"CLAIM_LEASE_SECONDS must exceed {self.min_claim_lease():.0f}s, "
                "the longest a run can wait on storage and the model services"
            )

        if self.MAX_CONCURRENT_JOBS < 1:
            raise ValueError("WORKER_MAX_CONCURRENT must be at least 1")

    def describe(self) -> Dict[str, Any]:
        """Non-secret settings for the stats endpoint"""
        return {
            'storage_bucket': self.STORAGE_BUCKET,
            'transcription_model': self.TRANSCRIPTION_MODEL,
            'assessment_model': self.ASSESSMENT_MODEL,
            'max_retries': self.MAX_RETRIES,
            'claim_lease_seconds': self.CLAIM_LEASE_SECONDS,
            'max_concurrent_jobs': self.MAX_CONCURRENT_JOBS,
            'queue_size': self.QUEUE_SIZE
        }
