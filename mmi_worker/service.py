"""
Main worker service.

Wires configuration, adapters, the model clients, the job state machine and
the dispatch server together, and owns their lifecycle.
"""

import signal
import sys
import logging
from typing import Optional, Dict, Any

from openai import OpenAI

from .config import WorkerConfig
from .adapters.postgres_adapter import PostgresJobStoreAdapter, PostgresCatalogAdapter
from .adapters.s3_adapter import S3BlobStoreAdapter
from .dispatcher import JobDispatcher
from .http_server import DispatchServer
from .logging_setup import setup_logging, log_exception
from .orchestrator import JobStateMachine
from .pipeline.assess import Assessor
from .pipeline.transcribe import Transcriber
from .processor import AttemptProcessor
from .retry import RetryPolicy

logger = logging.getLogger("mmi_worker")


class WorkerService:
    """Main worker service"""

    def __init__(self, config: Optional[WorkerConfig] = None):
        self.config = config or WorkerConfig.from_env()
        self.store: Optional[PostgresJobStoreAdapter] = None
        self.catalog: Optional[PostgresCatalogAdapter] = None
        self.blobs: Optional[S3BlobStoreAdapter] = None
        self.state_machine: Optional[JobStateMachine] = None
        self.dispatcher: Optional[JobDispatcher] = None
        self.server: Optional[DispatchServer] = None
        self.running = False

    def initialize(self):
        """Initialize worker components based on configuration"""
        try:
            setup_logging(self.config.LOG_LEVEL, self.config.LOG_DIR)

            self.config.validate()

            self._initialize_adapters()

            client = OpenAI(api_key=self.config.OPENAI_API_KEY, timeout=self.config.OPENAI_TIMEOUT)
            transcriber = Transcriber(client=client, model=self.config.TRANSCRIPTION_MODEL)
            assessor = Assessor(
                client=client,
                model=self.config.ASSESSMENT_MODEL,
                max_tokens=self.config.ASSESSMENT_MAX_TOKENS,
                temperature=self.config.ASSESSMENT_TEMPERATURE
            )

            processor = AttemptProcessor(self.store, self.blobs, self.catalog, transcriber, assessor)
            self.state_machine = JobStateMachine(
                self.store, processor, RetryPolicy(default_max_retries=self.config.MAX_RETRIES)
            )
            self.dispatcher = JobDispatcher(
                self.state_machine,
                max_workers=self.config.MAX_CONCURRENT_JOBS,
                queue_size=self.config.QUEUE_SIZE
            )
            self.server = DispatchServer(
                self.dispatcher,
                self.store,
                host=self.config.HTTP_HOST,
                port=self.config.HTTP_PORT,
                extra_stats={'config': self.config.describe()}
            )

            logger.info("Worker service initialized successfully")

        except Exception as e:
            log_exception(logger, f"Failed to initialize worker service: {e}")
            raise

    def _initialize_adapters(self):
        """Initialize record store, catalog and blob storage adapters"""
        self.store = PostgresJobStoreAdapter(
            database_url=self.config.DATABASE_URL,
            pool_size=self.config.POSTGRES_POOL_SIZE,
            timeout=self.config.POSTGRES_TIMEOUT,
            tables=self.config.TABLES,
            lease_seconds=self.config.CLAIM_LEASE_SECONDS
        )
        self.store.connect()

        self.catalog = PostgresCatalogAdapter(
            database_url=self.config.DATABASE_URL,
            pool_size=self.config.POSTGRES_POOL_SIZE,
            timeout=self.config.POSTGRES_TIMEOUT,
            tables=self.config.TABLES
        )
        self.catalog.connect()

        self.blobs = S3BlobStoreAdapter(
            bucket=self.config.STORAGE_BUCKET,
            region=self.config.AWS_REGION,
            endpoint_url=self.config.S3_ENDPOINT_URL,
            timeout=self.config.S3_TIMEOUT
        )
        self.blobs.connect()

        logger.info(f"Initialized adapters: postgres records, s3 bucket {self.config.STORAGE_BUCKET}")

    def start(self):
        """Start serving dispatch requests; blocks until shutdown"""
        if self.running:
            logger.warning("Worker service is already running")
            return

        self.running = True
        logger.info("Background worker running")
        self.server.run()

    def stop(self):
        """Stop the worker service"""
        if self.dispatcher:
            self.dispatcher.shutdown(wait=True)

        for adapter in (self.store, self.catalog, self.blobs):
            if adapter:
                adapter.close()

        self.running = False
        logger.info("Worker service stopped")

    def get_stats(self) -> Dict[str, Any]:
        """Get worker statistics"""
        stats = {
            'running': self.running,
            'config': self.config.describe()
        }

        if self.dispatcher:
            stats['dispatcher'] = self.dispatcher.get_stats()
        if self.state_machine:
            stats['jobs'] = self.state_machine.get_stats()

        return stats


def signal_handler(signum, frame):
    """Handle shutdown signals"""
    logger.info(f"Received signal {signum}, shutting down...")
    sys.exit(0)


def main():
    """Main entry point"""
    signal.signal(signal.SIGTERM, signal_handler)

    worker = WorkerService()

    try:
        worker.initialize()
        worker.start()
    except Exception as e:
        log_exception(logger, f"Worker failed to start: {str(e)}")
        sys.exit(1)
    finally:
        worker.stop()


if __name__ == "__main__":
    main()
