"""
Adapter pattern implementations for the record store, blob store and catalog.

This module provides abstract base classes and concrete implementations
backed by Postgres (jobs, attempts, catalog) and S3 (recordings).
"""

from .base import JobStoreAdapter, BlobStoreAdapter, CatalogAdapter
from .postgres_adapter import PostgresJobStoreAdapter, PostgresCatalogAdapter
from .s3_adapter import S3BlobStoreAdapter

__all__ = [
    'JobStoreAdapter',
    'BlobStoreAdapter',
    'CatalogAdapter',
    'PostgresJobStoreAdapter',
    'PostgresCatalogAdapter',
    'S3BlobStoreAdapter'
]
