"""
S3 adapter for recording storage.

Works against AWS S3 or any S3-compatible endpoint (e.g. Supabase storage)
through S3_ENDPOINT_URL.
"""

import logging
from typing import Optional, List

import boto3
from botocore.config import Config
from botocore.exceptions import ClientError

from .base import BlobStoreAdapter
from ..models import BlobObject

logger = logging.getLogger("mmi_worker")


class S3BlobStoreAdapter(BlobStoreAdapter):
    """AWS S3 implementation of the blob store adapter"""

    def __init__(self, bucket: str, region: str = "us-east-1",
                 endpoint_url: Optional[str] = None, timeout: int = 30):
        self.bucket = bucket
        self.region = region
        self.endpoint_url = endpoint_url
        self.timeout = timeout
        self.s3 = None

    def connect(self):
        """Initialize S3 client"""
        try:
            self.s3 = boto3.client(
                's3',
                region_name=self.region,
                endpoint_url=self.endpoint_url,
                config=Config(
                    connect_timeout=self.timeout,
                    read_timeout=self.timeout,
                    retries={'max_attempts': 3, 'mode': 'standard'}
                )
            )
            logger.info(f"S3 storage connected to bucket: {self.bucket}")
        except Exception as e:
            logger.error(f"Failed to connect to S3: {e}")
            raise

    def list(self, prefix: str) -> List[str]:
        """List object names directly under a folder prefix"""
        folder = f"{prefix.strip('/')}/" if prefix.strip('/') else ""
        names = []
        try:
            paginator = self.s3.get_paginator('list_objects_v2')
            for page in paginator.paginate(Bucket=self.bucket, Prefix=folder, Delimiter='/'):
                for obj in page.get('Contents', []):
                    name = obj['Key'][len(folder):]
                    if name:
                        names.append(name)
        except ClientError as e:
            logger.error(f"Error listing s3://{self.bucket}/{folder}: {e}")
            raise

        logger.debug(f"Listed {len(names)} objects under s3://{self.bucket}/{folder}")
        return names

    def download(self, path: str, max_bytes: Optional[int] = None) -> BlobObject:
        """Download a recording into memory, skipping the body when it is over max_bytes"""
        try:
            response = self.s3.get_object(Bucket=self.bucket, Key=path)
            body = response['Body']
            content_length = response.get('ContentLength')

            if max_bytes is not None and content_length is not None and content_length > max_bytes:
                body.close()
                logger.warning(f"Skipped s3://{self.bucket}/{path}: {content_length} bytes is over {max_bytes}")
                return BlobObject(path=path, data=b"", size=content_length)

            # One byte past the limit is enough to report an oversized object
            data = body.read() if max_bytes is None else body.read(max_bytes + 1)
        except ClientError as e:
            logger.error(f"Error downloading s3://{self.bucket}/{path}: {e}")
            raise

        size = max(len(data), content_length or 0)
        logger.info(f"Downloaded s3://{self.bucket}/{path} ({size} bytes)")
        return BlobObject(path=path, data=data, size=size)

    def close(self):
        """Close S3 connection"""
        self.s3 = None
        logger.info("S3 storage connection closed")
