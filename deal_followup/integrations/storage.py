"""S3 object storage for documents handed to the key-people agent."""

import asyncio
import logging
from uuid import uuid4

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from ..core.config import Settings
from ..core.exceptions import ConfigurationError, StorageError
from ..schemas.files import StoredObject

logger = logging.getLogger(__name__)


class S3Storage:
    """Stores blobs under `{uuid4}-{filename}` keys in the RAG bucket."""

    def __init__(self, settings: Settings, s3_client=None):
        self.settings = settings
        self._client = s3_client

    @property
    def bucket_name(self) -> str:
        if not self.settings.s3_rag_bucket_name:
            raise ConfigurationError("Missing S3_RAG_BUCKET_NAME")
        return self.settings.s3_rag_bucket_name

    @property
    def client(self):
        """Lazily build the boto3 client so missing AWS config fails at first upload."""
        if self._client is None:
            if not self.settings.s3_enabled:
                raise ConfigurationError(
                    "AWS S3 configuration is incomplete (region, access key, secret key, or bucket)"
                )
            self._client = boto3.client(
                "s3",
                region_name=self.settings.aws_region,
                aws_access_key_id=self.settings.aws_access_key_id,
                aws_secret_access_key=self.settings.aws_secret_access_key,
            )
            logger.info(f"S3 client initialized for region {self.settings.aws_region} and bucket {self.bucket_name}")
        return self._client

    @staticmethod
    def make_key(filename: str) -> str:
        return f"{uuid4()}-{filename}"

    def object_url(self, key: str) -> str:
        return f"https://{self.bucket_name}.s3.{self.settings.aws_region}.amazonaws.com/{key}"

    async def store(self, data: bytes, filename: str, mime_type: str) -> StoredObject:
        """Upload one blob and return its locator."""
        key = self.make_key(filename)
        client = self.client
        bucket = self.bucket_name
        logger.info(f"Uploading {filename} as {key} to bucket {bucket}")

        try:
            # boto3 is blocking; keep the event loop free
            await asyncio.to_thread(
                client.put_object,
                Bucket=bucket,
                Key=key,
                Body=data,
                ContentType=mime_type,
            )
        except (BotoCoreError, ClientError) as e:
            logger.error(f"Failed to upload file {filename} to S3: {e}")
            raise StorageError(f"Failed to upload {filename}") from e

        url = self.object_url(key)
        logger.info(f"Successfully uploaded {key} to {url}")
        return StoredObject(key=key, url=url)
