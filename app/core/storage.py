"""
Object storage adapter for vehicle photos.

The bucket holds one folder per vehicle (``mercedes-c43/c43-main.jpg``,
``mercedes-c43/c43-2.jpg`` ...). Only two operations are needed: list the
entries directly under a folder and build the public URL of one entry.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import List, Optional, Protocol
from urllib.parse import quote

import boto3
from botocore.exceptions import BotoCoreError, ClientError, EndpointConnectionError

from core.environment import (
    get_asset_bucket,
    get_asset_endpoint_url,
    get_asset_public_base_url,
    get_aws_region,
    get_storage_retry_attempts,
)
from core.retry import async_retry, NonRetryableError, RetryableError
from services.exceptions import AssetStorageError

logger = logging.getLogger(__name__)

RETRYABLE_ERROR_CODES = {"SlowDown", "Throttling", "ThrottlingException", "RequestTimeout", "InternalError", "ServiceUnavailable"}


@dataclass(frozen=True)
class StorageEntry:
    """One object directly under a folder; ``name`` is the basename."""
    name: str
    size: Optional[int] = None


class AssetStorage(Protocol):
    async def list_folder(self, folder: str) -> List[StorageEntry]:
        ...

    def public_url(self, folder: str, name: str) -> str:
        ...


class S3AssetStorage:
    """S3-compatible implementation of ``AssetStorage`` backed by boto3."""

    def __init__(self, bucket: str, public_base_url: str, client=None):
        self.bucket = bucket
        self.public_base_url = public_base_url.rstrip("/")
        self.client = client or boto3.client(
            "s3",
            endpoint_url=get_asset_endpoint_url(),
            region_name=get_aws_region(),
        )

    async def list_folder(self, folder: str) -> List[StorageEntry]:
        """
        Lists the entries directly under ``folder``.

        Raises:
            AssetStorageError: the listing failed after retries
        """
        try:
            return await self._list_with_retry(folder)
        except (RetryableError, NonRetryableError, BotoCoreError, ClientError) as e:
            raise AssetStorageError(f"Listing '{folder}' in bucket '{self.bucket}' failed: {e}") from e

    @async_retry(max_attempts=get_storage_retry_attempts(), base_delay=0.2, max_delay=2.0)
    async def _list_with_retry(self, folder: str) -> List[StorageEntry]:
        return await asyncio.to_thread(self._list_sync, folder)

    def _list_sync(self, folder: str) -> List[StorageEntry]:
        prefix = f"{folder.strip('/')}/"
        entries: List[StorageEntry] = []
        try:
            paginator = self.client.get_paginator("list_objects_v2")
            for page in paginator.paginate(Bucket=self.bucket, Prefix=prefix, Delimiter="/"):
                for obj in page.get("Contents", []):
                    name = obj["Key"][len(prefix):]
                    if not name:
                        # folder marker object
                        continue
                    entries.append(StorageEntry(name=name, size=obj.get("Size")))
        except EndpointConnectionError as e:
            raise RetryableError(str(e)) from e
        except ClientError as e:
            code = e.response.get("Error", {}).get("Code", "")
            if code in RETRYABLE_ERROR_CODES:
                raise RetryableError(f"{code}: {e}") from e
            raise NonRetryableError(f"{code}: {e}") from e

        logger.debug("Listed asset folder", extra={"folder": folder, "entries": len(entries)})
        return entries

    def public_url(self, folder: str, name: str) -> str:
        return f"{self.public_base_url}/{quote(folder.strip('/'))}/{quote(name)}"


_storage: Optional[S3AssetStorage] = None


def get_asset_storage() -> AssetStorage:
    """FastAPI dependency returning the process-wide storage adapter."""
    global _storage
    if _storage is None:
        _storage = S3AssetStorage(
            bucket=get_asset_bucket(),
            public_base_url=get_asset_public_base_url(),
        )
    return _storage
