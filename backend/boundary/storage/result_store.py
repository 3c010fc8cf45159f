"""
Result persistence.

Copies inference outputs (short-lived provider URLs) into durable storage
and returns the locators recorded on the job.

Dependencies: boto3, botocore, requests, backend.boundary.aws
System role: Final persistence step of the processing flow
"""

import asyncio
import logging
from typing import Protocol
from urllib.parse import quote

from botocore.exceptions import BotoCoreError, ClientError
import requests

from backend.boundary.aws.s3_client import S3ResultClient
from backend.core.exceptions import ResultPersistenceError

logger = logging.getLogger(__name__)

CONTENT_TYPES = {
    "jpg": "image/jpeg",
    "png": "image/png",
    "webp": "image/webp",
}


class ResultStore(Protocol):
    """Persists output images for a job and returns their locators."""

    async def persist(
        self,
        job_id: str,
        owner_id: str,
        output_urls: list[str],
        output_format: str,
    ) -> list[str]:
        ...


class PassthroughResultStore:
    """Keeps the inference provider URLs as the job result."""

    async def persist(
        self,
        job_id: str,
        owner_id: str,
        output_urls: list[str],
        output_format: str,
    ) -> list[str]:
        if not output_urls:
            raise ResultPersistenceError("No outputs to persist", job_id=job_id)
        return list(output_urls)


class S3ResultStore:
    """
    Downloads every output and uploads it to the results bucket.

    Objects are written to ``{prefix}/{owner}/{job_id}/{n}.{ext}`` with n
    starting at 1, in output order.
    """

    def __init__(
        self,
        client: S3ResultClient,
        key_prefix: str = "results",
        download_timeout_seconds: float = 60.0,
        http: requests.Session | None = None,
    ) -> None:
        self.client = client
        self.key_prefix = key_prefix.strip("/")
        self.download_timeout_seconds = download_timeout_seconds
        self._http = http or requests.Session()

    def object_key(self, owner_id: str, job_id: str, index: int, output_format: str) -> str:
        return f"{self.key_prefix}/{quote(owner_id, safe='')}/{job_id}/{index}.{output_format}"

    async def persist(
        self,
        job_id: str,
        owner_id: str,
        output_urls: list[str],
        output_format: str,
    ) -> list[str]:
        """
        Copy outputs into the results bucket.

        Args:
            job_id: Job id
            owner_id: Job owner, used in the key layout
            output_urls: Inference output URLs
            output_format: Extension for the stored objects

        Returns:
            list[str]: Public URLs of the stored objects, in output order

        Raises:
            ResultPersistenceError: If any download or upload fails
        """
        if not output_urls:
            raise ResultPersistenceError("No outputs to persist", job_id=job_id)

        locators = []
        for index, url in enumerate(output_urls, start=1):
            key = self.object_key(owner_id, job_id, index, output_format)
            locators.append(
                await asyncio.to_thread(self._copy, job_id, url, key, output_format)
            )

        logger.info(
            "Stored job results",
            extra={"job_id": job_id, "bucket": self.client.bucket, "objects": len(locators)},
        )
        return locators

    def _copy(self, job_id: str, url: str, key: str, output_format: str) -> str:
        try:
            response = self._http.get(url, timeout=self.download_timeout_seconds)
            response.raise_for_status()
        except requests.RequestException as e:
            raise ResultPersistenceError(
                f"Failed to download inference output: {e}",
                job_id=job_id,
                details={"key": key},
            ) from e

        content_type = CONTENT_TYPES.get(output_format, "application/octet-stream")
        try:
            self.client.upload_bytes(key, response.content, content_type)
        except (ClientError, BotoCoreError) as e:
            raise ResultPersistenceError(
                f"Failed to upload result: {e}",
                job_id=job_id,
                details={"key": key, "bucket": self.client.bucket},
            ) from e
        return self.client.public_url(key)

    def close(self) -> None:
        self._http.close()
