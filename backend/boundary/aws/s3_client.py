"""
S3 client for the results bucket.

Uploads processed images and builds the public URLs clients download them
from. Works with any S3-compatible endpoint (AWS, R2, MinIO).

Dependencies: boto3
System role: Object storage writes for job results
"""

import boto3


class S3ResultClient:
    """S3 client for result bucket operations."""

    def __init__(
        self,
        bucket: str,
        region: str = "us-east-1",
        endpoint_url: str | None = None,
        public_base_url: str | None = None,
    ) -> None:
        """
        Initialize S3 client for the results bucket.

        Args:
            bucket: S3 bucket name for processed images
            region: AWS region for the bucket
            endpoint_url: Custom endpoint for S3-compatible storage
            public_base_url: Public/CDN base URL for uploaded objects
        """
        self._bucket = bucket
        self._region = region
        self._public_base_url = public_base_url.rstrip("/") if public_base_url else None
        self._s3_client = boto3.client("s3", region_name=region, endpoint_url=endpoint_url)

    @property
    def bucket(self) -> str:
        return self._bucket

    def upload_bytes(self, s3_key: str, body: bytes, content_type: str) -> None:
        """
        Upload an object.

        Args:
            s3_key: S3 object key (path in bucket)
            body: Object bytes
            content_type: MIME type stored with the object

        Raises:
            ClientError: If the upload is rejected
        """
        self._s3_client.put_object(
            Bucket=self._bucket,
            Key=s3_key,
            Body=body,
            ContentType=content_type,
        )

    def public_url(self, s3_key: str) -> str:
        """
        Build the URL clients use to fetch an uploaded object.

        Args:
            s3_key: S3 object key

        Returns:
            str: Public base URL + key, or the virtual-hosted S3 URL
        """
        if self._public_base_url:
            return f"{self._public_base_url}/{s3_key}"
        return f"https://{self._bucket}.s3.{self._region}.amazonaws.com/{s3_key}"
