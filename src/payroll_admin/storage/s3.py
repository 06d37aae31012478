"""S3-compatible payslip storage."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any
from urllib.parse import quote

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from payroll_admin.storage.base import PDF_CONTENT_TYPE, UploadResult

if TYPE_CHECKING:
    from payroll_admin.config import Settings

logger = logging.getLogger(__name__)


class S3PayslipStorage:
    """Payslip storage on an S3-compatible bucket.

    put_object replaces any existing object at the key, so regenerating a
    payslip with the same token overwrites rather than duplicates.
    """

    def __init__(
        self,
        client: Any,
        bucket: str,
        region: str = "us-east-1",
        endpoint_url: str | None = None,
        public_base_url: str | None = None,
    ):
        self.client = client
        self.bucket = bucket
        self.region = region
        self.endpoint_url = endpoint_url
        self.public_base_url = public_base_url

    @classmethod
    def from_settings(cls, settings: Settings) -> S3PayslipStorage:
        """Build a client from storage settings."""
        client = boto3.client(
            "s3",
            endpoint_url=settings.storage_endpoint_url,
            region_name=settings.storage_region,
            aws_access_key_id=settings.storage_access_key_id,
            aws_secret_access_key=settings.storage_secret_access_key,
        )
        return cls(
            client,
            bucket=settings.storage_bucket,
            region=settings.storage_region,
            endpoint_url=settings.storage_endpoint_url,
            public_base_url=settings.storage_public_base_url,
        )

    def upload(self, path: str, data: bytes, content_type: str = PDF_CONTENT_TYPE) -> UploadResult:
        try:
            self.client.put_object(
                Bucket=self.bucket,
                Key=path,
                Body=data,
                ContentType=content_type,
            )
        except (BotoCoreError, ClientError) as e:
            logger.error("Upload of %s to %s failed: %s", path, self.bucket, e)
            return UploadResult(ok=False, path=path, error=str(e))

        return UploadResult(ok=True, path=path, url=self.public_url(path))

    def public_url(self, path: str) -> str:
        key = quote(path)
        if self.public_base_url:
            return f"{self.public_base_url.rstrip('/')}/{self.bucket}/{key}"
        if self.endpoint_url:
            return f"{self.endpoint_url.rstrip('/')}/{self.bucket}/{key}"
        return f"https://{self.bucket}.s3.{self.region}.amazonaws.com/{key}"

    def check(self) -> str | None:
        try:
            self.client.head_bucket(Bucket=self.bucket)
        except (BotoCoreError, ClientError) as e:
            logger.warning("Bucket %s is not reachable: %s", self.bucket, e)
            return str(e)
        return None
