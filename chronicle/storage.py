"""
Storage abstraction for S3-compatible object storage and in-memory testing.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, Protocol

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from chronicle.errors import UpstreamError


class StorageClient(Protocol):
    """Defines the operations the API needs from object storage."""

    bucket: str

    def upload_bytes(self, key: str, data: bytes, content_type: str) -> None:
        ...

    def public_url(self, key: str) -> str:
        ...


def build_public_url(host: str, bucket: str, key: str) -> str:
    return f"https://{host}/{bucket}/{key}"


@dataclass
class InMemoryStorageClient:
    """Test double for storage interactions."""

    bucket: str = "test-bucket"
    host: str = "storage.googleapis.com"
    stored_objects: dict = field(default_factory=dict)
    fail_with: Optional[str] = None

    def upload_bytes(self, key: str, data: bytes, content_type: str) -> None:
        if self.fail_with:
            raise UpstreamError(self.fail_with)
        self.stored_objects[key] = {"data": bytes(data), "content_type": content_type}

    def public_url(self, key: str) -> str:
        return build_public_url(self.host, self.bucket, key)


@dataclass
class S3StorageClient:
    """
    S3-compatible storage client. Points at the Google Cloud Storage XML
    (interoperability) endpoint unless another endpoint is configured.
    """

    bucket: str
    endpoint: str
    host: str = "storage.googleapis.com"
    region: str = "auto"
    access_key_id: Optional[str] = None
    secret_access_key: Optional[str] = None

    def __post_init__(self):
        # GCS interoperability only understands path-style addressing.
        config = Config(
            s3={"addressing_style": "path"},
            signature_version="s3v4",
        )
        self._client = boto3.client(
            "s3",
            endpoint_url=self.endpoint,
            region_name=self.region,
            aws_access_key_id=self.access_key_id,
            aws_secret_access_key=self.secret_access_key,
            config=config,
        )

    def upload_bytes(self, key: str, data: bytes, content_type: str) -> None:
        # Single PUT; no multipart/resumable session is opened.
        try:
            self._client.put_object(
                Bucket=self.bucket,
                Key=key,
                Body=data,
                ContentType=content_type,
            )
        except (BotoCoreError, ClientError) as exc:
            raise UpstreamError(str(exc)) from exc

    def public_url(self, key: str) -> str:
        return build_public_url(self.host, self.bucket, key)
