"""
Image storage for post attachments: an S3-compatible bucket in production and
an in-memory double for development and tests.
"""

from dataclasses import dataclass, field
from typing import Dict, Optional, Protocol

import boto3
from botocore.config import Config

from socialnet.config import settings


@dataclass
class StoredImage:
    url: str
    public_id: str


class ImageStorage(Protocol):
    """What the upload route needs from object storage."""

    def upload_image(self, key: str, data: bytes, content_type: str) -> StoredImage:
        ...


@dataclass
class InMemoryImageStorage:
    base_url: str = "https://example.test/images"
    stored_objects: Dict[str, bytes] = field(default_factory=dict)

    def upload_image(self, key: str, data: bytes, content_type: str) -> StoredImage:
        self.stored_objects[key] = data
        return StoredImage(url=f"{self.base_url}/{key}", public_id=key)


@dataclass
class S3ImageStorage:
    bucket: str
    region: str = ""
    endpoint: str = ""
    access_key_id: str = ""
    secret_access_key: str = ""
    public_url: Optional[str] = None

    def __post_init__(self):
        self._client = boto3.client(
            "s3",
            endpoint_url=self.endpoint or None,
            region_name=self.region or None,
            aws_access_key_id=self.access_key_id or None,
            aws_secret_access_key=self.secret_access_key or None,
            config=Config(signature_version="s3v4"),
        )

    def _url_for(self, key: str) -> str:
        if self.public_url:
            return f"{self.public_url.rstrip('/')}/{key}"
        if self.endpoint:
            return f"{self.endpoint.rstrip('/')}/{self.bucket}/{key}"
        return f"https://{self.bucket}.s3.{self.region or 'us-east-1'}.amazonaws.com/{key}"

    def upload_image(self, key: str, data: bytes, content_type: str) -> StoredImage:
        self._client.put_object(
            Bucket=self.bucket,
            Key=key,
            Body=data,
            ContentType=content_type,
        )
        return StoredImage(url=self._url_for(key), public_id=key)


_image_storage: Optional[ImageStorage] = None


def get_image_storage() -> ImageStorage:
    global _image_storage
    if _image_storage:
        return _image_storage

    if settings.storage_bucket:
        _image_storage = S3ImageStorage(
            bucket=settings.storage_bucket,
            region=settings.storage_region or "",
            endpoint=settings.storage_endpoint or "",
            access_key_id=settings.aws_access_key_id or "",
            secret_access_key=settings.aws_secret_access_key or "",
            public_url=settings.storage_public_url,
        )
    else:
        _image_storage = InMemoryImageStorage()
    return _image_storage
