"""
Storage for uploaded media files: local disk, S3-compatible buckets, and an
in-memory double for tests.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Protocol

import boto3
from botocore.config import Config


class MediaStorage(Protocol):
    """Defines the operations the API needs from file storage."""

    def save(self, filename: str, data: bytes, content_type: str) -> str:
        """Persist `data` under `filename` and return its public URL."""
        ...

    def delete(self, filename: str) -> None:
        ...


@dataclass
class InMemoryMediaStorage:
    """Test double for storage interactions."""

    url_prefix: str = "/uploads"
    stored_objects: dict = field(default_factory=dict)

    def save(self, filename: str, data: bytes, content_type: str) -> str:
        self.stored_objects[filename] = (data, content_type)
        return f"{self.url_prefix}/{filename}"

    def delete(self, filename: str) -> None:
        self.stored_objects.pop(filename, None)


@dataclass
class LocalMediaStorage:
    """Writes files into a directory that the app serves under `url_prefix`."""

    directory: str
    url_prefix: str = "/uploads"

    def __post_init__(self):
        self.root = Path(self.directory)
        self.root.mkdir(parents=True, exist_ok=True)

    def _path(self, filename: str) -> Path:
        path = (self.root / filename).resolve()
        if path.parent != self.root.resolve():
            raise ValueError(f"Refusing to touch {filename!r} outside the upload directory")
        return path

    def save(self, filename: str, data: bytes, content_type: str) -> str:
        self._path(filename).write_bytes(data)
        return f"{self.url_prefix}/{filename}"

    def delete(self, filename: str) -> None:
        self._path(filename).unlink(missing_ok=True)


@dataclass
class S3MediaStorage:
    """
    S3-compatible storage client. Objects are written under `key_prefix` and
    linked through `public_base_url` (a CDN or the bucket's website endpoint).
    """

    bucket: str
    region: str
    endpoint: str
    access_key_id: str
    secret_access_key: str
    public_base_url: str
    key_prefix: str = "uploads"

    def __post_init__(self):
        config = Config(
            s3={"addressing_style": "virtual"},
            signature_version="s3v4",
        )
        self._client = boto3.client(
            "s3",
            endpoint_url=self.endpoint or None,
            region_name=self.region or None,
            aws_access_key_id=self.access_key_id or None,
            aws_secret_access_key=self.secret_access_key or None,
            config=config,
        )

    def _key(self, filename: str) -> str:
        return f"{self.key_prefix}/{filename}" if self.key_prefix else filename

    def save(self, filename: str, data: bytes, content_type: str) -> str:
        self._client.put_object(
            Bucket=self.bucket,
            Key=self._key(filename),
            Body=data,
            ContentType=content_type,
        )
        return f"{self.public_base_url.rstrip('/')}/{self._key(filename)}"

    def delete(self, filename: str) -> None:
        self._client.delete_object(Bucket=self.bucket, Key=self._key(filename))
