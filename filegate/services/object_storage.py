"""Object storage backends: put/get/delete of opaque blobs by key."""

import os
import tempfile
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Protocol

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from filegate.config import Settings
from filegate.errors import StorageFailure


class ObjectStorage(Protocol):
    def put(self, key: str, data: bytes, content_type: Optional[str] = None) -> None: ...

    def get(self, key: str) -> bytes: ...

    def delete(self, key: str) -> None: ...


@dataclass
class S3ObjectStorage:
    """S3-compatible storage (AWS S3, or Cloudflare R2 through endpoint_url)."""

    bucket: str
    prefix: str = ""
    client: object = None

    def __post_init__(self) -> None:
        self.prefix = (self.prefix or "").strip("/")
        if self.client is None:
            self.client = boto3.client("s3")

    @classmethod
    def from_settings(cls, settings: Settings) -> "S3ObjectStorage":
        if not settings.s3_bucket:
            raise ValueError("S3_BUCKET is not configured")
        client = boto3.client(
            "s3",
            endpoint_url=settings.s3_endpoint_url,
            region_name=settings.s3_region,
            aws_access_key_id=settings.s3_access_key_id,
            aws_secret_access_key=settings.s3_secret_access_key,
        )
        return cls(bucket=settings.s3_bucket, prefix=settings.s3_prefix, client=client)

    def key(self, rel_key: str) -> str:
        rel_key = rel_key.lstrip("/")
        if self.prefix:
            return f"{self.prefix}/{rel_key}"
        return rel_key

    def put(self, key: str, data: bytes, content_type: Optional[str] = None) -> None:
        kwargs = {"Bucket": self.bucket, "Key": self.key(key), "Body": data}
        if content_type:
            kwargs["ContentType"] = content_type
        try:
            self.client.put_object(**kwargs)
        except (ClientError, BotoCoreError) as exc:
            raise StorageFailure("Failed to upload file to storage") from exc

    def get(self, key: str) -> bytes:
        try:
            response = self.client.get_object(Bucket=self.bucket, Key=self.key(key))
            return response["Body"].read()
        except (ClientError, BotoCoreError) as exc:
            raise StorageFailure("Failed to download file from storage") from exc

    def delete(self, key: str) -> None:
        try:
            self.client.delete_object(Bucket=self.bucket, Key=self.key(key))
        except (ClientError, BotoCoreError) as exc:
            raise StorageFailure("Failed to delete file from storage") from exc


@dataclass
class LocalObjectStorage:
    """Local filesystem storage for development, same interface as S3ObjectStorage."""

    base_dir: str = "./storage"

    def __post_init__(self) -> None:
        self.base_dir = os.path.abspath(self.base_dir)
        Path(self.base_dir).mkdir(parents=True, exist_ok=True)

    def _path(self, key: str) -> Path:
        base = Path(self.base_dir)
        path = (base / key.lstrip("/")).resolve()
        if base.resolve() not in path.parents:
            raise StorageFailure("Invalid storage key")
        return path

    def put(self, key: str, data: bytes, content_type: Optional[str] = None) -> None:
        path = self._path(key)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            # Write aside and rename, so an interrupted write never shows up under the key.
            fd, tmp = tempfile.mkstemp(dir=path.parent, prefix=".upload-")
            try:
                with os.fdopen(fd, "wb") as fh:
                    fh.write(data)
                os.replace(tmp, path)
            except BaseException:
                if os.path.exists(tmp):
                    os.unlink(tmp)
                raise
        except OSError as exc:
            raise StorageFailure("Failed to upload file to storage") from exc

    def get(self, key: str) -> bytes:
        try:
            return self._path(key).read_bytes()
        except OSError as exc:
            raise StorageFailure("Failed to download file from storage") from exc

    def delete(self, key: str) -> None:
        try:
            self._path(key).unlink(missing_ok=True)
        except OSError as exc:
            raise StorageFailure("Failed to delete file from storage") from exc


_storage: Optional[ObjectStorage] = None
_storage_lock = threading.Lock()


def build_object_storage(settings: Settings) -> ObjectStorage:
    if settings.storage_backend == "s3":
        return S3ObjectStorage.from_settings(settings)
    if settings.storage_backend == "local":
        return LocalObjectStorage(base_dir=settings.storage_dir)
    raise ValueError(f"Unknown STORAGE_BACKEND: {settings.storage_backend}")


def get_shared_storage(settings: Settings) -> ObjectStorage:
    """Process-wide storage backend (thread-safe lazy init)."""
    global _storage
    if _storage is not None:
        return _storage
    with _storage_lock:
        if _storage is None:
            _storage = build_object_storage(settings)
        return _storage
