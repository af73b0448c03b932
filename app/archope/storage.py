from __future__ import annotations

import mimetypes
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, BinaryIO

# Uploaded images never change under a key, so browsers and CDNs may cache them.
IMAGE_CACHE_CONTROL = "public, max-age=31536000, immutable"


class StorageError(RuntimeError):
    pass


class StorageNotFound(StorageError):
    pass


def normalize_key(key: str) -> str:
    """Keys look like "blog/2024/01/<hex>.jpg"; anything escaping the root is refused."""
    cleaned = (key or "").replace("\\", "/").strip("/")
    parts = [p for p in cleaned.split("/") if p not in ("", ".")]
    if not parts or ".." in parts:
        raise StorageError(f"Invalid storage key: {key!r}")
    return "/".join(parts)


def guess_content_type(key: str) -> str:
    return mimetypes.guess_type(key)[0] or "application/octet-stream"


class Storage:
    """Where uploaded images live: a local directory in development, a Spaces/S3 bucket in production."""

    def put_bytes(self, key: str, data: bytes, *, content_type: str | None = None) -> None:
        raise NotImplementedError

    def open(self, key: str) -> tuple[BinaryIO, str]:
        """Return a readable stream and its content type, or raise StorageNotFound."""
        raise NotImplementedError


@dataclass(frozen=True)
class LocalStorage(Storage):
    root: Path

    def _path(self, key: str) -> Path:
        return self.root / normalize_key(key)

    def put_bytes(self, key: str, data: bytes, *, content_type: str | None = None) -> None:
        path = self._path(key)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(data)
        except OSError as e:
            raise StorageError(f"Could not write {key!r}: {e}") from e

    def open(self, key: str) -> tuple[BinaryIO, str]:
        path = self._path(key)
        if not path.is_file():
            raise StorageNotFound(key)
        return path.open("rb"), guess_content_type(key)


@dataclass(frozen=True)
class S3Storage(Storage):
    endpoint: str
    region: str
    bucket: str
    access_key_id: str
    secret_access_key: str
    _clients: dict[str, Any] = field(default_factory=dict, compare=False, repr=False)

    def _client(self):
        client = self._clients.get("s3")
        if client is None:
            import boto3

            client = boto3.client(
                "s3",
                endpoint_url=f"https://{self.endpoint}" if self.endpoint else None,
                region_name=self.region or None,
                aws_access_key_id=self.access_key_id,
                aws_secret_access_key=self.secret_access_key,
            )
            self._clients["s3"] = client
        return client

    def put_bytes(self, key: str, data: bytes, *, content_type: str | None = None) -> None:
        from botocore.exceptions import BotoCoreError, ClientError

        safe_key = normalize_key(key)
        try:
            self._client().put_object(
                Bucket=self.bucket,
                Key=safe_key,
                Body=data,
                ContentType=content_type or guess_content_type(safe_key),
                CacheControl=IMAGE_CACHE_CONTROL,
            )
        except (BotoCoreError, ClientError) as e:
            raise StorageError(f"Upload of {safe_key!r} to bucket {self.bucket!r} failed: {e}") from e

    def open(self, key: str) -> tuple[BinaryIO, str]:
        from botocore.exceptions import BotoCoreError, ClientError

        safe_key = normalize_key(key)
        try:
            obj = self._client().get_object(Bucket=self.bucket, Key=safe_key)
        except ClientError as e:
            code = e.response.get("Error", {}).get("Code")
            if code in ("NoSuchKey", "404", "NotFound"):
                raise StorageNotFound(safe_key) from e
            raise StorageError(f"Could not read {safe_key!r}: {e}") from e
        except BotoCoreError as e:
            raise StorageError(f"Could not read {safe_key!r}: {e}") from e
        return obj["Body"], obj.get("ContentType") or guess_content_type(safe_key)


def storage_from_config(config: dict) -> Storage:
    if (config.get("STORAGE_BACKEND") or "local").strip().lower() == "s3":
        return S3Storage(
            endpoint=(config.get("S3_ENDPOINT") or "").strip(),
            region=(config.get("S3_REGION") or "nyc3").strip(),
            bucket=(config.get("S3_BUCKET") or "").strip(),
            access_key_id=(config.get("S3_ACCESS_KEY_ID") or "").strip(),
            secret_access_key=(config.get("S3_SECRET_ACCESS_KEY") or "").strip(),
        )
    root = (config.get("STORAGE_DIR") or "").strip()
    return LocalStorage(root=Path(root) if root else Path(os.getcwd()) / "storage")


def get_storage() -> Storage:
    """The app's storage backend, built once from config."""
    from flask import current_app

    storage = current_app.extensions.get("archope_storage")
    if storage is None:
        storage = storage_from_config(current_app.config)
        current_app.extensions["archope_storage"] = storage
    return storage
