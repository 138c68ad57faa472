"""Object storage for uploaded document files."""
from __future__ import annotations

import json
import logging
import re
import threading
from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Dict, Final, Iterable, List, Optional, Protocol
from urllib.parse import quote, unquote
from uuid import uuid4

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from docrag.models import SetupOutcome, utc_now
from docrag.settings import ConfigurationError, Settings, get_settings
from docrag.telemetry import emit_storage_event

LOGGER = logging.getLogger(__name__)

MAX_UPLOAD_BYTES: Final[int] = 50 * 1024 * 1024
CACHE_CONTROL: Final[str] = "max-age=3600"
ALLOWED_MIME_TYPES: Final[frozenset[str]] = frozenset(
    {
        "text/plain",
        "text/markdown",
        "application/pdf",
        "application/json",
        "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    }
)

_FILENAME_SAFE_CHARS_RE: Final[re.Pattern[str]] = re.compile(r"[^A-Za-z0-9._-]+")
_MISSING_CODES: Final[frozenset[str]] = frozenset({"404", "NoSuchKey", "NoSuchBucket", "NotFound"})
_BUCKET_EXISTS_CODES: Final[frozenset[str]] = frozenset({"BucketAlreadyOwnedByYou", "BucketAlreadyExists"})


class StorageError(RuntimeError):
    """Raised when the object storage backend rejects or fails a request."""

    def __init__(self, message: str, *, cause: Exception | None = None) -> None:
        super().__init__(message)
        self.__cause__ = cause


@dataclass(frozen=True, slots=True)
class StoredObject:
    """A file held in the documents bucket."""

    id: str
    name: str
    key: str
    mime_type: str
    size: int
    created_at: str


class DocumentStorage(Protocol):
    backend_name: str
    bucket: str

    def upload(
        self, key: str, data: bytes, *, content_type: str, document_id: str, name: str
    ) -> StoredObject:
        ...

    def list_objects(self) -> List[StoredObject]:
        ...

    def public_url(self, key: str) -> str:
        ...

    def remove(self, keys: Iterable[str]) -> None:
        ...

    def ensure_bucket(self) -> SetupOutcome:
        ...


def _sanitize_filename(filename: str) -> str:
    """Return a storage-safe filename preserving the extension when possible."""
    if not filename:
        filename = "upload"
    sanitized = filename.replace("\\", "/").rsplit("/", 1)[-1]
    sanitized = _FILENAME_SAFE_CHARS_RE.sub("_", sanitized)
    sanitized = sanitized.strip("._") or "upload"
    return sanitized


def make_object_key(filename: str) -> str:
    """Return a unique object key so uploads never overwrite each other."""

    return f"{uuid4()}-{_sanitize_filename(filename)}"


def _validate_upload(data: bytes, content_type: str) -> None:
    if len(data) > MAX_UPLOAD_BYTES:
        raise StorageError(f"File exceeds the {MAX_UPLOAD_BYTES} byte limit")
    mime = content_type.split(";", 1)[0].strip().lower()
    if mime not in ALLOWED_MIME_TYPES:
        raise StorageError(f"Media type {content_type!r} is not allowed in this bucket")


class InMemoryDocumentStorage:
    """Dictionary-backed bucket used for development and tests."""

    backend_name = "memory"

    def __init__(self, bucket: str = "documents", public_url_base: str | None = None) -> None:
        self.bucket = bucket
        self._public_url_base = (public_url_base or "memory://storage").rstrip("/")
        self._objects: Dict[str, tuple[StoredObject, bytes]] = {}
        self._lock = threading.Lock()
        self._bucket_ready = False

    def upload(
        self, key: str, data: bytes, *, content_type: str, document_id: str, name: str
    ) -> StoredObject:
        _validate_upload(data, content_type)
        stored = StoredObject(
            id=document_id,
            name=name,
            key=key,
            mime_type=content_type,
            size=len(data),
            created_at=utc_now().isoformat(),
        )
        with self._lock:
            if key in self._objects:
                raise StorageError(f"The resource already exists: {key}")
            self._objects[key] = (stored, bytes(data))
        emit_storage_event(
            "storage.upload", backend=self.backend_name, bucket=self.bucket, key=key, size_bytes=len(data)
        )
        return stored

    def list_objects(self) -> List[StoredObject]:
        with self._lock:
            return [stored for stored, _ in self._objects.values()]

    def read(self, key: str) -> bytes:
        with self._lock:
            try:
                return self._objects[key][1]
            except KeyError as exc:
                raise StorageError(f"Object not found: {key}", cause=exc) from exc

    def public_url(self, key: str) -> str:
        return f"{self._public_url_base}/{self.bucket}/{quote(key)}"

    def remove(self, keys: Iterable[str]) -> None:
        removed = 0
        with self._lock:
            for key in keys:
                if self._objects.pop(key, None) is not None:
                    removed += 1
        emit_storage_event("storage.remove", backend=self.backend_name, bucket=self.bucket, size_bytes=None)
        LOGGER.debug("Removed %s objects from bucket %s", removed, self.bucket)

    def ensure_bucket(self) -> SetupOutcome:
        if self._bucket_ready:
            return "exists"
        self._bucket_ready = True
        return "created"


def _error_code(error: ClientError) -> str:
    return str(error.response.get("Error", {}).get("Code", ""))


class S3DocumentStorage:
    """Bucket on S3 or any S3-compatible service."""

    backend_name = "s3"

    def __init__(
        self,
        bucket: str,
        *,
        client: Any | None = None,
        endpoint_url: str | None = None,
        region: str | None = None,
        public_url_base: str | None = None,
    ) -> None:
        self.bucket = bucket
        self._endpoint_url = endpoint_url
        self._region = region
        self._public_url_base = public_url_base.rstrip("/") if public_url_base else None
        self.client = client or boto3.client("s3", endpoint_url=endpoint_url, region_name=region)

    def upload(
        self, key: str, data: bytes, *, content_type: str, document_id: str, name: str
    ) -> StoredObject:
        _validate_upload(data, content_type)
        if self._exists(key):
            raise StorageError(f"The resource already exists: {key}")
        try:
            self.client.put_object(
                Bucket=self.bucket,
                Key=key,
                Body=data,
                ContentType=content_type,
                CacheControl=CACHE_CONTROL,
                Metadata={"document-id": document_id, "original-name": quote(name)},
            )
        except (ClientError, BotoCoreError) as exc:
            emit_storage_event(
                "storage.upload", backend=self.backend_name, bucket=self.bucket, key=key, error=exc
            )
            raise StorageError(f"Failed to upload {key}", cause=exc) from exc

        emit_storage_event(
            "storage.upload", backend=self.backend_name, bucket=self.bucket, key=key, size_bytes=len(data)
        )
        return StoredObject(
            id=document_id,
            name=name,
            key=key,
            mime_type=content_type,
            size=len(data),
            created_at=utc_now().isoformat(),
        )

    def list_objects(self) -> List[StoredObject]:
        objects: List[StoredObject] = []
        try:
            paginator = self.client.get_paginator("list_objects_v2")
            for page in paginator.paginate(Bucket=self.bucket):
                for entry in page.get("Contents", []):
                    objects.append(self._describe(entry))
        except (ClientError, BotoCoreError) as exc:
            raise StorageError(f"Failed to list bucket {self.bucket}", cause=exc) from exc
        return objects

    def public_url(self, key: str) -> str:
        quoted = quote(key)
        if self._public_url_base:
            return f"{self._public_url_base}/{self.bucket}/{quoted}"
        if self._endpoint_url:
            return f"{self._endpoint_url.rstrip('/')}/{self.bucket}/{quoted}"
        region = self._region or "us-east-1"
        return f"https://{self.bucket}.s3.{region}.amazonaws.com/{quoted}"

    def remove(self, keys: Iterable[str]) -> None:
        objects = [{"Key": key} for key in keys]
        if not objects:
            return
        try:
            response = self.client.delete_objects(Bucket=self.bucket, Delete={"Objects": objects})
        except (ClientError, BotoCoreError) as exc:
            emit_storage_event("storage.remove", backend=self.backend_name, bucket=self.bucket, error=exc)
            raise StorageError("Failed to delete objects", cause=exc) from exc
        errors = response.get("Errors") or []
        if errors:
            messages = ", ".join(f"{item.get('Key')}: {item.get('Message')}" for item in errors)
            raise StorageError(f"Failed to delete objects: {messages}")
        emit_storage_event("storage.remove", backend=self.backend_name, bucket=self.bucket)

    def ensure_bucket(self) -> SetupOutcome:
        try:
            self.client.head_bucket(Bucket=self.bucket)
            return "exists"
        except ClientError as exc:
            if _error_code(exc) not in _MISSING_CODES:
                raise StorageError(f"Failed to inspect bucket {self.bucket}", cause=exc) from exc
        except BotoCoreError as exc:
            raise StorageError(f"Failed to inspect bucket {self.bucket}", cause=exc) from exc

        params: Dict[str, Any] = {"Bucket": self.bucket}
        if self._region and self._region != "us-east-1":
            params["CreateBucketConfiguration"] = {"LocationConstraint": self._region}
        try:
            self.client.create_bucket(**params)
        except ClientError as exc:
            if _error_code(exc) in _BUCKET_EXISTS_CODES:
                return "exists"
            raise StorageError(f"Failed to create bucket {self.bucket}", cause=exc) from exc
        except BotoCoreError as exc:
            raise StorageError(f"Failed to create bucket {self.bucket}", cause=exc) from exc

        self._apply_public_read_policy()
        LOGGER.info("Created bucket %s", self.bucket)
        return "created"

    def _apply_public_read_policy(self) -> None:
        policy = {
            "Version": "2012-10-17",
            "Statement": [
                {
                    "Effect": "Allow",
                    "Principal": "*",
                    "Action": ["s3:GetObject"],
                    "Resource": [f"arn:aws:s3:::{self.bucket}/*"],
                }
            ],
        }
        try:
            self.client.put_bucket_policy(Bucket=self.bucket, Policy=json.dumps(policy))
        except ClientError as exc:
            LOGGER.warning("Bucket %s created but public-read policy was rejected: %s", self.bucket, exc)

    def _exists(self, key: str) -> bool:
        try:
            self.client.head_object(Bucket=self.bucket, Key=key)
            return True
        except ClientError as exc:
            if _error_code(exc) in _MISSING_CODES:
                return False
            raise StorageError(f"Failed to inspect {key}", cause=exc) from exc
        except BotoCoreError as exc:
            raise StorageError(f"Failed to inspect {key}", cause=exc) from exc

    def _describe(self, entry: Dict[str, Any]) -> StoredObject:
        key = str(entry["Key"])
        head = self.client.head_object(Bucket=self.bucket, Key=key)
        metadata = head.get("Metadata") or {}
        last_modified = entry.get("LastModified")
        return StoredObject(
            id=metadata.get("document-id") or key,
            name=unquote(metadata.get("original-name") or key),
            key=key,
            mime_type=head.get("ContentType") or "unknown",
            size=int(entry.get("Size") or head.get("ContentLength") or 0),
            created_at=last_modified.isoformat() if last_modified is not None else "",
        )


def create_document_storage(settings: Optional[Settings] = None) -> DocumentStorage:
    settings = settings or get_settings()
    backend = settings.document_storage

    if backend == "memory":
        return InMemoryDocumentStorage(settings.storage_bucket, public_url_base=settings.storage_public_url)

    if backend == "s3":
        return S3DocumentStorage(
            settings.storage_bucket,
            endpoint_url=settings.s3_endpoint_url,
            region=settings.aws_region,
            public_url_base=settings.storage_public_url,
        )

    raise ConfigurationError(f"Unsupported DOCUMENT_STORAGE backend: {backend!r}")


@lru_cache()
def get_document_storage() -> DocumentStorage:
    """Return a lazily initialised document storage based on configuration."""

    return create_document_storage()


def reset_document_storage_cache() -> None:
    """Clear the cached document storage (primarily for testing)."""

    get_document_storage.cache_clear()  # type: ignore[attr-defined]


__all__ = [
    "ALLOWED_MIME_TYPES",
    "DocumentStorage",
    "InMemoryDocumentStorage",
    "MAX_UPLOAD_BYTES",
    "S3DocumentStorage",
    "StorageError",
    "StoredObject",
    "create_document_storage",
    "get_document_storage",
    "make_object_key",
    "reset_document_storage_cache",
]
