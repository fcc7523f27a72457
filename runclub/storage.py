"""
Object storage abstraction for S3 and in-memory testing.
"""

from __future__ import annotations

import json
import time
from dataclasses import dataclass, field
from typing import Optional, Protocol

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from runclub.errors import error_code, storage_error_from

MISSING_OBJECT_CODES = {"NoSuchKey", "404", "NotFound"}


@dataclass(frozen=True)
class StoredObject:
    key: str
    last_modified: float


class StorageClient(Protocol):
    """Defines the operations the club needs from object storage."""

    def get_bytes(self, path: str) -> bytes:
        """Raises FileNotFoundError when the object does not exist."""
        ...

    def upload_json(self, path: str, payload: dict) -> None:
        ...

    def list_keys(self, prefix: str = "") -> list[StoredObject]:
        ...

    def check(self) -> None:
        ...


def encode_json(payload: dict) -> bytes:
    return json.dumps(payload, ensure_ascii=False, indent=2, default=str).encode("utf-8")


@dataclass
class InMemoryStorageClient:
    """Test double for storage interactions; also the ``memory`` backend."""

    stored_objects: dict[str, bytes] = field(default_factory=dict)
    modified: dict[str, float] = field(default_factory=dict)

    def get_bytes(self, path: str) -> bytes:
        stored = self.stored_objects.get(path)
        if stored is None:
            raise FileNotFoundError(path)
        return stored

    def upload_json(self, path: str, payload: dict) -> None:
        # Store the encoded bytes to mimic real upload behavior
        self.stored_objects[path] = encode_json(payload)
        self.modified[path] = time.time()

    def list_keys(self, prefix: str = "") -> list[StoredObject]:
        return [
            StoredObject(key=key, last_modified=self.modified.get(key, 0.0))
            for key in sorted(self.stored_objects)
            if key.startswith(prefix)
        ]

    def check(self) -> None:
        return None


@dataclass
class S3StorageClient:
    """
    S3 storage client. ``endpoint`` allows S3-compatible services.
    """

    bucket: str
    region: str
    endpoint: Optional[str] = None
    access_key_id: Optional[str] = None
    secret_access_key: Optional[str] = None

    def __post_init__(self):
        config = Config(signature_version="s3v4")
        self._client = boto3.client(
            "s3",
            endpoint_url=self.endpoint or None,
            region_name=self.region,
            aws_access_key_id=self.access_key_id or None,
            aws_secret_access_key=self.secret_access_key or None,
            config=config,
        )

    def get_bytes(self, path: str) -> bytes:
        try:
            response = self._client.get_object(Bucket=self.bucket, Key=path)
            return response["Body"].read()
        except ClientError as exc:
            if error_code(exc) in MISSING_OBJECT_CODES:
                raise FileNotFoundError(path) from exc
            raise storage_error_from(exc, "load", path) from exc
        except BotoCoreError as exc:
            raise storage_error_from(exc, "load", path) from exc

    def upload_json(self, path: str, payload: dict) -> None:
        try:
            self._client.put_object(
                Bucket=self.bucket,
                Key=path,
                Body=encode_json(payload),
                ContentType="application/json",
            )
        except (ClientError, BotoCoreError) as exc:
            raise storage_error_from(exc, "save", path) from exc

    def list_keys(self, prefix: str = "") -> list[StoredObject]:
        objects: list[StoredObject] = []
        try:
            paginator = self._client.get_paginator("list_objects_v2")
            for page in paginator.paginate(Bucket=self.bucket, Prefix=prefix):
                for item in page.get("Contents", []):
                    objects.append(
                        StoredObject(
                            key=item["Key"],
                            last_modified=item["LastModified"].timestamp(),
                        )
                    )
        except (ClientError, BotoCoreError) as exc:
            raise storage_error_from(exc, "load", prefix or self.bucket) from exc
        return objects

    def check(self) -> None:
        try:
            self._client.head_bucket(Bucket=self.bucket)
        except (ClientError, BotoCoreError) as exc:
            raise storage_error_from(exc, "load", self.bucket) from exc
