"""
Object storage for uploaded family documents.

STORAGE_BACKEND selects the implementation once at process start:
- r2: Cloudflare R2 through the S3 API (boto3)
- local: files on disk under LOCAL_STORAGE_DIR
"""

import logging
import re
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Protocol

import boto3
from botocore.client import Config
from botocore.exceptions import ClientError

from . import config

logger = logging.getLogger(__name__)

# Presigned URL expiration time (7 days, the S3 maximum)
PRESIGNED_URL_EXPIRATION = 7 * 24 * 3600


@dataclass
class StoredObject:
    key: str
    url: str


class ObjectStore(Protocol):
    def upload(self, content: bytes, folder: str, filename: str, content_type: str) -> StoredObject: ...

    def url_for(self, key: str) -> str: ...

    def delete(self, key: str) -> None: ...


def build_object_key(folder: str, filename: str) -> str:
    """Unique key under ``folder`` that keeps a readable, filesystem-safe file name"""
    safe_name = re.sub(r"[^A-Za-z0-9._-]", "_", Path(filename or "file").name)[:120] or "file"
    return f"{folder.strip('/')}/{uuid.uuid4().hex}_{safe_name}"


def get_r2_client():
    """Create and return an R2 client."""
    return boto3.client(
        "s3",
        endpoint_url=f"https://{config.R2_ACCOUNT_ID}.r2.cloudflarestorage.com",
        aws_access_key_id=config.R2_ACCESS_KEY_ID,
        aws_secret_access_key=config.R2_SECRET_ACCESS_KEY,
        config=Config(signature_version="s3v4"),
        region_name="auto",
    )


class R2Storage:
    def __init__(self, bucket: str, public_url: Optional[str] = None):
        self.bucket = bucket
        self.public_url = public_url.rstrip("/") if public_url else None
        self.client = get_r2_client()

    def url_for(self, key: str) -> str:
        """Public URL when R2_PUBLIC_URL is set, otherwise a freshly signed one"""
        if self.public_url:
            return f"{self.public_url}/{key}"
        return self.client.generate_presigned_url(
            "get_object",
            Params={"Bucket": self.bucket, "Key": key},
            ExpiresIn=PRESIGNED_URL_EXPIRATION,
        )

    def upload(self, content: bytes, folder: str, filename: str, content_type: str) -> StoredObject:
        key = build_object_key(folder, filename)
        self.client.put_object(Bucket=self.bucket, Key=key, Body=content, ContentType=content_type)
        logger.info(f"✅ Uploaded {len(content)} bytes to R2: {key}")
        return StoredObject(key=key, url=self.url_for(key))

    def delete(self, key: str) -> None:
        try:
            self.client.delete_object(Bucket=self.bucket, Key=key)
            logger.info(f"🗑️ Deleted R2 object: {key}")
        except ClientError as e:
            logger.error(f"❌ Failed to delete R2 object {key}: {e}")
            raise


class LocalStorage:
    def __init__(self, root: str, base_url: str):
        self.root = Path(root)
        self.base_url = base_url.rstrip("/")

    def upload(self, content: bytes, folder: str, filename: str, content_type: str) -> StoredObject:
        key = build_object_key(folder, filename)
        path = self.root / key
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(content)
        return StoredObject(key=key, url=self.url_for(key))

    def url_for(self, key: str) -> str:
        return f"{self.base_url}/{key}"

    def delete(self, key: str) -> None:
        path = self.root / key
        if path.exists():
            path.unlink()


def create_object_store(backend: str) -> ObjectStore:
    if backend == "r2":
        return R2Storage(config.R2_BUCKET_NAME, config.R2_PUBLIC_URL)
    if backend == "local":
        return LocalStorage(config.LOCAL_STORAGE_DIR, config.LOCAL_STORAGE_BASE_URL)
    raise ValueError(f"Unknown storage backend: {backend}")


_store: Optional[ObjectStore] = None


def get_object_store() -> ObjectStore:
    global _store
    if _store is None:
        _store = create_object_store(config.STORAGE_BACKEND)
        logger.info(f"📦 Storage backend: {config.STORAGE_BACKEND}")
    return _store


def set_object_store(store: Optional[ObjectStore]) -> None:
    global _store
    _store = store
