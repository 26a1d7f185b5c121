"""
Blob stores for normalized videos.

Both implement ``put(local_path, key, content_type=None) -> {"url", "key"}``.
"""
import shutil
from pathlib import Path

import boto3
from botocore.config import Config as BotoConfig
from django.conf import settings


class S3BlobStore:
    """S3/MinIO bucket; URLs are built against the public endpoint."""

    def __init__(self, bucket: str | None = None, public_endpoint: str | None = None, client=None):
        self.bucket = bucket or settings.S3_BUCKET
        self.public_endpoint = (public_endpoint or settings.S3_PUBLIC_ENDPOINT).rstrip("/")
        self._client = client

    @property
    def client(self):
        # MinIO needs path-style addressing; uploads go to the internal endpoint
        if self._client is None:
            self._client = boto3.client(
                "s3",
                endpoint_url=settings.S3_ENDPOINT_URL,
                region_name=settings.S3_REGION,
                aws_access_key_id=settings.S3_ACCESS_KEY,
                aws_secret_access_key=settings.S3_SECRET_KEY,
                config=BotoConfig(signature_version="s3v4", s3={"addressing_style": "path"}),
            )
        return self._client

    def object_url(self, key: str) -> str:
        return f"{self.public_endpoint}/{self.bucket}/{key}"

    def put(self, local_path, key: str, content_type: str | None = None) -> dict:
        extra = {}
        if content_type:
            extra["ContentType"] = content_type
        self.client.upload_file(str(local_path), self.bucket, key, ExtraArgs=extra or None)
        return {"url": self.object_url(key), "key": key}


class LocalBlobStore:
    """Copies into MEDIA_ROOT and serves from MEDIA_URL (local dev)."""

    def __init__(self, root: Path | None = None, base_url: str | None = None):
        self.root = Path(root or settings.MEDIA_ROOT)
        self.base_url = base_url if base_url is not None else settings.MEDIA_URL

    def put(self, local_path, key: str, content_type: str | None = None) -> dict:
        dest = self.root / key
        dest.parent.mkdir(parents=True, exist_ok=True)
        shutil.copyfile(local_path, dest)
        return {"url": f"{self.base_url.rstrip('/')}/{key}", "key": key}


def build_blob_store(backend: str | None = None):
    backend = backend or settings.TRANSCODING_STORAGE_BACKEND
    if backend == "s3":
        return S3BlobStore()
    if backend == "local":
        return LocalBlobStore()
    raise ValueError(f"Unsupported storage backend: {backend!r}")
