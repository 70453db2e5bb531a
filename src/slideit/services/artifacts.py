from __future__ import annotations

import asyncio
import os
from typing import Optional, Protocol

import aioboto3

from slideit.core.config import settings
from slideit.core.logging import get_logger
from slideit.kernel.errors import UploadFailed

log = get_logger(__name__)

PPTX_CONTENT_TYPE = "application/vnd.openxmlformats-officedocument.presentationml.presentation"


class ArtifactStore(Protocol):
    async def put(self, key: str, data: bytes, content_type: str = PPTX_CONTENT_TYPE) -> str: ...


def _relative_key(key: str) -> str:
    # allow callers to pass either "artifacts/x/y.pptx" or "x/y.pptx"
    rel = key.split("artifacts/", 1)[1] if key.startswith("artifacts/") else key
    rel = rel.lstrip("/")
    if not rel or ".." in rel.split("/"):
        raise UploadFailed(f"invalid artifact key: {key!r}")
    return rel


class LocalArtifactStore:
    """Writes under ARTIFACTS_DIR; main.py serves that directory at /artifacts."""

    def __init__(self, root: Optional[str] = None, public_base_url: Optional[str] = None):
        self.root = (root or settings.ARTIFACTS_DIR).rstrip("/")
        base = settings.PUBLIC_BASE_URL if public_base_url is None else public_base_url
        self.public_base_url = (base or "").rstrip("/")

    def _write(self, path: str, data: bytes) -> None:
        os.makedirs(os.path.dirname(path), exist_ok=True)
        with open(path, "wb") as f:
            f.write(data)

    async def put(self, key: str, data: bytes, content_type: str = PPTX_CONTENT_TYPE) -> str:
        rel = _relative_key(key)
        path = os.path.join(self.root, rel)
        try:
            await asyncio.to_thread(self._write, path, data)
        except OSError as e:
            raise UploadFailed(f"could not write {rel}: {e}") from e
        url_path = f"/artifacts/{rel}"
        log.info("artifact stored locally: %s (%d bytes)", path, len(data))
        return f"{self.public_base_url}{url_path}" if self.public_base_url else url_path


class S3ArtifactStore:
    def __init__(
        self,
        bucket: str,
        *,
        region: Optional[str] = None,
        endpoint_url: Optional[str] = None,
        expires_in: Optional[int] = None,
    ):
        self.bucket = bucket
        self.region = region or settings.AWS_REGION
        self.endpoint_url = endpoint_url or settings.S3_ENDPOINT
        self.expires_in = expires_in or settings.S3_PRESIGN_EXPIRES
        self._session = aioboto3.Session()

    async def put(self, key: str, data: bytes, content_type: str = PPTX_CONTENT_TYPE) -> str:
        rel = _relative_key(key)
        try:
            async with self._session.client(
                "s3", region_name=self.region, endpoint_url=self.endpoint_url
            ) as s3:
                await s3.put_object(Bucket=self.bucket, Key=rel, Body=data, ContentType=content_type)
                url = await s3.generate_presigned_url(
                    "get_object",
                    Params={"Bucket": self.bucket, "Key": rel},
                    ExpiresIn=self.expires_in,
                )
        except Exception as e:
            raise UploadFailed(f"s3 upload of {rel} failed: {e}") from e
        log.info("artifact uploaded to s3://%s/%s", self.bucket, rel)
        return url


def build_artifact_store() -> ArtifactStore:
    if settings.S3_BUCKET:
        return S3ArtifactStore(settings.S3_BUCKET)
    return LocalArtifactStore()
