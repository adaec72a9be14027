from __future__ import annotations

import asyncio
import logging

from modules.errors import StorageError
from modules.media import ImageArtifact
from modules.storage import s3 as s3mod


logger = logging.getLogger(__name__)


class ObjectCache:
    """Image blobs in S3-compatible storage, addressed by opaque keys.

    boto3 is blocking, so calls run on a worker thread and the caller's task
    suspends until they finish. Not-found is ``None``; anything else that goes
    wrong is a StorageError.
    """

    def __init__(self, cfg: s3mod.S3Config, *, default_content_type: str = "image/png") -> None:
        self.cfg = cfg
        self.default_content_type = default_content_type

    async def get(self, key: str) -> ImageArtifact | None:
        try:
            found = await asyncio.to_thread(s3mod.download_bytes, self.cfg, key)
        except Exception as exc:  # noqa: BLE001
            raise StorageError(f"Failed to read {key}: {exc}") from exc
        if found is None:
            return None
        data, content_type = found
        return ImageArtifact(data=data, content_type=content_type or self.default_content_type)

    async def put(self, key: str, artifact: ImageArtifact) -> None:
        try:
            await asyncio.to_thread(s3mod.upload_bytes, self.cfg, key, artifact.data, artifact.content_type)
        except Exception as exc:  # noqa: BLE001
            raise StorageError(f"Failed to write {key}: {exc}") from exc
        logger.debug("stored %s (%d bytes, %s)", key, artifact.size, artifact.content_type)
