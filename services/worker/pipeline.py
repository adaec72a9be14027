from __future__ import annotations

import asyncio
import logging
from typing import Protocol

import httpx

from modules.errors import InputError, PreviewError, StorageError, UpstreamCaptureError, UpstreamTransformError
from modules.media import ImageArtifact, content_type_for
from modules.storage.keys import ImageKeys, derive_keys
from services.worker.metrics import PIPELINE_RUNS, STAGE_FAILURES
from services.worker.transformers.base import Transformer


logger = logging.getLogger(__name__)


class Cache(Protocol):
    async def get(self, key: str) -> ImageArtifact | None:
        ...

    async def put(self, key: str, artifact: ImageArtifact) -> None:
        ...


class Capturer(Protocol):
    async def capture(self, site: str) -> ImageArtifact:
        ...


class PreviewPipeline:
    """Cache-aside build of the preview image for one site.

    check final -> capture -> store raw (best effort) -> transform -> store final.
    A hit on the final key short-circuits everything else. Capture and transform
    failures end the run; storage write failures are logged and the run goes on.
    """

    def __init__(
        self,
        *,
        cache: Cache,
        capturer: Capturer,
        transformer: Transformer,
        fmt: str = "png",
        key_prefix: str = "",
        capture_when_unused: bool = True,
        single_flight: bool = False,
    ) -> None:
        self.cache = cache
        self.capturer = capturer
        self.transformer = transformer
        self.fmt = fmt
        self.key_prefix = key_prefix
        self.capture_when_unused = capture_when_unused
        self.single_flight = single_flight
        self._inflight: dict[str, asyncio.Future[ImageArtifact]] = {}

    def keys_for(self, site: str) -> ImageKeys:
        return derive_keys(site, prefix=self.key_prefix, fmt=self.fmt)

    async def run(self, site: str) -> ImageArtifact:
        if not site:
            raise InputError("Site parameter is required")
        keys = self.keys_for(site)
        try:
            cached = await self.cache.get(keys.final)
            if cached is not None:
                PIPELINE_RUNS.labels(outcome="hit").inc()
                logger.info("cache hit for %s (%s)", site, keys.final)
                return cached
            if self.single_flight:
                artifact = await self._shared_build(site, keys)
            else:
                artifact = await self._build(site, keys)
        except PreviewError as exc:
            PIPELINE_RUNS.labels(outcome="failed").inc()
            logger.error("preview for %s failed [%s]: %s", site, exc.code, exc)
            raise
        except Exception:
            PIPELINE_RUNS.labels(outcome="failed").inc()
            logger.exception("preview for %s failed unexpectedly", site)
            raise
        PIPELINE_RUNS.labels(outcome="built").inc()
        return artifact

    async def _shared_build(self, site: str, keys: ImageKeys) -> ImageArtifact:
        task = self._inflight.get(keys.final)
        if task is None:
            task = asyncio.ensure_future(self._recheck_and_build(site, keys))
            self._inflight[keys.final] = task
            task.add_done_callback(lambda _t, k=keys.final: self._inflight.pop(k, None))
        else:
            logger.info("joining in-flight build for %s", site)
        # One caller going away must not cancel the build for the others
        return await asyncio.shield(task)

    async def _recheck_and_build(self, site: str, keys: ImageKeys) -> ImageArtifact:
        # A build for this site may have finished since the first cache read
        cached = await self.cache.get(keys.final)
        if cached is not None:
            logger.info("cache hit on re-check for %s (%s)", site, keys.final)
            return cached
        return await self._build(site, keys)

    async def _build(self, site: str, keys: ImageKeys) -> ImageArtifact:
        if self.transformer.needs_raw or self.capture_when_unused:
            raw = await self._capture(site)
            try:
                await self.cache.put(keys.raw, raw)
            except StorageError as exc:
                STAGE_FAILURES.labels(stage="store_raw").inc()
                logger.warning("could not store screenshot for %s, continuing: %s", site, exc)
        else:
            raw = ImageArtifact(data=b"", content_type=content_type_for(self.fmt))

        final = await self._transform(raw, site)
        try:
            await self.cache.put(keys.final, final)
        except StorageError as exc:
            STAGE_FAILURES.labels(stage="store_final").inc()
            logger.warning("could not store preview for %s, serving it anyway: %s", site, exc)
        logger.info("built preview for %s (%d bytes)", site, final.size)
        return final

    async def _capture(self, site: str) -> ImageArtifact:
        try:
            return await self.capturer.capture(site)
        except httpx.HTTPError as exc:
            STAGE_FAILURES.labels(stage="capture").inc()
            raise UpstreamCaptureError(f"Screenshot request failed: {exc}") from exc
        except PreviewError:
            STAGE_FAILURES.labels(stage="capture").inc()
            raise

    async def _transform(self, raw: ImageArtifact, site: str) -> ImageArtifact:
        try:
            return await self.transformer.transform(raw, site)
        except httpx.HTTPError as exc:
            STAGE_FAILURES.labels(stage="transform").inc()
            raise UpstreamTransformError(f"Transform request failed: {exc}") from exc
        except PreviewError:
            STAGE_FAILURES.labels(stage="transform").inc()
            raise
