from __future__ import annotations

import httpx
from fastapi import Request

from modules.media import content_type_for
from modules.storage import s3 as s3mod
from modules.storage.cache import ObjectCache
from services.api.config import Settings, get_settings
from services.worker.capture import ScreenshotCapturer
from services.worker.pipeline import PreviewPipeline
from services.worker.transformers.registry import get_transformer


def s3_config(settings: Settings) -> s3mod.S3Config:
    if not all([settings.s3_access_key, settings.s3_secret_key, settings.s3_bucket]):
        raise RuntimeError("Missing S3/MinIO environment variables")
    return s3mod.S3Config(
        endpoint=settings.s3_endpoint,
        access_key=str(settings.s3_access_key),
        secret_key=str(settings.s3_secret_key),
        bucket=str(settings.s3_bucket),
        region=settings.s3_region,
    )


def new_http_client(settings: Settings) -> httpx.AsyncClient:
    return httpx.AsyncClient(timeout=settings.http_timeout_s, follow_redirects=True)


def build_pipeline(settings: Settings, http: httpx.AsyncClient) -> PreviewPipeline:
    fmt = settings.image_format
    cache = ObjectCache(s3_config(settings), default_content_type=content_type_for(fmt))
    capturer = ScreenshotCapturer(
        http,
        api_key=settings.screenshot_api_key,
        api_url=settings.screenshot_api_url,
        fmt=fmt,
        width=settings.screenshot_width,
        height=settings.screenshot_height,
        max_bytes=settings.max_raw_bytes,
    )
    transformer = get_transformer(settings.transformer, http=http, settings=settings)
    return PreviewPipeline(
        cache=cache,
        capturer=capturer,
        transformer=transformer,
        fmt=fmt,
        key_prefix=settings.key_prefix,
        capture_when_unused=settings.capture_when_unused,
        single_flight=settings.single_flight,
    )


def get_pipeline(request: Request) -> PreviewPipeline:
    state = request.app.state
    pipeline = getattr(state, "pipeline", None)
    if pipeline is None:
        settings = get_settings()
        state.http = new_http_client(settings)
        pipeline = build_pipeline(settings, state.http)
        state.pipeline = pipeline
    return pipeline
