from __future__ import annotations

import os
from functools import lru_cache
from typing import Literal

from pydantic import BaseModel, Field, field_validator

from modules.media import normalize_format


_ENV_FIELDS: dict[str, tuple[str, ...]] = {
    "env": ("OGF_ENV",),
    "ready_checks": ("OGF_READY_CHECKS",),
    "log_level": ("OGF_LOG_LEVEL",),
    "s3_endpoint": ("OGF_MINIO_ENDPOINT", "OGF_S3_ENDPOINT"),
    "s3_access_key": ("OGF_MINIO_ACCESS_KEY", "OGF_S3_ACCESS_KEY"),
    "s3_secret_key": ("OGF_MINIO_SECRET_KEY", "OGF_S3_SECRET_KEY"),
    "s3_region": ("OGF_S3_REGION",),
    "s3_bucket": ("OGF_MINIO_BUCKET", "OGF_S3_BUCKET"),
    "key_prefix": ("OGF_KEY_PREFIX",),
    "image_format": ("OGF_IMAGE_FORMAT",),
    "transformer": ("OGF_TRANSFORMER",),
    "screenshot_api_url": ("OGF_SCREENSHOT_API_URL",),
    "screenshot_api_key": ("OGF_SCREENSHOT_API_KEY",),
    "screenshot_width": ("OGF_SCREENSHOT_WIDTH",),
    "screenshot_height": ("OGF_SCREENSHOT_HEIGHT",),
    "max_raw_bytes": ("OGF_MAX_RAW_BYTES",),
    "openai_api_key": ("OGF_OPENAI_API_KEY",),
    "openai_base_url": ("OGF_OPENAI_BASE_URL",),
    "openai_edit_model": ("OGF_OPENAI_EDIT_MODEL",),
    "openai_generate_model": ("OGF_OPENAI_GENERATE_MODEL",),
    "output_size": ("OGF_OUTPUT_SIZE",),
    "fal_api_key": ("OGF_FAL_API_KEY",),
    "fal_endpoint": ("OGF_FAL_ENDPOINT",),
    "cache_max_age_s": ("OGF_CACHE_MAX_AGE_S",),
    "capture_when_unused": ("OGF_CAPTURE_WHEN_UNUSED",),
    "single_flight": ("OGF_SINGLE_FLIGHT",),
    "http_timeout_s": ("OGF_HTTP_TIMEOUT_S",),
    "metrics_enabled": ("OGF_METRICS_ENABLED",),
}


class Settings(BaseModel):
    env: Literal["dev", "test", "staging", "prod"] = Field(
        default="dev", description="Deployment environment label"
    )

    # Readiness checks: comma-separated list of checks to perform: s3
    ready_checks: str = Field(default="", description="Comma-separated readiness checks: s3")
    log_level: str = "INFO"

    # Object storage (S3/MinIO/R2)
    s3_endpoint: str | None = None
    s3_access_key: str | None = None
    s3_secret_key: str | None = None
    s3_region: str | None = None
    s3_bucket: str | None = None
    key_prefix: str = Field(default="", description="Namespace prepended to every storage key")

    # Pipeline
    image_format: str = Field(default="png", description="png|jpeg, one content type per run")
    transformer: Literal["edit", "generate", "style-transfer", "fake"] = "edit"
    capture_when_unused: bool = Field(
        default=True, description="Capture and store the screenshot even when the transformer ignores it"
    )
    single_flight: bool = Field(default=False, description="Share one build between concurrent requests for a site")
    cache_max_age_s: int = Field(default=86400, ge=0)

    # Screenshot service
    screenshot_api_url: str = "https://api.screenshotapi.com/take"
    screenshot_api_key: str | None = None
    screenshot_width: int = Field(default=1024, gt=0)
    screenshot_height: int = Field(default=768, gt=0)
    max_raw_bytes: int = Field(default=4 * 1024 * 1024, ge=0, description="0 disables the ceiling")

    # Transform services
    openai_api_key: str | None = None
    openai_base_url: str = "https://api.openai.com/v1"
    openai_edit_model: str | None = None
    openai_generate_model: str = "dall-e-3"
    output_size: str = "1024x1024"
    fal_api_key: str | None = None
    fal_endpoint: str = "https://fal.run/fal-ai/flux/dev/image-to-image"

    # No timeout unless configured
    http_timeout_s: float | None = None

    # Metrics
    metrics_enabled: bool = True

    @field_validator("image_format")
    @classmethod
    def _check_format(cls, v: str) -> str:
        return normalize_format(v)

    @field_validator("transformer", mode="before")
    @classmethod
    def _lower_transformer(cls, v: object) -> object:
        return v.lower().strip() if isinstance(v, str) else v


def load_settings(environ: dict[str, str] | None = None) -> Settings:
    env = os.environ if environ is None else environ
    values: dict[str, str] = {}
    for field, names in _ENV_FIELDS.items():
        for name in names:
            raw = env.get(name)
            if raw is not None and raw != "":
                values[field] = raw
                break
    return Settings(**values)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return load_settings()
