from __future__ import annotations

from typing import TYPE_CHECKING

import httpx

from .base import Transformer

if TYPE_CHECKING:
    from services.api.config import Settings


def _require(value: str | None, name: str) -> str:
    if not value:
        raise ValueError(f"{name} must be set for the selected transformer")
    return value


def get_transformer(name: str, *, http: httpx.AsyncClient, settings: Settings) -> Transformer:
    key = name.lower().strip()
    fmt = settings.image_format
    # Lazy imports keep the SDK off the import path unless it is selected
    if key == "edit":
        from .edit import EditTransformer

        return EditTransformer(
            http,
            api_key=_require(settings.openai_api_key, "OGF_OPENAI_API_KEY"),
            base_url=settings.openai_base_url,
            model=settings.openai_edit_model,
            size=settings.output_size,
            fmt=fmt,
        )
    if key == "generate":
        import openai

        from .generate import GenerateTransformer

        sdk = openai.AsyncOpenAI(
            api_key=_require(settings.openai_api_key, "OGF_OPENAI_API_KEY"),
            base_url=settings.openai_base_url,
            http_client=http,
        )
        return GenerateTransformer(
            sdk,
            http,
            model=settings.openai_generate_model,
            size=settings.output_size,
            fmt=fmt,
        )
    if key == "style-transfer":
        from .style_transfer import StyleTransferTransformer

        return StyleTransferTransformer(
            http,
            api_key=_require(settings.fal_api_key, "OGF_FAL_API_KEY"),
            endpoint=settings.fal_endpoint,
            fmt=fmt,
        )
    if key == "fake":
        from .fake import FakeTransformer

        return FakeTransformer(fmt=fmt)
    raise ValueError(f"unknown transformer: {name}")
