from __future__ import annotations

from typing import Any

import httpx
import openai

from modules.errors import UpstreamTransformError
from modules.media import ImageArtifact, content_type_for

from .base import GENERATE_PROMPT, fetch_output


class GenerateTransformer:
    """Synthesizes the preview from a text prompt alone.

    The screenshot is ignored. The SDK client is built by the caller and handed
    in, so credentials never live on a process-wide object.
    """

    needs_raw = False

    def __init__(
        self,
        sdk: openai.AsyncOpenAI,
        http: httpx.AsyncClient,
        *,
        model: str = "dall-e-3",
        size: str = "1024x1024",
        fmt: str = "png",
        prompt: str = GENERATE_PROMPT,
    ) -> None:
        self.sdk = sdk
        self.http = http
        self.model = model
        self.size = size
        self.fmt = fmt
        self.prompt = prompt

    async def transform(self, raw: ImageArtifact, site: str) -> ImageArtifact:  # noqa: ARG002
        try:
            result = await self.sdk.images.generate(
                model=self.model,
                prompt=self.prompt.format(site=site),
                size=self.size,
                n=1,
                response_format="url",
            )
        except openai.OpenAIError as exc:
            raise UpstreamTransformError(f"OpenAI image generation failed: {exc}") from exc

        url = _first_url(result)
        if not url:
            raise UpstreamTransformError("OpenAI did not return an image URL")
        return await fetch_output(self.http, url, content_type=content_type_for(self.fmt))


def _first_url(result: Any) -> str | None:
    data = getattr(result, "data", None)
    if not data:
        return None
    return getattr(data[0], "url", None) or None
