from __future__ import annotations

import httpx

from modules.errors import UpstreamTransformError
from modules.media import ImageArtifact, content_type_for, to_data_url

from .base import STYLE_TRANSFER_PROMPT, extract_pointer, fetch_output, json_or_none


DEFAULT_FAL_ENDPOINT = "https://fal.run/fal-ai/flux/dev/image-to-image"


class StyleTransferTransformer:
    """Image-to-image restyle with the screenshot sent inline as a data URL."""

    needs_raw = True

    def __init__(
        self,
        http: httpx.AsyncClient,
        *,
        api_key: str,
        endpoint: str = DEFAULT_FAL_ENDPOINT,
        fmt: str = "png",
        prompt: str = STYLE_TRANSFER_PROMPT,
    ) -> None:
        self.http = http
        self.api_key = api_key
        self.endpoint = endpoint
        self.fmt = fmt
        self.prompt = prompt

    async def transform(self, raw: ImageArtifact, site: str) -> ImageArtifact:  # noqa: ARG002
        payload = {
            "prompt": self.prompt,
            "image_url": to_data_url(raw),
            "sync_mode": True,
        }
        resp = await self.http.post(
            self.endpoint,
            headers={"Authorization": f"Key {self.api_key}"},
            json=payload,
        )
        if not resp.is_success:
            raise UpstreamTransformError(f"Style transfer API failed: {resp.status_code} - {resp.text}")

        body = json_or_none(resp)
        # Client libraries wrap the result in a "data" envelope, the REST endpoint does not.
        url = extract_pointer(body, ("data", "images", 0, "url")) or extract_pointer(body, ("images", 0, "url"))
        if url is None:
            raise UpstreamTransformError("Style transfer API did not return an image URL")
        return await fetch_output(self.http, url, content_type=content_type_for(self.fmt))
