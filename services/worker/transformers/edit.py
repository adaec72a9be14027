from __future__ import annotations

import httpx

from modules.errors import UpstreamTransformError
from modules.media import ImageArtifact, content_type_for, extension_for

from .base import EDIT_PROMPT, fetch_output, json_or_none, require_pointer


DEFAULT_OPENAI_BASE_URL = "https://api.openai.com/v1"


class EditTransformer:
    """Multipart call to an images/edits endpoint with the screenshot attached.

    The screenshot must already fit the endpoint's upload limit; the capturer
    enforces that ceiling.
    """

    needs_raw = True

    def __init__(
        self,
        http: httpx.AsyncClient,
        *,
        api_key: str,
        base_url: str = DEFAULT_OPENAI_BASE_URL,
        model: str | None = None,
        size: str = "1024x1024",
        fmt: str = "png",
        prompt: str = EDIT_PROMPT,
    ) -> None:
        self.http = http
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.model = model
        self.size = size
        self.fmt = fmt
        self.prompt = prompt

    async def transform(self, raw: ImageArtifact, site: str) -> ImageArtifact:  # noqa: ARG002
        fields = {
            "prompt": self.prompt,
            "size": self.size,
            "n": "1",
            "response_format": "url",
        }
        if self.model:
            fields["model"] = self.model
        files = {"image": (f"screenshot.{extension_for(self.fmt)}", raw.data, raw.content_type)}
        resp = await self.http.post(
            f"{self.base_url}/images/edits",
            headers={"Authorization": f"Bearer {self.api_key}"},
            data=fields,
            files=files,
        )
        if not resp.is_success:
            raise UpstreamTransformError(f"OpenAI API failed: {resp.status_code} - {resp.text}")

        url = require_pointer(json_or_none(resp), ("data", 0, "url"), service="OpenAI")
        return await fetch_output(self.http, url, content_type=content_type_for(self.fmt))
