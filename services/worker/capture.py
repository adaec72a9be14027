from __future__ import annotations

import logging

import httpx

from modules.errors import PayloadTooLargeError, UpstreamCaptureError
from modules.media import ImageArtifact, content_type_for, sniff_format


logger = logging.getLogger(__name__)

DEFAULT_SCREENSHOT_API_URL = "https://api.screenshotapi.com/take"
DEFAULT_MAX_RAW_BYTES = 4 * 1024 * 1024


class ScreenshotCapturer:
    """Renders a site through a remote screenshot service.

    The service answers with a JSON envelope whose ``outputUrl`` points at the
    rendered image; a second GET fetches the bytes.
    """

    def __init__(
        self,
        http: httpx.AsyncClient,
        *,
        api_key: str | None,
        api_url: str = DEFAULT_SCREENSHOT_API_URL,
        fmt: str = "png",
        width: int = 1024,
        height: int = 768,
        max_bytes: int | None = DEFAULT_MAX_RAW_BYTES,
    ) -> None:
        self.http = http
        self.api_key = api_key
        self.api_url = api_url
        self.fmt = fmt
        self.width = width
        self.height = height
        self.max_bytes = max_bytes or None

    def _params(self, site: str) -> dict[str, str]:
        params = {
            "url": site,
            "format": self.fmt,
            "width": str(self.width),
            "height": str(self.height),
        }
        if self.api_key:
            params["apiKey"] = self.api_key
        return params

    async def capture(self, site: str) -> ImageArtifact:
        resp = await self.http.get(self.api_url, params=self._params(site))
        if not resp.is_success:
            raise UpstreamCaptureError(f"Screenshot API failed: {resp.status_code}")

        try:
            body = resp.json()
        except ValueError:
            body = None
        output_url = body.get("outputUrl") if isinstance(body, dict) else None
        if not output_url:
            raise UpstreamCaptureError("Screenshot API did not return an image URL")

        img = await self.http.get(output_url)
        if not img.is_success:
            raise UpstreamCaptureError(f"Failed to fetch screenshot: {img.status_code}")

        data = img.content
        if self.max_bytes is not None and len(data) > self.max_bytes:
            raise PayloadTooLargeError(
                f"Screenshot image is too large ({len(data)} bytes > {self.max_bytes})"
            )

        found = sniff_format(data)
        if found is not None and found != self.fmt:
            logger.warning("screenshot for %s came back as %s, expected %s", site, found, self.fmt)
        return ImageArtifact(data=data, content_type=content_type_for(self.fmt))
