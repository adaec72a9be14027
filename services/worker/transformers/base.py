from __future__ import annotations

from typing import Any, Protocol, Sequence, runtime_checkable

import httpx

from modules.errors import UpstreamTransformError
from modules.media import ImageArtifact, from_data_url


EDIT_PROMPT = (
    "Transform this website screenshot into a simplified Open Graph image. "
    "Show the site name clearly at the top, followed by one short tagline or key metric in bold text. "
    "Keep the composition minimal, clean, and mobile-friendly with plenty of white space. "
    "Add only one small playful icon or chart line, drawn in a child-like pencil sketch style on textured Canson paper. "
    "Ensure the text is large, sharp, and fully readable. "
    "Style it as a professional social media preview."
)

GENERATE_PROMPT = (
    "Create a simplified Open Graph image for the website {site}. "
    "Show the site name clearly at the top, followed by one short tagline in bold text. "
    "Keep the composition minimal, clean, and mobile-friendly with plenty of white space. "
    "Add only one small playful icon drawn in a child-like pencil sketch style on textured Canson paper. "
    "Ensure the text is large, sharp, and fully readable."
)

STYLE_TRANSFER_PROMPT = (
    "Redraw this website screenshot as a clean social media preview card in a child-like "
    "pencil sketch style on textured Canson paper. Keep the site name large and readable, "
    "drop small text and navigation, and leave plenty of white space."
)


@runtime_checkable
class Transformer(Protocol):
    """Turns a raw screenshot into the stylized preview image.

    ``needs_raw`` is False for strategies that never look at the screenshot pixels.
    """

    needs_raw: bool

    async def transform(self, raw: ImageArtifact, site: str) -> ImageArtifact:
        ...


def extract_pointer(envelope: Any, path: Sequence[str | int]) -> str | None:
    node = envelope
    for part in path:
        if isinstance(part, int):
            if not isinstance(node, list) or len(node) <= part:
                return None
        elif not isinstance(node, dict) or part not in node:
            return None
        node = node[part]
    if isinstance(node, str) and node:
        return node
    return None


def require_pointer(envelope: Any, path: Sequence[str | int], *, service: str) -> str:
    url = extract_pointer(envelope, path)
    if url is None:
        raise UpstreamTransformError(f"{service} did not return an image URL")
    return url


async def fetch_output(http: httpx.AsyncClient, url: str, *, content_type: str) -> ImageArtifact:
    """Second hop of result delivery: resolve the output pointer to bytes."""
    if url.startswith("data:"):
        try:
            return ImageArtifact(data=from_data_url(url), content_type=content_type)
        except ValueError as exc:
            raise UpstreamTransformError(f"Failed to decode inline AI image: {exc}") from exc
    resp = await http.get(url)
    if not resp.is_success:
        raise UpstreamTransformError(f"Failed to fetch AI image: {resp.status_code}")
    return ImageArtifact(data=resp.content, content_type=content_type)


def json_or_none(resp: httpx.Response) -> Any:
    try:
        return resp.json()
    except ValueError:
        return None
