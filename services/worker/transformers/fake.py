from __future__ import annotations

import hashlib
import io

from PIL import Image

from modules.media import ImageArtifact, content_type_for, pil_format_for


class FakeTransformer:
    """Offline stand-in: a solid colour image derived from the site identifier."""

    needs_raw = False

    def __init__(self, *, fmt: str = "png", width: int = 1024, height: int = 1024) -> None:
        self.fmt = fmt
        self.width = width
        self.height = height

    async def transform(self, raw: ImageArtifact, site: str) -> ImageArtifact:  # noqa: ARG002
        digest = hashlib.sha256(site.encode("utf-8")).digest()
        color = (digest[0], digest[1], digest[2])
        img = Image.new("RGB", (self.width, self.height), color)
        bio = io.BytesIO()
        img.save(bio, format=pil_format_for(self.fmt))
        return ImageArtifact(data=bio.getvalue(), content_type=content_type_for(self.fmt))
