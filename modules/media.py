from __future__ import annotations

import base64
import binascii
import io
from dataclasses import dataclass

from PIL import Image


_CONTENT_TYPES = {"png": "image/png", "jpeg": "image/jpeg"}
_EXTENSIONS = {"png": "png", "jpeg": "jpg"}
_PIL_FORMATS = {"png": "PNG", "jpeg": "JPEG"}


@dataclass(frozen=True)
class ImageArtifact:
    data: bytes
    content_type: str

    @property
    def size(self) -> int:
        return len(self.data)


def normalize_format(fmt: str) -> str:
    key = fmt.lower().strip()
    if key == "jpg":
        key = "jpeg"
    if key not in _CONTENT_TYPES:
        raise ValueError(f"unsupported image format: {fmt}")
    return key


def content_type_for(fmt: str) -> str:
    return _CONTENT_TYPES[normalize_format(fmt)]


def extension_for(fmt: str) -> str:
    return _EXTENSIONS[normalize_format(fmt)]


def pil_format_for(fmt: str) -> str:
    return _PIL_FORMATS[normalize_format(fmt)]


def sniff_format(data: bytes) -> str | None:
    """Return 'png'/'jpeg' when Pillow recognises the bytes, else None."""
    try:
        with Image.open(io.BytesIO(data)) as img:
            found = (img.format or "").lower()
    except Exception:  # noqa: BLE001
        return None
    return found if found in _CONTENT_TYPES else None


def to_data_url(artifact: ImageArtifact) -> str:
    b64 = base64.b64encode(artifact.data).decode("ascii")
    return f"data:{artifact.content_type};base64,{b64}"


def from_data_url(url: str) -> bytes:
    # data:[<mediatype>][;base64],<payload>
    header, sep, payload = url.partition(",")
    if not sep or not header.startswith("data:") or not header.endswith(";base64"):
        raise ValueError("not a base64 data URL")
    try:
        return base64.b64decode(payload, validate=True)
    except binascii.Error as exc:
        raise ValueError(f"invalid base64 payload: {exc}") from exc
