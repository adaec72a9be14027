from __future__ import annotations

from dataclasses import dataclass
from urllib.parse import quote

from modules.errors import InputError
from modules.media import extension_for


# Characters left unescaped by a URI-component encoder.
_SAFE = "-_.!~*'()"

RAW_ROLE = "screenshot"
FINAL_ROLE = "og"


@dataclass(frozen=True)
class ImageKeys:
    raw: str
    final: str


def encode_site(site: str) -> str:
    return quote(site, safe=_SAFE, encoding="utf-8")


def derive_keys(site: str, *, prefix: str = "", fmt: str = "png") -> ImageKeys:
    """Map a site identifier to its raw screenshot and final preview keys.

    Pure and deterministic. Percent-encoding keeps the mapping injective and the
    keys free of path separators.
    """
    if not site:
        raise InputError("Site parameter is required")
    enc = encode_site(site)
    ext = extension_for(fmt)
    return ImageKeys(
        raw=f"{prefix}{RAW_ROLE}-{enc}.{ext}",
        final=f"{prefix}{FINAL_ROLE}-{enc}.{ext}",
    )
