from __future__ import annotations

from pydantic import BaseModel


class ImageErrorResponse(BaseModel):
    error: str
    details: str | None = None
