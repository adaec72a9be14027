from __future__ import annotations

import logging

from fastapi import APIRouter, Query, Request, Response
from fastapi.responses import JSONResponse

from modules.errors import InputError, PreviewError
from services.api.config import get_settings
from services.api.deps import get_pipeline
from services.api.schemas.errors import ImageErrorResponse


router = APIRouter(prefix="", tags=["images"])
logger = logging.getLogger(__name__)


def _error(status_code: int, error: str, details: str | None = None) -> JSONResponse:
    body = ImageErrorResponse(error=error, details=details)
    return JSONResponse(status_code=status_code, content=body.model_dump(exclude_none=True))


@router.get(
    "/image",
    response_class=Response,
    responses={
        200: {"content": {"image/png": {}, "image/jpeg": {}}},
        400: {"model": ImageErrorResponse},
        500: {"model": ImageErrorResponse},
    },
)
async def get_image(
    request: Request,
    site: str | None = Query(default=None, description="Site URL or hostname to preview"),
) -> Response:
    site = (site or "").strip()
    if not site:
        return _error(400, "Site parameter is required")

    try:
        pipeline = get_pipeline(request)
        artifact = await pipeline.run(site)
    except InputError as exc:
        return _error(400, str(exc))
    except PreviewError as exc:
        return _error(500, "Failed to generate image", str(exc))
    except Exception as exc:  # noqa: BLE001
        logger.exception("unexpected failure generating preview for %s", site)
        return _error(500, "Failed to generate image", str(exc) or "Unknown error")

    max_age = get_settings().cache_max_age_s
    return Response(
        content=artifact.data,
        media_type=artifact.content_type,
        headers={"Cache-Control": f"public, max-age={max_age}"},
    )
