from __future__ import annotations

import logging
import os
import time
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator

from fastapi import FastAPI, Response, status
from fastapi.responses import HTMLResponse
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from modules.storage import s3 as s3mod
from services.worker.metrics import HEALTH_HITS, READY_GAUGE, REGISTRY

from .config import get_settings
from .deps import s3_config
from .routes import router as api_router


_LANDING = """
    <html>
      <body>
        <h1>OG Image Generator</h1>
        <p>GET /api/image?site=&lt;url&gt;</p>
      </body>
    </html>
"""


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@asynccontextmanager
async def _lifespan(app: FastAPI) -> AsyncIterator[None]:
    yield
    http = getattr(app.state, "http", None)
    if http is not None:
        await http.aclose()


def create_app() -> FastAPI:
    settings = get_settings()
    configure_logging(settings.log_level)
    app = FastAPI(title="og-forge API", version="0.1.0", docs_url=None, redoc_url=None, lifespan=_lifespan)
    app.state.pipeline = None
    app.state.http = None

    @app.get("/", response_class=HTMLResponse)
    def index() -> str:
        return _LANDING

    @app.get("/healthz")
    def healthz() -> dict[str, Any]:
        HEALTH_HITS.inc()
        return {"status": "ok", "ts": int(time.time())}

    @app.get("/readyz")
    def readyz() -> Any:
        settings = get_settings()
        checks = {c.strip() for c in os.getenv("OGF_READY_CHECKS", settings.ready_checks).split(",") if c.strip()}
        try:
            if "s3" in checks:
                s3mod.check_bucket(s3_config(settings))

            READY_GAUGE.set(1)
            return {"status": "ready"}
        except Exception as exc:  # noqa: BLE001
            READY_GAUGE.set(0)
            return Response(content=f"not ready: {exc}", status_code=status.HTTP_503_SERVICE_UNAVAILABLE)

    @app.get("/metrics")
    def metrics() -> Response:
        if not get_settings().metrics_enabled:
            return Response(status_code=status.HTTP_404_NOT_FOUND)
        output = generate_latest(REGISTRY)
        return Response(output, media_type=CONTENT_TYPE_LATEST)

    app.include_router(api_router)

    return app


app = create_app()
