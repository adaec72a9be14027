from __future__ import annotations

import asyncio

import pytest

from modules.errors import StorageError, UpstreamCaptureError, UpstreamTransformError
from modules.media import ImageArtifact


PNG_MAGIC = b"\x89PNG\r\n\x1a\n"


def png_payload(size: int, fill: bytes = b"\x00") -> bytes:
    return PNG_MAGIC + fill * (size - len(PNG_MAGIC))


class MemoryCache:
    def __init__(self) -> None:
        self.store: dict[str, ImageArtifact] = {}
        self.puts: list[str] = []
        self.fail_put: set[str] = set()
        self.fail_get = False

    async def get(self, key: str) -> ImageArtifact | None:
        if self.fail_get:
            raise StorageError(f"Failed to read {key}: boom")
        return self.store.get(key)

    async def put(self, key: str, artifact: ImageArtifact) -> None:
        if key in self.fail_put:
            raise StorageError(f"Failed to write {key}: boom")
        self.puts.append(key)
        self.store[key] = artifact


class StubCapturer:
    def __init__(self, artifact: ImageArtifact | None = None, *, error: Exception | None = None) -> None:
        self.artifact = artifact or ImageArtifact(png_payload(100), "image/png")
        self.error = error
        self.calls: list[str] = []

    async def capture(self, site: str) -> ImageArtifact:
        self.calls.append(site)
        await asyncio.sleep(0)
        if self.error is not None:
            raise self.error
        return self.artifact


class StubTransformer:
    def __init__(
        self,
        artifact: ImageArtifact | None = None,
        *,
        error: Exception | None = None,
        needs_raw: bool = True,
    ) -> None:
        self.artifact = artifact or ImageArtifact(png_payload(50, b"\x01"), "image/png")
        self.error = error
        self.needs_raw = needs_raw
        self.calls: list[tuple[ImageArtifact, str]] = []

    async def transform(self, raw: ImageArtifact, site: str) -> ImageArtifact:
        self.calls.append((raw, site))
        await asyncio.sleep(0)
        if self.error is not None:
            raise self.error
        return self.artifact


@pytest.fixture
def cache() -> MemoryCache:
    return MemoryCache()


@pytest.fixture
def capturer() -> StubCapturer:
    return StubCapturer()


@pytest.fixture
def transformer() -> StubTransformer:
    return StubTransformer()


@pytest.fixture
def failing_capturer() -> StubCapturer:
    return StubCapturer(error=UpstreamCaptureError("Screenshot API failed: 502"))


@pytest.fixture
def failing_transformer() -> StubTransformer:
    return StubTransformer(error=UpstreamTransformError("OpenAI API failed: 500 - upstream"))


@pytest.fixture(autouse=True)
def _settings_cache():
    from services.api.config import get_settings

    get_settings.cache_clear()
    yield
    get_settings.cache_clear()
