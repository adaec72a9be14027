from __future__ import annotations

import base64
import io
import json
from types import SimpleNamespace

import httpx
import openai
import pytest
from PIL import Image

from modules.errors import UpstreamTransformError
from modules.media import ImageArtifact, sniff_format
from services.worker.transformers.base import EDIT_PROMPT, Transformer, extract_pointer
from services.worker.transformers.edit import EditTransformer
from services.worker.transformers.fake import FakeTransformer
from services.worker.transformers.generate import GenerateTransformer
from services.worker.transformers.style_transfer import StyleTransferTransformer


RAW = ImageArtifact(b"\x89PNG\r\n\x1a\nraw-screenshot", "image/png")
FINAL = b"\x89PNG\r\n\x1a\nstylized"


def _client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


def test_extract_pointer_paths() -> None:
    body = {"data": [{"url": "https://x/1.png"}]}
    assert extract_pointer(body, ("data", 0, "url")) == "https://x/1.png"
    assert extract_pointer({"data": []}, ("data", 0, "url")) is None
    assert extract_pointer({"data": [{"url": ""}]}, ("data", 0, "url")) is None
    assert extract_pointer(None, ("data", 0, "url")) is None
    assert extract_pointer({"data": {"images": [{"url": "u"}]}}, ("data", "images", 0, "url")) == "u"


def test_all_strategies_satisfy_protocol() -> None:
    http = httpx.AsyncClient()
    sdk = SimpleNamespace(images=None)
    for t in (
        EditTransformer(http, api_key="k"),
        GenerateTransformer(sdk, http),
        StyleTransferTransformer(http, api_key="k"),
        FakeTransformer(),
    ):
        assert isinstance(t, Transformer)


# --- edit ---------------------------------------------------------------


@pytest.mark.asyncio
async def test_edit_sends_multipart_and_fetches_result() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        request.read()
        seen.append(request)
        if request.url.path == "/v1/images/edits":
            return httpx.Response(200, json={"data": [{"url": "https://img.test/out.png"}]})
        return httpx.Response(200, content=FINAL)

    async with _client(handler) as http:
        t = EditTransformer(http, api_key="sk-test")
        out = await t.transform(RAW, "example.com")

    assert out == ImageArtifact(FINAL, "image/png")
    req = seen[0]
    assert req.method == "POST"
    assert req.headers["authorization"] == "Bearer sk-test"
    assert req.headers["content-type"].startswith("multipart/form-data")
    body = req.content
    assert b'name="image"; filename="screenshot.png"' in body
    assert RAW.data in body
    assert EDIT_PROMPT.encode() in body
    assert b'name="n"\r\n\r\n1' in body
    assert b'name="size"\r\n\r\n1024x1024' in body
    assert b'name="response_format"\r\n\r\nurl' in body
    assert str(seen[1].url) == "https://img.test/out.png"


@pytest.mark.asyncio
async def test_edit_error_status_carries_body() -> None:
    async with _client(lambda r: httpx.Response(400, text="image too large")) as http:
        t = EditTransformer(http, api_key="k")
        with pytest.raises(UpstreamTransformError, match="400 - image too large"):
            await t.transform(RAW, "example.com")


@pytest.mark.asyncio
async def test_edit_missing_url() -> None:
    async with _client(lambda r: httpx.Response(200, json={"data": []})) as http:
        t = EditTransformer(http, api_key="k")
        with pytest.raises(UpstreamTransformError, match="did not return an image URL"):
            await t.transform(RAW, "example.com")


@pytest.mark.asyncio
async def test_edit_result_fetch_failure() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.method == "POST":
            return httpx.Response(200, json={"data": [{"url": "https://img.test/out.png"}]})
        return httpx.Response(403)

    async with _client(handler) as http:
        t = EditTransformer(http, api_key="k")
        with pytest.raises(UpstreamTransformError, match="Failed to fetch AI image: 403"):
            await t.transform(RAW, "example.com")


# --- generate -----------------------------------------------------------


class _Images:
    def __init__(self, result=None, error: Exception | None = None) -> None:
        self.result = result
        self.error = error
        self.calls: list[dict] = []

    async def generate(self, **kwargs):
        self.calls.append(kwargs)
        if self.error is not None:
            raise self.error
        return self.result


@pytest.mark.asyncio
async def test_generate_prompts_with_site_and_ignores_pixels() -> None:
    images = _Images(SimpleNamespace(data=[SimpleNamespace(url="https://img.test/gen.png")]))
    async with _client(lambda r: httpx.Response(200, content=FINAL)) as http:
        t = GenerateTransformer(SimpleNamespace(images=images), http, model="dall-e-3")
        out = await t.transform(ImageArtifact(b"", "image/png"), "example.com")

    assert out.data == FINAL
    call = images.calls[0]
    assert "example.com" in call["prompt"]
    assert call["n"] == 1
    assert call["response_format"] == "url"
    assert call["size"] == "1024x1024"
    assert call["model"] == "dall-e-3"
    assert t.needs_raw is False


@pytest.mark.asyncio
async def test_generate_sdk_error_translated() -> None:
    images = _Images(error=openai.OpenAIError("quota exceeded"))
    async with _client(lambda r: httpx.Response(200)) as http:
        t = GenerateTransformer(SimpleNamespace(images=images), http)
        with pytest.raises(UpstreamTransformError, match="quota exceeded"):
            await t.transform(RAW, "example.com")


@pytest.mark.asyncio
async def test_generate_missing_url() -> None:
    images = _Images(SimpleNamespace(data=[SimpleNamespace(url=None, b64_json="...")]))
    async with _client(lambda r: httpx.Response(200)) as http:
        t = GenerateTransformer(SimpleNamespace(images=images), http)
        with pytest.raises(UpstreamTransformError, match="did not return an image URL"):
            await t.transform(RAW, "example.com")


# --- style transfer -----------------------------------------------------


@pytest.mark.asyncio
async def test_style_transfer_inlines_image_and_reads_data_envelope() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        request.read()
        seen.append(request)
        if request.method == "POST":
            return httpx.Response(200, json={"data": {"images": [{"url": "https://fal.test/o.png"}]}})
        return httpx.Response(200, content=FINAL)

    async with _client(handler) as http:
        t = StyleTransferTransformer(http, api_key="fal-key", endpoint="https://fal.test/i2i")
        out = await t.transform(RAW, "example.com")

    assert out.data == FINAL
    req = seen[0]
    assert req.headers["authorization"] == "Key fal-key"
    payload = json.loads(req.content)
    assert payload["sync_mode"] is True
    assert payload["prompt"]
    expected = "data:image/png;base64," + base64.b64encode(RAW.data).decode()
    assert payload["image_url"] == expected


@pytest.mark.asyncio
async def test_style_transfer_accepts_bare_envelope_and_inline_result() -> None:
    inline = "data:image/png;base64," + base64.b64encode(FINAL).decode()
    requests: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(200, json={"images": [{"url": inline}]})

    async with _client(handler) as http:
        t = StyleTransferTransformer(http, api_key="k", endpoint="https://fal.test/i2i")
        out = await t.transform(RAW, "example.com")

    assert out.data == FINAL
    assert len(requests) == 1


@pytest.mark.asyncio
async def test_style_transfer_missing_url() -> None:
    async with _client(lambda r: httpx.Response(200, json={"images": []})) as http:
        t = StyleTransferTransformer(http, api_key="k")
        with pytest.raises(UpstreamTransformError, match="did not return an image URL"):
            await t.transform(RAW, "example.com")


@pytest.mark.asyncio
async def test_style_transfer_error_status() -> None:
    async with _client(lambda r: httpx.Response(422, text="bad image")) as http:
        t = StyleTransferTransformer(http, api_key="k")
        with pytest.raises(UpstreamTransformError, match="422"):
            await t.transform(RAW, "example.com")


# --- fake ---------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.parametrize("fmt,content_type", [("png", "image/png"), ("jpeg", "image/jpeg")])
async def test_fake_is_deterministic_per_site(fmt: str, content_type: str) -> None:
    t = FakeTransformer(fmt=fmt, width=32, height=16)
    a = await t.transform(RAW, "example.com")
    b = await t.transform(RAW, "example.com")
    c = await t.transform(RAW, "example.org")

    assert a == b
    assert a.content_type == content_type
    assert sniff_format(a.data) == fmt
    with Image.open(io.BytesIO(a.data)) as img:
        assert img.size == (32, 16)
    if fmt == "png":
        assert a.data != c.data
