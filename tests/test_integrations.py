import json

import httpx
import pytest

from backend.app.integrations.captions import GeminiCaptionGenerator
from backend.app.integrations.storage import (
    LocalBlobStorage,
    discard_stored_file,
    media_storage_path,
    safe_file_name,
)
from backend.app.models import MediaType


async def test_local_storage_round_trip(tmp_path):
    storage = LocalBlobStorage(str(tmp_path), "/files/")

    url = await storage.store(b"hello", "7/123-photo.jpg")

    assert url == "/files/7/123-photo.jpg"
    assert (tmp_path / "7" / "123-photo.jpg").read_bytes() == b"hello"

    await storage.delete(media_storage_path(7, url))
    assert not (tmp_path / "7" / "123-photo.jpg").exists()


async def test_local_storage_refuses_paths_outside_root(tmp_path):
    storage = LocalBlobStorage(str(tmp_path / "root"))
    with pytest.raises(ValueError):
        await storage.store(b"x", "../escape.txt")


async def test_discard_missing_file_is_logged_not_raised(tmp_path):
    storage = LocalBlobStorage(str(tmp_path))
    assert await discard_stored_file(storage, "1/missing.jpg") is False


def test_safe_file_name():
    assert safe_file_name("../../etc/pass wd") == "pass_wd"
    assert safe_file_name("Grandma's photo (1).JPG") == "Grandma_s_photo__1_.JPG"
    assert safe_file_name("") == "file"


async def test_gemini_caption():
    requests = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(200, json={
            "candidates": [{"content": {"parts": [{"text": " Kids at the lake \n"}]}}],
        })

    captioner = GeminiCaptionGenerator("key", transport=httpx.MockTransport(handler))
    caption = await captioner.caption("/files/1/a.jpg", MediaType.IMAGE, data=b"jpeg", mime_type="image/png")

    assert caption == "Kids at the lake"
    body = json.loads(requests[0].content)
    assert body["contents"][0]["parts"][1]["inline_data"]["mime_type"] == "image/png"
    assert requests[0].url.params["key"] == "key"


async def test_gemini_errors_become_no_caption():
    transport = httpx.MockTransport(lambda request: httpx.Response(500))
    captioner = GeminiCaptionGenerator("key", transport=transport)

    assert await captioner.caption("/files/1/a.mp3", MediaType.AUDIO, data=b"id3") is None
