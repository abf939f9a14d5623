# backend/app/integrations/captions.py
"""
AI caption collaborator.

Captions are a nice-to-have: any failure is logged and reported as
"no caption", never raised to the upload path.
"""
import base64
import logging
from typing import Optional, Protocol

import httpx

from backend.app.models.media import MediaType

logger = logging.getLogger(__name__)

GEMINI_ENDPOINT = "https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent"

PROMPTS = {
    MediaType.IMAGE: (
        "Generate a brief, meaningful caption for this image that captures the "
        "emotion and context. Keep it under 100 characters."
    ),
    MediaType.AUDIO: (
        "Generate a brief caption for this audio file. Describe what type of audio "
        "it might be (music, voice recording, etc.)."
    ),
    MediaType.VIDEO: "Generate a brief caption for this video file. Describe what the video might contain.",
}

DEFAULT_MIME = {
    MediaType.IMAGE: "image/jpeg",
    MediaType.AUDIO: "audio/mpeg",
    MediaType.VIDEO: "video/mp4",
}


class CaptionGenerator(Protocol):
    async def caption(
        self,
        url: str,
        media_type: MediaType,
        data: Optional[bytes] = None,
        mime_type: Optional[str] = None,
    ) -> Optional[str]:
        ...


class NullCaptionGenerator:
    """Used when no API key is configured."""

    async def caption(self, url, media_type, data=None, mime_type=None) -> Optional[str]:
        return None


class GeminiCaptionGenerator:
    def __init__(self, api_key: str, model: str = "gemini-1.5-flash", timeout: float = 20.0, transport=None):
        self.api_key = api_key
        self.model = model
        self.timeout = timeout
        self.transport = transport

    async def caption(
        self,
        url: str,
        media_type: MediaType,
        data: Optional[bytes] = None,
        mime_type: Optional[str] = None,
    ) -> Optional[str]:
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                if data is None:
                    resp = await client.get(url)
                    resp.raise_for_status()
                    data = resp.content

                payload = {
                    "contents": [
                        {
                            "parts": [
                                {"text": PROMPTS[media_type]},
                                {
                                    "inline_data": {
                                        "mime_type": mime_type or DEFAULT_MIME[media_type],
                                        "data": base64.b64encode(data).decode("utf-8"),
                                    }
                                },
                            ]
                        }
                    ]
                }
                resp = await client.post(
                    GEMINI_ENDPOINT.format(model=self.model),
                    params={"key": self.api_key},
                    json=payload,
                )
                resp.raise_for_status()
                body = resp.json()

            text = body["candidates"][0]["content"]["parts"][0]["text"]
            return text.strip() or None
        except (httpx.HTTPError, KeyError, IndexError, ValueError) as e:
            logger.warning(f"Caption generation failed for {url}: {e}")
            return None
