# Text-to-image clients. Each returns raw image bytes or raises.
from __future__ import annotations

import base64
import urllib.parse
from typing import Optional, Protocol

import httpx

from slideit.core.config import settings
from slideit.core.logging import get_logger

log = get_logger(__name__)

STABILITY_URL = "https://api.stability.ai/v1/generation/stable-diffusion-xl-1024-v1-0/text-to-image"


class ImageFetchError(RuntimeError):
    pass


class ImageClient(Protocol):
    async def fetch(self, prompt: str) -> bytes: ...


class PollinationsImageClient:
    """GET {base}/prompt/{prompt}; the response body is the image."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        *,
        width: Optional[int] = None,
        height: Optional[int] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = (base_url or settings.IMAGE_API_BASE).rstrip("/")
        self.width = width or settings.IMAGE_WIDTH
        self.height = height or settings.IMAGE_HEIGHT
        self._transport = transport

    def url_for(self, prompt: str) -> str:
        return f"{self.base_url}/prompt/{urllib.parse.quote(prompt, safe='')}"

    async def fetch(self, prompt: str) -> bytes:
        params = {"width": self.width, "height": self.height, "nologo": "true"}
        async with httpx.AsyncClient(timeout=None, transport=self._transport, follow_redirects=True) as c:
            r = await c.get(self.url_for(prompt), params=params)
            r.raise_for_status()
        ctype = r.headers.get("content-type", "")
        if not ctype.startswith("image/"):
            raise ImageFetchError(f"unexpected content type {ctype!r}")
        if not r.content:
            raise ImageFetchError("empty image body")
        return r.content


class StabilityImageClient:
    def __init__(
        self,
        api_key: str,
        *,
        width: int = 1024,
        height: int = 1024,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key
        self.width = width
        self.height = height
        self._transport = transport

    async def fetch(self, prompt: str) -> bytes:
        async with httpx.AsyncClient(timeout=None, transport=self._transport) as c:
            r = await c.post(
                STABILITY_URL,
                headers={
                    "Authorization": f"Bearer {self.api_key}",
                    "Accept": "application/json",
                    "Content-Type": "application/json",
                },
                json={
                    "text_prompts": [{"text": prompt}],
                    "width": self.width,
                    "height": self.height,
                    "cfg_scale": 7,
                    "samples": 1,
                    "steps": 30,
                },
            )
            r.raise_for_status()
        arts = r.json().get("artifacts") or []
        if not arts or not arts[0].get("base64"):
            raise ImageFetchError("no artifact in response")
        return base64.b64decode(arts[0]["base64"])


class NullImageClient:
    async def fetch(self, prompt: str) -> bytes:
        raise ImageFetchError("image generation disabled")


def build_image_client() -> ImageClient:
    provider = (settings.IMAGE_PROVIDER or "pollinations").lower()
    if provider == "stability":
        if not settings.STABILITY_API_KEY:
            log.warning("IMAGE_PROVIDER=stability but STABILITY_API_KEY is unset; images disabled")
            return NullImageClient()
        return StabilityImageClient(settings.STABILITY_API_KEY)
    if provider == "none":
        return NullImageClient()
    return PollinationsImageClient()
