from __future__ import annotations

import asyncio
import base64
from typing import Awaitable, Callable, List, Optional, Sequence

from slideit.core.logging import get_logger
from slideit.core.metrics import ILLUSTRATIONS
from slideit.models.slide import SlideRecord
from slideit.pipeline.retry import PacingPolicy, RetryPolicy, call_with_retry
from slideit.services.images import ImageClient

log = get_logger(__name__)

ProgressFn = Callable[[int, int], Awaitable[None]]


def effective_prompt(slide: SlideRecord, fallback_topic: Optional[str] = None) -> Optional[str]:
    if slide.image_prompt and slide.image_prompt.strip():
        return slide.image_prompt.strip()
    bullets = ", ".join(b.strip() for b in slide.bullets if b and b.strip())
    title = slide.title.strip()
    if title and bullets:
        return f"{title}: {bullets}"
    if title or bullets:
        return title or bullets
    if fallback_topic and fallback_topic.strip():
        return fallback_topic.strip()
    return None


class Illustrator:
    """
    Fills `imageData` slide by slide, in order, one request at a time.
    A slide whose fetch keeps failing ends up without an image; the deck goes on.
    """

    def __init__(
        self,
        image_client: ImageClient,
        retry: Optional[RetryPolicy] = None,
        pacing: Optional[PacingPolicy] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.client = image_client
        self.retry = retry or RetryPolicy()
        self.pacing = pacing or PacingPolicy()
        self.sleep = sleep

    async def _fetch_b64(self, prompt: str) -> Optional[str]:
        try:
            data = await call_with_retry(lambda: self.client.fetch(prompt), self.retry, sleep=self.sleep)
        except Exception as e:
            log.warning("illustration failed after %d attempts: %s", self.retry.max_attempts, e)
            ILLUSTRATIONS.labels(outcome="failed").inc()
            return None
        ILLUSTRATIONS.labels(outcome="ok").inc()
        return base64.b64encode(data).decode("ascii")

    async def illustrate(
        self,
        slides: Sequence[SlideRecord],
        *,
        fallback_topic: Optional[str] = None,
        on_progress: Optional[ProgressFn] = None,
    ) -> List[SlideRecord]:
        out = list(slides)
        prompts = {}
        for i, s in enumerate(out):
            if s.image_data:
                continue
            p = effective_prompt(s, fallback_topic)
            if p is None:
                ILLUSTRATIONS.labels(outcome="skipped").inc()
                continue
            prompts[i] = p

        total = len(out)
        fetches = len(prompts)
        fetched = 0
        for i, s in enumerate(out):
            if i in prompts:
                out[i] = s.model_copy(update={"image_data": await self._fetch_b64(prompts[i])})
                pause = self.pacing.pause_after(fetched, fetches)
                fetched += 1
                if pause > 0:
                    await self.sleep(pause)
            if on_progress is not None:
                await on_progress(i + 1, total)
        return out
