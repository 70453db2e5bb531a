from __future__ import annotations

import json
import re
from typing import Any, List

from langchain_core.messages import HumanMessage, SystemMessage
from pydantic import ValidationError

from slideit.core.logging import get_logger
from slideit.kernel.errors import GenerationFailed, GenerationMalformed, InvalidSlideShape
from slideit.models.slide import SlideRecord

log = get_logger(__name__)

SYSTEM_PROMPT = (
    "You turn source material into presentation slides. "
    "Reply with JSON only, no prose and no markdown."
)

_FENCE = re.compile(r"^\s*```(?:json)?\s*([\s\S]*?)\s*```\s*$", re.I)


def build_prompt(source: str, slide_count: int, *, is_topic: bool, with_image_prompts: bool = True) -> str:
    fields = '"title", "bullets"' + (', "imagePrompt"' if with_image_prompts else "")
    lines = [
        f"Create exactly {slide_count} slides.",
        "Each slide has a title (max 10 words) and 3-5 concise bullet points.",
    ]
    if with_image_prompts:
        lines.append("Each slide also has a short imagePrompt describing an illustration for it.")
    lines.append(
        f'Return a JSON object {{"slides": [...]}} where every slide is an object with keys {fields}; '
        '"bullets" is an array of strings.'
    )
    if is_topic:
        lines.append(f"Topic: {source}")
    else:
        lines.append("Summarise the following content:")
        lines.append(source)
    return "\n".join(lines)


def _slide_shaped(v: Any) -> bool:
    if isinstance(v, list):
        return True
    return isinstance(v, dict) and ("title" in v or "bullets" in v)


def ensure_slides_array(parsed: Any) -> List[Any]:
    """
    Normalise the generator's reply to a list of slide entries.

    Tried in order: a bare array; an object with a `slides` array; an object
    with a `data` array; an object whose values are all slide-shaped (taken in
    key order). Anything else is rejected.
    """
    if isinstance(parsed, list):
        return parsed
    if not isinstance(parsed, dict):
        raise InvalidSlideShape(f"expected an array or object, got {type(parsed).__name__}")
    if isinstance(parsed.get("slides"), list):
        return parsed["slides"]
    if isinstance(parsed.get("data"), list):
        return parsed["data"]
    values = list(parsed.values())
    if values and all(_slide_shaped(v) for v in values):
        return values
    raise InvalidSlideShape("object does not contain slides")


def _as_records(i: int, entry: Any) -> List[dict]:
    if isinstance(entry, dict):
        return [entry]
    if isinstance(entry, list) and entry:
        # nested array of slide objects, or [title, bullet, bullet, ...]
        if all(isinstance(x, dict) for x in entry):
            return entry
        if not any(isinstance(x, (dict, list)) for x in entry):
            return [{"title": entry[0], "bullets": entry[1:]}]
    raise InvalidSlideShape(f"slide {i} is {type(entry).__name__}, not a slide object")


def parse_slides(raw_text: str) -> List[SlideRecord]:
    text = raw_text or ""
    m = _FENCE.match(text)
    if m:
        text = m.group(1)
    try:
        parsed = json.loads(text)
    except (json.JSONDecodeError, TypeError) as e:
        raise GenerationMalformed(f"reply is not JSON: {e}") from e

    slides: List[SlideRecord] = []
    for i, entry in enumerate(ensure_slides_array(parsed)):
        for fields in _as_records(i, entry):
            # image data never comes from the generator
            fields = {k: v for k, v in fields.items() if k not in ("imageData", "image_data")}
            try:
                slides.append(SlideRecord.model_validate(fields))
            except ValidationError as e:
                err = e.errors()[0]
                loc = ".".join(str(p) for p in err["loc"])
                raise InvalidSlideShape(f"slide {i}: {loc}: {err['msg']}") from e
    return slides


def _content_of(reply: Any) -> str:
    content = getattr(reply, "content", reply)
    if isinstance(content, list):
        # content blocks
        return "".join(c.get("text", "") if isinstance(c, dict) else str(c) for c in content)
    return str(content)


class SlideContentGenerator:
    def __init__(self, chat_model: Any):
        self.chat = chat_model

    async def generate(self, source: str, slide_count: int, *, is_topic: bool) -> List[SlideRecord]:
        msgs = [
            SystemMessage(content=SYSTEM_PROMPT),
            HumanMessage(content=build_prompt(source, slide_count, is_topic=is_topic)),
        ]
        try:
            reply = await self.chat.ainvoke(msgs)
        except Exception as e:
            log.warning("generative service call failed: %s", e)
            raise GenerationFailed(str(e) or type(e).__name__) from e

        slides = parse_slides(_content_of(reply))
        if len(slides) != slide_count:
            log.info("requested %d slides, generator returned %d", slide_count, len(slides))
        return slides
