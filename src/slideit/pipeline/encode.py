# Slide records -> .pptx bytes (A4 landscape, one blank-layout slide per record)
from __future__ import annotations

import base64
import binascii
import io
import os
import re
from typing import Optional, Sequence

from pptx import Presentation
from pptx.dml.color import RGBColor
from pptx.enum.text import PP_PARAGRAPH_ALIGNMENT
from pptx.util import Inches, Pt

from slideit.core.logging import get_logger
from slideit.kernel.errors import EncodingFailed
from slideit.models.slide import SlideRecord

log = get_logger(__name__)

SLIDE_W, SLIDE_H = Inches(11.69), Inches(8.27)
BLANK_LAYOUT = 6

TITLE_BOX = (Inches(0.5), Inches(0.3), Inches(10.5), Inches(0.8))
BULLET_BOX = (Inches(0.5), Inches(1.5), Inches(5.5), Inches(4.5))
IMAGE_BOX = (Inches(6.2), Inches(1.5), Inches(4.5), Inches(4.5))
PLACEHOLDER_BOX = (Inches(6.2), Inches(3.5), Inches(4.5), Inches(1.0))

TITLE_COLOR = RGBColor(0x1F, 0x49, 0x7D)
BODY_COLOR = RGBColor(0x33, 0x33, 0x33)
PLACEHOLDER_COLOR = RGBColor(0x80, 0x80, 0x80)
BULLET_PREFIX = "• "
PLACEHOLDER_TEXT = "No image generated"


def _set_run_style(run, font_size: int, bold: bool = False, italic: bool = False,
                   color: Optional[RGBColor] = None):
    run.font.size = Pt(font_size)
    run.font.bold = bold
    run.font.italic = italic
    if color:
        run.font.color.rgb = color


def _add_title(slide, title: str):
    tb = slide.shapes.add_textbox(*TITLE_BOX)
    tf = tb.text_frame
    tf.word_wrap = True
    p = tf.paragraphs[0]
    p.alignment = PP_PARAGRAPH_ALIGNMENT.LEFT
    run = p.add_run()
    run.text = title
    _set_run_style(run, 28, bold=True, color=TITLE_COLOR)


def _add_bullets(slide, bullets: Sequence[str]):
    tb = slide.shapes.add_textbox(*BULLET_BOX)
    tf = tb.text_frame
    tf.word_wrap = True
    for i, text in enumerate(bullets):
        p = tf.paragraphs[0] if i == 0 else tf.add_paragraph()
        p.alignment = PP_PARAGRAPH_ALIGNMENT.LEFT
        run = p.add_run()
        run.text = BULLET_PREFIX + text
        _set_run_style(run, 18, color=BODY_COLOR)


def _add_placeholder(slide):
    tb = slide.shapes.add_textbox(*PLACEHOLDER_BOX)
    p = tb.text_frame.paragraphs[0]
    p.alignment = PP_PARAGRAPH_ALIGNMENT.CENTER
    run = p.add_run()
    run.text = PLACEHOLDER_TEXT
    _set_run_style(run, 16, italic=True, color=PLACEHOLDER_COLOR)


def _decode_image(data: Optional[str]) -> Optional[bytes]:
    if not data:
        return None
    # tolerate data URLs
    if data.startswith("data:") and "," in data:
        data = data.split(",", 1)[1]
    try:
        raw = base64.b64decode(data, validate=False)
    except (binascii.Error, ValueError):
        return None
    return raw or None


def _add_image(slide, record: SlideRecord, index: int) -> bool:
    raw = _decode_image(record.image_data)
    if raw is None:
        return False
    try:
        slide.shapes.add_picture(io.BytesIO(raw), *IMAGE_BOX)
    except Exception as e:
        log.warning("slide %d: image rejected (%s); drawing placeholder", index, e)
        return False
    return True


def _build(slides: Sequence[SlideRecord]) -> bytes:
    prs = Presentation()
    prs.slide_width = SLIDE_W
    prs.slide_height = SLIDE_H
    layout = prs.slide_layouts[BLANK_LAYOUT]

    for idx, record in enumerate(slides, 1):
        slide = prs.slides.add_slide(layout)
        _add_title(slide, record.title or f"Slide {idx}")
        _add_bullets(slide, record.bullets)
        if not _add_image(slide, record, idx):
            _add_placeholder(slide)

    buf = io.BytesIO()
    prs.save(buf)
    return buf.getvalue()


def encode(slides: Sequence[SlideRecord]) -> bytes:
    try:
        return _build(slides)
    except Exception as e:
        log.exception("presentation encoding failed")
        raise EncodingFailed(str(e)) from e


def slide_count(data: bytes) -> int:
    return len(Presentation(io.BytesIO(data)).slides)


_UNSAFE = re.compile(r"[^\w.\-]+", re.UNICODE)


def artifact_filename(display_name: Optional[str]) -> str:
    base = os.path.basename((display_name or "").replace("\\", "/"))
    stem, _ = os.path.splitext(base)
    stem = "_".join(stem.split())
    stem = _UNSAFE.sub("", stem).strip("._")
    return f"{stem}_Presentation.pptx" if stem else "Presentation.pptx"
