# Test doubles and tiny document builders shared by the test modules.
from __future__ import annotations

import io
import json
import zipfile
from typing import Any, Dict, List, Optional
from xml.sax.saxutils import escape

from PIL import Image

from slideit.pipeline.generate import SlideContentGenerator
from slideit.pipeline.illustrate import Illustrator
from slideit.pipeline.retry import PacingPolicy, RetryPolicy
from slideit.pipeline.runner import PipelineDeps
from slideit.services.tracker import InMemoryJobTracker


class Reply:
    def __init__(self, content: str):
        self.content = content


class FakeChat:
    """Stands in for ChatOpenAI: returns canned text, records every call."""

    def __init__(self, reply: Optional[str] = None, error: Optional[Exception] = None):
        self.reply = reply
        self.error = error
        self.calls: List[Any] = []

    async def ainvoke(self, messages):
        self.calls.append(messages)
        if self.error is not None:
            raise self.error
        return Reply(self.reply or "[]")


class FakeImageClient:
    def __init__(self, data: Optional[bytes] = None, fail_on: Optional[set] = None, always_fail: bool = False):
        self.data = data if data is not None else png_bytes()
        self.fail_on = fail_on or set()
        self.always_fail = always_fail
        self.prompts: List[str] = []

    async def fetch(self, prompt: str) -> bytes:
        self.prompts.append(prompt)
        if self.always_fail or any(key in prompt for key in self.fail_on):
            raise RuntimeError(f"image service refused {prompt!r}")
        return self.data


class MemoryStore:
    def __init__(self, error: Optional[Exception] = None):
        self.objects: Dict[str, bytes] = {}
        self.error = error

    async def put(self, key: str, data: bytes, content_type: str = "") -> str:
        if self.error is not None:
            raise self.error
        self.objects[key] = data
        return f"memory://{key}"


def slides_json(n: int, *, wrap: bool = True, prefix: str = "Point") -> str:
    slides = [
        {"title": f"{prefix} {i}", "bullets": [f"fact {i}.1", f"fact {i}.2", f"fact {i}.3"]}
        for i in range(1, n + 1)
    ]
    return json.dumps({"slides": slides} if wrap else slides)


def make_deps(
    chat: Optional[FakeChat] = None,
    images: Optional[FakeImageClient] = None,
    tracker=None,
    store: Optional[MemoryStore] = None,
    sleep=None,
) -> PipelineDeps:
    async def _no_sleep(_):
        return None

    return PipelineDeps(
        generator=SlideContentGenerator(chat or FakeChat(slides_json(3))),
        illustrator=Illustrator(
            images or FakeImageClient(),
            RetryPolicy(max_attempts=2, delay=0, timeout=5),
            PacingPolicy(batch_size=5, item_delay=0, batch_cooldown=0),
            sleep=sleep or _no_sleep,
        ),
        tracker=tracker or InMemoryJobTracker(),
        store=store or MemoryStore(),
    )


# ---------- document builders ----------

def png_bytes(size=(8, 8), color=(30, 80, 160)) -> bytes:
    buf = io.BytesIO()
    Image.new("RGB", size, color).save(buf, format="PNG")
    return buf.getvalue()


def pdf_bytes(text: str) -> bytes:
    stream = f"BT /F1 24 Tf 72 720 Td ({text}) Tj ET".encode("latin-1")
    objs = [
        b"<< /Type /Catalog /Pages 2 0 R >>",
        b"<< /Type /Pages /Kids [3 0 R] /Count 1 >>",
        b"<< /Type /Page /Parent 2 0 R /MediaBox [0 0 612 792] /Contents 4 0 R "
        b"/Resources << /Font << /F1 5 0 R >> >> >>",
        b"<< /Length %d >>\nstream\n" % len(stream) + stream + b"\nendstream",
        b"<< /Type /Font /Subtype /Type1 /BaseFont /Helvetica >>",
    ]
    out = bytearray(b"%PDF-1.4\n")
    offsets = []
    for i, body in enumerate(objs, 1):
        offsets.append(len(out))
        out += b"%d 0 obj\n" % i + body + b"\nendobj\n"
    xref = len(out)
    out += b"xref\n0 %d\n" % (len(objs) + 1)
    out += b"0000000000 65535 f \n"
    for off in offsets:
        out += b"%010d 00000 n \n" % off
    out += b"trailer\n<< /Size %d /Root 1 0 R >>\nstartxref\n%d\n%%%%EOF\n" % (len(objs) + 1, xref)
    return bytes(out)


_CONTENT_TYPES = (
    '<?xml version="1.0" encoding="UTF-8" standalone="yes"?>'
    '<Types xmlns="http://schemas.openxmlformats.org/package/2006/content-types">'
    '<Default Extension="rels" ContentType="application/vnd.openxmlformats-package.relationships+xml"/>'
    '<Default Extension="xml" ContentType="application/xml"/>'
    '<Override PartName="/word/document.xml" '
    'ContentType="application/vnd.openxmlformats-officedocument.wordprocessingml.document.main+xml"/>'
    '</Types>'
)
_PACKAGE_RELS = (
    '<?xml version="1.0" encoding="UTF-8" standalone="yes"?>'
    '<Relationships xmlns="http://schemas.openxmlformats.org/package/2006/relationships">'
    '<Relationship Id="rId1" '
    'Type="http://schemas.openxmlformats.org/officeDocument/2006/relationships/officeDocument" '
    'Target="word/document.xml"/>'
    '</Relationships>'
)
_DOCUMENT_RELS = (
    '<?xml version="1.0" encoding="UTF-8" standalone="yes"?>'
    '<Relationships xmlns="http://schemas.openxmlformats.org/package/2006/relationships"></Relationships>'
)


def docx_bytes(*paragraphs: str) -> bytes:
    body = "".join(
        f'<w:p><w:r><w:t xml:space="preserve">{escape(p)}</w:t></w:r></w:p>' for p in paragraphs
    )
    document = (
        '<?xml version="1.0" encoding="UTF-8" standalone="yes"?>'
        '<w:document xmlns:w="http://schemas.openxmlformats.org/wordprocessingml/2006/main">'
        f"<w:body>{body}</w:body></w:document>"
    )
    buf = io.BytesIO()
    with zipfile.ZipFile(buf, "w", zipfile.ZIP_DEFLATED) as z:
        z.writestr("[Content_Types].xml", _CONTENT_TYPES)
        z.writestr("_rels/.rels", _PACKAGE_RELS)
        z.writestr("word/_rels/document.xml.rels", _DOCUMENT_RELS)
        z.writestr("word/document.xml", document)
    return buf.getvalue()


def xlsx_bytes(sheets: Dict[str, List[List[Any]]]) -> bytes:
    import pandas as pd

    buf = io.BytesIO()
    with pd.ExcelWriter(buf, engine="openpyxl") as writer:
        for name, rows in sheets.items():
            pd.DataFrame(rows).to_excel(writer, sheet_name=name, index=False, header=False)
    return buf.getvalue()
