"""
Plain-text extraction for every supported source kind.

`extract` is pure and blocking; `extract_async` pushes it to a worker thread so
the event loop is never held by pdfminer/mammoth/pandas.
"""
from __future__ import annotations

import asyncio
import io
from typing import Union

import mammoth
import pandas as pd
from pdfminer.high_level import extract_text

from slideit.core.logging import get_logger
from slideit.kernel.errors import ExtractionEmpty, ExtractionFailed, ProblemDetails, UnsupportedSource
from slideit.models.slide import SourceKind

log = get_logger(__name__)

Raw = Union[bytes, str]


def _pdf_text(raw: bytes) -> str:
    return extract_text(io.BytesIO(raw)) or ""


def _word_text(raw: bytes) -> str:
    result = mammoth.extract_raw_text(io.BytesIO(raw))
    for msg in result.messages:
        log.debug("mammoth: %s", msg)
    return result.value or ""


def _sheet_csv(df: pd.DataFrame) -> str:
    if df.empty and len(df.columns) == 0:
        return ""
    return df.to_csv(index=False, header=False, lineterminator="\n").rstrip("\n")


# legacy .xls workbooks are OLE2 compound files
_OLE2_MAGIC = b"\xd0\xcf\x11\xe0\xa1\xb1\x1a\xe1"


def _excel_engine(raw: bytes) -> str:
    return "xlrd" if raw.startswith(_OLE2_MAGIC) else "openpyxl"


def _excel_text(raw: bytes) -> str:
    # header=None keeps the first row as data; sheet dict preserves workbook order
    sheets = pd.read_excel(io.BytesIO(raw), sheet_name=None, header=None, engine=_excel_engine(raw))
    blocks = []
    for name, df in sheets.items():
        body = _sheet_csv(df)
        blocks.append(f"Sheet: {name}\n{body}" if body else f"Sheet: {name}")
    return "\n\n".join(blocks)


def _plain_text(raw: Raw) -> str:
    if isinstance(raw, str):
        return raw
    return raw.decode("utf-8-sig", errors="replace")


_EXTRACTORS = {
    SourceKind.PDF: _pdf_text,
    SourceKind.WORD: _word_text,
    SourceKind.EXCEL: _excel_text,
}


def extract(source_kind: SourceKind, raw: Raw) -> str:
    kind = SourceKind(source_kind)
    if kind == SourceKind.AI_TOPIC:
        raise UnsupportedSource("topic requests are not extracted")

    if kind == SourceKind.TEXT:
        text = _plain_text(raw)
    else:
        if isinstance(raw, str):
            raise UnsupportedSource(f"{kind.value} input must be bytes")
        try:
            text = _EXTRACTORS[kind](raw)
        except ProblemDetails:
            raise
        except Exception as e:
            log.warning("%s extraction failed: %s", kind.value, e)
            raise ExtractionFailed(kind.value, f"could not read {kind.value} document: {e}") from e

    if not text or not text.strip():
        raise ExtractionEmpty(kind.value)
    return text


async def extract_async(source_kind: SourceKind, raw: Raw) -> str:
    return await asyncio.to_thread(extract, source_kind, raw)
