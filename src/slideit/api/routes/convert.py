# Conversion endpoints. Each request runs the whole pipeline and answers with
# the slide records plus the stored artifact location.
from __future__ import annotations

import base64
import binascii
from typing import Any, Dict, Union

from fastapi import APIRouter, Depends, Response

from slideit.api.deps import get_pipeline_deps
from slideit.api.schemas import (
    DownloadBody,
    ExcelConvertBody,
    PdfConvertBody,
    TextConvertBody,
    TopicBody,
    WordConvertBody,
)
from slideit.core.auth import Owner, get_owner
from slideit.kernel.errors import InvalidRequest
from slideit.models.slide import SourceKind
from slideit.pipeline.encode import artifact_filename
from slideit.pipeline.runner import ConversionRequest, PipelineDeps, build_artifact, run_conversion
from slideit.services.artifacts import PPTX_CONTENT_TYPE

router = APIRouter()


def _decode_b64(data: str, field: str) -> bytes:
    s = (data or "").strip()
    if s.startswith("data:") and "," in s:
        s = s.split(",", 1)[1]
    s = "".join(s.split())
    if not s:
        raise InvalidRequest(f"{field} is empty", field=field)
    try:
        return base64.b64decode(s, validate=True)
    except (binascii.Error, ValueError) as e:
        raise InvalidRequest(f"{field} is not valid base64", field=field) from e


async def _convert(
    deps: PipelineDeps,
    owner: Owner,
    kind: SourceKind,
    display_name: str,
    slides: int,
    content: Union[bytes, str],
) -> Dict[str, Any]:
    result = await run_conversion(
        deps,
        ConversionRequest(
            source_kind=kind,
            owner_id=owner.id,
            display_name=display_name,
            slide_count=slides,
            content=content,
        ),
    )
    return {
        "success": True,
        "jobId": result.job.id,
        "slides": [s.dump() for s in result.slides],
        "artifactLocation": result.artifact_location,
    }


@router.post("/convert-pdf")
async def convert_pdf(
    body: PdfConvertBody,
    owner: Owner = Depends(get_owner),
    deps: PipelineDeps = Depends(get_pipeline_deps),
) -> Dict[str, Any]:
    raw = _decode_b64(body.base64_pdf, "base64PDF")
    return await _convert(deps, owner, SourceKind.PDF, body.file_name or "document.pdf", body.slides, raw)


@router.post("/convert-word")
async def convert_word(
    body: WordConvertBody,
    owner: Owner = Depends(get_owner),
    deps: PipelineDeps = Depends(get_pipeline_deps),
) -> Dict[str, Any]:
    raw = _decode_b64(body.base64_word, "base64Word")
    return await _convert(deps, owner, SourceKind.WORD, body.file_name or "document.docx", body.slides, raw)


@router.post("/convert-excel")
async def convert_excel(
    body: ExcelConvertBody,
    owner: Owner = Depends(get_owner),
    deps: PipelineDeps = Depends(get_pipeline_deps),
) -> Dict[str, Any]:
    raw = _decode_b64(body.base64_excel, "base64Excel")
    return await _convert(deps, owner, SourceKind.EXCEL, body.file_name or "workbook.xlsx", body.slides, raw)


@router.post("/convert-text")
async def convert_text(
    body: TextConvertBody,
    owner: Owner = Depends(get_owner),
    deps: PipelineDeps = Depends(get_pipeline_deps),
) -> Dict[str, Any]:
    return await _convert(deps, owner, SourceKind.TEXT, body.file_name or "text.txt", body.slides, body.text)


@router.post("/ai-generator")
async def ai_generator(
    body: TopicBody,
    owner: Owner = Depends(get_owner),
    deps: PipelineDeps = Depends(get_pipeline_deps),
) -> Dict[str, Any]:
    topic = body.topic.strip()
    if not topic:
        raise InvalidRequest("topic is required", field="topic")
    return await _convert(deps, owner, SourceKind.AI_TOPIC, topic, body.slides, topic)


@router.post("/download")
async def download(body: DownloadBody, owner: Owner = Depends(get_owner)) -> Response:
    """Re-encode (possibly edited) slides and stream the .pptx back."""
    if not body.slides:
        raise InvalidRequest("slides must not be empty", field="slides")
    data = await build_artifact(body.slides)
    filename = artifact_filename(body.file_name or "")
    return Response(
        content=data,
        media_type=PPTX_CONTENT_TYPE,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
