from __future__ import annotations
from dataclasses import dataclass
from typing import Optional, Dict, Any


@dataclass(eq=False)
class ProblemDetails(Exception):
    type: str = "about:blank"
    title: str = "Conversion failed"
    detail: str = ""
    status: int = 500
    code: Optional[str] = None
    meta: Optional[Dict[str, Any]] = None

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "type": self.type,
            "title": self.title,
            "detail": self.detail,
            "status": self.status,
        }
        if self.code is not None:
            data["code"] = self.code
        if self.meta is not None:
            data["meta"] = self.meta
        return data

    @property
    def message(self) -> str:
        return f"{self.title}: {self.detail}" if self.detail else self.title

    def __str__(self) -> str:
        return f"{self.title} ({self.code or ''}): {self.detail}"


# Caller input errors (4xx)

def InvalidRequest(detail: str, **meta: Any) -> ProblemDetails:
    return ProblemDetails(title="Invalid request", detail=detail, status=400,
                          code="E_INVALID_REQUEST", meta=meta or None)

def UnsupportedSource(detail: str) -> ProblemDetails:
    return ProblemDetails(title="Unsupported source", detail=detail, status=400,
                          code="E_UNSUPPORTED_SOURCE")

def ExtractionEmpty(kind: str) -> ProblemDetails:
    return ProblemDetails(title="Could not extract text", detail=f"no usable text in {kind} input",
                          status=400, code="E_EXTRACTION_EMPTY", meta={"kind": kind})

def ExtractionFailed(kind: str, detail: str) -> ProblemDetails:
    return ProblemDetails(title="Could not read document", detail=detail, status=400,
                          code="E_EXTRACTION_FAILED", meta={"kind": kind})

def JobNotFound(job_id: str) -> ProblemDetails:
    return ProblemDetails(title="Job not found", detail=job_id, status=404, code="E_JOB_NOT_FOUND")

def JobStateError(detail: str) -> ProblemDetails:
    return ProblemDetails(title="Illegal job transition", detail=detail, status=409, code="E_JOB_STATE")


# Pipeline-internal errors (5xx)

def GenerationFailed(detail: str) -> ProblemDetails:
    return ProblemDetails(title="Content generation failed", detail=detail, status=502,
                          code="E_GENERATION_FAILED")

def GenerationMalformed(detail: str) -> ProblemDetails:
    return ProblemDetails(title="Generator returned invalid JSON", detail=detail, status=500,
                          code="E_GENERATION_MALFORMED")

def InvalidSlideShape(detail: str) -> ProblemDetails:
    return ProblemDetails(title="Generator returned an unrecognised slide shape", detail=detail,
                          status=500, code="E_INVALID_SLIDE_SHAPE")

def EncodingFailed(detail: str) -> ProblemDetails:
    return ProblemDetails(title="Presentation encoding failed", detail=detail, status=500,
                          code="E_ENCODING_FAILED")

def UploadFailed(detail: str) -> ProblemDetails:
    return ProblemDetails(title="Artifact upload failed", detail=detail, status=500,
                          code="E_UPLOAD_FAILED")

def InternalError(detail: str) -> ProblemDetails:
    return ProblemDetails(title="Internal error", detail=detail, status=500, code="E_INTERNAL")
