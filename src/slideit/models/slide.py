from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class SourceKind(str, Enum):
    AI_TOPIC = "ai_topic"
    PDF = "pdf"
    WORD = "word"
    TEXT = "text"
    EXCEL = "excel"


class JobStatus(str, Enum):
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class JobStage(str, Enum):
    CREATED = "created"
    EXTRACTING = "extracting"
    GENERATING = "generating"
    CONTENT_GENERATED = "content_generated"
    ILLUSTRATING = "illustrating"
    ILLUSTRATED = "illustrated"
    ENCODING = "encoding"
    UPLOADING = "uploading"
    COMPLETED = "completed"
    FAILED = "failed"


class SlideRecord(BaseModel):
    """One output slide. Bullet order is display order."""
    model_config = ConfigDict(populate_by_name=True)

    title: str = ""
    bullets: List[str] = Field(default_factory=list)
    image_prompt: Optional[str] = Field(default=None, alias="imagePrompt")
    image_data: Optional[str] = Field(default=None, alias="imageData")

    @field_validator("title", mode="before")
    @classmethod
    def _title_str(cls, v: Any) -> str:
        return "" if v is None else str(v).strip()

    @field_validator("bullets", mode="before")
    @classmethod
    def _bullets_list(cls, v: Any) -> List[str]:
        if v is None:
            return []
        if isinstance(v, str):
            return [v]
        if isinstance(v, list):
            out = []
            for b in v:
                if isinstance(b, dict):
                    b = b.get("text", "")
                out.append(str(b))
            return out
        return [str(v)]

    def dump(self) -> dict:
        return self.model_dump(by_alias=True)


def _now() -> datetime:
    return datetime.now(timezone.utc)


class ConversionJob(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    owner_id: str = Field(alias="ownerId")
    source_file_name: str = Field(alias="sourceFileName")
    source_kind: SourceKind = Field(alias="sourceKind")
    status: JobStatus = JobStatus.PROCESSING
    stage: JobStage = JobStage.CREATED
    progress_percent: int = Field(default=0, ge=0, le=100, alias="progressPercent")
    slides: List[SlideRecord] = Field(default_factory=list)
    artifact_location: Optional[str] = Field(default=None, alias="artifactLocation")
    error: Optional[str] = None
    error_code: Optional[str] = Field(default=None, alias="errorCode")
    created_at: datetime = Field(default_factory=_now, alias="createdAt")
    updated_at: datetime = Field(default_factory=_now, alias="updatedAt")

    def dump(self) -> dict:
        return self.model_dump(by_alias=True, mode="json")
