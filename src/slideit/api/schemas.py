from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from slideit.models.slide import SlideRecord


class _Body(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class PdfConvertBody(_Body):
    base64_pdf: str = Field(alias="base64PDF")
    slides: int
    file_name: Optional[str] = Field(default=None, alias="fileName")


class WordConvertBody(_Body):
    base64_word: str = Field(alias="base64Word")
    slides: int
    file_name: Optional[str] = Field(default=None, alias="fileName")


class ExcelConvertBody(_Body):
    base64_excel: str = Field(alias="base64Excel")
    slides: int
    file_name: Optional[str] = Field(default=None, alias="fileName")


class TextConvertBody(_Body):
    text: str
    slides: int
    file_name: Optional[str] = Field(default=None, alias="fileName")


class TopicBody(_Body):
    topic: str
    slides: int


class DownloadBody(_Body):
    slides: List[SlideRecord]
    file_name: Optional[str] = Field(default=None, alias="fileName")
