"""
Document-related data models for the translation pipeline
"""
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Dict, Optional
from pydantic import BaseModel, Field, field_validator, ConfigDict
import uuid

from utils.exceptions import UnsupportedFormat


PDF_MIME_TYPE = "application/pdf"
DOCX_MIME_TYPE = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"
MSWORD_MIME_TYPE = "application/msword"


class DocumentFormat(str, Enum):
    """Input formats the extractor understands"""
    PDF = "pdf"
    DOCX = "docx"

    @classmethod
    def supported_mime_types(cls) -> list[str]:
        return list(_MIME_TYPE_FORMATS.keys())

    @classmethod
    def from_mime_type(cls, mime_type: Optional[str]) -> "DocumentFormat":
        """
        Resolve a declared MIME type to a document format.

        Parameters such as "; charset=binary" are ignored. Legacy Word
        documents share the DOCX variant.

        Raises:
            UnsupportedFormat: for any other MIME type
        """
        normalized = (mime_type or "").split(";", 1)[0].strip().lower()
        document_format = _MIME_TYPE_FORMATS.get(normalized)
        if document_format is None:
            raise UnsupportedFormat(mime_type, cls.supported_mime_types())
        return document_format


_MIME_TYPE_FORMATS = {
    PDF_MIME_TYPE: DocumentFormat.PDF,
    DOCX_MIME_TYPE: DocumentFormat.DOCX,
    MSWORD_MIME_TYPE: DocumentFormat.DOCX,
}


class PipelineState(str, Enum):
    """States of a single translation pipeline run"""
    RECEIVED = "received"
    EXTRACTING = "extracting"
    TRANSLATING = "translating"
    COMPOSING = "composing"
    RESPONDING = "responding"
    CLEANED = "cleaned"
    FAILED = "failed"


@dataclass
class UploadedFile:
    """An upload written to temporary storage for one pipeline run"""
    path: Path
    original_filename: str
    mime_type: str
    document_format: DocumentFormat
    size: int

    @property
    def stem(self) -> str:
        return Path(self.original_filename).stem or "document"


class ExtractionResult(BaseModel):
    """Plain text extracted from an uploaded document"""
    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "text": "Hello world",
                "mime_type": "application/pdf",
                "language": "en",
                "page_count": 1
            }
        }
    )

    text: str = Field(..., min_length=1, description="Extracted plain text")
    mime_type: str = Field(..., description="Declared MIME type of the source file")
    language: str = Field(default="unknown", description="Detected source language code")
    page_count: Optional[int] = Field(None, ge=0, description="Number of pages, when the format has pages")

    @field_validator('text')
    @classmethod
    def validate_text(cls, v):
        """Extraction results must carry real content"""
        if not v.strip():
            raise ValueError('Extracted text cannot be empty or only whitespace')
        return v


@dataclass
class TranslationResult:
    """Result of translating one block of text"""
    source_text: str
    translated_text: str
    target_language: str
    provider: str
    chunk_count: int = 1


@dataclass
class GeneratedDocument:
    """A composed output document held in memory until it is written out"""
    content: bytes
    filename: str
    media_type: str
    paragraph_count: int

    @property
    def size(self) -> int:
        return len(self.content)


@dataclass
class PipelineRun:
    """Tracking record for one pipeline invocation"""
    target_language: str
    filename: Optional[str] = None
    id: str = field(default_factory=lambda: uuid.uuid4().hex)
    state: PipelineState = PipelineState.RECEIVED
    failed_stage: Optional[PipelineState] = None
    error_message: Optional[str] = None
    source_language: Optional[str] = None
    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    finished_at: Optional[datetime] = None
    stage_timings_ms: Dict[str, int] = field(default_factory=dict)

    @property
    def is_terminal(self) -> bool:
        return self.state in (PipelineState.CLEANED, PipelineState.FAILED)
