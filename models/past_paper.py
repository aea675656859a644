"""
Past paper data models and file-reference metadata
"""
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Optional, Union
from pydantic import BaseModel, Field, field_validator, ConfigDict
import uuid


class StorageStrategy(str, Enum):
    """Where a past paper's binary was stored when it was recorded"""
    LOCAL = "local"
    CLOUD = "cloud"
    LEGACY_URL = "legacy-url"


class PaperType(str, Enum):
    """Exam paper number"""
    P1 = "p1"
    P2 = "p2"
    P3 = "p3"


class PaperFileReference(BaseModel):
    """Persisted location metadata for a past paper's file"""
    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "strategy": "local",
                "file_path": "data/papers/3f2b..._maths_p1.pdf",
                "cloud_url": None,
                "legacy_url": None,
                "filename": "maths_p1.pdf",
                "mime_type": "application/pdf"
            }
        }
    )

    strategy: StorageStrategy = Field(..., description="Storage strategy recorded at upload time")
    file_path: Optional[str] = Field(None, description="Filesystem path for locally stored files")
    cloud_url: Optional[str] = Field(None, description="Absolute URL for cloud-hosted files")
    legacy_url: Optional[str] = Field(None, description="Pre-migration relative URL, e.g. /pdfs/grade12/maths.pdf")
    filename: Optional[str] = Field(None, max_length=255, description="Filename to present to clients")
    mime_type: Optional[str] = Field(None, description="MIME type of the stored file")

    @field_validator('file_path', 'cloud_url', 'legacy_url', 'filename', 'mime_type')
    @classmethod
    def blank_to_none(cls, v):
        """Treat empty strings from older records as absent"""
        if v is not None and not v.strip():
            return None
        return v

    @field_validator('cloud_url')
    @classmethod
    def validate_cloud_url(cls, v):
        if v is not None and not v.lower().startswith(("http://", "https://")):
            raise ValueError('cloud_url must be an absolute http(s) URL')
        return v


class PastPaper(BaseModel):
    """A past exam paper and its file reference"""
    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "id": "5d9c1f0e2b6a4e8f9a3c7d1b2e4f6a8c",
                "subject": "mathematics",
                "grade": "12",
                "year": 2023,
                "paper_type": "p1",
                "language": "en",
                "title": "Mathematics P1 2023",
                "file": {"strategy": "cloud", "cloud_url": "https://cdn.example.org/maths_p1.pdf"},
                "download_count": 14
            }
        }
    )

    id: str = Field(default_factory=lambda: uuid.uuid4().hex, description="Unique paper identifier")
    subject: str = Field(..., min_length=1, max_length=100, description="Subject name or slug")
    grade: str = Field(..., min_length=1, max_length=20, description="Grade level")
    year: int = Field(..., description="Exam year")
    paper_type: PaperType = Field(..., description="Paper number")
    language: str = Field(default="en", min_length=2, max_length=10, description="Language of the paper")
    title: Optional[str] = Field(None, max_length=255, description="Display title")
    file: PaperFileReference = Field(..., description="Where the paper's file lives")
    download_count: int = Field(default=0, ge=0, description="Number of recorded downloads")
    last_downloaded_at: Optional[datetime] = Field(None, description="When the last download was recorded")
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc), description="When the record was created")

    @field_validator('year')
    @classmethod
    def validate_year(cls, v):
        """Years run from 1900 to next year"""
        max_year = datetime.now(timezone.utc).year + 1
        if v < 1900 or v > max_year:
            raise ValueError(f'Year must be between 1900 and {max_year}')
        return v

    @field_validator('subject', 'grade')
    @classmethod
    def strip_text(cls, v):
        stripped = v.strip()
        if not stripped:
            raise ValueError('Value cannot be empty or only whitespace')
        return stripped

    def display_title(self) -> str:
        if self.title:
            return self.title
        return f"{self.subject.title()} {self.paper_type.value.upper()} {self.year}"


@dataclass(frozen=True)
class ByteSource:
    """A file on disk that can be streamed to the client"""
    path: Path
    filename: str
    media_type: str
    strategy: StorageStrategy


@dataclass(frozen=True)
class RedirectTarget:
    """A URL the client should be redirected to instead of proxying bytes"""
    url: str
    strategy: StorageStrategy = StorageStrategy.CLOUD


ResolvedArtifact = Union[ByteSource, RedirectTarget]
