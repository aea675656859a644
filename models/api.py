"""
API request and response models for the Document Translation Service
"""
from typing import Optional
from pydantic import BaseModel, Field, field_validator, ConfigDict

from models.past_paper import PastPaper


class TextTranslationRequest(BaseModel):
    """Request model for plain text translation"""
    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "q": "Good morning, class",
                "target": "zu"
            }
        }
    )

    q: Optional[str] = Field(None, max_length=50000, description="Text to translate")
    target: Optional[str] = Field(None, max_length=10, description="Target language code")


class TranslatedText(BaseModel):
    """A single translated text item"""
    translatedText: str = Field(..., description="The translated text")


class TranslationData(BaseModel):
    translations: list[TranslatedText] = Field(default_factory=list)


class TextTranslationResponse(BaseModel):
    """Response model for plain text translation, shaped like Google's v2 API"""
    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "data": {
                    "translations": [
                        {"translatedText": "Sawubona, klasi"}
                    ]
                }
            }
        }
    )

    data: TranslationData


class PastPaperUploadResponse(BaseModel):
    """Response model for past paper upload"""
    message: str = Field(..., description="Success message")
    past_paper: PastPaper = Field(..., description="The stored past paper record")


class PastPaperListResponse(BaseModel):
    """Response model for past paper listing"""
    papers: list[PastPaper] = Field(default_factory=list)
    total: int = Field(..., ge=0)


class PastPaperFilterOptions(BaseModel):
    """Distinct values available to the past paper list filters"""
    grades: list[str] = Field(default_factory=list)
    subjects: list[str] = Field(default_factory=list)
    years: list[int] = Field(default_factory=list, description="Newest first")
    paper_types: list[str] = Field(default_factory=list)


class DownloadRecordedResponse(BaseModel):
    """Response model for a recorded download"""
    paper_id: str
    download_count: int = Field(..., ge=0)


class PastPaperQuery(BaseModel):
    """Filters accepted by the past paper listing endpoint"""
    grade: Optional[str] = None
    subject: Optional[str] = None
    year: Optional[int] = Field(None, ge=1900)
    paper_type: Optional[str] = Field(None, pattern="^(p1|p2|p3)$")

    @field_validator('grade', 'subject')
    @classmethod
    def blank_to_none(cls, v):
        if v is not None and not v.strip():
            return None
        return v.strip() if v else v


class ErrorResponse(BaseModel):
    """Standard error response model"""
    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "error": "Translation failed",
                "message": "Failed to extract text from document: timeout",
                "code": "EXTRACTION_FAILED",
                "details": {
                    "processing_stage": "extraction",
                    "cause": "TimeoutError"
                },
                "timestamp": "2024-01-15T10:30:00Z"
            }
        }
    )

    error: str = Field(..., description="Short error title")
    message: str = Field(..., description="Human-readable error message")
    code: Optional[str] = Field(None, description="Machine-readable error code")
    details: Optional[dict] = Field(None, description="Error details")
    timestamp: Optional[str] = Field(None, description="When the error occurred")
