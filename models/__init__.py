"""
Data models for the Document Translation Service
"""

from .document import (
    DocumentFormat,
    PipelineState,
    UploadedFile,
    ExtractionResult,
    TranslationResult,
    GeneratedDocument,
    PipelineRun,
)
from .past_paper import (
    StorageStrategy,
    PaperType,
    PaperFileReference,
    PastPaper,
    ByteSource,
    RedirectTarget,
)
from .api import (
    TextTranslationRequest,
    TextTranslationResponse,
    PastPaperUploadResponse,
    PastPaperListResponse,
    PastPaperFilterOptions,
    DownloadRecordedResponse,
    PastPaperQuery,
    ErrorResponse
)

__all__ = [
    # Pipeline models
    "DocumentFormat",
    "PipelineState",
    "UploadedFile",
    "ExtractionResult",
    "TranslationResult",
    "GeneratedDocument",
    "PipelineRun",

    # Past paper models
    "StorageStrategy",
    "PaperType",
    "PaperFileReference",
    "PastPaper",
    "ByteSource",
    "RedirectTarget",

    # API models
    "TextTranslationRequest",
    "TextTranslationResponse",
    "PastPaperUploadResponse",
    "PastPaperListResponse",
    "PastPaperFilterOptions",
    "DownloadRecordedResponse",
    "PastPaperQuery",
    "ErrorResponse"
]
