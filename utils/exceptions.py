"""
Custom exception classes for the Document Translation Service

This module defines all custom exceptions used throughout the application,
providing structured error handling with proper error codes and messages.
"""
import time
from typing import Optional, Dict, Any, List
from enum import Enum


class ErrorCode(Enum):
    """Enumeration of error codes for consistent error handling"""

    # General errors
    INTERNAL_SERVER_ERROR = "INTERNAL_SERVER_ERROR"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    SERVICE_UNAVAILABLE = "SERVICE_UNAVAILABLE"

    # Client input errors
    MISSING_INPUT = "MISSING_INPUT"
    UNSUPPORTED_FORMAT = "UNSUPPORTED_FORMAT"
    FILE_TOO_LARGE = "FILE_TOO_LARGE"
    EMPTY_FILE = "EMPTY_FILE"

    # Pipeline errors
    FILE_SAVE_FAILED = "FILE_SAVE_FAILED"
    EXTRACTION_FAILED = "EXTRACTION_FAILED"
    TRANSLATION_FAILED = "TRANSLATION_FAILED"
    COMPOSITION_FAILED = "COMPOSITION_FAILED"
    REQUEST_CANCELLED = "REQUEST_CANCELLED"

    # Past paper errors
    ARTIFACT_NOT_FOUND = "ARTIFACT_NOT_FOUND"
    PAPER_NOT_FOUND = "PAPER_NOT_FOUND"
    PAPER_STORE_FAILED = "PAPER_STORE_FAILED"


# Short titles used as the top-level "error" field of error responses
ERROR_TITLES = {
    ErrorCode.INTERNAL_SERVER_ERROR: "Internal Server Error",
    ErrorCode.VALIDATION_ERROR: "Invalid request",
    ErrorCode.SERVICE_UNAVAILABLE: "Service unavailable",
    ErrorCode.MISSING_INPUT: "Missing input",
    ErrorCode.UNSUPPORTED_FORMAT: "Unsupported file type",
    ErrorCode.FILE_TOO_LARGE: "File too large",
    ErrorCode.EMPTY_FILE: "Empty file",
    ErrorCode.FILE_SAVE_FAILED: "Translation failed",
    ErrorCode.EXTRACTION_FAILED: "Translation failed",
    ErrorCode.TRANSLATION_FAILED: "Translation failed",
    ErrorCode.COMPOSITION_FAILED: "Translation failed",
    ErrorCode.REQUEST_CANCELLED: "Request cancelled",
    ErrorCode.ARTIFACT_NOT_FOUND: "File not found",
    ErrorCode.PAPER_NOT_FOUND: "Past paper not found",
    ErrorCode.PAPER_STORE_FAILED: "Past paper storage failed",
}


class DocumentServiceException(Exception):
    """
    Base exception class for all Document Translation Service errors

    Provides structured error information with error codes, messages,
    and optional details for debugging and user feedback.
    """

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.INTERNAL_SERVER_ERROR,
        details: Optional[Dict[str, Any]] = None,
        original_exception: Optional[Exception] = None
    ):
        """
        Initialize the exception

        Args:
            message: Human-readable error message
            error_code: Structured error code for programmatic handling
            details: Optional dictionary with additional error details
            original_exception: Original exception that caused this error (if any)
        """
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        self.original_exception = original_exception
        self.timestamp = time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime())

    @property
    def title(self) -> str:
        return ERROR_TITLES.get(self.error_code, "Error")

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert exception to dictionary format for API responses

        Returns:
            Dictionary representation of the error
        """
        error_dict = {
            "error": self.title,
            "message": self.message,
            "code": self.error_code.value,
            "timestamp": self.timestamp
        }

        if self.details:
            error_dict["details"] = self.details

        return error_dict

    def __str__(self) -> str:
        """String representation of the exception"""
        return f"{self.error_code.value}: {self.message}"


class ClientInputError(DocumentServiceException):
    """Exception for requests rejected before any pipeline work starts"""

    def __init__(
        self,
        message: str,
        field_name: Optional[str] = None,
        error_code: ErrorCode = ErrorCode.MISSING_INPUT,
        original_exception: Optional[Exception] = None
    ):
        details = {}
        if field_name:
            details["field_name"] = field_name

        super().__init__(
            message=message,
            error_code=error_code,
            details=details,
            original_exception=original_exception
        )


class MissingInputError(ClientInputError):
    """A required form field or file was not supplied"""

    def __init__(self, field_name: str, message: Optional[str] = None):
        super().__init__(
            message=message or f"Missing required field: {field_name}",
            field_name=field_name,
            error_code=ErrorCode.MISSING_INPUT
        )


class UnsupportedFormat(ClientInputError):
    """Declared MIME type is not one the extractor can handle"""

    def __init__(self, mime_type: Optional[str], supported_types: Optional[List[str]] = None):
        supported = supported_types or []
        message = f"Unsupported file type '{mime_type or 'unknown'}'."
        if supported:
            message += f" Supported types: {', '.join(supported)}"

        super().__init__(
            message=message,
            field_name="file",
            error_code=ErrorCode.UNSUPPORTED_FORMAT
        )
        self.mime_type = mime_type
        self.details["mime_type"] = mime_type


class FileHandlingError(DocumentServiceException):
    """Exception for file handling operations"""

    def __init__(
        self,
        message: str,
        filename: Optional[str] = None,
        file_size: Optional[int] = None,
        error_code: ErrorCode = ErrorCode.FILE_SAVE_FAILED,
        original_exception: Optional[Exception] = None
    ):
        details = {}
        if filename:
            details["filename"] = filename
        if file_size is not None:
            details["file_size"] = file_size

        super().__init__(
            message=message,
            error_code=error_code,
            details=details,
            original_exception=original_exception
        )


class PipelineError(DocumentServiceException):
    """Exception raised by a stage of the translation pipeline"""

    stage = "pipeline"

    def __init__(
        self,
        message: str,
        filename: Optional[str] = None,
        run_id: Optional[str] = None,
        error_code: ErrorCode = ErrorCode.INTERNAL_SERVER_ERROR,
        original_exception: Optional[Exception] = None
    ):
        details: Dict[str, Any] = {"processing_stage": self.stage}
        if filename:
            details["filename"] = filename
        if run_id:
            details["run_id"] = run_id
        if original_exception is not None:
            details["cause"] = type(original_exception).__name__

        super().__init__(
            message=message,
            error_code=error_code,
            details=details,
            original_exception=original_exception
        )


class ExtractionFailure(PipelineError):
    """Text could not be extracted from the uploaded document"""

    stage = "extraction"

    def __init__(
        self,
        reason: str,
        filename: Optional[str] = None,
        original_exception: Optional[Exception] = None
    ):
        super().__init__(
            message=f"Failed to extract text from document: {reason}",
            filename=filename,
            error_code=ErrorCode.EXTRACTION_FAILED,
            original_exception=original_exception
        )
        self.reason = reason


class TranslationServiceError(PipelineError):
    """The external translation provider failed"""

    stage = "translation"

    def __init__(
        self,
        message: str,
        provider: Optional[str] = None,
        target_language: Optional[str] = None,
        original_exception: Optional[Exception] = None
    ):
        super().__init__(
            message=message,
            error_code=ErrorCode.TRANSLATION_FAILED,
            original_exception=original_exception
        )
        if provider:
            self.details["provider"] = provider
        if target_language:
            self.details["target_language"] = target_language


class CompositionError(PipelineError):
    """The output document could not be built"""

    stage = "composition"

    def __init__(self, message: str, original_exception: Optional[Exception] = None):
        super().__init__(
            message=message,
            error_code=ErrorCode.COMPOSITION_FAILED,
            original_exception=original_exception
        )


class RunCancelled(PipelineError):
    """The request awaiting a pipeline run went away before the run finished"""

    def __init__(self, run_id: Optional[str] = None):
        super().__init__(
            message="The request was cancelled before the translation finished",
            run_id=run_id,
            error_code=ErrorCode.REQUEST_CANCELLED
        )


class ArtifactNotFound(DocumentServiceException):
    """No storage strategy yielded a deliverable location"""

    def __init__(self, message: str = "The requested file could not be found", paper_id: Optional[str] = None):
        details = {}
        if paper_id:
            details["paper_id"] = paper_id

        super().__init__(
            message=message,
            error_code=ErrorCode.ARTIFACT_NOT_FOUND,
            details=details
        )


class PaperNotFoundError(DocumentServiceException):
    """Past paper id is unknown to the paper store"""

    def __init__(self, paper_id: str):
        super().__init__(
            message=f"Past paper '{paper_id}' does not exist",
            error_code=ErrorCode.PAPER_NOT_FOUND,
            details={"paper_id": paper_id}
        )


class PaperStoreError(DocumentServiceException):
    """Exception for paper store read/write operations"""

    def __init__(
        self,
        message: str,
        operation: Optional[str] = None,
        original_exception: Optional[Exception] = None
    ):
        details = {}
        if operation:
            details["operation"] = operation

        super().__init__(
            message=message,
            error_code=ErrorCode.PAPER_STORE_FAILED,
            details=details,
            original_exception=original_exception
        )


class ValidationError(DocumentServiceException):
    """Exception for input validation errors"""

    def __init__(
        self,
        message: str,
        field_name: Optional[str] = None,
        field_value: Optional[Any] = None,
        validation_rule: Optional[str] = None,
        original_exception: Optional[Exception] = None
    ):
        details = {}
        if field_name:
            details["field_name"] = field_name
        if field_value is not None:
            # Convert to string and truncate for safety
            value_str = str(field_value)
            details["field_value"] = value_str[:100] + "..." if len(value_str) > 100 else value_str
        if validation_rule:
            details["validation_rule"] = validation_rule

        super().__init__(
            message=message,
            error_code=ErrorCode.VALIDATION_ERROR,
            details=details,
            original_exception=original_exception
        )


# Convenience functions for creating common exceptions

def create_file_too_large_error(filename: str, file_size: int, max_size: int) -> FileHandlingError:
    """Create a file too large error"""
    return FileHandlingError(
        message=f"File '{filename}' exceeds maximum size limit of {max_size} bytes",
        filename=filename,
        file_size=file_size,
        error_code=ErrorCode.FILE_TOO_LARGE
    )


def create_empty_file_error(filename: str) -> FileHandlingError:
    """Create an empty upload error"""
    return FileHandlingError(
        message=f"File '{filename}' is empty",
        filename=filename,
        file_size=0,
        error_code=ErrorCode.EMPTY_FILE
    )
