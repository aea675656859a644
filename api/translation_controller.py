"""
Document and text translation controller for the Document Translation Service REST API
"""
import logging
from typing import Optional

from fastapi import APIRouter, File, Form, UploadFile, status
from starlette.concurrency import run_in_threadpool

from models.api import TextTranslationRequest, TextTranslationResponse, TranslatedText, TranslationData, ErrorResponse
from services.translation_pipeline import RunCancellation, ScopedFileResponse, build_file_response
from utils.exceptions import MissingInputError

logger = logging.getLogger(__name__)

# Create router for translation endpoints
router = APIRouter(tags=["translation"])

# Import dependencies
from api.dependencies import TranslationPipelineDep, TranslatorDep

_ERROR_RESPONSES = {
    status.HTTP_400_BAD_REQUEST: {"model": ErrorResponse, "description": "Missing input or unsupported file type"},
    status.HTTP_413_REQUEST_ENTITY_TOO_LARGE: {"model": ErrorResponse, "description": "Upload exceeds the size limit"},
    status.HTTP_500_INTERNAL_SERVER_ERROR: {"model": ErrorResponse, "description": "Extraction, translation or composition failed"},
}


@router.post(
    "/translate-file",
    response_class=ScopedFileResponse,
    responses=_ERROR_RESPONSES,
    summary="Translate a PDF or Word document",
    description="Extract the text of an uploaded PDF or Word document, translate it and return a DOCX file"
)
@router.post("/api/translate-file", response_class=ScopedFileResponse, include_in_schema=False)
async def translate_file(
    pipeline: TranslationPipelineDep,
    file: Optional[UploadFile] = File(None, description="PDF or Word document to translate"),
    target: Optional[str] = Form(None, max_length=10, description="Target language code"),
) -> ScopedFileResponse:
    """
    Translate an uploaded document.

    The uploaded file and the generated DOCX only live for the duration of
    the request: they are removed when the pipeline fails, and otherwise as
    soon as the response has been sent or abandoned.

    Returns:
        The translated document as an attachment named translated_<stem>.docx
    """
    content = None
    filename = None
    mime_type = None
    if file is not None:
        # Reading one byte past the limit is enough to reject oversized uploads
        content = await file.read(pipeline.max_file_size_bytes + 1)
        filename = file.filename
        mime_type = file.content_type

    cancellation = RunCancellation()
    try:
        outcome = await run_in_threadpool(pipeline.run, content, filename, mime_type, target, cancellation)
    except BaseException:
        # The worker thread keeps going after a cancelled await
        cancellation.cancel()
        raise
    cancellation.release()

    logger.info(
        f"Translated {filename} to {outcome.run.target_language} "
        f"(run {outcome.run.id}, {outcome.document.size} bytes)"
    )
    return build_file_response(pipeline, outcome)


@router.post(
    "/api/translate",
    response_model=TextTranslationResponse,
    responses={
        status.HTTP_400_BAD_REQUEST: {"model": ErrorResponse, "description": "Missing text or target language"},
        status.HTTP_500_INTERNAL_SERVER_ERROR: {"model": ErrorResponse, "description": "Translation provider failed"},
    },
    summary="Translate plain text",
    description="Translate a block of text into the target language"
)
async def translate_text(request: TextTranslationRequest, translator: TranslatorDep) -> TextTranslationResponse:
    """
    Translate plain text.

    Returns:
        The translation, shaped like the Google Translate v2 response
    """
    if not request.q or not request.q.strip():
        raise MissingInputError("q", "Missing text to translate")
    if not request.target or not request.target.strip():
        raise MissingInputError("target", "No target language specified")

    result = await run_in_threadpool(translator.translate, request.q, request.target)

    return TextTranslationResponse(
        data=TranslationData(translations=[TranslatedText(translatedText=result.translated_text)])
    )
