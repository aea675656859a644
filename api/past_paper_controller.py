"""
Past paper controller for the Document Translation Service REST API
"""
import logging
from typing import Optional, Union

from fastapi import APIRouter, File, Form, Query, UploadFile, status
from fastapi.responses import FileResponse, RedirectResponse
from starlette.concurrency import run_in_threadpool

from models.api import (
    DownloadRecordedResponse,
    ErrorResponse,
    PastPaperFilterOptions,
    PastPaperListResponse,
    PastPaperQuery,
    PastPaperUploadResponse,
)
from models.past_paper import ByteSource, RedirectTarget
from utils.exceptions import MissingInputError

logger = logging.getLogger(__name__)

# Create router for past paper endpoints
router = APIRouter(prefix="/api/past-papers", tags=["past-papers"])

# Import dependencies
from api.dependencies import PastPaperServiceDep


def _file_response(source: ByteSource, preview: bool) -> FileResponse:
    return FileResponse(
        source.path,
        media_type=source.media_type,
        filename=source.filename,
        content_disposition_type="inline" if preview else "attachment"
    )


@router.get(
    "",
    response_model=PastPaperListResponse,
    summary="List past papers",
    description="List past papers, optionally filtered by grade, subject, year and paper number"
)
async def list_past_papers(
    past_paper_service: PastPaperServiceDep,
    grade: Optional[str] = Query(None, description="Grade level"),
    subject: Optional[str] = Query(None, description="Subject name (case-insensitive)"),
    year: Optional[int] = Query(None, ge=1900, description="Exam year"),
    paper_type: Optional[str] = Query(None, pattern="^(p1|p2|p3)$", description="Paper number"),
) -> PastPaperListResponse:
    query = PastPaperQuery(grade=grade, subject=subject, year=year, paper_type=paper_type)
    papers = await run_in_threadpool(
        past_paper_service.list_papers,
        query.subject,
        query.grade,
        query.year,
        query.paper_type
    )
    return PastPaperListResponse(papers=papers, total=len(papers))


@router.get(
    "/filters",
    response_model=PastPaperFilterOptions,
    summary="Past paper filter options",
    description="Distinct grades, subjects, years and paper numbers of the stored past papers"
)
async def past_paper_filters(past_paper_service: PastPaperServiceDep) -> PastPaperFilterOptions:
    options = await run_in_threadpool(past_paper_service.filter_options)
    return PastPaperFilterOptions(**options)


@router.post(
    "/upload",
    response_model=PastPaperUploadResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        status.HTTP_400_BAD_REQUEST: {"model": ErrorResponse, "description": "Missing file, invalid metadata or unsupported type"},
        status.HTTP_413_REQUEST_ENTITY_TOO_LARGE: {"model": ErrorResponse, "description": "Upload exceeds the size limit"},
    },
    summary="Upload a past paper",
    description="Store a past paper file on local disk and create its record"
)
async def upload_past_paper(
    past_paper_service: PastPaperServiceDep,
    file: Optional[UploadFile] = File(None, description="PDF or Word document"),
    grade: str = Form(..., description="Grade level"),
    subject: str = Form(..., description="Subject name"),
    year: int = Form(..., description="Exam year"),
    paper: str = Form(..., pattern="^(p1|p2|p3)$", description="Paper number"),
    language: str = Form("en", description="Language of the paper"),
    title: Optional[str] = Form(None, description="Display title"),
) -> PastPaperUploadResponse:
    """
    Upload a past paper.

    Returns:
        The stored record, with a local file reference
    """
    content = None
    filename = None
    mime_type = None
    if file is not None:
        content = await file.read(past_paper_service.max_file_size_bytes + 1)
        filename = file.filename
        mime_type = file.content_type

    stored = await run_in_threadpool(
        past_paper_service.upload,
        content,
        filename,
        mime_type,
        subject,
        grade,
        year,
        paper,
        language,
        title
    )

    return PastPaperUploadResponse(message="Past paper uploaded successfully", past_paper=stored)


@router.get(
    "/file",
    response_class=FileResponse,
    responses={
        status.HTTP_400_BAD_REQUEST: {"model": ErrorResponse, "description": "Missing filePath"},
        status.HTTP_404_NOT_FOUND: {"model": ErrorResponse, "description": "File not found"},
    },
    summary="Serve a past paper by legacy path",
    description="Serve a file referenced by its legacy relative path, inline when previewing"
)
async def get_legacy_file(
    past_paper_service: PastPaperServiceDep,
    file_path: Optional[str] = Query(None, alias="filePath", description="Legacy relative path, e.g. /pdfs/grade12/maths.pdf"),
    preview: bool = Query(False, description="Serve inline instead of as an attachment"),
) -> FileResponse:
    if not file_path or not file_path.strip():
        raise MissingInputError("filePath", "Missing filePath query parameter")

    source = past_paper_service.resolve_legacy_file(file_path)
    return _file_response(source, preview)


@router.get(
    "/{paper_id}/file",
    response_model=None,
    responses={
        status.HTTP_307_TEMPORARY_REDIRECT: {"description": "File is hosted in cloud storage"},
        status.HTTP_404_NOT_FOUND: {"model": ErrorResponse, "description": "Paper or file not found"},
    },
    summary="Serve a past paper's file",
    description="Stream a stored past paper, or redirect to its cloud URL"
)
async def get_paper_file(
    paper_id: str,
    past_paper_service: PastPaperServiceDep,
    preview: bool = Query(False, description="Serve inline instead of as an attachment"),
) -> Union[FileResponse, RedirectResponse]:
    resolved = await run_in_threadpool(past_paper_service.resolve_paper, paper_id)

    if isinstance(resolved, RedirectTarget):
        logger.info(f"Redirecting past paper {paper_id} to cloud storage")
        return RedirectResponse(resolved.url, status_code=status.HTTP_307_TEMPORARY_REDIRECT)

    logger.info(f"Serving past paper {paper_id} from {resolved.strategy.value} storage")
    return _file_response(resolved, preview)


@router.post(
    "/{paper_id}/download",
    response_model=DownloadRecordedResponse,
    responses={status.HTTP_404_NOT_FOUND: {"model": ErrorResponse, "description": "Past paper not found"}},
    summary="Record a past paper download"
)
async def record_download(paper_id: str, past_paper_service: PastPaperServiceDep) -> DownloadRecordedResponse:
    paper = await run_in_threadpool(past_paper_service.record_download, paper_id)
    return DownloadRecordedResponse(paper_id=paper.id, download_count=paper.download_count)
