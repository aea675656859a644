"""
Text extraction service for uploaded PDF and Word documents
"""
import contextvars
import logging
import re
import threading
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

import docx
import PyPDF2
import pdfplumber
from langdetect import detect, DetectorFactory
from langdetect.lang_detect_exception import LangDetectException

from config import settings
from models.document import DocumentFormat, ExtractionResult, UploadedFile
from utils.exceptions import ExtractionFailure
from utils.error_handlers import log_processing_step

# Set seed for consistent language detection results
DetectorFactory.seed = 0

logger = logging.getLogger(__name__)

_CONTROL_CHARS = re.compile(r'[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]')
_INLINE_WHITESPACE = re.compile(r'[ \t\u00a0]+')


class DocumentExtractor:
    """
    Service for extracting plain text from uploaded documents.

    Dispatch is by declared MIME type. Each PDF is parsed on its own daemon
    thread and the request waits at most pdf_timeout_seconds from the moment
    parsing starts; pdfplumber is tried first with PyPDF2 as a fallback. A
    parse that outlives its timeout keeps a stalled slot until it returns,
    and new PDFs are rejected while every slot is stalled. Word documents are
    read with python-docx.
    """

    def __init__(
        self,
        pdf_timeout_seconds: Optional[float] = None,
        max_stalled_extractions: Optional[int] = None
    ):
        """
        Initialize the extractor

        Args:
            pdf_timeout_seconds: Upper bound for a single PDF extraction
            max_stalled_extractions: Timed-out parses tolerated before new PDFs are rejected
        """
        self.pdf_timeout_seconds = (
            pdf_timeout_seconds if pdf_timeout_seconds is not None
            else settings.pdf_extraction_timeout_seconds
        )
        self.max_stalled_extractions = (
            max_stalled_extractions if max_stalled_extractions is not None
            else settings.pdf_max_stalled_extractions
        )
        self._lock = threading.Lock()
        self._stalled = 0

    @property
    def stalled_extractions(self) -> int:
        with self._lock:
            return self._stalled

    def extract(self, upload: UploadedFile) -> ExtractionResult:
        """
        Extract text from an uploaded file.

        Args:
            upload: The stored upload

        Returns:
            ExtractionResult with non-empty text

        Raises:
            UnsupportedFormat: If the declared MIME type is not PDF or Word
            ExtractionFailure: On parser error, timeout, or when no text is found
        """
        document_format = DocumentFormat.from_mime_type(upload.mime_type)
        log_processing_step("extract", {"filename": upload.original_filename, "format": document_format.value})

        page_count = None
        if document_format == DocumentFormat.PDF:
            text, page_count = self._extract_pdf_with_timeout(upload)
        else:
            text = self._extract_docx(upload)

        if not text.strip():
            raise ExtractionFailure("no text found", filename=upload.original_filename)

        language = self.detect_language(text)

        logger.info(
            f"Extracted {len(text)} characters from {upload.original_filename} "
            f"(format={document_format.value}, language={language})"
        )

        return ExtractionResult(
            text=text,
            mime_type=upload.mime_type,
            language=language,
            page_count=page_count
        )

    def _extract_pdf_with_timeout(self, upload: UploadedFile) -> Tuple[str, int]:
        with self._lock:
            if self._stalled >= self.max_stalled_extractions:
                logger.error(
                    f"Rejecting {upload.original_filename}: {self._stalled} PDF extractions are still stalled"
                )
                raise ExtractionFailure("PDF extraction capacity exhausted", filename=upload.original_filename)

        started = threading.Event()
        done = threading.Event()
        outcome: Dict[str, Any] = {"abandoned": False}

        def work():
            started.set()
            try:
                outcome["value"] = self.extract_pdf_text(upload.path)
            except Exception as e:
                outcome["error"] = e
            finally:
                with self._lock:
                    done.set()
                    if outcome["abandoned"]:
                        self._stalled -= 1
                        logger.info(f"Stalled PDF extraction for {upload.original_filename} finished")

        # The copied context carries the caller's run id into the worker's log records
        worker = threading.Thread(
            target=contextvars.copy_context().run,
            args=(work,),
            name=f"pdf-extract-{upload.path.stem}",
            daemon=True
        )
        worker.start()
        started.wait()

        if not done.wait(self.pdf_timeout_seconds):
            with self._lock:
                if not done.is_set():
                    # The thread cannot be interrupted; it holds a stalled slot until it returns
                    outcome["abandoned"] = True
                    self._stalled += 1
            if outcome["abandoned"]:
                logger.error(
                    f"PDF extraction for {upload.original_filename} exceeded "
                    f"{self.pdf_timeout_seconds}s"
                )
                raise ExtractionFailure("timeout", filename=upload.original_filename)

        if "value" in outcome:
            return outcome["value"]

        error = outcome.get("error")
        if isinstance(error, ExtractionFailure):
            if error.details.get("filename") is None:
                error.details["filename"] = upload.original_filename
            raise error
        logger.error(f"PDF extraction for {upload.original_filename} raised {type(error).__name__}: {error}")
        raise ExtractionFailure(
            "PDF parser error",
            filename=upload.original_filename,
            original_exception=error
        )

    def extract_pdf_text(self, file_path: Path) -> Tuple[str, int]:
        """
        Extract text content from a PDF file.

        Args:
            file_path: Path to the PDF file

        Returns:
            Tuple of (extracted_text, page_count); text may be empty for
            image-only PDFs

        Raises:
            ExtractionFailure: If every extraction method raised
        """
        last_error: Optional[Exception] = None
        best: Optional[Tuple[str, int]] = None

        # Try pdfplumber first (better for complex layouts)
        try:
            text, pages = self._extract_with_pdfplumber(file_path)
            if text.strip():
                logger.info(f"Successfully extracted text using pdfplumber from {Path(file_path).name}")
                return text, pages
            best = (text, pages)
        except Exception as e:
            last_error = e
            logger.warning(f"pdfplumber extraction failed for {Path(file_path).name}: {e}")

        # Fallback to PyPDF2
        try:
            text, pages = self._extract_with_pypdf2(file_path)
            if text.strip():
                logger.info(f"Successfully extracted text using PyPDF2 from {Path(file_path).name}")
                return text, pages
            best = best or (text, pages)
        except Exception as e:
            last_error = e
            logger.warning(f"PyPDF2 extraction failed for {Path(file_path).name}: {e}")

        if best is not None:
            return best

        raise ExtractionFailure("unreadable PDF", original_exception=last_error)

    def _extract_with_pdfplumber(self, file_path: Path) -> Tuple[str, int]:
        text_parts = []

        with pdfplumber.open(file_path) as pdf:
            page_count = len(pdf.pages)
            for page in pdf.pages:
                page_text = page.extract_text()
                if page_text:
                    cleaned_text = self._clean_text(page_text)
                    if cleaned_text:
                        text_parts.append(cleaned_text)

        return '\n\n'.join(text_parts), page_count

    def _extract_with_pypdf2(self, file_path: Path) -> Tuple[str, int]:
        text_parts = []

        with open(file_path, 'rb') as file:
            pdf_reader = PyPDF2.PdfReader(file)
            page_count = len(pdf_reader.pages)

            for page_num, page in enumerate(pdf_reader.pages, 1):
                try:
                    page_text = page.extract_text()
                except Exception as e:
                    logger.warning(f"Failed to extract text from page {page_num}: {e}")
                    continue
                if page_text:
                    cleaned_text = self._clean_text(page_text)
                    if cleaned_text:
                        text_parts.append(cleaned_text)

        return '\n\n'.join(text_parts), page_count

    def _extract_docx(self, upload: UploadedFile) -> str:
        """
        Extract paragraph and table text from a Word document.

        Raises:
            ExtractionFailure: Wrapping any python-docx error
        """
        try:
            document = docx.Document(str(upload.path))
        except Exception as e:
            logger.warning(f"python-docx could not open {upload.original_filename}: {type(e).__name__}: {e}")
            raise ExtractionFailure(
                "unreadable Word document",
                filename=upload.original_filename,
                original_exception=e
            )

        lines = [paragraph.text for paragraph in document.paragraphs]
        for table in document.tables:
            for row in table.rows:
                for cell in row.cells:
                    lines.append(cell.text)

        return self._clean_text('\n'.join(lines))

    def _clean_text(self, text: str) -> str:
        """
        Clean extracted text while keeping its line structure.

        Control characters are dropped, runs of spaces and tabs collapse to a
        single space, and every line is trimmed.
        """
        if not text:
            return ""

        text = _CONTROL_CHARS.sub('', text)
        lines = [_INLINE_WHITESPACE.sub(' ', line).strip() for line in text.splitlines()]

        return '\n'.join(lines).strip()

    def detect_language(self, text: str) -> str:
        """
        Detect the language of the given text.

        Returns:
            ISO-639-1 style code, or 'unknown' when the text is too short or
            detection fails
        """
        if not text or len(text.strip()) < 10:
            return 'unknown'

        try:
            # Use a sample of text for detection (first 1000 chars for efficiency)
            return detect(text[:1000].strip())
        except LangDetectException as e:
            logger.warning(f"Language detection failed: {e}")
            return 'unknown'

    def shutdown(self) -> None:
        stalled = self.stalled_extractions
        if stalled:
            logger.warning(f"Shutting down with {stalled} stalled PDF extraction(s)")
