"""
Document translation pipeline

Runs extract -> translate -> compose for one uploaded file and owns the
cleanup of every temporary file the run creates. On any failure the run's
ArtifactScope is closed before the error propagates. On success the open
scope travels with the ScopedFileResponse, which closes it once the body has
been sent or the transfer was abandoned.
"""
import logging
import threading
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Dict, Optional

from starlette.responses import FileResponse
from starlette.types import Receive, Scope, Send

from config import settings
from models.document import (
    DocumentFormat,
    ExtractionResult,
    GeneratedDocument,
    PipelineRun,
    PipelineState,
    UploadedFile,
)
from services.artifact_store import ArtifactScope, ArtifactStore, safe_suffix
from services.document_composer import DocumentComposer
from services.document_extractor import DocumentExtractor
from services.translator_client import TranslatorInterface
from utils.exceptions import (
    CompositionError,
    DocumentServiceException,
    ExtractionFailure,
    MissingInputError,
    PipelineError,
    RunCancelled,
    TranslationServiceError,
    create_empty_file_error,
    create_file_too_large_error,
)
from utils.error_handlers import log_processing_step, log_performance_metric
from utils.logging import bind_run_id

logger = logging.getLogger(__name__)


class RunCancellation:
    """
    Links a pipeline run to the request awaiting it.

    The request cancels it when it stops waiting. A run that already handed
    over its open scope has that scope closed on cancel; a run still in
    progress sees the cancellation at its next stage boundary, or when it
    tries to hand over, and closes its own scope.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._cancelled = False
        self._scope: Optional[ArtifactScope] = None

    @property
    def cancelled(self) -> bool:
        with self._lock:
            return self._cancelled

    def cancel(self) -> None:
        with self._lock:
            self._cancelled = True
            scope, self._scope = self._scope, None
        if scope is not None:
            scope.close()

    def hand_over(self, artifact_scope: ArtifactScope) -> bool:
        """Park a finished run's scope; False when the request has already gone"""
        with self._lock:
            if self._cancelled:
                return False
            self._scope = artifact_scope
            return True

    def release(self) -> None:
        """The outcome became a response, which now owns the scope"""
        with self._lock:
            self._scope = None


@dataclass
class TranslationOutcome:
    """A successful run, ready to be streamed"""
    run: PipelineRun
    document: GeneratedDocument
    output_path: Path
    artifact_scope: ArtifactScope
    extraction: ExtractionResult


class TranslationPipeline:
    """
    Orchestrates a single document translation.

    The pipeline is parameterised by its extractor, translator and composer
    so that any of them can be replaced.
    """

    def __init__(
        self,
        artifact_store: ArtifactStore,
        extractor: DocumentExtractor,
        translator: TranslatorInterface,
        composer: DocumentComposer,
        max_file_size_bytes: Optional[int] = None
    ):
        self.artifact_store = artifact_store
        self.extractor = extractor
        self.translator = translator
        self.composer = composer
        self.max_file_size_bytes = max_file_size_bytes or settings.max_file_size_bytes

        self._stats_lock = threading.Lock()
        self._stats = {"started": 0, "succeeded": 0, "failed": 0, "cleaned": 0}

        logger.info("TranslationPipeline initialized")

    def run(
        self,
        content: Optional[bytes],
        filename: Optional[str],
        mime_type: Optional[str],
        target_language: Optional[str],
        cancellation: Optional[RunCancellation] = None
    ) -> TranslationOutcome:
        """
        Translate an uploaded document into a DOCX file.

        Args:
            content: Raw bytes of the upload (None when no file was sent)
            filename: Client-supplied filename
            mime_type: Declared MIME type of the upload
            target_language: Target language code
            cancellation: Set by the awaiting request when it goes away

        Returns:
            TranslationOutcome whose artifact_scope is still open; the caller
            must close it (ScopedFileResponse does)

        Raises:
            ClientInputError: Missing input or unsupported type, before any file is written
            FileHandlingError: Empty or oversized upload, or the temp write failed
            ExtractionFailure, TranslationServiceError, CompositionError: Stage failures
            RunCancelled: The awaiting request went away; the scope is already closed
        """
        run = PipelineRun(target_language=(target_language or "").strip(), filename=filename)
        with bind_run_id(run.id):
            return self._execute(run, content, filename, mime_type, cancellation)

    def _execute(
        self,
        run: PipelineRun,
        content: Optional[bytes],
        filename: Optional[str],
        mime_type: Optional[str],
        cancellation: Optional[RunCancellation]
    ) -> TranslationOutcome:
        self._count("started")
        log_processing_step("pipeline_received", {"run_id": run.id, "filename": filename, "mime_type": mime_type})

        try:
            document_format = self._validate_request(content, filename, mime_type, run.target_language)
        except DocumentServiceException as e:
            self._fail(run, e)
            raise

        artifact_scope = self.artifact_store.open_scope(run.id)
        try:
            upload_path = artifact_scope.write(content, "upload_", safe_suffix(filename))
            upload = UploadedFile(
                path=upload_path,
                original_filename=filename,
                mime_type=mime_type,
                document_format=document_format,
                size=len(content)
            )

            self._transition(run, PipelineState.EXTRACTING, cancellation)
            extraction = self.extractor.extract(upload)
            run.source_language = extraction.language

            self._transition(run, PipelineState.TRANSLATING, cancellation)
            translation = self.translator.translate(extraction.text, run.target_language)

            self._transition(run, PipelineState.COMPOSING, cancellation)
            document = self.composer.compose(translation.translated_text, filename)
            output_path = artifact_scope.write(document.content, "translated_", ".docx")

            self._transition(run, PipelineState.RESPONDING, cancellation)
            if cancellation is not None and not cancellation.hand_over(artifact_scope):
                raise RunCancelled(run.id)
        except BaseException as e:
            self._fail(run, e)
            artifact_scope.close()
            if isinstance(e, Exception) and not isinstance(e, DocumentServiceException):
                raise self._wrap_unexpected(run, e) from e
            if isinstance(e, PipelineError):
                e.details.setdefault("run_id", run.id)
            raise

        self._count("succeeded")
        return TranslationOutcome(
            run=run,
            document=document,
            output_path=output_path,
            artifact_scope=artifact_scope,
            extraction=extraction
        )

    def _validate_request(
        self,
        content: Optional[bytes],
        filename: Optional[str],
        mime_type: Optional[str],
        target_language: str
    ) -> DocumentFormat:
        if content is None or not filename:
            raise MissingInputError("file", "No file uploaded")
        if not target_language:
            raise MissingInputError("target", "No target language specified")

        document_format = DocumentFormat.from_mime_type(mime_type)

        if len(content) == 0:
            raise create_empty_file_error(filename)
        if len(content) > self.max_file_size_bytes:
            raise create_file_too_large_error(filename, len(content), self.max_file_size_bytes)

        return document_format

    def _transition(
        self,
        run: PipelineRun,
        new_state: PipelineState,
        cancellation: Optional[RunCancellation] = None
    ) -> None:
        if cancellation is not None and cancellation.cancelled:
            raise RunCancelled(run.id)
        now = datetime.now(timezone.utc)
        run.stage_timings_ms[run.state.value] = int((now - run.started_at).total_seconds() * 1000)
        logger.info(f"Pipeline run {run.id}: {run.state.value} -> {new_state.value}")
        run.state = new_state

    def _fail(self, run: PipelineRun, exc: BaseException) -> None:
        run.failed_stage = run.state
        run.error_message = str(exc) or type(exc).__name__
        run.state = PipelineState.FAILED
        run.finished_at = datetime.now(timezone.utc)
        self._count("failed")

        if isinstance(exc, RunCancelled):
            logger.warning(f"Pipeline run {run.id} abandoned by its request during {run.failed_stage.value}")
        elif isinstance(exc, DocumentServiceException) and run.failed_stage == PipelineState.RECEIVED:
            logger.info(f"Pipeline run {run.id} rejected: {exc}")
        else:
            logger.error(
                f"Pipeline run {run.id} failed during {run.failed_stage.value}: "
                f"{type(exc).__name__}: {exc}"
            )

    def _wrap_unexpected(self, run: PipelineRun, exc: Exception) -> DocumentServiceException:
        """Give an unexpected error from a stage the matching pipeline error type"""
        if run.failed_stage == PipelineState.EXTRACTING:
            wrapped = ExtractionFailure(type(exc).__name__, filename=run.filename, original_exception=exc)
        elif run.failed_stage == PipelineState.TRANSLATING:
            wrapped = TranslationServiceError(
                message="Translation provider request failed",
                provider=getattr(self.translator, "name", None),
                target_language=run.target_language,
                original_exception=exc
            )
        elif run.failed_stage == PipelineState.COMPOSING:
            wrapped = CompositionError("Failed to build the translated document", original_exception=exc)
        else:
            wrapped = DocumentServiceException("Something went wrong", original_exception=exc)
        wrapped.details["run_id"] = run.id
        return wrapped

    def mark_cleaned(self, run: PipelineRun) -> None:
        """Record that the response finished and the run's files are gone"""
        if run.is_terminal:
            return
        self._transition(run, PipelineState.CLEANED)
        run.finished_at = datetime.now(timezone.utc)
        self._count("cleaned")

        duration_ms = int((run.finished_at - run.started_at).total_seconds() * 1000)
        log_performance_metric(
            "document_translation",
            duration_ms,
            {"run_id": run.id, "target_language": run.target_language, "stages": run.stage_timings_ms}
        )

    def _count(self, key: str) -> None:
        with self._stats_lock:
            self._stats[key] += 1

    def get_stats(self) -> Dict[str, Any]:
        with self._stats_lock:
            stats = dict(self._stats)
        stats["translator"] = self.translator.get_info()
        stats["max_file_size_bytes"] = self.max_file_size_bytes
        stats["stalled_pdf_extractions"] = self.extractor.stalled_extractions
        return stats


class ScopedFileResponse(FileResponse):
    """
    FileResponse that releases an ArtifactScope once it has been sent.

    The scope is closed in a finally block around the whole ASGI call, so it
    is released after a completed transfer, a transport error or a client
    disconnect alike.
    """

    def __init__(
        self,
        path: Path,
        artifact_scope: ArtifactScope,
        on_close: Optional[Callable[[], None]] = None,
        **kwargs
    ):
        super().__init__(path, **kwargs)
        self.artifact_scope = artifact_scope
        self._on_close = on_close

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        try:
            await super().__call__(scope, receive, send)
        finally:
            self.artifact_scope.close()
            if self._on_close is not None:
                self._on_close()


def build_file_response(pipeline: TranslationPipeline, outcome: TranslationOutcome) -> ScopedFileResponse:
    """Wrap a successful outcome in a response that cleans up after itself"""
    return ScopedFileResponse(
        outcome.output_path,
        artifact_scope=outcome.artifact_scope,
        on_close=lambda: pipeline.mark_cleaned(outcome.run),
        media_type=outcome.document.media_type,
        filename=outcome.document.filename,
        headers={
            "X-Pipeline-Run-ID": outcome.run.id,
            "X-Source-Language": outcome.extraction.language,
        }
    )
