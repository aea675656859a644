"""
Past paper service: upload, listing, download counting and file resolution
"""
import logging
import re
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from pydantic import ValidationError as PydanticValidationError

from config import settings
from models.document import DocumentFormat
from models.past_paper import (
    ByteSource,
    PaperFileReference,
    PastPaper,
    ResolvedArtifact,
    StorageStrategy,
)
from services.artifact_resolver import ArtifactResolver
from services.paper_store import PaperStoreInterface
from utils.exceptions import (
    FileHandlingError,
    MissingInputError,
    PaperNotFoundError,
    ValidationError,
    create_empty_file_error,
    create_file_too_large_error,
)

logger = logging.getLogger(__name__)

_UNSAFE_FILENAME_CHARS = re.compile(r"[^A-Za-z0-9._-]+")


def sanitize_filename(filename: str) -> str:
    """Reduce a client filename to a safe basename"""
    name = Path(filename.replace("\\", "/")).name
    name = _UNSAFE_FILENAME_CHARS.sub("_", name).strip("._")
    return name[:120] or "paper"


def _grade_sort_key(grade: str) -> Tuple[int, int, str]:
    """Numeric grades in numeric order, then any others alphabetically"""
    if grade.isdecimal():
        return (0, int(grade), grade)
    return (1, 0, grade.lower())


class PastPaperService:
    """Service coordinating past paper records and their files"""

    def __init__(
        self,
        paper_store: PaperStoreInterface,
        resolver: ArtifactResolver,
        storage_directory: Optional[str] = None,
        max_file_size_bytes: Optional[int] = None
    ):
        self.paper_store = paper_store
        self.resolver = resolver
        self.storage_directory = Path(storage_directory or settings.papers_storage_directory)
        self.storage_directory.mkdir(parents=True, exist_ok=True)
        self.max_file_size_bytes = max_file_size_bytes or settings.max_file_size_bytes

        logger.info(f"PastPaperService initialized with storage directory: {self.storage_directory}")

    def upload(
        self,
        content: Optional[bytes],
        filename: Optional[str],
        mime_type: Optional[str],
        subject: str,
        grade: str,
        year: int,
        paper_type: str,
        language: str = "en",
        title: Optional[str] = None
    ) -> PastPaper:
        """
        Store an uploaded past paper file and create its record.

        The file is written under the papers storage directory with a unique
        name. If the record cannot be stored the file is removed again.

        Raises:
            ClientInputError: Missing file or unsupported type
            FileHandlingError: Empty, oversized or unwritable file
            ValidationError: Invalid paper metadata
            PaperStoreError: The record could not be persisted
        """
        if content is None or not filename:
            raise MissingInputError("file", "No file uploaded")

        DocumentFormat.from_mime_type(mime_type)

        if len(content) == 0:
            raise create_empty_file_error(filename)
        if len(content) > self.max_file_size_bytes:
            raise create_file_too_large_error(filename, len(content), self.max_file_size_bytes)

        try:
            paper = PastPaper(
                subject=subject,
                grade=grade,
                year=year,
                paper_type=paper_type,
                language=language,
                title=title,
                file=PaperFileReference(strategy=StorageStrategy.LOCAL, filename=filename, mime_type=mime_type)
            )
        except PydanticValidationError as e:
            first = e.errors()[0]
            field_name = ".".join(str(part) for part in first.get("loc", ()))
            raise ValidationError(
                message=f"Invalid past paper metadata: {first.get('msg')}",
                field_name=field_name or None,
                original_exception=e
            )

        stored_path = self.storage_directory / f"{paper.id}_{sanitize_filename(filename)}"
        paper.file.file_path = str(stored_path)

        try:
            with open(stored_path, "xb") as f:
                f.write(content)
        except OSError as e:
            # A name collision means the file belongs to another record
            if not isinstance(e, FileExistsError):
                stored_path.unlink(missing_ok=True)
            logger.error(f"Failed to store file for past paper {paper.id}: {type(e).__name__}: {e}")
            raise FileHandlingError(
                message="Failed to store past paper file",
                filename=filename,
                file_size=len(content),
                original_exception=e
            )

        try:
            self.paper_store.add_paper(paper)
        except BaseException:
            stored_path.unlink(missing_ok=True)
            logger.error(f"Removed stored file for past paper {paper.id} after record creation failed")
            raise

        logger.info(f"Uploaded past paper {paper.id}: {paper.display_title()} ({len(content)} bytes)")
        return paper

    def list_papers(
        self,
        subject: Optional[str] = None,
        grade: Optional[str] = None,
        year: Optional[int] = None,
        paper_type: Optional[str] = None
    ) -> List[PastPaper]:
        papers = self.paper_store.list_papers(subject=subject, grade=grade, year=year, paper_type=paper_type)
        return sorted(papers, key=lambda p: (p.subject.lower(), p.grade, -p.year, p.paper_type.value))

    def filter_options(self) -> Dict[str, list]:
        """Distinct grades, subjects, years and paper numbers across all stored papers"""
        papers = self.paper_store.list_papers()

        subjects: Dict[str, str] = {}
        for paper in papers:
            subjects.setdefault(paper.subject.lower(), paper.subject)

        return {
            "grades": sorted({p.grade for p in papers}, key=_grade_sort_key),
            "subjects": [subjects[key] for key in sorted(subjects)],
            "years": sorted({p.year for p in papers}, reverse=True),
            "paper_types": sorted({p.paper_type.value for p in papers}),
        }

    def get_paper(self, paper_id: str) -> PastPaper:
        paper = self.paper_store.get_paper(paper_id)
        if paper is None:
            raise PaperNotFoundError(paper_id)
        return paper

    def record_download(self, paper_id: str) -> PastPaper:
        paper = self.paper_store.record_download(paper_id)
        logger.info(f"Recorded download for past paper {paper_id} (total {paper.download_count})")
        return paper

    def resolve_paper(self, paper_id: str) -> ResolvedArtifact:
        """Resolve a stored paper's file to a byte source or redirect"""
        paper = self.get_paper(paper_id)
        return self.resolver.resolve(paper.file, paper_id=paper.id)

    def resolve_legacy_file(self, file_path: str) -> ByteSource:
        """Resolve a legacy relative file path to a byte source"""
        return self.resolver.resolve_legacy_path(file_path)
