"""
Tests for the past paper service
"""
import errno
import pytest
from unittest.mock import Mock, patch

from models.document import PDF_MIME_TYPE
from models.past_paper import ByteSource, PaperFileReference, PastPaper, RedirectTarget, StorageStrategy
from services.artifact_resolver import ArtifactResolver
from services.paper_store import InMemoryPaperStore
from services.past_paper_service import PastPaperService, sanitize_filename
from utils.exceptions import (
    ArtifactNotFound, ErrorCode, FileHandlingError, MissingInputError,
    PaperNotFoundError, PaperStoreError, UnsupportedFormat, ValidationError
)


class TestPastPaperService:
    """Test cases for PastPaperService"""

    @pytest.fixture(autouse=True)
    def _service(self, temp_dir):
        self.storage = temp_dir / "papers"
        self.legacy_root = temp_dir / "pdfs"
        self.legacy_root.mkdir()
        self.store = InMemoryPaperStore()
        self.service = PastPaperService(
            paper_store=self.store,
            resolver=ArtifactResolver(legacy_root=str(self.legacy_root), legacy_url_prefix="/pdfs/"),
            storage_directory=str(self.storage),
            max_file_size_bytes=1024
        )

    def _upload(self, **overrides):
        kwargs = dict(
            content=b"%PDF-1.4 maths",
            filename="maths p1.pdf",
            mime_type=PDF_MIME_TYPE,
            subject="Mathematics",
            grade="12",
            year=2023,
            paper_type="p1"
        )
        kwargs.update(overrides)
        return self.service.upload(**kwargs)

    def test_upload_stores_file_and_record(self):
        paper = self._upload(title="Maths P1")

        stored = list(self.storage.iterdir())
        assert len(stored) == 1
        assert stored[0].name == f"{paper.id}_maths_p1.pdf"
        assert stored[0].read_bytes() == b"%PDF-1.4 maths"

        assert paper.file.strategy == StorageStrategy.LOCAL
        assert paper.file.file_path == str(stored[0])
        assert paper.file.filename == "maths p1.pdf"
        assert self.store.get_paper(paper.id) == paper

    def test_uploaded_paper_resolves_to_local_file(self):
        paper = self._upload()

        result = self.service.resolve_paper(paper.id)

        assert isinstance(result, ByteSource)
        assert result.filename == "maths p1.pdf"
        assert result.media_type == PDF_MIME_TYPE

    def test_store_failure_removes_file(self):
        with patch.object(self.store, "add_paper", side_effect=PaperStoreError("disk full", operation="save")):
            with pytest.raises(PaperStoreError):
                self._upload()

        assert list(self.storage.iterdir()) == []

    def test_partial_write_removed(self):
        real_open = open

        class FullDisk:
            def __init__(self, handle):
                self.handle = handle

            def __enter__(self):
                return self

            def __exit__(self, *exc_info):
                self.handle.close()
                return False

            def write(self, data):
                self.handle.write(data[:4])
                self.handle.flush()
                raise OSError(errno.ENOSPC, "No space left on device")

        with patch("services.past_paper_service.open", create=True,
                   side_effect=lambda path, mode: FullDisk(real_open(path, mode))):
            with pytest.raises(FileHandlingError) as exc_info:
                self._upload()

        assert "No space" not in exc_info.value.message
        assert list(self.storage.iterdir()) == []
        assert self.store.list_papers() == []

    def test_name_collision_keeps_existing_file(self):
        self.storage.mkdir(exist_ok=True)
        existing = self.storage / "fixed_maths_p1.pdf"
        existing.write_bytes(b"%PDF-1.4 another paper")

        with patch("models.past_paper.uuid.uuid4", return_value=Mock(hex="fixed")):
            with pytest.raises(FileHandlingError):
                self._upload()

        assert existing.read_bytes() == b"%PDF-1.4 another paper"

    def test_missing_file_rejected(self):
        with pytest.raises(MissingInputError):
            self._upload(content=None, filename=None)

    def test_unsupported_type_rejected(self):
        with pytest.raises(UnsupportedFormat):
            self._upload(filename="notes.txt", mime_type="text/plain")

        assert list(self.storage.iterdir()) == []

    def test_empty_file_rejected(self):
        with pytest.raises(FileHandlingError) as exc_info:
            self._upload(content=b"")

        assert exc_info.value.error_code == ErrorCode.EMPTY_FILE

    def test_oversized_file_rejected(self):
        with pytest.raises(FileHandlingError) as exc_info:
            self._upload(content=b"x" * 1025)

        assert exc_info.value.error_code == ErrorCode.FILE_TOO_LARGE
        assert list(self.storage.iterdir()) == []

    @pytest.mark.parametrize("overrides", [
        {"year": 1800},
        {"paper_type": "p9"},
        {"subject": "   "},
    ])
    def test_invalid_metadata_rejected(self, overrides):
        with pytest.raises(ValidationError):
            self._upload(**overrides)

        assert list(self.storage.iterdir()) == []

    def test_filter_options_are_distinct_and_ordered(self):
        self._upload(subject="mathematics", grade="12", year=2020)
        self._upload(subject="Mathematics", grade="11", year=2023, paper_type="p2")
        self._upload(subject="Accounting", grade="Adult", year=2021, filename="acc.pdf")

        options = self.service.filter_options()

        assert options["grades"] == ["11", "12", "Adult"]
        assert options["subjects"] == ["Accounting", "mathematics"]
        assert options["years"] == [2023, 2021, 2020]
        assert options["paper_types"] == ["p1", "p2"]

    def test_list_papers_sorted(self):
        self._upload(subject="Physical Sciences", year=2022)
        self._upload(subject="Mathematics", year=2021)
        self._upload(subject="Mathematics", year=2023)

        papers = self.service.list_papers()

        assert [(p.subject, p.year) for p in papers] == [
            ("Mathematics", 2023), ("Mathematics", 2021), ("Physical Sciences", 2022)
        ]
        assert len(self.service.list_papers(subject="mathematics")) == 2

    def test_get_unknown_paper(self):
        with pytest.raises(PaperNotFoundError):
            self.service.get_paper("missing")

        with pytest.raises(PaperNotFoundError):
            self.service.resolve_paper("missing")

    def test_record_download(self):
        paper = self._upload()

        assert self.service.record_download(paper.id).download_count == 1

    def test_cloud_paper_redirects(self):
        paper = self.store.add_paper(PastPaper(
            subject="Geography", grade="10", year=2020, paper_type="p2",
            file=PaperFileReference(strategy=StorageStrategy.CLOUD, cloud_url="https://cdn.example.org/geo.pdf")
        ))

        result = self.service.resolve_paper(paper.id)

        assert isinstance(result, RedirectTarget)
        assert result.url == "https://cdn.example.org/geo.pdf"

    def test_resolve_legacy_file(self):
        (self.legacy_root / "geo.pdf").write_bytes(b"%PDF")

        assert self.service.resolve_legacy_file("/pdfs/geo.pdf").filename == "geo.pdf"

        with pytest.raises(ArtifactNotFound):
            self.service.resolve_legacy_file("/pdfs/missing.pdf")


class TestSanitizeFilename:
    """Test stored filename sanitising"""

    @pytest.mark.parametrize("filename, expected", [
        ("maths p1.pdf", "maths_p1.pdf"),
        ("../../etc/passwd", "passwd"),
        ("C:\\exams\\paper.docx", "paper.docx"),
        ("...", "paper"),
        ("wiskunde_vraestel-1.pdf", "wiskunde_vraestel-1.pdf"),
    ])
    def test_sanitize_filename(self, filename, expected):
        assert sanitize_filename(filename) == expected
