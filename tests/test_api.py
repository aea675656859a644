"""
API tests for the translation and past paper endpoints
"""
import pytest
from fastapi.testclient import TestClient

import main
from main import app
from api.dependencies import get_past_paper_service, get_translation_pipeline, get_translator
from models.document import PDF_MIME_TYPE, DOCX_MIME_TYPE
from models.past_paper import PaperFileReference, PastPaper, StorageStrategy
from services.artifact_resolver import ArtifactResolver
from services.artifact_store import ArtifactStore
from services.document_composer import DocumentComposer
from services.document_extractor import DocumentExtractor
from services.paper_store import InMemoryPaperStore
from services.past_paper_service import PastPaperService
from services.translation_pipeline import TranslationPipeline
from utils.exceptions import TranslationServiceError
from utils.health_check import HealthChecker
from tests.helpers import FakeTranslator, build_pdf, build_docx, read_docx_paragraphs


@pytest.fixture
def api(temp_dir):
    """Test client wired to services rooted in a temporary directory"""
    artifacts_dir = temp_dir / "uploads"
    legacy_root = temp_dir / "pdfs"
    (legacy_root / "grade12").mkdir(parents=True)
    (legacy_root / "grade12" / "maths.pdf").write_bytes(b"%PDF-1.4 legacy maths")

    extractor = DocumentExtractor(pdf_timeout_seconds=10)
    translator = FakeTranslator({"Hello world": "Bonjour le monde"})
    artifact_store = ArtifactStore(str(artifacts_dir))
    pipeline = TranslationPipeline(
        artifact_store=artifact_store,
        extractor=extractor,
        translator=translator,
        composer=DocumentComposer(),
        max_file_size_bytes=64 * 1024
    )
    paper_store = InMemoryPaperStore()
    resolver = ArtifactResolver(legacy_root=str(legacy_root), legacy_url_prefix="/pdfs/")
    past_paper_service = PastPaperService(
        paper_store=paper_store,
        resolver=resolver,
        storage_directory=str(temp_dir / "papers"),
        max_file_size_bytes=64 * 1024
    )

    app.dependency_overrides[get_translation_pipeline] = lambda: pipeline
    app.dependency_overrides[get_translator] = lambda: translator
    app.dependency_overrides[get_past_paper_service] = lambda: past_paper_service

    class Context:
        pass

    context = Context()
    context.client = TestClient(app)
    context.artifacts_dir = artifacts_dir
    context.pipeline = pipeline
    context.translator = translator
    context.paper_store = paper_store
    context.papers_dir = temp_dir / "papers"
    context.artifact_store = artifact_store
    context.resolver = resolver

    yield context

    app.dependency_overrides.clear()
    main.app_state.clear()
    extractor.shutdown()


class TestTranslateFile:
    """Tests for POST /translate-file"""

    def test_translates_pdf_to_docx(self, api):
        response = api.client.post(
            "/translate-file",
            files={"file": ("hello.pdf", build_pdf(["Hello world"]), PDF_MIME_TYPE)},
            data={"target": "fr"}
        )

        assert response.status_code == 200
        assert response.headers["content-type"] == DOCX_MIME_TYPE
        assert 'filename="translated_hello.docx"' in response.headers["content-disposition"]
        assert response.headers["x-pipeline-run-id"]
        assert read_docx_paragraphs(response.content) == ["Bonjour le monde"]
        assert list(api.artifacts_dir.iterdir()) == []

    def test_legacy_route_alias(self, api):
        response = api.client.post(
            "/api/translate-file",
            files={"file": ("greeting.docx", build_docx(["Good morning"]), DOCX_MIME_TYPE)},
            data={"target": "zu"}
        )

        assert response.status_code == 200
        assert read_docx_paragraphs(response.content) == ["[zu] Good morning"]
        assert list(api.artifacts_dir.iterdir()) == []

    def test_unsupported_type_rejected(self, api):
        response = api.client.post(
            "/translate-file",
            files={"file": ("notes.txt", b"plain text", "text/plain")},
            data={"target": "fr"}
        )

        assert response.status_code == 400
        data = response.json()
        assert data["error"] == "Unsupported file type"
        assert data["code"] == "UNSUPPORTED_FORMAT"
        assert list(api.artifacts_dir.iterdir()) == []
        assert api.translator.calls == []

    def test_missing_target_rejected(self, api):
        response = api.client.post(
            "/translate-file",
            files={"file": ("hello.pdf", build_pdf(["Hello world"]), PDF_MIME_TYPE)}
        )

        assert response.status_code == 400
        assert response.json()["code"] == "MISSING_INPUT"
        assert list(api.artifacts_dir.iterdir()) == []

    def test_missing_file_rejected(self, api):
        response = api.client.post("/translate-file", data={"target": "fr"})

        assert response.status_code == 400
        assert response.json()["message"] == "No file uploaded"

    def test_empty_file_rejected(self, api):
        response = api.client.post(
            "/translate-file",
            files={"file": ("empty.pdf", b"", PDF_MIME_TYPE)},
            data={"target": "fr"}
        )

        assert response.status_code == 400
        assert response.json()["code"] == "EMPTY_FILE"

    def test_oversized_file_rejected(self, api):
        response = api.client.post(
            "/translate-file",
            files={"file": ("large.pdf", b"x" * (64 * 1024 + 10), PDF_MIME_TYPE)},
            data={"target": "fr"}
        )

        assert response.status_code == 413
        assert response.json()["code"] == "FILE_TOO_LARGE"
        assert list(api.artifacts_dir.iterdir()) == []

    def test_extraction_failure(self, api):
        response = api.client.post(
            "/translate-file",
            files={"file": ("blank.pdf", build_pdf([]), PDF_MIME_TYPE)},
            data={"target": "fr"}
        )

        assert response.status_code == 500
        data = response.json()
        assert data["error"] == "Translation failed"
        assert data["code"] == "EXTRACTION_FAILED"
        assert data["details"]["run_id"]
        assert list(api.artifacts_dir.iterdir()) == []

    def test_unreadable_word_document_hides_internal_paths(self, api):
        response = api.client.post(
            "/translate-file",
            files={"file": ("notes.doc", b"not a zip", "application/msword")},
            data={"target": "fr"}
        )

        assert response.status_code == 500
        data = response.json()
        assert data["code"] == "EXTRACTION_FAILED"
        assert data["message"] == "Failed to extract text from document: unreadable Word document"
        assert str(api.artifacts_dir) not in response.text
        assert "upload_" not in response.text
        assert "PackageNotFoundError" not in data["message"]
        assert list(api.artifacts_dir.iterdir()) == []

    def test_translation_failure(self, api):
        api.pipeline.translator = FakeTranslator(error=TranslationServiceError("quota exceeded", provider="fake"))

        response = api.client.post(
            "/translate-file",
            files={"file": ("hello.pdf", build_pdf(["Hello world"]), PDF_MIME_TYPE)},
            data={"target": "fr"}
        )

        assert response.status_code == 500
        assert response.json()["code"] == "TRANSLATION_FAILED"
        assert list(api.artifacts_dir.iterdir()) == []


class TestTranslateText:
    """Tests for POST /api/translate"""

    def test_translate_text(self, api):
        response = api.client.post("/api/translate", json={"q": "Hello world", "target": "fr"})

        assert response.status_code == 200
        assert response.json() == {"data": {"translations": [{"translatedText": "Bonjour le monde"}]}}

    @pytest.mark.parametrize("payload, field", [
        ({"target": "fr"}, "q"),
        ({"q": "   ", "target": "fr"}, "q"),
        ({"q": "Hello"}, "target"),
    ])
    def test_missing_input(self, api, payload, field):
        response = api.client.post("/api/translate", json=payload)

        assert response.status_code == 400
        assert response.json()["details"]["field_name"] == field

    def test_provider_failure(self, api):
        api.translator.error = TranslationServiceError("provider down", provider="fake")

        response = api.client.post("/api/translate", json={"q": "Hello", "target": "fr"})

        assert response.status_code == 500
        assert response.json()["error"] == "Translation failed"


class TestPastPapers:
    """Tests for the /api/past-papers endpoints"""

    def _upload(self, api, **fields):
        data = {"grade": "12", "subject": "Mathematics", "year": "2023", "paper": "p1"}
        data.update(fields)
        return api.client.post(
            "/api/past-papers/upload",
            files={"file": ("maths.pdf", b"%PDF-1.4 maths paper", PDF_MIME_TYPE)},
            data=data
        )

    def test_upload_and_list(self, api):
        response = self._upload(api, title="Maths P1 2023")

        assert response.status_code == 201
        paper = response.json()["past_paper"]
        assert paper["file"]["strategy"] == "local"
        assert len(list(api.papers_dir.iterdir())) == 1

        listing = api.client.get("/api/past-papers", params={"subject": "mathematics"}).json()
        assert listing["total"] == 1
        assert listing["papers"][0]["title"] == "Maths P1 2023"

    def test_list_filters(self, api):
        self._upload(api)
        self._upload(api, paper="p2", year="2022")

        assert api.client.get("/api/past-papers", params={"paper_type": "p2"}).json()["total"] == 1
        assert api.client.get("/api/past-papers", params={"year": 2023}).json()["total"] == 1
        assert api.client.get("/api/past-papers", params={"grade": "10"}).json()["total"] == 0

    def test_filter_options(self, api):
        self._upload(api)
        self._upload(api, paper="p2", year="2022", grade="9")
        self._upload(api, subject="Physical Sciences", year="2021", grade="10")

        response = api.client.get("/api/past-papers/filters")

        assert response.status_code == 200
        assert response.json() == {
            "grades": ["9", "10", "12"],
            "subjects": ["Mathematics", "Physical Sciences"],
            "years": [2023, 2022, 2021],
            "paper_types": ["p1", "p2"],
        }

    def test_filter_options_empty(self, api):
        assert api.client.get("/api/past-papers/filters").json() == {
            "grades": [], "subjects": [], "years": [], "paper_types": []
        }

    def test_upload_unsupported_type(self, api):
        response = api.client.post(
            "/api/past-papers/upload",
            files={"file": ("paper.txt", b"text", "text/plain")},
            data={"grade": "12", "subject": "Mathematics", "year": "2023", "paper": "p1"}
        )

        assert response.status_code == 400
        assert list(api.papers_dir.iterdir()) == []

    def test_upload_invalid_year(self, api):
        response = self._upload(api, year="1850")

        assert response.status_code == 400
        assert response.json()["code"] == "VALIDATION_ERROR"

    def test_upload_invalid_paper_number(self, api):
        response = self._upload(api, paper="p7")

        assert response.status_code == 422
        assert "field_errors" in response.json()["details"]

    def test_stream_local_file(self, api):
        paper_id = self._upload(api).json()["past_paper"]["id"]

        response = api.client.get(f"/api/past-papers/{paper_id}/file")

        assert response.status_code == 200
        assert response.content == b"%PDF-1.4 maths paper"
        assert response.headers["content-disposition"].startswith("attachment")

    def test_preview_is_inline(self, api):
        paper_id = self._upload(api).json()["past_paper"]["id"]

        response = api.client.get(f"/api/past-papers/{paper_id}/file", params={"preview": "true"})

        assert response.headers["content-disposition"].startswith("inline")

    def test_cloud_file_redirects(self, api):
        paper = api.paper_store.add_paper(PastPaper(
            subject="Geography", grade="10", year=2020, paper_type="p2",
            file=PaperFileReference(strategy=StorageStrategy.CLOUD, cloud_url="https://cdn.example.org/geo.pdf")
        ))

        response = api.client.get(f"/api/past-papers/{paper.id}/file", follow_redirects=False)

        assert response.status_code == 307
        assert response.headers["location"] == "https://cdn.example.org/geo.pdf"

    def test_missing_local_file_not_found(self, api):
        paper = api.paper_store.add_paper(PastPaper(
            subject="History", grade="11", year=2021, paper_type="p1",
            file=PaperFileReference(strategy=StorageStrategy.LOCAL, file_path=str(api.papers_dir / "gone.pdf"))
        ))

        response = api.client.get(f"/api/past-papers/{paper.id}/file")

        assert response.status_code == 404
        assert response.json()["code"] == "ARTIFACT_NOT_FOUND"

    def test_unknown_paper_not_found(self, api):
        assert api.client.get("/api/past-papers/unknown/file").status_code == 404

    def test_legacy_file_path(self, api):
        response = api.client.get("/api/past-papers/file", params={"filePath": "/pdfs/grade12/maths.pdf"})

        assert response.status_code == 200
        assert response.content == b"%PDF-1.4 legacy maths"

    def test_legacy_file_path_missing(self, api):
        response = api.client.get("/api/past-papers/file")

        assert response.status_code == 400
        assert response.json()["details"]["field_name"] == "filePath"

    def test_legacy_file_path_traversal(self, api):
        response = api.client.get("/api/past-papers/file", params={"filePath": "/pdfs/../../etc/passwd"})

        assert response.status_code == 404

    def test_record_download(self, api):
        paper_id = self._upload(api).json()["past_paper"]["id"]

        api.client.post(f"/api/past-papers/{paper_id}/download")
        response = api.client.post(f"/api/past-papers/{paper_id}/download")

        assert response.status_code == 200
        assert response.json() == {"paper_id": paper_id, "download_count": 2}

    def test_record_download_unknown(self, api):
        response = api.client.post("/api/past-papers/unknown/download")

        assert response.status_code == 404
        assert response.json()["code"] == "PAPER_NOT_FOUND"


class TestHealthEndpoints:
    """Tests for health and info endpoints"""

    def test_health(self, api):
        response = api.client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_liveness(self, api):
        assert api.client.get("/health/live").json()["status"] == "alive"

    def test_readiness_without_services(self, api):
        assert api.client.get("/health/ready").status_code == 503

    def test_readiness_with_services(self, api):
        main.app_state["artifact_store"] = api.artifact_store
        main.app_state["paper_store"] = api.paper_store

        response = api.client.get("/health/ready")

        assert response.status_code == 200
        assert response.json()["status"] == "ready"

    def test_detailed_health(self, api):
        main.app_state["health_checker"] = HealthChecker(
            artifact_store=api.artifact_store,
            pipeline=api.pipeline,
            paper_store=api.paper_store,
            resolver=api.resolver
        )

        response = api.client.get("/health/detailed")

        assert response.status_code in (200, 503)
        names = {c["name"] for c in response.json()["components"]}
        assert {"temp_storage", "translation_pipeline", "paper_store", "legacy_papers"} <= names

    def test_root_lists_endpoints(self, api):
        data = api.client.get("/").json()

        assert data["endpoints"]["translate_file"] == "POST /translate-file"

    def test_info_reports_configuration(self, api):
        data = api.client.get("/info").json()

        assert data["configuration"]["translation_provider"] == "google"
        assert data["configuration"]["pdf_extraction_timeout_seconds"] > 0

    def test_unknown_route(self, api):
        response = api.client.get("/does-not-exist")

        assert response.status_code == 404
        assert response.json()["code"] == "HTTP_ERROR"
