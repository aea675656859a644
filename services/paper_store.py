"""
Past paper record storage
"""
import json
import logging
import os
import tempfile
import threading
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

from pydantic import ValidationError as PydanticValidationError

from config import settings
from models.past_paper import PastPaper
from utils.exceptions import PaperNotFoundError, PaperStoreError

logger = logging.getLogger(__name__)


def _matches(
    paper: PastPaper,
    subject: Optional[str],
    grade: Optional[str],
    year: Optional[int],
    paper_type: Optional[str]
) -> bool:
    if subject and paper.subject.lower() != subject.strip().lower():
        return False
    if grade and paper.grade != grade.strip():
        return False
    if year is not None and paper.year != year:
        return False
    if paper_type and paper.paper_type.value != paper_type:
        return False
    return True


class PaperStoreInterface(ABC):
    """Abstract interface for past paper record storage"""

    @abstractmethod
    def add_paper(self, paper: PastPaper) -> PastPaper:
        """Persist a new past paper record"""
        pass

    @abstractmethod
    def get_paper(self, paper_id: str) -> Optional[PastPaper]:
        """Retrieve a past paper by its ID"""
        pass

    @abstractmethod
    def list_papers(
        self,
        subject: Optional[str] = None,
        grade: Optional[str] = None,
        year: Optional[int] = None,
        paper_type: Optional[str] = None
    ) -> List[PastPaper]:
        """List past papers matching every given filter"""
        pass

    @abstractmethod
    def record_download(self, paper_id: str) -> PastPaper:
        """Increment a paper's download count"""
        pass

    @abstractmethod
    def get_stats(self) -> Dict[str, Any]:
        """Get statistics about the stored papers"""
        pass


class InMemoryPaperStore(PaperStoreInterface):
    """Paper store kept in process memory"""

    def __init__(self, papers: Optional[List[PastPaper]] = None):
        self._papers: Dict[str, PastPaper] = {p.id: p for p in papers or []}
        self._lock = threading.Lock()

    def add_paper(self, paper: PastPaper) -> PastPaper:
        with self._lock:
            if paper.id in self._papers:
                raise PaperStoreError(f"Past paper '{paper.id}' already exists", operation="add")
            self._papers[paper.id] = paper
        logger.info(f"Added past paper {paper.id} ({paper.display_title()})")
        return paper

    def get_paper(self, paper_id: str) -> Optional[PastPaper]:
        with self._lock:
            return self._papers.get(paper_id)

    def list_papers(self, subject=None, grade=None, year=None, paper_type=None) -> List[PastPaper]:
        with self._lock:
            papers = list(self._papers.values())
        return [p for p in papers if _matches(p, subject, grade, year, paper_type)]

    def record_download(self, paper_id: str) -> PastPaper:
        with self._lock:
            paper = self._papers.get(paper_id)
            if paper is None:
                raise PaperNotFoundError(paper_id)
            updated = paper.model_copy(update={
                "download_count": paper.download_count + 1,
                "last_downloaded_at": datetime.now(timezone.utc)
            })
            self._papers[paper_id] = updated
        return updated

    def get_stats(self) -> Dict[str, Any]:
        with self._lock:
            papers = list(self._papers.values())
        return {
            "store_type": "memory",
            "total_papers": len(papers),
            "total_downloads": sum(p.download_count for p in papers)
        }


class JsonPaperStore(PaperStoreInterface):
    """
    Paper store backed by a single JSON file holding an array of records.

    Every mutation rewrites the file through a temporary file and an atomic
    replace, under a lock, so readers never see a half-written file.
    """

    def __init__(self, path: Optional[str] = None):
        """
        Args:
            path: Location of the JSON file (defaults to settings.paper_store_path)
        """
        self.path = Path(path or settings.paper_store_path)
        self._lock = threading.RLock()
        self.path.parent.mkdir(parents=True, exist_ok=True)

        logger.info(f"JsonPaperStore initialized with file: {self.path}")

    def _load(self) -> Dict[str, PastPaper]:
        if not self.path.exists():
            return {}

        try:
            with open(self.path, "r", encoding="utf-8") as f:
                raw = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise PaperStoreError("Failed to read past paper records", operation="load", original_exception=e)

        if not isinstance(raw, list):
            raise PaperStoreError("Past paper file must contain a JSON array", operation="load")

        papers: Dict[str, PastPaper] = {}
        for index, item in enumerate(raw):
            try:
                paper = PastPaper.model_validate(item)
            except PydanticValidationError as e:
                logger.warning(f"Skipping invalid past paper record at index {index}: {e.error_count()} error(s)")
                continue
            papers[paper.id] = paper
        return papers

    def _save(self, papers: Dict[str, PastPaper]) -> None:
        payload = [p.model_dump(mode="json") for p in papers.values()]
        fd, tmp_name = tempfile.mkstemp(dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(payload, f, indent=2, ensure_ascii=False)
            os.replace(tmp_name, self.path)
        except OSError as e:
            try:
                os.unlink(tmp_name)
            except FileNotFoundError:
                pass
            raise PaperStoreError("Failed to write past paper records", operation="save", original_exception=e)

    def add_paper(self, paper: PastPaper) -> PastPaper:
        with self._lock:
            papers = self._load()
            if paper.id in papers:
                raise PaperStoreError(f"Past paper '{paper.id}' already exists", operation="add")
            papers[paper.id] = paper
            self._save(papers)
        logger.info(f"Added past paper {paper.id} ({paper.display_title()})")
        return paper

    def get_paper(self, paper_id: str) -> Optional[PastPaper]:
        with self._lock:
            return self._load().get(paper_id)

    def list_papers(self, subject=None, grade=None, year=None, paper_type=None) -> List[PastPaper]:
        with self._lock:
            papers = list(self._load().values())
        return [p for p in papers if _matches(p, subject, grade, year, paper_type)]

    def record_download(self, paper_id: str) -> PastPaper:
        with self._lock:
            papers = self._load()
            paper = papers.get(paper_id)
            if paper is None:
                raise PaperNotFoundError(paper_id)
            updated = paper.model_copy(update={
                "download_count": paper.download_count + 1,
                "last_downloaded_at": datetime.now(timezone.utc)
            })
            papers[paper_id] = updated
            self._save(papers)
        return updated

    def get_stats(self) -> Dict[str, Any]:
        with self._lock:
            papers = list(self._load().values())
        return {
            "store_type": "json",
            "path": str(self.path),
            "total_papers": len(papers),
            "total_downloads": sum(p.download_count for p in papers)
        }


# Factory function to create paper store instances
def create_paper_store(store_type: Optional[str] = None, **kwargs) -> PaperStoreInterface:
    """
    Factory function to create paper store instances

    Args:
        store_type: Type of paper store ("json" or "memory")
        **kwargs: Additional arguments for the paper store

    Returns:
        PaperStore instance
    """
    store_type = (store_type or settings.paper_store_type).lower()
    if store_type == "json":
        return JsonPaperStore(**kwargs)
    elif store_type == "memory":
        return InMemoryPaperStore(**kwargs)
    else:
        raise ValueError(f"Unsupported paper store type: {store_type}")
