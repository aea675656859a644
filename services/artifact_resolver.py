"""
Past paper file resolution

Maps a stored PaperFileReference to something deliverable: a file on disk
that can be streamed, or a URL the client is redirected to. Strategies are
tried in a fixed order and the first usable one wins:

1. local: ``file_path`` exists as a regular file
2. cloud: ``cloud_url`` is set
3. legacy: ``legacy_url`` maps to a file under the legacy papers directory

The resolver never mutates the reference and keeps no cache, so resolving the
same reference twice gives the same answer while the filesystem is unchanged.
"""
import logging
import mimetypes
from pathlib import Path
from typing import Optional

from config import settings
from models.document import PDF_MIME_TYPE
from models.past_paper import (
    ByteSource,
    PaperFileReference,
    RedirectTarget,
    ResolvedArtifact,
    StorageStrategy,
)
from utils.exceptions import ArtifactNotFound
from utils.logging import log_security_event

logger = logging.getLogger(__name__)


class ArtifactResolver:
    """Resolves past paper file references to byte sources or redirects"""

    def __init__(self, legacy_root: Optional[str] = None, legacy_url_prefix: Optional[str] = None):
        """
        Args:
            legacy_root: Directory holding files referenced by legacy URLs
            legacy_url_prefix: URL prefix legacy references were served under
        """
        self.legacy_root = Path(legacy_root or settings.legacy_papers_directory).resolve()
        self.legacy_url_prefix = legacy_url_prefix if legacy_url_prefix is not None else settings.legacy_url_prefix

        logger.info(f"ArtifactResolver initialized with legacy root: {self.legacy_root}")

    def resolve(self, ref: PaperFileReference, paper_id: Optional[str] = None) -> ResolvedArtifact:
        """
        Resolve a file reference.

        Args:
            ref: Stored file reference
            paper_id: Owning paper, for logging and error details

        Returns:
            ByteSource or RedirectTarget

        Raises:
            ArtifactNotFound: If no strategy yields a usable location
        """
        if ref.strategy == StorageStrategy.LOCAL and ref.file_path:
            local_path = Path(ref.file_path)
            if local_path.is_file():
                return self._byte_source(local_path, ref, StorageStrategy.LOCAL)
            logger.warning(f"Local file for paper {paper_id or '-'} is missing, trying other strategies")

        if ref.cloud_url:
            return RedirectTarget(url=ref.cloud_url)

        if ref.legacy_url:
            legacy_path = self.legacy_path_for(ref.legacy_url)
            if legacy_path is not None and legacy_path.is_file():
                return self._byte_source(legacy_path, ref, StorageStrategy.LEGACY_URL)

        logger.warning(f"No storage strategy could resolve the file for paper {paper_id or '-'}")
        raise ArtifactNotFound(paper_id=paper_id)

    def resolve_legacy_path(self, file_path: str) -> ByteSource:
        """
        Resolve a client-supplied legacy relative path such as ``/pdfs/grade12/maths.pdf``.

        Raises:
            ArtifactNotFound: If the path does not name a file under the legacy root
        """
        ref = PaperFileReference(strategy=StorageStrategy.LEGACY_URL, legacy_url=file_path)
        legacy_path = self.legacy_path_for(file_path)
        if legacy_path is None or not legacy_path.is_file():
            raise ArtifactNotFound()
        return self._byte_source(legacy_path, ref, StorageStrategy.LEGACY_URL)

    def legacy_path_for(self, legacy_url: str) -> Optional[Path]:
        """
        Map a legacy URL onto the legacy root.

        Returns:
            The candidate path, or None when the URL would escape the root
        """
        relative = legacy_url.strip()
        prefix = self.legacy_url_prefix
        if prefix and relative.startswith(prefix):
            relative = relative[len(prefix):]
        relative = relative.lstrip("/\\")

        if not relative:
            return None

        candidate = (self.legacy_root / relative).resolve()
        if candidate != self.legacy_root and self.legacy_root not in candidate.parents:
            log_security_event(
                "path_traversal",
                "Legacy file path resolves outside the legacy papers directory",
                severity="high",
                additional_data={"legacy_url": legacy_url}
            )
            return None

        return candidate

    def _byte_source(self, path: Path, ref: PaperFileReference, strategy: StorageStrategy) -> ByteSource:
        filename = ref.filename or path.name
        media_type = ref.mime_type or mimetypes.guess_type(filename)[0] or PDF_MIME_TYPE
        return ByteSource(path=path, filename=filename, media_type=media_type, strategy=strategy)
