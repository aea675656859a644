"""
Temporary artifact storage for the translation pipeline

Every temporary file a request creates (the stored upload and the generated
output) is registered with an ArtifactScope. Closing the scope removes all of
them; closing is idempotent and safe to call from any thread, so the
pipeline and the response stream can both hold a reference to it.
"""
import logging
import os
import re
import threading
import time
import uuid
from pathlib import Path
from typing import List, Dict, Any, Optional

from config import settings
from utils.exceptions import FileHandlingError

logger = logging.getLogger(__name__)

ARTIFACT_PREFIXES = ("upload_", "translated_")

_SAFE_SUFFIX = re.compile(r"^\.[a-z0-9]{1,5}$")


def safe_suffix(filename: Optional[str]) -> str:
    """Return the lowercased extension of filename if it is harmless, else ''."""
    if not filename:
        return ""
    suffix = Path(filename).suffix.lower()
    return suffix if _SAFE_SUFFIX.match(suffix) else ""


class ArtifactScope:
    """
    Owns the temporary files created for one request.

    Paths are registered before any bytes are written, so a failed or
    partial write is still removed when the scope closes.
    """

    def __init__(self, directory: Path, run_id: str):
        self.directory = directory
        self.run_id = run_id
        self._paths: List[Path] = []
        self._lock = threading.Lock()
        self._closed = False

    @property
    def paths(self) -> List[Path]:
        with self._lock:
            return list(self._paths)

    @property
    def closed(self) -> bool:
        return self._closed

    def write(self, content: bytes, prefix: str, suffix: str = "") -> Path:
        """
        Write content to a new, uniquely named file owned by this scope.

        Args:
            content: Bytes to write
            prefix: One of ARTIFACT_PREFIXES
            suffix: File extension including the dot, or ''

        Returns:
            Path of the written file

        Raises:
            FileHandlingError: If the file cannot be written
        """
        if prefix not in ARTIFACT_PREFIXES:
            raise ValueError(f"Unknown artifact prefix: {prefix}")

        path = self.directory / f"{prefix}{self.run_id}_{uuid.uuid4().hex}{suffix}"

        with self._lock:
            if self._closed:
                raise RuntimeError(f"Artifact scope {self.run_id} is already closed")
            self._paths.append(path)

        try:
            with open(path, "xb") as f:
                f.write(content)
        except OSError as e:
            raise FileHandlingError(
                message="Failed to store temporary file",
                file_size=len(content),
                original_exception=e
            )

        logger.debug(f"Stored artifact {path.name} ({len(content)} bytes) for run {self.run_id}")
        return path

    def close(self) -> int:
        """
        Remove every file registered with this scope.

        Only the first call does any work; later calls return 0.

        Returns:
            Number of files removed
        """
        with self._lock:
            if self._closed:
                return 0
            self._closed = True
            paths = list(self._paths)

        removed = 0
        for path in paths:
            try:
                path.unlink()
                removed += 1
            except FileNotFoundError:
                pass
            except OSError as e:
                # The stale sweep picks up anything left behind here
                logger.error(f"Failed to remove artifact {path.name} for run {self.run_id}: {e}")

        logger.info(f"Released {removed} artifact(s) for run {self.run_id}")
        return removed

    def __enter__(self) -> "ArtifactScope":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


class ArtifactStore:
    """Temporary storage directory shared by all pipeline runs"""

    def __init__(self, directory: Optional[str] = None):
        """
        Args:
            directory: Directory for temporary artifacts (defaults to settings.temp_directory)
        """
        self.directory = Path(directory or settings.temp_directory)
        self.directory.mkdir(parents=True, exist_ok=True)

        logger.info(f"ArtifactStore initialized with directory: {self.directory}")

    def open_scope(self, run_id: Optional[str] = None) -> ArtifactScope:
        return ArtifactScope(self.directory, run_id or uuid.uuid4().hex)

    def list_artifacts(self) -> List[Path]:
        """List artifact files currently in the temp directory"""
        return sorted(
            p for p in self.directory.iterdir()
            if p.is_file() and p.name.startswith(ARTIFACT_PREFIXES)
        )

    def sweep_stale(self, max_age_seconds: Optional[int] = None) -> int:
        """
        Remove artifacts older than max_age_seconds.

        Request scopes clean up after themselves; this only catches files
        orphaned by a process that died mid-request.

        Returns:
            Number of files removed
        """
        if max_age_seconds is None:
            max_age_seconds = settings.stale_artifact_max_age_seconds

        cutoff = time.time() - max_age_seconds
        removed = 0

        for path in self.list_artifacts():
            try:
                if path.stat().st_mtime < cutoff:
                    path.unlink()
                    removed += 1
                    logger.info(f"Removed stale artifact: {path.name}")
            except FileNotFoundError:
                continue
            except OSError as e:
                logger.warning(f"Failed to remove stale artifact {path.name}: {e}")

        logger.info(f"Stale artifact sweep completed: {removed} files removed")
        return removed

    def is_writable(self) -> bool:
        return self.directory.is_dir() and os.access(self.directory, os.W_OK)

    def get_stats(self) -> Dict[str, Any]:
        artifacts = self.list_artifacts()
        return {
            "temp_directory": str(self.directory),
            "artifact_count": len(artifacts),
            "writable": self.is_writable()
        }
