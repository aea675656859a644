"""
Health check utilities for the Document Translation Service

This module checks the components a request depends on: the temporary
artifact directory, the past paper store and file locations, the translation
provider configuration, and host memory and disk.
"""
import logging
import time
from typing import Dict, Any, List, Optional
from dataclasses import dataclass
from enum import Enum

import psutil

from services.artifact_resolver import ArtifactResolver
from services.artifact_store import ArtifactStore
from services.paper_store import PaperStoreInterface
from services.translation_pipeline import TranslationPipeline

logger = logging.getLogger(__name__)


def _now() -> str:
    return time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime())


class HealthStatus(Enum):
    """Health status enumeration"""
    HEALTHY = "healthy"
    DEGRADED = "degraded"
    UNHEALTHY = "unhealthy"
    UNKNOWN = "unknown"


@dataclass
class ComponentHealth:
    """Health information for a system component"""
    name: str
    status: HealthStatus
    message: str
    details: Optional[Dict[str, Any]] = None
    response_time_ms: Optional[int] = None
    last_check: Optional[str] = None


@dataclass
class SystemHealth:
    """Overall system health information"""
    status: HealthStatus
    message: str
    components: List[ComponentHealth]
    timestamp: str
    uptime_seconds: Optional[int] = None


class HealthChecker:
    """
    Health checker for all system components
    """

    def __init__(
        self,
        artifact_store: Optional[ArtifactStore] = None,
        pipeline: Optional[TranslationPipeline] = None,
        paper_store: Optional[PaperStoreInterface] = None,
        resolver: Optional[ArtifactResolver] = None
    ):
        """
        Initialize health checker with system components

        Args:
            artifact_store: Temporary artifact store
            pipeline: Translation pipeline
            paper_store: Past paper record store
            resolver: Past paper file resolver
        """
        self.artifact_store = artifact_store
        self.pipeline = pipeline
        self.paper_store = paper_store
        self.resolver = resolver
        self.start_time = time.time()

    async def check_system_health(self, include_details: bool = True) -> SystemHealth:
        """
        Check the health of all system components

        Args:
            include_details: Whether to include detailed component information

        Returns:
            SystemHealth object with overall status and component details
        """
        components = []

        if self.artifact_store:
            components.append(self._check_artifact_store())

        if self.pipeline:
            components.append(self._check_translation_pipeline())

        if self.paper_store:
            components.append(self._check_paper_store())

        if self.resolver:
            components.append(self._check_legacy_directory())

        # Add basic system checks
        components.append(self._check_memory_usage())
        components.append(self._check_disk_space())

        overall_status = self._determine_overall_status(components)

        return SystemHealth(
            status=overall_status,
            message=self._get_status_message(overall_status, components),
            components=components if include_details else [],
            timestamp=_now(),
            uptime_seconds=int(time.time() - self.start_time)
        )

    def _check_artifact_store(self) -> ComponentHealth:
        """Temporary directory must exist and be writable"""
        start_time = time.time()

        try:
            stats = self.artifact_store.get_stats()
            if stats["writable"]:
                status = HealthStatus.HEALTHY
                message = "Temporary storage is writable"
            else:
                status = HealthStatus.UNHEALTHY
                message = "Temporary storage is not writable"
            return ComponentHealth(
                name="temp_storage",
                status=status,
                message=message,
                details=stats,
                response_time_ms=int((time.time() - start_time) * 1000),
                last_check=_now()
            )
        except Exception as e:
            return ComponentHealth(
                name="temp_storage",
                status=HealthStatus.UNHEALTHY,
                message=f"Temporary storage check failed: {str(e)}",
                response_time_ms=int((time.time() - start_time) * 1000),
                last_check=_now()
            )

    def _check_translation_pipeline(self) -> ComponentHealth:
        """Report pipeline counters and translator configuration without calling the provider"""
        try:
            stats = self.pipeline.get_stats()
            stalled = stats.get("stalled_pdf_extractions", 0)
            return ComponentHealth(
                name="translation_pipeline",
                status=HealthStatus.DEGRADED if stalled else HealthStatus.HEALTHY,
                message=(
                    f"{stalled} PDF extraction(s) still running past their timeout" if stalled
                    else "Translation pipeline is configured"
                ),
                details=stats,
                last_check=_now()
            )
        except Exception as e:
            return ComponentHealth(
                name="translation_pipeline",
                status=HealthStatus.DEGRADED,
                message=f"Translation pipeline configuration issue: {str(e)}",
                last_check=_now()
            )

    def _check_paper_store(self) -> ComponentHealth:
        start_time = time.time()

        try:
            stats = self.paper_store.get_stats()
            return ComponentHealth(
                name="paper_store",
                status=HealthStatus.HEALTHY,
                message="Past paper store is accessible",
                details=stats,
                response_time_ms=int((time.time() - start_time) * 1000),
                last_check=_now()
            )
        except Exception as e:
            return ComponentHealth(
                name="paper_store",
                status=HealthStatus.UNHEALTHY,
                message=f"Past paper store check failed: {str(e)}",
                response_time_ms=int((time.time() - start_time) * 1000),
                last_check=_now()
            )

    def _check_legacy_directory(self) -> ComponentHealth:
        """A missing legacy directory only affects legacy-url papers"""
        legacy_root = self.resolver.legacy_root
        if legacy_root.is_dir():
            return ComponentHealth(
                name="legacy_papers",
                status=HealthStatus.HEALTHY,
                message="Legacy papers directory is present",
                details={"legacy_root": str(legacy_root)},
                last_check=_now()
            )
        return ComponentHealth(
            name="legacy_papers",
            status=HealthStatus.DEGRADED,
            message="Legacy papers directory is missing",
            details={"legacy_root": str(legacy_root)},
            last_check=_now()
        )

    def _check_memory_usage(self) -> ComponentHealth:
        """Check system memory usage"""
        try:
            memory = psutil.virtual_memory()
            memory_percent = memory.percent

            if memory_percent < 80:
                status = HealthStatus.HEALTHY
                message = f"Memory usage is normal ({memory_percent:.1f}%)"
            elif memory_percent < 90:
                status = HealthStatus.DEGRADED
                message = f"Memory usage is high ({memory_percent:.1f}%)"
            else:
                status = HealthStatus.UNHEALTHY
                message = f"Memory usage is critical ({memory_percent:.1f}%)"

            return ComponentHealth(
                name="memory",
                status=status,
                message=message,
                details={
                    "total_gb": round(memory.total / (1024**3), 2),
                    "available_gb": round(memory.available / (1024**3), 2),
                    "used_percent": memory_percent
                },
                last_check=_now()
            )
        except Exception as e:
            return ComponentHealth(
                name="memory",
                status=HealthStatus.UNKNOWN,
                message=f"Memory check failed: {str(e)}",
                last_check=_now()
            )

    def _check_disk_space(self) -> ComponentHealth:
        """Check free space where temporary artifacts are written"""
        path = str(self.artifact_store.directory) if self.artifact_store else "/"
        try:
            disk = psutil.disk_usage(path)
            disk_percent = disk.percent

            if disk_percent < 80:
                status = HealthStatus.HEALTHY
                message = f"Disk usage is normal ({disk_percent:.1f}%)"
            elif disk_percent < 90:
                status = HealthStatus.DEGRADED
                message = f"Disk usage is high ({disk_percent:.1f}%)"
            else:
                status = HealthStatus.UNHEALTHY
                message = f"Disk usage is critical ({disk_percent:.1f}%)"

            return ComponentHealth(
                name="disk",
                status=status,
                message=message,
                details={
                    "path": path,
                    "total_gb": round(disk.total / (1024**3), 2),
                    "free_gb": round(disk.free / (1024**3), 2),
                    "used_percent": disk_percent
                },
                last_check=_now()
            )
        except Exception as e:
            return ComponentHealth(
                name="disk",
                status=HealthStatus.UNKNOWN,
                message=f"Disk check failed: {str(e)}",
                last_check=_now()
            )

    def _determine_overall_status(self, components: List[ComponentHealth]) -> HealthStatus:
        """Determine overall system status based on component health"""
        if not components:
            return HealthStatus.UNKNOWN

        unhealthy_count = sum(1 for c in components if c.status == HealthStatus.UNHEALTHY)
        degraded_count = sum(1 for c in components if c.status == HealthStatus.DEGRADED)
        healthy_count = sum(1 for c in components if c.status == HealthStatus.HEALTHY)

        if unhealthy_count > 0:
            return HealthStatus.UNHEALTHY
        elif degraded_count > 0:
            return HealthStatus.DEGRADED
        elif healthy_count > 0:
            return HealthStatus.HEALTHY
        else:
            return HealthStatus.UNKNOWN

    def _get_status_message(self, status: HealthStatus, components: List[ComponentHealth]) -> str:
        """Get a descriptive message for the overall status"""
        total_components = len(components)

        if status == HealthStatus.HEALTHY:
            return f"All {total_components} system components are healthy"
        elif status == HealthStatus.DEGRADED:
            degraded_components = [c.name for c in components if c.status == HealthStatus.DEGRADED]
            return f"System is degraded - issues with: {', '.join(degraded_components)}"
        elif status == HealthStatus.UNHEALTHY:
            unhealthy_components = [c.name for c in components if c.status == HealthStatus.UNHEALTHY]
            return f"System is unhealthy - critical issues with: {', '.join(unhealthy_components)}"
        else:
            return "System status is unknown"


def is_service_ready(
    artifact_store: Optional[ArtifactStore] = None,
    paper_store: Optional[PaperStoreInterface] = None
) -> bool:
    """
    Check if the service is ready to handle requests

    Args:
        artifact_store: Temporary artifact store
        paper_store: Past paper record store

    Returns:
        True if service is ready, False otherwise
    """
    if artifact_store is None or not artifact_store.is_writable():
        return False

    if paper_store is not None:
        try:
            paper_store.get_stats()
        except Exception as e:
            logger.warning(f"Paper store not ready: {e}")
            return False

    return True
