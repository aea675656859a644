"""
Dependency injection for the Document Translation Service API
"""
import logging
from functools import lru_cache
from typing import Annotated

from fastapi import Depends

from services.artifact_resolver import ArtifactResolver
from services.artifact_store import ArtifactStore
from services.document_composer import DocumentComposer
from services.document_extractor import DocumentExtractor
from services.paper_store import PaperStoreInterface, create_paper_store
from services.past_paper_service import PastPaperService
from services.translation_pipeline import TranslationPipeline
from services.translator_client import TranslatorInterface, create_translator
from config import settings

logger = logging.getLogger(__name__)


@lru_cache()
def get_artifact_store() -> ArtifactStore:
    """
    Get temporary artifact store instance (cached singleton)
    """
    return ArtifactStore(settings.temp_directory)


@lru_cache()
def get_document_extractor() -> DocumentExtractor:
    """
    Get document extractor instance (cached singleton)
    """
    return DocumentExtractor()


@lru_cache()
def get_translator() -> TranslatorInterface:
    """
    Get translation provider client (cached singleton)
    """
    return create_translator(settings.translation_provider)


@lru_cache()
def get_translation_pipeline() -> TranslationPipeline:
    """
    Get translation pipeline instance (cached singleton)
    """
    return TranslationPipeline(
        artifact_store=get_artifact_store(),
        extractor=get_document_extractor(),
        translator=get_translator(),
        composer=DocumentComposer(),
        max_file_size_bytes=settings.max_file_size_bytes
    )


@lru_cache()
def get_paper_store() -> PaperStoreInterface:
    """
    Get past paper store instance (cached singleton)
    """
    return create_paper_store(settings.paper_store_type)


@lru_cache()
def get_artifact_resolver() -> ArtifactResolver:
    """
    Get past paper file resolver instance (cached singleton)
    """
    return ArtifactResolver(settings.legacy_papers_directory, settings.legacy_url_prefix)


@lru_cache()
def get_past_paper_service() -> PastPaperService:
    """
    Get past paper service instance (cached singleton)
    """
    return PastPaperService(
        paper_store=get_paper_store(),
        resolver=get_artifact_resolver(),
        storage_directory=settings.papers_storage_directory
    )


# Type annotations for dependency injection
TranslationPipelineDep = Annotated[TranslationPipeline, Depends(get_translation_pipeline)]
TranslatorDep = Annotated[TranslatorInterface, Depends(get_translator)]
PastPaperServiceDep = Annotated[PastPaperService, Depends(get_past_paper_service)]
