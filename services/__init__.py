"""
Service layer for the Document Translation Service
"""
from .artifact_store import ArtifactStore, ArtifactScope
from .document_extractor import DocumentExtractor
from .translator_client import TranslatorInterface, GoogleTranslatorClient, create_translator, split_into_chunks
from .document_composer import DocumentComposer
from .translation_pipeline import (
    TranslationPipeline, TranslationOutcome, RunCancellation, ScopedFileResponse, build_file_response
)
from .artifact_resolver import ArtifactResolver
from .paper_store import PaperStoreInterface, InMemoryPaperStore, JsonPaperStore, create_paper_store
from .past_paper_service import PastPaperService

__all__ = [
    'ArtifactStore', 'ArtifactScope',
    'DocumentExtractor',
    'TranslatorInterface', 'GoogleTranslatorClient', 'create_translator', 'split_into_chunks',
    'DocumentComposer',
    'TranslationPipeline', 'TranslationOutcome', 'RunCancellation', 'ScopedFileResponse', 'build_file_response',
    'ArtifactResolver',
    'PaperStoreInterface', 'InMemoryPaperStore', 'JsonPaperStore', 'create_paper_store',
    'PastPaperService'
]
