"""
Configuration management for the Document Translation Service
"""
from typing import Optional
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    # Application Configuration
    app_name: str = "AfriIntelligence Document Service"
    app_version: str = "2.0.0"
    debug: bool = False
    environment: str = "development"

    # Server Configuration
    host: str = "0.0.0.0"
    port: int = 8000
    workers: int = 1

    # Security Configuration
    allowed_hosts: str = "*"
    cors_origins: str = "http://localhost:3000,http://localhost:5173"

    # Logging Configuration
    log_level: str = "INFO"
    log_format: str = "structured"
    log_file: Optional[str] = None

    # Upload / temporary artifact configuration
    temp_directory: str = "./uploads"
    max_file_size_mb: int = 10
    stale_artifact_max_age_seconds: int = 3600

    # Extraction Configuration
    pdf_extraction_timeout_seconds: float = 30.0
    pdf_max_stalled_extractions: int = 8

    # Translation provider configuration
    translation_provider: str = "google"
    translation_source_language: str = "auto"
    translation_max_chunk_chars: int = 4500

    # Past paper storage
    papers_storage_directory: str = "./data/papers"
    legacy_papers_directory: str = "./data/pdfs"
    legacy_url_prefix: str = "/pdfs/"
    paper_store_type: str = "json"
    paper_store_path: str = "./data/pastPapers.json"

    # Performance Configuration
    request_timeout_seconds: int = 300

    class Config:
        env_file = ".env"
        case_sensitive = False

    @property
    def max_file_size_bytes(self) -> int:
        """Upload size limit in bytes"""
        return self.max_file_size_mb * 1024 * 1024


# Global settings instance
settings = Settings()
