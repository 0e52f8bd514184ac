import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

# Load environment variables
load_dotenv()

_SUPABASE_URL = os.getenv('SUPABASE_URL')
_SUPABASE_KEY = os.getenv('SUPABASE_KEY')

_ANTHROPIC_API_KEY = os.getenv('ANTHROPIC_API_KEY') or os.getenv('CLAUDE_API_KEY')

_CLAUDE_MODEL_PRIMARY = os.getenv('CLAUDE_MODEL_PRIMARY') or os.getenv('CLAUDE_MODEL', 'claude-sonnet-4-5-20250929')
_CLAUDE_MODEL_FALLBACKS = [
    model.strip()
    for model in os.getenv('CLAUDE_MODEL_FALLBACKS', 'claude-3-5-haiku-20241022').split(',')
    if model.strip()
]
_CLAUDE_MODEL_OPTIONS = [_CLAUDE_MODEL_PRIMARY] + [m for m in _CLAUDE_MODEL_FALLBACKS if m and m != _CLAUDE_MODEL_PRIMARY]

_GCS_DOCUMENTS_BUCKET = os.getenv('GCS_DOCUMENTS_BUCKET', '')
_GCS_PROJECT = os.getenv('GCS_PROJECT') or None
_GCS_ENABLED = os.getenv('GCS_ENABLED', 'true').lower() == 'true' and bool(_GCS_DOCUMENTS_BUCKET)

_UPLOADS_PATH = os.getenv('UPLOADS_PATH', './uploads')
_EXTRACTION_TEMP_DIR = os.getenv('EXTRACTION_TEMP_DIR') or None


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return int(raw)


class Config:
    """Central configuration for the document service."""

    SUPABASE_URL = _SUPABASE_URL
    SUPABASE_KEY = _SUPABASE_KEY

    ANTHROPIC_API_KEY = _ANTHROPIC_API_KEY

    CLAUDE_MODEL_PRIMARY = _CLAUDE_MODEL_PRIMARY
    CLAUDE_MODEL_FALLBACKS = _CLAUDE_MODEL_FALLBACKS
    CLAUDE_MODEL = _CLAUDE_MODEL_PRIMARY
    CLAUDE_MODEL_OPTIONS = _CLAUDE_MODEL_OPTIONS

    GCS_DOCUMENTS_BUCKET = _GCS_DOCUMENTS_BUCKET
    GCS_PROJECT = _GCS_PROJECT
    GCS_ENABLED = _GCS_ENABLED

    UPLOADS_PATH = _UPLOADS_PATH
    EXTRACTION_TEMP_DIR = _EXTRACTION_TEMP_DIR

    MAX_FILE_SIZE_MB = _int_env('MAX_FILE_SIZE_MB', 10)
    MAX_RESUME_SIZE_MB = _int_env('MAX_RESUME_SIZE_MB', 5)
    MAX_IMAGE_SIZE_MB = _int_env('MAX_IMAGE_SIZE_MB', 2)
    MIN_EXTRACTED_TEXT_LENGTH = _int_env('MIN_EXTRACTED_TEXT_LENGTH', 30)


settings = Config()


@dataclass(frozen=True)
class StorageConfig:
    """
    Explicit storage configuration handed to the storage backends.

    Backends never read the environment; everything they need arrives here.
    """
    uploads_path: Path
    gcs_bucket: str = ""
    gcs_project: Optional[str] = None
    gcs_enabled: bool = False
    max_file_size_mb: int = 10
    max_resume_size_mb: int = 5
    max_image_size_mb: int = 2
    min_extracted_text_length: int = 30
    extraction_temp_dir: Optional[Path] = None

    @classmethod
    def from_settings(cls, config: Config = settings) -> "StorageConfig":
        """Build the storage configuration from the process settings."""
        return cls(
            uploads_path=Path(config.UPLOADS_PATH),
            gcs_bucket=config.GCS_DOCUMENTS_BUCKET,
            gcs_project=config.GCS_PROJECT,
            gcs_enabled=config.GCS_ENABLED,
            max_file_size_mb=config.MAX_FILE_SIZE_MB,
            max_resume_size_mb=config.MAX_RESUME_SIZE_MB,
            max_image_size_mb=config.MAX_IMAGE_SIZE_MB,
            min_extracted_text_length=config.MIN_EXTRACTED_TEXT_LENGTH,
            extraction_temp_dir=Path(config.EXTRACTION_TEMP_DIR) if config.EXTRACTION_TEMP_DIR else None,
        )
