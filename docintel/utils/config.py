"""Configuration management for the document intelligence pipeline.

Loads and validates YAML configuration with sensible defaults
for OCR, classification, scoring, queueing, and storage settings.
"""

import logging
from pathlib import Path

import yaml
from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)


def _default_required_fields() -> dict[str, list[str]]:
    return {
        "NIC": ["nic_number", "name", "date_of_birth"],
        "BirthCertificate": ["child_name", "date_of_birth", "registration_number"],
    }


class OCRConfig(BaseModel):
    """Configuration for the Tesseract text extraction adapter."""

    tesseract_cmd: str | None = None
    default_lang: str = "sin+eng"
    psm: int = 3
    timeout_s: float = Field(default=30.0, gt=0)


class ClassificationConfig(BaseModel):
    """Configuration for keyword-based document classification."""

    document_types_path: str = "configs/document_types.yaml"
    default_min_hits: int = Field(default=3, ge=1)


class AuthenticityConfig(BaseModel):
    """Configuration for authenticity marker scoring."""

    min_markers: int = Field(default=2, ge=1)


class SuspicionConfig(BaseModel):
    """Configuration for suspicious document flagging."""

    min_confidence: float = Field(default=0.6, ge=0.0, le=1.0)
    required_fields: dict[str, list[str]] = Field(
        default_factory=_default_required_fields
    )


class PipelineConfig(BaseModel):
    """Configuration for the job queue workers and retry policy."""

    workers: int = Field(default=2, ge=1)
    max_attempts: int = Field(default=3, ge=1)
    poll_interval_s: float = Field(default=0.5, gt=0)


class StorageConfig(BaseModel):
    """Configuration for persisted pipeline outcomes."""

    results_dir: str = "results"


class AppConfig(BaseModel):
    """Top-level application configuration."""

    ocr: OCRConfig = Field(default_factory=OCRConfig)
    classification: ClassificationConfig = Field(default_factory=ClassificationConfig)
    authenticity: AuthenticityConfig = Field(default_factory=AuthenticityConfig)
    suspicion: SuspicionConfig = Field(default_factory=SuspicionConfig)
    pipeline: PipelineConfig = Field(default_factory=PipelineConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    log_level: str = "INFO"


def load_config(path: Path | None = None) -> AppConfig:
    """Load configuration from a YAML file.

    Args:
        path: Path to the YAML configuration file.
            Defaults to configs/config.yaml.

    Returns:
        Validated application configuration.
    """
    if path is None:
        path = Path("configs/config.yaml")

    if path.exists():
        logger.info("Loading configuration from %s", path)
        with open(path) as f:
            raw = yaml.safe_load(f) or {}
        return AppConfig(**raw)

    logger.info("No config file found at %s, using defaults", path)
    return AppConfig()
