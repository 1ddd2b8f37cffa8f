"""Configuration management system using Pydantic v2 and YAML.

This module provides type-safe configuration loading with validation
for the StyleMatch engine. Configuration objects are constructed once by
the caller and passed to each component explicitly.
"""

import os
from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, Field, field_validator

from .exceptions import ConfigFileNotFoundError, ConfigValidationError


SEARCH_MODES = ["balanced", "visual", "style", "semantic", "color"]


class ProviderConfig(BaseModel):
    """Configuration for the embedding provider (Vertex AI multimodal embeddings)."""

    project_id: Optional[str] = Field(default=None, description="Google Cloud project id")
    location: str = Field(default="us-central1", description="Vertex AI region")
    model: str = Field(default="multimodalembedding@001", description="Embedding model name")
    access_token: Optional[str] = Field(
        default=None,
        description="OAuth bearer token (falls back to STYLEMATCH_VERTEX_TOKEN)"
    )
    image_dimension: int = Field(default=1408, description="Dimension of image/multimodal vectors")
    text_dimension: int = Field(default=512, description="Dimension of text vectors")
    slot_timeout_seconds: float = Field(default=30.0, gt=0.0, description="Per-slot call timeout")
    max_retries: int = Field(default=3, ge=1, description="Attempts for retriable provider errors")
    retry_base_delay: float = Field(default=1.0, ge=0.0, description="Backoff base delay in seconds")
    request_timeout_seconds: Optional[float] = Field(
        default=None,
        gt=0.0,
        description="Timeout of one HTTP attempt (derived from the slot budget when unset)"
    )
    max_image_mb: float = Field(default=10.0, gt=0.0, description="Largest accepted image")

    @field_validator('image_dimension', 'text_dimension')
    @classmethod
    def validate_dimension(cls, v: int) -> int:
        """Validate dimensions supported by the multimodal embedding model."""
        valid_dims = [128, 256, 512, 1408]
        if v not in valid_dims:
            raise ValueError(f"Invalid embedding dimension. Choose from: {valid_dims}")
        return v

    @property
    def request_timeout(self) -> float:
        """Timeout of one provider attempt.

        When unset, the slot budget minus the backoff delays is split evenly
        across the attempts, so every retry can still finish inside
        ``slot_timeout_seconds``.
        """
        if self.request_timeout_seconds is not None:
            return min(self.request_timeout_seconds, self.slot_timeout_seconds)
        backoff = sum(self.retry_base_delay * (2 ** i) for i in range(self.max_retries - 1))
        budget = (self.slot_timeout_seconds - backoff) / self.max_retries
        if budget <= 0:
            return self.slot_timeout_seconds / self.max_retries
        return budget


class ContextConfig(BaseModel):
    """Configuration for the context fusion text blobs."""

    semantic_top_n_tags: int = Field(default=15, ge=0, description="Tags fed to the semantic vector")
    max_context_tags: int = Field(default=20, ge=0, description="Tags fed to the style context")
    max_text_chars: int = Field(default=8000, ge=100, description="Provider text length limit")
    analysis_top_tags: int = Field(default=10, ge=0, description="Detected tags merged with notes")


class SearchConfig(BaseModel):
    """Configuration for weighted matching and ranking."""

    default_search_mode: str = Field(default="balanced", description="Mode used when none is given")
    default_max_results: int = Field(default=20, ge=1, description="Results when caller gives none")
    max_results_limit: int = Field(default=100, ge=1, description="Hard cap on results per request")
    min_score: float = Field(default=0.0, ge=0.0, le=100.0, description="Drop candidates below score")
    diversity_boost: bool = Field(default=False, description="Thin out near-duplicate distances")
    diversity_threshold: float = Field(default=0.05, ge=0.0, description="Distance gap for diversity")
    score_precision: int = Field(default=2, ge=0, le=6, description="Decimals kept in final scores")
    scan_batch_size: int = Field(default=256, ge=1, description="Candidates scored per batch")
    deadline_seconds: Optional[float] = Field(default=None, gt=0.0, description="Overall match deadline")
    ann_candidates: int = Field(default=0, ge=0, description="ANN prefilter size, 0 scans all")

    @field_validator('default_search_mode')
    @classmethod
    def validate_search_mode(cls, v: str) -> str:
        """Validate default search mode."""
        v_lower = v.lower()
        if v_lower not in SEARCH_MODES:
            raise ValueError(f"Invalid search mode. Choose from: {SEARCH_MODES}")
        return v_lower


class DatabaseConfig(BaseModel):
    """Configuration for the vector record store."""

    backend: str = Field(default="memory", description="Store backend: memory or chroma")
    persist_directory: str = Field(default="./data/chroma", description="Directory for ChromaDB persistence")
    collection_name: str = Field(default="service_media", description="ChromaDB collection name")
    page_size: int = Field(default=500, ge=1, description="Records fetched per page when scanning")

    @field_validator('backend')
    @classmethod
    def validate_backend(cls, v: str) -> str:
        """Validate store backend."""
        valid_backends = ["memory", "chroma"]
        v_lower = v.lower()
        if v_lower not in valid_backends:
            raise ValueError(f"Invalid backend. Choose from: {valid_backends}")
        return v_lower


class AppConfig(BaseModel):
    """Root configuration model containing all sub-configurations."""

    provider: ProviderConfig = Field(default_factory=ProviderConfig)
    context: ContextConfig = Field(default_factory=ContextConfig)
    search: SearchConfig = Field(default_factory=SearchConfig)
    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    log_level: str = Field(default="INFO", description="Logging level")

    @field_validator('log_level')
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        v_upper = v.upper()
        if v_upper not in valid_levels:
            raise ValueError(f"Invalid log level. Choose from: {valid_levels}")
        return v_upper

    @classmethod
    def from_yaml(cls, path: Path | str) -> "AppConfig":
        """Build a configuration from a YAML file."""
        return load_config(path)


def load_config(config_path: Optional[Path | str] = None) -> AppConfig:
    """Load and validate configuration from YAML file.

    Args:
        config_path: Path to configuration file. Defaults to the
                    STYLEMATCH_CONFIG env var, then config/config.yaml
                    relative to the working directory.

    Returns:
        Validated AppConfig instance

    Raises:
        ConfigFileNotFoundError: If config file doesn't exist
        ConfigValidationError: If configuration is invalid
    """
    if config_path is None:
        env_config_path = os.environ.get('STYLEMATCH_CONFIG')
        if env_config_path:
            config_path = Path(env_config_path)
        else:
            config_path = Path.cwd() / "config" / "config.yaml"
    else:
        config_path = Path(config_path)

    if not config_path.exists():
        example_path = config_path.parent / "config.example.yaml"
        raise ConfigFileNotFoundError(
            f"Configuration file not found: {config_path}\n"
            f"Please copy {example_path} to {config_path} and customize it.\n"
            f"Alternatively, set the STYLEMATCH_CONFIG environment variable to the config file path.",
            path=str(config_path),
        )

    with open(config_path, 'r', encoding='utf-8') as f:
        config_dict = yaml.safe_load(f) or {}

    try:
        return AppConfig.model_validate(config_dict)
    except ValueError as e:
        raise ConfigValidationError(f"Invalid configuration in {config_path}: {e}") from e
