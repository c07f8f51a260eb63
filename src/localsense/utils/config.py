"""
Configuration utilities.
"""

import json
from pathlib import Path
from typing import Optional

import yaml

from pydantic import BaseModel, Field, field_validator


class Config(BaseModel):
    """Base configuration class."""

    @classmethod
    def from_yaml(cls, path: Path) -> "Config":
        """Load configuration from YAML file."""
        with open(path) as f:
            data = yaml.safe_load(f) or {}
        return cls(**data)

    @classmethod
    def from_file(cls, path: str | Path) -> "Config":
        """Load configuration from file (YAML or JSON)."""
        path = Path(path)

        if path.suffix in (".yaml", ".yml"):
            return cls.from_yaml(path)
        elif path.suffix == ".json":
            with open(path) as f:
                data = json.load(f)
            return cls(**data)
        else:
            raise ValueError(f"Unsupported config file format: {path.suffix}")


def _default_domain_thresholds() -> dict[str, float]:
    return {
        "conversations": 0.3,
        "notifications": 0.3,
        "documents": 0.4,
        "app_usage": 0.3,
        "contextual_memory": 0.3,
    }


class SearchConfig(Config):
    """Configuration for the search service."""
    # Storage; None keeps everything in memory
    database_path: Optional[str] = None

    # Indexing
    embedding_dimension: int = 384
    max_chunk_size: int = 512
    overlap_size: int = 50

    # Retrieval
    default_top_k: int = 10
    default_threshold: float = 0.5
    recommendation_threshold: float = 0.3
    domain_thresholds: dict[str, float] = Field(default_factory=_default_domain_thresholds)
    default_max_results: int = 20
    scan_yield_every: int = 256

    # Analytics and suggestions
    analytics_window_days: int = 30
    max_suggestions: int = 10

    log_level: str = "INFO"

    @field_validator("embedding_dimension", "max_chunk_size", "default_top_k", "scan_yield_every")
    @classmethod
    def _positive(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("must be positive")
        return value

    @field_validator("domain_thresholds")
    @classmethod
    def _merge_thresholds(cls, value: dict[str, float]) -> dict[str, float]:
        # Partial overrides keep the remaining defaults
        return {**_default_domain_thresholds(), **value}


def load_config(path: str | Path = "localsense.yaml") -> SearchConfig:
    """
    Load search configuration from file.

    Args:
        path: Path to config file

    Returns:
        SearchConfig instance
    """
    path = Path(path)

    if not path.exists():
        return SearchConfig()

    return SearchConfig.from_file(path)
