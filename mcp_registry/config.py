"""
Configuration management for the MCP Server Registry pipeline.

Uses pydantic-settings for type-safe configuration with environment variable support.
"""

from pathlib import Path
from functools import lru_cache
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class StorageSettings(BaseSettings):
    """Key-value store and dataset settings."""

    model_config = SettingsConfigDict(
        env_prefix="REGISTRY_STORAGE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    backend: str = "sql"  # "sql" or "file"
    database_url: str = "sqlite:///./data/registry.db"
    data_dir: Path = Field(default=Path("./data"))

    @field_validator("backend")
    @classmethod
    def check_backend(cls, v):
        """Only the SQL and file backends exist."""
        v = v.lower()
        if v not in ("sql", "file"):
            raise ValueError(f"Unknown storage backend: {v}")
        return v


class CollectorSettings(BaseSettings):
    """Registry collector settings."""

    model_config = SettingsConfigDict(
        env_prefix="COLLECTOR_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    github_token: Optional[str] = None
    max_servers: Optional[int] = None
    min_stars: Optional[int] = None
    include_readme: bool = True
    search_keywords: list[str] = Field(
        default_factory=lambda: ["mcp", "mcp-server", "model-context-protocol"]
    )

    # HTTP settings
    http_timeout: int = 10  # seconds
    http_max_retries: int = 3
    http_retry_delay: float = 1.0  # seconds


class PipelineSettings(BaseSettings):
    """Processing and run settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Logging
    log_level: str = "INFO"
    log_file: Optional[Path] = None  # rotating file sink when set

    update_mode: str = "full"
    active_days: int = 180  # updated within this many days = active
    dataset_batch_size: int = 100


class Settings(BaseSettings):
    """Main settings class that combines all settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Sub-settings
    storage: StorageSettings = Field(default_factory=StorageSettings)
    collectors: CollectorSettings = Field(default_factory=CollectorSettings)
    pipeline: PipelineSettings = Field(default_factory=PipelineSettings)


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Uses lru_cache to ensure settings are only loaded once.
    """
    return Settings()


# Convenience function for quick access
settings = get_settings()


# =============================================================================
# Data Source Configuration
# =============================================================================

# Concatenation order for collector output. First-seen-wins merge rules
# depend on it, so it must stay fixed (alphabetical by origin tag).
SOURCE_ORDER = ["github", "npm", "pypi"]

DATA_SOURCES = {
    "github": {
        "name": "GitHub",
        "description": "Repositories tagged with MCP topics",
        "url": "https://github.com/",
        "api_url": "https://api.github.com",
    },
    "npm": {
        "name": "npm",
        "description": "JavaScript packages matching MCP keywords",
        "url": "https://www.npmjs.com/",
        "api_url": "https://registry.npmjs.org",
        "downloads_url": "https://api.npmjs.org/downloads/point/last-week",
    },
    "pypi": {
        "name": "PyPI",
        "description": "Python packages from a seed list of known MCP servers",
        "url": "https://pypi.org/",
        "api_url": "https://pypi.org/pypi",
    },
}

# Documents (READMEs) are capped at 500 KiB
README_MAX_BYTES = 500 * 1024

# Functional categories with the keywords that select them
CATEGORIES = {
    "Database": ["database", "sql", "postgres", "mysql", "mongodb", "dynamodb", "redis", "sqlite", "db"],
    "File System": ["file", "filesystem", "storage", "s3", "gcs", "blob", "fs", "directory", "upload", "download"],
    "Web & API": ["http", "api", "web", "fetch", "rest", "curl", "request", "url"],
    "Code & Development": ["git", "github", "code", "repository", "branch", "commit", "lint", "test", "build"],
    "AI & ML": ["ai", "ml", "model", "llm", "machine learning", "neural", "inference", "embedding"],
    "Communication": ["slack", "email", "webhook", "notification", "chat", "messaging", "discord", "teams"],
    "Data & Analytics": ["analytics", "metrics", "data", "statistics", "bigquery", "datadog", "grafana", "observability"],
    "Cloud & Infrastructure": ["aws", "azure", "gcp", "kubernetes", "docker", "cloud", "infrastructure", "deployment", "terraform"],
    "Integration & Orchestration": ["integration", "workflow", "orchestration", "automation", "zapier", "ifttt", "pipeline"],
}

UNCATEGORIZED = "Uncategorized"

# AI clients detected in documentation
CLIENT_NAMES = ["Claude", "OpenAI", "Kiro", "Anthropic", "ChatGPT", "GPT"]
