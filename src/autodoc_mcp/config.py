"""
autodoc configuration using Pydantic Settings.

Reads from AUTODOC_* environment variables and a .env file.
"""

from dataclasses import dataclass
from functools import lru_cache
from importlib import metadata
from pathlib import Path
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_DESCRIPTION = "Automatically generated API documentation based on actual API usage"


@dataclass
class ApiMeta:
    """Title, version and description placed in the document's info block."""
    title: str = "API"
    version: str = "1.0.0"
    description: str = ""

    @classmethod
    def from_package(cls, distribution: str) -> "ApiMeta":
        """Read name, version and summary from an installed distribution."""
        try:
            pkg = metadata.metadata(distribution)
        except metadata.PackageNotFoundError:
            return cls(title=distribution)
        return cls(
            title=pkg.get("Name") or distribution,
            version=pkg.get("Version") or "1.0.0",
            description=pkg.get("Summary") or "",
        )


class Settings(BaseSettings):
    """autodoc settings."""

    model_config = SettingsConfigDict(
        env_prefix="AUTODOC_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Where route specs are persisted, one JSON file per route
    docs_dir: Path = Path("./docs")

    # URL prefix the ASGI middleware serves the viewer and document under
    docs_path: str = "/docs"

    # Document info; package metadata fills whatever is left unset
    title: Optional[str] = None
    version: Optional[str] = None
    description: Optional[str] = None
    package: Optional[str] = None

    # Background recording workers
    max_workers: int = 2

    def api_meta(self) -> ApiMeta:
        """Build the info block, falling back to package metadata."""
        meta = ApiMeta.from_package(self.package) if self.package else ApiMeta()
        return ApiMeta(
            title=self.title or meta.title,
            version=self.version or meta.version,
            description=self.description if self.description is not None else meta.description,
        )


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
