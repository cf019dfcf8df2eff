"""SolveCrawl Settings Configuration Model.

Main Settings class that consolidates all configuration domains.
"""

from __future__ import annotations

from pathlib import Path

import toml
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from solvecrawl.config.models.app_settings import AppSettings, LoggingSettings
from solvecrawl.config.models.cache_settings import CacheSettings
from solvecrawl.config.models.crawl_settings import CrawlSettings
from solvecrawl.config.models.site_settings import OutputSettings, SiteSettings


class Settings(BaseSettings):
    """Settings facade providing unified configuration access.

    Keyword arguments (usually read from a TOML file) take precedence over
    ``SOLVECRAWL_*`` environment variables such as
    ``SOLVECRAWL_CRAWL__CONCURRENCY=8``, which take precedence over defaults.
    """

    model_config = SettingsConfigDict(
        env_prefix="SOLVECRAWL_",
        env_nested_delimiter="__",
        env_ignore_empty=True,
        extra="ignore",
    )

    app: AppSettings = Field(default_factory=AppSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    crawl: CrawlSettings = Field(default_factory=CrawlSettings)
    cache: CacheSettings = Field(default_factory=CacheSettings)
    site: SiteSettings = Field(default_factory=SiteSettings)
    output: OutputSettings = Field(default_factory=OutputSettings)

    @classmethod
    def from_toml_file(cls, file_path: str | Path) -> Settings:
        """Load settings from TOML file with environment variable overrides."""
        file_path = Path(file_path)
        if not file_path.exists():
            msg = f"Configuration file not found: {file_path}"
            raise FileNotFoundError(msg)

        raw_config = toml.load(file_path)
        return cls(**raw_config)

    def to_toml_file(self, file_path: str | Path) -> None:
        """Save settings to TOML file."""
        file_path = Path(file_path)
        file_path.parent.mkdir(parents=True, exist_ok=True)
        with file_path.open("w", encoding="utf-8") as f:
            toml.dump(self.model_dump(exclude_none=True), f)


__all__ = ["Settings"]
