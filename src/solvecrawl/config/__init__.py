"""SolveCrawl Configuration Module

Unified access to configuration models and settings management:
- Settings: Main configuration facade
- Loader functions: get_config, load_settings, reload_config
- Domain models: App, Logging, Crawl, Cache, Site and Output settings
"""

from __future__ import annotations

from .models.settings import Settings

from .models import (
    AppSettings,
    CacheSettings,
    CrawlSettings,
    LoggingSettings,
    OutputSettings,
    SiteSettings,
)

from .loader import (
    get_config,
    load_settings,
    reload_config,
)

__all__ = [
    "AppSettings",
    "CacheSettings",
    "CrawlSettings",
    "LoggingSettings",
    "OutputSettings",
    "Settings",
    "SiteSettings",
    "get_config",
    "load_settings",
    "reload_config",
]
