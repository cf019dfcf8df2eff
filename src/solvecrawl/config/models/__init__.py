"""Configuration models, one per domain, plus the Settings facade."""

from __future__ import annotations

from .app_settings import AppSettings, LoggingSettings
from .cache_settings import CacheSettings
from .crawl_settings import CrawlSettings
from .site_settings import OutputSettings, SiteSettings

__all__ = [
    "AppSettings",
    "CacheSettings",
    "CrawlSettings",
    "LoggingSettings",
    "OutputSettings",
    "SiteSettings",
]
