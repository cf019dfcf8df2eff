"""
SolveCrawl Constants Module

Centralized constants for the SolveCrawl application, organized as
class namespaces per concern.
"""

from .cache import CacheDefaults
from .cli import CLICommands, CLIDefaults, CLIHelp
from .crawl import CrawlDefaults, RetryWaits
from .network import NetworkConfig, SiteDefaults
from .system import (
    BASE_DAY,
    BASE_HOUR,
    BASE_MINUTE,
    BASE_SECOND,
    MILLISECONDS_PER_SECOND,
    Application,
    FileSystem,
    Logging,
)

__all__ = [
    "BASE_DAY",
    "BASE_HOUR",
    "BASE_MINUTE",
    "BASE_SECOND",
    "MILLISECONDS_PER_SECOND",
    "Application",
    "CLICommands",
    "CLIDefaults",
    "CLIHelp",
    "CacheDefaults",
    "CrawlDefaults",
    "FileSystem",
    "Logging",
    "NetworkConfig",
    "RetryWaits",
    "SiteDefaults",
]
