"""
System Configuration Constants

Base time units and application metadata shared by the other constant
modules.
"""

# Base time units
BASE_SECOND = 1
BASE_MINUTE = 60 * BASE_SECOND
BASE_HOUR = 60 * BASE_MINUTE
BASE_DAY = 24 * BASE_HOUR

MILLISECONDS_PER_SECOND = 1000


class Application:
    """Application metadata constants."""

    NAME = "SolveCrawl"
    VERSION = "0.1.0"
    DESCRIPTION = "Solved-problem history crawler for online judges"


class FileSystem:
    """File system related constants."""

    LOG_DIRECTORY = "logs"
    CONFIG_DIRECTORY = "config"
    CACHE_DIRECTORY = "cache"
    RESULTS_RAW_DIRECTORY = "results_raw"
    HOME_DIR = ".solvecrawl"
    ENV_FILE = ".env"


class Logging:
    """Logging defaults."""

    DEFAULT_LEVEL = "INFO"
    DEFAULT_FILE_PATH = "logs/solvecrawl.log"
    LOGGER_NAME = "solvecrawl"
