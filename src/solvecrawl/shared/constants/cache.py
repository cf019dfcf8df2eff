"""
Cache Configuration Constants
"""

from .system import BASE_SECOND, FileSystem


class CacheDefaults:
    """Problem cache defaults."""

    VERSION = 1
    FILE_PATH = f"{FileSystem.CACHE_DIRECTORY}/problems.json"
    TTL_DAYS = 30  # negative keeps entries forever
    AUTOSAVE_INTERVAL = 5.0 * BASE_SECOND  # 0 disables the periodic flush
    TEMP_SUFFIX = ".tmp"

    # Keys of the durable document
    VERSION_KEY = "version"
    DATA_KEY = "data"
    TIME_KEY = "time"
