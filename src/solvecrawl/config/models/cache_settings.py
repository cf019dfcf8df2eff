"""Cache configuration model.

Settings for the durable problem cache: location, expiry and the
periodic flush interval.
"""

from __future__ import annotations

from pydantic import BaseModel, Field

from solvecrawl.shared.constants import BASE_DAY, CacheDefaults


class CacheSettings(BaseModel):
    """Problem cache configuration."""

    path: str = Field(
        default=CacheDefaults.FILE_PATH,
        description="Cache file location",
    )
    ttl_days: float = Field(
        default=CacheDefaults.TTL_DAYS,
        description="Entry lifetime in days; negative never expires",
    )
    version: int = Field(
        default=CacheDefaults.VERSION,
        ge=1,
        description="Store format version; other versions are discarded on load",
    )
    autosave_interval: float = Field(
        default=CacheDefaults.AUTOSAVE_INTERVAL,
        ge=0,
        description="Seconds between periodic flushes, 0 disables",
    )

    @property
    def ttl_seconds(self) -> float | None:
        """Entry lifetime in seconds, or None when entries never expire."""
        if self.ttl_days < 0:
            return None
        return self.ttl_days * BASE_DAY


__all__ = ["CacheSettings"]
