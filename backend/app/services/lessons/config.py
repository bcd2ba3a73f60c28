# backend/app/services/lessons/config.py
"""
Scheduling configuration for lessons.
"""

from dataclasses import dataclass
from functools import lru_cache
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError


@dataclass(frozen=True)
class SchedulingConfig:
    """
    Configuration for the lessons scheduling engine.

    Attributes:
        default_location: Location used when a request omits it
        default_timezone: IANA zone used to anchor base_time_start
        default_max_capacity: Capacity when neither block nor template defaults set it
        insert_chunk_size: Max rows per bulk slot insert
    """
    default_location: str = "Soses"
    default_timezone: str = "Europe/Madrid"
    default_max_capacity: int = 4
    insert_chunk_size: int = 200

    def __post_init__(self):
        """Validate configuration."""
        if self.default_max_capacity < 1:
            raise ValueError(
                f"default_max_capacity must be positive, got {self.default_max_capacity}"
            )
        if self.insert_chunk_size < 1:
            raise ValueError(
                f"insert_chunk_size must be positive, got {self.insert_chunk_size}"
            )
        try:
            ZoneInfo(self.default_timezone)
        except (ZoneInfoNotFoundError, ValueError):
            raise ValueError(f"Unknown timezone: {self.default_timezone}") from None


@lru_cache
def get_scheduling_config() -> SchedulingConfig:
    """Get scheduling configuration (singleton), built from settings."""
    from ...config import settings

    return SchedulingConfig(
        default_location=settings.default_location,
        default_timezone=settings.default_timezone,
        default_max_capacity=settings.default_max_capacity,
        insert_chunk_size=settings.insert_chunk_size,
    )


def time_str_to_minutes(value: str) -> int:
    """Convert "HH:MM" (or "HH:MM:SS") to minutes since midnight."""
    parts = value.strip().split(":")
    if len(parts) < 2:
        raise ValueError(f"Time must be in HH:MM format, got {value!r}")
    hour, minute = int(parts[0]), int(parts[1])
    if not (0 <= hour <= 23 and 0 <= minute <= 59):
        raise ValueError(f"Time out of range: {value!r}")
    return hour * 60 + minute


def minutes_to_time_str(minutes: int) -> str:
    """Convert minutes since midnight to "HH:MM"."""
    return f"{minutes // 60:02d}:{minutes % 60:02d}"
