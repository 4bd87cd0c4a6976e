"""
Configuration management using Pydantic models loaded from YAML.
"""

from __future__ import annotations

from pathlib import Path
from typing import List, Optional

import yaml
from pydantic import BaseModel, Field, field_validator


class BookingPolicy(BaseModel):
    """Rules applied when granting and cancelling reservations."""

    operating_weekdays: List[int] = Field(default_factory=lambda: [0, 1, 2, 3, 4])  # 0=Monday
    holiday_country: Optional[str] = None
    max_booking_duration_hours: int = 4
    advance_booking_days: int = 0
    max_active_bookings: int = 8
    cancellation_hours_notice: int = 24

    @field_validator("operating_weekdays")
    @classmethod
    def validate_weekdays(cls, v: List[int]) -> List[int]:
        for day in v:
            if not 0 <= day <= 6:
                raise ValueError(f"Weekday must be between 0 and 6, got {day}")
        return sorted(set(v))

    @field_validator("max_booking_duration_hours", "max_active_bookings")
    @classmethod
    def validate_positive(cls, v: int) -> int:
        if v <= 0:
            raise ValueError(f"Limit must be greater than zero, got {v}")
        return v

    @field_validator("advance_booking_days", "cancellation_hours_notice")
    @classmethod
    def validate_non_negative(cls, v: int) -> int:
        if v < 0:
            raise ValueError(f"Value must not be negative, got {v}")
        return v


class AppSettings(BaseModel):
    """Application configuration."""

    data_dir: str = "data"
    log_level: str = "INFO"
    policy: BookingPolicy = Field(default_factory=BookingPolicy)

    @classmethod
    def load_from_yaml(cls, config_path: Path) -> "AppSettings":
        """
        Load configuration from a YAML file.

        Raises:
            FileNotFoundError: If the config file doesn't exist
            ValueError: If the config is invalid
        """
        if not config_path.exists():
            raise FileNotFoundError(f"Config file not found: {config_path}")

        with open(config_path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)

        return cls(**(data or {}))
