"""
Configuration management using Pydantic models loaded from YAML.
"""

from pathlib import Path
from typing import Any, List, Optional

import yaml
from pendulum import WeekDay
from pydantic import BaseModel, Field, field_validator

from .domain.civil_time import CIVIL_TIMEZONE_NAME
from .domain.working_days import (
    SUGGESTIONS_LIMIT,
    SUGGESTIONS_PER_DAY,
    weekday_from_value,
)


class ScheduleSettings(BaseModel):
    """Business calendar settings."""
    timezone: str = CIVIL_TIMEZONE_NAME  # Sent with availability queries
    excluded_weekdays: List[int] = Field(default_factory=lambda: [int(WeekDay.SATURDAY)])

    @field_validator("excluded_weekdays", mode="before")
    @classmethod
    def validate_excluded_weekdays(cls, value: Any) -> List[int]:
        """Accept names or numbers, preserve order and drop duplicates."""
        if value is None:
            return []
        if isinstance(value, (str, int)):
            value = [value]
        deduped: List[int] = []
        for item in value:
            day = weekday_from_value(item)
            if day not in deduped:
                deduped.append(day)
        return deduped

    def excluded(self) -> List[WeekDay]:
        return [WeekDay(day) for day in self.excluded_weekdays]


class SuggestionSettings(BaseModel):
    """Limits for reschedule suggestions."""
    per_day: int = SUGGESTIONS_PER_DAY
    limit: int = SUGGESTIONS_LIMIT

    @field_validator("per_day", "limit")
    @classmethod
    def validate_positive(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("Suggestion limits must be greater than zero")
        return value


class AppConfig(BaseModel):
    """Application configuration."""
    availability_url: str = "http://localhost:3000"
    service_slug: Optional[str] = None
    data_file: Optional[Path] = None
    schedule: ScheduleSettings = Field(default_factory=ScheduleSettings)
    suggestions: SuggestionSettings = Field(default_factory=SuggestionSettings)

    @field_validator("availability_url")
    @classmethod
    def validate_url(cls, value: str) -> str:
        if not value.startswith(("http://", "https://")):
            raise ValueError(f"availability_url must be an http(s) URL, got {value!r}")
        return value.rstrip("/")

    @classmethod
    def load_from_yaml(cls, config_path: Path) -> "AppConfig":
        """
        Load configuration from YAML file.

        Args:
            config_path: Path to the YAML config file

        Returns:
            AppConfig instance

        Raises:
            FileNotFoundError: If config file doesn't exist
            ValueError: If config is invalid
        """
        if not config_path.exists():
            raise FileNotFoundError(
                f"Config file not found: {config_path}\n"
                f"Please create a config.yaml file. See config.example.yaml for reference."
            )

        try:
            with open(config_path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as exc:
            raise ValueError(f"Invalid YAML in {config_path}: {exc}") from exc

        if not isinstance(data, dict):
            raise ValueError("Config file must contain a mapping at the root level.")

        config = cls(**data)
        if config.data_file is not None and not config.data_file.is_absolute():
            config = config.model_copy(
                update={"data_file": config_path.parent / config.data_file}
            )
        return config


def get_default_config_path() -> Path:
    """Get the default configuration file path."""
    # Look for config.yaml in current directory
    current_dir = Path.cwd()
    config_path = current_dir / "config.yaml"

    if not config_path.exists():
        # Try in the project root (parent of the package)
        project_root = Path(__file__).parent.parent
        config_path = project_root / "config.yaml"

    return config_path
