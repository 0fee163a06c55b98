"""Configuration management for serpnav."""

from functools import lru_cache
from pathlib import Path
from typing import Any, Optional

import yaml
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


BUNDLED_ENGINES_FILE = Path(__file__).resolve().parent.parent / "engines" / "data" / "engines.yaml"


class RedirectTimings(BaseModel):
    """Timing knobs for the redirect pipeline (SERPNAV_TIMINGS__*)."""

    redirect_delay_ms: int = Field(default=1000, ge=0)
    poll_interval_ms: int = Field(default=250, ge=0)
    max_poll_attempts: int = Field(default=20, ge=1)
    countdown_tick_ms: int = Field(default=100, ge=1)
    cancelled_linger_ms: int = Field(default=2000, ge=0)


class BrowserSettings(BaseModel):
    """Browser automation settings (SERPNAV_BROWSER__*)."""

    headless: bool = False
    timeout_ms: int = 30000
    viewport_width: int = 1280
    viewport_height: int = 900


class Settings(BaseSettings):
    """Main application settings."""

    model_config = SettingsConfigDict(
        env_prefix="SERPNAV_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        env_nested_delimiter="__",  # SERPNAV_TIMINGS__REDIRECT_DELAY_MS=500
    )

    log_level: str = "INFO"
    log_dir: Path = Path("logs/serpnav")
    log_to_file: bool = True

    # Optional override of the bundled provider table
    engines_file: Optional[Path] = None

    timings: RedirectTimings = Field(default_factory=RedirectTimings)
    browser: BrowserSettings = Field(default_factory=BrowserSettings)

    @property
    def resolved_engines_file(self) -> Path:
        """Path of the engine registry YAML actually in use."""
        return self.engines_file or BUNDLED_ENGINES_FILE


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


def load_yaml_document(path: Path) -> Any:
    """Load a YAML document, returning None for an empty file."""
    with open(path, encoding="utf-8") as f:
        return yaml.safe_load(f)
