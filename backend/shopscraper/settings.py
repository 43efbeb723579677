"""
Application Configuration
Loads settings from environment variables with sensible defaults, and
per-site option overrides from a JSON config file.
"""

import json
import logging
from dataclasses import fields
from pathlib import Path
from typing import Any, Dict, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict

from .base import DEFAULT_USER_AGENT, ScrapeOptions

logger = logging.getLogger(__name__)

OPTION_FIELDS = {f.name for f in fields(ScrapeOptions)}


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Scraper defaults
    headless: bool = True
    timeout_ms: int = 30000
    delay_ms: int = 2000
    max_retries: int = 3
    user_agent: str = DEFAULT_USER_AGENT

    # Output
    output_path: Optional[str] = None
    output_dir: str = "output"

    # Site option overrides
    config_path: str = "config.json"

    # Logging Configuration
    log_level: str = "INFO"
    log_format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    log_to_file: bool = True

    # Paths
    @property
    def log_dir(self) -> Path:
        """Get the log directory path."""
        return Path.cwd() / "logs"

    @property
    def log_file(self) -> Path:
        """Get the log file path."""
        return self.log_dir / "shopscraper.log"

    model_config = SettingsConfigDict(
        env_prefix="SHOPSCRAPER_",
        # Only load .env if it exists to avoid permission errors
        env_file=".env" if Path(".env").exists() else None,
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )


def default_config() -> Dict[str, Any]:
    """Config used when no config file is present."""
    return {'default_options': {}, 'sites': {}}


def load_config(path: Optional[str] = None) -> Dict[str, Any]:
    """
    Load site option overrides from a JSON file.

    Expected shape:
        {
            "default_options": {"delay_ms": 3000},
            "sites": {"amazon": {"max_retries": 5}}
        }

    A missing file falls back to an empty config with a warning.

    Raises:
        OSError: If the file exists but cannot be read
        json.JSONDecodeError: If the file is not valid JSON
    """
    config_path = Path(path or settings.config_path)
    if not config_path.exists():
        logger.warning(f"Config file {config_path} not found, using defaults")
        return default_config()

    with open(config_path, encoding='utf-8') as f:
        data = json.load(f)

    config = default_config()
    config['default_options'].update(data.get('default_options') or {})
    config['sites'].update(data.get('sites') or {})
    return config


def build_options(
    site: Optional[str] = None,
    app_settings: Optional[Settings] = None,
    file_config: Optional[Dict[str, Any]] = None,
    **overrides,
) -> ScrapeOptions:
    """
    Merge option layers into a ScrapeOptions.

    Later layers win: settings, config default_options, config sites[site],
    then keyword overrides (None values are ignored).
    """
    app_settings = app_settings or settings
    file_config = file_config or default_config()

    values = {name: getattr(app_settings, name) for name in OPTION_FIELDS}
    layers = [
        file_config.get('default_options') or {},
        (file_config.get('sites') or {}).get(site or '', {}) or {},
        {k: v for k, v in overrides.items() if v is not None},
    ]
    for layer in layers:
        unknown = set(layer) - OPTION_FIELDS
        if unknown:
            logger.warning(f"Ignoring unknown options: {', '.join(sorted(unknown))}")
        values.update({k: v for k, v in layer.items() if k in OPTION_FIELDS})

    return ScrapeOptions(**values)


# Global settings instance
settings = Settings()
