"""Configuration management for Datebook."""

import logging
import os
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)

DATEBOOK_HOME = Path(os.environ.get("DATEBOOK_HOME", Path.home() / ".datebook"))
CONFIG_FILE = DATEBOOK_HOME / "config" / "datebook.conf"


@dataclass
class Config:
    """Datebook configuration."""

    timezone: str = "America/New_York"
    auto_decline: bool = True
    log_level: str = "WARNING"


def _parse_bool(key: str, value: str, default: bool) -> bool:
    lowered = value.lower()
    if lowered in ("true", "yes", "on", "1"):
        return True
    if lowered in ("false", "no", "off", "0"):
        return False
    logger.warning(f"Invalid boolean for {key.upper()}: {value!r}, using {default}")
    return default


def _strip_value(value: str) -> str:
    # Handle quoted values with inline comments: "value" # comment
    if value.startswith('"') or value.startswith("'"):
        quote = value[0]
        end_quote = value.find(quote, 1)
        return value[1:end_quote] if end_quote != -1 else value[1:]
    # Unquoted: strip inline comments
    if "#" in value:
        value = value.split("#")[0].strip()
    return value


def load_config(config_file: Path | None = None) -> Config:
    """Load configuration from datebook.conf, then apply environment overrides."""
    config = Config()
    config_file = config_file or CONFIG_FILE

    if config_file.exists():
        for line in config_file.read_text().splitlines():
            line = line.strip()
            if not line or line.startswith("#"):
                continue

            if "=" not in line:
                continue

            key, _, value = line.partition("=")
            key = key.strip().lower()
            value = _strip_value(value.strip())

            match key:
                case "timezone":
                    config.timezone = value
                case "auto_decline":
                    config.auto_decline = _parse_bool(key, value, config.auto_decline)
                case "log_level":
                    config.log_level = value.upper()
                case _:
                    logger.debug(f"Ignoring unknown config key: {key}")

    if tz := os.environ.get("DATEBOOK_TIMEZONE"):
        config.timezone = tz
    if level := os.environ.get("DATEBOOK_LOG_LEVEL"):
        config.log_level = level.upper()

    return config
