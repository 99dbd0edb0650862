import sys
import tomllib
from dataclasses import dataclass, field, is_dataclass
from pathlib import Path
from typing import Any, ClassVar, TypeVar

from loguru import logger

from songwatch.client import DEFAULT_STREAM_URL, RECONNECT_DELAY_S
from songwatch.supervisor import RESTART_DELAY_S

# --- Constants ---
APP_NAME = "songwatch"
# Use a platform-agnostic user config directory
if sys.platform == "win32":
    CONFIG_DIR = Path.home() / "AppData" / "Roaming" / APP_NAME
else:
    CONFIG_DIR = Path.home() / ".config" / APP_NAME

CONFIG_FILE = CONFIG_DIR / "config.toml"

DEFAULT_CONFIG_TEXT = """\
# SongWatch Configuration File
# Uncomment and edit any setting to override its default.

# [general]
# log_level_console = "INFO"
# log_level_file = "DEBUG"

# [stream]
# url = "https://startend.xyz/current/stream"
# reconnect_delay_s = 5.0
# parser = "chunk"        # or "framed" to reassemble events split across chunks
# restart_on_crash = true

# [overlay]
# always_on_top = true
# mouse_passthrough = false
# theme_color = "#ffffff"
"""

# --- Dataclass Models for Settings ---
T = TypeVar("T")


@dataclass
class GeneralSettings:
    """General application settings."""

    log_level_console: str = "INFO"
    log_level_file: str = "DEBUG"
    log_directory: str = str(CONFIG_DIR / "logs")


@dataclass
class StreamSettings:
    """Settings for the event stream subscription."""

    url: str = DEFAULT_STREAM_URL
    reconnect_delay_s: float = RECONNECT_DELAY_S
    parser: str = "chunk"
    restart_on_crash: bool = True
    restart_delay_s: float = RESTART_DELAY_S


@dataclass
class OverlaySettings:
    """Initial state of the overlay window."""

    always_on_top: bool = True
    mouse_passthrough: bool = False
    theme_color: str = "#ffffff"


@dataclass
class Settings:
    """Root container for all application settings."""

    general: GeneralSettings = field(default_factory=GeneralSettings)
    stream: StreamSettings = field(default_factory=StreamSettings)
    overlay: OverlaySettings = field(default_factory=OverlaySettings)

    _instance: ClassVar["Settings | None"] = None

    @classmethod
    def get_instance(cls) -> "Settings":
        """Returns the cached Settings object, loading it on first use."""
        if cls._instance is None:
            cls._instance = load_config()
        return cls._instance


def _update_dataclass(dc_instance: T, data: dict[str, Any]) -> T:
    """Recursively updates a dataclass instance from a dictionary."""
    for f in field_names(dc_instance):
        if f in data:
            field_value = getattr(dc_instance, f)
            if is_dataclass(field_value):
                if isinstance(data[f], dict):
                    _update_dataclass(field_value, data[f])
                else:
                    logger.warning(f"Ignoring non-table value for section '{f}'.")
            else:
                value = _coerce(field_value, data[f])
                if value is None:
                    logger.warning(
                        f"Ignoring setting '{f}': expected {type(field_value).__name__}, "
                        f"got {type(data[f]).__name__} ({data[f]!r})."
                    )
                else:
                    setattr(dc_instance, f, value)
    return dc_instance


def _coerce(default: Any, value: Any) -> Any:
    """Returns `value` converted to the type of `default`, or None if it does not fit."""
    # bool is a subclass of int, so it is checked first and never accepted as a number.
    if isinstance(default, bool):
        return value if isinstance(value, bool) else None
    if isinstance(value, bool):
        return None
    if isinstance(default, float):
        return float(value) if isinstance(value, int | float) else None
    if isinstance(default, int):
        return value if isinstance(value, int) else None
    if isinstance(default, str):
        return value if isinstance(value, str) else None
    return value


def field_names(dc_instance: Any) -> list[str]:
    """Helper to get field names from a dataclass instance."""
    return [f.name for f in dc_instance.__dataclass_fields__.values()]


def load_config(path: Path = CONFIG_FILE) -> Settings:
    """Loads settings from a TOML file, merging them with defaults.

    If the config file does not exist, it creates a commented template.

    Args:
        path: The path to the configuration file.

    Returns:
        A populated Settings object.
    """
    settings_obj = Settings()
    logger.info(f"Loading configuration from '{path}'...")

    if not path.exists():
        logger.warning(f"Configuration file not found. Creating default at '{path}'.")
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(DEFAULT_CONFIG_TEXT, encoding="utf-8")
        except OSError as e:
            logger.error(f"Failed to create default config file: {e}")
        return settings_obj

    try:
        with path.open("rb") as f:
            user_config = tomllib.load(f)
        _update_dataclass(settings_obj, user_config)
        logger.success("Successfully loaded user configuration.")
    except tomllib.TOMLDecodeError as e:
        logger.error(f"Error decoding TOML from '{path}': {e}")
        logger.warning("Using default settings due to configuration error.")
        return Settings()
    except OSError as e:
        logger.error(f"Could not read configuration file '{path}': {e}")
        logger.warning("Using default settings due to configuration error.")
        return Settings()

    return settings_obj
