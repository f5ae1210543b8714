"""Configuration management for playsync.

Handles loading and saving TOML configuration stored in:
- macOS/Linux: ~/.config/playsync/config.toml (XDG_CONFIG_HOME)
- Windows: %APPDATA%\\playsync\\config.toml

Any value can be overridden with a PLAYSYNC_<SECTION>_<KEY> environment
variable, e.g. PLAYSYNC_PLAYBACK_VOLUME=0.5.
"""

import os
import sys
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Optional

import tomllib
import tomli_w

from playsync.engine.handle import HandleOptions

PLAYBACK_SECTION = "playback"
LOGGING_SECTION = "logging"

_PLAYBACK_KEYS = (
    "volume",
    "rate",
    "loop",
    "mute",
    "autoplay",
    "preload",
    "sample_rate",
    "nchannels",
    "buffer_ms",
)


def get_config_dir() -> Path:
    """Get the platform-specific config directory for playsync.

    Returns:
        Path to the config directory
    """
    if sys.platform == "win32":
        appdata = os.environ.get("APPDATA")
        if appdata:
            return Path(appdata) / "playsync"
        return Path.home() / "AppData" / "Roaming" / "playsync"

    xdg_config = os.environ.get("XDG_CONFIG_HOME")
    if xdg_config:
        return Path(xdg_config) / "playsync"
    return Path.home() / ".config" / "playsync"


def get_config_path() -> Path:
    """Get the path to config.toml."""
    return get_config_dir() / "config.toml"


def get_env_var_name(section: str, key: str) -> str:
    """Get the environment variable name for a config key.

    Args:
        section: TOML section (e.g. "playback")
        key: Key within the section (e.g. "volume")

    Returns:
        Environment variable name
    """
    return f"PLAYSYNC_{section.upper()}_{key.upper()}"


def _coerce(raw: str, current: Any) -> Any:
    """Convert an environment string to the type of the current value."""
    if isinstance(current, bool):
        return raw.strip().lower() in ("1", "true", "yes", "on")
    if isinstance(current, int):
        return int(raw)
    if isinstance(current, float):
        return float(raw)
    if isinstance(current, Path):
        return Path(raw)
    return raw


@dataclass
class PlayerConfig:
    """Configuration for playsync.

    Attributes:
        volume: Default volume for new handles (0.0 to 1.0)
        rate: Default playback rate
        loop: Loop new handles by default
        mute: Start new handles muted
        autoplay: Play as soon as a load completes
        preload: Start decoding immediately on load
        sample_rate: Decode/output sample rate
        nchannels: Decode/output channel count
        buffer_ms: Playback device buffer size in milliseconds
        log_dir: Directory for the session log
        log_level: Level name for the session log
    """

    # Playback defaults
    volume: float = 1.0
    rate: float = 1.0
    loop: bool = False
    mute: bool = False
    autoplay: bool = False
    preload: bool = True
    sample_rate: int = 44100
    nchannels: int = 2
    buffer_ms: int = 200

    # Logging
    log_dir: Path = field(default_factory=lambda: get_config_dir() / "logs")
    log_level: str = "DEBUG"

    @classmethod
    def load(cls, path: Optional[Path] = None) -> "PlayerConfig":
        """Load configuration from a TOML file.

        Args:
            path: Path to config file (defaults to standard location)

        Returns:
            PlayerConfig with file values and environment overrides applied

        Raises:
            FileNotFoundError: If the config file doesn't exist
        """
        if path is None:
            path = get_config_path()

        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")

        with open(path, "rb") as f:
            data = tomllib.load(f)

        config = cls()

        playback = data.get(PLAYBACK_SECTION, {})
        for key in _PLAYBACK_KEYS:
            if key in playback:
                setattr(config, key, type(getattr(config, key))(playback[key]))

        logging_data = data.get(LOGGING_SECTION, {})
        if "log_dir" in logging_data:
            config.log_dir = Path(logging_data["log_dir"]).expanduser()
        config.log_level = str(logging_data.get("level", config.log_level)).upper()

        config.apply_env_overrides()
        return config

    def apply_env_overrides(self) -> None:
        """Apply PLAYSYNC_* environment variables on top of current values."""
        for key in _PLAYBACK_KEYS:
            raw = os.environ.get(get_env_var_name(PLAYBACK_SECTION, key))
            if raw is not None:
                setattr(self, key, _coerce(raw, getattr(self, key)))

        raw_dir = os.environ.get(get_env_var_name(LOGGING_SECTION, "log_dir"))
        if raw_dir is not None:
            self.log_dir = Path(raw_dir).expanduser()
        raw_level = os.environ.get(get_env_var_name(LOGGING_SECTION, "level"))
        if raw_level is not None:
            self.log_level = raw_level.upper()

    def save(self, path: Optional[Path] = None) -> None:
        """Save configuration to a TOML file.

        Args:
            path: Path to save config (defaults to standard location)
        """
        if path is None:
            path = get_config_path()

        path.parent.mkdir(parents=True, exist_ok=True)

        data = {
            PLAYBACK_SECTION: {key: getattr(self, key) for key in _PLAYBACK_KEYS},
            LOGGING_SECTION: {
                "log_dir": str(self.log_dir),
                "level": self.log_level,
            },
        }

        with open(path, "wb") as f:
            tomli_w.dump(data, f)

    def handle_options(self, **overrides: Any) -> HandleOptions:
        """Build handle options from the playback defaults.

        Args:
            **overrides: HandleOptions fields to override (None values are ignored)

        Returns:
            HandleOptions instance
        """
        values = {f.name: getattr(self, f.name) for f in fields(HandleOptions)}
        values.update({key: value for key, value in overrides.items() if value is not None})
        return HandleOptions(**values)


def ensure_config_exists(path: Optional[Path] = None) -> PlayerConfig:
    """Load the config file, creating a default one if missing or corrupted.

    Args:
        path: Path to config file (defaults to standard location)

    Returns:
        PlayerConfig instance
    """
    if path is None:
        path = get_config_path()

    if path.exists():
        try:
            return PlayerConfig.load(path)
        except (tomllib.TOMLDecodeError, TypeError, ValueError):
            # Corrupted config is replaced by defaults below
            pass

    config = PlayerConfig()
    config.save(path)
    config.apply_env_overrides()
    return config
