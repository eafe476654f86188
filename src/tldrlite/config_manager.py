"""Configuration management module.

This module handles persistent user preferences stored in TOML format and
builds the immutable per-invocation options value handed to the cache store
and page resolver.

Precedence: CLI flag > config file > built-in default.

Security:
- Config file permissions: 0600 (owner read/write only)
- Atomic writes (temp file + rename)
"""

import logging
import os
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any

try:
    import tomli  # type: ignore[import]
except ImportError:
    # Fallback for older Python versions
    try:
        import tomllib as tomli  # type: ignore[import]
    except ImportError as e:
        raise ImportError("toml library not available. Install with: pip install tomli") from e

try:
    import tomlkit
except ImportError as e:
    raise ImportError("tomlkit library not available. Install with: pip install tomlkit") from e

from tldrlite.platform_detector import PlatformDetector

logger = logging.getLogger(__name__)

DEFAULT_SOURCE_URL = "https://tldr.sh/assets/tldr.zip"
DEFAULT_CACHE_TTL_DAYS = 7
DEFAULT_FETCH_TIMEOUT = 30.0
CACHE_DIR_NAME = ".tldr"
CONFIG_SUFFIX = ".toml"
HOME_ENV_VAR = "TLDR_HOME"


class ConfigError(Exception):
    """Raised when configuration operations fail."""

    pass


@dataclass
class TldrConfig:
    """Persisted tldr preferences."""

    platform: str | None = None  # None -> detect from host
    language: str = ""
    cache_ttl_days: int = DEFAULT_CACHE_TTL_DAYS
    source_url: str = DEFAULT_SOURCE_URL
    fetch_timeout: float = DEFAULT_FETCH_TIMEOUT

    @property
    def cache_ttl_seconds(self) -> int:
        """Freshness window in seconds."""
        return self.cache_ttl_days * 24 * 3600

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary, excluding None values."""
        data = asdict(self)
        # Filter out None values as TOML doesn't support them
        return {k: v for k, v in data.items() if v is not None}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "TldrConfig":
        """Create from dictionary.

        Raises:
            ConfigError: If cache_ttl_days is negative or fetch_timeout is not positive
        """
        cache_ttl_days = int(data.get("cache_ttl_days", DEFAULT_CACHE_TTL_DAYS))
        if cache_ttl_days < 0:
            raise ConfigError(f"cache_ttl_days must be 0 or more, got {cache_ttl_days}")

        fetch_timeout = float(data.get("fetch_timeout", DEFAULT_FETCH_TIMEOUT))
        if fetch_timeout <= 0:
            raise ConfigError(f"fetch_timeout must be positive, got {fetch_timeout}")

        return cls(
            platform=data.get("platform"),
            language=data.get("language", ""),
            cache_ttl_days=cache_ttl_days,
            source_url=data.get("source_url", DEFAULT_SOURCE_URL),
            fetch_timeout=fetch_timeout,
        )


@dataclass(frozen=True)
class TldrOptions:
    """Options for one invocation.

    Attributes:
        platform: tldr platform tag searched first
        language: Language tag ("" or "en" selects the English pages)
        force_update: Refresh the snapshot even if it is fresh
    """

    platform: str
    language: str = ""
    force_update: bool = False


def resolve_cache_root() -> Path:
    """Resolve the snapshot root directory.

    Uses $TLDR_HOME when set, otherwise ~/.tldr.

    Returns:
        Path to the cache root (not created)

    Raises:
        ConfigError: If the home directory cannot be determined
    """
    override = os.environ.get(HOME_ENV_VAR)
    if override:
        return Path(override).expanduser()

    try:
        home = Path.home()
    except RuntimeError as e:
        raise ConfigError(f"Failed to resolve home directory: {e}") from e
    return home / CACHE_DIR_NAME


def build_options(
    config: TldrConfig,
    platform: str | None = None,
    language: str | None = None,
    force_update: bool = False,
) -> TldrOptions:
    """Merge CLI flags over config values into a TldrOptions.

    Args:
        config: Loaded configuration
        platform: Platform flag value (optional)
        language: Language flag value (optional)
        force_update: Update flag value

    Returns:
        Frozen TldrOptions
    """
    chosen = platform or config.platform
    tag = PlatformDetector.normalize(chosen) if chosen else PlatformDetector.detect_platform()
    lang = language if language is not None else config.language
    return TldrOptions(platform=tag, language=lang or "", force_update=force_update)


class ConfigManager:
    """Manage tldr configuration file.

    Configuration is stored beside the cache root (~/.tldr.toml), outside the
    snapshot directory that a refresh replaces.
    """

    @classmethod
    def get_config_path(cls, cache_root: Path) -> Path:
        """Get configuration file path for a cache root."""
        return cache_root.with_name(cache_root.name + CONFIG_SUFFIX)

    @classmethod
    def load_config(cls, cache_root: Path) -> TldrConfig:
        """Load configuration from file.

        Args:
            cache_root: Snapshot root directory the config file sits beside

        Returns:
            TldrConfig object (defaults when no file exists)

        Raises:
            ConfigError: If loading fails
        """
        config_path = cls.get_config_path(cache_root)

        if not config_path.exists():
            logger.debug("Config file not found, using defaults")
            return TldrConfig()

        try:
            with open(config_path, "rb") as f:
                data = tomli.load(f)  # type: ignore[attr-defined]

            logger.debug(f"Loaded config from: {config_path}")
            return TldrConfig.from_dict(data)  # type: ignore[arg-type]

        except Exception as e:
            raise ConfigError(f"Failed to load config: {e}") from e

    @classmethod
    def save_config(cls, config: TldrConfig, cache_root: Path) -> None:
        """Save configuration to file.

        Args:
            config: Configuration to save
            cache_root: Snapshot root directory the config file sits beside

        Raises:
            ConfigError: If saving fails
        """
        config_path = cls.get_config_path(cache_root)
        temp_path = config_path.with_suffix(".tmp")
        try:
            config_path.parent.mkdir(parents=True, exist_ok=True)

            # Load existing file if it exists (preserves comments/formatting)
            if config_path.exists():
                with open(config_path) as f:
                    doc = tomlkit.load(f)
            else:
                doc = tomlkit.document()
            for key, value in config.to_dict().items():
                doc[key] = value

            with open(temp_path, "w") as f:
                tomlkit.dump(doc, f)

            os.chmod(temp_path, 0o600)
            temp_path.replace(config_path)

            logger.debug(f"Saved config to: {config_path}")

        except Exception as e:
            if temp_path.exists():
                temp_path.unlink()
            raise ConfigError(f"Failed to save config: {e}") from e
