"""
Centralized settings and path configuration for the tariff engine.
"""
import os
from pathlib import Path
from dataclasses import dataclass
from typing import Mapping, Optional


ENV_PREFIX = "TARIFF_ENGINE_"

DEFAULT_CACHE_TTL_SECONDS = 300.0


def get_project_root() -> Path:
    """Get the project root directory (where pyproject.toml lives)."""
    # Walk up from this file to find the project root
    current = Path(__file__).resolve()
    for parent in current.parents:
        if (parent / 'pyproject.toml').exists():
            return parent
    # Fallback to 4 levels up from this file
    return Path(__file__).resolve().parent.parent.parent.parent


def get_packaged_tariffs_dir() -> Path:
    """Directory holding the tariffs bundled with the package."""
    return Path(__file__).resolve().parent.parent / 'tariffs' / 'data'


def _as_bool(value: str) -> bool:
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


@dataclass
class Settings:
    """Application settings with sensible defaults."""

    # Project paths
    project_root: Path

    # Tariff library: one subdirectory per configuration
    tariffs_dir: Path

    # Resolver snapshot cache
    cache_ttl_seconds: float = DEFAULT_CACHE_TTL_SECONDS

    # Logging
    log_level: str = "INFO"
    json_logs: bool = False

    @classmethod
    def load(cls, project_root: Optional[Path] = None, environ: Optional[Mapping[str, str]] = None) -> 'Settings':
        """Load settings from the project structure and TARIFF_ENGINE_* environment variables."""
        env = os.environ if environ is None else environ
        root = project_root or get_project_root()

        # A tariffs/ directory at the project root wins over the bundled tariffs
        tariffs_dir = root / 'tariffs'
        if not tariffs_dir.exists():
            tariffs_dir = get_packaged_tariffs_dir()
        if env.get(f'{ENV_PREFIX}TARIFFS_DIR'):
            tariffs_dir = Path(env[f'{ENV_PREFIX}TARIFFS_DIR'])

        cache_ttl = DEFAULT_CACHE_TTL_SECONDS
        if env.get(f'{ENV_PREFIX}CACHE_TTL'):
            try:
                cache_ttl = float(env[f'{ENV_PREFIX}CACHE_TTL'])
            except ValueError:
                raise ValueError(
                    f"{ENV_PREFIX}CACHE_TTL must be a number of seconds, got {env[f'{ENV_PREFIX}CACHE_TTL']!r}"
                ) from None
            if cache_ttl < 0:
                raise ValueError(f"{ENV_PREFIX}CACHE_TTL must not be negative")

        return cls(
            project_root=root,
            tariffs_dir=tariffs_dir,
            cache_ttl_seconds=cache_ttl,
            log_level=env.get(f'{ENV_PREFIX}LOG_LEVEL', 'INFO').upper(),
            json_logs=_as_bool(env.get(f'{ENV_PREFIX}JSON_LOGS', 'false')),
        )


# Default settings instance
_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Get the global settings instance."""
    global _settings
    if _settings is None:
        _settings = Settings.load()
    return _settings


def reset_settings():
    """Forget the global settings so the next get_settings() reloads them."""
    global _settings
    _settings = None
