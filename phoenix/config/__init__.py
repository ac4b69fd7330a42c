"""Configuration loading for phoenix.

Configuration is loaded from TOML files with environment variable overrides.

Usage:
    from phoenix.config import get_settings

    settings = get_settings()
    base_url = settings.client.base_url
"""

from functools import lru_cache

from phoenix.config.settings import Settings, config_files


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get the singleton settings instance.

    The result is cached for the lifetime of the process.
    Call `get_settings.cache_clear()` to reload configuration.

    Returns:
        Settings instance with all configuration loaded and validated

    Raises:
        FileNotFoundError: If the config directory or its default.toml is missing
        tomllib.TOMLDecodeError: If a config file is not valid TOML
        pydantic.ValidationError: If a value fails validation
    """
    default_file, _ = config_files()
    if not default_file.is_file():
        raise FileNotFoundError(f"Base configuration not found: {default_file}")
    return Settings()


def reload_settings() -> Settings:
    """Clear the settings cache and reload configuration.

    Returns:
        Fresh Settings instance
    """
    get_settings.cache_clear()
    return get_settings()


__all__ = ["get_settings", "reload_settings", "Settings"]
