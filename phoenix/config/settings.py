"""Root settings model for phoenix configuration."""

import os
from pathlib import Path

from pydantic import Field
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    TomlConfigSettingsSource,
)

from phoenix.config.models.client import ClientConfig
from phoenix.config.models.observability import ObservabilityConfig
from phoenix.config.models.scenarios import ScenariosConfig
from phoenix.harness.models import Phase

DEFAULT_CONFIG_FILE = "default.toml"


def config_dir() -> Path:
    """Directory holding the TOML files.

    PHOENIX_CONFIG_DIR wins when set and must exist. Otherwise the nearest
    ``config/`` directory at or above the working directory is used.
    """
    configured = os.environ.get("PHOENIX_CONFIG_DIR")
    if configured:
        path = Path(configured)
        if not path.is_dir():
            raise FileNotFoundError(f"PHOENIX_CONFIG_DIR does not exist: {configured}")
        return path

    cwd = Path.cwd()
    for directory in (cwd, *cwd.parents):
        if (directory / "config" / DEFAULT_CONFIG_FILE).is_file():
            return directory / "config"
    return cwd / "config"


def config_files() -> tuple[Path, Path]:
    """The base file and the PHOENIX_ENV overlay, lowest priority first."""
    directory = config_dir()
    environment = os.environ.get("PHOENIX_ENV", "development")
    return directory / DEFAULT_CONFIG_FILE, directory / f"{environment}.toml"


class Settings(BaseSettings):
    """Root configuration object containing all nested configuration sections.

    Configuration is loaded in this order:
    1. Pydantic model defaults (in code)
    2. config/default.toml (base configuration)
    3. config/{PHOENIX_ENV}.toml (environment overrides)
    4. PHOENIX_* environment variables (runtime overrides)

    ``phase`` and ``old_cluster_version`` are normally supplied by the
    environment of each process invocation (PHOENIX_PHASE,
    PHOENIX_OLD_CLUSTER_VERSION) and are frozen into a HarnessConfig once
    a run starts.
    """

    model_config = SettingsConfigDict(
        env_prefix="PHOENIX_",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )

    phase: Phase | None = Field(default=None, description="Execution phase of this invocation")
    old_cluster_version: str | None = Field(
        default=None,
        description="Version of the cluster before the upgrade (major.minor.patch)",
    )
    upgraded_version: str | None = Field(
        default=None,
        description="Version served after the restart; latest known when unset",
    )

    client: ClientConfig = Field(
        default_factory=ClientConfig,
        description="Service client configuration",
    )
    observability: ObservabilityConfig = Field(
        default_factory=ObservabilityConfig,
        description="Observability configuration",
    )
    scenarios: ScenariosConfig = Field(
        default_factory=ScenariosConfig,
        description="Scenario configuration",
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,  # noqa: ARG003
        file_secret_settings: PydanticBaseSettingsSource,  # noqa: ARG003
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        """Add one TOML source per config file below the environment.

        Sources are deep merged, so a table in the environment file only
        overrides the keys it sets. Missing files contribute nothing.
        """
        default_file, environment_file = config_files()
        return (
            init_settings,
            env_settings,
            TomlConfigSettingsSource(settings_cls, toml_file=environment_file),
            TomlConfigSettingsSource(settings_cls, toml_file=default_file),
        )
