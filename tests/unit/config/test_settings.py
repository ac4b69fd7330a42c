"""Unit tests for Settings, its TOML sources and get_settings."""

import tomllib
from pathlib import Path

import pytest
from pydantic import ValidationError

from phoenix.config import get_settings, reload_settings
from phoenix.config.models.scenarios import JobPersistenceConfig
from phoenix.config.settings import Settings, config_dir, config_files
from phoenix.harness.models import JobState, Phase

REPO_CONFIG_DIR = Path(__file__).resolve().parents[3] / "config"


@pytest.fixture(autouse=True)
def config_env(test_config_dir: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    monkeypatch.setenv("PHOENIX_CONFIG_DIR", str(test_config_dir))
    monkeypatch.setenv("PHOENIX_ENV", "ci")
    return test_config_dir


class TestConfigLocation:
    """Tests for finding the TOML files."""

    def test_config_dir_from_env(self, config_env: Path) -> None:
        assert config_dir() == config_env

    def test_missing_config_dir_raises(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """A configured directory that does not exist is an error."""
        monkeypatch.setenv("PHOENIX_CONFIG_DIR", str(tmp_path / "absent"))
        with pytest.raises(FileNotFoundError, match="absent"):
            config_dir()

    def test_discovered_from_parent(
        self, config_env: Path, mock_toml_files, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """Without PHOENIX_CONFIG_DIR the nearest config/ above the cwd is used."""
        mock_toml_files({"default.toml": ""})
        nested = config_env.parent / "a" / "b"
        nested.mkdir(parents=True)
        monkeypatch.delenv("PHOENIX_CONFIG_DIR")
        monkeypatch.chdir(nested)

        assert config_dir() == config_env

    def test_files_follow_environment(self, config_env: Path) -> None:
        """The overlay file is named after PHOENIX_ENV."""
        assert config_files() == (config_env / "default.toml", config_env / "ci.toml")

    def test_environment_defaults_to_development(
        self, config_env: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.delenv("PHOENIX_ENV")
        assert config_files()[1] == config_env / "development.toml"


class TestSettings:
    """Tests for Settings model."""

    def test_default_values(self) -> None:
        """Without config files every field has its code default."""
        settings = Settings()
        assert settings.phase is None
        assert settings.old_cluster_version is None
        assert settings.upgraded_version is None
        assert settings.observability.logging.level == "INFO"

    def test_client_defaults(self) -> None:
        """Client configuration has defaults."""
        settings = Settings()
        assert settings.client.base_url == "http://localhost:9200"
        assert settings.client.timeout == 90.0
        assert settings.client.password.get_secret_value() == "x-pack-test-password"

    def test_scenario_defaults(self) -> None:
        """Scenario poll budgets default to 1s interval and 30s timeout."""
        job = Settings().scenarios.job_persistence
        assert job.poll.interval == 1.0
        assert job.poll.timeout == 30.0
        assert job.accepted_states == [JobState.STARTED, JobState.INDEXING]

    def test_password_not_in_repr(self) -> None:
        """The client password is a secret."""
        assert "x-pack-test-password" not in repr(Settings().client)

    def test_empty_accepted_states_rejected(self) -> None:
        """A job scenario must accept at least one state."""
        with pytest.raises(ValidationError):
            JobPersistenceConfig(accepted_states=[])

    def test_unknown_keys_ignored(self, mock_toml_files) -> None:
        """Keys with no matching field do not fail validation."""
        mock_toml_files({"default.toml": "retired_option = true\n"})
        assert not hasattr(Settings(), "retired_option")


class TestTomlSources:
    """Tests for layering default.toml and the environment file."""

    def test_environment_file_overrides_default(self, mock_toml_files) -> None:
        """Keys set in the overlay win; sibling keys from default.toml survive."""
        mock_toml_files({
            "default.toml": "[client]\nbase_url = 'http://a:9200'\ntimeout = 10.0\n",
            "ci.toml": "[client]\nbase_url = 'http://b:9200'\n",
        })

        client = Settings().client
        assert client.base_url == "http://b:9200"
        assert client.timeout == 10.0

    def test_other_environment_file_not_read(self, mock_toml_files) -> None:
        mock_toml_files({
            "default.toml": "upgraded_version = '6.4.0'\n",
            "production.toml": "upgraded_version = '7.0.0'\n",
        })
        assert Settings().upgraded_version == "6.4.0"

    def test_nested_toml_values(self, mock_toml_files) -> None:
        """Nested TOML tables populate nested sections."""
        mock_toml_files({
            "default.toml": (
                "[scenarios.job_persistence]\n"
                "accepted_states = ['started']\n"
                "[scenarios.job_persistence.poll]\n"
                "timeout = 60.0\n"
            )
        })

        job = Settings().scenarios.job_persistence
        assert job.accepted_states == [JobState.STARTED]
        assert job.poll.timeout == 60.0
        assert job.poll.interval == 1.0

    def test_invalid_toml_raises(self, mock_toml_files) -> None:
        mock_toml_files({"default.toml": "[client\n"})
        with pytest.raises(tomllib.TOMLDecodeError):
            Settings()


class TestGetSettings:
    """Tests for get_settings function."""

    def test_returns_settings_instance(self, mock_toml_files) -> None:
        """get_settings returns a Settings instance built from the files."""
        mock_toml_files({"default.toml": "old_cluster_version = '6.3.2'\n"})

        settings = get_settings()
        assert isinstance(settings, Settings)
        assert settings.old_cluster_version == "6.3.2"

    def test_default_toml_required(self) -> None:
        """A config directory without default.toml is rejected."""
        with pytest.raises(FileNotFoundError, match="default.toml"):
            get_settings()

    def test_settings_cached(self, mock_toml_files) -> None:
        """get_settings returns cached instance."""
        mock_toml_files({"default.toml": ""})

        assert get_settings() is get_settings()

    def test_reload_settings_clears_cache(self, mock_toml_files) -> None:
        """reload_settings returns fresh instance."""
        mock_toml_files({"default.toml": "old_cluster_version = '6.2.4'\n"})
        assert get_settings().old_cluster_version == "6.2.4"

        mock_toml_files({"default.toml": "old_cluster_version = '6.3.2'\n"})
        assert reload_settings().old_cluster_version == "6.3.2"

    def test_repository_default_toml_loads(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """The shipped config/default.toml validates."""
        monkeypatch.setenv("PHOENIX_CONFIG_DIR", str(REPO_CONFIG_DIR))

        settings = get_settings()
        assert settings.scenarios.security_store.store_name == ".security"
        assert settings.observability.logging.redact_pii is True


class TestEnvironmentVariableOverrides:
    """Tests for environment variable configuration overrides."""

    def test_phase_and_version_from_env(
        self, mock_toml_files, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """Phase and originating version come from the process environment."""
        mock_toml_files({"default.toml": ""})
        monkeypatch.setenv("PHOENIX_PHASE", "post_upgrade")
        monkeypatch.setenv("PHOENIX_OLD_CLUSTER_VERSION", "6.2.4")

        settings = get_settings()
        assert settings.phase is Phase.POST_UPGRADE
        assert settings.old_cluster_version == "6.2.4"

    def test_env_overrides_toml(self, mock_toml_files, monkeypatch: pytest.MonkeyPatch) -> None:
        """Env vars take priority over both TOML files."""
        mock_toml_files({
            "default.toml": "upgraded_version = '6.4.0'\n",
            "ci.toml": "upgraded_version = '6.5.0'\n",
        })
        monkeypatch.setenv("PHOENIX_UPGRADED_VERSION", "7.0.0")

        assert get_settings().upgraded_version == "7.0.0"

    def test_nested_override(self, mock_toml_files, monkeypatch: pytest.MonkeyPatch) -> None:
        """Nested values can be overridden with double underscore."""
        mock_toml_files({"default.toml": "[client]\ntimeout = 5.0\n"})
        monkeypatch.setenv("PHOENIX_CLIENT__BASE_URL", "https://es.internal:9200")

        client = get_settings().client
        assert client.base_url == "https://es.internal:9200"
        assert client.timeout == 5.0

    def test_invalid_phase_rejected(
        self, mock_toml_files, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """An unknown phase fails validation."""
        mock_toml_files({"default.toml": ""})
        monkeypatch.setenv("PHOENIX_PHASE", "sideways")

        with pytest.raises(ValidationError):
            get_settings()
