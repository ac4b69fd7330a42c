"""Shared test fixtures for the phoenix test suite."""

import os
from collections.abc import Callable, Generator
from pathlib import Path

import pytest

from tests.factories import FakeClock, FakeService


@pytest.fixture
def test_config_dir(tmp_path: Path) -> Path:
    """Create a temporary config directory for testing."""
    config_dir = tmp_path / "config"
    config_dir.mkdir()
    return config_dir


@pytest.fixture
def mock_toml_files(test_config_dir: Path) -> Callable[[dict[str, str]], None]:
    """Factory fixture to create TOML files in the test config directory.

    Usage:
        def test_something(mock_toml_files):
            mock_toml_files({
                "default.toml": "[client]\nbase_url = 'http://es:9200'",
                "development.toml": "[observability.logging]\nlevel = 'DEBUG'",
            })
    """

    def _create_toml_files(files: dict[str, str]) -> None:
        for filename, content in files.items():
            (test_config_dir / filename).write_text(content)

    return _create_toml_files


@pytest.fixture(autouse=True)
def clear_settings_cache() -> Generator[None, None, None]:
    """Clear the settings cache before and after each test."""
    from phoenix.config import get_settings

    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep PHOENIX_* variables from the developer's shell out of tests."""
    for key in list(os.environ):
        if key.startswith("PHOENIX_"):
            monkeypatch.delenv(key, raising=False)


@pytest.fixture
def service() -> FakeService:
    """A fake service with no routes."""
    return FakeService()


@pytest.fixture
def clock() -> FakeClock:
    """A clock that only advances when slept on."""
    return FakeClock()
