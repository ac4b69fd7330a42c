"""Tests for structured logging."""

import json

import pytest
import structlog

from phoenix.observability.logging import (
    CredentialRedactor,
    get_logger,
    setup_logging,
)


@pytest.fixture(autouse=True)
def reset_structlog():
    yield
    structlog.contextvars.clear_contextvars()
    structlog.reset_defaults()


def _last_event(capsys: pytest.CaptureFixture[str]) -> dict:
    lines = [line for line in capsys.readouterr().err.splitlines() if line.strip()]
    return json.loads(lines[-1])


class TestSetupLogging:
    """Tests for setup_logging function."""

    def test_setup_json_format(self, capsys: pytest.CaptureFixture[str]) -> None:
        """JSON format emits one JSON object per event."""
        setup_logging(level="INFO", format="json", redact_pii=False)
        get_logger("test").info("test_message", scenario="single_record")

        event = _last_event(capsys)
        assert event["event"] == "test_message"
        assert event["scenario"] == "single_record"
        assert event["level"] == "info"
        assert "timestamp" in event

    def test_setup_console_format(self) -> None:
        """Console format is accepted."""
        setup_logging(level="DEBUG", format="console", redact_pii=False)
        logger = get_logger("test")
        # Should not raise
        logger.debug("test_message")

    def test_level_filters_lower_events(self, capsys: pytest.CaptureFixture[str]) -> None:
        """Events below the configured level are dropped."""
        setup_logging(level="WARNING", format="json", redact_pii=False)
        logger = get_logger("test")
        logger.info("dropped")
        logger.warning("kept")

        output = capsys.readouterr().err
        assert "dropped" not in output
        assert "kept" in output

    def test_setup_with_redaction(self, capsys: pytest.CaptureFixture[str]) -> None:
        """Credentials are masked when redaction is enabled."""
        setup_logging(level="INFO", format="json", redact_pii=True)
        get_logger("test").info("user_created", password="j@rV1s", user="preupgrade_user")

        event = _last_event(capsys)
        assert event["password"] == "[REDACTED]"
        assert event["user"] == "preupgrade_user"


class TestContextBinding:
    """Tests for context binding via structlog.contextvars."""

    def test_bound_context_appears_in_logs(self, capsys: pytest.CaptureFixture[str]) -> None:
        """Scenario and phase bound by the coordinator appear on every event."""
        setup_logging(level="INFO", format="json", redact_pii=False)
        logger = get_logger("test")

        with structlog.contextvars.bound_contextvars(scenario="watcher", phase="post_upgrade"):
            logger.info("test_event")

        event = _last_event(capsys)
        assert event["scenario"] == "watcher"
        assert event["phase"] == "post_upgrade"


class TestCredentialRedactor:
    """Tests for credential redaction."""

    @pytest.fixture
    def redactor(self) -> CredentialRedactor:
        """Create a CredentialRedactor instance."""
        return CredentialRedactor()

    def test_redacts_password_by_key(self, redactor: CredentialRedactor) -> None:
        """Should redact password values."""
        result = redactor(None, None, {"password": "secret123", "data": "ok"})  # type: ignore
        assert result["password"] == "[REDACTED]"
        assert result["data"] == "ok"

    def test_key_match_is_case_insensitive(self, redactor: CredentialRedactor) -> None:
        """Should match sensitive keys regardless of case."""
        result = redactor(None, None, {"Authorization": "Basic dXNlcjpwYXNz"})  # type: ignore
        assert result["Authorization"] == "[REDACTED]"

    def test_redacts_email_pattern_in_string_value(self, redactor: CredentialRedactor) -> None:
        """Should redact email patterns found in string values."""
        result = redactor(
            None, None, {"body": '{"email":"preupgrade_user@example.com"}'}  # type: ignore
        )
        assert "preupgrade_user@example.com" not in result["body"]
        assert "[EMAIL]" in result["body"]

    def test_handles_nested_dicts(self, redactor: CredentialRedactor) -> None:
        """Should handle nested dictionaries."""
        event_dict = {"user": {"password": "j@rV1s", "roles": ["admin"]}, "data": "ok"}
        result = redactor(None, None, event_dict)  # type: ignore
        assert result["user"]["password"] == "[REDACTED]"
        assert result["user"]["roles"] == ["admin"]

    def test_handles_lists(self, redactor: CredentialRedactor) -> None:
        """Should handle lists containing strings."""
        event_dict = {"recipients": ["a@example.com", "plain"]}
        result = redactor(None, None, event_dict)  # type: ignore
        assert result["recipients"] == ["[EMAIL]", "plain"]

    def test_preserves_non_string_values(self, redactor: CredentialRedactor) -> None:
        """Should pass numbers and booleans through unchanged."""
        event_dict = {"attempts": 3, "timed_out": False}
        result = redactor(None, None, event_dict)  # type: ignore
        assert result == {"attempts": 3, "timed_out": False}
