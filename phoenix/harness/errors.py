"""Error taxonomy for harness runs.

All harness errors inherit from HarnessError. The coordinator uses the
concrete class to decide whether a scenario failed, was skipped, or
whether the whole run has to stop.
"""

from typing import Any


class HarnessError(Exception):
    """Base exception for all harness errors."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class ConfigurationError(HarnessError):
    """Raised when phase or version inputs are missing or malformed."""


class Unreachable(HarnessError):
    """Raised on transport-level failure talking to the service.

    Retried by the poller up to its budget; anywhere else it aborts the run.
    """


class FatalError(HarnessError):
    """Raised for malformed responses or detected invariant violations."""

    def __init__(self, message: str, details: Any = None) -> None:
        super().__init__(message)
        self.details = details


class ServiceUnavailable(HarnessError):
    """Raised when the service answers 503 to a read that may be retried."""

    def __init__(self, message: str, details: Any = None) -> None:
        super().__init__(message)
        self.details = details


class UnsupportedCapability(HarnessError):
    """Raised when no capability table entry applies to a version."""

    def __init__(self, capability: str, version: Any) -> None:
        super().__init__(f"capability [{capability}] is not available in version {version}")
        self.capability = capability
        self.version = version


class MigrationFailed(HarnessError):
    """Raised when a migration command neither worked nor was a no-op."""

    def __init__(self, message: str, status: int | None = None, body: Any = None) -> None:
        super().__init__(message)
        self.status = status
        self.body = body


class ConvergenceTimeout(HarnessError):
    """Raised when a poll budget is exhausted without convergence."""

    def __init__(self, message: str, last_value: Any = None, attempts: int = 0) -> None:
        super().__init__(message)
        self.last_value = last_value
        self.attempts = attempts


class ScenarioAssertionError(HarnessError):
    """Raised when an observed value does not match the expected one."""


class ContinuityError(HarnessError):
    """Raised when a post-upgrade half uses a resource its pre-upgrade half never created."""
