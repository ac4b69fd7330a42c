"""Upgrade verification primitives.

The resolver, poller, detector and trigger are independent building blocks;
the coordinator runs scenarios composed from them.
"""

from phoenix.harness.errors import (
    ConfigurationError,
    ContinuityError,
    ConvergenceTimeout,
    FatalError,
    HarnessError,
    MigrationFailed,
    ScenarioAssertionError,
    Unreachable,
    UnsupportedCapability,
)
from phoenix.harness.models import (
    Converged,
    Fatal,
    HarnessConfig,
    JobState,
    MigrationStatus,
    NoOpAlreadyCurrent,
    NotYetConverged,
    PerformedWork,
    Phase,
    ResourceRef,
    ServiceVersion,
)

__all__ = [
    "ConfigurationError",
    "ContinuityError",
    "Converged",
    "ConvergenceTimeout",
    "Fatal",
    "FatalError",
    "HarnessConfig",
    "HarnessError",
    "JobState",
    "MigrationFailed",
    "MigrationStatus",
    "NoOpAlreadyCurrent",
    "NotYetConverged",
    "PerformedWork",
    "Phase",
    "ResourceRef",
    "ScenarioAssertionError",
    "ServiceVersion",
    "Unreachable",
    "UnsupportedCapability",
]
