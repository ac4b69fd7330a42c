"""Harness data model.

Phase and version inputs, migration and job states, resource references,
and the typed outcomes returned by the polling and migration primitives.
"""

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Generic, TypeVar

from phoenix.harness.errors import ConfigurationError

T = TypeVar("T")

_VERSION_PATTERN = re.compile(r"^\s*v?(\d+)\.(\d+)(?:\.(\d+))?(?:[-.]([0-9A-Za-z.]+))?\s*$")
_PRE_RELEASE_PATTERN = re.compile(r"^(alpha|beta|rc)(\d+)$", re.IGNORECASE)
# Build numbers below RELEASE_BUILD order pre-releases before their release
_PRE_RELEASE_BASE = {"alpha": 0, "beta": 25, "rc": 50}
RELEASE_BUILD = 99


class Phase(str, Enum):
    """Which half of the restart this process invocation runs."""

    PRE_UPGRADE = "pre_upgrade"
    POST_UPGRADE = "post_upgrade"


@dataclass(frozen=True, order=True)
class ServiceVersion:
    """Semantic version of a service cluster, totally ordered.

    ``build`` places alpha, beta and rc builds below the release of the same
    ``major.minor.patch``, so ``6.4.0-alpha1`` still predates ``6.4.0``.
    """

    major: int
    minor: int = 0
    patch: int = 0
    build: int = RELEASE_BUILD

    @classmethod
    def parse(cls, value: str) -> "ServiceVersion":
        """Parse ``major.minor[.patch][-qualifier]``.

        ``alphaN``, ``betaN`` and ``rcN`` qualifiers order before the release.
        Any other qualifier, such as ``SNAPSHOT``, names the release itself.
        """
        match = _VERSION_PATTERN.match(value)
        if match is None:
            raise ConfigurationError(f"invalid service version: {value!r}")
        major, minor, patch, qualifier = match.groups()
        build = RELEASE_BUILD
        pre_release = _PRE_RELEASE_PATTERN.match(qualifier or "")
        if pre_release:
            kind, number = pre_release.groups()
            if not 1 <= int(number) <= 24:
                raise ConfigurationError(f"pre-release number out of range: {value!r}")
            build = _PRE_RELEASE_BASE[kind.lower()] + int(number)
        return cls(int(major), int(minor), int(patch or 0), build)

    @property
    def is_release(self) -> bool:
        return self.build == RELEASE_BUILD

    def __str__(self) -> str:
        text = f"{self.major}.{self.minor}.{self.patch}"
        if self.is_release:
            return text
        kind = "rc" if self.build > 50 else "beta" if self.build > 25 else "alpha"
        return f"{text}-{kind}{self.build - _PRE_RELEASE_BASE[kind]}"


class MigrationStatus(str, Enum):
    """Migration state of a resource as reported by the service."""

    NOT_REQUIRED = "not_required"
    REQUIRED = "required"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"

    @property
    def rank(self) -> int:
        """Position in the forward-only lifecycle."""
        return _MIGRATION_RANK[self]


_MIGRATION_RANK = {
    MigrationStatus.REQUIRED: 0,
    MigrationStatus.IN_PROGRESS: 1,
    MigrationStatus.NOT_REQUIRED: 2,
    MigrationStatus.COMPLETED: 2,
}


@dataclass(frozen=True)
class ResourceRef:
    """Logical identifier of a migratable resource."""

    name: str
    kind: str = "index"

    def __str__(self) -> str:
        return f"{self.kind}:{self.name}"


class JobState(str, Enum):
    """Indexer state of a background job."""

    UNKNOWN = "unknown"
    STOPPED = "stopped"
    STARTED = "started"
    INDEXING = "indexing"

    @classmethod
    def parse(cls, value: Any) -> "JobState":
        """Map a raw state string to a JobState; unrecognized values are UNKNOWN."""
        if isinstance(value, str):
            try:
                return cls(value.lower())
            except ValueError:
                return cls.UNKNOWN
        return cls.UNKNOWN


@dataclass(frozen=True)
class PersistentTaskRecord:
    """A background task record read from durable cluster metadata."""

    id: str
    state_field: str
    state_value: JobState


# Poll outcomes


@dataclass(frozen=True)
class Converged(Generic[T]):
    """The predicate observed an acceptable state."""

    value: T


@dataclass(frozen=True)
class NotYetConverged:
    """The predicate observed a transient state; keep polling."""

    observed: Any = None


@dataclass(frozen=True)
class Fatal:
    """The predicate observed a structurally wrong answer; stop polling."""

    reason: str
    details: Any = None


PollOutcome = Converged[Any] | NotYetConverged | Fatal


# Migration outcomes


@dataclass(frozen=True)
class PerformedWork:
    """The migration command converted ``count`` items."""

    count: int


@dataclass(frozen=True)
class NoOpAlreadyCurrent:
    """The resource was already current; nothing was converted."""


MigrationOutcome = PerformedWork | NoOpAlreadyCurrent


@dataclass(frozen=True)
class HarnessConfig:
    """Immutable run configuration, read once at process start."""

    phase: Phase
    old_version: ServiceVersion
    upgraded_version: ServiceVersion | None = None

    @property
    def is_pre_upgrade(self) -> bool:
        return self.phase is Phase.PRE_UPGRADE

    @property
    def serving_version(self) -> ServiceVersion | None:
        """Version of the cluster answering requests in this phase.

        None after the upgrade when no upgraded version was configured,
        meaning "the newest behaviour known".
        """
        if self.is_pre_upgrade:
            return self.old_version
        return self.upgraded_version


# Run report


class ScenarioStatus(str, Enum):
    """Final classification of one scenario in one phase."""

    PASSED = "passed"
    FAILED = "failed"
    SKIPPED = "skipped"
    NOT_RUN = "not_run"


@dataclass
class ScenarioResult:
    """Outcome of running one scenario half."""

    name: str
    status: ScenarioStatus
    duration_s: float = 0.0
    reason: str | None = None
    error_type: str | None = None


@dataclass
class RunReport:
    """Aggregated pass/fail report of a phase run."""

    phase: Phase
    old_version: ServiceVersion
    results: list[ScenarioResult] = field(default_factory=list)
    aborted: bool = False
    abort_reason: str | None = None

    def by_status(self, status: ScenarioStatus) -> list[ScenarioResult]:
        return [r for r in self.results if r.status is status]

    @property
    def passed(self) -> bool:
        """True when nothing failed and the run was not aborted."""
        return not self.aborted and not self.by_status(ScenarioStatus.FAILED)

    def summary(self) -> dict[str, int]:
        return {status.value: len(self.by_status(status)) for status in ScenarioStatus}
