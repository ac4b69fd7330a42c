"""Detect-then-trigger migration cycle built from the detector, trigger and poller."""

from collections.abc import Iterable

from phoenix.harness.detector import MigrationDetector
from phoenix.harness.errors import ServiceUnavailable
from phoenix.harness.models import (
    Converged,
    MigrationOutcome,
    MigrationStatus,
    NotYetConverged,
    PollOutcome,
    ResourceRef,
)
from phoenix.harness.poller import ConvergencePoller
from phoenix.harness.trigger import MigrationTrigger
from phoenix.observability.logging import get_logger

logger = get_logger(__name__)

PENDING = frozenset({MigrationStatus.REQUIRED, MigrationStatus.IN_PROGRESS})


def await_migrated(
    detector: MigrationDetector,
    poller: ConvergencePoller,
    resources: Iterable[ResourceRef],
    interval: float,
    timeout: float,
) -> dict[ResourceRef, MigrationStatus]:
    """Poll detection until none of ``resources`` is required or in progress."""
    refs = list(resources)

    def settled() -> PollOutcome:
        try:
            statuses = detector.detect(refs)
        except ServiceUnavailable as e:
            return NotYetConverged(observed=e.message)
        if any(status in PENDING for status in statuses.values()):
            return NotYetConverged(observed={str(ref): s.value for ref, s in statuses.items()})
        return Converged(statuses)

    return poller.await_convergence(
        settled, interval, timeout, description=f"migration of {', '.join(map(str, refs))}"
    )


def migrate_pending(
    detector: MigrationDetector,
    trigger: MigrationTrigger,
    poller: ConvergencePoller,
    resources: Iterable[ResourceRef],
    interval: float,
    timeout: float,
) -> dict[ResourceRef, MigrationOutcome]:
    """Trigger migration for every resource that needs it and wait until done.

    Resources already in progress are waited for but not triggered again.

    Returns:
        Outcome per triggered resource; empty when nothing needed migration
    """
    refs = list(resources)
    statuses = detector.detect(refs)
    outcomes: dict[ResourceRef, MigrationOutcome] = {}
    for ref, status in statuses.items():
        if status is MigrationStatus.REQUIRED:
            outcomes[ref] = trigger.migrate(ref)

    if any(status in PENDING for status in statuses.values()):
        await_migrated(detector, poller, refs, interval, timeout)
    else:
        logger.info("migration_not_needed", resources=[str(ref) for ref in refs])
    return outcomes
