"""Migration assistance detector.

Asks the service which resources need migration and classifies each
requested resource. A resource missing from the answer is up to date.
"""

from collections.abc import Iterable

from phoenix.client import ServiceClient
from phoenix.harness.errors import FatalError, ServiceUnavailable
from phoenix.harness.models import MigrationStatus, ResourceRef
from phoenix.observability.logging import get_logger

logger = get_logger(__name__)

ACTION_STATUS: dict[str, MigrationStatus] = {
    "upgrade": MigrationStatus.REQUIRED,
    "reindex": MigrationStatus.REQUIRED,
    "in_progress": MigrationStatus.IN_PROGRESS,
    "none": MigrationStatus.NOT_REQUIRED,
    "not_required": MigrationStatus.NOT_REQUIRED,
}


class MigrationDetector:
    """Classify resources by the service's migration assistance answer.

    The detector never changes service state. It remembers the status it
    last reported for each resource and raises ``FatalError`` if a later
    detection would move a resource backwards (for example COMPLETED back
    to REQUIRED), since migration only ever advances within a run.
    """

    def __init__(
        self,
        client: ServiceClient,
        assistance_path: str = "/_xpack/migration/assistance",
    ) -> None:
        self._client = client
        self._path = assistance_path
        self._observed: dict[ResourceRef, MigrationStatus] = {}

    def detect(self, resources: Iterable[ResourceRef]) -> dict[ResourceRef, MigrationStatus]:
        """Issue one detection query and classify ``resources``.

        Args:
            resources: Resources to classify

        Returns:
            Mapping of every requested resource to its MigrationStatus

        Raises:
            ServiceUnavailable: On a 503 answer
            FatalError: On any other non-2xx answer, a malformed body, an
                unknown ``action_required`` value, or a status regression
        """
        refs = list(resources)
        response = self._client.call("GET", self._path)
        if response.status == 503:
            raise ServiceUnavailable(
                "migration assistance is temporarily unavailable", details=response.body
            )
        if not response.ok:
            raise FatalError(
                f"migration assistance query failed with status {response.status}",
                details=response.body,
            )

        body = response.json()
        reported = body.get("indices")
        if not isinstance(reported, dict):
            raise FatalError("migration assistance response has no [indices] object", details=body)
        logger.info("migration_assistance", required=sorted(reported))

        statuses: dict[ResourceRef, MigrationStatus] = {}
        for ref in refs:
            statuses[ref] = self._classify(ref, reported.get(ref.name))
            self._check_forward(ref, statuses[ref])
        return statuses

    def _classify(self, ref: ResourceRef, entry: object) -> MigrationStatus:
        if entry is None:
            return MigrationStatus.COMPLETED
        if not isinstance(entry, dict) or "action_required" not in entry:
            raise FatalError(f"malformed migration assistance entry for {ref}", details=entry)

        action = str(entry["action_required"]).lower()
        status = ACTION_STATUS.get(action)
        if status is None:
            raise FatalError(f"unknown action_required [{action}] for {ref}", details=entry)
        return status

    def _check_forward(self, ref: ResourceRef, status: MigrationStatus) -> None:
        previous = self._observed.get(ref)
        if previous is not None and status.rank < previous.rank:
            raise FatalError(
                f"migration status of {ref} regressed from {previous.value} to {status.value}"
            )
        self._observed[ref] = status
