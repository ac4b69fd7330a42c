"""Idempotent migration trigger."""

from phoenix.client import ServiceClient
from phoenix.harness.errors import FatalError, MigrationFailed
from phoenix.harness.models import MigrationOutcome, NoOpAlreadyCurrent, PerformedWork, ResourceRef
from phoenix.observability.logging import get_logger

logger = get_logger(__name__)


class MigrationTrigger:
    """Issue migration commands for detected resources.

    Triggering an already-current resource is a success with a
    ``NoOpAlreadyCurrent`` outcome, so retries and out-of-order execution
    are safe.
    """

    def __init__(
        self,
        client: ServiceClient,
        upgrade_path: str = "/_xpack/migration/upgrade",
    ) -> None:
        self._client = client
        self._path = upgrade_path.rstrip("/")

    def migrate(self, ref: ResourceRef) -> MigrationOutcome:
        """Run the migration command for ``ref``.

        Returns:
            PerformedWork with the converted item count, or
            NoOpAlreadyCurrent when nothing needed converting

        Raises:
            MigrationFailed: On an error status, a timed out conversion,
                or a body without a work count
        """
        response = self._client.call(
            "POST", f"{self._path}/{ref.name}", params={"error_trace": "true"}
        )
        if not response.ok:
            raise MigrationFailed(
                f"migration of {ref} failed with status {response.status}",
                status=response.status,
                body=response.body,
            )

        try:
            body = response.json()
        except FatalError as e:
            raise MigrationFailed(
                f"migration of {ref} returned a malformed body",
                status=response.status,
                body=response.body,
            ) from e

        if body.get("timed_out") is True:
            raise MigrationFailed(
                f"migration of {ref} timed out", status=response.status, body=body
            )

        total = body.get("total")
        if isinstance(total, bool) or not isinstance(total, int) or total < 0:
            raise MigrationFailed(
                f"migration of {ref} returned no work count", status=response.status, body=body
            )

        if total == 0:
            logger.info("migration_noop", resource=str(ref))
            return NoOpAlreadyCurrent()

        logger.info("migration_performed", resource=str(ref), total=total)
        return PerformedWork(count=total)
