"""Cluster health waits."""

from phoenix.client import ServiceClient
from phoenix.harness.errors import FatalError, ScenarioAssertionError
from phoenix.harness.models import ServiceVersion
from phoenix.harness.resolver import HEALTH_WAIT_PARAMS, Resolver
from phoenix.observability.logging import get_logger

logger = get_logger(__name__)

# The service answers 408 with a body when its own wait times out
_TIMEOUT_STATUS = 408


def wait_for_health(
    client: ServiceClient,
    resolver: Resolver,
    old_version: ServiceVersion,
    resources: str | None = None,
    status: str = "yellow",
    timeout: str = "30s",
) -> dict:
    """Block until the cluster (or ``resources``) reaches ``status``.

    The wait itself runs inside the service; this issues a single request.
    Which no-pending-work parameters are accepted depends on the originating
    version and comes from the resolver.

    Args:
        client: Service client
        resolver: Capability resolver
        old_version: Originating cluster version
        resources: Comma separated resource names, or None for the cluster
        status: Health status to wait for
        timeout: Server-side wait timeout

    Returns:
        Decoded health response

    Raises:
        ScenarioAssertionError: If the service reports the wait timed out
        FatalError: On any other error status or malformed body
    """
    params = {"wait_for_status": status, "timeout": timeout}
    params.update(resolver.resolve(HEALTH_WAIT_PARAMS, old_version))
    path = f"/_cluster/health/{resources}" if resources else "/_cluster/health"

    response = client.call("GET", path, params=params)
    if not response.ok and response.status != _TIMEOUT_STATUS:
        raise FatalError(
            f"health query failed with status {response.status}", details=response.body
        )

    body = response.json()
    if body.get("timed_out") is not False:
        raise ScenarioAssertionError(
            f"cluster health for [{resources or '_all'}] did not reach {status}: {body}"
        )
    logger.info("cluster_health_reached", resources=resources, status=body.get("status"))
    return body
