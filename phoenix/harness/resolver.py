"""Version-gated behavior resolver.

Every "is the originating cluster before/after X" decision lives in one
capability table. For a capability, the table holds entries keyed by the
minimum version that introduced a behavior; resolving picks the newest
entry whose minimum version is not above the requested version.
"""

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

from phoenix.harness.errors import UnsupportedCapability
from phoenix.harness.models import ServiceVersion

PERSISTENT_TASK_STATE_FIELD = "persistent_task.state_field"
HEALTH_WAIT_PARAMS = "cluster_health.wait_params"
MIGRATION_ASSISTANCE = "migration.assistance"
ROLLUP_JOBS = "rollup.jobs"
SINGLE_TYPE_INDICES = "index.single_type"
WATCHER_SERVICE = "watcher.service"


@dataclass(frozen=True)
class CapabilityEntry:
    """One row of the capability table."""

    capability: str
    min_version: ServiceVersion
    descriptor: Mapping[str, Any] = field(default_factory=dict)


class Resolver:
    """Pure lookup over a finite capability table.

    Resolving with ``version=None`` returns the newest entry, which is how
    callers ask for the behavior of an upgraded cluster of unspecified
    version.
    """

    def __init__(self, entries: Iterable[CapabilityEntry]) -> None:
        table: dict[str, list[CapabilityEntry]] = {}
        for entry in entries:
            rows = table.setdefault(entry.capability, [])
            if any(row.min_version == entry.min_version for row in rows):
                raise ValueError(
                    f"duplicate entry for [{entry.capability}] at {entry.min_version}"
                )
            rows.append(entry)
        for rows in table.values():
            rows.sort(key=lambda row: row.min_version)
        self._table = table

    def resolve_entry(
        self, capability: str, version: ServiceVersion | None
    ) -> CapabilityEntry:
        """Return the table row that applies to ``version``.

        Raises:
            UnsupportedCapability: If the capability is unknown or ``version``
                predates every entry
        """
        rows = self._table.get(capability)
        if not rows:
            raise UnsupportedCapability(capability, version)
        if version is None:
            return rows[-1]

        applicable = [row for row in rows if row.min_version <= version]
        if not applicable:
            raise UnsupportedCapability(capability, version)
        return applicable[-1]

    def resolve(self, capability: str, version: ServiceVersion | None) -> dict[str, Any]:
        """Return a copy of the descriptor that applies to ``version``."""
        return dict(self.resolve_entry(capability, version).descriptor)

    def supports(self, capability: str, version: ServiceVersion | None) -> bool:
        """True when ``resolve`` would succeed."""
        try:
            self.resolve_entry(capability, version)
        except UnsupportedCapability:
            return False
        return True


def _v(text: str) -> ServiceVersion:
    return ServiceVersion.parse(text)


DEFAULT_CAPABILITIES: tuple[CapabilityEntry, ...] = (
    # The persistent task state field was renamed from "status" to "state" in 6.4.0
    CapabilityEntry(PERSISTENT_TASK_STATE_FIELD, _v("6.3.0"), {"field": "status"}),
    CapabilityEntry(PERSISTENT_TASK_STATE_FIELD, _v("6.4.0"), {"field": "state"}),
    CapabilityEntry(
        HEALTH_WAIT_PARAMS,
        _v("5.0.0"),
        {"wait_for_no_relocating_shards": "true"},
    ),
    CapabilityEntry(
        HEALTH_WAIT_PARAMS,
        _v("6.2.0"),
        {
            "wait_for_no_relocating_shards": "true",
            "wait_for_no_initializing_shards": "true",
        },
    ),
    CapabilityEntry(
        MIGRATION_ASSISTANCE,
        _v("5.6.0"),
        {
            "assistance_path": "/_xpack/migration/assistance",
            "upgrade_path": "/_xpack/migration/upgrade",
        },
    ),
    CapabilityEntry(
        ROLLUP_JOBS,
        _v("6.3.0"),
        {
            "job_path": "/_xpack/rollup/job",
            "task_actions": "xpack/rollup/*",
            "task_name": "xpack/rollup/job",
        },
    ),
    CapabilityEntry(SINGLE_TYPE_INDICES, _v("6.0.0"), {"max_types": 1}),
    CapabilityEntry(
        WATCHER_SERVICE,
        _v("5.0.0"),
        {
            "watch_path": "/_xpack/watcher/watch",
            "stats_path": "/_xpack/watcher/stats",
            "start_path": "/_xpack/watcher/_start",
            "stop_path": "/_xpack/watcher/_stop",
        },
    ),
)


def default_resolver() -> Resolver:
    """Resolver over the built-in capability table."""
    return Resolver(DEFAULT_CAPABILITIES)
