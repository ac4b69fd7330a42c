"""Run one phase of the upgrade verification against a live service."""

from collections.abc import Sequence

from phoenix.client import ServiceClient
from phoenix.config.settings import Settings
from phoenix.harness.coordinator import PhaseCoordinator
from phoenix.harness.errors import ConfigurationError
from phoenix.harness.models import HarnessConfig, Phase, RunReport, ServiceVersion
from phoenix.harness.resolver import Resolver, default_resolver
from phoenix.harness.scenario import Harness
from phoenix.observability.logging import get_logger
from phoenix.scenarios import build_scenarios

logger = get_logger(__name__)


def build_harness_config(
    settings: Settings,
    phase: Phase | str | None = None,
    old_version: str | None = None,
) -> HarnessConfig:
    """Freeze phase and versions for the run.

    Explicit arguments take precedence over settings.

    Raises:
        ConfigurationError: If the phase or originating version is missing
            or malformed
    """
    raw_phase = phase if phase is not None else settings.phase
    if raw_phase is None:
        raise ConfigurationError("phase is required (PHOENIX_PHASE or --phase)")
    try:
        resolved_phase = Phase(raw_phase)
    except ValueError as e:
        raise ConfigurationError(f"invalid phase: {raw_phase!r}") from e

    raw_version = old_version or settings.old_cluster_version
    if not raw_version:
        raise ConfigurationError(
            "originating version is required (PHOENIX_OLD_CLUSTER_VERSION or --old-version)"
        )

    upgraded = settings.upgraded_version
    return HarnessConfig(
        phase=resolved_phase,
        old_version=ServiceVersion.parse(raw_version),
        upgraded_version=ServiceVersion.parse(upgraded) if upgraded else None,
    )


def run_phase(
    settings: Settings,
    config: HarnessConfig,
    client: ServiceClient,
    resolver: Resolver | None = None,
    only: Sequence[str] | None = None,
) -> RunReport:
    """Run every applicable scenario for ``config.phase``."""
    resolver = resolver or default_resolver()
    harness = Harness.create(client, config, resolver)
    scenarios = build_scenarios(settings.scenarios, resolver, only=only)
    report = PhaseCoordinator(harness).run(config, scenarios)

    for result in report.results:
        logger.info(
            "scenario_result",
            scenario=result.name,
            status=result.status.value,
            duration_s=round(result.duration_s, 3),
            reason=result.reason,
        )
    return report
