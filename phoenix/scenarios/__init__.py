"""Scenario modules, in the order a run executes them."""

from collections.abc import Sequence

from phoenix.config.models.scenarios import ScenariosConfig
from phoenix.harness.errors import ConfigurationError
from phoenix.harness.resolver import Resolver
from phoenix.harness.scenario import Scenario
from phoenix.scenarios import (
    background_job,
    incompatible_index,
    security_store,
    single_record,
    watcher,
)

SCENARIO_NAMES: tuple[str, ...] = (
    single_record.NAME,
    security_store.NAME,
    watcher.NAME,
    background_job.NAME,
    incompatible_index.NAME,
)


def build_scenarios(
    config: ScenariosConfig,
    resolver: Resolver,
    only: Sequence[str] | None = None,
) -> list[Scenario]:
    """Build the enabled scenarios in declared order.

    Args:
        config: Scenario configuration
        resolver: Resolver used by applicability predicates
        only: Restrict the run to these scenario names

    Raises:
        ConfigurationError: If ``only`` names an unknown scenario
    """
    if only:
        unknown = sorted(set(only) - set(SCENARIO_NAMES))
        if unknown:
            raise ConfigurationError(f"unknown scenarios: {unknown}")

    scenarios: list[Scenario] = []
    if config.single_record_enabled:
        scenarios.append(single_record.build())
    if config.security_store.enabled:
        scenarios.append(security_store.build(config.security_store))
    if config.watcher.enabled:
        scenarios.append(watcher.build(config.watcher))
    if config.job_persistence.enabled:
        scenarios.append(background_job.build(config.job_persistence, resolver))
    if config.incompatible_index_enabled:
        scenarios.append(incompatible_index.build(resolver))

    if only:
        scenarios = [scenario for scenario in scenarios if scenario.name in only]
    return scenarios


__all__ = ["SCENARIO_NAMES", "build_scenarios"]
