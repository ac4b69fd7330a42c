"""Phase coordinator.

Runs each applicable scenario's half for the current phase, one at a time
in declared order. A failing scenario is recorded and the run moves on;
an unreachable service stops the run.
"""

import time
from collections.abc import Sequence

import structlog

from phoenix.harness.errors import HarnessError, Unreachable, UnsupportedCapability
from phoenix.harness.models import HarnessConfig, RunReport, ScenarioResult, ScenarioStatus
from phoenix.harness.scenario import Harness, Scenario, ScenarioContext
from phoenix.observability.logging import get_logger

logger = get_logger(__name__)


class PhaseCoordinator:
    """Route a run to the correct half of every scenario."""

    def __init__(self, harness: Harness) -> None:
        self._harness = harness

    def run(self, config: HarnessConfig, scenarios: Sequence[Scenario]) -> RunReport:
        """Run the ``config.phase`` half of each applicable scenario.

        Args:
            config: Immutable phase and version inputs
            scenarios: Scenarios in execution order

        Returns:
            RunReport with one result per scenario
        """
        names = [scenario.name for scenario in scenarios]
        duplicates = sorted({name for name in names if names.count(name) > 1})
        if duplicates:
            raise ValueError(f"duplicate scenario names: {duplicates}")

        report = RunReport(phase=config.phase, old_version=config.old_version)
        logger.info(
            "run_started",
            phase=config.phase.value,
            old_version=str(config.old_version),
            scenarios=names,
        )

        for position, scenario in enumerate(scenarios):
            if report.aborted:
                report.results.extend(
                    ScenarioResult(
                        name=remaining.name,
                        status=ScenarioStatus.NOT_RUN,
                        reason="run aborted",
                    )
                    for remaining in scenarios[position:]
                )
                break
            report.results.append(self._run_one(config, scenario, report))

        logger.info("run_finished", phase=config.phase.value, **report.summary())
        return report

    def _run_one(
        self, config: HarnessConfig, scenario: Scenario, report: RunReport
    ) -> ScenarioResult:
        if not scenario.applies_to(config.old_version):
            logger.info("scenario_skipped", scenario=scenario.name, reason="not applicable")
            return ScenarioResult(
                name=scenario.name,
                status=ScenarioStatus.SKIPPED,
                reason=f"not applicable to {config.old_version}",
            )

        action = scenario.pre_upgrade if config.is_pre_upgrade else scenario.post_upgrade
        context = ScenarioContext(config=config, harness=self._harness, scenario=scenario)
        start = time.monotonic()

        with structlog.contextvars.bound_contextvars(
            scenario=scenario.name, phase=config.phase.value
        ):
            logger.info("scenario_started")
            try:
                action(context)
            except UnsupportedCapability as e:
                if scenario.skip_on_unsupported:
                    status = ScenarioStatus.SKIPPED
                else:
                    status = ScenarioStatus.FAILED
                logger.info("scenario_unsupported", status=status.value, reason=e.message)
                return self._result(scenario, status, start, e)
            except Unreachable as e:
                logger.error("scenario_aborted_unreachable", error=e.message)
                report.aborted = True
                report.abort_reason = e.message
                return self._result(scenario, ScenarioStatus.FAILED, start, e)
            except HarnessError as e:
                logger.error("scenario_failed", error_type=type(e).__name__, error=e.message)
                return self._result(scenario, ScenarioStatus.FAILED, start, e)
            except Exception as e:
                logger.exception("scenario_crashed", error_type=type(e).__name__)
                return self._result(scenario, ScenarioStatus.FAILED, start, e)

            logger.info("scenario_passed")
            return self._result(scenario, ScenarioStatus.PASSED, start)

    @staticmethod
    def _result(
        scenario: Scenario,
        status: ScenarioStatus,
        start: float,
        error: Exception | None = None,
    ) -> ScenarioResult:
        return ScenarioResult(
            name=scenario.name,
            status=status,
            duration_s=time.monotonic() - start,
            reason=str(error) if error is not None else None,
            error_type=type(error).__name__ if error is not None else None,
        )
