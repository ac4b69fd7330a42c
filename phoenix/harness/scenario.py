"""Scenario definition and the collaborators handed to each scenario.

A scenario is a pair of actions, one per phase. The halves run in separate
processes and share nothing but the resources the pre-upgrade half creates,
which both halves derive from the scenario's declared resource list.
"""

from collections.abc import Callable
from dataclasses import dataclass

from phoenix.client import ServiceClient, ServiceResponse
from phoenix.harness.detector import MigrationDetector
from phoenix.harness.errors import ContinuityError, ScenarioAssertionError
from phoenix.harness.models import HarnessConfig, ResourceRef, ServiceVersion
from phoenix.harness.poller import ConvergencePoller
from phoenix.harness.resolver import MIGRATION_ASSISTANCE, Resolver
from phoenix.harness.trigger import MigrationTrigger

ScenarioAction = Callable[["ScenarioContext"], None]
Applicability = Callable[[ServiceVersion], bool]


def always(_version: ServiceVersion) -> bool:
    return True


def requires(resolver: Resolver, capability: str) -> Applicability:
    """Applicable when the originating version has ``capability``."""
    return lambda version: resolver.supports(capability, version)


def predates(resolver: Resolver, capability: str) -> Applicability:
    """Applicable when the originating version does not yet have ``capability``."""
    return lambda version: not resolver.supports(capability, version)


@dataclass(frozen=True)
class Scenario:
    """One verification flow across the restart.

    Attributes:
        name: Unique scenario name
        pre_upgrade: Action run against the originating cluster
        post_upgrade: Action run against the upgraded cluster
        applies_to: Predicate over the originating version; inapplicable
            scenarios are skipped
        resources: Resources the pre-upgrade half creates
        upgrade_independent: True when the post-upgrade half does not rely
            on pre-upgrade resources
        skip_on_unsupported: Skip instead of fail when an action hits a
            capability the version lacks
    """

    name: str
    pre_upgrade: ScenarioAction
    post_upgrade: ScenarioAction
    applies_to: Applicability = always
    resources: tuple[ResourceRef, ...] = ()
    upgrade_independent: bool = False
    skip_on_unsupported: bool = True


@dataclass
class Harness:
    """Collaborators shared by every scenario of a run."""

    client: ServiceClient
    resolver: Resolver
    poller: ConvergencePoller
    detector: MigrationDetector
    trigger: MigrationTrigger

    @classmethod
    def create(
        cls,
        client: ServiceClient,
        config: HarnessConfig,
        resolver: Resolver,
        poller: ConvergencePoller | None = None,
    ) -> "Harness":
        """Wire the detector and trigger to the endpoints the serving version exposes."""
        if resolver.supports(MIGRATION_ASSISTANCE, config.serving_version):
            paths = resolver.resolve(MIGRATION_ASSISTANCE, config.serving_version)
            detector = MigrationDetector(client, assistance_path=paths["assistance_path"])
            trigger = MigrationTrigger(client, upgrade_path=paths["upgrade_path"])
        else:
            detector = MigrationDetector(client)
            trigger = MigrationTrigger(client)
        return cls(
            client=client,
            resolver=resolver,
            poller=poller or ConvergencePoller(),
            detector=detector,
            trigger=trigger,
        )


@dataclass
class ScenarioContext:
    """Everything one scenario half may use."""

    config: HarnessConfig
    harness: Harness
    scenario: Scenario

    @property
    def client(self) -> ServiceClient:
        return self.harness.client

    @property
    def resolver(self) -> Resolver:
        return self.harness.resolver

    @property
    def poller(self) -> ConvergencePoller:
        return self.harness.poller

    @property
    def detector(self) -> MigrationDetector:
        return self.harness.detector

    @property
    def trigger(self) -> MigrationTrigger:
        return self.harness.trigger

    def resource(self, name: str, kind: str = "index") -> ResourceRef:
        """Return the declared resource ``name``.

        Raises:
            ContinuityError: If the post-upgrade half asks for a resource the
                scenario never declared, unless the scenario is
                upgrade independent
        """
        ref = ResourceRef(name=name, kind=kind)
        if ref in self.scenario.resources or self.scenario.upgrade_independent:
            return ref
        if self.config.is_pre_upgrade:
            raise ContinuityError(
                f"scenario [{self.scenario.name}] creates undeclared resource {ref}"
            )
        raise ContinuityError(
            f"scenario [{self.scenario.name}] uses {ref} which no pre-upgrade half created"
        )


def check(condition: bool, message: str) -> None:
    """Raise ScenarioAssertionError with ``message`` unless ``condition`` holds."""
    if not condition:
        raise ScenarioAssertionError(message)


def require_ok(response: ServiceResponse, action: str) -> ServiceResponse:
    """Raise ScenarioAssertionError unless ``response`` has a 2xx status."""
    if not response.ok:
        raise ScenarioAssertionError(
            f"{action} failed with status {response.status}: {response.body}"
        )
    return response
