"""Tests for scenario definitions and contexts."""

import pytest

from phoenix.client import ServiceResponse
from phoenix.harness.errors import ContinuityError, ScenarioAssertionError
from phoenix.harness.models import HarnessConfig, Phase, ResourceRef, ServiceVersion
from phoenix.harness.resolver import ROLLUP_JOBS, SINGLE_TYPE_INDICES, default_resolver
from phoenix.harness.scenario import (
    Scenario,
    always,
    check,
    predates,
    require_ok,
    requires,
)
from tests.factories import FakeService, make_context, make_harness, reply


def noop(_ctx) -> None:
    pass


DECLARED = Scenario(
    name="declared",
    pre_upgrade=noop,
    post_upgrade=noop,
    resources=(ResourceRef("testsingledoc"), ResourceRef("preupgrade_user", "user")),
)


class TestResourceContinuity:
    """Tests for ScenarioContext.resource."""

    @pytest.mark.parametrize("phase", list(Phase))
    def test_declared_resource(self, service: FakeService, phase: Phase) -> None:
        """Declared resources resolve identically in both phases."""
        ctx = make_context(service, DECLARED, phase=phase)
        assert ctx.resource("testsingledoc") == ResourceRef("testsingledoc")
        assert ctx.resource("preupgrade_user", "user") == ResourceRef("preupgrade_user", "user")

    def test_undeclared_after_upgrade(self, service: FakeService) -> None:
        """The post-upgrade half cannot rely on something never created."""
        ctx = make_context(service, DECLARED, phase=Phase.POST_UPGRADE)
        with pytest.raises(ContinuityError, match="no pre-upgrade half created"):
            ctx.resource("other")

    def test_undeclared_before_upgrade(self, service: FakeService) -> None:
        """The pre-upgrade half cannot create undeclared resources."""
        ctx = make_context(service, DECLARED, phase=Phase.PRE_UPGRADE)
        with pytest.raises(ContinuityError, match="undeclared"):
            ctx.resource("other")

    def test_kind_is_part_of_identity(self, service: FakeService) -> None:
        """A user and an index with the same name are different resources."""
        ctx = make_context(service, DECLARED)
        with pytest.raises(ContinuityError):
            ctx.resource("testsingledoc", "user")

    def test_upgrade_independent(self, service: FakeService) -> None:
        """Upgrade-independent scenarios may use any resource."""
        scenario = Scenario("free", noop, noop, upgrade_independent=True)
        ctx = make_context(service, scenario)
        assert ctx.resource("anything") == ResourceRef("anything")


class TestApplicability:
    """Tests for applicability predicates."""

    def test_always(self) -> None:
        assert always(ServiceVersion(5, 0))

    def test_requires(self) -> None:
        """requires holds once the capability exists."""
        applies = requires(default_resolver(), ROLLUP_JOBS)
        assert not applies(ServiceVersion(6, 2, 4))
        assert applies(ServiceVersion(6, 3, 0))

    def test_predates(self) -> None:
        """predates holds only before the capability exists."""
        applies = predates(default_resolver(), SINGLE_TYPE_INDICES)
        assert applies(ServiceVersion(5, 6, 9))
        assert not applies(ServiceVersion(6, 0, 0))


class TestHarnessCreate:
    """Tests for Harness.create."""

    def test_migration_endpoints_wired(self, service: FakeService) -> None:
        """Detector and trigger talk to the migration assistance endpoints."""
        config = HarnessConfig(Phase.POST_UPGRADE, ServiceVersion(6, 3, 2))
        service.on("GET", "/_xpack/migration/assistance", reply(body={"indices": {}}))
        service.on("POST", "/_xpack/migration/upgrade/.watches", reply(body={"total": 0}))

        harness = make_harness(service, config)
        harness.detector.detect([ResourceRef(".watches")])
        harness.trigger.migrate(ResourceRef(".watches"))

        assert [call.path for call in service.calls] == [
            "/_xpack/migration/assistance",
            "/_xpack/migration/upgrade/.watches",
        ]


class TestAssertions:
    """Tests for check and require_ok."""

    def test_check(self) -> None:
        check(True, "unused")
        with pytest.raises(ScenarioAssertionError, match="record lost"):
            check(False, "record lost")

    def test_require_ok(self) -> None:
        """Returns the response on success, raises with the body otherwise."""
        ok = ServiceResponse(201, "{}")
        assert require_ok(ok, "creating") is ok
        with pytest.raises(ScenarioAssertionError, match="creating failed with status 409"):
            require_ok(ServiceResponse(409, '{"error":"exists"}'), "creating")
