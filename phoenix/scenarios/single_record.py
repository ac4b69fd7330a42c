"""State survival: a single stored record reads back unchanged."""

from phoenix.harness.models import ResourceRef
from phoenix.harness.scenario import Scenario, ScenarioContext, check, require_ok
from phoenix.observability.logging import get_logger

logger = get_logger(__name__)

NAME = "single_record"
INDEX = "testsingledoc"
RECORD_PATH = f"/{INDEX}/doc/1"
RECORD = '{"test":"test"}'


def _store(ctx: ScenarioContext) -> None:
    ref = ctx.resource(INDEX)
    response = ctx.client.call(
        "PUT", f"/{ref.name}/doc/1", params={"refresh": "true"}, body=RECORD
    )
    require_ok(response, f"storing {RECORD_PATH}")
    logger.info("record_stored", path=RECORD_PATH)


def _verify(ctx: ScenarioContext) -> None:
    ctx.resource(INDEX)
    response = require_ok(ctx.client.call("GET", RECORD_PATH), f"reading {RECORD_PATH}")
    check(RECORD in response.body, f"{RECORD_PATH} no longer contains {RECORD}: {response.body}")


def pre_upgrade(ctx: ScenarioContext) -> None:
    _store(ctx)
    _verify(ctx)


def post_upgrade(ctx: ScenarioContext) -> None:
    _verify(ctx)


def build() -> Scenario:
    return Scenario(
        name=NAME,
        pre_upgrade=pre_upgrade,
        post_upgrade=post_upgrade,
        resources=(ResourceRef(INDEX),),
    )
