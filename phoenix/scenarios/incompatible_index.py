"""Incompatible-state rejection.

Before single-type indices were enforced an index could hold two mapping
types. After the upgrade, querying such an index through SQL must fail with
a stable, specific error instead of answering.
"""

from phoenix.harness.models import ResourceRef
from phoenix.harness.resolver import SINGLE_TYPE_INDICES, Resolver
from phoenix.harness.scenario import Scenario, ScenarioContext, check, predates, require_ok

NAME = "incompatible_index"
INDEX = "testsqlfailsonindexwithtwotypes"
TYPES = ("type1", "type2")
EXPECTED_STATUS = 400
EXPECTED_ERROR = (
    f"[{INDEX}] contains more than one type [{', '.join(TYPES)}] "
    "so it is incompatible with sql"
)


def pre_upgrade(ctx: ScenarioContext) -> None:
    ref = ctx.resource(INDEX)
    for doc_type in TYPES:
        require_ok(
            ctx.client.call("POST", f"/{ref.name}/{doc_type}", body={}),
            f"indexing into [{ref.name}/{doc_type}]",
        )


def post_upgrade(ctx: ScenarioContext) -> None:
    ref = ctx.resource(INDEX)
    response = ctx.client.call(
        "POST", "/_xpack/sql", body={"query": f"SELECT * FROM {ref.name}"}
    )
    check(
        response.status == EXPECTED_STATUS,
        f"expected status {EXPECTED_STATUS} querying [{ref.name}], got {response.status}",
    )
    check(
        EXPECTED_ERROR in response.body,
        f"expected error [{EXPECTED_ERROR}], got: {response.body}",
    )


def build(resolver: Resolver) -> Scenario:
    return Scenario(
        name=NAME,
        pre_upgrade=pre_upgrade,
        post_upgrade=post_upgrade,
        applies_to=predates(resolver, SINGLE_TYPE_INDICES),
        resources=(ResourceRef(INDEX),),
    )
