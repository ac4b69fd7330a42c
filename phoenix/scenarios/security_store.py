"""Security store upgrade.

Principals created on the originating cluster must survive the restart.
If the store's format is outdated, writing a new principal must fail with
the recoverable "not on the current version" error until the store is
migrated, and succeed afterwards.
"""

import random
import string

from phoenix.client import ServiceResponse
from phoenix.config.models.scenarios import SecurityStoreConfig
from phoenix.harness.health import wait_for_health
from phoenix.harness.migration import await_migrated
from phoenix.harness.models import MigrationStatus, ResourceRef
from phoenix.harness.scenario import Scenario, ScenarioContext, check, require_ok
from phoenix.observability.logging import get_logger

logger = get_logger(__name__)

NAME = "security_store"
USER_PATH = "/_xpack/security/user"
ROLE_PATH = "/_xpack/security/role"

PREUPGRADE_USER = "preupgrade_user"
PREUPGRADE_ROLE = "preupgrade_role"
POSTUPGRADE_USER = "postupgrade_user"
POSTUPGRADE_ROLE = "postupgrade_role"

OUTDATED_STORE_ERROR = (
    "Security index is not on the current version. Security features relying "
    "on the index will not be available until the upgrade API is run on the security index"
)


def _user_body(name: str) -> dict:
    return {
        "password": "j@rV1s",
        "roles": ["admin", "other_role1"],
        "full_name": "".join(random.choices(string.ascii_letters, k=5)),
        "email": f"{name}@example.com",
        "enabled": True,
    }


def _role_body() -> dict:
    return {
        "run_as": ["abc"],
        "cluster": ["monitor"],
        "indices": [
            {
                "names": ["events-*"],
                "privileges": ["read"],
                "field_security": {"grant": ["category", "@timestamp", "message"]},
                "query": '{"match": {"category": "click"}}',
            }
        ],
    }


def _create_user(ctx: ScenarioContext, name: str) -> ServiceResponse:
    return ctx.client.call("PUT", f"{USER_PATH}/{name}", body=_user_body(name))


def _create_role(ctx: ScenarioContext, name: str) -> ServiceResponse:
    return ctx.client.call("PUT", f"{ROLE_PATH}/{name}", body=_role_body())


def _assert_user(ctx: ScenarioContext, name: str) -> None:
    body = require_ok(ctx.client.call("GET", f"{USER_PATH}/{name}"), f"reading user {name}").json()
    info = body.get(name)
    check(isinstance(info, dict), f"user [{name}] missing from response")
    check(info.get("email") == f"{name}@example.com", f"user [{name}] lost its email")
    check(info.get("full_name") is not None, f"user [{name}] lost its full name")
    check(info.get("roles") is not None, f"user [{name}] lost its roles")


def _assert_role(ctx: ScenarioContext, name: str) -> None:
    body = require_ok(ctx.client.call("GET", f"{ROLE_PATH}/{name}"), f"reading role {name}").json()
    info = body.get(name)
    check(isinstance(info, dict), f"role [{name}] missing from response")
    for key in ("run_as", "cluster", "indices"):
        check(info.get(key) is not None, f"role [{name}] lost [{key}]")


def _concrete_store(ctx: ScenarioContext, alias: ResourceRef) -> ResourceRef:
    """Resolve the store alias to the concrete resource behind it."""
    response = ctx.client.call("GET", f"/{alias.name}/_settings/index.format")
    settings = response.json() if response.ok else {}
    if not settings:
        return alias
    return ResourceRef(next(iter(settings)), alias.kind)


def pre_upgrade(ctx: ScenarioContext) -> None:
    user = ctx.resource(PREUPGRADE_USER, "user").name
    role = ctx.resource(PREUPGRADE_ROLE, "role").name
    require_ok(_create_user(ctx, user), f"creating user {user}")
    require_ok(_create_role(ctx, role), f"creating role {role}")
    _assert_user(ctx, user)
    _assert_role(ctx, role)


def make_post_upgrade(config: SecurityStoreConfig):
    def post_upgrade(ctx: ScenarioContext) -> None:
        alias = ctx.resource(config.store_name)
        pre_user = ctx.resource(PREUPGRADE_USER, "user").name
        pre_role = ctx.resource(PREUPGRADE_ROLE, "role").name
        wait_for_health(ctx.client, ctx.resolver, ctx.config.old_version, alias.name)
        store = _concrete_store(ctx, alias)

        status = ctx.detector.detect([store])[store]
        logger.info("security_store_status", store=str(store), status=status.value)

        if status is MigrationStatus.REQUIRED:
            response = _create_user(ctx, POSTUPGRADE_USER)
            check(not response.ok, "created a user before the security store was migrated")
            check(
                OUTDATED_STORE_ERROR in response.body,
                f"expected outdated store error, got status {response.status}: {response.body}",
            )
            outcome = ctx.trigger.migrate(store)
            logger.info("security_store_migrated", store=str(store), outcome=repr(outcome))

        if status in (MigrationStatus.REQUIRED, MigrationStatus.IN_PROGRESS):
            await_migrated(
                ctx.detector, ctx.poller, [store], config.poll.interval, config.poll.timeout
            )

        require_ok(_create_user(ctx, POSTUPGRADE_USER), f"creating user {POSTUPGRADE_USER}")
        require_ok(_create_role(ctx, POSTUPGRADE_ROLE), f"creating role {POSTUPGRADE_ROLE}")

        _assert_user(ctx, pre_user)
        _assert_role(ctx, pre_role)
        _assert_user(ctx, POSTUPGRADE_USER)
        _assert_role(ctx, POSTUPGRADE_ROLE)

    return post_upgrade


def build(config: SecurityStoreConfig) -> Scenario:
    return Scenario(
        name=NAME,
        pre_upgrade=pre_upgrade,
        post_upgrade=make_post_upgrade(config),
        resources=(
            ResourceRef(config.store_name),
            ResourceRef(PREUPGRADE_USER, "user"),
            ResourceRef(PREUPGRADE_ROLE, "role"),
        ),
    )
