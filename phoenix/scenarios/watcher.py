"""Watcher store upgrade.

Scheduled watches stored on the originating cluster keep their backing
stores (``.watches`` and ``.triggered_watches``). After the restart those
stores may need migration before the watcher service can start again.
Once it runs, the stored watches must read back with their time values
intact, the legacy index templates must be gone, and new watches must
still be writable.
"""

from phoenix.config.models.scenarios import WatcherConfig
from phoenix.harness.health import wait_for_health
from phoenix.harness.migration import PENDING, migrate_pending
from phoenix.harness.models import Converged, Fatal, NotYetConverged, PollOutcome, ResourceRef
from phoenix.harness.object_path import extract
from phoenix.harness.resolver import WATCHER_SERVICE
from phoenix.harness.scenario import Scenario, ScenarioContext, check, require_ok
from phoenix.observability.logging import get_logger

logger = get_logger(__name__)

NAME = "watcher"
OUTPUT_INDEX = "bwc_watch_index"
OUTPUT_TYPE = "bwc_watch_type"
HISTORY_INDEX = ".watcher-history*"
WATCH_STORES = (".watches", ".triggered_watches")
HEALTH_RESOURCES = f".watches,{OUTPUT_INDEX},{HISTORY_INDEX}"

# Templates the pre-6.x watcher installed; the upgrade replaces them
LEGACY_TEMPLATES = frozenset({"watches", "triggered_watches"})
LEGACY_TEMPLATE_PREFIX = "watch-history"

TIMEOUT_MILLIS = 100_000
REPORT_ATTACHMENT = "test_report.pdf"
REPORT_USER = "Aladdin"
HIDDEN_PASSWORD_PREFIX = "::es_encrypted::"
REDACTED_PASSWORD = "::es_redacted::"
NEW_WATCH = "new_watch"


def _search(timeout: str) -> dict:
    return {
        "request": {"indices": [".watches"], "body": {"size": 0, "query": {"match_all": {}}}},
        "timeout": timeout,
    }


def _indexing_watch(throttle_period: str, action_throttle_period: str | None = None) -> dict:
    action = {
        "transform": {"search": _search("100s")},
        "index": {"index": OUTPUT_INDEX, "doc_type": OUTPUT_TYPE, "timeout": "100s"},
    }
    if action_throttle_period:
        action["throttle_period"] = action_throttle_period
    return {
        "trigger": {"schedule": {"interval": "1s"}},
        "input": {"search": _search("100s")},
        "condition": {"always": {}},
        "throttle_period": throttle_period,
        "actions": {"index_payload": action},
    }


def _report_watch() -> dict:
    """Email a report fetched over http with a read timeout given in fractional minutes."""
    request = {
        "scheme": "https",
        "host": "example.com",
        "port": 8443,
        "path": "{{ctx.metadata.report_url}}",
        "read_timeout": "1.6666666666666667m",
        "auth": {"basic": {"username": REPORT_USER, "password": "open sesame"}},
    }
    return {
        "metadata": {"report_url": "/api/report"},
        "trigger": {"schedule": {"interval": "100s"}},
        "input": {"none": {}},
        "condition": {"always": {}},
        "actions": {
            "work": {
                "email": {
                    "to": "ops@example.com",
                    "subject": "Report",
                    "attachments": {
                        REPORT_ATTACHMENT: {
                            "http": {"content_type": "application/pdf", "request": request}
                        }
                    },
                }
            }
        },
    }


def _logging_watch() -> dict:
    return {
        "trigger": {"schedule": {"interval": "1s"}},
        "input": {"none": {}},
        "condition": {"always": {}},
        "actions": {"awesome": {"logging": {"text": "test"}}},
    }


WATCHES: dict[str, dict] = {
    "bwc_watch": _indexing_watch(throttle_period="1s"),
    "bwc_throttle_period": _indexing_watch(throttle_period="100s", action_throttle_period="100s"),
    "bwc_funny_timeout": _report_watch(),
}

# Fields the service reports back for the stored watches, keyed by object path
STORED_FIELDS: dict[str, dict[str, object]] = {
    "bwc_watch": {
        "throttle_period_in_millis": 1000,
        "input.search.timeout_in_millis": TIMEOUT_MILLIS,
        "actions.index_payload.transform.search.timeout_in_millis": TIMEOUT_MILLIS,
        "actions.index_payload.index.index": OUTPUT_INDEX,
        "actions.index_payload.index.doc_type": OUTPUT_TYPE,
        "actions.index_payload.index.timeout_in_millis": TIMEOUT_MILLIS,
    },
    "bwc_throttle_period": {
        "throttle_period_in_millis": TIMEOUT_MILLIS,
        "actions.index_payload.throttle_period_in_millis": TIMEOUT_MILLIS,
    },
}

REPORT_REQUEST_FIELDS: dict[str, object] = {
    "read_timeout_millis": TIMEOUT_MILLIS,
    "scheme": "https",
    "host": "example.com",
    "path": "{{ctx.metadata.report_url}}",
    "port": 8443,
}


def _total_hits(body: dict) -> int:
    total = extract(body, "hits.total")
    # Newer versions report {"value": n, "relation": "eq"}
    if isinstance(total, dict):
        total = total.get("value")
    if isinstance(total, bool) or not isinstance(total, int):
        raise ValueError(f"unexpected hits.total: {total!r}")
    return total


def wait_for_hits(ctx: ScenarioContext, index: str, config: WatcherConfig) -> int:
    """Poll a search on ``index`` until it has at least ``config.min_hits`` hits."""

    def enough_hits() -> PollOutcome:
        response = ctx.client.call("GET", f"/{index}/_search", params={"size": "0"})
        # 503 while shards are not yet active, 404 until the first write
        if response.status in (404, 503):
            return NotYetConverged(observed=f"status {response.status}")
        if not response.ok:
            return Fatal(f"search on [{index}] answered {response.status}", details=response.body)
        try:
            hits = _total_hits(response.json())
        except ValueError as e:
            return Fatal(str(e))
        if hits >= config.min_hits:
            return Converged(hits)
        return NotYetConverged(observed=hits)

    return ctx.poller.await_convergence(
        enough_hits,
        config.poll.interval,
        config.poll.timeout,
        description=f"[{index}] has {config.min_hits} hits",
    )


def wait_for_watcher_state(ctx: ScenarioContext, expected: str, config: WatcherConfig) -> None:
    """Poll watcher stats until every node reports ``expected``."""
    stats_path = ctx.resolver.resolve(WATCHER_SERVICE, ctx.config.serving_version)["stats_path"]

    def all_nodes_in_state() -> PollOutcome:
        response = ctx.client.call("GET", stats_path)
        if response.status == 503:
            return NotYetConverged(observed="stats unavailable")
        if not response.ok:
            return Fatal(f"watcher stats answered {response.status}", details=response.body)
        states = [node.get("watcher_state") for node in response.json().get("stats") or []]
        if states and all(state == expected for state in states):
            return Converged(states)
        return NotYetConverged(observed=states)

    ctx.poller.await_convergence(
        all_nodes_in_state,
        config.poll.interval,
        config.poll.timeout,
        description=f"watcher {expected}",
    )


def read_watch(ctx: ScenarioContext, watch_path: str, name: str) -> dict:
    """Fetch watch ``name`` and return its source."""
    found = require_ok(
        ctx.client.call("GET", f"{watch_path}/{name}"), f"reading watch {name}"
    ).json()
    check(found.get("found") is True, f"watch {name} not found")
    source = found.get("watch")
    check(isinstance(source, dict), f"watch {name} has no source: {found}")
    return source


def check_legacy_templates_removed(ctx: ScenarioContext) -> None:
    templates = require_ok(ctx.client.call("GET", "/_template"), "listing templates").json()
    leftover = sorted(
        name
        for name in templates
        if name in LEGACY_TEMPLATES or name.startswith(LEGACY_TEMPLATE_PREFIX)
    )
    check(not leftover, f"legacy watcher templates survived the upgrade: {leftover}")


def check_stored_watches(ctx: ScenarioContext, watch_path: str, config: WatcherConfig) -> None:
    """Verify the pre-upgrade watches kept their time values and the history its hits."""
    for name, fields in STORED_FIELDS.items():
        source = read_watch(ctx, watch_path, ctx.resource(name, "watch").name)
        for path, expected in fields.items():
            actual = extract(source, path, default=None)
            check(actual == expected, f"watch {name} [{path}] is {actual!r}, expected {expected!r}")

    name = ctx.resource("bwc_funny_timeout", "watch").name
    source = read_watch(ctx, watch_path, name)
    attachments = extract(source, "actions.work.email.attachments", default={})
    request = extract(attachments.get(REPORT_ATTACHMENT, {}), "http.request", default={})
    for field, expected in REPORT_REQUEST_FIELDS.items():
        actual = request.get(field)
        check(
            actual == expected,
            f"watch {name} request [{field}] is {actual!r}, expected {expected!r}",
        )

    basic = extract(request, "auth.basic", default={})
    check(basic.get("username") == REPORT_USER, f"watch {name} lost its basic auth user")
    # The password only ever comes back hidden
    password = str(basic.get("password"))
    check(
        password.startswith(HIDDEN_PASSWORD_PREFIX) or password == REDACTED_PASSWORD,
        f"watch {name} returned its password unprotected",
    )

    wait_for_hits(ctx, HISTORY_INDEX, config)


def check_watch_updates(ctx: ScenarioContext, watch_path: str) -> None:
    """Store a new watch twice and read it back."""
    for version, created in ((1, True), (2, False)):
        put = require_ok(
            ctx.client.call("PUT", f"{watch_path}/{NEW_WATCH}", body=_logging_watch()),
            f"storing watch {NEW_WATCH}",
        ).json()
        check(put.get("created") is created, f"watch {NEW_WATCH} created={put.get('created')}")
        check(
            put.get("_version") == version,
            f"watch {NEW_WATCH} has version {put.get('_version')}, expected {version}",
        )

    logging_action = extract(
        read_watch(ctx, watch_path, NEW_WATCH), "actions.awesome.logging", default={}
    )
    check(logging_action.get("level") == "info", f"unexpected logging level: {logging_action}")
    check(logging_action.get("text") == "test", f"unexpected logging text: {logging_action}")


def stop_watcher(ctx: ScenarioContext, stop_path: str, config: WatcherConfig) -> None:
    stopped = require_ok(ctx.client.call("POST", stop_path), "stopping watcher")
    check(stopped.json().get("acknowledged") is True, "watcher stop not acknowledged")
    wait_for_watcher_state(ctx, "stopped", config)


def make_pre_upgrade(config: WatcherConfig):
    def pre_upgrade(ctx: ScenarioContext) -> None:
        service = ctx.resolver.resolve(WATCHER_SERVICE, ctx.config.serving_version)
        for name, body in WATCHES.items():
            ref = ctx.resource(name, "watch")
            response = ctx.client.call("PUT", f"{service['watch_path']}/{ref.name}", body=body)
            require_ok(response, f"storing {ref}")
            logger.info("watch_stored", watch=ref.name)

        wait_for_health(ctx.client, ctx.resolver, ctx.config.old_version, HEALTH_RESOURCES)
        wait_for_hits(ctx, ctx.resource(OUTPUT_INDEX).name, config)
        wait_for_hits(ctx, HISTORY_INDEX, config)

    return pre_upgrade


def make_post_upgrade(config: WatcherConfig):
    def post_upgrade(ctx: ScenarioContext) -> None:
        service = ctx.resolver.resolve(WATCHER_SERVICE, ctx.config.serving_version)
        wait_for_health(ctx.client, ctx.resolver, ctx.config.old_version, HEALTH_RESOURCES)

        stores = [ctx.resource(name) for name in WATCH_STORES]
        outcomes = migrate_pending(
            ctx.detector,
            ctx.trigger,
            ctx.poller,
            stores,
            config.poll.interval,
            config.poll.timeout,
        )
        for ref, outcome in outcomes.items():
            logger.info("watch_store_migrated", store=str(ref), outcome=repr(outcome))

        remaining = ctx.detector.detect(stores)
        pending = sorted(str(ref) for ref, status in remaining.items() if status in PENDING)
        check(not pending, f"watch stores still need migration: {pending}")

        started = require_ok(ctx.client.call("POST", service["start_path"]), "starting watcher")
        check(started.json().get("acknowledged") is True, "watcher start not acknowledged")
        wait_for_watcher_state(ctx, "started", config)

        # Watcher is stopped after every run, even a failed one
        try:
            check_legacy_templates_removed(ctx)
            check_stored_watches(ctx, service["watch_path"], config)
            check_watch_updates(ctx, service["watch_path"])
        except Exception:
            try:
                stop_watcher(ctx, service["stop_path"], config)
            except Exception:
                logger.exception("watcher_stop_failed")
            raise
        stop_watcher(ctx, service["stop_path"], config)

    return post_upgrade


def build(config: WatcherConfig) -> Scenario:
    return Scenario(
        name=NAME,
        pre_upgrade=make_pre_upgrade(config),
        post_upgrade=make_post_upgrade(config),
        resources=(
            *(ResourceRef(name) for name in WATCH_STORES),
            ResourceRef(OUTPUT_INDEX),
            *(ResourceRef(name, "watch") for name in WATCHES),
        ),
    )
