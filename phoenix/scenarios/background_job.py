"""Background job persistence.

A rollup job started on the originating cluster must come back running
after the restart. Its state is read from three places that may lag each
other: the job API, the task list and the persistent task records in
cluster metadata. The job only counts as converged when all three report
an accepted state.
"""

import random
from collections.abc import Collection
from dataclasses import dataclass

from phoenix.config.models.scenarios import JobPersistenceConfig
from phoenix.harness.health import wait_for_health
from phoenix.harness.models import (
    Converged,
    Fatal,
    JobState,
    NotYetConverged,
    PersistentTaskRecord,
    PollOutcome,
    ResourceRef,
)
from phoenix.harness.object_path import extract
from phoenix.harness.resolver import PERSISTENT_TASK_STATE_FIELD, ROLLUP_JOBS, Resolver
from phoenix.harness.scenario import Scenario, ScenarioContext, check, require_ok, requires
from phoenix.observability.logging import get_logger

logger = get_logger(__name__)

NAME = "background_job"
SOURCE_INDEX = "rollup-docs"
ROLLUP_INDEX = "results-rollup"
UNAVAILABLE = 503


@dataclass(frozen=True)
class JobObservation:
    """Job state as seen by each observation endpoint in one attempt."""

    job_api: JobState | None
    task_list: JobState | None
    persistent_task: PersistentTaskRecord | None

    def states(self) -> list[JobState | None]:
        record = self.persistent_task
        return [self.job_api, self.task_list, record.state_value if record else None]

    def agrees_on(self, accepted: Collection[JobState]) -> bool:
        return all(state in accepted for state in self.states())


def _bulk_body(index: str, year: int, count: int) -> str:
    lines = []
    for i in range(count):
        lines.append(f'{{"index":{{"_index":"{index}","_type":"doc"}}}}')
        lines.append(f'{{"timestamp":"{year:04d}-01-01T00:{i:02d}:00Z","value":{i}}}')
    return "\n".join(lines) + "\n"


def _job_body() -> dict:
    return {
        "index_pattern": "rollup-*",
        "rollup_index": ROLLUP_INDEX,
        "cron": "*/30 * * * * ?",
        "page_size": 100,
        "groups": {"date_histogram": {"field": "timestamp", "interval": "5m"}},
        "metrics": [{"field": "value", "metrics": ["min", "max", "sum"]}],
    }


def _find_job(body: dict, job_id: str) -> dict | None:
    for job in body.get("jobs") or []:
        if extract(job, "config.id", default=None) == job_id:
            return job
    return None


def observe(
    ctx: ScenarioContext,
    job_id: str,
    accepted: Collection[JobState],
) -> PollOutcome:
    """Read the job state from all three endpoints once."""
    serving = ctx.config.serving_version
    rollup = ctx.resolver.resolve(ROLLUP_JOBS, serving)
    state_field = ctx.resolver.resolve(PERSISTENT_TASK_STATE_FIELD, serving)["field"]

    job_response = ctx.client.call("GET", f"{rollup['job_path']}/{job_id}")
    if job_response.status == UNAVAILABLE:
        return NotYetConverged(observed="job api unavailable")
    if not job_response.ok:
        return Fatal(f"job api answered {job_response.status}", details=job_response.body)
    job = _find_job(job_response.json(), job_id)
    job_state = JobState.parse(extract(job, "status.job_state")) if job else None

    task_response = ctx.client.call(
        "GET", "/_tasks", params={"detailed": "true", "actions": rollup["task_actions"]}
    )
    if task_response.status == UNAVAILABLE:
        return NotYetConverged(observed="task list unavailable")
    if not task_response.ok:
        return Fatal(f"task list answered {task_response.status}", details=task_response.body)
    task_state = None
    for node in (task_response.json().get("nodes") or {}).values():
        for task in (node.get("tasks") or {}).values():
            task_state = JobState.parse(extract(task, "status.job_state", default=None))
            break
        if task_state is not None:
            break

    state_response = ctx.client.call("GET", "/_cluster/state/metadata")
    if state_response.status == UNAVAILABLE:
        return NotYetConverged(observed="cluster state unavailable")
    if not state_response.ok:
        return Fatal(f"cluster state answered {state_response.status}", details=state_response.body)
    tasks = extract(state_response.json(), "metadata.persistent_tasks.tasks", default=[])
    record = None
    for task in tasks:
        if task.get("id") == job_id:
            path = f"task.{rollup['task_name']}.{state_field}.job_state"
            value = extract(task, path, default=None)
            record = PersistentTaskRecord(
                id=job_id, state_field=state_field, state_value=JobState.parse(value)
            )
            break
    if record is None:
        return Fatal(f"no persistent task record for job [{job_id}]", details=tasks)

    observation = JobObservation(job_api=job_state, task_list=task_state, persistent_task=record)
    if observation.agrees_on(accepted):
        return Converged(observation)
    return NotYetConverged(observed=observation)


def assert_job_running(ctx: ScenarioContext, config: JobPersistenceConfig) -> JobObservation:
    """Poll until every endpoint reports the job in an accepted state."""
    job_id = ctx.resource(config.job_id, "job").name
    accepted = frozenset(config.accepted_states)
    observation = ctx.poller.await_convergence(
        lambda: observe(ctx, job_id, accepted),
        config.poll.interval,
        config.poll.timeout,
        description=f"rollup job [{job_id}] in {sorted(s.value for s in accepted)}",
    )
    logger.info(
        "rollup_job_converged",
        job_id=job_id,
        states=[state.value if state else None for state in observation.states()],
        state_field=observation.persistent_task.state_field,
    )
    return observation


def make_pre_upgrade(config: JobPersistenceConfig):
    def pre_upgrade(ctx: ScenarioContext) -> None:
        job_id = ctx.resource(config.job_id, "job").name
        source = ctx.resource(SOURCE_INDEX).name
        rollup = ctx.resolver.resolve(ROLLUP_JOBS, ctx.config.serving_version)
        year = random.randint(1970, 2018)

        bulk = require_ok(
            ctx.client.call(
                "POST",
                "/_bulk",
                params={"refresh": "true"},
                body=_bulk_body(source, year, config.num_docs),
                content_type="application/x-ndjson",
            ),
            "indexing rollup source documents",
        ).json()
        check(bulk.get("errors") is not True, f"bulk indexing reported errors: {bulk}")

        created = require_ok(
            ctx.client.call("PUT", f"{rollup['job_path']}/{job_id}", body=_job_body()),
            f"creating rollup job {job_id}",
        ).json()
        check(created.get("acknowledged") is True, f"rollup job {job_id} not acknowledged")

        started = require_ok(
            ctx.client.call("POST", f"{rollup['job_path']}/{job_id}/_start"),
            f"starting rollup job {job_id}",
        ).json()
        check(started.get("started") is True, f"rollup job {job_id} did not start")

        assert_job_running(ctx, config)

    return pre_upgrade


def make_post_upgrade(config: JobPersistenceConfig):
    def post_upgrade(ctx: ScenarioContext) -> None:
        wait_for_health(ctx.client, ctx.resolver, ctx.config.old_version)
        assert_job_running(ctx, config)

    return post_upgrade


def build(config: JobPersistenceConfig, resolver: Resolver) -> Scenario:
    return Scenario(
        name=NAME,
        pre_upgrade=make_pre_upgrade(config),
        post_upgrade=make_post_upgrade(config),
        applies_to=requires(resolver, ROLLUP_JOBS),
        resources=(ResourceRef(config.job_id, "job"), ResourceRef(SOURCE_INDEX)),
    )
