"""Per-scenario configuration models.

Poll budgets and accepted converged states vary by scenario, so each
scenario carries its own values instead of sharing a global default.
"""

from pydantic import BaseModel, Field, field_validator

from phoenix.harness.models import JobState


class PollConfig(BaseModel):
    """Bounded poll budget for one call site."""

    interval: float = Field(default=1.0, gt=0, description="Seconds between attempts")
    timeout: float = Field(default=30.0, gt=0, description="Wall-clock budget in seconds")


class SecurityStoreConfig(BaseModel):
    """Security store upgrade scenario configuration."""

    enabled: bool = Field(default=True, description="Run this scenario")
    store_name: str = Field(default=".security", description="Security store alias")
    poll: PollConfig = Field(default_factory=PollConfig, description="Migration completion budget")


class JobPersistenceConfig(BaseModel):
    """Background job persistence scenario configuration."""

    enabled: bool = Field(default=True, description="Run this scenario")
    job_id: str = Field(default="rollup-job-test", description="Rollup job identifier")
    num_docs: int = Field(default=59, ge=1, le=59, description="Documents to seed")
    accepted_states: list[JobState] = Field(
        default_factory=lambda: [JobState.STARTED, JobState.INDEXING],
        description="Job states considered converged",
    )
    poll: PollConfig = Field(default_factory=PollConfig, description="Convergence budget")

    @field_validator("accepted_states")
    @classmethod
    def _not_empty(cls, value: list[JobState]) -> list[JobState]:
        if not value:
            raise ValueError("accepted_states must not be empty")
        return value


class WatcherConfig(BaseModel):
    """Watcher store upgrade scenario configuration."""

    enabled: bool = Field(default=True, description="Run this scenario")
    min_hits: int = Field(default=2, ge=1, description="Hits expected per index")
    poll: PollConfig = Field(default_factory=PollConfig, description="Convergence budget")


class ScenariosConfig(BaseModel):
    """Configuration for every scenario module."""

    single_record_enabled: bool = Field(default=True, description="Run state survival")
    incompatible_index_enabled: bool = Field(
        default=True, description="Run incompatible-state rejection"
    )
    security_store: SecurityStoreConfig = Field(default_factory=SecurityStoreConfig)
    job_persistence: JobPersistenceConfig = Field(default_factory=JobPersistenceConfig)
    watcher: WatcherConfig = Field(default_factory=WatcherConfig)
