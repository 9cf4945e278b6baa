"""Read-only run records exposed by the orchestrator."""

from dataclasses import dataclass, field, replace

from enhancer.pipeline.models import STAGE_ORDER, PipelineStage, PipelineStatus, StageStatus

STAGE_WEIGHTS: dict[PipelineStage, int] = {
    PipelineStage.INITIAL_ANALYSIS: 20,
    PipelineStage.ENHANCEMENT_PLANNING: 30,
    PipelineStage.ASSET_GENERATION: 30,
    PipelineStage.FINAL_COMPOSITION: 20,
}

FINISHED_STAGE_STATUSES = frozenset({StageStatus.COMPLETED, StageStatus.SKIPPED})


@dataclass(frozen=True)
class StageRecord:
    stage: PipelineStage
    status: StageStatus = StageStatus.PENDING
    started_at: float | None = None
    ended_at: float | None = None
    from_cache: bool = False
    error: str | None = None
    result: object | None = None

    @property
    def duration_ms(self) -> int:
        if self.started_at is None or self.ended_at is None:
            return 0
        return max(0, round((self.ended_at - self.started_at) * 1000))


@dataclass(frozen=True)
class PipelineError:
    stage: PipelineStage | None
    message: str
    code: str
    timestamp: float


@dataclass(frozen=True)
class PipelineState:
    """Snapshot of one run. A new snapshot is produced on every change."""

    pipeline_id: str
    status: PipelineStatus
    created_at: float
    updated_at: float
    current_stage: PipelineStage | None = None
    progress: int = 0
    stages: tuple[StageRecord, ...] = field(
        default_factory=lambda: tuple(StageRecord(stage) for stage in STAGE_ORDER)
    )
    errors: tuple[PipelineError, ...] = ()

    def stage(self, stage: PipelineStage) -> StageRecord:
        for record in self.stages:
            if record.stage is stage:
                return record
        raise KeyError(stage)

    def with_stage(self, record: StageRecord, now: float) -> "PipelineState":
        stages = tuple(record if s.stage is record.stage else s for s in self.stages)
        return replace(self, stages=stages, updated_at=now)

    def completed_stages(self) -> tuple[PipelineStage, ...]:
        return tuple(s.stage for s in self.stages if s.status is StageStatus.COMPLETED)

    @property
    def finished(self) -> bool:
        return self.status in (
            PipelineStatus.COMPLETED,
            PipelineStatus.FAILED,
            PipelineStatus.CANCELLED,
        )


def compute_progress(stages: tuple[StageRecord, ...]) -> int:
    """Weighted sum over stages that completed or were skipped."""
    return min(
        100,
        sum(STAGE_WEIGHTS[s.stage] for s in stages if s.status in FINISHED_STAGE_STATUSES),
    )


def initial_state(pipeline_id: str, now: float) -> PipelineState:
    return PipelineState(
        pipeline_id=pipeline_id,
        status=PipelineStatus.PENDING,
        created_at=now,
        updated_at=now,
    )
