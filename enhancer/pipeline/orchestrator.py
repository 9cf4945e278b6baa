import threading
import time
from collections.abc import Callable
from dataclasses import replace
from typing import TypeVar

from pydantic import TypeAdapter

from enhancer.database.models import EnhancementResultRecord
from enhancer.database.repositories.result_repository import ResultRepository
from enhancer.logging.logger import Log
from enhancer.pipeline.cache import CacheKind, DocumentCache, StageCache
from enhancer.pipeline.cancellation import CancellationToken
from enhancer.pipeline.exceptions import (
    CancellationRequested,
    DocumentValidationError,
    EnhancementError,
)
from enhancer.pipeline.models import (
    CompositionResult,
    EnhancementPlan,
    GeneratedAssets,
    Improvements,
    InitialAnalysisResult,
    PipelineContext,
    PipelineStage,
    PipelineStatus,
    StageStatus,
    SubscriptionTier,
)
from enhancer.pipeline.progress import ProgressPublisher, StateObserver, Subscription
from enhancer.pipeline.rationing import AlwaysAllowPolicy, RationingPolicy
from enhancer.pipeline.stages.analysis import InitialAnalysisStage
from enhancer.pipeline.stages.assets import AssetGenerationStage
from enhancer.pipeline.stages.composition import FinalCompositionStage
from enhancer.pipeline.stages.planning import EnhancementPlanningStage
from enhancer.pipeline.state import (
    PipelineError,
    PipelineState,
    StageRecord,
    compute_progress,
    initial_state,
)

QUALITY_THRESHOLD = 85
GATE_MESSAGE = "Document does not meet minimum requirements for enhancement"

T = TypeVar("T")

_CONTEXT_JSON = TypeAdapter(PipelineContext)
_IMPROVEMENTS_JSON = TypeAdapter(Improvements)
_ERRORS_JSON = TypeAdapter(tuple[PipelineError, ...])


def passes_gate(analysis: InitialAnalysisResult) -> bool:
    """A document qualifies when it is below the quality bar and has a real issue."""
    if analysis.current_score.overall >= QUALITY_THRESHOLD:
        return False
    return any(issue.significant for issue in analysis.design_issues)


class PipelineOrchestrator:
    """Runs the four enhancement stages for one document at a time.

    Analysis, planning and asset results are cached per document for the
    cache TTL; a fresh hit is reused without running the stage. Composition
    always runs. State is replaced, never edited, and every change is
    published to subscribers as a snapshot.
    """

    def __init__(
        self,
        *,
        analysis_stage: InitialAnalysisStage,
        planning_stage: EnhancementPlanningStage,
        asset_stage: AssetGenerationStage,
        composition_stage: FinalCompositionStage,
        cache: StageCache | None = None,
        result_repo: ResultRepository | None = None,
        rationing: RationingPolicy | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._analysis_stage = analysis_stage
        self._planning_stage = planning_stage
        self._asset_stage = asset_stage
        self._composition_stage = composition_stage
        self._cache = cache or StageCache()
        self._result_repo = result_repo
        self._rationing = rationing or AlwaysAllowPolicy()
        self._clock = clock
        self._lock = threading.Lock()
        self._publisher = ProgressPublisher()
        self._state = initial_state("", clock())
        self._token = CancellationToken()
        self._cancel_before_start = False

    def get_state(self) -> PipelineState:
        with self._lock:
            return self._state

    def subscribe(self, observer: StateObserver) -> Subscription:
        return self._publisher.subscribe(observer)

    def cancel(self, reason: str = "User cancelled") -> None:
        """Stop the current run at its next suspension point.

        The state turns cancelled right away; stage results already produced
        stay where they are. A cancel issued before the first run is honored
        by that run, which then stops before any stage.
        """
        with self._lock:
            if self._state.status not in (PipelineStatus.PENDING, PipelineStatus.RUNNING):
                return
            self._cancel_before_start = self._state.status is PipelineStatus.PENDING
            self._state = replace(self._state, status=PipelineStatus.CANCELLED, updated_at=self._clock())
            self._token.cancel(reason)
            snapshot = self._state
        Log.info(f"Pipeline {snapshot.pipeline_id} cancelled: {reason}")
        self._publisher.publish(snapshot)

    def execute(self, context: PipelineContext) -> CompositionResult:
        """Run all stages for `context` and return the composed result.

        Raises:
            DocumentValidationError: if the document does not qualify.
            CancellationRequested: if `cancel()` was called during the run.
            EnhancementError: or any other stage error, re-raised unchanged.
        """
        self._start(context)
        token = self._token
        cache = self._cache.for_document(context.document_id)
        Log.info(
            f"Pipeline {self._state.pipeline_id} started for document {context.document_id} "
            f"(tier {context.subscription_tier.value})"
        )

        try:
            analysis: InitialAnalysisResult = self._run_stage(
                PipelineStage.INITIAL_ANALYSIS,
                cache,
                CacheKind.ANALYSIS,
                lambda: self._analysis_stage.run(context, token),
            )
            if not passes_gate(analysis):
                raise DocumentValidationError(GATE_MESSAGE)

            plan: EnhancementPlan = self._run_stage(
                PipelineStage.ENHANCEMENT_PLANNING,
                cache,
                CacheKind.PLAN,
                lambda: self._planning_stage.run(context, analysis, token),
            )

            assets: GeneratedAssets | None = None
            if self._should_generate_assets(context):
                assets = self._run_stage(
                    PipelineStage.ASSET_GENERATION,
                    cache,
                    CacheKind.ASSETS,
                    lambda: self._asset_stage.run(context, plan, token),
                )
            else:
                self._skip_stage(PipelineStage.ASSET_GENERATION)

            durations = {record.stage: record.duration_ms for record in self.get_state().stages}
            result: CompositionResult = self._run_stage(
                PipelineStage.FINAL_COMPOSITION,
                None,
                None,
                lambda: self._composition_stage.run(context, analysis, plan, assets, durations, token),
            )
        except CancellationRequested:
            self._finish_cancelled()
            raise
        except Exception as exc:
            if token.cancelled:
                self._finish_cancelled()
                raise CancellationRequested(token.reason) from exc
            self._finish_failed(exc)
            self._persist(context, None)
            raise

        self._finish_completed()
        self._persist(context, result)
        return result

    def _start(self, context: PipelineContext) -> None:
        with self._lock:
            if self._state.status is PipelineStatus.RUNNING:
                raise EnhancementError(f"Pipeline {self._state.pipeline_id} is already running")
            now = self._clock()
            pipeline_id = f"pipeline-{context.document_id}-{int(now * 1000)}"
            cancelled = self._cancel_before_start
            self._cancel_before_start = False
            if cancelled:
                status = PipelineStatus.CANCELLED
            else:
                self._token = CancellationToken()
                status = PipelineStatus.RUNNING
            self._state = replace(initial_state(pipeline_id, now), status=status)
            snapshot = self._state
        self._publisher.publish(snapshot)
        if cancelled:
            Log.info(f"Pipeline {pipeline_id} cancelled before start: {self._token.reason}")
            raise CancellationRequested(self._token.reason or "Pipeline cancelled")

    def _should_generate_assets(self, context: PipelineContext) -> bool:
        tier = context.subscription_tier
        if tier is SubscriptionTier.FREE:
            Log.info(f"Skipping asset generation for {context.document_id}: free tier")
            return False
        if not context.settings.generate_assets:
            Log.info(f"Skipping asset generation for {context.document_id}: disabled in settings")
            return False
        if tier is SubscriptionTier.BASIC and not self._rationing.allow(context.user_id):
            Log.info(f"Skipping asset generation for {context.document_id}: basic tier quota used")
            return False
        return True

    def _run_stage(
        self,
        stage: PipelineStage,
        cache: DocumentCache | None,
        kind: CacheKind | None,
        run: Callable[[], T],
    ) -> T:
        self._token.raise_if_cancelled()
        started = self._clock()
        self._update_stage(StageRecord(stage, StageStatus.RUNNING, started_at=started), current=stage)

        if cache is not None and kind is not None:
            entry = cache.get(kind)
            if entry is not None:
                Log.info(f"Using cached {kind.value} result for stage {stage.value}")
                self._complete_stage(stage, started, entry.data, from_cache=True)
                return entry.data  # type: ignore[return-value]

        result = run()
        self._token.raise_if_cancelled()
        if cache is not None and kind is not None:
            cache.set(kind, result)
        self._complete_stage(stage, started, result, from_cache=False)
        return result

    def _complete_stage(self, stage: PipelineStage, started: float, result: object, from_cache: bool) -> None:
        record = StageRecord(
            stage,
            StageStatus.COMPLETED,
            started_at=started,
            ended_at=self._clock(),
            from_cache=from_cache,
            result=result,
        )
        self._update_stage(record, current=stage)
        Log.info(f"Stage {stage.value} completed in {record.duration_ms}ms")

    def _skip_stage(self, stage: PipelineStage) -> None:
        now = self._clock()
        self._update_stage(StageRecord(stage, StageStatus.SKIPPED, started_at=now, ended_at=now), current=stage)

    def _update_stage(self, record: StageRecord, current: PipelineStage) -> None:
        with self._lock:
            state = self._state.with_stage(record, self._clock())
            self._state = replace(state, current_stage=current, progress=compute_progress(state.stages))
            snapshot = self._state
        self._publisher.publish(snapshot)

    def _finish_completed(self) -> None:
        with self._lock:
            if self._state.status is PipelineStatus.CANCELLED:
                raise CancellationRequested(self._token.reason or "Pipeline cancelled")
            self._state = replace(self._state, status=PipelineStatus.COMPLETED, updated_at=self._clock())
            snapshot = self._state
        Log.info(f"Pipeline {snapshot.pipeline_id} completed")
        self._publisher.publish(snapshot)

    def _finish_cancelled(self) -> None:
        with self._lock:
            now = self._clock()
            state = self._state
            stage = state.current_stage
            if stage is not None and state.stage(stage).status is StageStatus.RUNNING:
                record = replace(state.stage(stage), status=StageStatus.CANCELLED, ended_at=now)
                state = state.with_stage(record, now)
            self._state = replace(state, status=PipelineStatus.CANCELLED, updated_at=now)
            snapshot = self._state
        self._publisher.publish(snapshot)

    def _finish_failed(self, exc: Exception) -> None:
        with self._lock:
            now = self._clock()
            state = self._state
            stage = state.current_stage
            if stage is not None and state.stage(stage).status is StageStatus.RUNNING:
                record = replace(state.stage(stage), status=StageStatus.FAILED, ended_at=now, error=str(exc))
                state = state.with_stage(record, now)
            error = PipelineError(
                stage=stage,
                message=str(exc),
                code=getattr(exc, "code", type(exc).__name__),
                timestamp=now,
            )
            self._state = replace(
                state,
                status=PipelineStatus.FAILED,
                errors=(*state.errors, error),
                updated_at=now,
            )
            snapshot = self._state
        Log.error(f"Pipeline {snapshot.pipeline_id} failed at {stage.value if stage else 'start'}: {exc}")
        self._publisher.publish(snapshot)

    def _persist(self, context: PipelineContext, result: CompositionResult | None) -> None:
        if self._result_repo is None:
            return
        state = self.get_state()
        improvement = 0
        if result is not None:
            improvement = result.improvements.overall.after - result.improvements.overall.before
        record = EnhancementResultRecord(
            document_id=context.document_id,
            user_id=context.user_id,
            pipeline_id=state.pipeline_id,
            status=state.status.value,
            stages_completed=[stage.value for stage in state.completed_stages()],
            processing_time=result.processing_time.total if result is not None else 0,
            quality_improvement=improvement,
            enhanced_file_url=result.enhanced_file_url if result is not None else None,
            metadata={
                "context": _CONTEXT_JSON.dump_python(context, mode="json"),
                "improvements": (
                    _IMPROVEMENTS_JSON.dump_python(result.improvements, mode="json") if result is not None else None
                ),
                "errors": _ERRORS_JSON.dump_python(state.errors, mode="json"),
            },
        )
        try:
            self._result_repo.insert(record)
        except Exception:
            Log.exception(f"Failed to persist result of pipeline {state.pipeline_id}")
