import time
from typing import Any

from enhancer.config.settings import Settings
from enhancer.database.models import JobRecord
from enhancer.database.repositories.job_repository import JobRepository
from enhancer.logging.logger import Log
from enhancer.pipeline.exceptions import CancellationRequested, DocumentValidationError
from enhancer.pipeline.models import (
    ColorScheme,
    EnhancementSettings,
    FileType,
    LayoutPreference,
    PipelineContext,
    SubscriptionTier,
    TargetStyle,
)
from enhancer.pipeline.orchestrator import PipelineOrchestrator
from enhancer.pipeline.state import PipelineState

FILE_TYPE_ALIASES = {
    "jpg": FileType.JPEG,
    "application/pdf": FileType.PDF,
    "image/png": FileType.PNG,
    "image/jpeg": FileType.JPEG,
    "image/webp": FileType.WEBP,
}


def _settings_from_json(raw: dict[str, Any]) -> EnhancementSettings:
    target_style = raw.get("target_style")
    return EnhancementSettings(
        target_style=TargetStyle(target_style) if target_style else None,
        color_scheme=ColorScheme(raw.get("color_scheme") or ColorScheme.AUTO.value),
        layout_preference=LayoutPreference(raw.get("layout_preference") or LayoutPreference.AUTO.value),
        generate_assets=bool(raw.get("generate_assets", True)),
        preserve_content=bool(raw.get("preserve_content", True)),
    )


def context_from_job(job: JobRecord, now: float | None = None) -> PipelineContext:
    """Build the pipeline request for a claimed job.

    Raises ValueError if the tier, file type or settings hold unknown values.
    """
    file_type = job.file_type.lower()
    return PipelineContext(
        document_id=job.document_id,
        user_id=job.user_id,
        subscription_tier=SubscriptionTier(job.subscription_tier.lower()),
        original_file_url=job.original_file_url,
        file_type=FILE_TYPE_ALIASES.get(file_type) or FileType(file_type),
        start_time=time.time() if now is None else now,
        settings=_settings_from_json(job.settings),
    )


class JobRunner:
    """Run one job, catch exceptions, and apply retry logic.

    A document that fails the enhancement gate or carries an invalid request
    is failed without retrying. A job whose cancel flag is set while it runs
    is cancelled at the next stage boundary.
    """

    def __init__(
        self,
        orchestrator: PipelineOrchestrator,
        job_repo: JobRepository,
        settings: Settings,
    ) -> None:
        self._orchestrator = orchestrator
        self._job_repo = job_repo
        self._settings = settings

    def run(self, job: JobRecord) -> None:
        """Execute a single job with error handling."""
        Log.info(f"Running job {job.id} for document {job.document_id} (attempt {job.attempts + 1})")
        try:
            context = context_from_job(job)
        except ValueError as exc:
            Log.error(f"Job {job.id} has an invalid request: {exc}")
            self._job_repo.mark_failed(job.id, str(exc))
            return

        subscription = self._orchestrator.subscribe(lambda state: self._on_progress(job, state))
        try:
            result = self._orchestrator.execute(context)
            self._job_repo.mark_done(job.id, result.enhanced_file_url)
            Log.info(f"Job {job.id} completed successfully")
        except CancellationRequested as exc:
            self._job_repo.mark_cancelled(job.id)
            Log.info(f"Job {job.id} cancelled: {exc}")
        except DocumentValidationError as exc:
            self._job_repo.mark_failed(job.id, str(exc))
            Log.warning(f"Job {job.id} rejected: {exc}")
        except Exception as exc:
            self._handle_failure(job, exc)
        finally:
            subscription.unsubscribe()

    def _on_progress(self, job: JobRecord, state: PipelineState) -> None:
        if state.finished:
            return
        stage = state.current_stage.value if state.current_stage else None
        self._job_repo.update_progress(job.id, state.progress, stage)
        if self._job_repo.is_cancel_requested(job.id):
            self._orchestrator.cancel(f"Job {job.id} cancel requested")

    def _handle_failure(self, job: JobRecord, exc: Exception) -> None:
        """Increment attempts; mark failed if at max, otherwise back to pending."""
        Log.error(f"Job {job.id} failed: {exc}")
        if job.attempts + 1 >= self._settings.max_job_attempts:
            self._job_repo.mark_failed(job.id, str(exc))
            Log.error(f"Job {job.id} permanently failed after {job.attempts + 1} attempts")
        else:
            self._job_repo.increment_attempts(job.id, str(exc))
            Log.warning(f"Job {job.id} will be retried (attempt {job.attempts + 1})")
