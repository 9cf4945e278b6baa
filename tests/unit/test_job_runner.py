from typing import Any
from unittest.mock import MagicMock

import pytest

from enhancer.database.models import JobRecord
from enhancer.pipeline.exceptions import CancellationRequested, DocumentValidationError
from enhancer.pipeline.models import (
    ColorScheme,
    FileType,
    PipelineStage,
    PipelineStatus,
    SubscriptionTier,
    TargetStyle,
)
from enhancer.pipeline.state import PipelineState
from enhancer.worker.job_runner import JobRunner, context_from_job


def _make_runner(
    max_attempts: int = 3,
) -> tuple[JobRunner, MagicMock, MagicMock]:
    """Create a JobRunner with mocked dependencies."""
    mock_orchestrator = MagicMock()
    mock_orchestrator.execute.return_value = MagicMock(enhanced_file_url="https://cdn/final.png")
    mock_repo = MagicMock()
    mock_repo.is_cancel_requested.return_value = False
    settings = MagicMock(max_job_attempts=max_attempts)
    runner = JobRunner(mock_orchestrator, mock_repo, settings)
    return runner, mock_orchestrator, mock_repo


def _make_job(attempts: int = 0, **overrides: Any) -> JobRecord:
    fields: dict[str, Any] = {
        "id": 1,
        "document_id": "doc-10",
        "user_id": "user-7",
        "subscription_tier": "pro",
        "original_file_url": "https://files.example.com/doc-10.png",
        "file_type": "png",
        "status": "processing",
        "attempts": attempts,
    }
    fields.update(overrides)
    return JobRecord(**fields)


class TestContextFromJob:
    def test_maps_job_columns(self) -> None:
        context = context_from_job(_make_job(), now=100.0)

        assert context.document_id == "doc-10"
        assert context.user_id == "user-7"
        assert context.subscription_tier is SubscriptionTier.PRO
        assert context.file_type is FileType.PNG
        assert context.start_time == 100.0

    def test_defaults_when_settings_empty(self) -> None:
        context = context_from_job(_make_job())

        assert context.settings.target_style is None
        assert context.settings.color_scheme is ColorScheme.AUTO
        assert context.settings.generate_assets is True

    def test_reads_settings_json(self) -> None:
        job = _make_job(settings={"target_style": "playful", "color_scheme": "pastel", "generate_assets": False})

        context = context_from_job(job)

        assert context.settings.target_style is TargetStyle.PLAYFUL
        assert context.settings.color_scheme is ColorScheme.PASTEL
        assert context.settings.generate_assets is False

    def test_accepts_mime_type_and_jpg(self) -> None:
        assert context_from_job(_make_job(file_type="application/pdf")).file_type is FileType.PDF
        assert context_from_job(_make_job(file_type="JPG")).file_type is FileType.JPEG

    def test_unknown_tier_raises(self) -> None:
        with pytest.raises(ValueError):
            context_from_job(_make_job(subscription_tier="platinum"))


class TestSuccessfulProcessing:
    def test_executes_pipeline(self) -> None:
        runner, mock_orchestrator, _repo = _make_runner()

        runner.run(_make_job())

        context = mock_orchestrator.execute.call_args.args[0]
        assert context.document_id == "doc-10"

    def test_marks_job_done_with_result_url(self) -> None:
        runner, _orchestrator, mock_repo = _make_runner()

        runner.run(_make_job())

        mock_repo.mark_done.assert_called_once_with(1, "https://cdn/final.png")

    def test_unsubscribes_after_run(self) -> None:
        runner, mock_orchestrator, _repo = _make_runner()

        runner.run(_make_job())

        mock_orchestrator.subscribe.return_value.unsubscribe.assert_called_once()


class TestProgressReporting:
    def _observer(self, mock_orchestrator: MagicMock) -> Any:
        return mock_orchestrator.subscribe.call_args.args[0]

    def _state(self, status: PipelineStatus, **fields: Any) -> PipelineState:
        return PipelineState(pipeline_id="pipeline-1", status=status, created_at=0.0, updated_at=0.0, **fields)

    def test_writes_progress_and_stage(self) -> None:
        runner, mock_orchestrator, mock_repo = _make_runner()
        runner.run(_make_job())
        state = self._state(
            PipelineStatus.RUNNING,
            current_stage=PipelineStage.ENHANCEMENT_PLANNING,
            progress=20,
        )

        self._observer(mock_orchestrator)(state)

        mock_repo.update_progress.assert_called_once_with(1, 20, "enhancement-planning")

    def test_cancel_flag_cancels_pipeline(self) -> None:
        runner, mock_orchestrator, mock_repo = _make_runner()
        mock_repo.is_cancel_requested.return_value = True
        runner.run(_make_job())

        self._observer(mock_orchestrator)(self._state(PipelineStatus.RUNNING))

        mock_orchestrator.cancel.assert_called_once()

    def test_finished_state_is_ignored(self) -> None:
        runner, mock_orchestrator, mock_repo = _make_runner()
        runner.run(_make_job())

        self._observer(mock_orchestrator)(self._state(PipelineStatus.COMPLETED))

        mock_repo.update_progress.assert_not_called()


class TestTerminalOutcomes:
    def test_cancellation_marks_cancelled(self) -> None:
        runner, mock_orchestrator, mock_repo = _make_runner()
        mock_orchestrator.execute.side_effect = CancellationRequested("stop")

        runner.run(_make_job())

        mock_repo.mark_cancelled.assert_called_once_with(1)
        mock_repo.increment_attempts.assert_not_called()

    def test_gate_rejection_is_not_retried(self) -> None:
        runner, mock_orchestrator, mock_repo = _make_runner()
        mock_orchestrator.execute.side_effect = DocumentValidationError("not eligible")

        runner.run(_make_job(attempts=0))

        mock_repo.mark_failed.assert_called_once_with(1, "not eligible")
        mock_repo.increment_attempts.assert_not_called()

    def test_invalid_request_is_failed_without_running(self) -> None:
        runner, mock_orchestrator, mock_repo = _make_runner()

        runner.run(_make_job(file_type="tiff"))

        mock_orchestrator.execute.assert_not_called()
        mock_repo.mark_failed.assert_called_once()


class TestFailureBelowMax:
    def test_increments_attempts(self) -> None:
        runner, mock_orchestrator, mock_repo = _make_runner(max_attempts=3)
        mock_orchestrator.execute.side_effect = Exception("boom")

        runner.run(_make_job(attempts=0))

        mock_repo.increment_attempts.assert_called_once_with(1, "boom")
        mock_repo.mark_failed.assert_not_called()

    def test_does_not_mark_done(self) -> None:
        runner, mock_orchestrator, mock_repo = _make_runner(max_attempts=3)
        mock_orchestrator.execute.side_effect = Exception("boom")

        runner.run(_make_job(attempts=1))

        mock_repo.mark_done.assert_not_called()


class TestFailureAtMax:
    def test_marks_failed(self) -> None:
        runner, mock_orchestrator, mock_repo = _make_runner(max_attempts=3)
        mock_orchestrator.execute.side_effect = Exception("boom")

        runner.run(_make_job(attempts=2))

        mock_repo.mark_failed.assert_called_once_with(1, "boom")
        mock_repo.increment_attempts.assert_not_called()

    def test_marks_failed_when_over_max(self) -> None:
        runner, mock_orchestrator, mock_repo = _make_runner(max_attempts=3)
        mock_orchestrator.execute.side_effect = Exception("boom")

        runner.run(_make_job(attempts=5))

        mock_repo.mark_failed.assert_called_once_with(1, "boom")
