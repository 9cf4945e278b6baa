from unittest.mock import MagicMock, patch

from enhancer.database.models import JobRecord
from enhancer.worker.worker import Worker


def _make_worker() -> tuple[Worker, MagicMock, MagicMock]:
    """Create a Worker with mocked dependencies."""
    mock_repo = MagicMock()
    mock_runner = MagicMock()
    settings = MagicMock(job_poll_interval_seconds=1)
    worker = Worker(mock_repo, mock_runner, settings)
    return worker, mock_repo, mock_runner


def _make_job(job_id: int = 1) -> JobRecord:
    return JobRecord(
        id=job_id,
        document_id=f"doc-{job_id}",
        user_id="user-1",
        subscription_tier="pro",
        original_file_url="https://files.example.com/doc.png",
        file_type="png",
        status="processing",
        attempts=0,
    )


class TestWorkerDispatch:
    def test_dispatches_job_to_runner(self) -> None:
        worker, _repo, mock_runner = _make_worker()
        job = _make_job()

        with patch.object(worker, "_try_claim_job", side_effect=[job, KeyboardInterrupt]):
            worker.run()

        mock_runner.run.assert_called_once_with(job)

    def test_dispatches_multiple_jobs(self) -> None:
        worker, _repo, mock_runner = _make_worker()

        with patch.object(
            worker, "_try_claim_job", side_effect=[_make_job(1), _make_job(2), KeyboardInterrupt]
        ):
            worker.run()

        assert mock_runner.run.call_count == 2

    def test_stops_after_max_jobs(self) -> None:
        worker, _repo, mock_runner = _make_worker()

        with patch.object(worker, "_try_claim_job", side_effect=[_make_job(1), _make_job(2)]):
            worker.run(max_jobs=1)

        assert mock_runner.run.call_count == 1


class TestWorkerSleep:
    def test_sleeps_when_no_job(self) -> None:
        worker, _repo, _runner = _make_worker()

        with (
            patch.object(worker, "_try_claim_job", side_effect=[None, KeyboardInterrupt]),
            patch("enhancer.worker.worker.time.sleep") as mock_sleep,
        ):
            worker.run()

        mock_sleep.assert_called_once_with(1)


class TestTryClaimJob:
    def test_database_error_returns_none(self) -> None:
        worker, mock_repo, _runner = _make_worker()
        mock_repo.claim_next_job.side_effect = Exception("connection refused")

        with (
            patch("enhancer.worker.worker.get_connection") as mock_get_connection,
            patch("enhancer.worker.worker.Log") as mock_log,
        ):
            mock_get_connection.return_value.__enter__.return_value = MagicMock()
            assert worker._try_claim_job() is None

        mock_log.warning.assert_called_once()


class TestWorkerShutdown:
    def test_handles_keyboard_interrupt(self) -> None:
        worker, _repo, _runner = _make_worker()

        with patch.object(worker, "_try_claim_job", side_effect=KeyboardInterrupt):
            worker.run()  # Should not raise
