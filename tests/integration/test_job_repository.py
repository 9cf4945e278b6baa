from typing import Any

import pytest

from enhancer.database.connection import get_connection
from enhancer.database.models import JobRecord
from enhancer.database.repositories.job_repository import JobRepository


def _fetch(job_id: int, columns: str) -> tuple[Any, ...]:
    with get_connection() as conn:
        with conn.cursor() as cur:
            cur.execute(f"SELECT {columns} FROM enhancement_jobs WHERE id = %s", (job_id,))
            row = cur.fetchone()
    assert row is not None
    return row


@pytest.mark.integration
class TestJobRepositoryClaimNextJob:
    def test_claim_next_job_returns_and_locks_job(self, seed_job: JobRecord, db_conn) -> None:
        repo = JobRepository(max_attempts=3)
        job = repo.claim_next_job(db_conn)
        assert job is not None
        assert job.id == seed_job.id
        assert job.document_id == seed_job.document_id
        assert job.subscription_tier == "pro"
        assert job.status == "processing"
        status, locked_at = _fetch(job.id, "status, locked_at")
        assert status == "processing"
        assert locked_at is not None

    def test_claim_next_job_returns_none_when_no_pending_jobs(self, db_conn) -> None:
        repo = JobRepository(max_attempts=3)
        job = repo.claim_next_job(db_conn)
        assert job is None

    def test_claim_next_job_skips_job_with_attempts_at_max(self, insert_job, db_conn) -> None:
        insert_job(attempts=3)
        repo = JobRepository(max_attempts=3)
        assert repo.claim_next_job(db_conn) is None

    def test_claim_next_job_skips_cancelled_job(self, seed_job: JobRecord, db_conn) -> None:
        db_conn.execute(
            "UPDATE enhancement_jobs SET cancel_requested = TRUE WHERE id = %s",
            (seed_job.id,),
        )
        db_conn.commit()
        repo = JobRepository(max_attempts=3)
        assert repo.claim_next_job(db_conn) is None

    def test_claim_reads_settings_json(self, insert_job, db_conn) -> None:
        seeded = insert_job(settings={"target_style": "playful"})
        repo = JobRepository(max_attempts=3)
        job = repo.claim_next_job(db_conn)
        assert job is not None
        assert job.id == seeded.id
        assert job.settings == {"target_style": "playful"}


@pytest.mark.integration
class TestJobRepositoryProgress:
    def test_update_progress_writes_stage(self, seed_job: JobRecord) -> None:
        repo = JobRepository(max_attempts=3)
        repo.update_progress(seed_job.id, 50, "enhancement-planning")
        assert _fetch(seed_job.id, "progress, current_stage") == (50, "enhancement-planning")

    def test_is_cancel_requested(self, seed_job: JobRecord, db_conn) -> None:
        repo = JobRepository(max_attempts=3)
        assert repo.is_cancel_requested(seed_job.id) is False
        db_conn.execute(
            "UPDATE enhancement_jobs SET cancel_requested = TRUE WHERE id = %s",
            (seed_job.id,),
        )
        db_conn.commit()
        assert repo.is_cancel_requested(seed_job.id) is True


@pytest.mark.integration
class TestJobRepositoryMarkDone:
    def test_mark_done_updates_status(self, seed_job: JobRecord) -> None:
        repo = JobRepository(max_attempts=3)
        repo.mark_done(seed_job.id, "local://enhanced/final.png")
        assert _fetch(seed_job.id, "status, progress, result_url") == (
            "done",
            100,
            "local://enhanced/final.png",
        )


@pytest.mark.integration
class TestJobRepositoryMarkFailed:
    def test_mark_failed_updates_status_and_error_message(self, seed_job: JobRecord) -> None:
        repo = JobRepository(max_attempts=3)
        repo.mark_failed(seed_job.id, "error text")
        assert _fetch(seed_job.id, "status, error_message") == ("failed", "error text")


@pytest.mark.integration
class TestJobRepositoryMarkCancelled:
    def test_mark_cancelled_releases_lock(self, seed_job: JobRecord, db_conn) -> None:
        db_conn.execute(
            "UPDATE enhancement_jobs SET status = 'processing', locked_at = NOW() WHERE id = %s",
            (seed_job.id,),
        )
        db_conn.commit()
        repo = JobRepository(max_attempts=3)
        repo.mark_cancelled(seed_job.id)
        assert _fetch(seed_job.id, "status, locked_at") == ("cancelled", None)


@pytest.mark.integration
class TestJobRepositoryIncrementAttempts:
    def test_increment_attempts_returns_to_pending(self, seed_job: JobRecord, db_conn) -> None:
        db_conn.execute(
            """
            UPDATE enhancement_jobs
            SET status = 'processing', attempts = 1, locked_at = NOW()
            WHERE id = %s
            """,
            (seed_job.id,),
        )
        db_conn.commit()
        repo = JobRepository(max_attempts=3)
        repo.increment_attempts(seed_job.id, "boom")
        assert _fetch(seed_job.id, "status, attempts, locked_at, error_message") == (
            "pending",
            2,
            None,
            "boom",
        )


@pytest.mark.integration
class TestJobRepositoryFindById:
    def test_find_by_id_returns_job(self, seed_job: JobRecord) -> None:
        repo = JobRepository(max_attempts=3)
        job = repo.find_by_id(seed_job.id)
        assert job is not None
        assert job.id == seed_job.id
        assert job.document_id == seed_job.document_id
        assert job.status == "pending"
        assert job.attempts == 0
        assert job.cancel_requested is False

    def test_find_by_id_returns_none_when_not_found(self, integration_pool: None) -> None:
        repo = JobRepository(max_attempts=3)
        assert repo.find_by_id(99999999) is None
