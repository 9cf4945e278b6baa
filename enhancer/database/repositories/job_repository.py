from typing import Any

import psycopg
from psycopg.rows import dict_row

from enhancer.database.connection import get_connection
from enhancer.database.models import JobRecord

_JOB_COLUMNS = """
    id, document_id, user_id, subscription_tier, original_file_url, file_type,
    settings, status, attempts, progress, current_stage, cancel_requested,
    result_url, error_message, locked_at, created_at, updated_at
"""


def _to_record(row: dict[str, Any]) -> JobRecord:
    return JobRecord(
        id=row["id"],
        document_id=row["document_id"],
        user_id=row["user_id"],
        subscription_tier=row["subscription_tier"],
        original_file_url=row["original_file_url"],
        file_type=row["file_type"],
        settings=row["settings"] or {},
        status=row["status"],
        attempts=row["attempts"],
        progress=row["progress"],
        current_stage=row["current_stage"],
        cancel_requested=row["cancel_requested"],
        result_url=row["result_url"],
        error_message=row["error_message"],
        locked_at=row["locked_at"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


class JobRepository:
    """Database operations for the enhancement_jobs table."""

    def __init__(self, max_attempts: int) -> None:
        self._max_attempts = max_attempts

    def claim_next_job(self, conn: psycopg.Connection[Any]) -> JobRecord | None:
        """Claim the oldest pending job using SELECT FOR UPDATE SKIP LOCKED."""
        with conn.cursor(row_factory=dict_row) as cur:
            cur.execute(
                f"""
                SELECT {_JOB_COLUMNS}
                FROM enhancement_jobs
                WHERE status = 'pending'
                  AND attempts < %s
                  AND NOT cancel_requested
                ORDER BY created_at
                LIMIT 1
                FOR UPDATE SKIP LOCKED
                """,
                (self._max_attempts,),
            )
            row = cur.fetchone()

        if row is None:
            return None

        conn.execute(
            """
            UPDATE enhancement_jobs
            SET status = 'processing', progress = 0, current_stage = NULL,
                locked_at = NOW(), updated_at = NOW()
            WHERE id = %s
            """,
            (row["id"],),
        )
        conn.commit()

        record = _to_record(row)
        record.status = "processing"
        record.progress = 0
        record.current_stage = None
        return record

    def update_progress(self, job_id: int, progress: int, stage: str | None) -> None:
        with get_connection() as conn:
            conn.execute(
                """
                UPDATE enhancement_jobs
                SET progress = %s, current_stage = %s, updated_at = NOW()
                WHERE id = %s
                """,
                (progress, stage, job_id),
            )
            conn.commit()

    def is_cancel_requested(self, job_id: int) -> bool:
        with get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    "SELECT cancel_requested FROM enhancement_jobs WHERE id = %s",
                    (job_id,),
                )
                row = cur.fetchone()
        return bool(row and row[0])

    def mark_done(self, job_id: int, result_url: str) -> None:
        with get_connection() as conn:
            conn.execute(
                """
                UPDATE enhancement_jobs
                SET status = 'done', progress = 100, result_url = %s, updated_at = NOW()
                WHERE id = %s
                """,
                (result_url, job_id),
            )
            conn.commit()

    def mark_failed(self, job_id: int, error: str) -> None:
        """Mark a job as permanently failed."""
        with get_connection() as conn:
            conn.execute(
                """
                UPDATE enhancement_jobs
                SET status = 'failed', error_message = %s, updated_at = NOW()
                WHERE id = %s
                """,
                (error, job_id),
            )
            conn.commit()

    def mark_cancelled(self, job_id: int) -> None:
        with get_connection() as conn:
            conn.execute(
                """
                UPDATE enhancement_jobs
                SET status = 'cancelled', locked_at = NULL, updated_at = NOW()
                WHERE id = %s
                """,
                (job_id,),
            )
            conn.commit()

    def increment_attempts(self, job_id: int, error: str | None = None) -> None:
        """Count the failed attempt and return the job to pending."""
        with get_connection() as conn:
            conn.execute(
                """
                UPDATE enhancement_jobs
                SET attempts = attempts + 1, status = 'pending', error_message = %s,
                    locked_at = NULL, updated_at = NOW()
                WHERE id = %s
                """,
                (error, job_id),
            )
            conn.commit()

    def find_by_id(self, job_id: int) -> JobRecord | None:
        """Find a job by ID. Useful for tests."""
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    f"SELECT {_JOB_COLUMNS} FROM enhancement_jobs WHERE id = %s",
                    (job_id,),
                )
                row = cur.fetchone()

        if row is None:
            return None
        return _to_record(row)
