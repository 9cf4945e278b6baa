import io
import os
import uuid
from collections.abc import Generator
from pathlib import Path
from typing import Any

import psycopg
import pytest
from PIL import Image
from psycopg.rows import dict_row
from psycopg.types.json import Jsonb

from enhancer.config.settings import Settings
from enhancer.database.connection import close_pool, get_connection, init_pool
from enhancer.database.models import JobRecord
from enhancer.storage.local_storage import LocalFileStorage

SCHEMA_PATH = Path(__file__).parent / "schema.sql"


def _test_settings() -> Settings:
    os.environ.setdefault("DB_DATABASE", "enhancer_test")
    return Settings()


@pytest.fixture(scope="session")
def test_settings() -> Settings:
    return _test_settings()


@pytest.fixture(scope="session")
def integration_pool(test_settings: Settings) -> Generator[None, None, None]:
    try:
        init_pool(test_settings)
        with get_connection() as conn:
            conn.execute(SCHEMA_PATH.read_text())
            conn.commit()
    except Exception as e:
        close_pool()
        pytest.skip(f"PostgreSQL test DB not available: {e}. Set DB_* env to point at a scratch database")
    try:
        yield
    finally:
        close_pool()


@pytest.fixture
def db_conn(integration_pool: None) -> Generator[psycopg.Connection[Any], None, None]:
    with get_connection() as conn:
        yield conn


@pytest.fixture
def integration_cleanup(integration_pool: None) -> Generator[list[tuple[str, Any]], None, None]:
    cleanup: list[tuple[str, Any]] = []
    yield cleanup
    if not cleanup:
        return
    with get_connection() as conn:
        with conn.cursor() as cur:
            for table, key in cleanup:
                if table == "enhancement_jobs":
                    cur.execute("DELETE FROM enhancement_jobs WHERE id = %s", (key,))
                elif table == "enhancement_results":
                    cur.execute("DELETE FROM enhancement_results WHERE document_id = %s", (key,))
        conn.commit()


@pytest.fixture
def insert_job(
    db_conn: psycopg.Connection[Any],
    integration_cleanup: list[tuple[str, Any]],
) -> Any:
    """Factory inserting one enhancement_jobs row and returning its JobRecord."""

    def _insert(
        original_file_url: str = "local://uploads/doc.png",
        subscription_tier: str = "pro",
        file_type: str = "png",
        attempts: int = 0,
        settings: dict[str, Any] | None = None,
    ) -> JobRecord:
        document_id = f"doc-{uuid.uuid4()}"
        with db_conn.cursor(row_factory=dict_row) as cur:
            cur.execute(
                """
                INSERT INTO enhancement_jobs
                (document_id, user_id, subscription_tier, original_file_url, file_type,
                 settings, status, attempts)
                VALUES (%s, %s, %s, %s, %s, %s, 'pending', %s)
                RETURNING id
                """,
                (
                    document_id,
                    "user-it",
                    subscription_tier,
                    original_file_url,
                    file_type,
                    Jsonb(settings or {}),
                    attempts,
                ),
            )
            row = cur.fetchone()
            assert row is not None
            job_id = row["id"]
        db_conn.commit()
        integration_cleanup.append(("enhancement_jobs", job_id))
        integration_cleanup.append(("enhancement_results", document_id))
        return JobRecord(
            id=job_id,
            document_id=document_id,
            user_id="user-it",
            subscription_tier=subscription_tier,
            original_file_url=original_file_url,
            file_type=file_type,
            status="pending",
            attempts=attempts,
            settings=settings or {},
        )

    return _insert


@pytest.fixture
def seed_job(insert_job: Any) -> JobRecord:
    return insert_job()


@pytest.fixture
def files_root(tmp_path: Path) -> Path:
    return tmp_path


@pytest.fixture
def original_on_disk(files_root: Path) -> str:
    """Upload a plain PNG to local storage and return its URL."""
    buffer = io.BytesIO()
    Image.new("RGB", (640, 480), (235, 235, 235)).save(buffer, format="PNG")
    return LocalFileStorage(files_root).upload(buffer.getvalue(), "uploads/original.png", "image/png")


@pytest.fixture
def pipeline_settings(test_settings: Settings, files_root: Path) -> Settings:
    return test_settings.model_copy(
        update={
            "analysis_provider": "example",
            "image_provider": "example",
            "storage_backend": "local",
            "storage_files_root": str(files_root),
            "storage_public_url": "",
        }
    )
