from unittest.mock import MagicMock, patch

import pytest

from enhancer.database.exceptions import RepositoryError
from enhancer.database.models import EnhancementResultRecord
from enhancer.database.repositories.result_repository import ResultRepository


def _make_record() -> EnhancementResultRecord:
    return EnhancementResultRecord(
        document_id="doc-1",
        user_id="user-1",
        pipeline_id="pipeline-doc-1-1",
        status="completed",
        stages_completed=["initial-analysis"],
        processing_time=100,
        quality_improvement=10,
        enhanced_file_url="local://enhanced/final.png",
    )


def _patch_cursor(row: tuple[int] | None) -> tuple[MagicMock, MagicMock]:
    conn = MagicMock()
    cursor = conn.cursor.return_value.__enter__.return_value
    cursor.fetchone.return_value = row
    return conn, cursor


class TestResultRepositoryInsert:
    def test_returns_row_id(self) -> None:
        conn, cursor = _patch_cursor((42,))

        with patch("enhancer.database.repositories.result_repository.get_connection") as mock_get_connection:
            mock_get_connection.return_value.__enter__.return_value = conn
            assert ResultRepository().insert(_make_record()) == 42

        assert cursor.execute.call_args.args[1][2] == "pipeline-doc-1-1"
        conn.commit.assert_called_once()

    def test_missing_row_raises(self) -> None:
        conn, _cursor = _patch_cursor(None)

        with patch("enhancer.database.repositories.result_repository.get_connection") as mock_get_connection:
            mock_get_connection.return_value.__enter__.return_value = conn
            with pytest.raises(RepositoryError, match="pipeline-doc-1-1"):
                ResultRepository().insert(_make_record())
