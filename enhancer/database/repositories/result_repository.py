from psycopg.types.json import Jsonb

from enhancer.database.connection import get_connection
from enhancer.database.exceptions import RepositoryError
from enhancer.database.models import EnhancementResultRecord


class ResultRepository:
    """Writes finished pipeline runs to the enhancement_results table."""

    def insert(self, record: EnhancementResultRecord) -> int:
        """Insert one run and return its row id."""
        with get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    INSERT INTO enhancement_results
                    (document_id, user_id, pipeline_id, status, stages_completed,
                     processing_time, quality_improvement, enhanced_file_url, metadata)
                    VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s)
                    RETURNING id
                    """,
                    (
                        record.document_id,
                        record.user_id,
                        record.pipeline_id,
                        record.status,
                        Jsonb(record.stages_completed),
                        record.processing_time,
                        record.quality_improvement,
                        record.enhanced_file_url,
                        Jsonb(record.metadata),
                    ),
                )
                row = cur.fetchone()
            conn.commit()
        if row is None:
            raise RepositoryError(f"Insert of pipeline {record.pipeline_id} returned no id")
        return int(row[0])

    def find_by_pipeline_id(self, pipeline_id: str) -> EnhancementResultRecord | None:
        with get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    SELECT id, document_id, user_id, pipeline_id, status, stages_completed,
                           processing_time, quality_improvement, enhanced_file_url,
                           metadata, created_at
                    FROM enhancement_results
                    WHERE pipeline_id = %s
                    """,
                    (pipeline_id,),
                )
                row = cur.fetchone()

        if row is None:
            return None
        return EnhancementResultRecord(
            id=row[0],
            document_id=row[1],
            user_id=row[2],
            pipeline_id=row[3],
            status=row[4],
            stages_completed=list(row[5] or []),
            processing_time=row[6],
            quality_improvement=row[7],
            enhanced_file_url=row[8],
            metadata=row[9] or {},
            created_at=row[10],
        )
