from dataclasses import dataclass, field
from datetime import datetime
from typing import Any


@dataclass
class JobRecord:
    """Represents a row from the enhancement_jobs table."""

    id: int
    document_id: str
    user_id: str
    subscription_tier: str
    original_file_url: str
    file_type: str
    status: str
    attempts: int
    settings: dict[str, Any] = field(default_factory=dict)
    progress: int = 0
    current_stage: str | None = None
    cancel_requested: bool = False
    result_url: str | None = None
    error_message: str | None = None
    locked_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass
class EnhancementResultRecord:
    """One finished pipeline run, as stored in enhancement_results."""

    document_id: str
    user_id: str
    pipeline_id: str
    status: str
    stages_completed: list[str]
    processing_time: int
    quality_improvement: int
    enhanced_file_url: str | None
    metadata: dict[str, Any] = field(default_factory=dict)
    id: int | None = None
    created_at: datetime | None = None
