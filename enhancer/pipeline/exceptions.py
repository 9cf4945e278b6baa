class EnhancementError(Exception):
    """Base exception for all enhancement pipeline errors."""

    code = "enhancement_error"


class DocumentValidationError(EnhancementError):
    """Raised when a document fails the minimum-requirement gate."""

    code = "document_validation"


class StageExecutionError(EnhancementError):
    """Raised when a pipeline stage fails without a usable fallback."""

    code = "stage_execution"

    def __init__(self, stage: str, message: str) -> None:
        super().__init__(message)
        self.stage = stage


class UpstreamError(EnhancementError):
    """Raised when an external collaborator (AI, storage, image API) fails."""

    code = "upstream"


class CancellationRequested(EnhancementError):
    """Raised at a suspension point once the run has been cancelled."""

    code = "cancelled"
