"""Error types raised across the document intelligence pipeline.

Only I/O boundaries fail: text extraction and result persistence raise
retryable errors, job submission raises a non-retryable validation error.
Classification, field extraction and scoring never raise.
"""

from enum import StrEnum


class PipelineError(Exception):
    """Base exception for all pipeline errors."""

    retryable: bool = False


class ExtractionErrorKind(StrEnum):
    """Why the OCR engine failed to produce text."""

    NOT_FOUND = "NotFound"
    ENGINE_FAILURE = "EngineFailure"
    TIMEOUT = "Timeout"


class ExtractionError(PipelineError):
    """Raised when the OCR engine cannot extract text from a file."""

    retryable = True

    def __init__(self, kind: ExtractionErrorKind, detail: str = "") -> None:
        self.kind = kind
        self.detail = detail
        super().__init__(f"{kind}: {detail}" if detail else str(kind))


class PersistenceError(PipelineError):
    """Raised when a result sink cannot store a pipeline outcome."""

    retryable = True

    def __init__(self, detail: str) -> None:
        self.detail = detail
        super().__init__(detail)


class ValidationError(PipelineError):
    """Raised when a job is structurally invalid and cannot be queued."""
