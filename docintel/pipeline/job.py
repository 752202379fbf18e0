"""Job and outcome data model for the document pipeline."""

import uuid
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import StrEnum
from types import MappingProxyType
from typing import Any

from docintel.classification.document_classifier import ClassificationResult
from docintel.ocr.tesseract_engine import ExtractionResult
from docintel.validation.authenticity import AuthenticityVerdict
from docintel.validation.suspicion import SuspicionVerdict

DEFAULT_LANGUAGE_HINT = "sin+eng"
GENERIC_TYPE = "generic"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class JobStatus(StrEnum):
    """Lifecycle states of a job."""

    PENDING = "Pending"
    PROCESSING = "Processing"
    COMPLETED = "Completed"
    FAILED = "Failed"
    CANCELLED = "Cancelled"


TERMINAL_STATUSES = frozenset(
    {JobStatus.COMPLETED, JobStatus.FAILED, JobStatus.CANCELLED}
)

_FIXED_JOB_FIELDS = frozenset(
    {"id", "file_ref", "language_hint", "declared_type", "metadata"}
)


@dataclass
class PipelineOutcome:
    """Everything the pipeline learned about one document."""

    extraction: ExtractionResult
    classification: ClassificationResult
    document_type: str
    fields: dict[str, str]
    authenticity: AuthenticityVerdict
    suspicion: SuspicionVerdict

    def to_dict(self) -> dict[str, Any]:
        """Return a JSON-serialisable view of the outcome."""
        return {
            "ocr_text": self.extraction.text,
            "ocr_confidence": self.extraction.confidence,
            "language": self.extraction.language,
            "blocks": [
                {"text": b.text, "confidence": b.confidence}
                for b in self.extraction.iter_blocks()
            ],
            "classification": {
                "detected_type": self.classification.detected_type,
                "score": self.classification.score,
                "per_type_hits": dict(self.classification.per_type_hits),
            },
            "document_type": self.document_type,
            "fields": dict(self.fields),
            "authenticity": {
                "is_authentic": self.authenticity.is_authentic,
                "score": self.authenticity.score,
                "matched_markers": sorted(self.authenticity.matched_markers),
            },
            "suspicion": {
                "is_suspicious": self.suspicion.is_suspicious,
                "reasons": list(self.suspicion.reasons),
            },
        }


@dataclass
class Job:
    """One unit of document extraction work.

    ``id``, ``file_ref``, ``language_hint``, ``declared_type`` and
    ``metadata`` are fixed at creation and raise AttributeError if
    reassigned; only the orchestrator changes the rest.
    """

    file_ref: str
    language_hint: str = DEFAULT_LANGUAGE_HINT
    declared_type: str | None = None
    metadata: Mapping[str, Any] = field(default_factory=dict)
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    status: JobStatus = JobStatus.PENDING
    attempts: int = 0
    result: PipelineOutcome | None = None
    failure_reason: str | None = None
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    def __post_init__(self) -> None:
        object.__setattr__(self, "metadata", MappingProxyType(dict(self.metadata)))

    def __setattr__(self, name: str, value: Any) -> None:
        if name in _FIXED_JOB_FIELDS and name in self.__dict__:
            raise AttributeError(f"Job.{name} cannot be changed after creation")
        super().__setattr__(name, value)

    @property
    def document_id(self) -> str:
        """Id of the owning document record, falling back to the job id."""
        return str(self.metadata.get("document_id") or self.id)

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES


@dataclass
class JobStatusReport:
    """Point-in-time view of a job returned to status queries."""

    job_id: str
    status: JobStatus
    attempts: int
    result: PipelineOutcome | None = None
    failure_reason: str | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_job(cls, job: Job) -> "JobStatusReport":
        return cls(
            job_id=job.id,
            status=job.status,
            attempts=job.attempts,
            result=job.result,
            failure_reason=job.failure_reason,
            updated_at=job.updated_at,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "job_id": self.job_id,
            "status": str(self.status),
            "attempts": self.attempts,
            "result": self.result.to_dict() if self.result else None,
            "failure_reason": self.failure_reason,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }
