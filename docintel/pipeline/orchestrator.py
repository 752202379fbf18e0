"""Pipeline orchestration: job state machine, retries, and worker pool.

Each attempt runs extract -> classify -> extract fields -> score
authenticity -> evaluate suspicion -> persist, synchronously in the
calling worker. Only extraction and persistence can fail; a failed
attempt re-runs the whole pipeline from extraction.
"""

import threading
from pathlib import Path
from typing import Any, Protocol

from docintel.classification.document_classifier import (
    ClassificationResult,
    DocumentClassifier,
)
from docintel.exceptions import ExtractionError, PersistenceError, ValidationError
from docintel.extraction.field_extractors import FieldExtractorRegistry
from docintel.ocr.tesseract_engine import ExtractionResult, TesseractEngine
from docintel.utils.config import AppConfig
from docintel.utils.logger import get_logger
from docintel.validation.authenticity import AuthenticityScorer
from docintel.validation.suspicion import (
    SuspicionEvaluator,
    SuspicionInput,
    SuspicionOptions,
)

from .job import (
    DEFAULT_LANGUAGE_HINT,
    GENERIC_TYPE,
    Job,
    JobStatus,
    JobStatusReport,
    PipelineOutcome,
    utcnow,
)
from .job_queue import InMemoryJobQueue, JobQueue
from .result_sink import ResultSink

logger = get_logger(__name__)


class TextExtractor(Protocol):
    """Anything that turns a file reference into OCR text."""

    def extract(self, file_ref: str, language_hint: str | None = None) -> ExtractionResult: ...


class PipelineOrchestrator:
    """Runs queued jobs through the document pipeline.

    Args:
        engine: Text extraction adapter.
        sink: Destination for completed outcomes.
        queue: Job queue; a fresh in-memory queue by default.
        classifier: Document type classifier.
        registry: Field extractors keyed by document type.
        scorer: Authenticity scorer.
        evaluator: Suspicion evaluator.
        min_confidence: OCR confidence below which a document is suspicious.
        required_fields: Required field names per document type.
        max_attempts: Attempts before a failing job stays failed.
        poll_interval_s: Idle wait of a background worker on an empty queue.
        default_language: Language hint for jobs submitted without one.
    """

    def __init__(
        self,
        engine: TextExtractor,
        sink: ResultSink,
        queue: JobQueue | None = None,
        classifier: DocumentClassifier | None = None,
        registry: FieldExtractorRegistry | None = None,
        scorer: AuthenticityScorer | None = None,
        evaluator: SuspicionEvaluator | None = None,
        min_confidence: float = 0.6,
        required_fields: dict[str, list[str]] | None = None,
        max_attempts: int = 3,
        poll_interval_s: float = 0.5,
        default_language: str = DEFAULT_LANGUAGE_HINT,
    ) -> None:
        self.engine = engine
        self.sink = sink
        self.queue = queue if queue is not None else InMemoryJobQueue()
        self.classifier = classifier or DocumentClassifier()
        self.registry = registry or FieldExtractorRegistry()
        self.scorer = scorer or AuthenticityScorer()
        self.evaluator = evaluator or SuspicionEvaluator()
        self.min_confidence = min_confidence
        self.required_fields = dict(required_fields or {})
        self.max_attempts = max_attempts
        self.poll_interval_s = poll_interval_s
        self.default_language = default_language

        self._jobs: dict[str, Job] = {}
        self._lock = threading.Lock()
        self._stop = threading.Event()
        self._threads: list[threading.Thread] = []

    @classmethod
    def from_config(
        cls,
        config: AppConfig,
        sink: ResultSink,
        engine: TextExtractor | None = None,
        queue: JobQueue | None = None,
    ) -> "PipelineOrchestrator":
        """Build an orchestrator and its components from application config."""
        classifier = DocumentClassifier(
            default_min_hits=config.classification.default_min_hits
        )
        classifier.load_types(Path(config.classification.document_types_path))

        if engine is None:
            engine = TesseractEngine(
                tesseract_cmd=config.ocr.tesseract_cmd,
                default_lang=config.ocr.default_lang,
                psm=config.ocr.psm,
                timeout_s=config.ocr.timeout_s,
            )

        return cls(
            engine=engine,
            sink=sink,
            queue=queue,
            classifier=classifier,
            scorer=AuthenticityScorer(min_markers=config.authenticity.min_markers),
            min_confidence=config.suspicion.min_confidence,
            required_fields=config.suspicion.required_fields,
            max_attempts=config.pipeline.max_attempts,
            poll_interval_s=config.pipeline.poll_interval_s,
            default_language=config.ocr.default_lang,
        )

    # Submission and status

    def submit(
        self,
        file_ref: str,
        language_hint: str | None = None,
        declared_type: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> str:
        """Create a job for a document and queue it.

        Args:
            file_ref: Path or reference to the source image.
            language_hint: OCR language set; the configured default if omitted.
            declared_type: Caller's expected document type, if known.
            metadata: Caller context such as ``document_id``.

        Returns:
            Id of the new job.

        Raises:
            ValidationError: If the job is malformed.
        """
        job = Job(
            file_ref=file_ref,
            language_hint=language_hint or self.default_language,
            declared_type=declared_type,
            metadata=metadata or {},
        )
        return self.submit_job(job)

    def submit_job(self, job: Job) -> str:
        """Queue an already-built job, raising ValidationError if rejected."""
        with self._lock:
            self._jobs[job.id] = job

        accepted = self.queue.enqueue(job)
        if not accepted.accepted:
            with self._lock:
                del self._jobs[job.id]
            raise ValidationError(accepted.reason or "job rejected")

        logger.info("Submitted job %s for %s", job.id, job.file_ref)
        return job.id

    def get_status(self, job_id: str) -> JobStatusReport | None:
        """Return the current status of a job, or ``None`` if unknown."""
        with self._lock:
            job = self._jobs.get(job_id)
            return JobStatusReport.from_job(job) if job else None

    def list_jobs(self) -> list[JobStatusReport]:
        with self._lock:
            return [JobStatusReport.from_job(job) for job in self._jobs.values()]

    def cancel(self, job_id: str) -> bool:
        """Cancel a job that is still waiting in the queue.

        Returns:
            ``True`` if the job was removed before any worker took it.
        """
        with self._lock:
            job = self._jobs.get(job_id)
            if job is None or job.status != JobStatus.PENDING:
                return False
            if self.queue.remove(job_id) is None:
                return False
            job.status = JobStatus.CANCELLED
            job.updated_at = utcnow()

        logger.info("Cancelled job %s", job_id)
        return True

    # Processing

    def process_next(self) -> Job | None:
        """Take the next job off the queue and process it."""
        job = self.queue.dequeue()
        if job is None:
            return None
        self.process(job)
        return job

    def process(self, job: Job) -> Job:
        """Run one attempt of the pipeline for a dequeued job.

        Jobs that already reached a terminal status are returned unchanged.
        """
        with self._lock:
            if job.is_terminal:
                logger.warning("Skipping job %s already %s", job.id, job.status)
                return job
            self._jobs.setdefault(job.id, job)
            job.status = JobStatus.PROCESSING
            job.attempts += 1
            job.updated_at = utcnow()
        logger.info("Processing job %s (attempt %d)", job.id, job.attempts)

        try:
            outcome = self._run_pipeline(job)
            self.sink.persist(job.document_id, outcome)
        except ExtractionError as exc:
            self._handle_failure(job, f"extraction: {exc.kind}")
        except PersistenceError as exc:
            self._handle_failure(job, f"persist: {exc.detail}")
        except Exception as exc:
            logger.exception("Unexpected error processing job %s", job.id)
            self._finish(job, JobStatus.FAILED, failure_reason=f"internal: {exc}")
        else:
            self._finish(job, JobStatus.COMPLETED, result=outcome)
            logger.info(
                "Job %s completed as %s (suspicious=%s)",
                job.id,
                outcome.document_type,
                outcome.suspicion.is_suspicious,
            )
        return job

    def _run_pipeline(self, job: Job) -> PipelineOutcome:
        extraction = self.engine.extract(job.file_ref, job.language_hint)
        text = extraction.text

        classification = self.classifier.classify(text)
        document_type = self._resolve_document_type(job, classification)
        fields = self.registry.extract(document_type, text)
        authenticity = self.scorer.score(text)

        options = SuspicionOptions(
            min_confidence=self.min_confidence,
            required_fields=tuple(self.required_fields.get(document_type, ())),
        )
        suspicion = self.evaluator.evaluate(
            SuspicionInput(
                text=text,
                fields=fields,
                confidence=extraction.confidence,
                authenticity=authenticity,
            ),
            options,
        )

        return PipelineOutcome(
            extraction=extraction,
            classification=classification,
            document_type=document_type,
            fields=fields,
            authenticity=authenticity,
            suspicion=suspicion,
        )

    def _resolve_document_type(
        self, job: Job, classification: ClassificationResult
    ) -> str:
        """Prefer the caller's declared type; the detected type is advisory."""
        declared = job.declared_type
        if not declared or declared == GENERIC_TYPE:
            return classification.detected_type

        if declared != classification.detected_type:
            logger.info(
                "Job %s declared as %s but classified as %s; using declared type",
                job.id,
                declared,
                classification.detected_type,
            )
        return declared

    def _handle_failure(self, job: Job, reason: str) -> None:
        if job.attempts < self.max_attempts:
            with self._lock:
                job.status = JobStatus.PENDING
                job.updated_at = utcnow()
            logger.warning(
                "Job %s attempt %d/%d failed (%s), retrying",
                job.id,
                job.attempts,
                self.max_attempts,
                reason,
            )
            self.queue.enqueue(job)
            return

        self._finish(job, JobStatus.FAILED, failure_reason=reason)
        logger.error(
            "Job %s failed after %d attempts: %s", job.id, job.attempts, reason
        )

    def _finish(
        self,
        job: Job,
        status: JobStatus,
        result: PipelineOutcome | None = None,
        failure_reason: str | None = None,
    ) -> None:
        with self._lock:
            job.status = status
            job.result = result
            job.failure_reason = failure_reason
            job.updated_at = utcnow()

    # Worker pool

    def start(self, workers: int = 2) -> None:
        """Start background workers that poll the queue until stopped."""
        self._stop.clear()
        for _ in range(workers):
            thread = threading.Thread(
                target=self._worker_loop,
                args=(False,),
                name=f"docintel-worker-{len(self._threads) + 1}",
                daemon=True,
            )
            thread.start()
            self._threads.append(thread)
        logger.info("Started %d pipeline workers", workers)

    def stop(self, timeout: float | None = None) -> None:
        """Signal workers to stop and wait for them to finish their job."""
        self._stop.set()
        for thread in self._threads:
            thread.join(timeout)
        self._threads = [t for t in self._threads if t.is_alive()]
        logger.info("Pipeline workers stopped")

    def run_until_empty(self, workers: int = 2) -> None:
        """Process jobs with a worker pool until the queue is drained."""
        self._stop.clear()
        threads = [
            threading.Thread(
                target=self._worker_loop,
                args=(True,),
                name=f"docintel-worker-{i + 1}",
            )
            for i in range(workers)
        ]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

    def _worker_loop(self, drain: bool) -> None:
        while not self._stop.is_set():
            job = self.process_next()
            if job is not None:
                continue
            if drain:
                return
            self._stop.wait(self.poll_interval_s)
