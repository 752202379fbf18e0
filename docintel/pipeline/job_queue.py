"""FIFO job queue with exclusive hand-off to workers."""

import threading
from abc import ABC, abstractmethod
from collections import deque
from dataclasses import dataclass

from docintel.utils.logger import get_logger

from .job import Job

logger = get_logger(__name__)


@dataclass
class EnqueueResult:
    """Whether a job was accepted, with the reason when it was not."""

    accepted: bool
    reason: str | None = None


class JobQueue(ABC):
    """Interface for queues feeding the pipeline workers.

    ``dequeue`` hands a job to exactly one caller; the queue keeps no
    reference to it afterwards.
    """

    @abstractmethod
    def enqueue(self, job: Job) -> EnqueueResult:
        """Append a job without blocking."""

    @abstractmethod
    def dequeue(self) -> Job | None:
        """Remove and return the oldest job, or ``None`` when empty."""

    @abstractmethod
    def remove(self, job_id: str) -> Job | None:
        """Remove a still-queued job by id, returning it if found."""

    @abstractmethod
    def snapshot(self) -> list[Job]:
        """Return the queued jobs in order without removing them."""

    @abstractmethod
    def __len__(self) -> int: ...


def validate_job(job: Job) -> str | None:
    """Return why a job cannot be queued, or ``None`` if it is well-formed."""
    if not isinstance(job.file_ref, str) or not job.file_ref.strip():
        return "missing file_ref"
    return None


class InMemoryJobQueue(JobQueue):
    """Thread-safe in-process queue backed by a deque."""

    def __init__(self) -> None:
        self._items: deque[Job] = deque()
        self._lock = threading.Lock()

    def enqueue(self, job: Job) -> EnqueueResult:
        reason = validate_job(job)
        if reason:
            logger.warning("Rejected job %s: %s", job.id, reason)
            return EnqueueResult(accepted=False, reason=reason)

        with self._lock:
            self._items.append(job)
        logger.debug("Enqueued job %s", job.id)
        return EnqueueResult(accepted=True)

    def dequeue(self) -> Job | None:
        with self._lock:
            if not self._items:
                return None
            return self._items.popleft()

    def remove(self, job_id: str) -> Job | None:
        with self._lock:
            for job in self._items:
                if job.id == job_id:
                    self._items.remove(job)
                    return job
        return None

    def snapshot(self) -> list[Job]:
        with self._lock:
            return list(self._items)

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)
