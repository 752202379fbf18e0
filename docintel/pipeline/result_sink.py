"""Result sinks that persist pipeline outcomes against document records.

Persisting the same document id twice replaces the earlier record.
"""

import json
import os
import re
import tempfile
import threading
from pathlib import Path
from typing import Any, Protocol

from docintel.exceptions import PersistenceError
from docintel.utils.logger import get_logger

from .job import PipelineOutcome, utcnow

logger = get_logger(__name__)

_UNSAFE_FILENAME_CHARS = re.compile(r"[^A-Za-z0-9._-]")


class ResultSink(Protocol):
    """Stores the final outcome of a job."""

    def persist(self, document_id: str, outcome: PipelineOutcome) -> None:
        """Store ``outcome`` for ``document_id``, raising PersistenceError on failure."""
        ...


class InMemoryResultSink:
    """Keeps outcomes in a dict keyed by document id."""

    def __init__(self) -> None:
        self._records: dict[str, PipelineOutcome] = {}
        self._lock = threading.Lock()

    def persist(self, document_id: str, outcome: PipelineOutcome) -> None:
        with self._lock:
            self._records[document_id] = outcome

    def get(self, document_id: str) -> PipelineOutcome | None:
        with self._lock:
            return self._records.get(document_id)

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)


class JsonDirectoryResultSink:
    """Writes one ``<document_id>.json`` file per document record.

    Files are written to a temporary name and renamed into place, so a
    reader never sees a partial record.

    Args:
        directory: Directory holding the result files.
    """

    def __init__(self, directory: Path) -> None:
        self.directory = Path(directory)

    def path_for(self, document_id: str) -> Path:
        return self.directory / f"{_UNSAFE_FILENAME_CHARS.sub('_', document_id)}.json"

    def persist(self, document_id: str, outcome: PipelineOutcome) -> None:
        record: dict[str, Any] = {
            "document_id": document_id,
            "updated_at": utcnow().isoformat(),
            **outcome.to_dict(),
        }
        target = self.path_for(document_id)
        tmp_name = None
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=self.directory, suffix=".tmp")
            with os.fdopen(fd, "w") as f:
                json.dump(record, f, indent=2)
            os.replace(tmp_name, target)
        except OSError as exc:
            if tmp_name is not None:
                Path(tmp_name).unlink(missing_ok=True)
            raise PersistenceError(f"{target}: {exc}") from exc

        logger.info("Persisted outcome for document %s to %s", document_id, target)

    def load(self, document_id: str) -> dict[str, Any] | None:
        path = self.path_for(document_id)
        if not path.exists():
            return None
        with open(path) as f:
            return json.load(f)
