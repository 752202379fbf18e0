"""Keyword-based document type classification.

Each registered document type carries a list of lower-case marker
phrases. A type becomes a candidate once enough distinct markers occur
in the text; the candidate with the most hits wins.
"""

from dataclasses import dataclass, field
from pathlib import Path

import yaml

from docintel.utils.logger import get_logger

logger = get_logger(__name__)

UNKNOWN_TYPE = "unknown"

NIC_MARKERS: list[str] = [
    "national identity card",
    "nic",
    "identity card",
    "id number",
    "date of birth",
    "address",
    "nic no",
    "nic number",
    "sri lanka",
    "name",
    "sex",
    "male",
    "female",
]

BIRTH_CERTIFICATE_MARKERS: list[str] = [
    "birth certificate",
    "certificate of birth",
    "place of birth",
    "date of birth",
    "father",
    "mother",
    "registration number",
    "district",
    "division",
    "name of child",
    "sex",
    "male",
    "female",
]


@dataclass
class ClassificationResult:
    """Outcome of classifying a document's text."""

    detected_type: str = UNKNOWN_TYPE
    score: int = 0
    per_type_hits: dict[str, int] = field(default_factory=dict)


@dataclass
class _TypeMarkers:
    markers: tuple[str, ...]
    min_hits: int


class DocumentClassifier:
    """Scores text against per-type marker sets.

    Types are evaluated in registration order, which decides ties.

    Args:
        default_min_hits: Threshold used when a registration gives none.
        include_builtin: Register the NIC and birth certificate types.
    """

    def __init__(self, default_min_hits: int = 3, include_builtin: bool = True) -> None:
        self.default_min_hits = default_min_hits
        self._types: dict[str, _TypeMarkers] = {}
        if include_builtin:
            self.register("NIC", NIC_MARKERS)
            self.register("BirthCertificate", BIRTH_CERTIFICATE_MARKERS)

    @property
    def document_types(self) -> list[str]:
        return list(self._types)

    def register(
        self, doc_type: str, markers: list[str], min_hits: int | None = None
    ) -> None:
        """Register or replace the markers for a document type.

        Args:
            doc_type: Document type name reported on a match.
            markers: Keyword or phrase markers, matched case-insensitively.
            min_hits: Distinct markers needed before the type is a candidate.
        """
        unique = tuple(dict.fromkeys(m.strip().lower() for m in markers if m.strip()))
        self._types[doc_type] = _TypeMarkers(
            markers=unique,
            min_hits=self.default_min_hits if min_hits is None else min_hits,
        )
        logger.debug("Registered document type %s with %d markers", doc_type, len(unique))

    def load_types(self, path: Path) -> int:
        """Register additional document types from a YAML file.

        The file maps type names to ``{"markers": [...], "min_hits": n}``.

        Args:
            path: Path to the document types YAML file.

        Returns:
            Number of types registered from the file.
        """
        if not path.exists():
            logger.debug("No document types file at %s, using built-in types", path)
            return 0
        with open(path) as f:
            data = yaml.safe_load(f) or {}

        for doc_type, definition in data.items():
            self.register(
                doc_type,
                definition.get("markers", []),
                definition.get("min_hits"),
            )
        logger.info("Loaded %d document types from %s", len(data), path)
        return len(data)

    def classify(self, text: str) -> ClassificationResult:
        """Guess the document type of OCR text.

        Args:
            text: Raw OCR text, possibly empty.

        Returns:
            Classification with the winning type, its hit count, and the
            hit count of every registered type.
        """
        lower_text = (text or "").lower()
        result = ClassificationResult()

        for doc_type, entry in self._types.items():
            hits = sum(1 for marker in entry.markers if marker in lower_text)
            result.per_type_hits[doc_type] = hits
            if hits >= entry.min_hits and hits > result.score:
                result.detected_type = doc_type
                result.score = hits

        logger.debug(
            "Classified document as %s (score=%d, hits=%s)",
            result.detected_type,
            result.score,
            result.per_type_hits,
        )
        return result
