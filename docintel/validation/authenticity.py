"""Authenticity scoring for Sri Lankan government documents.

Counts trust indicators such as seals, signatures and registration
numbers found in the OCR text.
"""

from dataclasses import dataclass, field

from docintel.utils.logger import get_logger

logger = get_logger(__name__)

AUTHENTICITY_MARKERS: tuple[str, ...] = (
    "official seal",
    "signature",
    "watermark",
    "government of sri lanka",
    "ministry of",
    "registration number",
    "issued by",
    "valid until",
    "certified copy",
    "department of",
    "authorized officer",
    "stamp",
    "original",
    "notary",
    "embossed",
    "barcode",
    "qr code",
)


@dataclass
class AuthenticityVerdict:
    """Result of scoring a document for authenticity markers."""

    is_authentic: bool
    score: float
    matched_markers: frozenset[str] = field(default_factory=frozenset)


class AuthenticityScorer:
    """Scores text by the share of known authenticity markers it contains.

    Args:
        min_markers: Distinct markers needed to call a document authentic.
        markers: Marker phrases; defaults to ``AUTHENTICITY_MARKERS``.
    """

    def __init__(
        self, min_markers: int = 2, markers: tuple[str, ...] = AUTHENTICITY_MARKERS
    ) -> None:
        self.min_markers = min_markers
        self.markers = tuple(dict.fromkeys(m.lower() for m in markers))

    def score(self, text: str) -> AuthenticityVerdict:
        """Score OCR text for authenticity markers.

        Args:
            text: Raw OCR text, possibly empty.

        Returns:
            Verdict with the matched markers and a score in ``[0, 1]``.
        """
        lower_text = (text or "").lower()
        matched = frozenset(m for m in self.markers if m in lower_text)
        score = len(matched) / len(self.markers) if self.markers else 0.0

        verdict = AuthenticityVerdict(
            is_authentic=len(matched) >= self.min_markers,
            score=score,
            matched_markers=matched,
        )
        logger.debug(
            "Authenticity score %.2f with %d markers", verdict.score, len(matched)
        )
        return verdict
