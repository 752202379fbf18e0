"""Suspicious and low-quality document flagging.

Combines OCR confidence, required-field coverage, a text noise
heuristic, and the authenticity verdict. Every triggered check adds a
reason; a document with any reason needs human review.
"""

import re
from collections.abc import Callable
from dataclasses import dataclass, field

from docintel.utils.logger import get_logger

from .authenticity import AuthenticityVerdict

logger = get_logger(__name__)

_ALPHABETIC_TOKEN = re.compile(r"[A-Za-z]+")
_MIN_TOKEN_LENGTH = 3
_MIN_ALPHABETIC_RATIO = 0.5


@dataclass
class SuspicionOptions:
    """Thresholds for suspicion evaluation."""

    min_confidence: float = 0.6
    required_fields: tuple[str, ...] = ()


@dataclass
class SuspicionVerdict:
    """Whether a document looks suspicious, and why."""

    is_suspicious: bool
    reasons: list[str] = field(default_factory=list)


@dataclass
class SuspicionInput:
    """The parts of a pipeline outcome the checks look at."""

    text: str
    fields: dict[str, str]
    confidence: float | None = None
    authenticity: AuthenticityVerdict | None = None


class SuspicionEvaluator:
    """Applies independent heuristic checks and collects their reasons.

    Checks run in a fixed order, so identical inputs always give
    identical reasons in identical order.
    """

    def __init__(self) -> None:
        self._checks: list[
            Callable[[SuspicionInput, SuspicionOptions], list[str]]
        ] = [
            self._check_confidence,
            self._check_required_fields,
            self._check_noise,
            self._check_authenticity,
        ]

    def evaluate(
        self, subject: SuspicionInput, options: SuspicionOptions | None = None
    ) -> SuspicionVerdict:
        """Evaluate a document for suspicion.

        Args:
            subject: OCR text, confidence, fields, and authenticity verdict.
            options: Thresholds; defaults to ``SuspicionOptions()``.

        Returns:
            Verdict whose reasons list every triggered check.
        """
        options = options or SuspicionOptions()
        reasons: list[str] = []
        for check in self._checks:
            reasons.extend(check(subject, options))

        verdict = SuspicionVerdict(is_suspicious=bool(reasons), reasons=reasons)
        if verdict.is_suspicious:
            logger.info("Document flagged as suspicious: %s", "; ".join(reasons))
        return verdict

    def _check_confidence(
        self, subject: SuspicionInput, options: SuspicionOptions
    ) -> list[str]:
        if subject.confidence is not None and subject.confidence < options.min_confidence:
            return [f"low OCR confidence: {subject.confidence}"]
        return []

    def _check_required_fields(
        self, subject: SuspicionInput, options: SuspicionOptions
    ) -> list[str]:
        return [
            f"missing required field: {name}"
            for name in options.required_fields
            if not subject.fields.get(name)
        ]

    def _check_noise(
        self, subject: SuspicionInput, options: SuspicionOptions
    ) -> list[str]:
        """Flag text where fewer than half the longer tokens are plain words."""
        tokens = [t for t in (subject.text or "").split() if len(t) >= _MIN_TOKEN_LENGTH]
        if not tokens:
            return []

        alphabetic = sum(1 for t in tokens if _ALPHABETIC_TOKEN.fullmatch(t))
        if alphabetic / len(tokens) < _MIN_ALPHABETIC_RATIO:
            return ["text appears noisy or gibberish"]
        return []

    def _check_authenticity(
        self, subject: SuspicionInput, options: SuspicionOptions
    ) -> list[str]:
        if subject.authenticity is not None and not subject.authenticity.is_authentic:
            return ["failed authenticity validation"]
        return []
