"""Shared test fixtures for the document intelligence test suite."""

import threading
from collections import Counter
from pathlib import Path

import pytest
from PIL import Image

from docintel.exceptions import ExtractionError, ExtractionErrorKind
from docintel.ocr.tesseract_engine import ExtractionResult, OCRWord

NIC_TEXT = (
    "NATIONAL IDENTITY CARD\n"
    "Name: JOHN DOE\n"
    "Address: 12 Main St\n"
    "Date of Birth: 1990-01-15\n"
    "Male\n"
    "ID Number: 901234567V"
)

NIC_SINGLE_LINE_TEXT = (
    "NATIONAL IDENTITY CARD Name: JOHN DOE Address: 12 Main St "
    "Date of Birth: 1990-01-15 Male ID Number: 901234567V"
)

BIRTH_CERTIFICATE_TEXT = (
    "BIRTH CERTIFICATE\n"
    "Government of Sri Lanka - Department of Registration\n"
    "Registration Number: BC/2020-0045\n"
    "Name of Child: Nimal Perera\n"
    "Date of Birth: 2020/03/04\n"
    "Place of Birth: Colombo General Hospital\n"
    "Sex: Female\n"
    "Father's Name: Sunil Perera\n"
    "Mother's Name: Kamala Perera\n"
    "District: Colombo\n"
    "Official Seal"
)


class FakeEngine:
    """Text extractor returning canned results and counting calls per file."""

    def __init__(
        self,
        text: str = NIC_TEXT,
        confidence: float = 0.9,
        errors: list[ExtractionError] | None = None,
    ) -> None:
        self.text = text
        self.confidence = confidence
        self.errors = list(errors or [])
        self.calls: Counter[str] = Counter()
        self._lock = threading.Lock()

    def extract(self, file_ref: str, language_hint: str | None = None) -> ExtractionResult:
        with self._lock:
            self.calls[file_ref] += 1
            error = self.errors.pop(0) if self.errors else None
        if error is not None:
            raise error
        return ExtractionResult(
            text=self.text,
            confidence=self.confidence,
            language=language_hint or "eng",
            words=[
                OCRWord(word, self.confidence, 1, 1, i + 1)
                for i, word in enumerate(self.text.split())
            ],
        )


def timeout_error() -> ExtractionError:
    return ExtractionError(ExtractionErrorKind.TIMEOUT, "Tesseract process timeout")


@pytest.fixture
def nic_text() -> str:
    return NIC_TEXT


@pytest.fixture
def birth_certificate_text() -> str:
    return BIRTH_CERTIFICATE_TEXT


@pytest.fixture
def fake_engine() -> FakeEngine:
    return FakeEngine()


@pytest.fixture
def sample_image_path(tmp_path: Path) -> Path:
    """Write a small blank PNG and return its path."""
    path = tmp_path / "document.png"
    Image.new("L", (60, 30), color=255).save(path, format="PNG")
    return path


@pytest.fixture
def project_root() -> Path:
    """Return the project root directory."""
    return Path(__file__).parent.parent
