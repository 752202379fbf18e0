"""Tesseract text extraction adapter.

Turns a file reference and a language hint into raw text, a mean
confidence score and word-level detail. The engine's confidence is
passed through untouched; thresholding happens downstream.
"""

import time
from collections.abc import Iterator
from dataclasses import dataclass, field
from pathlib import Path

import pytesseract
from PIL import Image, UnidentifiedImageError
from pytesseract import TesseractError, TesseractNotFoundError

from docintel.exceptions import ExtractionError, ExtractionErrorKind
from docintel.utils.logger import get_logger

logger = get_logger(__name__)


@dataclass
class OCRWord:
    """A single word recognised by Tesseract."""

    text: str
    confidence: float
    block_num: int
    line_num: int
    word_num: int


@dataclass
class TextBlock:
    """Text and mean confidence of one Tesseract layout block."""

    block_num: int
    text: str
    confidence: float


@dataclass
class ExtractionResult:
    """Raw OCR output for one document."""

    text: str
    confidence: float
    language: str
    words: list[OCRWord] = field(default_factory=list)

    def iter_blocks(self) -> Iterator[TextBlock]:
        """Yield blocks in reading order, grouping consecutive words.

        Each call starts a fresh pass over the words; nothing is cached.
        """
        current: list[OCRWord] = []
        for word in self.words:
            if current and word.block_num != current[0].block_num:
                yield _make_block(current)
                current = []
            current.append(word)
        if current:
            yield _make_block(current)


def _make_block(words: list[OCRWord]) -> TextBlock:
    lines: list[list[str]] = []
    last_line: int | None = None
    for word in words:
        if word.line_num != last_line:
            lines.append([])
            last_line = word.line_num
        lines[-1].append(word.text)
    return TextBlock(
        block_num=words[0].block_num,
        text="\n".join(" ".join(line) for line in lines),
        confidence=sum(w.confidence for w in words) / len(words),
    )


class TesseractEngine:
    """Wrapper around Tesseract OCR with a bounded processing deadline.

    Args:
        tesseract_cmd: Path to the Tesseract executable.
            If ``None``, uses the system default.
        default_lang: Language set used when a job gives no hint.
        psm: Tesseract page segmentation mode.
        timeout_s: Deadline in seconds for one extraction.
    """

    def __init__(
        self,
        tesseract_cmd: str | None = None,
        default_lang: str = "sin+eng",
        psm: int = 3,
        timeout_s: float = 30.0,
    ) -> None:
        if tesseract_cmd:
            pytesseract.pytesseract.tesseract_cmd = tesseract_cmd
        self.default_lang = default_lang
        self.psm = psm
        self.timeout_s = timeout_s

    def extract(self, file_ref: str, language_hint: str | None = None) -> ExtractionResult:
        """Extract text from an image file.

        Args:
            file_ref: Path to the source image.
            language_hint: Tesseract language set such as ``"sin+eng"``.

        Returns:
            ExtractionResult with full text, words, and mean confidence.

        Raises:
            ExtractionError: If the file is missing, the engine fails,
                or the deadline is exceeded.
        """
        lang = language_hint or self.default_lang
        path = Path(file_ref)
        if not path.is_file():
            raise ExtractionError(ExtractionErrorKind.NOT_FOUND, str(file_ref))

        deadline = time.monotonic() + self.timeout_s
        config = f"--psm {self.psm}"

        try:
            with Image.open(path) as image:
                image.load()
                text = pytesseract.image_to_string(
                    image, lang=lang, config=config, timeout=self._remaining(deadline)
                )
                data = pytesseract.image_to_data(
                    image,
                    lang=lang,
                    config=config,
                    timeout=self._remaining(deadline),
                    output_type=pytesseract.Output.DICT,
                )
        except TesseractNotFoundError as exc:
            raise ExtractionError(
                ExtractionErrorKind.ENGINE_FAILURE, "tesseract is not installed"
            ) from exc
        except (UnidentifiedImageError, OSError) as exc:
            raise ExtractionError(ExtractionErrorKind.ENGINE_FAILURE, str(exc)) from exc
        except TesseractError as exc:
            raise ExtractionError(ExtractionErrorKind.ENGINE_FAILURE, str(exc)) from exc
        except RuntimeError as exc:
            # pytesseract signals a killed process with a bare RuntimeError
            if "timeout" in str(exc).lower():
                raise ExtractionError(ExtractionErrorKind.TIMEOUT, str(exc)) from exc
            raise ExtractionError(ExtractionErrorKind.ENGINE_FAILURE, str(exc)) from exc

        words = self._collect_words(data)
        confidence = sum(w.confidence for w in words) / len(words) if words else 0.0

        logger.info(
            "OCR extracted %d words from %s with average confidence %.2f",
            len(words),
            path.name,
            confidence,
        )
        return ExtractionResult(
            text=text, confidence=confidence, language=lang, words=words
        )

    def _remaining(self, deadline: float) -> float:
        """Seconds left before the deadline; pytesseract treats 0 as no limit."""
        remaining = deadline - time.monotonic()
        if remaining <= 0:
            raise RuntimeError("Tesseract process timeout")
        return remaining

    def _collect_words(self, data: dict) -> list[OCRWord]:
        words: list[OCRWord] = []
        for i in range(len(data["text"])):
            conf = float(data["conf"][i])
            word_text = str(data["text"][i]).strip()
            if conf > 0 and word_text:
                words.append(
                    OCRWord(
                        text=word_text,
                        confidence=conf / 100.0,
                        block_num=int(data["block_num"][i]),
                        line_num=int(data["line_num"][i]),
                        word_num=int(data["word_num"][i]),
                    )
                )
        return words
