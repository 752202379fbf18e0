"""Per-document-type field extraction from OCR text.

Each extractor is a plain function ``text -> dict[str, str]`` registered
under a document type. Extraction is best-effort: a field whose pattern
does not match is simply left out of the map.
"""

import re
from collections.abc import Callable

from docintel.utils.logger import get_logger

logger = get_logger(__name__)

FieldMap = dict[str, str]
Extractor = Callable[[str], FieldMap]

_NIC_NUMBER_PATTERN = re.compile(r"[0-9]{9}[VvXx]|[0-9]{12}")
_DATE_OF_BIRTH_PATTERN = re.compile(r"(?:19|20)[0-9]{2}[-/.][0-9]{2}[-/.][0-9]{2}")
_GENDER_PATTERN = re.compile(r"\b(male|female)\b", re.IGNORECASE)
_REGISTRATION_NUMBER_PATTERN = re.compile(
    r"registration number[:\s]*([A-Za-z0-9/-]+)", re.IGNORECASE
)

# Label alternatives per field, tried against the start of each line.
_NIC_LABELS: dict[str, tuple[str, ...]] = {
    "name": ("name",),
    "address": ("address",),
}

_BIRTH_CERTIFICATE_LABELS: dict[str, tuple[str, ...]] = {
    "child_name": ("name of child", "child name", "name"),
    "place_of_birth": ("place of birth", "birth place"),
    "father_name": ("father", "father's name", "name of father"),
    "mother_name": ("mother", "mother's name", "name of mother"),
}


def _label_pattern(labels: tuple[str, ...]) -> re.Pattern[str]:
    alternation = "|".join(re.escape(label) for label in labels)
    return re.compile(rf"^(?:{alternation})[:\s][:\s]*(.*)$", re.IGNORECASE)


_NIC_LABEL_PATTERNS = {k: _label_pattern(v) for k, v in _NIC_LABELS.items()}
_BIRTH_CERTIFICATE_LABEL_PATTERNS = {
    k: _label_pattern(v) for k, v in _BIRTH_CERTIFICATE_LABELS.items()
}

# Words that end an inline value when a card's fields share one line.
_NIC_STOP_WORDS = (
    "name",
    "address",
    "date of birth",
    "id number",
    "nic",
    "sex",
    "male",
    "female",
)


def _inline_label_pattern(
    labels: tuple[str, ...], stop_words: tuple[str, ...]
) -> re.Pattern[str]:
    alternation = "|".join(re.escape(label) for label in labels)
    stops = "|".join(re.escape(word) for word in stop_words)
    return re.compile(
        rf"\b(?:{alternation})[: \t]+(?!(?:{stops})\b)"
        rf"([^ \t:].*?)(?=[ \t]+(?:{stops})\b|$)",
        re.IGNORECASE | re.MULTILINE,
    )


_NIC_INLINE_PATTERNS = {
    k: _inline_label_pattern(v, _NIC_STOP_WORDS) for k, v in _NIC_LABELS.items()
}


def _lines(text: str) -> list[str]:
    return [line.strip() for line in text.split("\n") if line.strip()]


def _labeled_values(
    lines: list[str], patterns: dict[str, re.Pattern[str]]
) -> FieldMap:
    """Take each field's value from the first line that starts with its label.

    A label with nothing after it does not count as a match.
    """
    fields: FieldMap = {}
    for field_name, pattern in patterns.items():
        for line in lines:
            match = pattern.match(line)
            if match and match.group(1).strip():
                fields[field_name] = match.group(1).strip()
                break
    return fields


def _inline_values(
    text: str, patterns: dict[str, re.Pattern[str]], fields: FieldMap
) -> None:
    """Fill fields still missing from a label found mid-line.

    The value runs until the next known label or the end of the line.
    """
    for field_name, pattern in patterns.items():
        if field_name in fields:
            continue
        for match in pattern.finditer(text):
            value = match.group(1).strip()
            if value:
                fields[field_name] = value
                break


def _first_match(pattern: re.Pattern[str], text: str, group: int = 0) -> str | None:
    match = pattern.search(text)
    return match.group(group) if match else None


def extract_nic_fields(text: str) -> FieldMap:
    """Extract fields from a national identity card.

    Returns any of ``nic_number``, ``name``, ``address``,
    ``date_of_birth`` and ``gender``.
    """
    fields: FieldMap = {}

    nic_number = _first_match(_NIC_NUMBER_PATTERN, text)
    if nic_number:
        fields["nic_number"] = nic_number

    labeled = _labeled_values(_lines(text), _NIC_LABEL_PATTERNS)
    _inline_values(text, _NIC_INLINE_PATTERNS, labeled)
    fields.update(labeled)

    date_of_birth = _first_match(_DATE_OF_BIRTH_PATTERN, text)
    if date_of_birth:
        fields["date_of_birth"] = date_of_birth

    gender = _first_match(_GENDER_PATTERN, text, 1)
    if gender:
        fields["gender"] = gender

    return fields


def extract_birth_certificate_fields(text: str) -> FieldMap:
    """Extract fields from a birth certificate.

    Returns any of ``child_name``, ``date_of_birth``, ``place_of_birth``,
    ``father_name``, ``mother_name``, ``registration_number`` and ``sex``.
    """
    fields: FieldMap = _labeled_values(_lines(text), _BIRTH_CERTIFICATE_LABEL_PATTERNS)

    date_of_birth = _first_match(_DATE_OF_BIRTH_PATTERN, text)
    if date_of_birth:
        fields["date_of_birth"] = date_of_birth

    registration_number = _first_match(_REGISTRATION_NUMBER_PATTERN, text, 1)
    if registration_number:
        fields["registration_number"] = registration_number

    sex = _first_match(_GENDER_PATTERN, text, 1)
    if sex:
        fields["sex"] = sex

    return fields


class FieldExtractorRegistry:
    """Maps document types to their field extractor functions.

    Args:
        include_builtin: Register the NIC and birth certificate extractors.
    """

    def __init__(self, include_builtin: bool = True) -> None:
        self._extractors: dict[str, Extractor] = {}
        if include_builtin:
            self.register("NIC", extract_nic_fields)
            self.register("BirthCertificate", extract_birth_certificate_fields)

    def register(self, doc_type: str, extractor: Extractor) -> None:
        """Register or replace the extractor for a document type."""
        self._extractors[doc_type] = extractor

    def has_extractor(self, doc_type: str) -> bool:
        return doc_type in self._extractors

    def extract(self, doc_type: str, text: str) -> FieldMap:
        """Run the extractor registered for ``doc_type``.

        Args:
            doc_type: Document type, e.g. ``"NIC"``.
            text: Raw OCR text.

        Returns:
            Extracted fields; empty when no extractor is registered.
        """
        extractor = self._extractors.get(doc_type)
        if extractor is None:
            logger.debug("No field extractor registered for %s", doc_type)
            return {}

        fields = extractor(text or "")
        logger.info("Extracted %d fields for %s", len(fields), doc_type)
        return fields
