"""Tests for per-type field extraction."""

from conftest import NIC_SINGLE_LINE_TEXT

from docintel.extraction.field_extractors import (
    FieldExtractorRegistry,
    extract_birth_certificate_fields,
    extract_nic_fields,
)


class TestNICExtractor:
    """Tests for national identity card field extraction."""

    def test_full_card(self, nic_text: str) -> None:
        fields = extract_nic_fields(nic_text)
        assert fields == {
            "nic_number": "901234567V",
            "name": "JOHN DOE",
            "address": "12 Main St",
            "date_of_birth": "1990-01-15",
            "gender": "Male",
        }

    def test_single_line_card(self) -> None:
        fields = extract_nic_fields(NIC_SINGLE_LINE_TEXT)
        assert fields == {
            "nic_number": "901234567V",
            "name": "JOHN DOE",
            "address": "12 Main St",
            "date_of_birth": "1990-01-15",
            "gender": "Male",
        }

    def test_inline_label_runs_to_end_of_line(self) -> None:
        fields = extract_nic_fields("Holder Name: JANE ROE\nPermanent Address: 3 Hill St")
        assert fields["name"] == "JANE ROE"
        assert fields["address"] == "3 Hill St"

    def test_line_start_label_preferred_over_inline(self) -> None:
        fields = extract_nic_fields("Card holder name: WRONG\nName: RIGHT")
        assert fields["name"] == "RIGHT"

    def test_inline_label_without_value(self) -> None:
        assert "name" not in extract_nic_fields("Holder Name: Address: 3 Hill St")

    def test_twelve_digit_number(self) -> None:
        fields = extract_nic_fields("NIC No 199012345678")
        assert fields["nic_number"] == "199012345678"

    def test_first_number_in_document_order_wins(self) -> None:
        fields = extract_nic_fields("old 851234567X new 198512345678")
        assert fields["nic_number"] == "851234567X"

    def test_lowercase_legacy_suffix(self) -> None:
        assert extract_nic_fields("901234567v")["nic_number"] == "901234567v"

    def test_name_label_needs_separator(self) -> None:
        fields = extract_nic_fields("Names are listed below\nname JANE ROE")
        assert fields["name"] == "JANE ROE"

    def test_label_is_case_insensitive_and_trimmed(self) -> None:
        fields = extract_nic_fields("   ADDRESS:   45 Temple Road, Kandy   ")
        assert fields["address"] == "45 Temple Road, Kandy"

    def test_empty_label_is_not_a_value(self) -> None:
        fields = extract_nic_fields("Name:\nName: ACTUAL NAME")
        assert fields["name"] == "ACTUAL NAME"

    def test_date_separators(self) -> None:
        assert extract_nic_fields("born 1985/07/23")["date_of_birth"] == "1985/07/23"
        assert extract_nic_fields("born 2001.12.01")["date_of_birth"] == "2001.12.01"

    def test_gender_preserves_casing(self) -> None:
        assert extract_nic_fields("sex: FEMALE")["gender"] == "FEMALE"
        assert extract_nic_fields("sex: male")["gender"] == "male"

    def test_gender_whole_word_only(self) -> None:
        assert "gender" not in extract_nic_fields("females males")

    def test_female_not_read_as_male(self) -> None:
        assert extract_nic_fields("Female")["gender"] == "Female"

    def test_partial_document(self) -> None:
        fields = extract_nic_fields("Address: 7 Lake Drive")
        assert fields == {"address": "7 Lake Drive"}

    def test_empty_text(self) -> None:
        assert extract_nic_fields("") == {}


class TestBirthCertificateExtractor:
    """Tests for birth certificate field extraction."""

    def test_full_certificate(self, birth_certificate_text: str) -> None:
        fields = extract_birth_certificate_fields(birth_certificate_text)
        assert fields == {
            "child_name": "Nimal Perera",
            "place_of_birth": "Colombo General Hospital",
            "father_name": "Sunil Perera",
            "mother_name": "Kamala Perera",
            "date_of_birth": "2020/03/04",
            "registration_number": "BC/2020-0045",
            "sex": "Female",
        }

    def test_alternative_labels(self) -> None:
        text = (
            "Child Name: Amal Silva\n"
            "Birth Place: Galle\n"
            "Name of Father: Upul Silva\n"
            "Mother: Rani Silva"
        )
        fields = extract_birth_certificate_fields(text)
        assert fields["child_name"] == "Amal Silva"
        assert fields["place_of_birth"] == "Galle"
        assert fields["father_name"] == "Upul Silva"
        assert fields["mother_name"] == "Rani Silva"

    def test_plain_name_label(self) -> None:
        fields = extract_birth_certificate_fields("Name: Saman Kumara")
        assert fields["child_name"] == "Saman Kumara"

    def test_registration_number_without_colon(self) -> None:
        fields = extract_birth_certificate_fields("Registration Number 1234/AB-9 issued")
        assert fields["registration_number"] == "1234/AB-9"

    def test_partial_document(self) -> None:
        assert extract_birth_certificate_fields("Sex: Male") == {"sex": "Male"}

    def test_empty_text(self) -> None:
        assert extract_birth_certificate_fields("") == {}


class TestFieldExtractorRegistry:
    """Tests for the FieldExtractorRegistry class."""

    def setup_method(self) -> None:
        self.registry = FieldExtractorRegistry()

    def test_builtin_extractors(self, nic_text: str) -> None:
        assert self.registry.has_extractor("NIC")
        assert self.registry.has_extractor("BirthCertificate")
        assert self.registry.extract("NIC", nic_text)["nic_number"] == "901234567V"

    def test_unknown_type_returns_empty(self, nic_text: str) -> None:
        assert self.registry.extract("unknown", nic_text) == {}
        assert self.registry.extract("generic", nic_text) == {}

    def test_register_custom_extractor(self) -> None:
        self.registry.register("Passport", lambda text: {"raw_length": str(len(text))})
        assert self.registry.extract("Passport", "abcd") == {"raw_length": "4"}

    def test_register_replaces_existing(self) -> None:
        self.registry.register("NIC", lambda text: {})
        assert self.registry.extract("NIC", "901234567V") == {}

    def test_empty_registry(self) -> None:
        registry = FieldExtractorRegistry(include_builtin=False)
        assert not registry.has_extractor("NIC")
        assert registry.extract("NIC", "901234567V") == {}
