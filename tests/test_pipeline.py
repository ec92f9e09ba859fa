"""End-to-end tests for the extraction pipeline."""

import pytest

from card_intake import extract
from card_intake.extraction.errors import InvalidInputError
from card_intake.extraction.record import ExtractedRecord


def _assert_no_fabrication(record: ExtractedRecord, text: str) -> None:
    """Every value except the canonical date and gender is a substring of *text*."""
    data = record.to_dict()
    address = data.pop("address")
    data.pop("dateOfBirth", None)
    gender = data.pop("gender", None)
    for value in list(data.values()) + list(address.values()):
        assert value in text, value
    if gender is not None:
        assert gender.lower() in text.lower()


def test_empty_input_gives_empty_record():
    record = extract("")
    assert record.is_empty()
    assert record.to_dict() == {"address": {}}


@pytest.mark.parametrize("bad_input", [None, 42, b"First Name: Ann", ["text"]])
def test_non_text_input_raises(bad_input):
    with pytest.raises(InvalidInputError) as exc_info:
        extract(bad_input)
    assert exc_info.value.received == type(bad_input).__name__


def test_invalid_input_is_a_type_error():
    with pytest.raises(TypeError):
        extract(None)


def test_structured_reply(json_reply):
    record = extract(json_reply)
    assert record.to_dict() == {
        "firstName": "Maria",
        "lastName": "Gonzalez",
        "dateOfBirth": "1979-07-22",
        "gender": "female",
        "phone": "(555) 201-3344",
        "address": {
            "street": "45 Oak Ave",
            "city": "Springfield",
            "state": "IL",
            "zipCode": "62704",
        },
        "insuranceId": "XWZ123456789",
        "insuranceProvider": "Blue Cross Blue Shield",
    }
    _assert_no_fabrication(record, json_reply)


def test_prose_reply(prose_reply):
    record = extract(prose_reply)
    assert record.to_dict() == {
        "firstName": "John Michael",
        "lastName": "Smith",
        "dateOfBirth": "1987-03-04",
        "gender": "male",
        "phone": "555-123-4567",
        "address": {
            "street": "123 Main St",
            "city": "Anytown",
            "state": "CA",
            "zipCode": "90210",
        },
        "insuranceId": "ABC987654",
        "insuranceProvider": "Aetna",
    }
    _assert_no_fabrication(record, prose_reply)


def test_explicit_city_wins_over_decomposed_address():
    text = "City: Springfield\nAddress: 12 Elm St, Shelbyville, IL 62701"
    record = extract(text)
    assert record.address.city == "Springfield"
    assert record.address.street == "12 Elm St"
    assert record.address.state == "IL"
    assert record.address.zip_code == "62701"


def test_explicit_street_wins_over_decomposed_address():
    text = "Address: 12 Elm St, Shelbyville, IL 62701\nStreet Address: 12 Elm Street Unit 3"
    record = extract(text)
    assert record.address.street == "12 Elm Street Unit 3"
    assert record.address.city == "Shelbyville"


def test_embedded_structure_suppresses_line_parsing():
    text = 'Name info below\n{"firstName":"Ann","lastName":"Lee"}\nCity: Springfield'
    record = extract(text)
    assert record.first_name == "Ann"
    assert record.last_name == "Lee"
    assert record.address.city is None


def test_malformed_structure_falls_back_to_lines():
    text = '{"firstName": "Ann",\nLast Name: Lee\nDOB: 2/3/61'
    record = extract(text)
    assert record.last_name == "Lee"
    assert record.date_of_birth == "1961-02-03"


def test_string_address_in_structure_is_decomposed():
    text = '{"lastName": "Park", "city": "Round Rock", "address": "1 Loop Rd, Austin, TX 78701"}'
    record = extract(text)
    assert record.address.to_dict() == {
        "street": "1 Loop Rd",
        "city": "Round Rock",
        "state": "TX",
        "zipCode": "78701",
    }


def test_unparseable_date_is_preserved():
    record = extract("First Name: Ann\nDate of Birth: sometime in spring")
    assert record.date_of_birth == "sometime in spring"


def test_canonical_date_is_untouched():
    record = extract('{"dob": "1987-03-04"}')
    assert record.date_of_birth == "1987-03-04"


def test_unrecognised_gender_passes_through():
    record = extract("Gender: M")
    assert record.gender == "M"


def test_determinism(json_reply, prose_reply):
    for text in (json_reply, prose_reply, "", "Name: A B\nZip: 1"):
        assert extract(text) == extract(text)
        assert extract(text).to_dict() == extract(text).to_dict()


def test_each_call_returns_a_fresh_record():
    first = extract("First Name: Ann")
    second = extract("First Name: Ann")
    assert first is not second
    assert first.address is not second.address


def test_blank_card_reply():
    text = "I'm sorry, the image is too blurry; I cannot read any details from this card."
    record = extract(text)
    assert record.is_empty()


def test_blank_card_answered_with_empty_strings():
    text = (
        "{\n"
        '  "first_name": "",\n'
        '  "last_name": "",\n'
        '  "date_of_birth": "",\n'
        '  "gender": "",\n'
        '  "phone": "",\n'
        '  "email": "",\n'
        '  "address": {\n'
        '    "street": "",\n'
        '    "city": "",\n'
        '    "state": "",\n'
        '    "zip_code": ""\n'
        "  },\n"
        '  "insurance_id": "",\n'
        '  "insurance_provider": ""\n'
        "}"
    )
    record = extract(text)
    assert record.is_empty()
    assert record.to_dict() == {"address": {}}


def test_json_with_trailing_comma_is_read_line_by_line():
    text = (
        "{\n"
        '  "first_name": "Ann",\n'
        '  "phone": "555-1234",\n'
        '  "date_of_birth": "Jan 5, 51",\n'
        '  "address": {"street": "1 Loop Rd", "city": "Austin"},\n'
        '  "zip_code": 78701,\n'
        '  "insurance_id": "XYZ1",\n'
        "}"
    )
    record = extract(text)
    assert record.to_dict() == {
        "firstName": "Ann",
        "dateOfBirth": "1951-01-05",
        "phone": "555-1234",
        "address": {"zipCode": "78701"},
        "insuranceId": "XYZ1",
    }
    _assert_no_fabrication(record, text)


def test_values_keep_their_inner_spacing():
    text = "Name: John   Q  Public\nAddress: 12  Elm St,  Shelbyville, IL 62701"
    record = extract(text)
    assert record.first_name == "John   Q"
    assert record.last_name == "Public"
    assert record.address.street == "12  Elm St"
    assert record.address.city == "Shelbyville"
    _assert_no_fabrication(record, text)
