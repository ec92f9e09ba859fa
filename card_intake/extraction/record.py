"""Record types shared by every extraction stage.

``ExtractedRecord`` is the only thing the pipeline returns.  Attributes use
snake_case; :py:meth:`ExtractedRecord.to_dict` produces the camelCase form the
intake forms consume, with absent fields omitted and ``address`` always
present.

The synonym table at the bottom maps every key spelling we accept from an
embedded JSON object onto a :class:`RecordField`.  It is built once at import
and never mutated.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field, fields
from enum import Enum
from typing import Dict, Optional


class RecordField(str, Enum):
    FIRST_NAME = "firstName"
    LAST_NAME = "lastName"
    FULL_NAME = "fullName"  # combined name, split before it lands on the record
    DATE_OF_BIRTH = "dateOfBirth"
    GENDER = "gender"
    PHONE = "phone"
    EMAIL = "email"
    ADDRESS = "address"  # nested object or combined address block
    STREET = "street"
    CITY = "city"
    STATE = "state"
    ZIP_CODE = "zipCode"
    INSURANCE_ID = "insuranceId"
    INSURANCE_PROVIDER = "insuranceProvider"


ADDRESS_FIELDS = frozenset(
    {RecordField.STREET, RecordField.CITY, RecordField.STATE, RecordField.ZIP_CODE}
)

# RecordField -> dataclass attribute
_ATTRIBUTES = {
    RecordField.FIRST_NAME: "first_name",
    RecordField.LAST_NAME: "last_name",
    RecordField.DATE_OF_BIRTH: "date_of_birth",
    RecordField.GENDER: "gender",
    RecordField.PHONE: "phone",
    RecordField.EMAIL: "email",
    RecordField.INSURANCE_ID: "insurance_id",
    RecordField.INSURANCE_PROVIDER: "insurance_provider",
    RecordField.STREET: "street",
    RecordField.CITY: "city",
    RecordField.STATE: "state",
    RecordField.ZIP_CODE: "zip_code",
}


@dataclass
class Address:
    street: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zip_code: Optional[str] = None

    def to_dict(self) -> dict:
        data = {}
        if self.street:
            data["street"] = self.street
        if self.city:
            data["city"] = self.city
        if self.state:
            data["state"] = self.state
        if self.zip_code:
            data["zipCode"] = self.zip_code
        return data

    def is_empty(self) -> bool:
        return not (self.street or self.city or self.state or self.zip_code)

    def merge_missing(self, other: "Address") -> None:
        """Copy sub-fields from *other* that are still absent here.

        Sub-fields already set (from an explicit ``City:`` line, say) are never
        overwritten by values decomposed from a combined address block.
        """
        for f in fields(self):
            if not getattr(self, f.name) and getattr(other, f.name):
                setattr(self, f.name, getattr(other, f.name))


@dataclass
class ExtractedRecord:
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    date_of_birth: Optional[str] = None
    gender: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    address: Address = field(default_factory=Address)
    insurance_id: Optional[str] = None
    insurance_provider: Optional[str] = None

    # --------------- field access by canonical name ------------------
    def get(self, key: RecordField) -> Optional[str]:
        if key in ADDRESS_FIELDS:
            return getattr(self.address, _ATTRIBUTES[key])
        return getattr(self, _ATTRIBUTES[key])

    def set(self, key: RecordField, value: str) -> None:
        if key in ADDRESS_FIELDS:
            setattr(self.address, _ATTRIBUTES[key], value)
        else:
            setattr(self, _ATTRIBUTES[key], value)

    def has(self, key: RecordField) -> bool:
        return bool(self.get(key))

    # --------------- serialisation helpers ------------------
    def to_dict(self) -> dict:
        data = {}
        for key in (
            RecordField.FIRST_NAME,
            RecordField.LAST_NAME,
            RecordField.DATE_OF_BIRTH,
            RecordField.GENDER,
            RecordField.PHONE,
            RecordField.EMAIL,
        ):
            if self.get(key):
                data[key.value] = self.get(key)
        data["address"] = self.address.to_dict()
        for key in (RecordField.INSURANCE_ID, RecordField.INSURANCE_PROVIDER):
            if self.get(key):
                data[key.value] = self.get(key)
        return data

    def is_empty(self) -> bool:
        """Return True when nothing at all could be extracted."""
        return not any(
            self.get(key) for key in _ATTRIBUTES if key not in ADDRESS_FIELDS
        ) and self.address.is_empty()


# ---------------------------------------------------------------------------
# Value helpers
# ---------------------------------------------------------------------------

# What the model writes when a field is not on the card
PLACEHOLDER_VALUES = frozenset(
    {
        "",
        "-",
        "--",
        "n/a",
        "na",
        "none",
        "null",
        "unknown",
        "not available",
        "not visible",
        "not provided",
        "not shown",
        "not found",
        "not specified",
        "not listed",
    }
)


def clean_value(value: str) -> Optional[str]:
    """Trim *value*; return ``None`` when nothing meaningful is left."""
    value = value.strip()
    if value.strip(".").lower() in PLACEHOLDER_VALUES:
        return None
    return value


def normalize_gender(value: str) -> str:
    """Lower-case *value* if it reads as male/female, else pass it through."""
    lowered = value.strip().lower()
    if lowered in ("male", "female"):
        return lowered
    return value


# "<first and middle names> <last name>"
_LAST_TOKEN = re.compile(r"^(.*\S)\s+(\S+)$", re.DOTALL)


def split_full_name(full_name: str) -> tuple[Optional[str], Optional[str]]:
    """Split a combined name into ``(first, last)``.

    ``"Doe, John A"`` splits at the comma.  Otherwise the last whitespace token
    is the last name and everything before it the first name, so middle names
    stay with the first name.  A single token is treated as a first name only.
    Both parts are slices of *full_name*; inner spacing is left alone.
    """
    full_name = full_name.strip()
    if not full_name:
        return None, None
    if "," in full_name:
        last, _, first = full_name.partition(",")
        return first.strip() or None, last.strip() or None
    match = _LAST_TOKEN.match(full_name)
    if match is None:
        return full_name, None
    return match.group(1), match.group(2)


# ---------------------------------------------------------------------------
# Key synonym table (embedded JSON objects)
# ---------------------------------------------------------------------------

_KEY_SEPARATORS = re.compile(r"[\s_\-]+")


def normalize_key(key: str) -> str:
    """``"date_of_birth"``, ``"dateOfBirth"`` and ``"Date of birth"`` -> ``"dateofbirth"``."""
    return _KEY_SEPARATORS.sub("", key).lower()


KEY_SYNONYMS: Dict[str, RecordField] = {
    # names
    "firstname": RecordField.FIRST_NAME,
    "givenname": RecordField.FIRST_NAME,
    "fname": RecordField.FIRST_NAME,
    "lastname": RecordField.LAST_NAME,
    "surname": RecordField.LAST_NAME,
    "familyname": RecordField.LAST_NAME,
    "lname": RecordField.LAST_NAME,
    "name": RecordField.FULL_NAME,
    "fullname": RecordField.FULL_NAME,
    "patientname": RecordField.FULL_NAME,
    "membername": RecordField.FULL_NAME,
    # demographics
    "dob": RecordField.DATE_OF_BIRTH,
    "dateofbirth": RecordField.DATE_OF_BIRTH,
    "birthdate": RecordField.DATE_OF_BIRTH,
    "birthday": RecordField.DATE_OF_BIRTH,
    "gender": RecordField.GENDER,
    "sex": RecordField.GENDER,
    # contact
    "phone": RecordField.PHONE,
    "phonenumber": RecordField.PHONE,
    "telephone": RecordField.PHONE,
    "mobile": RecordField.PHONE,
    "cellphone": RecordField.PHONE,
    "email": RecordField.EMAIL,
    "emailaddress": RecordField.EMAIL,
    # address
    "address": RecordField.ADDRESS,
    "mailingaddress": RecordField.ADDRESS,
    "homeaddress": RecordField.ADDRESS,
    "street": RecordField.STREET,
    "streetaddress": RecordField.STREET,
    "line1": RecordField.STREET,
    "address1": RecordField.STREET,
    "addressline1": RecordField.STREET,
    "city": RecordField.CITY,
    "town": RecordField.CITY,
    "state": RecordField.STATE,
    "zip": RecordField.ZIP_CODE,
    "zipcode": RecordField.ZIP_CODE,
    "postalcode": RecordField.ZIP_CODE,
    "postcode": RecordField.ZIP_CODE,
    # insurance
    "insuranceid": RecordField.INSURANCE_ID,
    "memberid": RecordField.INSURANCE_ID,
    "subscriberid": RecordField.INSURANCE_ID,
    "policynumber": RecordField.INSURANCE_ID,
    "policyid": RecordField.INSURANCE_ID,
    "insuranceprovider": RecordField.INSURANCE_PROVIDER,
    "insurancecompany": RecordField.INSURANCE_PROVIDER,
    "insurancecarrier": RecordField.INSURANCE_PROVIDER,
    "insurer": RecordField.INSURANCE_PROVIDER,
    "payer": RecordField.INSURANCE_PROVIDER,
}


def lookup_key(key: str) -> Optional[RecordField]:
    return KEY_SYNONYMS.get(normalize_key(key))
