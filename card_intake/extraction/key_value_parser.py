"""
Line-oriented ``label: value`` parsing for model replies that are not JSON.

Each line is split at its first colon.  The label is normalised and classified
by walking :data:`LABEL_RULES` top to bottom; the first rule whose predicate
holds decides the target field.  Order matters because some labels contain
others ("insurance provider" vs "insurance id" vs "insurance").
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Callable, List, Optional, Tuple

from .record import ExtractedRecord, RecordField, clean_value, split_full_name


def _equals(*names: str) -> Callable[[str], bool]:
    return lambda label: label in names


def _contains(*parts: str) -> Callable[[str], bool]:
    return lambda label: any(part in label for part in parts)


def _either(*predicates: Callable[[str], bool]) -> Callable[[str], bool]:
    return lambda label: any(predicate(label) for predicate in predicates)


# (rule name, predicate over the normalised label, target field)
LABEL_RULES: Tuple[Tuple[str, Callable[[str], bool], RecordField], ...] = (
    (
        "first_name",
        _either(_contains("first name"), _equals("firstname")),
        RecordField.FIRST_NAME,
    ),
    (
        "last_name",
        _either(_contains("last name"), _equals("lastname")),
        RecordField.LAST_NAME,
    ),
    (
        "date_of_birth",
        _either(_contains("birth"), _equals("dob")),
        RecordField.DATE_OF_BIRTH,
    ),
    ("gender", _equals("gender", "sex"), RecordField.GENDER),
    (
        "phone",
        _either(_contains("phone", "telephone"), _equals("tel", "cell", "mobile")),
        RecordField.PHONE,
    ),
    ("email", _equals("email", "e-mail", "email address"), RecordField.EMAIL),
    (
        "address",
        _either(
            _contains("street"),
            _equals("address", "mailing address", "home address", "patient address"),
        ),
        RecordField.ADDRESS,
    ),
    ("city", _equals("city"), RecordField.CITY),
    ("state", _equals("state"), RecordField.STATE),
    (
        "zip_code",
        _either(_contains("zip"), _equals("postal code")),
        RecordField.ZIP_CODE,
    ),
    (
        "insurance_id",
        _either(
            _contains("insurance id", "member id", "policy number", "subscriber id"),
            _equals("policy #", "id number"),
        ),
        RecordField.INSURANCE_ID,
    ),
    (
        "insurance_provider",
        _either(
            _contains("insurance provider", "insurance company", "insurance carrier"),
            _equals("insurance", "provider", "carrier", "insurer"),
        ),
        RecordField.INSURANCE_PROVIDER,
    ),
    (
        "full_name",
        _equals("name", "full name", "patient name", "member name"),
        RecordField.FULL_NAME,
    ),
)

# Markdown decoration around labels: bullets, numbering, headings, bold
_LABEL_DECORATION = re.compile(r"^(?:[\s\-*•#>]|\d+[.)]\s)+")
_WHITESPACE = re.compile(r"\s+")
_QUOTES = "\"'`"


def normalize_label(label: str) -> str:
    """Case-fold and trim *label*, dropping markdown bullets and bold markers.

    Lines of a JSON object that failed to parse arrive here too, so an opening
    brace and the key's quotes are dropped and ``_`` reads as a space
    (``{"first_name"`` -> ``first name``).
    """
    label = label.replace("**", "").replace("__", "").replace("_", " ")
    label = _LABEL_DECORATION.sub("", label)
    label = label.strip().lstrip("{[").strip().strip(_QUOTES)
    return _WHITESPACE.sub(" ", label).strip().lower()


def classify_label(label: str) -> Optional[RecordField]:
    """Return the field an already-normalised *label* maps to, if any."""
    for _name, predicate, target in LABEL_RULES:
        if predicate(label):
            return target
    return None


def _clean_line_value(value: str) -> Optional[str]:
    value = value.strip().strip("*_").strip()
    # JSON member: "value",
    value = value.rstrip(",").strip()
    if value.startswith(("{", "[")):
        return None
    if len(value) >= 2 and value[0] == value[-1] and value[0] in _QUOTES:
        value = value[1:-1]
    return clean_value(value)


@dataclass
class KeyValueScan:
    """Raw outcome of scanning the lines.

    ``record`` holds only individually labelled values.  The combined
    ``Address:`` line and the combined ``Name:`` line are kept aside so the
    caller decides how to fold them in.
    """

    record: ExtractedRecord
    address_block: Optional[str] = None
    full_name: Optional[str] = None


def scan_key_value_lines(text: str) -> KeyValueScan:
    record = ExtractedRecord()
    scan = KeyValueScan(record=record)
    matched: List[str] = []

    for line in text.splitlines():
        if ":" not in line:
            continue
        raw_label, _, raw_value = line.partition(":")
        label = normalize_label(raw_label)
        if not label:
            continue
        target = classify_label(label)
        if target is None:
            continue
        value = _clean_line_value(raw_value)
        if value is None:
            continue

        # First occurrence of a field wins; later lines on a card tend to be
        # emergency contacts, the subscriber, the clinic, ...
        if target is RecordField.ADDRESS:
            if "street" in label:
                if record.has(RecordField.STREET):
                    continue
                record.set(RecordField.STREET, value)
            elif scan.address_block is None:
                scan.address_block = value
            else:
                continue
        elif target is RecordField.FULL_NAME:
            if scan.full_name is not None:
                continue
            scan.full_name = value
        else:
            if record.has(target):
                continue
            record.set(target, value)
        matched.append(label)

    logging.debug(f"Key-value scan matched labels: {matched}")
    return scan


def apply_full_name(record: ExtractedRecord, full_name: Optional[str]) -> None:
    """Fill first/last name from a combined name where no explicit line did."""
    if not full_name:
        return
    first, last = split_full_name(full_name)
    if first and not record.has(RecordField.FIRST_NAME):
        record.set(RecordField.FIRST_NAME, first)
    if last and not record.has(RecordField.LAST_NAME):
        record.set(RecordField.LAST_NAME, last)


def parse_key_value_lines(text: str) -> ExtractedRecord:
    """Parse ``label: value`` lines into a partially populated record.

    The combined ``Address:`` value lands in ``address.street`` unless an
    explicit street line exists.  Never fails: no matches gives an empty
    record.
    """
    scan = scan_key_value_lines(text)
    record = scan.record
    apply_full_name(record, scan.full_name)
    if scan.address_block and not record.has(RecordField.STREET):
        record.set(RecordField.STREET, scan.address_block)
    return record
