"""
Recover a JSON object embedded in a model reply.

Vision models asked for JSON usually comply, but wrap the object in prose or
markdown fences.  :func:`extract_embedded_structure` takes the greedy span from
the first ``{`` to the last ``}``, parses it, and maps the keys it recognises
onto the record through :data:`~card_intake.extraction.record.KEY_SYNONYMS`.
It returns ``None`` whenever there is nothing usable so the caller can fall
back to line parsing.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from typing import Any, Optional

from .key_value_parser import apply_full_name
from .record import (
    ADDRESS_FIELDS,
    ExtractedRecord,
    RecordField,
    clean_value,
    lookup_key,
    normalize_key,
)

EMBEDDED_OBJECT_PATTERN = re.compile(r"\{.*\}", re.DOTALL)

# Containers the fields are sometimes nested under
WRAPPER_KEYS = ("extracteddata", "patient", "patientinfo", "patientinformation", "data")


@dataclass
class StructureScan:
    """Mapped record plus the values that still need folding in."""

    record: ExtractedRecord
    address_block: Optional[str] = None
    full_name: Optional[str] = None

    def is_empty(self) -> bool:
        return self.record.is_empty() and not self.address_block and not self.full_name


def find_embedded_object(text: str) -> Optional[dict]:
    """Return the embedded JSON object in *text*, or ``None``."""
    match = EMBEDDED_OBJECT_PATTERN.search(text)
    if not match:
        return None
    try:
        parsed = json.loads(match.group())
    except json.JSONDecodeError as e:
        logging.debug(f"Embedded object is not valid JSON: {e}")
        return None
    if not isinstance(parsed, dict):
        return None
    return parsed


def _scalar(value: Any) -> Optional[str]:
    # bool is an int subclass but "true" never belongs in a patient field
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, str):
        return clean_value(value)
    if isinstance(value, (int, float)):
        return clean_value(json.dumps(value))
    return None


def _map_address_object(obj: dict, scan: StructureScan) -> None:
    for key, value in obj.items():
        target = lookup_key(key)
        if target not in ADDRESS_FIELDS:
            continue
        text = _scalar(value)
        if text and not scan.record.has(target):
            scan.record.set(target, text)


def _map_object(obj: dict, scan: StructureScan) -> None:
    # Explicit keys are mapped before nested/combined ones so a flat "city" is
    # never overwritten by the nested address object.
    nested_addresses = []
    for key, value in obj.items():
        target = lookup_key(key)
        if target is None:
            continue
        if target is RecordField.ADDRESS:
            if isinstance(value, dict):
                nested_addresses.append(value)
            elif scan.address_block is None:
                scan.address_block = _scalar(value)
            continue
        text = _scalar(value)
        if not text:
            continue
        if target is RecordField.FULL_NAME:
            if scan.full_name is None:
                scan.full_name = text
        elif not scan.record.has(target):
            scan.record.set(target, text)

    for nested in nested_addresses:
        _map_address_object(nested, scan)


def scan_embedded_structure(text: str) -> Optional[StructureScan]:
    obj = find_embedded_object(text)
    if obj is None:
        return None

    scan = StructureScan(record=ExtractedRecord())
    _map_object(obj, scan)
    if scan.is_empty():
        for key, value in obj.items():
            if normalize_key(key) in WRAPPER_KEYS and isinstance(value, dict):
                logging.debug(f"Descending into wrapper key '{key}'")
                _map_object(value, scan)
                if not scan.is_empty():
                    break

    if scan.is_empty():
        logging.debug("Embedded object maps to no known fields")
        return None
    return scan


def extract_embedded_structure(text: str) -> Optional[ExtractedRecord]:
    """Map the embedded JSON object in *text* onto a record.

    A combined ``name`` is split into first/last name and a string-valued
    ``address`` is kept whole in ``address.street``; the pipeline decomposes it
    instead.  Returns ``None`` for no object, malformed JSON or no known keys.
    """
    scan = scan_embedded_structure(text)
    if scan is None:
        return None
    apply_full_name(scan.record, scan.full_name)
    if scan.address_block and not scan.record.has(RecordField.STREET):
        scan.record.set(RecordField.STREET, scan.address_block)
    return scan.record
