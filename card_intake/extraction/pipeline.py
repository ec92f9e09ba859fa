"""
Turn a vision model's reply about an ID or insurance card into a patient record.

The stages run in a fixed order:

1. the embedded JSON object, if the reply carries one that maps to any field;
2. otherwise ``label: value`` line parsing over the whole reply;
3. a combined address block is decomposed and fills the sub-fields no
   explicit line supplied;
4. the date of birth is normalised to ``YYYY-MM-DD`` where possible;
5. gender is lower-cased when it reads as male/female.

Stages 1 and 2 are never combined: a structured answer is trusted over a
looser textual match of the same reply.  Nothing found is a valid outcome and
yields an empty record; only non-text input raises.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from .address import decompose_address
from .dates import is_canonical_date, normalize_date
from .embedded_structure import scan_embedded_structure
from .errors import InvalidInputError
from .key_value_parser import apply_full_name, scan_key_value_lines
from .record import ExtractedRecord, RecordField, normalize_gender

__all__ = ["extract"]


def _fold_address_block(record: ExtractedRecord, block: Optional[str]) -> None:
    if not block:
        return
    decomposed = decompose_address(block)
    record.address.merge_missing(decomposed)


def _normalize_fields(record: ExtractedRecord) -> None:
    dob = record.get(RecordField.DATE_OF_BIRTH)
    if dob and not is_canonical_date(dob):
        normalized = normalize_date(dob)
        if normalized == dob:
            logging.info("Date of birth could not be normalised, keeping raw value")
        record.set(RecordField.DATE_OF_BIRTH, normalized)

    gender = record.get(RecordField.GENDER)
    if gender:
        record.set(RecordField.GENDER, normalize_gender(gender))


def extract(raw_text: Any) -> ExtractedRecord:
    """Extract a structured patient record from *raw_text*.

    Raises:
        InvalidInputError: *raw_text* is not a string.
    """
    if not isinstance(raw_text, str):
        raise InvalidInputError(
            f"Expected model response text, got {type(raw_text).__name__}",
            received=type(raw_text).__name__,
        )

    structure = scan_embedded_structure(raw_text)
    if structure is not None:
        source = "embedded_structure"
        record = structure.record
        full_name = structure.full_name
        address_block = structure.address_block
    else:
        source = "key_value_lines"
        scan = scan_key_value_lines(raw_text)
        record = scan.record
        full_name = scan.full_name
        address_block = scan.address_block

    apply_full_name(record, full_name)
    _fold_address_block(record, address_block)
    _normalize_fields(record)

    if record.is_empty():
        logging.info("No patient information could be extracted from the response")
    else:
        logging.info(
            f"Extracted patient fields via {source}: "
            f"{sorted(k for k in record.to_dict() if k != 'address')} "
            f"address={sorted(record.address.to_dict())}"
        )
    return record
