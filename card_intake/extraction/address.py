"""Split a one-line mailing address into street, city, state and zip code."""

from __future__ import annotations

import logging
import re

from .record import Address

STATE_ZIP = r"([A-Z]{2})\s*(\d{5}(?:-\d{4})?)\b"

# "<street>, <city>, <ST> <zip>"
FULL_ADDRESS_PATTERN = re.compile(r"^(.+),\s*([^,]+),\s*" + STATE_ZIP, re.DOTALL)
STATE_ZIP_PATTERN = re.compile(r"\b" + STATE_ZIP)


def decompose_address(block: str) -> Address:
    """Decompose a combined address block.

    Tries the full ``street, city, ST zip`` shape first, then looks for a
    ``ST zip`` pair anywhere and splits what precedes it at the last comma.
    When neither works the whole block becomes the street.
    """
    # Sub-fields are slices of the block, internal spacing included
    text = block.strip()
    if not text:
        return Address()

    match = FULL_ADDRESS_PATTERN.match(text)
    if match:
        street, city, state, zip_code = (part.strip() for part in match.groups())
        return Address(street=street, city=city, state=state, zip_code=zip_code)

    match = STATE_ZIP_PATTERN.search(text)
    if match:
        address = Address(state=match.group(1), zip_code=match.group(2))
        before = text[: match.start()].strip().rstrip(",").strip()
        if "," in before:
            street, _, city = before.rpartition(",")
            address.street = street.strip() or None
            address.city = city.strip() or None
        elif before:
            address.street = before
        return address

    logging.debug("Address block has no state/zip pair, keeping it as street")
    return Address(street=text)
