"""card_intake package."""

# Import and expose the main functionality from the extraction subpackage
from .extraction.pipeline import extract
from .extraction.record import Address, ExtractedRecord, RecordField
from .extraction.errors import InvalidInputError, VisionServiceError
from .extraction.dates import normalize_date
from .extraction.address import decompose_address
from .extraction.key_value_parser import parse_key_value_lines
from .extraction.embedded_structure import extract_embedded_structure

__all__ = [
    "extract",
    "Address",
    "ExtractedRecord",
    "RecordField",
    "InvalidInputError",
    "VisionServiceError",
    "normalize_date",
    "decompose_address",
    "parse_key_value_lines",
    "extract_embedded_structure",
]
