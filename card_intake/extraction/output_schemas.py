# output_schemas.py
"""Card-scan JSON response schemas for AI structured outputs.

The vision call offers :class:`PatientCardModel` as the provider's
*response_format* where the provider supports one.  Whatever comes back is
still treated as untrusted text and goes through the extraction pipeline.
"""

from __future__ import annotations

from pydantic import BaseModel, Field

# ---------------------------------------------------------------------------
# Pydantic models for card scanning
# ---------------------------------------------------------------------------


class CardAddressModel(BaseModel):
    street: str | None = Field(default=None, description="Street line")
    city: str | None = Field(default=None, description="City")
    state: str | None = Field(
        default=None, description="Two-letter state code, exactly as printed"
    )
    zip_code: str | None = Field(default=None, description="ZIP or postal code")


class PatientCardModel(BaseModel):
    first_name: str | None = Field(default=None, description="Given name (first)")
    last_name: str | None = Field(default=None, description="Family name / surname")
    date_of_birth: str | None = Field(
        default=None, description="Date of birth exactly as printed on the card"
    )
    gender: str | None = Field(default=None, description="Gender or sex as printed")
    phone: str | None = Field(default=None, description="Contact phone number")
    email: str | None = Field(default=None, description="Contact e-mail address")
    address: CardAddressModel | None = Field(
        default=None, description="Mailing address printed on the card"
    )
    insurance_id: str | None = Field(
        default=None, description="Member / subscriber / policy identifier"
    )
    insurance_provider: str | None = Field(
        default=None, description="Insurance company or plan name"
    )
