from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field
from typing import Any, Optional, Literal
import logging

from .extraction.errors import InvalidInputError, VisionServiceError
from .extraction.pipeline import extract
from .extraction.record import Address, ExtractedRecord
from .llm_client import scan_card_image, text_from_envelope

app = FastAPI(title="Card Intake API", version="0.1.0")
app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:3000"],  # Intake frontend origin
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(InvalidInputError)
async def invalid_input_handler(request: Request, exc: InvalidInputError):
    return JSONResponse(
        status_code=400, content={"message": str(exc), "received": exc.received}
    )


@app.exception_handler(VisionServiceError)
async def vision_service_error_handler(request: Request, exc: VisionServiceError):
    logging.error(f"Vision service failure on {request.url.path}: {exc}")
    return JSONResponse(
        status_code=502, content={"message": str(exc), "provider": exc.provider}
    )


# ---------------------------------------------------------------------------
# Pydantic Schemas
# ---------------------------------------------------------------------------


class AddressSchema(BaseModel):
    street: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zipCode: Optional[str] = None

    @classmethod
    def from_dataclass(cls, address: Address) -> "AddressSchema":
        return cls(
            street=address.street,
            city=address.city,
            state=address.state,
            zipCode=address.zip_code,
        )


class ExtractedRecordSchema(BaseModel):
    firstName: Optional[str] = None
    lastName: Optional[str] = None
    dateOfBirth: Optional[str] = None
    gender: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    address: AddressSchema = Field(default_factory=AddressSchema)
    insuranceId: Optional[str] = None
    insuranceProvider: Optional[str] = None

    @classmethod
    def from_dataclass(cls, record: ExtractedRecord) -> "ExtractedRecordSchema":
        return cls(
            firstName=record.first_name,
            lastName=record.last_name,
            dateOfBirth=record.date_of_birth,
            gender=record.gender,
            phone=record.phone,
            email=record.email,
            address=AddressSchema.from_dataclass(record.address),
            insuranceId=record.insurance_id,
            insuranceProvider=record.insurance_provider,
        )


# ---------------------------------------------------------------------------
# Request/Response Models
# ---------------------------------------------------------------------------


class ExtractCardTextRequest(BaseModel):
    text: str


class ExtractCardTextResponse(BaseModel):
    record: ExtractedRecordSchema
    is_empty: bool


class ExtractEnvelopeRequest(BaseModel):
    """A raw provider response, e.g. an OpenAI-compatible chat completion."""

    envelope: Any


class ScanCardRequest(BaseModel):
    image_data: str  # base64 data URL
    provider: Optional[Literal["grok", "openai", "ollama"]] = None
    model: Optional[str] = None


class ScanCardResponse(BaseModel):
    record: ExtractedRecordSchema
    raw_content: str
    is_empty: bool


# ---------------------------------------------------------------------------
# API Endpoints
# ---------------------------------------------------------------------------


@app.post(
    "/card/extract",
    response_model=ExtractCardTextResponse,
    response_model_exclude_none=True,
    summary="Extract a patient record from a vision model's reply text",
)
def api_extract_card_text(req: ExtractCardTextRequest):
    record = extract(req.text)
    return ExtractCardTextResponse(
        record=ExtractedRecordSchema.from_dataclass(record),
        is_empty=record.is_empty(),
    )


@app.post(
    "/card/envelope",
    response_model=ScanCardResponse,
    response_model_exclude_none=True,
    summary="Extract a patient record from a raw provider response envelope",
)
def api_extract_envelope(req: ExtractEnvelopeRequest):
    content = text_from_envelope(req.envelope)
    record = extract(content)
    return ScanCardResponse(
        record=ExtractedRecordSchema.from_dataclass(record),
        raw_content=content,
        is_empty=record.is_empty(),
    )


@app.post(
    "/card/scan",
    response_model=ScanCardResponse,
    response_model_exclude_none=True,
    summary="Scan an ID or insurance card image",
    description=(
        "Sends the base64 `image_data` URL to the configured vision model and\n"
        "runs its reply through the extraction pipeline. An empty record is a\n"
        "valid outcome (blank or illegible card); the client should then ask\n"
        "for manual entry."
    ),
)
def api_scan_card(req: ScanCardRequest):
    content = scan_card_image(req.image_data, provider=req.provider, model=req.model)
    record = extract(content)
    return ScanCardResponse(
        record=ExtractedRecordSchema.from_dataclass(record),
        raw_content=content,
        is_empty=record.is_empty(),
    )


@app.get("/health")
def health_check():
    return {"status": "ok"}
