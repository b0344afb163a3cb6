"""Pydantic models for documents, model results and the session view."""

import mimetypes
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator

FieldMap = dict[str, str]


class DocumentType(str, Enum):
    GENERIC = "generic"
    ID_CARD = "id_card"
    INVOICE = "invoice"
    RECEIPT = "receipt"


class Document(BaseModel):
    """A user-selected file. Replaced wholesale, never mutated."""

    model_config = ConfigDict(frozen=True)

    name: str
    content: bytes
    media_type: str = Field(default="", validate_default=True)

    @field_validator("media_type")
    @classmethod
    def _default_media_type(cls, v: str, info: ValidationInfo) -> str:
        if v:
            return v
        guessed, _ = mimetypes.guess_type(info.data.get("name", ""))
        return guessed or "application/octet-stream"

    @property
    def is_image(self) -> bool:
        return self.media_type.startswith("image/")


class EncodedPayload(BaseModel):
    model_config = ConfigDict(frozen=True)

    data: str
    mime_type: str


class QualityReport(BaseModel):
    """Model's assessment of how well a document image will OCR."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    is_good_quality: bool = Field(alias="isGoodQuality")
    score: int = Field(ge=0, le=100)
    feedback: list[str]


class FieldVerdict(BaseModel):
    model_config = ConfigDict(frozen=True)

    match: bool
    reason: str | None = None

    @field_validator("reason", mode="before")
    @classmethod
    def _blank_reason(cls, v):
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @field_validator("reason")
    @classmethod
    def _reason_only_on_mismatch(cls, v: str | None, info: ValidationInfo) -> str | None:
        if info.data.get("match"):
            return None
        return v


VerificationMap = dict[str, FieldVerdict]


class VerificationSummary(BaseModel):
    total: int
    matched: int
    accuracy: int


class QualityView(BaseModel):
    is_good_quality: bool
    score: int
    severity: str
    feedback: list[str]


class SessionView(BaseModel):
    """Serialisable snapshot of the workflow for the presentation layer."""

    state: str
    document_name: str | None = None
    media_type: str | None = None
    has_preview: bool = False
    document_type: DocumentType = DocumentType.GENERIC
    quality: QualityView | None = None
    fields: FieldMap = {}
    verification: VerificationMap = {}
    summary: VerificationSummary | None = None
    error: str | None = None
