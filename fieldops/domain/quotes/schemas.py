"""Quote domain schemas - Pydantic models for validation"""

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ...shared.validators import validate_email, validate_us_phone

QuoteStatus = Literal["draft", "sent", "viewed", "accepted", "declined", "expired"]
DepositType = Literal["percentage", "fixed"]


class CustomerSnapshot(BaseModel):
    name: str = ""
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v):
        if v:
            return validate_email(v)
        return v

    @field_validator("phone")
    @classmethod
    def validate_phone(cls, v):
        if v:
            return validate_us_phone(v)
        return v


class LineItem(BaseModel):
    # Price-book fields (sku, category, ...) ride along untouched
    model_config = ConfigDict(extra="allow")

    description: str = ""
    quantity: float = 0
    unitPrice: float = 0


class QuoteCreate(BaseModel):
    """Schema for creating a new quote"""

    customer: CustomerSnapshot = Field(default_factory=CustomerSnapshot)
    customerId: Optional[str] = None
    title: str = ""
    lineItems: list[LineItem] = Field(default_factory=list)
    taxRate: float = 0
    depositRequired: bool = False
    depositType: DepositType = "percentage"
    depositValue: float = 0
    requiredSkills: list[str] = Field(default_factory=list)
    requiredCertifications: list[str] = Field(default_factory=list)
    notes: Optional[str] = None
    terms: Optional[str] = "Quote valid for 14 days."
    expiresAt: Optional[datetime] = None
    status: Literal["draft", "sent"] = "draft"

    @field_validator("taxRate", "depositValue")
    @classmethod
    def non_negative(cls, v):
        if v < 0:
            raise ValueError("must not be negative")
        return v


class QuoteResponse(BaseModel):
    id: str
    quoteNumber: str
    status: str
    customer: dict
    customerId: Optional[str] = None
    title: str
    lineItems: list[dict]
    subtotal: float
    taxRate: float
    taxAmount: float
    total: float
    depositRequired: bool
    depositType: str
    depositValue: float
    depositAmount: float
    requiredSkills: list[str] = Field(default_factory=list)
    requiredCertifications: list[str] = Field(default_factory=list)
    viewCount: int = 0
    sentAt: Optional[datetime] = None
    acceptedAt: Optional[datetime] = None
    declinedAt: Optional[datetime] = None
    declineReason: Optional[str] = None
    customerMessage: Optional[str] = None
    convertedToJobId: Optional[str] = None
    jobStatus: Optional[str] = None
    created_at: Optional[datetime] = None


class AcceptQuoteRequest(BaseModel):
    customerMessage: Optional[str] = None


class DeclineQuoteRequest(BaseModel):
    reason: Optional[str] = ""


class AcceptanceResult(BaseModel):
    jobId: str
    jobNumber: str
    customerId: str
