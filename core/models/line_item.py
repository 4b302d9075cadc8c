"""Invoice line item models.

Quantities, rates and GST percentages carry at most 2 fractional digits, the
precision they are stored at. Tax components are exact and may carry more.
Raw request values (strings, ints, floats) are coerced through
core.money.to_decimal; anything ambiguous is rejected rather than defaulted.
"""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field, ValidationInfo, field_validator

from core.money import to_decimal

DEFAULT_GST_RATE = Decimal("18.00")
DEFAULT_UNIT = "NOS"
MAX_DECIMAL_PLACES = 2


class LineItemInput(BaseModel):
    """A line item as submitted for an invoice, validated and typed."""

    description: str = Field(..., min_length=1)
    hsn_code: str | None = Field(None, max_length=10)
    qty: Decimal = Field(..., gt=0)
    unit: str = Field(None, max_length=50, validate_default=True)
    rate: Decimal = Field(..., ge=0)
    gst_rate: Decimal = Field(None, ge=0, le=100, validate_default=True)
    product_id: int | None = None

    model_config = {"str_strip_whitespace": True, "frozen": True}

    @field_validator("qty", "rate", mode="before")
    @classmethod
    def coerce_number(cls, value):
        return to_decimal(value)

    @field_validator("gst_rate", mode="before")
    @classmethod
    def default_gst_rate(cls, value, info: ValidationInfo):
        """Only a missing or null rate takes the default; 0 is a real rate."""
        if value is None:
            context = info.context or {}
            return context.get("default_gst_rate", DEFAULT_GST_RATE)
        return to_decimal(value)

    @field_validator("unit", mode="before")
    @classmethod
    def default_unit(cls, value, info: ValidationInfo):
        if value is None or (isinstance(value, str) and not value.strip()):
            context = info.context or {}
            return context.get("default_unit", DEFAULT_UNIT)
        return value

    @field_validator("hsn_code", mode="before")
    @classmethod
    def blank_hsn_is_none(cls, value):
        if isinstance(value, str) and not value.strip():
            return None
        if isinstance(value, int) and not isinstance(value, bool):
            return str(value)
        return value

    @field_validator("qty", "rate", "gst_rate")
    @classmethod
    def at_most_two_places(cls, value: Decimal) -> Decimal:
        if value.normalize().as_tuple().exponent < -MAX_DECIMAL_PLACES:
            raise ValueError(f"must have at most {MAX_DECIMAL_PLACES} decimal places")
        return value


class ComputedLineItem(BaseModel):
    """A validated line item with its serial number and tax amounts."""

    serial_number: int = Field(..., ge=1)
    description: str
    hsn_code: str | None
    qty: Decimal
    unit: str
    rate: Decimal
    gst_rate: Decimal
    amount: Decimal
    cgst_amount: Decimal
    sgst_amount: Decimal
    igst_amount: Decimal
    product_id: int | None = None

    model_config = {"frozen": True}

    @property
    def tax_amount(self) -> Decimal:
        return self.cgst_amount + self.sgst_amount + self.igst_amount


class InvoiceItem(BaseModel):
    """Full invoice item as stored."""

    id: int
    invoice_id: int
    product_id: int | None
    product_name: str | None = None
    serial_number: int
    description: str
    hsn_code: str | None
    qty: Decimal
    unit: str
    rate: Decimal
    gst_rate: Decimal
    cgst_amount: Decimal
    sgst_amount: Decimal
    igst_amount: Decimal
    amount: Decimal
    created_at: datetime

    model_config = {"from_attributes": True}
