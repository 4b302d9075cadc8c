"""Invoice engine configuration."""

from decimal import Decimal

from pydantic import BaseModel, Field


class InvoiceConfig(BaseModel):
    """
    Invoice engine configuration.

    Defaults match Indian GST practice: 18% standard rate, month prefixes
    taken in India Standard Time.
    """

    # Tax
    default_gst_rate: Decimal = Field(
        default=Decimal("18.00"),
        description="GST rate percent applied when an item omits it",
        ge=0,
        le=100,
    )
    default_unit: str = Field(
        default="NOS",
        description="Unit of measure stored when an item omits it",
        min_length=1,
        max_length=50,
    )

    # Numbering
    sequence_width: int = Field(
        default=4,
        description="Zero-padded digits of the monthly sequence",
        ge=3,
        le=8,
    )
    max_allocation_attempts: int = Field(
        default=100,
        description="Candidate numbers checked before giving up",
        ge=1,
        le=1000,
    )
    max_create_retries: int = Field(
        default=3,
        description="Whole-transaction retries when the insert loses a number race",
        ge=1,
        le=10,
    )
    business_timezone: str = Field(
        default="Asia/Kolkata",
        description="IANA zone used for invoice dates and YYYYMM prefixes",
    )
