"""Invoice domain models.

Amounts are Decimal rupees. Subtotal and total are stored at 2dp; tax
components and round-off keep their exact unrounded value. Seller and buyer
details are snapshotted onto the invoice at creation so later edits to the
parties never change an issued invoice.
"""

from datetime import date as date_type, datetime
from decimal import Decimal
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field

from core.models.line_item import InvoiceItem
from core.models.tax import TaxType


class InvoiceStatus(str, Enum):
    """Invoice lifecycle status."""

    DRAFT = "draft"
    SENT = "sent"
    PAID = "paid"
    CANCELLED = "cancelled"


class InvoiceCreate(BaseModel):
    """
    Data submitted to create an invoice.

    Items stay raw here; they are validated one by one by the tax
    calculator so failures can name the offending item index.
    """

    buyer_id: int
    seller_id: int | None = None
    invoice_number: str | None = Field(None, max_length=50)
    date: date_type | None = None
    items: list[Any] = Field(default_factory=list)
    tax_type: TaxType | None = None
    notes: str | None = Field(None, max_length=2000)

    # Per-invoice overrides of the stored party details
    seller_name: str | None = Field(None, max_length=255)
    seller_address: str | None = None
    seller_gstin: str | None = Field(None, max_length=15)
    seller_contact: str | None = Field(None, max_length=20)
    seller_bank_name: str | None = Field(None, max_length=255)
    seller_bank_account: str | None = Field(None, max_length=50)
    seller_bank_ifsc: str | None = Field(None, max_length=20)
    buyer_name: str | None = Field(None, max_length=255)
    buyer_address: str | None = None
    buyer_state: str | None = Field(None, max_length=100)
    buyer_state_code: str | None = Field(None, max_length=10)
    buyer_gstin: str | None = Field(None, max_length=15)

    model_config = {"str_strip_whitespace": True}


class Invoice(BaseModel):
    """Full invoice entity as stored, with its items when loaded."""

    id: int
    invoice_number: str
    date: date_type
    seller_id: int
    buyer_id: int
    seller_name: str
    seller_address: str | None
    seller_gstin: str | None
    seller_contact: str | None
    seller_bank_name: str | None
    seller_bank_account: str | None
    seller_bank_ifsc: str | None
    buyer_name: str
    buyer_address: str | None
    buyer_state: str | None
    buyer_state_code: str | None
    buyer_gstin: str | None
    tax_type: TaxType
    subtotal: Decimal
    cgst: Decimal
    sgst: Decimal
    igst: Decimal
    round_off: Decimal
    total: Decimal
    total_in_words: str
    status: InvoiceStatus
    payment_method: str | None = None
    payment_date: date_type | None = None
    notes: str | None = None
    created_at: datetime
    updated_at: datetime
    items: list[InvoiceItem] = Field(default_factory=list)

    model_config = {"from_attributes": True}

    @property
    def is_paid(self) -> bool:
        """Whether invoice is fully paid."""
        return self.status == InvoiceStatus.PAID

    @property
    def is_deletable(self) -> bool:
        """Only drafts may be deleted."""
        return self.status == InvoiceStatus.DRAFT


class Pagination(BaseModel):
    """Page position within a filtered invoice listing."""

    page: int
    limit: int
    total: int
    pages: int


class InvoicePage(BaseModel):
    """One page of invoice headers."""

    invoices: list[Invoice]
    pagination: Pagination
