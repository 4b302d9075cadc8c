"""Core domain models."""

from core.models.line_item import LineItemInput, ComputedLineItem, InvoiceItem
from core.models.tax import TaxType, TaxDecision, TaxBreakdown
from core.models.party import Party
from core.models.invoice import Invoice, InvoiceCreate, InvoiceStatus, InvoicePage, Pagination

__all__ = [
    # LineItem
    "LineItemInput", "ComputedLineItem", "InvoiceItem",
    # Tax
    "TaxType", "TaxDecision", "TaxBreakdown",
    # Party
    "Party",
    # Invoice
    "Invoice", "InvoiceCreate", "InvoiceStatus", "InvoicePage", "Pagination",
]
