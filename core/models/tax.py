"""Tax breakdown models.

A breakdown is computed once per invoice and frozen. Recomputing taxes means
creating a new invoice, never mutating an existing breakdown.
"""

from decimal import Decimal
from enum import Enum
from typing import Literal

from pydantic import BaseModel

from core.models.line_item import ComputedLineItem


class TaxType(str, Enum):
    """GST split applied uniformly to every item of an invoice."""

    CGST_SGST = "cgst_sgst"  # Intra-state: central + state halves
    IGST = "igst"  # Inter-state: integrated, in full


class TaxDecision(BaseModel):
    """How the invoice's tax type was decided: inferred from states or explicit."""

    source: Literal["inferred", "explicit"]
    tax_type: TaxType

    model_config = {"frozen": True}

    @classmethod
    def inferred(cls, tax_type: TaxType) -> "TaxDecision":
        return cls(source="inferred", tax_type=tax_type)

    @classmethod
    def explicit(cls, tax_type: TaxType) -> "TaxDecision":
        return cls(source="explicit", tax_type=tax_type)


class TaxBreakdown(BaseModel):
    """Invoice-level amounts plus the per-item split they were summed from."""

    decision: TaxDecision
    items: tuple[ComputedLineItem, ...]
    subtotal: Decimal
    cgst: Decimal
    sgst: Decimal
    igst: Decimal
    round_off: Decimal
    total: Decimal

    model_config = {"frozen": True}

    @property
    def tax_type(self) -> TaxType:
        return self.decision.tax_type

    @property
    def tax_total(self) -> Decimal:
        return self.cgst + self.sgst + self.igst

    @property
    def pre_round_total(self) -> Decimal:
        """Subtotal plus every tax component, before round-off."""
        return self.subtotal + self.tax_total
