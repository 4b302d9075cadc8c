"""
GST calculation for invoice line items.

Intra-state supplies (seller and buyer in the same state) are taxed as equal
CGST and SGST halves; inter-state supplies as IGST in full. The choice is made
once per invoice and applied to every item. The grand total is rounded up to
the next whole rupee and the difference recorded as round-off.

Pure functions only: no I/O, no shared state.
"""

from decimal import Decimal
from typing import Any, Iterable

from pydantic import ValidationError as PydanticValidationError

from core.exceptions import ValidationError
from core.models import ComputedLineItem, LineItemInput, TaxBreakdown, TaxDecision, TaxType
from core.money import HUNDRED, ZERO, ceil_rupee, round_paise


def resolve_tax_type(
    seller_state_code: str | None,
    buyer_state_code: str | None,
    explicit: TaxType | str | None = None
) -> TaxDecision:
    """
    Decide the invoice's tax type.

    An explicit type always wins. Otherwise matching state codes mean
    CGST+SGST and anything else, including a missing code, means IGST.

    Raises:
        ValidationError: If the explicit type is not a known TaxType
    """
    if explicit is not None and explicit != "":
        try:
            return TaxDecision.explicit(TaxType(explicit))
        except ValueError:
            raise ValidationError(
                "tax_type",
                f"must be one of {', '.join(t.value for t in TaxType)}"
            )

    seller = (seller_state_code or "").strip()
    buyer = (buyer_state_code or "").strip()
    if seller and seller == buyer:
        return TaxDecision.inferred(TaxType.CGST_SGST)
    return TaxDecision.inferred(TaxType.IGST)


def validate_items(
    items: Iterable[Any],
    default_gst_rate: Decimal | None = None,
    default_unit: str | None = None
) -> list[LineItemInput]:
    """
    Validate and coerce raw line items.

    Args:
        items: Raw item dicts (or LineItemInput instances)
        default_gst_rate: Rate for items that omit gst_rate
        default_unit: Unit for items that omit unit

    Returns:
        Typed line items in submission order

    Raises:
        ValidationError: On the first invalid item, naming its index and field
    """
    if items is None or isinstance(items, (str, bytes, dict)):
        raise ValidationError("items", "must be a list of line items")

    context = {}
    if default_gst_rate is not None:
        context["default_gst_rate"] = default_gst_rate
    if default_unit is not None:
        context["default_unit"] = default_unit

    validated = []
    for index, raw in enumerate(items):
        try:
            validated.append(LineItemInput.model_validate(raw, context=context))
        except PydanticValidationError as e:
            error = e.errors()[0]
            field = str(error["loc"][0]) if error["loc"] else "item"
            raise ValidationError(field, error["msg"], item_index=index) from e

    if not validated:
        raise ValidationError("items", "at least one item is required")

    return validated


def compute_item(item: LineItemInput, serial_number: int, tax_type: TaxType) -> ComputedLineItem:
    """Taxable amount and GST split for a single validated item."""
    amount = round_paise(item.qty * item.rate)
    tax_amount = amount * item.gst_rate / HUNDRED

    if tax_type == TaxType.CGST_SGST:
        # Exact halves; an odd half-paisa stays in both components
        half = tax_amount / 2
        cgst, sgst, igst = half, half, ZERO
    else:
        cgst, sgst, igst = ZERO, ZERO, tax_amount

    return ComputedLineItem(
        serial_number=serial_number,
        description=item.description,
        hsn_code=item.hsn_code,
        qty=item.qty,
        unit=item.unit,
        rate=item.rate,
        gst_rate=item.gst_rate,
        amount=amount,
        cgst_amount=cgst,
        sgst_amount=sgst,
        igst_amount=igst,
        product_id=item.product_id,
    )


def calculate_taxes(
    items: Iterable[Any],
    seller_state_code: str | None,
    buyer_state_code: str | None,
    tax_type: TaxType | str | None = None,
    default_gst_rate: Decimal | None = None,
    default_unit: str | None = None
) -> TaxBreakdown:
    """
    Compute the full tax breakdown for an invoice.

    Every item is validated before any amount is computed.

    Args:
        items: Raw line items, in invoice order
        seller_state_code: Seller's GST state code
        buyer_state_code: Buyer's GST state code
        tax_type: Optional explicit "cgst_sgst" or "igst" override
        default_gst_rate: Rate for items that omit gst_rate
        default_unit: Unit for items that omit unit

    Returns:
        Frozen TaxBreakdown with per-item amounts

    Raises:
        ValidationError: If any item or the tax type is invalid
    """
    validated = validate_items(items, default_gst_rate, default_unit)
    decision = resolve_tax_type(seller_state_code, buyer_state_code, tax_type)

    computed = tuple(
        compute_item(item, serial_number, decision.tax_type)
        for serial_number, item in enumerate(validated, start=1)
    )

    subtotal = sum((item.amount for item in computed), ZERO)
    cgst = sum((item.cgst_amount for item in computed), ZERO)
    sgst = sum((item.sgst_amount for item in computed), ZERO)
    igst = sum((item.igst_amount for item in computed), ZERO)

    pre_round_total = subtotal + cgst + sgst + igst
    total = ceil_rupee(pre_round_total)

    return TaxBreakdown(
        decision=decision,
        items=computed,
        subtotal=subtotal,
        cgst=cgst,
        sgst=sgst,
        igst=igst,
        round_off=total - pre_round_total,
        total=total,
    )
