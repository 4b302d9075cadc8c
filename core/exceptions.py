"""Typed exceptions for invoice creation failures.

Each condition the caller may need to tell apart gets its own class so the
request layer can render an accurate message and decide whether to retry.
"""


class InvoiceError(Exception):
    """Base class for invoice engine errors."""


class ValidationError(InvoiceError):
    """
    Submitted invoice data is malformed or out of range.

    Raised before any monetary computation. `item_index` is the zero-based
    position of the offending line item, or None for invoice-level fields.
    """

    def __init__(self, field: str, message: str, item_index: int | None = None):
        self.field = field
        self.message = message
        self.item_index = item_index
        if item_index is None:
            super().__init__(f"{field}: {message}")
        else:
            super().__init__(f"items[{item_index}].{field}: {message}")


class DuplicateInvoiceNumber(InvoiceError):
    """
    Invoice number is already in use by some invoice, for any seller.

    Raised by the uniqueness check and by the storage constraint at insert
    time alike. Auto-generated numbers may be re-allocated and retried.
    """

    retryable = True

    def __init__(self, attempted_number: str):
        self.attempted_number = attempted_number
        super().__init__(f"Invoice number {attempted_number} already exists")


class NumberSpaceExhausted(InvoiceError):
    """Bounded search for a free auto-generated number ran out. Use a manual number."""

    retryable = False

    def __init__(self, seller_id: int, prefix: str):
        self.seller_id = seller_id
        self.prefix = prefix
        super().__init__(
            f"Unable to generate unique invoice number for seller {seller_id} "
            f"with prefix {prefix}"
        )
