"""
Invoice number allocation.

Auto-generated numbers look like 2026100042: the year and month in the
business timezone followed by a zero-padded sequence. The sequence is kept
per seller per month in the invoice_sequences counter table and advanced with
a single upsert, so concurrent allocators for the same seller queue on the
counter row instead of racing on a max() scan.

Uniqueness is always global: a number used by any seller, auto or manual,
is never handed out again. The unique constraint on invoices.invoice_number
remains the final arbiter; the allocator must run inside the same
transaction as the invoice insert.
"""

import logging
from datetime import datetime
from typing import Callable, TypeVar

from clients.postgres_client import Transaction
from core.config import InvoiceConfig
from core.exceptions import DuplicateInvoiceNumber, NumberSpaceExhausted
from utils.timezone import now_utc, to_local

logger = logging.getLogger(__name__)

T = TypeVar("T")


class InvoiceNumberRepository:
    """Number lookups and the monthly counter, bound to an open transaction."""

    def __init__(self, tx: Transaction):
        self.tx = tx

    def number_exists(self, invoice_number: str) -> bool:
        """Whether any invoice, for any seller, already uses this number."""
        row = self.tx.execute_single(
            "SELECT 1 AS taken FROM invoices WHERE invoice_number = %s LIMIT 1",
            (invoice_number,)
        )
        return row is not None

    def next_sequence(self, seller_id: int, prefix: str, width: int) -> int:
        """
        Advance and return the seller's counter for this month.

        First use of a month seeds the counter from the highest matching
        number the seller already has, so rows written before the counter
        existed are respected. The upsert locks the counter row until the
        transaction ends.
        """
        return self.tx.execute_scalar(
            """
            INSERT INTO invoice_sequences (seller_id, prefix, last_sequence, updated_at)
            VALUES (
                %s, %s,
                COALESCE((
                    SELECT MAX(CAST(SUBSTRING(invoice_number FROM %s) AS BIGINT))
                    FROM invoices
                    WHERE seller_id = %s AND invoice_number ~ %s
                ), 0) + 1,
                now()
            )
            ON CONFLICT (seller_id, prefix) DO UPDATE
            SET last_sequence = invoice_sequences.last_sequence + 1,
                updated_at = EXCLUDED.updated_at
            RETURNING last_sequence
            """,
            (
                seller_id, prefix,
                len(prefix) + 1,
                seller_id, f"^{prefix}[0-9]{{{width},18}}$",
            )
        )


class InvoiceNumberAllocator:
    """Allocates or validates the number for one invoice insert."""

    def __init__(
        self,
        repository: InvoiceNumberRepository,
        config: InvoiceConfig | None = None,
        clock: Callable[[], datetime] = now_utc
    ):
        self.repository = repository
        self.config = config or InvoiceConfig()
        self.clock = clock

    def month_prefix(self) -> str:
        """YYYYMM of the current month in the business timezone."""
        return to_local(self.clock(), self.config.business_timezone).strftime("%Y%m")

    def format_number(self, prefix: str, sequence: int) -> str:
        return f"{prefix}{sequence:0{self.config.sequence_width}d}"

    def allocate(self, seller_id: int, requested_number: str | None = None) -> str:
        """
        Return the invoice number to insert.

        Args:
            seller_id: Seller issuing the invoice
            requested_number: Caller-supplied number; blank means auto-generate

        Returns:
            The requested number unchanged (stripped), or a new one

        Raises:
            DuplicateInvoiceNumber: Requested number already used by any seller
            NumberSpaceExhausted: No free number within the attempt bound
        """
        if requested_number is not None and requested_number.strip():
            number = requested_number.strip()
            if self.repository.number_exists(number):
                raise DuplicateInvoiceNumber(number)
            return number

        prefix = self.month_prefix()
        width = self.config.sequence_width

        for _ in range(self.config.max_allocation_attempts):
            sequence = self.repository.next_sequence(seller_id, prefix, width)
            candidate = self.format_number(prefix, sequence)
            if not self.repository.number_exists(candidate):
                return candidate
            logger.warning(f"Invoice number {candidate} already taken, advancing sequence")

        raise NumberSpaceExhausted(seller_id, prefix)


def with_number_retry(
    operation: Callable[[], T],
    attempts: int,
    requested_number: str | None = None
) -> T:
    """
    Run an allocate-and-insert operation, retrying lost number races.

    Each call of `operation` must be a complete transaction. Only
    auto-generated numbers are retried; a caller-supplied number that is
    taken will stay taken.

    Raises:
        DuplicateInvoiceNumber: Requested number taken, or retries exhausted
    """
    manual = requested_number is not None and bool(requested_number.strip())

    for attempt in range(1, attempts + 1):
        try:
            return operation()
        except DuplicateInvoiceNumber as e:
            if manual or attempt == attempts:
                raise
            logger.warning(
                f"Invoice number {e.attempted_number} lost to a concurrent insert "
                f"(attempt {attempt}/{attempts}), retrying"
            )

    raise ValueError("attempts must be at least 1")
