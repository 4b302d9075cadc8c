"""
Invoice service: creation, lookup and lifecycle of GST invoices.

Creation is the only place amounts are computed. The tax breakdown, the
invoice number and the header plus items are produced and written in one
transaction; any failure rolls back everything, so a header without items
(or items without a header) is never persisted. Amounts are never
recomputed afterwards: only the status changes, or a draft is deleted.
"""

import logging
from datetime import date, datetime
from math import ceil
from typing import Any, Callable

import psycopg2.errors
from pydantic import ValidationError as PydanticValidationError

from clients.postgres_client import PostgresClient, Transaction
from core.amount_words import to_words
from core.audit import AuditLogger, AuditAction, compute_changes
from core.config import InvoiceConfig
from core.exceptions import DuplicateInvoiceNumber, ValidationError
from core.models import (
    Invoice, InvoiceCreate, InvoiceItem, InvoicePage, InvoiceStatus,
    Pagination, Party, TaxBreakdown,
)
from core.services.invoice_number_allocator import (
    InvoiceNumberAllocator, InvoiceNumberRepository, with_number_retry,
)
from core.tax_calculator import calculate_taxes
from utils.timezone import business_today, now_utc
from utils.user_context import Actor, ActorRole, get_current_actor

logger = logging.getLogger(__name__)

INVOICE_NUMBER_CONSTRAINT = "invoices_invoice_number_key"

_SORT_COLUMNS = {
    "date": "i.date",
    "invoice_number": "i.invoice_number",
    "total": "i.total",
    "buyer_name": "b.business_name",
    "created_at": "i.created_at",
}


def _parse_create(data: InvoiceCreate | dict[str, Any]) -> InvoiceCreate:
    """Validate a raw request body, reporting the first bad field."""
    if isinstance(data, InvoiceCreate):
        return data
    try:
        return InvoiceCreate.model_validate(data)
    except PydanticValidationError as e:
        error = e.errors()[0]
        field = ".".join(str(part) for part in error["loc"]) or "invoice"
        raise ValidationError(field, error["msg"]) from e


class InvoiceService:
    """Service for invoice operations."""

    def __init__(
        self,
        postgres: PostgresClient,
        audit: AuditLogger,
        config: InvoiceConfig | None = None,
        clock: Callable[[], datetime] = now_utc,
        transaction_timeout_ms: int | None = 10_000
    ):
        self.postgres = postgres
        self.audit = audit
        self.config = config or InvoiceConfig()
        self.clock = clock
        self.transaction_timeout_ms = transaction_timeout_ms

    # -------------------------------------------------------------------------
    # Parties
    # -------------------------------------------------------------------------

    def _get_party(self, table: str, party_id: int) -> Party | None:
        row = self.postgres.execute_single(
            f"SELECT * FROM {table} WHERE id = %s",
            (party_id,)
        )
        return None if row is None else Party.model_validate(row)

    def _resolve_seller(self, data: InvoiceCreate, actor: Actor) -> Party:
        """The explicitly selected seller business, else the acting seller."""
        if data.seller_id is not None:
            seller_id = data.seller_id
        elif actor.role == ActorRole.SELLER:
            seller_id = actor.id
        else:
            raise ValidationError("seller_id", "is required unless the actor is a seller")

        seller = self._get_party("sellers", seller_id)
        if seller is None:
            raise ValueError(f"Seller {seller_id} not found")
        return seller

    def _resolve_buyer(self, data: InvoiceCreate) -> Party:
        buyer = self._get_party("buyers", data.buyer_id)
        if buyer is None:
            raise ValueError(f"Buyer {data.buyer_id} not found")
        return buyer

    # -------------------------------------------------------------------------
    # Create
    # -------------------------------------------------------------------------

    def create(self, data: InvoiceCreate | dict[str, Any]) -> Invoice:
        """
        Create an invoice with computed taxes and an allocated number.

        Args:
            data: InvoiceCreate or the raw request body

        Returns:
            Created invoice in DRAFT status, with items

        Raises:
            ValidationError: Invalid body or line items (nothing written)
            ValueError: Seller or buyer not found
            DuplicateInvoiceNumber: Requested number taken, or auto-numbering
                kept losing races after max_create_retries
            NumberSpaceExhausted: No free auto number this month
        """
        data = _parse_create(data)
        actor = get_current_actor()

        seller = self._resolve_seller(data, actor)
        buyer = self._resolve_buyer(data)
        buyer_state_code = data.buyer_state_code or buyer.state_code

        # Fails fast, before any write
        breakdown = calculate_taxes(
            data.items,
            seller.state_code,
            buyer_state_code,
            data.tax_type,
            default_gst_rate=self.config.default_gst_rate,
            default_unit=self.config.default_unit,
        )
        invoice_date = data.date or business_today(self.config.business_timezone, self.clock())

        def create_once() -> int:
            with self.postgres.transaction(self.transaction_timeout_ms) as tx:
                return self._insert(tx, actor, data, seller, buyer, breakdown, invoice_date)

        invoice_id = with_number_retry(
            create_once,
            self.config.max_create_retries,
            data.invoice_number,
        )

        invoice = self._load(invoice_id)
        logger.info(
            f"Invoice {invoice.invoice_number} created for seller {seller.id} "
            f"({breakdown.tax_type.value}, total {invoice.total})"
        )
        return invoice

    def _insert(
        self,
        tx: Transaction,
        actor: Actor,
        data: InvoiceCreate,
        seller: Party,
        buyer: Party,
        breakdown: TaxBreakdown,
        invoice_date: date
    ) -> int:
        """Allocate the number and write header, items, stock and audit. Returns invoice id."""
        allocator = InvoiceNumberAllocator(InvoiceNumberRepository(tx), self.config, self.clock)
        invoice_number = allocator.allocate(seller.id, data.invoice_number)
        now = now_utc()

        try:
            invoice_id = tx.execute_scalar(
                """
                INSERT INTO invoices (
                    invoice_number, date, seller_id, buyer_id,
                    seller_name, seller_address, seller_gstin, seller_contact,
                    seller_bank_name, seller_bank_account, seller_bank_ifsc,
                    buyer_name, buyer_address, buyer_state, buyer_state_code, buyer_gstin,
                    tax_type, subtotal, cgst, sgst, igst, round_off, total, total_in_words,
                    status, notes, created_at, updated_at
                ) VALUES (
                    %s, %s, %s, %s,
                    %s, %s, %s, %s,
                    %s, %s, %s,
                    %s, %s, %s, %s, %s,
                    %s, %s, %s, %s, %s, %s, %s, %s,
                    %s, %s, %s, %s
                )
                RETURNING id
                """,
                (
                    invoice_number, invoice_date, seller.id, buyer.id,
                    data.seller_name or seller.business_name,
                    data.seller_address or seller.business_address,
                    data.seller_gstin or seller.gstin,
                    data.seller_contact or seller.contact_number,
                    data.seller_bank_name or seller.bank_name,
                    data.seller_bank_account or seller.bank_account_number,
                    data.seller_bank_ifsc or seller.bank_ifsc_code,
                    data.buyer_name or buyer.business_name,
                    data.buyer_address or buyer.business_address,
                    data.buyer_state or buyer.state,
                    data.buyer_state_code or buyer.state_code,
                    data.buyer_gstin or buyer.gstin,
                    breakdown.tax_type, breakdown.subtotal,
                    breakdown.cgst, breakdown.sgst, breakdown.igst,
                    breakdown.round_off, breakdown.total, to_words(breakdown.total),
                    InvoiceStatus.DRAFT, data.notes, now, now,
                )
            )
        except psycopg2.errors.UniqueViolation as e:
            if e.diag.constraint_name == INVOICE_NUMBER_CONSTRAINT:
                raise DuplicateInvoiceNumber(invoice_number) from e
            raise

        for item in breakdown.items:
            tx.execute(
                """
                INSERT INTO invoice_items (
                    invoice_id, product_id, serial_number, description, hsn_code,
                    qty, unit, rate, gst_rate,
                    cgst_amount, sgst_amount, igst_amount, amount, created_at
                ) VALUES (
                    %s, %s, %s, %s, %s,
                    %s, %s, %s, %s,
                    %s, %s, %s, %s, %s
                )
                """,
                (
                    invoice_id, item.product_id, item.serial_number, item.description, item.hsn_code,
                    item.qty, item.unit, item.rate, item.gst_rate,
                    item.cgst_amount, item.sgst_amount, item.igst_amount, item.amount, now,
                )
            )

            if item.product_id is not None and actor.role == ActorRole.SELLER:
                updated = tx.execute(
                    """
                    UPDATE products
                    SET stock_quantity = stock_quantity - %s, updated_at = %s
                    WHERE id = %s AND seller_id = %s
                    RETURNING id
                    """,
                    (item.qty, now, item.product_id, seller.id)
                )
                # Another seller's product stays on the item; its stock is left alone
                if not updated:
                    logger.warning(
                        f"Product {item.product_id} not owned by seller {seller.id}; "
                        f"stock not decremented for invoice {invoice_number}"
                    )

        self.audit.log_change(
            entity_type="invoice",
            entity_id=invoice_id,
            action=AuditAction.CREATE,
            changes={
                "created": {
                    "invoice_number": invoice_number,
                    "seller_id": seller.id,
                    "buyer_id": buyer.id,
                    "tax_type": breakdown.tax_type.value,
                    "decision": breakdown.decision.source,
                    "item_count": len(breakdown.items),
                    "total": str(breakdown.total),
                }
            },
            actor_id=actor.id,
            tx=tx,
        )

        return invoice_id

    # -------------------------------------------------------------------------
    # Read
    # -------------------------------------------------------------------------

    def _check_access(self, actor: Actor, seller_id: int, buyer_id: int) -> None:
        """Sellers see what they issued, buyers what they received, admins everything."""
        if actor.role == ActorRole.SELLER and seller_id != actor.id:
            raise PermissionError("Access denied")
        if actor.role == ActorRole.BUYER and buyer_id != actor.id:
            raise PermissionError("Access denied")

    def _load_items(self, invoice_id: int) -> list[InvoiceItem]:
        rows = self.postgres.execute(
            """
            SELECT ii.*, p.name AS product_name
            FROM invoice_items ii
            LEFT JOIN products p ON p.id = ii.product_id
            WHERE ii.invoice_id = %s
            ORDER BY ii.serial_number
            """,
            (invoice_id,)
        )
        return [InvoiceItem.model_validate(row) for row in rows]

    def _load(self, invoice_id: int) -> Invoice | None:
        row = self.postgres.execute_single(
            "SELECT * FROM invoices WHERE id = %s",
            (invoice_id,)
        )
        if row is None:
            return None

        return Invoice.model_validate({**row, "items": self._load_items(invoice_id)})

    def get_by_id(self, invoice_id: int) -> Invoice | None:
        """
        Get invoice by ID, with items in serial order.

        Returns:
            Invoice if found, None otherwise.

        Raises:
            PermissionError: Actor may not see this invoice
        """
        invoice = self._load(invoice_id)
        if invoice is None:
            return None

        self._check_access(get_current_actor(), invoice.seller_id, invoice.buyer_id)
        return invoice

    def list_invoices(
        self,
        status: InvoiceStatus | str | None = None,
        from_date: date | None = None,
        to_date: date | None = None,
        sort_by: str = "date",
        sort_order: str = "desc",
        page: int = 1,
        limit: int = 20
    ) -> InvoicePage:
        """
        List invoice headers visible to the current actor.

        Args:
            status: Only invoices in this status
            from_date: Invoice date on or after
            to_date: Invoice date on or before
            sort_by: One of date, invoice_number, total, buyer_name, created_at
            sort_order: asc or desc
            page: 1-based page number
            limit: Page size, 1..100

        Raises:
            ValidationError: Unknown sort field/order, bad status or page bounds
        """
        if sort_by not in _SORT_COLUMNS:
            raise ValidationError("sortBy", f"must be one of {', '.join(_SORT_COLUMNS)}")
        if sort_order not in ("asc", "desc"):
            raise ValidationError("sortOrder", "must be asc or desc")
        if page < 1:
            raise ValidationError("page", "must be a positive integer")
        if not 1 <= limit <= 100:
            raise ValidationError("limit", "must be between 1 and 100")

        where = []
        params: list[Any] = []

        actor = get_current_actor()
        if actor.role == ActorRole.SELLER:
            where.append("i.seller_id = %s")
            params.append(actor.id)
        elif actor.role == ActorRole.BUYER:
            where.append("i.buyer_id = %s")
            params.append(actor.id)

        if status is not None:
            try:
                status = InvoiceStatus(status)
            except ValueError:
                raise ValidationError("status", f"must be one of {', '.join(s.value for s in InvoiceStatus)}")
            where.append("i.status = %s")
            params.append(status)
        if from_date is not None:
            where.append("i.date >= %s")
            params.append(from_date)
        if to_date is not None:
            where.append("i.date <= %s")
            params.append(to_date)

        where_sql = f"WHERE {' AND '.join(where)}" if where else ""
        from_sql = "FROM invoices i JOIN buyers b ON b.id = i.buyer_id"

        total = self.postgres.execute_scalar(
            f"SELECT COUNT(*) {from_sql} {where_sql}",
            tuple(params)
        ) or 0

        rows = self.postgres.execute(
            f"""
            SELECT i.* {from_sql} {where_sql}
            ORDER BY {_SORT_COLUMNS[sort_by]} {sort_order.upper()}, i.id {sort_order.upper()}
            LIMIT %s OFFSET %s
            """,
            tuple(params) + (limit, (page - 1) * limit)
        )

        return InvoicePage(
            invoices=[Invoice.model_validate(row) for row in rows],
            pagination=Pagination(page=page, limit=limit, total=total, pages=ceil(total / limit)),
        )

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def update_status(
        self,
        invoice_id: int,
        status: InvoiceStatus | str,
        payment_method: str | None = None,
        payment_date: date | None = None
    ) -> Invoice:
        """
        Move an invoice to a new status. Amounts are never touched.

        Marking paid records the payment method and date (today by default).

        Raises:
            ValidationError: Unknown status
            ValueError: Invoice not found, or paid invoice being cancelled
            PermissionError: Actor may not change this invoice
        """
        try:
            status = InvoiceStatus(status)
        except ValueError:
            raise ValidationError("status", f"must be one of {', '.join(s.value for s in InvoiceStatus)}")

        actor = get_current_actor()
        current = self._load(invoice_id)
        if current is None:
            raise ValueError(f"Invoice {invoice_id} not found")
        self._check_access(actor, current.seller_id, current.buyer_id)

        if current.status == InvoiceStatus.PAID and status == InvoiceStatus.CANCELLED:
            raise ValueError(f"Invoice {invoice_id} is paid and cannot be cancelled")

        if status == InvoiceStatus.PAID:
            new_method = payment_method
            new_date = payment_date or business_today(self.config.business_timezone, self.clock())
        else:
            new_method = current.payment_method
            new_date = current.payment_date

        with self.postgres.transaction(self.transaction_timeout_ms) as tx:
            tx.execute(
                """
                UPDATE invoices
                SET status = %s, payment_method = %s, payment_date = %s, updated_at = %s
                WHERE id = %s
                """,
                (status, new_method, new_date, now_utc(), invoice_id)
            )

            changes = compute_changes(
                {
                    "status": current.status.value,
                    "payment_method": current.payment_method,
                    "payment_date": current.payment_date.isoformat() if current.payment_date else None,
                },
                {
                    "status": status.value,
                    "payment_method": new_method,
                    "payment_date": new_date.isoformat() if new_date else None,
                },
            )
            if changes:
                self.audit.log_change(
                    entity_type="invoice",
                    entity_id=invoice_id,
                    action=AuditAction.UPDATE,
                    changes=changes,
                    actor_id=actor.id,
                    tx=tx,
                )

        return self._load(invoice_id)

    def delete(self, invoice_id: int) -> bool:
        """
        Delete a draft invoice and its items, restoring product stock.

        Returns:
            True if deleted, False if not found

        Raises:
            ValueError: Invoice is not a draft
            PermissionError: Actor may not delete this invoice
        """
        actor = get_current_actor()

        with self.postgres.transaction(self.transaction_timeout_ms) as tx:
            row = tx.execute_single(
                "SELECT * FROM invoices WHERE id = %s FOR UPDATE",
                (invoice_id,)
            )
            if row is None:
                return False

            current = Invoice.model_validate(row)
            if actor.role == ActorRole.SELLER and current.seller_id != actor.id:
                raise PermissionError("Access denied")
            if actor.role == ActorRole.BUYER:
                raise PermissionError("Access denied")
            if not current.is_deletable:
                raise ValueError(f"Invoice {invoice_id} is {current.status.value}; only draft invoices can be deleted")

            if actor.role == ActorRole.SELLER:
                items = tx.execute(
                    "SELECT product_id, qty FROM invoice_items WHERE invoice_id = %s AND product_id IS NOT NULL",
                    (invoice_id,)
                )
                for item in items:
                    updated = tx.execute(
                        """
                        UPDATE products
                        SET stock_quantity = stock_quantity + %s, updated_at = %s
                        WHERE id = %s AND seller_id = %s
                        RETURNING id
                        """,
                        (item["qty"], now_utc(), item["product_id"], current.seller_id)
                    )
                    if not updated:
                        logger.warning(
                            f"Product {item['product_id']} not owned by seller {current.seller_id}; "
                            f"stock not restored for invoice {invoice_id}"
                        )

            # Items cascade
            tx.execute("DELETE FROM invoices WHERE id = %s", (invoice_id,))

            self.audit.log_change(
                entity_type="invoice",
                entity_id=invoice_id,
                action=AuditAction.DELETE,
                changes={"deleted": current.model_dump(mode="json", exclude={"items"})},
                actor_id=actor.id,
                tx=tx,
            )

        return True
