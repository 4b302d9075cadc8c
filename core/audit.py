"""
Audit trail for invoice changes.

Every invoice creation, status change and deletion is logged here. The audit
log is:
- Append-only (entries never modified or deleted)
- Actor-attributed (who made the change)
- Detailed (captures old and new values)

When a Transaction is passed, the entry commits or rolls back together with
the change it describes.
"""

from enum import Enum
from typing import Any

from psycopg2.extras import Json

from clients.postgres_client import PostgresClient, Transaction
from utils.user_context import get_current_actor
from utils.timezone import now_utc


class AuditAction(Enum):
    """Type of change made to an entity."""

    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"


def compute_changes(
    old: dict[str, Any],
    new: dict[str, Any],
    exclude_fields: set[str] | None = None
) -> dict[str, dict[str, Any]]:
    """
    Compute changes between two entity states.

    Args:
        old: Previous state of entity
        new: New state of entity
        exclude_fields: Fields to ignore (defaults to {"updated_at"})

    Returns:
        Dict of {field: {"old": old_val, "new": new_val}} for changed fields.
        Empty dict if no changes.
    """
    exclude = exclude_fields or {"updated_at"}
    changes = {}

    all_keys = set(old.keys()) | set(new.keys())
    for key in all_keys:
        if key in exclude:
            continue

        old_val = old.get(key)
        new_val = new.get(key)

        if old_val != new_val:
            changes[key] = {"old": old_val, "new": new_val}

    return changes


class AuditLogger:
    """
    Audit trail writer.

    Always use model_dump(mode="json") when passing Pydantic models so
    Decimals, dates and enums are serialised to JSON-compatible values.

    Usage:
        with postgres.transaction() as tx:
            ...
            audit.log_change(
                entity_type="invoice",
                entity_id=invoice_id,
                action=AuditAction.CREATE,
                changes={"created": {...}},
                tx=tx,
            )
    """

    def __init__(self, postgres: PostgresClient):
        self.postgres = postgres

    def log_change(
        self,
        entity_type: str,
        entity_id: int,
        action: AuditAction,
        changes: dict[str, Any],
        actor_id: int | None = None,
        tx: Transaction | None = None
    ) -> None:
        """
        Log an entity change.

        Args:
            entity_type: Type of entity ("invoice")
            entity_id: ID of the entity
            action: The action performed (CREATE, UPDATE, DELETE)
            changes: The changes made (format depends on action)
            actor_id: Actor who made change (defaults to current context)
            tx: Open transaction to write in; a standalone write otherwise

        Changes format by action:
        - CREATE: {"created": {summary of entity data}}
        - UPDATE: {"field": {"old": old_val, "new": new_val}, ...}
        - DELETE: {"deleted": {full entity data at deletion}}
        """
        if actor_id is None:
            actor_id = get_current_actor().id

        executor = tx if tx is not None else self.postgres
        executor.execute(
            """
            INSERT INTO audit_log (actor_id, entity_type, entity_id, action, changes, created_at)
            VALUES (%s, %s, %s, %s, %s, %s)
            """,
            (
                actor_id,
                entity_type,
                entity_id,
                action.value,
                Json(changes),
                now_utc()
            )
        )

    def get_entity_history(self, entity_type: str, entity_id: int) -> list[dict[str, Any]]:
        """
        Get full audit history for an entity.

        Returns:
            List of audit entries, newest first.
        """
        return self.postgres.execute(
            """
            SELECT id, actor_id, entity_type, entity_id, action, changes, created_at
            FROM audit_log
            WHERE entity_type = %s AND entity_id = %s
            ORDER BY created_at DESC, id DESC
            """,
            (entity_type, entity_id)
        )
