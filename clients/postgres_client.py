"""
PostgreSQL client with connection pooling and explicit transactions.

Uses psycopg2 with ThreadedConnectionPool. Single statements run in their own
short transaction via execute*(). Multi-statement work that must commit or
fail as a unit (an invoice header plus its items) runs inside transaction(),
which pins one pooled connection for the duration.
"""

import logging
import threading
from contextlib import contextmanager
from enum import Enum
from typing import Any, Dict, Iterator, List, Tuple

import psycopg2
import psycopg2.extras
import psycopg2.pool

from utils.user_context import get_current_actor_id

logger = logging.getLogger(__name__)


def _convert_params(params: Tuple | Dict | None) -> Tuple | Dict | None:
    """Convert Enum members to their plain values."""
    if params is None:
        return None

    def convert(value: Any) -> Any:
        if isinstance(value, Enum):
            return value.value
        if isinstance(value, list):
            return [convert(v) for v in value]
        if isinstance(value, tuple):
            return tuple(convert(v) for v in value)
        if isinstance(value, dict):
            return {k: convert(v) for k, v in value.items()}
        return value

    return convert(params)


class Transaction:
    """
    Statements bound to one connection inside an open transaction.

    Nothing is committed until the enclosing PostgresClient.transaction()
    block exits cleanly. A failed statement aborts the whole transaction.
    """

    def __init__(self, conn):
        self._conn = conn

    def execute(self, query: str, params: Tuple | Dict | None = None) -> List[Dict[str, Any]]:
        """Execute query, return list of row dicts. Empty list if no results."""
        with self._conn.cursor(cursor_factory=psycopg2.extras.RealDictCursor) as cur:
            cur.execute(query, _convert_params(params))
            if cur.description:
                return [dict(row) for row in cur.fetchall()]
            return []

    def execute_single(self, query: str, params: Tuple | Dict | None = None) -> Dict[str, Any] | None:
        """Execute query, return first row or None."""
        results = self.execute(query, params)
        return results[0] if results else None

    def execute_scalar(self, query: str, params: Tuple | Dict | None = None) -> Any:
        """Execute query, return first value of first row or None."""
        with self._conn.cursor() as cur:
            cur.execute(query, _convert_params(params))
            result = cur.fetchone()
            return result[0] if result else None

    # Inside a transaction RETURNING needs no separate commit
    execute_returning = execute


class PostgresClient:
    """
    PostgreSQL client.

    Usage:
        db = PostgresClient(database_url)

        # One-off statements
        row = db.execute_single("SELECT * FROM invoices WHERE id = %s", (1,))

        # Atomic unit of work
        with db.transaction() as tx:
            tx.execute("INSERT INTO invoices ...", (...))
            tx.execute("INSERT INTO invoice_items ...", (...))
    """

    # Class-level connection pools shared across instances
    _connection_pools: Dict[str, psycopg2.pool.ThreadedConnectionPool] = {}
    _pools_lock = threading.RLock()

    def __init__(self, database_url: str):
        self._database_url = database_url
        self._ensure_connection_pool()

    def _ensure_connection_pool(self) -> None:
        """Create connection pool if it doesn't exist."""
        with self._pools_lock:
            if self._database_url not in self._connection_pools:
                pool = psycopg2.pool.ThreadedConnectionPool(
                    minconn=2,
                    maxconn=20,
                    dsn=self._database_url,
                    connect_timeout=30,
                )
                self._connection_pools[self._database_url] = pool
                logger.info("Connection pool created")

    @contextmanager
    def get_connection(self):
        """Get a pooled connection tagged with the current actor."""
        if self._database_url not in self._connection_pools:
            self._ensure_connection_pool()

        pool = self._connection_pools[self._database_url]
        conn = None

        try:
            conn = pool.getconn()
            if conn is None:
                raise RuntimeError("Could not get connection from pool")

            actor_id = get_current_actor_id()

            with conn.cursor() as cur:
                # Visible to triggers; empty when no actor is set
                cur.execute(
                    "SELECT set_config('app.current_user_id', %s, false)",
                    ("" if actor_id is None else str(actor_id),)
                )
            conn.commit()

            yield conn

        finally:
            if conn:
                pool.putconn(conn)

    @contextmanager
    def transaction(self, timeout_ms: int | None = None) -> Iterator[Transaction]:
        """
        Run a block of statements as one transaction.

        Commits when the block exits normally, rolls back on any exception
        and re-raises it.

        Args:
            timeout_ms: Optional statement_timeout applied to this transaction only
        """
        with self.get_connection() as conn:
            try:
                if timeout_ms is not None:
                    with conn.cursor() as cur:
                        cur.execute("SET LOCAL statement_timeout = %s", (int(timeout_ms),))
                yield Transaction(conn)
                conn.commit()
            except BaseException:
                conn.rollback()
                raise

    def execute(self, query: str, params: Tuple | Dict | None = None) -> List[Dict[str, Any]]:
        """Execute query, return list of row dicts. Empty list if no results."""
        with self.transaction() as tx:
            return tx.execute(query, params)

    def execute_single(self, query: str, params: Tuple | Dict | None = None) -> Dict[str, Any] | None:
        """Execute query, return first row or None."""
        results = self.execute(query, params)
        return results[0] if results else None

    def execute_scalar(self, query: str, params: Tuple | Dict | None = None) -> Any:
        """Execute query, return first value of first row or None."""
        with self.transaction() as tx:
            return tx.execute_scalar(query, params)

    def execute_returning(self, query: str, params: Tuple | Dict | None = None) -> List[Dict[str, Any]]:
        """Execute INSERT/UPDATE with RETURNING, return results."""
        with self.transaction() as tx:
            return tx.execute_returning(query, params)

    def close(self) -> None:
        """Close connection pool."""
        with self._pools_lock:
            if self._database_url in self._connection_pools:
                self._connection_pools[self._database_url].closeall()
                del self._connection_pools[self._database_url]

    @classmethod
    def close_all_pools(cls) -> None:
        """Close all connection pools."""
        with cls._pools_lock:
            for pool in cls._connection_pools.values():
                pool.closeall()
            cls._connection_pools.clear()
