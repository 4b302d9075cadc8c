"""Shared test fixtures for the invoice engine test suite."""

import os
from pathlib import Path

import pytest
from dotenv import load_dotenv

# Load .env file BEFORE any other imports that might use env vars
load_dotenv(Path(__file__).parent.parent / ".env", override=False)

from utils.user_context import Actor, ActorRole, user_context, clear_current_actor

SCHEMA_PATH = Path(__file__).parent.parent / "db" / "schema.sql"


# =============================================================================
# TEST ACTOR CONSTANTS
# =============================================================================

# Seller 1 and buyer 1 are in Maharashtra (27); seller 2 is in Karnataka (29),
# buyer 2 in Tamil Nadu (33)
SELLER_ID = 1
SELLER_B_ID = 2
BUYER_ID = 1
BUYER_OTHER_STATE_ID = 2
ADMIN_ID = 99


# =============================================================================
# ACTOR CONTEXT FIXTURES
# =============================================================================


@pytest.fixture(autouse=True)
def reset_actor_context():
    """Ensure clean actor context before and after each test."""
    clear_current_actor()
    yield
    clear_current_actor()


@pytest.fixture
def seller_actor() -> Actor:
    return Actor(id=SELLER_ID, role=ActorRole.SELLER)


@pytest.fixture
def as_seller(seller_actor):
    """Run the test as the primary seller."""
    with user_context(seller_actor):
        yield seller_actor


@pytest.fixture
def as_seller_b():
    """Run the test as the secondary seller (isolation tests)."""
    with user_context(Actor(id=SELLER_B_ID, role=ActorRole.SELLER)) as actor:
        yield actor


@pytest.fixture
def as_buyer():
    with user_context(Actor(id=BUYER_ID, role=ActorRole.BUYER)) as actor:
        yield actor


@pytest.fixture
def as_admin():
    with user_context(Actor(id=ADMIN_ID, role=ActorRole.ADMIN)) as actor:
        yield actor


# =============================================================================
# DATABASE FIXTURES
# =============================================================================


@pytest.fixture(scope="session")
def db():
    """Session-scoped PostgresClient. Skips when no DATABASE_URL is configured."""
    if not os.getenv("DATABASE_URL"):
        pytest.skip("DATABASE_URL not set; skipping database tests")

    from clients.postgres_client import PostgresClient
    from clients.vault_client import get_database_url

    client = PostgresClient(get_database_url())
    client.execute(SCHEMA_PATH.read_text())
    yield client
    client.close()


@pytest.fixture
def clean_db(db):
    """Empty invoice tables and seed two sellers, two buyers and a product."""
    db.execute("TRUNCATE invoice_items, invoices, invoice_sequences, audit_log, products RESTART IDENTITY CASCADE")
    db.execute("TRUNCATE sellers, buyers RESTART IDENTITY CASCADE")

    db.execute(
        """
        INSERT INTO sellers (business_name, gstin, state, state_code, bank_name)
        VALUES
            ('Sample Electronics Pvt Ltd', '27ABCDE1234F1Z5', 'Maharashtra', '27', 'State Bank of India'),
            ('Tech Solutions Ltd', '29XYZAB5678C1D2', 'Karnataka', '29', 'HDFC Bank')
        """
    )
    db.execute(
        """
        INSERT INTO buyers (business_name, gstin, state, state_code)
        VALUES
            ('Pune Traders', '27PQRST9876K1Z3', 'Maharashtra', '27'),
            ('Chennai Retail', '33LMNOP4321J1Z8', 'Tamil Nadu', '33')
        """
    )
    db.execute(
        """
        INSERT INTO products (seller_id, name, hsn_code, rate, gst_rate, stock_quantity)
        VALUES (1, 'USB Cable', '8544', 150.00, 18.00, 100)
        """
    )
    yield db
