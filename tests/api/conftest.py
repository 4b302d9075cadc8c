"""API test fixtures: TestClient over the assembled app."""

from datetime import datetime, timezone
from unittest.mock import Mock

import pytest
from starlette.testclient import TestClient

from api.app import create_app
from core.audit import AuditLogger
from core.services.invoice_service import InvoiceService
from utils.user_context import Actor

# 2024-01-15 10:00 IST
JAN_15 = datetime(2024, 1, 15, 4, 30, tzinfo=timezone.utc)


def header_actor(request):
    """Actor from X-Actor-Id / X-Actor-Role, standing in for upstream auth."""
    actor_id = request.headers.get("X-Actor-Id")
    if actor_id is None:
        return None
    return Actor(id=int(actor_id), role=request.headers.get("X-Actor-Role", "seller"))


SELLER_HEADERS = {"X-Actor-Id": "1", "X-Actor-Role": "seller"}


# =============================================================================
# SERVICE FIXTURES
# =============================================================================


@pytest.fixture
def invoice_service_mock():
    return Mock(spec=InvoiceService)


@pytest.fixture
def invoice_service(db):
    return InvoiceService(db, AuditLogger(db), clock=lambda: JAN_15)


# =============================================================================
# APP & CLIENT FIXTURES
# =============================================================================


@pytest.fixture
def app(invoice_service_mock):
    """App over a mocked invoice service."""
    return create_app({"invoice": invoice_service_mock}, header_actor)


@pytest.fixture
def client(app):
    """Client authenticated as seller 1."""
    c = TestClient(app, raise_server_exceptions=False)
    c.headers.update(SELLER_HEADERS)
    return c


@pytest.fixture
def unauthed_client(app):
    return TestClient(app, raise_server_exceptions=False)


@pytest.fixture
def db_client(invoice_service, clean_db):
    """Client over the real service and a freshly seeded database."""
    c = TestClient(create_app({"invoice": invoice_service}, header_actor), raise_server_exceptions=False)
    c.headers.update(SELLER_HEADERS)
    return c


@pytest.fixture
def sample_invoice():
    """An Invoice as the service would return it."""
    from core.models import Invoice

    now = datetime(2024, 1, 15, 4, 30, tzinfo=timezone.utc)
    return Invoice.model_validate({
        "id": 1,
        "invoice_number": "2024010001",
        "date": "2024-01-15",
        "seller_id": 1,
        "buyer_id": 1,
        "seller_name": "Sample Electronics Pvt Ltd",
        "seller_address": None,
        "seller_gstin": "27ABCDE1234F1Z5",
        "seller_contact": None,
        "seller_bank_name": None,
        "seller_bank_account": None,
        "seller_bank_ifsc": None,
        "buyer_name": "Pune Traders",
        "buyer_address": None,
        "buyer_state": "Maharashtra",
        "buyer_state_code": "27",
        "buyer_gstin": None,
        "tax_type": "cgst_sgst",
        "subtotal": "200.00",
        "cgst": "18.00",
        "sgst": "18.00",
        "igst": "0.00",
        "round_off": "0.00",
        "total": "236.00",
        "total_in_words": "Two Hundred Thirty Six Rupees Only",
        "status": "draft",
        "created_at": now,
        "updated_at": now,
    })
