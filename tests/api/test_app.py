"""Tests for service construction and app assembly."""

from unittest.mock import patch

from starlette.testclient import TestClient

from api.app import build_services, create_app
from core.config import InvoiceConfig
from core.services.invoice_service import InvoiceService


class TestBuildServices:

    def test_database_url_from_environment(self, monkeypatch):
        monkeypatch.setenv("DATABASE_URL", "postgresql://env-host/invoices")

        with patch("api.app.PostgresClient") as client_cls:
            services = build_services()

        client_cls.assert_called_once_with("postgresql://env-host/invoices")
        assert isinstance(services["invoice"], InvoiceService)
        assert services["invoice"].postgres is client_cls.return_value

    def test_database_url_from_vault(self, monkeypatch):
        monkeypatch.delenv("DATABASE_URL", raising=False)

        with patch("api.app.get_database_url", return_value="postgresql://vault-host/invoices") as get_url, \
                patch("api.app.PostgresClient") as client_cls:
            build_services()

        get_url.assert_called_once_with()
        client_cls.assert_called_once_with("postgresql://vault-host/invoices")

    def test_explicit_url_skips_lookup(self):
        with patch("api.app.get_database_url") as get_url, patch("api.app.PostgresClient") as client_cls:
            build_services("postgresql://explicit/invoices")

        get_url.assert_not_called()
        client_cls.assert_called_once_with("postgresql://explicit/invoices")

    def test_services_share_one_client(self):
        with patch("api.app.PostgresClient") as client_cls:
            services = build_services("postgresql://explicit/invoices")

        invoice_service = services["invoice"]
        assert invoice_service.audit.postgres is client_cls.return_value
        assert invoice_service.postgres is invoice_service.audit.postgres

    def test_config_passed_through(self):
        config = InvoiceConfig(default_unit="PCS")

        with patch("api.app.PostgresClient"):
            services = build_services("postgresql://explicit/invoices", config=config)

        assert services["invoice"].config is config


class TestCreateApp:

    def test_health_with_built_services(self):
        with patch("api.app.PostgresClient"):
            services = build_services("postgresql://explicit/invoices")

        client = TestClient(create_app(services, lambda request: None), raise_server_exceptions=False)
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json() == {"status": "ok"}
