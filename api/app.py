"""FastAPI application assembly."""

import logging
from typing import Callable

from fastapi import FastAPI
from starlette.requests import Request

from api.actions import create_actions_router
from api.data import create_data_router
from api.errors import register_error_handlers
from api.middleware import ActorMiddleware, RequestIDMiddleware
from clients.postgres_client import PostgresClient
from clients.vault_client import get_database_url
from core.audit import AuditLogger
from core.config import InvoiceConfig
from core.services.invoice_service import InvoiceService
from utils.user_context import Actor

logger = logging.getLogger(__name__)


def build_services(database_url: str | None = None, config: InvoiceConfig | None = None) -> dict:
    """
    Construct the services the routers need, sharing one pooled client.

    Args:
        database_url: Explicit connection URL; defaults to get_database_url(),
            which prefers DATABASE_URL and falls back to Vault
        config: Invoice settings; defaults to InvoiceConfig()

    Returns:
        {"invoice": InvoiceService}
    """
    postgres = PostgresClient(database_url or get_database_url())
    audit = AuditLogger(postgres)
    logger.info("Invoice services initialized")
    return {"invoice": InvoiceService(postgres, audit, config=config)}


def create_app(services: dict, resolve_actor: Callable[[Request], Actor | None]) -> FastAPI:
    """
    Build the app around already-constructed services.

    Args:
        services: {"invoice": InvoiceService}, usually from build_services()
        resolve_actor: Maps an authenticated request to its Actor
    """
    app = FastAPI(title="GST Invoices")

    # Added last runs first: request id is assigned before actor resolution
    app.add_middleware(ActorMiddleware, resolve_actor=resolve_actor)
    app.add_middleware(RequestIDMiddleware)
    register_error_handlers(app)

    app.include_router(create_data_router(services), prefix="/api")
    app.include_router(create_actions_router(services), prefix="/api")

    @app.get("/health")
    async def health():
        return {"status": "ok"}

    return app
