"""POST /api/actions: unified mutation endpoint."""

from datetime import date

from fastapi import APIRouter, Request
from pydantic import BaseModel

from api.base import success_response


class ActionRequest(BaseModel):
    domain: str
    action: str
    data: dict


def create_actions_router(services: dict) -> APIRouter:
    router = APIRouter()

    handlers = {
        "invoice": InvoiceHandler(services["invoice"]),
    }

    @router.post("/actions")
    async def perform_action(request: Request, body: ActionRequest):
        handler = handlers.get(body.domain)
        if handler is None:
            raise ValueError(
                f"Unknown domain '{body.domain}'. "
                f"Valid domains: {', '.join(sorted(handlers.keys()))}"
            )

        if body.action not in handler.ALLOWED_ACTIONS:
            raise ValueError(
                f"Action '{body.action}' not allowed on '{body.domain}'. "
                f"Allowed: {', '.join(sorted(handler.ALLOWED_ACTIONS))}"
            )

        method = getattr(handler, f"_handle_{body.action}")
        result = method(body.data)
        request_id = getattr(request.state, "request_id", None)
        return success_response(result, request_id).model_dump(mode="json")

    return router


class InvoiceHandler:
    ALLOWED_ACTIONS = {"create", "update_status", "delete"}

    def __init__(self, service):
        self.service = service

    def _handle_create(self, data: dict):
        # Raw body goes through so item errors keep their index
        invoice = self.service.create(data)
        return invoice.model_dump(mode="json")

    def _handle_update_status(self, data: dict):
        if "id" not in data or "status" not in data:
            raise ValueError("'id' and 'status' are required")
        payment_date = data.get("payment_date")
        invoice = self.service.update_status(
            int(data["id"]),
            data["status"],
            payment_method=data.get("payment_method"),
            payment_date=date.fromisoformat(payment_date) if payment_date else None,
        )
        return invoice.model_dump(mode="json")

    def _handle_delete(self, data: dict):
        if "id" not in data:
            raise ValueError("'id' is required")
        invoice_id = int(data["id"])
        deleted = self.service.delete(invoice_id)
        if not deleted:
            raise ValueError(f"Invoice {invoice_id} not found")
        return {"deleted": True}
