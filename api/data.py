"""GET /api/data: unified read endpoint."""

from datetime import date

from fastapi import APIRouter, Query, Request

from api.base import success_response


def create_data_router(services: dict) -> APIRouter:
    router = APIRouter()

    invoice_svc = services["invoice"]

    @router.get("/data/invoices/{invoice_id}")
    async def get_invoice(request: Request, invoice_id: int):
        invoice = invoice_svc.get_by_id(invoice_id)
        if invoice is None:
            raise ValueError(f"Invoice {invoice_id} not found")
        return success_response(
            invoice.model_dump(mode="json"),
            getattr(request.state, "request_id", None),
        ).model_dump(mode="json")

    @router.get("/data/invoices")
    async def list_invoices(
        request: Request,
        status: str | None = Query(None),
        from_date: date | None = Query(None),
        to_date: date | None = Query(None),
        sort_by: str = Query("date", alias="sortBy"),
        sort_order: str = Query("desc", alias="sortOrder"),
        page: int = Query(1, ge=1),
        limit: int = Query(20, ge=1, le=100),
    ):
        result = invoice_svc.list_invoices(
            status=status,
            from_date=from_date,
            to_date=to_date,
            sort_by=sort_by,
            sort_order=sort_order,
            page=page,
            limit=limit,
        )
        return success_response(
            result.model_dump(mode="json"),
            getattr(request.state, "request_id", None),
        ).model_dump(mode="json")

    return router
