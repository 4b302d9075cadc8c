"""Seller and buyer models.

Parties are managed elsewhere; the invoice engine only reads them for the
state code that drives the tax split and for the details it snapshots.
"""

from pydantic import BaseModel


class Party(BaseModel):
    """A seller or buyer business as stored."""

    id: int
    business_name: str
    business_address: str | None = None
    gstin: str | None = None
    contact_number: str | None = None
    email: str | None = None
    state: str | None = None
    state_code: str | None = None
    bank_name: str | None = None
    bank_account_number: str | None = None
    bank_ifsc_code: str | None = None

    model_config = {"from_attributes": True, "extra": "ignore"}
