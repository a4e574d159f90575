"""
Pydantic schemas for Account endpoints.

Monetary amounts are Decimal and serialize as strings ("150.00") so no
client ever sees a float. Request schemas only check types; the account
service owns the business validation (non-empty names, non-negative
amounts, two decimal places) and its ValidationError becomes a 422.
"""

import uuid
from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field


class AccountCreateRequest(BaseModel):
    """Request body for POST /accounts."""
    name: str = Field(description="Display name of the account")
    initial_deposit: Decimal = Field(
        default=Decimal("0"),
        description="Opening balance; no transaction is recorded for it",
    )


class AccountRenameRequest(BaseModel):
    """Request body for PATCH /accounts/{account_id}."""
    name: str


class AccountResponse(BaseModel):
    """Public representation of a bank account."""
    id: uuid.UUID
    owner_id: str
    name: str
    account_number: int
    balance: Decimal
    created_at: datetime

    model_config = {"from_attributes": True}


class AccountLookupResponse(BaseModel):
    """Minimal account info returned by the lookup endpoint.

    Intentionally excludes balance and owner details — this is used to
    resolve a recipient's account number before initiating a transfer.
    """
    id: uuid.UUID
    account_number: int
