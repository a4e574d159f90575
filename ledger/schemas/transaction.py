"""
Pydantic schemas for deposit, withdrawal, history and transfer endpoints.

Transaction amounts are signed decimal strings: "-70.00" is money that left
the account.
"""

import uuid
from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field, model_validator

from ledger.entities import TransactionType


class MoneyMovementRequest(BaseModel):
    """Request body for POST /accounts/{id}/deposits and /withdrawals."""
    amount: Decimal = Field(description="Positive amount with at most two decimal places")
    description: str | None = None


class TransactionResponse(BaseModel):
    """Public representation of a ledger record."""
    id: int
    account_id: uuid.UUID
    amount: Decimal
    type: TransactionType
    description: str | None
    created_at: datetime

    model_config = {"from_attributes": True}


class TransferRequest(BaseModel):
    """
    Request body for POST /transfers.

    The destination is given either by internal id (own accounts) or by
    public account number (someone else's account), never both.
    """
    from_account_id: uuid.UUID
    to_account_id: uuid.UUID | None = None
    to_account_number: int | None = None
    amount: Decimal
    description: str | None = None

    @model_validator(mode="after")
    def exactly_one_destination(self):
        if (self.to_account_id is None) == (self.to_account_number is None):
            raise ValueError("Provide exactly one of to_account_id or to_account_number")
        return self


class TransferResponse(BaseModel):
    """Response body for a successful transfer."""
    debit_transaction: TransactionResponse
    credit_transaction: TransactionResponse
    amount: Decimal
    from_account_id: uuid.UUID
    to_account_id: uuid.UUID
