"""
Transactions router — deposits, withdrawals and history for one account.

Endpoints (mounted under /accounts):
    POST /accounts/{account_id}/deposits     — Deposit money
    POST /accounts/{account_id}/withdrawals  — Withdraw money
    GET  /accounts/{account_id}/transactions — Transaction history, newest first

All three act on an account the caller owns. A withdrawal larger than the
balance is rejected with 422 (error_type "insufficient_funds") and leaves
both the balance and the history untouched.
"""

from fastapi import APIRouter, Depends, status

from ledger.dependencies import get_account_service, get_owned_account
from ledger.entities import Account
from ledger.schemas.transaction import MoneyMovementRequest, TransactionResponse
from ledger.services.account_service import AccountService

router = APIRouter()


@router.post(
    "/{account_id}/deposits",
    response_model=TransactionResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Deposit money",
)
async def deposit(
    request: MoneyMovementRequest,
    account: Account = Depends(get_owned_account),
    service: AccountService = Depends(get_account_service),
):
    return await service.deposit(account.id, request.amount, request.description)


@router.post(
    "/{account_id}/withdrawals",
    response_model=TransactionResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Withdraw money",
)
async def withdraw(
    request: MoneyMovementRequest,
    account: Account = Depends(get_owned_account),
    service: AccountService = Depends(get_account_service),
):
    """The recorded transaction carries the negated amount."""
    return await service.withdraw(account.id, request.amount, request.description)


@router.get(
    "/{account_id}/transactions",
    response_model=list[TransactionResponse],
    summary="List account transactions",
)
async def list_transactions(
    account: Account = Depends(get_owned_account),
    service: AccountService = Depends(get_account_service),
):
    """Return the account's full ledger, newest first."""
    return await service.get_transactions(account.id)
