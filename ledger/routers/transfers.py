"""
Transfers router — money transfers between accounts.

Endpoints:
  POST /transfers — Transfer money from one account to another

A transfer records two transactions of type "transfer":
  1. A negative leg on the source account
  2. A positive leg on the destination account

The source account must belong to the caller. The destination can belong
to anyone and is given either by id or by its public account number
(resolved through the same lookup the /accounts/lookup endpoint uses).
"""

from fastapi import APIRouter, Depends, status

from ledger.dependencies import ensure_owner, get_account_service, get_current_owner_id
from ledger.exceptions import NotFoundError
from ledger.schemas.transaction import TransactionResponse, TransferRequest, TransferResponse
from ledger.services.account_service import AccountService

router = APIRouter()


@router.post(
    "",
    response_model=TransferResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Transfer money between accounts",
)
async def create_transfer(
    request: TransferRequest,
    owner_id: str = Depends(get_current_owner_id),
    service: AccountService = Depends(get_account_service),
):
    """
    Transfer money from one of the caller's accounts to any account.

    - **from_account_id**: Must belong to the caller
    - **to_account_id** or **to_account_number**: The destination
    - **amount**: Positive, at most two decimal places
    - Cannot transfer to the same account
    """
    source = await service.get_account_by_id(request.from_account_id)
    if source is None:
        raise NotFoundError("source account not found")
    ensure_owner(source, owner_id)

    if request.to_account_number is not None:
        to_account_id = await service.get_account_id_by_account_number(
            request.to_account_number
        )
    else:
        to_account_id = request.to_account_id

    debit_txn, credit_txn = await service.transfer(
        from_account_id=request.from_account_id,
        to_account_id=to_account_id,
        amount=request.amount,
        description=request.description,
    )

    return TransferResponse(
        debit_transaction=TransactionResponse.model_validate(debit_txn),
        credit_transaction=TransactionResponse.model_validate(credit_txn),
        amount=credit_txn.amount,
        from_account_id=request.from_account_id,
        to_account_id=to_account_id,
    )
