"""
Accounts router — bank account management endpoints.

Endpoints (all require the X-User-Id header):
    POST   /accounts                         — Open a new account
    GET    /accounts                         — List own accounts
    GET    /accounts/lookup/{account_number} — Resolve an account number to an id
    GET    /accounts/{account_id}            — Get own account details
    PATCH  /accounts/{account_id}            — Rename own account
    DELETE /accounts/{account_id}            — Close own account (balance must be zero)

Account-scoped endpoints go through get_owned_account, so a caller can
only see and change their own accounts. The lookup endpoint is the one
exception: it lets anyone resolve a shared account number into the id
needed for a transfer, and reveals nothing else about the account.
"""

from fastapi import APIRouter, Depends, Response, status

from ledger.dependencies import get_account_service, get_current_owner_id, get_owned_account
from ledger.entities import Account
from ledger.schemas.account import (
    AccountCreateRequest,
    AccountLookupResponse,
    AccountRenameRequest,
    AccountResponse,
)
from ledger.services.account_service import AccountService

router = APIRouter()


@router.post(
    "",
    response_model=AccountResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Open a new bank account",
)
async def create_account(
    request: AccountCreateRequest,
    owner_id: str = Depends(get_current_owner_id),
    service: AccountService = Depends(get_account_service),
):
    """
    Open an account for the caller.

    The account gets a random 9-digit account number. An initial deposit
    becomes the opening balance directly; it does not appear in the
    account's transaction history.
    """
    return await service.create_account(
        owner_id=owner_id,
        account_name=request.name,
        initial_deposit=request.initial_deposit,
    )


@router.get(
    "",
    response_model=list[AccountResponse],
    summary="List your accounts",
)
async def list_accounts(
    owner_id: str = Depends(get_current_owner_id),
    service: AccountService = Depends(get_account_service),
):
    """List all open accounts owned by the caller."""
    return await service.get_accounts_for_user(owner_id)


@router.get(
    "/lookup/{account_number}",
    response_model=AccountLookupResponse,
    summary="Look up an account by account number",
)
async def lookup_account(
    account_number: int,
    owner_id: str = Depends(get_current_owner_id),
    service: AccountService = Depends(get_account_service),
):
    """
    Resolve a public account number to the account's id.

    Returns 404 if no open account has that number.
    """
    account_id = await service.get_account_id_by_account_number(account_number)
    return AccountLookupResponse(id=account_id, account_number=account_number)


@router.get(
    "/{account_id}",
    response_model=AccountResponse,
    summary="Get account details",
)
async def get_account(account: Account = Depends(get_owned_account)):
    """
    Get details for a specific account, including its balance.

    Returns 403 if the account belongs to a different user, or 404 if
    the account doesn't exist.
    """
    return account


@router.patch(
    "/{account_id}",
    response_model=AccountResponse,
    summary="Rename an account",
)
async def rename_account(
    request: AccountRenameRequest,
    account: Account = Depends(get_owned_account),
    service: AccountService = Depends(get_account_service),
):
    return await service.rename_account(account.id, request.name)


@router.delete(
    "/{account_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Close an account",
)
async def close_account(
    account: Account = Depends(get_owned_account),
    service: AccountService = Depends(get_account_service),
):
    """
    Close an account. The balance must be zero (422 otherwise).

    A closed account no longer appears anywhere and its number is never
    given to another account.
    """
    await service.close_account(account.id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
