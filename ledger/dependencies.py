"""
FastAPI dependencies: caller identity, service wiring, and ownership checks.

The dependency chain for an account-scoped endpoint is:

  get_db (session per request)
      └── get_account_service (SQL stores over that session)
  get_current_owner_id (X-User-Id header)
      └── get_owned_account (account must exist and belong to the caller)

Identity:
  Authentication happens upstream of this service. Whatever sits in front
  of it (a gateway, a session layer) passes the authenticated user's opaque
  id in the X-User-Id header. Requests without it are rejected with 401.

Ownership:
  The account service itself never authorizes. The HTTP layer does, here:
  a caller may only act on accounts whose owner_id matches their own id.
  Transfer destinations are the exception and may belong to anyone.
"""

import uuid

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from ledger.config import settings
from ledger.database import get_db
from ledger.entities import Account
from ledger.exceptions import NotFoundError
from ledger.services.account_service import AccountService
from ledger.stores.sql import SqlAccountStore, SqlTransactionStore


async def get_current_owner_id(
    x_user_id: str | None = Header(default=None),
) -> str:
    """
    Return the caller's opaque user id from the X-User-Id header.

    Raises:
        HTTPException 401: If the header is missing or blank.
    """
    if x_user_id is None or not x_user_id.strip():
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing X-User-Id header",
        )
    return x_user_id


async def get_account_service(
    db: AsyncSession = Depends(get_db),
) -> AccountService:
    """
    Build an AccountService over the request's session.

    With ATOMIC_OPERATIONS on, each operation runs in a SAVEPOINT so its
    balance updates and ledger records are all-or-nothing.
    """
    return AccountService(
        SqlAccountStore(db),
        SqlTransactionStore(db),
        scope=db.begin_nested if settings.ATOMIC_OPERATIONS else None,
        max_number_attempts=settings.ACCOUNT_NUMBER_MAX_ATTEMPTS,
        max_conflict_retries=settings.CONFLICT_MAX_RETRIES,
    )


def ensure_owner(account: Account, owner_id: str) -> None:
    """Raise 403 unless the account belongs to owner_id."""
    if account.owner_id != owner_id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You do not have access to this account",
        )


async def get_owned_account(
    account_id: uuid.UUID,
    owner_id: str = Depends(get_current_owner_id),
    service: AccountService = Depends(get_account_service),
) -> Account:
    """
    Resolve the {account_id} path parameter to an account the caller owns.

    Raises:
        NotFoundError: If the account doesn't exist (404).
        HTTPException 403: If the account belongs to someone else.
    """
    account = await service.get_account_by_id(account_id)
    if account is None:
        raise NotFoundError()
    ensure_owner(account, owner_id)
    return account
