"""
Domain error kinds and FastAPI exception handlers.

The account service signals every business failure with one of a small,
closed set of error kinds. Each error is an exception (so it unwinds the
operation and any open SAVEPOINT) and also carries a `kind` attribute, so a
caller can branch on `error.kind` instead of on the exception class:

    try:
        await service.withdraw(account_id, amount)
    except LedgerError as exc:
        if exc.kind is ErrorKind.INSUFFICIENT_FUNDS:
            ...

Exception hierarchy:
    LedgerError (base)
    ├── ValidationError              — malformed caller input, raised before any store access
    ├── NotFoundError                — referenced account does not exist
    ├── InsufficientFundsError       — withdrawal/transfer debit exceeds the balance
    └── StoreError                   — persistence failure
        ├── DuplicateAccountNumberError — account number already taken (retried by the service)
        └── ConflictError               — optimistic update lost a race (retried by the service)

The core has no notion of HTTP. `register_exception_handlers` below is the
presentation layer's translation of kinds into status codes.
"""

import enum
import uuid
from decimal import Decimal

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse


class ErrorKind(str, enum.Enum):
    """The closed set of failure kinds surfaced by the account service."""
    VALIDATION = "validation"
    NOT_FOUND = "not_found"
    INSUFFICIENT_FUNDS = "insufficient_funds"
    STORE = "store"


# ---------------------------------------------------------------------------
# Base exception
# ---------------------------------------------------------------------------

class LedgerError(Exception):
    """Base exception for all ledger domain errors."""

    kind: ErrorKind

    def __init__(self, detail: str = "An error occurred"):
        self.detail = detail
        super().__init__(self.detail)


# ---------------------------------------------------------------------------
# Domain exceptions
# ---------------------------------------------------------------------------

class ValidationError(LedgerError):
    """
    Raised when caller input is malformed.

    Attributes:
        field: Name of the offending argument (e.g. "amount", "account_name").
    """

    kind = ErrorKind.VALIDATION

    def __init__(self, field: str, detail: str):
        self.field = field
        super().__init__(detail)


class NotFoundError(LedgerError):
    """Raised when a referenced account (by id or number) does not exist."""

    kind = ErrorKind.NOT_FOUND

    def __init__(self, detail: str = "account not found"):
        super().__init__(detail)


class InsufficientFundsError(LedgerError):
    """
    Raised when a withdrawal or transfer debit exceeds the balance.

    Attributes:
        account_id: The account that lacks sufficient funds.
        requested: The amount the caller tried to debit.
        available: The balance at the time of the check.
    """

    kind = ErrorKind.INSUFFICIENT_FUNDS

    def __init__(self, account_id: uuid.UUID, requested: Decimal, available: Decimal):
        self.account_id = account_id
        self.requested = requested
        self.available = available
        super().__init__(
            f"Insufficient funds: requested {requested}, available {available}"
        )


class StoreError(LedgerError):
    """Raised when the persistence layer fails (connectivity, constraints, conflicts)."""

    kind = ErrorKind.STORE


class DuplicateAccountNumberError(StoreError):
    """Raised by an account store when the account number is already taken."""

    def __init__(self, account_number: int):
        self.account_number = account_number
        super().__init__(f"Account number {account_number} is already in use")


class ConflictError(StoreError):
    """Raised by an account store when the stored version no longer matches the one read."""

    def __init__(self, account_id: uuid.UUID):
        self.account_id = account_id
        super().__init__(f"Account {account_id} was modified concurrently")


# ---------------------------------------------------------------------------
# FastAPI exception handlers
# ---------------------------------------------------------------------------

_STATUS_BY_KIND = {
    ErrorKind.VALIDATION: 422,
    ErrorKind.NOT_FOUND: 404,
    # The request was well-formed but business rules reject it
    ErrorKind.INSUFFICIENT_FUNDS: 422,
    ErrorKind.STORE: 503,
}


def register_exception_handlers(app: FastAPI) -> None:
    """
    Register the domain exception handler with the FastAPI application.

    Every LedgerError maps to a status code by its kind and to a consistent
    JSON body: {"detail": "...", "error_type": "<kind>"} plus kind-specific
    fields. Called once during app setup in main.py.
    """

    @app.exception_handler(LedgerError)
    async def ledger_error_handler(request: Request, exc: LedgerError) -> JSONResponse:
        content: dict = {"detail": exc.detail, "error_type": exc.kind.value}
        if isinstance(exc, ValidationError):
            content["field"] = exc.field
        elif isinstance(exc, InsufficientFundsError):
            content["requested"] = str(exc.requested)
            content["available"] = str(exc.available)
        return JSONResponse(status_code=_STATUS_BY_KIND[exc.kind], content=content)
