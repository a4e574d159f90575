"""
Account and Transaction entities: the values that cross the store boundary.

These are plain dataclasses, not ORM rows. The account service only ever sees
these types, so it works the same over the SQL stores and the in-memory
stores, and no database session or lazy relationship leaks out of a store.

Notably, an Account does not hold its transactions. The ledger of an account
is always fetched on demand through TransactionStore.get_by_account().

Money:
  Amounts are Decimal with two fractional digits. Floats are never used for
  balances or amounts; 0.1 + 0.2 != 0.3 in binary floating point.
"""

import enum
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal

# Two fractional digits: the smallest unit is one cent
CENT = Decimal("0.01")

# Inclusive lower, exclusive upper bound of public account numbers (9 digits)
ACCOUNT_NUMBER_MIN = 100_000_000
ACCOUNT_NUMBER_MAX = 1_000_000_000


class TransactionType(str, enum.Enum):
    """
    The kind of money movement a transaction records.

    Inherits from str so the value serializes naturally to JSON and is
    stored as a plain string in the database.
    """
    DEPOSIT = "deposit"
    WITHDRAWAL = "withdrawal"
    TRANSFER = "transfer"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class Account:
    """
    A bank account.

    `id` is None until the account store assigns one. `version` is maintained
    by the store for optimistic concurrency and must not be changed by callers.
    """
    owner_id: str
    name: str
    account_number: int
    balance: Decimal = Decimal("0.00")
    id: uuid.UUID | None = None
    is_active: bool = True
    version: int = 0
    created_at: datetime = field(default_factory=utcnow)


@dataclass(frozen=True)
class Transaction:
    """
    One immutable ledger record.

    `amount` is signed: positive for money entering the account, negative
    for money leaving it. `id` is None until the transaction store assigns one.
    """
    account_id: uuid.UUID
    amount: Decimal
    type: TransactionType
    created_at: datetime = field(default_factory=utcnow)
    description: str | None = None
    id: int | None = None
