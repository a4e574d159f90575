"""
Transaction table — the append-only ledger.

Every movement of money creates one row per affected account:

  - A deposit creates one row with a positive amount
  - A withdrawal creates one row with a negative amount
  - A transfer creates TWO rows of type "transfer": a negative leg on the
    source account and a positive leg on the destination account

Why a signed amount:
  The balance of an account is the opening balance plus the sum of its
  ledger, with no case analysis on the type. The type says what kind of
  movement happened; the sign says which way the money went.

The id is an autoincrementing integer, so newest-first ordering is
deterministic even when two rows share a timestamp. Rows are never updated
or deleted by the service.
"""

import uuid
from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Integer, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column

from ledger.database import Base


class TransactionRow(Base):
    __tablename__ = "transactions"

    __table_args__ = (
        # A zero-amount movement is never recorded
        CheckConstraint("amount <> 0", name="ck_transactions_non_zero_amount"),
    )

    id: Mapped[int] = mapped_column(
        Integer,
        primary_key=True,
        autoincrement=True,
    )

    # Foreign key plus index instead of an ORM collection on the account
    account_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("accounts.id"),
        nullable=False,
        index=True,
    )

    # Signed: positive into the account, negative out of it
    amount: Mapped[Decimal] = mapped_column(
        Numeric(18, 2, asdecimal=True),
        nullable=False,
    )

    # "deposit", "withdrawal" or "transfer"
    type: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
    )

    description: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
    )

    # Indexed for newest-first history queries
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
        index=True,
    )
