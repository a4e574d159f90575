"""
Account table — persistent form of the Account entity.

Each row has:
  - A unique public account number (9 digits, drawn at random by the service)
  - A display name and an opaque owner id supplied by the identity layer
  - A balance stored as NUMERIC(18, 2), read back as Decimal
  - A version counter used for optimistic concurrency

Balance safety:
  A CHECK constraint at the database level enforces that the balance can
  never go negative. The service checks before debiting; the constraint is
  the final safety net against bugs that bypass it.

Closing:
  Closed accounts are kept with is_active = False. The row (and therefore
  the UNIQUE account_number) stays, so a number is never handed out twice.
"""

import uuid
from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import Boolean, CheckConstraint, DateTime, Integer, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column

from ledger.database import Base


class AccountRow(Base):
    __tablename__ = "accounts"

    # Database-level constraint: balance can never be negative
    __table_args__ = (
        CheckConstraint(
            "balance >= 0",
            name="ck_accounts_non_negative_balance",
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        primary_key=True,
        default=uuid.uuid4,
    )

    # Opaque user identifier from the identity layer
    owner_id: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        index=True,
    )

    name: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
    )

    # Public 9-digit number; UNIQUE covers closed accounts too
    account_number: Mapped[int] = mapped_column(
        Integer,
        unique=True,
        nullable=False,
    )

    balance: Mapped[Decimal] = mapped_column(
        Numeric(18, 2, asdecimal=True),
        nullable=False,
        default=Decimal("0.00"),
    )

    is_active: Mapped[bool] = mapped_column(
        Boolean,
        default=True,
        nullable=False,
    )

    # Bumped on every update; an UPDATE only matches the version it read
    version: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        nullable=False,
    )
