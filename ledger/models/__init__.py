"""
SQLAlchemy ORM models package.

All models are imported here so that Base.metadata knows every table
before create_all() runs.
"""

from ledger.models.account import AccountRow  # noqa: F401
from ledger.models.transaction import TransactionRow  # noqa: F401
