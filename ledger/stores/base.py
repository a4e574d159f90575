"""
Store contracts consumed by the account service.

The service depends on these two abstract classes only. Implementations:

  - ledger.stores.sql:    SQLAlchemy (async) over a shared AsyncSession
  - ledger.stores.memory: dict-backed, for tests and embedding

Contract details every implementation must honor:

  - Returned entities are copies: mutating one does not change stored state
    until update() is called.
  - AccountStore.create() assigns `id`, and raises DuplicateAccountNumberError
    if the account number is taken by any account, open or closed.
  - AccountStore.update() is conditional: it succeeds only if the stored
    `version` equals `account.version`, then increments both. Otherwise it
    raises ConflictError and stores nothing.
  - AccountStore.delete() closes the account: it stops appearing in lookups,
    but its number stays reserved and its transactions stay readable.
  - TransactionStore.get_by_account() returns newest first.
  - Any other persistence failure is raised as StoreError.
"""

import uuid
from abc import ABC, abstractmethod

from ledger.entities import Account, Transaction


class AccountStore(ABC):
    """Durable table of accounts."""

    @abstractmethod
    async def get_by_id(self, account_id: uuid.UUID, for_update: bool = False) -> Account | None:
        """
        Return the open account with this id, or None.

        for_update asks the backend to hold a row lock until the surrounding
        transaction ends, where the backend supports it.
        """

    @abstractmethod
    async def get_by_owner(self, owner_id: str) -> list[Account]:
        """Return all open accounts of an owner, oldest first."""

    @abstractmethod
    async def get_by_number(self, account_number: int) -> Account | None:
        """Return the open account with this public number, or None."""

    @abstractmethod
    async def create(self, account: Account) -> Account:
        """Persist a new account and return it with its assigned id."""

    @abstractmethod
    async def update(self, account: Account) -> None:
        """Persist name, balance and active flag if the version still matches."""

    @abstractmethod
    async def delete(self, account: Account) -> None:
        """Close the account."""


class TransactionStore(ABC):
    """Append-style log of money movements."""

    @abstractmethod
    async def get_by_id(self, transaction_id: int) -> Transaction | None:
        ...

    @abstractmethod
    async def get_by_account(self, account_id: uuid.UUID) -> list[Transaction]:
        """Return every transaction of an account, newest first."""

    @abstractmethod
    async def create(self, transaction: Transaction) -> Transaction:
        """Append a transaction and return it with its assigned id."""

    # Not used by the account service; present for external tooling.

    @abstractmethod
    async def update(self, transaction: Transaction) -> None:
        ...

    @abstractmethod
    async def delete(self, transaction: Transaction) -> None:
        ...
