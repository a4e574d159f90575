"""In-memory implementations of the store contracts."""

import itertools
import uuid
from dataclasses import dataclass, field, replace

from ledger.entities import Account, Transaction
from ledger.exceptions import ConflictError, DuplicateAccountNumberError, StoreError
from ledger.stores.base import AccountStore, TransactionStore


@dataclass
class InMemoryAccountStore(AccountStore):
    """
    Dict-backed account store.

    Entities are copied on the way in and out, so callers see the same
    isolation they get from a database. Closed accounts stay in `_accounts`
    with is_active=False, which keeps their numbers reserved.
    """

    _accounts: dict[uuid.UUID, Account] = field(default_factory=dict)
    _by_number: dict[int, uuid.UUID] = field(default_factory=dict)

    def _open_copy(self, account: Account | None) -> Account | None:
        if account is None or not account.is_active:
            return None
        return replace(account)

    async def get_by_id(self, account_id: uuid.UUID, for_update: bool = False) -> Account | None:
        return self._open_copy(self._accounts.get(account_id))

    async def get_by_owner(self, owner_id: str) -> list[Account]:
        return [
            replace(account)
            for account in self._accounts.values()
            if account.owner_id == owner_id and account.is_active
        ]

    async def get_by_number(self, account_number: int) -> Account | None:
        account_id = self._by_number.get(account_number)
        if account_id is None:
            return None
        return self._open_copy(self._accounts[account_id])

    async def create(self, account: Account) -> Account:
        if account.account_number in self._by_number:
            raise DuplicateAccountNumberError(account.account_number)
        stored = replace(account, id=uuid.uuid4(), version=0)
        self._accounts[stored.id] = stored
        self._by_number[stored.account_number] = stored.id
        return replace(stored)

    async def update(self, account: Account) -> None:
        stored = self._accounts.get(account.id)
        if stored is None:
            raise StoreError(f"Account {account.id} does not exist")
        if stored.version != account.version:
            raise ConflictError(account.id)
        account.version += 1
        self._accounts[account.id] = replace(account)

    async def delete(self, account: Account) -> None:
        account.is_active = False
        await self.update(account)


@dataclass
class InMemoryTransactionStore(TransactionStore):
    """List-backed transaction log; ids are assigned in insertion order."""

    _transactions: dict[int, Transaction] = field(default_factory=dict)
    _ids: itertools.count = field(default_factory=lambda: itertools.count(1))

    async def get_by_id(self, transaction_id: int) -> Transaction | None:
        return self._transactions.get(transaction_id)

    async def get_by_account(self, account_id: uuid.UUID) -> list[Transaction]:
        matching = [t for t in self._transactions.values() if t.account_id == account_id]
        return sorted(matching, key=lambda t: (t.created_at, t.id), reverse=True)

    async def create(self, transaction: Transaction) -> Transaction:
        stored = replace(transaction, id=next(self._ids))
        self._transactions[stored.id] = stored
        return stored

    async def update(self, transaction: Transaction) -> None:
        if transaction.id not in self._transactions:
            raise StoreError(f"Transaction {transaction.id} does not exist")
        self._transactions[transaction.id] = transaction

    async def delete(self, transaction: Transaction) -> None:
        self._transactions.pop(transaction.id, None)
