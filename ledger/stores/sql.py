"""
SQLAlchemy implementations of the store contracts.

Both stores wrap the same AsyncSession, so everything one account-service
operation writes lands in one database transaction. The stores flush but
never commit: committing is the job of whoever owns the session (get_db()
for HTTP requests).

Optimistic concurrency:
  update() and delete() are single conditional UPDATE statements:

      UPDATE accounts SET ..., version = version + 1
      WHERE id = :id AND version = :version_read

  Zero matched rows means another writer got there first, and ConflictError
  is raised. This works the same on SQLite (no row locks) and PostgreSQL.

Row locks:
  get_by_id(for_update=True) adds SELECT ... FOR UPDATE. It is a no-op on
  SQLite but locks the row on PostgreSQL until the transaction ends.

Errors:
  SQLAlchemy exceptions never escape; they are re-raised as StoreError
  (or DuplicateAccountNumberError for a taken account number).
"""

import logging
import uuid
from contextlib import contextmanager
from dataclasses import replace
from datetime import datetime, timezone

from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ledger.entities import CENT, Account, Transaction, TransactionType
from ledger.exceptions import ConflictError, DuplicateAccountNumberError, StoreError
from ledger.models.account import AccountRow
from ledger.models.transaction import TransactionRow
from ledger.stores.base import AccountStore, TransactionStore

logger = logging.getLogger(__name__)


@contextmanager
def _translate_errors(action: str):
    try:
        yield
    except SQLAlchemyError as exc:
        logger.error("Store failure while trying to %s", action, exc_info=True)
        raise StoreError(f"Failed to {action}") from exc


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes even for timezone-aware columns
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _to_account(row: AccountRow) -> Account:
    return Account(
        id=row.id,
        owner_id=row.owner_id,
        name=row.name,
        account_number=row.account_number,
        balance=row.balance.quantize(CENT),
        is_active=row.is_active,
        version=row.version,
        created_at=_as_utc(row.created_at),
    )


def _to_transaction(row: TransactionRow) -> Transaction:
    return Transaction(
        id=row.id,
        account_id=row.account_id,
        amount=row.amount.quantize(CENT),
        type=TransactionType(row.type),
        created_at=_as_utc(row.created_at),
        description=row.description,
    )


class SqlAccountStore(AccountStore):
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def _fetch_one(self, stmt) -> Account | None:
        # populate_existing: the conditional UPDATEs below bypass the identity map
        stmt = stmt.where(AccountRow.is_active.is_(True)).execution_options(
            populate_existing=True
        )
        result = await self.session.execute(stmt)
        row = result.scalar_one_or_none()
        return _to_account(row) if row is not None else None

    async def get_by_id(self, account_id: uuid.UUID, for_update: bool = False) -> Account | None:
        stmt = select(AccountRow).where(AccountRow.id == account_id)
        if for_update:
            stmt = stmt.with_for_update()  # No-op on SQLite, locks row on PostgreSQL
        with _translate_errors("load account"):
            return await self._fetch_one(stmt)

    async def get_by_owner(self, owner_id: str) -> list[Account]:
        stmt = (
            select(AccountRow)
            .where(AccountRow.owner_id == owner_id)
            .where(AccountRow.is_active.is_(True))
            .order_by(AccountRow.created_at, AccountRow.account_number)
            .execution_options(populate_existing=True)
        )
        with _translate_errors("list accounts"):
            result = await self.session.execute(stmt)
            return [_to_account(row) for row in result.scalars().all()]

    async def get_by_number(self, account_number: int) -> Account | None:
        stmt = select(AccountRow).where(AccountRow.account_number == account_number)
        with _translate_errors("look up account number"):
            return await self._fetch_one(stmt)

    async def create(self, account: Account) -> Account:
        row = AccountRow(
            owner_id=account.owner_id,
            name=account.name,
            account_number=account.account_number,
            balance=account.balance,
            is_active=account.is_active,
            version=0,
            created_at=account.created_at,
        )
        # Own SAVEPOINT: a constraint violation must not poison the caller's transaction
        try:
            async with self.session.begin_nested():
                self.session.add(row)
                await self.session.flush()
        except IntegrityError as exc:
            if "account_number" in str(exc.orig):
                raise DuplicateAccountNumberError(account.account_number) from exc
            raise StoreError("Failed to create account") from exc
        except SQLAlchemyError as exc:
            raise StoreError("Failed to create account") from exc

        return _to_account(row)

    async def _conditional_update(self, account: Account, **values) -> None:
        stmt = (
            update(AccountRow)
            .where(AccountRow.id == account.id)
            .where(AccountRow.version == account.version)
            .values(
                version=AccountRow.version + 1,
                updated_at=datetime.now(timezone.utc),
                **values,
            )
            .execution_options(synchronize_session=False)
        )
        with _translate_errors("update account"):
            result = await self.session.execute(stmt)
        if result.rowcount == 0:
            raise ConflictError(account.id)
        account.version += 1

    async def update(self, account: Account) -> None:
        await self._conditional_update(
            account,
            name=account.name,
            balance=account.balance,
            is_active=account.is_active,
        )

    async def delete(self, account: Account) -> None:
        await self._conditional_update(account, is_active=False)
        account.is_active = False


class SqlTransactionStore(TransactionStore):
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get_by_id(self, transaction_id: int) -> Transaction | None:
        with _translate_errors("load transaction"):
            row = await self.session.get(TransactionRow, transaction_id)
        return _to_transaction(row) if row is not None else None

    async def get_by_account(self, account_id: uuid.UUID) -> list[Transaction]:
        stmt = (
            select(TransactionRow)
            .where(TransactionRow.account_id == account_id)
            .order_by(TransactionRow.created_at.desc(), TransactionRow.id.desc())
        )
        with _translate_errors("list transactions"):
            result = await self.session.execute(stmt)
            return [_to_transaction(row) for row in result.scalars().all()]

    async def create(self, transaction: Transaction) -> Transaction:
        row = TransactionRow(
            account_id=transaction.account_id,
            amount=transaction.amount,
            type=transaction.type.value,
            description=transaction.description,
            created_at=transaction.created_at,
        )
        with _translate_errors("record transaction"):
            self.session.add(row)
            await self.session.flush()
        return replace(transaction, id=row.id)

    async def update(self, transaction: Transaction) -> None:
        stmt = (
            update(TransactionRow)
            .where(TransactionRow.id == transaction.id)
            .values(
                amount=transaction.amount,
                type=transaction.type.value,
                description=transaction.description,
            )
            .execution_options(synchronize_session=False)
        )
        with _translate_errors("update transaction"):
            result = await self.session.execute(stmt)
        if result.rowcount == 0:
            raise StoreError(f"Transaction {transaction.id} does not exist")

    async def delete(self, transaction: Transaction) -> None:
        stmt = delete(TransactionRow).where(TransactionRow.id == transaction.id)
        with _translate_errors("delete transaction"):
            await self.session.execute(stmt.execution_options(synchronize_session=False))
