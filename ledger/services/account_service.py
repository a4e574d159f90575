"""
Account service — the money-movement engine.

THIS IS THE MOST CRITICAL FILE IN THE PROJECT. It handles:
  - Account creation (with unique, unpredictable account number generation)
  - Deposits, withdrawals and two-legged transfers
  - Balance enforcement (no negative balances)
  - Renaming and closing accounts, and read pass-throughs

The service is stateless. It holds only its two stores and a few settings,
and re-reads every account it is about to change.

Validation:
  Every input is re-validated here even if the caller validated it already.
  Malformed input raises ValidationError before any store is touched.

Atomicity:
  Each operation runs inside a `scope`, an async context manager supplied at
  construction. With the SQL stores this is session.begin_nested(): the
  account updates and the transaction records of one operation are written
  inside one SAVEPOINT and succeed or fail together. Without a scope (the
  default, used with the in-memory stores) there is a window in which a
  balance has been updated but its transaction has not been recorded yet;
  a failure in that window leaves the ledger short one record.

Concurrency:
  Account updates are optimistic: AccountStore.update() raises ConflictError
  if someone else updated the account since it was read. The whole
  read-validate-write sequence is then retried from a fresh read, up to
  `max_conflict_retries` attempts. Without a scope, an attempt that already
  wrote something (the source leg of a transfer, say) is not retried: the
  ConflictError propagates so nothing is applied twice.

Deadlock prevention:
  A transfer loads its two accounts in ascending id order, asking the store
  for row locks. Two transfers between the same pair of accounts in
  opposite directions therefore lock in the same order.
"""

import logging
import secrets
import uuid
from contextlib import AbstractAsyncContextManager, asynccontextmanager
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Awaitable, Callable, TypeVar

from ledger.entities import (
    ACCOUNT_NUMBER_MAX,
    ACCOUNT_NUMBER_MIN,
    CENT,
    Account,
    Transaction,
    TransactionType,
)
from ledger.exceptions import (
    ConflictError,
    DuplicateAccountNumberError,
    InsufficientFundsError,
    NotFoundError,
    StoreError,
    ValidationError,
)
from ledger.stores.base import AccountStore, TransactionStore

logger = logging.getLogger(__name__)

T = TypeVar("T")

# NUMERIC(18, 2) leaves sixteen integer digits
MAX_AMOUNT = Decimal("1e16")
MAX_NAME_LENGTH = 100
MAX_DESCRIPTION_LENGTH = 255


def generate_account_number() -> int:
    """
    Draw a 9-digit account number from the OS CSPRNG.

    Uniform over [100_000_000, 1_000_000_000). A cryptographic source makes
    numbers unpredictable, so nobody can enumerate accounts by guessing the
    next one. Uniqueness is checked by the caller.
    """
    return ACCOUNT_NUMBER_MIN + secrets.randbelow(ACCOUNT_NUMBER_MAX - ACCOUNT_NUMBER_MIN)


@asynccontextmanager
async def no_scope():
    yield


@dataclass
class _Attempt:
    """One run of an operation; `wrote` flips on its first successful write."""
    wrote: bool = False


# ---------------------------------------------------------------------------
# Input validation
# ---------------------------------------------------------------------------

def _to_amount(value, field: str) -> Decimal:
    """Convert a caller-supplied amount to a two-digit Decimal."""
    if isinstance(value, bool) or not isinstance(value, (Decimal, int, float, str)):
        raise ValidationError(field, f"{field} must be a decimal amount")
    try:
        # repr() gives the shortest string that round-trips, so 0.1 -> "0.1"
        amount = Decimal(repr(value)) if isinstance(value, float) else Decimal(value)
    except InvalidOperation:
        raise ValidationError(field, f"{field} must be a decimal amount") from None

    if not amount.is_finite():
        raise ValidationError(field, f"{field} must be a finite amount")
    if abs(amount) >= MAX_AMOUNT:
        raise ValidationError(field, f"{field} is too large")

    quantized = amount.quantize(CENT)
    if quantized != amount:
        raise ValidationError(field, f"{field} cannot have more than two decimal places")
    return quantized


def _positive_amount(value, field: str = "amount") -> Decimal:
    amount = _to_amount(value, field)
    if amount <= 0:
        raise ValidationError(field, f"{field} must be positive")
    return amount


def _require_text(value, field: str, max_length: int | None = None) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(field, f"{field} must not be empty")
    if max_length is not None and len(value.strip()) > max_length:
        raise ValidationError(field, f"{field} must be at most {max_length} characters")
    return value.strip()


def _optional_description(value) -> str | None:
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValidationError("description", "description must be text")
    if len(value) > MAX_DESCRIPTION_LENGTH:
        raise ValidationError(
            "description", f"description must be at most {MAX_DESCRIPTION_LENGTH} characters"
        )
    return value


def _check_ceiling(account: Account, amount: Decimal) -> None:
    if account.balance + amount >= MAX_AMOUNT:
        raise ValidationError("amount", "resulting balance is too large")


def _to_account_id(value, field: str = "account_id") -> uuid.UUID:
    if isinstance(value, uuid.UUID):
        return value
    if isinstance(value, str):
        try:
            return uuid.UUID(value)
        except ValueError:
            pass
    raise ValidationError(field, f"{field} is not a valid account id")


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------

class AccountService:
    """
    Orchestrates accounts and their ledgers over two injected stores.

    Args:
        accounts: The account store.
        transactions: The transaction store.
        scope: Factory for the async context manager each operation attempt
            runs in. Pass session.begin_nested for all-or-nothing operations
            on a SQL database; defaults to no scope at all.
        number_generator: Source of candidate account numbers.
        max_number_attempts: Account number draws before create_account gives up.
        max_conflict_retries: Attempts at an optimistic update before the
            ConflictError propagates.
    """

    def __init__(
        self,
        accounts: AccountStore,
        transactions: TransactionStore,
        *,
        scope: Callable[[], AbstractAsyncContextManager] | None = None,
        number_generator: Callable[[], int] = generate_account_number,
        max_number_attempts: int = 10,
        max_conflict_retries: int = 3,
    ) -> None:
        self._accounts = accounts
        self._transactions = transactions
        self._scope = scope or no_scope
        # Only a real scope undoes the writes of a failed attempt
        self._rolls_back = scope is not None
        self._number_generator = number_generator
        self._max_number_attempts = max_number_attempts
        self._max_conflict_retries = max_conflict_retries

    # --- helpers -----------------------------------------------------------

    async def _run_atomically(
        self,
        action: str,
        operation: Callable[[_Attempt], Awaitable[T]],
    ) -> T:
        """
        Run one read-validate-write sequence, retrying it on ConflictError.

        A retry starts again from a fresh read, so it is only safe when the
        failed attempt left nothing behind: either it wrote nothing before
        the conflict, or the scope rolled its writes back. Otherwise the
        ConflictError propagates at once.
        """
        for number in range(1, self._max_conflict_retries + 1):
            attempt = _Attempt()
            try:
                async with self._scope():
                    return await operation(attempt)
            except ConflictError:
                if attempt.wrote and not self._rolls_back:
                    logger.error(
                        "%s conflicted after a partial write on attempt %d, not retrying",
                        action,
                        number,
                    )
                    raise
                if number == self._max_conflict_retries:
                    logger.error(
                        "%s gave up after %d conflicting attempts", action, number
                    )
                    raise
                logger.warning(
                    "%s hit a concurrent update on attempt %d, retrying", action, number
                )
        raise AssertionError("unreachable")

    async def _save(self, attempt: _Attempt, account: Account) -> None:
        await self._accounts.update(account)
        attempt.wrote = True

    async def _remove(self, attempt: _Attempt, account: Account) -> None:
        await self._accounts.delete(account)
        attempt.wrote = True

    async def _record(self, attempt: _Attempt, transaction: Transaction) -> Transaction:
        recorded = await self._transactions.create(transaction)
        attempt.wrote = True
        return recorded

    async def _load(
        self,
        account_id: uuid.UUID,
        label: str = "account",
        for_update: bool = False,
    ) -> Account:
        account = await self._accounts.get_by_id(account_id, for_update=for_update)
        if account is None:
            raise NotFoundError(f"{label} not found")
        return account

    # --- account lifecycle -------------------------------------------------

    async def create_account(
        self,
        owner_id: str,
        account_name: str,
        initial_deposit=Decimal("0"),
    ) -> Account:
        """
        Open a new account for an owner.

        The opening balance is folded straight into the account: no
        transaction is recorded for it.

        Raises:
            ValidationError: Empty owner or name, or a negative initial deposit.
            StoreError: No unused account number found within the attempt budget.
        """
        # owner_id is opaque: checked for emptiness but stored as given
        _require_text(owner_id, "owner_id")
        account_name = _require_text(account_name, "account_name", MAX_NAME_LENGTH)
        opening_balance = _to_amount(initial_deposit, "initial_deposit")
        if opening_balance < 0:
            raise ValidationError("initial_deposit", "initial_deposit must not be negative")

        for attempt in range(1, self._max_number_attempts + 1):
            account_number = self._number_generator()

            if await self._accounts.get_by_number(account_number) is not None:
                logger.warning("Account number collision on attempt %d, drawing again", attempt)
                continue

            candidate = Account(
                owner_id=owner_id,
                name=account_name,
                account_number=account_number,
                balance=opening_balance,
            )
            try:
                async with self._scope():
                    account = await self._accounts.create(candidate)
            except DuplicateAccountNumberError:
                # Lost a race, or the number belongs to a closed account
                logger.warning("Account number collision on attempt %d, drawing again", attempt)
                continue

            logger.info(
                "Account created",
                extra={
                    "account_id": str(account.id),
                    "account_number": account.account_number,
                    "owner_id": owner_id,
                },
            )
            return account

        logger.error(
            "Could not allocate an account number in %d attempts", self._max_number_attempts
        )
        raise StoreError(
            f"Could not allocate a unique account number after "
            f"{self._max_number_attempts} attempts"
        )

    async def rename_account(self, account_id, new_name: str) -> Account:
        """Change an account's display name."""
        new_name = _require_text(new_name, "new_name", MAX_NAME_LENGTH)
        account_id = _to_account_id(account_id)

        async def operation(attempt: _Attempt) -> Account:
            account = await self._load(account_id)
            account.name = new_name
            await self._save(attempt, account)
            return account

        return await self._run_atomically("rename", operation)

    async def close_account(self, account_id) -> None:
        """
        Close an account with a zero balance.

        The account disappears from all lookups; its ledger stays readable
        through get_transactions() and its number is never reissued.

        Raises:
            NotFoundError: The account does not exist or is already closed.
            ValidationError: The balance is not zero.
        """
        account_id = _to_account_id(account_id)

        async def operation(attempt: _Attempt) -> None:
            account = await self._load(account_id)
            if account.balance != 0:
                raise ValidationError(
                    "account_id", "account balance must be zero before closing"
                )
            await self._remove(attempt, account)

        await self._run_atomically("close", operation)
        logger.info("Account closed", extra={"account_id": str(account_id)})

    # --- money movement ----------------------------------------------------

    async def deposit(self, account_id, amount, description: str | None = None) -> Transaction:
        """
        Credit an account and record a Deposit of +amount.

        Raises:
            ValidationError: amount is not a positive two-digit decimal, or the
                new balance would not fit.
            NotFoundError: The account does not exist.
        """
        amount = _positive_amount(amount)
        account_id = _to_account_id(account_id)
        description = _optional_description(description)

        async def operation(attempt: _Attempt) -> Transaction:
            account = await self._load(account_id)
            _check_ceiling(account, amount)
            account.balance += amount
            await self._save(attempt, account)
            return await self._record(
                attempt,
                Transaction(
                    account_id=account.id,
                    amount=amount,
                    type=TransactionType.DEPOSIT,
                    description=description,
                )
            )

        txn = await self._run_atomically("deposit", operation)
        logger.info(
            "Deposit recorded",
            extra={"account_id": str(account_id), "amount": str(amount)},
        )
        return txn

    async def withdraw(self, account_id, amount, description: str | None = None) -> Transaction:
        """
        Debit an account and record a Withdrawal of -amount.

        Raises:
            ValidationError: amount is not a positive two-digit decimal.
            NotFoundError: The account does not exist.
            InsufficientFundsError: The balance is below amount; nothing changed.
        """
        amount = _positive_amount(amount)
        account_id = _to_account_id(account_id)
        description = _optional_description(description)

        async def operation(attempt: _Attempt) -> Transaction:
            account = await self._load(account_id)
            if account.balance < amount:
                raise InsufficientFundsError(
                    account_id=account.id,
                    requested=amount,
                    available=account.balance,
                )
            account.balance -= amount
            await self._save(attempt, account)
            return await self._record(
                attempt,
                Transaction(
                    account_id=account.id,
                    amount=-amount,
                    type=TransactionType.WITHDRAWAL,
                    description=description,
                )
            )

        txn = await self._run_atomically("withdraw", operation)
        logger.info(
            "Withdrawal recorded",
            extra={"account_id": str(account_id), "amount": str(amount)},
        )
        return txn

    async def transfer(
        self,
        from_account_id,
        to_account_id,
        amount,
        description: str | None = None,
    ) -> tuple[Transaction, Transaction]:
        """
        Move money between two accounts.

        Sequence: load and check both accounts, apply both balance changes,
        then record both legs. The debit leg (-amount) goes to the source,
        the credit leg (+amount) to the destination.

        Returns:
            Tuple of (debit_transaction, credit_transaction).

        Raises:
            ValidationError: Same account on both sides, a non-positive amount, or a
                destination balance that would not fit.
            NotFoundError: The source or the destination does not exist.
            InsufficientFundsError: The source balance is below amount; nothing changed.
        """
        from_account_id = _to_account_id(from_account_id, "from_account_id")
        to_account_id = _to_account_id(to_account_id, "to_account_id")
        if from_account_id == to_account_id:
            raise ValidationError("to_account_id", "cannot transfer to the same account")
        amount = _positive_amount(amount)
        description = _optional_description(description)

        async def operation(attempt: _Attempt) -> tuple[Transaction, Transaction]:
            # Lock in consistent order (sorted by id) to prevent deadlocks
            loaded: dict[uuid.UUID, Account | None] = {}
            for account_id in sorted((from_account_id, to_account_id)):
                loaded[account_id] = await self._accounts.get_by_id(account_id, for_update=True)

            source = loaded[from_account_id]
            destination = loaded[to_account_id]
            if source is None:
                raise NotFoundError("source account not found")
            if destination is None:
                raise NotFoundError("destination account not found")

            if source.balance < amount:
                raise InsufficientFundsError(
                    account_id=source.id,
                    requested=amount,
                    available=source.balance,
                )
            _check_ceiling(destination, amount)

            source.balance -= amount
            destination.balance += amount
            await self._save(attempt, source)
            await self._save(attempt, destination)

            debit_txn = await self._record(
                attempt,
                Transaction(
                    account_id=source.id,
                    amount=-amount,
                    type=TransactionType.TRANSFER,
                    description=description,
                )
            )
            credit_txn = await self._record(
                attempt,
                Transaction(
                    account_id=destination.id,
                    amount=amount,
                    type=TransactionType.TRANSFER,
                    description=description,
                )
            )
            return debit_txn, credit_txn

        legs = await self._run_atomically("transfer", operation)
        logger.info(
            "Transfer recorded",
            extra={
                "from_account_id": str(from_account_id),
                "to_account_id": str(to_account_id),
                "amount": str(amount),
            },
        )
        return legs

    # --- queries -----------------------------------------------------------

    async def account_exists(self, account_id) -> bool:
        try:
            account_id = _to_account_id(account_id)
        except ValidationError:
            return False
        return await self._accounts.get_by_id(account_id) is not None

    async def get_account_by_id(self, account_id) -> Account | None:
        """Return the account, or None if there is no such (open) account."""
        try:
            account_id = _to_account_id(account_id)
        except ValidationError:
            return None
        return await self._accounts.get_by_id(account_id)

    async def get_accounts_for_user(self, owner_id: str) -> list[Account]:
        return await self._accounts.get_by_owner(owner_id)

    async def get_transactions(self, account_id) -> list[Transaction]:
        """Return the ledger of an account, newest first."""
        return await self._transactions.get_by_account(_to_account_id(account_id))

    async def get_account_id_by_account_number(self, account_number: int) -> uuid.UUID:
        """
        Resolve a public account number to the internal account id.

        Used to address the recipient of a transfer by the number they shared.
        """
        if isinstance(account_number, bool) or not isinstance(account_number, int):
            raise ValidationError("account_number", "account_number must be an integer")
        account = await self._accounts.get_by_number(account_number)
        if account is None:
            raise NotFoundError("no account with that account number")
        return account.id
