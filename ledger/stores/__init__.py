"""
Persistence contracts and their implementations.

The account service is written against AccountStore and TransactionStore
only; pick the SQL pair for a database, the in-memory pair for tests.
"""

from ledger.stores.base import AccountStore, TransactionStore  # noqa: F401
from ledger.stores.memory import InMemoryAccountStore, InMemoryTransactionStore  # noqa: F401
from ledger.stores.sql import SqlAccountStore, SqlTransactionStore  # noqa: F401
