"""
LedgerArchive - the transaction and receipt stores behind one object.

The archive opens one SQLiteExecutor per logical database, creates the
schema if needed, and hands out the two stores.

Usage:
    async with LedgerArchive(config) as archive:
        await archive.transactions.insert(tx)
        latest = await archive.receipts.get_latest(10)
"""

import logging
from collections.abc import Iterable, Iterator, Sequence
from typing import Any, TypeVar

from ledgerstore.config import StoreConfig
from ledgerstore.store import ReceiptStore, SQLiteExecutor, TransactionStore

logger = logging.getLogger(__name__)

T = TypeVar("T")

# SQLite's default SQLITE_MAX_VARIABLE_NUMBER since 3.32
MAX_BOUND_PARAMETERS = 32766


def chunked(items: Iterable[T], size: int) -> Iterator[list[T]]:
    """Yield consecutive lists of at most ``size`` items."""
    if size < 1:
        raise ValueError("size must be at least 1")
    chunk: list[T] = []
    for item in items:
        chunk.append(item)
        if len(chunk) == size:
            yield chunk
            chunk = []
    if chunk:
        yield chunk


class LedgerArchive:
    """
    Owner of the transaction and receipt databases.

    Attributes:
        config: The configuration the archive was built from
        transactions: Store for Transaction records
        receipts: Store for Receipt records
    """

    def __init__(self, config: StoreConfig | None = None) -> None:
        self.config = config or StoreConfig()
        self.transaction_executor = SQLiteExecutor(
            self.config.transaction_db_path, name="transactions"
        )
        self.receipt_executor = SQLiteExecutor(self.config.receipt_db_path, name="receipts")
        store_options: dict[str, Any] = {
            "verbose": self.config.verbose,
            "latest_default": self.config.latest_default,
            "page_default": self.config.page_default,
        }
        self.transactions = TransactionStore(self.transaction_executor, **store_options)
        self.receipts = ReceiptStore(self.receipt_executor, **store_options)

    async def open(self) -> None:
        """
        Open both databases and create their schema.

        Raises:
            StorageConnectionError: If a database cannot be opened
            StorageWriteError: If the schema cannot be created
        """
        await self.transaction_executor.open()
        await self.receipt_executor.open()
        await self.transactions.initialize()
        await self.receipts.initialize()
        logger.info(
            "Ledger archive open (transactions=%s, receipts=%s)",
            self.config.transaction_db_path,
            self.config.receipt_db_path,
        )

    async def close(self) -> None:
        """Close both databases."""
        await self.transaction_executor.close()
        await self.receipt_executor.close()

    async def __aenter__(self) -> "LedgerArchive":
        await self.open()
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()

    def store_for(self, kind: str) -> TransactionStore | ReceiptStore:
        """Return the store for "transactions" or "receipts"."""
        if kind == "transactions":
            return self.transactions
        if kind == "receipts":
            return self.receipts
        raise ValueError(f"Unknown record kind: {kind}")

    @staticmethod
    def max_chunk_size(store: TransactionStore | ReceiptStore) -> int:
        """Largest batch that fits one statement's bound-parameter limit."""
        return MAX_BOUND_PARAMETERS // len(store.layout.fields)

    async def ingest(
        self,
        kind: str,
        records: Sequence[Any],
        chunk_size: int = 500,
    ) -> tuple[int, int]:
        """
        Bulk-insert records in chunks.

        Returns:
            (stored, failed) record counts
        """
        store = self.store_for(kind)
        size = min(chunk_size, self.max_chunk_size(store))
        stored = failed = 0
        for chunk in chunked(records, size):
            result = await store.bulk_insert(chunk)
            if result.ok:
                stored += len(chunk)
            else:
                failed += len(chunk)
        return stored, failed
