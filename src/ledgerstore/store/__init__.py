"""
Storage module for ledgerstore.

This module provides SQLite-based persistence for transactions and receipts.

Tables:
    - transactions: one row per Transaction, keyed by txId
    - receipts: one row per Receipt, keyed by receiptId
    - schema_version: the schema version each database was created with

Design principles:
    - Append-mostly: writes are INSERT OR REPLACE, never UPDATE or DELETE
    - Static layouts: SQL is generated from per-table field descriptors
    - Explicit outcomes: operations return results instead of raising
"""

from ledgerstore.store.base import RecordStore
from ledgerstore.store.db import Ack, Executor, SQLiteExecutor, initialize_schema
from ledgerstore.store.receipts import RECEIPT_LAYOUT, ReceiptStore
from ledgerstore.store.transactions import TRANSACTION_LAYOUT, TransactionStore

__all__ = [
    "Ack",
    "Executor",
    "RECEIPT_LAYOUT",
    "ReceiptStore",
    "RecordStore",
    "SQLiteExecutor",
    "TRANSACTION_LAYOUT",
    "TransactionStore",
    "initialize_schema",
]
