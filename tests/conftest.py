"""
Pytest configuration and fixtures for ledgerstore tests.

This module provides record factories and in-memory stores shared by the
unit and integration tests.
"""

import tempfile
from pathlib import Path
from typing import Any, AsyncGenerator, Generator

import pytest
import pytest_asyncio

from ledgerstore.schema import Receipt, Transaction
from ledgerstore.store import ReceiptStore, SQLiteExecutor, TransactionStore


def make_transaction(
    tx_id: str = "tx-1",
    cycle: int = 1,
    timestamp: int = 1000,
    app_receipt_id: str | None = None,
    **overrides: Any,
) -> Transaction:
    """Build a Transaction with nested payloads."""
    fields: dict[str, Any] = {
        "txId": tx_id,
        "appReceiptId": app_receipt_id,
        "timestamp": timestamp,
        "cycleNumber": cycle,
        "data": {"from": "0xaaa", "to": "0xbbb", "value": "10", "logs": [{"topic": "t1"}]},
        "originalTxData": {"tx": {"raw": "0xf86c", "timestamp": timestamp}},
    }
    fields.update(overrides)
    return Transaction(**fields)


def make_receipt(
    receipt_id: str = "rc-1",
    cycle: int = 1,
    timestamp: int = 1000,
    global_modification: bool = False,
    **overrides: Any,
) -> Receipt:
    """Build a Receipt with a signed receipt bundle and account snapshots."""
    account = {
        "accountId": "acc-1",
        "data": {"balance": "100", "nonce": 1},
        "timestamp": timestamp,
        "hash": "h-after",
        "cycleNumber": cycle,
        "isGlobal": False,
    }
    fields: dict[str, Any] = {
        "receiptId": receipt_id,
        "tx": {
            "originalTxData": {"raw": "0xf86c"},
            "txId": receipt_id,
            "timestamp": timestamp,
        },
        "cycle": cycle,
        "signedReceipt": {
            "proposal": {
                "applied": True,
                "cant_preApply": False,
                "accountIDs": ["acc-1"],
                "beforeStateHashes": ["h-before"],
                "afterStateHashes": ["h-after"],
                "appReceiptDataHash": "h-app",
                "txid": receipt_id,
            },
            "proposalHash": "h-proposal",
            "signaturePack": [{"owner": "node-1", "sig": "abcd"}],
            "voteOffsets": [0],
        },
        "afterStates": [account],
        "beforeStates": [{**account, "hash": "h-before"}],
        "appReceiptData": {"status": 1, "gasUsed": "21000"},
        "executionShardKey": "shard-a",
        "globalModification": global_modification,
        "timestamp": timestamp,
        "applyTimestamp": timestamp + 5,
    }
    fields.update(overrides)
    return Receipt.model_validate(fields)


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test files."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest_asyncio.fixture
async def memory_executor() -> AsyncGenerator[SQLiteExecutor, None]:
    """An open in-memory executor."""
    executor = SQLiteExecutor(":memory:", name="test")
    await executor.open()
    yield executor
    await executor.close()


@pytest_asyncio.fixture
async def tx_store(memory_executor: SQLiteExecutor) -> TransactionStore:
    """A TransactionStore over a fresh in-memory database."""
    store = TransactionStore(memory_executor)
    await store.initialize()
    return store


@pytest_asyncio.fixture
async def receipt_store(memory_executor: SQLiteExecutor) -> ReceiptStore:
    """A ReceiptStore over a fresh in-memory database."""
    store = ReceiptStore(memory_executor)
    await store.initialize()
    return store


@pytest.fixture
def tx_factory():
    """Factory for Transaction records."""
    return make_transaction


@pytest.fixture
def receipt_factory():
    """Factory for Receipt records."""
    return make_receipt
