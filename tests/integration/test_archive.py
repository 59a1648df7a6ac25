"""
Integration tests for LedgerArchive.

Tests cover:
- Opening file-backed databases and reopening them
- Chunked ingestion
- Store lookup by kind
"""

from pathlib import Path

import pytest

from ledgerstore.archive import MAX_BOUND_PARAMETERS, LedgerArchive, chunked
from ledgerstore.config import StoreConfig
from ledgerstore.results import ReadStatus


@pytest.fixture
def archive_config(temp_dir: Path) -> StoreConfig:
    return StoreConfig(
        transaction_db_path=str(temp_dir / "db" / "transactions.sqlite3"),
        receipt_db_path=str(temp_dir / "db" / "receipts.sqlite3"),
    )


class TestChunked:
    """Tests for the chunking helper."""

    def test_even_split(self) -> None:
        assert list(chunked(range(4), 2)) == [[0, 1], [2, 3]]

    def test_remainder(self) -> None:
        assert list(chunked(range(5), 2)) == [[0, 1], [2, 3], [4]]

    def test_empty(self) -> None:
        assert list(chunked([], 3)) == []

    def test_invalid_size(self) -> None:
        with pytest.raises(ValueError):
            list(chunked([1], 0))


class TestLedgerArchive:
    """Tests for the archive facade."""

    @pytest.mark.asyncio
    async def test_creates_database_files(self, archive_config: StoreConfig) -> None:
        async with LedgerArchive(archive_config):
            pass
        assert Path(archive_config.transaction_db_path).exists()
        assert Path(archive_config.receipt_db_path).exists()

    @pytest.mark.asyncio
    async def test_records_survive_reopen(self, archive_config: StoreConfig, tx_factory, receipt_factory) -> None:
        async with LedgerArchive(archive_config) as archive:
            await archive.transactions.insert(tx_factory("tx-1", cycle=3))
            await archive.receipts.insert(receipt_factory("rc-1", cycle=3))

        async with LedgerArchive(archive_config) as archive:
            tx = await archive.transactions.get_by_id("tx-1")
            receipt = await archive.receipts.get_by_id("rc-1")
            assert tx.status == ReadStatus.OK
            assert tx.value == tx_factory("tx-1", cycle=3)
            assert receipt.value == receipt_factory("rc-1", cycle=3)

    @pytest.mark.asyncio
    async def test_stores_use_separate_databases(self, archive_config: StoreConfig, tx_factory) -> None:
        async with LedgerArchive(archive_config) as archive:
            await archive.transactions.insert(tx_factory("tx-1"))
            assert (await archive.transactions.count()).value == 1
            assert (await archive.receipts.count()).value == 0

    @pytest.mark.asyncio
    async def test_ingest_in_chunks(self, archive_config: StoreConfig, tx_factory) -> None:
        records = [
            tx_factory(f"tx-{i}", cycle=i // 3, timestamp=1000 + i).model_dump(mode="json")
            for i in range(10)
        ]
        async with LedgerArchive(archive_config) as archive:
            stored, failed = await archive.ingest("transactions", records, chunk_size=4)
            assert (stored, failed) == (10, 0)
            assert (await archive.transactions.count()).value == 10

    @pytest.mark.asyncio
    async def test_ingest_counts_failed_chunk(self, archive_config: StoreConfig, receipt_factory) -> None:
        records = [receipt_factory(f"rc-{i}").model_dump(mode="json") for i in range(4)]
        del records[3]["signedReceipt"]
        async with LedgerArchive(archive_config) as archive:
            stored, failed = await archive.ingest("receipts", records, chunk_size=2)
            assert (stored, failed) == (2, 2)
            assert (await archive.receipts.count()).value == 2

    @pytest.mark.asyncio
    async def test_ingest_is_idempotent(self, archive_config: StoreConfig, receipt_factory) -> None:
        records = [receipt_factory(f"rc-{i}") for i in range(3)]
        async with LedgerArchive(archive_config) as archive:
            await archive.ingest("receipts", records)
            await archive.ingest("receipts", records)
            assert (await archive.receipts.count()).value == 3

    def test_store_for(self) -> None:
        archive = LedgerArchive(StoreConfig(transaction_db_path=":memory:", receipt_db_path=":memory:"))
        assert archive.store_for("transactions") is archive.transactions
        assert archive.store_for("receipts") is archive.receipts
        with pytest.raises(ValueError):
            archive.store_for("accounts")

    def test_store_options_follow_config(self) -> None:
        config = StoreConfig(
            transaction_db_path=":memory:",
            receipt_db_path=":memory:",
            verbose=True,
            latest_default=5,
            page_default=50,
        )
        archive = LedgerArchive(config)
        assert archive.receipts.verbose is True
        assert archive.transactions.latest_default == 5
        assert archive.transactions.page_default == 50

    def test_max_chunk_size(self) -> None:
        archive = LedgerArchive(StoreConfig(transaction_db_path=":memory:", receipt_db_path=":memory:"))
        size = LedgerArchive.max_chunk_size(archive.receipts)
        assert size == MAX_BOUND_PARAMETERS // 11
        assert size * len(archive.receipts.layout.fields) <= MAX_BOUND_PARAMETERS
