"""
Receipt store.

Receipts are the attested record of a transaction's execution. Five of
their columns hold JSON blobs (tx, signedReceipt, afterStates,
beforeStates, appReceiptData) and ``globalModification`` is stored as
integer 0/1; the codec turns it back into a bool on every read.
"""

import logging

from ledgerstore.codec import FieldSpec, RecordLayout
from ledgerstore.errors import LedgerStoreError
from ledgerstore.results import ReadResult, ReadStatus
from ledgerstore.schema import CycleCount, Receipt
from ledgerstore.store.base import RecordStore

logger = logging.getLogger(__name__)

RECEIPT_LAYOUT = RecordLayout(
    table="receipts",
    fields=(
        FieldSpec("receiptId", "TEXT", nullable=False),
        FieldSpec("tx", "TEXT", is_serialized=True, nullable=False),
        FieldSpec("cycle", "INTEGER", nullable=False),
        FieldSpec("applyTimestamp", "BIGINT", nullable=False),
        FieldSpec("timestamp", "BIGINT", nullable=False),
        FieldSpec("signedReceipt", "TEXT", is_serialized=True, nullable=False),
        FieldSpec("afterStates", "TEXT", is_serialized=True),
        FieldSpec("beforeStates", "TEXT", is_serialized=True),
        FieldSpec("appReceiptData", "TEXT", is_serialized=True),
        FieldSpec("executionShardKey", "TEXT", nullable=False),
        FieldSpec("globalModification", "INTEGER", is_bool=True, nullable=False),
    ),
    primary_key="receiptId",
    cycle_column="cycle",
    secondary_key="executionShardKey",
)


class ReceiptStore(RecordStore[Receipt]):
    """Persistence for Receipt records in the ``receipts`` table."""

    layout = RECEIPT_LAYOUT
    model = Receipt

    async def get_by_id(self, record_id: str, timestamp: int = 0) -> ReadResult[Receipt | None]:
        """
        Look up a receipt by id.

        Args:
            record_id: The receipt id
            timestamp: When non-zero, the stored timestamp must match as well
        """
        if not timestamp:
            return await super().get_by_id(record_id)
        return await self._fetch_one(
            "get by id",
            "SELECT * FROM receipts WHERE receiptId = ? AND timestamp = ?",
            (record_id, timestamp),
            record_id,
        )

    async def count_by_cycle_grouped(
        self, start_cycle: int, end_cycle: int
    ) -> ReadResult[list[CycleCount]]:
        """
        Receipt counts per cycle for start_cycle <= cycle <= end_cycle.

        Cycles without receipts are absent from the result, which is
        ordered by ascending cycle.
        """
        try:
            rows = await self.executor.all(
                "SELECT cycle, COUNT(*) AS count FROM receipts "
                "WHERE cycle BETWEEN ? AND ? "
                "GROUP BY cycle ORDER BY cycle ASC",
                (start_cycle, end_cycle),
            )
        except LedgerStoreError as e:
            self._log_failure("count by cycle", e)
            return ReadResult(status=ReadStatus.FAILED, value=[], error=e)
        counts = [CycleCount(cycle=row["cycle"], count=row["count"]) for row in rows]
        if self.verbose:
            logger.debug("Receipt count by cycle %s", counts)
        return ReadResult(status=ReadStatus.OK, value=counts)
