"""
Transaction store.

Transactions carry the application receipt (for example an EVM receipt)
keyed by ``txId``. ``appReceiptId`` is the indexed secondary key.
"""

from ledgerstore.codec import FieldSpec, RecordLayout
from ledgerstore.results import ReadResult
from ledgerstore.schema import Transaction
from ledgerstore.store.base import RecordStore

TRANSACTION_LAYOUT = RecordLayout(
    table="transactions",
    fields=(
        FieldSpec("txId", "TEXT", nullable=False),
        FieldSpec("appReceiptId", "TEXT"),
        FieldSpec("timestamp", "BIGINT", nullable=False),
        FieldSpec("cycleNumber", "INTEGER", nullable=False),
        FieldSpec("data", "TEXT", is_serialized=True, nullable=False),
        FieldSpec("originalTxData", "TEXT", is_serialized=True, nullable=False),
    ),
    primary_key="txId",
    cycle_column="cycleNumber",
    secondary_key="appReceiptId",
)


class TransactionStore(RecordStore[Transaction]):
    """Persistence for Transaction records in the ``transactions`` table."""

    layout = TRANSACTION_LAYOUT
    model = Transaction

    async def get_by_app_receipt_id(self, app_receipt_id: str) -> ReadResult[Transaction | None]:
        """Look up the transaction that produced an application receipt."""
        return await self.get_by_secondary_key(app_receipt_id)
