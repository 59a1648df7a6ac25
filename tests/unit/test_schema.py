"""
Unit tests for record models and result objects.

Tests cover:
- Transaction and Receipt validation
- Consensus payloads keeping unknown fields
- Immutability
- WriteResult / ReadResult helpers
"""

import pytest
from pydantic import ValidationError

from ledgerstore.errors import StorageReadError
from ledgerstore.results import ReadResult, ReadStatus, WriteResult, WriteStatus
from ledgerstore.schema import (
    AccountsCopy,
    CycleCount,
    Receipt,
    SignedReceipt,
    Transaction,
)


class TestTransaction:
    """Tests for the Transaction model."""

    def test_minimal_transaction(self) -> None:
        tx = Transaction(txId="tx-1", timestamp=1, cycleNumber=0)
        assert tx.appReceiptId is None
        assert tx.data == {}
        assert tx.originalTxData == {}

    def test_field_order_matches_wire(self) -> None:
        tx = Transaction(txId="tx-1", timestamp=1, cycleNumber=0)
        assert list(tx.model_dump()) == [
            "txId",
            "appReceiptId",
            "timestamp",
            "cycleNumber",
            "data",
            "originalTxData",
        ]

    def test_empty_id_rejected(self) -> None:
        with pytest.raises(ValidationError):
            Transaction(txId="", timestamp=1, cycleNumber=0)

    def test_negative_cycle_rejected(self) -> None:
        with pytest.raises(ValidationError):
            Transaction(txId="tx-1", timestamp=1, cycleNumber=-1)

    def test_unknown_field_rejected(self) -> None:
        with pytest.raises(ValidationError):
            Transaction(txId="tx-1", timestamp=1, cycleNumber=0, accountId="acc-1")

    def test_frozen(self, tx_factory) -> None:
        tx = tx_factory()
        with pytest.raises(ValidationError):
            tx.txId = "other"


class TestReceipt:
    """Tests for the Receipt model."""

    def test_nested_models(self, receipt_factory) -> None:
        receipt = receipt_factory("rc-1", cycle=2)
        assert isinstance(receipt.signedReceipt, SignedReceipt)
        assert isinstance(receipt.afterStates[0], AccountsCopy)
        assert receipt.signedReceipt.proposal.applied is True
        assert receipt.applyTimestamp >= receipt.timestamp

    def test_missing_signed_receipt_rejected(self, receipt_factory) -> None:
        data = receipt_factory().model_dump()
        del data["signedReceipt"]
        with pytest.raises(ValidationError):
            Receipt.model_validate(data)

    def test_payload_extras_survive(self, receipt_factory) -> None:
        receipt = receipt_factory()
        data = receipt.model_dump(mode="json")
        data["signedReceipt"]["proposal"]["futureField"] = "kept"
        reloaded = Receipt.model_validate(data)
        assert reloaded.model_dump()["signedReceipt"]["proposal"]["futureField"] == "kept"

    def test_app_receipt_data_nullable(self, receipt_factory) -> None:
        receipt = receipt_factory(appReceiptData=None)
        assert receipt.appReceiptData is None

    def test_consensus_fields_optional(self) -> None:
        bundle = SignedReceipt.model_validate({"proposal": {"applied": False}})
        assert bundle.proposalHash is None
        assert bundle.proposal.txid is None
        assert bundle.model_dump() == {"proposal": {"applied": False}}

    def test_list_payload_accepted(self) -> None:
        tx = Transaction(txId="tx-1", timestamp=1, cycleNumber=0, data=[1, {"a": 2}])
        assert tx.data == [1, {"a": 2}]

    def test_scalar_payload_rejected(self) -> None:
        with pytest.raises(ValidationError):
            Transaction(txId="tx-1", timestamp=1, cycleNumber=0, data="opaque")


class TestCycleCount:
    """Tests for the per-cycle aggregate."""

    def test_shape(self) -> None:
        assert CycleCount(cycle=4, count=2).model_dump() == {"cycle": 4, "count": 2}

    def test_negative_count_rejected(self) -> None:
        with pytest.raises(ValidationError):
            CycleCount(cycle=4, count=-1)


class TestResults:
    """Tests for result objects."""

    def test_write_result_ok(self) -> None:
        assert WriteResult(status=WriteStatus.STORED).ok
        assert WriteResult(status=WriteStatus.REPLACED, replaced=1).ok

    def test_write_result_failed(self) -> None:
        error = StorageReadError(underlying_error="locked")
        result = WriteResult.failed(error, ("tx-1",))
        assert not result.ok
        assert result.status == WriteStatus.FAILED
        assert result.error is error
        assert result.record_ids == ("tx-1",)

    def test_read_result_not_found(self) -> None:
        result = ReadResult(status=ReadStatus.NOT_FOUND, value=None)
        assert result.ok
        assert not result.found
        assert result.unwrap() is None

    def test_read_result_failed_unwrap_raises(self) -> None:
        error = StorageReadError(underlying_error="locked")
        result = ReadResult(status=ReadStatus.FAILED, value=[], error=error)
        assert not result.ok
        with pytest.raises(StorageReadError):
            result.unwrap()
