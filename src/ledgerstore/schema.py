"""
Record definitions for ledgerstore.

This module defines the Pydantic models stored by the archive:
- Transaction: the application-level record of an observed transaction
- Receipt: the attested record of a transaction's finalized execution
- SignedReceipt/Proposal/Signature: the consensus bundle carried by a receipt
- AccountsCopy: an account-state snapshot taken before or after execution
- CycleCount: one row of a per-cycle aggregate

Design Decisions:
    - Field names keep their wire spelling (txId, cycleNumber, ...) so a
      model dump is directly the persisted row mapping
    - Top-level records forbid unknown fields; every one of them is a column
    - Consensus payloads allow extra fields: they are produced upstream and
      stored as opaque blobs, so unknown keys must survive a round trip
    - Consensus payload fields are all optional and a payload serializes
      only the keys it was given; the archive stores these bundles, it does
      not check them
    - Records are immutable once built (frozen=True)
"""

from typing import Any

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    SerializerFunctionWrapHandler,
    model_serializer,
)

# Opaque structured payload: a JSON object or array, stored as given.
Payload = dict[str, Any] | list[Any]


# =============================================================================
# Consensus Payloads
# =============================================================================


class PayloadModel(BaseModel):
    """Base for upstream payloads: unknown keys kept, unset fields not written back."""

    model_config = ConfigDict(frozen=True, extra="allow")

    @model_serializer(mode="wrap")
    def _dump_given_keys(self, handler: SerializerFunctionWrapHandler) -> dict[str, Any]:
        data = handler(self)
        declared = type(self).model_fields
        return {
            key: value
            for key, value in data.items()
            if key not in declared or key in self.model_fields_set
        }


class Signature(PayloadModel):
    """A detached signature: the signer's public key and the signature bytes (hex)."""

    owner: str | None = Field(default=None, description="Public key of the signer")
    sig: str | None = Field(default=None, description="Hex-encoded signature")


class Proposal(PayloadModel):
    """
    The execution outcome a set of nodes voted on.

    Attributes:
        applied: Whether the transaction was applied
        cant_preApply: Whether pre-apply could not decide pass or fail
        accountIDs: Accounts touched by the transaction
        beforeStateHashes: Account hashes before execution, aligned with accountIDs
        afterStateHashes: Account hashes after execution, aligned with accountIDs
        appReceiptDataHash: Hash of the application receipt payload
        txid: Transaction id the proposal is about
    """

    applied: bool | None = None
    cant_preApply: bool | None = None
    accountIDs: list[Any] | None = None
    beforeStateHashes: list[Any] | None = None
    afterStateHashes: list[Any] | None = None
    appReceiptDataHash: str | None = None
    txid: str | None = None


class SignedReceipt(PayloadModel):
    """A proposal together with the signatures proving consensus on it."""

    proposal: Proposal | None = None
    proposalHash: str | None = None
    signaturePack: list[Signature] | None = None
    voteOffsets: list[Any] | None = None
    sign: Signature | None = None


class AccountsCopy(BaseModel):
    """
    A snapshot of one account's state.

    Attributes:
        accountId: Account address
        data: Opaque account data
        timestamp: When the snapshot was taken
        hash: Hash of the account state
        cycleNumber: Cycle the snapshot belongs to
        isGlobal: Whether the account is a global account
    """

    model_config = ConfigDict(frozen=True, extra="allow")

    accountId: str
    data: Any = None
    timestamp: int
    hash: str
    cycleNumber: int
    isGlobal: bool = False


class TxInfo(BaseModel):
    """The transaction as it was submitted, embedded in an archiver receipt."""

    model_config = ConfigDict(frozen=True, extra="allow")

    originalTxData: Payload = Field(default_factory=dict)
    txId: str
    timestamp: int


# =============================================================================
# Stored Records
# =============================================================================


class Transaction(BaseModel):
    """
    A stored transaction.

    Transactions carry the application receipt (for example an EVM receipt);
    when there is none, callers use the receipts table alone.

    Attributes:
        txId: Unique transaction id (primary key)
        appReceiptId: Optional id of the application receipt (e.g. an EVM tx hash)
        timestamp: Observation time, secondary sort key within a cycle
        cycleNumber: Cycle counter, primary sort key
        data: Opaque application payload
        originalTxData: The original request payload
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    txId: str = Field(..., min_length=1, description="Unique transaction id")
    appReceiptId: str | None = Field(default=None, description="Application receipt id")
    timestamp: int = Field(..., description="Observation timestamp")
    cycleNumber: int = Field(..., ge=0, description="Cycle the transaction belongs to")
    data: Payload = Field(default_factory=dict, description="Opaque payload")
    originalTxData: Payload = Field(
        default_factory=dict,
        description="Original request payload",
    )


class ArchiverReceipt(BaseModel):
    """
    Everything the archiver receives about an executed transaction.

    Attributes:
        tx: The submitted transaction
        cycle: Cycle the receipt belongs to
        signedReceipt: The proposal and its signatures
        afterStates: Account snapshots after execution
        beforeStates: Account snapshots before execution
        appReceiptData: Opaque application receipt, may be None
        executionShardKey: Key of the shard that executed the transaction
        globalModification: Whether global state was touched
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    tx: TxInfo
    cycle: int = Field(..., ge=0)
    signedReceipt: SignedReceipt
    afterStates: list[AccountsCopy] | None = None
    beforeStates: list[AccountsCopy] | None = None
    appReceiptData: Any = None
    executionShardKey: str = ""
    globalModification: bool = False


class Receipt(ArchiverReceipt):
    """
    A stored receipt.

    Attributes:
        receiptId: Unique receipt id (primary key)
        timestamp: Observation time, secondary sort key within a cycle
        applyTimestamp: When execution was finalized
    """

    receiptId: str = Field(..., min_length=1, description="Unique receipt id")
    timestamp: int = Field(..., description="Observation timestamp")
    applyTimestamp: int = Field(..., description="Finalization timestamp")


# =============================================================================
# Aggregates
# =============================================================================


class CycleCount(BaseModel):
    """Number of records stored for one cycle."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    cycle: int
    count: int = Field(..., ge=0)
