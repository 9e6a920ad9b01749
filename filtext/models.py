"""
Data models for filtext.

These models define the core data structures shared by the upload pipeline,
the caller-facing uploader and the HTTP/CLI surfaces.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class BalanceSource(str, Enum):
    """Where a balance reading came from."""
    LEDGER = "ledger"               # Payments ledger balance()
    CHAIN_NATIVE = "chain_native"   # ERC-20 balanceOf on the chain


class SessionState(str, Enum):
    """States of an upload session, in forward order."""
    IDLE = "idle"
    PREFLIGHTING = "preflighting"
    AUTHORIZING = "authorizing"
    RESOLVING_DATASET = "resolving_dataset"
    UPLOADING = "uploading"
    SUCCEEDED = "succeeded"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (SessionState.SUCCEEDED, SessionState.FAILED)


class Payload(BaseModel):
    """Raw bytes submitted for storage."""

    model_config = ConfigDict(frozen=True)

    data: bytes = Field(..., description="Payload bytes")

    @classmethod
    def from_text(cls, text: str) -> "Payload":
        return cls(data=text.encode("utf-8"))

    @property
    def size(self) -> int:
        return len(self.data)


class BalanceReading(BaseModel):
    """A single fixed-point balance reading from one source."""

    model_config = ConfigDict(frozen=True)

    source: BalanceSource
    amount: int = Field(..., ge=0, description="Amount in base units")
    decimals: int = Field(..., ge=0, le=36)

    @property
    def normalized(self) -> Decimal:
        return Decimal(self.amount).scaleb(-self.decimals)


class ReconciledBalance(BaseModel):
    """The authoritative balance chosen from the available readings."""

    amount: Decimal
    source: BalanceSource


class TokenBalance(BaseModel):
    """Chain-native token balance as returned by a balanceOf query."""

    value: int = Field(..., ge=0)
    decimals: int = Field(default=18, ge=0, le=36)
    formatted: str = Field(default="")


class StorageQuote(BaseModel):
    """Funds and allowances needed to store a payload."""

    model_config = ConfigDict(frozen=True)

    deposit_amount_needed: int = Field(default=0, ge=0)
    lockup_allowance_needed: int = Field(default=0, ge=0)
    rate_allowance_needed: int = Field(default=0, ge=0)


class PreflightDecision(BaseModel):
    """Result of the funds/allowance check."""

    requires_payment: bool
    quote: StorageQuote
    total_deposit_needed: int = 0
    creation_fee: int = 0
    balance: Optional[ReconciledBalance] = None
    scale_anomaly: bool = Field(
        default=False,
        description="Balance looked mis-scaled and the funds check was bypassed",
    )


class ContainerRef(BaseModel):
    """An existing dataset container owned by the account."""

    dataset_id: int
    provider_id: int
    payee: Optional[str] = None
    with_cdn: bool = False


class StoredPiece(BaseModel):
    """A piece held in a container."""

    piece_cid: str
    size: int = 0


class DatasetSummary(BaseModel):
    """A container together with the pieces stored in it."""

    dataset_id: int
    provider_id: int
    with_cdn: bool = False
    pieces: list[StoredPiece] = Field(default_factory=list)


class DatasetHandle(BaseModel):
    """The container an upload is written into."""

    model_config = ConfigDict(frozen=True)

    dataset_id: int
    provider_id: int
    is_new: bool = False


class DatasetCreationStatus(BaseModel):
    """Progress report emitted while a new container is being created."""

    transaction_success: bool = False
    server_confirmed: bool = False
    dataset_id: Optional[int] = None


class UploadReceipt(BaseModel):
    """What the transport returns once the bytes are stored."""

    piece_cid: str
    size: int = 0


class UploadOutcome(BaseModel):
    """Terminal artifact of a successful upload session."""

    model_config = ConfigDict(frozen=True)

    piece_cid: str = Field(..., min_length=1)
    transaction_hash: Optional[str] = None
    confirmed: bool = False
    dataset_id: Optional[int] = None
    size: int = 0


class UploadedInfo(BaseModel):
    """Caller-facing summary of the last stored text."""

    text_preview: str
    text_size: int
    piece_cid: str
    tx_hash: Optional[str] = None

    @classmethod
    def build(cls, text: str, outcome: UploadOutcome) -> "UploadedInfo":
        preview = text[:100] + ("..." if len(text) > 100 else "")
        return cls(
            text_preview=preview,
            text_size=outcome.size or len(text.encode("utf-8")),
            piece_cid=outcome.piece_cid,
            tx_hash=outcome.transaction_hash,
        )


class ProgressState(BaseModel):
    """One observation on a session's progress stream."""

    model_config = ConfigDict(frozen=True)

    stage: SessionState
    percent: int = Field(..., ge=0, le=100)
    message: str = ""
    timestamp: str = Field(default_factory=lambda: datetime.utcnow().isoformat())
