"""
filtext

Stores text on Filecoin warm storage, paid in USDFC, and tracks the
multi-stage upload: funds preflight, payment, dataset resolution, piece
upload and confirmation.

Components:
- TextUploader: caller-facing uploader
- UploadSession: one upload as a state machine
- pipeline: the individual stages
- backends: simulated network for development and tests
- PieceRetriever: download stored text by piece CID

Version: 0.1.0
"""

from filtext.config import StorageConfig, format_amount, parse_amount
from filtext.core import TextUploader
from filtext.errors import (
    BalanceUnavailable,
    DatasetResolutionFailed,
    InsufficientFunds,
    NetworkMismatch,
    PaymentFailed,
    PreflightFailed,
    SessionStateError,
    StageFailed,
    UploadError,
    UploadFailed,
)
from filtext.models import (
    BalanceReading,
    BalanceSource,
    DatasetHandle,
    DatasetSummary,
    Payload,
    ProgressState,
    SessionState,
    StorageQuote,
    StoredPiece,
    UploadedInfo,
    UploadOutcome,
)
from filtext.retrieval import PieceRetriever
from filtext.session import UploadSession

__version__ = "0.1.0"
__all__ = [
    # Core
    "TextUploader",
    "UploadSession",
    "PieceRetriever",
    # Config
    "StorageConfig",
    "format_amount",
    "parse_amount",
    # Models
    "BalanceReading",
    "BalanceSource",
    "DatasetHandle",
    "DatasetSummary",
    "Payload",
    "ProgressState",
    "SessionState",
    "StorageQuote",
    "StoredPiece",
    "UploadedInfo",
    "UploadOutcome",
    # Errors
    "UploadError",
    "BalanceUnavailable",
    "InsufficientFunds",
    "PreflightFailed",
    "PaymentFailed",
    "DatasetResolutionFailed",
    "UploadFailed",
    "NetworkMismatch",
    "StageFailed",
    "SessionStateError",
]
