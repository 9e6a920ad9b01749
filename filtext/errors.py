"""Typed failures raised by the upload pipeline."""

from decimal import Decimal
from typing import Optional

from filtext.models import SessionState


class UploadError(Exception):
    """Base exception for a failed upload session.

    `stage` is filled in by the session with the state that was active
    when the failure happened.
    """

    def __init__(self, message: str, stage: Optional[SessionState] = None):
        super().__init__(message)
        self.stage = stage


class BalanceUnavailable(UploadError):
    """Neither balance source produced a reading."""

    def __init__(self, message: str = "No balance reading available"):
        super().__init__(message)


class InsufficientFunds(UploadError):
    """The account cannot cover the required deposit."""

    def __init__(self, required: Decimal, available: Decimal):
        super().__init__(
            f"Insufficient USDFC balance. Required: {required} USDFC, "
            f"Available: {available} USDFC"
        )
        self.required = required
        self.available = available


class _CausedError(UploadError):
    prefix = "Failed"

    def __init__(self, cause: BaseException | str):
        super().__init__(f"{self.prefix}: {cause}")
        self.cause = cause


class PreflightFailed(_CausedError):
    """The storage quote or a balance reading was unusable."""
    prefix = "Preflight failed"


class StageFailed(_CausedError):
    """A collaborator failed in a way no stage anticipated."""
    prefix = "Unexpected failure"


class PaymentFailed(_CausedError):
    """Approval, deposit or deposit confirmation failed."""
    prefix = "Payment failed"


class DatasetResolutionFailed(_CausedError):
    """Listing or creating the storage container failed."""
    prefix = "Dataset resolution failed"


class UploadFailed(_CausedError):
    """The bytes never reached the provider."""
    prefix = "Upload failed"


class NetworkMismatch(UploadError):
    """The connected chain is not the configured one."""

    def __init__(self, expected: int, actual: int | str):
        super().__init__(f"Wrong network. Expected chain {expected}, got {actual}")
        self.expected = expected
        self.actual = actual


class SessionStateError(RuntimeError):
    """A session or uploader was used out of order."""
    pass
