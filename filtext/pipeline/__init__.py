"""
Upload pipeline stages.

Components:
- BalanceReconciler: picks the authoritative balance reading
- PreflightEvaluator: funds and allowance check
- NetworkGuard: chain identity check
- PaymentAuthorizer: approval and deposit on the ledger
- DatasetResolver: container reuse or creation
- UploadDriver: piece upload and confirmation
"""

from filtext.pipeline.balance import BalanceReconciler
from filtext.pipeline.capabilities import Capability, CapabilityRegistry
from filtext.pipeline.dataset import DatasetResolver
from filtext.pipeline.driver import UploadDriver
from filtext.pipeline.network import NetworkGuard
from filtext.pipeline.payment import PaymentAuthorizer
from filtext.pipeline.preflight import PreflightEvaluator

__all__ = [
    "BalanceReconciler",
    "Capability",
    "CapabilityRegistry",
    "DatasetResolver",
    "NetworkGuard",
    "PaymentAuthorizer",
    "PreflightEvaluator",
    "UploadDriver",
]
