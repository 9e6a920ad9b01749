"""
Balance Reconciler

Chooses one authoritative balance from the payments ledger reading and the
chain-native token reading. Readings are never averaged.
"""

from decimal import Decimal
from typing import Optional

import structlog

from filtext.errors import BalanceUnavailable
from filtext.models import BalanceReading, BalanceSource, ReconciledBalance

logger = structlog.get_logger()

DEFAULT_TOLERANCE = Decimal("0.01")


class BalanceReconciler:
    """
    Trust policy over two readings of the same account.

    Both readings are normalized to token units. When they differ by more
    than `tolerance` the chain-native reading wins: it reflects the asset
    actually held, while the ledger value may be stale or mis-scaled.
    Within tolerance the ledger reading is used.
    """

    def __init__(self, tolerance: Decimal = DEFAULT_TOLERANCE):
        self.tolerance = Decimal(tolerance)

    def reconcile(
        self,
        ledger: Optional[BalanceReading],
        chain: Optional[BalanceReading],
    ) -> ReconciledBalance:
        if ledger is None and chain is None:
            raise BalanceUnavailable()

        if ledger is None or chain is None:
            only = ledger or chain
            return ReconciledBalance(amount=only.normalized, source=only.source)

        difference = abs(ledger.normalized - chain.normalized)
        if difference > self.tolerance:
            logger.info(
                "Balance readings disagree, using chain balance",
                ledger=str(ledger.normalized),
                chain=str(chain.normalized),
                difference=str(difference),
            )
            return ReconciledBalance(amount=chain.normalized, source=BalanceSource.CHAIN_NATIVE)

        return ReconciledBalance(amount=ledger.normalized, source=BalanceSource.LEDGER)
