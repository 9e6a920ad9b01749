"""
Tests for the Balance Reconciler.
"""

from decimal import Decimal

import pytest

from filtext.errors import BalanceUnavailable
from filtext.models import BalanceReading, BalanceSource
from filtext.pipeline import BalanceReconciler

USDFC = 10**18


def ledger_reading(amount: int, decimals: int = 18) -> BalanceReading:
    return BalanceReading(source=BalanceSource.LEDGER, amount=amount, decimals=decimals)


def chain_reading(amount: int, decimals: int = 18) -> BalanceReading:
    return BalanceReading(source=BalanceSource.CHAIN_NATIVE, amount=amount, decimals=decimals)


class TestBalanceReconciler:
    """Tests for BalanceReconciler."""

    def test_within_tolerance_uses_ledger(self):
        """Ledger 5.00 and chain 5.02 with a 0.02 tolerance, ledger wins."""
        reconciler = BalanceReconciler(Decimal("0.02"))

        result = reconciler.reconcile(
            ledger_reading(500 * USDFC // 100),
            chain_reading(502 * USDFC // 100),
        )

        assert result.source == BalanceSource.LEDGER
        assert result.amount == Decimal("5.00")

    def test_small_difference_prefers_ledger(self):
        """Ledger 5.00 and chain 5.005 differ by less than 0.01."""
        reconciler = BalanceReconciler()

        result = reconciler.reconcile(
            ledger_reading(5 * USDFC),
            chain_reading(5005 * USDFC // 1000),
        )

        assert result.source == BalanceSource.LEDGER
        assert result.amount == Decimal(5)

    def test_large_difference_prefers_chain(self):
        """Ledger 5.00 and chain 6.00 disagree, chain wins."""
        reconciler = BalanceReconciler()

        result = reconciler.reconcile(ledger_reading(5 * USDFC), chain_reading(6 * USDFC))

        assert result.source == BalanceSource.CHAIN_NATIVE
        assert result.amount == Decimal(6)

    def test_mis_scaled_ledger_reading(self):
        """A ledger value read with the wrong decimals is overridden by the chain."""
        reconciler = BalanceReconciler()

        # 5 USDFC reported in 6-decimal units but interpreted as 18 decimals
        result = reconciler.reconcile(ledger_reading(5 * 10**6), chain_reading(5 * USDFC))

        assert result.source == BalanceSource.CHAIN_NATIVE
        assert result.amount == Decimal(5)

    def test_normalizes_different_decimals(self):
        """Readings with different scales are compared in token units."""
        reconciler = BalanceReconciler()

        result = reconciler.reconcile(ledger_reading(5 * 10**6, decimals=6), chain_reading(5 * USDFC))

        assert result.source == BalanceSource.LEDGER
        assert result.amount == Decimal(5)

    def test_single_reading_is_used(self):
        reconciler = BalanceReconciler()

        assert reconciler.reconcile(None, chain_reading(USDFC)).source == BalanceSource.CHAIN_NATIVE
        assert reconciler.reconcile(ledger_reading(USDFC), None).source == BalanceSource.LEDGER

    def test_no_readings_raises(self):
        reconciler = BalanceReconciler()

        with pytest.raises(BalanceUnavailable):
            reconciler.reconcile(None, None)
