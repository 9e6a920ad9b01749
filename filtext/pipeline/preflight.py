"""
Preflight Evaluator

Works out what an upload will cost before anything is committed: asks the
ledger for a storage quote, adds the one-time container creation fee for a
first upload, and checks the reconciled balance against the total.
"""

from decimal import Decimal, InvalidOperation
from typing import Any, Optional

import structlog

from filtext.config import StorageConfig
from filtext.errors import InsufficientFunds, PreflightFailed
from filtext.interfaces import BaseChainClient
from filtext.models import (
    BalanceReading,
    BalanceSource,
    PreflightDecision,
    ReconciledBalance,
    StorageQuote,
    TokenBalance,
)
from filtext.pipeline.balance import BalanceReconciler
from filtext.pipeline.capabilities import maybe_await

logger = structlog.get_logger()


def _base_units(raw: Any) -> int:
    """
    Ledger balances are integers in base units. A fractional value means the
    adapter already scaled it, so it is rejected rather than truncated.
    """
    if isinstance(raw, bool):
        raise PreflightFailed(f"Ledger balance is not an amount: {raw!r}")
    if isinstance(raw, int):
        return raw
    try:
        value = Decimal(str(raw))
    except InvalidOperation:
        raise PreflightFailed(f"Ledger balance is not an amount: {raw!r}") from None
    if not value.is_finite() or value != value.to_integral_value():
        raise PreflightFailed(f"Ledger balance is not in base units: {raw!r}")
    return int(value)


class PreflightEvaluator:
    """Funds and allowance check for a prospective upload."""

    def __init__(
        self,
        ledger: Any,
        account: str,
        config: Optional[StorageConfig] = None,
        chain: Optional[BaseChainClient] = None,
        reconciler: Optional[BalanceReconciler] = None,
    ):
        self.ledger = ledger
        self.account = account
        self.config = config or StorageConfig()
        self.chain = chain
        self.reconciler = reconciler or BalanceReconciler(self.config.balance_tolerance)

    async def evaluate(self, size: int, first_container: bool) -> PreflightDecision:
        """
        Decide whether an upload of `size` bytes needs a payment.

        Args:
            size: Payload size in bytes
            first_container: True when the account has no container yet

        Returns:
            PreflightDecision

        Raises:
            BalanceUnavailable: neither balance source answered
            PreflightFailed: the quote failed or a balance reading was malformed
            InsufficientFunds: the reconciled balance cannot cover the deposit
        """
        quote = await self._quote(size)
        creation_fee = self.config.dataset_creation_fee if first_container else 0
        total = quote.deposit_amount_needed + creation_fee

        logger.info(
            "Storage quote received",
            size_bytes=size,
            deposit_needed=quote.deposit_amount_needed,
            creation_fee=creation_fee,
            total_deposit_needed=total,
        )

        if total == 0:
            logger.info("No payment required for this upload")
            return PreflightDecision(requires_payment=False, quote=quote)

        balance = await self.read_balance()
        required = self._normalize(total)
        available = balance.amount

        scale_anomaly = (
            available > 0
            and available * self.config.scale_anomaly_factor < required
        )
        if scale_anomaly and self.config.allow_scale_bypass:
            # Possible unit-scaling defect upstream; this can hide a real shortfall.
            logger.warning(
                "Balance implausibly small for requirement, bypassing funds check",
                required=str(required),
                available=str(available),
                source=balance.source.value,
            )
        elif available < required:
            raise InsufficientFunds(required=required, available=available)

        return PreflightDecision(
            requires_payment=True,
            quote=quote,
            total_deposit_needed=total,
            creation_fee=creation_fee,
            balance=balance,
            scale_anomaly=scale_anomaly and self.config.allow_scale_bypass,
        )

    async def read_balance(self) -> ReconciledBalance:
        """Read both balance sources and reconcile them."""
        ledger_reading = await self._ledger_reading()
        chain_reading = await self._chain_reading()
        return self.reconciler.reconcile(ledger_reading, chain_reading)

    async def _quote(self, size: int) -> StorageQuote:
        try:
            quote = await maybe_await(
                self.ledger.quote_storage(size, self.config.with_cdn, self.config.persistence_days)
            )
            if isinstance(quote, StorageQuote):
                return quote
            return StorageQuote.model_validate(quote)
        except Exception as e:
            logger.error("Storage quote failed", size_bytes=size, error=str(e))
            raise PreflightFailed(e) from e

    async def _ledger_reading(self) -> Optional[BalanceReading]:
        try:
            raw = await maybe_await(self.ledger.balance())
        except Exception as e:
            logger.warning("Ledger balance unavailable", error=str(e))
            return None
        return BalanceReading(
            source=BalanceSource.LEDGER,
            amount=_base_units(raw),
            decimals=self.config.token_decimals,
        )

    async def _chain_reading(self) -> Optional[BalanceReading]:
        if self.chain is None:
            return None
        try:
            result = await maybe_await(
                self.chain.balance_of(self.account, self.config.token_address)
            )
        except Exception as e:
            logger.warning("Chain balance unavailable", error=str(e))
            return None
        if not isinstance(result, TokenBalance):
            try:
                result = TokenBalance.model_validate(result)
            except ValueError as e:
                raise PreflightFailed(e) from e
        return BalanceReading(
            source=BalanceSource.CHAIN_NATIVE,
            amount=result.value,
            decimals=result.decimals,
        )

    def _normalize(self, amount: int) -> Decimal:
        return Decimal(amount).scaleb(-self.config.token_decimals)
