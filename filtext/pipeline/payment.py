"""
Payment Authorizer

Runs the on-ledger steps that cover a storage shortfall:

1. Point the ledger adapter at the payment token, if it is not already
2. Approve token spending, when the adapter has an approval method
3. Deposit funds together with the lockup and rate allowances
4. Wait for the deposit to be confirmed

Adapter versions differ in what they call these operations, so steps 1 and
2 go through capability registries instead of fixed method names.
"""

import asyncio
from typing import Any, Optional

import structlog

from filtext.errors import PaymentFailed, SessionStateError
from filtext.models import StorageQuote
from filtext.pipeline.capabilities import Capability, CapabilityRegistry, maybe_await, method

logger = structlog.get_logger()


def _call_with(name: str, *args, **kwargs):
    """Resolver for an adapter method called with fixed arguments."""

    def resolve(adapter: Any):
        fn = method(adapter, name)
        if fn is None:
            return None
        return lambda: fn(*args, **kwargs)

    return resolve


def _assign_token_address(token_address: str):
    def resolve(adapter: Any):
        if not hasattr(adapter, "token_address"):
            return None

        def assign():
            adapter.token_address = token_address

        return assign

    return resolve


def configuration_capabilities(token_address: str) -> CapabilityRegistry:
    """Known ways of pointing a ledger adapter at `token_address`."""
    return CapabilityRegistry(
        "configure_token",
        [
            Capability("initialize", _call_with("initialize", token_address)),
            Capability("set_token", _call_with("set_token", token_address)),
            Capability("configure", _call_with("configure", token_address=token_address)),
            Capability("update_token_address", _call_with("update_token_address", token_address)),
            Capability("assign_token_address", _assign_token_address(token_address)),
        ],
    )


def approval_capabilities(amount: int) -> CapabilityRegistry:
    """Known names of the spending approval method."""
    return CapabilityRegistry(
        "approve",
        [
            Capability(name, _call_with(name, amount))
            for name in ("approve", "approve_token", "approve_spending")
        ],
    )


class PaymentAuthorizer:
    """
    Executes the deposit needed before an upload can be paid for.

    One instance belongs to one session. Only one authorization may be in
    flight at a time, and each authorization submits at most one deposit
    transaction.
    """

    def __init__(self, ledger: Any, token_address: str):
        self.ledger = ledger
        self.token_address = token_address
        self._in_flight = asyncio.Lock()
        self.transaction_hash: Optional[str] = None

    async def authorize(self, quote: StorageQuote, deposit_amount: int) -> Optional[str]:
        """
        Cover `deposit_amount` on the ledger.

        Returns:
            Hash of the confirmed deposit transaction, if the adapter reports one

        Raises:
            PaymentFailed: approval, deposit or confirmation failed
        """
        if self._in_flight.locked():
            raise SessionStateError("A payment authorization is already in flight")

        async with self._in_flight:
            if not self.token_address:
                raise PaymentFailed("Payment token address not configured")
            if self.ledger is None:
                raise PaymentFailed("Payments service not available")

            await self.ensure_token_configured()
            await self.approve(deposit_amount)
            tx = await self.deposit(quote, deposit_amount)
            await self._confirm(tx)
            return self.transaction_hash

    async def ensure_token_configured(self) -> None:
        """Reconfigure the adapter in place if its token address is wrong."""
        current = getattr(self.ledger, "token_address", None)
        if current == self.token_address:
            return

        logger.warning(
            "Payments service token address mismatch",
            expected=self.token_address,
            actual=current,
        )

        for name, call in configuration_capabilities(self.token_address).available(self.ledger):
            try:
                await maybe_await(call())
            except Exception as e:
                logger.warning("Token configuration attempt failed", method=name, error=str(e))
                continue
            if getattr(self.ledger, "token_address", self.token_address) == self.token_address:
                logger.info("Configured payments token address", method=name)
                return

        logger.warning(
            "Could not reconfigure payments token address, deposit will pass it explicitly",
            token_address=self.token_address,
        )

    async def approve(self, amount: int) -> None:
        found = approval_capabilities(amount).first(self.ledger)
        if found is None:
            logger.debug("No approval method on payments service, assuming none needed")
            return

        name, call = found
        logger.info("Approving token spending", method=name, amount=amount)
        try:
            await maybe_await(call())
        except Exception as e:
            logger.error("Token approval failed", method=name, error=str(e))
            raise PaymentFailed(e) from e

    async def deposit(self, quote: StorageQuote, amount: int) -> Any:
        """Submit the deposit, retrying once without the token address argument."""
        logger.info(
            "Submitting deposit",
            amount=amount,
            lockup_allowance=quote.lockup_allowance_needed,
            rate_allowance=quote.rate_allowance_needed,
            token_address=self.token_address,
        )
        args = (quote.lockup_allowance_needed, quote.rate_allowance_needed, amount)

        try:
            return await maybe_await(self.ledger.deposit(*args, self.token_address))
        except Exception as first:
            logger.warning("Deposit with token address failed, retrying without", error=str(first))

        try:
            return await maybe_await(self.ledger.deposit(*args))
        except Exception as e:
            logger.error("Deposit failed", error=str(e))
            raise PaymentFailed(e) from e

    async def _confirm(self, tx: Any) -> None:
        self.transaction_hash = getattr(tx, "hash", None)
        logger.info("Payment transaction submitted", tx_hash=self.transaction_hash)

        wait = method(tx, "wait")
        if wait is None:
            return
        try:
            await maybe_await(wait())
        except Exception as e:
            logger.error("Payment confirmation failed", tx_hash=self.transaction_hash, error=str(e))
            raise PaymentFailed(e) from e
        logger.info("Payment transaction confirmed", tx_hash=self.transaction_hash)
