"""
Test doubles for ledger and chain adapters.
"""

from typing import Optional

from filtext.config import USDFC_TOKEN_ADDRESS
from filtext.models import StorageQuote, TokenBalance

ACCOUNT = "0x1111111111111111111111111111111111111111"
USDFC = 10**18


class FakeTransaction:
    """Deposit transaction whose confirmation can be made to fail."""

    def __init__(self, tx_hash: str = "0xdeposit", fail_wait: bool = False):
        self.hash = tx_hash
        self.fail_wait = fail_wait
        self.wait_calls = 0

    async def wait(self):
        self.wait_calls += 1
        if self.fail_wait:
            raise RuntimeError("transaction reverted")
        return self


class FakeLedger:
    """Ledger exposing only the required surface: balance, quote, deposit."""

    def __init__(
        self,
        balance: int = 0,
        quote: Optional[StorageQuote] = None,
        token_address: Optional[str] = USDFC_TOKEN_ADDRESS,
        deposit_errors: Optional[list[Exception]] = None,
        transaction: Optional[FakeTransaction] = None,
    ):
        self.balance_value = balance
        self.quote = quote or StorageQuote()
        self.token_address = token_address
        self.deposit_errors = list(deposit_errors or [])
        self.transaction = transaction or FakeTransaction()
        self.balance_calls = 0
        self.deposit_calls: list[tuple] = []

    async def balance(self) -> int:
        self.balance_calls += 1
        return self.balance_value

    async def quote_storage(self, size: int, with_cdn: bool, persistence_days: int) -> StorageQuote:
        return self.quote

    async def deposit(self, *args):
        self.deposit_calls.append(args)
        if self.deposit_errors:
            raise self.deposit_errors.pop(0)
        return self.transaction


class QuoteDownLedger(FakeLedger):
    """Ledger whose quote RPC is unreachable."""

    async def quote_storage(self, size: int, with_cdn: bool, persistence_days: int) -> StorageQuote:
        raise ConnectionError("rpc timeout")

class FakeChain:
    """Chain client returning a fixed token balance."""

    def __init__(self, value: int, decimals: int = 18, chain_id: Optional[int] = 314159):
        self.value = value
        self.decimals = decimals
        self.chain_id = chain_id

    async def balance_of(self, account: str, token_address: str) -> TokenBalance:
        return TokenBalance(value=self.value, decimals=self.decimals)

