"""
Simulated storage network.

An in-memory stand-in for the payments ledger, the chain and a storage
provider, for development without a wallet and for tests. Piece CIDs are
derived from the SHA-256 of the stored bytes, so the same text always maps
to the same CID.
"""

import base64
import hashlib
import itertools
from dataclasses import dataclass, field
from typing import Optional

import structlog

from filtext.config import USDFC_DECIMALS, USDFC_TOKEN_ADDRESS, StorageConfig, format_amount
from filtext.interfaces import (
    BaseChainClient,
    BaseLedger,
    BaseStorageTransport,
    DatasetCallbacks,
    UploadCallbacks,
)
from filtext.models import (
    ContainerRef,
    DatasetCreationStatus,
    DatasetHandle,
    StorageQuote,
    StoredPiece,
    TokenBalance,
    UploadReceipt,
)

logger = structlog.get_logger()


def mock_piece_cid(data: bytes) -> str:
    """Deterministic CID-shaped identifier for `data`."""
    digest = hashlib.sha256(data).digest()
    return "bafkzcib" + base64.b32encode(digest).decode().lower().rstrip("=")


@dataclass
class SimulatedNetwork:
    """Shared state behind the simulated ledger, chain and provider."""

    chain_id: int = 314159
    token_address: str = USDFC_TOKEN_ADDRESS
    decimals: int = USDFC_DECIMALS
    provider_id: int = 1
    price_per_byte_day: int = 10**9

    balances: dict[str, int] = field(default_factory=dict)
    deposits: dict[str, int] = field(default_factory=dict)
    containers: dict[str, list[ContainerRef]] = field(default_factory=dict)
    pieces: dict[str, bytes] = field(default_factory=dict)
    dataset_pieces: dict[int, list[StoredPiece]] = field(default_factory=dict)

    _ids: itertools.count = field(default_factory=lambda: itertools.count(1))

    def fund(self, account: str, amount: int) -> None:
        self.balances[account] = self.balances.get(account, 0) + amount

    def next_tx_hash(self, kind: str) -> str:
        return "0x" + hashlib.sha256(f"{kind}:{next(self._ids)}".encode()).hexdigest()

    def next_id(self) -> int:
        return next(self._ids)


class SimulatedTransaction:
    """Submitted transaction with an awaitable confirmation."""

    def __init__(self, tx_hash: str):
        self.hash = tx_hash
        self.confirmed = False

    async def wait(self) -> "SimulatedTransaction":
        self.confirmed = True
        return self


class InMemoryLedger(BaseLedger):
    """Payments ledger for one account."""

    def __init__(self, network: SimulatedNetwork, account: str, token_address: Optional[str] = None):
        self.network = network
        self.account = account
        self.token_address = token_address or network.token_address
        self.approvals: list[int] = []
        self.deposit_calls: list[tuple] = []

    async def balance(self) -> int:
        return self.network.balances.get(self.account, 0)

    async def quote_storage(self, size: int, with_cdn: bool, persistence_days: int) -> StorageQuote:
        rate = size * self.network.price_per_byte_day
        lockup = rate * persistence_days
        deposited = self.network.deposits.get(self.account, 0)
        return StorageQuote(
            deposit_amount_needed=max(0, lockup - deposited),
            lockup_allowance_needed=lockup,
            rate_allowance_needed=rate,
        )

    async def approve(self, amount: int) -> None:
        self.approvals.append(amount)

    async def deposit(
        self,
        lockup_allowance: int,
        rate_allowance: int,
        amount: int,
        token_address: Optional[str] = None,
    ) -> SimulatedTransaction:
        self.deposit_calls.append((lockup_allowance, rate_allowance, amount, token_address))
        if token_address is not None and token_address != self.network.token_address:
            raise ValueError(f"Unknown token {token_address}")

        available = self.network.balances.get(self.account, 0)
        if amount > available:
            raise ValueError("Deposit exceeds wallet balance")

        self.network.balances[self.account] = available - amount
        self.network.deposits[self.account] = self.network.deposits.get(self.account, 0) + amount
        tx = SimulatedTransaction(self.network.next_tx_hash("deposit"))
        logger.debug("Simulated deposit", account=self.account, amount=amount, tx_hash=tx.hash)
        return tx


class InMemoryChainClient(BaseChainClient):
    """Token balances and chain id of the simulated chain."""

    def __init__(self, network: SimulatedNetwork):
        self.network = network

    async def balance_of(self, account: str, token_address: str) -> TokenBalance:
        value = self.network.balances.get(account, 0) if token_address == self.network.token_address else 0
        return TokenBalance(
            value=value,
            decimals=self.network.decimals,
            formatted=format_amount(value, self.network.decimals),
        )

    async def get_chain_id(self) -> int:
        return self.network.chain_id


class InMemoryStorageTransport(BaseStorageTransport):
    """Storage provider that keeps pieces in memory."""

    def __init__(self, network: SimulatedNetwork, confirm_pieces: bool = True):
        self.network = network
        self.confirm_pieces = confirm_pieces
        self.created: list[DatasetHandle] = []

    async def list_containers(self, account: str) -> list[ContainerRef]:
        return list(self.network.containers.get(account, []))

    async def create_container(self, account: str, callbacks: DatasetCallbacks) -> DatasetHandle:
        dataset_id = self.network.next_id()
        tx_hash = self.network.next_tx_hash("create_dataset")

        if callbacks.on_creation_started:
            callbacks.on_creation_started(tx_hash, f"memory://datasets/{dataset_id}")
        if callbacks.on_creation_progress:
            callbacks.on_creation_progress(
                DatasetCreationStatus(transaction_success=True, dataset_id=dataset_id)
            )
            callbacks.on_creation_progress(
                DatasetCreationStatus(
                    transaction_success=True, server_confirmed=True, dataset_id=dataset_id
                )
            )
        if callbacks.on_provider_selected:
            callbacks.on_provider_selected(self.network.provider_id)

        self.network.containers.setdefault(account, []).append(
            ContainerRef(dataset_id=dataset_id, provider_id=self.network.provider_id)
        )
        handle = DatasetHandle(dataset_id=dataset_id, provider_id=self.network.provider_id, is_new=True)
        self.created.append(handle)
        return handle

    async def upload(self, dataset: DatasetHandle, data: bytes, callbacks: UploadCallbacks) -> UploadReceipt:
        piece_cid = mock_piece_cid(data)
        self.network.pieces[piece_cid] = bytes(data)
        self.network.dataset_pieces.setdefault(dataset.dataset_id, []).append(
            StoredPiece(piece_cid=piece_cid, size=len(data))
        )

        if callbacks.on_upload_complete:
            callbacks.on_upload_complete(piece_cid)
        if callbacks.on_piece_added:
            callbacks.on_piece_added(self.network.next_tx_hash("add_piece"))
        if self.confirm_pieces and callbacks.on_piece_confirmed:
            callbacks.on_piece_confirmed()

        return UploadReceipt(piece_cid=piece_cid, size=len(data))

    async def list_pieces(self, dataset_id: int) -> list[StoredPiece]:
        return list(self.network.dataset_pieces.get(dataset_id, []))

    async def download(self, piece_cid: str) -> bytes:
        try:
            return self.network.pieces[piece_cid]
        except KeyError:
            raise LookupError(f"Piece not found: {piece_cid}") from None


def create_simulated_uploader(
    account: str,
    funds: int = 10 * 10**USDFC_DECIMALS,
    config: Optional[StorageConfig] = None,
    network: Optional[SimulatedNetwork] = None,
):
    """Build a TextUploader wired to a fresh (or given) simulated network."""
    from filtext.core import TextUploader

    config = config or StorageConfig()
    if network is None:
        network = SimulatedNetwork(
            chain_id=config.chain_id,
            token_address=config.token_address,
            decimals=config.token_decimals,
        )
        network.fund(account, funds)

    return TextUploader(
        ledger=InMemoryLedger(network, account),
        transport=InMemoryStorageTransport(network),
        account=account,
        chain=InMemoryChainClient(network),
        config=config,
    )
