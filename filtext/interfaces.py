"""
Collaborator interfaces.

The pipeline never talks to the network directly. It drives three opaque
services: the payments ledger, a chain client for native token balances and
chain identity, and the storage transport. Concrete adapters subclass these
bases; methods may be plain functions or coroutines.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable, Optional

from filtext.models import (
    ContainerRef,
    DatasetCreationStatus,
    DatasetHandle,
    StorageQuote,
    StoredPiece,
    TokenBalance,
    UploadReceipt,
)


class BaseLedger(ABC):
    """
    Payments ledger.

    Besides the methods below, adapters may expose approval methods
    (approve, approve_token, approve_spending) and configuration methods
    (initialize, set_token, configure, update_token_address). Those are
    looked up at runtime, never assumed.
    """

    token_address: Optional[str] = None

    @abstractmethod
    async def balance(self) -> int:
        """Return the account's ledger balance in base units."""
        pass

    @abstractmethod
    async def quote_storage(
        self,
        size: int,
        with_cdn: bool,
        persistence_days: int,
    ) -> StorageQuote:
        """Return the funds and allowances needed to store `size` bytes."""
        pass

    @abstractmethod
    async def deposit(
        self,
        lockup_allowance: int,
        rate_allowance: int,
        amount: int,
        token_address: Optional[str] = None,
    ) -> Any:
        """Submit a deposit; returns a transaction with `hash` and `wait()`."""
        pass


class BaseChainClient(ABC):
    """Chain-native token balances. May also expose get_chain_id()."""

    @abstractmethod
    async def balance_of(self, account: str, token_address: str) -> TokenBalance:
        pass


@dataclass
class DatasetCallbacks:
    """Milestones reported while a container is created."""

    on_creation_started: Optional[Callable[[str, Optional[str]], None]] = None
    on_creation_progress: Optional[Callable[[DatasetCreationStatus], None]] = None
    on_provider_selected: Optional[Callable[[int], None]] = None


@dataclass
class UploadCallbacks:
    """Checkpoints reported while a piece is uploaded."""

    on_upload_complete: Optional[Callable[[str], None]] = None
    on_piece_added: Optional[Callable[[Optional[str]], None]] = None
    on_piece_confirmed: Optional[Callable[[], None]] = None


class BaseStorageTransport(ABC):
    """Storage provider access for containers and pieces."""

    @abstractmethod
    async def list_containers(self, account: str) -> list[ContainerRef]:
        pass

    @abstractmethod
    async def create_container(
        self,
        account: str,
        callbacks: DatasetCallbacks,
    ) -> DatasetHandle:
        pass

    @abstractmethod
    async def upload(
        self,
        dataset: DatasetHandle,
        data: bytes,
        callbacks: UploadCallbacks,
    ) -> UploadReceipt:
        pass

    async def list_pieces(self, dataset_id: int) -> list[StoredPiece]:
        """Pieces in a container. Optional; listings show none without it."""
        raise NotImplementedError

    async def download(self, piece_cid: str) -> bytes:
        """Fetch a stored piece. Optional; retrieval falls back to HTTP."""
        raise NotImplementedError
