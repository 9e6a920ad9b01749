"""
Dataset Resolver

Finds the container an upload goes into. Existing containers are always
reused; a new one is created only when the account has none.
"""

from typing import Optional

import structlog

from filtext.errors import DatasetResolutionFailed
from filtext.interfaces import BaseStorageTransport, DatasetCallbacks
from filtext.models import (
    ContainerRef,
    DatasetCreationStatus,
    DatasetHandle,
    SessionState,
    StoredPiece,
)
from filtext.pipeline.capabilities import maybe_await
from filtext.progress import ProgressTracker

logger = structlog.get_logger()

STAGE = SessionState.RESOLVING_DATASET


async def fetch_containers(transport: BaseStorageTransport, account: str) -> list[ContainerRef]:
    """
    List the account's containers.

    Raises:
        DatasetResolutionFailed
    """
    try:
        containers = await maybe_await(transport.list_containers(account))
        return [
            c if isinstance(c, ContainerRef) else ContainerRef.model_validate(c)
            for c in containers
        ]
    except Exception as e:
        logger.error("Listing containers failed", account=account, error=str(e))
        raise DatasetResolutionFailed(e) from e


async def fetch_pieces(transport: BaseStorageTransport, dataset_id: int) -> list[StoredPiece]:
    """Pieces stored in one container; empty when the transport cannot tell."""
    try:
        pieces = await maybe_await(transport.list_pieces(dataset_id))
        return [p if isinstance(p, StoredPiece) else StoredPiece.model_validate(p) for p in pieces]
    except NotImplementedError:
        return []
    except Exception as e:
        # One unreadable container does not hide the others
        logger.warning("Listing pieces failed", dataset_id=dataset_id, error=str(e))
        return []


class DatasetResolver:
    """Reuses or creates the account's storage container."""

    def __init__(
        self,
        transport: BaseStorageTransport,
        account: str,
        progress: ProgressTracker,
    ):
        self.transport = transport
        self.account = account
        self.progress = progress
        self.handle: Optional[DatasetHandle] = None

    async def list_containers(self) -> list[ContainerRef]:
        return await fetch_containers(self.transport, self.account)

    async def resolve(self, existing: Optional[list[ContainerRef]] = None) -> DatasetHandle:
        """
        Return the container for this session.

        Args:
            existing: Containers already listed by the caller; listed here if omitted

        Raises:
            DatasetResolutionFailed
        """
        if self.handle is not None:
            return self.handle

        if existing is None:
            existing = await self.list_containers()

        if existing:
            chosen = existing[0]
            self.handle = DatasetHandle(
                dataset_id=chosen.dataset_id,
                provider_id=chosen.provider_id,
                is_new=False,
            )
            self.progress.update(STAGE, 40, "Existing dataset found and resolved")
            logger.info(
                "Reusing dataset",
                dataset_id=chosen.dataset_id,
                provider_id=chosen.provider_id,
                available=len(existing),
            )
            return self.handle

        self.handle = await self._create()
        return self.handle

    async def _create(self) -> DatasetHandle:
        logger.info("Creating new dataset", account=self.account)

        def on_creation_started(tx_hash: str, status_url: Optional[str] = None) -> None:
            logger.info("Dataset creation submitted", tx_hash=tx_hash, status_url=status_url)
            self.progress.update(STAGE, 50, "Creating new dataset on blockchain...")

        reached: set[str] = set()

        def on_creation_progress(status: DatasetCreationStatus) -> None:
            if status.transaction_success and "chain" not in reached:
                reached.add("chain")
                self.progress.update(STAGE, 60, "Dataset transaction confirmed on chain")
            if status.server_confirmed and "server" not in reached:
                reached.add("server")
                self.progress.update(STAGE, 70, "Dataset ready!")

        def on_provider_selected(provider_id: int) -> None:
            logger.info("Storage provider selected", provider_id=provider_id)
            self.progress.update(STAGE, message="Storage provider selected")

        callbacks = DatasetCallbacks(
            on_creation_started=on_creation_started,
            on_creation_progress=on_creation_progress,
            on_provider_selected=on_provider_selected,
        )

        try:
            handle = await maybe_await(self.transport.create_container(self.account, callbacks))
            if not isinstance(handle, DatasetHandle):
                handle = DatasetHandle.model_validate(handle)
        except Exception as e:
            logger.error("Dataset creation failed", account=self.account, error=str(e))
            raise DatasetResolutionFailed(e) from e

        if not handle.is_new:
            handle = handle.model_copy(update={"is_new": True})
        logger.info("Dataset created", dataset_id=handle.dataset_id, provider_id=handle.provider_id)
        return handle
