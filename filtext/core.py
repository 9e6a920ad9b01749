"""
filtext - Core Implementation

The caller-facing uploader. Each call to `upload()` runs a fresh
UploadSession, so progress and status belong to that session only and
independent uploaders never share state.
"""

from typing import Any, Optional

import structlog

from filtext.config import StorageConfig
from filtext.errors import SessionStateError, UploadError
from filtext.interfaces import BaseChainClient, BaseStorageTransport
from filtext.models import (
    DatasetSummary,
    Payload,
    ReconciledBalance,
    UploadedInfo,
    UploadOutcome,
)
from filtext.pipeline import PreflightEvaluator
from filtext.pipeline.dataset import fetch_containers, fetch_pieces
from filtext.progress import ProgressListener
from filtext.session import UploadSession

logger = structlog.get_logger()


class TextUploader:
    """
    Stores text on Filecoin warm storage.

    Usage:
        uploader = TextUploader(ledger, transport, account="0x...")
        outcome = await uploader.upload("hello")
        print(outcome.piece_cid, uploader.progress_percent)
    """

    def __init__(
        self,
        ledger: Any,
        transport: BaseStorageTransport,
        account: str,
        chain: Optional[BaseChainClient] = None,
        config: Optional[StorageConfig] = None,
    ):
        if not account:
            raise ValueError("An account address is required")

        self.ledger = ledger
        self.transport = transport
        self.account = account
        self.chain = chain
        self.config = config or StorageConfig()

        self.session: Optional[UploadSession] = None
        self.uploaded_info: Optional[UploadedInfo] = None
        self._listeners: list[ProgressListener] = []

        logger.info(
            "Initialized text uploader",
            account=account,
            chain_id=self.config.chain_id,
            has_chain_client=chain is not None,
        )

    @property
    def progress_percent(self) -> int:
        return self.session.progress.percent if self.session else 0

    @property
    def status_message(self) -> str:
        return self.session.progress.message if self.session else ""

    @property
    def in_flight(self) -> bool:
        return self.session is not None and self.session.is_running

    def add_progress_listener(self, listener: ProgressListener) -> None:
        """Attach a listener to every session this uploader starts."""
        self._listeners.append(listener)

    def new_session(self, text: str) -> UploadSession:
        """Create (but do not run) the session for `text`."""
        if self.in_flight:
            raise SessionStateError("An upload is already in progress")

        session = UploadSession(
            payload=Payload.from_text(text),
            account=self.account,
            ledger=self.ledger,
            transport=self.transport,
            chain=self.chain,
            config=self.config,
        )
        for listener in self._listeners:
            session.progress.add_listener(listener)
        self.session = session
        return session

    async def upload(self, text: str) -> UploadOutcome:
        """
        Upload `text` and return its piece CID and optional receipt.

        Raises:
            UploadError: typed failure of the stage that failed
        """
        session = self.new_session(text)
        return await self.run_session(session, text)

    async def run_session(self, session: UploadSession, text: str) -> UploadOutcome:
        try:
            outcome = await session.run()
        except UploadError as e:
            logger.error("Text upload failed", stage=e.stage.value if e.stage else None, error=str(e))
            raise

        self.uploaded_info = UploadedInfo.build(text, outcome)
        return outcome

    async def datasets(self) -> list[DatasetSummary]:
        """
        The account's containers with the pieces stored in each.

        Raises:
            DatasetResolutionFailed: the containers could not be listed
        """
        summaries = []
        for container in await fetch_containers(self.transport, self.account):
            summaries.append(
                DatasetSummary(
                    dataset_id=container.dataset_id,
                    provider_id=container.provider_id,
                    with_cdn=container.with_cdn,
                    pieces=await fetch_pieces(self.transport, container.dataset_id),
                )
            )
        logger.info("Listed datasets", account=self.account, count=len(summaries))
        return summaries

    async def balance(self) -> ReconciledBalance:
        """Reconciled USDFC balance of the account."""
        evaluator = PreflightEvaluator(self.ledger, self.account, self.config, self.chain)
        return await evaluator.read_balance()

    def reset(self) -> None:
        """Clear session-local state. Not allowed while an upload is running."""
        if self.in_flight:
            raise SessionStateError("Cannot reset while an upload is in progress")
        self.session = None
        self.uploaded_info = None
