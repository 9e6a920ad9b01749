"""
Upload Session

One upload attempt as a forward-only state machine:

    IDLE -> PREFLIGHTING -> AUTHORIZING (optional) -> RESOLVING_DATASET
         -> UPLOADING -> SUCCEEDED | FAILED

A session runs once. Retrying means starting a new session with the same
payload; progress starts from zero only in a new session.
"""

import uuid
from typing import Any, Optional

import structlog

from filtext.config import StorageConfig
from filtext.errors import SessionStateError, StageFailed, UploadError
from filtext.interfaces import BaseChainClient, BaseStorageTransport
from filtext.models import (
    DatasetHandle,
    Payload,
    PreflightDecision,
    SessionState,
    UploadOutcome,
)
from filtext.pipeline import (
    DatasetResolver,
    NetworkGuard,
    PaymentAuthorizer,
    PreflightEvaluator,
    UploadDriver,
)
from filtext.progress import ProgressTracker

logger = structlog.get_logger()

_FORWARD_ORDER = [
    SessionState.IDLE,
    SessionState.PREFLIGHTING,
    SessionState.AUTHORIZING,
    SessionState.RESOLVING_DATASET,
    SessionState.UPLOADING,
    SessionState.SUCCEEDED,
]


class UploadSession:
    """
    Drives a single payload through the upload pipeline.

    Usage:
        session = UploadSession(payload, account, ledger, transport)
        session.progress.add_listener(print)
        outcome = await session.run()
    """

    def __init__(
        self,
        payload: Payload,
        account: str,
        ledger: Any,
        transport: BaseStorageTransport,
        chain: Optional[BaseChainClient] = None,
        config: Optional[StorageConfig] = None,
        session_id: Optional[str] = None,
    ):
        self.payload = payload
        self.account = account
        self.ledger = ledger
        self.transport = transport
        self.chain = chain
        self.config = config or StorageConfig()
        self.session_id = session_id or f"upl_{uuid.uuid4().hex[:12]}"

        self.state = SessionState.IDLE
        self.state_history: list[SessionState] = [SessionState.IDLE]
        self.progress = ProgressTracker(self.session_id)

        self.decision: Optional[PreflightDecision] = None
        self.dataset: Optional[DatasetHandle] = None
        self.payment_tx_hash: Optional[str] = None
        self.outcome: Optional[UploadOutcome] = None
        self.error: Optional[BaseException] = None

        self.network_guard = NetworkGuard(self.config.chain_id)
        self.preflight = PreflightEvaluator(ledger, account, self.config, chain)
        self.authorizer = PaymentAuthorizer(ledger, self.config.token_address)
        self.resolver = DatasetResolver(transport, account, self.progress)
        self.driver = UploadDriver(transport, self.progress)

    @property
    def is_running(self) -> bool:
        return self.state not in (SessionState.IDLE, SessionState.SUCCEEDED, SessionState.FAILED)

    async def run(self) -> UploadOutcome:
        """
        Run the session to completion.

        Returns:
            UploadOutcome

        Raises:
            UploadError: the failing stage's typed error, with `stage` set. Anything
                else a collaborator raises arrives as StageFailed with its `cause`
            SessionStateError: the session was already started
        """
        if self.state != SessionState.IDLE:
            raise SessionStateError(f"Session {self.session_id} already started ({self.state.value})")

        logger.info(
            "Starting upload session",
            session_id=self.session_id,
            account=self.account,
            size_bytes=self.payload.size,
        )

        try:
            outcome = await self._run_stages()
        except UploadError as e:
            self._fail(e)
            raise
        except Exception as e:
            wrapped = StageFailed(e)
            self._fail(wrapped)
            raise wrapped from e

        self.outcome = outcome
        self._transition(SessionState.SUCCEEDED)
        message = (
            "Text successfully stored on Filecoin!"
            if outcome.confirmed
            else "Text stored, on-chain confirmation pending"
        )
        self.progress.update(SessionState.SUCCEEDED, 100, message)
        self.progress.close()

        logger.info(
            "Upload session succeeded",
            session_id=self.session_id,
            piece_cid=outcome.piece_cid,
            tx_hash=outcome.transaction_hash,
            confirmed=outcome.confirmed,
        )
        return outcome

    async def _run_stages(self) -> UploadOutcome:
        self._transition(SessionState.PREFLIGHTING)
        self.progress.update(SessionState.PREFLIGHTING, 0, "Initializing text upload to Filecoin...")

        await self.network_guard.check(self.chain)

        existing = await self.resolver.list_containers()

        self.progress.update(
            SessionState.PREFLIGHTING, 10, "Checking USDFC balance and storage allowances..."
        )
        self.decision = await self.preflight.evaluate(
            self.payload.size,
            first_container=not existing,
        )

        if self.decision.requires_payment:
            self._transition(SessionState.AUTHORIZING)
            self.progress.update(SessionState.AUTHORIZING, 20, "Authorizing USDFC payment...")
            self.payment_tx_hash = await self.authorizer.authorize(
                self.decision.quote,
                self.decision.total_deposit_needed,
            )
            self.progress.update(SessionState.AUTHORIZING, 25, "Payment confirmed")

        self._transition(SessionState.RESOLVING_DATASET)
        self.progress.update(
            SessionState.RESOLVING_DATASET, 30, "Setting up storage service and dataset..."
        )
        self.dataset = await self.resolver.resolve(existing)

        self._transition(SessionState.UPLOADING)
        return await self.driver.upload(self.dataset, self.payload)

    def _transition(self, new_state: SessionState) -> None:
        if self.state.is_terminal:
            raise SessionStateError(f"Session already finished ({self.state.value})")
        if new_state != SessionState.FAILED:
            if _FORWARD_ORDER.index(new_state) <= _FORWARD_ORDER.index(self.state):
                raise SessionStateError(
                    f"Invalid transition {self.state.value} -> {new_state.value}"
                )
        logger.debug(
            "Session transition",
            session_id=self.session_id,
            from_state=self.state.value,
            to_state=new_state.value,
        )
        self.state = new_state
        self.state_history.append(new_state)

    def _fail(self, error: BaseException) -> None:
        if isinstance(error, UploadError) and error.stage is None:
            error.stage = self.state
        failed_stage = self.state
        self.error = error
        self._transition(SessionState.FAILED)
        self.progress.update(SessionState.FAILED, message=f"Upload failed: {error}")
        self.progress.close()
        logger.error(
            "Upload session failed",
            session_id=self.session_id,
            stage=failed_stage.value,
            error=str(error),
            error_type=type(error).__name__,
            piece_cid=self.driver.piece_cid,
        )
