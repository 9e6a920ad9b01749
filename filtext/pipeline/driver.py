"""
Upload Driver

Sends the payload to the storage provider and turns the transport's three
checkpoints (upload complete, piece added, piece confirmed) into progress
and outcome fields. Once the piece CID is known it is never discarded:
later failures only cost the confirmation.
"""

from typing import Optional

import structlog

from filtext.errors import UploadFailed
from filtext.interfaces import BaseStorageTransport, UploadCallbacks
from filtext.models import DatasetHandle, Payload, SessionState, UploadOutcome, UploadReceipt
from filtext.pipeline.capabilities import maybe_await
from filtext.progress import ProgressTracker

logger = structlog.get_logger()

STAGE = SessionState.UPLOADING


class UploadDriver:
    """Pushes one payload into a resolved container."""

    def __init__(self, transport: BaseStorageTransport, progress: ProgressTracker):
        self.transport = transport
        self.progress = progress
        self.piece_cid: Optional[str] = None
        self.transaction_hash: Optional[str] = None
        self.confirmed = False

    async def upload(self, dataset: DatasetHandle, payload: Payload) -> UploadOutcome:
        """
        Upload `payload` into `dataset`.

        Returns:
            UploadOutcome, possibly without transaction hash or confirmation

        Raises:
            UploadFailed: the upload did not complete
        """
        self.progress.update(STAGE, 80, "Uploading text to storage provider...")

        callbacks = UploadCallbacks(
            on_upload_complete=self._on_upload_complete,
            on_piece_added=self._on_piece_added,
            on_piece_confirmed=self._on_piece_confirmed,
        )

        try:
            receipt = await maybe_await(self.transport.upload(dataset, payload.data, callbacks))
        except Exception as e:
            if self.piece_cid is None:
                logger.error("Upload failed", dataset_id=dataset.dataset_id, error=str(e))
                raise UploadFailed(e) from e
            logger.warning(
                "Piece stored but confirmation failed, keeping piece CID",
                piece_cid=self.piece_cid,
                error=str(e),
            )
        else:
            if self.piece_cid is None:
                if not isinstance(receipt, UploadReceipt):
                    receipt = UploadReceipt.model_validate(receipt)
                self._on_upload_complete(receipt.piece_cid)

        if not self.confirmed:
            logger.warning("Upload finished without on-chain confirmation", piece_cid=self.piece_cid)

        return UploadOutcome(
            piece_cid=self.piece_cid,
            transaction_hash=self.transaction_hash,
            confirmed=self.confirmed,
            dataset_id=dataset.dataset_id,
            size=payload.size,
        )

    def _on_upload_complete(self, piece_cid: str) -> None:
        self.piece_cid = str(piece_cid)
        logger.info("Upload complete", piece_cid=self.piece_cid)
        self.progress.update(STAGE, 90, "Text uploaded! Adding to dataset...")

    def _on_piece_added(self, transaction_hash: Optional[str]) -> None:
        if transaction_hash:
            self.transaction_hash = transaction_hash
        self.progress.update(STAGE, message="Confirming transaction...")

    def _on_piece_confirmed(self) -> None:
        self.confirmed = True
        self.progress.update(STAGE, 100, "Text successfully stored on Filecoin!")
