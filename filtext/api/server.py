"""
REST API Server for filtext.

Starts text uploads in the background and exposes their progress, so a
client can poll an upload while its session is still running.
"""

import os
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Callable, Optional

# Load environment variables early
from dotenv import load_dotenv
load_dotenv()

from fastapi import BackgroundTasks, FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field
import structlog
import uvicorn

from filtext import __version__
from filtext.backends.memory import SimulatedNetwork, create_simulated_uploader
from filtext.config import StorageConfig, format_amount, parse_amount
from filtext.core import TextUploader
from filtext.errors import UploadError
from filtext.models import DatasetSummary, ProgressState
from filtext.session import UploadSession

logger = structlog.get_logger()


# ============================================================================
# Request/Response Models
# ============================================================================

class UploadRequest(BaseModel):
    """Request to store a piece of text."""
    text: str = Field(..., min_length=1, description="Text to store")


class UploadResponse(BaseModel):
    """Response for an upload request."""
    upload_id: str
    status: str  # processing, succeeded, failed


class UploadStatusResponse(BaseModel):
    """Current state of an upload."""
    upload_id: str
    status: str
    stage: str
    progress_percent: int
    status_message: str
    piece_cid: Optional[str] = None
    transaction_hash: Optional[str] = None
    confirmed: Optional[bool] = None
    error: Optional[str] = None
    error_type: Optional[str] = None
    failed_stage: Optional[str] = None


class BalanceResponse(BaseModel):
    """Reconciled account balance."""
    account: str
    balance: str
    source: str


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    version: str
    timestamp: str
    chain_id: Optional[int] = None
    network: Optional[str] = None


# ============================================================================
# Session Store (in-memory)
# ============================================================================

class SessionStore:
    """In-memory store of upload sessions by id."""

    def __init__(self):
        self._sessions: dict[str, UploadSession] = {}

    def add(self, session: UploadSession):
        self._sessions[session.session_id] = session

    def get(self, upload_id: str) -> Optional[UploadSession]:
        return self._sessions.get(upload_id)


def _status_of(session: UploadSession) -> UploadStatusResponse:
    error = session.error
    outcome = session.outcome
    if outcome is not None:
        status = "succeeded"
    elif error is not None:
        status = "failed"
    else:
        status = "processing"

    failed_stage = None
    if isinstance(error, UploadError) and error.stage is not None:
        failed_stage = error.stage.value

    return UploadStatusResponse(
        upload_id=session.session_id,
        status=status,
        stage=session.state.value,
        progress_percent=session.progress.percent,
        status_message=session.progress.message,
        piece_cid=outcome.piece_cid if outcome else session.driver.piece_cid,
        transaction_hash=outcome.transaction_hash if outcome else None,
        confirmed=outcome.confirmed if outcome else None,
        error=str(error) if error else None,
        error_type=type(error).__name__ if error else None,
        failed_stage=failed_stage,
    )


# ============================================================================
# API Application
# ============================================================================

class UploadAPI:
    """Upload API application."""

    def __init__(self, uploader_factory: Optional[Callable[[], TextUploader]] = None):
        self.uploader_factory = uploader_factory
        self.sessions = SessionStore()

    async def initialize(self):
        """Wire uploads to a simulated network unless a factory was given."""
        if self.uploader_factory is not None:
            return

        config = StorageConfig.from_env()
        account = os.getenv("FILTEXT_ACCOUNT", "0x000000000000000000000000000000000000dEaD")
        funds = parse_amount(os.getenv("FILTEXT_SIMULATED_FUNDS", "10"), config.token_decimals)

        network = SimulatedNetwork(
            chain_id=config.chain_id,
            token_address=config.token_address,
            decimals=config.token_decimals,
        )
        network.fund(account, funds)
        self.uploader_factory = lambda: create_simulated_uploader(account, config=config, network=network)
        logger.info("Upload API initialized with simulated network", account=account)

    def new_uploader(self) -> TextUploader:
        if self.uploader_factory is None:
            raise HTTPException(status_code=503, detail="Uploader not initialized")
        return self.uploader_factory()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    await app.state.upload_api.initialize()
    yield
    logger.info("Upload API shutdown")


def create_app(upload_api: Optional[UploadAPI] = None) -> FastAPI:
    """Create the FastAPI application."""

    app = FastAPI(
        title="filtext",
        description="Store text on Filecoin warm storage",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.upload_api = upload_api or UploadAPI()

    # CORS
    cors_origins = os.getenv("CORS_ORIGINS", "http://localhost:3000").split(",")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    def api() -> UploadAPI:
        return app.state.upload_api

    # ========================================================================
    # Endpoints
    # ========================================================================

    @app.get("/health", response_model=HealthResponse)
    async def health_check():
        """Health check endpoint."""
        config = StorageConfig.from_env()
        return HealthResponse(
            status="healthy",
            version=__version__,
            timestamp=datetime.utcnow().isoformat(),
            chain_id=config.chain_id,
            network=config.network_name,
        )

    @app.post("/api/v1/uploads", response_model=UploadResponse)
    async def start_upload(request: UploadRequest, background_tasks: BackgroundTasks):
        """
        Start storing text.

        The upload runs in the background. Poll /api/v1/uploads/{upload_id}
        for its progress and result.
        """
        uploader = api().new_uploader()
        session = uploader.new_session(request.text)
        api().sessions.add(session)

        background_tasks.add_task(_run_upload, uploader, session, request.text)

        return UploadResponse(upload_id=session.session_id, status="processing")

    @app.get("/api/v1/uploads/{upload_id}", response_model=UploadStatusResponse)
    async def get_upload(upload_id: str):
        """Get the state of an upload."""
        session = api().sessions.get(upload_id)
        if session is None:
            raise HTTPException(status_code=404, detail="Upload not found")
        return _status_of(session)

    @app.get("/api/v1/uploads/{upload_id}/progress", response_model=list[ProgressState])
    async def get_progress(upload_id: str):
        """Full progress history of an upload."""
        session = api().sessions.get(upload_id)
        if session is None:
            raise HTTPException(status_code=404, detail="Upload not found")
        return session.progress.history

    @app.get("/api/v1/datasets", response_model=list[DatasetSummary])
    async def list_datasets():
        """Datasets of the configured account and the pieces stored in each."""
        uploader = api().new_uploader()
        try:
            return await uploader.datasets()
        except UploadError as e:
            raise HTTPException(status_code=502, detail=str(e))

    @app.get("/api/v1/balance", response_model=BalanceResponse)
    async def get_balance():
        """Reconciled USDFC balance of the configured account."""
        uploader = api().new_uploader()
        try:
            balance = await uploader.balance()
        except UploadError as e:
            raise HTTPException(status_code=502, detail=str(e))
        decimals = uploader.config.token_decimals
        return BalanceResponse(
            account=uploader.account,
            balance=format_amount(int(balance.amount.scaleb(decimals)), decimals),
            source=balance.source.value,
        )

    return app


async def _run_upload(uploader: TextUploader, session: UploadSession, text: str):
    """Background task for an upload."""
    try:
        await uploader.run_session(session, text)
    except UploadError as e:
        # Already recorded on the session
        logger.warning("Background upload failed", upload_id=session.session_id, error=str(e))


def run_server(host: str = None, port: int = None):
    """Run the API server."""
    if host is None:
        host = os.getenv("API_HOST", "0.0.0.0")
    if port is None:
        port = int(os.getenv("API_PORT", "8090"))

    logger.info("Starting filtext API server", host=host, port=port)
    uvicorn.run(create_app(), host=host, port=port)


if __name__ == "__main__":
    run_server()
