"""
Piece Retrieval

Downloads stored text by piece CID, from the storage transport when it can
serve pieces and otherwise from the retrieval gateway over HTTP.
"""

from typing import Optional

import httpx
import structlog

from filtext.config import StorageConfig
from filtext.interfaces import BaseStorageTransport

logger = structlog.get_logger()


class PieceRetriever:
    """Fetches stored pieces."""

    def __init__(
        self,
        transport: Optional[BaseStorageTransport] = None,
        config: Optional[StorageConfig] = None,
        timeout_seconds: int = 60,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.transport = transport
        self.config = config or StorageConfig()
        self.client = client or httpx.AsyncClient(timeout=timeout_seconds)

    def get_gateway_url(self, piece_cid: str) -> str:
        return f"{self.config.retrieval_gateway_url.rstrip('/')}/piece/{piece_cid}"

    async def download(self, piece_cid: str) -> bytes:
        if self.transport is not None:
            try:
                return await self.transport.download(piece_cid)
            except NotImplementedError:
                logger.debug("Transport cannot serve pieces, using gateway", piece_cid=piece_cid)

        url = self.get_gateway_url(piece_cid)
        response = await self.client.get(url)
        response.raise_for_status()
        logger.info("Downloaded piece from gateway", piece_cid=piece_cid, size_bytes=len(response.content))
        return response.content

    async def download_text(self, piece_cid: str) -> str:
        return (await self.download(piece_cid)).decode("utf-8")

    async def close(self):
        """Close the HTTP client."""
        await self.client.aclose()
