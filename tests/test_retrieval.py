"""
Tests for piece retrieval.
"""

import httpx
import pytest

from filtext.backends.memory import InMemoryStorageTransport, mock_piece_cid
from filtext.config import StorageConfig
from filtext.retrieval import PieceRetriever


def gateway_client(pieces: dict[str, bytes]) -> httpx.AsyncClient:
    def handler(request: httpx.Request) -> httpx.Response:
        piece_cid = request.url.path.rsplit("/", 1)[-1]
        if piece_cid not in pieces:
            return httpx.Response(404)
        return httpx.Response(200, content=pieces[piece_cid])

    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


class TestPieceRetriever:
    """Tests for PieceRetriever."""

    def test_gateway_url(self):
        retriever = PieceRetriever(config=StorageConfig(retrieval_gateway_url="https://cdn.example/"))

        assert retriever.get_gateway_url("bafkzcibabc") == "https://cdn.example/piece/bafkzcibabc"

    @pytest.mark.asyncio
    async def test_download_from_transport(self, network, transport):
        network.pieces[mock_piece_cid(b"hello")] = b"hello"
        retriever = PieceRetriever(transport=transport)

        text = await retriever.download_text(mock_piece_cid(b"hello"))
        await retriever.close()

        assert text == "hello"

    @pytest.mark.asyncio
    async def test_download_from_gateway(self):
        retriever = PieceRetriever(client=gateway_client({"bafkzcibabc": "héllo".encode("utf-8")}))

        text = await retriever.download_text("bafkzcibabc")
        await retriever.close()

        assert text == "héllo"

    @pytest.mark.asyncio
    async def test_missing_piece(self):
        retriever = PieceRetriever(client=gateway_client({}))

        with pytest.raises(httpx.HTTPStatusError):
            await retriever.download("bafkzcibmissing")
        await retriever.close()
