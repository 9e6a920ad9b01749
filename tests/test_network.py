"""
Tests for the Network Guard.
"""

import pytest

from filtext.errors import NetworkMismatch
from filtext.pipeline import NetworkGuard
from filtext.pipeline.network import CHAIN_ID_LOOKUPS


class NetworkObject:
    def __init__(self, chain_id):
        self.chain_id = chain_id


class GetNetworkClient:
    def __init__(self, network):
        self.network = network

    async def get_network(self):
        return self.network


class HexChainIdClient:
    def get_chain_id(self):
        return "0x4cb2f"  # 314159


class BrokenLookupClient:
    chain_id = 314159

    async def get_network(self):
        raise ConnectionError("rpc down")


class TestNetworkGuard:
    """Tests for NetworkGuard."""

    def test_lookup_order(self):
        assert CHAIN_ID_LOOKUPS.names == ["get_network", "get_chain_id", "chain_id"]

    @pytest.mark.asyncio
    async def test_matching_network_object(self):
        await NetworkGuard(314159).check(GetNetworkClient(NetworkObject(314159)))

    @pytest.mark.asyncio
    async def test_matching_network_dict(self):
        await NetworkGuard(314159).check(GetNetworkClient({"chain_id": 314159}))

    @pytest.mark.asyncio
    async def test_hex_chain_id(self):
        await NetworkGuard(314159).check(HexChainIdClient())

    @pytest.mark.asyncio
    async def test_mismatch(self):
        with pytest.raises(NetworkMismatch) as exc_info:
            await NetworkGuard(314159).check(GetNetworkClient({"chain_id": 314}))

        assert exc_info.value.actual == 314

    @pytest.mark.asyncio
    async def test_failing_lookup_falls_through(self):
        guard = NetworkGuard(314159)

        assert await guard.current_chain_id(BrokenLookupClient()) == 314159

    @pytest.mark.asyncio
    async def test_unknown_network_is_skipped(self):
        await NetworkGuard(314159).check(object())

    @pytest.mark.asyncio
    async def test_missing_client_is_skipped(self):
        await NetworkGuard(314159).check(None)
