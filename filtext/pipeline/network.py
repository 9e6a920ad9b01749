"""
Network Guard

Makes sure uploads are not sent to the wrong chain. The chain id is looked up
through whichever method the chain client offers; when it cannot be
determined at all the check is skipped.
"""

from typing import Any, Optional

import structlog

from filtext.errors import NetworkMismatch
from filtext.pipeline.capabilities import Capability, CapabilityRegistry, maybe_await, method

logger = structlog.get_logger()


def _from_get_network(client: Any):
    get_network = method(client, "get_network")
    if get_network is None:
        return None

    async def call():
        network = await maybe_await(get_network())
        if isinstance(network, dict):
            return network.get("chain_id") or network.get("id")
        return getattr(network, "chain_id", None) or getattr(network, "id", None)

    return call


def _from_get_chain_id(client: Any):
    get_chain_id = method(client, "get_chain_id")
    return get_chain_id


def _from_attribute(client: Any):
    if getattr(client, "chain_id", None) is None or callable(client.chain_id):
        return None
    return lambda: client.chain_id


def _as_int(value: int | str) -> int:
    if isinstance(value, str):
        return int(value, 0)
    return int(value)


CHAIN_ID_LOOKUPS = CapabilityRegistry(
    "chain_id",
    [
        Capability("get_network", _from_get_network),
        Capability("get_chain_id", _from_get_chain_id),
        Capability("chain_id", _from_attribute),
    ],
)


class NetworkGuard:
    """Compares the connected chain id with the configured one."""

    def __init__(self, expected_chain_id: int, lookups: CapabilityRegistry = CHAIN_ID_LOOKUPS):
        self.expected_chain_id = expected_chain_id
        self.lookups = lookups

    async def current_chain_id(self, client: Any) -> Optional[int | str]:
        for name, lookup in self.lookups.available(client):
            try:
                value = await maybe_await(lookup())
            except Exception as e:
                logger.warning("Chain id lookup failed", lookup=name, error=str(e))
                continue
            if value is not None:
                return value
        return None

    async def check(self, client: Any) -> None:
        """
        Raises:
            NetworkMismatch: the chain id is known and is not the expected one
        """
        if client is None:
            logger.warning("No chain client, skipping network validation")
            return

        actual = await self.current_chain_id(client)
        if actual is None:
            logger.warning("Could not determine chain id, skipping network validation")
            return

        try:
            matches = _as_int(actual) == self.expected_chain_id
        except (TypeError, ValueError):
            matches = False
        if not matches:
            raise NetworkMismatch(expected=self.expected_chain_id, actual=actual)

        logger.debug("Network check passed", chain_id=self.expected_chain_id)
