"""
Pytest fixtures for filtext tests.
"""

import pytest

from filtext.backends.memory import (
    InMemoryChainClient,
    InMemoryLedger,
    InMemoryStorageTransport,
    SimulatedNetwork,
)
from filtext.config import StorageConfig
from filtext.core import TextUploader
from filtext.models import ContainerRef

from tests.fakes import ACCOUNT, USDFC


@pytest.fixture
def account():
    return ACCOUNT


@pytest.fixture
def config():
    """Default Calibration config."""
    return StorageConfig()


@pytest.fixture
def network():
    """Simulated network with 10 USDFC in the test account."""
    net = SimulatedNetwork()
    net.fund(ACCOUNT, 10 * USDFC)
    return net


@pytest.fixture
def network_with_container(network):
    """Simulated network where the account already owns a dataset."""
    network.containers[ACCOUNT] = [ContainerRef(dataset_id=7, provider_id=3)]
    return network


@pytest.fixture
def ledger(network):
    return InMemoryLedger(network, ACCOUNT)


@pytest.fixture
def chain(network):
    return InMemoryChainClient(network)


@pytest.fixture
def transport(network):
    return InMemoryStorageTransport(network)


@pytest.fixture
def uploader(ledger, transport, chain, config):
    return TextUploader(ledger, transport, ACCOUNT, chain=chain, config=config)
