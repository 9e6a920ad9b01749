"""
Collaborator implementations.

Components:
- memory: simulated ledger, chain and storage provider
"""

from filtext.backends.memory import (
    InMemoryChainClient,
    InMemoryLedger,
    InMemoryStorageTransport,
    SimulatedNetwork,
    create_simulated_uploader,
    mock_piece_cid,
)

__all__ = [
    "SimulatedNetwork",
    "InMemoryLedger",
    "InMemoryChainClient",
    "InMemoryStorageTransport",
    "create_simulated_uploader",
    "mock_piece_cid",
]
