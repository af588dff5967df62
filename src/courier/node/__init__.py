"""
Node Integration Layer.

Provides abstracted access to Solana account data, blockhashes and
transaction submission.
"""

from courier.node.interface import (
    AccountState,
    Anchor,
    NetworkError,
    NodeInterface,
    SubmissionError,
)
from courier.node.rpc import SolanaRpcAdapter

__all__ = [
    "AccountState",
    "Anchor",
    "NetworkError",
    "NodeInterface",
    "SolanaRpcAdapter",
    "SubmissionError",
]
