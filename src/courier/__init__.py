"""
Courier

Builds, signs and submits Solana value transfers: native SOL transfers,
SPL token transfers with on-demand token account creation, and Jupiter
swaps re-anchored to a fresh blockhash before signing.
"""

__version__ = "0.1.0"

from courier.core.intent import (
    NativeTransferIntent,
    SwapIntent,
    TokenTransferIntent,
)
from courier.core.pipeline import PipelineResult, TransferPipeline

__all__ = [
    "NativeTransferIntent",
    "SwapIntent",
    "TokenTransferIntent",
    "PipelineResult",
    "TransferPipeline",
]
