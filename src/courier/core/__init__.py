"""
Core pipeline components.

This module contains the transfer intents and the pipeline orchestration
that turns an intent into a confirmed transaction.
"""

from courier.core.intent import (
    InvalidIntentError,
    NativeTransferIntent,
    SwapIntent,
    TokenTransferIntent,
    to_base_units,
)
from courier.core.pipeline import (
    PipelineKind,
    PipelineResult,
    PipelineStepError,
    TransferPipeline,
)

__all__ = [
    "InvalidIntentError",
    "NativeTransferIntent",
    "SwapIntent",
    "TokenTransferIntent",
    "to_base_units",
    "PipelineKind",
    "PipelineResult",
    "PipelineStepError",
    "TransferPipeline",
]
