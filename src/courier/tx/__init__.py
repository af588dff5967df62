"""
Transaction module.

Handles instruction building, transaction assembly and signing.
"""

from courier.tx.builder import TransactionBuilder, TransactionBuildError
from courier.tx.gate import AccountExistenceGate
from courier.tx.instructions import (
    InstructionBuilder,
    InstructionPlan,
    NativeTransferBuilder,
    TokenTransferBuilder,
)
from courier.tx.signer import KeyLoadError, TransactionSigner

__all__ = [
    "AccountExistenceGate",
    "InstructionBuilder",
    "InstructionPlan",
    "KeyLoadError",
    "NativeTransferBuilder",
    "TokenTransferBuilder",
    "TransactionBuilder",
    "TransactionBuildError",
    "TransactionSigner",
]
