"""
Instruction builders - turn intents into ordered instruction lists.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List

import structlog

from solders.instruction import Instruction
from solders.pubkey import Pubkey
from solders.system_program import TransferParams as SystemTransferParams
from solders.system_program import transfer as system_transfer
from spl.token.instructions import TransferParams as TokenTransferParams
from spl.token.instructions import transfer as token_transfer

from courier.core.intent import NativeTransferIntent, TokenTransferIntent
from courier.tx.gate import AccountExistenceGate

logger = structlog.get_logger(__name__)


@dataclass
class InstructionPlan:
    """Ordered instructions for one transaction plus derived addresses."""
    instructions: List[Instruction]
    derived_accounts: Dict[str, Pubkey] = field(default_factory=dict)
    created_accounts: List[str] = field(default_factory=list)     # Roles, e.g. "recipient"


class InstructionBuilder(ABC):
    """
    Abstract base class for turning an intent into instructions.
    
    Builders never fetch a blockhash; that happens as late as possible in
    the transaction builder.
    """
    
    @abstractmethod
    async def build(self, intent: Any) -> InstructionPlan:
        """
        Build the instruction plan for an intent.
        
        Args:
            intent: A validated intent
            
        Returns:
            InstructionPlan in execution order
        """
        pass


class NativeTransferBuilder(InstructionBuilder):
    """Emits a single system-program transfer."""
    
    async def build(self, intent: NativeTransferIntent) -> InstructionPlan:
        ix = system_transfer(
            SystemTransferParams(
                from_pubkey=intent.sender,
                to_pubkey=intent.recipient,
                lamports=intent.lamports,
            )
        )
        logger.debug("native_transfer_built", lamports=intent.lamports)
        return InstructionPlan(instructions=[ix])


class TokenTransferBuilder(InstructionBuilder):
    """
    Emits any missing ATA creations, then one SPL token transfer.
    
    The sender's account is checked before the recipient's, and both
    creations are funded by the sender.
    """
    
    def __init__(self, gate: AccountExistenceGate):
        self.gate = gate
    
    async def build(self, intent: TokenTransferIntent) -> InstructionPlan:
        instructions: List[Instruction] = []
        derived: Dict[str, Pubkey] = {}
        created: List[str] = []
        
        for role, owner in (("sender", intent.sender), ("recipient", intent.recipient)):
            pending = len(instructions)
            derived[role] = await self.gate.ensure_token_account(
                instructions,
                payer=intent.sender,
                owner=owner,
                mint=intent.mint,
            )
            if len(instructions) > pending:
                created.append(role)
        
        instructions.append(
            token_transfer(
                TokenTransferParams(
                    program_id=self.gate.token_program_id,
                    source=derived["sender"],
                    dest=derived["recipient"],
                    owner=intent.sender,
                    amount=intent.amount,
                )
            )
        )
        
        logger.debug(
            "token_transfer_built",
            amount=intent.amount,
            instruction_count=len(instructions),
        )
        return InstructionPlan(
            instructions=instructions,
            derived_accounts=derived,
            created_accounts=created,
        )
