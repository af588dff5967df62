"""
Account existence gate for associated token accounts.

Decides whether a create-ATA instruction must precede an instruction that
consumes the account.
"""

from typing import List

import structlog

from solders.instruction import Instruction
from solders.pubkey import Pubkey
from spl.token.constants import TOKEN_PROGRAM_ID
from spl.token.instructions import (
    create_associated_token_account,
    get_associated_token_address,
)

from courier.node.interface import AccountState, NetworkError, NodeInterface

logger = structlog.get_logger(__name__)


class AccountExistenceGate:
    """
    Checks derived token accounts on-chain and queues their creation.
    
    A failed lookup raises NetworkError; it is never read as "absent".
    """
    
    def __init__(self, node: NodeInterface, token_program_id: Pubkey = TOKEN_PROGRAM_ID):
        self.node = node
        self.token_program_id = token_program_id
    
    async def exists(self, address: Pubkey) -> bool:
        """
        Check whether an account exists.
        
        Raises:
            NetworkError: If the lookup failed
        """
        state = await self.node.get_account_state(address)
        if state == AccountState.UNKNOWN:
            raise NetworkError(
                f"getAccountInfo failed for {address}",
                method="getAccountInfo",
            )
        return state == AccountState.EXISTS
    
    async def ensure_token_account(
        self,
        instructions: List[Instruction],
        payer: Pubkey,
        owner: Pubkey,
        mint: Pubkey,
    ) -> Pubkey:
        """
        Append a create instruction for ``owner``'s ATA if it does not exist.
        
        Args:
            instructions: Pending instruction list, appended to in place
            payer: Account funding the creation
            owner: Owner of the token account
            mint: Token mint
            
        Returns:
            The derived token account address
        """
        ata = get_associated_token_address(owner, mint, self.token_program_id)
        
        if await self.exists(ata):
            logger.debug("token_account_exists", ata=str(ata), owner=str(owner))
            return ata
        
        logger.info("token_account_missing", ata=str(ata), owner=str(owner), mint=str(mint))
        instructions.append(
            create_associated_token_account(
                payer=payer,
                owner=owner,
                mint=mint,
                token_program_id=self.token_program_id,
            )
        )
        return ata
