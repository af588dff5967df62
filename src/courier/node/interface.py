"""
Abstract interface for Solana node integration.

Defines the contract for blockchain access that all node adapters must implement.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from solders.hash import Hash
from solders.pubkey import Pubkey
from solders.transaction import VersionedTransaction


class AccountState(str, Enum):
    """Outcome of an account lookup."""
    EXISTS = "exists"
    ABSENT = "absent"
    UNKNOWN = "unknown"     # The query itself failed


@dataclass(frozen=True)
class Anchor:
    """A recent blockhash and the last block height at which it is valid."""
    blockhash: Hash
    last_valid_block_height: int


class NodeInterface(ABC):
    """
    Abstract interface for Solana node access.
    
    This interface defines all blockchain operations needed by the pipelines:
    - Account existence lookups
    - Latest blockhash (transaction anchor)
    - Transaction submission and confirmation
    """
    
    @abstractmethod
    async def connect(self) -> None:
        """
        Establish connection to the node.
        
        Raises:
            NetworkError: If connection cannot be established
        """
        pass
    
    @abstractmethod
    async def disconnect(self) -> None:
        """Close connection to the node."""
        pass
    
    @abstractmethod
    async def get_account_state(self, address: Pubkey) -> AccountState:
        """
        Look up whether an account holds data on-chain.
        
        Never raises for query failures; they are reported as UNKNOWN so
        callers can tell a missing account from a failed lookup.
        
        Args:
            address: Account address
            
        Returns:
            EXISTS, ABSENT or UNKNOWN
        """
        pass
    
    @abstractmethod
    async def get_latest_blockhash(self) -> Anchor:
        """
        Fetch the latest blockhash.
        
        Returns:
            Fresh anchor for a transaction
            
        Raises:
            NetworkError: If the query fails
        """
        pass
    
    @abstractmethod
    async def send_and_confirm(
        self,
        tx: VersionedTransaction,
        last_valid_block_height: Optional[int] = None,
    ) -> str:
        """
        Submit a signed transaction and wait for confirmation.
        
        Args:
            tx: Signed transaction to submit
            last_valid_block_height: Expiry of the transaction's blockhash
            
        Returns:
            Transaction signature (base58)
            
        Raises:
            SubmissionError: If the network rejects the transaction
        """
        pass
    
    async def __aenter__(self) -> "NodeInterface":
        await self.connect()
        return self
    
    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.disconnect()


class NetworkError(Exception):
    """Raised when an RPC call fails."""
    
    def __init__(self, message: str, method: Optional[str] = None):
        super().__init__(message)
        self.method = method


class SubmissionError(Exception):
    """Raised when the network rejects a finished transaction."""
    
    def __init__(self, message: str, reason: Optional[str] = None):
        super().__init__(message)
        self.reason = reason
