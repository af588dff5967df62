"""
Abstract interface for swap quote services.

A quote service prices a swap and returns a ready-made, unsigned
transaction for it. Its routing is opaque to the pipeline.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from solders.pubkey import Pubkey
from solders.transaction import VersionedTransaction

from courier.node.interface import NetworkError


@dataclass(frozen=True)
class Quote:
    """A priced swap offer, valid for a short time."""
    input_mint: Pubkey
    output_mint: Pubkey
    in_amount: int
    out_amount: int
    slippage_bps: int
    other_amount_threshold: int        # Minimum out after slippage
    price_impact_pct: Optional[str] = None
    raw: Dict[str, Any] = field(default_factory=dict, compare=False)
    received_at: datetime = field(
        default_factory=lambda: datetime.now(timezone.utc),
        compare=False,
    )
    
    @property
    def age_seconds(self) -> float:
        return (datetime.now(timezone.utc) - self.received_at).total_seconds()


class QuoteService(ABC):
    """Abstract interface for a swap aggregator."""
    
    async def connect(self) -> None:
        """Open any underlying connection."""
        pass
    
    async def disconnect(self) -> None:
        """Close any underlying connection."""
        pass
    
    @abstractmethod
    async def quote(
        self,
        input_mint: Pubkey,
        output_mint: Pubkey,
        amount: int,
        slippage_bps: int,
    ) -> Quote:
        """
        Price a swap.
        
        Args:
            input_mint: Mint being sold
            output_mint: Mint being bought
            amount: Input amount in base units
            slippage_bps: Slippage tolerance in basis points
            
        Returns:
            The best quote
            
        Raises:
            QuoteServiceError: If no quote could be obtained
        """
        pass
    
    @abstractmethod
    async def build_swap(self, payer: Pubkey, quote: Quote) -> VersionedTransaction:
        """
        Get the unsigned swap transaction for a quote.
        
        Args:
            payer: Wallet that signs and pays for the swap
            quote: Quote returned by ``quote``
            
        Returns:
            Transaction with the service's own blockhash and no valid signature
            
        Raises:
            QuoteServiceError: If the transaction could not be obtained
        """
        pass


class QuoteServiceError(NetworkError):
    """Raised when the quote service call fails."""
    pass
