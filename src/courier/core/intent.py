"""
Transfer intents.

An intent is the logical request a pipeline carries out: move an amount of
an asset from one owner to another, or swap one asset for another.
Intents are validated before any network call is made.
"""

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Union

from solders.pubkey import Pubkey

from courier.config import CourierConfig


MAX_SLIPPAGE_BPS = 10_000


class InvalidIntentError(Exception):
    """Raised when an intent has malformed amounts or addresses."""
    pass


def to_base_units(human_amount: Union[str, int, Decimal], decimals: int) -> int:
    """
    Scale a human-readable amount to the asset's indivisible base units.
    
    Args:
        human_amount: Amount as shown to users, e.g. "1.5"
        decimals: Number of decimal places of the asset
        
    Returns:
        Integer amount in base units
        
    Raises:
        InvalidIntentError: If the amount is not a number, or has more
            precision than the asset supports
    """
    if decimals < 0:
        raise InvalidIntentError(f"decimals must be non-negative, got {decimals}")
    
    try:
        amount = Decimal(str(human_amount))
    except InvalidOperation as e:
        raise InvalidIntentError(f"Not a number: {human_amount!r}") from e
    
    if not amount.is_finite():
        raise InvalidIntentError(f"Not a finite amount: {human_amount!r}")
    
    scaled = amount.scaleb(decimals)
    if scaled != scaled.to_integral_value():
        raise InvalidIntentError(
            f"{human_amount} has more than {decimals} decimal places"
        )
    return int(scaled)


def _check_amount(amount: int) -> None:
    if isinstance(amount, bool) or not isinstance(amount, int):
        raise InvalidIntentError(f"Amount must be an integer, got {amount!r}")
    if amount <= 0:
        raise InvalidIntentError(f"Amount must be positive, got {amount}")


@dataclass(frozen=True)
class NativeTransferIntent:
    """Move lamports from ``sender`` to ``recipient``."""
    sender: Pubkey
    recipient: Pubkey
    lamports: int
    
    def validate(self) -> None:
        _check_amount(self.lamports)
        if self.sender == self.recipient:
            raise InvalidIntentError("Sender and recipient are the same address")
    
    @classmethod
    def from_config(cls, config: CourierConfig, sender: Pubkey) -> "NativeTransferIntent":
        return cls(
            sender=sender,
            recipient=config.recipient_pubkey,
            lamports=config.sol_amount_lamports,
        )


@dataclass(frozen=True)
class TokenTransferIntent:
    """
    Move ``amount`` base units of ``mint`` between the owners' token accounts.
    
    The caller applies the token's decimal scale, see ``to_base_units``.
    """
    sender: Pubkey
    recipient: Pubkey
    mint: Pubkey
    amount: int
    
    def validate(self) -> None:
        _check_amount(self.amount)
        if self.sender == self.recipient:
            raise InvalidIntentError("Sender and recipient are the same address")
    
    @classmethod
    def from_config(cls, config: CourierConfig, sender: Pubkey) -> "TokenTransferIntent":
        return cls(
            sender=sender,
            recipient=config.recipient_pubkey,
            mint=config.token_mint_pubkey,
            amount=config.token_amount,
        )


@dataclass(frozen=True)
class SwapIntent:
    """Sell ``amount`` base units of ``input_mint`` for ``output_mint``."""
    payer: Pubkey
    input_mint: Pubkey
    output_mint: Pubkey
    amount: int
    slippage_bps: int
    
    def validate(self) -> None:
        _check_amount(self.amount)
        if self.input_mint == self.output_mint:
            raise InvalidIntentError("Input and output mints are the same")
        if not 0 <= self.slippage_bps <= MAX_SLIPPAGE_BPS:
            raise InvalidIntentError(
                f"Slippage must be between 0 and {MAX_SLIPPAGE_BPS} bps, got {self.slippage_bps}"
            )
    
    @classmethod
    def from_config(cls, config: CourierConfig, payer: Pubkey) -> "SwapIntent":
        return cls(
            payer=payer,
            input_mint=Pubkey.from_string(config.swap_input_mint),
            output_mint=Pubkey.from_string(config.swap_output_mint),
            amount=config.swap_amount,
            slippage_bps=config.slippage_bps,
        )
