"""
Configuration management for Courier.

Supports configuration via environment variables and .env files.
"""

from enum import Enum
from pathlib import Path
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from solders.pubkey import Pubkey


WRAPPED_SOL_MINT = "So11111111111111111111111111111111111111112"
USDC_MINT = "EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v"

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")


class Commitment(str, Enum):
    """Solana commitment levels."""
    PROCESSED = "processed"
    CONFIRMED = "confirmed"
    FINALIZED = "finalized"


class CourierConfig(BaseSettings):
    """
    Configuration settings for Courier.
    
    All settings can be configured via environment variables with the COURIER_ prefix.
    """
    
    model_config = SettingsConfigDict(
        env_prefix="COURIER_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )
    
    # Node settings
    rpc_url: str = Field(
        default="http://localhost:8899",
        description="Solana JSON-RPC endpoint"
    )
    commitment: Commitment = Field(
        default=Commitment.CONFIRMED,
        description="Commitment level used for every RPC query"
    )
    rpc_timeout_seconds: float = Field(
        default=30.0,
        gt=0,
        description="Per-request timeout for RPC calls"
    )
    
    # Wallet settings
    keypair_path: str = Field(
        default="~/.config/solana/id.json",
        description="Path to the Solana CLI keypair file"
    )
    
    # Transfer settings
    recipient: str = Field(
        default="CNdJxMoD8L8C6RxydLakcgEjQb5nUTsi1p3JyEKEmsZC",
        description="Recipient wallet address"
    )
    sol_amount_lamports: int = Field(
        default=1_000_000,
        gt=0,
        description="Native transfer amount in lamports"
    )
    token_mint: str = Field(
        default=USDC_MINT,
        description="Mint of the token to transfer"
    )
    token_amount: int = Field(
        default=1_000_000,
        gt=0,
        description="Token transfer amount in base units"
    )
    
    # Swap settings
    swap_input_mint: str = Field(
        default=WRAPPED_SOL_MINT,
        description="Mint sold in a swap"
    )
    swap_output_mint: str = Field(
        default=USDC_MINT,
        description="Mint bought in a swap"
    )
    swap_amount: int = Field(
        default=1_000_000_000,
        gt=0,
        description="Swap input amount in base units"
    )
    slippage_bps: int = Field(
        default=50,
        ge=0,
        le=10_000,
        description="Slippage tolerance in basis points"
    )
    
    # Quote service settings
    quote_api_url: str = Field(
        default="https://lite-api.jup.ag/swap/v1",
        description="Jupiter swap API base URL"
    )
    quote_timeout_seconds: float = Field(
        default=30.0,
        gt=0,
        description="Per-request timeout for quote service calls"
    )
    
    # Logging settings
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR)"
    )
    log_json: bool = Field(
        default=False,
        description="Output logs in JSON format"
    )
    
    @field_validator("recipient", "token_mint", "swap_input_mint", "swap_output_mint")
    @classmethod
    def _check_address(cls, value: str) -> str:
        try:
            Pubkey.from_string(value)
        except ValueError as e:
            raise ValueError(f"not a valid base58 address: {value!r}") from e
        return value
    
    @field_validator("log_level")
    @classmethod
    def _check_log_level(cls, value: str) -> str:
        level = value.upper()
        if level not in LOG_LEVELS:
            raise ValueError(f"must be one of {', '.join(LOG_LEVELS)}, got {value!r}")
        return level
    
    @property
    def expanded_keypair_path(self) -> Path:
        """Keypair path with ``~`` resolved."""
        return Path(self.keypair_path).expanduser()
    
    @property
    def recipient_pubkey(self) -> Pubkey:
        return Pubkey.from_string(self.recipient)
    
    @property
    def token_mint_pubkey(self) -> Pubkey:
        return Pubkey.from_string(self.token_mint)


# Global config instance
_config: Optional[CourierConfig] = None


def get_config() -> CourierConfig:
    """Get or create the global configuration instance."""
    global _config
    if _config is None:
        _config = CourierConfig()
    return _config


def set_config(config: CourierConfig) -> None:
    """Set the global configuration instance."""
    global _config
    _config = config
