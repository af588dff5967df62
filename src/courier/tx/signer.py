"""
Transaction Signer - handles transaction signing.

Manages the wallet keypair and provides transaction signing.
"""

import json
from pathlib import Path
from typing import Optional, Union

import structlog

from solders.keypair import Keypair
from solders.message import Message, MessageV0, to_bytes_versioned
from solders.pubkey import Pubkey
from solders.transaction import VersionedTransaction

from courier.config import CourierConfig, get_config

logger = structlog.get_logger(__name__)


class KeyLoadError(Exception):
    """Raised when the signing key is missing or malformed."""
    pass


class TransactionSigner:
    """
    Handles transaction signing with the wallet key.
    
    The key is loaded once from a Solana CLI keypair file (a JSON array of
    64 integers) and only the public key is ever logged.
    """
    
    def __init__(self, config: Optional[CourierConfig] = None):
        """
        Initialize the transaction signer.
        
        Args:
            config: Courier configuration
        """
        self.config = config or get_config()
        self._keypair: Optional[Keypair] = None
    
    def load_key_from_file(self, key_path: Union[str, Path]) -> None:
        """
        Load the keypair from a file.
        
        Args:
            key_path: Path to the keypair file
            
        Raises:
            KeyLoadError: If the file is missing or not a valid keypair
        """
        path = Path(key_path).expanduser()
        if not path.exists():
            raise KeyLoadError(f"Keypair file not found: {path}")
        
        try:
            raw = json.loads(path.read_text())
            secret = bytes(raw)
            keypair = Keypair.from_bytes(secret)
        except (OSError, ValueError, TypeError) as e:
            raise KeyLoadError(f"Malformed keypair file {path}: {e}") from e
        
        self._keypair = keypair
        logger.info("signing_key_loaded", path=str(path), pubkey=str(keypair.pubkey()))
    
    def load_from_config(self) -> None:
        """Load the keypair from configuration."""
        self.load_key_from_file(self.config.expanded_keypair_path)
    
    def identity(self) -> Pubkey:
        """Public key of the loaded keypair."""
        if not self._keypair:
            raise KeyLoadError("No signing key loaded")
        return self._keypair.pubkey()
    
    @property
    def pubkey(self) -> Optional[Pubkey]:
        """Get the wallet's public key."""
        return self._keypair.pubkey() if self._keypair else None
    
    @property
    def is_loaded(self) -> bool:
        """Check if a signing key is loaded."""
        return self._keypair is not None
    
    def sign_message(self, message: Union[Message, MessageV0]) -> VersionedTransaction:
        """
        Sign a finalized message.
        
        Args:
            message: Message whose blockhash is already set
            
        Returns:
            Signed transaction
        """
        if not self._keypair:
            raise KeyLoadError("No signing key loaded")
        
        signed_tx = VersionedTransaction(message, [self._keypair])
        logger.debug("transaction_signed", signature=str(signed_tx.signatures[0]))
        
        return signed_tx
    
    @staticmethod
    def verify(tx: VersionedTransaction) -> bool:
        """
        Check every required signature against the serialized message.
        
        Returns False if any signer's signature does not match the exact
        (instructions, payer, blockhash) the message now holds.
        """
        message = tx.message
        required = message.header.num_required_signatures
        if len(tx.signatures) < required:
            return False
        
        message_bytes = to_bytes_versioned(message)
        signers = message.account_keys[:required]
        return all(
            signature.verify(pubkey, message_bytes)
            for signature, pubkey in zip(tx.signatures, signers)
        )


def generate_test_key() -> TransactionSigner:
    """
    Generate a new random signing key for testing.
    
    WARNING: Do not use in production. The key is not persisted.
    
    Returns:
        TransactionSigner with a new random key
    """
    signer = TransactionSigner(CourierConfig())
    signer._keypair = Keypair()
    
    logger.warning("test_key_generated", pubkey=str(signer._keypair.pubkey()))
    
    return signer


def write_keypair_file(keypair: Keypair, key_path: Union[str, Path]) -> Path:
    """
    Save a keypair in the Solana CLI format (JSON array of 64 integers).
    
    Args:
        keypair: Keypair to save
        key_path: Destination file
        
    Returns:
        The resolved path written to
    """
    path = Path(key_path).expanduser()
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(list(bytes(keypair))))
    path.chmod(0o600)
    
    logger.info("keypair_written", path=str(path), pubkey=str(keypair.pubkey()))
    return path
