"""
Solana JSON-RPC adapter for node integration.

Provides blockchain access through solana-py's asynchronous client.
"""

from typing import Optional

import httpx
import structlog

from solana.exceptions import SolanaRpcException
from solana.rpc.async_api import AsyncClient
from solana.rpc.commitment import Commitment
from solana.rpc.core import (
    RPCException,
    TransactionExpiredBlockheightExceededError,
    UnconfirmedTxError,
)
from solana.rpc.types import TxOpts
from solders.pubkey import Pubkey
from solders.transaction import VersionedTransaction

from courier.config import CourierConfig, get_config
from courier.node.interface import (
    AccountState,
    Anchor,
    NetworkError,
    NodeInterface,
    SubmissionError,
)

logger = structlog.get_logger(__name__)

_TRANSPORT_ERRORS = (SolanaRpcException, httpx.HTTPError, OSError)


class SolanaRpcAdapter(NodeInterface):
    """
    Solana RPC adapter.
    
    Implements the NodeInterface using a single AsyncClient connection
    and one commitment level for every call.
    """
    
    def __init__(
        self,
        config: Optional[CourierConfig] = None,
        client: Optional[AsyncClient] = None,
    ):
        """
        Initialize the RPC adapter.
        
        Args:
            config: Courier configuration. Uses global config if not provided.
            client: Pre-built client (mainly for tests)
        """
        self.config = config or get_config()
        self.rpc_url = self.config.rpc_url
        self.commitment = Commitment(self.config.commitment.value)
        self._client: Optional[AsyncClient] = client
    
    async def connect(self) -> None:
        """Create the RPC client."""
        if self._client is not None:
            return
        
        self._client = AsyncClient(
            self.rpc_url,
            commitment=self.commitment,
            timeout=self.config.rpc_timeout_seconds,
        )
        logger.info("rpc_connected", rpc_url=self.rpc_url, commitment=self.commitment)
    
    async def disconnect(self) -> None:
        """Close the RPC client."""
        if self._client:
            await self._client.close()
            self._client = None
            logger.info("rpc_disconnected")
    
    async def _get_client(self) -> AsyncClient:
        if not self._client:
            await self.connect()
        return self._client
    
    async def get_account_state(self, address: Pubkey) -> AccountState:
        """Look up an account, reporting failures as UNKNOWN."""
        client = await self._get_client()
        
        try:
            resp = await client.get_account_info(address, commitment=self.commitment)
        except (RPCException, *_TRANSPORT_ERRORS) as e:
            logger.warning("account_lookup_failed", address=str(address), error=str(e))
            return AccountState.UNKNOWN
        
        if not hasattr(resp, "value"):
            logger.warning("account_lookup_failed", address=str(address), error=str(resp))
            return AccountState.UNKNOWN
        
        state = AccountState.ABSENT if resp.value is None else AccountState.EXISTS
        logger.debug("account_looked_up", address=str(address), state=state.value)
        return state
    
    async def get_latest_blockhash(self) -> Anchor:
        """Fetch the latest blockhash at the configured commitment."""
        client = await self._get_client()
        
        try:
            resp = await client.get_latest_blockhash(commitment=self.commitment)
        except (RPCException, *_TRANSPORT_ERRORS) as e:
            logger.error("blockhash_request_failed", error=str(e))
            raise NetworkError(f"getLatestBlockhash failed: {e}", method="getLatestBlockhash") from e
        
        if not hasattr(resp, "value"):
            raise NetworkError(f"getLatestBlockhash failed: {resp}", method="getLatestBlockhash")
        
        anchor = Anchor(
            blockhash=resp.value.blockhash,
            last_valid_block_height=resp.value.last_valid_block_height,
        )
        logger.debug(
            "blockhash_fetched",
            blockhash=str(anchor.blockhash),
            last_valid_block_height=anchor.last_valid_block_height,
        )
        return anchor
    
    async def send_and_confirm(
        self,
        tx: VersionedTransaction,
        last_valid_block_height: Optional[int] = None,
    ) -> str:
        """Submit a signed transaction and wait until it is confirmed."""
        client = await self._get_client()
        opts = TxOpts(
            skip_confirmation=True,
            skip_preflight=False,
            preflight_commitment=self.commitment,
        )
        
        try:
            resp = await client.send_transaction(tx, opts=opts)
        except RPCException as e:
            logger.error("tx_submit_rejected", error=str(e))
            raise SubmissionError(f"Transaction rejected: {e}", reason=str(e)) from e
        except _TRANSPORT_ERRORS as e:
            logger.error("tx_submit_failed", error=str(e))
            raise SubmissionError(f"Transaction submission request failed: {e}", reason=str(e)) from e
        
        signature = resp.value
        logger.info("tx_submitted", signature=str(signature))
        
        try:
            status_resp = await client.confirm_transaction(
                signature,
                commitment=self.commitment,
                last_valid_block_height=last_valid_block_height,
            )
        except TransactionExpiredBlockheightExceededError as e:
            logger.error("tx_expired", signature=str(signature))
            raise SubmissionError(
                f"Transaction {signature} expired before confirmation",
                reason="blockhash expired",
            ) from e
        except UnconfirmedTxError as e:
            logger.error("tx_unconfirmed", signature=str(signature), error=str(e))
            raise SubmissionError(f"Transaction {signature} not confirmed: {e}", reason=str(e)) from e
        except (RPCException, *_TRANSPORT_ERRORS) as e:
            logger.error("tx_confirmation_failed", signature=str(signature), error=str(e))
            raise SubmissionError(
                f"Confirmation of {signature} failed: {e}", reason=str(e)
            ) from e
        
        status = status_resp.value[0] if status_resp.value else None
        if status is not None and status.err is not None:
            logger.error("tx_failed_on_chain", signature=str(signature), error=str(status.err))
            raise SubmissionError(
                f"Transaction {signature} failed: {status.err}",
                reason=str(status.err),
            )
        
        logger.info("tx_confirmed", signature=str(signature), commitment=self.commitment)
        return str(signature)
