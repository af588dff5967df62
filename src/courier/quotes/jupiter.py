"""
Jupiter aggregator adapter for swap quotes.

Talks to the Jupiter swap API (``/quote`` and ``/swap``) over HTTP.
"""

import base64
import binascii
from typing import Any, Optional

import httpx
import structlog

from solders.errors import BincodeError
from solders.pubkey import Pubkey
from solders.transaction import VersionedTransaction

from courier.config import CourierConfig, get_config
from courier.quotes.interface import Quote, QuoteService, QuoteServiceError

logger = structlog.get_logger(__name__)


class JupiterQuoteService(QuoteService):
    """
    Jupiter swap API adapter.
    
    Implements the QuoteService using Jupiter's REST API.
    """
    
    def __init__(
        self,
        config: Optional[CourierConfig] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize the Jupiter adapter.
        
        Args:
            config: Courier configuration. Uses global config if not provided.
            transport: Custom httpx transport (mainly for tests)
        """
        self.config = config or get_config()
        self.base_url = self.config.quote_api_url.rstrip("/")
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None
    
    async def connect(self) -> None:
        """Create the HTTP client."""
        if self._client is not None:
            return
        
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.config.quote_timeout_seconds,
            transport=self._transport,
        )
        logger.info("jupiter_connected", base_url=self.base_url)
    
    async def disconnect(self) -> None:
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None
            logger.info("jupiter_disconnected")
    
    async def _request(self, method: str, path: str, **kwargs) -> Any:
        """Make an API request and return the decoded JSON body."""
        if not self._client:
            await self.connect()
        
        try:
            response = await self._client.request(method, path, **kwargs)
        except httpx.RequestError as e:
            logger.error("jupiter_request_error", path=path, error=str(e))
            raise QuoteServiceError(f"Jupiter request failed: {e}", method=path) from e
        
        if response.status_code != 200:
            logger.error(
                "jupiter_request_failed",
                path=path,
                status=response.status_code,
                error=response.text,
            )
            raise QuoteServiceError(
                f"Jupiter API error {response.status_code}: {response.text}",
                method=path,
            )
        
        try:
            return response.json()
        except ValueError as e:
            raise QuoteServiceError(f"Jupiter returned invalid JSON: {e}", method=path) from e
    
    async def quote(
        self,
        input_mint: Pubkey,
        output_mint: Pubkey,
        amount: int,
        slippage_bps: int,
    ) -> Quote:
        """Get the best route for a swap."""
        data = await self._request(
            "GET",
            "/quote",
            params={
                "inputMint": str(input_mint),
                "outputMint": str(output_mint),
                "amount": str(amount),
                "slippageBps": slippage_bps,
            },
        )
        
        try:
            quote = Quote(
                input_mint=Pubkey.from_string(data["inputMint"]),
                output_mint=Pubkey.from_string(data["outputMint"]),
                in_amount=int(data["inAmount"]),
                out_amount=int(data["outAmount"]),
                slippage_bps=int(data.get("slippageBps", slippage_bps)),
                other_amount_threshold=int(data["otherAmountThreshold"]),
                price_impact_pct=data.get("priceImpactPct"),
                raw=data,
            )
        except (KeyError, TypeError, ValueError) as e:
            logger.error("quote_parse_error", error=str(e))
            raise QuoteServiceError(f"Malformed Jupiter quote: {e}", method="/quote") from e
        
        logger.info(
            "quote_received",
            in_amount=quote.in_amount,
            out_amount=quote.out_amount,
            price_impact_pct=quote.price_impact_pct,
        )
        return quote
    
    async def build_swap(self, payer: Pubkey, quote: Quote) -> VersionedTransaction:
        """Get the serialized swap transaction for a quote."""
        data = await self._request(
            "POST",
            "/swap",
            json={
                "quoteResponse": quote.raw,
                "userPublicKey": str(payer),
                "wrapAndUnwrapSol": True,
            },
        )
        
        encoded = data.get("swapTransaction") if isinstance(data, dict) else None
        if not encoded:
            raise QuoteServiceError("No swap transaction returned", method="/swap")
        
        try:
            tx = VersionedTransaction.from_bytes(base64.b64decode(encoded))
        except (binascii.Error, BincodeError, ValueError) as e:
            logger.error("swap_tx_decode_error", error=str(e))
            raise QuoteServiceError(f"Undecodable swap transaction: {e}", method="/swap") from e
        
        logger.info(
            "swap_transaction_received",
            blockhash=str(tx.message.recent_blockhash),
            last_valid_block_height=data.get("lastValidBlockHeight"),
        )
        return tx
