"""
Pytest configuration and shared fixtures for the test suite.
"""

from typing import List, Optional, Set

import pytest
from solders.hash import Hash
from solders.instruction import AccountMeta, Instruction
from solders.keypair import Keypair
from solders.message import MessageV0
from solders.pubkey import Pubkey
from solders.signature import Signature
from solders.system_program import TransferParams, transfer
from solders.transaction import VersionedTransaction

from courier.config import USDC_MINT, WRAPPED_SOL_MINT, CourierConfig
from courier.node.interface import (
    AccountState,
    Anchor,
    NetworkError,
    NodeInterface,
    SubmissionError,
)
from courier.quotes.interface import Quote, QuoteService, QuoteServiceError
from courier.tx.signer import TransactionSigner, generate_test_key


# ============================================================================
# Configuration Fixtures
# ============================================================================

@pytest.fixture
def test_config() -> CourierConfig:
    """Create a test configuration."""
    return CourierConfig(
        rpc_url="http://localhost:8899",
        keypair_path="/nonexistent/id.json",
        recipient=str(Keypair().pubkey()),
        sol_amount_lamports=1_000_000,
        token_amount=1_000_000,
        swap_amount=1_000_000_000,
        slippage_bps=50,
        log_level="DEBUG",
    )


# ============================================================================
# Test Data Generators
# ============================================================================

def generate_test_pubkey() -> Pubkey:
    """Generate a random address."""
    return Keypair().pubkey()


USDC = Pubkey.from_string(USDC_MINT)
WSOL = Pubkey.from_string(WRAPPED_SOL_MINT)


# ============================================================================
# Mock Node Interface
# ============================================================================

class MockNodeInterface(NodeInterface):
    """In-memory node for testing."""

    def __init__(self):
        self.existing_accounts: Set[Pubkey] = set()
        self.failing_accounts: Set[Pubkey] = set()
        self.account_queries: List[Pubkey] = []
        self.issued_anchors: List[Anchor] = []
        self.submitted: List[VersionedTransaction] = []
        self.fail_blockhash = False
        self.reject_reason: Optional[str] = None
        self._connected = False

    async def connect(self) -> None:
        self._connected = True

    async def disconnect(self) -> None:
        self._connected = False

    async def get_account_state(self, address: Pubkey) -> AccountState:
        self.account_queries.append(address)
        if address in self.failing_accounts:
            return AccountState.UNKNOWN
        if address in self.existing_accounts:
            return AccountState.EXISTS
        return AccountState.ABSENT

    async def get_latest_blockhash(self) -> Anchor:
        if self.fail_blockhash:
            raise NetworkError("getLatestBlockhash failed: connection refused", method="getLatestBlockhash")
        anchor = Anchor(
            blockhash=Hash.new_unique(),
            last_valid_block_height=1_000 + len(self.issued_anchors),
        )
        self.issued_anchors.append(anchor)
        return anchor

    async def send_and_confirm(
        self,
        tx: VersionedTransaction,
        last_valid_block_height: Optional[int] = None,
    ) -> str:
        if self.reject_reason:
            raise SubmissionError(f"Transaction rejected: {self.reject_reason}", reason=self.reject_reason)
        if not TransactionSigner.verify(tx):
            raise SubmissionError("Transaction signature verification failure", reason="invalid signature")
        self.submitted.append(tx)
        return str(tx.signatures[0])

    def add_account(self, address: Pubkey) -> None:
        """Mark an account as existing on-chain."""
        self.existing_accounts.add(address)


@pytest.fixture
def mock_node() -> MockNodeInterface:
    """Create a mock node interface."""
    return MockNodeInterface()


# ============================================================================
# Mock Quote Service
# ============================================================================

def build_unsigned_swap(payer: Pubkey, blockhash: Optional[Hash] = None) -> VersionedTransaction:
    """Build a swap-like transaction the way an aggregator returns it: unsigned."""
    route_program = generate_test_pubkey()
    pool = generate_test_pubkey()
    instructions = [
        transfer(TransferParams(from_pubkey=payer, to_pubkey=pool, lamports=1_000_000_000)),
        Instruction(
            route_program,
            bytes([7, 1, 2, 3]),
            [
                AccountMeta(payer, is_signer=True, is_writable=True),
                AccountMeta(pool, is_signer=False, is_writable=True),
            ],
        ),
    ]
    message = MessageV0.try_compile(
        payer=payer,
        instructions=instructions,
        address_lookup_table_accounts=[],
        recent_blockhash=blockhash or Hash.new_unique(),
    )
    return VersionedTransaction.populate(message, [Signature.default()])


class MockQuoteService(QuoteService):
    """Quote service returning canned quotes and unsigned swap bodies."""

    def __init__(self, out_amount: int = 150_000_000):
        self.out_amount = out_amount
        self.returned_swaps: List[VersionedTransaction] = []
        self.fail_quote = False

    async def quote(self, input_mint, output_mint, amount, slippage_bps) -> Quote:
        if self.fail_quote:
            raise QuoteServiceError("Jupiter API error 503: unavailable", method="/quote")
        return Quote(
            input_mint=input_mint,
            output_mint=output_mint,
            in_amount=amount,
            out_amount=self.out_amount,
            slippage_bps=slippage_bps,
            other_amount_threshold=self.out_amount * (10_000 - slippage_bps) // 10_000,
            price_impact_pct="0.01",
        )

    async def build_swap(self, payer, quote) -> VersionedTransaction:
        tx = build_unsigned_swap(payer)
        self.returned_swaps.append(tx)
        return tx


@pytest.fixture
def mock_quote_service() -> MockQuoteService:
    """Create a mock quote service."""
    return MockQuoteService()


# ============================================================================
# Test Signer
# ============================================================================

@pytest.fixture
def test_signer() -> TransactionSigner:
    """Create a test signer with a random key."""
    return generate_test_key()
