"""
Test suite for SPL token transfers and the account existence gate.
"""

import pytest
from spl.token.constants import ASSOCIATED_TOKEN_PROGRAM_ID, TOKEN_PROGRAM_ID
from spl.token.instructions import get_associated_token_address

from courier.core.intent import TokenTransferIntent
from courier.node.interface import NetworkError
from courier.tx.gate import AccountExistenceGate
from courier.tx.instructions import TokenTransferBuilder
from tests.conftest import USDC, generate_test_pubkey


def token_transfer_data(amount: int) -> bytes:
    """SPL Token Transfer: u8 tag 3 followed by u64 amount."""
    return bytes([3]) + amount.to_bytes(8, "little")


@pytest.fixture
def intent(test_signer) -> TokenTransferIntent:
    return TokenTransferIntent(
        sender=test_signer.identity(),
        recipient=generate_test_pubkey(),
        mint=USDC,
        amount=1_000_000,
    )


# ============================================================================
# Test Account Existence Gate
# ============================================================================

class TestAccountExistenceGate:
    """Tests for the three-state existence check."""
    
    @pytest.mark.asyncio
    async def test_exists(self, mock_node):
        address = generate_test_pubkey()
        mock_node.add_account(address)
        
        assert await AccountExistenceGate(mock_node).exists(address) is True
    
    @pytest.mark.asyncio
    async def test_absent(self, mock_node):
        assert await AccountExistenceGate(mock_node).exists(generate_test_pubkey()) is False
    
    @pytest.mark.asyncio
    async def test_failed_lookup_raises(self, mock_node):
        """Test that a failed lookup is never treated as an absent account."""
        address = generate_test_pubkey()
        mock_node.failing_accounts.add(address)
        
        with pytest.raises(NetworkError, match="getAccountInfo"):
            await AccountExistenceGate(mock_node).exists(address)
    
    @pytest.mark.asyncio
    async def test_ensure_creates_missing_account(self, mock_node):
        payer, owner = generate_test_pubkey(), generate_test_pubkey()
        instructions = []
        
        ata = await AccountExistenceGate(mock_node).ensure_token_account(
            instructions, payer=payer, owner=owner, mint=USDC,
        )
        
        assert ata == get_associated_token_address(owner, USDC)
        assert len(instructions) == 1
        create = instructions[0]
        assert create.program_id == ASSOCIATED_TOKEN_PROGRAM_ID
        assert create.accounts[0].pubkey == payer
        assert create.accounts[0].is_signer is True
        assert create.accounts[1].pubkey == ata
        assert create.accounts[2].pubkey == owner
        assert create.accounts[3].pubkey == USDC
    
    @pytest.mark.asyncio
    async def test_ensure_skips_existing_account(self, mock_node):
        owner = generate_test_pubkey()
        mock_node.add_account(get_associated_token_address(owner, USDC))
        instructions = []
        
        await AccountExistenceGate(mock_node).ensure_token_account(
            instructions, payer=owner, owner=owner, mint=USDC,
        )
        
        assert instructions == []


# ============================================================================
# Test Token Transfer Builder
# ============================================================================

class TestTokenTransferBuilder:
    """Tests for ordering and content of token transfer instructions."""
    
    @pytest.mark.asyncio
    async def test_neither_account_exists(self, mock_node, intent):
        """Two creations, then the transfer, in that order."""
        plan = await TokenTransferBuilder(AccountExistenceGate(mock_node)).build(intent)
        
        sender_ata = get_associated_token_address(intent.sender, USDC)
        recipient_ata = get_associated_token_address(intent.recipient, USDC)
        
        assert len(plan.instructions) == 3
        assert [ix.program_id for ix in plan.instructions] == [
            ASSOCIATED_TOKEN_PROGRAM_ID,
            ASSOCIATED_TOKEN_PROGRAM_ID,
            TOKEN_PROGRAM_ID,
        ]
        assert plan.instructions[0].accounts[1].pubkey == sender_ata
        assert plan.instructions[1].accounts[1].pubkey == recipient_ata
        assert plan.created_accounts == ["sender", "recipient"]
        assert plan.derived_accounts == {"sender": sender_ata, "recipient": recipient_ata}
    
    @pytest.mark.asyncio
    async def test_both_accounts_exist(self, mock_node, intent):
        mock_node.add_account(get_associated_token_address(intent.sender, USDC))
        mock_node.add_account(get_associated_token_address(intent.recipient, USDC))
        
        plan = await TokenTransferBuilder(AccountExistenceGate(mock_node)).build(intent)
        
        assert len(plan.instructions) == 1
        assert plan.instructions[0].program_id == TOKEN_PROGRAM_ID
        assert plan.created_accounts == []
    
    @pytest.mark.asyncio
    async def test_only_recipient_missing(self, mock_node, intent):
        """Transfer of 1.0 USDC to a new holder: create, then transfer; payer funds it."""
        mock_node.add_account(get_associated_token_address(intent.sender, USDC))
        
        plan = await TokenTransferBuilder(AccountExistenceGate(mock_node)).build(intent)
        
        assert len(plan.instructions) == 2
        create, transfer = plan.instructions
        assert create.program_id == ASSOCIATED_TOKEN_PROGRAM_ID
        assert create.accounts[0].pubkey == intent.sender
        assert create.accounts[2].pubkey == intent.recipient
        assert transfer.program_id == TOKEN_PROGRAM_ID
        assert plan.created_accounts == ["recipient"]
    
    @pytest.mark.asyncio
    async def test_transfer_instruction(self, mock_node, intent):
        mock_node.add_account(get_associated_token_address(intent.sender, USDC))
        mock_node.add_account(get_associated_token_address(intent.recipient, USDC))
        
        plan = await TokenTransferBuilder(AccountExistenceGate(mock_node)).build(intent)
        transfer = plan.instructions[-1]
        
        assert bytes(transfer.data) == token_transfer_data(1_000_000)
        assert [(m.pubkey, m.is_signer, m.is_writable) for m in transfer.accounts] == [
            (plan.derived_accounts["sender"], False, True),
            (plan.derived_accounts["recipient"], False, True),
            (intent.sender, True, False),
        ]
    
    @pytest.mark.asyncio
    async def test_never_creates_existing_account(self, mock_node, intent):
        """Creation only ever targets accounts reported absent."""
        existing = get_associated_token_address(intent.recipient, USDC)
        mock_node.add_account(existing)
        
        plan = await TokenTransferBuilder(AccountExistenceGate(mock_node)).build(intent)
        
        created = [
            ix.accounts[1].pubkey for ix in plan.instructions
            if ix.program_id == ASSOCIATED_TOKEN_PROGRAM_ID
        ]
        assert existing not in created
        assert created == [get_associated_token_address(intent.sender, USDC)]
    
    @pytest.mark.asyncio
    async def test_lookup_failure_aborts_build(self, mock_node, intent):
        mock_node.failing_accounts.add(get_associated_token_address(intent.recipient, USDC))
        
        with pytest.raises(NetworkError):
            await TokenTransferBuilder(AccountExistenceGate(mock_node)).build(intent)
    
    @pytest.mark.asyncio
    async def test_sender_checked_before_recipient(self, mock_node, intent):
        await TokenTransferBuilder(AccountExistenceGate(mock_node)).build(intent)
        
        assert mock_node.account_queries == [
            get_associated_token_address(intent.sender, USDC),
            get_associated_token_address(intent.recipient, USDC),
        ]
