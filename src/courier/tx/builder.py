"""
Transaction Builder - assembles and signs transactions.

Both paths fetch the blockhash last, right before signing:
- build: compile locally built instructions into a v0 message
- re-anchor: take an externally built transaction, swap in a fresh
  blockhash and sign it locally
"""

from typing import List, Optional, Tuple, Union

import structlog

from solders.errors import SignerError
from solders.hash import Hash
from solders.instruction import Instruction
from solders.message import Message, MessageV0
from solders.transaction import VersionedTransaction

from courier.node.interface import Anchor, NodeInterface
from courier.tx.signer import TransactionSigner

logger = structlog.get_logger(__name__)


class TransactionBuildError(Exception):
    """Raised when transaction construction fails."""
    pass


def replace_blockhash(
    message: Union[Message, MessageV0],
    blockhash: Hash,
) -> Union[Message, MessageV0]:
    """
    Return a copy of ``message`` with only its recent blockhash replaced.

    Header, account keys, compiled instructions and lookup tables are
    carried over unchanged.
    """
    if isinstance(message, MessageV0):
        return MessageV0(
            message.header,
            message.account_keys,
            blockhash,
            message.instructions,
            message.address_table_lookups,
        )

    header = message.header
    return Message.new_with_compiled_instructions(
        header.num_required_signatures,
        header.num_readonly_signed_accounts,
        header.num_readonly_unsigned_accounts,
        message.account_keys,
        blockhash,
        message.instructions,
    )


class TransactionBuilder:
    """
    Builds and signs transactions for a single fee payer.

    Coordinates between the node (for the anchor) and the signer.
    """

    def __init__(
        self,
        node: NodeInterface,
        signer: TransactionSigner,
    ):
        """
        Initialize the transaction builder.

        Args:
            node: Node interface for blockhash queries
            signer: Transaction signer, also the fee payer
        """
        self.node = node
        self.signer = signer

    def _check_signer(self) -> None:
        if not self.signer.is_loaded:
            raise TransactionBuildError("Signer key not loaded")

    async def build_and_sign(
        self,
        instructions: List[Instruction],
        anchor: Optional[Anchor] = None,
    ) -> Tuple[VersionedTransaction, Anchor]:
        """
        Compile instructions into a signed transaction.

        Args:
            instructions: Instructions in execution order
            anchor: Blockhash to use; fetched from the node if not provided

        Returns:
            Signed transaction and the anchor it was built with

        Raises:
            TransactionBuildError: If there is nothing to build or no signer
        """
        self._check_signer()

        if not instructions:
            raise TransactionBuildError("Cannot build transaction without instructions")

        payer = self.signer.identity()
        anchor = anchor or await self.node.get_latest_blockhash()

        try:
            message = MessageV0.try_compile(
                payer=payer,
                instructions=instructions,
                address_lookup_table_accounts=[],
                recent_blockhash=anchor.blockhash,
            )
        except Exception as e:
            # solders does not export its CompileError class
            logger.error("message_compile_failed", error=str(e))
            raise TransactionBuildError(f"Failed to compile message: {e}") from e

        signed_tx = self.signer.sign_message(message)

        logger.info(
            "transaction_built",
            payer=str(payer),
            instruction_count=len(instructions),
            blockhash=str(anchor.blockhash),
        )
        return signed_tx, anchor

    async def reanchor_and_sign(
        self,
        tx: VersionedTransaction,
        anchor: Optional[Anchor] = None,
    ) -> Tuple[VersionedTransaction, Anchor]:
        """
        Re-anchor an externally built transaction and sign it locally.

        Signatures already attached are dropped; the new blockhash
        invalidates them.

        Args:
            tx: Transaction as returned by the quote service
            anchor: Blockhash to use; fetched from the node if not provided

        Returns:
            Newly signed transaction and the anchor it was built with

        Raises:
            TransactionBuildError: If the fee payer is not the local signer
        """
        self._check_signer()

        message = tx.message
        payer = self.signer.identity()
        fee_payer = message.account_keys[0] if message.account_keys else None
        if fee_payer != payer:
            raise TransactionBuildError(
                f"Transaction fee payer {fee_payer} is not the signer {payer}"
            )

        anchor = anchor or await self.node.get_latest_blockhash()
        reanchored = replace_blockhash(message, anchor.blockhash)

        try:
            signed_tx = self.signer.sign_message(reanchored)
        except SignerError as e:
            # the message needs signers we do not hold
            logger.error("reanchor_sign_failed", error=str(e))
            raise TransactionBuildError(f"Failed to sign re-anchored transaction: {e}") from e

        logger.info(
            "transaction_reanchored",
            old_blockhash=str(message.recent_blockhash),
            new_blockhash=str(anchor.blockhash),
        )
        return signed_tx, anchor
