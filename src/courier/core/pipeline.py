"""
Transfer pipelines.

Each pipeline is a single sequential flow:
validate -> (quote -> swap body) / instructions -> anchor -> sign -> submit.
"""

from contextlib import contextmanager
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, Iterator, Optional

import structlog

from solders.pubkey import Pubkey
from solders.transaction import VersionedTransaction

from courier.config import CourierConfig, get_config
from courier.core.intent import (
    InvalidIntentError,
    NativeTransferIntent,
    SwapIntent,
    TokenTransferIntent,
)
from courier.node.interface import Anchor, NetworkError, NodeInterface, SubmissionError
from courier.node.rpc import SolanaRpcAdapter
from courier.quotes.interface import Quote, QuoteService
from courier.quotes.jupiter import JupiterQuoteService
from courier.tx.builder import TransactionBuildError, TransactionBuilder
from courier.tx.gate import AccountExistenceGate
from courier.tx.instructions import (
    InstructionBuilder,
    InstructionPlan,
    NativeTransferBuilder,
    TokenTransferBuilder,
)
from courier.tx.signer import KeyLoadError, TransactionSigner

logger = structlog.get_logger(__name__)

PIPELINE_ERRORS = (
    KeyLoadError,
    InvalidIntentError,
    NetworkError,
    SubmissionError,
    TransactionBuildError,
)


class PipelineKind(str, Enum):
    """Which pipeline produced a result."""
    SOL = "sol"
    TOKEN = "token"
    SWAP = "swap"


class PipelineStepError(Exception):
    """Wraps a pipeline failure with the name of the step that failed."""

    def __init__(self, step: str, error: Exception):
        super().__init__(f"{step} failed: {error}")
        self.step = step
        self.error = error


@dataclass
class PipelineResult:
    """Outcome of a confirmed submission."""
    kind: PipelineKind
    signature: str
    payer: Pubkey
    blockhash: str
    instruction_count: int
    derived_accounts: Dict[str, Pubkey] = field(default_factory=dict)
    quote: Optional[Quote] = None


@contextmanager
def pipeline_step(name: str) -> Iterator[None]:
    """Tag any pipeline error raised inside the block with ``name``."""
    logger.debug("pipeline_step_started", step=name)
    try:
        yield
    except PIPELINE_ERRORS as e:
        logger.error("pipeline_step_failed", step=name, error=str(e))
        raise PipelineStepError(name, e) from e


class TransferPipeline:
    """
    Runs the SOL transfer, token transfer and swap pipelines.

    Usage:
        ```python
        async with TransferPipeline.from_config(config) as pipeline:
            result = await pipeline.send_sol(intent)
        ```
    """

    def __init__(
        self,
        node: NodeInterface,
        signer: TransactionSigner,
        quote_service: Optional[QuoteService] = None,
        config: Optional[CourierConfig] = None,
    ):
        """
        Initialize the pipeline.

        Args:
            node: Node interface for lookups, anchors and submission
            signer: Loaded transaction signer (also the fee payer)
            quote_service: Swap aggregator, required only for ``swap``
            config: Courier configuration
        """
        self.config = config or get_config()
        self.node = node
        self.signer = signer
        self.quote_service = quote_service
        self.gate = AccountExistenceGate(node)
        self.tx_builder = TransactionBuilder(node, signer)
        self._builders: Dict[PipelineKind, InstructionBuilder] = {
            PipelineKind.SOL: NativeTransferBuilder(),
            PipelineKind.TOKEN: TokenTransferBuilder(self.gate),
        }

        # Callbacks
        self.on_plan: Optional[Callable[[InstructionPlan], None]] = None

    @classmethod
    def from_config(cls, config: Optional[CourierConfig] = None) -> "TransferPipeline":
        """
        Create a pipeline wired to the configured RPC node and Jupiter.

        Raises:
            PipelineStepError: If the keypair cannot be loaded
        """
        config = config or get_config()
        signer = TransactionSigner(config)
        with pipeline_step("load_key"):
            signer.load_from_config()

        return cls(
            node=SolanaRpcAdapter(config),
            signer=signer,
            quote_service=JupiterQuoteService(config),
            config=config,
        )

    async def __aenter__(self) -> "TransferPipeline":
        await self.node.connect()
        if self.quote_service:
            await self.quote_service.connect()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        if self.quote_service:
            await self.quote_service.disconnect()
        await self.node.disconnect()

    @property
    def payer(self) -> Pubkey:
        return self.signer.identity()

    async def send_sol(self, intent: NativeTransferIntent) -> PipelineResult:
        """Transfer lamports with a single system-program instruction."""
        return await self._run_local(PipelineKind.SOL, intent)

    async def send_token(self, intent: TokenTransferIntent) -> PipelineResult:
        """Transfer SPL tokens, creating missing token accounts first."""
        return await self._run_local(PipelineKind.TOKEN, intent)

    async def swap(self, intent: SwapIntent) -> PipelineResult:
        """
        Swap through the quote service.

        The service's transaction is re-anchored and re-signed locally; its
        instructions still reflect the original quote.
        """
        log = logger.bind(pipeline=PipelineKind.SWAP.value)

        with pipeline_step("validate"):
            intent.validate()
            if intent.payer != self.payer:
                raise InvalidIntentError(
                    f"Swap payer {intent.payer} is not the signer {self.payer}"
                )
            if self.quote_service is None:
                raise InvalidIntentError("No quote service configured for swaps")

        with pipeline_step("fetch_quote"):
            quote = await self.quote_service.quote(
                intent.input_mint,
                intent.output_mint,
                intent.amount,
                intent.slippage_bps,
            )

        with pipeline_step("build_swap"):
            swap_tx = await self.quote_service.build_swap(intent.payer, quote)

        with pipeline_step("fetch_anchor"):
            anchor = await self.node.get_latest_blockhash()

        with pipeline_step("sign"):
            log.info("reanchoring_swap", quote_age_seconds=round(quote.age_seconds, 3))
            signed_tx, anchor = await self.tx_builder.reanchor_and_sign(swap_tx, anchor)

        signature = await self._submit(signed_tx, anchor)

        log.info("swap_confirmed", signature=signature, out_amount=quote.out_amount)
        return PipelineResult(
            kind=PipelineKind.SWAP,
            signature=signature,
            payer=self.payer,
            blockhash=str(anchor.blockhash),
            instruction_count=len(signed_tx.message.instructions),
            quote=quote,
        )

    async def _run_local(self, kind: PipelineKind, intent) -> PipelineResult:
        """Run a pipeline whose instructions are built locally."""
        log = logger.bind(pipeline=kind.value)

        with pipeline_step("validate"):
            intent.validate()
            if intent.sender != self.payer:
                raise InvalidIntentError(
                    f"Sender {intent.sender} is not the signer {self.payer}"
                )

        with pipeline_step("build_instructions"):
            plan: InstructionPlan = await self._builders[kind].build(intent)

        if self.on_plan:
            self.on_plan(plan)

        with pipeline_step("fetch_anchor"):
            anchor = await self.node.get_latest_blockhash()

        with pipeline_step("sign"):
            signed_tx, anchor = await self.tx_builder.build_and_sign(plan.instructions, anchor)

        signature = await self._submit(signed_tx, anchor)

        log.info("transfer_confirmed", signature=signature)
        return PipelineResult(
            kind=kind,
            signature=signature,
            payer=self.payer,
            blockhash=str(anchor.blockhash),
            instruction_count=len(plan.instructions),
            derived_accounts=dict(plan.derived_accounts),
        )

    async def _submit(self, tx: VersionedTransaction, anchor: Anchor) -> str:
        with pipeline_step("submit"):
            return await self.node.send_and_confirm(tx, anchor.last_valid_block_height)
