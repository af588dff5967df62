"""
Command-line interface for Courier.

Provides one command per pipeline: ``sol``, ``token`` and ``swap``.
"""

import argparse
import asyncio
import logging
import sys
from typing import Any, Dict, List, Optional

import structlog
from pydantic import ValidationError

from courier import __version__
from courier.config import LOG_LEVELS, CourierConfig, set_config
from courier.core.intent import (
    InvalidIntentError,
    NativeTransferIntent,
    SwapIntent,
    TokenTransferIntent,
    to_base_units,
)
from courier.core.pipeline import (
    PipelineKind,
    PipelineResult,
    PipelineStepError,
    TransferPipeline,
)
from courier.tx.instructions import InstructionPlan

LAMPORTS_DECIMALS = 9

SUCCESS_LABELS = {
    PipelineKind.SOL: "SOL transfer",
    PipelineKind.TOKEN: "Token transfer",
    PipelineKind.SWAP: "Swap",
}


def setup_logging(level: str = "INFO", json_format: bool = False) -> None:
    """Configure structured logging."""
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.processors.JSONRenderer() if json_format
            else structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    # Logs go to stderr; stdout carries the status lines
    logging.basicConfig(
        format="%(message)s",
        level=getattr(logging, level.upper()),
        stream=sys.stderr,
    )


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "--rpc-url",
        help="Solana RPC endpoint (default: http://localhost:8899)",
    )
    common.add_argument(
        "--keypair",
        help="Path to keypair file (default: ~/.config/solana/id.json)",
    )
    common.add_argument(
        "--commitment",
        choices=["processed", "confirmed", "finalized"],
        help="Commitment level (default: confirmed)",
    )
    common.add_argument(
        "--log-level",
        choices=LOG_LEVELS,
        help="Logging level (default: INFO)",
    )
    common.add_argument(
        "--log-json",
        action="store_true",
        default=None,
        help="Output logs in JSON format",
    )

    parser = argparse.ArgumentParser(
        prog="courier",
        description="Build, sign and submit Solana transfers and swaps",
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    # SOL transfer
    sol_parser = subparsers.add_parser("sol", parents=[common], help="Transfer SOL")
    sol_parser.add_argument("--recipient", help="Recipient address")
    sol_amount = sol_parser.add_mutually_exclusive_group()
    sol_amount.add_argument("--lamports", type=int, help="Amount in lamports")
    sol_amount.add_argument("--amount", help="Amount in SOL, e.g. 0.001")

    # Token transfer
    token_parser = subparsers.add_parser("token", parents=[common], help="Transfer an SPL token")
    token_parser.add_argument("--recipient", help="Recipient wallet address")
    token_parser.add_argument("--mint", help="Token mint (default: USDC)")
    token_amount = token_parser.add_mutually_exclusive_group()
    token_amount.add_argument("--base-units", type=int, help="Amount in base units")
    token_amount.add_argument("--amount", help="Amount in whole tokens, e.g. 1.5")
    token_parser.add_argument(
        "--decimals",
        type=int,
        default=6,
        help="Token decimals used with --amount (default: 6)",
    )

    # Swap
    swap_parser = subparsers.add_parser("swap", parents=[common], help="Swap via Jupiter")
    swap_parser.add_argument("--input-mint", help="Mint to sell (default: wrapped SOL)")
    swap_parser.add_argument("--output-mint", help="Mint to buy (default: USDC)")
    swap_parser.add_argument("--base-units", type=int, help="Input amount in base units")
    swap_parser.add_argument("--slippage-bps", type=int, help="Slippage in basis points (default: 50)")
    swap_parser.add_argument("--quote-api-url", help="Jupiter swap API base URL")

    return parser


def build_config(args: argparse.Namespace) -> CourierConfig:
    """
    Create a configuration from environment defaults and CLI overrides.

    Raises:
        InvalidIntentError: If a human-readable amount cannot be scaled
        ValidationError: If any value is invalid
    """
    overrides: Dict[str, Any] = {
        "rpc_url": args.rpc_url,
        "keypair_path": args.keypair,
        "commitment": args.commitment,
        "log_level": args.log_level,
        "log_json": args.log_json,
    }

    if args.command == "sol":
        overrides["recipient"] = args.recipient
        overrides["sol_amount_lamports"] = (
            to_base_units(args.amount, LAMPORTS_DECIMALS) if args.amount is not None
            else args.lamports
        )
    elif args.command == "token":
        overrides["recipient"] = args.recipient
        overrides["token_mint"] = args.mint
        overrides["token_amount"] = (
            to_base_units(args.amount, args.decimals) if args.amount is not None
            else args.base_units
        )
    elif args.command == "swap":
        overrides["swap_input_mint"] = args.input_mint
        overrides["swap_output_mint"] = args.output_mint
        overrides["swap_amount"] = args.base_units
        overrides["slippage_bps"] = args.slippage_bps
        overrides["quote_api_url"] = args.quote_api_url

    return CourierConfig(**{k: v for k, v in overrides.items() if v is not None})


def print_plan(plan: InstructionPlan) -> None:
    """Print derived token accounts and which ones will be created."""
    for role, address in plan.derived_accounts.items():
        print(f"{role.capitalize()} ATA: {address}")
    for role in plan.created_accounts:
        print(f"{role.capitalize()} ATA does not exist, creating...")


def print_result(result: PipelineResult) -> None:
    """Print the success line for a confirmed transaction."""
    if result.quote is not None:
        print(f"Best quote out_amount = {result.quote.out_amount}")
    label = SUCCESS_LABELS[result.kind]
    print(f"{label} success, signature = {result.signature}")


async def run_pipeline(command: str, config: CourierConfig) -> PipelineResult:
    """Run the pipeline for ``command`` against the configured network."""
    pipeline = TransferPipeline.from_config(config)
    pipeline.on_plan = print_plan

    async with pipeline:
        payer = pipeline.payer
        print(f"Payer: {payer}")

        if command == "sol":
            return await pipeline.send_sol(NativeTransferIntent.from_config(config, payer))
        if command == "token":
            return await pipeline.send_token(TokenTransferIntent.from_config(config, payer))
        return await pipeline.swap(SwapIntent.from_config(config, payer))


def main(argv: Optional[List[str]] = None) -> None:
    """Main entry point."""
    parser = create_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        sys.exit(1)

    try:
        config = build_config(args)
    except (InvalidIntentError, ValidationError) as e:
        print(f"Invalid configuration: {e}", file=sys.stderr)
        sys.exit(1)
    set_config(config)

    # Setup logging
    setup_logging(config.log_level, config.log_json)

    try:
        result = asyncio.run(run_pipeline(args.command, config))
    except PipelineStepError as e:
        print(f"Error during {e.step}: {e.error}", file=sys.stderr)
        sys.exit(1)

    print_result(result)


if __name__ == "__main__":
    main()
