#!/usr/bin/env python3
"""
Generate a Solana keypair for Courier.

Writes the key in the Solana CLI format (a JSON array of 64 integers),
the same format ``solana-keygen new`` produces.
"""

import argparse
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from solders.keypair import Keypair

from courier.tx.signer import TransactionSigner, write_keypair_file


def generate_keypair(output: str, force: bool = False) -> TransactionSigner:
    """
    Generate and save a new keypair.
    
    Args:
        output: Path of the keypair file
        force: Overwrite an existing file
        
    Returns:
        Signer loaded from the written file
    """
    path = Path(output).expanduser()
    if path.exists() and not force:
        raise FileExistsError(f"Keypair already exists at {path}")
    
    write_keypair_file(Keypair(), path)
    
    signer = TransactionSigner()
    signer.load_key_from_file(path)
    return signer


def main():
    parser = argparse.ArgumentParser(description="Generate a Solana keypair")
    parser.add_argument(
        "--output", "-o",
        default="./keys/id.json",
        help="Output file for the keypair (default: ./keys/id.json)"
    )
    parser.add_argument(
        "--force", "-f",
        action="store_true",
        help="Overwrite an existing keypair"
    )
    
    args = parser.parse_args()
    
    try:
        signer = generate_keypair(args.output, args.force)
    except FileExistsError as e:
        print(f"⚠️  {e}")
        print("   Use --force to overwrite")
        sys.exit(1)
    
    print("\n✅ Keypair generated successfully!")
    print(f"\n📁 Saved to: {args.output} (KEEP SECRET!)")
    print(f"\n📬 Public key: {signer.identity()}")
    
    print("\n💰 To fund on a local validator or devnet:")
    print(f"   solana airdrop 2 {signer.identity()} --url <rpc-url>")
    
    print(f"\n   Then run: COURIER_KEYPAIR_PATH={args.output} courier sol --lamports 1000000")


if __name__ == "__main__":
    main()
