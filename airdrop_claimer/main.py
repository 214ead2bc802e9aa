"""
Claim a Merkle-distributor airdrop for one wallet.

- Looks up the wallet's allocation on the proof service ({AIRDROP_BASE_URL}/{wallet}.json).
- Skips wallets whose claim-status account already exists on-chain.
- Creates the wallet's token account when needed and submits the claim.

Configuration comes from the environment or .env:
DISTRIBUTOR_ADDRESS, AIRDROP_BASE_URL, MINT_ADDRESS (required),
MERKLE_DISTRIBUTOR_PROGRAM_ID, SOLANA_RPC, TOKEN_DECIMALS (optional).
"""

import argparse
import json
import logging
import sys
from typing import List, Optional, Sequence

import requests

from airdrop_claimer.config import DEFAULT_RPC, Settings, load_settings
from airdrop_claimer.eligibility import check_eligibility
from airdrop_claimer.errors import (
    AirdropClaimError,
    AlreadyClaimedError,
    NotEligibleError,
    SubmitError,
)
from airdrop_claimer.keys import load_keypair
from airdrop_claimer.ledger import Ledger, RpcLedger, Signer
from airdrop_claimer.tx_builder import assemble_claim, claim_status_pda, instruction_to_dict

logger = logging.getLogger("airdrop_claimer")


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="airdrop-claim",
        description="Check eligibility for and claim a Merkle-distributor airdrop.",
    )
    parser.add_argument("keypair_path", metavar="KEYPAIR_PATH", help="Path to the Solana keypair file.")
    parser.add_argument(
        "-u",
        "--url",
        dest="rpc_url",
        default=None,
        help=f"Override the RPC URL (default: SOLANA_RPC or {DEFAULT_RPC})",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Check eligibility and print the claim instructions without sending them",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    return parser.parse_args(argv)


def run(
    settings: Settings,
    signer: Signer,
    ledger: Ledger,
    dry_run: bool = False,
    session: Optional[requests.Session] = None,
) -> str:
    """Run one claim attempt; returns the transaction signature (empty for a dry run)."""
    claimant = signer.pubkey()
    distributor = settings.distributor
    program_id = settings.program_id
    print(f"Wallet: {claimant}")
    print(f"Distributor: {distributor}")

    proof = check_eligibility(
        ledger,
        claimant,
        distributor,
        program_id,
        settings.airdrop_base_url,
        session=session,
        timeout=settings.proof_request_timeout,
    )
    print(f"Airdrop found: index={proof.index} amount={proof.amount} proof_nodes={len(proof.proof)}")
    print(f"Claim status key: {claim_status_pda(proof.index, distributor, program_id)}")
    print(f"{proof.amount / 10 ** settings.token_decimals} tokens available to claim.")

    ixs = assemble_claim(ledger, proof, claimant, distributor, settings.mint, program_id)
    logger.info("claim_assembled instructions=%s create_ata=%s", len(ixs), len(ixs) > 1)
    if dry_run:
        print(json.dumps([instruction_to_dict(ix) for ix in ixs], indent=2))
        return ""

    sig = ledger.submit(ixs, claimant, [signer])
    print("✅ Transaction sent!")
    print(f"Signature: {sig}")
    return sig


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO)

    try:
        signer = load_keypair(args.keypair_path)
        overrides = {"solana_rpc": args.rpc_url} if args.rpc_url else {}
        settings = load_settings(**overrides)
        ledger = RpcLedger.from_url(settings.solana_rpc, timeout=settings.rpc_timeout)
        logger.info("rpc=%s program_id=%s", settings.solana_rpc, settings.program_id)
        run(settings, signer, ledger, dry_run=args.dry_run)
    except NotEligibleError:
        print("No airdrop available.")
        return 0
    except AlreadyClaimedError as exc:
        print(str(exc))
        return 0
    except SubmitError as exc:
        if exc.already_claimed:
            print(f"Claim already made; the ledger rejected the transaction: {exc.message}")
            return 0
        print(f"Transaction failed: {exc.message}", file=sys.stderr)
        return 1
    except AirdropClaimError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
