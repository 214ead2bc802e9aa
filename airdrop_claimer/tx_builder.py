import base64
import hashlib
import logging
from typing import List, Optional, Sequence

from borsh_construct import CStruct, U8, U64, Vec
from solders.instruction import AccountMeta, Instruction
from solders.pubkey import Pubkey
from solders.system_program import ID as SYS_PROGRAM_ID
from spl.token.constants import TOKEN_PROGRAM_ID
from spl.token.instructions import create_associated_token_account, get_associated_token_address

from airdrop_claimer.errors import (
    AccountNotFoundError,
    ConfigError,
    InvalidProofEncodingError,
    LedgerError,
    LedgerUnavailableError,
)
from airdrop_claimer.ledger import Ledger
from airdrop_claimer.proofs import U64_MAX, AllocationProof, decode_proof_entry

logger = logging.getLogger(__name__)

CLAIM_STATUS_SEED = b"ClaimStatus"
MAX_SEED_LEN = 32

ClaimLayout = CStruct(
    "bump" / U8,
    "index" / U64,
    "amount" / U64,
    "proof" / Vec(U8[32]),
)


def sighash(name: str) -> bytes:
    return hashlib.sha256(f"global:{name}".encode()).digest()[:8]


def claim_status_seeds(index: int, distributor: Pubkey) -> List[bytes]:
    if index < 0 or index > U64_MAX:
        raise ConfigError(f"Allocation index {index} does not fit in a u64")
    seeds = [CLAIM_STATUS_SEED, index.to_bytes(8, "little"), bytes(distributor)]
    for seed in seeds:
        if len(seed) > MAX_SEED_LEN:
            raise ConfigError(f"PDA seed of {len(seed)} bytes exceeds the {MAX_SEED_LEN}-byte limit")
    return seeds


def claim_status_pda(index: int, distributor: Pubkey, program_id: Pubkey) -> Pubkey:
    """Address whose existence records that allocation ``index`` of ``distributor`` was claimed."""
    return Pubkey.find_program_address(claim_status_seeds(index, distributor), program_id)[0]


def decode_proof(proof: Sequence[str]) -> List[bytes]:
    decoded = []
    for position, entry in enumerate(proof):
        try:
            decoded.append(decode_proof_entry(entry))
        except (TypeError, ValueError) as exc:
            raise InvalidProofEncodingError(f"Proof entry {position} is invalid: {exc}") from exc
    return decoded


def encode_claim(index: int, amount: int, proof: List[bytes], bump: int = 0) -> bytes:
    # The on-chain program ignores the bump argument and re-derives it.
    data = ClaimLayout.build(
        {
            "bump": bump,
            "index": index,
            "amount": amount,
            "proof": [list(node) for node in proof],
        }
    )
    return sighash("claim") + data


def build_claim_ix(
    program_id: Pubkey,
    distributor: Pubkey,
    claim_status: Pubkey,
    source: Pubkey,
    destination: Pubkey,
    claimant: Pubkey,
    payer: Pubkey,
    index: int,
    amount: int,
    proof: List[bytes],
) -> Instruction:
    accounts = [
        AccountMeta(pubkey=distributor, is_signer=False, is_writable=True),
        AccountMeta(pubkey=claim_status, is_signer=False, is_writable=True),
        AccountMeta(pubkey=source, is_signer=False, is_writable=True),
        AccountMeta(pubkey=destination, is_signer=False, is_writable=True),
        AccountMeta(pubkey=claimant, is_signer=True, is_writable=False),
        AccountMeta(pubkey=payer, is_signer=True, is_writable=True),
        AccountMeta(pubkey=SYS_PROGRAM_ID, is_signer=False, is_writable=False),
        AccountMeta(pubkey=TOKEN_PROGRAM_ID, is_signer=False, is_writable=False),
    ]
    return Instruction(program_id=program_id, data=encode_claim(index, amount, proof), accounts=accounts)


def build_create_ata_ix(ledger: Ledger, owner: Pubkey, mint: Pubkey) -> Optional[Instruction]:
    """Instruction creating ``owner``'s token account for ``mint``, or None if it already exists."""
    ata = get_associated_token_address(owner, mint)
    try:
        ledger.get_account(ata)
    except AccountNotFoundError:
        logger.info("token_account_missing owner=%s ata=%s", owner, ata)
        return create_associated_token_account(payer=owner, owner=owner, mint=mint)
    except LedgerError as exc:
        raise LedgerUnavailableError(f"Could not look up token account {ata}: {exc}") from exc
    logger.info("token_account_exists owner=%s ata=%s", owner, ata)
    return None


def assemble_claim(
    ledger: Ledger,
    proof: AllocationProof,
    claimant: Pubkey,
    distributor: Pubkey,
    mint: Pubkey,
    program_id: Pubkey,
) -> List[Instruction]:
    """Ordered instructions for the claim: optional token-account creation, then the claim itself."""
    nodes = decode_proof(proof.proof)

    ixs: List[Instruction] = []
    create_ix = build_create_ata_ix(ledger, claimant, mint)
    if create_ix is not None:
        ixs.append(create_ix)

    ixs.append(
        build_claim_ix(
            program_id=program_id,
            distributor=distributor,
            claim_status=claim_status_pda(proof.index, distributor, program_id),
            source=get_associated_token_address(distributor, mint),
            destination=get_associated_token_address(claimant, mint),
            claimant=claimant,
            payer=claimant,
            index=proof.index,
            amount=proof.amount,
            proof=nodes,
        )
    )
    return ixs


def instruction_to_dict(ix: Instruction) -> dict:
    return {
        "program_id": str(ix.program_id),
        "keys": [
            {
                "pubkey": str(k.pubkey),
                "is_signer": k.is_signer,
                "is_writable": k.is_writable,
            }
            for k in ix.accounts
        ],
        "data": base64.b64encode(ix.data).decode(),
    }
