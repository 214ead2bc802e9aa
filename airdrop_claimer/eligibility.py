import logging
from typing import Optional

import requests
from solders.pubkey import Pubkey

from airdrop_claimer.errors import AccountNotFoundError, AlreadyClaimedError, LedgerError, LedgerUnavailableError
from airdrop_claimer.ledger import Ledger
from airdrop_claimer.proofs import DEFAULT_TIMEOUT, AllocationProof, fetch_proof
from airdrop_claimer.tx_builder import claim_status_pda

logger = logging.getLogger(__name__)


def check_eligibility(
    ledger: Ledger,
    claimant: Pubkey,
    distributor: Pubkey,
    program_id: Pubkey,
    base_url: str,
    session: Optional[requests.Session] = None,
    timeout: float = DEFAULT_TIMEOUT,
) -> AllocationProof:
    """Return the claimant's proof if the allocation exists and has not been claimed yet.

    Proof-service failures propagate as raised by ``fetch_proof``. The
    claim-status account is read on every call; its presence alone means the
    allocation was claimed.
    """
    proof = fetch_proof(base_url, claimant, session=session, timeout=timeout)
    claim_status = claim_status_pda(proof.index, distributor, program_id)
    logger.info("claim_status_derived index=%s claim_status=%s", proof.index, claim_status)

    try:
        ledger.get_account(claim_status)
    except AccountNotFoundError:
        return proof
    except LedgerError as exc:
        raise LedgerUnavailableError(f"Could not read claim status {claim_status}: {exc}") from exc
    raise AlreadyClaimedError(claim_status)
